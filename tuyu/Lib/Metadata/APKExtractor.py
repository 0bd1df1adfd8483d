import logging
import subprocess
from pathlib import Path
from typing import Optional, Tuple, Union

from tuyu.Lib.Exceptions import TuyuError, ToolNotFound, ToolExecutionFailed
from tuyu.Lib.Metadata.ArchiveReader import ArchiveReader
from tuyu.Lib.Metadata.PackageMetadata import PackageMetadata
from tuyu.Lib.Tools.Toolchain import Toolchain, AAPT2

logger = logging.getLogger(__name__)

ARMEABI_V7A = "armeabi-v7a"
ARM64_V8A = "arm64-v8a"


def _unquote(value: str) -> str:
    return value.strip().replace("'", "")


def _after_colon(line: str) -> str:
    return _unquote(line.split(":", 1)[1])


def _attr_value(token: str) -> str:
    """`name='com.example'` -> `com.example`"""
    parts = token.split("=", 1)
    return _unquote(parts[1]) if len(parts) == 2 else ""


def _parse_package_line(line: str, metadata: PackageMetadata) -> None:
    tokens = line.split()
    if len(tokens) > 1:
        metadata.package_name = _attr_value(tokens[1])
    if len(tokens) > 3:
        metadata.version = _attr_value(tokens[3])
    for token in tokens[1:]:
        if token.startswith("versionCode="):
            metadata.version_code = _attr_value(token)
        elif token.startswith("versionName="):
            metadata.version_name = _attr_value(token)


def parse_badging(output: str) -> Tuple[PackageMetadata, Optional[str]]:
    """
    Parse `aapt2 dump badging` output.

    Returns the metadata (without icon) and the in-archive icon path, if any.
    Unknown lines are ignored and malformed known lines leave their field empty.
    """
    metadata = PackageMetadata()
    icon_path = None

    for line in output.splitlines():
        if line.startswith("package:"):
            _parse_package_line(line, metadata)
        elif line.startswith("sdkVersion:"):
            metadata.min_sdk = _after_colon(line)
        elif line.startswith("targetSdkVersion:"):
            metadata.target_sdk = _after_colon(line)
        elif line.startswith("application-label:"):
            metadata.name = _after_colon(line)
        elif line.startswith("application:"):
            start = line.find("icon='")
            if start != -1:
                start += len("icon='")
                end = line.find("'", start)
                icon_path = line[start:end] if end != -1 else line[start:]
        elif line.startswith("native-code:"):
            archs = _after_colon(line).split()
            metadata.supports_32bit = ARMEABI_V7A in archs
            metadata.supports_64bit = ARM64_V8A in archs

    return metadata, icon_path or None


class APKExtractor:
    """Metadata of a single .apk, read from aapt2's badging dump."""

    def __init__(self, toolchain: Optional[Toolchain] = None):
        self.toolchain = toolchain or Toolchain()

    def dump_badging(self, apk_path: Union[str, Path]) -> str:
        aapt2 = self.toolchain.native(AAPT2)
        if aapt2 is None:
            raise ToolNotFound(AAPT2)
        try:
            result = subprocess.run(
                [aapt2, "dump", "badging", str(apk_path)],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise ToolExecutionFailed(AAPT2, stderr=str(e)) from e
        if result.returncode != 0:
            raise ToolExecutionFailed(AAPT2, result.returncode, result.stderr.decode("utf-8", errors="replace"))
        return result.stdout.decode("utf-8", errors="replace")

    def extract(self, apk_path: Union[str, Path]) -> PackageMetadata:
        metadata, icon_path = parse_badging(self.dump_badging(apk_path))
        if icon_path:
            metadata.icon = self.read_icon(apk_path, icon_path)
        return metadata

    def read_icon(self, apk_path: Union[str, Path], icon_path: str) -> Optional[str]:
        try:
            with ArchiveReader(apk_path) as archive:
                return archive.read_entry_base64(icon_path)
        except TuyuError as e:
            logger.info(f"[METADATA] No icon for {apk_path}: {e}")
            return None
