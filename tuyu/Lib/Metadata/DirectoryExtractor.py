import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional, Tuple, Union

import yaml

from tuyu.Lib.Exceptions import ManifestParseError, MissingFieldError
from tuyu.Lib.Metadata.PackageMetadata import PackageMetadata
from tuyu.Lib.Metadata.ResourceResolver import ResourceResolver, attribute, local_name
from tuyu.Lib.Metadata.Schemas import ApktoolDescriptor, load_apktool_yaml

logger = logging.getLogger(__name__)

MANIFEST_FILE = "AndroidManifest.xml"
DESCRIPTOR_FILE = "apktool.yml"


def detect_abis(src_dir: Path) -> Tuple[bool, bool]:
    lib_dir = src_dir / "lib"
    supports_32bit = supports_64bit = False
    if not lib_dir.is_dir():
        return supports_32bit, supports_64bit
    for abi_dir in lib_dir.iterdir():
        if not abi_dir.is_dir():
            continue
        if abi_dir.name.startswith("armeabi-v7a"):
            supports_32bit = True
        elif abi_dir.name.startswith("arm64-v8a"):
            supports_64bit = True
    return supports_32bit, supports_64bit


class DirectoryExtractor:
    """
    Metadata of a project decompiled by apktool: AndroidManifest.xml for identity,
    apktool.yml for version and SDK levels, res/ for label and icon, lib/ for ABIs.
    """

    def __init__(self, prefer_version_code: bool = False):
        self.prefer_version_code = prefer_version_code

    def extract(self, src_dir: Union[str, Path]) -> Optional[PackageMetadata]:
        src_dir = Path(src_dir)
        manifest_path = src_dir / MANIFEST_FILE
        descriptor_path = src_dir / DESCRIPTOR_FILE
        res_dir = src_dir / "res"

        if not manifest_path.is_file() or not descriptor_path.is_file() or not res_dir.is_dir():
            logger.info(f"[METADATA] {src_dir} is not a decompiled project")
            return None

        root = self._parse_manifest(manifest_path)
        metadata = PackageMetadata(package_name=root.get("package", ""))
        self._apply_descriptor(descriptor_path, metadata)

        application = root.find("application")
        if application is not None:
            resolver = ResourceResolver(res_dir)
            metadata.name = resolver.resolve_label(attribute(application, "label"))
            metadata.icon = resolver.resolve_icon(attribute(application, "icon"))

        metadata.supports_32bit, metadata.supports_64bit = detect_abis(src_dir)
        return metadata

    def _parse_manifest(self, manifest_path: Path) -> ET.Element:
        try:
            root = ET.parse(manifest_path).getroot()
        except (ET.ParseError, OSError) as e:
            raise ManifestParseError(manifest_path, str(e)) from e
        if local_name(root.tag) != "manifest":
            raise ManifestParseError(manifest_path, f"unexpected root element <{root.tag}>")
        return root

    def _apply_descriptor(self, descriptor_path: Path, metadata: PackageMetadata) -> None:
        try:
            descriptor = ApktoolDescriptor.from_document(
                load_apktool_yaml(descriptor_path.read_text(encoding="utf-8")))
        except (yaml.YAMLError, OSError, UnicodeDecodeError, MissingFieldError) as e:
            logger.warning(f"[METADATA] Unusable {descriptor_path}: {e}")
            return
        if descriptor.missing:
            logger.warning(f"[METADATA] {descriptor_path} lacks {', '.join(descriptor.missing)}")

        metadata.version_name = descriptor.version_name
        metadata.version_code = descriptor.version_code
        if self.prefer_version_code:
            metadata.version = descriptor.version_code or descriptor.version_name
        else:
            metadata.version = descriptor.version_name or descriptor.version_code
        metadata.min_sdk = descriptor.min_sdk_version
        metadata.target_sdk = descriptor.target_sdk_version
