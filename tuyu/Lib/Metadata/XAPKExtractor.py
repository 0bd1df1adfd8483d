import json
import logging
from pathlib import Path
from typing import Optional, Union

from tuyu.Lib.Exceptions import TuyuError
from tuyu.Lib.Metadata.ArchiveReader import ArchiveReader
from tuyu.Lib.Metadata.PackageMetadata import PackageMetadata
from tuyu.Lib.Metadata.Schemas import XapkManifest

logger = logging.getLogger(__name__)

MANIFEST_JSON = "manifest.json"


class XAPKExtractor:
    """
    Metadata of an .xapk bundle, read from its `manifest.json`.

    The manifest is written by whatever tool produced the bundle, so an unreadable or
    incomplete one yields None instead of an exception.
    """

    def extract(self, xapk_path: Union[str, Path]) -> Optional[PackageMetadata]:
        try:
            with ArchiveReader(xapk_path) as archive:
                manifest = XapkManifest.from_document(json.loads(archive.read_text(MANIFEST_JSON)))
                metadata = PackageMetadata(
                    name=manifest.name,
                    package_name=manifest.package_name,
                    version=manifest.version_name,
                    version_name=manifest.version_name,
                    version_code=manifest.version_code or "",
                    min_sdk=manifest.min_sdk_version,
                    target_sdk=manifest.target_sdk_version,
                    supports_32bit=manifest.supports_32bit,
                    supports_64bit=manifest.supports_64bit,
                )
                metadata.icon = self._read_icon(archive, manifest.icon)
        except (TuyuError, ValueError) as e:
            # json.JSONDecodeError and UnicodeDecodeError are both ValueErrors
            logger.warning(f"[METADATA] Invalid xapk {xapk_path}: {e}")
            return None
        return metadata

    def _read_icon(self, archive: ArchiveReader, icon_path: str) -> Optional[str]:
        try:
            return archive.read_entry_base64(icon_path)
        except TuyuError as e:
            logger.info(f"[METADATA] No icon in {archive.path}: {e}")
            return None
