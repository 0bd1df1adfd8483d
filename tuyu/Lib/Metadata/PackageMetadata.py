from dataclasses import dataclass, asdict
from typing import Optional


@dataclass
class PackageMetadata:
    """
    Canonical metadata record for an APK, an XAPK bundle or a decompiled project.
    Unresolvable string fields stay empty; `icon` is base64 encoded image bytes.
    """

    name: str = ""
    package_name: str = ""
    version: str = ""
    min_sdk: str = ""
    target_sdk: str = ""
    supports_32bit: bool = False
    supports_64bit: bool = False
    icon: Optional[str] = None
    version_code: str = ""
    version_name: str = ""

    def as_dict(self) -> dict:
        return asdict(self)
