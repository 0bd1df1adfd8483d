import base64
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

ICON_DIR_PREFIXES = ("mipmap", "drawable")
DENSITY_ORDER = ["xxxhdpi", "xxhdpi", "xhdpi", "hdpi", "mdpi", "ldpi"]


def local_name(name: str) -> str:
    """`{http://schemas.android.com/apk/res/android}label` and `android:label` both give `label`."""
    if name.startswith("{"):
        name = name.split("}", 1)[1]
    return name.split(":")[-1]


def attribute(element: ET.Element, name: str) -> Optional[str]:
    # Matched by local name on purpose: manifest producers do not agree on the namespace prefix.
    for key, value in element.attrib.items():
        if local_name(key) == name:
            return value
    return None


@dataclass(frozen=True)
class ResourceReference:
    """A manifest attribute value: either a literal or an `@type/key` indirection."""

    value: str
    kind: Optional[str] = None
    key: str = ""

    @classmethod
    def parse(cls, value: str) -> "ResourceReference":
        for kind in ("string",) + ICON_DIR_PREFIXES:
            prefix = f"@{kind}/"
            if value.startswith(prefix):
                return cls(value=value, kind=kind, key=value[len(prefix):])
        return cls(value=value)

    @property
    def is_literal(self) -> bool:
        return self.kind is None


def _density_rank(dir_name: str) -> int:
    qualifiers = dir_name.split("-")[1:]
    for rank, density in enumerate(DENSITY_ORDER):
        if density in qualifiers:
            return rank
    return len(DENSITY_ORDER)


class ResourceResolver:
    """
    Resolves `@string/...`, `@mipmap/...` and `@drawable/...` references against a
    decompiled `res/` tree. Missing or unreadable resources are never fatal: the
    caller just gets an empty label or no icon.
    """

    def __init__(self, res_dir: Union[str, Path]):
        self.res_dir = Path(res_dir)

    def resolve_label(self, value: Optional[str]) -> str:
        if not value:
            return ""
        reference = ResourceReference.parse(value)
        if reference.is_literal:
            return value
        if reference.kind != "string":
            return ""
        return self.lookup_string(reference.key)

    def lookup_string(self, key: str) -> str:
        strings_path = self.res_dir / "values" / "strings.xml"
        if not strings_path.is_file():
            logger.debug(f"[METADATA] {strings_path} not found, label left empty")
            return ""
        try:
            root = ET.parse(strings_path).getroot()
        except (ET.ParseError, OSError) as e:
            logger.warning(f"[METADATA] Could not parse {strings_path}: {e}")
            return ""
        for elem in root.iter("string"):
            if elem.get("name") == key:
                return "".join(elem.itertext())
        return ""

    def icon_dirs(self) -> List[Path]:
        """Candidate icon folders: mipmap before drawable, highest density first."""
        try:
            dirs = [d for d in self.res_dir.iterdir() if d.is_dir() and d.name.startswith(ICON_DIR_PREFIXES)]
        except OSError:
            return []
        return sorted(dirs, key=lambda d: (
            0 if d.name.startswith("mipmap") else 1,
            _density_rank(d.name),
            d.name,
        ))

    def resolve_icon(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        reference = ResourceReference.parse(value)
        if reference.kind not in ICON_DIR_PREFIXES:
            return None
        for icon_dir in self.icon_dirs():
            candidate = icon_dir / f"{reference.key}.png"
            if candidate.is_file():
                try:
                    return base64.b64encode(candidate.read_bytes()).decode("ascii")
                except OSError as e:
                    logger.warning(f"[METADATA] Could not read icon {candidate}: {e}")
                    return None
        return None
