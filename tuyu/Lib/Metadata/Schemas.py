"""
Typed views over the two loosely structured documents we consume:
the XAPK `manifest.json` and apktool's `apktool.yml` project descriptor.

Both are authored by third-party tools, so every lookup goes through
`from_document`. The XAPK manifest raises MissingFieldError naming the
offending key; the apktool descriptor records unusable keys in `missing`
and keeps the rest.
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional

import yaml

from tuyu.Lib.Exceptions import MissingFieldError

XAPK_ARMEABI_V7A = "config.armeabi_v7a"
XAPK_ARM64_V8A = "config.arm64_v8a"

_MISSING = object()


def _lookup(document: Any, field_path: str):
    node = document
    for key in field_path.split("."):
        if not isinstance(node, dict) or key not in node:
            return _MISSING
        node = node[key]
    return node


def _scalar(document: Any, field_path: str, document_name: str, required: bool = True) -> Optional[str]:
    value = _lookup(document, field_path)
    if value is _MISSING or value is None:
        if required:
            raise MissingFieldError(field_path, document_name)
        return None
    # bool is an int subclass, but "true" is never a version or SDK level
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise MissingFieldError(field_path, document_name)
    return str(value)


@dataclass
class XapkManifest:
    name: str
    package_name: str
    version_name: str
    min_sdk_version: str
    target_sdk_version: str
    icon: str
    split_configs: List[str] = field(default_factory=list)
    version_code: Optional[str] = None

    @classmethod
    def from_document(cls, document: Any) -> "XapkManifest":
        name = "manifest.json"
        if not isinstance(document, dict):
            raise MissingFieldError("<root>", name)

        split_configs = _lookup(document, "split_configs")
        if not isinstance(split_configs, list) or not all(isinstance(c, str) for c in split_configs):
            raise MissingFieldError("split_configs", name)

        return cls(
            name=_scalar(document, "name", name),
            package_name=_scalar(document, "package_name", name),
            version_name=_scalar(document, "version_name", name),
            min_sdk_version=_scalar(document, "min_sdk_version", name),
            target_sdk_version=_scalar(document, "target_sdk_version", name),
            icon=_scalar(document, "icon", name),
            split_configs=list(split_configs),
            version_code=_scalar(document, "version_code", name, required=False),
        )

    @property
    def supports_32bit(self) -> bool:
        return XAPK_ARMEABI_V7A in self.split_configs

    @property
    def supports_64bit(self) -> bool:
        return XAPK_ARM64_V8A in self.split_configs


class ApktoolYamlLoader(yaml.SafeLoader):
    """SafeLoader that reads apktool's `!!brut.androlib...` class tags as plain mappings."""


def _construct_brut_object(loader, tag_suffix, node):
    if isinstance(node, yaml.MappingNode):
        return loader.construct_mapping(node, deep=True)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_scalar(node)


ApktoolYamlLoader.add_multi_constructor("tag:yaml.org,2002:brut.", _construct_brut_object)


def load_apktool_yaml(text: str) -> Any:
    return yaml.load(text, Loader=ApktoolYamlLoader)


@dataclass
class ApktoolDescriptor:
    min_sdk_version: str = ""
    target_sdk_version: str = ""
    version_name: str = ""
    version_code: str = ""
    # dotted paths that were absent or unusable, in field order
    missing: List[str] = field(default_factory=list)

    FIELDS = (
        ("min_sdk_version", "sdkInfo.minSdkVersion"),
        ("target_sdk_version", "sdkInfo.targetSdkVersion"),
        ("version_name", "versionInfo.versionName"),
        ("version_code", "versionInfo.versionCode"),
    )

    @classmethod
    def from_document(cls, document: Any) -> "ApktoolDescriptor":
        """Each field is read on its own; apktool omits keys the manifest does not declare."""
        name = "apktool.yml"
        if not isinstance(document, dict):
            raise MissingFieldError("<root>", name)

        descriptor = cls()
        for attr, field_path in cls.FIELDS:
            try:
                value = _scalar(document, field_path, name, required=False)
            except MissingFieldError:
                value = None
            if value is None:
                descriptor.missing.append(field_path)
            else:
                setattr(descriptor, attr, value)
        return descriptor
