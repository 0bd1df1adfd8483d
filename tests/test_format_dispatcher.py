import json
import shutil

import pytest

from conftest import make_zip
from tuyu.Lib.Exceptions import FormatUnrecognized
from tuyu.Lib.Metadata.FormatDispatcher import FormatDispatcher
from tuyu.Lib.Metadata.PackageMetadata import PackageMetadata


class StubAPKExtractor:
    def __init__(self):
        self.paths = []

    def extract(self, path):
        self.paths.append(path)
        return PackageMetadata(package_name="from.apk")


def test_directory_goes_to_directory_extractor(decompiled_project):
    assert FormatDispatcher(apk_extractor=StubAPKExtractor()).detect_and_extract(decompiled_project).package_name \
        == "com.example.app"


def test_incomplete_directory_is_none(decompiled_project):
    shutil.rmtree(decompiled_project / "res")
    assert FormatDispatcher(apk_extractor=StubAPKExtractor()).detect_and_extract(decompiled_project) is None


def test_apk_extension(tmp_path):
    stub = StubAPKExtractor()
    path = tmp_path / "App.APK"
    assert FormatDispatcher(apk_extractor=stub).detect_and_extract(str(path)).package_name == "from.apk"
    assert stub.paths == [path]


def test_xapk_extension(tmp_path):
    manifest = {"name": "n", "package_name": "from.xapk", "version_name": "1", "min_sdk_version": "21",
                "target_sdk_version": "30", "split_configs": [], "icon": "icon.png"}
    path = make_zip(tmp_path / "bundle.xapk", {"manifest.json": json.dumps(manifest)})
    assert FormatDispatcher(apk_extractor=StubAPKExtractor()).detect_and_extract(path).package_name == "from.xapk"


@pytest.mark.parametrize("name", ["app.zip", "app.apks", "README"])
def test_unrecognized_file_is_fatal(tmp_path, name):
    path = tmp_path / name
    path.write_bytes(b"")
    with pytest.raises(FormatUnrecognized):
        FormatDispatcher(apk_extractor=StubAPKExtractor()).detect_and_extract(path)
