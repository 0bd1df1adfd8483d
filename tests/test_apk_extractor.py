import base64
import os
import sys

import pytest

from conftest import ICON_BYTES, make_zip
from tuyu.Lib.Exceptions import ToolNotFound, ToolExecutionFailed
from tuyu.Lib.Metadata.APKExtractor import APKExtractor, parse_badging
from tuyu.Lib.Tools.Toolchain import Toolchain

BADGING = """package: name='com.example.app' versionCode='42' versionName='1.4.2' platformBuildVersionName='13' compileSdkVersion='33'
sdkVersion:'21'
targetSdkVersion:'33'
uses-permission: name='android.permission.INTERNET'
application-label:'Example App'
application-label-de:'Beispiel'
application: label='Example App' icon='res/mipmap-xxxhdpi/ic_launcher.png'
launchable-activity: name='com.example.app.MainActivity'  label='' icon=''
native-code: 'arm64-v8a' 'armeabi-v7a'
"""

posix_only = pytest.mark.skipif(sys.platform.startswith("win"), reason="shell script stands in for aapt2")


def test_parse_badging():
    metadata, icon_path = parse_badging(BADGING)
    assert metadata.package_name == "com.example.app"
    assert metadata.version == "1.4.2"
    assert metadata.version_code == "42"
    assert metadata.version_name == "1.4.2"
    assert metadata.min_sdk == "21"
    assert metadata.target_sdk == "33"
    assert metadata.name == "Example App"
    assert metadata.supports_32bit and metadata.supports_64bit
    assert icon_path == "res/mipmap-xxxhdpi/ic_launcher.png"


def test_parse_badging_is_order_insensitive():
    lines = BADGING.splitlines()
    shuffled = [lines[-1], lines[1]] + [l for l in lines if l not in (lines[-1], lines[1])]
    assert parse_badging("\n".join(shuffled)) == parse_badging(BADGING)
    assert parse_badging(BADGING) == parse_badging(BADGING)


def test_parse_badging_degrades_per_field():
    metadata, icon_path = parse_badging("package:\nsdkVersion:'19'\nnative-code: 'x86'\ngarbage line\n")
    assert metadata.package_name == ""
    assert metadata.version == ""
    assert metadata.min_sdk == "19"
    assert not metadata.supports_32bit and not metadata.supports_64bit
    assert icon_path is None


def test_parse_badging_only_32bit():
    metadata, _ = parse_badging("native-code: 'armeabi-v7a'")
    assert metadata.supports_32bit
    assert not metadata.supports_64bit


def test_extract_reads_icon(tmp_path, monkeypatch):
    apk = make_zip(tmp_path / "app.apk", {"res/mipmap-xxxhdpi/ic_launcher.png": ICON_BYTES})
    extractor = APKExtractor(Toolchain(binaries_dir=tmp_path))
    monkeypatch.setattr(extractor, "dump_badging", lambda path: BADGING)

    metadata = extractor.extract(apk)
    assert metadata.package_name == "com.example.app"
    assert base64.b64decode(metadata.icon) == ICON_BYTES


def test_extract_without_icon_entry(tmp_path, monkeypatch):
    apk = make_zip(tmp_path / "app.apk", {"classes.dex": b""})
    extractor = APKExtractor(Toolchain(binaries_dir=tmp_path))
    monkeypatch.setattr(extractor, "dump_badging", lambda path: BADGING)

    metadata = extractor.extract(apk)
    assert metadata.icon is None
    assert metadata.min_sdk == "21"


def test_missing_aapt2(tmp_path, monkeypatch):
    monkeypatch.setenv("PATH", "")
    extractor = APKExtractor(Toolchain(binaries_dir=tmp_path))
    with pytest.raises(ToolNotFound):
        extractor.extract(tmp_path / "app.apk")


def _fake_aapt2(binaries, body):
    binaries.mkdir(exist_ok=True)
    script = binaries / "aapt2"
    script.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    os.chmod(script, 0o755)
    return script


@posix_only
def test_extract_with_bundled_aapt2(tmp_path):
    binaries = tmp_path / "binaries"
    _fake_aapt2(binaries, "cat <<'EOF'\n" + BADGING + "EOF\n")
    apk = make_zip(tmp_path / "app.apk", {"res/mipmap-xxxhdpi/ic_launcher.png": ICON_BYTES})

    metadata = APKExtractor(Toolchain(binaries_dir=binaries)).extract(apk)
    assert (metadata.package_name, metadata.version, metadata.min_sdk, metadata.target_sdk) == \
        ("com.example.app", "1.4.2", "21", "33")
    assert base64.b64decode(metadata.icon) == ICON_BYTES


@posix_only
def test_aapt2_failure(tmp_path):
    binaries = tmp_path / "binaries"
    _fake_aapt2(binaries, "echo 'ERROR: invalid file' >&2\nexit 1\n")
    with pytest.raises(ToolExecutionFailed) as exc_info:
        APKExtractor(Toolchain(binaries_dir=binaries)).extract(tmp_path / "broken.apk")
    assert exc_info.value.returncode == 1
    assert "invalid file" in exc_info.value.stderr
