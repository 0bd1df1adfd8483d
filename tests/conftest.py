import sys
import threading
import zipfile
from pathlib import Path

import pytest

from tuyu.Lib.Socket import emitter
from tuyu.Lib.Tools.Toolchain import Toolchain

ICON_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDRfake-icon"

MANIFEST_XML = """<?xml version="1.0" encoding="utf-8" standalone="no"?>
<manifest xmlns:android="http://schemas.android.com/apk/res/android" package="com.example.app" platformBuildVersionCode="33">
    <uses-permission android:name="android.permission.INTERNET"/>
    <application android:allowBackup="true" android:icon="@mipmap/ic_launcher" android:label="@string/app_name">
        <activity android:name=".MainActivity" android:exported="true"/>
    </application>
</manifest>
"""

APKTOOL_YML = """!!brut.androlib.meta.MetaInfo
apkFileName: app.apk
isFrameworkApk: false
sdkInfo:
  minSdkVersion: '21'
  targetSdkVersion: '33'
versionInfo:
  versionCode: '42'
  versionName: 1.4.2
"""

STRINGS_XML = """<?xml version="1.0" encoding="utf-8"?>
<resources>
    <string name="app_name_short">Ex</string>
    <string name="app_name">Example &amp; Co</string>
    <string name="app_name">Shadowed</string>
</resources>
"""


class EventRecorder:
    """Stands in for the Socket.IO emitter; safe to call from the supervisor threads."""

    def __init__(self):
        self._lock = threading.Lock()
        self.events = []

    def __call__(self, event, data, namespace=None):
        with self._lock:
            self.events.append((event, data))

    emit = __call__

    def of(self, event):
        with self._lock:
            return [data for name, data in self.events if name == event]


class ScriptToolchain(Toolchain):
    """Runs every tool as a Python script, so tests do not need java or the real jars."""

    def __init__(self, binaries_dir, script: Path):
        super().__init__(binaries_dir=binaries_dir)
        self.script = script

    def command_for(self, tool_identifier):
        return [sys.executable, str(self.script)]


@pytest.fixture
def events():
    return EventRecorder()


@pytest.fixture
def socketio_events():
    recorder = EventRecorder()
    emitter.init_socketio(recorder)
    yield recorder
    emitter.init_socketio(None)


def make_zip(path: Path, entries: dict) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


def write_script(path: Path, source: str) -> Path:
    path.write_text(source, encoding="utf-8")
    return path


@pytest.fixture
def decompiled_project(tmp_path):
    """A minimal apktool output directory with label and icon indirections."""
    src = tmp_path / "app"
    (src / "res" / "values").mkdir(parents=True)
    (src / "res" / "mipmap-hdpi").mkdir()
    (src / "res" / "mipmap-xxxhdpi").mkdir()
    (src / "AndroidManifest.xml").write_text(MANIFEST_XML, encoding="utf-8")
    (src / "apktool.yml").write_text(APKTOOL_YML, encoding="utf-8")
    (src / "res" / "values" / "strings.xml").write_text(STRINGS_XML, encoding="utf-8")
    (src / "res" / "mipmap-hdpi" / "ic_launcher.png").write_bytes(b"hdpi")
    (src / "res" / "mipmap-xxxhdpi" / "ic_launcher.png").write_bytes(ICON_BYTES)
    return src
