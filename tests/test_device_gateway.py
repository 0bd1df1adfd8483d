import os
import subprocess
import sys
import time

import pytest

from tuyu.Lib.Device.DeviceShellGateway import DeviceShellGateway, InteractiveShell
from tuyu.Lib.Device.DirectoryListing import EntryKind
from tuyu.Lib.Exceptions import ToolNotFound
from tuyu.Lib.Socket.emitter import SHELL_OUTPUT
from tuyu.Lib.Tools.Toolchain import Toolchain

LISTING = b"""total 16
drwxrwx--x  4 system system 4096 2024-03-01 10:00 Android
lrwxrwxrwx  1 root   root     21 2024-03-01 10:00 sdcard -> /storage/self/primary
lrwxrwxrwx  1 root   root     17 2024-03-01 10:00 bugreports -> /data/bugreports.zip
-rw-rw----  1 root   root    120 2024-03-01 10:00 notes.txt
"""


class FakeSession:
    def __init__(self, responses, toolchain=None):
        self.responses = list(responses)
        self.commands = []
        self.toolchain = toolchain

    def shell(self, device_id, command):
        self.commands.append((device_id, command))
        return self.responses.pop(0)

    def adb_path(self):
        return "adb"


def test_list_directory():
    session = FakeSession([LISTING, b"sdcard\n"])
    entries = DeviceShellGateway(session, emit=lambda *a: None).list_directory("emulator-5554", "/storage/emulated/0")

    assert session.commands[0] == ("emulator-5554", "ls -1 -l /storage/emulated/0")
    assert "for f in sdcard bugreports" in session.commands[1][1]
    assert [(e.name, e.kind) for e in entries] == [
        ("Android", EntryKind.DIRECTORY),
        ("sdcard", EntryKind.DIRECTORY_SYMLINK),
        ("bugreports", EntryKind.FILE_SYMLINK),
        ("notes.txt", EntryKind.FILE),
    ]
    assert entries[1].link_target == "/storage/self/primary"


def test_list_directory_quotes_path():
    session = FakeSession([b"total 0\n"])
    assert DeviceShellGateway(session, emit=lambda *a: None).list_directory("d", "/sdcard/My Files") == []
    assert session.commands == [("d", "ls -1 -l '/sdcard/My Files'")]


def test_mirror_without_scrcpy(tmp_path, monkeypatch):
    monkeypatch.setenv("PATH", "")
    gateway = DeviceShellGateway(FakeSession([], Toolchain(binaries_dir=tmp_path)), emit=lambda *a: None)
    with pytest.raises(ToolNotFound):
        gateway.mirror_screen("emulator-5554")


class SpawningSession(FakeSession):
    def spawn(self, device_id, command, **popen_kwargs):
        # echo stdin back, like a shell with echo on
        script = "import sys\nfor line in sys.stdin:\n    sys.stdout.write('> ' + line)\n    sys.stdout.flush()\n"
        return subprocess.Popen([sys.executable, "-c", script], **popen_kwargs)


def test_interactive_shell(events):
    gateway = DeviceShellGateway(SpawningSession([]), emit=events)
    shell = gateway.open_shell("emulator-5554")
    assert isinstance(shell, InteractiveShell)
    assert gateway.open_shell("emulator-5554") is shell

    assert gateway.write_shell("emulator-5554", "id\n")
    shell.process.stdin.close()
    shell.process.wait(30)
    shell._reader.join(30)

    assert b"".join(events.of(SHELL_OUTPUT)).replace(b"\r\n", b"\n") == b"> id\n"
    assert gateway.close_shell("emulator-5554")
    assert not gateway.close_shell("emulator-5554")
    assert not gateway.write_shell("emulator-5554", "ls\n")


def _pipe_process(source):
    return subprocess.Popen([sys.executable, "-c", source], stdin=subprocess.PIPE, stdout=subprocess.PIPE)


def test_close_reaps_shell(events):
    process = _pipe_process("import time\ntime.sleep(60)\n")
    shell = InteractiveShell("emulator-5554", process, events)
    shell.close()
    assert process.returncode is not None
    assert process.stdin.closed and process.stdout.closed
    assert not shell._reader.is_alive()


def test_write_after_exit_returns_false(events):
    process = _pipe_process("pass\n")
    shell = InteractiveShell("emulator-5554", process, events)
    process.wait(30)
    assert shell.write("ls\n") is False
    shell.close()


@pytest.mark.skipif(sys.platform.startswith("win"), reason="executable bit")
def test_mirror_reaps_scrcpy(tmp_path):
    scrcpy = tmp_path / "scrcpy"
    scrcpy.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    os.chmod(scrcpy, 0o755)

    class MirrorSession(FakeSession):
        def spawn(self, device_id, command, **popen_kwargs):
            return subprocess.Popen(command, **popen_kwargs)

    gateway = DeviceShellGateway(MirrorSession([], Toolchain(binaries_dir=tmp_path)), emit=lambda *a: None)
    process = gateway.mirror_screen("emulator-5554")
    deadline = time.monotonic() + 30
    # poll() would reap it here; only read what the background waiter recorded
    while process.returncode is None and time.monotonic() < deadline:
        time.sleep(0.05)
    assert process.returncode == 0
