import logging
import os
import shlex
import threading
import subprocess
from typing import Any, Callable, Dict, List, Optional

from tuyu.Lib.Device.DeviceSession import DeviceSession, DeviceDescriptor
from tuyu.Lib.Device.DirectoryListing import DirectoryEntry, EntryKind, parse_listing
from tuyu.Lib.Exceptions import ToolNotFound
from tuyu.Lib.Socket import emitter
from tuyu.Lib.Socket.emitter import SHELL_OUTPUT
from tuyu.Lib.Tools.Toolchain import SCRCPY

logger = logging.getLogger(__name__)

READ_CHUNK = 4096


class InteractiveShell:
    """`adb shell` kept open; raw output bytes are pushed as shell-output events."""

    def __init__(self, device_id: str, process: subprocess.Popen, emit: Callable[[str, Any], None]):
        self.device_id = device_id
        self.process = process
        self._emit = emit
        self._reader = threading.Thread(target=self._pump, daemon=True)
        self._reader.start()

    def _pump(self) -> None:
        fd = self.process.stdout.fileno()
        while True:
            chunk = os.read(fd, READ_CHUNK)
            if not chunk:
                break
            self._emit(SHELL_OUTPUT, chunk)
        logger.info(f"[DEVICE] Shell on {self.device_id} closed")

    @property
    def alive(self) -> bool:
        return self.process.poll() is None

    def write(self, data) -> bool:
        if isinstance(data, str):
            data = data.encode("utf-8")
        try:
            self.process.stdin.write(data)
            self.process.stdin.flush()
        except OSError as e:
            logger.warning(f"[DEVICE] Shell on {self.device_id} rejected input: {e}")
            return False
        return True

    def close(self, timeout: float = 5) -> None:
        try:
            self.process.stdin.close()
        except OSError as e:
            logger.debug(f"[DEVICE] Shell on {self.device_id} stdin already broken: {e}")
        if self.alive:
            self.process.terminate()
        try:
            self.process.wait(timeout)
        except subprocess.TimeoutExpired:
            self.process.kill()
            self.process.wait()
        self._reader.join(timeout)
        self.process.stdout.close()


def _reap(process: subprocess.Popen, label: str) -> None:
    process.wait()
    logger.info(f"[DEVICE] {label} exited with {process.returncode}")


class DeviceShellGateway:

    def __init__(self, session: DeviceSession, emit: Optional[Callable[[str, Any], None]] = None):
        self.session = session
        self._emit = emit or emitter.emit
        self._shells: Dict[str, InteractiveShell] = {}

    def devices(self) -> List[DeviceDescriptor]:
        return self.session.devices()

    def list_directory(self, device_id: str, path: str) -> List[DirectoryEntry]:
        output = self.session.shell(device_id, f"ls -1 -l {shlex.quote(path)}")
        entries = parse_listing(output.decode("utf-8", errors="replace"))
        self._classify_symlinks(device_id, path, entries)
        return entries

    def _classify_symlinks(self, device_id: str, path: str, entries: List[DirectoryEntry]) -> None:
        """ls -l does not say whether a link points at a directory; ask the device once for all of them."""
        links = [e for e in entries if e.kind is EntryKind.FILE_SYMLINK]
        if not links:
            return
        names = " ".join(shlex.quote(e.name) for e in links)
        command = f'cd {shlex.quote(path)} && for f in {names}; do [ -d "$f" ] && echo "$f"; done'
        output = self.session.shell(device_id, command).decode("utf-8", errors="replace")
        directories = set(output.splitlines())
        for entry in links:
            if entry.name in directories:
                entry.kind = EntryKind.DIRECTORY_SYMLINK

    def open_shell(self, device_id: str) -> InteractiveShell:
        shell = self._shells.get(device_id)
        if shell is not None and shell.alive:
            return shell
        process = self.session.spawn(
            device_id,
            [self.session.adb_path(), "-s", device_id, "shell"],
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
        shell = InteractiveShell(device_id, process, self._emit)
        self._shells[device_id] = shell
        logger.info(f"[DEVICE] Shell opened on {device_id}")
        return shell

    def write_shell(self, device_id: str, data) -> bool:
        shell = self._shells.get(device_id)
        if shell is None or not shell.alive:
            return False
        return shell.write(data)

    def close_shell(self, device_id: str) -> bool:
        shell = self._shells.pop(device_id, None)
        if shell is None:
            return False
        shell.close()
        return True

    def mirror_screen(self, device_id: str) -> subprocess.Popen:
        scrcpy = self.session.toolchain.native(SCRCPY)
        if scrcpy is None:
            raise ToolNotFound(SCRCPY)
        # scrcpy talks to the same adb server we use
        env = dict(os.environ, ADB=self.session.adb_path())
        process = self.session.spawn(
            device_id,
            [scrcpy, "-s", device_id],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            env=env,
        )
        logger.info(f"[DEVICE] Mirroring {device_id} (pid {process.pid})")
        threading.Thread(target=_reap, args=(process, f"scrcpy for {device_id}"), daemon=True).start()
        return process
