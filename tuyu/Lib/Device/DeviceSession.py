import logging
import subprocess
import threading
from dataclasses import dataclass, asdict
from typing import List, Optional

from tuyu.Lib.Exceptions import DeviceUnavailable, ToolExecutionFailed, ToolNotFound
from tuyu.Lib.Tools.Toolchain import Toolchain, ADB

logger = logging.getLogger(__name__)


@dataclass
class DeviceDescriptor:
    id: str
    display_model: str
    connection_state: str

    def as_dict(self) -> dict:
        return asdict(self)


def parse_devices(output: str) -> List[DeviceDescriptor]:
    """Parse `adb devices -l`."""
    devices = []
    for line in output.splitlines():
        line = line.strip()
        if not line or line.startswith("List of devices") or line.startswith("*"):
            continue
        tokens = line.split()
        if len(tokens) < 2:
            continue
        serial, state = tokens[0], tokens[1]
        properties = dict(t.split(":", 1) for t in tokens[2:] if ":" in t)
        model = properties.get("model", "").replace("_", " ")
        devices.append(DeviceDescriptor(id=serial, display_model=model or serial, connection_state=state))
    return devices


class DeviceSession:
    """
    The one way into the adb server. Every request/response command runs under a
    single lock, so at most one device command is in flight and callers queue up
    behind it. There is no timeout: a device that never answers blocks the queue.
    """

    def __init__(self, toolchain: Optional[Toolchain] = None):
        self.toolchain = toolchain or Toolchain()
        self._lock = threading.Lock()

    def adb_path(self) -> str:
        adb = self.toolchain.adb()
        if adb is None:
            raise ToolNotFound(ADB)
        return adb

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        command = [self.adb_path()] + args
        try:
            return subprocess.run(command, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        except OSError as e:
            raise ToolExecutionFailed(ADB, stderr=str(e)) from e

    def _devices(self) -> List[DeviceDescriptor]:
        result = self._run(["devices", "-l"])
        if result.returncode != 0:
            raise ToolExecutionFailed(ADB, result.returncode, result.stderr.decode("utf-8", errors="replace"))
        return parse_devices(result.stdout.decode("utf-8", errors="replace"))

    def _require_device(self, device_id: str) -> DeviceDescriptor:
        for device in self._devices():
            if device.id == device_id:
                return device
        raise DeviceUnavailable(device_id)

    def devices(self) -> List[DeviceDescriptor]:
        with self._lock:
            return self._devices()

    def shell(self, device_id: str, command: str) -> bytes:
        """Run one shell command on the device and return its raw stdout."""
        with self._lock:
            self._require_device(device_id)
            logger.debug(f"[DEVICE] {device_id}$ {command}")
            result = self._run(["-s", device_id, "shell", command])
            if result.returncode != 0 and result.stderr:
                logger.warning(f"[DEVICE] {device_id}$ {command} exited with {result.returncode}: "
                               f"{result.stderr.decode('utf-8', errors='replace').strip()}")
            return result.stdout

    def spawn(self, device_id: str, command: List[str], **popen_kwargs) -> subprocess.Popen:
        """
        Start a long-running process bound to a device (interactive shell, mirroring).
        Only the device check holds the lock; the process itself runs outside it.
        """
        with self._lock:
            self._require_device(device_id)
        try:
            return subprocess.Popen(command, **popen_kwargs)
        except OSError as e:
            raise ToolExecutionFailed(command[0], stderr=str(e)) from e
