class TuyuError(Exception):
    """Base class for every error raised by the service."""


class NotAnArchive(TuyuError):
    def __init__(self, path, reason: str = ""):
        self.path = str(path)
        super().__init__(f"Not a zip archive: {self.path}" + (f" ({reason})" if reason else ""))


class EntryNotFound(TuyuError):
    def __init__(self, path, entry: str):
        self.path = str(path)
        self.entry = entry
        super().__init__(f"Entry '{entry}' not found in {self.path}")


class ManifestParseError(TuyuError):
    def __init__(self, path, reason: str):
        self.path = str(path)
        super().__init__(f"Failed to parse manifest {self.path}: {reason}")


class MissingFieldError(TuyuError):
    """A typed document is missing a required key (or it has the wrong shape)."""

    def __init__(self, field_path: str, document: str = "document"):
        self.field_path = field_path
        self.document = document
        super().__init__(f"{document}: missing or invalid field '{field_path}'")


class FormatUnrecognized(TuyuError, ValueError):
    def __init__(self, path):
        self.path = str(path)
        super().__init__(f"Unsupported package format: {self.path} (expected a directory, .apk or .xapk)")


class ToolNotFound(TuyuError):
    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"{tool} not found")


class ToolExecutionFailed(TuyuError):
    def __init__(self, tool: str, returncode=None, stderr: str = ""):
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr
        detail = f" (code {returncode})" if returncode is not None else ""
        super().__init__(f"{tool} failed{detail}: {stderr.strip()}" if stderr else f"{tool} failed{detail}")


class DeviceUnavailable(TuyuError):
    def __init__(self, device_id: str):
        self.device_id = device_id
        super().__init__(f"Device '{device_id}' is not connected")
