from flask import jsonify

from tuyu.Lib.Exceptions import (
    TuyuError,
    FormatUnrecognized,
    ManifestParseError,
    ToolNotFound,
    ToolExecutionFailed,
    DeviceUnavailable,
)

STATUS_BY_ERROR = [
    (FormatUnrecognized, 400),
    (ManifestParseError, 422),
    (DeviceUnavailable, 404),
    (ToolNotFound, 503),
    (ToolExecutionFailed, 502),
]


def failed(error: str, status: int):
    return jsonify({"status": "failed", "error": error}), status


def from_exception(e: TuyuError):
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(e, error_type):
            return failed(str(e), status)
    return failed(str(e), 500)
