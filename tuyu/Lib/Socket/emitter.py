import logging
from typing import Any

from flask_socketio import SocketIO

logger = logging.getLogger(__name__)

LOG_INFO = "log-info"
LOG_ERROR = "log-error"
SHELL_OUTPUT = "shell-output"

_socketio: SocketIO = None

def init_socketio(sio: SocketIO):
    global _socketio
    _socketio = sio

def emit(event: str, data: Any, namespace: str = None):
    if _socketio:
        _socketio.emit(event, data, namespace=namespace)
        logger.debug(f"[SOCKET.IO] Emitted '{event}': {data!r}")
    else:
        logger.warning(f"[SOCKET.IO] socketio not initialized, dropped '{event}'")
