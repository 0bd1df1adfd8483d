import logging

from flask import request, jsonify

from tuyu.Controllers.ErrorResponses import failed, from_exception
from tuyu.Lib.Device.DeviceShellGateway import DeviceShellGateway
from tuyu.Lib.Exceptions import TuyuError

logger = logging.getLogger(__name__)


class DeviceController:
    def __init__(self, gateway: DeviceShellGateway):
        self.gateway = gateway

    def devices(self):
        try:
            devices = self.gateway.devices()
        except TuyuError as e:
            return from_exception(e)
        return jsonify([d.as_dict() for d in devices])

    def list_directory(self, device_id: str):
        data = request.get_json(silent=True) or {}
        path = data.get("path") or "/"
        try:
            entries = self.gateway.list_directory(device_id, path)
        except TuyuError as e:
            logger.warning(f"[DEVICE] list {device_id}:{path} failed: {e}")
            return from_exception(e)
        return jsonify([e.as_dict() for e in entries])

    def mirror(self, device_id: str):
        try:
            process = self.gateway.mirror_screen(device_id)
        except TuyuError as e:
            return from_exception(e)
        return jsonify({"status": "started", "device_id": device_id, "pid": process.pid}), 202

    def open_shell(self, device_id: str):
        try:
            self.gateway.open_shell(device_id)
        except TuyuError as e:
            return from_exception(e)
        return jsonify({"status": "opened", "device_id": device_id})

    def close_shell(self, device_id: str):
        if not self.gateway.close_shell(device_id):
            return failed("No shell open for this device", 404)
        return jsonify({"status": "closed", "device_id": device_id})

    def shell_input(self, data: dict) -> bool:
        """Socket.IO `shell-input` handler: {"device_id": ..., "data": ...}."""
        data = data or {}
        device_id = data.get("device_id")
        if not device_id or data.get("data") is None:
            return False
        return self.gateway.write_shell(device_id, data["data"])
