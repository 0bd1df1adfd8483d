import logging
from typing import Dict

from flask import request, jsonify

from tuyu.Controllers.ErrorResponses import failed, from_exception
from tuyu.Lib.Exceptions import TuyuError
from tuyu.Lib.Metadata.FormatDispatcher import FormatDispatcher
from tuyu.Lib.Socket.emitter import emit
from tuyu.Lib.Tools.APKTool import APKTool
from tuyu.Lib.Tools.Toolchain import Toolchain
from tuyu.Lib.Tools.ToolProcessSupervisor import ToolRun

logger = logging.getLogger(__name__)


class APKController:
    def __init__(self, dispatcher: FormatDispatcher, apktool: APKTool, toolchain: Toolchain):
        self.dispatcher = dispatcher
        self.apktool = apktool
        self.toolchain = toolchain
        self.runs: Dict[str, ToolRun] = {}

    def java(self):
        return jsonify({"path": self.toolchain.java()})

    def adb(self):
        return jsonify({"path": self.toolchain.adb()})

    def detail(self):
        data = request.get_json(silent=True) or {}
        path = data.get("path")
        if not path:
            return failed("path is required", 400)
        try:
            metadata = self.dispatcher.detect_and_extract(path)
        except TuyuError as e:
            logger.warning(f"[METADATA] {path}: {e}")
            return from_exception(e)
        return jsonify(metadata.as_dict() if metadata else None)

    def decompile(self):
        return self._start(self.apktool.decompile)

    def compile(self):
        return self._start(self.apktool.recompile)

    def merge(self):
        return self._start(self.apktool.merge)

    def sign(self):
        data = request.get_json(silent=True) or {}
        if not data.get("path"):
            return failed("path is required", 400)
        return self._accepted(self.apktool.sign(data["path"]))

    def cancel(self, run_id: str):
        run = self.runs.get(run_id)
        if run is None:
            return failed("Unknown run id", 404)
        return jsonify({"status": "ok", "run_id": run_id, "cancelled": run.cancel()})

    def _start(self, operation):
        data = request.get_json(silent=True) or {}
        path = data.get("path")
        if not path:
            return failed("path is required", 400)
        return self._accepted(operation(path, data.get("output")))

    def _accepted(self, run: ToolRun):
        # drop handles of finished runs before keeping the new one
        for run_id in [k for k, v in self.runs.items() if v.done]:
            del self.runs[run_id]
        if run.spawned:
            self.runs[run.run_id] = run
        response = {
            "status": "accepted" if run.spawned else "failed",
            "run_id": run.run_id,
            "tool": run.invocation.tool_identifier,
        }
        if not run.spawned:
            return jsonify(response), 503
        emit("run_accepted", response)
        return jsonify(response), 202
