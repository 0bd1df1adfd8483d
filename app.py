import eventlet
eventlet.monkey_patch()
import logging
import os
import sys
from dotenv import load_dotenv
load_dotenv()

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from flask import Flask
from flask_socketio import SocketIO
from tuyu.Controllers.APKController import APKController
from tuyu.Controllers.DeviceController import DeviceController
from tuyu.Lib.Device.DeviceSession import DeviceSession
from tuyu.Lib.Device.DeviceShellGateway import DeviceShellGateway
from tuyu.Lib.Metadata.APKExtractor import APKExtractor
from tuyu.Lib.Metadata.DirectoryExtractor import DirectoryExtractor
from tuyu.Lib.Metadata.FormatDispatcher import FormatDispatcher
from tuyu.Lib.Socket.emitter import init_socketio
from tuyu.Lib.Tools.APKTool import APKTool
from tuyu.Lib.Tools.Toolchain import Toolchain
from tuyu.Lib.Tools.ToolProcessSupervisor import ToolProcessSupervisor

# Config from env
HOST = os.getenv("TUYU_HOST", "127.0.0.1")
PORT = int(os.getenv("TUYU_PORT", "8000"))
DEBUG = os.getenv("TUYU_DEBUG", "").lower() in ("1", "true", "yes")
PREFER_VERSION_CODE = os.getenv("TUYU_PREFER_VERSION_CODE", "").lower() in ("1", "true", "yes")

logging.basicConfig(
    level=logging.DEBUG if DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = Flask(__name__)

socketio = SocketIO(app, cors_allowed_origins="*", async_mode="eventlet")
init_socketio(socketio)

toolchain = Toolchain()
supervisor = ToolProcessSupervisor(toolchain)
dispatcher = FormatDispatcher(
    apk_extractor=APKExtractor(toolchain),
    directory_extractor=DirectoryExtractor(prefer_version_code=PREFER_VERSION_CODE),
)
gateway = DeviceShellGateway(DeviceSession(toolchain))

apk_controller = APKController(dispatcher, APKTool(supervisor, toolchain), toolchain)
device_controller = DeviceController(gateway)


@app.route("/java", methods=["GET"])
def java():
    return apk_controller.java()

@app.route("/adb", methods=["GET"])
def adb():
    return apk_controller.adb()

@app.route("/detail", methods=["POST"])
def detail():
    return apk_controller.detail()

@app.route("/decompile", methods=["POST"])
def decompile():
    return apk_controller.decompile()

@app.route("/compile", methods=["POST"])
def compile_apk():
    return apk_controller.compile()

@app.route("/sign", methods=["POST"])
def sign():
    return apk_controller.sign()

@app.route("/merge", methods=["POST"])
def merge():
    return apk_controller.merge()

@app.route("/runs/<run_id>/cancel", methods=["POST"])
def cancel_run(run_id):
    return apk_controller.cancel(run_id)

@app.route("/devices", methods=["GET"])
def devices():
    return device_controller.devices()

@app.route("/devices/<device_id>/list", methods=["POST"])
def list_directory(device_id):
    return device_controller.list_directory(device_id)

@app.route("/devices/<device_id>/mirror", methods=["POST"])
def mirror(device_id):
    return device_controller.mirror(device_id)

@app.route("/devices/<device_id>/shell", methods=["POST"])
def open_shell(device_id):
    return device_controller.open_shell(device_id)

@app.route("/devices/<device_id>/shell/close", methods=["POST"])
def close_shell(device_id):
    return device_controller.close_shell(device_id)

@socketio.on("shell-input")
def shell_input(data):
    return device_controller.shell_input(data)


if __name__ == "__main__":
    socketio.run(app, host=HOST, port=PORT, debug=DEBUG)
