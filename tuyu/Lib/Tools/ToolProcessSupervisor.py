"""
Runs the bundled build tools (apktool, APKEditor, apksigner) without blocking the
caller. Progress goes out on the event channel only:

    log-info   one stdout line, or the success message when the tool exits with 0
    log-error  one stderr line, or the failure message (tool missing, spawn error,
               non-zero exit)

stdout and stderr lines are drained by two separate threads, so their relative
order is not preserved, and the terminal message may arrive before the last lines.
The terminal message is the authoritative outcome.
"""
import logging
import subprocess
import threading
import uuid
from typing import Callable, Any, List, Optional

from tuyu.Lib.Socket import emitter
from tuyu.Lib.Socket.emitter import LOG_INFO, LOG_ERROR
from tuyu.Lib.Tools.Toolchain import Toolchain
from tuyu.Lib.Tools.ToolInvocation import ToolInvocation

logger = logging.getLogger(__name__)

EmitFn = Callable[[str, Any], None]


class ToolRun:
    """Handle on one tool invocation. Callers may ignore it, wait on it or cancel it."""

    def __init__(self, invocation: ToolInvocation, process: Optional[subprocess.Popen] = None):
        self.run_id = str(uuid.uuid4())
        self.invocation = invocation
        self.process = process
        self.returncode: Optional[int] = None
        self.cancelled = False
        self._done = threading.Event()
        self._threads: List[threading.Thread] = []
        if process is None:
            self._done.set()

    @property
    def spawned(self) -> bool:
        return self.process is not None

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def succeeded(self) -> bool:
        return self.done and self.returncode == 0 and not self.cancelled

    def cancel(self) -> bool:
        """Terminate the process if it is still running. Returns False when there was nothing to stop."""
        if self.process is None or self.process.poll() is not None:
            return False
        self.cancelled = True
        self.process.terminate()
        logger.info(f"[TOOL] Cancelled {self.invocation.tool_identifier} (run {self.run_id})")
        return True

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Block until the terminal event has been emitted; returns the exit code."""
        self._done.wait(timeout)
        return self.returncode

    def join(self, timeout: Optional[float] = None) -> None:
        """Like wait(), but also waits for the output readers to drain."""
        for thread in self._threads:
            thread.join(timeout)

    def _finish(self, returncode: int) -> None:
        self.returncode = returncode
        self._done.set()


class ToolProcessSupervisor:

    def __init__(self, toolchain: Optional[Toolchain] = None, emit: Optional[EmitFn] = None):
        self.toolchain = toolchain or Toolchain()
        self._emit = emit or emitter.emit

    def run(self, tool_identifier: str, arguments: List[str], success_message: str, failure_message: str) -> ToolRun:
        return self.invoke(ToolInvocation(tool_identifier, list(arguments), success_message, failure_message))

    def invoke(self, invocation: ToolInvocation) -> ToolRun:
        command = self.toolchain.command_for(invocation.tool_identifier)
        if command is None:
            return self.not_found(invocation, self.toolchain.missing(invocation.tool_identifier))

        command = command + list(invocation.arguments)
        try:
            process = subprocess.Popen(
                command,
                shell=False,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            logger.error(f"[TOOL] Failed to start {command[0]}: {e}")
            self._emit(LOG_ERROR, invocation.failure_message or f"Failed to start {invocation.tool_identifier}: {e}")
            return ToolRun(invocation)

        logger.info(f"[TOOL] Started {invocation.tool_identifier} (pid {process.pid}): {' '.join(command)}")
        run = ToolRun(invocation, process)
        run._threads = [
            threading.Thread(target=self._drain, args=(process.stdout, LOG_INFO), daemon=True),
            threading.Thread(target=self._drain, args=(process.stderr, LOG_ERROR), daemon=True),
            threading.Thread(target=self._wait, args=(run,), daemon=True),
        ]
        for thread in run._threads:
            thread.start()
        return run

    def not_found(self, invocation: ToolInvocation, missing: Optional[str] = None) -> ToolRun:
        """Report a missing tool (or tool input) as one failure event; nothing is spawned."""
        missing = missing or invocation.tool_identifier
        logger.error(f"[TOOL] {missing} not found, nothing spawned")
        self._emit(LOG_ERROR, f"{missing} not found")
        return ToolRun(invocation)

    def _drain(self, stream, event: str) -> None:
        with stream:
            for line in stream:
                self._emit(event, line.strip())

    def _wait(self, run: ToolRun) -> None:
        returncode = run.process.wait()
        invocation = run.invocation
        if returncode == 0 and not run.cancelled:
            logger.info(f"[TOOL] {invocation.tool_identifier} finished")
            self._emit(LOG_INFO, invocation.success_message)
        else:
            logger.warning(f"[TOOL] {invocation.tool_identifier} exited with code {returncode}")
            self._emit(LOG_ERROR, invocation.failure_message)
        run._finish(returncode)
