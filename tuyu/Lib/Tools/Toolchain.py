import os
import shutil
import sys
from pathlib import Path
from typing import List, Optional, Union

APKTOOL = "apktool"
APKEDITOR = "apkeditor"
APKSIGNER = "apksigner"
AAPT2 = "aapt2"
ADB = "adb"
SCRCPY = "scrcpy"

# Tools shipped as jars and run through the Java runtime
JAR_TOOLS = {
    APKTOOL: "apktool.jar",
    APKEDITOR: "APKEditor.jar",
    APKSIGNER: "apksigner.jar",
}
NATIVE_TOOLS = (AAPT2, ADB, SCRCPY)
KEYSTORE_FILE = "debug.keystore"


class Toolchain:
    """
    Locates the bundled tools. Everything lives in one `binaries/` folder relative to
    the working directory (override with TUYU_BINARIES_DIR), the way the desktop
    build copies them next to the executable.
    """

    def __init__(self, binaries_dir: Optional[Union[str, Path]] = None, java_path: Optional[str] = None):
        binaries_dir = binaries_dir or os.getenv("TUYU_BINARIES_DIR", "binaries")
        if sys.platform.startswith("win"):
            self.binaries_dir = Path(os.path.abspath(binaries_dir))
        else:
            self.binaries_dir = Path(binaries_dir)
        self._java_path = java_path

    def java(self) -> Optional[str]:
        return self._java_path or shutil.which("java")

    def adb(self) -> Optional[str]:
        return self.native(ADB, fallback_to_path=True)

    def native(self, tool: str, fallback_to_path: bool = True) -> Optional[str]:
        # which() also takes care of the .exe suffix on Windows
        found = shutil.which(tool, path=str(self.binaries_dir))
        if found is None and fallback_to_path:
            found = shutil.which(tool)
        return found

    def jar(self, tool: str) -> Path:
        return self.binaries_dir / JAR_TOOLS[tool]

    def keystore(self) -> Path:
        return self.binaries_dir / KEYSTORE_FILE

    def command_for(self, tool_identifier: str) -> Optional[List[str]]:
        """argv prefix that runs the tool, or None when it cannot be located."""
        if tool_identifier in JAR_TOOLS:
            jar_path = self.jar(tool_identifier)
            java = self.java()
            if not jar_path.is_file() or java is None:
                return None
            return [java, "-jar", str(jar_path)]
        if tool_identifier in NATIVE_TOOLS:
            executable = self.native(tool_identifier)
            return [executable] if executable else None
        raise KeyError(f"Unknown tool: {tool_identifier}")

    def missing(self, tool_identifier: str) -> Optional[str]:
        """Name of the file that keeps the tool from running, if any."""
        if tool_identifier in JAR_TOOLS:
            if not self.jar(tool_identifier).is_file():
                return JAR_TOOLS[tool_identifier]
            if self.java() is None:
                return "java"
            return None
        return None if self.native(tool_identifier) else tool_identifier
