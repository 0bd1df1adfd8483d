import os
from pathlib import Path
from typing import Optional, Union

from tuyu.Lib.Tools.Toolchain import Toolchain, APKTOOL, APKEDITOR, APKSIGNER
from tuyu.Lib.Tools.ToolProcessSupervisor import ToolProcessSupervisor, ToolRun
from tuyu.Lib.Tools.ToolInvocation import ToolInvocation

PathLike = Union[str, Path]


class APKTool:
    """Decompile / recompile / sign / merge, each handed to the supervisor as one invocation."""

    def __init__(self, supervisor: ToolProcessSupervisor, toolchain: Optional[Toolchain] = None):
        self.supervisor = supervisor
        self.toolchain = toolchain or supervisor.toolchain
        self.key_alias = os.getenv("TUYU_KEY_ALIAS", "androiddebugkey")
        self.keystore_pass = os.getenv("TUYU_KEYSTORE_PASS", "android")

    def decompile(self, apk_path: PathLike, output_dir: Optional[PathLike] = None) -> ToolRun:
        apk_path = Path(apk_path)
        output_dir = Path(output_dir) if output_dir else apk_path.with_suffix("")
        return self.supervisor.invoke(ToolInvocation(
            APKTOOL,
            ["d", str(apk_path), "-o", str(output_dir), "-f"],
            success_message=f"Decompiled {apk_path.name} to {output_dir}",
            failure_message=f"Failed to decompile {apk_path.name}",
        ))

    def recompile(self, source_dir: PathLike, output_apk: Optional[PathLike] = None) -> ToolRun:
        source_dir = Path(source_dir)
        output_apk = Path(output_apk) if output_apk else source_dir.parent / f"{source_dir.name}_recompiled.apk"
        return self.supervisor.invoke(ToolInvocation(
            APKTOOL,
            ["b", str(source_dir), "-o", str(output_apk)],
            success_message=f"Recompiled {source_dir.name} to {output_apk}",
            failure_message=f"Failed to recompile {source_dir.name}",
        ))

    def sign(self, apk_path: PathLike) -> ToolRun:
        apk_path = Path(apk_path)
        invocation = ToolInvocation(
            APKSIGNER,
            [
                "sign",
                "--ks", str(self.toolchain.keystore()),
                "--ks-key-alias", self.key_alias,
                "--ks-pass", f"pass:{self.keystore_pass}",
                "--key-pass", f"pass:{self.keystore_pass}",
                str(apk_path),
            ],
            success_message=f"Signed {apk_path.name}",
            failure_message=f"Failed to sign {apk_path.name}",
        )
        if not self.toolchain.keystore().is_file():
            return self.supervisor.not_found(invocation, self.toolchain.keystore().name)
        return self.supervisor.invoke(invocation)

    def merge(self, bundle_path: PathLike, output_apk: Optional[PathLike] = None) -> ToolRun:
        bundle_path = Path(bundle_path)
        output_apk = Path(output_apk) if output_apk else bundle_path.with_name(f"{bundle_path.stem}_merged.apk")
        return self.supervisor.invoke(ToolInvocation(
            APKEDITOR,
            ["m", "-i", str(bundle_path), "-o", str(output_apk), "-f"],
            success_message=f"Merged {bundle_path.name} to {output_apk}",
            failure_message=f"Failed to merge {bundle_path.name}",
        ))
