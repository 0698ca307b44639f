from __future__ import annotations
import sys, platform

import llvmlite
from llvmlite import binding as llvm

from tagged_union import __version__ as app_ver, __dev__ as is_dev


def _get_versions() -> dict[str, str]:
    llvm_lib_ver = ".".join(map(str, llvm.llvm_version_info)) or "unknown"
    return {
        "app": app_ver,
        "python": platform.python_version(),
        "llvmlite": llvmlite.__version__,
        "llvm": llvm_lib_ver,
    }


def version_line() -> str:
    v = _get_versions()
    dev_marker = " (dev)" if is_dev else ""
    return (
        f"tagunion {v['app']}{dev_marker} • Python {v['python']} • "
        f"llvmlite {v['llvmlite']} • LLVM {v['llvm']}"
    )


def print_banner(stream=None) -> None:
    stream = stream or sys.stderr
    # Only use ANSI styling on an interactive terminal
    if getattr(stream, "isatty", lambda: False)():
        BOLD, RESET = "\x1b[1m", "\x1b[0m"
    else:
        BOLD, RESET = "", ""
    print(f"{BOLD}{version_line()}{RESET}", file=stream)
