#!/usr/bin/env python3
"""
errors.py

Error kinds raised while inspecting, resolving and patching a binary.

Every kind is fatal to the binary being processed. The patcher turns them
into a failed PatchResult; the walker decides whether the batch goes on.
"""

from __future__ import annotations

from typing import List, Optional


class ElfRpathError(Exception):
    """Base class for all elfrpath errors."""

    kind = "error"


class UnsupportedArchitecture(ElfRpathError):
    kind = "UnsupportedArchitecture"

    def __init__(self, path: str, elf_class: Optional[str], machine: Optional[str]) -> None:
        self.path = path
        self.elf_class = elf_class
        self.machine = machine
        super().__init__(
            f"unsupported architecture for {path}: "
            f"class={elf_class or '?'} machine={machine or '?'}"
        )


class MissingDependencies(ElfRpathError):
    """One or more needed libraries could not be found in any search path."""

    kind = "MissingDependencies"

    def __init__(self, path: str, missing: List[str]) -> None:
        self.path = path
        self.missing = list(missing)
        super().__init__(
            f"missing dependencies for {path}: {', '.join(self.missing)}"
        )


class InterpreterNotFound(ElfRpathError):
    kind = "InterpreterNotFound"

    def __init__(self, path: str, interpreter: str) -> None:
        self.path = path
        self.interpreter = interpreter
        super().__init__(
            f"no replacement for interpreter {interpreter} of {path} in search paths"
        )


class ToolError(ElfRpathError):
    """An external tool (patchelf, readelf, file) is missing or failed."""

    kind = "ToolError"

    def __init__(self, cmd: List[str], returncode: Optional[int], stderr: str = "") -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = stderr
        if returncode is None:
            msg = f"'{cmd[0]}' not found when running: {' '.join(cmd)}"
        else:
            msg = f"{' '.join(cmd)} exited with code {returncode}"
            if stderr:
                msg += f": {stderr}"
        super().__init__(msg)


__all__ = [
    "ElfRpathError",
    "UnsupportedArchitecture",
    "MissingDependencies",
    "InterpreterNotFound",
    "ToolError",
]
