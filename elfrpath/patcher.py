#!/usr/bin/env python3
"""
patcher.py

Per-binary pipeline:

  detect architecture -> list needed libraries -> resolve directories
  -> write RPATH -> substitute program interpreter (if one is requested)

patch_binary() never raises the elfrpath error kinds; it returns them in a
PatchResult so that a batch run can decide whether to stop or go on.

Note that an interpreter lookup failure happens after the RPATH has been
written. The RPATH change is kept; there is no rollback.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from elfrpath import patchelf_runner
from elfrpath.arch import Arch, detect_arch
from elfrpath.config import SearchConfig
from elfrpath.elfinfo import get_interpreter
from elfrpath.errors import ElfRpathError, InterpreterNotFound, ToolError
from elfrpath.resolver import build_search_list, list_needed, resolve_dependencies

LOG = logging.getLogger("patcher")

STATUS_OK = "ok"
STATUS_FAILED = "failed"


@dataclass
class PatchResult:
    """
    Result of running the pipeline on one binary.

    rpath / interpreter hold what was written (or would be written with
    dry_run). They stay None when nothing was written.
    """
    path: str
    status: str = STATUS_OK
    arch: Optional[Arch] = None
    rpath: Optional[str] = None
    interpreter: Optional[str] = None
    error: Optional[ElfRpathError] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def error_kind(self) -> Optional[str]:
        return self.error.kind if self.error is not None else None


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

def apply_rpath(binary: str, directories: List[str]) -> str:
    """Join directories with ':' in order and write them as RPATH."""
    rpath = ":".join(directories)
    patchelf_runner.set_rpath(binary, rpath)
    return rpath


def find_interpreter(binary: str, interpreter: str, search_list: List[str]) -> str:
    """
    Look for the base name of interpreter in search_list, first match wins.

    Raises InterpreterNotFound when no directory has it.
    """
    base = os.path.basename(interpreter)
    for path in search_list:
        candidate = os.path.join(path, base)
        if os.path.isfile(candidate):
            return candidate
    raise InterpreterNotFound(binary, interpreter)


def apply_interpreter(binary: str, interpreter: str) -> None:
    """
    Rewrite PT_INTERP and read it back.

    Raises ToolError if patchelf reports a different interpreter afterwards.
    """
    patchelf_runner.set_interpreter(binary, interpreter)
    written = patchelf_runner.print_interpreter(binary)
    if written != interpreter:
        cmd = [patchelf_runner.PATCHELF, "--print-interpreter", binary]
        raise ToolError(cmd, 0, f"interpreter is {written}, expected {interpreter}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def patch_binary(
    binary: str,
    config: SearchConfig,
    dry_run: bool = False,
    backend: str = "pyelf",
) -> PatchResult:
    """
    Run the whole pipeline on one binary and return its PatchResult.
    """
    result = PatchResult(path=binary)

    try:
        arch = detect_arch(binary, backend=backend)
        result.arch = arch
        LOG.info("Processing %s (%s)", binary, arch)

        needed = list_needed(binary)
        LOG.debug("%s needs: %s", binary, ", ".join(needed) or "(nothing)")

        resolution = resolve_dependencies(binary, arch, needed, config, backend=backend)
        resolution.raise_for_missing(binary)

        directories = resolution.directories
        if directories:
            old_rpath = patchelf_runner.print_rpath(binary)
            if dry_run:
                rpath = ":".join(directories)
                LOG.info(
                    "[dry-run] would change RPATH of %s from '%s' to '%s'",
                    binary,
                    old_rpath,
                    rpath,
                )
            else:
                rpath = apply_rpath(binary, directories)
                LOG.info("Set RPATH of %s to %s (was '%s')", binary, rpath, old_rpath)
            result.rpath = rpath

        interp = get_interpreter(binary, backend=backend)
        if interp:
            search_list = build_search_list(binary, arch, config)
            new_interp = find_interpreter(binary, interp, search_list)
            if dry_run:
                LOG.info("[dry-run] would set interpreter of %s to %s", binary, new_interp)
            elif new_interp != interp:
                apply_interpreter(binary, new_interp)
                LOG.info("Set interpreter of %s to %s", binary, new_interp)
            result.interpreter = new_interp

    except ElfRpathError as e:
        LOG.error("%s", e)
        result.status = STATUS_FAILED
        result.error = e

    return result


__all__ = [
    "PatchResult",
    "STATUS_OK",
    "STATUS_FAILED",
    "apply_rpath",
    "find_interpreter",
    "apply_interpreter",
    "patch_binary",
]
