#!/usr/bin/env python3
"""
patchelf_runner.py

Helper module around the `patchelf` tool.

This module provides:

  - print_needed()      : DT_NEEDED names in declaration order.
  - print_rpath()       : current RPATH / RUNPATH string.
  - set_rpath()         : write a DT_RPATH (--force-rpath) string.
  - print_interpreter() : current PT_INTERP path.
  - set_interpreter()   : rewrite PT_INTERP.

Every call raises ToolError if patchelf is missing or fails.
"""

from __future__ import annotations

import logging
from typing import List

from elfrpath.tools import run_tool

LOG = logging.getLogger("patchelf_runner")

PATCHELF = "patchelf"


def print_needed(binary: str) -> List[str]:
    """
    Return the needed library names of binary, in the order declared.

    No filtering and no deduplication is done.
    """
    out = run_tool([PATCHELF, "--print-needed", binary])
    return [line.strip() for line in out.splitlines() if line.strip()]


def print_rpath(binary: str) -> str:
    return run_tool([PATCHELF, "--print-rpath", binary]).strip()


def set_rpath(binary: str, rpath: str) -> None:
    """
    Write rpath into binary in place.

    --force-rpath makes patchelf emit DT_RPATH instead of DT_RUNPATH, so the
    path also applies to the binary's transitive dependencies.
    """
    LOG.debug("Setting RPATH of %s to %s", binary, rpath)
    run_tool([PATCHELF, "--force-rpath", "--set-rpath", rpath, binary])


def print_interpreter(binary: str) -> str:
    """PT_INTERP path of binary; patchelf fails if there is none."""
    return run_tool([PATCHELF, "--print-interpreter", binary]).strip()


def set_interpreter(binary: str, interpreter: str) -> None:
    LOG.debug("Setting interpreter of %s to %s", binary, interpreter)
    run_tool([PATCHELF, "--set-interpreter", interpreter, binary])


__all__ = [
    "print_needed",
    "print_rpath",
    "set_rpath",
    "print_interpreter",
    "set_interpreter",
]
