#!/usr/bin/env python3
"""
tools.py

Thin helper to run the external ELF tools (patchelf, readelf, file) and
return their stdout. Failures are raised as ToolError so callers can turn
them into a per-file result.
"""

from __future__ import annotations

import logging
import subprocess
from typing import List

from elfrpath.errors import ToolError

LOG = logging.getLogger("tools")


def run_tool(cmd: List[str]) -> str:
    """
    Run a command and return its stdout.

    Raises ToolError when the executable is missing or exits non-zero.
    """
    LOG.debug("Running: %s", " ".join(cmd))
    try:
        proc = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            check=False,
        )
    except FileNotFoundError:
        LOG.error("%s not found when running: %s", cmd[0], cmd)
        raise ToolError(cmd, None)

    if proc.returncode != 0:
        raise ToolError(cmd, proc.returncode, proc.stderr.strip())
    return proc.stdout
