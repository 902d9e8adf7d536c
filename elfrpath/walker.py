#!/usr/bin/env python3
"""
walker.py

Directory walker for batch patching.

  - Enumerate regular files under a root directory (one level, or the whole
    tree with recurse=True). Symlinks are not followed.
  - Keep only ELF executables and shared objects.
  - Run patch_binary() on each file independently.

Batch policy:
  keep_going=False  stop after the first file that fails (default)
  keep_going=True   process every file and collect all failures
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from elfrpath.config import SearchConfig
from elfrpath.elfinfo import detect_file_type
from elfrpath.errors import ToolError
from elfrpath.patcher import PatchResult, patch_binary

LOG = logging.getLogger("walker")


@dataclass
class BatchSummary:
    results: List[PatchResult] = field(default_factory=list)
    skipped: int = 0
    aborted: bool = False
    unreadable: List[str] = field(default_factory=list)

    @property
    def patched(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> List[PatchResult]:
        return [r for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        return not self.failed and not self.unreadable


# ---------------------------------------------------------------------------
# File discovery
# ---------------------------------------------------------------------------

def _is_regular_file(path: str) -> bool:
    try:
        st = os.lstat(path)
    except OSError:
        # The file disappeared or is inaccessible; skip it.
        return False
    return stat.S_ISREG(st.st_mode)


def iter_candidate_files(
    root: str,
    recurse: bool = True,
    unreadable: Optional[List[str]] = None,
) -> Iterator[str]:
    """
    Yield regular files under root in a stable (sorted) order.

    With recurse=False only files directly inside root are yielded.
    Directories that cannot be listed are logged and, when given, appended
    to unreadable.
    """
    def _onerror(e: OSError) -> None:
        where = e.filename or root
        LOG.warning("Cannot list directory %s: %s", where, e.strerror or e)
        if unreadable is not None:
            unreadable.append(where)

    if not recurse:
        try:
            names = os.listdir(root)
        except OSError as e:
            _onerror(e)
            return
        for name in sorted(names):
            full = os.path.join(root, name)
            if _is_regular_file(full):
                yield full
        return

    for dirpath, dirnames, filenames in os.walk(root, onerror=_onerror, followlinks=False):
        dirnames.sort()
        for name in sorted(filenames):
            full = os.path.join(dirpath, name)
            if _is_regular_file(full):
                yield full


def is_patchable_elf(path: str, backend: str = "pyelf") -> bool:
    """True for ELF executables and shared objects."""
    try:
        return detect_file_type(path, backend=backend) is not None
    except ToolError as e:
        LOG.warning("Cannot inspect %s: %s", path, e)
        return False


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def patch_tree(
    root: str,
    config: SearchConfig,
    recurse: bool = True,
    keep_going: bool = False,
    dry_run: bool = False,
    backend: str = "pyelf",
) -> BatchSummary:
    """
    Patch every ELF executable / shared object under root.
    """
    summary = BatchSummary()
    LOG.info("Scanning %s (%s)", root, "recursive" if recurse else "one level")

    for path in iter_candidate_files(root, recurse=recurse, unreadable=summary.unreadable):
        if not is_patchable_elf(path, backend=backend):
            LOG.debug("Skipping non-ELF or unsupported file type: %s", path)
            summary.skipped += 1
            continue

        result = patch_binary(path, config, dry_run=dry_run, backend=backend)
        summary.results.append(result)

        if not result.ok and not keep_going:
            LOG.error("Stopping scan after failure on %s", path)
            summary.aborted = True
            break

    LOG.info(
        "Patched %d file(s), %d failed, %d skipped",
        summary.patched,
        len(summary.failed),
        summary.skipped,
    )
    return summary


def patch_path(
    path: str,
    config: SearchConfig,
    recurse: bool = True,
    keep_going: bool = False,
    dry_run: bool = False,
    backend: str = "pyelf",
) -> BatchSummary:
    """
    Patch a single file, or every ELF file under a directory.

    A single file is patched directly without the file-type check.
    """
    if os.path.isdir(path):
        return patch_tree(
            path,
            config,
            recurse=recurse,
            keep_going=keep_going,
            dry_run=dry_run,
            backend=backend,
        )

    summary = BatchSummary()
    summary.results.append(patch_binary(path, config, dry_run=dry_run, backend=backend))
    return summary


__all__ = [
    "BatchSummary",
    "iter_candidate_files",
    "is_patchable_elf",
    "patch_tree",
    "patch_path",
]
