#!/usr/bin/env python3
"""
resolver.py

Responsible for finding, for every library a binary needs, the directory
that should provide it.

Search order per binary:
  1) the binary's own directory (taken without an architecture check)
  2) architecture-specific paths from the SearchConfig
  3) generic paths from the SearchConfig

For 2) and 3) the first directory holding a file of that name is checked
with the architecture detector; a candidate of another architecture is
skipped with a warning and the scan goes on.

Nothing is cached: every binary restarts its scans.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from elfrpath import patchelf_runner
from elfrpath.arch import Arch, detect_arch
from elfrpath.config import SearchConfig
from elfrpath.errors import MissingDependencies, ToolError, UnsupportedArchitecture

LOG = logging.getLogger("resolver")


@dataclass
class Resolution:
    """
    Outcome of resolving all needed libraries of one binary.

    resolved:
        (library, directory) pairs in needed-library order.
    missing:
        Library names not found anywhere, in needed-library order, each once.
    """
    resolved: List[Tuple[str, str]] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing

    @property
    def directories(self) -> List[str]:
        """Resolved directories in order; a repeated directory is kept once."""
        seen = set()
        dirs: List[str] = []
        for _lib, d in self.resolved:
            if d not in seen:
                seen.add(d)
                dirs.append(d)
        return dirs

    @property
    def rpath(self) -> str:
        return ":".join(self.directories)

    def raise_for_missing(self, binary: str) -> None:
        if self.missing:
            raise MissingDependencies(binary, self.missing)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def list_needed(binary: str) -> List[str]:
    """Needed library names of binary, as declared (duplicates kept)."""
    return patchelf_runner.print_needed(binary)


def binary_dir(binary: str) -> str:
    return os.path.dirname(os.path.abspath(binary))


def build_search_list(binary: str, arch: Arch, config: SearchConfig) -> List[str]:
    """
    Ordered directories to search for binary:
    own directory, arch-specific paths, generic paths.
    """
    return [binary_dir(binary)] + config.paths_for(arch)


def _arch_matches(candidate: str, arch: Arch, backend: str) -> bool:
    try:
        found = detect_arch(candidate, backend=backend)
    except (UnsupportedArchitecture, ToolError) as e:
        LOG.warning("Skipping %s: %s", candidate, e)
        return False

    if found != arch:
        LOG.warning(
            "Skipping %s: architecture %s does not match %s",
            candidate,
            found,
            arch,
        )
        return False
    return True


def resolve_library(
    name: str,
    own_dir: str,
    search_paths: List[str],
    arch: Arch,
    backend: str = "pyelf",
) -> Optional[str]:
    """
    Return the directory that provides library name, or None.
    """
    if os.path.isfile(os.path.join(own_dir, name)):
        LOG.debug("%s found next to the binary in %s", name, own_dir)
        return own_dir

    for path in search_paths:
        candidate = os.path.join(path, name)
        if not os.path.isfile(candidate):
            continue
        if _arch_matches(candidate, arch, backend):
            LOG.debug("%s found in %s", name, path)
            return path

    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def resolve_dependencies(
    binary: str,
    arch: Arch,
    needed: List[str],
    config: SearchConfig,
    backend: str = "pyelf",
) -> Resolution:
    """
    Resolve every name in needed for binary.

    Returns a Resolution; callers use raise_for_missing() to turn
    unresolved names into a single MissingDependencies error.
    """
    own_dir = binary_dir(binary)
    search_paths = config.paths_for(arch)
    result = Resolution()

    for name in needed:
        found = resolve_library(name, own_dir, search_paths, arch, backend=backend)
        if found is None:
            if name not in result.missing:
                LOG.error("%s: cannot find %s (%s) in any search path", binary, name, arch)
                result.missing.append(name)
        else:
            result.resolved.append((name, found))

    return result


__all__ = [
    "Resolution",
    "list_needed",
    "binary_dir",
    "build_search_list",
    "resolve_library",
    "resolve_dependencies",
]
