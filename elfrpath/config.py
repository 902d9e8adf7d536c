#!/usr/bin/env python3
"""
config.py

Search-path configuration.

The directories to search are held in an explicit SearchConfig rather than
read from the environment at lookup time. SearchConfig.from_environ()
builds one from the environment variables:

    <NAME>          generic search paths, ':'-separated (default NAME: libs)
    <NAME>_<arch>   architecture-specific paths, e.g. libs_x86_64
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from elfrpath.arch import Arch, parse_arch

LOG = logging.getLogger("config")

DEFAULT_VARIABLE = "libs"


def split_paths(value: Optional[str]) -> List[str]:
    """Split a ':'-separated path list, dropping empty entries."""
    if not value:
        return []
    return [p for p in value.split(":") if p]


@dataclass
class SearchConfig:
    """
    generic_paths:
        Searched after the architecture-specific ones.
    arch_paths:
        Architecture tag -> directories searched first for that architecture.
    """
    generic_paths: List[str] = field(default_factory=list)
    arch_paths: Dict[Arch, List[str]] = field(default_factory=dict)

    def paths_for(self, arch: Arch) -> List[str]:
        """Arch-specific paths first, then generic paths."""
        return list(self.arch_paths.get(arch, [])) + list(self.generic_paths)

    def extend(
        self,
        generic: Iterable[str] = (),
        per_arch: Optional[Mapping[Arch, Iterable[str]]] = None,
    ) -> None:
        self.generic_paths.extend(generic)
        for arch, paths in (per_arch or {}).items():
            self.arch_paths.setdefault(arch, []).extend(paths)

    @classmethod
    def from_environ(
        cls,
        variable: str = DEFAULT_VARIABLE,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "SearchConfig":
        if environ is None:
            environ = os.environ

        cfg = cls(generic_paths=split_paths(environ.get(variable)))
        for arch in Arch:
            name = f"{variable}_{arch.value}"
            paths = split_paths(environ.get(name))
            if paths:
                cfg.arch_paths[arch] = paths

        LOG.debug(
            "Search config from $%s: generic=%s arch=%s",
            variable,
            cfg.generic_paths,
            {str(a): p for a, p in cfg.arch_paths.items()},
        )
        return cfg


def parse_arch_path(value: str) -> tuple:
    """
    Parse an "ARCH=DIR" command line value.

    DIR may itself be a ':'-separated list.
    """
    if "=" not in value:
        raise ValueError(f"expected ARCH=DIR, got {value!r}")
    arch_text, dirs = value.split("=", 1)
    paths = split_paths(dirs)
    if not paths:
        raise ValueError(f"no directory given in {value!r}")
    return parse_arch(arch_text), paths


__all__ = [
    "DEFAULT_VARIABLE",
    "SearchConfig",
    "split_paths",
    "parse_arch_path",
]
