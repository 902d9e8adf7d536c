#!/usr/bin/env python3
"""
cli.py

Command line entry point.

Usage examples:

  # Patch one binary using $libs and $libs_<arch>
  libs=/opt/pkg/lib libs_x86_64=/opt/pkg/lib64 elfrpath ./bin/app

  # Patch every ELF under ./dist, one level only, search paths from $deps
  elfrpath --variable deps --no-recurse ./dist

  # Check a whole tree without writing anything, report every failure
  elfrpath --dry-run --keep-going --report out/rpath.tsv \
      --search-path /opt/pkg/lib --arch-path aarch64=/opt/pkg/lib-arm64 ./dist

Exit code is 0 when every file was handled, 1 otherwise.
"""

from __future__ import annotations

import argparse
import logging
import os
from typing import List, Optional

from elfrpath import __version__
from elfrpath.config import DEFAULT_VARIABLE, SearchConfig, parse_arch_path
from elfrpath.elfinfo import BACKENDS
from elfrpath.report import write_report
from elfrpath.walker import patch_path

LOG = logging.getLogger("elfrpath")


# ---------------------------------------------------------------------------
# CLI helpers
# ---------------------------------------------------------------------------

def _arch_path_arg(value: str):
    try:
        return parse_arch_path(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="elfrpath",
        description=(
            "Rewrite the RPATH (and program interpreter) of ELF binaries so that "
            "their needed libraries are found in the configured search paths."
        ),
    )
    p.add_argument(
        "path",
        metavar="PATH",
        help="ELF file to patch, or directory to scan for ELF files.",
    )
    p.add_argument(
        "--no-recurse",
        dest="recurse",
        action="store_false",
        help="Only scan files directly inside PATH when it is a directory.",
    )
    p.add_argument(
        "--variable",
        default=DEFAULT_VARIABLE,
        metavar="NAME",
        help=(
            "Environment variable holding ':'-separated generic search paths "
            f"(default: {DEFAULT_VARIABLE}). NAME_<arch> holds the "
            "architecture-specific paths, e.g. libs_x86_64."
        ),
    )
    p.add_argument(
        "--search-path",
        action="append",
        dest="search_paths",
        default=[],
        metavar="DIR",
        help="Extra generic search directory, after the environment ones (repeatable).",
    )
    p.add_argument(
        "--arch-path",
        action="append",
        dest="arch_paths",
        type=_arch_path_arg,
        default=[],
        metavar="ARCH=DIR",
        help="Extra architecture-specific search directory (repeatable).",
    )
    p.add_argument(
        "--backend",
        choices=list(BACKENDS),
        default="pyelf",
        help=(
            "How to read ELF headers: 'pyelf' (pyelftools) or "
            "'readelf' (external readelf and file tools). Default: pyelf."
        ),
    )
    p.add_argument(
        "--keep-going",
        action="store_true",
        help="Do not stop a directory scan at the first file that fails.",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve dependencies and print what would change, without writing.",
    )
    p.add_argument(
        "--report",
        metavar="FILE",
        help="Write a TSV report of every processed file to FILE.",
    )
    p.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging.",
    )
    p.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return p


def build_config(args: argparse.Namespace) -> SearchConfig:
    cfg = SearchConfig.from_environ(args.variable)
    per_arch = {}
    for arch, paths in args.arch_paths:
        per_arch.setdefault(arch, []).extend(paths)
    cfg.extend(generic=args.search_paths, per_arch=per_arch)
    return cfg


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    args = build_argparser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    if not os.path.exists(args.path):
        LOG.error("Input path does not exist: %s", args.path)
        return 1

    config = build_config(args)
    if not config.generic_paths and not config.arch_paths:
        LOG.warning(
            "No search paths configured (set $%s or use --search-path); "
            "only each binary's own directory will be searched.",
            args.variable,
        )

    summary = patch_path(
        args.path,
        config,
        recurse=args.recurse,
        keep_going=args.keep_going,
        dry_run=args.dry_run,
        backend=args.backend,
    )

    if args.report:
        write_report(summary.results, args.report)

    if not summary.ok:
        for r in summary.failed:
            LOG.error("FAILED %s: %s", r.path, r.error)
        for d in summary.unreadable:
            LOG.error("UNREADABLE %s", d)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
