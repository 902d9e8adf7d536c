#!/usr/bin/env python3
"""
report.py

Write per-file patch results to a TSV file:

    status  arch  path  rpath  interpreter  error
"""

from __future__ import annotations

import csv
import logging
import os
from typing import Iterable

from elfrpath.patcher import PatchResult

LOG = logging.getLogger("report")

REPORT_COLUMNS = ["status", "arch", "path", "rpath", "interpreter", "error"]


def result_row(result: PatchResult) -> list:
    return [
        result.status,
        str(result.arch) if result.arch is not None else "-",
        result.path,
        result.rpath or "-",
        result.interpreter or "-",
        str(result.error) if result.error is not None else "-",
    ]


def write_report(results: Iterable[PatchResult], path: str) -> int:
    """
    Write results to path as TSV and return the number of rows written.
    """
    out_dir = os.path.dirname(os.path.abspath(path))
    os.makedirs(out_dir, exist_ok=True)

    count = 0
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, delimiter="\t", lineterminator="\n")
        writer.writerow(REPORT_COLUMNS)
        for result in results:
            writer.writerow(result_row(result))
            count += 1

    LOG.info("Wrote %d result(s) to %s", count, path)
    return count


__all__ = [
    "REPORT_COLUMNS",
    "result_row",
    "write_report",
]
