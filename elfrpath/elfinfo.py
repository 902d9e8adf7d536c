#!/usr/bin/env python3
"""
elfinfo.py

ELF header inspector and file-type check.

Two backends are supported:

  - "pyelf"   : parse the header and program headers with pyelftools.
  - "readelf" : run `readelf -h` / `readelf -l` and `file -b` and parse
                their text output.

This module only reads. All writes go through patchelf_runner.py.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Union

from elftools.common.exceptions import ELFError
from elftools.elf.elffile import ELFFile

from elfrpath.errors import UnsupportedArchitecture
from elfrpath.tools import run_tool

LOG = logging.getLogger("elfinfo")

BACKENDS = ("pyelf", "readelf")

ELF_MAGIC = b"\x7fELF"

FILETYPE_EXECUTABLE = "executable"
FILETYPE_SHARED_OBJECT = "shared object"


@dataclass
class ElfHeader:
    """
    Header fields needed to classify a binary.

    elfclass:
        Word size, 32 or 64.
    machine:
        "EM_*" name (or raw e_machine integer) with the pyelf backend,
        the `readelf -h` "Machine:" text with the readelf backend.
    elf_type:
        "ET_EXEC", "ET_DYN", ...
    """
    elfclass: int
    machine: Union[str, int]
    elf_type: str
    backend: str = "pyelf"


# ---------------------------------------------------------------------------
# Basic helpers
# ---------------------------------------------------------------------------

def is_elf(path: str) -> bool:
    """Return True if file at path looks like an ELF (checks magic bytes)."""
    try:
        with open(path, "rb") as f:
            magic = f.read(4)
        return magic == ELF_MAGIC
    except OSError:
        return False


def _check_backend(backend: str) -> None:
    if backend not in BACKENDS:
        raise ValueError(f"unknown ELF backend: {backend!r} (expected one of {BACKENDS})")


# ---------------------------------------------------------------------------
# pyelftools backend
# ---------------------------------------------------------------------------

def _read_header_pyelf(path: str) -> ElfHeader:
    try:
        with open(path, "rb") as f:
            elf = ELFFile(f)
            return ElfHeader(
                elfclass=elf.elfclass,
                machine=elf.header["e_machine"],
                elf_type=elf.header["e_type"],
                backend="pyelf",
            )
    except (ELFError, OSError) as e:
        LOG.debug("pyelftools failed to open %s: %s", path, e)
        raise UnsupportedArchitecture(path, None, None)


def _interpreter_pyelf(path: str) -> Optional[str]:
    try:
        with open(path, "rb") as f:
            elf = ELFFile(f)
            for seg in elf.iter_segments():
                if seg["p_type"] == "PT_INTERP":
                    return seg.get_interp_name()
    except (ELFError, OSError) as e:
        LOG.debug("pyelftools failed to read program headers of %s: %s", path, e)
    return None


# ---------------------------------------------------------------------------
# readelf / file backend
# ---------------------------------------------------------------------------

_READELF_FIELD_RE = re.compile(r"^\s*(?P<key>Class|Machine|Type):\s*(?P<value>.+?)\s*$")
_READELF_INTERP_RE = re.compile(r"\[Requesting program interpreter:\s*(?P<interp>[^\]]+)\]")


def parse_readelf_header(text: str) -> dict:
    """
    Pick the Class / Machine / Type fields out of `readelf -h` output.

    Example lines:
        Class:                             ELF64
        Type:                              DYN (Shared object file)
        Machine:                           Advanced Micro Devices X86-64
    """
    fields = {}
    for line in text.splitlines():
        m = _READELF_FIELD_RE.match(line)
        if m and m.group("key") not in fields:
            fields[m.group("key")] = m.group("value")
    return fields


def _read_header_readelf(path: str) -> ElfHeader:
    if not is_elf(path):
        raise UnsupportedArchitecture(path, None, None)

    fields = parse_readelf_header(run_tool(["readelf", "-h", path]))
    elf_class_text = fields.get("Class", "")
    machine_text = fields.get("Machine", "")
    type_text = fields.get("Type", "")

    if elf_class_text == "ELF32":
        elfclass = 32
    elif elf_class_text == "ELF64":
        elfclass = 64
    else:
        raise UnsupportedArchitecture(path, elf_class_text or None, machine_text or None)

    # "DYN (Shared object file)" -> "ET_DYN"
    type_word = type_text.split(" ", 1)[0] if type_text else "NONE"
    return ElfHeader(
        elfclass=elfclass,
        machine=machine_text,
        elf_type="ET_" + type_word,
        backend="readelf",
    )


def _interpreter_readelf(path: str) -> Optional[str]:
    out = run_tool(["readelf", "-l", "-W", path])
    m = _READELF_INTERP_RE.search(out)
    if m:
        return m.group("interp").strip()
    return None


def classify_file_output(text: str) -> Optional[str]:
    """
    Classify `file -b` output as executable, shared object or neither.

    `file` reports PIE binaries as "pie executable" on newer versions and as
    "shared object" on older ones; both are accepted.
    """
    if "ELF" not in text:
        return None
    if "executable" in text:
        return FILETYPE_EXECUTABLE
    if "shared object" in text:
        return FILETYPE_SHARED_OBJECT
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def read_header(path: str, backend: str = "pyelf") -> ElfHeader:
    """
    Read class, machine and type of an ELF file.

    Raises UnsupportedArchitecture if the file is not a readable ELF.
    """
    _check_backend(backend)
    if backend == "pyelf":
        return _read_header_pyelf(path)
    return _read_header_readelf(path)


def get_interpreter(path: str, backend: str = "pyelf") -> Optional[str]:
    """Return the PT_INTERP path the binary requests, or None."""
    _check_backend(backend)
    if backend == "pyelf":
        return _interpreter_pyelf(path)
    return _interpreter_readelf(path)


def detect_file_type(path: str, backend: str = "pyelf") -> Optional[str]:
    """
    Return FILETYPE_EXECUTABLE, FILETYPE_SHARED_OBJECT or None.

    With the pyelf backend an ET_DYN file that requests an interpreter is a
    position-independent executable.
    """
    _check_backend(backend)
    if backend == "readelf":
        return classify_file_output(run_tool(["file", "-b", path]))

    if not is_elf(path):
        return None
    try:
        header = _read_header_pyelf(path)
    except UnsupportedArchitecture:
        return None

    if header.elf_type == "ET_EXEC":
        return FILETYPE_EXECUTABLE
    if header.elf_type == "ET_DYN":
        if _interpreter_pyelf(path):
            return FILETYPE_EXECUTABLE
        return FILETYPE_SHARED_OBJECT
    return None


__all__ = [
    "BACKENDS",
    "ElfHeader",
    "FILETYPE_EXECUTABLE",
    "FILETYPE_SHARED_OBJECT",
    "is_elf",
    "parse_readelf_header",
    "classify_file_output",
    "read_header",
    "get_interpreter",
    "detect_file_type",
]
