#!/usr/bin/env python3
"""
arch.py

Architecture detection.

Maps an (ELF class, ELF machine) pair to one of the supported architecture
tags. Anything outside the table is an UnsupportedArchitecture error; there
is no default architecture.

    32-bit  EM_386      "Intel 80386"                    -> i386
    64-bit  EM_X86_64   "Advanced Micro Devices X86-64"  -> x86_64
    64-bit  EM_AARCH64  "AArch64"                        -> aarch64
"""

from __future__ import annotations

import enum
from typing import Dict, Optional, Tuple, Union

from elftools.elf.enums import ENUM_E_MACHINE

from elfrpath.elfinfo import read_header
from elfrpath.errors import UnsupportedArchitecture


class Arch(str, enum.Enum):
    I386 = "i386"
    X86_64 = "x86_64"
    AARCH64 = "aarch64"

    def __str__(self) -> str:
        return self.value


# Key: (elfclass, EM_* name) as reported by pyelftools
_HEADER_TABLE: Dict[Tuple[int, str], Arch] = {
    (32, "EM_386"): Arch.I386,
    (64, "EM_X86_64"): Arch.X86_64,
    (64, "EM_AARCH64"): Arch.AARCH64,
}

# Key: (readelf "Class:", readelf "Machine:")
_READELF_TABLE: Dict[Tuple[str, str], Arch] = {
    ("ELF32", "Intel 80386"): Arch.I386,
    ("ELF64", "Advanced Micro Devices X86-64"): Arch.X86_64,
    ("ELF64", "AArch64"): Arch.AARCH64,
}

_MACHINE_NUMBERS: Dict[str, int] = {
    name: ENUM_E_MACHINE[name] for _elfclass, name in _HEADER_TABLE
}


def parse_arch(value: str) -> Arch:
    """Parse an architecture tag given on the command line."""
    try:
        return Arch(value.strip())
    except ValueError:
        choices = ", ".join(a.value for a in Arch)
        raise ValueError(f"unknown architecture {value!r} (expected one of: {choices})")


def arch_from_header(
    elfclass: int,
    machine: Union[str, int],
    path: str = "<unknown>",
) -> Arch:
    """
    Typed lookup on parsed header fields.

    machine may be the EM_* name or the raw e_machine integer.
    """
    if isinstance(machine, int):
        machine_name: Optional[str] = next(
            (name for name, number in _MACHINE_NUMBERS.items() if number == machine),
            None,
        )
    else:
        machine_name = machine

    arch = _HEADER_TABLE.get((elfclass, machine_name or ""))
    if arch is None:
        raise UnsupportedArchitecture(path, f"ELFCLASS{elfclass}", str(machine))
    return arch


def arch_from_readelf(class_text: str, machine_text: str, path: str = "<unknown>") -> Arch:
    """Text lookup on the `readelf -h` Class / Machine fields."""
    arch = _READELF_TABLE.get((class_text.strip(), machine_text.strip()))
    if arch is None:
        raise UnsupportedArchitecture(path, class_text, machine_text)
    return arch


def detect_arch(path: str, backend: str = "pyelf") -> Arch:
    """
    Return the architecture tag of the ELF file at path.

    Raises UnsupportedArchitecture for non-ELF files and for any
    class/machine pair outside the supported table.
    """
    header = read_header(path, backend=backend)
    if header.backend == "readelf":
        return arch_from_readelf(f"ELF{header.elfclass}", str(header.machine), path=path)
    return arch_from_header(header.elfclass, header.machine, path=path)


__all__ = [
    "Arch",
    "parse_arch",
    "arch_from_header",
    "arch_from_readelf",
    "detect_arch",
]
