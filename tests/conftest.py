"""
Shared fixtures.

Real ELF files are not needed for most tests: "fake binaries" are small text
files describing their architecture, needed libraries and interpreter, and
the fake_tools fixture replaces the ELF inspector and patchelf with
functions that read those files and record writes.

    arch=x86_64
    needed=libfoo.so,libbar.so
    interp=/lib64/ld-linux-x86-64.so.2
"""

import os
from pathlib import Path

import pytest

from elfrpath import patchelf_runner, patcher, resolver, walker
from elfrpath.arch import Arch
from elfrpath.errors import UnsupportedArchitecture


def make_fake_elf(path, arch="x86_64", needed=(), interp=None):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [f"arch={arch}", f"needed={','.join(needed)}"]
    if interp:
        lines.append(f"interp={interp}")
    path.write_text("\n".join(lines) + "\n")
    return path


def _read_fake(path):
    fields = {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                if "=" in line:
                    key, value = line.rstrip("\n").split("=", 1)
                    fields[key] = value
    except (OSError, UnicodeDecodeError):
        pass
    return fields


class FakeTools:
    def __init__(self):
        self.rpaths = {}
        self.interpreters = {}
        self.detect_calls = []

    def detect_arch(self, path, backend="pyelf"):
        self.detect_calls.append(os.fspath(path))
        value = _read_fake(path).get("arch")
        try:
            return Arch(value)
        except ValueError:
            raise UnsupportedArchitecture(os.fspath(path), None, value)

    def print_needed(self, binary):
        value = _read_fake(binary).get("needed", "")
        return [n for n in value.split(",") if n]

    def get_interpreter(self, path, backend="pyelf"):
        return _read_fake(path).get("interp")

    def detect_file_type(self, path, backend="pyelf"):
        if "arch" in _read_fake(path):
            return "executable"
        return None

    def print_rpath(self, binary):
        return self.rpaths.get(os.fspath(binary), "")

    def print_interpreter(self, binary):
        return self.interpreters.get(os.fspath(binary)) or _read_fake(binary).get("interp", "")

    def set_rpath(self, binary, rpath):
        self.rpaths[os.fspath(binary)] = rpath

    def set_interpreter(self, binary, interpreter):
        self.interpreters[os.fspath(binary)] = interpreter


@pytest.fixture
def fake_tools(monkeypatch):
    tools = FakeTools()
    monkeypatch.setattr(resolver, "detect_arch", tools.detect_arch)
    monkeypatch.setattr(patcher, "detect_arch", tools.detect_arch)
    monkeypatch.setattr(patcher, "get_interpreter", tools.get_interpreter)
    monkeypatch.setattr(walker, "detect_file_type", tools.detect_file_type)
    monkeypatch.setattr(patchelf_runner, "print_needed", tools.print_needed)
    monkeypatch.setattr(patchelf_runner, "print_rpath", tools.print_rpath)
    monkeypatch.setattr(patchelf_runner, "print_interpreter", tools.print_interpreter)
    monkeypatch.setattr(patchelf_runner, "set_rpath", tools.set_rpath)
    monkeypatch.setattr(patchelf_runner, "set_interpreter", tools.set_interpreter)
    return tools


@pytest.fixture
def fake_elf():
    return make_fake_elf
