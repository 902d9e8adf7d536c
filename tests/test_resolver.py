import pytest

from elfrpath.arch import Arch
from elfrpath.config import SearchConfig
from elfrpath.errors import MissingDependencies
from elfrpath.resolver import (
    Resolution,
    build_search_list,
    list_needed,
    resolve_dependencies,
)


def test_scenario_two_packages(tmp_path, fake_tools, fake_elf):
    foo = tmp_path / "pkg" / "foo" / "lib"
    bar = tmp_path / "pkg" / "bar" / "lib"
    fake_elf(foo / "libfoo.so")
    fake_elf(bar / "libbar.so")
    binary = fake_elf(tmp_path / "bin" / "app", needed=["libfoo.so", "libbar.so"])

    cfg = SearchConfig(generic_paths=[str(foo), str(bar)])
    needed = list_needed(str(binary))
    res = resolve_dependencies(str(binary), Arch.X86_64, needed, cfg)

    assert res.ok
    assert res.resolved == [("libfoo.so", str(foo)), ("libbar.so", str(bar))]
    assert res.rpath == f"{foo}:{bar}"


def test_own_directory_wins_without_arch_check(tmp_path, fake_tools, fake_elf):
    bindir = tmp_path / "bin"
    other = tmp_path / "other"
    # Next to the binary, but of another architecture: still selected.
    fake_elf(bindir / "libfoo.so", arch="aarch64")
    fake_elf(other / "libfoo.so")
    binary = fake_elf(bindir / "app", needed=["libfoo.so"])

    cfg = SearchConfig(generic_paths=[str(other)])
    res = resolve_dependencies(str(binary), Arch.X86_64, ["libfoo.so"], cfg)

    assert res.resolved == [("libfoo.so", str(bindir))]
    assert str(bindir / "libfoo.so") not in fake_tools.detect_calls


def test_mismatched_arch_is_skipped(tmp_path, fake_tools, fake_elf, caplog):
    arm = tmp_path / "arm"
    x86 = tmp_path / "x86"
    fake_elf(arm / "libz.so", arch="aarch64")
    fake_elf(x86 / "libz.so", arch="x86_64")
    binary = fake_elf(tmp_path / "bin" / "app", needed=["libz.so"])

    cfg = SearchConfig(generic_paths=[str(arm), str(x86)])
    res = resolve_dependencies(str(binary), Arch.X86_64, ["libz.so"], cfg)

    assert res.resolved == [("libz.so", str(x86))]
    assert "does not match" in caplog.text


def test_unsupported_candidate_is_skipped(tmp_path, fake_tools, fake_elf):
    weird = tmp_path / "weird"
    fake_elf(weird / "libz.so", arch="riscv64")
    binary = fake_elf(tmp_path / "bin" / "app", needed=["libz.so"])

    cfg = SearchConfig(generic_paths=[str(weird)])
    res = resolve_dependencies(str(binary), Arch.X86_64, ["libz.so"], cfg)

    assert res.missing == ["libz.so"]


def test_arch_paths_searched_before_generic(tmp_path, fake_tools, fake_elf):
    generic = tmp_path / "generic"
    specific = tmp_path / "lib64"
    fake_elf(generic / "libc.so.6")
    fake_elf(specific / "libc.so.6")
    binary = fake_elf(tmp_path / "bin" / "app", needed=["libc.so.6"])

    cfg = SearchConfig(
        generic_paths=[str(generic)],
        arch_paths={Arch.X86_64: [str(specific)]},
    )
    res = resolve_dependencies(str(binary), Arch.X86_64, ["libc.so.6"], cfg)
    assert res.resolved == [("libc.so.6", str(specific))]


def test_missing_libraries_are_aggregated(tmp_path, fake_tools, fake_elf):
    lib = tmp_path / "lib"
    fake_elf(lib / "a.so")
    fake_elf(lib / "c.so")
    binary = fake_elf(tmp_path / "bin" / "app", needed=["a.so", "b.so", "c.so"])

    cfg = SearchConfig(generic_paths=[str(lib)])
    res = resolve_dependencies(str(binary), Arch.X86_64, ["a.so", "b.so", "c.so"], cfg)

    assert not res.ok
    assert res.missing == ["b.so"]
    with pytest.raises(MissingDependencies) as exc:
        res.raise_for_missing(str(binary))
    assert exc.value.missing == ["b.so"]


def test_resolution_is_deterministic(tmp_path, fake_tools, fake_elf):
    dirs = [tmp_path / f"d{i}" for i in range(3)]
    for d in dirs:
        fake_elf(d / "libq.so")
    binary = fake_elf(tmp_path / "bin" / "app", needed=["libq.so"])
    cfg = SearchConfig(generic_paths=[str(d) for d in dirs])

    first = resolve_dependencies(str(binary), Arch.X86_64, ["libq.so"], cfg)
    second = resolve_dependencies(str(binary), Arch.X86_64, ["libq.so"], cfg)
    assert first == second
    assert first.directories == [str(dirs[0])]


def test_repeated_directory_written_once():
    res = Resolution(resolved=[("a", "/x"), ("b", "/y"), ("c", "/x")])
    assert res.directories == ["/x", "/y"]
    assert res.rpath == "/x:/y"


def test_duplicate_needed_names_kept(tmp_path, fake_tools, fake_elf):
    binary = fake_elf(tmp_path / "app", needed=["libm.so", "libm.so"])
    assert list_needed(str(binary)) == ["libm.so", "libm.so"]


def test_build_search_list(tmp_path):
    binary = tmp_path / "bin" / "app"
    cfg = SearchConfig(generic_paths=["/g"], arch_paths={Arch.I386: ["/a32"]})
    assert build_search_list(str(binary), Arch.I386, cfg) == [
        str(tmp_path / "bin"),
        "/a32",
        "/g",
    ]


def test_unreadable_candidate_with_readelf_backend_is_skipped(tmp_path, fake_elf, monkeypatch):
    from elfrpath import elfinfo
    from elfrpath.errors import ToolError

    bad = tmp_path / "bad"
    good = tmp_path / "good"
    bad.mkdir()
    good.mkdir()
    # Starts like an ELF but is cut short; readelf cannot read its header.
    (bad / "libz.so").write_bytes(b"\x7fELF\x02\x01\x01\x00\x00\x00\x00\x00")
    (good / "libz.so").write_bytes(b"\x7fELF" + b"\0" * 60)
    binary = fake_elf(tmp_path / "bin" / "app", needed=["libz.so"])

    good_header = (
        "  Class:                             ELF64\n"
        "  Type:                              DYN (Shared object file)\n"
        "  Machine:                           Advanced Micro Devices X86-64\n"
    )

    def fake_run_tool(cmd):
        if cmd[-1] == str(bad / "libz.so"):
            raise ToolError(cmd, 1, "readelf: Error: Failed to read file header")
        return good_header

    monkeypatch.setattr(elfinfo, "run_tool", fake_run_tool)

    cfg = SearchConfig(generic_paths=[str(bad), str(good)])
    res = resolve_dependencies(str(binary), Arch.X86_64, ["libz.so"], cfg, backend="readelf")

    assert res.ok
    assert res.resolved == [("libz.so", str(good))]


def test_missing_library_listed_twice_is_named_once(tmp_path, fake_tools, fake_elf):
    binary = fake_elf(tmp_path / "bin" / "app", needed=["libq.so", "libr.so", "libq.so"])

    res = resolve_dependencies(
        str(binary), Arch.X86_64, ["libq.so", "libr.so", "libq.so"], SearchConfig()
    )

    assert res.missing == ["libq.so", "libr.so"]
    with pytest.raises(MissingDependencies) as exc:
        res.raise_for_missing(str(binary))
    assert str(exc.value).endswith("libq.so, libr.so")
