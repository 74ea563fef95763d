import os
from collections.abc import Callable
from pathlib import Path

import pytest

from kernbuild.errors import (
    InvalidToolchainFolder,
    MissingCompilerBinary,
    ToolchainPrefixUnresolvable,
)
from kernbuild.models import BuildConfig, CompilerKind
from kernbuild.settings import Settings
from kernbuild.toolchain import build_environment, get_cc_prefix, setup_toolchains


def test_newest_compiler_wins(tmp_path: Path, make_executable: Callable[..., Path]) -> None:
    make_executable(tmp_path / "cc1-gcc", mtime=1_000_000)
    make_executable(tmp_path / "cc2-gcc", mtime=2_000_000)

    assert get_cc_prefix(tmp_path) == "cc2-"


def test_equal_mtimes_break_ties_by_path(
    tmp_path: Path, make_executable: Callable[..., Path]
) -> None:
    make_executable(tmp_path / "aarch64-linux-gnu-gcc", mtime=1_000_000)
    make_executable(tmp_path / "aarch64-linux-android-gcc", mtime=1_000_000)

    assert get_cc_prefix(tmp_path) == "aarch64-linux-gnu-"


def test_real_marker_and_symlinks(tmp_path: Path, make_executable: Callable[..., Path]) -> None:
    target = make_executable(tmp_path / "real-aarch64-elf-gcc", mtime=1_000_000)
    link = tmp_path / "aarch64-elf-gcc-8.3.0-gcc"
    link.symlink_to(target)
    os.utime(link, (500_000, 500_000), follow_symlinks=False)

    assert get_cc_prefix(tmp_path) == "aarch64-elf-"


def test_non_compiler_files_are_ignored(
    tmp_path: Path, make_executable: Callable[..., Path]
) -> None:
    make_executable(tmp_path / "aarch64-linux-gnu-ld")
    (tmp_path / "gcc-dir-gcc").mkdir()

    assert get_cc_prefix(tmp_path) == ""


def test_empty_or_missing_directory(tmp_path: Path) -> None:
    assert get_cc_prefix(tmp_path) == ""
    assert get_cc_prefix(tmp_path / "missing") == ""


def _config(root: Path, **overrides: object) -> BuildConfig:
    return BuildConfig(root=root, defconfigs=("foo_defconfig",), **overrides)


def test_setup_resolves_default_gcc(kernel_tree: Path, settings: Settings) -> None:
    paths = setup_toolchains(_config(kernel_tree), settings, {"PATH": "/usr/bin"})

    gcc_bin = settings.toolchain_root.resolve() / "gcc-arm64" / "bin"
    assert paths.gcc.prefix == "aarch64-linux-android-"
    assert paths.gcc.bin_dir == gcc_bin
    assert paths.gcc_32_bit is None
    assert paths.clang is None
    assert paths.path == os.pathsep.join([str(gcc_bin), "/usr/bin"])
    assert paths.ld_library_path is None


def test_gcc_folder_relative_to_toolchain_root(
    kernel_tree: Path, settings: Settings, make_executable: Callable[..., Path]
) -> None:
    make_executable(settings.toolchain_root / "gcc-custom" / "bin" / "aarch64-custom-gcc")

    paths = setup_toolchains(_config(kernel_tree, gcc_folder="gcc-custom"), settings, {})

    assert paths.gcc.prefix == "aarch64-custom-"


def test_invalid_gcc_folder(kernel_tree: Path, settings: Settings) -> None:
    with pytest.raises(InvalidToolchainFolder) as excinfo:
        setup_toolchains(_config(kernel_tree, gcc_folder="nope"), settings, {})

    assert "64-bit GCC" in str(excinfo.value)


def test_empty_gcc_bin_is_unresolvable(kernel_tree: Path, settings: Settings) -> None:
    (settings.toolchain_root / "gcc-empty" / "bin").mkdir(parents=True)

    with pytest.raises(ToolchainPrefixUnresolvable) as excinfo:
        setup_toolchains(_config(kernel_tree, gcc_folder="gcc-empty"), settings, {})

    assert excinfo.value.code == "E_TOOLCHAIN_PREFIX_UNRESOLVABLE"


def test_compat_vdso_requires_32_bit_gcc(
    kernel_tree: Path, settings: Settings, make_executable: Callable[..., Path]
) -> None:
    (kernel_tree / "arch" / "arm64" / "kernel" / "vdso32").mkdir(parents=True)

    with pytest.raises(InvalidToolchainFolder) as excinfo:
        setup_toolchains(_config(kernel_tree), settings, {})
    assert "32-bit GCC" in str(excinfo.value)

    make_executable(settings.toolchain_root / "gcc-arm" / "bin" / "arm-linux-androideabi-gcc")
    paths = setup_toolchains(_config(kernel_tree), settings, {"PATH": "/bin"})

    assert paths.gcc_32_bit is not None
    assert paths.gcc_32_bit.prefix == "arm-linux-androideabi-"
    assert paths.path.split(os.pathsep) == [
        str(paths.gcc.bin_dir),
        str(paths.gcc_32_bit.bin_dir),
        "/bin",
    ]


def test_32_bit_gcc_skipped_without_vdso_marker(kernel_tree: Path, settings: Settings) -> None:
    paths = setup_toolchains(
        _config(kernel_tree, gcc_32_bit_folder="does-not-exist"), settings, {}
    )

    assert paths.gcc_32_bit is None


def test_clang_setup(
    kernel_tree: Path, settings: Settings, make_executable: Callable[..., Path]
) -> None:
    clang_root = settings.toolchain_root / "clang-r353983c"
    make_executable(clang_root / "bin" / "clang")
    (clang_root / "lib64").mkdir()
    (clang_root / "share").mkdir()

    paths = setup_toolchains(
        _config(kernel_tree, compiler=CompilerKind.CLANG),
        settings,
        {"PATH": "/bin", "LD_LIBRARY_PATH": "/opt/lib"},
    )

    assert paths.clang is not None
    assert paths.path.split(os.pathsep)[0] == str(clang_root.resolve() / "bin")
    assert paths.path.split(os.pathsep)[-1] == "/bin"
    assert paths.ld_library_path == os.pathsep.join(
        [str(clang_root.resolve() / "lib64"), "/opt/lib"]
    )


def test_clang_folder_invalid(kernel_tree: Path, settings: Settings) -> None:
    with pytest.raises(InvalidToolchainFolder):
        setup_toolchains(
            _config(kernel_tree, compiler=CompilerKind.CLANG, clang_folder="clang-x"),
            settings,
            {},
        )


def test_clang_binary_missing(kernel_tree: Path, settings: Settings) -> None:
    (settings.toolchain_root / "clang-x" / "bin").mkdir(parents=True)

    with pytest.raises(MissingCompilerBinary):
        setup_toolchains(
            _config(kernel_tree, compiler=CompilerKind.CLANG, clang_folder="clang-x"),
            settings,
            {},
        )


def test_build_environment_does_not_mutate_input(kernel_tree: Path, settings: Settings) -> None:
    environ = {"PATH": "/bin", "HOME": "/root"}
    paths = setup_toolchains(_config(kernel_tree), settings, environ)

    env = build_environment(paths, environ)

    assert env["PATH"] == paths.path
    assert env["HOME"] == "/root"
    assert "LD_LIBRARY_PATH" not in env
    assert environ == {"PATH": "/bin", "HOME": "/root"}
