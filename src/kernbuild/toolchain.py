"""Cross-compiler discovery and child-process environment composition."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from kernbuild.errors import (
    InvalidToolchainFolder,
    MissingCompilerBinary,
    ToolchainPrefixUnresolvable,
)
from kernbuild.models import BuildConfig, Toolchain, ToolchainPaths
from kernbuild.settings import Settings

log = logging.getLogger(__name__)

CC_SUFFIX = "gcc"
REAL_MARKER = "real-"
COMPAT_VDSO_MARKER = Path("arch/arm64/kernel/vdso32")
DEFAULT_GCC_32_BIT_FOLDER = "gcc-arm"
DEFAULT_CLANG_FOLDER = "clang-r353983c"
LIB_DIR_NAMES = ("lib", "lib64")


def get_cc_prefix(bin_dir: Path) -> str:
    """Return the cross-compile prefix of the newest ``*-gcc`` under *bin_dir*.

    Symlinks are ranked by their own mtime. Equal mtimes fall back to the
    lexicographically greatest path. Returns ``""`` when nothing matches.
    """
    if not bin_dir.is_dir():
        return ""
    candidates = [
        path
        for path in bin_dir.rglob(f"*-{CC_SUFFIX}")
        if path.is_symlink() or path.is_file()
    ]
    if not candidates:
        return ""
    newest = max(candidates, key=lambda path: (path.lstat().st_mtime, str(path)))
    name = newest.name.replace(REAL_MARKER, "", 1)
    return name.removesuffix(CC_SUFFIX)


def resolve_folder(folder: str, *, root: Path, toolchain_root: Path, label: str) -> Path:
    """Accept *folder* as given (relative to *root*) or under *toolchain_root*."""
    candidate = root / folder
    if candidate.is_dir():
        return candidate.resolve()
    candidate = toolchain_root / folder
    if candidate.is_dir():
        return candidate.resolve()
    raise InvalidToolchainFolder(
        f"Invalid {label} folder specified!",
        context={"folder": folder, "toolchain_root": str(toolchain_root)},
    )


def _resolve_gcc(folder: str, *, root: Path, toolchain_root: Path, label: str) -> Toolchain:
    resolved = resolve_folder(folder, root=root, toolchain_root=toolchain_root, label=label)
    bin_dir = resolved / "bin"
    prefix = get_cc_prefix(bin_dir)
    if not prefix:
        raise ToolchainPrefixUnresolvable(
            f"{label} toolchain could not be found!",
            hint=f"Expected a *-{CC_SUFFIX} executable under {bin_dir}.",
            context={"bin_dir": str(bin_dir)},
        )
    log.debug("Resolved %s toolchain: %s (%s)", label, prefix, bin_dir)
    return Toolchain(folder=resolved, bin_dir=bin_dir, prefix=prefix)


def _clang_library_dirs(folder: Path) -> list[str]:
    return [
        str(child)
        for child in sorted(folder.iterdir())
        if child.name in LIB_DIR_NAMES and child.is_dir()
    ]


def setup_toolchains(
    config: BuildConfig,
    settings: Settings,
    environ: Mapping[str, str] | None = None,
) -> ToolchainPaths:
    env = os.environ if environ is None else environ
    root = config.root
    toolchain_root = settings.toolchain_root

    gcc_folder = config.gcc_folder or str(toolchain_root / f"gcc-{config.arch}")
    gcc = _resolve_gcc(gcc_folder, root=root, toolchain_root=toolchain_root, label="64-bit GCC")

    gcc_32_bit: Toolchain | None = None
    if (root / COMPAT_VDSO_MARKER).is_dir():
        folder = config.gcc_32_bit_folder or str(toolchain_root / DEFAULT_GCC_32_BIT_FOLDER)
        gcc_32_bit = _resolve_gcc(
            folder, root=root, toolchain_root=toolchain_root, label="32-bit GCC"
        )

    clang: Toolchain | None = None
    ld_library_path = env.get("LD_LIBRARY_PATH") or None
    if config.uses_clang:
        folder = config.clang_folder or str(toolchain_root / DEFAULT_CLANG_FOLDER)
        resolved = resolve_folder(folder, root=root, toolchain_root=toolchain_root, label="Clang")
        bin_dir = resolved / "bin"
        if not (bin_dir / "clang").is_file():
            raise MissingCompilerBinary(
                "Clang binary could not be found!",
                context={"bin_dir": str(bin_dir)},
            )
        clang = Toolchain(folder=resolved, bin_dir=bin_dir, prefix="")
        # LTO needs the clang runtime libraries at build time
        entries = _clang_library_dirs(resolved)
        if ld_library_path:
            entries.append(ld_library_path)
        ld_library_path = os.pathsep.join(entries) or None

    search = [str(tc.bin_dir) for tc in (clang, gcc, gcc_32_bit) if tc is not None]
    if env.get("PATH"):
        search.append(env["PATH"])

    return ToolchainPaths(
        gcc=gcc,
        gcc_32_bit=gcc_32_bit,
        clang=clang,
        path=os.pathsep.join(search),
        ld_library_path=ld_library_path,
    )


def build_environment(
    paths: ToolchainPaths,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Return a copy of *environ* with the toolchain search paths applied."""
    env = dict(os.environ if environ is None else environ)
    env["PATH"] = paths.path
    if paths.ld_library_path:
        env["LD_LIBRARY_PATH"] = paths.ld_library_path
    return env
