"""Turn a flat argument vector into an immutable :class:`BuildConfig`.

Flags are matched exactly against :data:`FLAGS`. A value flag always takes the
next token, whatever it looks like; anything not in the table is skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace
from typing import Any

from kernbuild.errors import (
    ConflictingWarningPolicy,
    MissingArgumentValue,
    NoDefconfigSupplied,
    NotABuildRoot,
)
from kernbuild.models import DEFAULT_ARCH, BuildConfig, CompilerKind, Verbosity, WarningPolicy
from kernbuild.settings import Settings

log = logging.getLogger(__name__)

PROJECT_FILE = "Makefile"


@dataclass(frozen=True, slots=True)
class Flag:
    dest: str
    takes_value: bool = False
    const: Any = True


def _flags(*names: str, flag: Flag) -> dict[str, Flag]:
    return dict.fromkeys(names, flag)


FLAGS: dict[str, Flag] = {
    **_flags("-a", "--arch", flag=Flag("arch", takes_value=True)),
    **_flags("-c", "--clang", flag=Flag("clang")),
    **_flags("-ct", "--clang-toolchain", flag=Flag("clang_folder", takes_value=True)),
    **_flags("-d", "--defconfig", flag=Flag("defconfig", takes_value=True)),
    **_flags("-D", "--debug", flag=Flag("verbosity", const=Verbosity.FULL)),
    **_flags("-e", "--errors", flag=Flag("verbosity", const=Verbosity.ERRORS)),
    **_flags("-f", "--folder", flag=Flag("folder", takes_value=True)),
    **_flags("-gt", "--gcc-toolchain", flag=Flag("gcc_folder", takes_value=True)),
    **_flags(
        "-gt-32", "--gcc-32-bit-toolchain", flag=Flag("gcc_32_bit_folder", takes_value=True)
    ),
    **_flags("-r", "--show-only-result", flag=Flag("show_only_result")),
    **_flags("-v", "--version-display", flag=Flag("version_display", takes_value=True)),
    **_flags("-w", "--warnings", flag=Flag("verbosity", const=Verbosity.WARNINGS)),
    **_flags("-Werror", flag=Flag("werror")),
    **_flags("-Wno-error", flag=Flag("no_werror")),
    **_flags("-ak", "--anykernel", flag=Flag("anykernel_dir", takes_value=True)),
    **_flags("-z", "--zip-name", flag=Flag("zip_name", takes_value=True)),
    **_flags("-x", "--export-dir", flag=Flag("export_dir", takes_value=True)),
}

DEFAULTS: dict[str, Any] = {
    "arch": None,
    "clang": False,
    "clang_folder": None,
    "defconfig": None,
    "verbosity": Verbosity.SILENT,
    "folder": None,
    "gcc_folder": None,
    "gcc_32_bit_folder": None,
    "show_only_result": False,
    "version_display": None,
    "werror": False,
    "no_werror": False,
    "anykernel_dir": None,
    "zip_name": "kernel",
    "export_dir": None,
}


def scan_flags(argv: Sequence[str]) -> SimpleNamespace:
    """Apply each recognized flag in order; later flags override earlier ones."""
    values = dict(DEFAULTS)
    unknown: list[str] = []
    tokens = iter(argv)
    for token in tokens:
        flag = FLAGS.get(token)
        if flag is None:
            unknown.append(token)
            continue
        if not flag.takes_value:
            values[flag.dest] = flag.const
            continue
        value = next(tokens, None)
        if value is None:
            raise MissingArgumentValue(
                f"{token} requires a value!",
                context={"argument": token},
            )
        values[flag.dest] = value
    if unknown:
        log.debug("Ignoring unrecognized arguments: %s", " ".join(unknown))
    return SimpleNamespace(**values)


def split_defconfigs(value: str | None) -> tuple[str, ...]:
    """Split a comma-separated defconfig list, keeping order."""
    if not value:
        return ()
    return tuple(item for item in value.split(",") if item)


def parse_parameters(
    argv: Sequence[str],
    *,
    cwd: Path | None = None,
    settings: Settings | None = None,
) -> BuildConfig:
    settings = settings or Settings()
    args = scan_flags(argv)

    root = (cwd or Path.cwd()).resolve()
    if args.folder is not None:
        root = (root / args.folder).resolve()
        if not root.is_dir():
            raise NotABuildRoot(
                "Folder requested doesn't exist!",
                context={"folder": args.folder},
            )
    if not (root / PROJECT_FILE).is_file():
        raise NotABuildRoot(
            "This must be run in a kernel tree!",
            hint=f"Run from a directory containing a {PROJECT_FILE} or pass --folder.",
            context={"root": str(root)},
        )

    defconfigs = split_defconfigs(args.defconfig)
    if not defconfigs:
        raise NoDefconfigSupplied(
            "Please supply a defconfig!",
            hint="Pass --defconfig <name>[,<fragment>...].",
        )

    if args.werror and args.no_werror:
        raise ConflictingWarningPolicy(
            "-Werror and -Wno-error cannot be used together!",
        )
    if args.werror:
        warning_policy = WarningPolicy.FORCE_ERROR
    elif args.no_werror:
        warning_policy = WarningPolicy.FORCE_NO_ERROR
    else:
        warning_policy = WarningPolicy.DEFAULT

    arch = args.arch or DEFAULT_ARCH
    gcc_folder = args.gcc_folder or str(settings.toolchain_root / f"gcc-{arch}")

    return BuildConfig(
        root=root,
        defconfigs=defconfigs,
        arch=arch,
        compiler=CompilerKind.CLANG if args.clang else CompilerKind.GCC,
        gcc_folder=gcc_folder,
        gcc_32_bit_folder=args.gcc_32_bit_folder,
        clang_folder=args.clang_folder,
        verbosity=args.verbosity,
        warning_policy=warning_policy,
        version_display=args.version_display,
        show_only_result=args.show_only_result,
        params=tuple(argv),
        anykernel_dir=args.anykernel_dir,
        zip_name=args.zip_name,
        export_dir=args.export_dir,
    )
