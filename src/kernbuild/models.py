"""Core typed dataclasses for build configuration, toolchains and results."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

DEFAULT_ARCH = "arm64"
OUT_DIR_NAME = "out"


class CompilerKind(Enum):
    GCC = "gcc"
    CLANG = "clang"


class Verbosity(Enum):
    """How much of the build tool's output reaches the terminal."""

    SILENT = 0
    ERRORS = 1
    WARNINGS = 2
    FULL = 3


class WarningPolicy(Enum):
    DEFAULT = "default"
    FORCE_ERROR = "force-error"
    FORCE_NO_ERROR = "force-no-error"


@dataclass(frozen=True, slots=True)
class BuildConfig:
    root: Path
    defconfigs: tuple[str, ...]
    arch: str = DEFAULT_ARCH
    compiler: CompilerKind = CompilerKind.GCC
    gcc_folder: str | None = None
    gcc_32_bit_folder: str | None = None
    clang_folder: str | None = None
    verbosity: Verbosity = Verbosity.SILENT
    warning_policy: WarningPolicy = WarningPolicy.DEFAULT
    version_display: str | None = None
    show_only_result: bool = False
    params: tuple[str, ...] = ()
    anykernel_dir: str | None = None
    zip_name: str = "kernel"
    export_dir: str | None = None

    @property
    def out_dir(self) -> Path:
        return self.root / OUT_DIR_NAME

    @property
    def uses_clang(self) -> bool:
        return self.compiler is CompilerKind.CLANG


@dataclass(frozen=True, slots=True)
class Toolchain:
    """One resolved compiler role: its folder, bin directory and prefix."""

    folder: Path
    bin_dir: Path
    prefix: str


@dataclass(frozen=True, slots=True)
class ToolchainPaths:
    gcc: Toolchain
    gcc_32_bit: Toolchain | None = None
    clang: Toolchain | None = None
    path: str = ""
    ld_library_path: str | None = None


@dataclass(frozen=True, slots=True)
class CommandSpec:
    argv: tuple[str, ...]
    env: Mapping[str, str] = field(default_factory=dict)
    cwd: Path | None = None


@dataclass(frozen=True, slots=True)
class BuildContext:
    """Everything child processes need, passed explicitly to each spawn."""

    config: BuildConfig
    toolchains: ToolchainPaths
    env: Mapping[str, str]
    jobs: int = 1
    ccache: str | None = None
    python2: str | None = None


@dataclass(frozen=True, slots=True)
class BuildResult:
    elapsed: float
    image: Path | None
    kernel_version: str = ""
    stages: tuple[str, ...] = ()
    returncode: int = 0

    @property
    def succeeded(self) -> bool:
        return self.image is not None and self.image.is_file()
