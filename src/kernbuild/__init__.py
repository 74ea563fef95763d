"""Kernel build orchestration: toolchain discovery, configuration and reporting."""

from .errors import (
    BuildArtifactNotFound,
    ConflictingWarningPolicy,
    InvalidToolchainFolder,
    KernBuildError,
    MissingArgumentValue,
    MissingCompilerBinary,
    NoDefconfigSupplied,
    NotABuildRoot,
    PackagingError,
    ToolchainPrefixUnresolvable,
)
from .models import (
    BuildConfig,
    BuildContext,
    BuildResult,
    CompilerKind,
    ToolchainPaths,
    Verbosity,
    WarningPolicy,
)
from .params import parse_parameters
from .settings import Settings
from .toolchain import get_cc_prefix, setup_toolchains

__all__ = [
    "BuildArtifactNotFound",
    "BuildConfig",
    "BuildContext",
    "BuildResult",
    "CompilerKind",
    "ConflictingWarningPolicy",
    "InvalidToolchainFolder",
    "KernBuildError",
    "MissingArgumentValue",
    "MissingCompilerBinary",
    "NoDefconfigSupplied",
    "NotABuildRoot",
    "PackagingError",
    "Settings",
    "ToolchainPaths",
    "ToolchainPrefixUnresolvable",
    "Verbosity",
    "WarningPolicy",
    "get_cc_prefix",
    "parse_parameters",
    "setup_toolchains",
]
