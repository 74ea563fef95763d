"""Typed error model for build orchestration failures."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers, one per fatal condition."""

    MISSING_ARGUMENT_VALUE = "E_MISSING_ARGUMENT_VALUE"
    NOT_A_BUILD_ROOT = "E_NOT_A_BUILD_ROOT"
    NO_DEFCONFIG = "E_NO_DEFCONFIG"
    CONFLICTING_WARNING_POLICY = "E_CONFLICTING_WARNING_POLICY"
    INVALID_TOOLCHAIN_FOLDER = "E_INVALID_TOOLCHAIN_FOLDER"
    TOOLCHAIN_PREFIX_UNRESOLVABLE = "E_TOOLCHAIN_PREFIX_UNRESOLVABLE"
    MISSING_COMPILER_BINARY = "E_MISSING_COMPILER_BINARY"
    BUILD_ARTIFACT_NOT_FOUND = "E_BUILD_ARTIFACT_NOT_FOUND"
    PACKAGING = "E_PACKAGING"
    BUILD_TOOL = "E_BUILD_TOOL"


class KernBuildError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class MissingArgumentValue(KernBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.MISSING_ARGUMENT_VALUE, hint=hint, context=context
        )


class NotABuildRoot(KernBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.NOT_A_BUILD_ROOT, hint=hint, context=context)


class NoDefconfigSupplied(KernBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.NO_DEFCONFIG, hint=hint, context=context)


class ConflictingWarningPolicy(KernBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.CONFLICTING_WARNING_POLICY, hint=hint, context=context
        )


class InvalidToolchainFolder(KernBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.INVALID_TOOLCHAIN_FOLDER, hint=hint, context=context
        )


class ToolchainPrefixUnresolvable(KernBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.TOOLCHAIN_PREFIX_UNRESOLVABLE, hint=hint, context=context
        )


class MissingCompilerBinary(KernBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.MISSING_COMPILER_BINARY, hint=hint, context=context
        )


class BuildArtifactNotFound(KernBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.BUILD_ARTIFACT_NOT_FOUND, hint=hint, context=context
        )


class PackagingError(KernBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.PACKAGING, hint=hint, context=context)


class BuildToolError(KernBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.BUILD_TOOL, hint=hint, context=context)


__all__ = [
    "BuildArtifactNotFound",
    "BuildToolError",
    "ConflictingWarningPolicy",
    "ErrorCode",
    "InvalidToolchainFolder",
    "KernBuildError",
    "MissingArgumentValue",
    "MissingCompilerBinary",
    "NoDefconfigSupplied",
    "NotABuildRoot",
    "PackagingError",
    "ToolchainPrefixUnresolvable",
]
