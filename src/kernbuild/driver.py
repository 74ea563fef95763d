"""Kernel build driver: an explicit state machine over configuration stages."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TextIO

from kernbuild.errors import NoDefconfigSupplied
from kernbuild.filters import FilterPipeline, exclude, verbosity_filter
from kernbuild.kconfig import set_symbols
from kernbuild.models import OUT_DIR_NAME, BuildContext, CommandSpec, WarningPolicy
from kernbuild.runner import CommandRunner

log = logging.getLogger(__name__)

WERROR_SYMBOLS = ("CC_WERROR", "CONFIG_ERROR_ON_WARNING")
DT_OVERLAY_SYMBOL = "BUILD_ARM64_DT_OVERLAY"
DT_OVERLAY_PLATFORM = "op6"
EXTERNAL_DTC = "dtc -f"
CLANG_TRIPLE = "aarch64-linux-gnu-"
CLANG_TRIPLE_ARM32 = "arm-linux-gnueabi-"


class Stage(Enum):
    CLEAN = "clean"
    CONFIGURING = "configuring"
    WARNING_POLICY_ADJUST = "warning-policy-adjust"
    PLATFORM_QUIRK_ADJUST = "platform-quirk-adjust"
    COMPILING = "compiling"
    DONE = "done"


TRANSITIONS: dict[Stage, Stage] = {
    Stage.CLEAN: Stage.CONFIGURING,
    Stage.CONFIGURING: Stage.WARNING_POLICY_ADJUST,
    Stage.WARNING_POLICY_ADJUST: Stage.PLATFORM_QUIRK_ADJUST,
    Stage.PLATFORM_QUIRK_ADJUST: Stage.COMPILING,
    Stage.COMPILING: Stage.DONE,
}


@dataclass(slots=True)
class BuildDriver:
    context: BuildContext
    runner: CommandRunner
    sink: TextIO
    needs_external_dtc: bool = False
    visited: list[Stage] = field(default_factory=list)
    returncode: int = 0

    @property
    def root(self) -> Path:
        return self.context.config.root

    @property
    def out_dir(self) -> Path:
        return self.context.config.out_dir

    @property
    def config_file(self) -> Path:
        return self.out_dir / ".config"

    def run(self) -> tuple[Stage, ...]:
        handlers: dict[Stage, Callable[[], None]] = {
            Stage.CLEAN: self._clean,
            Stage.CONFIGURING: self._configure,
            Stage.WARNING_POLICY_ADJUST: self._adjust_warning_policy,
            Stage.PLATFORM_QUIRK_ADJUST: self._adjust_platform_quirks,
            Stage.COMPILING: self._compile,
        }
        stage = Stage.CLEAN
        while stage is not Stage.DONE:
            log.info("Build stage: %s", stage.value)
            self.visited.append(stage)
            handlers[stage]()
            stage = TRANSITIONS[stage]
        self.visited.append(Stage.DONE)
        if self.returncode != 0:
            log.warning("make exited with status %d; judging by artifacts", self.returncode)
        return tuple(self.visited)

    def kernel_version(self) -> str:
        spec = CommandSpec(
            argv=("make", "-s", "CROSS_COMPILE=", "CC=gcc", "kernelversion"),
            env=self.context.env,
            cwd=self.root,
        )
        return self.runner.capture(spec)

    def make_command(self, *targets: str) -> CommandSpec:
        ctx = self.context
        config = ctx.config
        toolchains = ctx.toolchains
        argv = ["make", f"-j{ctx.jobs}", f"O={OUT_DIR_NAME}", f"ARCH={config.arch}"]
        launcher = f"{ctx.ccache} " if ctx.ccache else ""
        if config.uses_clang:
            argv += [
                f"CC={launcher}clang",
                f"CLANG_TRIPLE={CLANG_TRIPLE}",
                f"CLANG_TRIPLE_ARM32={CLANG_TRIPLE_ARM32}",
                f"CROSS_COMPILE={toolchains.gcc.prefix}",
            ]
        else:
            argv.append(f"CROSS_COMPILE={launcher}{toolchains.gcc.prefix}")
        if toolchains.gcc_32_bit is not None:
            argv.append(f"CROSS_COMPILE_ARM32={toolchains.gcc_32_bit.prefix}")
        if ctx.python2:
            argv.append(f"PYTHON={ctx.python2}")
        argv += targets
        return CommandSpec(argv=tuple(argv), env=ctx.env, cwd=self.root)

    def kmake(self, *targets: str, drop: tuple[str, ...] = ()) -> int:
        pipeline = verbosity_filter(self.context.config.verbosity)
        if drop:
            pipeline = FilterPipeline((exclude(*drop),)).then(*pipeline.filters)
        spec = self.make_command(*targets)
        returncode = self.runner.run(spec, pipeline=pipeline, sink=self.sink)
        if returncode != 0:
            self.returncode = returncode
        return returncode

    def _clean(self) -> None:
        if self.out_dir.is_symlink() or self.out_dir.is_file():
            self.out_dir.unlink()
        else:
            shutil.rmtree(self.out_dir, ignore_errors=True)
        self.out_dir.mkdir(parents=True)

    def _configure(self) -> None:
        defconfigs = self.context.config.defconfigs
        if len(defconfigs) > 1:
            with self.config_file.open("w", encoding="utf-8") as merged:
                for fragment in defconfigs:
                    merged.write(self._fragment_path(fragment).read_text(encoding="utf-8"))
            self.kmake("olddefconfig", drop=("format-overflow",))
        else:
            self.kmake(defconfigs[0], drop=("format-overflow",))

    def _fragment_path(self, fragment: str) -> Path:
        candidates = (
            self.root / fragment,
            self.root / "arch" / self.context.config.arch / "configs" / fragment,
        )
        for candidate in candidates:
            if candidate.is_file():
                return candidate
        raise NoDefconfigSupplied(
            f"Defconfig fragment {fragment} could not be found!",
            context={"root": str(self.root)},
        )

    def _adjust_warning_policy(self) -> None:
        policy = self.context.config.warning_policy
        if policy is WarningPolicy.FORCE_ERROR:
            set_symbols(self.config_file, enable=WERROR_SYMBOLS)
        elif policy is WarningPolicy.FORCE_NO_ERROR:
            set_symbols(self.config_file, disable=WERROR_SYMBOLS)
        else:
            return
        log.info("Applied warning policy %s", policy.value)
        self.kmake("olddefconfig")

    def _adjust_platform_quirks(self) -> None:
        if DT_OVERLAY_PLATFORM not in str(self.root):
            return
        set_symbols(self.config_file, enable=(DT_OVERLAY_SYMBOL,))
        self.kmake("olddefconfig")
        self.needs_external_dtc = True

    def _compile(self) -> None:
        targets = (f"DTC_EXT={EXTERNAL_DTC}",) if self.needs_external_dtc else ()
        self.kmake(*targets, drop=("dts",))
