"""Child-process execution for build tool invocations."""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol, TextIO

from kernbuild.errors import BuildToolError
from kernbuild.filters import FilterPipeline
from kernbuild.models import CommandSpec

log = logging.getLogger(__name__)


class CommandRunner(Protocol):
    def run(self, spec: CommandSpec, *, pipeline: FilterPipeline, sink: TextIO) -> int:
        """Run *spec*, stream filtered combined output to *sink*, return exit code."""

    def capture(self, spec: CommandSpec) -> str:
        """Run *spec* and return its stripped stdout."""


@dataclass(slots=True)
class SubprocessRunner:
    name: str = "subprocess"

    def run(self, spec: CommandSpec, *, pipeline: FilterPipeline, sink: TextIO) -> int:
        self._ensure_executable(spec)
        log.debug("Running: %s", shlex.join(spec.argv))
        try:
            with subprocess.Popen(
                spec.argv,
                cwd=spec.cwd,
                env=dict(spec.env) if spec.env else None,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            ) as proc:
                assert proc.stdout is not None
                for line in pipeline.apply(proc.stdout):
                    sink.write(line)
                sink.flush()
                returncode = proc.wait()
        except OSError as exc:
            raise self._spawn_error(spec, exc) from exc
        log.debug("Exit status %d: %s", returncode, spec.argv[0])
        return returncode

    def capture(self, spec: CommandSpec) -> str:
        self._ensure_executable(spec)
        log.debug("Capturing: %s", shlex.join(spec.argv))
        try:
            result = subprocess.run(
                spec.argv,
                cwd=spec.cwd,
                env=dict(spec.env) if spec.env else None,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise self._spawn_error(spec, exc) from exc
        if result.returncode != 0:
            log.warning(
                "%s exited with %d: %s",
                shlex.join(spec.argv),
                result.returncode,
                result.stderr.strip()[:2000],
            )
        return result.stdout.strip()

    def _ensure_executable(self, spec: CommandSpec) -> None:
        search_path = spec.env.get("PATH") if spec.env else None
        if shutil.which(spec.argv[0], path=search_path) is None:
            raise BuildToolError(
                f"`{spec.argv[0]}` could not be found!",
                hint="Install it or make sure it is on PATH.",
                context={"command": shlex.join(spec.argv), "path": search_path or ""},
            )

    def _spawn_error(self, spec: CommandSpec, exc: OSError) -> BuildToolError:
        return BuildToolError(
            f"Could not run `{spec.argv[0]}`.",
            context={"command": shlex.join(spec.argv), "error": str(exc)},
        )


@dataclass(slots=True)
class RecordingRunner:
    """Runner that records commands instead of spawning them.

    Canned ``output`` is replayed through each invocation's pipeline and
    ``on_run`` stands in for the side effects of the real build tool, which
    makes the driver usable without a kernel toolchain installed.
    """

    name: str = "recording"
    output: tuple[str, ...] = ()
    returncode: int = 0
    version: str = ""
    on_run: Callable[[CommandSpec], None] | None = None
    commands: list[CommandSpec] = field(default_factory=list)
    captured: list[CommandSpec] = field(default_factory=list)

    def run(self, spec: CommandSpec, *, pipeline: FilterPipeline, sink: TextIO) -> int:
        self.commands.append(spec)
        if self.on_run is not None:
            self.on_run(spec)
        for line in pipeline.apply(self.output):
            sink.write(line)
        return self.returncode

    def capture(self, spec: CommandSpec) -> str:
        self.captured.append(spec)
        return self.version
