"""Command-line entry point: parse, resolve toolchains, build, report."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import shutil
import sys
import time
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TextIO

from kernbuild.driver import BuildDriver
from kernbuild.errors import BuildArtifactNotFound, KernBuildError
from kernbuild.models import BuildConfig, BuildContext, BuildResult, ToolchainPaths
from kernbuild.package import export_zip, make_flashable_zip
from kernbuild.params import parse_parameters
from kernbuild.report import BOLD, FAILURE_EXIT_CODE, RED, RST, find_final_image, report_result
from kernbuild.runner import CommandRunner, SubprocessRunner
from kernbuild.settings import Settings
from kernbuild.toolchain import build_environment, setup_toolchains

log = logging.getLogger(__name__)

LOG_LEVEL_VAR = "KERNBUILD_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(environ: Mapping[str, str]) -> None:
    level_name = environ.get(LOG_LEVEL_VAR, "WARNING").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def find_python2(search_path: str) -> str | None:
    return shutil.which("python2", path=search_path) or shutil.which("python2.7", path=search_path)


def make_context(
    config: BuildConfig,
    paths: ToolchainPaths,
    settings: Settings,
    environ: Mapping[str, str],
) -> BuildContext:
    return BuildContext(
        config=config,
        toolchains=paths,
        env=build_environment(paths, environ),
        jobs=settings.jobs,
        ccache=settings.ccache,
        python2=find_python2(paths.path),
    )


def compile_kernel(
    context: BuildContext,
    runner: CommandRunner,
    *,
    out: TextIO,
    started: float,
) -> BuildResult:
    driver = BuildDriver(context=context, runner=runner, sink=out)
    version = driver.kernel_version()
    out.write(f"\n{BOLD}BUILDING {version}{RST}\n\n")
    out.flush()
    stages = driver.run()
    image = find_final_image(context.config.out_dir)
    return BuildResult(
        elapsed=time.monotonic() - started,
        image=image,
        kernel_version=version,
        stages=tuple(stage.value for stage in stages),
        returncode=driver.returncode,
    )


def package_result(config: BuildConfig, result: BuildResult, *, cwd: Path, out: TextIO) -> None:
    if config.anykernel_dir is None:
        return
    zip_path = make_flashable_zip(result.image, cwd / config.anykernel_dir, config.zip_name)
    if config.export_dir is not None:
        zip_path = export_zip(zip_path, cwd / config.export_dir)
    out.write(f"{BOLD}Zip:{RST}        {zip_path}\n")


def main(
    argv: Sequence[str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    runner: CommandRunner | None = None,
    cwd: Path | None = None,
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> int:
    started = time.monotonic()
    args = list(sys.argv[1:] if argv is None else argv)
    env = dict(os.environ if environ is None else environ)
    workdir = (cwd or Path.cwd()).resolve()
    out = out or sys.stdout
    err = err or sys.stderr
    configure_logging(env)

    try:
        settings = Settings.from_env(env)
        config = parse_parameters(args, cwd=workdir, settings=settings)
        paths = setup_toolchains(config, settings, env)
        context = make_context(config, paths, settings, env)
        with contextlib.ExitStack() as stack:
            build_out = out
            if config.show_only_result:
                build_out = stack.enter_context(open(os.devnull, "w", encoding="utf-8"))
            result = compile_kernel(
                context, runner or SubprocessRunner(), out=build_out, started=started
            )
            code = report_result(result, config, out=build_out, err=err)
            if code == 0:
                package_result(config, result, cwd=workdir, out=build_out)
        return code
    except BuildArtifactNotFound as exc:
        err.write(f"{RED}ERROR: {exc}{RST}\n")
        return FAILURE_EXIT_CODE
    except KernBuildError as exc:
        log.debug("Fatal error: %s", json.dumps(exc.to_dict(), sort_keys=True))
        err.write(f"{RED}ERROR: {exc}{RST}\n")
        return 1
    except KeyboardInterrupt:
        err.write("\nInterrupted.\n")
        return 130


if __name__ == "__main__":
    sys.exit(main())
