"""Locate the final kernel image and report the outcome of a build."""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import TextIO

from kernbuild.models import BuildConfig, BuildResult

FAILURE_EXIT_CODE = 33

GRN = "\033[01;32m"
RED = "\033[01;31m"
BOLD = "\033[1m"
RST = "\033[0m"
BELL = "\a"

KERNEL_RELEASE_FILE = Path("include/config/kernel.release")


def find_final_image(out_dir: Path) -> Path | None:
    """Pick the most specific image under *out_dir*.

    Tried in order: an image with an attached device tree (first match), a
    compressed or versioned ``Image.*`` (last match), then any ``Image*``
    (last match).
    """
    if not out_dir.is_dir():
        return None
    dtb = sorted(p for p in out_dir.rglob("Image*-dtb") if p.is_file())
    if dtb:
        return dtb[0]
    for pattern in ("Image.*", "Image*"):
        matches = sorted(p for p in out_dir.rglob(pattern) if p.is_file())
        if matches:
            return matches[-1]
    return None


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_time(seconds: float) -> str:
    total = int(seconds)
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    parts = []
    if hours:
        parts.append(_plural(hours, "hour"))
    if minutes:
        parts.append(_plural(minutes, "minute"))
    if secs or not parts:
        parts.append(_plural(secs, "second"))
    if len(parts) == 1:
        return parts[0]
    return ", ".join(parts[:-1]) + " and " + parts[-1]


def formatted_kernel_version(out_dir: Path, version_display: str, fallback: str = "") -> str:
    release_file = out_dir / KERNEL_RELEASE_FILE
    if release_file.is_file():
        release = release_file.read_text(encoding="utf-8").strip()
    else:
        release = fallback
    if release:
        return f"{BOLD}Version:{RST}    {release} ({version_display})"
    return f"{BOLD}Version:{RST}    {version_display}"


def report_result(
    result: BuildResult,
    config: BuildConfig,
    *,
    out: TextIO,
    err: TextIO,
    script_name: str = "kernbuild",
) -> int:
    """Print the build outcome and return the process exit code."""
    time_string = format_time(result.elapsed)
    command = ""
    if config.show_only_result:
        command = f"{script_name} {shlex.join(config.params)}  |  "

    if result.succeeded:
        out.write("\n")
        err.write(f"{command}{GRN}Build successful in {time_string}{RST}\n")
        out.write("\n")
        out.write(f"{BOLD}Image:{RST}      {result.image}\n")
        if config.version_display:
            out.write("\n")
            out.write(
                formatted_kernel_version(
                    config.out_dir, config.version_display, result.kernel_version
                )
                + "\n"
            )
        code = 0
    else:
        err.write(f"{command}{RED}Build failed in {time_string}{RST}\n")
        code = FAILURE_EXIT_CODE

    err.write(BELL)
    err.flush()
    return code
