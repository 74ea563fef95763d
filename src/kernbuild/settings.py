"""Host configuration read from the environment."""

from __future__ import annotations

import os
import shutil
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

TOOLCHAIN_ROOT_VAR = "ANDROID_TC_FOLDER"


@dataclass(frozen=True, slots=True)
class Settings:
    toolchain_root: Path = Path(".")
    jobs: int = 1
    ccache: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        jobs_raw = env.get("JOBS", "")
        jobs = int(jobs_raw) if jobs_raw.isdigit() and int(jobs_raw) > 0 else os.cpu_count() or 1
        ccache = env.get("CCACHE") or shutil.which("ccache", path=env.get("PATH"))
        return cls(
            toolchain_root=Path(env.get(TOOLCHAIN_ROOT_VAR, ".")),
            jobs=jobs,
            ccache=ccache,
        )
