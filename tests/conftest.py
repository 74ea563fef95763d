"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import pytest

from kernbuild.models import CommandSpec
from kernbuild.runner import RecordingRunner
from kernbuild.settings import Settings

KERNEL_VERSION = "4.19.113"


def _make_executable(path: Path, *, mtime: float | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n", encoding="utf-8")
    path.chmod(0o755)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def make_executable() -> Callable[..., Path]:
    """Create an executable stub, optionally with a fixed mtime."""
    return _make_executable


@pytest.fixture
def config_snapshots() -> list[str]:
    """``out/.config`` contents as seen by each emulated make invocation."""
    return []


@pytest.fixture
def fake_make(config_snapshots: list[str]) -> Callable[[CommandSpec], None]:
    """Emulate the kernel build: write a .config for defconfig targets, an image otherwise."""

    def emulate(spec: CommandSpec) -> None:
        assert spec.cwd is not None
        out = spec.cwd / "out"
        config_file = out / ".config"
        config_snapshots.append(
            config_file.read_text(encoding="utf-8") if config_file.exists() else ""
        )
        targets = [arg for arg in spec.argv[1:] if not arg.startswith("-") and "=" not in arg]
        if any(target.endswith("defconfig") for target in targets):
            if targets != ["olddefconfig"]:
                config_file.write_text('CONFIG_LOCALVERSION=""\n', encoding="utf-8")
            return
        boot = out / "arch" / "arm64" / "boot"
        boot.mkdir(parents=True, exist_ok=True)
        (boot / "Image.gz-dtb").write_bytes(b"kernel")

    return emulate


@pytest.fixture
def kernel_tree(tmp_path: Path) -> Path:
    root = tmp_path / "kernel"
    configs = root / "arch" / "arm64" / "configs"
    configs.mkdir(parents=True)
    (root / "Makefile").write_text("all:\n", encoding="utf-8")
    (configs / "foo_defconfig").write_text("CONFIG_FOO=y\n", encoding="utf-8")
    (configs / "bar.config").write_text("CONFIG_BAR=y\n", encoding="utf-8")
    return root


@pytest.fixture
def toolchain_root(tmp_path: Path) -> Path:
    root = tmp_path / "toolchains"
    _make_executable(root / "gcc-arm64" / "bin" / "aarch64-linux-android-gcc")
    return root


@pytest.fixture
def settings(toolchain_root: Path) -> Settings:
    return Settings(toolchain_root=toolchain_root, jobs=4, ccache=None)


@pytest.fixture
def fake_runner(fake_make: Callable[[CommandSpec], None]) -> RecordingRunner:
    return RecordingRunner(version=KERNEL_VERSION, on_run=fake_make)
