"""Package a built kernel image into a flashable AnyKernel-style zip."""

from __future__ import annotations

import datetime
import logging
import shutil
import zipfile
from pathlib import Path

from kernbuild.errors import BuildArtifactNotFound, PackagingError

log = logging.getLogger(__name__)

IMAGE_NAME = "zImage"
EXCLUDED_TOP_LEVEL = frozenset({"README"})


def template_files(anykernel_dir: Path, *, exclude: tuple[Path, ...] = ()) -> list[Path]:
    """List files the way ``zip -r NAME.zip * -x README`` would pick them.

    Hidden top-level entries are skipped, as is the top-level README; hidden
    files inside packaged folders are kept.
    """
    files: list[Path] = []
    for entry in sorted(anykernel_dir.iterdir()):
        if entry.name.startswith(".") or entry.name in EXCLUDED_TOP_LEVEL or entry in exclude:
            continue
        if entry.is_dir():
            files.extend(path for path in sorted(entry.rglob("*")) if path.is_file())
        elif entry.is_file():
            files.append(entry)
    return files


def make_flashable_zip(image: Path | None, anykernel_dir: Path, zip_name: str) -> Path:
    if image is None or not image.is_file():
        raise BuildArtifactNotFound(
            "No kernel image to package!",
            context={"image": str(image or "")},
        )
    if not anykernel_dir.is_dir():
        raise PackagingError(
            "AnyKernel folder doesn't exist!",
            context={"anykernel_dir": str(anykernel_dir)},
        )

    shutil.copy2(image, anykernel_dir / IMAGE_NAME)
    zip_path = anykernel_dir / f"{zip_name}.zip"
    zip_path.unlink(missing_ok=True)

    log.info("Zipping %s into %s", anykernel_dir, zip_path)
    with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for path in template_files(anykernel_dir, exclude=(zip_path,)):
            archive.write(path, path.relative_to(anykernel_dir))
    return zip_path


def export_zip(zip_path: Path, export_dir: Path, *, today: datetime.date | None = None) -> Path:
    """Move *zip_path* into a fresh ``<export_dir>/<MM-DD>/`` folder."""
    stamp = (today or datetime.date.today()).strftime("%m-%d")
    target_dir = export_dir / stamp
    try:
        shutil.rmtree(target_dir, ignore_errors=True)
        target_dir.mkdir(parents=True)
        return Path(shutil.move(str(zip_path), target_dir / zip_path.name))
    except OSError as exc:
        raise PackagingError(
            "Could not export flashable zip.",
            context={"zip": str(zip_path), "export_dir": str(target_dir), "error": str(exc)},
        ) from exc
