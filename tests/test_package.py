import datetime
import zipfile
from pathlib import Path

import pytest

from kernbuild.errors import BuildArtifactNotFound, PackagingError
from kernbuild.package import export_zip, make_flashable_zip


@pytest.fixture
def anykernel(tmp_path: Path) -> Path:
    root = tmp_path / "AnyKernel3"
    (root / "tools").mkdir(parents=True)
    (root / "anykernel.sh").write_text("#!/sbin/sh\n", encoding="utf-8")
    (root / "README").write_text("docs\n", encoding="utf-8")
    (root / "tools" / "ak3-core.sh").write_text("core\n", encoding="utf-8")
    return root


def test_flashable_zip_contents(tmp_path: Path, anykernel: Path) -> None:
    image = tmp_path / "Image.gz-dtb"
    image.write_bytes(b"kernel")

    zip_path = make_flashable_zip(image, anykernel, "Noodle")

    assert zip_path == anykernel / "Noodle.zip"
    assert (anykernel / "zImage").read_bytes() == b"kernel"
    with zipfile.ZipFile(zip_path) as archive:
        assert sorted(archive.namelist()) == ["anykernel.sh", "tools/ak3-core.sh", "zImage"]


def test_repackaging_does_not_nest_old_zip(tmp_path: Path, anykernel: Path) -> None:
    image = tmp_path / "Image"
    image.write_bytes(b"kernel")

    make_flashable_zip(image, anykernel, "k")
    zip_path = make_flashable_zip(image, anykernel, "k")

    with zipfile.ZipFile(zip_path) as archive:
        assert "k.zip" not in archive.namelist()


def test_template_skips_hidden_top_level_entries(tmp_path: Path, anykernel: Path) -> None:
    (anykernel / ".git" / "objects" / "pack").mkdir(parents=True)
    (anykernel / ".git" / "objects" / "pack" / "pack-1.idx").write_bytes(b"idx")
    (anykernel / ".gitignore").write_text("*.zip\n", encoding="utf-8")
    (anykernel / "docs").mkdir()
    (anykernel / "docs" / "README").write_text("nested\n", encoding="utf-8")
    (anykernel / "tools" / ".keep").write_text("", encoding="utf-8")
    image = tmp_path / "Image"
    image.write_bytes(b"kernel")

    zip_path = make_flashable_zip(image, anykernel, "k")

    with zipfile.ZipFile(zip_path) as archive:
        assert sorted(archive.namelist()) == [
            "anykernel.sh",
            "docs/README",
            "tools/.keep",
            "tools/ak3-core.sh",
            "zImage",
        ]


def test_missing_image(anykernel: Path) -> None:
    with pytest.raises(BuildArtifactNotFound):
        make_flashable_zip(None, anykernel, "k")


def test_missing_anykernel_dir(tmp_path: Path) -> None:
    image = tmp_path / "Image"
    image.write_bytes(b"kernel")

    with pytest.raises(PackagingError):
        make_flashable_zip(image, tmp_path / "missing", "k")


def test_export_into_dated_folder(tmp_path: Path) -> None:
    zip_path = tmp_path / "k.zip"
    zip_path.write_bytes(b"zip")
    stale = tmp_path / "exports" / "03-14" / "old.zip"
    stale.parent.mkdir(parents=True)
    stale.write_bytes(b"old")

    exported = export_zip(zip_path, tmp_path / "exports", today=datetime.date(2020, 3, 14))

    assert exported == tmp_path / "exports" / "03-14" / "k.zip"
    assert exported.read_bytes() == b"zip"
    assert not stale.exists()
    assert not zip_path.exists()
