"""Tests for tarball unpacking."""

from __future__ import annotations

import io
import tarfile
from pathlib import Path
from typing import Callable

import pytest

from decaff.errors import UnpackError
from decaff.unpack import unpack_tarball


def tarball_with(*members: tarfile.TarInfo, data: bytes = b"") -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for member in members:
            archive.addfile(member, io.BytesIO(data) if member.isfile() else None)
    return buffer.getvalue()


class TestUnpackTarball:
    """Tests for unpacking template tarballs."""

    def test_strips_top_level_directory(self, temp_dir: Path, make_tarball: Callable[..., bytes]):
        contents = make_tarball({"README.md": "hello", "src/main.py": "print()"})
        destination = temp_dir / "project"

        written = unpack_tarball(contents, destination)

        assert written == 2
        assert (destination / "README.md").read_text() == "hello"
        assert (destination / "src" / "main.py").read_text() == "print()"
        assert not (destination / "repo-4f1c8a2").exists()

    def test_empty_archive_creates_destination(self, temp_dir: Path, make_tarball: Callable[..., bytes]):
        destination = temp_dir / "project"

        assert unpack_tarball(make_tarball({}), destination) == 0
        assert destination.is_dir()

    def test_keeps_executable_bit(self, temp_dir: Path):
        member = tarfile.TarInfo("repo/run.sh")
        member.size = 2
        member.mode = 0o755

        unpack_tarball(tarball_with(member, data=b"ls"), temp_dir / "out")

        assert (temp_dir / "out" / "run.sh").stat().st_mode & 0o100

    def test_skips_links(self, temp_dir: Path):
        link = tarfile.TarInfo("repo/link")
        link.type = tarfile.SYMTYPE
        link.linkname = "/etc/passwd"

        assert unpack_tarball(tarball_with(link), temp_dir / "out") == 0
        assert not (temp_dir / "out" / "link").exists()

    def test_rejects_parent_traversal(self, temp_dir: Path):
        member = tarfile.TarInfo("repo/../../evil.txt")
        member.size = 4

        with pytest.raises(UnpackError):
            unpack_tarball(tarball_with(member, data=b"evil"), temp_dir / "out")

        assert not (temp_dir / "evil.txt").exists()

    def test_invalid_archive(self, temp_dir: Path):
        with pytest.raises(UnpackError):
            unpack_tarball(b"definitely not a tarball", temp_dir / "out")

    def test_truncated_archive(self, temp_dir: Path, make_tarball: Callable[..., bytes]):
        contents = make_tarball({"README.md": "hello" * 1000})

        with pytest.raises(UnpackError):
            unpack_tarball(contents[: len(contents) // 2], temp_dir / "out")
