"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import io
import tarfile
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

FULL_HASH = "4f1c8a2b9d3e6f7a0b1c2d3e4f5a6b7c8d9e0f1a"
OTHER_HASH = "9e8d7c6b5a4f3e2d1c0b9a8f7e6d5c4b3a2f1e0d"

LS_REMOTE_OUTPUT = f"""\
{FULL_HASH}\tHEAD
{FULL_HASH}\trefs/heads/main
{OTHER_HASH}\trefs/heads/feat/some-branch
1111111111111111111111111111111111111111\trefs/tags/v1.0
2222222222222222222222222222222222222222\trefs/tags/v1.0^{{}}
3333333333333333333333333333333333333333\trefs/pull/1/head
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def build_tarball(files: dict[str, str | bytes], prefix: str = "repo-4f1c8a2") -> bytes:
    """Build a gzip tarball wrapping `files` in a single top-level directory."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        top = tarfile.TarInfo(prefix)
        top.type = tarfile.DIRTYPE
        top.mode = 0o755
        archive.addfile(top)

        for name, content in files.items():
            data = content.encode("utf-8") if isinstance(content, str) else content
            info = tarfile.TarInfo(f"{prefix}/{name}")
            info.size = len(data)
            info.mode = 0o644
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


@pytest.fixture
def make_tarball() -> Callable[..., bytes]:
    """Factory for template tarballs."""
    return build_tarball


@pytest.fixture
def ls_remote_output() -> str:
    """Sample `git ls-remote` output."""
    return LS_REMOTE_OUTPUT
