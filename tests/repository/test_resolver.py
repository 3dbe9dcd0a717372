"""Tests for ref listing and selector resolution."""

from __future__ import annotations

import stat
from pathlib import Path

import pytest

from decaff.errors import InvalidSelectorError, RemoteError
from decaff.repository.parser import parse_reference
from decaff.repository.resolver import RefLister, is_object_id, parse_ls_remote, resolve_hash

MAIN = "4f1c8a2b9d3e6f7a0b1c2d3e4f5a6b7c8d9e0f1a"
BRANCH = "9e8d7c6b5a4f3e2d1c0b9a8f7e6d5c4b3a2f1e0d"


@pytest.fixture
def refs() -> dict[str, str]:
    return {"HEAD": MAIN, "main": MAIN, "feat/some-branch": BRANCH, "v1.0": "2" * 40}


class TestResolveHash:
    """Tests for resolving selectors to commit hashes."""

    def test_head(self, refs: dict[str, str]):
        assert resolve_hash(parse_reference("foo/bar"), refs) == MAIN

    def test_branch(self, refs: dict[str, str]):
        assert resolve_hash(parse_reference("foo/bar#feat/some-branch"), refs) == BRANCH

    def test_tag(self, refs: dict[str, str]):
        assert resolve_hash(parse_reference("foo/bar#v1.0"), refs) == "2" * 40

    def test_short_hash_expands_to_ref_tip(self, refs: dict[str, str]):
        assert resolve_hash(parse_reference("foo/bar#9e8d7c6"), refs) == BRANCH

    def test_short_hash_is_case_insensitive(self, refs: dict[str, str]):
        assert resolve_hash(parse_reference("foo/bar#9E8D7C6B"), refs) == BRANCH

    def test_unknown_hash_is_used_verbatim(self, refs: dict[str, str]):
        assert resolve_hash(parse_reference("foo/bar#abcdef12"), refs) == "abcdef12"

    def test_full_hash_not_at_tip(self, refs: dict[str, str]):
        full = "a" * 40
        assert resolve_hash(parse_reference(f"foo/bar#{full}"), refs) == full

    def test_short_unknown_selector(self, refs: dict[str, str]):
        with pytest.raises(InvalidSelectorError) as exc_info:
            resolve_hash(parse_reference("foo/bar#dev"), refs)

        assert exc_info.value.selector == "dev"
        assert exc_info.value.message == "Invalid reference: `dev`."

    def test_long_non_hex_selector(self, refs: dict[str, str]):
        with pytest.raises(InvalidSelectorError):
            resolve_hash(parse_reference("foo/bar#release-2024"), refs)

    def test_too_short_hash(self, refs: dict[str, str]):
        with pytest.raises(InvalidSelectorError):
            resolve_hash(parse_reference("foo/bar#9e8d7c"), refs)

    def test_is_object_id(self):
        assert is_object_id("abc1234")
        assert is_object_id(MAIN)
        assert not is_object_id("abc123")
        assert not is_object_id("g" * 10)
        assert not is_object_id("a" * 41)


class TestParseLsRemote:
    """Tests for parsing `git ls-remote` output."""

    def test_prefixes_are_stripped(self, ls_remote_output: str):
        refs = parse_ls_remote(ls_remote_output)

        assert refs["HEAD"] == MAIN
        assert refs["main"] == MAIN
        assert refs["feat/some-branch"] == BRANCH

    def test_peeled_tag_wins(self, ls_remote_output: str):
        refs = parse_ls_remote(ls_remote_output)

        assert refs["v1.0"] == "2" * 40
        assert "v1.0^{}" not in refs

    def test_other_refs_are_ignored(self, ls_remote_output: str):
        refs = parse_ls_remote(ls_remote_output)

        assert set(refs) == {"HEAD", "main", "feat/some-branch", "v1.0"}

    def test_empty_output(self):
        assert parse_ls_remote("") == {}


def write_fake_git(directory: Path, script: str) -> Path:
    path = directory / "git"
    path.write_text(f"#!/bin/sh\n{script}\n")
    path.chmod(path.stat().st_mode | stat.S_IEXEC)
    return path


class TestRefLister:
    """Tests for listing remote refs through a git executable."""

    @pytest.mark.asyncio
    async def test_list_refs(self, temp_dir: Path, ls_remote_output: str):
        (temp_dir / "output.txt").write_text(ls_remote_output)
        git = write_fake_git(temp_dir, f'cat "{temp_dir / "output.txt"}"')

        refs = await RefLister(git=str(git)).list_refs(parse_reference("foo/bar"))

        assert refs["main"] == MAIN
        assert refs["v1.0"] == "2" * 40

    @pytest.mark.asyncio
    async def test_passes_git_url(self, temp_dir: Path):
        git = write_fake_git(temp_dir, f'echo "$@" > "{temp_dir / "args.txt"}"')

        await RefLister(git=str(git)).list_refs(parse_reference("gl:foo/bar"))

        args = (temp_dir / "args.txt").read_text().strip()
        assert args == "ls-remote https://gitlab.com/foo/bar.git"

    @pytest.mark.asyncio
    async def test_unreachable_remote(self, temp_dir: Path):
        git = write_fake_git(temp_dir, "echo 'fatal: repository not found' >&2; exit 128")

        with pytest.raises(RemoteError) as exc_info:
            await RefLister(git=str(git)).list_refs(parse_reference("foo/bar"))

        assert exc_info.value.url == "https://github.com/foo/bar.git"
        assert "Failed to connect the given remote." in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_git(self, temp_dir: Path):
        lister = RefLister(git=str(temp_dir / "no-such-git"))

        with pytest.raises(RemoteError):
            await lister.list_refs(parse_reference("foo/bar"))
