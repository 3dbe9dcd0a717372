"""Content-addressable tarball cache.

Layout under the cache root::

    manifest.toml
    tarballs/<hash>.tar.gz

The manifest maps the Base 32 encoded repository identity to the revisions
cached for it. Tarballs are keyed by hash only. A tarball without a manifest
entry is invisible; a manifest entry without its tarball is an error.
"""

from __future__ import annotations

import base64
import logging
import os
import shutil
import sys
import tempfile
import time
import tomllib
from pathlib import Path
from typing import Iterable

import tomli_w
from pydantic import ValidationError

from decaff.errors import CacheCorruptionError, CacheIOError, ParseError
from decaff.models.cache import CacheBucket, CacheItem, CacheManifest, RemovedItem
from decaff.models.repository import RepositoryDescriptor
from decaff.repository.parser import parse_reference

logger = logging.getLogger(__name__)

CACHE_TARBALLS_DIR = "tarballs"
CACHE_MANIFEST = "manifest.toml"


def default_cache_root() -> Path:
    """`$HOME/.cache/decaff`, or `%USERPROFILE%/AppData/Local/decaff/.cache` on Windows."""
    try:
        home = Path.home()
    except RuntimeError as e:
        raise CacheIOError("Failed to resolve home directory.") from e
    if sys.platform == "win32":
        return home / "AppData" / "Local" / "decaff" / ".cache"
    return home / ".cache" / "decaff"


def encode_identity(identity: str) -> str:
    """Encode an identity as unpadded Base 32 for use as a manifest key."""
    return base64.b32encode(identity.encode("utf-8")).decode("ascii").rstrip("=")


def decode_identity(key: str) -> str:
    """Decode a manifest key back into the identity string.

    Raises:
        CacheCorruptionError: If the key is not valid Base 32 or UTF-8.
    """
    padded = key + "=" * (-len(key) % 8)
    try:
        raw = base64.b32decode(padded)
    except ValueError as e:
        raise CacheCorruptionError(f"Couldn't decode entry: `{key}`.") from e
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise CacheCorruptionError(
            f"Couldn't decode entry due to invalid UTF-8 in the string: `{key}`."
        ) from e


def compare_hashes(left: str, right: str) -> bool:
    """Check if two hashes refer to the same revision.

    Hashes may differ in length: the shorter one must be a prefix of the
    longer one. Hashes of equal length must be identical.
    """
    if len(left) < len(right):
        return right.startswith(left)
    if len(left) > len(right):
        return left.startswith(right)
    return left == right


def _now_millis() -> int:
    return int(time.time() * 1000)


def _atomic_write_text(path: Path, text: str) -> None:
    """Write `text` to `path` through a temp file in the same directory."""
    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=str(path.parent), prefix=f".{path.name}.", delete=False
        ) as f:
            tmp_path = Path(f.name)
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        tmp_path = None
    finally:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()


class ContentCache:
    """Manifest-backed tarball cache rooted at a single directory.

    The manifest is read on first use and written back after every mutation.
    The in-memory copy only changes once the write succeeded. Concurrent
    processes sharing a root race on the manifest; the last writer wins.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.tarballs_dir = self.root / CACHE_TARBALLS_DIR
        self.manifest_path = self.root / CACHE_MANIFEST
        self._manifest: CacheManifest | None = None

    @property
    def manifest(self) -> CacheManifest:
        if self._manifest is None:
            self._manifest = self._read_manifest()
        return self._manifest

    def _read_manifest(self) -> CacheManifest:
        if not self.manifest_path.is_file():
            return CacheManifest()

        try:
            contents = self.manifest_path.read_text(encoding="utf-8")
        except OSError as e:
            raise CacheIOError("Failed to read the manifest.") from e

        try:
            data = tomllib.loads(contents)
        except tomllib.TOMLDecodeError as e:
            raise CacheCorruptionError(f"Failed to parse the manifest.\n\n{e}") from e

        try:
            return CacheManifest.model_validate(data)
        except ValidationError as e:
            raise CacheCorruptionError(f"The manifest has an unexpected structure.\n\n{e}") from e

    def _write_manifest(self, manifest: CacheManifest) -> None:
        manifest.normalize()
        text = tomli_w.dumps(manifest.model_dump())

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            _atomic_write_text(self.manifest_path, text)
        except OSError as e:
            raise CacheIOError("Failed to write the manifest to disk.") from e

        self._manifest = manifest

    def _copy_templates(self) -> dict[str, list[CacheItem]]:
        return {key: list(items) for key, items in self.manifest.templates.items()}

    def blob_path(self, hash: str) -> Path:
        """Path of the tarball stored for `hash`."""
        return self.tarballs_dir / f"{hash}.tar.gz"

    def write(self, identity: str, name: str, hash: str, contents: bytes) -> None:
        """Store a tarball and record it under the repository identity.

        The tarball is always (re)written. A manifest item is only added if no
        item of the bucket already matches `hash`. The manifest is saved last.
        """
        blob = self.blob_path(hash)
        try:
            self.tarballs_dir.mkdir(parents=True, exist_ok=True)
            blob.write_bytes(contents)
        except OSError as e:
            raise CacheIOError(f"Failed to write the tarball contents to disk: {blob}.") from e

        key = encode_identity(identity)
        templates = self._copy_templates()
        items = templates.setdefault(key, [])
        if any(compare_hashes(hash, item.hash) for item in items):
            logger.debug(f"{identity} @ {hash} is already in the manifest")
        else:
            items.append(CacheItem(name=name, hash=hash, timestamp=_now_millis()))

        self._write_manifest(CacheManifest(templates=templates))
        logger.info(f"Cached {identity} @ {hash}")

    def read(self, identity: str, hash: str) -> bytes | None:
        """Return the cached tarball for the identity and (short) hash, if any.

        Raises:
            CacheIOError: If the manifest lists the revision but its tarball
                cannot be read.
        """
        items = self.manifest.templates.get(encode_identity(identity), [])
        item = next((item for item in items if compare_hashes(hash, item.hash)), None)

        if item is None:
            logger.info(f"Cache miss for {identity} @ {hash}")
            return None

        blob = self.blob_path(item.hash)
        try:
            contents = blob.read_bytes()
        except OSError as e:
            raise CacheIOError(f"Failed to read the cached tarball: {blob}.") from e

        logger.info(f"Cache hit for {identity} @ {item.hash}")
        return contents

    def list(self) -> list[CacheBucket]:
        """List cached repositories, most recent revisions first.

        Raises:
            CacheCorruptionError: If a manifest key cannot be decoded.
        """
        buckets: list[CacheBucket] = []
        for key, items in self.manifest.templates.items():
            identity = decode_identity(key)
            buckets.append(
                CacheBucket(
                    identity=identity,
                    descriptor=self._parse_identity(identity),
                    items=sorted(items, key=lambda item: item.timestamp, reverse=True),
                )
            )
        return buckets

    def remove(self, terms: Iterable[str]) -> list[RemovedItem]:
        """Remove cached revisions matching any of the search terms.

        A term is either a repository identity such as `github:foo/bar`, which
        removes every revision of that repository, or a ref name or (short)
        hash, which removes matching revisions of every repository.

        Tarball deletion failures are reported per item and never stop the
        batch; the manifest entries are removed regardless.
        """
        selection = self._select(terms)
        identities = {key: decode_identity(key) for key in selection}

        remaining = {
            key: [item for item in items if item not in selection.get(key, [])]
            for key, items in self.manifest.templates.items()
        }
        still_used = {item.hash for items in remaining.values() for item in items}

        removed: list[RemovedItem] = []
        deleted: set[str] = set()
        for key, items in selection.items():
            for item in sorted(items, key=lambda item: item.timestamp, reverse=True):
                removed.append(self._delete_blob(identities[key], item, still_used, deleted))

        self._write_manifest(CacheManifest(templates=remaining))
        return removed

    def remove_all(self) -> None:
        """Remove every cached tarball, then write an empty manifest.

        The current manifest is never read, so this also recovers a cache
        whose manifest is corrupt.
        """
        try:
            shutil.rmtree(self.tarballs_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise CacheIOError(f"Failed to clear the '{CACHE_TARBALLS_DIR}' directory.") from e

        self._write_manifest(CacheManifest())
        logger.info(f"Cleared the cache at {self.root}")

    def _select(self, terms: Iterable[str]) -> dict[str, list[CacheItem]]:
        """Select the manifest items matched by the search terms."""
        selection: dict[str, list[CacheItem]] = {}

        for term in terms:
            key = encode_identity(term)
            if key in self.manifest.templates:
                matches = {key: self.manifest.templates[key]}
            else:
                matches = {}
                for key, items in self.manifest.templates.items():
                    droppable = [
                        item
                        for item in items
                        if item.name == term or compare_hashes(item.hash, term)
                    ]
                    if droppable:
                        matches[key] = droppable

            for key, items in matches.items():
                selected = selection.setdefault(key, [])
                for item in items:
                    if item not in selected:
                        selected.append(item)

        return selection

    def _delete_blob(
        self,
        identity: str,
        item: CacheItem,
        still_used: set[str],
        deleted: set[str],
    ) -> RemovedItem:
        if item.hash in still_used:
            return RemovedItem(identity=identity, item=item, blob_deleted=False, shared=True)
        if item.hash in deleted:
            return RemovedItem(identity=identity, item=item, blob_deleted=True)

        blob = self.blob_path(item.hash)
        try:
            blob.unlink()
        except OSError as e:
            logger.warning(f"Failed to delete {blob}: {e}")
            return RemovedItem(identity=identity, item=item, blob_deleted=False, error=str(e))

        deleted.add(item.hash)
        return RemovedItem(identity=identity, item=item, blob_deleted=True)

    @staticmethod
    def _parse_identity(identity: str) -> RepositoryDescriptor:
        try:
            return parse_reference(identity)
        except ParseError as e:
            raise CacheCorruptionError(f"Couldn't parse entry: `{identity}`.") from e
