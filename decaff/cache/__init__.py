"""Local tarball cache."""

from decaff.cache.store import (
    CACHE_MANIFEST,
    CACHE_TARBALLS_DIR,
    ContentCache,
    compare_hashes,
    decode_identity,
    default_cache_root,
    encode_identity,
)

__all__ = [
    "CACHE_MANIFEST",
    "CACHE_TARBALLS_DIR",
    "ContentCache",
    "compare_hashes",
    "decode_identity",
    "default_cache_root",
    "encode_identity",
]
