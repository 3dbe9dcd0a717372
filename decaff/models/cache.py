"""Cache manifest models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from decaff.models.repository import RepositoryDescriptor


class CacheItem(BaseModel):
    """A cached revision of a template repository."""

    name: str = Field(..., description="Ref name or commit hash as requested")
    hash: str = Field(..., description="Resolved commit hash, either short or full")
    timestamp: int = Field(..., description="Unix timestamp in milliseconds")

    model_config = {"frozen": True}


class CacheManifest(BaseModel):
    """Cache manifest.

    Stored as TOML::

        [[templates.<entry>]]
        name = "<name>"
        hash = "<hash>"
        timestamp = <timestamp>

    Where ``<entry>`` is the unpadded Base 32 encoding of the
    ``<host>:<user>/<repo>`` identity string.
    """

    templates: dict[str, list[CacheItem]] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}

    def normalize(self) -> None:
        """Drop buckets that have no items left."""
        self.templates = {key: items for key, items in self.templates.items() if items}


class CacheBucket(BaseModel):
    """A decoded manifest bucket, ready for display."""

    identity: str
    descriptor: RepositoryDescriptor
    items: list[CacheItem] = Field(default_factory=list)


class RemovedItem(BaseModel):
    """Outcome of removing a single cached revision."""

    identity: str
    item: CacheItem
    blob_deleted: bool
    shared: bool = Field(
        default=False, description="Blob kept because a remaining entry still uses it"
    )
    error: str | None = None
