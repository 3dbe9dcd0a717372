"""Data models for decaff."""

from decaff.models.actions import (
    ActionSuite,
    AtomicAction,
    CopyAction,
    DeleteAction,
    MoveAction,
    Replacement,
    RunAction,
    UnknownAction,
)
from decaff.models.cache import CacheBucket, CacheItem, CacheManifest, RemovedItem
from decaff.models.config import CONFIG_NAME, TemplateConfig
from decaff.models.repository import (
    DEFAULT_SELECTOR,
    RepositoryDescriptor,
    RepositoryHost,
)

__all__ = [
    # Repository models
    "DEFAULT_SELECTOR",
    "RepositoryDescriptor",
    "RepositoryHost",
    # Cache models
    "CacheBucket",
    "CacheItem",
    "CacheManifest",
    "RemovedItem",
    # Action models
    "ActionSuite",
    "AtomicAction",
    "CopyAction",
    "DeleteAction",
    "MoveAction",
    "Replacement",
    "RunAction",
    "UnknownAction",
    # Template config
    "CONFIG_NAME",
    "TemplateConfig",
]
