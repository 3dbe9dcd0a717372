"""decaff - Scaffold projects from remote repository templates."""

from decaff.app import Scaffolder
from decaff.cache.store import ContentCache
from decaff.errors import DecaffError
from decaff.models.repository import RepositoryDescriptor, RepositoryHost
from decaff.repository.parser import parse_reference

__version__ = "0.1.0"
__all__ = [
    "Scaffolder",
    "ContentCache",
    "DecaffError",
    "RepositoryDescriptor",
    "RepositoryHost",
    "parse_reference",
]
