"""Remote repository handling: reference parsing, ref resolution and download."""

from decaff.repository.parser import parse_reference
from decaff.repository.remote import TarballFetcher
from decaff.repository.resolver import RefLister, parse_ls_remote, resolve_hash

__all__ = ["parse_reference", "resolve_hash", "parse_ls_remote", "RefLister", "TarballFetcher"]
