"""Ref listing and selector resolution."""

from __future__ import annotations

import asyncio
import logging
import re

from decaff.errors import InvalidSelectorError, RemoteError
from decaff.models.repository import DEFAULT_SELECTOR, RepositoryDescriptor

logger = logging.getLogger(__name__)

MIN_SHORT_HASH = 7
OBJECT_ID = re.compile(r"[0-9a-fA-F]{7,40}")

HEADS_PREFIX = "refs/heads/"
TAGS_PREFIX = "refs/tags/"
PEELED_SUFFIX = "^{}"


def is_object_id(value: str) -> bool:
    """Check whether `value` looks like a (possibly short) commit hash."""
    return OBJECT_ID.fullmatch(value) is not None


def resolve_hash(descriptor: RepositoryDescriptor, refs: dict[str, str]) -> str:
    """Resolve the descriptor's selector to a commit hash.

    Branch and tag names (and `HEAD`) are looked up directly. Anything else of
    at least 7 hex characters is treated as a commit hash: a ref tip starting
    with it wins, otherwise the selector is returned as-is since it is most
    likely a commit that is not the tip of any branch.

    Raises:
        InvalidSelectorError: If the selector is neither a ref nor a hash.
    """
    selector = descriptor.selector

    if selector in refs:
        return refs[selector]

    if len(selector) >= MIN_SHORT_HASH:
        if not is_object_id(selector):
            raise InvalidSelectorError(selector)
        prefix = selector.lower()
        for full_hash in refs.values():
            if full_hash.startswith(prefix):
                return full_hash
        logger.debug(f"{selector} is not a ref tip, using it verbatim")
        return selector

    raise InvalidSelectorError(selector)


def parse_ls_remote(output: str) -> dict[str, str]:
    """Parse `git ls-remote` output into a ref name -> hash mapping.

    Branch and tag prefixes are stripped. For annotated tags the peeled
    commit (`<tag>^{}`) replaces the tag object hash.
    """
    refs: dict[str, str] = {}
    peeled: dict[str, str] = {}

    for line in output.splitlines():
        parts = line.split()
        if len(parts) != 2:
            continue
        oid, ref = parts

        if ref == DEFAULT_SELECTOR:
            name = ref
        elif ref.startswith(HEADS_PREFIX):
            name = ref[len(HEADS_PREFIX) :]
        elif ref.startswith(TAGS_PREFIX):
            name = ref[len(TAGS_PREFIX) :]
        else:
            continue

        if name.endswith(PEELED_SUFFIX):
            peeled[name[: -len(PEELED_SUFFIX)]] = oid
        else:
            refs[name] = oid

    refs.update(peeled)
    return refs


class RefLister:
    """Lists the refs of a remote repository using `git ls-remote`."""

    def __init__(self, git: str = "git") -> None:
        self.git = git

    async def list_refs(self, descriptor: RepositoryDescriptor) -> dict[str, str]:
        """Fetch the refs of the remote repository.

        Raises:
            RemoteError: If git cannot be started or the remote is unreachable.
        """
        url = descriptor.git_url
        logger.info(f"Listing refs of {url}")

        try:
            process = await asyncio.create_subprocess_exec(
                self.git,
                "ls-remote",
                url,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise RemoteError("Failed to start git to list remote refs.", url=url) from e

        stdout, stderr = await process.communicate()

        if process.returncode != 0:
            logger.debug(f"git ls-remote failed: {stderr.decode(errors='replace').strip()}")
            raise RemoteError("Failed to connect the given remote.", url=url)

        refs = parse_ls_remote(stdout.decode())
        logger.debug(f"Found {len(refs)} refs for {descriptor.identity}")
        return refs
