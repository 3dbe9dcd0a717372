"""Template reference parsing.

Turns strings like ``gh:user/repo#branch`` into a `RepositoryDescriptor`.
Accepted shapes::

    user/repo
    user/repo#ref
    host:user/repo
    host:user/repo#feat/some-branch

Errors point at the offending part of the input.
"""

from __future__ import annotations

import re

from decaff.errors import ParseError, ParseErrorKind, Span
from decaff.models.repository import DEFAULT_SELECTOR, RepositoryDescriptor, RepositoryHost

VALID_USER = re.compile(r"[A-Za-z0-9_-]+")
VALID_REPO = re.compile(r"[A-Za-z0-9_.-]+")


def parse_reference(value: str) -> RepositoryDescriptor:
    """Parse a template reference into a repository descriptor.

    Raises:
        ParseError: If the reference is malformed.
    """
    source = value.strip()

    # Host prefix, only if the colon comes before any slash.
    colon = source.find(":")
    slash = source.find("/")
    if colon != -1 and (slash == -1 or colon < slash):
        token = source[:colon]
        host = RepositoryHost.from_token(token)
        if host is None:
            raise ParseError(
                ParseErrorKind.INVALID_HOST,
                f"Invalid host: `{token}`.",
                source=source,
                span=Span(0, len(token)),
                help="must be one of: github/gh, gitlab/gl, or bitbucket/bb",
            )
        rest = source[colon + 1 :]
        offset = colon + 1
    else:
        host = RepositoryHost.GITHUB
        rest = source
        offset = 0

    # User name.
    if "/" not in rest:
        raise ParseError(ParseErrorKind.MISSING_REPOSITORY, "Missing repository name.")
    user, rest = rest.split("/", 1)
    if not VALID_USER.fullmatch(user):
        raise ParseError(
            ParseErrorKind.INVALID_USER,
            f"Invalid user name: `{user}`.",
            source=source,
            span=Span(offset, len(user)),
            help="only ASCII alphanumeric characters, _ and - allowed",
        )
    offset += len(user) + 1

    # A second slash is only allowed inside the ref, after `#`.
    slash_idx = rest.find("/")
    if slash_idx != -1:
        hash_idx = rest.find("#")
        if hash_idx == -1 or slash_idx < hash_idx:
            raise ParseError(
                ParseErrorKind.MULTIPLE_SLASHES,
                "Multiple slashes in the input.",
                source=source,
                span=Span(offset + slash_idx, 1),
                help="remove this",
            )

    # Repository name and optional ref.
    repo, _, selector = rest.partition("#")
    if not VALID_REPO.fullmatch(repo):
        raise ParseError(
            ParseErrorKind.INVALID_REPOSITORY,
            f"Invalid repository name: `{repo}`.",
            source=source,
            span=Span(offset, len(repo)),
            help="only ASCII alphanumeric characters, _, - and . allowed",
        )

    return RepositoryDescriptor(
        host=host,
        user=user,
        repo=repo,
        selector=selector or DEFAULT_SELECTOR,
    )
