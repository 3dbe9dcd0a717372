"""Exception hierarchy for decaff.

Every error raised on purpose by decaff derives from :class:`DecaffError`,
carries a human readable ``message`` and, where it helps, a ``help`` line that
the CLI prints below it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

CLEAR_CACHE_HELP = "Manifest may be malformed, clear the cache and try again."


class DecaffError(Exception):
    """Base exception for decaff errors."""

    def __init__(self, message: str, *, help: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.help = help

    def __str__(self) -> str:
        return self.message


# Input errors


@dataclass(frozen=True)
class Span:
    """Byte span within the parsed source string."""

    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length


class ParseErrorKind(str, Enum):
    """What was wrong with a template reference."""

    INVALID_HOST = "invalid_host"
    INVALID_USER = "invalid_user"
    INVALID_REPOSITORY = "invalid_repository"
    MISSING_REPOSITORY = "missing_repository"
    MULTIPLE_SLASHES = "multiple_slashes"


class ParseError(DecaffError):
    """Raised when a template reference cannot be parsed."""

    def __init__(
        self,
        kind: ParseErrorKind,
        message: str,
        *,
        source: str | None = None,
        span: Span | None = None,
        help: str | None = None,
    ) -> None:
        super().__init__(message, help=help)
        self.kind = kind
        self.source = source
        self.span = span

    @property
    def snippet(self) -> str | None:
        """The offending substring, if a span is known."""
        if self.source is None or self.span is None:
            return None
        return self.source[self.span.offset : self.span.end]

    def render(self) -> str:
        """Render the error with the source line and a caret underline."""
        lines = [self.message]
        if self.source is not None and self.span is not None:
            underline = " " * self.span.offset + "^" * max(self.span.length, 1)
            lines.extend(["", f"  {self.source}", f"  {underline}"])
            if self.help:
                lines.append(f"  {' ' * self.span.offset}{self.help}")
        elif self.help:
            lines.append(self.help)
        return "\n".join(lines)


class InvalidSelectorError(DecaffError):
    """Raised when a selector is neither a known ref nor a plausible hash."""

    def __init__(self, selector: str) -> None:
        super().__init__(
            f"Invalid reference: `{selector}`.",
            help="Use a branch name, a tag name or a commit hash of at least 7 characters.",
        )
        self.selector = selector


class ConfigError(DecaffError):
    """Raised when the template configuration is missing fields or malformed."""


# Cache errors


class CacheError(DecaffError):
    """Base exception for cache errors."""


class CacheIOError(CacheError):
    """Raised when reading or writing the cache directory fails.

    The underlying ``OSError`` is chained as ``__cause__``.
    """


class CacheCorruptionError(CacheError):
    """Raised when the manifest or one of its keys cannot be decoded."""

    def __init__(self, message: str) -> None:
        super().__init__(message, help=CLEAR_CACHE_HELP)


# Remote errors


class RemoteError(DecaffError):
    """Raised when listing the refs of a remote repository fails."""

    def __init__(self, message: str, *, url: str) -> None:
        super().__init__(f"{message}\n\nURL: {url}")
        self.url = url


class FetchError(DecaffError):
    """Base exception for tarball download failures."""


class RequestFailedError(FetchError):
    """Raised when the request could not be performed at all."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Request failed.\n\nURL: {url}")
        self.url = url


class RequestFailedWithCodeError(FetchError):
    """Raised when the host answered with a non-success status code."""

    def __init__(self, code: int, url: str) -> None:
        detail = "The requested branch, tag or commit was not found.\n\n" if code == 404 else ""
        super().__init__(f"Repository download failed with code {code}. {detail}URL: {url}")
        self.code = code
        self.url = url

    @property
    def not_found(self) -> bool:
        return self.code == 404


class RequestBodyFailedError(FetchError):
    """Raised when the response body could not be read."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Couldn't get the response body as bytes.\n\nURL: {url}")
        self.url = url


# Execution errors


class UnpackError(DecaffError):
    """Raised when a tarball cannot be unpacked."""


class ActionError(DecaffError):
    """Raised when an action fails during execution."""


class ScaffoldError(DecaffError):
    """Raised when scaffolding cannot proceed."""


__all__ = [
    "CLEAR_CACHE_HELP",
    "DecaffError",
    "Span",
    "ParseErrorKind",
    "ParseError",
    "InvalidSelectorError",
    "ConfigError",
    "CacheError",
    "CacheIOError",
    "CacheCorruptionError",
    "RemoteError",
    "FetchError",
    "RequestFailedError",
    "RequestFailedWithCodeError",
    "RequestBodyFailedError",
    "UnpackError",
    "ActionError",
    "ScaffoldError",
]
