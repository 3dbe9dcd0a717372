"""Remote repository models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

DEFAULT_SELECTOR = "HEAD"


class RepositoryHost(str, Enum):
    """Supported hosts. GitHub is the default one."""

    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"

    @classmethod
    def from_token(cls, token: str) -> RepositoryHost | None:
        """Map a host token or its short alias to a host, ignoring case."""
        return HOST_ALIASES.get(token.lower())


HOST_ALIASES: dict[str, RepositoryHost] = {
    "github": RepositoryHost.GITHUB,
    "gh": RepositoryHost.GITHUB,
    "gitlab": RepositoryHost.GITLAB,
    "gl": RepositoryHost.GITLAB,
    "bitbucket": RepositoryHost.BITBUCKET,
    "bb": RepositoryHost.BITBUCKET,
}


class RepositoryDescriptor(BaseModel):
    """A parsed template reference pointing at a remote repository."""

    host: RepositoryHost = Field(default=RepositoryHost.GITHUB)
    user: str = Field(..., description="User or organization name")
    repo: str = Field(..., description="Repository name")
    selector: str = Field(
        default=DEFAULT_SELECTOR, description="Branch, tag or (short) commit hash"
    )

    model_config = {"frozen": True}

    @property
    def identity(self) -> str:
        """Canonical `host:user/repo` string, independent of the selector."""
        return f"{self.host.value}:{self.user}/{self.repo}"

    @property
    def git_url(self) -> str:
        """Get the git URL used to list remote refs."""
        user, repo = self.user, self.repo
        if self.host == RepositoryHost.GITLAB:
            return f"https://gitlab.com/{user}/{repo}.git"
        if self.host == RepositoryHost.BITBUCKET:
            return f"https://bitbucket.org/{user}/{repo}.git"
        return f"https://github.com/{user}/{repo}.git"

    def tarball_url(self, revision: str | None = None) -> str:
        """Get the tarball download URL for a revision (defaults to the selector)."""
        user, repo = self.user, self.repo
        meta = revision or self.selector
        if self.host == RepositoryHost.GITLAB:
            return f"https://gitlab.com/{user}/{repo}/-/archive/{meta}/{repo}.tar.gz"
        if self.host == RepositoryHost.BITBUCKET:
            return f"https://bitbucket.org/{user}/{repo}/get/{meta}.tar.gz"
        return f"https://github.com/{user}/{repo}/archive/{meta}.tar.gz"

    def with_selector(self, selector: str | None) -> RepositoryDescriptor:
        """Return a copy using `selector`, or this descriptor if it is empty."""
        if not selector:
            return self
        return self.model_copy(update={"selector": selector})

    def __str__(self) -> str:
        return f"{self.identity}#{self.selector}"
