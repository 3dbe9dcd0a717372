"""Scaffolder - turns a template reference into a new project directory."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from decaff.actions.executor import ActionExecutor, ExecutionReport
from decaff.cache.store import ContentCache
from decaff.errors import ScaffoldError, UnpackError
from decaff.models.actions import Replacement
from decaff.models.config import CONFIG_NAME, TemplateConfig
from decaff.models.repository import RepositoryDescriptor
from decaff.repository.parser import parse_reference
from decaff.repository.remote import TarballFetcher
from decaff.repository.resolver import RefLister, resolve_hash
from decaff.unpack import unpack_tarball

logger = logging.getLogger(__name__)

Prompt = Callable[[Replacement], str]


@dataclass
class ScaffoldResult:
    """Outcome of a scaffold run. Local runs have no descriptor or hash."""

    destination: Path
    descriptor: RepositoryDescriptor | None = None
    hash: str | None = None
    from_cache: bool = False
    report: ExecutionReport | None = None


class Scaffolder:
    """Main interface: resolve, fetch (or reuse), unpack and run a template.

    Local template directories skip the remote steps and are copied instead.
    """

    def __init__(
        self,
        cache: ContentCache,
        lister: RefLister | None = None,
        fetcher: TarballFetcher | None = None,
    ) -> None:
        self.cache = cache
        self.lister = lister or RefLister()
        self.fetcher = fetcher or TarballFetcher()

    async def scaffold(
        self,
        src: str,
        path: str | Path | None = None,
        ref: str | None = None,
        values: dict[str, str] | None = None,
        prompt: Prompt | None = None,
        delete_config: bool = False,
        use_cache: bool = True,
    ) -> ScaffoldResult:
        """Scaffold `src` into `path` (defaults to the repository name).

        `ref` overrides the selector given in `src`. Replacement values not in
        `values` are asked for through `prompt`; without one the tag is kept.

        Raises:
            ScaffoldError: If the destination already exists.
            DecaffError: Any parse, remote, cache, unpack or action error.
        """
        descriptor = parse_reference(src).with_selector(ref)
        destination = Path(path) if path else Path(descriptor.repo)
        if destination.exists():
            raise ScaffoldError(
                f"Destination already exists: {destination}.",
                help="Pick another path or remove the existing one.",
            )

        refs = await self.lister.list_refs(descriptor)
        hash = resolve_hash(descriptor, refs)
        logger.info(f"Resolved {descriptor} to {hash}")

        contents = self.cache.read(descriptor.identity, hash) if use_cache else None
        from_cache = contents is not None
        if contents is None:
            contents = await self.fetcher.fetch(descriptor.tarball_url(hash))
            self.cache.write(descriptor.identity, descriptor.selector, hash, contents)

        try:
            unpack_tarball(contents, destination)
        except UnpackError:
            shutil.rmtree(destination, ignore_errors=True)
            raise

        result = ScaffoldResult(
            descriptor=descriptor, hash=hash, destination=destination, from_cache=from_cache
        )
        result.report = await self._execute(destination, values, prompt, delete_config)
        return result

    async def scaffold_local(
        self,
        src: str | Path,
        path: str | Path | None = None,
        values: dict[str, str] | None = None,
        prompt: Prompt | None = None,
        delete_config: bool = False,
    ) -> ScaffoldResult:
        """Scaffold the local template directory `src` into `path`.

        `path` defaults to the directory name of `src`. The template is copied
        as-is, except for its `.git`, which is removed from the copy.

        Raises:
            ScaffoldError: If the source is not a directory, or the destination
                already exists or lies inside the source.
            DecaffError: Any config or action error.
        """
        source = Path(src).expanduser()
        if not source.is_dir():
            raise ScaffoldError(f"Template directory not found: {source}.")

        destination = Path(path) if path else Path(source.resolve().name)
        if destination.exists():
            raise ScaffoldError(
                f"Destination already exists: {destination}.",
                help="Pick another path or remove the existing one.",
            )
        if destination.resolve().is_relative_to(source.resolve()):
            raise ScaffoldError(f"Destination {destination} is inside the template {source}.")

        logger.info(f"Copying {source} into {destination}")
        try:
            shutil.copytree(source, destination, symlinks=True)
        except OSError as e:
            raise ScaffoldError(f"Failed to copy {source} into {destination}.") from e

        # Worktrees and submodules have a `.git` file instead of a directory.
        inner_git = destination / ".git"
        if inner_git.exists() or inner_git.is_symlink():
            logger.info(f"Removing {inner_git}")
            try:
                if inner_git.is_dir() and not inner_git.is_symlink():
                    shutil.rmtree(inner_git)
                else:
                    inner_git.unlink()
            except OSError as e:
                raise ScaffoldError(f"Failed to remove {inner_git}.") from e

        result = ScaffoldResult(destination=destination)
        result.report = await self._execute(destination, values, prompt, delete_config)
        return result

    async def _execute(
        self,
        destination: Path,
        values: dict[str, str] | None,
        prompt: Prompt | None,
        delete_config: bool,
    ) -> ExecutionReport | None:
        config = TemplateConfig.load(destination)
        if config is None:
            logger.info(f"No {CONFIG_NAME} in template, nothing to execute")
            return None

        filled = collect_values(config.replacements, values or {}, prompt)
        report = await ActionExecutor(destination, config, filled).execute()

        if delete_config:
            (destination / CONFIG_NAME).unlink(missing_ok=True)
            logger.info(f"Deleted {CONFIG_NAME}")

        return report


def collect_values(
    replacements: list[Replacement],
    values: dict[str, str],
    prompt: Prompt | None = None,
) -> dict[str, str]:
    """Pick a value for every declared replacement tag.

    Values given up front win. Remaining tags are prompted for, or keep the
    tag itself when there is no prompt. Extra values are passed through.
    """
    filled = dict(values)
    for replacement in replacements:
        if replacement.tag in filled:
            continue
        filled[replacement.tag] = prompt(replacement) if prompt else replacement.tag
    return filled
