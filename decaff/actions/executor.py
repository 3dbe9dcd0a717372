"""Execution of template actions against an unpacked template."""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from decaff.actions.graph import SuiteGraph
from decaff.errors import ActionError
from decaff.models.actions import (
    AtomicAction,
    CopyAction,
    DeleteAction,
    MoveAction,
    RunAction,
    UnknownAction,
)
from decaff.models.config import TemplateConfig

logger = logging.getLogger(__name__)

GLOB_CHARS = frozenset("*?[")


@dataclass
class ExecutionReport:
    """What happened while executing a template's actions."""

    suites: list[str] = field(default_factory=list)
    actions: int = 0
    unresolved: list[str] = field(default_factory=list)
    unknown: list[str] = field(default_factory=list)
    replaced_files: int = 0


class ActionExecutor:
    """Runs the replacements and actions of a template inside `root`.

    All paths in actions are relative to `root` and may not leave it.
    """

    def __init__(
        self,
        root: Path,
        config: TemplateConfig,
        values: dict[str, str] | None = None,
    ) -> None:
        self.root = Path(root)
        self.config = config
        self.values = values or {}

    async def execute(self) -> ExecutionReport:
        """Apply replacements, then run suites in dependency order.

        Suites whose requirements cannot be satisfied are skipped and their
        missing requirement names reported; the remaining suites still run.
        """
        report = ExecutionReport()

        if self.values:
            report.replaced_files = self.apply_replacements()

        if self.config.suites:
            resolved, unresolved = SuiteGraph(self.config.suites).resolve()
            report.unresolved = unresolved
            if unresolved:
                logger.warning(f"Unresolved requirements: {', '.join(unresolved)}")

            for suite in resolved:
                logger.info(f"Running suite {suite.name}")
                await self.run_actions(suite.actions, report)
                report.suites.append(suite.name)
        else:
            await self.run_actions(self.config.actions, report)

        return report

    def apply_replacements(self) -> int:
        """Replace every tag with its value in all text files under the root.

        Returns the number of files changed. Binary files are left alone.
        """
        changed = 0
        for path in sorted(self.root.rglob("*")):
            if not path.is_file() or path.is_symlink():
                continue
            try:
                text = path.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                continue
            except OSError as e:
                raise ActionError(f"Couldn't read {path} for replacements.") from e

            updated = text
            for tag, value in self.values.items():
                updated = updated.replace(tag, value)

            if updated != text:
                try:
                    path.write_text(updated, encoding="utf-8")
                except OSError as e:
                    raise ActionError(f"Couldn't write replacements to {path}.") from e
                changed += 1

        logger.info(f"Applied replacements to {changed} files")
        return changed

    async def run_actions(
        self,
        actions: tuple[AtomicAction, ...] | list[AtomicAction],
        report: ExecutionReport,
    ) -> None:
        for action in actions:
            if isinstance(action, UnknownAction):
                logger.warning(f"Unknown action: `{action.name}`, skipping")
                report.unknown.append(action.name)
                continue
            await self.run_action(action)
            report.actions += 1

    async def run_action(self, action: AtomicAction) -> None:
        """Run a single action.

        Raises:
            ActionError: If the action is incomplete or fails.
        """
        if isinstance(action, CopyAction):
            self._transfer(action, move=False)
        elif isinstance(action, MoveAction):
            self._transfer(action, move=True)
        elif isinstance(action, DeleteAction):
            self._delete(action)
        elif isinstance(action, RunAction):
            await self._run(action)
        else:
            raise ActionError(f"Unknown action: `{action.name}`.")

    def _resolve(self, relative: Path) -> Path:
        path = self.root / relative
        if not path.resolve().is_relative_to(self.root.resolve()):
            raise ActionError(f"Path `{relative}` points outside of the template.")
        return path

    def _expand(self, pattern: Path) -> tuple[list[Path], bool]:
        """Expand a possibly glob-based path. Returns matches and whether it was a glob."""
        if GLOB_CHARS.intersection(str(pattern)):
            matches = [
                self._resolve(match.relative_to(self.root))
                for match in self.root.glob(str(pattern))
            ]
            return sorted(matches), True
        path = self._resolve(pattern)
        return ([path] if path.exists() else []), False

    def _transfer(self, action: CopyAction | MoveAction, move: bool) -> None:
        verb = "move" if move else "copy"
        if action.source is None or action.destination is None:
            raise ActionError(f"`{verb}` requires both `from` and `to`.")

        sources, is_glob = self._expand(action.source)
        if not sources:
            raise ActionError(f"Nothing to {verb}: `{action.source}` does not exist.")

        destination = self._resolve(action.destination)
        for source in sources:
            target = destination / source.name if is_glob else destination
            if target.exists() and not action.overwrite:
                logger.info(f"Skipping {verb} to {target}, it already exists")
                continue

            logger.info(f"{verb.capitalize()} {source} -> {target}")
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                if move:
                    if target.exists():
                        _remove(target)
                    shutil.move(str(source), str(target))
                elif source.is_dir():
                    shutil.copytree(source, target, dirs_exist_ok=True)
                else:
                    shutil.copy2(source, target)
            except OSError as e:
                raise ActionError(f"Failed to {verb} `{source}` to `{target}`.") from e

    def _delete(self, action: DeleteAction) -> None:
        if action.target is None:
            raise ActionError("`delete` requires a target.")

        targets, _ = self._expand(action.target)
        if not targets:
            logger.debug(f"Nothing to delete for `{action.target}`")

        for target in targets:
            logger.info(f"Delete {target}")
            try:
                _remove(target)
            except OSError as e:
                raise ActionError(f"Failed to delete `{target}`.") from e

    async def _run(self, action: RunAction) -> None:
        if not action.command:
            raise ActionError("`run` requires a command.")

        logger.info(f"Run {action.command}")
        try:
            process = await asyncio.create_subprocess_shell(action.command, cwd=self.root)
        except OSError as e:
            raise ActionError(f"Failed to start `{action.command}`.") from e

        returncode = await process.wait()
        if returncode != 0:
            raise ActionError(f"Command `{action.command}` exited with code {returncode}.")


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()
