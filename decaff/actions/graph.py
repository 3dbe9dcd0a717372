"""Dependency ordering for action suites."""

from __future__ import annotations

from typing import Sequence

from decaff.models.actions import ActionSuite


class SuiteGraph:
    """Orders action suites so that every suite runs after its requirements.

    Resolution is a fixed-point iteration over the suites in declaration
    order. It stops as soon as a full pass makes no progress, so cycles
    terminate and end up unresolved.
    """

    def __init__(self, suites: Sequence[ActionSuite]) -> None:
        self.suites = list(suites)

    def resolve(self) -> tuple[list[ActionSuite], list[str]]:
        """Partition the suites.

        Returns:
            `(resolved, unresolved)`: resolved suites in execution order, and
            the names of requirements that cannot be satisfied, each reported
            once. Suites depending on an unresolved name are left out.
        """
        known = {suite.name for suite in self.suites}
        unresolved: list[str] = []

        # Requirements naming a suite that does not exist.
        for suite in self.suites:
            for requirement in suite.requirements:
                if requirement not in known and requirement not in unresolved:
                    unresolved.append(requirement)

        resolved: list[ActionSuite] = []
        done: set[str] = set()
        pending = self.suites

        while pending:
            waiting: list[ActionSuite] = []
            for suite in pending:
                if all(requirement in done for requirement in suite.requirements):
                    resolved.append(suite)
                    done.add(suite.name)
                else:
                    waiting.append(suite)

            if len(waiting) == len(pending):
                break
            pending = waiting

        # Whatever is still pending sits in a cycle or behind a missing suite.
        for suite in pending:
            for requirement in suite.requirements:
                if requirement not in done and requirement not in unresolved:
                    unresolved.append(requirement)

        return resolved, unresolved


def resolve_requirements(suites: Sequence[ActionSuite]) -> tuple[list[ActionSuite], list[str]]:
    """Resolve requirements for a list of action suites."""
    return SuiteGraph(suites).resolve()
