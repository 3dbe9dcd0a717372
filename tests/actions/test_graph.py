"""Tests for suite dependency ordering."""

from __future__ import annotations

from decaff.actions.graph import SuiteGraph, resolve_requirements
from decaff.models.actions import ActionSuite


def suite(name: str, *requirements: str) -> ActionSuite:
    return ActionSuite(name=name, requirements=requirements)


def names(suites: list[ActionSuite]) -> list[str]:
    return [s.name for s in suites]


class TestSuiteGraph:
    """Tests for resolving suite requirements."""

    def test_no_requirements_keeps_order(self):
        resolved, unresolved = SuiteGraph([suite("a"), suite("b"), suite("c")]).resolve()

        assert names(resolved) == ["a", "b", "c"]
        assert unresolved == []

    def test_requirements_run_first(self):
        resolved, unresolved = SuiteGraph(
            [suite("app", "deps"), suite("deps", "base"), suite("base")]
        ).resolve()

        assert names(resolved) == ["base", "deps", "app"]
        assert unresolved == []

    def test_every_suite_after_its_requirements(self):
        suites = [suite("d", "b", "c"), suite("c", "a"), suite("b", "a"), suite("a")]

        resolved, _ = SuiteGraph(suites).resolve()

        order = names(resolved)
        for s in suites:
            for requirement in s.requirements:
                assert order.index(requirement) < order.index(s.name)

    def test_missing_requirement(self):
        resolved, unresolved = SuiteGraph(
            [suite("base"), suite("app", "base", "ghost"), suite("docs", "ghost")]
        ).resolve()

        assert names(resolved) == ["base"]
        assert unresolved == ["ghost"]

    def test_transitively_blocked(self):
        resolved, unresolved = SuiteGraph(
            [suite("a", "missing"), suite("b", "a"), suite("c")]
        ).resolve()

        assert names(resolved) == ["c"]
        assert "missing" in unresolved
        assert "a" in unresolved

    def test_cycle_terminates(self):
        resolved, unresolved = SuiteGraph(
            [suite("a", "b"), suite("b", "a"), suite("c")]
        ).resolve()

        assert names(resolved) == ["c"]
        assert sorted(unresolved) == ["a", "b"]

    def test_self_requirement(self):
        resolved, unresolved = SuiteGraph([suite("a", "a")]).resolve()

        assert resolved == []
        assert unresolved == ["a"]

    def test_empty(self):
        assert resolve_requirements([]) == ([], [])
