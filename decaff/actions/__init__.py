"""Template actions: suite ordering and execution."""

from decaff.actions.executor import ActionExecutor, ExecutionReport
from decaff.actions.graph import SuiteGraph, resolve_requirements

__all__ = ["ActionExecutor", "ExecutionReport", "SuiteGraph", "resolve_requirements"]
