"""Template configuration loaded from `decaff.yaml`."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from decaff.errors import ConfigError
from decaff.models.actions import (
    ActionSuite,
    AtomicAction,
    CopyAction,
    DeleteAction,
    MoveAction,
    Replacement,
    RunAction,
    UnknownAction,
)

CONFIG_NAME = "decaff.yaml"


class TemplateConfig(BaseModel):
    """Replacements and actions declared by a template.

    Actions are either all suites::

        actions:
          - suite: base
            actions: [...]
          - suite: extra
            requires: base

    or a flat list of single actions::

        actions:
          - copy: {from: a, to: b}
          - run: make
    """

    replacements: list[Replacement] = Field(default_factory=list)
    suites: list[ActionSuite] = Field(default_factory=list)
    actions: list[AtomicAction] = Field(default_factory=list)

    @classmethod
    def from_yaml(cls, path: Path) -> TemplateConfig:
        """Load a template configuration from a YAML file."""
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Couldn't read the config file: {path}.") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Couldn't parse the config file: {path}.\n\n{e}") from e
        return cls.from_data(data)

    @classmethod
    def from_data(cls, data: Any) -> TemplateConfig:
        """Build a configuration from already parsed YAML data."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError("The config file must contain a mapping at the top level.")

        replacements = _to_replacements(data.get("replacements"))
        nodes = data.get("actions") or []
        if not isinstance(nodes, list):
            raise ConfigError("`actions` must be a list.")

        try:
            if nodes and all(_is_suite(node) for node in nodes):
                suites = [_to_suite(node) for node in nodes]
                _check_unique_names(suites)
                return cls(replacements=replacements, suites=suites)
            actions = [to_action(node) for node in nodes]
            return cls(replacements=replacements, actions=actions)
        except ValidationError as e:
            raise ConfigError(f"Invalid action definition.\n\n{e}") from e

    @classmethod
    def load(cls, root: Path) -> TemplateConfig | None:
        """Load the config under `root`, or None if the template has none."""
        path = root / CONFIG_NAME
        if not path.is_file():
            return None
        return cls.from_yaml(path)


def to_action(node: Any) -> AtomicAction:
    """Convert a single action node into an action.

    Directive names are matched case-insensitively. Unknown directives are
    kept as `UnknownAction` so that newer templates still load.
    """
    if isinstance(node, str):
        kind, args = node, None
    elif isinstance(node, dict) and len(node) == 1:
        ((kind, args),) = node.items()
        kind = str(kind)
    else:
        raise ConfigError(f"Malformed action: {node!r}.")

    kind = kind.lower()
    options = args if isinstance(args, dict) else {}
    if kind == "copy":
        return CopyAction.model_validate(_transfer_options(options))
    elif kind == "move":
        return MoveAction.model_validate(_transfer_options(options))
    elif kind == "delete":
        target = args if isinstance(args, str) else options.get("target")
        return DeleteAction(target=target)
    elif kind == "run":
        command = args if isinstance(args, str) else options.get("command")
        return RunAction(command=command)
    return UnknownAction(name=kind)


def _transfer_options(options: dict[str, Any]) -> dict[str, Any]:
    result = {"from": options.get("from"), "to": options.get("to")}
    if options.get("overwrite") is not None:
        result["overwrite"] = options["overwrite"]
    return result


def _is_suite(node: Any) -> bool:
    return isinstance(node, dict) and "suite" in node


def _to_suite(node: dict[str, Any]) -> ActionSuite:
    name = node.get("suite")
    if not isinstance(name, str) or not name:
        raise ConfigError(f"Suite is missing a name: {node!r}.")

    requires = node.get("requires") or []
    if isinstance(requires, str):
        requirements = tuple(requires.split())
    elif isinstance(requires, list):
        requirements = tuple(str(value) for value in requires)
    else:
        raise ConfigError(f"Suite `{name}` has malformed requirements.")

    nodes = node.get("actions") or []
    if not isinstance(nodes, list):
        raise ConfigError(f"Suite `{name}` actions must be a list.")

    return ActionSuite(
        name=name,
        actions=tuple(to_action(child) for child in nodes),
        requirements=requirements,
    )


def _check_unique_names(suites: list[ActionSuite]) -> None:
    seen: set[str] = set()
    for suite in suites:
        if suite.name in seen:
            raise ConfigError(f"Duplicate suite name: `{suite.name}`.")
        seen.add(suite.name)


def _to_replacements(node: Any) -> list[Replacement]:
    if node is None:
        return []
    if isinstance(node, dict):
        items = list(node.items())
    elif isinstance(node, list):
        items = [(tag, None) for tag in node]
    else:
        raise ConfigError("`replacements` must be a mapping or a list.")

    # Description falls back to the tag
    return [
        Replacement(tag=str(tag), description=str(description) if description else str(tag))
        for tag, description in items
    ]
