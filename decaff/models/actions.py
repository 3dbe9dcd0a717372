"""Template action models."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class CopyAction(BaseModel):
    """Copies a file or directory. Glob-friendly. Overwrites by default."""

    kind: Literal["copy"] = "copy"
    source: Path | None = Field(default=None, alias="from")
    destination: Path | None = Field(default=None, alias="to")
    overwrite: bool = True

    model_config = {"frozen": True, "populate_by_name": True}


class MoveAction(BaseModel):
    """Moves a file or directory. Glob-friendly. Overwrites by default."""

    kind: Literal["move"] = "move"
    source: Path | None = Field(default=None, alias="from")
    destination: Path | None = Field(default=None, alias="to")
    overwrite: bool = True

    model_config = {"frozen": True, "populate_by_name": True}


class DeleteAction(BaseModel):
    """Deletes a file or directory. Glob-friendly."""

    kind: Literal["delete"] = "delete"
    target: Path | None = None

    model_config = {"frozen": True}


class RunAction(BaseModel):
    """Runs an arbitrary command in the shell."""

    kind: Literal["run"] = "run"
    command: str | None = None

    model_config = {"frozen": True}


class UnknownAction(BaseModel):
    """Placeholder for directives this version does not know about."""

    kind: Literal["unknown"] = "unknown"
    name: str

    model_config = {"frozen": True}


AtomicAction = Annotated[
    Union[CopyAction, MoveAction, DeleteAction, RunAction, UnknownAction],
    Field(discriminator="kind"),
]


class ActionSuite(BaseModel):
    """A named group of actions that may depend on other suites."""

    name: str = Field(..., description="Suite name, unique within a template")
    actions: tuple[AtomicAction, ...] = Field(default_factory=tuple)
    requirements: tuple[str, ...] = Field(
        default_factory=tuple, description="Names of suites that must run first"
    )

    model_config = {"frozen": True}


class Replacement(BaseModel):
    """A literal placeholder in the template and the prompt describing it."""

    tag: str
    description: str

    model_config = {"frozen": True}
