"""Object definitions and state values held by the state tree."""

from __future__ import annotations

import time
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ObjectType(StrEnum):
    CHANNEL = "channel"
    STATE = "state"


class ScalarType(StrEnum):
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    MIXED = "mixed"

    @classmethod
    def of(cls, value: Any) -> ScalarType:
        """Return the scalar type a leaf is declared with for *value*."""
        # bool first: it is a subclass of int.
        if isinstance(value, bool):
            return cls.BOOLEAN
        if isinstance(value, (int, float)):
            return cls.NUMBER
        if isinstance(value, str):
            return cls.STRING
        return cls.MIXED


class CommonAttributes(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str | dict[str, str]
    type: ScalarType | None = None
    role: str | None = None
    read: bool = True
    write: bool = False


class ObjectDefinition(BaseModel):
    """Immutable metadata of a node in the state tree.

    Fixed when the node is created and never revised afterwards.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: ObjectType
    common: CommonAttributes
    native: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def folder(cls, name: str = "Auto-Created Folder") -> ObjectDefinition:
        return cls(type=ObjectType.CHANNEL, common=CommonAttributes(name=name))

    @classmethod
    def leaf(
        cls,
        name: str | dict[str, str],
        scalar_type: ScalarType,
        role: str,
        *,
        read: bool = True,
        write: bool = False,
    ) -> ObjectDefinition:
        return cls(
            type=ObjectType.STATE,
            common=CommonAttributes(name=name, type=scalar_type, role=role, read=read, write=write),
        )


class StateValue(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    val: bool | int | float | str | None
    ack: bool = False
    ts: float = Field(default_factory=time.time)


class StateChange(BaseModel):
    """A value write observed on the store."""

    model_config = ConfigDict(frozen=True)

    path: str
    state: StateValue | None
