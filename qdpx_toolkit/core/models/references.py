from __future__ import annotations

"""Identifiers, pointer-by-identifier references and typed variable values.

References are edges, not entities: they carry a single ``target_guid`` and
own nothing. :class:`VariableValue` is the tagged union attached to a
:class:`VariableRef`.
"""

import math
import re
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

__all__ = [
    "GUID_PATTERN",
    "is_valid_guid",
    "normalize_guid",
    "new_guid",
    "RefKind",
    "Reference",
    "NoteRef",
    "CodeRef",
    "SourceRef",
    "SelectionRef",
    "VariableRef",
    "VariableType",
    "VariableValue",
]

_HEX_GUID = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"

# Canonical 8-4-4-4-12 form, optionally wrapped in a matching pair of braces.
GUID_PATTERN = re.compile(rf"^(?:{_HEX_GUID}|\{{{_HEX_GUID}\}})$")


def is_valid_guid(value: object) -> bool:
    """Return True when *value* is a GUID string in canonical form."""
    return isinstance(value, str) and GUID_PATTERN.match(value) is not None


def normalize_guid(value: str) -> str:
    """Return the comparison key for *value* (braces stripped, lower-cased)."""
    value = value.strip()
    if value.startswith("{") and value.endswith("}"):
        value = value[1:-1]
    return value.lower()


def new_guid() -> str:
    """Generate a new identifier in canonical GUID form."""
    return str(uuid.uuid4())


class RefKind(Enum):
    """Closed set of reference kinds, valued by their element name."""

    NOTE = "NoteRef"
    CODE = "CodeRef"
    SOURCE = "SourceRef"
    SELECTION = "SelectionRef"
    VARIABLE = "VariableRef"


@dataclass
class Reference:
    target_guid: str

    kind: ClassVar[RefKind]


@dataclass
class NoteRef(Reference):
    kind: ClassVar[RefKind] = RefKind.NOTE


@dataclass
class CodeRef(Reference):
    kind: ClassVar[RefKind] = RefKind.CODE


@dataclass
class SourceRef(Reference):
    kind: ClassVar[RefKind] = RefKind.SOURCE


@dataclass
class SelectionRef(Reference):
    kind: ClassVar[RefKind] = RefKind.SELECTION


@dataclass
class VariableRef(Reference):
    kind: ClassVar[RefKind] = RefKind.VARIABLE


class VariableType(Enum):
    """``typeOfVariable`` values; also selects the value element name."""

    TEXT = "Text"
    BOOLEAN = "Boolean"
    INTEGER = "Integer"
    FLOAT = "Float"
    DATE = "Date"
    DATETIME = "DateTime"

    @property
    def element_name(self) -> str:
        return f"{self.value}Value"

    @classmethod
    def from_element_name(cls, name: str) -> "VariableType":
        for member in cls:
            if member.element_name == name:
                return member
        raise ValueError(f"Unknown variable value element: {name}")


ScalarValue = Union[str, bool, int, float]


@dataclass
class VariableValue:
    """Exactly one typed value bound to a variable.

    Dates and date-times are kept as their lexical ``xsd:date`` /
    ``xsd:dateTime`` text so they round-trip unchanged.
    """

    variable_ref: VariableRef
    value_type: VariableType
    value: ScalarValue

    def __post_init__(self) -> None:
        vt = self.value_type
        v = self.value
        if vt is VariableType.BOOLEAN:
            ok = isinstance(v, bool)
        elif vt is VariableType.INTEGER:
            ok = isinstance(v, int) and not isinstance(v, bool)
        elif vt is VariableType.FLOAT:
            ok = isinstance(v, (int, float)) and not isinstance(v, bool)
            if ok:
                self.value = v = float(v)
                ok = math.isfinite(v)
        else:
            ok = isinstance(v, str)
        if not ok:
            raise TypeError(f"{vt.value} variable value cannot hold {v!r}")

    # Convenience constructors -------------------------------------------
    @classmethod
    def text(cls, variable_guid: str, value: str) -> "VariableValue":
        return cls(VariableRef(variable_guid), VariableType.TEXT, value)

    @classmethod
    def boolean(cls, variable_guid: str, value: bool) -> "VariableValue":
        return cls(VariableRef(variable_guid), VariableType.BOOLEAN, value)

    @classmethod
    def integer(cls, variable_guid: str, value: int) -> "VariableValue":
        return cls(VariableRef(variable_guid), VariableType.INTEGER, value)

    @classmethod
    def floating(cls, variable_guid: str, value: float) -> "VariableValue":
        return cls(VariableRef(variable_guid), VariableType.FLOAT, value)

    @classmethod
    def date(cls, variable_guid: str, value: str) -> "VariableValue":
        return cls(VariableRef(variable_guid), VariableType.DATE, value)

    @classmethod
    def datetime(cls, variable_guid: str, value: str) -> "VariableValue":
        return cls(VariableRef(variable_guid), VariableType.DATETIME, value)
