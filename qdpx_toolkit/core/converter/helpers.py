from __future__ import annotations

"""Helper utilities for manifest conversion.

Small, side-effect-free functions shared by the parser and the builder:
namespace handling, strict decoding of typed attribute text and rendering
of Python values back into attribute text.
"""

import math
import re
from enum import Enum
from typing import Callable, List, Optional, Type, TypeVar

from lxml import etree as ET  # type: ignore

from qdpx_toolkit.core.exceptions import MalformedDocumentError, ValueCoercionError

__all__ = [
    "QDA_NAMESPACE",
    "XSI_NAMESPACE",
    "SCHEMA_LOCATION",
    "qname",
    "local_name",
    "iter_children",
    "first_child",
    "child_text",
    "require_attr",
    "optional_attr",
    "parse_bool",
    "parse_int",
    "parse_float",
    "int_attr",
    "optional_int_attr",
    "bool_attr",
    "enum_attr",
    "format_value",
    "set_attr",
    "add_child",
    "add_text_child",
]

QDA_NAMESPACE = "urn:QDA-XML:project:1.0"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
SCHEMA_LOCATION = f"{QDA_NAMESPACE} Project.xsd"

_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")

E = TypeVar("E", bound=Enum)

# ---------------------------------------------------------------------------
# Element navigation
# ---------------------------------------------------------------------------


def qname(name: str) -> str:
    """Return the Clark-notation tag for *name* in the project namespace."""
    return f"{{{QDA_NAMESPACE}}}{name}"


def local_name(element: ET._Element) -> str:
    """Return the tag of *element* without namespace, or ``""`` for comments."""
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    return ET.QName(tag).localname


def iter_children(element: ET._Element, name: str) -> List[ET._Element]:
    """Return direct children named *name* (any namespace), in document order."""
    return [child for child in element if local_name(child) == name]


def first_child(element: ET._Element, name: str) -> Optional[ET._Element]:
    for child in element:
        if local_name(child) == name:
            return child
    return None


def child_text(element: ET._Element, name: str) -> Optional[str]:
    """Text of the first *name* child; ``""`` when present but empty."""
    child = first_child(element, name)
    if child is None:
        return None
    return child.text or ""


# ---------------------------------------------------------------------------
# Attribute decoding
# ---------------------------------------------------------------------------


def require_attr(element: ET._Element, name: str, path: str) -> str:
    value = element.get(name)
    if value is None:
        raise MalformedDocumentError(
            f"Missing required attribute '{name}' on {path}",
            details=[f"{path}@{name}"],
        )
    return value


def optional_attr(element: ET._Element, name: str) -> Optional[str]:
    return element.get(name)


def parse_bool(raw: str, path: str) -> bool:
    """Decode ``xsd:boolean`` text; only ``true`` and ``false`` are accepted."""
    if raw == "true":
        return True
    if raw == "false":
        return False
    raise ValueCoercionError(path, raw, "boolean")


def parse_int(raw: str, path: str) -> int:
    text = raw.strip()
    if not _INT_RE.match(text):
        raise ValueCoercionError(path, raw, "integer")
    return int(text)


def parse_float(raw: str, path: str) -> float:
    text = raw.strip()
    if not _FLOAT_RE.match(text):
        raise ValueCoercionError(path, raw, "float")
    value = float(text)
    if not math.isfinite(value):
        raise ValueCoercionError(path, raw, "finite float")
    return value


def _decode(element: ET._Element, name: str, path: str, required: bool,
            decoder: Callable[[str, str], object]):
    raw = element.get(name)
    if raw is None:
        if required:
            require_attr(element, name, path)
        return None
    return decoder(raw, f"{path}@{name}")


def int_attr(element: ET._Element, name: str, path: str) -> int:
    return _decode(element, name, path, True, parse_int)  # type: ignore[return-value]


def optional_int_attr(element: ET._Element, name: str, path: str) -> Optional[int]:
    return _decode(element, name, path, False, parse_int)  # type: ignore[return-value]


def bool_attr(element: ET._Element, name: str, path: str) -> bool:
    return _decode(element, name, path, True, parse_bool)  # type: ignore[return-value]


def enum_attr(element: ET._Element, name: str, enum_cls: Type[E], path: str,
              required: bool = False) -> Optional[E]:
    def _to_enum(raw: str, where: str) -> E:
        try:
            return enum_cls(raw)
        except ValueError:
            raise ValueCoercionError(where, raw, enum_cls.__name__) from None

    return _decode(element, name, path, required, _to_enum)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def format_value(value: object) -> str:
    """Render *value* as attribute or element text.

    Raises:
        MalformedDocumentError: For non-finite floats and unsupported types.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise MalformedDocumentError(f"Cannot render non-finite number {value!r}")
        return repr(value)
    if isinstance(value, str):
        return value
    raise MalformedDocumentError(
        f"Cannot render value of type {type(value).__name__} as XML text"
    )


def set_attr(element: ET._Element, name: str, value: object) -> None:
    """Set attribute *name* unless *value* is None."""
    if value is None:
        return
    try:
        element.set(name, format_value(value))
    except ValueError as exc:
        raise MalformedDocumentError(
            f"Attribute '{name}' of <{local_name(element)}> is not XML compatible",
            details=[repr(value)],
            cause=exc,
        ) from exc


def add_child(parent: ET._Element, name: str) -> ET._Element:
    return ET.SubElement(parent, qname(name))


def add_text_child(parent: ET._Element, name: str, value: object) -> Optional[ET._Element]:
    """Append ``<name>value</name>`` unless *value* is None."""
    if value is None:
        return None
    child = add_child(parent, name)
    try:
        child.text = format_value(value)
    except ValueError as exc:
        parent.remove(child)
        raise MalformedDocumentError(
            f"Content of <{name}> is not XML compatible",
            details=[repr(value)[:80]],
            cause=exc,
        ) from exc
    return child
