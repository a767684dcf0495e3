from __future__ import annotations

"""Manifest <-> object conversion.

Key modules:
- xml_parser: ``project.qde`` text to :class:`Project`
- xml_builder: :class:`Project` to ``project.qde`` text
- helpers: namespace handling and strict value coercion
"""

from .helpers import QDA_NAMESPACE, SCHEMA_LOCATION
from .xml_builder import build_project_element, serialize_project
from .xml_parser import parse_project

__all__ = [
    "parse_project",
    "serialize_project",
    "build_project_element",
    "QDA_NAMESPACE",
    "SCHEMA_LOCATION",
]
