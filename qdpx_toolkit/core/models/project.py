from __future__ import annotations

"""Project root and the aggregation entities hanging off it."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from .references import (
    CodeRef,
    NoteRef,
    SelectionRef,
    SourceRef,
    VariableType,
    VariableValue,
    normalize_guid,
)
from .sources import SourceBase, Sources, TextSource

__all__ = [
    "Direction",
    "Shape",
    "LineStyle",
    "User",
    "Code",
    "CodeBook",
    "Variable",
    "Case",
    "Set",
    "Vertex",
    "Edge",
    "Graph",
    "Link",
    "Project",
]


class Direction(Enum):
    ASSOCIATIVE = "Associative"
    ONE_WAY = "OneWay"
    BIDIRECTIONAL = "Bidirectional"


class Shape(Enum):
    PERSON = "Person"
    OVAL = "Oval"
    RECTANGLE = "Rectangle"
    ROUNDED_RECTANGLE = "RoundedRectangle"
    STAR = "Star"
    LEFT_TRIANGLE = "LeftTriangle"
    RIGHT_TRIANGLE = "RightTriangle"
    UP_TRIANGLE = "UpTriangle"
    DOWN_TRIANGLE = "DownTriangle"
    NOTE = "Note"


class LineStyle(Enum):
    DOTTED = "dotted"
    DASHED = "dashed"
    SOLID = "solid"


@dataclass
class User:
    guid: str
    name: Optional[str] = None
    id: Optional[str] = None


@dataclass
class Code:
    """A node of the code taxonomy; ``children`` nest to any depth."""

    guid: str
    name: str
    is_codable: bool = True
    color: Optional[str] = None
    description: Optional[str] = None
    note_refs: List[NoteRef] = field(default_factory=list)
    children: List["Code"] = field(default_factory=list)


@dataclass
class CodeBook:
    codes: List[Code] = field(default_factory=list)

    def iter_codes(self) -> Iterator[Tuple[int, Code]]:
        """Yield ``(depth, code)`` pairs in document order.

        The walk uses an explicit stack and tracks visited objects, so deep
        taxonomies never hit the interpreter recursion limit and a code that
        has been linked into its own subtree is reported once and skipped.
        """
        visited: set[int] = set()
        stack: List[Tuple[int, Code]] = [(0, code) for code in reversed(self.codes)]
        while stack:
            depth, code = stack.pop()
            if id(code) in visited:
                continue
            visited.add(id(code))
            yield depth, code
            for child in reversed(code.children):
                stack.append((depth + 1, child))

    def find_code(self, guid: str) -> Optional[Code]:
        key = normalize_guid(guid)
        for _, code in self.iter_codes():
            if normalize_guid(code.guid) == key:
                return code
        return None

    def __len__(self) -> int:
        return sum(1 for _ in self.iter_codes())


@dataclass
class Variable:
    guid: str
    name: str
    type_of_variable: VariableType
    description: Optional[str] = None


@dataclass
class Case:
    guid: str
    name: Optional[str] = None
    description: Optional[str] = None
    code_refs: List[CodeRef] = field(default_factory=list)
    variable_values: List[VariableValue] = field(default_factory=list)
    source_refs: List[SourceRef] = field(default_factory=list)
    selection_refs: List[SelectionRef] = field(default_factory=list)


@dataclass
class Set:
    guid: str
    name: str
    description: Optional[str] = None
    member_codes: List[CodeRef] = field(default_factory=list)
    member_sources: List[SourceRef] = field(default_factory=list)
    member_notes: List[NoteRef] = field(default_factory=list)


@dataclass
class Vertex:
    guid: str
    first_x: int
    first_y: int
    represented_guid: Optional[str] = None
    name: Optional[str] = None
    second_x: Optional[int] = None
    second_y: Optional[int] = None
    shape: Optional[Shape] = None
    color: Optional[str] = None


@dataclass
class Edge:
    guid: str
    source_vertex: str
    target_vertex: str
    represented_guid: Optional[str] = None
    name: Optional[str] = None
    color: Optional[str] = None
    direction: Optional[Direction] = None
    line_style: Optional[LineStyle] = None


@dataclass
class Graph:
    guid: str
    name: Optional[str] = None
    vertices: List[Vertex] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)


@dataclass
class Link:
    guid: str
    name: Optional[str] = None
    direction: Optional[Direction] = None
    color: Optional[str] = None
    origin_guid: Optional[str] = None
    target_guid: Optional[str] = None
    note_refs: List[NoteRef] = field(default_factory=list)


@dataclass
class Project:
    """Root of a REFI-QDA project.

    Args:
        name: Display name; must be non-empty.
        base_path: Directory used to resolve ``relative://`` source
            addresses. Stored as written in the manifest.
    """

    name: str
    origin: Optional[str] = None
    creating_user_guid: Optional[str] = None
    creation_datetime: Optional[str] = None
    modifying_user_guid: Optional[str] = None
    modified_datetime: Optional[str] = None
    base_path: Optional[str] = None
    description: Optional[str] = None
    note_refs: List[NoteRef] = field(default_factory=list)
    users: List[User] = field(default_factory=list)
    codebook: CodeBook = field(default_factory=CodeBook)
    variables: List[Variable] = field(default_factory=list)
    cases: List[Case] = field(default_factory=list)
    sources: Sources = field(default_factory=Sources)
    notes: List[TextSource] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)
    sets: List[Set] = field(default_factory=list)
    graphs: List[Graph] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Project name must be a non-empty string")

    def find_source(self, guid: str) -> Optional[SourceBase]:
        key = normalize_guid(guid)
        for _, _, source in self.sources.iter_sources():
            if normalize_guid(source.guid) == key:
                return source
        return None

    def find_variable(self, guid: str) -> Optional[Variable]:
        key = normalize_guid(guid)
        return next(
            (v for v in self.variables if normalize_guid(v.guid) == key), None
        )
