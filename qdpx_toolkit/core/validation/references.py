from __future__ import annotations

"""Reference-integrity checks over a whole project.

The project is treated as a graph of identifiers. :func:`walk_project`
visits every identified entity and every reference field exactly once, in a
fixed order, and :func:`validate_references` runs two passes over that walk:
the first builds the identifier index, the second checks each reference
against it.

Traversal order: project note references, Users, CodeBook, Variables,
Cases, Sources (Text, Picture, PDF, Audio, Video), Notes, Sets, Graphs,
Links. Inside an entity its own identifier comes first, then its reference
fields, then the entities it owns, in stored list order.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional

from qdpx_toolkit.core.models import (
    AudioSource,
    Case,
    Code,
    Coding,
    Graph,
    Link,
    PDFSelection,
    PDFSource,
    PictureSource,
    Project,
    Reference,
    SelectionBase,
    Set,
    SourceBase,
    TextSource,
    Transcript,
    TranscriptSelection,
    VariableValue,
    VideoSource,
    is_valid_guid,
    normalize_guid,
)

__all__ = ["IssueKind", "ReferenceIssue", "walk_project", "validate_references"]

logger = logging.getLogger(__name__)


class IssueKind(Enum):
    DUPLICATE_IDENTIFIER = "DuplicateIdentifier"
    DANGLING_REFERENCE = "DanglingReference"
    INVALID_IDENTIFIER_FORMAT = "InvalidIdentifierFormat"
    CODE_CYCLE = "CodeCycle"


@dataclass(frozen=True)
class ReferenceIssue:
    """One integrity finding.

    Attributes:
        kind: What went wrong.
        path: Traversal path of the offending entity or reference field,
            e.g. ``Project.Sources.TextSource[0].Coding[1].CodeRef``.
        guid: The identifier involved, or None when it was absent.
        other_path: For duplicates, the path where the identifier was first seen.
        message: Human readable summary.
    """

    kind: IssueKind
    path: str
    guid: Optional[str]
    other_path: Optional[str] = None
    message: str = ""

    def __str__(self) -> str:
        return self.message or f"{self.kind.value} at {self.path}"


@dataclass(frozen=True)
class _Visit:
    kind: str  # "entity", "reference" or "cycle"
    path: str
    guid: Optional[str]
    required: bool = True


# ---------------------------------------------------------------------------
# Walker
# ---------------------------------------------------------------------------


def _entity(path: str, guid: Optional[str]) -> _Visit:
    return _Visit("entity", path, guid)


def _ref(path: str, guid: Optional[str], required: bool = True) -> _Visit:
    return _Visit("reference", path, guid, required)


def _refs(path: str, name: str, refs: Iterable[Reference]) -> Iterator[_Visit]:
    for i, ref in enumerate(refs):
        yield _ref(f"{path}.{name}[{i}]", getattr(ref, "target_guid", None))


def _variable_values(path: str, values: Iterable[VariableValue]) -> Iterator[_Visit]:
    for i, value in enumerate(values):
        ref_guid = getattr(value.variable_ref, "target_guid", None)
        yield _ref(f"{path}.VariableValue[{i}].VariableRef", ref_guid)


def _codings(path: str, codings: Iterable[Coding]) -> Iterator[_Visit]:
    for i, coding in enumerate(codings):
        coding_path = f"{path}.Coding[{i}]"
        yield _entity(coding_path, coding.guid)
        yield _ref(f"{coding_path}.CodeRef", getattr(coding.code_ref, "target_guid", None))
        yield from _refs(coding_path, "NoteRef", coding.note_refs)


def _selection(path: str, selection: SelectionBase) -> Iterator[_Visit]:
    yield _entity(path, selection.guid)
    if isinstance(selection, TranscriptSelection):
        yield _ref(f"{path}.fromSyncPoint", selection.from_sync_point, required=False)
        yield _ref(f"{path}.toSyncPoint", selection.to_sync_point, required=False)
    yield from _codings(path, selection.codings)
    yield from _refs(path, "NoteRef", selection.note_refs)
    if isinstance(selection, PDFSelection) and selection.representation is not None:
        yield from _text_source(f"{path}.Representation", selection.representation)


def _selections(path: str, name: str, selections: Iterable[SelectionBase]) -> Iterator[_Visit]:
    for i, selection in enumerate(selections):
        yield from _selection(f"{path}.{name}[{i}]", selection)


def _source_common(path: str, source: SourceBase) -> Iterator[_Visit]:
    yield from _codings(path, source.codings)
    yield from _refs(path, "NoteRef", source.note_refs)
    yield from _variable_values(path, source.variable_values)


def _text_source(path: str, source: TextSource) -> Iterator[_Visit]:
    yield _entity(path, source.guid)
    yield from _source_common(path, source)
    yield from _selections(path, "PlainTextSelection", source.selections)


def _transcript(path: str, transcript: Transcript) -> Iterator[_Visit]:
    yield _entity(path, transcript.guid)
    yield from _refs(path, "NoteRef", transcript.note_refs)
    for i, sync_point in enumerate(transcript.sync_points):
        yield _entity(f"{path}.SyncPoint[{i}]", sync_point.guid)
    yield from _selections(path, "TranscriptSelection", transcript.selections)


def _media_source(path: str, source: SourceBase) -> Iterator[_Visit]:
    yield _entity(path, source.guid)
    yield from _source_common(path, source)
    if isinstance(source, PictureSource):
        if source.text_description is not None:
            yield from _text_source(f"{path}.TextDescription", source.text_description)
        yield from _selections(path, "PictureSelection", source.selections)
    elif isinstance(source, PDFSource):
        yield from _selections(path, "PDFSelection", source.selections)
        if source.representation is not None:
            yield from _text_source(f"{path}.Representation", source.representation)
    elif isinstance(source, (AudioSource, VideoSource)):
        for i, transcript in enumerate(source.transcripts):
            yield from _transcript(f"{path}.Transcript[{i}]", transcript)
        yield from _selections(path, source.kind.selection_element, source.selections)


def _codes(path: str, roots: List[Code]) -> Iterator[_Visit]:
    # Explicit stack with exit markers so the current ancestry is known
    # without recursion; a code found in its own ancestry is a cycle.
    stack: list = [("enter", code, f"{path}.Code[{i}]")
                   for i, code in reversed(list(enumerate(roots)))]
    ancestry: set[int] = set()
    expanded: set[int] = set()
    while stack:
        action, code, code_path = stack.pop()
        if action == "exit":
            ancestry.discard(id(code))
            continue
        if id(code) in ancestry:
            yield _Visit("cycle", code_path, code.guid)
            continue
        yield _entity(code_path, code.guid)
        yield from _refs(code_path, "NoteRef", code.note_refs)
        if id(code) in expanded:
            continue
        expanded.add(id(code))
        ancestry.add(id(code))
        stack.append(("exit", code, code_path))
        for i, child in reversed(list(enumerate(code.children))):
            stack.append(("enter", child, f"{code_path}.Code[{i}]"))


def _case(path: str, case: Case) -> Iterator[_Visit]:
    yield _entity(path, case.guid)
    yield from _refs(path, "CodeRef", case.code_refs)
    yield from _variable_values(path, case.variable_values)
    yield from _refs(path, "SourceRef", case.source_refs)
    yield from _refs(path, "SelectionRef", case.selection_refs)


def _set(path: str, set_: Set) -> Iterator[_Visit]:
    yield _entity(path, set_.guid)
    yield from _refs(path, "MemberCode", set_.member_codes)
    yield from _refs(path, "MemberSource", set_.member_sources)
    yield from _refs(path, "MemberNote", set_.member_notes)


def _graph(path: str, graph: Graph) -> Iterator[_Visit]:
    yield _entity(path, graph.guid)
    for i, vertex in enumerate(graph.vertices):
        vertex_path = f"{path}.Vertex[{i}]"
        yield _entity(vertex_path, vertex.guid)
        yield _ref(f"{vertex_path}.representedGUID", vertex.represented_guid, required=False)
    for i, edge in enumerate(graph.edges):
        edge_path = f"{path}.Edge[{i}]"
        yield _entity(edge_path, edge.guid)
        yield _ref(f"{edge_path}.representedGUID", edge.represented_guid, required=False)
        yield _ref(f"{edge_path}.sourceVertex", edge.source_vertex)
        yield _ref(f"{edge_path}.targetVertex", edge.target_vertex)


def _link(path: str, link: Link) -> Iterator[_Visit]:
    yield _entity(path, link.guid)
    yield _ref(f"{path}.originGUID", link.origin_guid, required=False)
    yield _ref(f"{path}.targetGUID", link.target_guid, required=False)
    yield from _refs(path, "NoteRef", link.note_refs)


def walk_project(project: Project) -> Iterator[_Visit]:
    """Yield every identifier and reference field of *project* in traversal order."""
    root = "Project"
    yield from _refs(root, "NoteRef", project.note_refs)
    for i, user in enumerate(project.users):
        yield _entity(f"{root}.Users.User[{i}]", user.guid)
    yield from _codes(f"{root}.CodeBook.Codes", project.codebook.codes)
    for i, variable in enumerate(project.variables):
        yield _entity(f"{root}.Variables.Variable[{i}]", variable.guid)
    for i, case in enumerate(project.cases):
        yield from _case(f"{root}.Cases.Case[{i}]", case)
    for kind, i, source in project.sources.iter_sources():
        path = f"{root}.Sources.{kind.value}[{i}]"
        if isinstance(source, TextSource):
            yield from _text_source(path, source)
        else:
            yield from _media_source(path, source)
    for i, note in enumerate(project.notes):
        yield from _text_source(f"{root}.Notes.Note[{i}]", note)
    for i, set_ in enumerate(project.sets):
        yield from _set(f"{root}.Sets.Set[{i}]", set_)
    for i, graph in enumerate(project.graphs):
        yield from _graph(f"{root}.Graphs.Graph[{i}]", graph)
    for i, link in enumerate(project.links):
        yield from _link(f"{root}.Links.Link[{i}]", link)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _index_identifiers(visits: Iterable[_Visit], issues: List[ReferenceIssue]) -> Dict[str, str]:
    index: Dict[str, str] = {}
    for visit in visits:
        if visit.kind == "cycle":
            issues.append(ReferenceIssue(
                IssueKind.CODE_CYCLE, visit.path, visit.guid,
                message=f"Code {visit.guid} is nested inside itself at {visit.path}",
            ))
            continue
        if visit.kind != "entity":
            continue
        if not visit.guid:
            issues.append(ReferenceIssue(
                IssueKind.INVALID_IDENTIFIER_FORMAT, visit.path, None,
                message=f"Missing identifier at {visit.path}",
            ))
            continue
        if not is_valid_guid(visit.guid):
            issues.append(ReferenceIssue(
                IssueKind.INVALID_IDENTIFIER_FORMAT, visit.path, visit.guid,
                message=f"Invalid identifier format at {visit.path}: {visit.guid}",
            ))
            continue
        key = normalize_guid(visit.guid)
        first_path = index.get(key)
        if first_path is not None:
            issues.append(ReferenceIssue(
                IssueKind.DUPLICATE_IDENTIFIER, visit.path, visit.guid, first_path,
                message=f"Duplicate identifier {visit.guid} at {visit.path} (first seen at {first_path})",
            ))
            continue
        index[key] = visit.path
    return index


def validate_references(project: Project) -> List[ReferenceIssue]:
    """Check identifier uniqueness and reference integrity of *project*.

    Never raises for integrity problems; every finding is returned, in
    traversal order (identifier findings first, then dangling references).

    Returns:
        A list of :class:`ReferenceIssue`, empty when the project is consistent.
    """
    issues: List[ReferenceIssue] = []
    index = _index_identifiers(walk_project(project), issues)

    for visit in walk_project(project):
        if visit.kind != "reference":
            continue
        if not visit.guid:
            if visit.required:
                issues.append(ReferenceIssue(
                    IssueKind.DANGLING_REFERENCE, visit.path, None,
                    message=f"Missing reference target at {visit.path}",
                ))
            continue
        if not isinstance(visit.guid, str) or normalize_guid(visit.guid) not in index:
            issues.append(ReferenceIssue(
                IssueKind.DANGLING_REFERENCE, visit.path, visit.guid,
                message=f"Dangling reference at {visit.path}: {visit.guid}",
            ))

    logger.debug("Reference validation of '%s': %d issue(s)", project.name, len(issues))
    return issues
