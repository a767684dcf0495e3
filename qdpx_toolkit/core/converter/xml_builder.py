from __future__ import annotations

"""Encode a :class:`~qdpx_toolkit.core.models.Project` as ``project.qde`` text.

Scalars become attributes, ``Description``, ``PlainTextContent`` and
variable values become child elements. A list field emits one element per
item; empty lists emit nothing, and a wrapper element (``Users``,
``Sources`` and so on) is only written when it has at least one item.
Child elements follow the REFI-QDA sequence order.
"""

import logging
from typing import Callable, Iterable, List, Optional

from lxml import etree as ET  # type: ignore

from qdpx_toolkit.core.exceptions import MalformedDocumentError
from qdpx_toolkit.core.models import (
    AudioSource,
    Case,
    Code,
    Coding,
    Edge,
    Graph,
    Link,
    MediaSource,
    PDFSelection,
    PDFSource,
    PictureSource,
    Project,
    Reference,
    SelectionBase,
    Set,
    SourceBase,
    SyncPoint,
    TextSource,
    Transcript,
    User,
    Variable,
    VariableValue,
    VideoSource,
    Vertex,
)

from .helpers import (
    QDA_NAMESPACE,
    SCHEMA_LOCATION,
    XSI_NAMESPACE,
    add_child,
    add_text_child,
    qname,
    set_attr,
)

__all__ = ["serialize_project", "build_project_element"]

logger = logging.getLogger(__name__)


def serialize_project(project: Project) -> str:
    """Serialize *project* to pretty-printed manifest text.

    Returns:
        The manifest, starting with a UTF-8 XML declaration.

    Raises:
        MalformedDocumentError: If a value cannot be represented as XML text
            (non-finite float, control characters, unsupported type).
    """
    root = build_project_element(project)
    body = ET.tostring(root, encoding="unicode", pretty_print=True)
    logger.debug("Serialized project '%s' (%d characters)", project.name, len(body))
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + body


def build_project_element(project: Project) -> ET._Element:
    """Return the ``<Project>`` element tree for *project*."""
    if not project.name:
        raise MalformedDocumentError("Project name must be a non-empty string")

    root = ET.Element(qname("Project"), nsmap={None: QDA_NAMESPACE, "xsi": XSI_NAMESPACE})
    root.set(f"{{{XSI_NAMESPACE}}}schemaLocation", SCHEMA_LOCATION)
    set_attr(root, "name", project.name)
    set_attr(root, "origin", project.origin)
    set_attr(root, "creatingUserGUID", project.creating_user_guid)
    set_attr(root, "creationDateTime", project.creation_datetime)
    set_attr(root, "modifyingUserGUID", project.modifying_user_guid)
    set_attr(root, "modifiedDateTime", project.modified_datetime)
    set_attr(root, "basePath", project.base_path)

    _add_wrapped(root, "Users", "User", project.users, _build_user)
    if project.codebook.codes:
        codes_el = add_child(add_child(root, "CodeBook"), "Codes")
        _build_codes(codes_el, project.codebook.codes)
    _add_wrapped(root, "Variables", "Variable", project.variables, _build_variable)
    _add_wrapped(root, "Cases", "Case", project.cases, _build_case)
    if not project.sources.is_empty():
        _build_sources(add_child(root, "Sources"), project)
    _add_wrapped(root, "Notes", "Note", project.notes, build_text_source)
    _add_wrapped(root, "Links", "Link", project.links, _build_link)
    _add_wrapped(root, "Sets", "Set", project.sets, _build_set)
    _add_wrapped(root, "Graphs", "Graph", project.graphs, _build_graph)
    add_text_child(root, "Description", project.description)
    _add_refs(root, "NoteRef", project.note_refs)
    return root


# ---------------------------------------------------------------------------
# Shared pieces
# ---------------------------------------------------------------------------


def _add_wrapped(parent: ET._Element, wrapper: str, item: str, values: list,
                 build: Callable[[ET._Element, object], None]) -> None:
    if not values:
        return
    container = add_child(parent, wrapper)
    for value in values:
        build(add_child(container, item), value)


def _add_list(parent: ET._Element, item: str, values: Iterable,
              build: Callable[[ET._Element, object], None]) -> None:
    for value in values:
        build(add_child(parent, item), value)


def _add_refs(parent: ET._Element, name: str, refs: Iterable[Reference]) -> None:
    for ref in refs:
        set_attr(add_child(parent, name), "targetGUID", ref.target_guid)


def _set_provenance(element: ET._Element, entity) -> None:
    set_attr(element, "creatingUser", entity.creating_user)
    set_attr(element, "creationDateTime", entity.creation_datetime)
    set_attr(element, "modifyingUser", entity.modifying_user)
    set_attr(element, "modifiedDateTime", entity.modified_datetime)


def _build_variable_value(element: ET._Element, value: VariableValue) -> None:
    set_attr(add_child(element, "VariableRef"), "targetGUID", value.variable_ref.target_guid)
    add_text_child(element, value.value_type.element_name, value.value)


def _build_coding(element: ET._Element, coding: Coding) -> None:
    set_attr(element, "guid", coding.guid)
    set_attr(element, "creatingUser", coding.creating_user)
    set_attr(element, "creationDateTime", coding.creation_datetime)
    set_attr(add_child(element, "CodeRef"), "targetGUID", coding.code_ref.target_guid)
    _add_refs(element, "NoteRef", coding.note_refs)


def _set_selection_attrs(element: ET._Element, selection: SelectionBase) -> None:
    set_attr(element, "guid", selection.guid)
    set_attr(element, "name", selection.name)
    _set_provenance(element, selection)


def _add_selection_tail(element: ET._Element, selection: SelectionBase) -> None:
    _add_list(element, "Coding", selection.codings, _build_coding)
    _add_refs(element, "NoteRef", selection.note_refs)


def _set_source_attrs(element: ET._Element, source: SourceBase) -> None:
    set_attr(element, "guid", source.guid)
    set_attr(element, "name", source.name)
    if isinstance(source, MediaSource):
        set_attr(element, "path", source.path)
        set_attr(element, "currentPath", source.current_path)
    _set_provenance(element, source)


def _add_source_tail(element: ET._Element, source: SourceBase) -> None:
    _add_list(element, "Coding", source.codings, _build_coding)
    _add_refs(element, "NoteRef", source.note_refs)
    _add_list(element, "VariableValue", source.variable_values, _build_variable_value)


# ---------------------------------------------------------------------------
# Text sources (also notes, text descriptions and representations)
# ---------------------------------------------------------------------------


def _build_plain_text_selection(element: ET._Element, selection) -> None:
    _set_selection_attrs(element, selection)
    set_attr(element, "startPosition", selection.start_position)
    set_attr(element, "endPosition", selection.end_position)
    add_text_child(element, "Description", selection.description)
    _add_selection_tail(element, selection)


def build_text_source(element: ET._Element, source: TextSource) -> None:
    """Fill *element* with any ``TextSourceType``-shaped entity."""
    _set_source_attrs(element, source)
    set_attr(element, "richTextPath", source.rich_text_path)
    set_attr(element, "plainTextPath", source.plain_text_path)
    add_text_child(element, "Description", source.description)
    add_text_child(element, "PlainTextContent", source.plain_text_content)
    _add_list(element, "PlainTextSelection", source.selections, _build_plain_text_selection)
    _add_source_tail(element, source)


def _add_optional_text_source(parent: ET._Element, name: str,
                              source: Optional[TextSource]) -> None:
    if source is not None:
        build_text_source(add_child(parent, name), source)


# ---------------------------------------------------------------------------
# Picture and PDF sources
# ---------------------------------------------------------------------------


def _set_rect(element: ET._Element, selection) -> None:
    set_attr(element, "firstX", selection.first_x)
    set_attr(element, "firstY", selection.first_y)
    set_attr(element, "secondX", selection.second_x)
    set_attr(element, "secondY", selection.second_y)


def _build_picture_selection(element: ET._Element, selection) -> None:
    _set_selection_attrs(element, selection)
    _set_rect(element, selection)
    add_text_child(element, "Description", selection.description)
    _add_selection_tail(element, selection)


def _build_picture_source(element: ET._Element, source: PictureSource) -> None:
    _set_source_attrs(element, source)
    add_text_child(element, "Description", source.description)
    _add_optional_text_source(element, "TextDescription", source.text_description)
    _add_list(element, "PictureSelection", source.selections, _build_picture_selection)
    _add_source_tail(element, source)


def _build_pdf_selection(element: ET._Element, selection: PDFSelection) -> None:
    _set_selection_attrs(element, selection)
    set_attr(element, "page", selection.page)
    _set_rect(element, selection)
    add_text_child(element, "Description", selection.description)
    _add_optional_text_source(element, "Representation", selection.representation)
    _add_selection_tail(element, selection)


def _build_pdf_source(element: ET._Element, source: PDFSource) -> None:
    _set_source_attrs(element, source)
    add_text_child(element, "Description", source.description)
    _add_list(element, "PDFSelection", source.selections, _build_pdf_selection)
    _add_optional_text_source(element, "Representation", source.representation)
    _add_source_tail(element, source)


# ---------------------------------------------------------------------------
# Audio and video sources
# ---------------------------------------------------------------------------


def _build_sync_point(element: ET._Element, sync_point: SyncPoint) -> None:
    set_attr(element, "guid", sync_point.guid)
    set_attr(element, "timeStamp", sync_point.time_stamp)
    set_attr(element, "position", sync_point.position)


def _build_transcript_selection(element: ET._Element, selection) -> None:
    _set_selection_attrs(element, selection)
    set_attr(element, "fromSyncPoint", selection.from_sync_point)
    set_attr(element, "toSyncPoint", selection.to_sync_point)
    add_text_child(element, "Description", selection.description)
    _add_selection_tail(element, selection)


def _build_transcript(element: ET._Element, transcript: Transcript) -> None:
    set_attr(element, "guid", transcript.guid)
    set_attr(element, "name", transcript.name)
    set_attr(element, "richTextPath", transcript.rich_text_path)
    set_attr(element, "plainTextPath", transcript.plain_text_path)
    _set_provenance(element, transcript)
    add_text_child(element, "Description", transcript.description)
    add_text_child(element, "PlainTextContent", transcript.plain_text_content)
    _add_list(element, "SyncPoint", transcript.sync_points, _build_sync_point)
    _add_list(element, "TranscriptSelection", transcript.selections, _build_transcript_selection)
    _add_refs(element, "NoteRef", transcript.note_refs)


def _build_time_selection(element: ET._Element, selection) -> None:
    _set_selection_attrs(element, selection)
    set_attr(element, "begin", selection.begin)
    set_attr(element, "end", selection.end)
    add_text_child(element, "Description", selection.description)
    _add_selection_tail(element, selection)


def _build_timed_source(selection_name: str):
    def build(element: ET._Element, source) -> None:
        _set_source_attrs(element, source)
        add_text_child(element, "Description", source.description)
        _add_list(element, "Transcript", source.transcripts, _build_transcript)
        _add_list(element, selection_name, source.selections, _build_time_selection)
        _add_source_tail(element, source)

    return build


_build_audio_source: Callable[[ET._Element, AudioSource], None] = _build_timed_source("AudioSelection")
_build_video_source: Callable[[ET._Element, VideoSource], None] = _build_timed_source("VideoSelection")


def _build_sources(sources_el: ET._Element, project: Project) -> None:
    sources = project.sources
    _add_list(sources_el, "TextSource", sources.text, build_text_source)
    _add_list(sources_el, "PictureSource", sources.picture, _build_picture_source)
    _add_list(sources_el, "PDFSource", sources.pdf, _build_pdf_source)
    _add_list(sources_el, "AudioSource", sources.audio, _build_audio_source)
    _add_list(sources_el, "VideoSource", sources.video, _build_video_source)


# ---------------------------------------------------------------------------
# Code book
# ---------------------------------------------------------------------------


def _build_code_fields(element: ET._Element, code: Code) -> None:
    set_attr(element, "guid", code.guid)
    set_attr(element, "name", code.name)
    set_attr(element, "isCodable", code.is_codable)
    set_attr(element, "color", code.color)
    add_text_child(element, "Description", code.description)
    _add_refs(element, "NoteRef", code.note_refs)


def _build_codes(codes_el: ET._Element, codes: List[Code]) -> None:
    # Explicit stack; a code already on the current branch is not re-entered.
    stack: list = [(codes_el, code, frozenset()) for code in reversed(codes)]
    while stack:
        parent, code, ancestry = stack.pop()
        if id(code) in ancestry:
            raise MalformedDocumentError(
                f"Code '{code.name}' ({code.guid}) is nested inside itself",
                details=[code.guid],
            )
        element = add_child(parent, "Code")
        _build_code_fields(element, code)
        branch = ancestry | {id(code)}
        for child in reversed(code.children):
            stack.append((element, child, branch))


# ---------------------------------------------------------------------------
# Users, variables, cases, sets, graphs, links
# ---------------------------------------------------------------------------


def _build_user(element: ET._Element, user: User) -> None:
    set_attr(element, "guid", user.guid)
    set_attr(element, "name", user.name)
    set_attr(element, "id", user.id)


def _build_variable(element: ET._Element, variable: Variable) -> None:
    set_attr(element, "guid", variable.guid)
    set_attr(element, "name", variable.name)
    set_attr(element, "typeOfVariable", variable.type_of_variable)
    add_text_child(element, "Description", variable.description)


def _build_case(element: ET._Element, case: Case) -> None:
    set_attr(element, "guid", case.guid)
    set_attr(element, "name", case.name)
    add_text_child(element, "Description", case.description)
    _add_refs(element, "CodeRef", case.code_refs)
    _add_list(element, "VariableValue", case.variable_values, _build_variable_value)
    _add_refs(element, "SourceRef", case.source_refs)
    _add_refs(element, "SelectionRef", case.selection_refs)


def _build_set(element: ET._Element, set_: Set) -> None:
    set_attr(element, "guid", set_.guid)
    set_attr(element, "name", set_.name)
    add_text_child(element, "Description", set_.description)
    _add_refs(element, "MemberCode", set_.member_codes)
    _add_refs(element, "MemberSource", set_.member_sources)
    _add_refs(element, "MemberNote", set_.member_notes)


def _build_vertex(element: ET._Element, vertex: Vertex) -> None:
    set_attr(element, "guid", vertex.guid)
    set_attr(element, "representedGUID", vertex.represented_guid)
    set_attr(element, "name", vertex.name)
    set_attr(element, "firstX", vertex.first_x)
    set_attr(element, "firstY", vertex.first_y)
    set_attr(element, "secondX", vertex.second_x)
    set_attr(element, "secondY", vertex.second_y)
    set_attr(element, "shape", vertex.shape)
    set_attr(element, "color", vertex.color)


def _build_edge(element: ET._Element, edge: Edge) -> None:
    set_attr(element, "guid", edge.guid)
    set_attr(element, "representedGUID", edge.represented_guid)
    set_attr(element, "name", edge.name)
    set_attr(element, "sourceVertex", edge.source_vertex)
    set_attr(element, "targetVertex", edge.target_vertex)
    set_attr(element, "color", edge.color)
    set_attr(element, "direction", edge.direction)
    set_attr(element, "lineStyle", edge.line_style)


def _build_graph(element: ET._Element, graph: Graph) -> None:
    set_attr(element, "guid", graph.guid)
    set_attr(element, "name", graph.name)
    _add_list(element, "Vertex", graph.vertices, _build_vertex)
    _add_list(element, "Edge", graph.edges, _build_edge)


def _build_link(element: ET._Element, link: Link) -> None:
    set_attr(element, "guid", link.guid)
    set_attr(element, "name", link.name)
    set_attr(element, "direction", link.direction)
    set_attr(element, "color", link.color)
    set_attr(element, "originGUID", link.origin_guid)
    set_attr(element, "targetGUID", link.target_guid)
    _add_refs(element, "NoteRef", link.note_refs)
