from __future__ import annotations

"""Decode a ``project.qde`` manifest into a :class:`~qdpx_toolkit.core.models.Project`.

Each entity kind has one decoding function. Elements are matched by local
name so manifests written with or without the REFI-QDA default namespace
are both accepted. Every list field decodes to a list, even when the
manifest holds a single element or none at all.
"""

import logging
import re
from typing import Callable, List, Optional, Type, TypeVar, Union

from lxml import etree as ET  # type: ignore

from qdpx_toolkit.core.exceptions import MalformedDocumentError
from qdpx_toolkit.core.models import (
    AudioSelection,
    AudioSource,
    Case,
    Code,
    CodeBook,
    CodeRef,
    Coding,
    Direction,
    Edge,
    Graph,
    LineStyle,
    Link,
    NoteRef,
    PDFSelection,
    PDFSource,
    PictureSelection,
    PictureSource,
    PlainTextSelection,
    Project,
    Reference,
    SelectionRef,
    Set,
    Shape,
    SourceRef,
    Sources,
    SyncPoint,
    TextSource,
    Transcript,
    TranscriptSelection,
    User,
    Variable,
    VariableRef,
    VariableType,
    VariableValue,
    VideoSelection,
    VideoSource,
    Vertex,
)

from .helpers import (
    bool_attr,
    child_text,
    enum_attr,
    first_child,
    int_attr,
    iter_children,
    local_name,
    optional_attr,
    optional_int_attr,
    parse_bool,
    parse_float,
    parse_int,
    require_attr,
)

__all__ = ["parse_project", "load_manifest_tree", "parse_text_source"]

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Reference)

_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>")


def _make_parser() -> ET.XMLParser:
    # Security: no entity expansion, no network access.
    return ET.XMLParser(
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
        remove_comments=True,
        remove_pis=True,
    )


def load_manifest_tree(document: Union[str, bytes]) -> ET._Element:
    """Parse *document* and return its ``<Project>`` root element.

    Raises:
        MalformedDocumentError: If the XML is not well formed or the root
            element is not ``Project``.
    """
    if isinstance(document, str):
        # lxml refuses str input that still carries an encoding declaration.
        document = _XML_DECLARATION.sub("", document.lstrip("\ufeff"), count=1)
    try:
        root = ET.fromstring(document, _make_parser())
    except ET.XMLSyntaxError as exc:
        raise MalformedDocumentError(
            f"Manifest is not well-formed XML: {exc}", details=[str(exc)], cause=exc
        ) from exc

    if local_name(root) != "Project":
        raise MalformedDocumentError(
            f"Manifest root must be <Project>, found <{local_name(root) or '?'}>"
        )
    return root


def parse_project(document: Union[str, bytes]) -> Project:
    """Parse manifest text into a project.

    Args:
        document: The manifest as text or as encoded bytes.

    Returns:
        The decoded project.

    Raises:
        MalformedDocumentError: If the XML is not well formed, the root is not
            ``Project`` or a required attribute or element is missing.
        ValueCoercionError: If a numeric or boolean field holds malformed text.
    """
    project = _parse_project_root(load_manifest_tree(document))
    logger.debug(
        "Parsed project '%s': %d sources, %d codes, %d cases",
        project.name, len(project.sources), len(project.codebook), len(project.cases),
    )
    return project


# ---------------------------------------------------------------------------
# Shared pieces
# ---------------------------------------------------------------------------


def _guid(element: ET._Element, path: str) -> str:
    return require_attr(element, "guid", path)


def _refs(element: ET._Element, name: str, ref_cls: Type[R], path: str) -> List[R]:
    return [
        ref_cls(require_attr(child, "targetGUID", f"{path}.{name}[{i}]"))
        for i, child in enumerate(iter_children(element, name))
    ]


def _wrapped(root: ET._Element, wrapper: str, item: str, path: str,
             decode: Callable[[ET._Element, str], object]) -> list:
    container = first_child(root, wrapper)
    if container is None:
        return []
    return [
        decode(child, f"{path}.{wrapper}.{item}[{i}]")
        for i, child in enumerate(iter_children(container, item))
    ]


def _list(element: ET._Element, name: str, path: str,
          decode: Callable[[ET._Element, str], object]) -> list:
    return [
        decode(child, f"{path}.{name}[{i}]")
        for i, child in enumerate(iter_children(element, name))
    ]


def _provenance(element: ET._Element) -> dict:
    return {
        "creating_user": optional_attr(element, "creatingUser"),
        "creation_datetime": optional_attr(element, "creationDateTime"),
        "modifying_user": optional_attr(element, "modifyingUser"),
        "modified_datetime": optional_attr(element, "modifiedDateTime"),
    }


def _parse_variable_value(element: ET._Element, path: str) -> VariableValue:
    ref_el = first_child(element, "VariableRef")
    if ref_el is None:
        raise MalformedDocumentError(f"Missing VariableRef in {path}", details=[path])
    ref = VariableRef(require_attr(ref_el, "targetGUID", f"{path}.VariableRef"))

    for child in element:
        name = local_name(child)
        if not name.endswith("Value"):
            continue
        try:
            value_type = VariableType.from_element_name(name)
        except ValueError:
            continue
        raw = child.text or ""
        where = f"{path}.{name}"
        if value_type is VariableType.BOOLEAN:
            value: object = parse_bool(raw.strip(), where)
        elif value_type is VariableType.INTEGER:
            value = parse_int(raw, where)
        elif value_type is VariableType.FLOAT:
            value = parse_float(raw, where)
        else:
            value = raw
        return VariableValue(ref, value_type, value)  # type: ignore[arg-type]

    raise MalformedDocumentError(f"Missing typed value in {path}", details=[path])


def _parse_coding(element: ET._Element, path: str) -> Coding:
    code_ref_el = first_child(element, "CodeRef")
    if code_ref_el is None:
        raise MalformedDocumentError(f"Missing CodeRef in {path}", details=[path])
    return Coding(
        guid=_guid(element, path),
        code_ref=CodeRef(require_attr(code_ref_el, "targetGUID", f"{path}.CodeRef")),
        note_refs=_refs(element, "NoteRef", NoteRef, path),
        creating_user=optional_attr(element, "creatingUser"),
        creation_datetime=optional_attr(element, "creationDateTime"),
    )


def _selection_common(element: ET._Element, path: str) -> dict:
    return {
        "guid": _guid(element, path),
        "name": optional_attr(element, "name"),
        "description": child_text(element, "Description"),
        "codings": _list(element, "Coding", path, _parse_coding),
        "note_refs": _refs(element, "NoteRef", NoteRef, path),
        **_provenance(element),
    }


def _source_common(element: ET._Element, path: str) -> dict:
    return {
        **_selection_common(element, path),
        "variable_values": _list(element, "VariableValue", path, _parse_variable_value),
    }


def _media_common(element: ET._Element, path: str) -> dict:
    return {
        **_source_common(element, path),
        "path": optional_attr(element, "path"),
        "current_path": optional_attr(element, "currentPath"),
    }


def _rect(element: ET._Element, path: str) -> dict:
    return {
        "first_x": int_attr(element, "firstX", path),
        "first_y": int_attr(element, "firstY", path),
        "second_x": int_attr(element, "secondX", path),
        "second_y": int_attr(element, "secondY", path),
    }


# ---------------------------------------------------------------------------
# Text sources (also notes, text descriptions and representations)
# ---------------------------------------------------------------------------


def _parse_plain_text_selection(element: ET._Element, path: str) -> PlainTextSelection:
    return PlainTextSelection(
        **_selection_common(element, path),
        start_position=int_attr(element, "startPosition", path),
        end_position=int_attr(element, "endPosition", path),
    )


def parse_text_source(element: ET._Element, path: str) -> TextSource:
    """Decode any element shaped like ``TextSourceType``."""
    return TextSource(
        **_source_common(element, path),
        plain_text_content=child_text(element, "PlainTextContent"),
        plain_text_path=optional_attr(element, "plainTextPath"),
        rich_text_path=optional_attr(element, "richTextPath"),
        selections=_list(element, "PlainTextSelection", path, _parse_plain_text_selection),
    )


def _optional_text_source(element: ET._Element, name: str, path: str) -> Optional[TextSource]:
    child = first_child(element, name)
    if child is None:
        return None
    return parse_text_source(child, f"{path}.{name}")


# ---------------------------------------------------------------------------
# Picture and PDF sources
# ---------------------------------------------------------------------------


def _parse_picture_selection(element: ET._Element, path: str) -> PictureSelection:
    return PictureSelection(**_selection_common(element, path), **_rect(element, path))


def _parse_picture_source(element: ET._Element, path: str) -> PictureSource:
    return PictureSource(
        **_media_common(element, path),
        text_description=_optional_text_source(element, "TextDescription", path),
        selections=_list(element, "PictureSelection", path, _parse_picture_selection),
    )


def _parse_pdf_selection(element: ET._Element, path: str) -> PDFSelection:
    return PDFSelection(
        **_selection_common(element, path),
        **_rect(element, path),
        page=int_attr(element, "page", path),
        representation=_optional_text_source(element, "Representation", path),
    )


def _parse_pdf_source(element: ET._Element, path: str) -> PDFSource:
    return PDFSource(
        **_media_common(element, path),
        selections=_list(element, "PDFSelection", path, _parse_pdf_selection),
        representation=_optional_text_source(element, "Representation", path),
    )


# ---------------------------------------------------------------------------
# Audio and video sources
# ---------------------------------------------------------------------------


def _parse_sync_point(element: ET._Element, path: str) -> SyncPoint:
    return SyncPoint(
        guid=_guid(element, path),
        time_stamp=optional_int_attr(element, "timeStamp", path),
        position=optional_int_attr(element, "position", path),
    )


def _parse_transcript_selection(element: ET._Element, path: str) -> TranscriptSelection:
    return TranscriptSelection(
        **_selection_common(element, path),
        from_sync_point=optional_attr(element, "fromSyncPoint"),
        to_sync_point=optional_attr(element, "toSyncPoint"),
    )


def _parse_transcript(element: ET._Element, path: str) -> Transcript:
    return Transcript(
        guid=_guid(element, path),
        name=optional_attr(element, "name"),
        description=child_text(element, "Description"),
        plain_text_content=child_text(element, "PlainTextContent"),
        plain_text_path=optional_attr(element, "plainTextPath"),
        rich_text_path=optional_attr(element, "richTextPath"),
        sync_points=_list(element, "SyncPoint", path, _parse_sync_point),
        selections=_list(element, "TranscriptSelection", path, _parse_transcript_selection),
        note_refs=_refs(element, "NoteRef", NoteRef, path),
        **_provenance(element),
    )


def _time_range(element: ET._Element, path: str) -> dict:
    return {
        "begin": int_attr(element, "begin", path),
        "end": int_attr(element, "end", path),
    }


def _parse_audio_selection(element: ET._Element, path: str) -> AudioSelection:
    return AudioSelection(**_selection_common(element, path), **_time_range(element, path))


def _parse_video_selection(element: ET._Element, path: str) -> VideoSelection:
    return VideoSelection(**_selection_common(element, path), **_time_range(element, path))


def _parse_audio_source(element: ET._Element, path: str) -> AudioSource:
    return AudioSource(
        **_media_common(element, path),
        transcripts=_list(element, "Transcript", path, _parse_transcript),
        selections=_list(element, "AudioSelection", path, _parse_audio_selection),
    )


def _parse_video_source(element: ET._Element, path: str) -> VideoSource:
    return VideoSource(
        **_media_common(element, path),
        transcripts=_list(element, "Transcript", path, _parse_transcript),
        selections=_list(element, "VideoSelection", path, _parse_video_selection),
    )


def _parse_sources(root: ET._Element, path: str) -> Sources:
    container = first_child(root, "Sources")
    if container is None:
        return Sources()
    path = f"{path}.Sources"
    return Sources(
        text=_list(container, "TextSource", path, parse_text_source),
        picture=_list(container, "PictureSource", path, _parse_picture_source),
        pdf=_list(container, "PDFSource", path, _parse_pdf_source),
        audio=_list(container, "AudioSource", path, _parse_audio_source),
        video=_list(container, "VideoSource", path, _parse_video_source),
    )


# ---------------------------------------------------------------------------
# Code book
# ---------------------------------------------------------------------------


def _parse_code_fields(element: ET._Element, path: str) -> Code:
    return Code(
        guid=_guid(element, path),
        name=require_attr(element, "name", path),
        is_codable=bool_attr(element, "isCodable", path),
        color=optional_attr(element, "color"),
        description=child_text(element, "Description"),
        note_refs=_refs(element, "NoteRef", NoteRef, path),
    )


def _parse_codebook(root: ET._Element, path: str) -> CodeBook:
    codebook_el = first_child(root, "CodeBook")
    if codebook_el is None:
        return CodeBook()
    codes_el = first_child(codebook_el, "Codes")
    if codes_el is None:
        return CodeBook()

    roots: List[Code] = []
    base = f"{path}.CodeBook.Codes"
    # Explicit stack: taxonomies may nest deeper than the recursion limit.
    stack = [
        (child, roots, f"{base}.Code[{i}]")
        for i, child in reversed(list(enumerate(iter_children(codes_el, "Code"))))
    ]
    while stack:
        element, siblings, code_path = stack.pop()
        code = _parse_code_fields(element, code_path)
        siblings.append(code)
        for i, child in reversed(list(enumerate(iter_children(element, "Code")))):
            stack.append((child, code.children, f"{code_path}.Code[{i}]"))
    return CodeBook(codes=roots)


# ---------------------------------------------------------------------------
# Users, variables, cases, sets, graphs, links
# ---------------------------------------------------------------------------


def _parse_user(element: ET._Element, path: str) -> User:
    return User(
        guid=_guid(element, path),
        name=optional_attr(element, "name"),
        id=optional_attr(element, "id"),
    )


def _parse_variable(element: ET._Element, path: str) -> Variable:
    return Variable(
        guid=_guid(element, path),
        name=require_attr(element, "name", path),
        type_of_variable=enum_attr(  # type: ignore[arg-type]
            element, "typeOfVariable", VariableType, path, required=True
        ),
        description=child_text(element, "Description"),
    )


def _parse_case(element: ET._Element, path: str) -> Case:
    return Case(
        guid=_guid(element, path),
        name=optional_attr(element, "name"),
        description=child_text(element, "Description"),
        code_refs=_refs(element, "CodeRef", CodeRef, path),
        variable_values=_list(element, "VariableValue", path, _parse_variable_value),
        source_refs=_refs(element, "SourceRef", SourceRef, path),
        selection_refs=_refs(element, "SelectionRef", SelectionRef, path),
    )


def _parse_set(element: ET._Element, path: str) -> Set:
    return Set(
        guid=_guid(element, path),
        name=require_attr(element, "name", path),
        description=child_text(element, "Description"),
        member_codes=_refs(element, "MemberCode", CodeRef, path),
        member_sources=_refs(element, "MemberSource", SourceRef, path),
        member_notes=_refs(element, "MemberNote", NoteRef, path),
    )


def _parse_vertex(element: ET._Element, path: str) -> Vertex:
    return Vertex(
        guid=_guid(element, path),
        represented_guid=optional_attr(element, "representedGUID"),
        name=optional_attr(element, "name"),
        first_x=int_attr(element, "firstX", path),
        first_y=int_attr(element, "firstY", path),
        second_x=optional_int_attr(element, "secondX", path),
        second_y=optional_int_attr(element, "secondY", path),
        shape=enum_attr(element, "shape", Shape, path),
        color=optional_attr(element, "color"),
    )


def _parse_edge(element: ET._Element, path: str) -> Edge:
    return Edge(
        guid=_guid(element, path),
        represented_guid=optional_attr(element, "representedGUID"),
        name=optional_attr(element, "name"),
        source_vertex=require_attr(element, "sourceVertex", path),
        target_vertex=require_attr(element, "targetVertex", path),
        color=optional_attr(element, "color"),
        direction=enum_attr(element, "direction", Direction, path),
        line_style=enum_attr(element, "lineStyle", LineStyle, path),
    )


def _parse_graph(element: ET._Element, path: str) -> Graph:
    return Graph(
        guid=_guid(element, path),
        name=optional_attr(element, "name"),
        vertices=_list(element, "Vertex", path, _parse_vertex),
        edges=_list(element, "Edge", path, _parse_edge),
    )


def _parse_link(element: ET._Element, path: str) -> Link:
    return Link(
        guid=_guid(element, path),
        name=optional_attr(element, "name"),
        direction=enum_attr(element, "direction", Direction, path),
        color=optional_attr(element, "color"),
        origin_guid=optional_attr(element, "originGUID"),
        target_guid=optional_attr(element, "targetGUID"),
        note_refs=_refs(element, "NoteRef", NoteRef, path),
    )


def _parse_project_root(root: ET._Element) -> Project:
    path = "Project"
    name = require_attr(root, "name", path)
    try:
        project = Project(name=name)
    except ValueError as exc:
        raise MalformedDocumentError(str(exc), details=[f"{path}@name"], cause=exc) from exc

    project.origin = optional_attr(root, "origin")
    project.creating_user_guid = optional_attr(root, "creatingUserGUID")
    project.creation_datetime = optional_attr(root, "creationDateTime")
    project.modifying_user_guid = optional_attr(root, "modifyingUserGUID")
    project.modified_datetime = optional_attr(root, "modifiedDateTime")
    project.base_path = optional_attr(root, "basePath")
    project.description = child_text(root, "Description")
    project.note_refs = _refs(root, "NoteRef", NoteRef, path)

    project.users = _wrapped(root, "Users", "User", path, _parse_user)
    project.codebook = _parse_codebook(root, path)
    project.variables = _wrapped(root, "Variables", "Variable", path, _parse_variable)
    project.cases = _wrapped(root, "Cases", "Case", path, _parse_case)
    project.sources = _parse_sources(root, path)
    project.notes = _wrapped(root, "Notes", "Note", path, parse_text_source)
    project.links = _wrapped(root, "Links", "Link", path, _parse_link)
    project.sets = _wrapped(root, "Sets", "Set", path, _parse_set)
    project.graphs = _wrapped(root, "Graphs", "Graph", path, _parse_graph)
    return project
