"""Canonical in-memory model of a REFI-QDA project."""

from .references import (  # noqa: F401
    GUID_PATTERN,
    CodeRef,
    NoteRef,
    Reference,
    RefKind,
    SelectionRef,
    SourceRef,
    VariableRef,
    VariableType,
    VariableValue,
    is_valid_guid,
    new_guid,
    normalize_guid,
)
from .sources import (  # noqa: F401
    AudioSelection,
    AudioSource,
    Coding,
    MediaSource,
    PDFSelection,
    PDFSource,
    PictureSelection,
    PictureSource,
    PlainTextSelection,
    SelectionBase,
    SourceBase,
    SourceKind,
    Sources,
    SyncPoint,
    TextSource,
    Transcript,
    TranscriptSelection,
    VideoSelection,
    VideoSource,
)
from .project import (  # noqa: F401
    Case,
    Code,
    CodeBook,
    Direction,
    Edge,
    Graph,
    LineStyle,
    Link,
    Project,
    Set,
    Shape,
    User,
    Variable,
    Vertex,
)

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
    "SourceKind",
    "Coding",
    "SelectionBase",
    "PlainTextSelection",
    "PictureSelection",
    "PDFSelection",
    "AudioSelection",
    "VideoSelection",
    "TranscriptSelection",
    "SyncPoint",
    "Transcript",
    "SourceBase",
    "TextSource",
    "MediaSource",
    "PictureSource",
    "PDFSource",
    "AudioSource",
    "VideoSource",
    "Sources",
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
