"""Source variants and everything a source owns.

Five closed source kinds share :class:`SourceBase`. Picture, PDF, audio and
video sources address their backing file through ``path`` (plus the last
known absolute location in ``current_path``); text sources address theirs
through ``plain_text_path``. :attr:`SourceBase.address` hides the difference
so packaging can treat every kind through one procedure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Iterator, List, Optional, Tuple

from .references import CodeRef, NoteRef, VariableValue

__all__ = [
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
]


class SourceKind(Enum):
    """Closed set of source variants, valued by their element name."""

    TEXT = "TextSource"
    PICTURE = "PictureSource"
    PDF = "PDFSource"
    AUDIO = "AudioSource"
    VIDEO = "VideoSource"

    @property
    def selection_element(self) -> str:
        return _SELECTION_ELEMENTS[self]


_SELECTION_ELEMENTS = {
    SourceKind.TEXT: "PlainTextSelection",
    SourceKind.PICTURE: "PictureSelection",
    SourceKind.PDF: "PDFSelection",
    SourceKind.AUDIO: "AudioSelection",
    SourceKind.VIDEO: "VideoSelection",
}


@dataclass
class Coding:
    guid: str
    code_ref: CodeRef
    note_refs: List[NoteRef] = field(default_factory=list)
    creating_user: Optional[str] = None
    creation_datetime: Optional[str] = None


# ---------------------------------------------------------------------------
# Selections
# ---------------------------------------------------------------------------

@dataclass(kw_only=True)
class SelectionBase:
    """Fields shared by every selection kind."""

    guid: str
    name: Optional[str] = None
    description: Optional[str] = None
    codings: List[Coding] = field(default_factory=list)
    note_refs: List[NoteRef] = field(default_factory=list)
    creating_user: Optional[str] = None
    creation_datetime: Optional[str] = None
    modifying_user: Optional[str] = None
    modified_datetime: Optional[str] = None


@dataclass(kw_only=True)
class PlainTextSelection(SelectionBase):
    start_position: int
    end_position: int


@dataclass(kw_only=True)
class PictureSelection(SelectionBase):
    first_x: int
    first_y: int
    second_x: int
    second_y: int


@dataclass(kw_only=True)
class PDFSelection(SelectionBase):
    page: int
    first_x: int
    first_y: int
    second_x: int
    second_y: int
    representation: Optional["TextSource"] = None


@dataclass(kw_only=True)
class AudioSelection(SelectionBase):
    begin: int
    end: int


@dataclass(kw_only=True)
class VideoSelection(SelectionBase):
    begin: int
    end: int


@dataclass(kw_only=True)
class TranscriptSelection(SelectionBase):
    """A transcript span delimited by two sync points, by identifier."""

    from_sync_point: Optional[str] = None
    to_sync_point: Optional[str] = None


# ---------------------------------------------------------------------------
# Transcripts
# ---------------------------------------------------------------------------

@dataclass
class SyncPoint:
    guid: str
    time_stamp: Optional[int] = None
    position: Optional[int] = None


@dataclass(kw_only=True)
class Transcript:
    guid: str
    name: Optional[str] = None
    description: Optional[str] = None
    plain_text_content: Optional[str] = None
    plain_text_path: Optional[str] = None
    rich_text_path: Optional[str] = None
    sync_points: List[SyncPoint] = field(default_factory=list)
    selections: List[TranscriptSelection] = field(default_factory=list)
    note_refs: List[NoteRef] = field(default_factory=list)
    creating_user: Optional[str] = None
    creation_datetime: Optional[str] = None
    modifying_user: Optional[str] = None
    modified_datetime: Optional[str] = None


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

@dataclass(kw_only=True)
class SourceBase:
    """Fields shared by every source kind."""

    guid: str
    name: Optional[str] = None
    description: Optional[str] = None
    codings: List[Coding] = field(default_factory=list)
    note_refs: List[NoteRef] = field(default_factory=list)
    variable_values: List[VariableValue] = field(default_factory=list)
    creating_user: Optional[str] = None
    creation_datetime: Optional[str] = None
    modifying_user: Optional[str] = None
    modified_datetime: Optional[str] = None

    kind: ClassVar[SourceKind]

    @property
    def address(self) -> Optional[str]:
        raise NotImplementedError

    @address.setter
    def address(self, value: Optional[str]) -> None:
        raise NotImplementedError

    @property
    def has_current_path(self) -> bool:
        return False


@dataclass(kw_only=True)
class TextSource(SourceBase):
    """Plain text source.

    Also used for project notes, picture text descriptions and PDF
    representations, which share the exact same shape.
    """

    plain_text_content: Optional[str] = None
    plain_text_path: Optional[str] = None
    rich_text_path: Optional[str] = None
    selections: List[PlainTextSelection] = field(default_factory=list)

    kind: ClassVar[SourceKind] = SourceKind.TEXT

    @property
    def address(self) -> Optional[str]:
        return self.plain_text_path

    @address.setter
    def address(self, value: Optional[str]) -> None:
        self.plain_text_path = value


@dataclass(kw_only=True)
class MediaSource(SourceBase):
    """Base for sources whose backing file is addressed by ``path``."""

    path: Optional[str] = None
    current_path: Optional[str] = None

    @property
    def address(self) -> Optional[str]:
        return self.path

    @address.setter
    def address(self, value: Optional[str]) -> None:
        self.path = value

    @property
    def has_current_path(self) -> bool:
        return True


@dataclass(kw_only=True)
class PictureSource(MediaSource):
    text_description: Optional[TextSource] = None
    selections: List[PictureSelection] = field(default_factory=list)

    kind: ClassVar[SourceKind] = SourceKind.PICTURE


@dataclass(kw_only=True)
class PDFSource(MediaSource):
    selections: List[PDFSelection] = field(default_factory=list)
    representation: Optional[TextSource] = None

    kind: ClassVar[SourceKind] = SourceKind.PDF


@dataclass(kw_only=True)
class AudioSource(MediaSource):
    transcripts: List[Transcript] = field(default_factory=list)
    selections: List[AudioSelection] = field(default_factory=list)

    kind: ClassVar[SourceKind] = SourceKind.AUDIO


@dataclass(kw_only=True)
class VideoSource(MediaSource):
    transcripts: List[Transcript] = field(default_factory=list)
    selections: List[VideoSelection] = field(default_factory=list)

    kind: ClassVar[SourceKind] = SourceKind.VIDEO


@dataclass
class Sources:
    """The five typed source lists of a project, in document order."""

    text: List[TextSource] = field(default_factory=list)
    picture: List[PictureSource] = field(default_factory=list)
    pdf: List[PDFSource] = field(default_factory=list)
    audio: List[AudioSource] = field(default_factory=list)
    video: List[VideoSource] = field(default_factory=list)

    def of_kind(self, kind: SourceKind) -> list:
        return {
            SourceKind.TEXT: self.text,
            SourceKind.PICTURE: self.picture,
            SourceKind.PDF: self.pdf,
            SourceKind.AUDIO: self.audio,
            SourceKind.VIDEO: self.video,
        }[kind]

    def iter_sources(self) -> Iterator[Tuple[SourceKind, int, SourceBase]]:
        """Yield ``(kind, index, source)`` in the fixed kind order."""
        for kind in SourceKind:
            for index, source in enumerate(self.of_kind(kind)):
                yield kind, index, source

    def add(self, source: SourceBase) -> None:
        self.of_kind(source.kind).append(source)

    def is_empty(self) -> bool:
        return not any(self.of_kind(kind) for kind in SourceKind)

    def __len__(self) -> int:
        return sum(len(self.of_kind(kind)) for kind in SourceKind)
