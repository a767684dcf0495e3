"""Shared fixtures for the QDPX Toolkit test suite.

Every test runs with an isolated configuration directory so user overrides
on the developer machine never leak into results.
"""

import shutil
import sys
import tempfile
import zipfile
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from qdpx_toolkit.config import ConfigManager
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
    VariableType,
    VariableValue,
    VideoSelection,
    VideoSource,
    Vertex,
)

P1_GUID = "11111111-1111-1111-1111-111111111111"

P1_MANIFEST = f"""<?xml version="1.0" encoding="UTF-8"?>
<Project xmlns="urn:QDA-XML:project:1.0" name="P1">
  <Sources>
    <TextSource guid="{P1_GUID}">
      <PlainTextContent>hello</PlainTextContent>
    </TextSource>
  </Sources>
</Project>
"""


def G(n: int) -> str:
    """Deterministic GUID for test entity *n*."""
    return f"00000000-0000-0000-0000-{n:012d}"


def build_sample_project() -> Project:
    """A project touching every entity kind, with consistent references."""
    child = Code(guid=G(3), name="Child", is_codable=True, color="#00FF00")
    root_code = Code(
        guid=G(2), name="Root", is_codable=False, color="#FF0000",
        description="Top level", note_refs=[NoteRef(G(40))], children=[child],
    )
    text = TextSource(
        guid=G(10), name="Interview", plain_text_content="hello world",
        creating_user=G(1), creation_datetime="2024-01-01T10:00:00Z",
        variable_values=[VariableValue.integer(G(4), 42)],
        selections=[PlainTextSelection(
            guid=G(11), name="greeting", start_position=0, end_position=5,
            codings=[Coding(guid=G(12), code_ref=CodeRef(G(3)), creating_user=G(1),
                            creation_datetime="2024-01-01T10:05:00Z")],
        )],
    )
    picture = PictureSource(
        guid=G(20), name="Photo", path="internal://photo.png",
        current_path="absolute:///tmp/photo.png",
        text_description=TextSource(guid=G(21), plain_text_content="A photo"),
        selections=[PictureSelection(guid=G(22), first_x=1, first_y=2, second_x=30, second_y=40)],
    )
    pdf = PDFSource(
        guid=G(23), name="Report", path="relative:///docs/report.pdf",
        selections=[PDFSelection(
            guid=G(24), page=1, first_x=0, first_y=0, second_x=10, second_y=10,
            representation=TextSource(guid=G(25), plain_text_content="page one"),
        )],
        representation=TextSource(guid=G(26), plain_text_content="full text"),
    )
    audio = AudioSource(
        guid=G(30), name="Recording", path="absolute:///data/a.mp3",
        transcripts=[Transcript(
            guid=G(31), plain_text_content="um hello",
            sync_points=[SyncPoint(G(32), time_stamp=0, position=0),
                         SyncPoint(G(33), time_stamp=1000, position=8)],
            selections=[TranscriptSelection(guid=G(34), from_sync_point=G(32), to_sync_point=G(33))],
        )],
        selections=[AudioSelection(guid=G(35), begin=0, end=1000)],
    )
    video = VideoSource(
        guid=G(36), name="Clip", path="relative:///v.mp4",
        selections=[VideoSelection(guid=G(37), begin=5, end=10, description="clip")],
    )
    return Project(
        name="Sample",
        origin="tests",
        creating_user_guid=G(1),
        creation_datetime="2024-01-01T09:00:00Z",
        description="A sample project",
        note_refs=[NoteRef(G(40))],
        users=[User(guid=G(1), name="Ann", id="ann")],
        codebook=CodeBook(codes=[root_code]),
        variables=[
            Variable(guid=G(4), name="Age", type_of_variable=VariableType.INTEGER,
                     description="Age in years"),
            Variable(guid=G(5), name="Consent", type_of_variable=VariableType.BOOLEAN),
        ],
        cases=[Case(
            guid=G(50), name="Participant 1",
            code_refs=[CodeRef(G(2))],
            variable_values=[VariableValue.boolean(G(5), True)],
            source_refs=[SourceRef(G(10))],
            selection_refs=[SelectionRef(G(11))],
        )],
        sources=Sources(text=[text], picture=[picture], pdf=[pdf], audio=[audio], video=[video]),
        notes=[TextSource(guid=G(40), name="Memo", plain_text_content="remember")],
        links=[Link(guid=G(80), name="relates", direction=Direction.ASSOCIATIVE,
                    origin_guid=G(10), target_guid=G(20), note_refs=[NoteRef(G(40))])],
        sets=[Set(guid=G(60), name="Group", member_codes=[CodeRef(G(2))],
                  member_sources=[SourceRef(G(20))], member_notes=[NoteRef(G(40))])],
        graphs=[Graph(
            guid=G(70), name="Map",
            vertices=[
                Vertex(G(71), 0, 0, represented_guid=G(2), shape=Shape.OVAL),
                Vertex(G(72), 100, 100, represented_guid=G(3), second_x=150, second_y=150),
            ],
            edges=[Edge(G(73), source_vertex=G(71), target_vertex=G(72),
                        direction=Direction.ONE_WAY, line_style=LineStyle.DASHED)],
        )],
    )


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the configuration directory at a throwaway location."""
    config_dir = tmp_path / "user_config"
    monkeypatch.setenv("QDPX_TOOLKIT_CONFIG_DIR", str(config_dir))
    ConfigManager.reset()
    yield config_dir
    ConfigManager.reset()


@pytest.fixture
def temp_dir():
    """Creates a temporary directory for test operations."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_project():
    """Fresh fully populated project."""
    return build_sample_project()


@pytest.fixture
def p1_manifest():
    return P1_MANIFEST


@pytest.fixture
def make_container(temp_dir):
    """Factory writing a raw QDPX zip from a manifest and source entries."""

    def _make(manifest, sources=None, name="input.qdpx"):
        path = temp_dir / name
        with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as archive:
            if manifest is not None:
                archive.writestr("project.qde", manifest)
            for entry, data in (sources or {}).items():
                archive.writestr(entry, data)
        return path

    return _make
