"""Tests for export source packaging."""

import copy
import os

import pytest

from qdpx_toolkit.core.addressing import construct, AddressScheme
from qdpx_toolkit.core.exceptions import ExportAbortedError
from qdpx_toolkit.core.models import (
    AudioSource,
    PDFSource,
    PictureSource,
    Project,
    SourceKind,
    Sources,
    TextSource,
)
from qdpx_toolkit.core.packaging import PackagingPolicy, package_sources

from conftest import G

posix_only = pytest.mark.skipif(os.name == "nt", reason="POSIX absolute paths")


def _policy(base, **kwargs):
    kwargs.setdefault("id_generator", lambda: "fixed-id")
    return PackagingPolicy(export_base_path=base, **kwargs)


def _picture_project(address, **kwargs):
    return Project(name="P", sources=Sources(
        picture=[PictureSource(guid=G(1), path=address, **kwargs)],
    ))


class TestEmbedding:
    """External files within the size limit are embedded when requested."""

    def test_size_boundary(self, tmp_path):
        """A file of exactly the limit is embedded; one byte over is not."""
        (tmp_path / "a.png").write_bytes(b"x" * 10)
        project = _picture_project("relative:///a.png")

        at_limit = package_sources(project, _policy(
            tmp_path, include_external_sources=True, max_internal_file_size=10))
        assert at_limit.files == {"sources/fixed-id.png": b"x" * 10}
        picture = at_limit.project.sources.picture[0]
        assert picture.path == "internal://fixed-id.png"
        assert picture.current_path == construct(AddressScheme.ABSOLUTE, tmp_path / "a.png")
        assert at_limit.unresolved_external == []

        over = package_sources(project, _policy(
            tmp_path, include_external_sources=True, max_internal_file_size=9))
        assert over.files == {}
        assert over.project.sources.picture[0].path == "relative:///a.png"
        assert over.unresolved_external == [str(tmp_path / "a.png")]

    def test_text_source_embedding(self, tmp_path):
        (tmp_path / "t.txt").write_text("body", encoding="utf-8")
        project = Project(name="P", sources=Sources(
            text=[TextSource(guid=G(1), plain_text_path="relative:///t.txt")],
        ))
        result = package_sources(project, _policy(tmp_path, include_external_sources=True))
        assert result.project.sources.text[0].plain_text_path == "internal://fixed-id.txt"
        assert result.files["sources/fixed-id.txt"] == b"body"

    def test_generated_names_are_unique(self, tmp_path):
        for name in ("a.pdf", "b.pdf"):
            (tmp_path / name).write_bytes(b"%PDF")
        project = Project(name="P", sources=Sources(pdf=[
            PDFSource(guid=G(1), path="relative:///a.pdf"),
            PDFSource(guid=G(2), path="relative:///b.pdf"),
        ]))
        result = package_sources(project, PackagingPolicy(
            export_base_path=tmp_path, include_external_sources=True))
        assert len(result.files) == 2
        assert all(name.endswith(".pdf") for name in result.files)

    def test_rewrites_are_recorded(self, tmp_path):
        (tmp_path / "a.png").write_bytes(b"x")
        result = package_sources(_picture_project("relative:///a.png"),
                                 _policy(tmp_path, include_external_sources=True))
        rewrite = result.address_rewrites[0]
        assert rewrite.guid == G(1)
        assert rewrite.kind is SourceKind.PICTURE
        assert rewrite.old_address == "relative:///a.png"
        assert rewrite.new_address == "internal://fixed-id.png"


class TestKeepingExternal:
    """Files that are not embedded keep a canonical external address."""

    def test_relative_address_canonicalised(self, tmp_path):
        (tmp_path / "docs").mkdir()
        (tmp_path / "docs" / "a.png").write_bytes(b"x")
        result = package_sources(_picture_project("docs/a.png"),
                                 _policy(tmp_path))
        picture = result.project.sources.picture[0]
        assert picture.path == "relative:///docs/a.png"
        assert picture.current_path == construct(AddressScheme.ABSOLUTE, tmp_path / "docs" / "a.png")
        assert result.project.base_path == os.fspath(tmp_path)

    @posix_only
    def test_absolute_address_stays_absolute(self, tmp_path):
        (tmp_path / "a.png").write_bytes(b"x")
        address = construct(AddressScheme.ABSOLUTE, tmp_path / "a.png")
        result = package_sources(_picture_project(address), _policy(tmp_path / "elsewhere"))
        assert result.project.sources.picture[0].path == address
        assert result.unresolved_external == [str(tmp_path / "a.png")]
        assert result.project.base_path is None

    def test_existing_base_path_is_kept(self, tmp_path):
        media = tmp_path / "media"
        media.mkdir()
        (media / "a.png").write_bytes(b"x")
        project = _picture_project("relative:///a.png")
        project.base_path = str(media)
        result = package_sources(project, _policy(media))
        assert result.project.base_path == str(media)
        assert result.project.sources.picture[0].path == "relative:///a.png"

    @posix_only
    def test_no_relative_path_keeps_absolute(self, tmp_path, monkeypatch):
        """A file with no relative path to the base (another drive) stays absolute."""
        (tmp_path / "a.png").write_bytes(b"x")

        def no_relpath(path, start=None):
            raise ValueError("path is on mount 'D:', start on mount 'C:'")

        monkeypatch.setattr(os.path, "relpath", no_relpath)
        result = package_sources(_picture_project("relative:///a.png"), _policy(tmp_path))
        absolute = construct(AddressScheme.ABSOLUTE, tmp_path / "a.png")
        picture = result.project.sources.picture[0]
        assert picture.path == absolute
        assert picture.current_path is None
        assert result.warnings[0].startswith(f"No relative path to {tmp_path / 'a.png'}")
        assert result.unresolved_external == [str(tmp_path / "a.png")]

    def test_relative_project_base_is_joined_to_export_base(self, tmp_path):
        (tmp_path / "a.png").write_bytes(b"x")
        (tmp_path / "media").mkdir()
        project = _picture_project("relative:///a.png")
        project.base_path = "media"
        result = package_sources(project, _policy(tmp_path))
        assert result.project.base_path == "media"
        assert result.project.sources.picture[0].path == "relative:///../a.png"


class TestMissingSources:
    """Test the missing-source callback contract."""

    def test_abort(self, tmp_path):
        calls = []

        def on_missing(path, kind, guid):
            calls.append((path, kind, guid))
            return False

        with pytest.raises(ExportAbortedError) as exc_info:
            package_sources(_picture_project("relative:///gone.png"),
                            _policy(tmp_path, on_missing_source=on_missing))
        assert calls == [(str(tmp_path / "gone.png"), "PictureSource", G(1))]
        assert exc_info.value.guid == G(1)
        assert exc_info.value.source_type == "PictureSource"

    def test_continue_keeps_address(self, tmp_path):
        result = package_sources(_picture_project("relative:///gone.png"),
                                 _policy(tmp_path, on_missing_source=lambda *args: True))
        assert result.project.sources.picture[0].path == "relative:///gone.png"
        assert result.warnings == [f"Could not process source: {tmp_path / 'gone.png'}"]
        assert result.files == {}

    def test_no_callback_continues(self, tmp_path):
        result = package_sources(_picture_project("relative:///gone.png"), _policy(tmp_path))
        assert len(result.warnings) == 1

    def test_unresolvable_address(self):
        result = package_sources(_picture_project("relative:///a.png"), PackagingPolicy())
        assert result.project.sources.picture[0].path == "relative:///a.png"
        assert result.warnings[0].startswith("Invalid source path: relative:///a.png")

    def test_sources_processed_in_kind_order(self, tmp_path):
        project = Project(name="P", sources=Sources(
            audio=[AudioSource(guid=G(2), path="relative:///b.mp3")],
            text=[TextSource(guid=G(1), plain_text_path="relative:///a.txt")],
        ))
        seen = []
        package_sources(project, _policy(
            tmp_path, on_missing_source=lambda path, kind, guid: seen.append(kind) or True))
        assert seen == ["TextSource", "AudioSource"]


class TestInternalSources:
    """Internal sources are looked up and stay internal."""

    def test_found_through_current_path(self, tmp_path):
        (tmp_path / "stored.png").write_bytes(b"img")
        project = _picture_project(
            "internal://abc.png",
            current_path=construct(AddressScheme.ABSOLUTE, tmp_path / "stored.png"),
        )
        result = package_sources(project, _policy(tmp_path))
        assert result.files == {"sources/abc.png": b"img"}
        assert result.project.sources.picture[0].path == "internal://abc.png"
        assert result.address_rewrites == []

    def test_found_in_extracted_sources(self, tmp_path):
        extracted = tmp_path / "sources"
        extracted.mkdir()
        (extracted / "abc.png").write_bytes(b"img")
        result = package_sources(_picture_project("internal://abc.png"),
                                 _policy(tmp_path, internal_sources_path=extracted))
        assert result.files == {"sources/abc.png": b"img"}

    def test_missing_internal_source_warns(self, tmp_path):
        result = package_sources(_picture_project("internal://abc.png"), _policy(tmp_path))
        assert result.files == {}
        assert result.warnings == ["Could not include internal source: abc.png"]
        assert result.project.sources.picture[0].path == "internal://abc.png"

    def test_internal_sources_ignore_size_limit(self, tmp_path):
        (tmp_path / "abc.png").write_bytes(b"x" * 100)
        result = package_sources(_picture_project("internal://abc.png"),
                                 _policy(tmp_path, internal_sources_path=tmp_path,
                                         max_internal_file_size=1))
        assert "sources/abc.png" in result.files


class TestIsolation:
    """The caller's project is never modified."""

    def test_original_untouched(self, tmp_path):
        (tmp_path / "a.png").write_bytes(b"x")
        project = _picture_project("relative:///a.png")
        snapshot = copy.deepcopy(project)
        result = package_sources(project, _policy(tmp_path, include_external_sources=True))
        assert project == snapshot
        assert result.project is not project
        assert result.project.sources.picture[0].path != project.sources.picture[0].path

    def test_sources_without_address_are_skipped(self, tmp_path):
        project = Project(name="P", sources=Sources(
            text=[TextSource(guid=G(1), plain_text_content="inline")],
        ))
        result = package_sources(project, _policy(tmp_path))
        assert result.project == project
        assert result.warnings == [] and result.files == {}
