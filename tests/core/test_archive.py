"""Tests for QDPX container reading and writing."""

import zipfile

import pytest

from qdpx_toolkit.core.archive import (
    MANIFEST_NAME,
    extract_source_files,
    read_container,
    write_container,
)
from qdpx_toolkit.core.exceptions import ExportError, InvalidContainerError


class TestWriteContainer:
    """Test atomic container writing."""

    def test_layout_and_compression(self, temp_dir, p1_manifest):
        path = write_container(temp_dir / "out.qdpx", p1_manifest,
                               {"sources/b.txt": b"B", "sources/a.txt": b"A"})
        with zipfile.ZipFile(path) as archive:
            assert archive.namelist() == [MANIFEST_NAME, "sources/a.txt", "sources/b.txt"]
            assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in archive.infolist())
            assert archive.read(MANIFEST_NAME).decode("utf-8") == p1_manifest

    def test_creates_parent_directories(self, temp_dir, p1_manifest):
        path = write_container(temp_dir / "a" / "b" / "out.qdpx", p1_manifest, {})
        assert path.is_file()

    def test_no_temporary_files_left(self, temp_dir, p1_manifest):
        write_container(temp_dir / "out.qdpx", p1_manifest, {})
        assert [p.name for p in temp_dir.iterdir()] == ["out.qdpx"]

    def test_replaces_existing_file(self, temp_dir, p1_manifest):
        target = temp_dir / "out.qdpx"
        target.write_bytes(b"old")
        write_container(target, p1_manifest, {})
        assert zipfile.is_zipfile(target)

    @pytest.mark.parametrize("name", ["../evil.txt", "/abs.txt", MANIFEST_NAME])
    def test_unsafe_entry_names(self, temp_dir, p1_manifest, name):
        with pytest.raises(ExportError):
            write_container(temp_dir / "out.qdpx", p1_manifest, {name: b"x"})
        assert list(temp_dir.iterdir()) == []


class TestReadContainer:
    """Test container reading."""

    def test_read_manifest_and_sources(self, make_container, p1_manifest):
        path = make_container(p1_manifest, {"sources/a.txt": b"A", "other/b.txt": b"B"})
        contents = read_container(path)
        assert contents.manifest == p1_manifest
        assert contents.source_files == {"sources/a.txt": b"A"}

    def test_read_from_bytes(self, make_container, p1_manifest):
        path = make_container(p1_manifest)
        assert read_container(path.read_bytes()).manifest == p1_manifest

    def test_bom_is_stripped(self, make_container, p1_manifest):
        path = make_container(b"\xef\xbb\xbf" + p1_manifest.encode("utf-8"))
        assert read_container(path).manifest == p1_manifest

    def test_missing_manifest(self, make_container):
        path = make_container(None, {"sources/a.txt": b"A"})
        with pytest.raises(InvalidContainerError) as exc_info:
            read_container(path)
        assert MANIFEST_NAME in exc_info.value.message

    def test_not_a_zip(self, temp_dir):
        path = temp_dir / "broken.qdpx"
        path.write_bytes(b"not a zip at all")
        with pytest.raises(InvalidContainerError):
            read_container(path)

    def test_manifest_not_utf8(self, make_container):
        path = make_container(b"<Project name='\xff'/>")
        with pytest.raises(InvalidContainerError):
            read_container(path)


class TestExtractSourceFiles:
    """Test extraction of payload entries."""

    def test_extract_by_base_name(self, temp_dir):
        written = extract_source_files(
            {"sources/a.txt": b"A", "sources/nested/b.txt": b"B"}, temp_dir / "out")
        assert sorted(p.name for p in written) == ["a.txt", "b.txt"]
        assert (temp_dir / "out" / "b.txt").read_bytes() == b"B"

    def test_unsafe_entry(self, temp_dir):
        with pytest.raises(InvalidContainerError):
            extract_source_files({"sources/../../evil.txt": b"x"}, temp_dir / "out")
        assert not (temp_dir / "evil.txt").exists()

    def test_late_unsafe_entry_writes_nothing(self, temp_dir):
        """An unsafe name anywhere in the archive stops extraction before any write."""
        entries = {"sources/a.txt": b"A", "sources/b.txt": b"B", "/etc/evil.txt": b"x"}
        with pytest.raises(InvalidContainerError):
            extract_source_files(entries, temp_dir / "out")
        assert not (temp_dir / "out").exists()
