"""Tests for the exchange service facade."""

import zipfile

import pytest

from qdpx_toolkit.core.addressing import AddressScheme, construct
from qdpx_toolkit.core.exceptions import ExportError, ProjectValidationError
from qdpx_toolkit.core.models import CodeRef, PictureSource, Project, Sources
from qdpx_toolkit.core.services import ExchangeService

from conftest import G, P1_MANIFEST


@pytest.fixture
def service():
    return ExchangeService()


class TestImportExport:
    """Test option plumbing through the service."""

    def test_keyword_overrides(self, service, make_container, temp_dir):
        path = make_container(P1_MANIFEST)
        result = service.import_project(path, sources_output_path=temp_dir / "extracted")
        assert result.sources_path == temp_dir / "extracted"
        assert result.project.name == "P1"

    def test_internal_sources_found_after_import(self, service, make_container, temp_dir):
        """An export finds the files the same service extracted on import."""
        manifest = P1_MANIFEST.replace(
            "</Sources>",
            f'<PictureSource guid="{G(5)}" path="internal://pic.png"/></Sources>',
        )
        path = make_container(manifest, {"sources/pic.png": b"PNG"})
        imported = service.import_project(path)

        out = temp_dir / "out" / "copy.qdpx"
        result = service.export_project(imported, out)
        assert result.warnings == []
        with zipfile.ZipFile(out) as archive:
            assert archive.read("sources/pic.png") == b"PNG"

    def test_bare_project_carries_no_import_state(self, service, make_container, temp_dir):
        """Exporting the bare project does not reuse another import's sources directory."""
        manifest = P1_MANIFEST.replace(
            "</Sources>",
            f'<PictureSource guid="{G(5)}" path="internal://pic.png"/></Sources>',
        )
        path = make_container(manifest, {"sources/pic.png": b"PNG"})
        imports = [service.import_project(path) for _ in range(3)]
        assert not hasattr(service, "_sources_paths")

        result = service.export_project(imports[-1].project, temp_dir / "bare.qdpx")
        assert result.warnings == ["Could not include internal source: pic.png"]
        with zipfile.ZipFile(temp_dir / "bare.qdpx") as archive:
            assert "sources/pic.png" not in archive.namelist()

    def test_explicit_sources_path_wins(self, service, make_container, temp_dir):
        manifest = P1_MANIFEST.replace(
            "</Sources>",
            f'<PictureSource guid="{G(5)}" path="internal://pic.png"/></Sources>',
        )
        imported = service.import_project(make_container(manifest, {"sources/pic.png": b"PNG"}))
        other = temp_dir / "other"
        other.mkdir()
        (other / "pic.png").write_bytes(b"OTHER")

        service.export_project(imported, temp_dir / "o.qdpx", internal_sources_path=other)
        with zipfile.ZipFile(temp_dir / "o.qdpx") as archive:
            assert archive.read("sources/pic.png") == b"OTHER"

    def test_export_refuses_overwrite_by_default(self, service, temp_dir):
        target = temp_dir / "exists.qdpx"
        target.write_bytes(b"keep")
        with pytest.raises(ExportError):
            service.export_project(Project(name="P"), target)
        assert target.read_bytes() == b"keep"

    def test_export_overwrite_override(self, service, temp_dir):
        target = temp_dir / "exists.qdpx"
        target.write_bytes(b"old")
        service.export_project(Project(name="P"), target, overwrite=True)
        assert zipfile.is_zipfile(target)


class TestValidation:
    """Test validation helpers."""

    def test_validate(self, service, sample_project):
        assert service.validate(sample_project) == []
        sample_project.cases[0].code_refs.append(CodeRef(G(999)))
        assert len(service.validate(sample_project)) == 1

    def test_export_blocked_by_validation(self, service, sample_project, temp_dir):
        sample_project.cases[0].code_refs.append(CodeRef(G(999)))
        with pytest.raises(ProjectValidationError) as exc_info:
            service.export_project(sample_project, temp_dir / "out.qdpx")
        assert exc_info.value.details
        assert not (temp_dir / "out.qdpx").exists()

    def test_find_missing_sources(self, service, temp_dir):
        (temp_dir / "here.png").write_bytes(b"x")
        project = Project(name="P", sources=Sources(picture=[
            PictureSource(guid=G(1), path="relative:///here.png"),
            PictureSource(guid=G(2), path="relative:///gone.png"),
            PictureSource(guid=G(3), path=construct(AddressScheme.ABSOLUTE, temp_dir / "x.png")),
        ]))
        missing = service.find_missing_sources(project, temp_dir)
        assert missing == [str(temp_dir / "gone.png"), str(temp_dir / "x.png")]
