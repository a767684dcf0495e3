from __future__ import annotations

"""QDPX import.

Reads a container, decodes its manifest into a
:class:`~qdpx_toolkit.core.models.Project`, optionally checks the manifest
grammar, extracts embedded sources to disk and reports external sources
that cannot be found.
"""

import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

from qdpx_toolkit.core.addressing import AddressScheme, iter_source_addresses, payload, resolve_external_sources
from qdpx_toolkit.core.archive import MANIFEST_NAME, SOURCES_DIR, extract_source_files, read_container
from qdpx_toolkit.core.converter import parse_project
from qdpx_toolkit.core.exceptions import QdpxError, QdpxFileNotFoundError, SchemaValidationError
from qdpx_toolkit.core.models import Project
from qdpx_toolkit.core.options import ImportOptions
from qdpx_toolkit.core.validation import SchemaValidator

logger = logging.getLogger(__name__)

__all__ = ["ImportResult", "QdpxImporter", "import_qdpx"]


@dataclass
class ImportResult:
    """Outcome of a successful import.

    Attributes:
        project: The decoded project.
        missing_external_sources: Resolved paths of external sources that do
            not exist (only filled when resolution was requested).
        extracted_files: Files written from the container's ``sources/``.
        sources_path: Directory the sources were extracted to, if any.
        warnings: Non-fatal findings.
    """

    project: Project
    missing_external_sources: List[str] = field(default_factory=list)
    extracted_files: List[Path] = field(default_factory=list)
    sources_path: Optional[Path] = None
    warnings: List[str] = field(default_factory=list)


class QdpxImporter:
    """Importer for REFI-QDA ``.qdpx`` containers."""

    def __init__(self, options: Optional[ImportOptions] = None) -> None:
        self.options = options or ImportOptions.from_config()
        self.logger = logging.getLogger(f"{__name__}.QdpxImporter")

    def can_import(self, file_path: Union[str, Path]) -> bool:
        """Return True if *file_path* looks like a QDPX container."""
        file_path = Path(file_path)
        if not file_path.is_file():
            return False
        try:
            with zipfile.ZipFile(file_path, 'r') as zip_ref:
                return MANIFEST_NAME in zip_ref.namelist()
        except (zipfile.BadZipFile, OSError):
            return False

    def import_package(self, file_path: Union[str, Path],
                       progress_callback: Optional[Callable[[str], None]] = None) -> ImportResult:
        """Import *file_path*.

        Raises:
            QdpxFileNotFoundError: If the file does not exist.
            InvalidContainerError: If it is not a readable container.
            MalformedDocumentError: If the manifest cannot be decoded.
            SchemaValidationError: If grammar validation is enabled and fails.
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise QdpxFileNotFoundError(str(file_path))

        options = self.options
        if progress_callback:
            progress_callback(f"Importing QDPX container: {file_path.name}")
        self.logger.debug("Importing QDPX container: %s", file_path)

        contents = read_container(file_path)
        project = parse_project(contents.manifest)

        if options.validate_schema:
            issues = SchemaValidator(options.schema_path).validate(contents.manifest)
            if issues:
                raise SchemaValidationError("Project fails schema validation", issues)

        result = ImportResult(project=project)
        result.warnings.extend(self._check_internal_entries(project, contents.source_files))

        if options.extract_internal_sources:
            sources_path = Path(options.sources_output_path or file_path.parent / "sources")
            try:
                result.extracted_files = extract_source_files(contents.source_files, sources_path)
            except OSError as exc:
                raise QdpxError(f"Failed to extract sources to {sources_path}: {exc}", cause=exc) from exc
            result.sources_path = sources_path

        if options.resolve_external_sources:
            base = self._external_base_path(file_path, project)
            result.missing_external_sources = resolve_external_sources(project, base)
            for missing in result.missing_external_sources:
                self.logger.warning("External source not found: %s", missing)

        if progress_callback:
            progress_callback(f"Imported project '{project.name}' with {len(project.sources)} sources")
        self.logger.info(
            "Import OK: project=%s sources=%d extracted=%d missing_external=%d",
            project.name, len(project.sources), len(result.extracted_files),
            len(result.missing_external_sources),
        )
        return result

    # ------------------------------------------------------------------
    def _external_base_path(self, file_path: Path, project: Project) -> Path:
        if self.options.external_base_path:
            return Path(self.options.external_base_path)
        if project.base_path:
            return (file_path.parent / project.base_path).resolve()
        return file_path.parent

    def _check_internal_entries(self, project: Project, source_files) -> List[str]:
        warnings: List[str] = []
        for entry in iter_source_addresses(project):
            if entry.scheme is not AddressScheme.INTERNAL:
                continue
            name = SOURCES_DIR + payload(entry.address).lstrip("/")
            if name not in source_files:
                message = f"Internal source {entry.guid} has no container entry {name}"
                self.logger.warning("%s", message)
                warnings.append(message)
        return warnings


def import_qdpx(file_path: Union[str, Path], options: Optional[ImportOptions] = None) -> ImportResult:
    """Import the QDPX container at *file_path*.

    Convenience wrapper around :class:`QdpxImporter`.
    """
    return QdpxImporter(options).import_package(file_path)
