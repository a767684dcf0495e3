from __future__ import annotations

"""QDPX export.

Sequence: overwrite guard, optional pre-export validation, source
packaging on a private copy, manifest serialization, optional grammar
check of that manifest, then an atomic container write. Nothing is
written unless every earlier step succeeded, and the caller's project is
never modified.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from qdpx_toolkit.core.archive import write_container
from qdpx_toolkit.core.converter import serialize_project
from qdpx_toolkit.core.exceptions import ExportError, ProjectValidationError, SchemaValidationError
from qdpx_toolkit.core.models import Project
from qdpx_toolkit.core.options import ExportOptions
from qdpx_toolkit.core.packaging import PackagingPolicy, PackagingResult, package_sources
from qdpx_toolkit.core.validation import SchemaValidator, validate_project_for_export

logger = logging.getLogger(__name__)

__all__ = ["ExportResult", "QdpxExporter", "export_qdpx"]


@dataclass
class ExportResult:
    """Outcome of a successful export.

    Attributes:
        success: Always True; failures raise instead.
        qdpx_path: The container that was written.
        external_sources: Files referenced but not embedded.
        warnings: Non-fatal findings from packaging.
        packaging: Full packaging details (address rewrites, embedded files).
    """

    success: bool
    qdpx_path: Path
    external_sources: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    packaging: Optional[PackagingResult] = None


class QdpxExporter:
    """Writes projects as REFI-QDA ``.qdpx`` containers."""

    def __init__(self, options: Optional[ExportOptions] = None) -> None:
        self.options = options or ExportOptions.from_config()
        self.logger = logging.getLogger(f"{__name__}.QdpxExporter")

    def _policy(self, output_path: Path) -> PackagingPolicy:
        options = self.options
        return PackagingPolicy(
            include_external_sources=options.include_external_sources,
            export_base_path=options.export_base_path or output_path.parent,
            max_internal_file_size=options.max_internal_file_size,
            on_missing_source=options.on_missing_source,
            id_generator=options.id_generator,
            internal_sources_path=options.internal_sources_path,
        )

    def export(self, project: Project, output_path: Union[str, Path]) -> ExportResult:
        """Export *project* to *output_path*.

        Raises:
            ExportError: If the output exists and overwriting is disabled, or
                the container cannot be written.
            ProjectValidationError: If pre-export validation finds problems.
            ExportAbortedError: If the missing-source callback declines.
            SchemaValidationError: If the produced manifest fails the grammar.
        """
        output_path = Path(output_path)
        options = self.options
        self.logger.info("Export: writing QDPX container")
        self.logger.debug("Destination: %s", output_path)

        if output_path.exists() and not options.overwrite:
            raise ExportError(
                f"Output file already exists: {output_path}. Use overwrite option to replace it."
            )

        if options.validate_before_export:
            errors = validate_project_for_export(project)
            if errors:
                raise ProjectValidationError("Project validation failed before export", details=errors)

        packaging = package_sources(project, self._policy(output_path))
        manifest = serialize_project(packaging.project)

        if options.validate_before_export:
            issues = SchemaValidator(options.schema_path).validate(manifest)
            if issues:
                raise SchemaValidationError("Exported manifest fails schema validation", issues)

        write_container(output_path, manifest, packaging.files)
        self.logger.info(
            "Export OK: %s (%d embedded, %d external, %d warning(s))",
            output_path, len(packaging.files), len(packaging.unresolved_external),
            len(packaging.warnings),
        )
        return ExportResult(
            success=True,
            qdpx_path=output_path,
            external_sources=list(packaging.unresolved_external),
            warnings=list(packaging.warnings),
            packaging=packaging,
        )


def export_qdpx(project: Project, output_path: Union[str, Path],
                options: Optional[ExportOptions] = None) -> ExportResult:
    """Export *project* to *output_path*; see :meth:`QdpxExporter.export`."""
    return QdpxExporter(options).export(project, output_path)
