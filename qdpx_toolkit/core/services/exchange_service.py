from __future__ import annotations

"""High-level exchange service for QDPX projects.

Entry-point for any front-end that needs to read, check and write REFI-QDA
projects. Options come from :class:`~qdpx_toolkit.config.ConfigManager`
defaults, with per-call keyword overrides.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Union

from qdpx_toolkit.core.addressing import resolve_external_sources
from qdpx_toolkit.core.exporters import ExportResult, export_qdpx
from qdpx_toolkit.core.importers import ImportResult, import_qdpx
from qdpx_toolkit.core.models import Project
from qdpx_toolkit.core.options import ExportOptions, ImportOptions
from qdpx_toolkit.core.validation import ReferenceIssue, validate_references

logger = logging.getLogger(__name__)

__all__ = ["ExchangeService"]


class ExchangeService:
    """Business-logic facade over import, export and validation."""

    def __init__(self) -> None:
        self.logger = logger

    # ---------------------------------------------------------------------
    # PUBLIC API
    # ---------------------------------------------------------------------
    def import_project(self, file_path: Union[str, Path], **overrides: Any) -> ImportResult:
        """Import a container; keyword arguments override :class:`ImportOptions`."""
        self.logger.info("Import: reading container")
        return import_qdpx(file_path, ImportOptions.from_config(**overrides))

    def export_project(self, project: Union[Project, ImportResult],
                       output_path: Union[str, Path], **overrides: Any) -> ExportResult:
        """Export a project; keyword arguments override :class:`ExportOptions`.

        *project* may be the :class:`ImportResult` returned by
        :meth:`import_project`. Its sources directory is then used to locate
        embedded files unless ``internal_sources_path`` is given.
        """
        if isinstance(project, ImportResult):
            if project.sources_path is not None:
                overrides.setdefault("internal_sources_path", project.sources_path)
            project = project.project
        return export_qdpx(project, output_path, ExportOptions.from_config(**overrides))

    def validate(self, project: Project) -> List[ReferenceIssue]:
        """Return reference-integrity findings for *project*."""
        issues = validate_references(project)
        if issues:
            self.logger.info("Validation found %d issue(s) in '%s'", len(issues), project.name)
        return issues

    def find_missing_sources(self, project: Project,
                             base_path: Optional[Union[str, Path]] = None) -> List[str]:
        """Return resolved paths of external sources that do not exist.

        *base_path* defaults to the project's own base path, then the
        current directory.
        """
        base = base_path or project.base_path or "."
        return resolve_external_sources(project, base)
