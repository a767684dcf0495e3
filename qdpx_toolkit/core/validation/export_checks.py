from __future__ import annotations

"""Pre-export consistency checks."""

import logging
from typing import List

from qdpx_toolkit.core.converter import serialize_project
from qdpx_toolkit.core.exceptions import MalformedDocumentError
from qdpx_toolkit.core.models import AudioSource, Project, TextSource, VideoSource

from .references import validate_references

__all__ = ["validate_project_for_export"]

logger = logging.getLogger(__name__)


def _has_text(content, path) -> bool:
    return content is not None or bool(path)


def validate_project_for_export(project: Project) -> List[str]:
    """Collect every problem that should stop *project* from being exported.

    Combines the name invariant, all reference-integrity findings, a
    per-source address check and a trial serialization.

    Returns:
        Human readable messages; empty when the project can be exported.
    """
    errors: List[str] = []

    if not project.name or not project.name.strip():
        errors.append("Project name is required")

    errors.extend(str(issue) for issue in validate_references(project))

    for kind, index, source in project.sources.iter_sources():
        where = f"{kind.value}[{index}] ({source.guid})"
        if isinstance(source, TextSource):
            if not _has_text(source.plain_text_content, source.plain_text_path):
                errors.append(f"{where} has neither PlainTextContent nor plainTextPath")
            continue
        if not source.address:
            errors.append(f"{where} has no path")
        if isinstance(source, (AudioSource, VideoSource)):
            for t_index, transcript in enumerate(source.transcripts):
                if not _has_text(transcript.plain_text_content, transcript.plain_text_path):
                    errors.append(
                        f"{where}.Transcript[{t_index}] has neither PlainTextContent "
                        "nor plainTextPath"
                    )

    try:
        serialize_project(project)
    except MalformedDocumentError as exc:
        errors.append(f"Project cannot be serialized: {exc.message}")

    if errors:
        logger.debug("Pre-export validation of '%s' found %d problem(s)", project.name, len(errors))
    return errors
