"""Integrity and grammar validation of projects and manifests."""

from .export_checks import validate_project_for_export
from .references import IssueKind, ReferenceIssue, validate_references, walk_project
from .schema import SchemaValidator

__all__ = [
    "IssueKind",
    "ReferenceIssue",
    "validate_references",
    "walk_project",
    "validate_project_for_export",
    "SchemaValidator",
]
