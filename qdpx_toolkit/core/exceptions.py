from __future__ import annotations

"""Exception classes for QDPX import and export.

Structural and I/O failures are raised immediately; reference-integrity
findings are never raised, they are returned as lists by
:mod:`qdpx_toolkit.core.validation`. Every exception carries a message and
an optional list of detail strings so callers can pinpoint the cause.
"""

from typing import Optional

__all__ = [
    "QdpxError",
    "InvalidContainerError",
    "QdpxFileNotFoundError",
    "MalformedDocumentError",
    "ValueCoercionError",
    "SchemaValidationError",
    "PathResolutionError",
    "ExportError",
    "ExportAbortedError",
    "ProjectValidationError",
]


class QdpxError(Exception):
    """Base exception for all QDPX toolkit errors.

    All toolkit exceptions inherit from this base class so front-ends can
    catch a single type and still report ``details``.
    """

    def __init__(self, message: str, details: Optional[list[str]] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = list(details or [])
        self.cause = cause

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({len(self.details)} detail(s))"
        return self.message


class InvalidContainerError(QdpxError):
    """Raised when a QDPX container is unreadable or lacks ``project.qde``."""
    pass


class QdpxFileNotFoundError(InvalidContainerError):
    """Raised when the QDPX file to import does not exist."""

    def __init__(self, file_path: str) -> None:
        super().__init__(f"QDPX file not found: {file_path}")
        self.file_path = file_path


class MalformedDocumentError(QdpxError):
    """Raised when the manifest cannot be turned into a project.

    This covers XML that is not well formed, a missing ``<Project>`` root
    and required attributes or elements that are absent.
    """
    pass


class ValueCoercionError(MalformedDocumentError):
    """Raised when a typed attribute holds text that is not a valid value.

    Numeric and boolean fields are decoded strictly; malformed text is
    reported here instead of being turned into ``NaN`` or ``None``.
    """

    def __init__(self, path: str, raw_value: str, expected: str) -> None:
        super().__init__(
            f"Cannot read {path} as {expected}: {raw_value!r}",
            details=[f"{path}={raw_value!r}"],
        )
        self.path = path
        self.raw_value = raw_value
        self.expected = expected


class SchemaValidationError(QdpxError):
    """Raised when the grammar validator reports structural errors."""

    def __init__(self, message: str, issues: Optional[list[str]] = None) -> None:
        super().__init__(message, details=issues)
        self.issues = list(issues or [])


class PathResolutionError(QdpxError):
    """Raised when a source address cannot be turned into a filesystem path."""

    def __init__(self, message: str, address: Optional[str] = None) -> None:
        super().__init__(message, details=[address] if address else None)
        self.address = address


class ExportError(QdpxError):
    """Raised when an export cannot produce its output container."""
    pass


class ExportAbortedError(ExportError):
    """Raised when the missing-source callback declines to continue.

    No output container is written once this has been raised.
    """

    def __init__(self, path: str, source_type: str, guid: str) -> None:
        super().__init__(
            f"Export aborted due to missing source: {path}",
            details=[f"{source_type} {guid}: {path}"],
        )
        self.path = path
        self.source_type = source_type
        self.guid = guid


class ProjectValidationError(ExportError):
    """Raised when pre-export validation finds problems in the project."""
    pass
