"""Core QDPX processing: model, conversion, validation, addressing and packaging.

Sub-packages are imported explicitly by callers; importing this package
does not pull in the container or service layers.
"""

from .exceptions import (  # noqa: F401
    ExportAbortedError,
    ExportError,
    InvalidContainerError,
    MalformedDocumentError,
    PathResolutionError,
    ProjectValidationError,
    QdpxError,
    QdpxFileNotFoundError,
    SchemaValidationError,
    ValueCoercionError,
)

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
