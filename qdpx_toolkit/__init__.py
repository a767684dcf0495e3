"""Top-level package for QDPX Toolkit.

Reads and writes REFI-QDA project exchange containers (``.qdpx``). Front-ends
should depend on the public API re-exported here rather than importing
internal modules directly.
"""

from .core.converter import parse_project, serialize_project
from .core.exporters import ExportResult, export_qdpx
from .core.importers import ImportResult, import_qdpx
from .core.models import Project
from .core.options import ExportOptions, ImportOptions
from .core.services import ExchangeService
from .core.validation import validate_references

__version__ = "1.0.0"

__all__: list[str] = [
    "Project",
    "parse_project",
    "serialize_project",
    "validate_references",
    "import_qdpx",
    "export_qdpx",
    "ImportOptions",
    "ExportOptions",
    "ImportResult",
    "ExportResult",
    "ExchangeService",
]
