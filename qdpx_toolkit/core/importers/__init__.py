"""Importers turning QDPX containers into projects."""

from .qdpx_importer import ImportResult, QdpxImporter, import_qdpx

__all__ = ["ImportResult", "QdpxImporter", "import_qdpx"]
