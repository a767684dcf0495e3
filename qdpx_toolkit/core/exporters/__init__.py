"""Exporters writing projects as QDPX containers."""

from .qdpx_exporter import ExportResult, QdpxExporter, export_qdpx

__all__ = ["ExportResult", "QdpxExporter", "export_qdpx"]
