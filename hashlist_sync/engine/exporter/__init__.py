"""Exporter SPI and implementations."""

from .base import BaseExporter, ExportResult
from .elastic_exporter import ElasticExporter
from .file_exporter import FileExporter

__all__ = ["BaseExporter", "ElasticExporter", "ExportResult", "FileExporter"]
