"""Report renderers: console table, CSV, HTML and XLSX."""

from .exporter import ReportExporter

__all__ = ["ReportExporter"]
