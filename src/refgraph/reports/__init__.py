"""Plain-text reference reports."""

from refgraph.reports.formatter import NOT_FOUND, ReportFormatter, write_reports

__all__ = ["NOT_FOUND", "ReportFormatter", "write_reports"]
