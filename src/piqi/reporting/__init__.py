"""Audited message and HTML rendering of score results."""

from .audit import AuditRenderer, data_node
from .html_report import HTMLReportGenerator, HTMLReportResult

__all__ = ["AuditRenderer", "HTMLReportGenerator", "HTMLReportResult", "data_node"]
