"""Report execution package."""

from bookkeeping.queries.executor import ReportError, ReportExecutor

__all__ = ["ReportError", "ReportExecutor"]
