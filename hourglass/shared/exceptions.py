"""
Report exceptions.

Raised by the reporting layer and translated to HTTP responses by the
route handlers.
"""


class ReportError(Exception):
    """Base class for reporting failures."""


class FetchError(ReportError):
    """The document store query for a report failed."""


class EmptyExportError(ReportError):
    """An export was requested for a report with no rows."""

    def __init__(self, message: str = "No data to export"):
        super().__init__(message)
        self.message = message
