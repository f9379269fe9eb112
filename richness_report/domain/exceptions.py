"""
Errors raised by the report pipeline.

Every error is fatal to a run: loading, joining or aggregating stops at the
first failure and no partial report is produced.
"""


class ReportError(Exception):
    """Base class for pipeline failures."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LoadError(ReportError):
    """A source is missing, unreadable or malformed."""

    status_code = 503


class SchemaError(ReportError):
    """A source is readable but lacks the expected columns or geometry types."""

    status_code = 422


class CoordinateSystemError(ReportError):
    """A reference system is unset, unparsable or incompatible."""

    status_code = 422
