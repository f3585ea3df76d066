"""
Error taxonomy for the ETL pipeline.

Row-level errors (FormatError, SemanticError, SourceError) are recovered
locally by dropping the offending row. StoreError is fatal to a run.
"""


class UrbanFluxError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(UrbanFluxError):
    """Raised when configuration values are missing or invalid."""


class RowError(UrbanFluxError):
    """
    Base class for errors that reject a single row.

    Attributes:
        field_name: Field that caused the rejection (None if row-level)
        message: Human readable reason
    """

    error_type = "row"

    def __init__(self, message: str, field_name: str | None = None):
        self.field_name = field_name
        self.message = message
        if field_name:
            super().__init__(f"{field_name}: {message}")
        else:
            super().__init__(message)


class FormatError(RowError):
    """A value cannot be decoded into its expected type."""

    error_type = "format"


class SemanticError(RowError):
    """A value decodes but violates a domain rule."""

    error_type = "semantic"


class SourceError(RowError):
    """
    The row or the stream itself cannot be read.

    Raised per row for structural decoding failures, and fatally when
    the source cannot be opened at all.
    """

    error_type = "source"


class StoreError(UrbanFluxError):
    """The persistent backend rejected an operation."""
