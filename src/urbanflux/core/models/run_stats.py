"""
RunStats model: row counters for a chunk or a whole run.
"""

from pydantic import BaseModel, Field


class RunStats(BaseModel):
    """
    Row counters collected while a run progresses.

    Per-chunk stats are merged element-wise into the run totals.

    Attributes:
        rows_read: Rows pulled from the source
        rows_parsed: Rows decoded into a ServiceRequest
        rows_skipped: Rows at or behind the incremental watermark
        rows_validated: Records that passed transform
        rows_inserted: Records newly written to the store
        rows_duplicated: Records rejected as duplicates within the run
        rows_rejected: Records rejected by semantic validation
        parse_errors: Rows dropped by the reader
        validation_errors: Semantic validation failures
    """

    rows_read: int = Field(default=0, ge=0)
    rows_parsed: int = Field(default=0, ge=0)
    rows_skipped: int = Field(default=0, ge=0)
    rows_validated: int = Field(default=0, ge=0)
    rows_inserted: int = Field(default=0, ge=0)
    rows_duplicated: int = Field(default=0, ge=0)
    rows_rejected: int = Field(default=0, ge=0)
    parse_errors: int = Field(default=0, ge=0)
    validation_errors: int = Field(default=0, ge=0)

    def merge(self, other: "RunStats") -> "RunStats":
        """
        Add another set of counters into this one.

        Args:
            other: Counters to add

        Returns:
            self, for chaining
        """
        for name in type(self).model_fields:
            setattr(self, name, getattr(self, name) + getattr(other, name))
        return self

    def __add__(self, other: "RunStats") -> "RunStats":
        return self.model_copy().merge(other)
