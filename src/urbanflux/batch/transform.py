"""
Transform stage: run-wide deduplication followed by semantic validation.
"""

from collections.abc import Callable

from urbanflux.core.models import RunStats, ServiceRequest
from urbanflux.core.validators import ServiceRequestValidator
from urbanflux.observability.logger import get_logger

logger = get_logger(__name__)

# (record, reason, message) for records dropped by the transform stage
DropHandler = Callable[[ServiceRequest, str, str], None]


class Deduplicator:
    """Remembers every unique_key seen during one run."""

    def __init__(self):
        self._seen_keys: set[int] = set()

    def is_duplicate(self, key: int) -> bool:
        """Return True if the key was already seen; records it otherwise."""
        if key in self._seen_keys:
            return True
        self._seen_keys.add(key)
        return False

    @property
    def unique_count(self) -> int:
        return len(self._seen_keys)

    def clear(self) -> None:
        self._seen_keys.clear()
        logger.debug("Deduplicator cleared")


class TransformProcessor:
    """
    Filters chunks of parsed records for one run.

    Chunks must be passed in source order. For each record the duplicate
    check runs before validation, so the first occurrence of a key is the
    one that is kept (or rejected) and every later occurrence counts as a
    duplicate. Call reset() before reusing the processor for another run.
    """

    def __init__(
        self,
        validator: ServiceRequestValidator | None = None,
        on_drop: DropHandler | None = None,
    ):
        self.validator = validator or ServiceRequestValidator()
        self.deduplicator = Deduplicator()
        self.on_drop = on_drop

    def process(
        self,
        records: list[ServiceRequest],
        stats: RunStats,
    ) -> tuple[list[ServiceRequest], RunStats]:
        """
        Deduplicate and validate one chunk.

        Args:
            records: Parsed records of the chunk
            stats: Counters accumulated so far for the chunk

        Returns:
            (clean_records, stats) where stats is a copy of the input with
            this chunk's transform counters added
        """
        delta = RunStats()
        clean_records = []

        for record in records:
            if self.deduplicator.is_duplicate(record.unique_key):
                delta.rows_duplicated += 1
                self._drop(record, "duplicate", f"duplicate unique_key {record.unique_key}")
                continue

            result = self.validator.validate(record)
            if result.passed:
                delta.rows_validated += 1
                clean_records.append(record)
            else:
                delta.rows_rejected += 1
                delta.validation_errors += 1
                logger.debug(
                    "Record failed validation",
                    extra={"unique_key": record.unique_key, "errors": result.errors},
                )
                self._drop(record, "invalid", "; ".join(result.errors))

        logger.info(
            f"Transform complete: {len(records)} in, {delta.rows_validated} validated, "
            f"{delta.rows_duplicated} duplicates, {delta.rows_rejected} rejected"
        )

        return clean_records, stats + delta

    def reset(self) -> None:
        """Forget all keys seen so far; required between runs."""
        self.deduplicator.clear()

    def _drop(self, record: ServiceRequest, reason: str, message: str) -> None:
        if self.on_drop:
            self.on_drop(record, reason, message)
