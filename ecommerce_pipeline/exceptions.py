"""
Exceptions raised by the e-commerce data pipeline.

Every error carries enough context (table, row, field) to diagnose a failed
run from the log alone.
"""

from typing import Any, Dict, Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class GenerationError(PipelineError):
    """Raised when the requested dataset cannot be generated consistently."""


class ParseError(PipelineError):
    """A raw CSV value could not be converted to its column type."""

    def __init__(
        self,
        table: str,
        field: str,
        raw_value: Optional[str],
        row_number: Optional[int] = None,
        reason: str = "",
    ):
        self.table = table
        self.field = field
        self.raw_value = raw_value
        self.row_number = row_number
        self.reason = reason

        location = f"{table}.{field}"
        if row_number is not None:
            location += f" (row {row_number})"
        message = f"Invalid value for {location}: {raw_value!r}"
        if reason:
            message += f" - {reason}"
        super().__init__(message)


class LoadError(PipelineError):
    """The store rejected a statement while loading a table."""

    kind = "Store error"

    def __init__(self, table: str, row_index: int, row: Dict[str, Any], message: str):
        self.table = table
        self.row_index = row_index
        self.row = row
        super().__init__(
            f"{self.kind} inserting row {row_index} into {table}: "
            f"{message} (row={row})"
        )


class ConstraintViolation(LoadError):
    """The store rejected a row (foreign key, primary key or NOT NULL)."""

    kind = "Constraint violation"


class DataFileError(PipelineError):
    """An intermediate CSV file or the store file could not be accessed."""


class StoreConfigurationError(PipelineError):
    """The store connection does not enforce foreign keys."""


class DataQualityError(PipelineError):
    """Raised when ERROR-severity data quality checks fail."""
