"""
Utility functions for the CSV hand-off files.

Generated records are written as one CSV file per table. Values containing
the delimiter, the quote character or a line break are quoted and inner
quotes are doubled (``csv.QUOTE_MINIMAL``).

Reading goes through a ``TableCodec``: a declarative mapping of column name
to converter, checked once when the codec is built. Parsing stops at the
first value that cannot be converted.
"""

import csv
import io
import logging
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel

from ..exceptions import DataFileError, ParseError

logger = logging.getLogger(__name__)

DELIMITER = ","
LINE_TERMINATOR = "\n"


# =============================================================================
# WRITING
# =============================================================================

def format_timestamp(value: datetime) -> str:
    """Render a timestamp as UTC ISO-8601 with milliseconds and a ``Z`` suffix."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"


def parse_timestamp(value: str) -> datetime:
    """Inverse of ``format_timestamp``; returns an aware UTC datetime."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def serialize_value(value: Any) -> str:
    """Convert a single field value to its CSV text."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _record_values(record: Any, columns: Sequence[str]) -> List[str]:
    if isinstance(record, BaseModel):
        return [serialize_value(getattr(record, column)) for column in columns]
    return [serialize_value(record.get(column)) for column in columns]


def render_csv(columns: Sequence[str], records: Iterable[Any]) -> str:
    """
    Render records as CSV text.

    Args:
        columns: Ordered column names; also the header line
        records: Pydantic models or dicts keyed by column name

    Returns:
        CSV text with a header line and one line per record
    """
    buffer = io.StringIO()
    writer = csv.writer(
        buffer,
        delimiter=DELIMITER,
        quoting=csv.QUOTE_MINIMAL,
        lineterminator=LINE_TERMINATOR,
    )
    writer.writerow(columns)
    for record in records:
        writer.writerow(_record_values(record, columns))
    return buffer.getvalue()


def write_csv(path: str, columns: Sequence[str], records: Iterable[Any]) -> None:
    """Write records to ``path`` as CSV."""
    content = render_csv(columns, records)
    try:
        with open(path, "w", newline="", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise DataFileError(f"Cannot write {path}: {e}") from e


# =============================================================================
# READING
# =============================================================================

Converter = Callable[[str], Any]


def to_integer(value: str) -> int:
    return int(value)


def to_decimal(value: str) -> Decimal:
    try:
        result = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"not a decimal number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return result


def passthrough(value: str) -> str:
    return value


CONVERTERS: Dict[str, Converter] = {
    "integer": to_integer,
    "decimal": to_decimal,
    "text": passthrough,
}


class TableCodec:
    """
    Typed column layout of one CSV file.

    Usage:
        codec = TableCodec("products", ["product_id", "price"],
                           {"product_id": "integer", "price": "decimal"})
        rows = codec.parse(text)
    """

    def __init__(
        self,
        table: str,
        columns: Sequence[str],
        converters: Mapping[str, Any],
    ):
        self.table = table
        self.columns = tuple(columns)

        if len(set(self.columns)) != len(self.columns):
            raise ValueError(f"Duplicate columns declared for {table}: {self.columns}")

        missing = [c for c in self.columns if c not in converters]
        if missing:
            raise ValueError(f"No converter declared for {table} columns {missing}")
        unknown = [c for c in converters if c not in self.columns]
        if unknown:
            raise ValueError(f"Converters declared for unknown {table} columns {unknown}")

        self.converters: Dict[str, Converter] = {}
        for column in self.columns:
            converter = converters[column]
            if isinstance(converter, str):
                if converter not in CONVERTERS:
                    raise ValueError(
                        f"Unknown converter {converter!r} for {table}.{column}; "
                        f"expected one of {sorted(CONVERTERS)}"
                    )
                converter = CONVERTERS[converter]
            if not callable(converter):
                raise ValueError(f"Converter for {table}.{column} is not callable")
            self.converters[column] = converter

    def _check_header(self, header: Optional[List[str]]) -> List[str]:
        if header is None:
            raise ParseError(self.table, "<header>", None, reason="file is empty")
        header = [name.strip() for name in header]
        for column in self.columns:
            if column not in header:
                raise ParseError(self.table, column, None, row_number=1,
                                 reason="column missing from header")
        return header

    def convert_row(self, raw: Mapping[str, Optional[str]], row_number: int) -> Dict[str, Any]:
        """Convert one raw row; raises ``ParseError`` naming the bad field."""
        row = {}
        for column in self.columns:
            value = raw.get(column)
            if value is None:
                raise ParseError(self.table, column, None, row_number,
                                 reason="value missing")
            value = value.strip()
            try:
                row[column] = self.converters[column](value)
            except (TypeError, ValueError) as e:
                raise ParseError(self.table, column, value, row_number, reason=str(e)) from e
        return row

    def parse_lines(self, lines: Iterable[str]) -> List[Dict[str, Any]]:
        reader = csv.reader(lines, delimiter=DELIMITER)
        header = self._check_header(next(reader, None))

        rows = []
        # Row numbers are 1-based and count the header line.
        for row_number, values in enumerate(reader, start=2):
            if not values:
                continue
            if len(values) > len(header):
                raise ParseError(self.table, "<row>", DELIMITER.join(values), row_number,
                                 reason="unexpected extra fields")
            raw = dict(zip(header, values))
            rows.append(self.convert_row(raw, row_number))
        return rows

    def parse(self, text: str) -> List[Dict[str, Any]]:
        return self.parse_lines(io.StringIO(text, newline=""))


def read_csv(path: str, codec: TableCodec) -> List[Dict[str, Any]]:
    """
    Read a CSV file into typed rows.

    Args:
        path: CSV file to read
        codec: Column layout of the file

    Returns:
        One dict per data line, keyed by column name
    """
    try:
        with open(path, newline="", encoding="utf-8") as f:
            rows = codec.parse_lines(f)
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise DataFileError(f"Cannot read {path}: {e}") from e

    logger.info(f"Parsed {len(rows)} rows from {path}")
    return rows
