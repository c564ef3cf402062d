"""Utility functions package."""

from .csv_utils import (
    TableCodec,
    read_csv,
    write_csv,
    render_csv,
    serialize_value,
    format_timestamp,
    parse_timestamp,
    to_integer,
    to_decimal,
    passthrough,
)

__all__ = [
    "TableCodec",
    "read_csv",
    "write_csv",
    "render_csv",
    "serialize_value",
    "format_timestamp",
    "parse_timestamp",
    "to_integer",
    "to_decimal",
    "passthrough",
]
