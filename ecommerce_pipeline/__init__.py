"""Synthetic e-commerce dataset generation and SQLite bulk loading."""

__version__ = "0.1.0"
