"""Jayple booking dispatch and ledger engine."""

__version__ = "0.1.0"
