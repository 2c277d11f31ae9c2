"""Delimited-text parsing for uploaded tables."""

from affinity_intake.tabular.parser import TabularDocument, decode_upload, parse_tabular

__all__ = ["TabularDocument", "decode_upload", "parse_tabular"]
