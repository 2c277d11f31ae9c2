"""Forgiving delimited-text parser for uploaded ligand and target tables.

Malformed input degrades to partial data rather than failing the upload:
an unterminated quoted field is returned as-is and ragged rows are kept.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

BOM = "\ufeff"
QUOTE = '"'


class _State(Enum):
    NORMAL = "normal"
    IN_QUOTES = "in_quotes"


@dataclass
class TabularDocument:
    """Parsed table.

    Attributes:
        headers: Trimmed cells of the first non-blank record
        rows: Remaining non-blank records, cells untouched
    """
    headers: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)

    def column_index(self, name: str) -> Optional[int]:
        """Case-insensitive header lookup; first match wins."""
        wanted = name.lower()
        for i, header in enumerate(self.headers):
            if header.lower() == wanted:
                return i
        return None


def decode_upload(data: bytes | str) -> str:
    """Decode uploaded file content to text (UTF-8, BOM tolerated)."""
    if isinstance(data, str):
        return data
    return data.decode("utf-8-sig", errors="replace")


def _split_records(text: str, separator: str) -> list[list[str]]:
    records: list[list[str]] = []
    record: list[str] = []
    chars: list[str] = []
    state = _State.NORMAL
    i = 0
    n = len(text)

    while i < n:
        char = text[i]

        if state is _State.IN_QUOTES:
            if char == QUOTE:
                if i + 1 < n and text[i + 1] == QUOTE:
                    chars.append(QUOTE)
                    i += 1
                else:
                    state = _State.NORMAL
            else:
                chars.append(char)
        elif char == QUOTE:
            state = _State.IN_QUOTES
        elif char == separator:
            record.append("".join(chars))
            chars = []
        elif char == "\n" or char == "\r":
            # \r\n is one terminator
            if char == "\r" and i + 1 < n and text[i + 1] == "\n":
                i += 1
            record.append("".join(chars))
            records.append(record)
            record = []
            chars = []
        else:
            chars.append(char)

        i += 1

    if chars or record:
        record.append("".join(chars))
        records.append(record)

    return records


def parse_tabular(text: str, separator: str = ",") -> TabularDocument:
    """Parse delimited text into headers and rows.

    Args:
        text: Raw file content
        separator: Field separator character (default: comma)

    Returns:
        TabularDocument; empty headers and rows if the text has no
        non-blank records. Never raises for malformed input.
    """
    if text.startswith(BOM):
        text = text[1:]

    records = [
        record
        for record in _split_records(text, separator)
        if any(cell.strip() for cell in record)
    ]

    if not records:
        return TabularDocument()

    headers = [cell.strip() for cell in records[0]]
    return TabularDocument(headers=headers, rows=records[1:])
