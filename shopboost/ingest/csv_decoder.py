"""
Tolerant CSV decoding for human-exported onboarding files.

Exports from shop-management systems and spreadsheets are frequently ragged:
trailing columns go missing, headers are blank, quotes are unbalanced. The
decoder never raises for any of this. Malformed content degrades to empty
string fields rather than failing the file.

Rules:
    * lines split on LF or CRLF, trimmed, blank lines dropped
    * the first remaining line is the header
    * a double quote toggles quoted mode (commas inside are literal) and is
      itself dropped; there is no escape decoding
    * short rows are padded with "" for the missing trailing columns
    * blank header cells and surplus trailing fields are named ``col_N``
      (N is the 1-based column position)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List

CsvRow = Dict[str, str]

_LINE_SPLIT = re.compile(r"\r?\n")


@dataclass(slots=True)
class ParsedCsv:
    """Decoded file: header names and header-keyed row records."""

    header: List[str] = field(default_factory=list)
    rows: List[CsvRow] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)


def split_line(line: str) -> List[str]:
    """Split one line on commas that sit outside double quotes."""
    out: List[str] = []
    current: List[str] = []
    in_quotes = False

    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
            continue
        if ch == "," and not in_quotes:
            out.append("".join(current))
            current = []
            continue
        current.append(ch)

    out.append("".join(current))
    return [value.strip() for value in out]


def _column_name(header: List[str], index: int) -> str:
    if index < len(header) and header[index]:
        return header[index]
    return f"col_{index + 1}"


def parse_csv(text: str | None) -> ParsedCsv:
    """Decode raw delimited text into header-keyed rows."""
    lines = [line.strip() for line in _LINE_SPLIT.split(text or "")]
    lines = [line for line in lines if line]

    if len(lines) < 2:
        return ParsedCsv()

    header = split_line(lines[0])
    rows: List[CsvRow] = []

    for line in lines[1:]:
        cols = split_line(line)
        record: CsvRow = {}
        for index in range(max(len(header), len(cols))):
            record[_column_name(header, index)] = cols[index] if index < len(cols) else ""
        rows.append(record)

    return ParsedCsv(header=header, rows=rows)
