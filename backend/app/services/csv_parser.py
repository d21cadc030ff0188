"""
Price guide CSV parsing

The price guide export is simple enough that it is split by hand: a double
quote toggles quoted mode (it is dropped and never escapes another quote),
and a separator outside quotes ends the field. Fields are stripped of
surrounding whitespace.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from app.core.exceptions import RowParseError


@dataclass
class CsvRow:
    line_number: int
    values: Dict[str, str]


@dataclass
class CsvParseResult:
    headers: List[str] = field(default_factory=list)
    rows: List[CsvRow] = field(default_factory=list)
    errors: List[RowParseError] = field(default_factory=list)


def parse_csv_line(line: str, separator: str = ",") -> List[str]:
    """Split one CSV line into fields, honoring double-quoted fields"""
    values: List[str] = []
    current: List[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == separator and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    # The last field is always emitted, even when empty
    values.append("".join(current).strip())
    return values


def parse_csv_header(line: str, separator: str = ",") -> List[str]:
    """Column names of a header line"""
    return parse_csv_line(line.strip().lstrip("\ufeff"), separator)


def parse_csv_text(text: str, separator: str = ",") -> CsvParseResult:
    """Parse a whole CSV document into header-keyed rows

    Line numbers are 1-based and count the header line. Blank lines are
    skipped; rows whose field count differs from the header are reported as
    errors and left out.
    """
    result = CsvParseResult()
    if not text or not text.strip():
        return result

    lines = text.split("\n")
    header_index = next(i for i, line in enumerate(lines) if line.strip())
    result.headers = parse_csv_header(lines[header_index], separator)

    for index in range(header_index + 1, len(lines)):
        line = lines[index].strip()
        if not line:
            continue

        line_number = index + 1
        values = parse_csv_line(line, separator)
        if len(values) != len(result.headers):
            result.errors.append(
                RowParseError(
                    line_number,
                    f"expected {len(result.headers)} fields, got {len(values)}",
                    raw=line,
                )
            )
            continue

        result.rows.append(CsvRow(line_number, dict(zip(result.headers, values))))

    return result
