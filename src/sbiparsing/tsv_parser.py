"""
TSV parsing functionality for bank statement exports.

Statements are tab-separated text with an unknown amount of account
metadata above the real header row. Quoted fields may wrap over several
lines, and column names and date formats differ between banks.
"""

import logging
import re
from collections.abc import Mapping, Sequence
from datetime import date

from .models import ParsingResult, Transaction

logger = logging.getLogger(__name__)

HEADER_SCAN_LIMIT = 50

HEADER_DATE_KEYWORD = "date"
HEADER_DATE_EXCLUSIONS = ("statement", "open")
HEADER_AMOUNT_KEYWORDS = ("debit", "credit", "balance", "withdrawal", "deposit")
HEADER_DESCRIPTION_KEYWORDS = ("description", "details", "particulars", "narration")

# Role -> accepted header names. Add variants here to support a new export.
COLUMN_VARIANTS: dict[str, tuple[str, ...]] = {
    "date": ("txn date", "transaction date", "date", "txn_date"),
    "value_date": ("value date", "value_date", "valdate"),
    "description": ("description", "particulars", "narration", "desc", "details"),
    "reference": (
        "ref no",
        "ref no.",
        "cheque no",
        "cheque no.",
        "ref no./cheque no.",
        "ref no/cheque no",
        "reference",
    ),
    "debit": ("debit", "withdrawal", "dr", "debit amount"),
    "credit": ("credit", "deposit", "cr", "credit amount"),
    "balance": ("balance", "closing balance", "available balance"),
}

# Payment-rail reference codes that carry no meaning for the user.
NOISE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE | re.ASCII)
    for pattern in (
        r"TO TRANSFER-UPI/[A-Z]+/\d+/",
        r"BY TRANSFER-UPI/[A-Z]+/\d+/",
        r"UPI/DR/\d+/",
        r"UPI/CR/\d+/",
        r"/DR/\d+/",
        r"/CR/\d+/",
    )
)

MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

TWO_DIGIT_YEAR_PIVOT = 50

_NUMERIC_DATE_4 = re.compile(r"(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})", re.ASCII)
_NUMERIC_DATE_2 = re.compile(r"(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2})", re.ASCII)
_SPACED_MONTH_DATE = re.compile(r"(\d{1,2})\s+(\w{3})\s+(\d{4})", re.ASCII)
_MONTH_DATE_4 = re.compile(r"(\d{1,2})[/\-](\w{3})[/\-](\d{4})", re.ASCII)
_MONTH_DATE_2 = re.compile(r"(\d{1,2})[/\-](\w{3})[/\-](\d{2})", re.ASCII)
_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)

_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_SURROUNDING_QUOTES = re.compile(r"^[\"']|[\"']$")
_CURRENCY_SYMBOLS = re.compile(r"[₹$]")
_WHITESPACE = re.compile(r"\s+")


class StatementParsingError(ValueError):
    """Exception raised when a statement cannot be parsed at all."""


def normalize_multiline_fields(text: str) -> str:
    """Join lines that were broken inside a quoted field.

    Every ``"`` toggles the quoted state; there is no escape for literal
    quotes, so an odd quote count keeps the rest of the text quoted.
    """
    chars = []
    in_quote = False
    for char in text:
        if char == '"':
            in_quote = not in_quote
            chars.append(char)
        elif char == "\n" and in_quote:
            chars.append(" ")
        else:
            chars.append(char)
    return "".join(chars)


def split_tab_line(line: str) -> list[str]:
    """Split a line on tabs outside quotes; quotes are dropped, fields trimmed."""
    fields = []
    current: list[str] = []
    in_quote = False
    for char in line:
        if char == '"':
            in_quote = not in_quote
        elif char == "\t" and not in_quote:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    fields.append("".join(current).strip())
    return fields


def _is_header(columns: Sequence[str]) -> bool:
    has_date = any(
        HEADER_DATE_KEYWORD in column
        and not any(excluded in column for excluded in HEADER_DATE_EXCLUSIONS)
        for column in columns
    )
    has_amount = any(
        keyword in column for column in columns for keyword in HEADER_AMOUNT_KEYWORDS
    )
    has_description = any(
        keyword in column
        for column in columns
        for keyword in HEADER_DESCRIPTION_KEYWORDS
    )
    return has_date and has_amount and has_description


def find_header_row(lines: Sequence[str]) -> tuple[int, list[str]]:
    """
    Locate the transaction header row.

    Args:
        lines: Normalized statement lines

    Returns:
        Tuple of (header line index, trimmed column names). Falls back to
        line 0 when no line within HEADER_SCAN_LIMIT qualifies.
    """
    for index, line in enumerate(lines[:HEADER_SCAN_LIMIT]):
        headers = split_tab_line(line)
        if _is_header([header.lower() for header in headers]):
            return index, headers

    logger.warning(
        f"No header row found in the first {HEADER_SCAN_LIMIT} lines, using line 0",
    )
    return 0, split_tab_line(lines[0])


def map_row(headers: Sequence[str], line: str) -> dict[str, str] | None:
    """Map a data line onto the header columns; None for blank lines."""
    values = split_tab_line(line)
    if not any(values):
        return None

    if len(values) < len(headers):
        values.extend([""] * (len(headers) - len(values)))

    return {header: values[index] for index, header in enumerate(headers)}


def find_column(headers: Sequence[str], variants: Sequence[str]) -> str | None:
    """
    Find the header that fills a role.

    An exact case-insensitive match wins; otherwise a header containing a
    variant as a whole word or phrase is accepted, so "cr" never matches
    "Description".
    """
    for header in headers:
        lower_header = header.lower().strip()
        for variant in variants:
            if lower_header == variant.lower():
                return header

    for header in headers:
        lower_header = header.lower().strip()
        for variant in variants:
            pattern = rf"(^|[^a-z]){re.escape(variant.lower())}([^a-z]|$)"
            if re.search(pattern, lower_header):
                return header

    return None


def resolve_columns(
    headers: Sequence[str],
    column_variants: Mapping[str, Sequence[str]] = COLUMN_VARIANTS,
) -> dict[str, str | None]:
    """Resolve every role in ``column_variants`` to a header name (or None)."""
    return {
        role: find_column(headers, variants)
        for role, variants in column_variants.items()
    }


def parse_amount(value: str | None) -> float:
    """
    Parse an amount such as "1,131.19", "2,83,295.35" or "₹940.36".

    Blank or non-numeric values become 0.0.
    """
    if not value or not isinstance(value, str):
        return 0.0

    cleaned = value.strip()
    if not cleaned:
        return 0.0

    cleaned = _SURROUNDING_QUOTES.sub("", cleaned)
    cleaned = cleaned.replace(",", "")
    cleaned = _CURRENCY_SYMBOLS.sub("", cleaned).strip()

    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0.0
    return float(match.group(0))


def _full_year(two_digits: str) -> str:
    prefix = "19" if int(two_digits) > TWO_DIGIT_YEAR_PIVOT else "20"
    return f"{prefix}{two_digits}"


def _month_number(abbreviation: str) -> int | None:
    return MONTHS.get(abbreviation.lower())


def _iso(year: str, month: int | str, day: str) -> str:
    return f"{year}-{int(month):02d}-{int(day):02d}"


def parse_date(value: str | None) -> str | None:
    """
    Parse a statement date into ISO format (YYYY-MM-DD).

    Supported formats, in priority order: D/M/YYYY, D/M/YY (also with "-"
    or "."), D MMM YYYY, D-MMM-YYYY, D-MMM-YY and YYYY-MM-DD. Two-digit
    years above 50 are 19xx, the rest 20xx.
    """
    if not value:
        return None

    cleaned = _SURROUNDING_QUOTES.sub("", value.strip()).strip()
    if not cleaned:
        return None

    match = _NUMERIC_DATE_4.fullmatch(cleaned)
    if match:
        day, month, year = match.groups()
        return _iso(year, month, day)

    match = _NUMERIC_DATE_2.fullmatch(cleaned)
    if match:
        day, month, year = match.groups()
        return _iso(_full_year(year), month, day)

    for pattern, two_digit_year in (
        (_SPACED_MONTH_DATE, False),
        (_MONTH_DATE_4, False),
        (_MONTH_DATE_2, True),
    ):
        match = pattern.fullmatch(cleaned)
        if match:
            day, month_name, year = match.groups()
            month = _month_number(month_name)
            if month:
                if two_digit_year:
                    year = _full_year(year)
                return _iso(year, month, day)

    if _ISO_DATE.fullmatch(cleaned):
        return cleaned

    logger.debug(f"Unable to parse date: {value!r}")
    return None


def _strip_noise(description: str) -> str:
    for pattern in NOISE_PATTERNS:
        description = pattern.sub("", description)
    return _WHITESPACE.sub(" ", description).strip()


def clean_description(description: str | None) -> str:
    """Remove UPI/transfer reference noise and collapse whitespace."""
    if not description:
        return ""

    # Removing one code can expose another, so repeat until nothing changes.
    cleaned = _strip_noise(description)
    while True:
        again = _strip_noise(cleaned)
        if again == cleaned:
            return cleaned
        cleaned = again


def normalize_record(
    record: Mapping[str, str],
    headers: Sequence[str],
    columns: Mapping[str, str | None] | None = None,
) -> Transaction | None:
    """
    Turn a mapped row into a Transaction.

    Args:
        record: Header name -> raw value
        headers: Header row the record was mapped with
        columns: Pre-resolved role -> header mapping (resolved from
            ``headers`` when omitted)

    Returns:
        Transaction, or None when the row has no date or no description
    """
    if columns is None:
        columns = resolve_columns(headers)

    def raw(role: str) -> str:
        key = columns.get(role)
        return record.get(key, "") if key is not None else ""

    raw_date = raw("date")
    description = clean_description(raw("description"))
    if not raw_date or not description:
        return None

    raw_value_date = raw("value_date")
    return Transaction(
        date=parse_date(raw_date),
        value_date=parse_date(raw_value_date) if raw_value_date else None,
        description=description,
        reference=raw("reference"),
        debit=parse_amount(raw("debit")),
        credit=parse_amount(raw("credit")),
        balance=parse_amount(raw("balance")),
    )


def parse_text(
    text: str,
    column_variants: Mapping[str, Sequence[str]] | None = None,
) -> ParsingResult:
    """
    Parse statement text into transactions in file order.

    Raises:
        StatementParsingError: If the text has fewer than two lines
    """
    normalized = normalize_multiline_fields(text.lstrip("\ufeff"))
    lines = normalized.strip().split("\n")

    if len(lines) < 2:
        raise StatementParsingError("Invalid TSV file: No data rows found")

    header_index, headers = find_header_row(lines)
    columns = resolve_columns(headers, column_variants or COLUMN_VARIANTS)
    logger.debug(f"Found header row at line {header_index}: {headers}")
    logger.debug(f"Resolved columns: {columns}")

    transactions = []
    dropped = 0
    for line in lines[header_index + 1 :]:
        record = map_row(headers, line)
        if record is None:
            continue

        transaction = normalize_record(record, headers, columns)
        if transaction is None:
            dropped += 1
            continue
        transactions.append(transaction)

    if dropped:
        logger.info(f"Dropped {dropped} rows without date or description")

    return ParsingResult(
        transactions=transactions,
        header_index=header_index,
        headers=headers,
        columns=columns,
        dropped_rows=dropped,
    )


class StatementTSVParser:
    """Parser for tab-separated bank statement exports."""

    def __init__(
        self,
        encoding: str = "utf-8",
        column_variants: Mapping[str, Sequence[str]] | None = None,
    ):
        self.encoding = encoding
        self.column_variants = dict(column_variants or COLUMN_VARIANTS)

    def parse_text(self, text: str) -> ParsingResult:
        """Parse statement text already held in memory."""
        return parse_text(text, self.column_variants)

    def parse_file(self, file_path: str) -> ParsingResult:
        """
        Parse a statement file.

        Args:
            file_path: Path to the TSV file

        Returns:
            ParsingResult with transactions in file order
        """
        try:
            with open(file_path, encoding=self.encoding) as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise StatementParsingError(f"Error reading TSV file: {e}") from e

        return self.parse_text(content)

    def filter_by_date_range(
        self,
        transactions: list[Transaction],
        start_date: date,
        end_date: date,
    ) -> list[Transaction]:
        """
        Filter transactions by date range.

        Args:
            transactions: List of transactions to filter
            start_date: Start date (inclusive)
            end_date: End date (inclusive)

        Returns:
            Filtered list of transactions; undated transactions are dropped
        """
        start, end = start_date.isoformat(), end_date.isoformat()
        return [t for t in transactions if t.date and start <= t.date <= end]
