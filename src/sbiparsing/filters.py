"""
Transaction filtering, sorting and totals.
"""

import calendar
from dataclasses import dataclass
from datetime import date

from .models import Transaction, TransactionType

DATE_PRESETS = ("all", "fy", "quarter", "month", "custom")
_SORT_KEYS = {
    "date": lambda t: t.date or "",
    "amount": lambda t: abs(t.amount),
    "description": lambda t: t.description.lower(),
}

# Indian financial year: April 1 to March 31.
FY_START_MONTH = 4


@dataclass
class TransactionFilter:
    """Criteria for selecting transactions. Empty values match everything."""

    search: str = ""
    transaction_type: str = "all"
    category: str = "all"
    date_preset: str = "all"
    fy: str = ""
    month: str = ""
    quarter: str = ""
    date_from: str = ""
    date_to: str = ""

    def __post_init__(self):
        if self.date_preset not in DATE_PRESETS:
            raise ValueError(
                f"Unknown date preset '{self.date_preset}', expected one of {DATE_PRESETS}",
            )
        for value in (self.date_from, self.date_to):
            if value:
                date.fromisoformat(value)
        if self.fy:
            financial_year_range(self.fy)
        if self.quarter:
            quarter_range(self.quarter)

    @property
    def has_date_filter(self) -> bool:
        return self.date_preset != "all"


@dataclass
class TransactionSummary:
    """Totals over a list of transactions."""

    total_credit: float
    total_debit: float
    net: float
    uncategorized: int


def financial_year(day: date) -> str:
    """Label of the financial year containing ``day``, e.g. "2024-2025"."""
    start = day.year if day.month >= FY_START_MONTH else day.year - 1
    return f"{start}-{start + 1}"


def financial_year_range(label: str) -> tuple[date, date]:
    start_year = int(label.split("-")[0])
    return date(start_year, FY_START_MONTH, 1), date(start_year + 1, FY_START_MONTH - 1, 31)


def quarter_label(day: date) -> str:
    return f"{day.year}-Q{(day.month - 1) // 3 + 1}"


def quarter_range(label: str) -> tuple[date, date]:
    year_str, quarter_str = label.split("-Q")
    year, quarter = int(year_str), int(quarter_str)
    start_month = (quarter - 1) * 3 + 1
    end_month = start_month + 2
    return (
        date(year, start_month, 1),
        date(year, end_month, calendar.monthrange(year, end_month)[1]),
    )


def to_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def matches_date_preset(transaction: Transaction, flt: TransactionFilter) -> bool:
    """Check the date part of a filter. Undated transactions always match."""
    day = to_date(transaction.date)
    if day is None:
        return True

    if flt.date_preset == "fy" and flt.fy:
        start, end = financial_year_range(flt.fy)
        return start <= day <= end

    if flt.date_preset == "month" and flt.month:
        return transaction.date[:7] == flt.month

    if flt.date_preset == "quarter" and flt.quarter:
        start, end = quarter_range(flt.quarter)
        return start <= day <= end

    if flt.date_preset == "custom":
        if flt.date_from and day < date.fromisoformat(flt.date_from):
            return False
        if flt.date_to and day > date.fromisoformat(flt.date_to):
            return False

    return True


def filter_transactions(
    transactions: list[Transaction],
    flt: TransactionFilter,
) -> list[Transaction]:
    """
    Apply search, type, category and date criteria.

    Args:
        transactions: Transactions to filter
        flt: Filter criteria; category "uncategorized" selects
            transactions without a category

    Returns:
        Matching transactions in their original order
    """
    result = list(transactions)

    if flt.search:
        needle = flt.search.lower()
        result = [t for t in result if needle in t.description.lower()]

    if flt.transaction_type != "all":
        result = [t for t in result if t.transaction_type.value == flt.transaction_type]

    if flt.category != "all":
        if flt.category == "uncategorized":
            result = [t for t in result if not t.category]
        else:
            result = [t for t in result if t.category == flt.category]

    return [t for t in result if matches_date_preset(t, flt)]


def sort_transactions(
    transactions: list[Transaction],
    sort_by: str = "date",
    order: str = "desc",
) -> list[Transaction]:
    """Sort by date, absolute amount or description."""
    if sort_by not in _SORT_KEYS:
        raise ValueError(
            f"Unknown sort key '{sort_by}', expected one of {list(_SORT_KEYS)}",
        )
    return sorted(transactions, key=_SORT_KEYS[sort_by], reverse=order == "desc")


def summarize(transactions: list[Transaction]) -> TransactionSummary:
    total_credit = sum(
        t.credit for t in transactions if t.transaction_type == TransactionType.CREDIT
    )
    total_debit = sum(
        t.debit for t in transactions if t.transaction_type == TransactionType.DEBIT
    )
    return TransactionSummary(
        total_credit=total_credit,
        total_debit=total_debit,
        net=total_credit - total_debit,
        uncategorized=sum(1 for t in transactions if not t.category),
    )


def available_months(transactions: list[Transaction]) -> list[str]:
    """Distinct "YYYY-MM" months, newest first."""
    months = {t.date[:7] for t in transactions if to_date(t.date)}
    return sorted(months, reverse=True)


def available_financial_years(transactions: list[Transaction]) -> list[str]:
    years = {financial_year(d) for d in map(to_date, (t.date for t in transactions)) if d}
    return sorted(years, reverse=True)


def available_quarters(transactions: list[Transaction]) -> list[str]:
    quarters = {quarter_label(d) for d in map(to_date, (t.date for t in transactions)) if d}
    return sorted(quarters, reverse=True)
