"""
Spending analytics aggregated by month and category.
"""

import logging
import re
from dataclasses import dataclass, field

import pandas as pd

from .filters import TransactionFilter, matches_date_preset, to_date
from .models import Category, Transaction, TransactionType

logger = logging.getLogger(__name__)

UNKNOWN_MONTH = "Unknown"

# Sweeps and inter-account transfer credits are neither spending nor income.
TRANSFER_MARKERS = ("SWEEP", "TRANSFER CREDIT", "TRF CREDT")

_MONTH_KEY = re.compile(r"\d{4}-\d{2}")


@dataclass
class CategorySpending:
    """Total debit spending attributed to one category."""

    id: str
    name: str
    color: str
    amount: float


@dataclass
class SpendingAnalytics:
    """Aggregated spending and income figures."""

    category_spending: list[CategorySpending] = field(default_factory=list)
    subcategory_spending: dict[str, float] = field(default_factory=dict)
    monthly_spending: dict[str, float] = field(default_factory=dict)
    monthly_income: dict[str, float] = field(default_factory=dict)
    sorted_months: list[str] = field(default_factory=list)
    total_spending: float = 0.0
    total_income: float = 0.0
    categorized_spending: float = 0.0


def month_key(transaction_date: str | None) -> str:
    """Return "YYYY-MM" for an ISO date, or "Unknown"."""
    if transaction_date and _MONTH_KEY.fullmatch(transaction_date[:7]):
        return transaction_date[:7]
    return UNKNOWN_MONTH


def is_transfer(description: str | None) -> bool:
    upper = (description or "").upper()
    return any(marker in upper for marker in TRANSFER_MARKERS)


def _to_frame(transactions: list[Transaction]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "month": month_key(t.date),
                "type": t.transaction_type.value,
                "debit": t.debit,
                "credit": t.credit,
                "category": t.category or "",
                "subcategory": t.subcategory or "",
                "is_transfer": is_transfer(t.description),
            }
            for t in transactions
        ],
    )


def _sum_by(frame: pd.DataFrame, key: str | pd.Series, column: str) -> dict[str, float]:
    return {k: float(v) for k, v in frame.groupby(key)[column].sum().items()}


def compute_analytics(
    transactions: list[Transaction],
    categories: list[Category],
    flt: TransactionFilter | None = None,
) -> SpendingAnalytics:
    """
    Aggregate debit spending and credit income.

    Args:
        transactions: Transactions to analyse
        categories: Category configuration used for names and colors
        flt: Optional filter; only its date preset is applied, and transactions
            without a valid ISO date are excluded when it is set

    Returns:
        SpendingAnalytics with months sorted newest first and categories
        sorted by descending spending
    """
    if flt is not None and flt.has_date_filter:
        transactions = [
            t for t in transactions if to_date(t.date) and matches_date_preset(t, flt)
        ]

    if not transactions:
        return SpendingAnalytics()

    frame = _to_frame(transactions)
    counted = frame[~frame["is_transfer"]]
    spending = counted[
        (counted["type"] == TransactionType.DEBIT.value) & (counted["debit"] > 0)
    ]
    income = counted[
        (counted["type"] == TransactionType.CREDIT.value) & (counted["credit"] > 0)
    ]
    logger.debug(
        f"Analysing {len(frame)} transactions: {len(spending)} spending, "
        f"{len(income)} income, {len(frame) - len(counted)} transfers",
    )

    monthly_spending = _sum_by(spending, "month", "debit")
    monthly_income = _sum_by(income, "month", "credit")

    categorized = spending[spending["category"] != ""]
    category_totals = _sum_by(categorized, "category", "debit")

    with_subcategory = categorized[categorized["subcategory"] != ""]
    subcategory_spending = _sum_by(
        with_subcategory,
        with_subcategory["category"] + ":" + with_subcategory["subcategory"],
        "debit",
    )

    lookup = {c.id: c for c in categories}
    category_spending = sorted(
        (
            CategorySpending(
                id=category_id,
                name=lookup[category_id].name if category_id in lookup else category_id,
                color=lookup[category_id].color if category_id in lookup else "#ccc",
                amount=amount,
            )
            for category_id, amount in category_totals.items()
        ),
        key=lambda c: c.amount,
        reverse=True,
    )

    return SpendingAnalytics(
        category_spending=category_spending,
        subcategory_spending=subcategory_spending,
        monthly_spending=monthly_spending,
        monthly_income=monthly_income,
        sorted_months=sorted(set(monthly_spending) | set(monthly_income), reverse=True),
        total_spending=sum(monthly_spending.values()),
        total_income=sum(monthly_income.values()),
        categorized_spending=sum(category_totals.values()),
    )
