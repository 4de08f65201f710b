"""
Output formatting for transaction lists and spending summaries.
"""

import calendar
from decimal import ROUND_HALF_UP, Decimal

from .analytics import UNKNOWN_MONTH, SpendingAnalytics
from .filters import TransactionSummary
from .models import Transaction


def _group_indian(digits: str) -> str:
    """Group an integer digit string the en-IN way: 2,83,295."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_inr(amount: float, currency: str = "₹") -> str:
    """Format a whole-rupee amount, e.g. -283295.35 -> "-₹2,83,295"."""
    rounded = Decimal(str(abs(amount))).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    formatted = f"{currency}{_group_indian(str(int(rounded)))}"
    return f"-{formatted}" if amount < 0 else formatted


def format_month(month: str | None) -> str:
    """Format "2024-04" as "Apr 2024"; anything else is "Unknown"."""
    if not month or month in (UNKNOWN_MONTH, "null"):
        return UNKNOWN_MONTH
    try:
        year, month_number = (int(part) for part in month.split("-"))
    except ValueError:
        return UNKNOWN_MONTH
    if not 1 <= month_number <= 12:
        return UNKNOWN_MONTH
    return f"{calendar.month_abbr[month_number]} {year}"


def percentage(amount: float, total: float) -> float:
    if total == 0:
        return 0.0
    return round(amount / total * 100, 1)


class TableFormatter:
    """Formats transactions as tab-separated lines."""

    HEADER = ("Date", "Type", "Amount", "Category", "Description")

    def __init__(self, show_header: bool = True):
        self.show_header = show_header

    def format_transactions(self, transactions: list[Transaction]) -> str:
        """
        Format transactions one per line.

        Args:
            transactions: Transactions in display order

        Returns:
            Tab-separated text ready to paste into a spreadsheet
        """
        lines = []
        if self.show_header:
            lines.append("\t".join(self.HEADER))

        for transaction in transactions:
            category = transaction.category or ""
            if category and transaction.subcategory:
                category = f"{category}/{transaction.subcategory}"
            lines.append(
                "\t".join(
                    [
                        transaction.date or "",
                        transaction.transaction_type.value,
                        f"{transaction.amount:.2f}",
                        category,
                        transaction.description,
                    ],
                ),
            )

        return "\n".join(lines)


class SummaryFormatter:
    """Formats summary information."""

    @staticmethod
    def format_summary(
        analytics: SpendingAnalytics,
        summary: TransactionSummary | None = None,
        warnings: list[str] | None = None,
    ) -> str:
        """Format a spending summary.

        Args:
            analytics: Aggregated spending figures
            summary: Optional totals of the listed transactions
            warnings: Optional list of warning messages to display at the end
        """
        lines = []
        lines.append("=== Statement Summary ===")
        if summary is not None:
            lines.append(f"Total credits: {format_inr(summary.total_credit)}")
            lines.append(f"Total debits: {format_inr(summary.total_debit)}")
            lines.append(f"Net: {format_inr(summary.net)}")
            lines.append(f"Uncategorized transactions: {summary.uncategorized}")
        lines.append(f"Total spending: {format_inr(analytics.total_spending)}")
        lines.append(f"Total income: {format_inr(analytics.total_income)}")
        lines.append(
            f"Categorized spending: {format_inr(analytics.categorized_spending)} "
            f"({percentage(analytics.categorized_spending, analytics.total_spending)}%)",
        )
        lines.append("")

        if analytics.sorted_months:
            lines.append("Monthly breakdown:")
            for month in analytics.sorted_months:
                spent = analytics.monthly_spending.get(month, 0.0)
                earned = analytics.monthly_income.get(month, 0.0)
                lines.append(
                    f"  {format_month(month)}: spent {format_inr(spent)}, "
                    f"received {format_inr(earned)}",
                )

        if analytics.category_spending:
            lines.append("")
            lines.append("Spending by category:")
            for category in analytics.category_spending:
                share = percentage(category.amount, analytics.total_spending)
                lines.append(
                    f"  {category.name}: {format_inr(category.amount)} ({share}%)",
                )

        if warnings:
            lines.append("")
            lines.append("Warnings:")
            for warning in warnings:
                lines.append(f"  • {warning}")

        return "\n".join(lines)
