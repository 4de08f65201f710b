"""Unit tests for analytics.py."""

import pytest

from sbiparsing.analytics import compute_analytics, is_transfer, month_key
from sbiparsing.category_manager import DEFAULT_CATEGORIES
from sbiparsing.filters import TransactionFilter
from sbiparsing.models import Transaction
from sbiparsing.tsv_parser import parse_text


class TestHelpers:
    """Tests for month_key and is_transfer."""

    def test_month_key(self):
        """Test month bucketing."""
        assert month_key("2024-04-15") == "2024-04"
        assert month_key(None) == "Unknown"
        assert month_key("garbage") == "Unknown"

    def test_is_transfer(self):
        """Test sweep and transfer credit detection."""
        assert is_transfer("AUTO SWEEP TO FD")
        assert is_transfer("by transfer credit")
        assert is_transfer("TRF CREDT-NEFT")
        assert not is_transfer("SWIGGY")
        assert not is_transfer(None)


class TestComputeAnalytics:
    """Tests for compute_analytics."""

    def test_empty(self):
        """Test that no transactions give zero totals."""
        analytics = compute_analytics([], DEFAULT_CATEGORIES)
        assert analytics.total_spending == 0
        assert analytics.sorted_months == []
        assert analytics.category_spending == []

    def test_aggregates(self):
        """Test monthly, category and subcategory totals."""
        transactions = [
            Transaction(date="2024-04-02", description="SWIGGY", debit=300, category="food", subcategory="Food Delivery"),
            Transaction(date="2024-04-05", description="BIGBASKET", debit=700, category="food", subcategory="Groceries"),
            Transaction(date="2024-05-01", description="UBER", debit=1200, category="transport"),
            Transaction(date="2024-05-03", description="AMAZON", debit=500),
            Transaction(date="2024-05-01", description="SALARY", credit=50000, category="income"),
            Transaction(date="2024-05-02", description="AUTO SWEEP", debit=10000),
            Transaction(date="2024-05-02", description="TRANSFER CREDIT", credit=10000),
        ]

        analytics = compute_analytics(transactions, DEFAULT_CATEGORIES)

        assert analytics.monthly_spending == {"2024-04": 1000.0, "2024-05": 1700.0}
        assert analytics.monthly_income == {"2024-05": 50000.0}
        assert analytics.sorted_months == ["2024-05", "2024-04"]
        assert analytics.total_spending == 2700.0
        assert analytics.total_income == 50000.0
        assert analytics.categorized_spending == 2200.0
        assert analytics.subcategory_spending == {
            "food:Food Delivery": 300.0,
            "food:Groceries": 700.0,
        }
        assert [(c.id, c.name, c.amount) for c in analytics.category_spending] == [
            ("transport", "Transportation", 1200.0),
            ("food", "Food & Dining", 1000.0),
        ]

    def test_unknown_category(self):
        """Test that categories missing from the configuration keep their id."""
        transactions = [Transaction(date="2024-04-02", description="X", debit=5, category="pets")]
        spending = compute_analytics(transactions, DEFAULT_CATEGORIES).category_spending
        assert (spending[0].name, spending[0].color) == ("pets", "#ccc")

    def test_undated_in_unknown_month(self):
        """Test undated transactions without a date filter."""
        transactions = [Transaction(date=None, description="X", debit=5)]
        analytics = compute_analytics(transactions, DEFAULT_CATEGORIES)
        assert analytics.monthly_spending == {"Unknown": 5.0}

    def test_date_filter_excludes_undated(self):
        """Test that a date filter drops undated transactions."""
        transactions = [
            Transaction(date=None, description="X", debit=5),
            Transaction(date="2024-06-01", description="Y", debit=7),
            Transaction(date="2023-06-01", description="Z", debit=9),
        ]
        analytics = compute_analytics(
            transactions,
            DEFAULT_CATEGORIES,
            TransactionFilter(date_preset="fy", fy="2024-2025"),
        )
        assert analytics.total_spending == pytest.approx(7.0)
        assert analytics.sorted_months == ["2024-06"]

    def test_date_filter_excludes_malformed_dates(self):
        """Test that a date with an impossible month never matches a date filter."""
        parsed = parse_text(
            "Date\tDescription\tDebit\n"
            "01/04/2024\tSHOP\t100\n"
            "31/13/2024\tGHOST\t900",
        )
        assert parsed.transactions[1].date == "2024-13-31"

        analytics = compute_analytics(
            parsed.transactions,
            [],
            TransactionFilter(date_preset="month", month="2024-04"),
        )

        assert analytics.monthly_spending == {"2024-04": 100.0}
        assert analytics.total_spending == 100.0
        assert analytics.sorted_months == ["2024-04"]

    def test_only_transfers(self):
        """Test that transfers alone produce no figures."""
        transactions = [Transaction(date="2024-04-01", description="SWEEP", debit=100)]
        analytics = compute_analytics(transactions, DEFAULT_CATEGORIES)
        assert analytics.total_spending == 0
        assert analytics.monthly_spending == {}
