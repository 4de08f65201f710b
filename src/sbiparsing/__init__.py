"""
SBI Parsing - A tolerant parser for tab-separated bank statement exports.

This package provides tools to parse statement TSV exports, categorize
transactions with keyword rules, and compute spending analytics.
"""

from .analytics import SpendingAnalytics, compute_analytics
from .category_manager import CategoryManager
from .filters import TransactionFilter, filter_transactions, sort_transactions
from .models import AutoLabelRule, Category, ParsingResult, Transaction, TransactionType
from .output_formatter import SummaryFormatter, TableFormatter
from .parser import StatementParser
from .storage import KeyValueStore, StorageService
from .tsv_parser import (
    COLUMN_VARIANTS,
    NOISE_PATTERNS,
    StatementParsingError,
    StatementTSVParser,
    clean_description,
    parse_amount,
    parse_date,
    parse_text,
)

__version__ = "0.1.0"
__all__ = [
    "AutoLabelRule",
    "COLUMN_VARIANTS",
    "Category",
    "CategoryManager",
    "NOISE_PATTERNS",
    "ParsingResult",
    "SpendingAnalytics",
    "StatementParser",
    "StatementParsingError",
    "StatementTSVParser",
    "StorageService",
    "KeyValueStore",
    "SummaryFormatter",
    "TableFormatter",
    "Transaction",
    "TransactionFilter",
    "TransactionType",
    "clean_description",
    "compute_analytics",
    "filter_transactions",
    "parse_amount",
    "parse_date",
    "parse_text",
    "sort_transactions",
]
