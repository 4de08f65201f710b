"""
Main parser class that orchestrates importing, categorizing and reporting.
"""

import json
import logging
from pathlib import Path
from typing import Any

from .analytics import SpendingAnalytics, compute_analytics
from .category_manager import CategoryManager
from .filters import (
    TransactionFilter,
    filter_transactions,
    sort_transactions,
    summarize,
)
from .models import CleanupResult, ImportReport, Transaction
from .output_formatter import SummaryFormatter, TableFormatter
from .storage import FileLoadingError, FileSavingError, KeyValueStore, StorageService
from .tsv_parser import StatementParsingError, StatementTSVParser

logger = logging.getLogger(__name__)


class StatementParser:
    """Main entry point tying the TSV parser to storage and reporting."""

    def __init__(self, store_file: Path, auto_label: bool = True):
        self.tsv_parser = StatementTSVParser()
        self.storage = StorageService(KeyValueStore(Path(store_file)))
        self.category_manager = CategoryManager(self.storage)
        self.table_formatter = TableFormatter()
        self.summary_formatter = SummaryFormatter()
        self.auto_label = auto_label

    def import_file(self, file_path: str) -> ImportReport:
        """
        Parse a statement file and merge its transactions into the store.

        Args:
            file_path: Path to the TSV file

        Returns:
            ImportReport with parse, merge and labelling counts

        Raises:
            StatementParsingError: If the file is unreadable, malformed or
                contains no transactions
        """
        result = self.tsv_parser.parse_file(file_path)
        if not result.transactions:
            raise StatementParsingError(
                f"No transactions found in {file_path}. Could not find header row "
                f"with transaction columns (Date, Description/Details, Debit, Credit, Balance)",
            )
        logger.info(
            f"Parsed {len(result.transactions)} transactions from {file_path} "
            f"(header at line {result.header_index}, {result.dropped_rows} rows dropped)",
        )

        labels_applied = 0
        if self.auto_label:
            _, labels_applied = self.category_manager.apply_auto_label_rules(
                self.storage.unseen_transactions(result.transactions),
            )

        import_result = self.storage.add_transactions(result.transactions)
        return ImportReport(
            parsing_result=result,
            import_result=import_result,
            labels_applied=labels_applied,
        )

    def get_transactions(
        self,
        flt: TransactionFilter | None = None,
        sort_by: str = "date",
        order: str = "desc",
    ) -> list[Transaction]:
        """Stored transactions, optionally filtered, in the requested order."""
        transactions = self.storage.get_transactions()
        if flt is not None:
            transactions = filter_transactions(transactions, flt)
        return sort_transactions(transactions, sort_by, order)

    def analyze(self, flt: TransactionFilter | None = None) -> SpendingAnalytics:
        """Compute spending analytics over the stored transactions."""
        return compute_analytics(
            self.storage.get_transactions(),
            self.category_manager.list_categories(),
            flt,
        )

    def format_table(self, transactions: list[Transaction]) -> str:
        return self.table_formatter.format_transactions(transactions)

    def format_summary(
        self,
        flt: TransactionFilter | None = None,
        warnings: list[str] | None = None,
    ) -> str:
        """Format analytics and totals for the (filtered) stored transactions."""
        transactions = self.get_transactions(flt)
        return self.summary_formatter.format_summary(
            self.analyze(flt),
            summarize(transactions),
            warnings,
        )

    def clean_descriptions(self) -> CleanupResult:
        return self.storage.clean_all_descriptions()

    def clear_transactions(self) -> None:
        self.storage.clear_transactions()

    def export_data(self, file_path: str) -> dict[str, Any]:
        """Write a full backup of the store to ``file_path``."""
        data = self.storage.export_data()
        if data["categories"] is None:
            data["categories"] = [
                c.to_dict() for c in self.category_manager.list_categories()
            ]
        try:
            path = Path(file_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise FileSavingError(f"Failed to export data to {file_path}: {e}") from e
        logger.info(f"Exported {len(data['transactions'])} transactions to {file_path}")
        return data

    def import_data(self, file_path: str) -> None:
        """Restore a backup written by ``export_data``."""
        try:
            with open(file_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise FileLoadingError(f"Failed to import data from {file_path}: {e}") from e
        if not isinstance(data, dict):
            raise FileLoadingError(f"Backup file {file_path} must contain a JSON object")
        self.storage.import_data(data)
