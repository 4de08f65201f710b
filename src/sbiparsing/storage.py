"""
JSON-file key-value storage for transactions, categories and settings.
"""

import json
import logging
from dataclasses import fields
from datetime import datetime
from pathlib import Path
from typing import Any

from .models import CleanupResult, ImportResult, Transaction
from .tsv_parser import clean_description

logger = logging.getLogger(__name__)

TRANSACTIONS_KEY = "transactions"
CATEGORIES_KEY = "categories"
SETTINGS_KEY = "settings"
AUTO_LABEL_RULES_KEY = "auto_label_rules"

DEFAULT_SETTINGS = {"theme": "light", "currency": "₹"}

WRITABLE_FIELDS = frozenset(f.name for f in fields(Transaction)) - {"id"}


class FileLoadingError(Exception):
    """Exception raised when a file cannot be loaded."""


class FileSavingError(Exception):
    """Exception raised when a file cannot be saved."""


class KeyValueStore:
    """A dict of JSON values persisted to a single file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: dict[str, Any] = {}

        if self.path.exists():
            logger.debug(f"Loading store from {self.path}")
            self._load()
        else:
            logger.debug(
                f"Store file {self.path} does not exist, will be created on first save",
            )

    def _load(self) -> None:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in store file {self.path}: {e}")
            raise FileLoadingError(f"Invalid JSON in store file {self.path}: {e}") from e
        except OSError as e:
            logger.error(f"Failed to load store from {self.path}: {e}")
            raise FileLoadingError(f"Failed to load store from {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise FileLoadingError(f"Store file {self.path} must contain a JSON object")
        self._data = data

    def _save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Failed to save store to {self.path}: {e}")
            raise FileSavingError(f"Failed to save store to {self.path}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()

    def __contains__(self, key: str) -> bool:
        return key in self._data


def _newest_first(transactions: list[Transaction]) -> list[Transaction]:
    dated = sorted(
        (t for t in transactions if t.date),
        key=lambda t: t.date,
        reverse=True,
    )
    return dated + [t for t in transactions if not t.date]


class StorageService:
    """Reads and writes application data through a KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get_transactions(self) -> list[Transaction]:
        return [Transaction.from_dict(t) for t in self.store.get(TRANSACTIONS_KEY, [])]

    def save_transactions(self, transactions: list[Transaction]) -> None:
        self.store.set(TRANSACTIONS_KEY, [t.to_dict() for t in transactions])

    def unseen_transactions(
        self,
        transactions: list[Transaction],
        existing: list[Transaction] | None = None,
    ) -> list[Transaction]:
        """Transactions whose id and signature are not stored yet."""
        if existing is None:
            existing = self.get_transactions()
        existing_ids = {t.id for t in existing}
        existing_signatures = {t.signature for t in existing}
        return [
            t
            for t in transactions
            if t.id not in existing_ids and t.signature not in existing_signatures
        ]

    def add_transactions(self, new_transactions: list[Transaction]) -> ImportResult:
        """
        Merge new transactions into the store, skipping duplicates.

        A transaction is a duplicate when its id or its date/description/amount
        signature is already stored. The merged list is stored newest first.
        """
        existing = self.get_transactions()
        unique_new = self.unseen_transactions(new_transactions, existing)
        skipped = len(new_transactions) - len(unique_new)
        if skipped:
            logger.info(f"Skipped {skipped} duplicate transactions")

        merged = _newest_first(existing + unique_new)
        self.save_transactions(merged)
        logger.info(f"Added {len(unique_new)} transactions, {len(merged)} stored")
        return ImportResult(added=len(unique_new), total=len(merged))

    def update_transaction(self, transaction_id: str, **updates: Any) -> bool:
        """Update fields of a stored transaction. Returns False if not found."""
        transactions = self.get_transactions()
        for transaction in transactions:
            if transaction.id == transaction_id:
                for name, value in updates.items():
                    if name not in WRITABLE_FIELDS:
                        raise AttributeError(f"Transaction has no writable field '{name}'")
                    setattr(transaction, name, value)
                self.save_transactions(transactions)
                return True

        logger.warning(f"Transaction '{transaction_id}' not found, cannot update")
        return False

    def delete_transaction(self, transaction_id: str) -> bool:
        transactions = self.get_transactions()
        remaining = [t for t in transactions if t.id != transaction_id]
        self.save_transactions(remaining)
        return len(remaining) < len(transactions)

    def clear_transactions(self) -> None:
        logger.info("Clearing all transactions")
        self.store.remove(TRANSACTIONS_KEY)

    def get_settings(self) -> dict[str, Any]:
        return self.store.get(SETTINGS_KEY) or dict(DEFAULT_SETTINGS)

    def save_settings(self, settings: dict[str, Any]) -> None:
        self.store.set(SETTINGS_KEY, settings)

    def export_data(self) -> dict[str, Any]:
        """Dump every stored section plus an export timestamp."""
        return {
            TRANSACTIONS_KEY: self.store.get(TRANSACTIONS_KEY, []),
            CATEGORIES_KEY: self.store.get(CATEGORIES_KEY),
            AUTO_LABEL_RULES_KEY: self.store.get(AUTO_LABEL_RULES_KEY, []),
            SETTINGS_KEY: self.get_settings(),
            "exported_at": datetime.now().isoformat(),
        }

    def import_data(self, data: dict[str, Any]) -> None:
        """Replace each section present in ``data``."""
        for key in (TRANSACTIONS_KEY, CATEGORIES_KEY, AUTO_LABEL_RULES_KEY, SETTINGS_KEY):
            if data.get(key):
                logger.info(f"Importing {key}")
                self.store.set(key, data[key])

    def clean_all_descriptions(self) -> CleanupResult:
        """Re-apply description cleaning to every stored transaction."""
        transactions = self.get_transactions()
        cleaned = 0
        for transaction in transactions:
            description = clean_description(transaction.description)
            if description != transaction.description:
                transaction.description = description
                cleaned += 1

        if cleaned:
            self.save_transactions(transactions)
        logger.info(f"Cleaned {cleaned} of {len(transactions)} descriptions")
        return CleanupResult(cleaned=cleaned, total=len(transactions))
