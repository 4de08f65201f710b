"""
Data models for statement parsing.
"""

import secrets
import string
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(prefix: str = "txn") -> str:
    """Generate an opaque id like ``txn_1712000000000_k3j9x0a2b``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


class TransactionType(Enum):
    """Transaction type enumeration."""

    CREDIT = "credit"
    DEBIT = "debit"


@dataclass
class Transaction:
    """Represents a single normalized bank transaction."""

    date: str | None
    description: str
    debit: float = 0.0
    credit: float = 0.0
    balance: float = 0.0
    value_date: str | None = None
    reference: str = ""
    id: str = field(default_factory=generate_id)
    category: str | None = None
    subcategory: str | None = None
    notes: str = ""

    @property
    def amount(self) -> float:
        """Signed amount: credit if positive, otherwise the negated debit."""
        return self.credit if self.credit > 0 else -self.debit

    @property
    def transaction_type(self) -> TransactionType:
        return TransactionType.CREDIT if self.credit > 0 else TransactionType.DEBIT

    @property
    def signature(self) -> str:
        """Duplicate-detection key used by the store."""
        return f"{self.date}_{self.description}_{self.amount}"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the JSON store."""
        return {
            "id": self.id,
            "date": self.date,
            "value_date": self.value_date,
            "description": self.description,
            "reference": self.reference,
            "debit": self.debit,
            "credit": self.credit,
            "balance": self.balance,
            "amount": self.amount,
            "type": self.transaction_type.value,
            "category": self.category,
            "subcategory": self.subcategory,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transaction":
        """Create Transaction from a stored record.

        ``amount`` and ``type`` are derived, so stored values are ignored.
        """
        return cls(
            id=data.get("id") or generate_id(),
            date=data.get("date"),
            value_date=data.get("value_date"),
            description=data.get("description", ""),
            reference=data.get("reference", ""),
            debit=float(data.get("debit", 0) or 0),
            credit=float(data.get("credit", 0) or 0),
            balance=float(data.get("balance", 0) or 0),
            category=data.get("category"),
            subcategory=data.get("subcategory"),
            notes=data.get("notes", ""),
        )


@dataclass
class Category:
    """Represents a spending category with its subcategories."""

    id: str
    name: str
    color: str = "#95A5A6"
    subcategories: list[str] | None = None

    def __post_init__(self):
        if self.subcategories is None:
            object.__setattr__(self, "subcategories", [])

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Category":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            color=data.get("color", "#95A5A6"),
            subcategories=list(data.get("subcategories", [])),
        )


@dataclass
class AutoLabelRule:
    """Keyword rule that assigns a category to matching descriptions."""

    keyword: str
    category: str
    subcategory: str = ""
    id: str = field(default_factory=lambda: generate_id("rule"))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AutoLabelRule":
        return cls(
            id=data.get("id") or generate_id("rule"),
            keyword=data.get("keyword", ""),
            category=data.get("category", ""),
            subcategory=data.get("subcategory") or "",
        )


@dataclass
class ParsingResult:
    """Result of parsing one statement."""

    transactions: list[Transaction]
    header_index: int
    headers: list[str]
    columns: dict[str, str | None]
    dropped_rows: int = 0


@dataclass
class ImportResult:
    """Outcome of merging transactions into the store."""

    added: int
    total: int


@dataclass
class CleanupResult:
    """Outcome of re-cleaning stored descriptions."""

    cleaned: int
    total: int


@dataclass
class ImportReport:
    """Summary of a full statement import."""

    parsing_result: ParsingResult
    import_result: ImportResult
    labels_applied: int = 0
