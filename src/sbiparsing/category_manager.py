"""
Category and auto-label rule management for transaction categorization.
"""

import logging
from typing import Any

from .models import AutoLabelRule, Category, Transaction
from .storage import AUTO_LABEL_RULES_KEY, CATEGORIES_KEY, StorageService

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    Category(
        "food",
        "Food & Dining",
        "#FF6B6B",
        ["Restaurants", "Groceries", "Food Delivery", "Coffee & Tea", "Fast Food"],
    ),
    Category(
        "transport",
        "Transportation",
        "#4ECDC4",
        ["Fuel", "Public Transport", "Cab/Taxi", "Parking", "Vehicle Maintenance"],
    ),
    Category(
        "shopping",
        "Shopping",
        "#45B7D1",
        ["Clothing", "Electronics", "Home & Garden", "Personal Care", "Online Shopping"],
    ),
    Category(
        "utilities",
        "Utilities & Bills",
        "#96CEB4",
        ["Electricity", "Water", "Gas", "Internet", "Mobile", "DTH/Cable"],
    ),
    Category(
        "entertainment",
        "Entertainment",
        "#DDA0DD",
        ["Movies", "Streaming Services", "Games", "Events", "Subscriptions"],
    ),
    Category(
        "health",
        "Health & Medical",
        "#98D8C8",
        ["Doctor", "Pharmacy", "Insurance", "Gym/Fitness", "Medical Tests"],
    ),
    Category(
        "education",
        "Education",
        "#F7DC6F",
        ["Courses", "Books", "Tuition", "School/College Fees", "Stationery"],
    ),
    Category(
        "transfer",
        "Transfers",
        "#BB8FCE",
        ["Bank Transfer", "UPI Transfer", "NEFT/RTGS", "IMPS", "Self Transfer"],
    ),
    Category(
        "income",
        "Income",
        "#58D68D",
        ["Salary", "Freelance", "Interest", "Refund", "Gift", "Cashback"],
    ),
    Category(
        "investment",
        "Investments",
        "#5DADE2",
        ["Mutual Funds", "Stocks", "Fixed Deposit", "PPF", "Insurance Premium"],
    ),
    Category(
        "emi",
        "EMI & Loans",
        "#E74C3C",
        ["Home Loan", "Car Loan", "Personal Loan", "Credit Card", "Education Loan"],
    ),
    Category(
        "atm",
        "ATM & Cash",
        "#F39C12",
        ["ATM Withdrawal", "Cash Deposit", "Bank Charges"],
    ),
    Category(
        "other",
        "Other",
        "#95A5A6",
        ["Miscellaneous", "Unknown", "Uncategorized"],
    ),
]


class CategoryNotFoundError(Exception):
    """Exception raised when an operation references a category that doesn't exist."""


class CategoryManager:
    """Manages categories and the keyword rules that assign them."""

    def __init__(self, storage: StorageService):
        self.storage = storage

    def _save_categories(self, categories: list[Category]) -> None:
        self.storage.store.set(CATEGORIES_KEY, [c.to_dict() for c in categories])

    def _save_rules(self, rules: list[AutoLabelRule]) -> None:
        self.storage.store.set(AUTO_LABEL_RULES_KEY, [r.to_dict() for r in rules])

    def _require_category(self, category_id: str) -> Category:
        category = self.get_category(category_id)
        if category is None:
            raise CategoryNotFoundError(
                f"Category '{category_id}' does not exist. "
                f"Available categories: {[c.id for c in self.list_categories()]}",
            )
        return category

    def list_categories(self) -> list[Category]:
        """Get all categories, falling back to the defaults when none are stored."""
        stored = self.storage.store.get(CATEGORIES_KEY)
        if not stored:
            return [Category.from_dict(c.to_dict()) for c in DEFAULT_CATEGORIES]
        return [Category.from_dict(c) for c in stored]

    def get_category(self, category_id: str) -> Category | None:
        """Get a category by id."""
        for category in self.list_categories():
            if category.id == category_id:
                return category
        return None

    def add_category(self, category: Category) -> None:
        """Add a new category, overwriting one with the same id."""
        categories = self.list_categories()
        existing = [c for c in categories if c.id != category.id]
        if len(existing) < len(categories):
            logger.warning(f"Category '{category.id}' already exists, overwriting")
        else:
            logger.info(f"Adding new category '{category.id}'")
        existing.append(category)
        self._save_categories(existing)

    def update_category(self, category_id: str, **updates: Any) -> bool:
        """Update a category's name, color or subcategories."""
        categories = self.list_categories()
        for category in categories:
            if category.id == category_id:
                for name, value in updates.items():
                    if name not in ("name", "color", "subcategories"):
                        raise AttributeError(f"Category has no writable field '{name}'")
                    setattr(category, name, value)
                self._save_categories(categories)
                logger.info(f"Updated category '{category_id}'")
                return True

        logger.warning(f"Category '{category_id}' does not exist, cannot update")
        return False

    def remove_category(self, category_id: str) -> None:
        """Remove a category."""
        categories = self.list_categories()
        remaining = [c for c in categories if c.id != category_id]
        if len(remaining) == len(categories):
            logger.warning(f"Category '{category_id}' does not exist, cannot remove")
            return

        logger.info(f"Removing category '{category_id}'")
        self._save_categories(remaining)

    def add_subcategory(self, category_id: str, subcategory: str) -> bool:
        """Add a subcategory to a category."""
        categories = self.list_categories()
        for category in categories:
            if category.id == category_id:
                if subcategory in category.subcategories:
                    logger.debug(
                        f"Subcategory '{subcategory}' already exists in category '{category_id}'",
                    )
                    return True
                category.subcategories.append(subcategory)
                self._save_categories(categories)
                logger.info(
                    f"Added subcategory '{subcategory}' to category '{category_id}'",
                )
                return True

        logger.warning(
            f"Category '{category_id}' does not exist. Cannot add subcategory '{subcategory}'",
        )
        return False

    def list_rules(self) -> list[AutoLabelRule]:
        """Get all auto-label rules in priority order."""
        return [
            AutoLabelRule.from_dict(r)
            for r in self.storage.store.get(AUTO_LABEL_RULES_KEY, [])
        ]

    def add_rules(
        self,
        keywords: str,
        category_id: str,
        subcategory: str = "",
    ) -> list[AutoLabelRule]:
        """
        Add auto-label rules.

        Args:
            keywords: One keyword or several separated by commas; each
                becomes its own rule
            category_id: Category assigned by the rules
            subcategory: Optional subcategory assigned by the rules

        Returns:
            The newly created rules
        """
        self._require_category(category_id)

        new_rules = [
            AutoLabelRule(keyword=keyword, category=category_id, subcategory=subcategory)
            for keyword in (k.strip() for k in keywords.split(","))
            if keyword
        ]
        if not new_rules:
            logger.warning("No keywords given, no rules added")
            return []

        self._save_rules(self.list_rules() + new_rules)
        logger.info(
            f"Added {len(new_rules)} rules for category '{category_id}': "
            f"{[r.keyword for r in new_rules]}",
        )
        return new_rules

    def update_rule(
        self,
        rule_id: str,
        keyword: str,
        category_id: str,
        subcategory: str = "",
    ) -> bool:
        """Replace the keyword and target of an existing rule."""
        self._require_category(category_id)

        rules = self.list_rules()
        for rule in rules:
            if rule.id == rule_id:
                rule.keyword = keyword.strip()
                rule.category = category_id
                rule.subcategory = subcategory
                self._save_rules(rules)
                return True

        logger.warning(f"Rule '{rule_id}' not found, cannot update")
        return False

    def remove_rule(self, rule_id: str) -> None:
        """Remove an auto-label rule."""
        rules = self.list_rules()
        remaining = [r for r in rules if r.id != rule_id]
        if len(remaining) < len(rules):
            logger.info(f"Removed rule '{rule_id}'")
            self._save_rules(remaining)
        else:
            logger.warning(f"Rule '{rule_id}' not found")

    def categorize(
        self,
        transaction_id: str,
        category_id: str | None,
        subcategory: str | None = None,
    ) -> bool:
        """Assign (or with ``None`` clear) the category of a stored transaction."""
        if category_id is not None:
            self._require_category(category_id)
        return self.storage.update_transaction(
            transaction_id,
            category=category_id,
            subcategory=subcategory,
        )

    def apply_auto_label_rules(
        self,
        transactions: list[Transaction],
        rules: list[AutoLabelRule] | None = None,
    ) -> tuple[list[Transaction], int]:
        """
        Label uncategorized transactions with the first matching rule.

        A rule matches when its keyword occurs in the description,
        ignoring case. Already categorized transactions are left alone.

        Returns:
            Tuple of (transactions, number of labels applied)
        """
        if rules is None:
            rules = self.list_rules()

        labels_applied = 0
        for transaction in transactions:
            if transaction.category:
                continue

            description = (transaction.description or "").upper()
            for rule in rules:
                keyword = (rule.keyword or "").upper()
                if keyword and keyword in description:
                    transaction.category = rule.category
                    transaction.subcategory = rule.subcategory or ""
                    labels_applied += 1
                    break

        return transactions, labels_applied

    def apply_rules_to_store(self) -> int:
        """Apply the stored rules to stored transactions and persist the result."""
        transactions, labels_applied = self.apply_auto_label_rules(
            self.storage.get_transactions(),
        )
        if labels_applied:
            self.storage.save_transactions(transactions)
        logger.info(f"Applied {labels_applied} auto labels")
        return labels_applied
