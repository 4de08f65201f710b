"""
Command-line interface for statement parsing.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from .category_manager import CategoryNotFoundError
from .filters import TransactionFilter
from .models import Category
from .openrouter_client import OpenRouterError, call_openrouter
from .parser import StatementParser
from .storage import FileLoadingError, FileSavingError

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("table", "summary", "both")


def load_config(config_file: str) -> dict:
    """Load CLI configuration from JSON file."""

    config_path = Path(config_file)
    if not config_path.exists():
        logger.debug(f"CLI config file {config_file} does not exist")
        return {}

    try:
        with open(config_path, encoding="utf-8") as f:
            config = json.load(f)
        logger.debug(f"Loaded CLI config from {config_file}")
        return config
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid JSON in CLI config file {config_file}: {e}")
        return {}
    except OSError as e:
        logger.warning(f"Failed to load CLI config from {config_file}: {e}")
        return {}


def save_config(config_file: str, config: dict) -> None:
    """Save CLI configuration to JSON file."""
    try:
        config_path = Path(config_file)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2, ensure_ascii=False)
        logger.info(f"CLI configuration saved to {config_file}")
    except OSError as e:
        logger.error(f"Failed to save CLI config to {config_file}: {e}")
        raise FileSavingError(
            f"Failed to save CLI config to {config_file}: {e}",
        ) from e


def build_filter(args: argparse.Namespace) -> TransactionFilter:
    """Translate view options into a TransactionFilter."""
    date_preset = "all"
    if args.fy:
        date_preset = "fy"
    elif args.quarter:
        date_preset = "quarter"
    elif args.month:
        date_preset = "month"
    elif args.date_from or args.date_to:
        date_preset = "custom"

    return TransactionFilter(
        search=args.search or "",
        transaction_type=args.type,
        category=args.category,
        date_preset=date_preset,
        fy=args.fy or "",
        month=args.month or "",
        quarter=args.quarter or "",
        date_from=args.date_from or "",
        date_to=args.date_to or "",
    )


def suggest_categories(statement_parser: StatementParser, config: dict) -> None:
    """Ask OpenRouter for categories of uncategorized transactions."""
    api_key = os.environ.get("OPENROUTER_API_KEY")
    system_prompt_file = config.get("system_prompt_file")
    user_prompt_file = config.get("user_prompt_file")
    if not api_key:
        logger.error("Error: OPENROUTER_API_KEY environment variable is not set")
        sys.exit(1)
    if not system_prompt_file or not user_prompt_file:
        logger.error(
            "Error: system_prompt_file and user_prompt_file must be set in CLI config file",
        )
        sys.exit(1)

    uncategorized = statement_parser.get_transactions(
        TransactionFilter(category="uncategorized"),
    )
    if not uncategorized:
        logger.info("All transactions are categorized, nothing to suggest")
        return

    try:
        suggestions = call_openrouter(
            api_key,
            Path(system_prompt_file),
            [c.to_dict() for c in statement_parser.category_manager.list_categories()],
            [t.to_dict() for t in uncategorized],
            Path(user_prompt_file),
        )
    except OpenRouterError as e:
        logger.error(f"Error getting suggestions: {e}")
        sys.exit(1)

    logger.info(suggestions)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Import tab-separated bank statements, categorize and analyse spending",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    parser.add_argument(
        "--config",
        help="Path to CLI configuration file (contains store_file, output_format, prompt files)",
    )

    parser.add_argument(
        "tsv_file",
        nargs="?",
        help="Path to the statement TSV file to import (optional; without it the stored data is reported)",
    )

    parser.add_argument(
        "--add-category",
        nargs=2,
        metavar=("ID", "NAME"),
        help="Add a new category",
    )

    parser.add_argument(
        "--add-rule",
        nargs="+",
        metavar="ARG",
        help="Add auto-label rules: KEYWORDS CATEGORY [SUBCATEGORY]. KEYWORDS may be comma-separated.",
    )

    parser.add_argument(
        "--apply-rules",
        action="store_true",
        help="Apply auto-label rules to stored uncategorized transactions",
    )

    parser.add_argument(
        "--clean-descriptions",
        action="store_true",
        help="Remove UPI reference noise from stored descriptions",
    )

    parser.add_argument(
        "--set-output-format",
        choices=OUTPUT_FORMATS,
        help="Store the default output format in the CLI config file",
    )

    parser.add_argument("--export", metavar="FILE", help="Export all data to a JSON file")
    parser.add_argument("--import", dest="import_file", metavar="FILE", help="Import data from a JSON backup")
    parser.add_argument("--clear", action="store_true", help="Delete all stored transactions")
    parser.add_argument(
        "--suggest",
        action="store_true",
        help="Suggest categories for uncategorized transactions via OpenRouter",
    )

    parser.add_argument("--search", help="Only show transactions whose description contains this text")
    parser.add_argument("--type", choices=("all", "credit", "debit"), default="all")
    parser.add_argument("--category", default="all", help="Category id, 'uncategorized' or 'all'")
    parser.add_argument("--month", help="Month filter (YYYY-MM)")
    parser.add_argument("--fy", help="Financial year filter (e.g. 2024-2025)")
    parser.add_argument("--quarter", help="Quarter filter (e.g. 2024-Q2)")
    parser.add_argument("--from", dest="date_from", help="Start date filter (YYYY-MM-DD)")
    parser.add_argument("--to", dest="date_to", help="End date filter (YYYY-MM-DD)")
    parser.add_argument("--sort-by", choices=("date", "amount", "description"), default="date")
    parser.add_argument("--order", choices=("asc", "desc"), default="desc")

    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
    )

    if not args.config:
        logger.error(
            "Error: --config is required. Please provide a CLI config file with store_file set.",
        )
        sys.exit(1)

    config = load_config(args.config)

    if args.set_output_format:
        config["output_format"] = args.set_output_format
        try:
            save_config(args.config, config)
        except FileSavingError as e:
            logger.error(f"Error: {e}")
            sys.exit(1)
        return

    store_file_str = config.get("store_file")
    output_format = config.get("output_format", "summary")

    if not store_file_str:
        logger.error("Error: store_file must be set in CLI config file")
        sys.exit(1)

    if output_format not in OUTPUT_FORMATS:
        logger.error(
            f"Error: output_format must be one of {OUTPUT_FORMATS}, got '{output_format}'",
        )
        sys.exit(1)

    try:
        statement_parser = StatementParser(Path(store_file_str))
    except FileLoadingError as e:
        logger.error(f"Error loading store: {e}")
        sys.exit(1)

    # Handle category management
    if args.add_category:
        category_id, name = args.add_category
        statement_parser.category_manager.add_category(Category(id=category_id, name=name))
        logger.info(f"Added category '{category_id}' ({name})")
        return

    if args.add_rule:
        if len(args.add_rule) not in (2, 3):
            logger.error(
                "Error: --add-rule requires 2 or 3 arguments: KEYWORDS CATEGORY [SUBCATEGORY]",
            )
            logger.error(f"Received {len(args.add_rule)} arguments: {args.add_rule}")
            sys.exit(1)

        keywords, category_id, *rest = args.add_rule
        subcategory = rest[0] if rest else ""
        try:
            rules = statement_parser.category_manager.add_rules(
                keywords,
                category_id,
                subcategory,
            )
        except CategoryNotFoundError as e:
            logger.error(f"Error adding rule: {e}")
            sys.exit(1)
        logger.info(f"Added {len(rules)} rules -> {category_id}")
        return

    # Handle store maintenance
    if args.apply_rules:
        applied = statement_parser.category_manager.apply_rules_to_store()
        logger.info(f"Labelled {applied} transactions")
        return

    if args.clean_descriptions:
        result = statement_parser.clean_descriptions()
        logger.info(f"Cleaned {result.cleaned} of {result.total} descriptions")
        return

    if args.clear:
        statement_parser.clear_transactions()
        logger.info("All transactions cleared")
        return

    if args.export:
        try:
            statement_parser.export_data(args.export)
        except FileSavingError as e:
            logger.error(f"Error exporting data: {e}")
            sys.exit(1)
        return

    if args.import_file:
        try:
            statement_parser.import_data(args.import_file)
        except FileLoadingError as e:
            logger.error(f"Error importing data: {e}")
            sys.exit(1)
        logger.info(f"Imported data from {args.import_file}")
        return

    if args.suggest:
        suggest_categories(statement_parser, config)
        return

    # Import the statement if one was given
    if args.tsv_file:
        try:
            report = statement_parser.import_file(args.tsv_file)
        except (ValueError, FileNotFoundError, OSError) as e:
            logger.error(f"Error parsing file: {e}")
            sys.exit(1)

        logger.info(
            f"Imported {report.import_result.added} new transactions "
            f"({report.import_result.total} total, {report.labels_applied} auto-labelled)",
        )

    try:
        flt = build_filter(args)
    except ValueError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    # Generate output
    if output_format in ["table", "both"]:
        transactions = statement_parser.get_transactions(flt, args.sort_by, args.order)
        # Output to stdout for user to copy/paste
        logger.info(statement_parser.format_table(transactions))

    if output_format in ["summary", "both"]:
        if output_format == "both":
            logger.info("\n" + "=" * 50 + "\n")
        logger.info(statement_parser.format_summary(flt))


if __name__ == "__main__":
    main()
