"""Unit tests for cli.py."""

import argparse
import json
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from sbiparsing.cli import FileSavingError, build_filter, load_config, main, save_config
from sbiparsing.parser import StatementParser

STATEMENT = "\n".join(
    [
        "Account Name\t: Mr. Test",
        "Txn Date\tValue Date\tDescription\tRef No./Cheque No.\tDebit\tCredit\tBalance",
        "1 Apr 2024\t1 Apr 2024\tTO TRANSFER-UPI/DR/123456/SWIGGY\t\t350.00\t\t9,650.00",
        "2 Apr 2024\t2 Apr 2024\tBY TRANSFER-NEFT SALARY\t\t\t50,000.00\t59,650.00",
    ],
)


def write_config(tmpdir: str, **overrides) -> Path:
    config_file = Path(tmpdir) / "config.json"
    config_data = {"store_file": str(Path(tmpdir) / "store.json"), **overrides}
    with open(config_file, "w", encoding="utf-8") as f:
        json.dump(config_data, f)
    return config_file


def logged(mock_logger) -> str:
    return "\n".join(str(call.args[0]) for call in mock_logger.info.call_args_list)


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_config_existing_file(self):
        """Test loading config from existing file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / "config.json"
            config_data = {"store_file": "store.json", "output_format": "table"}

            with open(config_file, "w", encoding="utf-8") as f:
                json.dump(config_data, f)

            assert load_config(str(config_file)) == config_data

    def test_load_config_nonexistent_file(self):
        """Test loading config from non-existent file."""
        assert load_config("/nonexistent/path/config.json") == {}

    def test_load_config_invalid_json(self):
        """Test loading config with invalid JSON."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / "config.json"

            with open(config_file, "w", encoding="utf-8") as f:
                f.write("invalid json {")

            assert load_config(str(config_file)) == {}


class TestSaveConfig:
    """Tests for save_config function."""

    def test_save_config_creates_directory(self):
        """Test that save_config creates directory if needed."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / "subdir" / "config.json"
            config_data = {"store_file": "store.json"}

            save_config(str(config_file), config_data)

            with open(config_file, encoding="utf-8") as f:
                assert json.load(f) == config_data

    def test_save_config_raises_on_error(self):
        """Test that save_config raises exception on error."""
        with tempfile.TemporaryDirectory() as tmpdir:
            blocker = Path(tmpdir) / "blocker"
            blocker.write_text("", encoding="utf-8")
            with pytest.raises(FileSavingError):
                save_config(str(blocker / "config.json"), {"test": "value"})


class TestBuildFilter:
    """Tests for build_filter function."""

    @staticmethod
    def namespace(**overrides) -> argparse.Namespace:
        values = {
            "search": None,
            "type": "all",
            "category": "all",
            "month": None,
            "fy": None,
            "quarter": None,
            "date_from": None,
            "date_to": None,
        }
        values.update(overrides)
        return argparse.Namespace(**values)

    def test_no_date_options(self):
        """Test the default filter."""
        flt = build_filter(self.namespace())
        assert flt.date_preset == "all"
        assert flt.search == ""

    def test_fy_takes_precedence(self):
        """Test that the financial year wins over other date options."""
        flt = build_filter(self.namespace(fy="2024-2025", month="2024-04"))
        assert flt.date_preset == "fy"

    def test_custom_range(self):
        """Test that --from alone selects a custom range."""
        flt = build_filter(self.namespace(date_from="2024-04-01"))
        assert flt.date_preset == "custom"
        assert flt.date_to == ""

    def test_invalid_quarter(self):
        """Test that invalid values raise ValueError."""
        with pytest.raises(ValueError):
            build_filter(self.namespace(quarter="2024-Q9"))


class TestCLIMain:
    """Tests for main() function."""

    def test_main_requires_config(self):
        """Test that --config is mandatory."""
        with (
            patch("sys.argv", ["cli.py"]),
            patch("sbiparsing.cli.logger") as mock_logger,
            pytest.raises(SystemExit) as exc_info,
        ):
            main()

        assert exc_info.value.code == 1
        mock_logger.error.assert_called()

    def test_main_requires_store_file(self):
        """Test that the config must name a store file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / "config.json"
            config_file.write_text("{}", encoding="utf-8")

            with (
                patch("sys.argv", ["cli.py", "--config", str(config_file)]),
                patch("sbiparsing.cli.logger"),
                pytest.raises(SystemExit),
            ):
                main()

    def test_main_invalid_output_format(self):
        """Test that an unknown output format is rejected."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = write_config(tmpdir, output_format="excel")

            with (
                patch("sys.argv", ["cli.py", "--config", str(config_file)]),
                patch("sbiparsing.cli.logger"),
                pytest.raises(SystemExit),
            ):
                main()

    def test_main_add_category(self):
        """Test adding a category via CLI."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = write_config(tmpdir)

            with (
                patch(
                    "sys.argv",
                    ["cli.py", "--config", str(config_file), "--add-category", "pets", "Pets"],
                ),
                patch("sbiparsing.cli.logger") as mock_logger,
            ):
                main()

            mock_logger.info.assert_called()
            statement_parser = StatementParser(Path(tmpdir) / "store.json")
            assert statement_parser.category_manager.get_category("pets").name == "Pets"

    def test_main_add_rule(self):
        """Test adding rules via CLI."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = write_config(tmpdir)

            with (
                patch(
                    "sys.argv",
                    [
                        "cli.py",
                        "--config",
                        str(config_file),
                        "--add-rule",
                        "SWIGGY,ZOMATO",
                        "food",
                        "Food Delivery",
                    ],
                ),
                patch("sbiparsing.cli.logger"),
            ):
                main()

            rules = StatementParser(Path(tmpdir) / "store.json").category_manager.list_rules()
            assert [r.keyword for r in rules] == ["SWIGGY", "ZOMATO"]

    def test_main_add_rule_with_invalid_category(self):
        """Test that adding a rule for an unknown category exits with an error."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = write_config(tmpdir)

            with (
                patch(
                    "sys.argv",
                    ["cli.py", "--config", str(config_file), "--add-rule", "ZOMATO", "nonexistent"],
                ),
                patch("sbiparsing.cli.logger") as mock_logger,
                pytest.raises(SystemExit) as exc_info,
            ):
                main()

            assert exc_info.value.code == 1
            assert "nonexistent" in str(mock_logger.error.call_args.args[0])
            rules = StatementParser(Path(tmpdir) / "store.json").category_manager.list_rules()
            assert rules == []

    def test_main_export_failure(self):
        """Test that an unwritable export target exits with an error."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = write_config(tmpdir)
            blocker = Path(tmpdir) / "blocker"
            blocker.write_text("", encoding="utf-8")

            with (
                patch(
                    "sys.argv",
                    ["cli.py", "--config", str(config_file), "--export", str(blocker / "backup.json")],
                ),
                patch("sbiparsing.cli.logger") as mock_logger,
                pytest.raises(SystemExit) as exc_info,
            ):
                main()

            assert exc_info.value.code == 1
            mock_logger.error.assert_called()

    def test_main_set_output_format(self):
        """Test that --set-output-format persists the format in the config file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = write_config(tmpdir, output_format="summary")

            with (
                patch(
                    "sys.argv",
                    ["cli.py", "--config", str(config_file), "--set-output-format", "both"],
                ),
                patch("sbiparsing.cli.logger"),
            ):
                main()

            config = load_config(str(config_file))
            assert config["output_format"] == "both"
            assert config["store_file"] == str(Path(tmpdir) / "store.json")

    def test_main_add_rule_wrong_argument_count(self):
        """Test that --add-rule needs two or three arguments."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = write_config(tmpdir)

            with (
                patch(
                    "sys.argv",
                    ["cli.py", "--config", str(config_file), "--add-rule", "X"],
                ),
                patch("sbiparsing.cli.logger"),
                pytest.raises(SystemExit),
            ):
                main()

    def test_main_import_statement_table_output(self):
        """Test importing a statement and printing the table."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = write_config(tmpdir, output_format="table")
            tsv_file = Path(tmpdir) / "statement.tsv"
            tsv_file.write_text(STATEMENT, encoding="utf-8")

            with (
                patch("sys.argv", ["cli.py", "--config", str(config_file), str(tsv_file)]),
                patch("sbiparsing.cli.logger") as mock_logger,
            ):
                main()

            output = logged(mock_logger)
            assert "Imported 2 new transactions" in output
            assert "2024-04-01\tdebit\t-350.00\t\tSWIGGY" in output

    def test_main_import_statement_both_outputs(self):
        """Test that "both" prints table, separator and summary."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = write_config(tmpdir, output_format="both")
            tsv_file = Path(tmpdir) / "statement.tsv"
            tsv_file.write_text(STATEMENT, encoding="utf-8")

            with (
                patch(
                    "sys.argv",
                    ["cli.py", "--config", str(config_file), str(tsv_file), "--type", "credit"],
                ),
                patch("sbiparsing.cli.logger") as mock_logger,
            ):
                main()

            output = logged(mock_logger)
            assert "=" * 50 in output
            assert "=== Statement Summary ===" in output
            assert "SWIGGY" not in output
            assert "Total credits: ₹50,000" in output

    def test_main_invalid_statement(self):
        """Test that a file without transactions exits with an error."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = write_config(tmpdir)
            tsv_file = Path(tmpdir) / "statement.tsv"
            tsv_file.write_text("Header\n", encoding="utf-8")

            with (
                patch("sys.argv", ["cli.py", "--config", str(config_file), str(tsv_file)]),
                patch("sbiparsing.cli.logger") as mock_logger,
                pytest.raises(SystemExit) as exc_info,
            ):
                main()

            assert exc_info.value.code == 1
            mock_logger.error.assert_called()

    def test_main_invalid_filter(self):
        """Test that an invalid filter value exits with an error."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = write_config(tmpdir)

            with (
                patch(
                    "sys.argv",
                    ["cli.py", "--config", str(config_file), "--from", "April"],
                ),
                patch("sbiparsing.cli.logger"),
                pytest.raises(SystemExit),
            ):
                main()

    def test_main_apply_rules(self):
        """Test applying rules to stored transactions."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = write_config(tmpdir)
            tsv_file = Path(tmpdir) / "statement.tsv"
            tsv_file.write_text(STATEMENT, encoding="utf-8")
            statement_parser = StatementParser(Path(tmpdir) / "store.json")
            statement_parser.import_file(str(tsv_file))
            statement_parser.category_manager.add_rules("SALARY", "income", "Salary")

            with (
                patch("sys.argv", ["cli.py", "--config", str(config_file), "--apply-rules"]),
                patch("sbiparsing.cli.logger") as mock_logger,
            ):
                main()

            assert "Labelled 1 transactions" in logged(mock_logger)

    def test_main_export_and_clear(self):
        """Test exporting and clearing the store."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = write_config(tmpdir)
            tsv_file = Path(tmpdir) / "statement.tsv"
            tsv_file.write_text(STATEMENT, encoding="utf-8")
            StatementParser(Path(tmpdir) / "store.json").import_file(str(tsv_file))
            backup = Path(tmpdir) / "backup.json"

            with (
                patch("sys.argv", ["cli.py", "--config", str(config_file), "--export", str(backup)]),
                patch("sbiparsing.cli.logger"),
            ):
                main()

            with (
                patch("sys.argv", ["cli.py", "--config", str(config_file), "--clear"]),
                patch("sbiparsing.cli.logger"),
            ):
                main()

            assert StatementParser(Path(tmpdir) / "store.json").get_transactions() == []

            with (
                patch("sys.argv", ["cli.py", "--config", str(config_file), "--import", str(backup)]),
                patch("sbiparsing.cli.logger"),
            ):
                main()

            assert len(StatementParser(Path(tmpdir) / "store.json").get_transactions()) == 2

    def test_main_suggest_without_api_key(self):
        """Test that --suggest needs OPENROUTER_API_KEY."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = write_config(tmpdir)

            with (
                patch("sys.argv", ["cli.py", "--config", str(config_file), "--suggest"]),
                patch.dict("os.environ", {}, clear=True),
                patch("sbiparsing.cli.logger") as mock_logger,
                pytest.raises(SystemExit),
            ):
                main()

            mock_logger.error.assert_called()

    def test_main_suggest(self):
        """Test that --suggest logs the suggestions."""
        with tempfile.TemporaryDirectory() as tmpdir:
            system_prompt_file = Path(tmpdir) / "system.txt"
            user_prompt_file = Path(tmpdir) / "user.txt"
            system_prompt_file.write_text("system", encoding="utf-8")
            user_prompt_file.write_text("{uncategorized_transactions}", encoding="utf-8")
            config_file = write_config(
                tmpdir,
                system_prompt_file=str(system_prompt_file),
                user_prompt_file=str(user_prompt_file),
            )
            tsv_file = Path(tmpdir) / "statement.tsv"
            tsv_file.write_text(STATEMENT, encoding="utf-8")
            StatementParser(Path(tmpdir) / "store.json").import_file(str(tsv_file))

            with (
                patch("sys.argv", ["cli.py", "--config", str(config_file), "--suggest"]),
                patch.dict("os.environ", {"OPENROUTER_API_KEY": "test-key"}),
                patch("sbiparsing.cli.call_openrouter", return_value="SWIGGY -> food") as mock_call,
                patch("sbiparsing.cli.logger") as mock_logger,
            ):
                main()

            assert mock_call.call_args.args[0] == "test-key"
            assert len(mock_call.call_args.args[3]) == 2
            assert "SWIGGY -> food" in logged(mock_logger)
