"""Tests for the command line interface."""

import json
from unittest.mock import patch

from click.testing import CliRunner

from quote_pipeline.cli import main


class TestGenerate:
    """Test cases for the generate command."""

    def test_json_output(self):
        result = CliRunner().invoke(
            main, ["generate", "--name", "MacroHard", "--count", "3", "--seed", "1", "--json"]
        )

        assert result.exit_code == 0
        quotes = [json.loads(line) for line in result.output.splitlines()]
        assert len(quotes) == 3
        assert {q["name"] for q in quotes} == {"MacroHard"}
        assert all(5000 <= q["shares"] < 10000 for q in quotes)

    def test_seed_is_reproducible(self):
        args = ["generate", "-n", "Divinator", "-c", "5", "--seed", "9", "--json"]
        assert CliRunner().invoke(main, args).output == CliRunner().invoke(main, args).output

    def test_table_output(self):
        result = CliRunner().invoke(main, ["generate", "--name", "Black Coat", "--count", "2"])

        assert result.exit_code == 0
        assert "Black Coat" in result.output

    def test_name_required(self):
        result = CliRunner().invoke(main, ["generate"])
        assert result.exit_code == 2

    def test_invalid_price(self):
        result = CliRunner().invoke(main, ["generate", "--name", "X", "--price=-1"])
        assert result.exit_code == 2


class TestServe:
    """Test cases for the serve command."""

    @patch("quote_pipeline.cli.setup_logging")
    @patch("uvicorn.run")
    def test_runs_uvicorn_with_configured_port(self, mock_run, mock_logging, tmp_path):
        path = tmp_path / "pipeline.yaml"
        path.write_text("http_port: 9100\ngenerators:\n  - name: MacroHard\n")

        result = CliRunner().invoke(main, ["serve", "--config", str(path), "-l", "debug"])

        assert result.exit_code == 0
        mock_logging.assert_called_once_with("debug")
        _, kwargs = mock_run.call_args
        assert kwargs["port"] == 9100
        assert kwargs["host"] == "0.0.0.0"

    @patch("quote_pipeline.cli.setup_logging")
    @patch("uvicorn.run")
    def test_invalid_configuration(self, mock_run, mock_logging, tmp_path):
        path = tmp_path / "pipeline.yaml"
        path.write_text("generators:\n  - price: 10\n")

        result = CliRunner().invoke(main, ["serve", "--config", str(path)])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
        mock_run.assert_not_called()
