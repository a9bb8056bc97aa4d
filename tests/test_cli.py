"""
Unit tests for CLI commands.
"""

import json

import pytest

from traitml import compute_likelihood
from traitml.cli.main import app


class TestCLIHelp:
    """Test help messages and basic CLI functionality."""

    def test_main_help(self, cli_runner):
        result = cli_runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "loglik" in result.stdout
        assert "check" in result.stdout

    def test_loglik_help(self, cli_runner):
        result = cli_runner.invoke(app, ["loglik", "--help"])
        assert result.exit_code == 0
        assert "--root-prior" in result.stdout
        assert "--rates" in result.stdout


class TestCLILoglik:
    """Test 'loglik' command functionality."""

    def test_text_output(self, cli_runner, tree_file, traits_file):
        result = cli_runner.invoke(app, [
            "loglik",
            "-t", str(tree_file),
            "-d", str(traits_file),
            "--alpha", "1.0",
            "--beta", "2.0",
            "--quiet",
        ])

        assert result.exit_code == 0
        assert "MODEL: 2-state" in result.stdout
        assert "Log-likelihood:" in result.stdout

    def test_json_output(self, cli_runner, tree_file, traits_file, tmp_path):
        output_file = tmp_path / "result.json"

        result = cli_runner.invoke(app, [
            "loglik",
            "-t", str(tree_file),
            "-d", str(traits_file),
            "-r", "0.4,0.9",
            "--root-prior", "stationary",
            "--format", "json",
            "--output", str(output_file),
            "--quiet",
        ])

        assert result.exit_code == 0
        data = json.loads(output_file.read_text())
        expected = compute_likelihood(tree_file, traits_file, rates=[0.4, 0.9], root_prior="stationary")
        assert data["model_name"] == "ARD"
        assert data["lnL"] == pytest.approx(expected.lnL, rel=1e-12)

    def test_equal_rates_model(self, cli_runner, tree_file, traits_file):
        result = cli_runner.invoke(app, [
            "loglik",
            "-t", str(tree_file),
            "-d", str(traits_file),
            "-r", "0.5",
            "-m", "er",
            "--format", "json",
            "--quiet",
        ])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["model_name"] == "ER"

    def test_no_rate_model(self, cli_runner, tree_file, traits_file):
        result = cli_runner.invoke(app, ["loglik", "-t", str(tree_file), "-d", str(traits_file)])
        assert result.exit_code == 1
        assert "Likelihood evaluation failed" in result.output

    def test_unparseable_rates(self, cli_runner, tree_file, traits_file):
        result = cli_runner.invoke(app, [
            "loglik", "-t", str(tree_file), "-d", str(traits_file), "-r", "a,b",
        ])
        assert result.exit_code == 1
        assert "Could not parse rates" in result.output

    def test_malformed_tree(self, cli_runner, traits_file, tmp_path):
        bad_tree = tmp_path / "bad.nwk"
        bad_tree.write_text("((A:1,B:2);")
        result = cli_runner.invoke(app, [
            "loglik", "-t", str(bad_tree), "-d", str(traits_file), "--alpha", "1", "--beta", "1",
        ])
        assert result.exit_code == 1
        assert "Could not load tree" in result.output

    def test_missing_file(self, cli_runner, traits_file):
        result = cli_runner.invoke(app, [
            "loglik", "-t", "does_not_exist.nwk", "-d", str(traits_file), "--alpha", "1", "--beta", "1",
        ])
        assert result.exit_code != 0


class TestCLICheck:
    """Test 'check' command functionality."""

    def test_tree_only(self, cli_runner, tree_file):
        result = cli_runner.invoke(app, ["check", "-t", str(tree_file)])
        assert result.exit_code == 0
        assert "tips:         5" in result.stdout
        assert "nodes:        9" in result.stdout

    def test_tree_and_data(self, cli_runner, tree_file, traits_file):
        result = cli_runner.invoke(app, ["check", "-t", str(tree_file), "-d", str(traits_file)])
        assert result.exit_code == 0
        assert "states:       0, 1" in result.stdout
        assert "missing tips: 1" in result.stdout

    def test_data_missing_tip(self, cli_runner, tree_file, tmp_path):
        traits = tmp_path / "partial.csv"
        traits.write_text("taxon,presence\nA,1\nB,0\n")
        result = cli_runner.invoke(app, ["check", "-t", str(tree_file), "-d", str(traits)])
        assert result.exit_code == 1
        assert "does not match the tree" in result.output

    def test_deeply_nested_tree(self, cli_runner, tmp_path):
        n = 1500
        closes = "".join(f",t{i}:0.1):0.1" for i in range(1, n))
        deep = tmp_path / "caterpillar.nwk"
        deep.write_text("(" * (n - 1) + "t0:0.1" + closes + ";\n")

        result = cli_runner.invoke(app, ["check", "-t", str(deep)])
        assert result.exit_code == 0
        assert f"tips:         {n}" in result.stdout
