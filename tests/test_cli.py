"""Tests for the CLI module."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from lane_broker.cli import echo_status, main, run_scenario
from lane_broker.config import Config


@pytest.fixture
def runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def default_config():
    """Patch config loading to return defaults and skip logging setup."""
    config = Config()
    with (
        patch("lane_broker.cli.load_config", return_value=config),
        patch("lane_broker.cli.configure_logging") as mock_logging,
    ):
        yield config, mock_logging


class TestEchoStatus:
    def test_echo_info(self):
        with patch("lane_broker.cli.click.echo") as mock_echo:
            echo_status("Test message", "info")
            mock_echo.assert_called_once()
            call_arg = mock_echo.call_args[0][0]
            assert "Test message" in call_arg

    def test_echo_error(self):
        with patch("lane_broker.cli.click.echo") as mock_echo:
            echo_status("Error!", "error")
            mock_echo.assert_called_once()

    def test_echo_unknown_level(self):
        with patch("lane_broker.cli.click.echo") as mock_echo:
            echo_status("Unknown level", "unknown")
            assert mock_echo.call_args[0][0] == "[*] Unknown level"


class TestRunScenario:
    def test_prints_table_and_summary(self, capsys):
        result = run_scenario(Config(job_count=2))
        out = capsys.readouterr().out
        assert "Exec Time" in out
        assert "job-1" in out
        assert "2 finished" in out
        assert result.ok

    def test_quiet_skips_table(self, capsys):
        run_scenario(Config(job_count=2), quiet=True)
        out = capsys.readouterr().out
        assert "Exec Time" not in out
        assert "2 finished" in out

    def test_reports_stuck_jobs(self, capsys):
        result = run_scenario(Config(job_count=2, job_lanes=5))
        out = capsys.readouterr().out
        assert "job-0 can never be admitted" in out
        assert "2 stuck" in out
        assert not result.ok


class TestMainCLI:
    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "admission control" in result.output

    def test_default_scenario(self, runner, default_config):
        result = runner.invoke(main, ["--quiet"])
        assert result.exit_code == 0
        assert "50 finished" in result.output
        assert "peak 1 concurrent" in result.output

    def test_overrides(self, runner, default_config):
        config, _ = default_config
        with patch("lane_broker.cli.run_scenario") as mock_run:
            mock_run.return_value.ok = True
            result = runner.invoke(
                main,
                [
                    "--jobs", "10",
                    "--job-lanes", "2",
                    "--lanes", "8",
                    "--nodes", "3",
                    "--policy", "first-fit",
                ],
            )
            assert result.exit_code == 0
            call_config = mock_run.call_args[0][0]
            assert call_config.job_count == 10
            assert call_config.job_lanes == 2
            assert call_config.node_lanes == 8
            assert call_config.node_count == 3
            assert call_config.policy == "first-fit"

    def test_mixed_widths_run_concurrently(self, runner, default_config):
        result = runner.invoke(main, ["--quiet", "--jobs", "4", "--job-lanes", "1"])
        assert result.exit_code == 0
        assert "peak 4 concurrent" in result.output

    def test_stuck_jobs_exit_code(self, runner, default_config):
        result = runner.invoke(main, ["--quiet", "--jobs", "3", "--job-lanes", "5"])
        assert result.exit_code == 1
        assert "3 stuck" in result.output

    def test_invalid_count_is_usage_error(self, runner, default_config):
        result = runner.invoke(main, ["--nodes", "0"])
        assert result.exit_code == 2
        assert "node_count" in result.output

    def test_unknown_policy_rejected(self, runner, default_config):
        result = runner.invoke(main, ["--policy", "random-fit"])
        assert result.exit_code == 2

    def test_verbose_sets_debug_logging(self, runner, default_config):
        _, mock_logging = default_config
        runner.invoke(main, ["--quiet", "--verbose", "--jobs", "1"])
        mock_logging.assert_called_once()
        assert mock_logging.call_args[0][0].log_level == "DEBUG"

    def test_config_file_option(self, runner):
        with runner.isolated_filesystem():
            with open("scenario.yaml", "w") as f:
                f.write("workload:\n  jobs: 5\n  lanes: 2\n")

            with (
                patch("lane_broker.cli.configure_logging"),
                patch("lane_broker.cli.run_scenario") as mock_run,
            ):
                mock_run.return_value.ok = True
                result = runner.invoke(main, ["--config", "scenario.yaml"])
                assert result.exit_code == 0
                call_config = mock_run.call_args[0][0]
                assert call_config.job_count == 5
                assert call_config.job_lanes == 2

    def test_missing_config_file(self, runner):
        result = runner.invoke(main, ["--config", "does-not-exist.yaml"])
        assert result.exit_code == 2

    @pytest.mark.parametrize(
        "yaml_text, field",
        [
            ("node:\n  memory: -1\n", "node_memory"),
            ("workload:\n  storage: -5\n", "job_storage"),
            ("logging:\n  level: LOUD\n", "log_level"),
            ("node:\n  lanes: 4.0\n", "node_lanes"),
            ("workload:\n  jobs: 2.5\n", "job_count"),
        ],
    )
    def test_bad_config_values_are_usage_errors(self, runner, yaml_text, field):
        with runner.isolated_filesystem():
            with open("scenario.yaml", "w") as f:
                f.write(yaml_text)

            with patch("lane_broker.cli.run_scenario") as mock_run:
                result = runner.invoke(main, ["--config", "scenario.yaml"])
                assert result.exit_code == 2
                assert field in result.output
                mock_run.assert_not_called()
