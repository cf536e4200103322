"""
Smoke tests for the revo command-line runner.
"""

import json

import pytest

from revo.main import main, parse_arguments, run_revo
from revo.utils.logging import setup_logging


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    setup_logging(log_to_file=False, log_to_console=False)


def _write_config(tmp_path, text):
    path = tmp_path / "run_config.yaml"
    path.write_text(text)
    return path


class TestParseArguments:
    """Test command-line parsing."""

    def test_defaults(self):
        """Overrides default to None so the config file decides."""
        args = parse_arguments([])
        assert args.config == "default"
        assert args.generations is None
        assert args.seed is None
        assert args.visualise is None

    def test_visualisation_flags(self):
        """--visualise and --no-visualization set the same destination."""
        assert parse_arguments(["--visualise"]).visualise is True
        assert parse_arguments(["--no-visualization"]).visualise is False

    def test_visualisation_flags_exclusive(self):
        """The two visualisation flags cannot be combined."""
        with pytest.raises(SystemExit):
            parse_arguments(["--visualise", "--no-visualization"])


class TestRun:
    """End-to-end runs in a temporary directory."""

    def test_basic_run(self, tmp_path):
        """A short basic run writes logs, images and the summary."""
        config_path = _write_config(
            tmp_path, "problem: basic\npop_width: 4\npop_height: 3\nmut_prob: 0.5\n"
        )
        out = tmp_path / "out"

        with pytest.raises(SystemExit) as exc_info:
            main([
                "--config", str(config_path), "--output-dir", str(out),
                "--generations", "3", "--seed", "1", "--workers", "1", "--visualise",
            ])
        assert exc_info.value.code == 0

        summary = json.loads((out / "metrics" / "evolution_summary.json").read_text())
        assert summary["problem"] == "basic"
        assert summary["final_statistics"]["generation"] == 3
        assert summary["population"]["seed"] == 1

        assert len((out / "logs" / "generations.jsonl").read_text().splitlines()) == 3
        assert (out / "logs" / "records.jsonl").exists()
        assert (out / "logs" / "revo.log").exists()
        for generation in range(3):
            assert (out / "populations" / f"pop_{generation}.png").exists()
        assert (out / "visualizations" / "fitness_vs_generation.png").exists()

    def test_salesman_draws_best(self, tmp_path):
        """Problems with a draw method get their records drawn."""
        config_path = _write_config(
            tmp_path,
            "problem: salesman\npop_width: 3\npop_height: 3\nn_cities: 8\n"
            "screen_width: 100\nscreen_height: 100\ninit_type: noise\n",
        )
        out = tmp_path / "out"
        args = parse_arguments([
            "--config", str(config_path), "--output-dir", str(out),
            "--generations", "2", "--seed", "3", "--workers", "2",
        ])

        summary = run_revo(args)

        assert summary is not None
        assert (out / "best" / "best_0.png").exists()
        assert not list((out / "populations").iterdir())

    def test_no_visualization(self, tmp_path):
        """--no-visualization suppresses every image."""
        config_path = _write_config(
            tmp_path, "problem: social_distance\npop_width: 2\npop_height: 2\nn_points: 5\n"
        )
        out = tmp_path / "out"
        args = parse_arguments([
            "--config", str(config_path), "--output-dir", str(out),
            "--generations", "2", "--workers", "1", "--no-visualization",
        ])

        assert run_revo(args) is not None
        assert not list((out / "best").iterdir())
        assert not (out / "visualizations" / "fitness_vs_generation.png").exists()

    def test_problem_override(self, tmp_path):
        """--problem replaces the configured problem."""
        config_path = _write_config(tmp_path, "problem: salesman\npop_width: 2\npop_height: 2\n")
        args = parse_arguments([
            "--config", str(config_path), "--output-dir", str(tmp_path / "out"),
            "--problem", "basic", "--generations", "1", "--workers", "1",
        ])
        assert run_revo(args)["problem"] == "basic"

    def test_missing_config_fails(self, tmp_path):
        """An unknown configuration exits with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(tmp_path / "nope.yaml")])
        assert exc_info.value.code == 1

    def test_invalid_config_value_fails(self, tmp_path):
        """Out-of-range engine parameters make the run fail."""
        config_path = _write_config(tmp_path, "problem: basic\npop_width: 0\n")
        args = parse_arguments([
            "--config", str(config_path), "--output-dir", str(tmp_path / "out"), "--generations", "1",
        ])
        assert run_revo(args) is None
        assert "pop_width" in (tmp_path / "out" / "logs" / "errors.log").read_text()

    def test_unknown_problem_fails(self, tmp_path):
        """Unknown problem names make the run fail."""
        config_path = _write_config(tmp_path, "problem: knapsack\n")
        args = parse_arguments([
            "--config", str(config_path), "--output-dir", str(tmp_path / "out"), "--generations", "1",
        ])
        assert run_revo(args) is None


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
