"""
Test suite for configuration loading and typed accessors.
"""

from pathlib import Path

import pytest

import revo
from revo.evolutionary.selection import SelectionStrategy
from revo.problems import PROBLEMS
from revo.utils.config import CONFIG_DIR, Config, ConfigError, load_config, resolve_config_path

BUNDLED = ["default", "basic", "salesman", "social_distance", "packer", "free_packer", "funtree"]


class TestTypedAccessors:
    """Test typed getters on an in-memory Config."""

    def test_int(self):
        """Integers are returned as-is, missing keys give the default."""
        config = Config.from_string('{"pop_width": 3, "neg": -2}')
        assert config.get_int("pop_width") == 3
        assert config.get_int("neg") == -2
        assert config.get_int("missing") is None
        assert config.get_int("missing", 7) == 7

    def test_int_rejects_float_and_bool(self):
        """Floats and booleans are not integers."""
        config = Config.from_string('{"a": 1.5, "b": true}')
        with pytest.raises(ConfigError, match="'a'"):
            config.get_int("a")
        with pytest.raises(ConfigError, match="'b'"):
            config.get_int("b")

    def test_uint(self):
        """Negative values are rejected by the unsigned getter."""
        config = Config.from_string('{"ok": 4, "neg": -1}')
        assert config.get_uint("ok") == 4
        with pytest.raises(ConfigError) as exc_info:
            config.get_uint("neg")
        assert exc_info.value.key == "neg"

    def test_float(self):
        """Integers are accepted as floats."""
        config = Config.from_string('{"mut_prob": 0.5, "mut_amount": 2}')
        assert config.get_float("mut_prob") == 0.5
        assert config.get_float("mut_amount") == 2.0
        assert isinstance(config.get_float("mut_amount"), float)
        assert config.get_float("missing", 0.1) == 0.1

    def test_float_rejects_string(self):
        """Strings are not numbers."""
        config = Config.from_string('{"mut_prob": "0.5"}')
        with pytest.raises(ConfigError):
            config.get_float("mut_prob")

    def test_bool(self):
        """Only real booleans are accepted."""
        config = Config.from_string('{"visualise": true, "bad": 1}')
        assert config.get_bool("visualise") is True
        assert config.get_bool("missing", False) is False
        with pytest.raises(ConfigError):
            config.get_bool("bad")

    def test_str(self):
        """Strings are returned, other types rejected."""
        config = Config.from_string('{"problem": "salesman", "n": 3}')
        assert config.get_str("problem") == "salesman"
        with pytest.raises(ConfigError):
            config.get_str("n")

    def test_null_means_missing(self):
        """An explicit null falls back to the default."""
        config = Config.from_string("seed: null\nworkers: ~")
        assert config.get_uint("seed") is None
        assert config.get_int("workers", 1) == 1

    def test_enum(self):
        """Enum values are parsed through from_string."""
        config = Config.from_string('{"selection_strategy": "Roulette", "bad": "rank"}')
        assert config.get_enum("selection_strategy", SelectionStrategy) is SelectionStrategy.ROULETTE
        assert config.get_enum("missing", SelectionStrategy, SelectionStrategy.TOURNAMENT) is SelectionStrategy.TOURNAMENT
        with pytest.raises(ConfigError) as exc_info:
            config.get_enum("bad", SelectionStrategy)
        assert exc_info.value.key == "bad"

    def test_config_error_is_value_error(self):
        """ConfigError can be caught as ValueError."""
        assert issubclass(ConfigError, ValueError)


class TestConfigContainer:
    """Test mapping helpers."""

    def test_root_must_be_mapping(self):
        """A YAML list is not a valid config."""
        with pytest.raises(ConfigError):
            Config.from_string("- 1\n- 2")

    def test_empty_document(self):
        """An empty document is an empty config."""
        assert Config.from_string("").to_dict() == {}

    def test_section(self):
        """Nested mappings are exposed as their own Config."""
        config = Config.from_string("logging:\n  level: DEBUG")
        assert config.section("logging").get_str("level") == "DEBUG"
        assert config.section("missing").to_dict() == {}

    def test_with_overrides_ignores_none(self):
        """None overrides leave the original value in place."""
        config = Config.from_string("generations: 10\nseed: 1")
        overridden = config.with_overrides(generations=5, seed=None)
        assert overridden.get_int("generations") == 5
        assert overridden.get_int("seed") == 1
        assert config.get_int("generations") == 10

    def test_contains_and_iter(self):
        """Config behaves like a read-only mapping."""
        config = Config({"a": 1, "b": 2})
        assert "a" in config
        assert sorted(config) == ["a", "b"]


class TestLoadConfig:
    """Test YAML file loading."""

    def test_load_by_path(self, tmp_path):
        """A file path is loaded directly."""
        path = tmp_path / "run.yaml"
        path.write_text("pop_width: 4\nproblem: basic\n")
        config = load_config(path)
        assert config.get_int("pop_width") == 4

    def test_load_json(self, tmp_path):
        """JSON documents load as YAML."""
        path = tmp_path / "run.json"
        path.write_text('{"pop_width": 3, "selection_strategy": "tournament"}')
        assert load_config(path).get_int("pop_width") == 3

    def test_load_by_name(self, tmp_path):
        """Names resolve to <name>_config.yaml in the config directory."""
        (tmp_path / "demo_config.yaml").write_text("generations: 12\n")
        assert resolve_config_path("demo", config_dir=tmp_path) == tmp_path / "demo_config.yaml"
        assert load_config("demo", config_dir=tmp_path).get_int("generations") == 12

    def test_defaults_merged(self, tmp_path):
        """A defaults key deep-merges the default config under the file."""
        (tmp_path / "default_config.yaml").write_text(
            "generations: 100\nmut_prob: 0.1\nlogging:\n  level: INFO\n  directory: logs\n"
        )
        (tmp_path / "demo_config.yaml").write_text(
            "defaults: true\ngenerations: 7\nlogging:\n  level: DEBUG\n"
        )
        config = load_config("demo", config_dir=tmp_path)
        assert "defaults" not in config
        assert config.get_int("generations") == 7
        assert config.get_float("mut_prob") == 0.1
        assert config.section("logging").to_dict() == {"level": "DEBUG", "directory": "logs"}

    def test_missing_file(self, tmp_path):
        """Unknown names raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config("does_not_exist", config_dir=tmp_path)

    @pytest.mark.parametrize("name", BUNDLED)
    def test_bundled_configs(self, name):
        """Every bundled configuration loads and names a registered problem."""
        config = load_config(name)
        assert config.get_str("problem") in PROBLEMS
        assert config.get_uint("pop_width") >= 1

    @pytest.mark.parametrize("name", BUNDLED)
    def test_bundled_configs_found_from_any_directory(self, name, tmp_path, monkeypatch):
        """Named configs ship inside the package and do not depend on the working directory."""
        monkeypatch.chdir(tmp_path)
        assert resolve_config_path(name).parent == CONFIG_DIR
        assert load_config(name).get_str("problem") in PROBLEMS

    def test_config_dir_inside_package(self):
        """The bundled config directory lives under the installed package."""
        assert CONFIG_DIR.parent == Path(revo.__file__).parent
        assert (CONFIG_DIR / "default_config.yaml").is_file()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
