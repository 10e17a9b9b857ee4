"""Tests for configuration loading and persistence."""

import pytest
import yaml

from depocleaner.config import (
    DEFAULT_IGNORE_PATHS,
    ScannerConfig,
    default_config_path,
    load_config,
    coerce_value,
    reset_config,
    save_config,
    set_config_value,
)
from depocleaner.errors import ConfigError


class TestDefaults:
    def test_default_values(self):
        config = ScannerConfig()
        assert config.workers == 4
        assert config.max_depth == 10
        assert config.ignore_paths == DEFAULT_IGNORE_PATHS

    def test_paths_expand_home(self, isolated_home):
        config = ScannerConfig()
        assert config.cache_file == isolated_home / ".depocleaner" / "cache.json"
        assert config.log_file == isolated_home / ".depocleaner" / "depocleaner.log"

    def test_default_config_path(self, isolated_home):
        assert default_config_path() == isolated_home / ".depocleaner" / "config.yaml"

    def test_invalid_workers(self):
        with pytest.raises(ValueError):
            ScannerConfig(workers=0)


class TestLoadConfig:
    def test_missing_default_file_gives_defaults(self):
        assert load_config() == ScannerConfig()

    def test_explicit_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "nope.yaml")

    def test_reads_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("workers: 8\nmax_depth: 3\n")

        config = load_config(path)

        assert config.workers == 8
        assert config.max_depth == 3

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == ScannerConfig()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("workers: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("workers: many\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_environment_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("workers: 8\n")
        monkeypatch.setenv("DEPOCLEANER_WORKERS", "2")
        monkeypatch.setenv("DEPOCLEANER_IGNORE_PATHS", "/a:/b")

        config = load_config(path)

        assert config.workers == 2
        assert config.ignore_paths == ["/a", "/b"]


class TestPersistence:
    def test_save_and_load(self, tmp_path):
        path = tmp_path / "dir" / "config.yaml"
        save_config(ScannerConfig(workers=6), path)

        assert yaml.safe_load(path.read_text())["workers"] == 6
        assert load_config(path).workers == 6

    def test_set_value(self, tmp_path):
        path = tmp_path / "config.yaml"

        config = set_config_value("max_depth", "7", path)

        assert config.max_depth == 7
        assert load_config(path).max_depth == 7

    def test_set_list_value(self, tmp_path):
        path = tmp_path / "config.yaml"
        config = set_config_value("ignore_paths", "/x,/y", path)
        assert config.ignore_paths == ["/x", "/y"]

    def test_set_unknown_key(self, tmp_path):
        with pytest.raises(ConfigError):
            set_config_value("colour", "blue", tmp_path / "config.yaml")

    def test_set_invalid_value(self, tmp_path):
        with pytest.raises(ConfigError):
            set_config_value("workers", "0", tmp_path / "config.yaml")

    def test_reset(self, tmp_path):
        path = tmp_path / "config.yaml"
        set_config_value("workers", "9", path)

        reset_config(path)

        assert load_config(path) == ScannerConfig()


class TestCoerceValue:
    def test_scalars_stay_strings(self):
        assert coerce_value("workers", "12") == "12"
        assert coerce_value("scan_path", "~/code") == "~/code"

    def test_list_split(self):
        assert coerce_value("ignore_paths", "/a,,/b") == ["/a", "/b"]
        assert coerce_value("ignore_paths", "/a:/b", ":") == ["/a", "/b"]


class TestFieldTypes:
    def test_set_numeric_string_key(self, tmp_path):
        path = tmp_path / "config.yaml"

        config = set_config_value("scan_path", "2024", path)

        assert config.scan_path == "2024"
        assert load_config(path).scan_path == "2024"

    def test_set_boolean_looking_string_key(self, tmp_path):
        config = set_config_value("log_path", "true", tmp_path / "config.yaml")
        assert config.log_path == "true"

    def test_set_int_key_still_converted(self, tmp_path):
        config = set_config_value("workers", "12", tmp_path / "config.yaml")
        assert config.workers == 12

    def test_environment_numeric_string_key(self, monkeypatch):
        monkeypatch.setenv("DEPOCLEANER_SCAN_PATH", "2024")
        monkeypatch.setenv("DEPOCLEANER_CACHE_PATH", "true")
        monkeypatch.setenv("DEPOCLEANER_MAX_DEPTH", "3")

        config = load_config()

        assert config.scan_path == "2024"
        assert config.cache_path == "true"
        assert config.max_depth == 3

    def test_environment_invalid_int(self, monkeypatch):
        monkeypatch.setenv("DEPOCLEANER_WORKERS", "lots")
        with pytest.raises(ConfigError):
            load_config()


class TestSymlinkSetting:
    def test_follow_symlinks_is_not_a_setting(self, tmp_path):
        with pytest.raises(ConfigError, match="unknown configuration key"):
            set_config_value("follow_symlinks", "true", tmp_path / "config.yaml")

    def test_legacy_key_in_file_is_ignored(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("follow_symlinks: true\nworkers: 3\n")

        config = load_config(path)

        assert config.workers == 3
        assert not hasattr(config, "follow_symlinks")
