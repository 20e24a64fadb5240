"""
Tests for configuration loading and the logging setup.

Covers:
- deep_merge
- load_config (YAML, environment, CLI precedence, validation)
- AppConfig.cache_root
- HumanFormatter / HumanLogHandler
- configure_logging console thresholds
"""

import io
import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from repo_explorer.config.loader import (
    apply_cli_overrides,
    deep_merge,
    load_config,
    load_env_overrides,
    load_yaml_config,
)
from repo_explorer.config.schema import AppConfig, LoggingConfig
from repo_explorer.logging import HUMAN, HumanLog, HumanLogHandler, configure_logging
from repo_explorer.logging.human import HumanFormatter
from repo_explorer.logging.setup import _console_level

CONFIG_YAML = """\
repo_base_dir: {base}
repositories:
  web:
    app:
      url: https://example.com/app.git
      description: Demo app
search:
  max_results: 20
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML.format(base=tmp_path / "repos"))
    return path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("REPO_EXPLORER_BASE_DIR", "REPO_EXPLORER_CACHE_DIR", "REPO_EXPLORER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


# ── Tests: merge ──────────────────────────────────────────────────────────


class TestDeepMerge:
    def test_nested_override(self) -> None:
        result = deep_merge({"a": {"b": 1, "c": 2}, "d": 3}, {"a": {"b": 99}, "e": 4})
        assert result == {"a": {"b": 99, "c": 2}, "d": 3, "e": 4}

    def test_inputs_are_not_mutated(self) -> None:
        base = {"a": {"b": 1}}
        deep_merge(base, {"a": {"b": 2}})
        assert base == {"a": {"b": 1}}

    def test_non_dict_replaces_dict(self) -> None:
        assert deep_merge({"a": {"b": 1}}, {"a": None}) == {"a": None}


# ── Tests: loading ────────────────────────────────────────────────────────


class TestLoadConfig:
    def test_defaults(self) -> None:
        config = load_config(use_default_path=False)

        assert config.repositories == {}
        assert config.search.max_results == 50
        assert config.search.context_lines == 3
        assert config.search.rebuild_mode == "background"
        assert config.index.max_file_size == 1024 * 1024
        assert config.logging.level == "human"

    def test_yaml_file(self, config_file: Path, tmp_path: Path) -> None:
        config = load_config(config_file)

        assert config.repo_base_dir == tmp_path / "repos"
        assert config.repositories["web"]["app"].url == "https://example.com/app.git"
        assert config.repositories["web"]["app"].description == "Demo app"
        assert config.search.max_results == 20
        assert config.search.context_lines == 3

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_empty_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_config(path) == {}

    def test_unknown_key_is_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("search:\n  max_result: 10\n")

        with pytest.raises(ValidationError):
            load_config(path)

    def test_out_of_range_value_is_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("search:\n  context_lines: 50\n")

        with pytest.raises(ValidationError):
            load_config(path)

    def test_env_overrides_yaml(
        self, config_file: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("REPO_EXPLORER_BASE_DIR", str(tmp_path / "env-repos"))
        monkeypatch.setenv("REPO_EXPLORER_LOG_LEVEL", "DEBUG")

        config = load_config(config_file)

        assert config.repo_base_dir == tmp_path / "env-repos"
        assert config.logging.level == "debug"
        assert "web" in config.repositories

    def test_cli_overrides_env(
        self, config_file: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("REPO_EXPLORER_BASE_DIR", str(tmp_path / "env-repos"))

        config = load_config(
            config_file,
            cli_args={"base_dir": str(tmp_path / "cli-repos"), "verbose": 2},
        )

        assert config.repo_base_dir == tmp_path / "cli-repos"
        assert config.logging.verbose == 2

    def test_cli_none_values_are_ignored(self) -> None:
        merged = apply_cli_overrides({"logging": {"verbose": 1}}, {"verbose": None, "base_dir": None})
        assert merged == {"logging": {"verbose": 1}}

    def test_env_overrides_shape(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REPO_EXPLORER_CACHE_DIR", "/tmp/cache")
        assert load_env_overrides() == {"cache_dir": "/tmp/cache"}


class TestCacheRoot:
    def test_defaults_under_base_dir(self, tmp_path: Path) -> None:
        config = AppConfig(repo_base_dir=tmp_path)
        assert config.cache_root == tmp_path / ".cache"

    def test_explicit_cache_dir(self, tmp_path: Path) -> None:
        config = AppConfig(repo_base_dir=tmp_path, cache_dir=tmp_path / "elsewhere")
        assert config.cache_root == tmp_path / "elsewhere"

    def test_home_is_expanded(self) -> None:
        config = AppConfig(repo_base_dir="~/refs")
        assert config.repo_base_dir == Path.home() / "refs"


# ── Tests: logging ────────────────────────────────────────────────────────


class TestHumanFormatter:
    def setup_method(self) -> None:
        self.fmt = HumanFormatter()

    def test_build_complete(self) -> None:
        line = self.fmt.format_event(
            "cache.build.complete", category="web", repo="app", files=12, seconds=0.4
        )
        assert line == "✓ Cache ready for web/app (12 files, 0.4s)"

    def test_fallback(self) -> None:
        line = self.fmt.format_event("search.fallback", category="web", repo="app")
        assert "web/app" in line

    def test_unknown_event(self) -> None:
        assert self.fmt.format_event("something.else") is None


class TestHumanLogHandler:
    def test_emits_human_events_only(self) -> None:
        stream = io.StringIO()
        logger = logging.getLogger("repo_explorer.test_human")
        logger.propagate = False
        logger.setLevel(logging.DEBUG)
        handler = HumanLogHandler(stream=stream)
        logger.addHandler(handler)
        try:
            hlog = HumanLog(logger)
            hlog.rebuild_failed("web", "app", "boom")
            logger.info("ignored")
        finally:
            logger.removeHandler(handler)

        assert stream.getvalue() == "✗ Cache rebuild failed for web/app: boom\n"

    def test_level_is_registered(self) -> None:
        assert logging.getLevelName(HUMAN) == "HUMAN"


class TestConsoleLevel:
    @pytest.mark.parametrize(
        "verbose,expected",
        [(0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (5, logging.DEBUG)],
    )
    def test_verbose_count(self, verbose: int, expected: int) -> None:
        assert _console_level(LoggingConfig(verbose=verbose)) == expected

    def test_error_level_without_verbose(self) -> None:
        assert _console_level(LoggingConfig(level="error")) == logging.ERROR

    def test_debug_level(self) -> None:
        assert _console_level(LoggingConfig(level="debug")) == logging.DEBUG


class TestConfigureLogging:
    def test_quiet_installs_no_console_handlers(self) -> None:
        configure_logging(LoggingConfig(), quiet=True)
        assert logging.root.handlers == []

    def test_default_installs_human_and_console(self) -> None:
        configure_logging(LoggingConfig())

        assert any(isinstance(h, HumanLogHandler) for h in logging.root.handlers)
        assert len(logging.root.handlers) == 2

    def test_log_file_receives_json(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "explorer.jsonl"
        configure_logging(LoggingConfig(file=log_file), quiet=True)

        import structlog

        structlog.get_logger().info("test.event", answer=42)
        for handler in logging.root.handlers:
            handler.flush()

        content = log_file.read_text()
        assert '"event": "test.event"' in content
        assert '"answer": 42' in content
