"""Tests for environment configuration interface."""

from pathlib import Path

import pytest

from common.env import Environment, env


class TestEnvironment:
    """Tests for Environment class."""

    def test_log_level_default(self, monkeypatch):
        """Test log_level returns default value."""
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert Environment.log_level() == "INFO"

    def test_log_level_is_upper_cased(self, monkeypatch):
        """Test log_level normalizes case."""
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert Environment.log_level() == "DEBUG"

    def test_cache_dir_default(self, monkeypatch):
        """Test cache_dir returns default value."""
        monkeypatch.delenv("EXEMPLAR_LINT_CACHE_DIR", raising=False)
        assert Environment.cache_dir() == Path(".exemplar_lint_cache")

    def test_cache_dir_from_env(self, monkeypatch):
        """Test cache_dir reads from environment."""
        monkeypatch.setenv("EXEMPLAR_LINT_CACHE_DIR", "/tmp/rules")
        assert str(Environment.cache_dir()) == "/tmp/rules"

    def test_workers_default(self, monkeypatch):
        """Test workers is unset by default."""
        monkeypatch.delenv("EXEMPLAR_LINT_WORKERS", raising=False)
        assert Environment.workers() is None

    def test_workers_from_env(self, monkeypatch):
        """Test workers reads from environment."""
        monkeypatch.setenv("EXEMPLAR_LINT_WORKERS", "3")
        assert Environment.workers() == 3

    def test_workers_at_least_one(self, monkeypatch):
        """Test workers never drops below one."""
        monkeypatch.setenv("EXEMPLAR_LINT_WORKERS", "0")
        assert Environment.workers() == 1

    def test_workers_invalid(self, monkeypatch):
        """Test a non-numeric worker count raises."""
        monkeypatch.setenv("EXEMPLAR_LINT_WORKERS", "many")
        with pytest.raises(ValueError):
            Environment.workers()

    def test_timeout_default(self, monkeypatch):
        """Test timeout is unset by default."""
        monkeypatch.delenv("EXEMPLAR_LINT_TIMEOUT", raising=False)
        assert Environment.timeout() is None

    def test_timeout_from_env(self, monkeypatch):
        """Test timeout reads from environment."""
        monkeypatch.setenv("EXEMPLAR_LINT_TIMEOUT", "2.5")
        assert Environment.timeout() == 2.5

    def test_min_severity_default(self, monkeypatch):
        """Test min_severity reports everything by default."""
        monkeypatch.delenv("EXEMPLAR_LINT_MIN_SEVERITY", raising=False)
        assert Environment.min_severity() == "info"

    def test_min_severity_from_env(self, monkeypatch):
        """Test min_severity reads from environment."""
        monkeypatch.setenv("EXEMPLAR_LINT_MIN_SEVERITY", "WARN")
        assert Environment.min_severity() == "warn"

    def test_disabled_matchers_default(self, monkeypatch):
        """Test no matcher is disabled by default."""
        monkeypatch.delenv("EXEMPLAR_LINT_DISABLED_MATCHERS", raising=False)
        assert Environment.disabled_matchers() == set()

    def test_disabled_matchers_from_env(self, monkeypatch):
        """Test disabled_matchers splits a comma separated list."""
        monkeypatch.setenv("EXEMPLAR_LINT_DISABLED_MATCHERS", "bare-except, explicit-any,,")
        assert Environment.disabled_matchers() == {"bare-except", "explicit-any"}


class TestEnvSingleton:
    """Tests for env singleton instance."""

    def test_singleton_exists(self):
        """Test that env singleton is an Environment instance."""
        assert isinstance(env, Environment)

    def test_singleton_methods_work(self, monkeypatch):
        """Test that singleton methods work correctly."""
        monkeypatch.setenv("EXEMPLAR_LINT_WORKERS", "7")
        assert env.workers() == 7
