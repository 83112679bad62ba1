"""Environment configuration interface for exemplar-lint.

This module provides a clean interface for accessing environment variables,
centralizing all environment variable access in one place. Command-line flags
take precedence over anything read here.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

from .constants import DEFAULT_CACHE_DIR

# Load environment variables from .env file if it exists
load_dotenv()


class Environment:
    """Interface for accessing environment configuration."""

    @staticmethod
    def log_level() -> str:
        """Get the logging level.

        Returns:
            Upper-cased level name, defaults to 'INFO'
        """
        return os.getenv("LOG_LEVEL", "INFO").upper()

    @staticmethod
    def cache_dir() -> Path:
        """Get the directory holding cached rule registries.

        Returns:
            Cache directory, defaults to ./.exemplar_lint_cache
        """
        return Path(os.getenv("EXEMPLAR_LINT_CACHE_DIR", str(DEFAULT_CACHE_DIR)))

    @staticmethod
    def workers() -> int | None:
        """Get the scanner worker pool size.

        Returns:
            Worker count, or None to let the scanner pick one
        """
        value = os.getenv("EXEMPLAR_LINT_WORKERS")
        if not value:
            return None
        return max(1, int(value))

    @staticmethod
    def timeout() -> float | None:
        """Get the overall scan deadline in seconds.

        Returns:
            Timeout in seconds, or None for no deadline
        """
        value = os.getenv("EXEMPLAR_LINT_TIMEOUT")
        if not value:
            return None
        return float(value)

    @staticmethod
    def min_severity() -> str:
        """Get the lowest severity that is reported.

        Returns:
            Severity name, defaults to 'info' (report everything)
        """
        return os.getenv("EXEMPLAR_LINT_MIN_SEVERITY", "info").lower()

    @staticmethod
    def disabled_matchers() -> set[str]:
        """Get matcher kinds switched off for rule synthesis.

        Returns:
            Set of matcher kind names, empty by default
        """
        value = os.getenv("EXEMPLAR_LINT_DISABLED_MATCHERS", "")
        return {name.strip() for name in value.split(",") if name.strip()}


# Singleton instance for convenient access
env = Environment()
