"""Shared constants for exemplar-lint.

For environment-based configuration (cache dir, worker count, etc.), use the env module:
    from common.env import env
    workers = env.workers()
"""

from pathlib import Path

# Cache artifacts
DEFAULT_CACHE_DIR = Path("./.exemplar_lint_cache")
CACHE_FILE_PREFIX = "registry_"
CACHE_FORMAT_VERSION = 1

# Fence info-string aliases -> language value
# Anything not listed here becomes "other"
LANGUAGE_ALIASES: dict[str, str] = {
    "python": "python",
    "python3": "python",
    "py": "python",
    "py3": "python",
    "fastapi": "python",
    "typescript": "typescript",
    "ts": "typescript",
    "tsx": "typescript",
    "javascript": "typescript",
    "js": "typescript",
    "jsx": "typescript",
    "react": "typescript",
    "clojure": "clojure",
    "clojurescript": "clojure",
    "clj": "clojure",
    "cljs": "clojure",
    "cljc": "clojure",
    "reagent": "clojure",
    "edn": "clojure",
}

# Target file extensions -> language value
EXTENSION_LANGUAGES: dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".js": "typescript",
    ".jsx": "typescript",
    ".mjs": "typescript",
    ".cjs": "typescript",
    ".clj": "clojure",
    ".cljs": "clojure",
    ".cljc": "clojure",
    ".edn": "clojure",
}

# Directories never descended into when discovering target files
SKIPPED_DIRECTORIES: set[str] = {
    "__pycache__",
    "node_modules",
    "venv",
    "dist",
    "build",
    "target",
    "out",
}

# Prose that promotes a rule to error severity.
# Regex fragments, matched as whole words ignoring case.
ERROR_SEVERITY_KEYWORDS: tuple[str, ...] = (
    "security",
    "insecure",
    "injection",
    r"vulnerab(?:le|ility|ilities)",
    "unsafe",
    r"exploit(?:s|ed|able)?",
    "data loss",
    r"race conditions?",
    r"deadlocks?",
    r"corrupt(?:s|ed|ion)?",
    "incorrect",
    r"bugs?",
    r"crash(?:es|ed|ing)?",
    r"(?:block|blocks|blocking|stall|stalls|stalling) the event loop",
)

# Marker words that demote a rule to info severity, matched the same way
INFO_SEVERITY_KEYWORDS: tuple[str, ...] = ("minor", r"nits?", "style")

# Bytes sampled when sniffing for binary files
BINARY_SNIFF_BYTES = 8192
