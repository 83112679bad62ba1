"""Rule registry built from standards documents, and its on-disk cache."""

import hashlib
import json
from collections.abc import Iterable, Iterator
from pathlib import Path
from types import MappingProxyType
from typing import Any

from common.constants import CACHE_FILE_PREFIX, CACHE_FORMAT_VERSION
from common.logger import get_logger

from .errors import CacheError, RegistryBuildFailed, UnknownMatcherError
from .extractor import load_document
from .matchers.catalog import get_matcher
from .models import CodeExample, Diagnostic, DiagnosticKind, Document, Language, Rule
from .synthesizer import synthesize_examples

logger = get_logger(__name__)


def expand_document_paths(paths: Iterable[Path]) -> list[Path]:
    """Expand directories to the Markdown files under them, keeping argument order."""
    expanded: list[Path] = []
    for path in paths:
        path = Path(path)
        if path.is_dir():
            expanded.extend(sorted(p for p in path.rglob("*.md") if p.is_file()))
        else:
            expanded.append(path)

    seen: set[Path] = set()
    unique = []
    for path in expanded:
        if path not in seen:
            seen.add(path)
            unique.append(path)
    return unique


def documents_hash(paths: Iterable[Path], disabled: set[str] | None = None) -> str:
    """SHA-256 over document names and contents, in sorted path order.

    The disabled matcher kinds and the cache format version are part of the
    key, since both change which rules a build produces.
    """
    digest = hashlib.sha256()
    digest.update(f"v{CACHE_FORMAT_VERSION}\n".encode())
    digest.update(",".join(sorted(disabled or ())).encode("utf-8"))
    for path in sorted(expand_document_paths(paths), key=str):
        digest.update(b"\0" + str(path).encode("utf-8") + b"\0")
        try:
            digest.update(path.read_bytes())
        except OSError:
            digest.update(b"<unreadable>")
    return digest.hexdigest()


def _diagnostic_to_dict(diagnostic: Diagnostic) -> dict[str, Any]:
    return {
        "kind": diagnostic.kind.value,
        "message": diagnostic.message,
        "path": diagnostic.path,
        "line_number": diagnostic.line_number,
        "rule_id": diagnostic.rule_id,
    }


def _diagnostic_from_dict(data: dict[str, Any]) -> Diagnostic:
    return Diagnostic(
        kind=DiagnosticKind(data["kind"]),
        message=data["message"],
        path=data.get("path"),
        line_number=data.get("line_number"),
        rule_id=data.get("rule_id"),
    )


class RuleRegistry:
    """Read-only set of rules, indexed by id and by language."""

    def __init__(self, rules: Iterable[Rule] = (), diagnostics: Iterable[Diagnostic] = ()):
        """Initialize the registry.

        Args:
            rules: Rules in document order; ids must already be unique
            diagnostics: Diagnostics collected while building
        """
        by_id: dict[str, Rule] = {}
        by_language: dict[Language, list[Rule]] = {}
        for rule in rules:
            by_id[rule.id] = rule
            by_language.setdefault(rule.language, []).append(rule)

        self._rules = MappingProxyType(by_id)
        self._by_language = MappingProxyType(
            {language: tuple(items) for language, items in by_language.items()}
        )
        self.diagnostics: tuple[Diagnostic, ...] = tuple(diagnostics)

    @classmethod
    def build(
        cls,
        items: Iterable[CodeExample | Document],
        disabled: set[str] | None = None,
        diagnostics: Iterable[Diagnostic] = (),
    ) -> "RuleRegistry":
        """Build a registry from exemplars or whole documents.

        Pure and deterministic: the same input always gives the same rules in
        the same order. When two exemplars synthesize the same rule id, the
        first one wins and each later one is reported as a duplicate.

        Args:
            items: CodeExamples and/or Documents, in document order
            disabled: Matcher kinds to skip during synthesis
            diagnostics: Earlier diagnostics (e.g., from extraction) to carry along

        Returns:
            RuleRegistry with unique rule ids
        """
        examples: list[CodeExample] = []
        for item in items:
            if isinstance(item, Document):
                examples.extend(item.examples)
            else:
                examples.append(item)

        collected = list(diagnostics)
        rules: dict[str, Rule] = {}
        for rule in synthesize_examples(examples, disabled):
            if rule.id in rules:
                kept = rules[rule.id]
                logger.warning(
                    f"Duplicate rule {rule.id} from {rule.origin}; keeping {kept.origin}"
                )
                collected.append(
                    Diagnostic(
                        kind=DiagnosticKind.DUPLICATE_RULE_WARNING,
                        message=f"Rule from {rule.origin} duplicates {kept.origin}",
                        path=rule.origin.split("#", 1)[0],
                        rule_id=rule.id,
                    )
                )
                continue
            rules[rule.id] = rule

        return cls(rules.values(), collected)

    @classmethod
    def from_documents(
        cls, paths: Iterable[Path], disabled: set[str] | None = None
    ) -> "RuleRegistry":
        """Load standards documents and build a registry from them.

        Unreadable documents are logged and skipped.

        Raises:
            RegistryBuildFailed: If no document could be loaded
        """
        documents: list[Document] = []
        diagnostics: list[Diagnostic] = []
        for path in expand_document_paths(paths):
            try:
                document, extraction = load_document(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Cannot read standards document {path}: {e}")
                diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.EXTRACTION_WARNING,
                        message=f"Document skipped: {e}",
                        path=str(path),
                    )
                )
                continue
            documents.append(document)
            diagnostics.extend(extraction)

        if not documents:
            raise RegistryBuildFailed("No standards document could be loaded")

        registry = cls.build(documents, disabled, diagnostics)
        logger.info(f"Built [bold]{len(registry)}[/bold] rules from {len(documents)} documents")
        return registry

    def lookup(self, language: Language) -> tuple[Rule, ...]:
        """Rules for a language, in document order."""
        return self._by_language.get(language, ())

    def get(self, rule_id: str) -> Rule | None:
        return self._rules.get(rule_id)

    @property
    def rules(self) -> tuple[Rule, ...]:
        return tuple(self._rules.values())

    @property
    def languages(self) -> frozenset[Language]:
        return frozenset(self._by_language)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    @property
    def content_hash(self) -> str:
        """SHA-256 over the canonical JSON form of all rules."""
        canonical = json.dumps([rule.to_dict() for rule in self], sort_keys=True)
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def to_dict(self, source_hash: str | None = None) -> dict[str, Any]:
        return {
            "version": CACHE_FORMAT_VERSION,
            "documents_hash": source_hash,
            "content_hash": self.content_hash,
            "rules": [rule.to_dict() for rule in self],
            "diagnostics": [_diagnostic_to_dict(d) for d in self.diagnostics],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuleRegistry":
        """Rebuild a registry from ``to_dict`` output.

        Raises:
            CacheError: If the data has the wrong version or shape
            UnknownMatcherError: If a rule names an unregistered matcher kind
        """
        if data.get("version") != CACHE_FORMAT_VERSION:
            raise CacheError(f"Unsupported cache version: {data.get('version')!r}")
        try:
            rules = [Rule.from_dict(item) for item in data["rules"]]
            diagnostics = [_diagnostic_from_dict(item) for item in data.get("diagnostics", [])]
        except (KeyError, TypeError, ValueError) as e:
            raise CacheError(f"Malformed cache data: {e}") from e

        for rule in rules:
            get_matcher(rule.matcher.kind)

        registry = cls(rules, diagnostics)
        if len(registry) != len(rules):
            raise CacheError("Cache contains duplicate rule ids")
        return registry

    def save(self, file_path: Path, source_hash: str | None = None):
        """Save the registry to a JSON file.

        Args:
            file_path: Path where the registry should be saved
            source_hash: Hash of the documents the registry was built from
        """
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(json.dumps(self.to_dict(source_hash), indent=2), encoding="utf-8")

    @classmethod
    def load(cls, file_path: Path) -> "RuleRegistry":
        """Load a registry from a JSON file.

        Raises:
            CacheError: If the file cannot be read or parsed
            UnknownMatcherError: If a rule names an unregistered matcher kind
        """
        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CacheError(f"Cannot read cache file {file_path}: {e}") from e
        if not isinstance(data, dict):
            raise CacheError(f"Cache file {file_path} does not hold an object")
        return cls.from_dict(data)


class RegistryCache:
    """Directory of cached registries keyed by the hash of their documents."""

    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir)

    def path_for(self, source_hash: str) -> Path:
        return self.cache_dir / f"{CACHE_FILE_PREFIX}{source_hash[:16]}.json"

    def load_or_build(
        self, paths: Iterable[Path], disabled: set[str] | None = None
    ) -> RuleRegistry:
        """Return the cached registry for these documents, building it on a miss.

        A stale or corrupt cache file is ignored and overwritten.

        Raises:
            RegistryBuildFailed: If a build is needed and no document loads
        """
        paths = list(paths)
        source_hash = documents_hash(paths, disabled)
        cache_path = self.path_for(source_hash)

        if cache_path.exists():
            try:
                stored = json.loads(cache_path.read_text(encoding="utf-8"))
                if isinstance(stored, dict) and stored.get("documents_hash") == source_hash:
                    registry = RuleRegistry.from_dict(stored)
                    logger.debug(f"Loaded {len(registry)} rules from cache {cache_path}")
                    return registry
                logger.info(f"Cache {cache_path} is stale, rebuilding")
            except (OSError, UnicodeDecodeError, json.JSONDecodeError, CacheError, UnknownMatcherError) as e:
                logger.warning(f"Ignoring unusable cache {cache_path}: {e}")

        registry = RuleRegistry.from_documents(paths, disabled)
        try:
            registry.save(cache_path, source_hash)
        except OSError as e:
            logger.warning(f"Could not write cache {cache_path}: {e}")
        return registry
