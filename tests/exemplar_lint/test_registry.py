"""Tests for the rule registry and its cache."""

import json

import pytest

from exemplar_lint.errors import CacheError, RegistryBuildFailed, UnknownMatcherError
from exemplar_lint.extractor import parse_document
from exemplar_lint.models import DiagnosticKind, Language
from exemplar_lint.registry import (
    RegistryCache,
    RuleRegistry,
    documents_hash,
    expand_document_paths,
)

PYTHON_DOC = """# Python

## Blocking calls

Never block the event loop.

❌ BAD

```python
async def handler():
    time.sleep(1)
```

✅ GOOD

```python
async def handler():
    await asyncio.sleep(1)
```

## Evaluation

Do not evaluate input.

❌ BAD

```python
eval(data)
```
"""

TS_DOC = """# TypeScript

## Types

BAD:

```ts
const x: any = 1;
```
"""


@pytest.fixture
def docs_dir(tmp_path):
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "python.md").write_text(PYTHON_DOC, encoding="utf-8")
    (docs / "typescript.md").write_text(TS_DOC, encoding="utf-8")
    return docs


class TestBuild:
    """Tests for RuleRegistry.build."""

    def test_build_from_document(self):
        document, _ = parse_document(PYTHON_DOC, "python.md")
        registry = RuleRegistry.build([document])

        assert len(registry) == 2
        assert [r.matcher.kind for r in registry] == ["blocking-call-in-async", "dynamic-eval"]
        assert registry.diagnostics == ()

    def test_build_from_examples_matches_documents(self):
        document, _ = parse_document(PYTHON_DOC, "python.md")

        from_examples = RuleRegistry.build(document.examples)
        from_documents = RuleRegistry.build([document])

        assert from_examples.content_hash == from_documents.content_hash

    def test_build_is_deterministic(self):
        document, _ = parse_document(PYTHON_DOC, "python.md")
        assert RuleRegistry.build([document]).content_hash == RuleRegistry.build([document]).content_hash

    def test_duplicate_rule_ids(self, caplog):
        first, _ = parse_document(PYTHON_DOC, "a.md")
        second, _ = parse_document(PYTHON_DOC, "b.md")

        registry = RuleRegistry.build([first, second])

        assert len(registry) == 2
        assert all(rule.origin.startswith("a.md#") for rule in registry)
        duplicates = [d for d in registry.diagnostics if d.kind == DiagnosticKind.DUPLICATE_RULE_WARNING]
        assert len(duplicates) == 2
        assert {d.path for d in duplicates} == {"b.md"}
        assert "Duplicate rule" in caplog.text

    def test_lookup_and_get(self):
        python, _ = parse_document(PYTHON_DOC, "python.md")
        typescript, _ = parse_document(TS_DOC, "ts.md")
        registry = RuleRegistry.build([python, typescript])

        assert registry.languages == frozenset({Language.PYTHON, Language.TYPESCRIPT})
        assert isinstance(registry.lookup(Language.PYTHON), tuple)
        assert len(registry.lookup(Language.PYTHON)) == 2
        assert registry.lookup(Language.CLOJURE) == ()

        rule = registry.lookup(Language.TYPESCRIPT)[0]
        assert registry.get(rule.id) is rule
        assert rule.id in registry
        assert registry.get("missing") is None

    def test_read_only(self):
        document, _ = parse_document(PYTHON_DOC, "python.md")
        registry = RuleRegistry.build([document])

        with pytest.raises(TypeError):
            registry._rules["x"] = None


class TestFromDocuments:
    """Tests for RuleRegistry.from_documents."""

    def test_directory_expansion(self, docs_dir):
        registry = RuleRegistry.from_documents([docs_dir])
        assert len(registry) == 3

    def test_unreadable_document_skipped(self, docs_dir, caplog):
        registry = RuleRegistry.from_documents([docs_dir / "python.md", docs_dir / "missing.md"])

        assert len(registry) == 2
        skipped = [d for d in registry.diagnostics if d.path and d.path.endswith("missing.md")]
        assert skipped[0].kind == DiagnosticKind.EXTRACTION_WARNING
        assert "missing.md" in caplog.text

    def test_no_loadable_documents(self, tmp_path):
        with pytest.raises(RegistryBuildFailed):
            RuleRegistry.from_documents([tmp_path / "missing.md"])

    def test_empty_directory(self, tmp_path):
        with pytest.raises(RegistryBuildFailed):
            RuleRegistry.from_documents([tmp_path])

    def test_disabled_matchers(self, docs_dir):
        registry = RuleRegistry.from_documents([docs_dir], disabled={"explicit-any"})
        assert registry.lookup(Language.TYPESCRIPT) == ()


def test_expand_document_paths(docs_dir):
    paths = expand_document_paths([docs_dir, docs_dir / "python.md"])
    assert [p.name for p in paths] == ["python.md", "typescript.md"]


class TestPersistence:
    """Tests for saving and loading registries."""

    def test_round_trip(self, docs_dir, tmp_path):
        registry = RuleRegistry.from_documents([docs_dir])
        path = tmp_path / "cache" / "registry.json"

        registry.save(path)
        loaded = RuleRegistry.load(path)

        assert list(loaded) == list(registry)
        assert loaded.content_hash == registry.content_hash
        assert loaded.diagnostics == registry.diagnostics

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "registry.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(CacheError):
            RuleRegistry.load(path)

    def test_wrong_version(self):
        with pytest.raises(CacheError):
            RuleRegistry.from_dict({"version": 999, "rules": []})

    def test_malformed_rule(self):
        with pytest.raises(CacheError):
            RuleRegistry.from_dict({"version": 1, "rules": [{"id": "x"}]})

    def test_unknown_matcher_kind(self, docs_dir):
        data = RuleRegistry.from_documents([docs_dir]).to_dict()
        data["rules"][0]["matcher"]["kind"] = "retired-kind"

        with pytest.raises(UnknownMatcherError):
            RuleRegistry.from_dict(data)


class TestRegistryCache:
    """Tests for RegistryCache."""

    def test_miss_then_hit(self, docs_dir, tmp_path, monkeypatch):
        cache = RegistryCache(tmp_path / "cache")

        built = cache.load_or_build([docs_dir])
        assert cache.path_for(documents_hash([docs_dir])).exists()

        def fail(*args, **kwargs):
            raise AssertionError("registry should come from the cache")

        monkeypatch.setattr(RuleRegistry, "from_documents", fail)
        cached = cache.load_or_build([docs_dir])

        assert cached.content_hash == built.content_hash

    def test_changed_document_rebuilds(self, docs_dir, tmp_path):
        cache = RegistryCache(tmp_path / "cache")
        cache.load_or_build([docs_dir])

        (docs_dir / "typescript.md").write_text("# Empty\n", encoding="utf-8")
        rebuilt = cache.load_or_build([docs_dir])

        assert len(rebuilt) == 2
        assert len(list((tmp_path / "cache").glob("registry_*.json"))) == 2

    def test_corrupt_cache_rebuilds(self, docs_dir, tmp_path, caplog):
        cache = RegistryCache(tmp_path / "cache")
        path = cache.path_for(documents_hash([docs_dir]))
        path.parent.mkdir(parents=True)
        path.write_text("garbage", encoding="utf-8")

        registry = cache.load_or_build([docs_dir])

        assert len(registry) == 3
        assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1
        assert "Ignoring unusable cache" in caplog.text

    def test_hash_depends_on_disabled_matchers(self, docs_dir):
        assert documents_hash([docs_dir]) != documents_hash([docs_dir], {"bare-except"})
