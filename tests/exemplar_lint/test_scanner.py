"""Tests for scanning source files."""

import threading
from pathlib import Path

import pytest

from exemplar_lint.extractor import parse_document
from exemplar_lint.models import (
    DiagnosticKind,
    Language,
    MatcherSpec,
    Rule,
    Severity,
)
from exemplar_lint.registry import RuleRegistry
from exemplar_lint.reporters import exit_code
from exemplar_lint.scanner import (
    Scanner,
    ScanState,
    discover_files,
    language_for_path,
    scan,
    scan_file,
)

STANDARDS = """# Python

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

## Exceptions

❌ BAD (minor)

```python
try:
    run()
except:
    pass
```
"""

APP = """import time


async def handler():
    time.sleep(1)


def sync_job():
    time.sleep(1)
"""

WORKER = """def work():
    try:
        run()
    except:
        pass
"""


@pytest.fixture
def registry():
    document, _ = parse_document(STANDARDS, "docs/python.md")
    return RuleRegistry.build([document])


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    (root / "app").mkdir(parents=True)
    (root / "app" / "main.py").write_text(APP, encoding="utf-8")
    (root / "app" / "worker.py").write_text(WORKER, encoding="utf-8")
    return root


def test_language_for_path():
    assert language_for_path(Path("a.py")) == Language.PYTHON
    assert language_for_path(Path("a.TSX")) == Language.TYPESCRIPT
    assert language_for_path(Path("core.cljc")) == Language.CLOJURE
    assert language_for_path(Path("README.md")) is None


class TestDiscoverFiles:
    """Tests for discover_files."""

    def test_skips_hidden_and_vendored(self, tmp_path):
        for relative in [
            "src/a.py",
            "src/b.ts",
            "src/nested/c.clj",
            "src/README.md",
            "node_modules/lib/index.js",
            ".git/hooks/pre-commit.py",
            ".venv/lib/site.py",
            "build/gen.py",
        ]:
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("", encoding="utf-8")

        found = [p.relative_to(tmp_path).as_posix() for p in discover_files(tmp_path)]

        assert found == ["src/a.py", "src/b.ts", "src/nested/c.clj"]

    def test_file_target_returned_as_is(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("x", encoding="utf-8")
        assert discover_files(path) == [path]

    def test_missing_target(self, tmp_path):
        assert discover_files(tmp_path / "missing") == []


class TestScanFile:
    """Tests for scan_file."""

    def test_blocking_call_in_async(self, registry, project):
        findings, diagnostics = scan_file(registry, project / "app" / "main.py")

        assert diagnostics == []
        assert len(findings) == 1
        finding = findings[0]
        assert finding.rule_id.startswith("python/blocking-call-in-async/")
        assert (finding.line_start, finding.line_end) == (5, 5)
        assert finding.severity == Severity.ERROR
        assert finding.message == (
            "Blocking calls: Never block the event loop. (blocking call inside async function)"
        )

    def test_unsupported_language(self, registry, tmp_path):
        path = tmp_path / "core.clj"
        path.write_text("(go (Thread/sleep 1))", encoding="utf-8")
        assert scan_file(registry, path) == ([], [])

    def test_undecodable_file(self, registry, tmp_path):
        path = tmp_path / "latin1.py"
        path.write_bytes("name = 'café'\n".encode("latin-1"))

        findings, diagnostics = scan_file(registry, path)

        assert findings == []
        assert [d.kind for d in diagnostics] == [DiagnosticKind.FILE_SKIPPED]
        assert "UTF-8" in diagnostics[0].message

    def test_binary_file(self, registry, tmp_path):
        path = tmp_path / "blob.py"
        path.write_bytes(b"\x00\x01\x02")

        _, diagnostics = scan_file(registry, path)

        assert diagnostics[0].kind == DiagnosticKind.FILE_SKIPPED
        assert diagnostics[0].message == "Binary file"

    def test_unreadable_file(self, registry, tmp_path):
        _, diagnostics = scan_file(registry, tmp_path / "gone.py")
        assert diagnostics[0].kind == DiagnosticKind.FILE_SKIPPED

    def test_rule_failure_does_not_stop_other_rules(self, registry, project):
        broken = Rule(
            id="python/retired-kind/00000000",
            language=Language.PYTHON,
            severity=Severity.WARN,
            matcher=MatcherSpec(kind="retired-kind"),
            message="Retired",
            origin="old.md#x-1",
        )
        mixed = RuleRegistry([broken, *registry])

        findings, diagnostics = scan_file(mixed, project / "app" / "main.py")

        assert len(findings) == 1
        assert [d.kind for d in diagnostics] == [DiagnosticKind.RULE_FAILURE]
        assert diagnostics[0].rule_id == broken.id


class TestScanner:
    """Tests for Scanner.scan."""

    def test_scan_project(self, registry, project):
        scanner = Scanner(max_workers=2)

        result = scanner.scan(registry, discover_files(project))

        assert scanner.state == ScanState.DONE
        assert result.files_scanned == 2
        assert not result.cancelled
        assert [(f.file_path.name, f.line_start) for f in result.findings] == [
            ("main.py", 5),
            ("worker.py", 4),
        ]
        assert [f.severity for f in result.findings] == [Severity.ERROR, Severity.INFO]
        assert exit_code(result.findings) == 1

    def test_scan_is_idempotent(self, registry, project):
        files = discover_files(project)
        assert scan(registry, files, max_workers=3) == scan(registry, files, max_workers=1)

    def test_empty_file_set(self, registry):
        scanner = Scanner()

        result = scanner.scan(registry, [])

        assert result.findings == []
        assert result.diagnostics == []
        assert result.files_scanned == 0
        assert scanner.state == ScanState.DONE
        assert exit_code(result.findings) == 0

    def test_undecodable_file_does_not_stop_scan(self, registry, project):
        bad = project / "app" / "legacy.py"
        bad.write_bytes(b"x = '\xff\xfe'\n")

        result = scan(registry, discover_files(project))

        assert result.files_scanned == 3
        assert len(result.findings) == 2
        assert [(d.kind, Path(d.path).name) for d in result.diagnostics] == [
            (DiagnosticKind.FILE_SKIPPED, "legacy.py")
        ]

    def test_many_files_with_small_window(self, registry, tmp_path):
        for index in range(25):
            (tmp_path / f"mod_{index:02d}.py").write_text(APP, encoding="utf-8")

        result = scan(registry, discover_files(tmp_path), max_workers=2)

        assert result.files_scanned == 25
        assert len(result.findings) == 25
        assert [f.file_path.name for f in result.findings] == sorted(
            f"mod_{index:02d}.py" for index in range(25)
        )

    def test_cancel_event(self, registry, project):
        cancel = threading.Event()
        cancel.set()
        scanner = Scanner(max_workers=1)

        result = scanner.scan(registry, discover_files(project), cancel_event=cancel)

        assert result.cancelled
        assert result.files_scanned == 0
        assert [d.kind for d in result.diagnostics] == [DiagnosticKind.SCAN_CANCELLED]
        assert scanner.state == ScanState.DONE

    def test_timeout(self, registry, project):
        result = scan(registry, discover_files(project), timeout=0)

        assert result.cancelled
        assert result.diagnostics[-1].kind == DiagnosticKind.SCAN_CANCELLED
