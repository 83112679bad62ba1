"""Scan source files with a rule registry."""

import os
import threading
import time
from collections.abc import Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from enum import Enum
from pathlib import Path

from common.constants import BINARY_SNIFF_BYTES, SKIPPED_DIRECTORIES
from common.env import env
from common.logger import get_logger

from .matchers.catalog import get_matcher
from .models import Diagnostic, DiagnosticKind, Finding, Language, ScanResult
from .registry import RuleRegistry
from .sketch import build_sketch

logger = get_logger(__name__)

# Seconds between checks of the cancel event while waiting on workers
POLL_INTERVAL = 0.05


class ScanState(str, Enum):
    """Lifecycle of a single scan."""

    IDLE = "idle"
    LOADING = "loading"
    SCANNING = "scanning"
    AGGREGATING = "aggregating"
    DONE = "done"


def language_for_path(path: Path) -> Language | None:
    """Language of a target file from its extension, or None if unsupported."""
    return Language.from_path(Path(path))


def discover_files(target: Path) -> list[Path]:
    """Find scannable source files under ``target``.

    Hidden and vendored/build directories are skipped. A file target is
    returned as-is, whatever its extension.

    Returns:
        Sorted list of file paths
    """
    target = Path(target)
    if target.is_file():
        return [target]
    if not target.is_dir():
        return []

    found = []
    for root, dirs, files in os.walk(target):
        dirs[:] = [d for d in dirs if not d.startswith(".") and d not in SKIPPED_DIRECTORIES]
        for name in files:
            path = Path(root) / name
            if language_for_path(path) is not None:
                found.append(path)
    return sorted(found)


def _skipped(path: Path, reason: str) -> Diagnostic:
    logger.warning(f"Skipping {path}: {reason}")
    return Diagnostic(kind=DiagnosticKind.FILE_SKIPPED, message=reason, path=str(path))


def scan_file(registry: RuleRegistry, path: Path) -> tuple[list[Finding], list[Diagnostic]]:
    """Run every rule for the file's language over one file.

    Args:
        registry: Rules to apply
        path: Source file to scan

    Returns:
        (findings, diagnostics) for this file
    """
    path = Path(path)
    language = language_for_path(path)
    rules = registry.lookup(language) if language else ()
    if not rules:
        return [], []

    try:
        data = path.read_bytes()
    except OSError as e:
        return [], [_skipped(path, f"Unreadable file: {e.strerror or e}")]

    if b"\0" in data[:BINARY_SNIFF_BYTES]:
        return [], [_skipped(path, "Binary file")]
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return [], [_skipped(path, "File is not valid UTF-8")]

    sketch = build_sketch(text.replace("\r\n", "\n"), language)
    findings: list[Finding] = []
    diagnostics: list[Diagnostic] = []
    for rule in rules:
        try:
            matcher = get_matcher(rule.matcher.kind)
            ranges = matcher.match(sketch, rule.matcher.params)
        except Exception as e:
            logger.warning(f"Rule {rule.id} failed on {path}: {e}")
            diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.RULE_FAILURE,
                    message=f"{type(e).__name__}: {e}",
                    path=str(path),
                    rule_id=rule.id,
                )
            )
            continue

        for line_start, line_end in ranges:
            findings.append(
                Finding(
                    rule_id=rule.id,
                    file_path=path,
                    line_start=line_start,
                    line_end=line_end,
                    message=rule.message,
                    severity=rule.severity,
                )
            )
    return findings, diagnostics


def _default_workers() -> int:
    return env.workers() or min(32, (os.cpu_count() or 1) + 4)


class Scanner:
    """Scans file sets with a bounded worker pool."""

    def __init__(self, max_workers: int | None = None):
        """Initialize the scanner.

        Args:
            max_workers: Worker threads; defaults to EXEMPLAR_LINT_WORKERS or
                         min(32, cpu_count + 4)
        """
        self.max_workers = max(1, max_workers or _default_workers())
        self.state = ScanState.IDLE

    def scan(
        self,
        registry: RuleRegistry,
        files: Iterable[Path],
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ScanResult:
        """Scan files and merge the per-file results.

        At most ``2 * max_workers`` files are in flight at once. When the
        cancel event is set or the timeout passes, pending files are dropped,
        results of files still running are discarded, and the result carries a
        SCAN_CANCELLED diagnostic.

        Args:
            registry: Rules to apply (shared read-only by all workers)
            files: Files to scan
            timeout: Overall deadline in seconds
            cancel_event: Event that stops the scan when set

        Returns:
            ScanResult with findings and diagnostics in a stable order
        """
        self.state = ScanState.LOADING
        try:
            paths = list(dict.fromkeys(Path(f) for f in files))
            per_file, cancelled = self._run(registry, paths, timeout, cancel_event)

            self.state = ScanState.AGGREGATING
            result = ScanResult(cancelled=cancelled, files_scanned=len(per_file))
            for findings, diagnostics in per_file.values():
                result.findings.extend(findings)
                result.diagnostics.extend(diagnostics)
            if cancelled:
                logger.warning(f"Scan cancelled after {len(per_file)} of {len(paths)} files")
                result.diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.SCAN_CANCELLED,
                        message=f"Scan cancelled after {len(per_file)} of {len(paths)} files",
                    )
                )

            result.findings.sort(key=lambda f: (str(f.file_path), f.line_start, f.line_end, f.rule_id))
            result.diagnostics.sort(key=lambda d: (d.path or "", d.kind.value, d.message))
            return result
        finally:
            self.state = ScanState.DONE

    def _run(
        self,
        registry: RuleRegistry,
        paths: list[Path],
        timeout: float | None,
        cancel_event: threading.Event | None,
    ) -> tuple[dict[Path, tuple[list[Finding], list[Diagnostic]]], bool]:
        deadline = time.monotonic() + timeout if timeout is not None else None

        def should_stop() -> bool:
            if cancel_event is not None and cancel_event.is_set():
                return True
            return deadline is not None and time.monotonic() >= deadline

        completed: dict[Path, tuple[list[Finding], list[Diagnostic]]] = {}
        if not paths:
            return completed, False

        self.state = ScanState.SCANNING
        window = 2 * self.max_workers
        queue = iter(paths)
        in_flight: dict[Future, Path] = {}
        cancelled = False
        exhausted = False

        pool = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="exemplar-lint")
        try:
            while True:
                if should_stop():
                    cancelled = True
                    break

                while not exhausted and len(in_flight) < window:
                    path = next(queue, None)
                    if path is None:
                        exhausted = True
                        break
                    in_flight[pool.submit(scan_file, registry, path)] = path

                if not in_flight:
                    break

                wait_for = POLL_INTERVAL
                if deadline is not None:
                    wait_for = max(0.0, min(wait_for, deadline - time.monotonic()))
                done, _ = wait(list(in_flight), timeout=wait_for, return_when=FIRST_COMPLETED)
                for future in done:
                    completed[in_flight.pop(future)] = future.result()
        finally:
            for future in in_flight:
                future.cancel()
            pool.shutdown(wait=not cancelled, cancel_futures=True)

        return completed, cancelled


def scan(
    registry: RuleRegistry,
    files: Iterable[Path],
    max_workers: int | None = None,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
) -> ScanResult:
    """Scan files with a fresh Scanner."""
    return Scanner(max_workers).scan(registry, files, timeout=timeout, cancel_event=cancel_event)
