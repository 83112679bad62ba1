"""Scan result reporters."""

import io
import json
from collections import Counter
from dataclasses import dataclass
from itertools import groupby

from rich.console import Console
from rich.table import Table

from .models import Diagnostic, Finding, Severity
from .policy import REVIEW_POLICY, ReviewPolicy, SeverityFilter, report_all

FORMATS = ("text", "json", "table")

SEVERITY_STYLES = {Severity.ERROR: "red", Severity.WARN: "yellow", Severity.INFO: "blue"}


@dataclass(frozen=True)
class RenderedReport:
    """Report text split by destination stream."""

    stdout: str
    stderr: str


def _sorted(findings: list[Finding]) -> list[Finding]:
    return sorted(findings, key=lambda f: (str(f.file_path), f.line_start, f.line_end, f.rule_id))


def format_finding(finding: Finding) -> str:
    """``<path>:<lineStart>-<lineEnd>: [<severity>] <ruleId>: <message>``"""
    return (
        f"{finding.file_path}:{finding.line_start}-{finding.line_end}: "
        f"[{finding.severity.value}] {finding.rule_id}: {finding.message}"
    )


def format_diagnostic(diagnostic: Diagnostic) -> str:
    location = diagnostic.path or ""
    if diagnostic.path and diagnostic.line_number:
        location = f"{location}:{diagnostic.line_number}"
    rule = f" ({diagnostic.rule_id})" if diagnostic.rule_id else ""
    prefix = f"{location}: " if location else ""
    return f"{diagnostic.kind.value}{rule}: {prefix}{diagnostic.message}"


def exit_code(findings: list[Finding]) -> int:
    """Exit code for a finished scan: 1 if any finding is an error, else 0."""
    if any(f.severity == Severity.ERROR for f in findings):
        return 1
    return 0


class ReportFormatter:
    """Format findings and diagnostics as text, JSON or a rich table."""

    def __init__(self, include: SeverityFilter = report_all, policy: ReviewPolicy = REVIEW_POLICY):
        """Initialize the formatter.

        Args:
            include: Predicate choosing which finding severities are reported
            policy: Review policy supplying the priority labels in JSON output
        """
        self.include = include
        self.policy = policy

    def select(self, findings: list[Finding]) -> list[Finding]:
        """Findings the include predicate keeps, in report order."""
        return _sorted([f for f in findings if self.include(f.severity)])

    def format(
        self, findings: list[Finding], diagnostics: list[Diagnostic], mode: str = "text"
    ) -> RenderedReport:
        """Render a report.

        Args:
            findings: Findings from a scan
            diagnostics: Diagnostics from building and scanning
            mode: One of "text", "json", "table"

        Returns:
            RenderedReport; diagnostics never share a stream or key with findings
        """
        selected = self.select(findings)
        if mode == "json":
            return RenderedReport(stdout=self.report_json(selected, diagnostics), stderr="")
        if mode == "table":
            return RenderedReport(
                stdout=self.report_table(selected), stderr=self._stderr(selected, diagnostics)
            )
        if mode == "text":
            return RenderedReport(
                stdout=self.report_text(selected), stderr=self._stderr(selected, diagnostics)
            )
        raise ValueError(f"Unknown report format: {mode!r} (expected one of {', '.join(FORMATS)})")

    def report_text(self, findings: list[Finding]) -> str:
        """One line per finding, grouped by file and sorted by line."""
        lines = []
        for _, group in groupby(findings, key=lambda f: str(f.file_path)):
            lines.extend(format_finding(f) for f in group)
        return "\n".join(lines) + "\n" if lines else ""

    def report_json(self, findings: list[Finding], diagnostics: list[Diagnostic]) -> str:
        counts = Counter(f.severity.value for f in findings)
        data = {
            "findings": [
                {
                    "path": str(f.file_path),
                    "line_start": f.line_start,
                    "line_end": f.line_end,
                    "severity": f.severity.value,
                    "priority": self.policy.label(f.severity),
                    "rule_id": f.rule_id,
                    "message": f.message,
                }
                for f in findings
            ],
            "diagnostics": [
                {
                    "kind": d.kind.value,
                    "message": d.message,
                    "path": d.path,
                    "line": d.line_number,
                    "rule_id": d.rule_id,
                }
                for d in diagnostics
            ],
            "summary": {severity.value: counts.get(severity.value, 0) for severity in Severity},
        }
        return json.dumps(data, indent=2) + "\n"

    def report_table(self, findings: list[Finding]) -> str:
        if not findings:
            return ""
        table = Table(title="Findings", show_lines=False)
        table.add_column("Location", style="cyan", no_wrap=True)
        table.add_column("Severity")
        table.add_column("Rule", style="dim")
        table.add_column("Message")
        for f in findings:
            style = SEVERITY_STYLES[f.severity]
            table.add_row(
                f"{f.file_path}:{f.line_start}-{f.line_end}",
                f"[{style}]{f.severity.value}[/{style}]",
                f.rule_id,
                f.message,
            )

        buffer = io.StringIO()
        Console(file=buffer, width=160, force_terminal=False, color_system=None).print(table)
        return buffer.getvalue()

    def _stderr(self, findings: list[Finding], diagnostics: list[Diagnostic]) -> str:
        counts = Counter(f.severity for f in findings)
        lines = [format_diagnostic(d) for d in diagnostics]
        lines.append(
            f"Total: {counts[Severity.ERROR]} errors, {counts[Severity.WARN]} warnings, "
            f"{counts[Severity.INFO]} info"
        )
        return "\n".join(lines) + "\n"
