"""Lint source code against GOOD/BAD exemplars in Markdown standards."""

from .errors import CacheError, ExemplarLintError, RegistryBuildFailed, UnknownMatcherError
from .extractor import extract_examples, load_document, parse_document
from .models import (
    CodeExample,
    Diagnostic,
    DiagnosticKind,
    Document,
    Finding,
    Language,
    Polarity,
    Rule,
    ScanResult,
    Severity,
)
from .registry import RegistryCache, RuleRegistry
from .reporters import ReportFormatter, exit_code
from .scanner import Scanner, scan
from .synthesizer import synthesize, synthesize_document

__all__ = [
    "CacheError",
    "CodeExample",
    "Diagnostic",
    "DiagnosticKind",
    "Document",
    "ExemplarLintError",
    "Finding",
    "Language",
    "Polarity",
    "RegistryBuildFailed",
    "RegistryCache",
    "ReportFormatter",
    "Rule",
    "RuleRegistry",
    "ScanResult",
    "Scanner",
    "Severity",
    "UnknownMatcherError",
    "exit_code",
    "extract_examples",
    "load_document",
    "parse_document",
    "scan",
    "synthesize",
    "synthesize_document",
]
