#!/usr/bin/env python3
"""CLI interface for exemplar-lint."""

import argparse
import json
import sys
from pathlib import Path

from common.env import env
from common.logger import error, get_logger, progress, setup_logging, success, warning

from .errors import RegistryBuildFailed
from .extractor import load_document
from .models import Language, Severity
from .policy import severity_at_least
from .registry import RegistryCache, RuleRegistry, expand_document_paths
from .reporters import FORMATS, ReportFormatter, exit_code
from .scanner import Scanner, discover_files

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR_FINDINGS = 1
EXIT_FAILURE = 2


def _write(text: str, stream) -> None:
    if text:
        stream.write(text)
        stream.flush()


def _build_registry(args) -> RuleRegistry:
    disabled = env.disabled_matchers()
    paths = [Path(p) for p in args.docs]
    if getattr(args, "no_cache", True):
        return RuleRegistry.from_documents(paths, disabled)
    cache_dir = Path(args.cache_dir) if args.cache_dir else env.cache_dir()
    return RegistryCache(cache_dir).load_or_build(paths, disabled)


def cmd_scan(args):
    """Scan a source tree with rules synthesized from standards documents.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 clean or non-error findings, 1 error findings, 2 failure)
    """
    target = Path(args.target)
    if not target.exists():
        error(f"Target '{target}' does not exist")
        return EXIT_FAILURE

    try:
        registry = _build_registry(args)
    except RegistryBuildFailed as e:
        error(f"Cannot build rule registry: {e}")
        return EXIT_FAILURE

    files = discover_files(target)
    progress(f"Scanning {len(files)} files with {len(registry)} rules...")

    scanner = Scanner(max_workers=args.workers or env.workers())
    timeout = args.timeout if args.timeout is not None else env.timeout()
    result = scanner.scan(registry, files, timeout=timeout)

    minimum = args.min_severity or env.min_severity()
    formatter = ReportFormatter(include=severity_at_least(minimum))
    diagnostics = list(registry.diagnostics) + result.diagnostics
    report = formatter.format(result.findings, diagnostics, args.format)

    if args.output:
        output_path = Path(args.output)
        try:
            output_path.write_text(report.stdout, encoding="utf-8")
        except OSError as e:
            error(f"Cannot write report to {output_path}: {e}")
            return EXIT_FAILURE
        progress(f"Report written to {output_path}")
    else:
        _write(report.stdout, sys.stdout)
    _write(report.stderr, sys.stderr)

    if result.cancelled:
        warning(f"Scan cancelled; {result.files_scanned} of {len(files)} files were scanned")
        return EXIT_FAILURE

    reported = formatter.select(result.findings)
    if not reported:
        success(f"No findings in {len(files)} files")
    return exit_code(reported)


def cmd_rules(args):
    """List the rules synthesized from standards documents.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 2 if no document could be loaded)
    """
    try:
        registry = RuleRegistry.from_documents(
            [Path(p) for p in args.docs], env.disabled_matchers()
        )
    except RegistryBuildFailed as e:
        error(f"Cannot build rule registry: {e}")
        return EXIT_FAILURE

    rules = registry.lookup(Language(args.language)) if args.language else registry.rules

    if args.format == "json":
        print(json.dumps([rule.to_dict() for rule in rules], indent=2))
    else:
        for rule in rules:
            print(f"{rule.id} [{rule.severity.value}] {rule.message} ({rule.origin})")
    return EXIT_OK


def cmd_examples(args):
    """Print extracted exemplars as JSON.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 2 if no document could be read)
    """
    examples = []
    loaded = 0
    for path in expand_document_paths(Path(p) for p in args.docs):
        try:
            document, _ = load_document(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Cannot read standards document {path}: {e}")
            continue
        loaded += 1
        for example in document.examples:
            examples.append(
                {
                    "id": example.id,
                    "document": example.section_ref.document_path,
                    "heading": example.section_ref.heading,
                    "line": example.line_number,
                    "language": example.language.value,
                    "polarity": example.polarity.value,
                    "source": example.source_text,
                }
            )

    if not loaded:
        error("No standards document could be loaded")
        return EXIT_FAILURE

    print(json.dumps(examples, indent=2, ensure_ascii=False))
    return EXIT_OK


def main(argv: list[str] | None = None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Lint source code against GOOD/BAD exemplars in Markdown standards"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Scan command
    scan_parser = subparsers.add_parser("scan", help="Scan a source tree")
    scan_parser.add_argument(
        "--docs",
        nargs="+",
        required=True,
        help="Standards documents or directories of *.md files",
    )
    scan_parser.add_argument("--target", type=str, required=True, help="File or directory to scan")
    scan_parser.add_argument("--format", choices=FORMATS, default="text", help="Output format")
    scan_parser.add_argument("--output", type=str, help="Write the report to this file")
    scan_parser.add_argument(
        "--cache-dir",
        type=str,
        help="Rule registry cache directory (default: EXEMPLAR_LINT_CACHE_DIR)",
    )
    scan_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Always rebuild the rule registry",
    )
    scan_parser.add_argument("--workers", type=int, help="Worker threads")
    scan_parser.add_argument("--timeout", type=float, help="Scan deadline in seconds")
    scan_parser.add_argument(
        "--min-severity",
        choices=[s.value for s in Severity],
        help="Lowest severity to report (default: EXEMPLAR_LINT_MIN_SEVERITY or info)",
    )
    scan_parser.set_defaults(func=cmd_scan)

    # Rules command
    rules_parser = subparsers.add_parser("rules", help="List synthesized rules")
    rules_parser.add_argument("--docs", nargs="+", required=True, help="Standards documents")
    rules_parser.add_argument(
        "--language",
        choices=[lang.value for lang in Language if lang != Language.OTHER],
        help="Only list rules for this language",
    )
    rules_parser.add_argument("--format", choices=["text", "json"], default="text")
    rules_parser.set_defaults(func=cmd_rules)

    # Examples command
    examples_parser = subparsers.add_parser("examples", help="List extracted exemplars as JSON")
    examples_parser.add_argument("--docs", nargs="+", required=True, help="Standards documents")
    examples_parser.set_defaults(func=cmd_examples)

    args = parser.parse_args(argv)
    setup_logging(level="WARNING")
    return args.func(args)


if __name__ == "__main__":
    exit(main())
