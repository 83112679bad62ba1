"""Data models for exemplars, rules, findings and diagnostics."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from common.constants import EXTENSION_LANGUAGES, LANGUAGE_ALIASES


class Language(str, Enum):
    """Languages rules can be written for."""

    CLOJURE = "clojure"
    PYTHON = "python"
    TYPESCRIPT = "typescript"
    OTHER = "other"

    @classmethod
    def from_info_string(cls, info: str | None) -> "Language":
        """Map a fence info string (``py``, ``tsx``, ``clj`` ...) to a language."""
        if not info or not info.strip():
            return cls.OTHER
        word = info.strip().split()[0].strip("{}").lstrip(".").split(",")[0].lower()
        return cls(LANGUAGE_ALIASES.get(word, cls.OTHER.value))

    @classmethod
    def from_path(cls, path: Path) -> "Language | None":
        """Language of a target source file, or None if it is not scannable."""
        value = EXTENSION_LANGUAGES.get(path.suffix.lower())
        return cls(value) if value else None


class Polarity(str, Enum):
    """Whether an exemplar shows what to do or what to avoid."""

    GOOD = "GOOD"
    BAD = "BAD"


class Severity(str, Enum):
    """Severity levels for rules and findings."""

    ERROR = "error"  # Security or correctness problem
    WARN = "warn"  # Likely problem
    INFO = "info"  # Minor or stylistic

    @property
    def rank(self) -> int:
        return {"info": 0, "warn": 1, "error": 2}[self.value]


class DiagnosticKind(str, Enum):
    """Non-fatal conditions surfaced next to findings."""

    EXTRACTION_WARNING = "ExtractionWarning"
    DUPLICATE_RULE_WARNING = "DuplicateRuleWarning"
    FILE_SKIPPED = "FileSkipped"
    RULE_FAILURE = "RuleFailure"
    SCAN_CANCELLED = "ScanCancelled"


@dataclass(frozen=True)
class SectionRef:
    """Lookup-only pointer from an exemplar back to its section."""

    document_path: str
    section_index: int
    heading: str
    prose: str = ""  # Section text the rule message and severity are drawn from


@dataclass(frozen=True)
class CodeExample:
    """A fenced code block marked GOOD or BAD."""

    id: str  # e.g., "blocking-calls-1"
    language: Language
    polarity: Polarity
    source_text: str
    section_ref: SectionRef
    line_number: int  # Line of the opening fence
    marker: str = ""  # The marker line text, used for severity hints


@dataclass(frozen=True)
class Section:
    """A heading, its prose, and the exemplars under it."""

    heading: str
    level: int
    body: str
    line_number: int
    examples: tuple[CodeExample, ...] = ()


@dataclass(frozen=True)
class Document:
    """A loaded Markdown standards document."""

    path: str
    title: str
    sections: tuple[Section, ...] = ()

    @property
    def examples(self) -> list[CodeExample]:
        return [example for section in self.sections for example in section.examples]


@dataclass(frozen=True)
class MatcherSpec:
    """Serializable description of an anti-pattern predicate."""

    kind: str  # e.g., "blocking-call-in-async"
    params: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "params": list(self.params)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MatcherSpec":
        return cls(kind=data["kind"], params=tuple(data.get("params", ())))


@dataclass(frozen=True)
class Rule:
    """An executable check synthesized from a BAD exemplar."""

    id: str  # e.g., "python/blocking-call-in-async/1a2b3c4d"
    language: Language
    severity: Severity
    matcher: MatcherSpec
    message: str
    origin: str  # "<document path>#<example id>"
    good_example: str | None = None  # Suggested fix text

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "language": self.language.value,
            "severity": self.severity.value,
            "matcher": self.matcher.to_dict(),
            "message": self.message,
            "origin": self.origin,
            "good_example": self.good_example,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Rule":
        return cls(
            id=data["id"],
            language=Language(data["language"]),
            severity=Severity(data["severity"]),
            matcher=MatcherSpec.from_dict(data["matcher"]),
            message=data["message"],
            origin=data["origin"],
            good_example=data.get("good_example"),
        )


@dataclass(frozen=True)
class Finding:
    """A single rule violation in a target file."""

    rule_id: str
    file_path: Path
    line_start: int
    line_end: int
    message: str
    severity: Severity


@dataclass(frozen=True)
class Diagnostic:
    """Something that could not be checked, as opposed to something found."""

    kind: DiagnosticKind
    message: str
    path: str | None = None
    line_number: int | None = None
    rule_id: str | None = None


@dataclass
class ScanResult:
    """Result of scanning a file set."""

    findings: list[Finding] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    cancelled: bool = False
    files_scanned: int = 0
