"""Extract GOOD/BAD code exemplars from Markdown standards documents."""

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from common.logger import get_logger

from .models import (
    CodeExample,
    Diagnostic,
    DiagnosticKind,
    Document,
    Language,
    Polarity,
    Section,
    SectionRef,
)

logger = get_logger(__name__)

HEADING_PATTERN = re.compile(r"^ {0,3}(#{1,6})\s+(.*?)\s*#*\s*$")
FENCE_OPEN_PATTERN = re.compile(r"^(?P<indent> {0,3})(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
CODE_COMMENT_PATTERN = re.compile(r"^\s*(?:#+|//+|;+|/\*+|--|<!--)\s*")
LEADING_PUNCTUATION = re.compile(r"^[\s#*_>+\-/;:(\[<!|`.=~]+")

BAD_SYMBOLS = ("❌", "✗", "✖", "✘", "🚫", "👎", "⛔", "🔴")
GOOD_SYMBOLS = ("✅", "✔", "✓", "👍", "🟢")
VARIATION_SELECTOR = "\ufe0f"
SHORT_MARKER_LINE = 60
SYMBOL_PATTERN = re.compile("|".join(re.escape(s) for s in BAD_SYMBOLS + GOOD_SYMBOLS))
MARKER_WORD_PATTERN = re.compile(
    r"(?i)(bad|good)(\s+(?:example|pattern|practice|code|approach|usage|way))?\s*(?:[:\-)*(.]|$)"
)


def detect_polarity(line: str) -> Polarity | None:
    """Return the polarity a marker line announces, or None for plain prose.

    Accepts "✅ GOOD", "**❌ BAD:**", "Fixed version ✅ Good", "// Bad example",
    "<!-- GOOD -->" and similar. A polarity emoji may appear anywhere in the
    line and the first one decides. Without an emoji, the words GOOD/BAD must
    either lead the line (any case) or appear upper-cased in a short line.
    """
    text = line.strip().replace(VARIATION_SELECTOR, "")
    if not text or text.startswith("|"):
        return None

    symbol = SYMBOL_PATTERN.search(text)
    if symbol:
        return Polarity.BAD if symbol.group(0) in BAD_SYMBOLS else Polarity.GOOD

    rest = LEADING_PUNCTUATION.sub("", text)

    word = MARKER_WORD_PATTERN.match(rest)
    if word:
        return Polarity.BAD if word.group(1).lower() == "bad" else Polarity.GOOD

    if len(text) <= SHORT_MARKER_LINE:
        shouted = re.search(r"\b(BAD|GOOD)\b", text)
        if shouted:
            return Polarity(shouted.group(1))

    return None


def strip_marker(text: str) -> str:
    """Remove polarity emoji and GOOD/BAD words from a heading."""
    text = text.replace(VARIATION_SELECTOR, "")
    for symbol in BAD_SYMBOLS + GOOD_SYMBOLS:
        text = text.replace(symbol, "")
    text = re.sub(r"(?i)\b(bad|good)\b(\s+(example|pattern|practice|code))?", "", text)
    return text.strip(" \t:-*_()[]")


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug[:48].strip("-") or "section"


@dataclass
class _Block:
    info: str
    text: str
    line_number: int
    code_marker: tuple[Polarity, str] | None = None


@dataclass
class _Marker:
    polarity: Polarity
    text: str


@dataclass
class _RawSection:
    heading: str
    level: int
    line_number: int
    body: list[str] = field(default_factory=list)
    # Ordered blocks and markers as they appear under this heading
    events: list[_Block | _Marker] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.events and not any(line.strip() for line in self.body)


def _find_fence_close(lines: list[str], start: int, fence: str) -> int | None:
    """Find the closing fence for an opener at ``start``.

    Returns:
        Closing line index, or None when the block is unterminated. Reaching a
        later opener with an info string first also means it was never closed.
    """
    char = fence[0]
    close_pattern = re.compile(rf"^ {{0,3}}{re.escape(char)}{{{len(fence)},}}\s*$")
    reopen_pattern = re.compile(rf"^ {{0,3}}{re.escape(char)}{{{len(fence)},}}\s*[A-Za-z{{.]")
    for index in range(start + 1, len(lines)):
        if close_pattern.match(lines[index]):
            return index
        if reopen_pattern.match(lines[index]):
            return None
    return None


def _code_marker(text: str) -> tuple[Polarity, str] | None:
    for line in text.split("\n"):
        if not line.strip():
            continue
        leader = CODE_COMMENT_PATTERN.match(line)
        if not leader or not leader.group(0).strip():
            return None
        polarity = detect_polarity(line[leader.end() :])
        return (polarity, line.strip()) if polarity else None
    return None


def _scan_sections(text: str, path: str, diagnostics: list[Diagnostic]) -> Iterator[_RawSection]:
    """First pass: split a document into headings, prose, markers and code blocks.

    Each section is yielded once the next heading (or the end of the text)
    closes it. Extraction diagnostics are appended to ``diagnostics``.
    """
    lines = text.lstrip("\ufeff").replace("\r\n", "\n").split("\n")
    current = _RawSection(heading="", level=0, line_number=1)

    index = 0
    while index < len(lines):
        line = lines[index]

        opener = FENCE_OPEN_PATTERN.match(line)
        if opener and not (opener.group("fence")[0] == "`" and "`" in opener.group("info")):
            close = _find_fence_close(lines, index, opener.group("fence"))
            if close is None:
                diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.EXTRACTION_WARNING,
                        message="Unterminated code fence; block skipped",
                        path=path,
                        line_number=index + 1,
                    )
                )
                logger.warning(f"Unterminated code fence in {path} at line {index + 1}, skipping")
                # The broken block takes its marker with it
                if current.events and isinstance(current.events[-1], _Marker):
                    current.events.pop()
                index += 1
                continue

            indent = len(opener.group("indent"))
            body = [ln[indent:] if ln[:indent].isspace() else ln for ln in lines[index + 1 : close]]
            block_text = "\n".join(body)
            current.events.append(
                _Block(
                    info=opener.group("info").strip(),
                    text=block_text,
                    line_number=index + 1,
                    code_marker=_code_marker(block_text),
                )
            )
            index = close + 1
            continue

        heading = HEADING_PATTERN.match(line)
        if heading:
            heading_text = heading.group(2)
            if current.level or not current.is_empty:
                yield current
            current = _RawSection(
                heading=heading_text,
                level=len(heading.group(1)),
                line_number=index + 1,
            )
            polarity = detect_polarity(heading_text)
            if polarity:
                current.events.append(_Marker(polarity=polarity, text=heading_text))
            index += 1
            continue

        polarity = detect_polarity(line)
        if polarity:
            current.events.append(_Marker(polarity=polarity, text=line.strip()))
        else:
            current.body.append(line)
        index += 1

    if current.level or not current.is_empty:
        yield current


def _resolve_polarities(events: list[_Block | _Marker]) -> list[tuple[_Block, Polarity, str]]:
    """Second pass: assign each block in a section its marker.

    Precedence: a marker comment inside the block, then the last marker since
    the previous block, then a trailing marker that no later block claims.
    """
    resolved = []
    pending: _Marker | None = None

    for position, event in enumerate(events):
        if isinstance(event, _Marker):
            pending = event
            continue

        if event.code_marker:
            polarity, marker_text = event.code_marker
            resolved.append((event, polarity, marker_text))
        elif pending:
            resolved.append((event, pending.polarity, pending.text))
        else:
            trailing = _trailing_marker(events[position + 1 :])
            if trailing:
                resolved.append((event, trailing.polarity, trailing.text))
        pending = None

    return resolved


def _trailing_marker(following: list[_Block | _Marker]) -> _Marker | None:
    if not following or not isinstance(following[0], _Marker):
        return None
    if any(isinstance(event, _Block) for event in following):
        return None
    return following[0]


def _iter_sections(text: str, path: str, diagnostics: list[Diagnostic]) -> Iterator[Section]:
    """Build sections with their exemplars, one heading at a time.

    Exemplars before the first topic heading are named after the first
    level-1 heading seen so far, or the file stem.
    """
    title = ""
    counter = 0
    topic, topic_body = "", ""
    for section_index, raw in enumerate(_scan_sections(text, path, diagnostics)):
        body = "\n".join(raw.body).strip()
        stripped = strip_marker(raw.heading)
        if raw.level == 1 and stripped and not title:
            title = raw.heading
        if len(re.sub(r"[^A-Za-z]", "", stripped)) >= 3:
            topic, topic_body = stripped, body
        prose = body if body == topic_body else "\n".join(p for p in (body, topic_body) if p)

        examples = []
        for block, polarity, marker_text in _resolve_polarities(raw.events):
            counter += 1
            examples.append(
                CodeExample(
                    id=f"{slugify(topic or title or Path(path).stem)}-{counter}",
                    language=Language.from_info_string(block.info),
                    polarity=polarity,
                    source_text=block.text,
                    section_ref=SectionRef(
                        document_path=path,
                        section_index=section_index,
                        heading=topic or raw.heading,
                        prose=prose,
                    ),
                    line_number=block.line_number,
                    marker=marker_text,
                )
            )

        yield Section(
            heading=raw.heading,
            level=raw.level,
            body=body,
            line_number=raw.line_number,
            examples=tuple(examples),
        )


def parse_document(text: str, path: str | Path) -> tuple[Document, list[Diagnostic]]:
    """Parse Markdown text into a Document with its sections and exemplars.

    Args:
        text: Raw document text
        path: Path (or any identifier) of the document

    Returns:
        Tuple of (Document, extraction diagnostics)
    """
    path = str(path)
    diagnostics: list[Diagnostic] = []
    sections = tuple(_iter_sections(text, path, diagnostics))

    title = next(
        (s.heading for s in sections if s.level == 1 and strip_marker(s.heading)),
        Path(path).stem,
    )
    return Document(path=path, title=title, sections=sections), diagnostics


def load_document(path: Path) -> tuple[Document, list[Diagnostic]]:
    """Read and parse a Markdown document from disk.

    Raises:
        OSError: If the file cannot be read
        UnicodeDecodeError: If the file is not valid UTF-8
    """
    return parse_document(path.read_text(encoding="utf-8-sig"), path)


class ExampleSequence:
    """Lazy, restartable sequence of exemplars from one document.

    Each iteration re-parses the text section by section, so exemplars are
    produced as their section closes and iterating twice yields equal
    sequences. Diagnostics from the latest completed iteration are kept on
    ``diagnostics``.
    """

    def __init__(self, text: str, path: str | Path):
        self.text = text
        self.path = str(path)
        self.diagnostics: list[Diagnostic] = []

    def __iter__(self) -> Iterator[CodeExample]:
        diagnostics: list[Diagnostic] = []
        for section in _iter_sections(self.text, self.path, diagnostics):
            yield from section.examples
        self.diagnostics = diagnostics


def extract_examples(text: str, path: str | Path) -> ExampleSequence:
    """Return a lazy sequence of the GOOD/BAD exemplars in ``text``."""
    return ExampleSequence(text, path)
