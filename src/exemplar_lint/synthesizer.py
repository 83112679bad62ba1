"""Turn BAD exemplars into executable rules."""

import hashlib
import json
import re

from common.constants import ERROR_SEVERITY_KEYWORDS, INFO_SEVERITY_KEYWORDS
from common.logger import get_logger

from .matchers.base import AntiPatternMatcher
from .matchers.catalog import matchers_for
from .models import CodeExample, Document, Language, MatcherSpec, Polarity, Rule, Severity
from .sketch import build_sketch

logger = get_logger(__name__)

MAX_MESSAGE_SENTENCE = 160


def _whole_words(fragments: tuple[str, ...]) -> list[re.Pattern]:
    return [re.compile(rf"\b(?:{fragment})\b", re.IGNORECASE) for fragment in fragments]


ERROR_PATTERNS = _whole_words(ERROR_SEVERITY_KEYWORDS)
INFO_PATTERNS = _whole_words(INFO_SEVERITY_KEYWORDS)

LINK_PATTERN = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
EMPHASIS_PATTERN = re.compile(r"\*+|`+|(?<!\w)_+|_+(?!\w)")
LIST_LEADER = re.compile(r"^\s*(?:[-*+>]|\d+[.)])\s+")
SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


def rule_id(language: Language, kind: str, params: tuple[str, ...]) -> str:
    """Content-derived rule id: identical patterns get identical ids."""
    canonical = json.dumps(
        {"kind": kind, "language": language.value, "params": list(params)},
        sort_keys=True,
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:8]
    return f"{language.value}/{kind}/{digest}"


def _plain(text: str) -> str:
    text = LINK_PATTERN.sub(r"\1", text)
    text = EMPHASIS_PATTERN.sub("", text)
    return LIST_LEADER.sub("", text).strip()


def first_sentence(prose: str) -> str:
    """First sentence of the first prose paragraph, markup stripped."""
    paragraph: list[str] = []
    for line in prose.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith(("|", "#", "<!--")):
            if paragraph:
                break
            continue
        paragraph.append(_plain(stripped))

    text = " ".join(p for p in paragraph if p)
    if not text:
        return ""
    sentence = SENTENCE_END.split(text, maxsplit=1)[0].strip()
    if len(sentence) > MAX_MESSAGE_SENTENCE:
        sentence = sentence[: MAX_MESSAGE_SENTENCE - 3].rstrip() + "..."
    return sentence


def rule_message(example: CodeExample, matcher: AntiPatternMatcher) -> str:
    """``"<heading>: <first sentence> (<family description>)"``.

    The family description is always present; heading and sentence are left
    out when the section has none.
    """
    heading = _plain(example.section_ref.heading)
    sentence = first_sentence(example.section_ref.prose)
    if sentence:
        sentence = f"{sentence} ({matcher.DESCRIPTION.lower()})"
    else:
        sentence = matcher.DESCRIPTION
    return f"{heading}: {sentence}" if heading else sentence


def rule_severity(example: CodeExample) -> Severity:
    """Pick a severity from the marker and section wording.

    A marker that calls the example minor, a nit or a style issue wins over
    everything else; security and correctness language makes it an error.
    """
    if any(p.search(example.marker) for p in INFO_PATTERNS):
        return Severity.INFO
    text = "\n".join((example.section_ref.heading, example.section_ref.prose, example.marker))
    if any(p.search(text) for p in ERROR_PATTERNS):
        return Severity.ERROR
    return Severity.WARN


def synthesize(
    example: CodeExample,
    good: CodeExample | None = None,
    disabled: set[str] | None = None,
) -> Rule | None:
    """Synthesize a rule from a BAD exemplar.

    Matcher families are tried in registration order. The first one that
    derives parameters from the exemplar, matches the exemplar's own text and
    stays silent on the paired GOOD exemplar produces the rule.

    Args:
        example: Exemplar to synthesize from
        good: Paired GOOD exemplar of the same language, if any
        disabled: Matcher kinds to skip

    Returns:
        The rule, or None for GOOD exemplars and patterns no family can express
    """
    if example.polarity != Polarity.BAD or example.language == Language.OTHER:
        return None
    if good is not None and good.language != example.language:
        good = None

    bad_sketch = build_sketch(example.source_text, example.language)
    good_sketch = build_sketch(good.source_text, good.language) if good else None

    for matcher in matchers_for(example.language, disabled):
        params = matcher.derive(bad_sketch)
        if params is None:
            continue
        if not matcher.match(bad_sketch, params):
            logger.debug(f"{matcher.KIND} derived {params} but does not match {example.id}")
            continue
        if good_sketch is not None and matcher.match(good_sketch, params):
            logger.debug(f"{matcher.KIND} also matches the GOOD pair of {example.id}, skipping")
            continue

        return Rule(
            id=rule_id(example.language, matcher.KIND, params),
            language=example.language,
            severity=rule_severity(example),
            matcher=MatcherSpec(kind=matcher.KIND, params=params),
            message=rule_message(example, matcher),
            origin=f"{example.section_ref.document_path}#{example.id}",
            good_example=good.source_text if good else None,
        )

    logger.debug(f"No mechanical rule for {example.section_ref.document_path}#{example.id}")
    return None


def pair_good(bad: CodeExample, examples: list[CodeExample]) -> CodeExample | None:
    """Nearest GOOD exemplar of the same language and topic in the same document.

    Ties go to the GOOD exemplar that follows the BAD one.
    """
    candidates = [
        e
        for e in examples
        if e.polarity == Polarity.GOOD
        and e.language == bad.language
        and e.section_ref.document_path == bad.section_ref.document_path
        and (
            e.section_ref.section_index == bad.section_ref.section_index
            or e.section_ref.heading == bad.section_ref.heading
        )
    ]
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda e: (abs(e.line_number - bad.line_number), e.line_number < bad.line_number),
    )


def synthesize_examples(
    examples: list[CodeExample], disabled: set[str] | None = None
) -> list[Rule]:
    """Synthesize rules for every BAD exemplar, in order, pairing GOOD ones from the same list."""
    rules = []
    for example in examples:
        if example.polarity != Polarity.BAD:
            continue
        rule = synthesize(example, pair_good(example, examples), disabled)
        if rule:
            rules.append(rule)
    return rules


def synthesize_document(document: Document, disabled: set[str] | None = None) -> list[Rule]:
    """Synthesize rules for all BAD exemplars of a document."""
    return synthesize_examples(document.examples, disabled)
