"""Mutable collection fields on types declared immutable."""

import re

from ..models import Language
from ..sketch import Sketch
from .base import AntiPatternMatcher, LineRange, unique_ranges

PY_FIELD = re.compile(r"^\s*([A-Za-z_]\w*)\s*:\s*(.+?)\s*(?:=.*)?$")
PY_MUTABLE = re.compile(
    r"\b(list|dict|set|List|Dict|Set|DefaultDict|defaultdict|bytearray|deque|Deque"
    r"|MutableMapping|MutableSequence|MutableSet)\b"
)
PY_FROZEN_DECORATOR = re.compile(
    r"^@\s*(?:(?:dataclasses\.)?dataclass|attr\.s|attrs\.define|attr\.define|define)\s*\(.*frozen\s*=\s*True"
    r"|^@\s*(?:attrs\.|attr\.)?frozen\b"
)
PY_FROZEN_HEADER = re.compile(r"\bNamedTuple\b|frozen\s*=\s*True")
PY_FROZEN_BODY = re.compile(
    r"frozen\s*=\s*True|[\"']frozen[\"']\s*:\s*True|allow_mutation\s*=\s*False"
)
PY_NOT_FIELDS = ("def ", "async ", "class ", "return ", "@", "if ", "for ", "while ", "with ")

TS_FIELD = re.compile(r"^\s*(?:readonly\s+)?[\w$]+\??\s*:\s*(.+?)[;,]?\s*$")
TS_READONLY_ARRAY = re.compile(r"readonly\s+[\w$.]+(?:<[^>]*>)?(?:\[\])+|ReadonlyArray<[^>]*>")
TS_MUTABLE = {
    "array": re.compile(r"\[\]|\bArray<"),
    "map": re.compile(r"\bMap<"),
    "set": re.compile(r"\bSet<"),
}


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


class MutableModelFieldMatcher(AntiPatternMatcher):
    """Flags mutable collection annotations on frozen/readonly model types."""

    KIND = "mutable-model-field"
    DESCRIPTION = "Mutable collection field on an immutable model"
    LANGUAGES = frozenset({Language.PYTHON, Language.TYPESCRIPT})

    def _python_fields(self, sketch: Sketch):
        """Yield (line number, mutable type names) for fields of frozen Python classes."""
        lines = sketch.code_lines
        in_strings = sketch.string_continuation_lines()
        for number, line in enumerate(lines, start=1):
            if not re.match(r"^\s*class\s+\w+", line):
                continue
            indent = _indent(line)

            decorators = []
            above = number - 2
            while above >= 0 and lines[above].strip().startswith("@"):
                decorators.append(lines[above].strip())
                above -= 1

            body = []
            for body_number in range(number + 1, len(lines) + 1):
                text = lines[body_number - 1]
                if text.strip() and _indent(text) <= indent:
                    break
                body.append((body_number, text))

            frozen = (
                any(PY_FROZEN_DECORATOR.search(d) for d in decorators)
                or PY_FROZEN_HEADER.search(line)
                or any(PY_FROZEN_BODY.search(text) for _, text in body)
            )
            if not frozen:
                continue

            field_indent = next((_indent(t) for _, t in body if t.strip()), None)
            for body_number, text in body:
                if not text.strip() or _indent(text) != field_indent or body_number in in_strings:
                    continue
                if text.strip().startswith(PY_NOT_FIELDS):
                    continue
                field = PY_FIELD.match(text)
                if not field or field.group(2).startswith("ClassVar"):
                    continue
                names = {m.lower() for m in PY_MUTABLE.findall(field.group(2))}
                if names:
                    yield body_number, names

    def _typescript_fields(self, sketch: Sketch):
        """Yield (line number, mutable type names) for fields of readonly TS types."""
        tokens = sketch.tokens
        for index, token in enumerate(tokens):
            brace = None
            if token.kind == "name" and token.text == "interface":
                brace = next(
                    (i for i in range(index + 1, len(tokens)) if tokens[i].text == "{"), None
                )
                wrapped = False
            elif (
                token.kind == "name"
                and token.text == "Readonly"
                and index + 2 < len(tokens)
                and tokens[index + 1].text == "<"
                and tokens[index + 2].text == "{"
            ):
                brace = index + 2
                wrapped = True
            if brace is None:
                continue

            close = sketch.matching.get(brace, len(tokens) - 1)
            has_readonly = any(t.text == "readonly" for t in tokens[brace:close])
            if not (wrapped or has_readonly):
                continue

            first_line, last_line = tokens[brace].line, tokens[close].line
            for number in range(first_line + 1, last_line):
                field = TS_FIELD.match(sketch.code_lines[number - 1])
                if not field:
                    continue
                declared = TS_READONLY_ARRAY.sub("", field.group(1))
                names = {name for name, pattern in TS_MUTABLE.items() if pattern.search(declared)}
                if names:
                    yield number, names

    def _fields(self, sketch: Sketch):
        if sketch.language == Language.PYTHON:
            return self._python_fields(sketch)
        if sketch.language == Language.TYPESCRIPT:
            return self._typescript_fields(sketch)
        return iter(())

    def derive(self, sketch: Sketch) -> tuple[str, ...] | None:
        found: set[str] = set()
        for _, names in self._fields(sketch):
            found |= names
        return tuple(sorted(found)) or None

    def match(self, sketch: Sketch, params: tuple[str, ...]) -> list[LineRange]:
        wanted = set(params)
        return unique_ranges(
            [(number, number) for number, names in self._fields(sketch) if names & wanted]
        )
