"""Lightweight syntax sketches of code snippets and source files.

A sketch is not a parse tree. Exemplars are fragments, so the tokenizer
tolerates unbalanced brackets and unterminated strings, and the derived
structure (calls, function spans, type bodies) is best-effort.
"""

import re
from bisect import bisect_right
from dataclasses import dataclass, field

from .models import Language

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {")", "]", "}"}

PY_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
TS_NAME = re.compile(r"[A-Za-z_$][\w$]*")
CLJ_SYMBOL = re.compile(r"[^\s()\[\]{}\"',;@^`~\\]+")
PY_STRING_PREFIX = re.compile(r"([rRbBuUfF]{1,2})?('''|\"\"\"|'|\")")
NUMBER = re.compile(r"\d[\w.]*")

CLOJURE_ASYNC_FORMS = {"go", "go-loop", "async/go", "async/go-loop", "a/go", "a/go-loop"}
# A name directly after these is being defined, not called
DEFINITION_KEYWORDS = {"def", "class", "function"}


@dataclass
class Token:
    kind: str  # "name", "string", "number", "op"
    text: str
    line: int
    interpolated: bool = False


@dataclass
class Call:
    """A call site: dotted callee name plus its bracket token range."""

    name: str
    line: int
    end_line: int
    open_index: int  # Index of "(" (for Clojure, of the form's "(")
    close_index: int
    first_index: int  # Index of the first token of the callee


@dataclass
class FunctionSpan:
    start_index: int
    end_index: int
    is_async: bool
    line: int


@dataclass
class Sketch:
    """Tokens and derived structure for one snippet or file."""

    language: Language
    lines: list[str]
    tokens: list[Token] = field(default_factory=list)
    matching: dict[int, int] = field(default_factory=dict)
    depths: list[int] = field(default_factory=list)
    calls: list[Call] = field(default_factory=list)
    functions: list[FunctionSpan] = field(default_factory=list)
    # Original lines with comments removed, string contents kept
    code_lines: list[str] = field(default_factory=list)

    def in_async(self, index: int) -> bool:
        """True when the innermost function around token ``index`` is async."""
        enclosing = [f for f in self.functions if f.start_index <= index <= f.end_index]
        if not enclosing:
            return False
        innermost = max(enclosing, key=lambda f: f.start_index)
        return innermost.is_async

    def string_continuation_lines(self) -> set[int]:
        """Line numbers that fall inside a multi-line string literal, after its first line."""
        lines: set[int] = set()
        for token in self.tokens:
            if token.kind == "string":
                lines.update(range(token.line + 1, token.line + token.text.count("\n") + 1))
        return lines

    def first_argument(self, call: Call) -> list[Token]:
        """Tokens of a call's first argument (up to the first top-level comma)."""
        depth = self.depths[call.open_index] + 1
        argument = []
        for index in range(call.open_index + 1, call.close_index):
            token = self.tokens[index]
            if token.kind == "op" and token.text == "," and self.depths[index] == depth:
                break
            argument.append(token)
        return argument


class _Lexer:
    """Single-pass character scanner shared by the three languages."""

    def __init__(self, text: str, language: Language):
        self.text = text
        self.language = language
        self.pos = 0
        self.line = 1
        self.tokens: list[Token] = []
        # Character spans of comments, removed from code_lines
        self.comments: list[tuple[int, int]] = []

    def run(self) -> list[Token]:
        text = self.text
        while self.pos < len(text):
            char = text[self.pos]
            if char == "\n":
                self.line += 1
                self.pos += 1
            elif char.isspace() or (char == "," and self.language == Language.CLOJURE):
                self.pos += 1
            elif self._comment_start():
                self._skip_comment()
            elif self.language == Language.PYTHON and PY_STRING_PREFIX.match(text, self.pos):
                self._python_string()
            elif self.language == Language.TYPESCRIPT and char in "'\"`":
                self._ts_string(char)
            elif self.language == Language.CLOJURE and (
                char == '"' or text.startswith('#"', self.pos)
            ):
                self._clojure_string()
            else:
                self._word_or_op()
        return self.tokens

    def _comment_start(self) -> bool:
        text, pos = self.text, self.pos
        if self.language == Language.PYTHON:
            return text[pos] == "#"
        if self.language == Language.TYPESCRIPT:
            return text.startswith("//", pos) or text.startswith("/*", pos)
        return text[pos] == ";"

    def _skip_comment(self):
        start = self.pos
        if self.text.startswith("/*", self.pos):
            end = self.text.find("*/", self.pos + 2)
            end = len(self.text) if end == -1 else end + 2
        else:
            end = self.text.find("\n", self.pos)
            end = len(self.text) if end == -1 else end
        self.line += self.text.count("\n", start, end)
        self.comments.append((start, end))
        self.pos = end

    def _emit_string(self, start: int, end: int, interpolated: bool):
        literal = self.text[start:end]
        self.tokens.append(Token("string", literal, self.line, interpolated))
        self.line += literal.count("\n")
        self.pos = end

    def _scan_quoted(self, start: int, quote: str, multiline: bool) -> int:
        pos = start
        while pos < len(self.text):
            if self.text[pos] == "\\":
                pos += 2
                continue
            if self.text.startswith(quote, pos):
                return pos + len(quote)
            if self.text[pos] == "\n" and not multiline:
                return pos
            pos += 1
        return len(self.text)

    def _python_string(self):
        match = PY_STRING_PREFIX.match(self.text, self.pos)
        prefix, quote = match.group(1) or "", match.group(2)
        end = self._scan_quoted(match.end(), quote, multiline=len(quote) == 3)
        body = self.text[match.end() : end]
        interpolated = "f" in prefix.lower() and bool(re.search(r"(?<!\{)\{(?!\{)", body))
        self._emit_string(self.pos, end, interpolated)

    def _ts_string(self, quote: str):
        if quote != "`":
            end = self._scan_quoted(self.pos + 1, quote, multiline=False)
            self._emit_string(self.pos, end, False)
            return

        pos, depth, interpolated = self.pos + 1, 0, False
        while pos < len(self.text):
            char = self.text[pos]
            if char == "\\":
                pos += 2
                continue
            if depth == 0 and char == "`":
                pos += 1
                break
            if self.text.startswith("${", pos):
                interpolated = True
                depth += 1
                pos += 2
                continue
            if depth and char == "{":
                depth += 1
            elif depth and char == "}":
                depth -= 1
            pos += 1
        self._emit_string(self.pos, min(pos, len(self.text)), interpolated)

    def _clojure_string(self):
        start = self.pos + (1 if self.text[self.pos] == "#" else 0)
        end = self._scan_quoted(start + 1, '"', multiline=True)
        self._emit_string(self.pos, end, False)

    def _word_or_op(self):
        pattern = {
            Language.PYTHON: PY_NAME,
            Language.TYPESCRIPT: TS_NAME,
            Language.CLOJURE: CLJ_SYMBOL,
        }[self.language]
        number = NUMBER.match(self.text, self.pos)
        match = pattern.match(self.text, self.pos)
        if number and self.language != Language.CLOJURE:
            self.tokens.append(Token("number", number.group(0), self.line))
            self.pos = number.end()
        elif match:
            self.tokens.append(Token("name", match.group(0), self.line))
            self.pos = match.end()
        else:
            self.tokens.append(Token("op", self.text[self.pos], self.line))
            self.pos += 1

    def code_lines(self) -> list[str]:
        chars = list(self.text)
        for start, end in self.comments:
            for index in range(start, end):
                if chars[index] != "\n":
                    chars[index] = " "
        return [line.rstrip() for line in "".join(chars).split("\n")]


def _match_brackets(tokens: list[Token]) -> tuple[dict[int, int], list[int]]:
    """Pair brackets; unmatched openers close at the end of the token list."""
    matching: dict[int, int] = {}
    depths: list[int] = []
    stack: list[int] = []
    for index, token in enumerate(tokens):
        if token.kind == "op" and token.text in CLOSERS:
            if stack and OPENERS[tokens[stack[-1]].text] == token.text:
                matching[stack.pop()] = index
            depths.append(len(stack))
            continue
        depths.append(len(stack))
        if token.kind == "op" and token.text in OPENERS:
            stack.append(index)
    for index in stack:
        matching[index] = len(tokens) - 1
    return matching, depths


def _dotted_calls(sketch: Sketch) -> list[Call]:
    tokens = sketch.tokens
    calls = []
    for index, token in enumerate(tokens):
        if not (token.kind == "op" and token.text == "(") or index == 0:
            continue
        if tokens[index - 1].kind != "name":
            continue
        first = index - 1
        while (
            first >= 2
            and tokens[first - 1].kind == "op"
            and tokens[first - 1].text == "."
            and tokens[first - 2].kind == "name"
        ):
            first -= 2
        if first > 0 and tokens[first - 1].text in DEFINITION_KEYWORDS:
            continue
        name = "".join(t.text for t in tokens[first:index])
        close = sketch.matching.get(index, len(tokens) - 1)
        calls.append(Call(name, tokens[first].line, tokens[close].line, index, close, first))
    return calls


def _clojure_calls(sketch: Sketch) -> list[Call]:
    tokens = sketch.tokens
    calls = []
    for index, token in enumerate(tokens[:-1]):
        if token.kind == "op" and token.text == "(" and tokens[index + 1].kind == "name":
            close = sketch.matching.get(index, len(tokens) - 1)
            calls.append(
                Call(tokens[index + 1].text, token.line, tokens[close].line, index, close, index + 1)
            )
    return calls


def _logical_line_starts(sketch: Sketch) -> dict[int, int]:
    """Map line number -> index of the first token starting a logical line (Python)."""
    starts: dict[int, int] = {}
    previous_line = 0
    for index, token in enumerate(sketch.tokens):
        is_closer = token.kind == "op" and token.text in CLOSERS
        if token.line != previous_line and sketch.depths[index] == 0 and not is_closer:
            starts.setdefault(token.line, index)
        previous_line = token.line
    return starts


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def _python_functions(sketch: Sketch) -> list[FunctionSpan]:
    tokens = sketch.tokens
    starts = _logical_line_starts(sketch)
    start_lines = sorted(starts)
    spans = []
    for index, token in enumerate(tokens):
        if token.kind != "name" or token.text != "def":
            continue
        is_async = index > 0 and tokens[index - 1].text == "async"
        head = index - 1 if is_async else index
        def_line = tokens[head].line
        indent = _indent(sketch.lines[def_line - 1])
        end = len(tokens) - 1
        for position in range(bisect_right(start_lines, def_line), len(start_lines)):
            line = start_lines[position]
            if _indent(sketch.lines[line - 1]) <= indent:
                end = starts[line] - 1
                break
        spans.append(FunctionSpan(head, end, is_async, def_line))
    return spans


def _ts_body_end(sketch: Sketch, start: int) -> int:
    """End of a function whose signature begins at ``start``."""
    tokens = sketch.tokens
    index = start
    while index < len(tokens):
        token = tokens[index]
        if token.kind == "op" and token.text == "(":
            index = sketch.matching.get(index, len(tokens) - 1) + 1
            continue
        if token.kind == "op" and token.text == "{":
            return sketch.matching.get(index, len(tokens) - 1)
        if token.kind == "op" and token.text == ">" and tokens[index - 1].text == "=":
            # Arrow function with an expression body
            if index + 1 < len(tokens) and tokens[index + 1].text == "{":
                return sketch.matching.get(index + 1, len(tokens) - 1)
            return _expression_end(sketch, index + 1)
        if token.kind == "op" and token.text == ";":
            return index
        index += 1
    return len(tokens) - 1


def _expression_end(sketch: Sketch, start: int) -> int:
    base = sketch.depths[start] if start < len(sketch.depths) else 0
    for index in range(start, len(sketch.tokens)):
        token = sketch.tokens[index]
        if token.kind == "op" and token.text in CLOSERS and sketch.depths[index] < base:
            return index - 1
        if token.kind == "op" and token.text in ";," and sketch.depths[index] == base:
            return index - 1
    return len(sketch.tokens) - 1


def _typescript_functions(sketch: Sketch) -> list[FunctionSpan]:
    tokens = sketch.tokens
    spans = []
    for index, token in enumerate(tokens):
        if token.kind != "name":
            continue
        if token.text == "async":
            spans.append(FunctionSpan(index, _ts_body_end(sketch, index + 1), True, token.line))
        elif token.text == "function" and not (index > 0 and tokens[index - 1].text == "async"):
            spans.append(FunctionSpan(index, _ts_body_end(sketch, index + 1), False, token.line))
    return spans


def _clojure_functions(sketch: Sketch) -> list[FunctionSpan]:
    return [
        FunctionSpan(call.open_index, call.close_index, True, call.line)
        for call in sketch.calls
        if call.name in CLOJURE_ASYNC_FORMS
    ]


def build_sketch(text: str, language: Language) -> Sketch:
    """Tokenize ``text`` and derive calls and function spans.

    Args:
        text: Snippet or file contents
        language: Language to tokenize as; ``Language.OTHER`` yields an empty sketch

    Returns:
        Sketch of the text
    """
    lines = text.split("\n")
    sketch = Sketch(language=language, lines=lines, code_lines=list(lines))
    if language == Language.OTHER:
        return sketch

    lexer = _Lexer(text, language)
    sketch.tokens = lexer.run()
    sketch.code_lines = lexer.code_lines()
    sketch.matching, sketch.depths = _match_brackets(sketch.tokens)

    if language == Language.CLOJURE:
        sketch.calls = _clojure_calls(sketch)
        sketch.functions = _clojure_functions(sketch)
    elif language == Language.PYTHON:
        sketch.calls = _dotted_calls(sketch)
        sketch.functions = _python_functions(sketch)
    else:
        sketch.calls = _dotted_calls(sketch)
        sketch.functions = _typescript_functions(sketch)
    return sketch
