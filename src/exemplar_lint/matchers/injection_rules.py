"""Injection-prone code: interpolated queries/commands and dynamic evaluation."""

from ..models import Language
from ..sketch import Call, Sketch, Token
from .base import AntiPatternMatcher, LineRange, is_op, matching_pattern, unique_ranges

QUERY_SINKS: dict[Language, tuple[str, ...]] = {
    Language.PYTHON: (
        "*execute",
        "*executemany",
        "*executescript",
        "*.raw",
        "text",
        "*.text",
        "*read_sql",
        "*read_sql_query",
        "*.query",
        "os.system",
        "os.popen",
        "subprocess.getoutput",
        "subprocess.getstatusoutput",
    ),
    Language.TYPESCRIPT: (
        "query",
        "*.query",
        "*.execute",
        "*.raw",
        "exec",
        "*.exec",
        "execSync",
        "*.execSync",
        "*.$queryRawUnsafe",
        "*.$executeRawUnsafe",
        "*.unsafe",
    ),
    Language.CLOJURE: (
        "jdbc/execute!",
        "jdbc/execute-one!",
        "jdbc/query",
        "jdbc/db-do-commands",
        "next.jdbc/execute!",
        "sql/query",
        "sql/execute!",
        "sh",
        "shell/sh",
        "clojure.java.shell/sh",
    ),
}

# Python process helpers that only reach a shell with shell=True
SHELL_TRUE_SINKS = (
    "subprocess.run",
    "subprocess.call",
    "subprocess.check_call",
    "subprocess.check_output",
    "subprocess.Popen",
)

EVAL_CALLS: dict[Language, tuple[str, ...]] = {
    Language.PYTHON: ("eval", "exec", "builtins.eval", "builtins.exec"),
    Language.TYPESCRIPT: ("eval", "window.eval", "globalThis.eval", "Function", "setTimeout"),
    Language.CLOJURE: ("read-string", "clojure.core/read-string", "eval", "load-string"),
}


def _is_interpolated(tokens: list[Token]) -> bool:
    """True when a token run builds a string from runtime values."""
    for index, token in enumerate(tokens):
        if token.kind != "string":
            continue
        if token.interpolated:
            return True
        after = tokens[index + 1] if index + 1 < len(tokens) else None
        before = tokens[index - 1] if index > 0 else None
        if after and (is_op(after, "%") or is_op(after, "+")):
            return True
        if before and is_op(before, "+"):
            return True
        if (
            after
            and is_op(after, ".")
            and index + 2 < len(tokens)
            and tokens[index + 2].text == "format"
        ):
            return True
    return False


def _has_shell_true(sketch: Sketch, call: Call) -> bool:
    tokens = sketch.tokens
    for index in range(call.open_index + 1, call.close_index - 2):
        if (
            tokens[index].text == "shell"
            and is_op(tokens[index + 1], "=")
            and tokens[index + 2].text == "True"
        ):
            return True
    return False


class InterpolatedQueryMatcher(AntiPatternMatcher):
    """Flags string interpolation handed straight to a query or shell call."""

    KIND = "interpolated-query"
    DESCRIPTION = "String interpolation in query or shell command"
    LANGUAGES = frozenset({Language.PYTHON, Language.TYPESCRIPT, Language.CLOJURE})

    def _sink(self, sketch: Sketch, call: Call, patterns: tuple[str, ...]) -> str | None:
        direct = tuple(p for p in patterns if p not in SHELL_TRUE_SINKS)
        pattern = matching_pattern(call.name, direct)
        if pattern:
            return pattern
        shell_sinks = tuple(p for p in patterns if p in SHELL_TRUE_SINKS)
        if sketch.language == Language.PYTHON and shell_sinks:
            shell_pattern = matching_pattern(call.name, shell_sinks)
            if shell_pattern and _has_shell_true(sketch, call):
                return shell_pattern
        return None

    def _interpolated_range(self, sketch: Sketch, call: Call) -> LineRange | None:
        if sketch.language == Language.CLOJURE:
            nested = [
                inner
                for inner in sketch.calls
                if call.open_index < inner.open_index < call.close_index
                and inner.name in ("str", "format")
            ]
            return (call.line, call.end_line) if nested else None

        argument = sketch.first_argument(call)
        if _is_interpolated(argument):
            return (call.line, call.end_line)

        # query = f"..."; cursor.execute(query)
        if len(argument) == 1 and argument[0].kind == "name":
            assigned = self._last_assignment(sketch, argument[0].text, call.first_index)
            if assigned and _is_interpolated(assigned):
                return (assigned[0].line, call.end_line)
        return None

    def _last_assignment(self, sketch: Sketch, name: str, before: int) -> list[Token] | None:
        tokens = sketch.tokens
        for index in range(before - 2, -1, -1):
            if tokens[index].kind != "name" or tokens[index].text != name:
                continue
            equals = tokens[index + 1]
            if not is_op(equals, "=") or (index + 2 < len(tokens) and is_op(tokens[index + 2], "=")):
                continue
            depth = sketch.depths[index + 1]
            value = []
            for position in range(index + 2, before):
                token = tokens[position]
                if token.line != equals.line and sketch.depths[position] <= depth:
                    break
                if is_op(token, ";") and sketch.depths[position] == depth:
                    break
                value.append(token)
            return value
        return None

    def _hits(self, sketch: Sketch, patterns: tuple[str, ...]):
        for call in sketch.calls:
            sink = self._sink(sketch, call, patterns)
            if not sink:
                continue
            line_range = self._interpolated_range(sketch, call)
            if line_range:
                yield sink, line_range

    def derive(self, sketch: Sketch) -> tuple[str, ...] | None:
        patterns = QUERY_SINKS.get(sketch.language, ())
        if sketch.language == Language.PYTHON:
            patterns = patterns + SHELL_TRUE_SINKS
        found = {sink for sink, _ in self._hits(sketch, patterns)}
        return tuple(sorted(found)) or None

    def match(self, sketch: Sketch, params: tuple[str, ...]) -> list[LineRange]:
        return unique_ranges([line_range for _, line_range in self._hits(sketch, params)])


class DynamicEvalMatcher(AntiPatternMatcher):
    """Flags evaluation of runtime strings as code."""

    KIND = "dynamic-eval"
    DESCRIPTION = "Dynamic evaluation of code"
    LANGUAGES = frozenset({Language.PYTHON, Language.TYPESCRIPT, Language.CLOJURE})

    def _qualifies(self, sketch: Sketch, call: Call) -> bool:
        previous = sketch.tokens[call.first_index - 1] if call.first_index > 0 else None
        if call.name == "Function":
            return previous is not None and previous.text == "new"
        if call.name == "setTimeout":
            argument = sketch.first_argument(call)
            return len(argument) == 1 and argument[0].kind == "string"
        return True

    def _hits(self, sketch: Sketch, patterns: tuple[str, ...]):
        for call in sketch.calls:
            pattern = matching_pattern(call.name, patterns)
            if pattern and self._qualifies(sketch, call):
                yield pattern, call

    def derive(self, sketch: Sketch) -> tuple[str, ...] | None:
        patterns = EVAL_CALLS.get(sketch.language, ())
        found = {pattern for pattern, _ in self._hits(sketch, patterns)}
        return tuple(sorted(found)) or None

    def match(self, sketch: Sketch, params: tuple[str, ...]) -> list[LineRange]:
        return unique_ranges([(call.line, call.end_line) for _, call in self._hits(sketch, params)])
