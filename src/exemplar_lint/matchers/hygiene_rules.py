"""Token-level checks: bare except clauses and explicit any."""

from ..models import Language
from ..sketch import Sketch
from .base import AntiPatternMatcher, LineRange, is_op, unique_ranges


class BareExceptMatcher(AntiPatternMatcher):
    """Flags ``except:`` clauses that catch everything."""

    KIND = "bare-except"
    DESCRIPTION = "Bare except clause"
    LANGUAGES = frozenset({Language.PYTHON})

    def _lines(self, sketch: Sketch) -> list[LineRange]:
        tokens = sketch.tokens
        return unique_ranges(
            [
                (token.line, token.line)
                for index, token in enumerate(tokens[:-1])
                if token.kind == "name" and token.text == "except" and is_op(tokens[index + 1], ":")
            ]
        )

    def derive(self, sketch: Sketch) -> tuple[str, ...] | None:
        return () if self._lines(sketch) else None

    def match(self, sketch: Sketch, params: tuple[str, ...]) -> list[LineRange]:
        return self._lines(sketch)


class ExplicitAnyMatcher(AntiPatternMatcher):
    """Flags ``: any``, ``as any`` and ``<any>`` in TypeScript."""

    KIND = "explicit-any"
    DESCRIPTION = "Explicit any type"
    LANGUAGES = frozenset({Language.TYPESCRIPT})

    def _lines(self, sketch: Sketch) -> list[LineRange]:
        tokens = sketch.tokens
        ranges = []
        for index, token in enumerate(tokens):
            if token.kind != "name" or token.text != "any" or index == 0:
                continue
            previous = tokens[index - 1]
            following = tokens[index + 1] if index + 1 < len(tokens) else None
            if following is not None and (is_op(following, ".") or is_op(following, "(")):
                continue
            if is_op(previous, ":") or previous.text == "as":
                ranges.append((token.line, token.line))
            elif is_op(previous, "<") and following is not None and is_op(following, ">"):
                ranges.append((token.line, token.line))
        return unique_ranges(ranges)

    def derive(self, sketch: Sketch) -> tuple[str, ...] | None:
        return () if self._lines(sketch) else None

    def match(self, sketch: Sketch, params: tuple[str, ...]) -> list[LineRange]:
        return self._lines(sketch)
