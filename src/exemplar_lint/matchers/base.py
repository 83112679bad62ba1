"""Base class shared by anti-pattern matcher families."""

from fnmatch import fnmatchcase

from ..models import Language
from ..sketch import Sketch, Token

LineRange = tuple[int, int]


class AntiPatternMatcher:
    """A family of structural checks.

    ``derive`` looks at a BAD exemplar and returns the parameters of a rule
    (or None when the structure is absent); ``match`` evaluates those
    parameters against any sketch of the same language.
    """

    KIND = ""
    DESCRIPTION = ""
    LANGUAGES: frozenset[Language] = frozenset()

    def supports(self, language: Language) -> bool:
        return language in self.LANGUAGES

    def derive(self, sketch: Sketch) -> tuple[str, ...] | None:
        raise NotImplementedError

    def match(self, sketch: Sketch, params: tuple[str, ...]) -> list[LineRange]:
        raise NotImplementedError


def matching_pattern(name: str, patterns: tuple[str, ...]) -> str | None:
    """Return the first glob pattern matching a dotted call name."""
    for pattern in patterns:
        if fnmatchcase(name, pattern):
            return pattern
    return None


def is_op(token: Token, text: str) -> bool:
    return token.kind == "op" and token.text == text


def unique_ranges(ranges: list[LineRange]) -> list[LineRange]:
    return sorted(set(ranges))
