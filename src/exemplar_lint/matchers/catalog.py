"""Registered matcher families, keyed by kind name."""

from ..errors import UnknownMatcherError
from ..models import Language
from .async_rules import BlockingCallInAsyncMatcher
from .base import AntiPatternMatcher
from .hygiene_rules import BareExceptMatcher, ExplicitAnyMatcher
from .injection_rules import DynamicEvalMatcher, InterpolatedQueryMatcher
from .model_rules import MutableModelFieldMatcher

MATCHERS: dict[str, AntiPatternMatcher] = {}


def register_matcher(matcher: AntiPatternMatcher) -> AntiPatternMatcher:
    """Add a matcher family; later registrations replace earlier ones of the same kind."""
    MATCHERS[matcher.KIND] = matcher
    return matcher


def get_matcher(kind: str) -> AntiPatternMatcher:
    """Look up a matcher family by kind.

    Raises:
        UnknownMatcherError: If no family with that kind is registered
    """
    try:
        return MATCHERS[kind]
    except KeyError:
        raise UnknownMatcherError(f"No matcher registered for kind '{kind}'") from None


def matchers_for(language: Language, disabled: set[str] | None = None) -> list[AntiPatternMatcher]:
    """Enabled matcher families supporting ``language``, in registration order."""
    disabled = disabled or set()
    return [m for kind, m in MATCHERS.items() if kind not in disabled and m.supports(language)]


for _matcher in (
    BlockingCallInAsyncMatcher(),
    InterpolatedQueryMatcher(),
    DynamicEvalMatcher(),
    MutableModelFieldMatcher(),
    BareExceptMatcher(),
    ExplicitAnyMatcher(),
):
    register_matcher(_matcher)
