"""Review policy: which severities get reported and how they are labelled."""

from collections.abc import Callable
from dataclasses import dataclass, field
from types import MappingProxyType

from .models import Severity

SeverityFilter = Callable[[Severity], bool]


@dataclass(frozen=True)
class ReviewPolicy:
    """What an automated reviewer reports."""

    reported: frozenset[Severity]
    labels: MappingProxyType = field(
        default_factory=lambda: MappingProxyType(
            {Severity.ERROR: "HIGH", Severity.WARN: "MEDIUM", Severity.INFO: "LOW"}
        )
    )

    def includes(self, severity: Severity) -> bool:
        return severity in self.reported

    def label(self, severity: Severity) -> str:
        return self.labels[severity]


# Report HIGH and MEDIUM, skip LOW
REVIEW_POLICY = ReviewPolicy(reported=frozenset({Severity.ERROR, Severity.WARN}))


def report_all(severity: Severity) -> bool:
    return True


def severity_at_least(minimum: Severity | str) -> SeverityFilter:
    """Predicate accepting severities at or above ``minimum``.

    Example:
        >>> include = severity_at_least("warn")
        >>> include(Severity.ERROR), include(Severity.INFO)
        (True, False)
    """
    threshold = Severity(minimum).rank

    def include(severity: Severity) -> bool:
        return severity.rank >= threshold

    return include


def review_filter(policy: ReviewPolicy = REVIEW_POLICY) -> SeverityFilter:
    """Predicate accepting the severities a review policy reports."""
    return policy.includes
