"""Exceptions for exemplar-lint.

Everything recoverable is reported as a Diagnostic instead; these are the
conditions that stop an operation.
"""


class ExemplarLintError(Exception):
    """Base exception for exemplar-lint errors."""

    pass


class RegistryBuildFailed(ExemplarLintError):
    """No rule registry could be built (e.g., zero documents loadable)."""

    pass


class CacheError(ExemplarLintError):
    """A cached registry file is unreadable or has the wrong format."""

    pass


class UnknownMatcherError(ExemplarLintError):
    """A rule names a matcher kind that is not registered."""

    pass
