"""Exception hierarchy for svg-simplify.

Only XmlSyntaxError aborts a conversion. Every other error is raised where a
problem is detected and caught at the nearest stage boundary, which records a
Diagnostic and substitutes the neutral value for the failed construct.
"""

from __future__ import annotations


class SimplifyError(Exception):
    """Base class for all svg-simplify errors."""

    def __init__(self, message: str, node_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.node_id = node_id


class XmlSyntaxError(SimplifyError):
    """The input is not well-formed XML (fatal)."""

    def __init__(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        super().__init__(message)
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} (line {self.line}, column {self.column})"


class CyclicReferenceError(SimplifyError):
    """A reference chain loops back onto itself."""

    def __init__(self, chain: list[str], node_id: str | None = None) -> None:
        super().__init__(
            "cyclic reference: " + " -> ".join(f"#{ref}" for ref in chain),
            node_id,
        )
        self.chain = chain


class UnsupportedElementError(SimplifyError):
    """An element or feature that is passed over or degraded."""


class InvalidValueError(SimplifyError):
    """A malformed attribute or property value."""


class InvalidDimensionError(InvalidValueError):
    """A length or size that is malformed or out of range."""


class FontResolutionError(SimplifyError):
    """No usable font face, or a glyph missing from the resolved face."""


class ResourceLimitExceededError(SimplifyError):
    """Nesting depth or output size limit hit; the subtree is truncated."""


class ConfigError(SimplifyError):
    """Invalid configuration file or option value."""
