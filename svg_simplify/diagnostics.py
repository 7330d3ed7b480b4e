"""Side channel for non-fatal problems found during a conversion."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from svg_simplify.exceptions import SimplifyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Diagnostic:
    """One recorded anomaly.

    Attributes:
        kind: Name of the exception class describing the problem
            (e.g. ``"CyclicReferenceError"``).
        node_id: Identity of the originating node, if any.
        message: Human readable cause.
    """

    kind: str
    node_id: str | None
    message: str

    def __str__(self) -> str:
        where = f" [{self.node_id}]" if self.node_id else ""
        return f"{self.kind}{where}: {self.message}"


class DiagnosticLog:
    """Ordered collection of diagnostics for one pipeline invocation."""

    def __init__(self) -> None:
        self._items: list[Diagnostic] = []
        self._seen: set[Diagnostic] = set()

    def record(self, error: SimplifyError, node_id: str | None = None) -> Diagnostic:
        diagnostic = Diagnostic(
            kind=type(error).__name__,
            node_id=node_id or error.node_id,
            message=error.message,
        )
        # The same problem is often met again when a definition is reused.
        if diagnostic in self._seen:
            return diagnostic
        self._seen.add(diagnostic)
        self._items.append(diagnostic)
        logger.debug("%s", diagnostic)
        return diagnostic

    def of_kind(self, kind: type[SimplifyError] | str) -> list[Diagnostic]:
        name = kind if isinstance(kind, str) else kind.__name__
        return [d for d in self._items if d.kind == name]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
