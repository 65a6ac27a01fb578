# rxprint/core/errors.py
from __future__ import annotations

from typing import Any, List, Optional


class RxError(RuntimeError):
    """Base class for every error this package raises on purpose."""


class ValidationError(RxError):
    """
    Form input rejected before it reaches the store or the compositor.

    `errors` holds one human readable message per offending field.
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors: List[str] = list(errors or [])

    @property
    def message(self) -> str:
        if not self.errors:
            return str(self.args[0])
        return f"{self.args[0]}: " + "; ".join(self.errors)


class ParseError(RxError):
    """Malformed dosage pattern string."""


class PersistenceError(RxError):
    """Backing store unreachable or write rejected."""


class NotFoundError(RxError):
    pass


class OverflowWarning(RxError):
    """
    Medicine list does not fit the printable block.

    `document` holds the pages composed with the entries that did fit, so a
    caller that accepts the truncation can still print it.
    """

    def __init__(self, message: str, *, document: Any, placed: int,
                 total: int):
        super().__init__(message)
        self.document = document
        self.placed = placed
        self.total = total

    @property
    def omitted(self) -> int:
        return self.total - self.placed
