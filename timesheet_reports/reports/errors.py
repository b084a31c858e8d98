"""Structured errors raised or recorded while compiling reports."""

from __future__ import annotations

import enum


class ReportErrorKind(str, enum.Enum):
    INPUT_DEFAULTED = "input_defaulted"
    INVARIANT_VIOLATED = "invariant_violated"


class ReportError(Exception):
    """Report engine failure.

    ``input_defaulted`` errors are never raised by the compiler; they are
    collected on ``Report.issues`` to say that a caller-supplied value was
    unusable and a default was used instead. ``invariant_violated`` errors
    are raised and abort compilation, since they indicate an engine bug
    rather than bad data.
    """

    def __init__(self, kind: ReportErrorKind, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.field = field

    @property
    def fatal(self) -> bool:
        return self.kind is ReportErrorKind.INVARIANT_VIOLATED

    @classmethod
    def input_defaulted(cls, message: str, *, field: str | None = None) -> ReportError:
        return cls(ReportErrorKind.INPUT_DEFAULTED, message, field=field)

    @classmethod
    def invariant(cls, message: str) -> ReportError:
        return cls(ReportErrorKind.INVARIANT_VIOLATED, message)

    def as_dict(self) -> dict[str, object]:
        return {"kind": self.kind.value, "field": self.field, "message": self.message}
