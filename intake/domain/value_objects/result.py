"""Result value object — discriminated success/failure returned by use cases."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from intake.domain.value_objects.enums import ErrorKind


@dataclass(frozen=True)
class Result:
    ok: bool
    value: Any = None
    error: str | None = None
    kind: ErrorKind | None = None

    @classmethod
    def success(cls, value: Any = None, kind: ErrorKind | None = None) -> Result:
        return cls(ok=True, value=value, kind=kind)

    @classmethod
    def failure(cls, error: str, kind: ErrorKind = ErrorKind.DOWNSTREAM_FAILURE) -> Result:
        return cls(ok=False, error=error, kind=kind)

    @property
    def skipped(self) -> bool:
        """True for successes that intentionally did nothing (no rule, duplicate)."""
        return self.ok and self.kind in (ErrorKind.RULE_NO_MATCH, ErrorKind.DUPLICATE_OPPORTUNITY)
