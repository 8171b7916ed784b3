"""Per-unit outcomes for chunk and batch work.

Every model-backed stage splits its input into units (chunks or batches) and
runs one model call per unit. A unit either yields ``Ok(value)`` or a
``PartialFailure`` carrying the reason it produced nothing. Stages merge the
``Ok`` values and keep the failures in a ``StageReport`` so callers can tell
"nothing found" apart from "some units broke".
"""

from dataclasses import dataclass, field
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A unit of work that completed and produced a value."""

    value: T


@dataclass(frozen=True)
class PartialFailure:
    """A unit of work that failed and contributes no output.

    Attributes:
        reason: Human-readable cause (network error, parse error, ...)
        unit: Label of the failed unit, e.g. ``"chunk 2/5"``
    """

    reason: str
    unit: str = ""

    def describe(self) -> str:
        return f"{self.unit}: {self.reason}" if self.unit else self.reason


Outcome = Union[Ok[T], PartialFailure]


@dataclass
class StageReport:
    """Failures collected while running one stage."""

    stage: str
    units: int = 0
    failures: list[PartialFailure] = field(default_factory=list)

    def record(self, outcome: "Outcome") -> None:
        self.units += 1
        if isinstance(outcome, PartialFailure):
            self.failures.append(outcome)

    @property
    def ok(self) -> bool:
        return not self.failures

    def error_messages(self) -> list[str]:
        return [f"{self.stage} {failure.describe()}" for failure in self.failures]
