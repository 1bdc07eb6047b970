"""Define a minimal dataclass to represent the result of a pose estimation step."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

OutputT = TypeVar("OutputT")
"""Type variable representing output data associated with an estimate."""


class FusionFailure(Enum):
    """Reasons a marker or bundle has no estimate for the current frame."""

    NO_OBSERVATION = "no_observation"
    TRANSFORM_UNAVAILABLE = "transform_unavailable"
    INSUFFICIENT_POINTS = "insufficient_points"
    DEGENERATE_GEOMETRY = "degenerate_geometry"


@dataclass(frozen=True)
class Estimate(Iterable, Generic[OutputT]):
    """An estimated value, or the reason no value could be estimated."""

    output: OutputT | None = None
    failure: FusionFailure | None = None
    message: str = ""

    def __iter__(self) -> Iterator:
        """Return an iterator over the (success, message, output) values of the estimate."""
        return iter((self.success, self.message, self.output))

    @property
    def success(self) -> bool:
        """Evaluate whether the estimate holds an output value."""
        return self.failure is None

    @classmethod
    def ok(cls, output: OutputT, message: str = "") -> Estimate[OutputT]:
        """Construct a successful estimate holding the given output."""
        return cls(output=output, message=message)

    @classmethod
    def fail(cls, failure: FusionFailure, message: str) -> Estimate[OutputT]:
        """Construct a failed estimate explaining why no output exists."""
        return cls(failure=failure, message=message)
