"""Sensor value patterns and the drift generator.

Two pattern kinds exist:

* ``ContinuousPattern`` - a bounded numeric reading that drifts by at most
  ``step`` per tick (temperature, pressure, ...).  ``monotonic`` sensors only
  ever grow (cumulative counters such as energy consumed).
* ``DiscretePattern`` - one value out of a fixed set that flips to another
  member with a given probability (door open/closed, motion detected/none).

Values travel to the ledger as strings, so every helper here also knows how
to encode a value for its pattern.  :func:`next_value` is pure: pass a seeded
``random.Random`` to get reproducible sequences.
"""

from __future__ import annotations

import random
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, model_validator

__all__ = [
    "ContinuousPattern",
    "DiscretePattern",
    "PatternSpec",
    "encode_value",
    "initial_value",
    "next_value",
    "propose",
]


class ContinuousPattern(BaseModel):
    """Bounded numeric drift: ``value += uniform(-step, +step)``."""

    model_config = {"frozen": True}

    kind: Literal["continuous"] = "continuous"
    min: float
    max: float
    step: float = Field(ge=0.0)
    monotonic: bool = False

    @model_validator(mode="after")
    def _check_bounds(self) -> ContinuousPattern:
        if self.min > self.max:
            raise ValueError(f"min ({self.min}) must not exceed max ({self.max})")
        return self


class DiscretePattern(BaseModel):
    """A value drawn from ``values`` that changes with ``probability`` per tick."""

    model_config = {"frozen": True}

    kind: Literal["discrete"] = "discrete"
    values: list[str] = Field(min_length=1)
    probability: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_values(self) -> DiscretePattern:
        if len(set(self.values)) != len(self.values):
            raise ValueError(f"discrete values must be unique: {self.values}")
        return self


PatternSpec = Annotated[Union[ContinuousPattern, DiscretePattern], Field(discriminator="kind")]


def next_value(spec: PatternSpec, previous: float | str, rng: random.Random) -> float | str:
    """Return the next raw value for *spec* given the *previous* one."""
    if isinstance(spec, DiscretePattern):
        current = str(previous)
        if rng.random() < spec.probability:
            others = [v for v in spec.values if v != current]
            if others:
                return rng.choice(others)
        return current

    prev = float(previous)
    delta = rng.uniform(-spec.step, spec.step)
    if spec.monotonic:
        delta = abs(delta)
    return max(spec.min, min(spec.max, prev + delta))


def encode_value(spec: PatternSpec, value: float | str) -> str:
    """String form sent to the ledger (two decimals for numeric readings)."""
    if isinstance(spec, DiscretePattern):
        return str(value)
    return f"{float(value):.2f}"


def initial_value(spec: PatternSpec) -> str:
    """Encoded starting value: first allowed value, or the range midpoint."""
    if isinstance(spec, DiscretePattern):
        return spec.values[0]
    return encode_value(spec, (spec.min + spec.max) / 2)


def propose(spec: PatternSpec, last_value: str, rng: random.Random) -> str:
    """Encoded candidate for the next tick, starting from the encoded *last_value*."""
    return encode_value(spec, next_value(spec, last_value, rng))
