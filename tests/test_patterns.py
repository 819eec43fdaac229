"""Tests for iot_ledger_sim.patterns – pattern models and the drift generator."""

from __future__ import annotations

import random

import pytest
from pydantic import TypeAdapter, ValidationError

from iot_ledger_sim.patterns import (
    ContinuousPattern,
    DiscretePattern,
    PatternSpec,
    encode_value,
    initial_value,
    next_value,
    propose,
)

# -----------------------------------------------------------------------
# Pattern models
# -----------------------------------------------------------------------


class TestPatternModels:
    """Construction, validation and the tagged union."""

    def test_continuous_defaults(self) -> None:
        spec = ContinuousPattern(min=0, max=10, step=1)
        assert spec.kind == "continuous"
        assert spec.monotonic is False

    def test_min_above_max_rejected(self) -> None:
        with pytest.raises(ValidationError, match="must not exceed"):
            ContinuousPattern(min=10, max=0, step=1)

    def test_negative_step_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ContinuousPattern(min=0, max=10, step=-1)

    def test_discrete_requires_values(self) -> None:
        with pytest.raises(ValidationError):
            DiscretePattern(values=[], probability=0.5)

    def test_discrete_duplicate_values_rejected(self) -> None:
        with pytest.raises(ValidationError, match="unique"):
            DiscretePattern(values=["open", "open"], probability=0.5)

    def test_probability_bounds(self) -> None:
        with pytest.raises(ValidationError):
            DiscretePattern(values=["a", "b"], probability=1.5)

    def test_union_dispatches_on_kind(self) -> None:
        adapter = TypeAdapter(PatternSpec)
        spec = adapter.validate_python({"kind": "discrete", "values": ["on", "off"], "probability": 0.2})
        assert isinstance(spec, DiscretePattern)
        spec = adapter.validate_python({"kind": "continuous", "min": 1, "max": 2, "step": 0.1})
        assert isinstance(spec, ContinuousPattern)

    def test_frozen(self) -> None:
        spec = ContinuousPattern(min=0, max=10, step=1)
        with pytest.raises(ValidationError, match="frozen"):
            spec.step = 2  # type: ignore[misc]


# -----------------------------------------------------------------------
# Continuous generator
# -----------------------------------------------------------------------


class TestContinuousGenerator:
    """Bounded drift and monotonic counters."""

    def test_stays_in_range(self) -> None:
        spec = ContinuousPattern(min=0, max=100, step=15)
        rng = random.Random(1)
        value: float | str = 50.0
        for _ in range(2000):
            value = next_value(spec, value, rng)
            assert spec.min <= value <= spec.max

    def test_one_step_from_25(self) -> None:
        spec = ContinuousPattern(min=20, max=35, step=0.5)
        for seed in range(200):
            value = next_value(spec, 25.0, random.Random(seed))
            assert 24.5 <= value <= 25.5

    def test_clamped_at_bounds(self) -> None:
        spec = ContinuousPattern(min=20, max=35, step=10)
        for seed in range(100):
            value = next_value(spec, 34.0, random.Random(seed))
            assert 24.0 <= value <= 35.0

    def test_monotonic_never_decreases(self) -> None:
        spec = ContinuousPattern(min=0, max=999_999, step=1, monotonic=True)
        rng = random.Random(7)
        prev: float = 0.0
        for _ in range(1000):
            value = next_value(spec, prev, rng)
            assert value >= prev
            prev = value

    def test_monotonic_encoded_never_decreases(self) -> None:
        spec = ContinuousPattern(min=0, max=999_999, step=1, monotonic=True)
        rng = random.Random(3)
        last = initial_value(spec)
        for _ in range(500):
            candidate = propose(spec, last, rng)
            assert float(candidate) >= float(last)
            last = candidate

    def test_zero_step_is_static(self) -> None:
        spec = ContinuousPattern(min=0, max=10, step=0)
        assert next_value(spec, 4.0, random.Random(0)) == 4.0

    def test_accepts_encoded_previous(self) -> None:
        spec = ContinuousPattern(min=20, max=35, step=0.5)
        value = next_value(spec, "25.00", random.Random(0))
        assert isinstance(value, float)

    def test_deterministic_with_seed(self) -> None:
        spec = ContinuousPattern(min=0, max=100, step=5)

        def run(seed: int) -> list[float | str]:
            rng = random.Random(seed)
            out: list[float | str] = []
            value: float | str = 50.0
            for _ in range(20):
                value = next_value(spec, value, rng)
                out.append(value)
            return out

        assert run(42) == run(42)
        assert run(42) != run(43)


# -----------------------------------------------------------------------
# Discrete generator
# -----------------------------------------------------------------------


class TestDiscreteGenerator:
    """Value flips stay inside the declared set."""

    def test_values_in_set(self) -> None:
        spec = DiscretePattern(values=["low", "mid", "high"], probability=0.5)
        rng = random.Random(5)
        value: float | str = "low"
        for _ in range(500):
            value = next_value(spec, value, rng)
            assert value in spec.values

    def test_probability_one_always_changes(self) -> None:
        spec = DiscretePattern(values=["open", "closed"], probability=1.0)
        rng = random.Random(0)
        value: float | str = "open"
        for _ in range(50):
            new = next_value(spec, value, rng)
            assert new != value
            value = new

    def test_probability_zero_never_changes(self) -> None:
        spec = DiscretePattern(values=["open", "closed"], probability=0.0)
        rng = random.Random(0)
        for _ in range(50):
            assert next_value(spec, "closed", rng) == "closed"

    def test_single_value_never_changes(self) -> None:
        spec = DiscretePattern(values=["on"], probability=1.0)
        assert next_value(spec, "on", random.Random(0)) == "on"


# -----------------------------------------------------------------------
# Encoding helpers
# -----------------------------------------------------------------------


class TestEncoding:
    def test_continuous_two_decimals(self) -> None:
        spec = ContinuousPattern(min=0, max=10, step=1)
        assert encode_value(spec, 3.14159) == "3.14"

    def test_discrete_verbatim(self) -> None:
        spec = DiscretePattern(values=["detected", "none"], probability=0.1)
        assert encode_value(spec, "none") == "none"

    def test_initial_values(self) -> None:
        assert initial_value(ContinuousPattern(min=15, max=35, step=0.5)) == "25.00"
        assert initial_value(DiscretePattern(values=["detected", "none"], probability=0.1)) == "detected"
