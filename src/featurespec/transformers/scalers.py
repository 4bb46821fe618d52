"""
Scaling transformers fitted on summary statistics.

All aggregators here are exact: min/max are order-independent by nature and
the running sums of StandardScaler are kept as exact partial sums, so the
fitted state does not depend on how the records were sharded.
"""

import math
from dataclasses import dataclass
from typing import Any

from featurespec.builders import FeatureWriter
from featurespec.errors import IncompatibleSettings, InsufficientData
from featurespec.transformers._encoding import decode_floats, encode_floats
from featurespec.transformers.base import Transformer, as_float, register_transformer


class _SingleColumn:
    """Mixin for transformers that emit exactly one column named after the field."""

    name: str

    def feature_names(self, state: Any) -> list[str]:
        return [self.name]


@dataclass(frozen=True)
class MinMax:
    """Observed value range."""

    min: float
    max: float


@register_transformer
class MinMaxScaler(_SingleColumn, Transformer[float, MinMax | None, MinMax]):
    """
    Rescale values linearly from the observed range to ``[min, max]``.

    Values outside the fitted range are extrapolated, not clipped. A constant
    column (zero range) maps every value to ``min``.
    """

    identifier = "min_max"

    def __init__(self, name: str, min: float = 0.0, max: float = 1.0) -> None:
        super().__init__(name)
        if min >= max:
            msg = f"min must be below max, got min={min}, max={max}"
            raise ValueError(msg)
        self.min = float(min)
        self.max = float(max)

    @property
    def params(self) -> dict[str, Any]:
        return {"min": self.min, "max": self.max}

    @property
    def identity(self) -> MinMax | None:
        return None

    def prepare(self, value: float) -> MinMax | None:
        x = as_float(self.name, value)
        return MinMax(x, x)

    def merge(self, left: MinMax | None, right: MinMax | None) -> MinMax | None:
        if left is None:
            return right
        if right is None:
            return left
        return MinMax(min(left.min, right.min), max(left.max, right.max))

    def present(self, aggregate: MinMax | None) -> MinMax:
        if aggregate is None:
            raise InsufficientData(self.name)
        return aggregate

    def build_features(
        self, value: float | None, state: MinMax, writer: FeatureWriter
    ) -> None:
        if value is None:
            writer.skip()
            return
        x = as_float(self.name, value)
        span = state.max - state.min
        scaled = 0.0 if span == 0.0 else (x - state.min) / span
        writer.add(scaled * (self.max - self.min) + self.min)

    def encode_aggregator(self, state: MinMax) -> str:
        return encode_floats(min=state.min, max=state.max)

    def decode_aggregator(self, text: str) -> MinMax:
        values = decode_floats(text, self.identifier, "min", "max")
        if values["min"] > values["max"]:
            msg = f"Invalid {self.identifier} aggregator {text!r}: min above max"
            raise IncompatibleSettings(msg)
        return MinMax(values["min"], values["max"])


@register_transformer
class MaxAbsScaler(_SingleColumn, Transformer[float, float | None, float]):
    """Divide values by the largest absolute value seen while fitting."""

    identifier = "max_abs"

    @property
    def identity(self) -> float | None:
        return None

    def prepare(self, value: float) -> float | None:
        return abs(as_float(self.name, value))

    def merge(self, left: float | None, right: float | None) -> float | None:
        if left is None:
            return right
        if right is None:
            return left
        return max(left, right)

    def present(self, aggregate: float | None) -> float:
        if aggregate is None:
            raise InsufficientData(self.name)
        return aggregate

    def build_features(
        self, value: float | None, state: float, writer: FeatureWriter
    ) -> None:
        if value is None or state == 0.0:
            writer.skip()
            return
        writer.add(as_float(self.name, value) / state)

    def encode_aggregator(self, state: float) -> str:
        return encode_floats(max_abs=state)

    def decode_aggregator(self, text: str) -> float:
        return decode_floats(text, self.identifier, "max_abs")["max_abs"]


def _grow(partials: tuple[float, ...], x: float) -> tuple[float, ...]:
    """Add x to a non-overlapping expansion of partial sums (Shewchuk)."""
    out: list[float] = []
    for y in partials:
        if abs(x) < abs(y):
            x, y = y, x
        hi = x + y
        lo = y - (hi - x)
        if lo:
            out.append(lo)
        x = hi
    out.append(x)
    return tuple(out)


def _merge_partials(left: tuple[float, ...], right: tuple[float, ...]) -> tuple[float, ...]:
    for y in right:
        left = _grow(left, y)
    return left


@dataclass(frozen=True)
class Moments:
    """Count with exact running sums of values and squared values."""

    count: int
    total: tuple[float, ...]
    squares: tuple[float, ...]


@dataclass(frozen=True)
class MeanStd:
    """Fitted mean and population standard deviation."""

    mean: float
    std: float


@register_transformer
class StandardScaler(_SingleColumn, Transformer[float, Moments, MeanStd]):
    """
    Standardize values to zero mean and unit variance.

    Uses the population standard deviation. A constant column keeps its
    centered value (zero) instead of dividing by zero.
    """

    identifier = "standard"

    def __init__(self, name: str, with_mean: bool = True, with_std: bool = True) -> None:
        super().__init__(name)
        self.with_mean = bool(with_mean)
        self.with_std = bool(with_std)

    @property
    def params(self) -> dict[str, Any]:
        return {"with_mean": self.with_mean, "with_std": self.with_std}

    @property
    def identity(self) -> Moments:
        return Moments(0, (), ())

    def prepare(self, value: float) -> Moments:
        x = as_float(self.name, value)
        return Moments(1, (x,), (x * x,))

    def merge(self, left: Moments, right: Moments) -> Moments:
        return Moments(
            left.count + right.count,
            _merge_partials(left.total, right.total),
            _merge_partials(left.squares, right.squares),
        )

    def present(self, aggregate: Moments) -> MeanStd:
        n = aggregate.count
        if n == 0:
            raise InsufficientData(self.name)
        total = math.fsum(aggregate.total)
        mean = total / n
        variance = max(math.fsum(aggregate.squares) - total * mean, 0.0) / n
        return MeanStd(mean, math.sqrt(variance))

    def build_features(
        self, value: float | None, state: MeanStd, writer: FeatureWriter
    ) -> None:
        if value is None:
            writer.skip()
            return
        x = as_float(self.name, value)
        if self.with_mean:
            x -= state.mean
        if self.with_std and state.std > 0.0:
            x /= state.std
        writer.add(x)

    def encode_aggregator(self, state: MeanStd) -> str:
        return encode_floats(mean=state.mean, std=state.std)

    def decode_aggregator(self, text: str) -> MeanStd:
        values = decode_floats(text, self.identifier, "mean", "std")
        return MeanStd(values["mean"], values["std"])
