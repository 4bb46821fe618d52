"""
Pass-through transformers.

These need no fitted state from the data (Identity, Binarizer) or only the
vector length (VectorIdentity).
"""

from collections.abc import Sequence
from typing import Any

from featurespec.builders import FeatureWriter
from featurespec.errors import IncompatibleSettings, InsufficientData, OutOfDomain
from featurespec.transformers._encoding import decode_floats, encode_floats
from featurespec.transformers.base import Transformer, as_float, register_transformer


class _StatelessTransformer(Transformer[Any, None, None]):
    """Single-column transformer without fitted state."""

    @property
    def identity(self) -> None:
        return None

    def prepare(self, value: Any) -> None:
        return None

    def merge(self, left: None, right: None) -> None:
        return None

    def present(self, aggregate: None) -> None:
        return None

    def feature_names(self, state: None) -> list[str]:
        return [self.name]

    def encode_aggregator(self, state: None) -> str:
        return ""

    def decode_aggregator(self, text: str) -> None:
        if text:
            msg = f"{self.identifier} aggregator must be empty, got {text!r}"
            raise IncompatibleSettings(msg)
        return None


@register_transformer
class Identity(_StatelessTransformer):
    """Emit the numeric value unchanged. Missing values become 0."""

    identifier = "identity"

    def build_features(self, value: Any, state: None, writer: FeatureWriter) -> None:
        if value is None:
            writer.skip()
            return
        writer.add(as_float(self.name, value))


@register_transformer
class Binarizer(_StatelessTransformer):
    """Emit 1.0 when the value is strictly above a threshold, else 0.0."""

    identifier = "binarizer"

    def __init__(self, name: str, threshold: float = 0.0) -> None:
        super().__init__(name)
        self.threshold = float(threshold)

    @property
    def params(self) -> dict[str, Any]:
        return {"threshold": self.threshold}

    def build_features(self, value: Any, state: None, writer: FeatureWriter) -> None:
        if value is None:
            writer.skip()
            return
        writer.add(1.0 if as_float(self.name, value) > self.threshold else 0.0)


@register_transformer
class VectorIdentity(Transformer[Sequence[float], int | None, int]):
    """
    Emit a fixed-length numeric vector unchanged.

    The length is ``expected_length`` when given, otherwise the longest
    vector seen while fitting. Vectors of any other length are rejected.
    """

    identifier = "vector_identity"

    def __init__(self, name: str, expected_length: int = 0) -> None:
        super().__init__(name)
        self.expected_length = int(expected_length)

    @property
    def params(self) -> dict[str, Any]:
        return {"expected_length": self.expected_length}

    @property
    def identity(self) -> int | None:
        return None

    def prepare(self, value: Sequence[float]) -> int | None:
        try:
            return len(value)
        except TypeError as e:
            raise OutOfDomain(self.name, value, "expected a sequence") from e

    def merge(self, left: int | None, right: int | None) -> int | None:
        if left is None:
            return right
        if right is None:
            return left
        return max(left, right)

    def present(self, aggregate: int | None) -> int:
        if self.expected_length > 0:
            return self.expected_length
        if aggregate is None:
            raise InsufficientData(self.name, "vector length unknown without data")
        return aggregate

    def feature_names(self, state: int) -> list[str]:
        return [f"{self.name}_{i}" for i in range(state)]

    def feature_width(self, state: int) -> int:
        return state

    def build_features(
        self, value: Sequence[float] | None, state: int, writer: FeatureWriter
    ) -> None:
        if value is None:
            writer.skip(state)
            return
        length = self.prepare(value)
        if length != state:
            raise OutOfDomain(
                self.name, value, f"expected length {state}, got {length}"
            )
        writer.add_many(as_float(self.name, v) for v in value)

    def encode_aggregator(self, state: int) -> str:
        return encode_floats(length=state)

    def decode_aggregator(self, text: str) -> int:
        length = decode_floats(text, self.identifier, "length")["length"]
        if length < 0 or length != int(length):
            msg = f"Invalid {self.identifier} length {length!r}"
            raise IncompatibleSettings(msg)
        return int(length)
