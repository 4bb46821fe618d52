"""
Base class and registry for feature transformers.

A transformer turns the extracted values of one field into numeric columns.
Fitting is expressed as a commutative monoid over an aggregator type B:

1. prepare() - lift one observed value into B
2. merge() - combine two aggregators (associative and commutative)
3. present() - finalize B into the fitted state C

Transformation then only needs C: build_features() writes one record's
columns and encode_aggregator()/decode_aggregator() move C in and out of
a settings document.
"""

import math
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

from featurespec.builders import FeatureWriter
from featurespec.errors import OutOfDomain, UnknownTransformer
from featurespec.utils.logging import get_logger

log = get_logger(__name__)

A = TypeVar("A")
B = TypeVar("B")
C = TypeVar("C")


class Transformer(ABC, Generic[A, B, C]):
    """
    Abstract base class for per-field transformers.

    Subclasses set ``identifier`` to a stable tag that is written to
    settings documents as ``cls``, and are registered with
    ``register_transformer`` so settings can be inspected without the
    spec that produced them.

    Transformers hold configuration only. All state collected from
    records lives in the aggregator values passed through the methods.

    Attributes:
        identifier: Stable tag stored in settings.
        name: Field name, also the prefix of emitted feature names.
    """

    identifier: ClassVar[str] = ""

    def __init__(self, name: str) -> None:
        self.name = name

    @property
    def params(self) -> dict[str, Any]:
        """Constructor parameters (besides name) recorded in settings."""
        return {}

    @property
    @abstractmethod
    def identity(self) -> B:
        """Neutral element of the aggregator monoid."""
        ...

    @abstractmethod
    def prepare(self, value: A) -> B:
        """Lift a single observed value into the aggregator monoid."""
        ...

    def prepare_at(self, position: int, value: A) -> B:
        """
        Lift a value observed at a given record position.

        Transformers whose fitted state depends on first-seen order
        override this; the default ignores the position.
        """
        return self.prepare(value)

    @abstractmethod
    def merge(self, left: B, right: B) -> B:
        """Combine two aggregators."""
        ...

    @abstractmethod
    def present(self, aggregate: B) -> C:
        """
        Finalize an aggregator into fitted state.

        Raises:
            InsufficientData: If no fitted state can be built.
        """
        ...

    @abstractmethod
    def feature_names(self, state: C) -> list[str]:
        """Output feature names for this field given the fitted state."""
        ...

    def feature_width(self, state: C) -> int:
        """Number of output columns for this field."""
        return len(self.feature_names(state))

    @abstractmethod
    def build_features(self, value: A | None, state: C, writer: FeatureWriter) -> None:
        """
        Write the columns of one record.

        Raises:
            OutOfDomain: If the value cannot be encoded with the fitted state.
        """
        ...

    @abstractmethod
    def encode_aggregator(self, state: C) -> str:
        """Encode fitted state as text for a settings document."""
        ...

    @abstractmethod
    def decode_aggregator(self, text: str) -> C:
        """
        Decode fitted state from a settings document.

        Raises:
            IncompatibleSettings: If the text cannot be decoded.
        """
        ...

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transformer):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.name == other.name
            and self.params == other.params
        )

    def __hash__(self) -> int:
        return hash((type(self), self.name))

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.params.items())
        sep = ", " if args else ""
        return f"{self.__class__.__name__}({self.name!r}{sep}{args})"


# Global registry: identifier -> transformer class
_registry: dict[str, type[Transformer[Any, Any, Any]]] = {}

TransformerT = TypeVar("TransformerT", bound=type[Transformer[Any, Any, Any]])


def register_transformer(transformer_cls: TransformerT) -> TransformerT:
    """
    Register a transformer class under its identifier.

    Usable as a class decorator. Registration is append-only: registering
    the same class again is a no-op, registering a different class under
    a taken identifier is an error.

    Args:
        transformer_cls: Transformer subclass with a non-empty identifier.

    Returns:
        The class, unchanged.

    Raises:
        ValueError: If the identifier is empty or already taken.
    """
    identifier = transformer_cls.identifier
    if not identifier:
        msg = f"{transformer_cls.__name__} must define a non-empty identifier"
        raise ValueError(msg)

    existing = _registry.get(identifier)
    if existing is transformer_cls:
        return transformer_cls
    if existing is not None:
        msg = (
            f"Transformer identifier {identifier!r} is already registered "
            f"to {existing.__name__}"
        )
        raise ValueError(msg)

    _registry[identifier] = transformer_cls
    log.debug("Registered transformer", identifier=identifier, cls=transformer_cls.__name__)
    return transformer_cls


def get_transformer_class(identifier: str) -> type[Transformer[Any, Any, Any]]:
    """
    Look up a transformer class by identifier.

    Raises:
        UnknownTransformer: If nothing is registered under the identifier.
    """
    if identifier not in _registry:
        raise UnknownTransformer(identifier, list_transformers())
    return _registry[identifier]


def list_transformers() -> list[str]:
    """List all registered transformer identifiers."""
    return sorted(_registry)


def create_transformer(
    identifier: str,
    name: str,
    params: dict[str, Any] | None = None,
) -> Transformer[Any, Any, Any]:
    """
    Instantiate a registered transformer from its settings entry.

    Args:
        identifier: Registered transformer identifier (``cls``).
        name: Field name.
        params: Constructor parameters as stored in settings.

    Returns:
        New transformer instance.

    Raises:
        UnknownTransformer: If the identifier is not registered.
        ValueError: If the parameters do not fit the transformer.
    """
    transformer_cls = get_transformer_class(identifier)
    try:
        return transformer_cls(name, **(params or {}))
    except TypeError as e:
        msg = f"Invalid parameters for transformer {identifier!r}: {e}"
        raise ValueError(msg) from e


def as_float(field: str, value: Any) -> float:
    """
    Coerce an extracted value to float.

    Raises:
        OutOfDomain: If the value is not numeric, or is NaN or infinite.
    """
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    try:
        x = float(value)
    except (TypeError, ValueError) as e:
        raise OutOfDomain(field, value, "expected a number") from e
    if not math.isfinite(x):
        raise OutOfDomain(field, value, "expected a finite number")
    return x
