"""
Declarative feature specifications.

A FeatureSpec is an ordered, immutable list of fields. Each field pairs an
extraction function over records with one transformer. Builder methods
return new specs, so a spec can be shared and extended freely:

    spec = (
        FeatureSpec.of()
        .required(lambda r: r["age"], MinMaxScaler("age"))
        .optional(lambda r: r.get("country"), OneHotEncoder("country"), default="unknown")
    )
    extractor = spec.extract(records)
"""

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import pandas as pd

from featurespec.codec import FeatureSettings
from featurespec.errors import DuplicateFieldName, InvalidFieldName, RecordError
from featurespec.extractor import FeatureExtractor
from featurespec.ops import CollectionOps
from featurespec.transformers.base import Transformer, register_transformer

T = TypeVar("T")

FIELD_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_.\-]*$")


def validate_field_name(name: str) -> None:
    """
    Check a field name against the feature naming convention.

    Transformers emit ``name`` or ``name_<suffix>`` columns, so names must
    be plain identifiers and must not end in the suffix separator.

    Raises:
        InvalidFieldName: If the name does not follow the convention.
    """
    if not isinstance(name, str) or not name:
        raise InvalidFieldName(str(name), "must be a non-empty string")
    if not FIELD_NAME_PATTERN.match(name):
        raise InvalidFieldName(
            name, f"must match {FIELD_NAME_PATTERN.pattern}"
        )
    if name.endswith("_"):
        raise InvalidFieldName(name, "must not end with '_'")


def is_missing(value: Any) -> bool:
    """Whether an extracted value is absent: None or a scalar pandas NA (NaN, NaT, NA)."""
    if value is None:
        return True
    return bool(pd.api.types.is_scalar(value) and pd.isna(value))


@dataclass(frozen=True)
class FeatureField(Generic[T]):
    """
    One named extraction bound to a transformer.

    Attributes:
        name: Field name, taken from the transformer.
        extract: Function from a record to a value (None when absent).
        transformer: Transformer fitted on and applied to the values.
        default: Substituted for None on optional fields (None = no default).
        required: Whether a None value is an error.
    """

    name: str
    extract: Callable[[T], Any]
    transformer: Transformer[Any, Any, Any]
    default: Any = None
    required: bool = True

    def value_of(self, record: T) -> Any:
        """
        Extract the value for a record, substituting the default if set.

        Missing values (None, or NaN from a DataFrame cell) come back as None.
        """
        value = self.extract(record)
        if is_missing(value):
            return None if self.required else self.default
        return value

    def prepare(self, position: int, record: T) -> Any:
        """
        Lift a record's value into this field's aggregator.

        Absent values and values the transformer rejects contribute the
        identity; the record reports the error again when it is transformed.
        """
        value = self.value_of(record)
        if value is None:
            return self.transformer.identity
        try:
            return self.transformer.prepare_at(position, value)
        except RecordError:
            return self.transformer.identity


@dataclass(frozen=True)
class FeatureSpec(Generic[T]):
    """
    Ordered collection of feature fields over records of type T.

    Field order determines the order of output columns. Field names are
    unique within a spec. The empty spec is valid and produces zero columns.
    """

    fields: tuple[FeatureField[T], ...] = ()

    @classmethod
    def of(cls) -> "FeatureSpec[T]":
        """Create an empty spec."""
        return cls()

    @classmethod
    def combine(cls, *specs: "FeatureSpec[T]") -> "FeatureSpec[T]":
        """
        Concatenate several specs over the same record type.

        Raises:
            DuplicateFieldName: If two specs share a field name.
        """
        combined: FeatureSpec[T] = cls()
        for spec in specs:
            for field in spec.fields:
                combined = combined._append(field)
        return combined

    @property
    def names(self) -> list[str]:
        """Field names in order."""
        return [field.name for field in self.fields]

    def __len__(self) -> int:
        return len(self.fields)

    def _append(self, field: FeatureField[T]) -> "FeatureSpec[T]":
        if not isinstance(field.transformer, Transformer):
            msg = f"Expected a Transformer, got {type(field.transformer).__name__}"
            raise TypeError(msg)
        validate_field_name(field.name)
        if field.name in self.names:
            raise DuplicateFieldName(field.name)
        register_transformer(type(field.transformer))
        return FeatureSpec(self.fields + (field,))

    def required(
        self,
        extract: Callable[[T], Any],
        transformer: Transformer[Any, Any, Any],
    ) -> "FeatureSpec[T]":
        """
        Add a field whose value must be present for every record.

        Args:
            extract: Function from a record to the field value.
            transformer: Transformer for the field; its name is the field name.

        Returns:
            New spec with the field appended.

        Raises:
            DuplicateFieldName: If the name is already used.
            InvalidFieldName: If the name breaks the naming convention.
        """
        return self._append(
            FeatureField(
                name=transformer.name,
                extract=extract,
                transformer=transformer,
                required=True,
            )
        )

    def optional(
        self,
        extract: Callable[[T], Any],
        transformer: Transformer[Any, Any, Any],
        default: Any = None,
    ) -> "FeatureSpec[T]":
        """
        Add a field whose value may be absent (None).

        When the extracted value is None and a default is given, the default
        is used for both fitting and transforming. Otherwise None is passed
        to the transformer, which decides how to encode it.

        Args:
            extract: Function from a record to the field value or None.
            transformer: Transformer for the field; its name is the field name.
            default: Value substituted for None, if any.

        Returns:
            New spec with the field appended.
        """
        return self._append(
            FeatureField(
                name=transformer.name,
                extract=extract,
                transformer=transformer,
                default=default,
                required=False,
            )
        )

    def extract(
        self,
        records: Iterable[T] | pd.DataFrame,
        ops: CollectionOps | None = None,
    ) -> FeatureExtractor[T]:
        """
        Fit every field on the records and bind them for transformation.

        Args:
            records: Records to fit on and transform.
            ops: Collection driver (default: sequential in-memory).

        Returns:
            Extractor exposing names, values, settings and results.

        Raises:
            InsufficientData: If a transformer cannot be fitted.
        """
        return FeatureExtractor.fit(self, records, ops)

    def extract_with_settings(
        self,
        records: Iterable[T] | pd.DataFrame,
        settings: str | bytes | FeatureSettings,
        ops: CollectionOps | None = None,
    ) -> FeatureExtractor[T]:
        """
        Bind records to previously fitted settings without fitting.

        Args:
            records: Records to transform.
            settings: Settings document from feature_settings().
            ops: Collection driver (default: sequential in-memory).

        Returns:
            Extractor using the given fitted state.

        Raises:
            IncompatibleSettings: If the settings do not match this spec.
        """
        return FeatureExtractor.from_settings(self, records, settings, ops)

