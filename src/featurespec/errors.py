"""
Error taxonomy for feature specification and extraction.

Spec-level and settings-level errors abort a whole extract. Record-level
errors (subclasses of RecordError) are isolated per record and reported
through FeatureExtractor.feature_results().
"""

from typing import Any


class FeatureSpecError(Exception):
    """Base class for all featurespec errors."""


class DuplicateFieldName(FeatureSpecError):
    """A field name (or an emitted feature name) occurs more than once."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Duplicate feature name: {name!r}")


class InvalidFieldName(FeatureSpecError):
    """A field name does not follow the feature naming convention."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        super().__init__(f"Invalid field name {name!r}: {reason}")


class InsufficientData(FeatureSpecError):
    """A transformer cannot build fitted state from the observed values."""

    def __init__(self, field: str, reason: str = "no values observed") -> None:
        self.field = field
        super().__init__(f"Insufficient data for field {field!r}: {reason}")


class IncompatibleSettings(FeatureSpecError):
    """A settings document does not match the spec it is applied to."""


class UnknownTransformer(IncompatibleSettings):
    """No transformer is registered under the given identifier."""

    def __init__(self, identifier: str, available: list[str]) -> None:
        self.identifier = identifier
        super().__init__(
            f"Unknown transformer {identifier!r}. Available: {', '.join(available)}"
        )


class EncodingOverflow(FeatureSpecError):
    """A transformer wrote outside of its slice of the output row."""

    def __init__(self, field: str, index: int, width: int) -> None:
        self.field = field
        self.index = index
        self.width = width
        super().__init__(
            f"Field {field!r} wrote at index {index} outside its width {width}"
        )


class RecordError(FeatureSpecError):
    """Base class for errors that only affect a single record."""

    field: str


class MissingRequiredValue(RecordError):
    """A required field produced no value for a record."""

    def __init__(self, field: str, record: Any = None) -> None:
        self.field = field
        self.record = record
        super().__init__(f"Missing value for required field {field!r}")


class OutOfDomain(RecordError):
    """A transformer rejected a value that its fitted state cannot encode."""

    def __init__(self, field: str, value: Any, reason: str = "") -> None:
        self.field = field
        self.value = value
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Value {value!r} out of domain for field {field!r}{detail}")
