"""
featurespec: declarative feature extraction with reproducible settings.

Define a FeatureSpec mapping records to named fields and transformers,
fit it on training records, and reuse the fitted settings to transform
unseen records identically.

Example usage:
    >>> from featurespec import FeatureSpec, MinMaxScaler, OneHotEncoder
    >>> spec = (
    ...     FeatureSpec.of()
    ...     .required(lambda r: r["x"], MinMaxScaler("x"))
    ...     .required(lambda r: r["c"], OneHotEncoder("c"))
    ... )
    >>> fitted = spec.extract(train_records)
    >>> settings = fitted.feature_settings()
    >>> scored = spec.extract_with_settings(new_records, settings)
    >>> scored.feature_values("numpy")
"""

from importlib.metadata import version

from featurespec.codec import FeatureSettings, FeatureSettingsEntry, SettingsCodec
from featurespec.errors import (
    DuplicateFieldName,
    EncodingOverflow,
    FeatureSpecError,
    IncompatibleSettings,
    InsufficientData,
    InvalidFieldName,
    MissingRequiredValue,
    OutOfDomain,
    RecordError,
    UnknownTransformer,
)
from featurespec.extractor import FeatureExtractor, FeatureResult, FieldState
from featurespec.ops import CollectionOps, JoblibOps, ListOps, ShardedOps
from featurespec.persistence import load_settings, save_settings
from featurespec.spec import FeatureField, FeatureSpec
from featurespec.transformers import (
    Binarizer,
    Identity,
    MaxAbsScaler,
    MinMaxScaler,
    NHotEncoder,
    OneHotEncoder,
    StandardScaler,
    Transformer,
    VectorIdentity,
    register_transformer,
)

__version__ = version("featurespec")

__all__ = [
    "__version__",
    # Spec and extraction
    "FeatureExtractor",
    "FeatureField",
    "FeatureResult",
    "FeatureSpec",
    "FieldState",
    # Settings
    "FeatureSettings",
    "FeatureSettingsEntry",
    "SettingsCodec",
    "load_settings",
    "save_settings",
    # Collection drivers
    "CollectionOps",
    "JoblibOps",
    "ListOps",
    "ShardedOps",
    # Transformers
    "Binarizer",
    "Identity",
    "MaxAbsScaler",
    "MinMaxScaler",
    "NHotEncoder",
    "OneHotEncoder",
    "StandardScaler",
    "Transformer",
    "VectorIdentity",
    "register_transformer",
    # Errors
    "DuplicateFieldName",
    "EncodingOverflow",
    "FeatureSpecError",
    "IncompatibleSettings",
    "InsufficientData",
    "InvalidFieldName",
    "MissingRequiredValue",
    "OutOfDomain",
    "RecordError",
    "UnknownTransformer",
]
