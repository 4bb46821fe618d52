"""
Feature transformers.

Every transformer fits a commutative monoid over the values of one field
and emits a fixed number of numeric columns per record. Built-in
transformers are registered under their identifier on import.

Available transformers:
    - Identity, Binarizer, VectorIdentity: pass-through values
    - MinMaxScaler, MaxAbsScaler, StandardScaler: numeric scaling
    - OneHotEncoder, NHotEncoder: categorical vocabularies
"""

from featurespec.transformers.base import (
    Transformer,
    create_transformer,
    get_transformer_class,
    list_transformers,
    register_transformer,
)
from featurespec.transformers.encoders import NHotEncoder, OneHotEncoder
from featurespec.transformers.identity import Binarizer, Identity, VectorIdentity
from featurespec.transformers.scalers import (
    MaxAbsScaler,
    MeanStd,
    MinMax,
    MinMaxScaler,
    StandardScaler,
)

__all__ = [
    # Base class and registry
    "Transformer",
    "create_transformer",
    "get_transformer_class",
    "list_transformers",
    "register_transformer",
    # Transformers
    "Binarizer",
    "Identity",
    "MaxAbsScaler",
    "MinMaxScaler",
    "NHotEncoder",
    "OneHotEncoder",
    "StandardScaler",
    "VectorIdentity",
    # Fitted state types
    "MeanStd",
    "MinMax",
]
