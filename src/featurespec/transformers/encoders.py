"""
Categorical encoders with a vocabulary fitted from the data.

The vocabulary is ordered by the position of the first record in which
each label was seen, ties broken by label. The aggregator keeps
``{label: first_position}`` and merges by taking the smaller position, so
the order is the same however the records were sharded.
"""

from abc import abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

from featurespec.builders import FeatureWriter
from featurespec.errors import OutOfDomain
from featurespec.transformers._encoding import decode_labels, encode_labels
from featurespec.transformers.base import Transformer, register_transformer

Vocabulary = tuple[str, ...]
FirstSeen = Mapping[str, int]


def _merge_first_seen(left: FirstSeen, right: FirstSeen) -> FirstSeen:
    if not left:
        return right
    if not right:
        return left
    merged = dict(left)
    for label, position in right.items():
        current = merged.get(label)
        if current is None or position < current:
            merged[label] = position
    return merged


def _ordered_vocabulary(first_seen: FirstSeen) -> Vocabulary:
    return tuple(sorted(first_seen, key=lambda label: (first_seen[label], label)))


class _VocabularyEncoder(Transformer[Any, FirstSeen, Vocabulary]):
    """Shared fitting and encoding for vocabulary-based encoders."""

    def __init__(self, name: str, strict: bool = True) -> None:
        super().__init__(name)
        self.strict = bool(strict)

    @property
    def params(self) -> dict[str, Any]:
        return {"strict": self.strict}

    @property
    def identity(self) -> FirstSeen:
        return {}

    @abstractmethod
    def _labels(self, value: Any) -> Iterable[str]:
        """Labels carried by one extracted value."""
        ...

    def prepare(self, value: Any) -> FirstSeen:
        return self.prepare_at(0, value)

    def prepare_at(self, position: int, value: Any) -> FirstSeen:
        return {label: position for label in self._labels(value)}

    def merge(self, left: FirstSeen, right: FirstSeen) -> FirstSeen:
        return _merge_first_seen(left, right)

    def present(self, aggregate: FirstSeen) -> Vocabulary:
        return _ordered_vocabulary(aggregate)

    def feature_names(self, state: Vocabulary) -> list[str]:
        return [f"{self.name}_{label}" for label in state]

    def feature_width(self, state: Vocabulary) -> int:
        return len(state)

    def build_features(self, value: Any, state: Vocabulary, writer: FeatureWriter) -> None:
        if value is None:
            return
        index = {label: i for i, label in enumerate(state)}
        unseen = []
        for label in self._labels(value):
            i = index.get(label)
            if i is None:
                unseen.append(label)
            else:
                writer.add_at(i, 1.0)
        if unseen and self.strict:
            raise OutOfDomain(self.name, value, f"unseen labels {unseen}")

    def encode_aggregator(self, state: Vocabulary) -> str:
        return encode_labels(state)

    def decode_aggregator(self, text: str) -> Vocabulary:
        return decode_labels(text, self.identifier)


@register_transformer
class OneHotEncoder(_VocabularyEncoder):
    """
    One column per distinct label, set to 1.0 for the record's label.

    Unseen labels raise OutOfDomain when ``strict``, otherwise they
    produce an all-zero slice.
    """

    identifier = "one_hot"

    def _labels(self, value: Any) -> Iterable[str]:
        return (str(value),)


@register_transformer
class NHotEncoder(_VocabularyEncoder):
    """One column per distinct label; a record may set several of them."""

    identifier = "n_hot"

    def _labels(self, value: Any) -> Iterable[str]:
        if isinstance(value, str):
            return (value,)
        try:
            return tuple(dict.fromkeys(str(label) for label in value))
        except TypeError as e:
            raise OutOfDomain(self.name, value, "expected a collection of labels") from e
