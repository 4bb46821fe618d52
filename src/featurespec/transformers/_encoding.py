"""Text encodings for fitted transformer state."""

import json

from featurespec.errors import IncompatibleSettings


def encode_floats(**values: float) -> str:
    """Encode named floats with round-trip precision."""
    return ",".join(f"{key}:{float(value)!r}" for key, value in values.items())


def decode_floats(text: str, identifier: str, *keys: str) -> dict[str, float]:
    """
    Decode named floats written by encode_floats.

    Raises:
        IncompatibleSettings: If a key is missing or a value is not a float.
    """
    values: dict[str, float] = {}
    try:
        for part in text.split(","):
            key, _, raw = part.partition(":")
            values[key] = float(raw)
    except ValueError as e:
        msg = f"Cannot decode {identifier} aggregator {text!r}: {e}"
        raise IncompatibleSettings(msg) from e

    missing = [key for key in keys if key not in values]
    if missing:
        msg = f"Cannot decode {identifier} aggregator {text!r}: missing {missing}"
        raise IncompatibleSettings(msg)
    return {key: values[key] for key in keys}


def encode_labels(labels: tuple[str, ...]) -> str:
    """Encode an ordered label vocabulary as a compact JSON array."""
    return json.dumps(list(labels), ensure_ascii=False, separators=(",", ":"))


def decode_labels(text: str, identifier: str) -> tuple[str, ...]:
    """
    Decode a vocabulary written by encode_labels.

    Raises:
        IncompatibleSettings: If the text is not a JSON array of strings.
    """
    try:
        labels = json.loads(text)
    except json.JSONDecodeError as e:
        msg = f"Cannot decode {identifier} aggregator {text!r}: {e}"
        raise IncompatibleSettings(msg) from e

    if not isinstance(labels, list) or not all(isinstance(x, str) for x in labels):
        msg = f"Cannot decode {identifier} aggregator {text!r}: expected a list of labels"
        raise IncompatibleSettings(msg)
    return tuple(labels)
