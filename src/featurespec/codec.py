"""
Settings document encoding.

A settings document records the fitted state of every field of a spec,
in spec order, so extraction can be reproduced on unseen records:

    {"version": 1,
     "features": [{"name": "x", "cls": "min_max", "params": {...},
                   "aggregator": "min:0.0,max:10.0"}]}

The engine only understands field order, names and ``cls`` tags. The
``aggregator`` payload belongs to the transformer named by ``cls``.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from featurespec.errors import IncompatibleSettings

SETTINGS_VERSION = 1
SUPPORTED_VERSIONS = frozenset({SETTINGS_VERSION})


class FeatureSettingsEntry(BaseModel):
    """Fitted state of a single field."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(description="Field name")
    cls: str = Field(description="Transformer identifier")
    params: dict[str, Any] = Field(
        default_factory=dict, description="Transformer constructor parameters"
    )
    aggregator: str = Field(description="Transformer-defined encoding of fitted state")


class FeatureSettings(BaseModel):
    """Versioned, ordered settings for all fields of a spec."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: int = Field(default=SETTINGS_VERSION, description="Document format version")
    features: list[FeatureSettingsEntry] = Field(default_factory=list)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: int) -> int:
        """Reject document versions this release cannot read."""
        if v not in SUPPORTED_VERSIONS:
            msg = f"Unsupported settings version {v}, supported: {sorted(SUPPORTED_VERSIONS)}"
            raise ValueError(msg)
        return v

    @property
    def names(self) -> list[str]:
        """Field names in order."""
        return [entry.name for entry in self.features]

    def __len__(self) -> int:
        return len(self.features)


class SettingsCodec:
    """Encode and decode settings documents as JSON text."""

    @staticmethod
    def encode(settings: FeatureSettings) -> str:
        """
        Encode settings as JSON.

        Field order is preserved and floats keep full precision.

        Args:
            settings: Settings to encode.

        Returns:
            JSON text.
        """
        payload = settings.model_dump(mode="json")
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))

    @staticmethod
    def decode(text: str | bytes) -> FeatureSettings:
        """
        Decode and validate a settings document.

        Args:
            text: JSON text as produced by encode().

        Returns:
            Parsed settings.

        Raises:
            IncompatibleSettings: If the text is not a valid settings document
                or uses an unsupported version.
        """
        try:
            return FeatureSettings.model_validate_json(text)
        except ValidationError as e:
            msg = f"Invalid settings document: {e}"
            raise IncompatibleSettings(msg) from e


def parse_settings(settings: str | bytes | FeatureSettings) -> FeatureSettings:
    """Accept either encoded text or an already decoded document."""
    if isinstance(settings, FeatureSettings):
        return settings
    return SettingsCodec.decode(settings)
