"""Pytest configuration and shared fixtures."""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import pytest
import structlog


@dataclass(frozen=True)
class Sale:
    """Sample record type used across tests."""

    amount: float | None
    region: str
    discount: float | None = None


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Undo logging configuration done by CLI tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def sales() -> list[Sale]:
    """Small set of typed records."""
    return [
        Sale(amount=0.0, region="north", discount=None),
        Sale(amount=5.0, region="south", discount=0.2),
        Sale(amount=10.0, region="east", discount=None),
        Sale(amount=5.0, region="north", discount=0.4),
    ]


@pytest.fixture
def dict_records() -> list[dict[str, Any]]:
    """Records as plain dicts."""
    return [
        {"x": 1.0, "c": "a"},
        {"x": 2.0, "c": "b"},
        {"x": 3.0, "c": "c"},
        {"x": 4.0, "c": "a"},
    ]


@pytest.fixture
def large_records() -> list[dict[str, Any]]:
    """1000 deterministic records for sharding tests."""
    labels = ["red", "green", "blue", "cyan", "magenta", "yellow", "black"]
    return [
        {
            "x": ((i * 37) % 101) * 0.1,
            "c": labels[(i * 3) % len(labels)],
            "tags": [labels[i % 7], labels[(i + 2) % 7]],
        }
        for i in range(1000)
    ]
