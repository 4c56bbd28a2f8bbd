"""Fixtures package for tests.

Re-export commonly used factories and fakes for convenient imports
from `tests._fixtures` package.
"""

from .factories import build_record, FakeFundamentalsSource
from .frozen_time import FrozenClock, ClockEvent
from .remote_api_responses import (
    FakeResponse,
    canned_api_factory,
    route_by_endpoint,
    SAMPLE_PROFILE,
    SAMPLE_METRIC,
    SAMPLE_QUOTE,
    SAMPLE_SYMBOLS,
)

__all__ = [
    "build_record",
    "FakeFundamentalsSource",
    "FrozenClock",
    "ClockEvent",
    "FakeResponse",
    "canned_api_factory",
    "route_by_endpoint",
    "SAMPLE_PROFILE",
    "SAMPLE_METRIC",
    "SAMPLE_QUOTE",
    "SAMPLE_SYMBOLS",
]
