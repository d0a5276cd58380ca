"""Shared fixtures: settings, a metrics store and a gateway wired to a fake client."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from insight_pipeline.client import ModelGateway
from insight_pipeline.config import Settings
from insight_pipeline.metrics import MetricsStore

from .fakes import FakeAnthropic


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key="test-key", model="test-model", max_tokens=321, temperature=0.3)


@pytest.fixture
def store() -> MetricsStore:
    return MetricsStore()


@pytest.fixture
def make_gateway(settings: Settings, store: MetricsStore):
    """Build a gateway whose backend answers with ``responder(prompt)``."""

    def factory(responder: Callable[[str], Any]) -> ModelGateway:
        return ModelGateway(settings, store, client=FakeAnthropic(responder))

    return factory
