from __future__ import annotations

from pathlib import Path

import pytest

from courtdata.simulation import SIMULATED_ENDPOINT, SimulatedCourtPortal
from courtdata.types import ProviderConfig


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fixture_path() -> Path:
    return Path(__file__).resolve().parents[1] / "data" / "fixtures" / "mock_portal.json"


@pytest.fixture
def portal(fixture_path):
    return SimulatedCourtPortal(fixture_path)


@pytest.fixture
def simulated_config():
    return ProviderConfig(
        api_endpoint=SIMULATED_ENDPOINT,
        api_key="test-key",
        retry_attempts=2,
        backoff_seconds=0.0,
        max_backoff_seconds=0.0,
    )
