"""Shared fixtures: a fake engine served in-process to the gateway."""

import pytest

from tests.helpers import FakeEngine
from vcp.protocol.engine import EngineGateway

ENGINE_URL = "http://engine"


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def make_gateway(fake_engine):
    """Build a gateway for any library, routed to the fake engine."""

    def _make(crypto_library: str = "DNC") -> EngineGateway:
        return EngineGateway(crypto_library, base_url=ENGINE_URL, transport=fake_engine.transport())

    return _make


@pytest.fixture
def gateway(make_gateway) -> EngineGateway:
    return make_gateway("DNC")
