"""Pytest configuration and fixtures."""

import asyncio

import pytest

from quoter.bootstrap.coordinator import BootstrapCoordinator
from quoter.config import Settings
from quoter.quoting.builder import RouteRequestBuilder
from quoter.quoting.service import QuoteService
from tests.helpers import (
    BOOTSTRAP_BLOCK,
    FIXED_NOW,
    MAINNET,
    FakeClock,
    FakeProviderFactory,
    FakeRoutingEngine,
    FakeTokenProvider,
    make_route_result,
)

# =============================================================================
# Pytest fixtures
# =============================================================================


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock(now=1000.0)


@pytest.fixture
def settings() -> Settings:
    return Settings(chain_id=MAINNET)


@pytest.fixture
def token_provider() -> FakeTokenProvider:
    return FakeTokenProvider()


@pytest.fixture
def builder(token_provider: FakeTokenProvider) -> RouteRequestBuilder:
    """A route request builder at BOOTSTRAP_BLOCK with a frozen clock."""
    return RouteRequestBuilder(MAINNET, token_provider, BOOTSTRAP_BLOCK, clock=lambda: FIXED_NOW)


@pytest.fixture
def routing_engine() -> FakeRoutingEngine:
    return FakeRoutingEngine(make_route_result())


@pytest.fixture
def quote_service(builder: RouteRequestBuilder, routing_engine: FakeRoutingEngine) -> QuoteService:
    return QuoteService(MAINNET, builder, routing_engine)


@pytest.fixture
def provider_factory() -> FakeProviderFactory:
    return FakeProviderFactory()


@pytest.fixture
def ready_coordinator(
    settings: Settings, provider_factory: FakeProviderFactory
) -> BootstrapCoordinator:
    """A coordinator whose bootstrap already completed against fakes."""
    coordinator = BootstrapCoordinator(settings, provider_factory)
    asyncio.run(coordinator.run())
    return coordinator
