"""Tests for the /quote and /health endpoints."""

import asyncio
import time

import pytest
from fastapi.testclient import TestClient

from quoter.api.endpoints import get_coordinator
from quoter.api.main import create_app
from quoter.bootstrap.coordinator import BootstrapCoordinator
from quoter.bootstrap.state import ServiceState
from tests.helpers import BOOTSTRAP_BLOCK, FakeProviderFactory, make_quote_params

NOT_READY = {
    "success": False,
    "error": "Service is still initializing. Please try again in a moment.",
}


@pytest.fixture
def client(settings, ready_coordinator):
    """Client for an application whose bootstrap has completed."""
    app = create_app(settings, coordinator=ready_coordinator, start_bootstrap=False)
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def pending_coordinator(settings):
    return BootstrapCoordinator(settings, FakeProviderFactory())


@pytest.fixture
def pending_client(settings, pending_coordinator):
    """Client for an application whose bootstrap never started."""
    app = create_app(settings, coordinator=pending_coordinator, start_bootstrap=False)
    return TestClient(app, raise_server_exceptions=False)


class TestQuoteEndpoint:
    def test_get_success(self, client):
        response = client.get("/quote", params=make_quote_params(exactIn="true"))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["quote"] == "2500.123456"
        assert body["data"]["blockNumber"] == str(BOOTSTRAP_BLOCK)
        assert "error" not in body

    def test_post_success(self, client):
        response = client.post("/quote", json=make_quote_params())

        assert response.status_code == 200
        assert response.json()["data"]["quoteGasAdjusted"] == "2495.56"

    def test_get_and_post_agree(self, client):
        via_get = client.get("/quote", params=make_quote_params(exactIn="true")).json()
        via_post = client.post("/quote", json=make_quote_params()).json()
        assert via_get == via_post

    def test_business_error_is_200(self, client):
        response = client.get(
            "/quote", params=make_quote_params(exactIn="true", protocols="V2,BOGUS")
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": False,
            "error": "Protocols invalid. Valid options: V2,V3,V4,MIXED",
        }

    def test_missing_direction_is_200(self, client):
        response = client.post("/quote", json=make_quote_params(exactIn=None))

        assert response.status_code == 200
        assert response.json()["error"] == "Must set either exactIn or exactOut"

    def test_malformed_json(self, client):
        response = client.post(
            "/quote", content=b"{not json", headers={"content-type": "application/json"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["error"].startswith("Malformed JSON body")

    def test_non_object_body(self, client):
        response = client.post("/quote", json=[1, 2, 3])

        assert response.status_code == 200
        assert response.json()["error"] == "Request body must be a JSON object"


class TestReadinessGate:
    def test_uninitialized_is_503(self, pending_client):
        response = pending_client.get("/quote", params=make_quote_params(exactIn="true"))

        assert response.status_code == 503
        assert response.json() == NOT_READY

    def test_initializing_is_503(self, pending_client, pending_coordinator):
        pending_coordinator.readiness.transition(ServiceState.INITIALIZING)

        response = pending_client.post("/quote", json=make_quote_params())
        assert response.status_code == 503
        assert response.json() == NOT_READY

    def test_failed_bootstrap_stays_503(self, settings):
        coordinator = BootstrapCoordinator(
            settings, FakeProviderFactory(fail_at="create_simulator")
        )
        app = create_app(settings, coordinator=coordinator)

        with TestClient(app) as client:
            _wait_for(lambda: coordinator.state is ServiceState.FAILED)
            response = client.get("/quote", params=make_quote_params(exactIn="true"))
            health = client.get("/health").json()

        assert response.status_code == 503
        assert health["status"] == "INITIALIZING"
        assert health["state"] == "FAILED"

    def test_gate_precedes_body_parsing(self, pending_client):
        response = pending_client.post(
            "/quote", content=b"{not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 503


class TestHealth:
    def test_ready(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "OK"
        assert body["initialized"] is True
        assert body["state"] == "READY"
        assert "T" in body["timestamp"]

    def test_initializing(self, pending_client):
        response = pending_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "INITIALIZING"
        assert response.json()["initialized"] is False
        assert response.json()["state"] == "UNINITIALIZED"

    def test_bootstrap_runs_on_startup(self, settings):
        coordinator = BootstrapCoordinator(settings, FakeProviderFactory())
        app = create_app(settings, coordinator=coordinator)

        with TestClient(app) as client:
            _wait_for(lambda: coordinator.is_ready)
            body = client.get("/health").json()

        assert body["status"] == "OK"
        assert body["initialized"] is True


class StalledProviderFactory(FakeProviderFactory):
    """Bootstrap that never gets past loading the token list."""

    async def create_token_list_provider(self, cache):
        self._record("create_token_list_provider", cache)
        await asyncio.sleep(3600)


class TestLifespan:
    @pytest.mark.asyncio
    async def test_initializing_before_bootstrap_task_runs(self, settings):
        factory = StalledProviderFactory()
        coordinator = BootstrapCoordinator(settings, factory)
        app = create_app(settings, coordinator=coordinator)

        async with app.router.lifespan_context(app):
            assert factory.calls == []
            assert coordinator.state is ServiceState.INITIALIZING

        assert factory.closed is True

    def test_health_while_bootstrapping(self, settings):
        coordinator = BootstrapCoordinator(settings, StalledProviderFactory())
        app = create_app(settings, coordinator=coordinator)

        with TestClient(app) as client:
            health = client.get("/health").json()
            response = client.get("/quote", params=make_quote_params(exactIn="true"))

        assert health["state"] == "INITIALIZING"
        assert response.status_code == 503

    def test_shutdown_cancels_bootstrap_and_closes(self, settings):
        factory = StalledProviderFactory()
        coordinator = BootstrapCoordinator(settings, factory)
        app = create_app(settings, coordinator=coordinator)

        with TestClient(app):
            task = app.state.bootstrap_task

        assert task.cancelled()
        assert factory.closed is True
        assert coordinator.state is ServiceState.INITIALIZING

    def test_shutdown_after_ready_closes(self, settings):
        factory = FakeProviderFactory()
        coordinator = BootstrapCoordinator(settings, factory)
        app = create_app(settings, coordinator=coordinator)

        with TestClient(app):
            _wait_for(lambda: coordinator.is_ready)

        assert factory.closed is True


class TestErrorHandlers:
    def test_unknown_route(self, client):
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Route not found"}

    def test_unhandled_exception(self, client):
        class ExplodingCoordinator:
            @property
            def service(self):
                raise RuntimeError("kaboom")

        client.app.dependency_overrides[get_coordinator] = lambda: ExplodingCoordinator()

        response = client.get("/quote", params=make_quote_params(exactIn="true"))
        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error"}


def _wait_for(condition, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met before timeout")
        time.sleep(0.01)
