"""API endpoints for the quote service."""

import json
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from quoter.bootstrap.coordinator import BootstrapCoordinator
from quoter.errors import ServiceNotReady
from quoter.models.response import QuoteResponse

logger = structlog.get_logger()

router = APIRouter()


def get_coordinator(request: Request) -> BootstrapCoordinator:
    """Dependency provider for the bootstrap coordinator.

    Override this in tests to inject a prepared coordinator:
        app.dependency_overrides[get_coordinator] = lambda: coordinator

    Returns:
        The coordinator created with the application.
    """
    return request.app.state.coordinator


async def _answer(params: Any, coordinator: BootstrapCoordinator) -> JSONResponse:
    """Gate on readiness, then run the quote pipeline.

    Quote failures are business results: they are answered with status 200
    and ``success: false``. Only an unready service answers 503.
    """
    service = coordinator.service
    if not coordinator.is_ready or service is None:
        logger.info("quote_rejected_not_ready", state=coordinator.state.value)
        return JSONResponse(
            status_code=503,
            content=QuoteResponse.failure(str(ServiceNotReady())).to_json(),
        )

    response = await service.get_quote(params)
    return JSONResponse(content=response.to_json())


@router.get("/quote")
async def get_quote(
    request: Request,
    coordinator: BootstrapCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    """Quote from query string parameters.

    Query values arrive as strings; the request model coerces them.
    """
    return await _answer(dict(request.query_params), coordinator)


@router.post("/quote")
async def post_quote(
    request: Request,
    coordinator: BootstrapCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    """Quote from a JSON body carrying the same fields as the query form."""
    if not coordinator.is_ready:
        return await _answer({}, coordinator)

    try:
        params = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.info("quote_body_malformed", error=str(e))
        return JSONResponse(content=QuoteResponse.failure(f"Malformed JSON body: {e}").to_json())

    if not isinstance(params, dict):
        return JSONResponse(
            content=QuoteResponse.failure("Request body must be a JSON object").to_json()
        )
    return await _answer(params, coordinator)
