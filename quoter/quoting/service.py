"""Quote orchestration service.

One request flows: validate -> build route request -> routing engine ->
format. get_quote() is the single failure boundary: every error raised along
the way becomes a ``{"success": false, "error": ...}`` response.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog

from quoter.errors import NoRouteFound, QuoteError
from quoter.models.request import QuoteRequest
from quoter.models.response import QuoteData, QuoteResponse
from quoter.quoting.formatter import format_route_result
from quoter.quoting.validation import validate_request

if TYPE_CHECKING:
    from quoter.quoting.builder import RouteRequestBuilder
    from quoter.routing.engine import RoutingEngine

logger = structlog.get_logger()


class QuoteService:
    """Answers quote requests against a ready provider graph.

    Args:
        chain_id: Chain this service quotes on
        builder: Route request builder bound to the bootstrap block
        engine: Routing engine assembled at bootstrap
    """

    def __init__(self, chain_id: int, builder: RouteRequestBuilder, engine: RoutingEngine) -> None:
        self.chain_id = chain_id
        self.builder = builder
        self.engine = engine

    async def quote(self, request: QuoteRequest | Mapping[str, Any]) -> QuoteData:
        """Run the quote pipeline.

        Raises:
            QuoteError: Any classified pipeline failure
        """
        params = validate_request(request, chain_id=self.chain_id)
        route_request = await self.builder.build(params)
        result = await self.engine.route(route_request)
        if result is None:
            raise NoRouteFound()
        return format_route_result(result)

    async def get_quote(self, request: QuoteRequest | Mapping[str, Any]) -> QuoteResponse:
        """Run the quote pipeline, rendering any failure as an error response."""
        try:
            data = await self.quote(request)
        except QuoteError as e:
            logger.info("quote_rejected", error_type=type(e).__name__, error=str(e))
            return QuoteResponse.failure(str(e))
        except Exception as e:
            logger.exception("quote_failed", error=str(e))
            return QuoteResponse.failure(str(e) or "Unknown error occurred")

        logger.info("quote_served", block_number=data.block_number, route=data.route)
        return QuoteResponse.ok(data)
