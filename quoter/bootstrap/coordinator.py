"""Bootstrap coordinator.

Builds the provider graph in a fixed order of named stages, each one
consuming only what earlier stages produced:

     1. chain_connection     RPC connection, records the bootstrap block
     2. token_cache          TTL cache shared by the token providers
     3. token_list_provider  token list, loaded once
     4. multicall            Multicall3 batcher
     5. token_provider       cache -> token list -> on-chain fallback
     6. gas_price_cache      TTL cache for gas prices
     7. pool_providers       cached V4/V3/V2 pool providers
     8. portion_provider     fee portion accounting
     9. simulator            balance check + Tenderly/eth_estimateGas
    10. gas_price_provider   cached on-chain gas price
    11. routing_engine       external pathfinder client

Bootstrap runs exactly once per process. A failed stage leaves the service
in FAILED for the rest of the process lifetime; nothing is retried.
"""

from __future__ import annotations

import inspect
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from quoter.bootstrap.factory import ProviderFactory
from quoter.bootstrap.state import ReadinessState, ServiceState
from quoter.config import Settings
from quoter.models.currency import Token
from quoter.providers.cache import TTLCache
from quoter.providers.chain import ChainConnection
from quoter.providers.gas import GasPrice, GasPriceProvider
from quoter.providers.multicall import MulticallProvider
from quoter.providers.pools import PoolProviders
from quoter.providers.portion import PortionProvider
from quoter.providers.simulation import Simulator
from quoter.providers.tokens import TokenProvider
from quoter.quoting.builder import RouteRequestBuilder
from quoter.quoting.service import QuoteService
from quoter.routing.engine import RoutingEngine

logger = structlog.get_logger()


@dataclass(frozen=True)
class ProviderGraph:
    """Every long-lived object built during bootstrap.

    Read-only after bootstrap; shared by all concurrent requests.
    """

    chain_connection: ChainConnection
    token_cache: TTLCache[Token]
    token_list_provider: TokenProvider
    multicall: MulticallProvider
    token_provider: TokenProvider
    gas_price_cache: TTLCache[GasPrice]
    pool_providers: PoolProviders
    portion_provider: PortionProvider
    simulator: Simulator
    gas_price_provider: GasPriceProvider
    routing_engine: RoutingEngine


class _BootstrapContext:
    """Stage outputs accumulated while bootstrapping."""

    def __init__(self) -> None:
        self.values: dict[str, Any] = {}
        self.block_number = 0

    def __getattr__(self, name: str) -> Any:
        try:
            return self.__dict__["values"][name]
        except KeyError:
            raise AttributeError(f"Bootstrap stage '{name}' has not run yet") from None


StageFn = Callable[[_BootstrapContext], Any]


class BootstrapCoordinator:
    """Runs the bootstrap stages and owns the readiness state.

    Args:
        settings: Process configuration
        factory: Builds each provider (injectable for tests)
        clock: Monotonic clock used for stage timings
    """

    def __init__(
        self,
        settings: Settings,
        factory: ProviderFactory | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.settings = settings
        self.factory = factory or ProviderFactory(settings)
        self.clock = clock
        self.readiness = ReadinessState()
        self.error: BaseException | None = None
        self._block_number: int | None = None
        self._graph: ProviderGraph | None = None
        self._service: QuoteService | None = None
        self._ran = False
        self.stages: list[tuple[str, StageFn]] = [
            ("chain_connection", self._chain_connection),
            ("token_cache", lambda ctx: self.factory.create_token_cache()),
            (
                "token_list_provider",
                lambda ctx: self.factory.create_token_list_provider(ctx.token_cache),
            ),
            (
                "multicall",
                lambda ctx: self.factory.create_multicall_provider(ctx.chain_connection),
            ),
            (
                "token_provider",
                lambda ctx: self.factory.create_token_provider(
                    ctx.token_cache, ctx.token_list_provider, ctx.multicall
                ),
            ),
            ("gas_price_cache", lambda ctx: self.factory.create_gas_price_cache()),
            (
                "pool_providers",
                lambda ctx: self.factory.create_pool_providers(
                    ctx.chain_connection, ctx.multicall
                ),
            ),
            ("portion_provider", lambda ctx: self.factory.create_portion_provider()),
            (
                "simulator",
                lambda ctx: self.factory.create_simulator(
                    ctx.chain_connection, ctx.pool_providers, ctx.portion_provider
                ),
            ),
            (
                "gas_price_provider",
                lambda ctx: self.factory.create_gas_price_provider(
                    ctx.chain_connection, ctx.gas_price_cache
                ),
            ),
            (
                "routing_engine",
                lambda ctx: self.factory.create_routing_engine(
                    ctx.chain_connection,
                    ctx.multicall,
                    ctx.gas_price_provider,
                    ctx.simulator,
                ),
            ),
        ]

    @property
    def state(self) -> ServiceState:
        return self.readiness.current

    @property
    def is_ready(self) -> bool:
        return self.readiness.is_ready

    @property
    def block_number(self) -> int | None:
        """Block height recorded by the chain_connection stage."""
        return self._block_number

    @property
    def graph(self) -> ProviderGraph | None:
        return self._graph

    @property
    def service(self) -> QuoteService | None:
        """The quote service; None until the state is READY."""
        return self._service

    async def _chain_connection(self, ctx: _BootstrapContext) -> Any:
        connection = self.factory.create_chain_connection()
        ctx.block_number = await connection.get_block_number()
        logger.info("bootstrap_block_recorded", block_number=ctx.block_number)
        return connection

    async def _run_stage(self, name: str, stage: StageFn, ctx: _BootstrapContext) -> None:
        started = self.clock()
        value = stage(ctx)
        if inspect.isawaitable(value):
            value = await value
        ctx.values[name] = value
        logger.info(
            "bootstrap_stage_completed",
            stage=name,
            elapsed_ms=round((self.clock() - started) * 1000, 2),
        )

    async def aclose(self) -> None:
        """Release the connections opened while bootstrapping."""
        await self.factory.aclose()
        logger.info("bootstrap_resources_closed")

    def begin(self) -> None:
        """Mark bootstrap as started, before any stage is scheduled.

        Raises:
            RuntimeError: If bootstrap already started
        """
        self.readiness.transition(ServiceState.INITIALIZING)

    async def run(self) -> ServiceState:
        """Run every stage in order and settle the readiness state.

        Calls begin() unless the caller already did. Never raises for a stage
        failure: the failure is logged, kept on ``error`` and the state
        becomes FAILED.

        Raises:
            RuntimeError: If called more than once
        """
        if self._ran:
            raise RuntimeError("Bootstrap runs once per process")
        self._ran = True
        if self.state is ServiceState.UNINITIALIZED:
            self.begin()
        started = self.clock()
        ctx = _BootstrapContext()
        logger.info("bootstrap_started", chain_id=self.settings.chain_id)

        for name, stage in self.stages:
            try:
                await self._run_stage(name, stage, ctx)
            except Exception as e:
                self.error = e
                logger.exception(
                    "bootstrap_stage_failed",
                    stage=name,
                    error=str(e),
                    elapsed_ms=round((self.clock() - started) * 1000, 2),
                )
                self.readiness.transition(ServiceState.FAILED)
                return self.state

        self._block_number = ctx.block_number
        self._graph = ProviderGraph(**ctx.values)
        builder = RouteRequestBuilder(
            self.settings.chain_id, self._graph.token_provider, self._block_number
        )
        self._service = QuoteService(self.settings.chain_id, builder, self._graph.routing_engine)
        self.readiness.transition(ServiceState.READY)
        logger.info(
            "bootstrap_completed",
            block_number=self._block_number,
            total_ms=round((self.clock() - started) * 1000, 2),
        )
        return self.state

