"""Chain connection over JSON-RPC.

ChainConnection is the only object that talks to the node. Every RPC failure
surfaces as UpstreamFailure carrying the node's message.
"""

from __future__ import annotations

from typing import Any

import structlog
from web3 import AsyncHTTPProvider, AsyncWeb3

from quoter.errors import UpstreamFailure

logger = structlog.get_logger()

BlockIdentifier = int | str


class ChainConnection:
    """Thin async wrapper around AsyncWeb3 for one chain."""

    def __init__(self, w3: AsyncWeb3, chain_id: int) -> None:
        self.w3 = w3
        self.chain_id = chain_id

    @classmethod
    def from_url(cls, rpc_url: str, chain_id: int) -> ChainConnection:
        """Open an HTTP JSON-RPC connection."""
        return cls(AsyncWeb3(AsyncHTTPProvider(rpc_url)), chain_id)

    async def get_block_number(self) -> int:
        try:
            return int(await self.w3.eth.block_number)
        except Exception as e:
            raise _upstream("eth_blockNumber", e) from e

    async def call(self, to: str, data: bytes, block: BlockIdentifier = "latest") -> bytes:
        try:
            result = await self.w3.eth.call(
                {"to": AsyncWeb3.to_checksum_address(to), "data": data},
                block_identifier=block,
            )
        except Exception as e:
            raise _upstream("eth_call", e) from e
        return bytes(result)

    async def estimate_gas(self, tx: dict[str, Any]) -> int:
        try:
            return int(await self.w3.eth.estimate_gas(tx))  # type: ignore[arg-type]
        except Exception as e:
            raise _upstream("eth_estimateGas", e) from e

    async def get_balance(self, address: str) -> int:
        try:
            return int(await self.w3.eth.get_balance(AsyncWeb3.to_checksum_address(address)))
        except Exception as e:
            raise _upstream("eth_getBalance", e) from e

    async def gas_price(self) -> int:
        try:
            return int(await self.w3.eth.gas_price)
        except Exception as e:
            raise _upstream("eth_gasPrice", e) from e

    async def fee_history(
        self, block_count: int, newest_block: BlockIdentifier, reward_percentiles: list[float]
    ) -> dict[str, Any]:
        try:
            return dict(
                await self.w3.eth.fee_history(block_count, newest_block, reward_percentiles)
            )
        except Exception as e:
            raise _upstream("eth_feeHistory", e) from e

    async def aclose(self) -> None:
        """Close the HTTP session held by the provider."""
        await self.w3.provider.disconnect()


def _upstream(method: str, error: Exception) -> UpstreamFailure:
    logger.warning("rpc_call_failed", method=method, error=str(error))
    return UpstreamFailure(f"{method} failed: {error}")
