"""Batched contract reads through Multicall3.

Many read-only calls are packed into a single ``aggregate3`` eth_call. Each
sub-call may fail independently; failures are reported per call, not raised.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from quoter.constants import MULTICALL3_ADDRESS
from quoter.providers.chain import BlockIdentifier, ChainConnection

logger = structlog.get_logger()

AGGREGATE3_SIGNATURE = "aggregate3((address,bool,bytes)[])"


@dataclass(frozen=True)
class ContractCall:
    """One read-only contract call.

    Attributes:
        address: Target contract
        signature: Canonical function signature, e.g. "balanceOf(address)"
        args: Positional arguments matching the signature's input types
        output_types: ABI types of the return values, e.g. ("uint256",)
    """

    address: str
    signature: str
    args: tuple[Any, ...] = ()
    output_types: tuple[str, ...] = ()

    @property
    def input_types(self) -> list[str]:
        inner = self.signature[self.signature.index("(") + 1 : -1]
        return _split_types(inner)

    def encode(self) -> bytes:
        selector = function_signature_to_4byte_selector(self.signature)
        return selector + encode(self.input_types, list(self.args))

    def decode(self, data: bytes) -> tuple[Any, ...]:
        return tuple(decode(list(self.output_types), data))


@dataclass(frozen=True)
class CallResult:
    success: bool
    values: tuple[Any, ...] = field(default_factory=tuple)


def _split_types(inner: str) -> list[str]:
    """Split a comma-separated ABI type list, respecting tuple parentheses."""
    types: list[str] = []
    depth = 0
    current = ""
    for char in inner:
        if char == "," and depth == 0:
            types.append(current)
            current = ""
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        current += char
    if current:
        types.append(current)
    return types


class MulticallProvider:
    """Executes batches of ContractCall through the Multicall3 contract."""

    def __init__(
        self, chain: ChainConnection, multicall_address: str = MULTICALL3_ADDRESS
    ) -> None:
        self.chain = chain
        self.chain_id = chain.chain_id
        self.multicall_address = multicall_address

    async def call(
        self, calls: Sequence[ContractCall], block: BlockIdentifier = "latest"
    ) -> list[CallResult]:
        """Execute calls in one round-trip.

        Raises:
            UpstreamFailure: If the aggregate call itself fails
        """
        if not calls:
            return []

        payload = [(to_checksum_address(c.address), True, c.encode()) for c in calls]
        data = function_signature_to_4byte_selector(AGGREGATE3_SIGNATURE) + encode(
            ["(address,bool,bytes)[]"], [payload]
        )
        raw = await self.chain.call(self.multicall_address, data, block)
        (returned,) = decode(["(bool,bytes)[]"], raw)

        results = []
        for call, (success, return_data) in zip(calls, returned, strict=True):
            if not success or not return_data:
                results.append(CallResult(success=False))
                continue
            try:
                results.append(CallResult(success=True, values=call.decode(return_data)))
            except DecodingError:
                logger.debug(
                    "multicall_decode_failed", address=call.address, signature=call.signature
                )
                results.append(CallResult(success=False))
        return results

    async def call_same_function_on_contracts(
        self,
        addresses: Sequence[str],
        signature: str,
        output_types: tuple[str, ...],
        args: tuple[Any, ...] = (),
        block: BlockIdentifier = "latest",
    ) -> list[CallResult]:
        calls = [ContractCall(a, signature, args, output_types) for a in addresses]
        return await self.call(calls, block)
