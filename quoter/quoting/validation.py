"""Quote request validation and normalization.

validate_request() is a pure function: it turns the loosely typed external
request into NormalizedQuoteParameters or raises an InvalidRequest subclass.
It has no dependency on the HTTP transport or on the provider graph.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from quoter.errors import InvalidFormat, InvalidProtocol, InvalidRequest
from quoter.models.request import NormalizedQuoteParameters, QuoteRequest
from quoter.models.route import LiquidityProtocol, PoolSelectionConfig, TradeType
from quoter.models.types import LowerCaseKeyDict

SECOND_HOP_ENTRY_SEPARATOR = ","
SECOND_HOP_FIELD_SEPARATOR = "|"


def valid_protocols() -> str:
    """Comma-separated list of every recognized protocol identifier."""
    return ",".join(protocol.value for protocol in LiquidityProtocol)


def parse_protocols(raw: str | None) -> tuple[LiquidityProtocol, ...]:
    """Parse a comma-separated protocol filter, preserving order.

    Args:
        raw: e.g. "V2,V3". Empty or None means no filter.

    Raises:
        InvalidProtocol: If any entry is not a known protocol
    """
    if not raw:
        return ()

    protocols = []
    for entry in raw.split(","):
        try:
            protocols.append(LiquidityProtocol(entry.strip().upper()))
        except ValueError as err:
            raise InvalidProtocol(f"Protocols invalid. Valid options: {valid_protocols()}") from err
    return tuple(protocols)


def parse_second_hop_overrides(raw: str) -> LowerCaseKeyDict[int]:
    """Parse "tokenAddress|topN,tokenAddress|topN" into a case-insensitive map.

    Empty segments are skipped, so "" yields an empty map.

    Raises:
        InvalidFormat: If a segment does not split into exactly two parts or
            its topN is not a non-negative integer
    """
    overrides: LowerCaseKeyDict[int] = LowerCaseKeyDict()
    for entry in raw.split(SECOND_HOP_ENTRY_SEPARATOR):
        if entry == "":
            continue

        parts = entry.split(SECOND_HOP_FIELD_SEPARATOR)
        if len(parts) != 2:
            raise InvalidFormat(
                "topNSecondHopForTokenAddressRaw must be in format tokenAddress|topN,..."
            )

        address, top_n_text = parts[0].strip(), parts[1].strip()
        try:
            top_n = int(top_n_text)
        except ValueError as err:
            raise InvalidFormat(
                f"topNSecondHopForTokenAddressRaw has a non-integer topN '{top_n_text}'"
            ) from err
        if top_n < 0:
            raise InvalidFormat(f"topNSecondHopForTokenAddressRaw has a negative topN '{top_n}'")

        overrides[address] = top_n
    return overrides


def parse_request(raw: Mapping[str, Any]) -> QuoteRequest:
    """Parse raw request fields into a QuoteRequest.

    Raises:
        InvalidRequest: Naming the first offending field
    """
    try:
        return QuoteRequest.model_validate(dict(raw))
    except ValidationError as err:
        first = err.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "request"
        raise InvalidRequest(f"Invalid field '{field}': {first['msg']}") from err


def validate_request(
    request: QuoteRequest | Mapping[str, Any], chain_id: int | None = None
) -> NormalizedQuoteParameters:
    """Validate a quote request and apply defaults.

    Args:
        request: Parsed QuoteRequest or raw field mapping
        chain_id: The chain this service quotes on; when given, a request
                  naming a different chain is rejected

    Returns:
        NormalizedQuoteParameters ready for the route request builder

    Raises:
        InvalidRequest: Contradictory or malformed fields
        InvalidProtocol: Unknown protocol in the protocol filter
        InvalidFormat: Malformed second-hop override string
    """
    if not isinstance(request, QuoteRequest):
        request = parse_request(request)

    if bool(request.exact_in) == bool(request.exact_out):
        raise InvalidRequest("Must set either exactIn or exactOut")

    if chain_id is not None and request.chain_id is not None and request.chain_id != chain_id:
        raise InvalidRequest(f"chainId {request.chain_id} is not supported, expected {chain_id}")

    if request.min_splits > request.max_splits:
        raise InvalidRequest(
            f"minSplits ({request.min_splits}) must not exceed maxSplits ({request.max_splits})"
        )

    protocols = parse_protocols(request.protocols)
    second_hop_overrides = parse_second_hop_overrides(
        request.top_n_second_hop_for_token_address_raw
    )

    return NormalizedQuoteParameters(
        token_in=request.token_in.strip(),
        token_out=request.token_out.strip(),
        amount=request.amount,
        trade_type=TradeType.EXACT_INPUT if request.exact_in else TradeType.EXACT_OUTPUT,
        recipient=request.recipient,
        chain_id=request.chain_id,
        protocols=protocols,
        force_cross_protocol=request.force_cross_protocol,
        force_mixed_routes=request.force_mixed_routes,
        simulate=request.simulate,
        debug_routing=request.debug_routing,
        enable_fee_on_transfer_fee_fetching=request.enable_fee_on_transfer_fee_fetching,
        request_block_number=request.request_block_number,
        gas_token=request.gas_token,
        slippage_tolerance=request.slippage_tolerance,
        pool_selection=PoolSelectionConfig(
            top_n=request.top_n,
            top_n_token_in_out=request.top_n_token_in_out,
            top_n_second_hop=request.top_n_second_hop,
            top_n_second_hop_for_token_address=second_hop_overrides,
            top_n_with_each_base_token=request.top_n_with_each_base_token,
            top_n_with_base_token=request.top_n_with_base_token,
            top_n_direct_swaps=request.top_n_direct_swaps,
        ),
        max_swaps_per_path=request.max_swaps_per_path,
        min_splits=request.min_splits,
        max_splits=request.max_splits,
        distribution_percent=request.distribution_percent,
    )
