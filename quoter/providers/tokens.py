"""Token metadata providers.

Resolution order for a token identifier:
1. Shared token cache (by address)
2. Token list (by address, then by symbol)
3. On-chain ERC-20 metadata via multicall (addresses only)

Everything resolved is written back into the shared cache.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Protocol

import httpx
import structlog

from quoter.errors import UpstreamFailure
from quoter.models.currency import Token
from quoter.models.types import is_valid_address, normalize_address
from quoter.providers.cache import TTLCache
from quoter.providers.multicall import MulticallProvider

logger = structlog.get_logger()


def token_cache_key(chain_id: int, address: str) -> str:
    return f"token-{chain_id}-{normalize_address(address)}"


class TokenAccessor:
    """Lookup view over a batch of resolved tokens."""

    def __init__(self, tokens: Iterable[Token]) -> None:
        self._by_address: dict[str, Token] = {}
        self._by_symbol: dict[str, Token] = {}
        for token in tokens:
            self._by_address[token.address] = token
            if token.symbol:
                self._by_symbol.setdefault(token.symbol.upper(), token)

    def get_token_by_address(self, address: str) -> Token | None:
        return self._by_address.get(normalize_address(address))

    def get_token_by_symbol(self, symbol: str) -> Token | None:
        return self._by_symbol.get(symbol.upper())

    def get_token(self, identifier: str) -> Token | None:
        """Look up by address when the identifier is an address, else by symbol."""
        if is_valid_address(identifier):
            return self.get_token_by_address(identifier)
        return self.get_token_by_symbol(identifier)

    def get_all_tokens(self) -> list[Token]:
        return list(self._by_address.values())


class TokenProvider(Protocol):
    """Anything that can resolve token identifiers to Token metadata."""

    async def get_tokens(self, identifiers: Sequence[str]) -> TokenAccessor: ...


class TokenListProvider:
    """Token provider backed by a token list document (tokenlists.org schema)."""

    def __init__(self, chain_id: int, tokens: Iterable[Token], cache: TTLCache[Token]) -> None:
        self.chain_id = chain_id
        self.cache = cache
        self._accessor = TokenAccessor(tokens)

    @classmethod
    def from_token_list(
        cls, chain_id: int, token_list: dict[str, Any], cache: TTLCache[Token]
    ) -> TokenListProvider:
        """Build a provider from a parsed token list, keeping this chain's tokens."""
        tokens = [
            Token(
                chain_id=chain_id,
                address=entry["address"],
                decimals=int(entry["decimals"]),
                symbol=entry.get("symbol"),
                name=entry.get("name"),
            )
            for entry in token_list.get("tokens", [])
            if entry.get("chainId") == chain_id
        ]
        logger.info("token_list_loaded", chain_id=chain_id, token_count=len(tokens))
        return cls(chain_id, tokens, cache)

    @classmethod
    async def load(
        cls,
        chain_id: int,
        cache: TTLCache[Token],
        path: str | None = None,
        url: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> TokenListProvider:
        """Load a token list from a local file (preferred) or a URL.

        Raises:
            UpstreamFailure: If the list cannot be read or parsed
        """
        try:
            if path:
                token_list = json.loads(Path(path).read_text())
            elif url:
                async with client or httpx.AsyncClient(timeout=30.0) as http:
                    response = await http.get(url)
                    response.raise_for_status()
                    token_list = response.json()
            else:
                raise UpstreamFailure("No token list source configured")
        except (OSError, ValueError, httpx.HTTPError) as e:
            raise UpstreamFailure(f"Failed to load token list: {e}") from e
        return cls.from_token_list(chain_id, token_list, cache)

    async def get_tokens(self, identifiers: Sequence[str]) -> TokenAccessor:
        found = []
        for identifier in identifiers:
            token = self._accessor.get_token(identifier)
            if token is not None:
                self.cache.set(token_cache_key(self.chain_id, token.address), token)
                found.append(token)
        return TokenAccessor(found)


class OnChainTokenProvider:
    """Reads ERC-20 decimals and symbol with a single multicall."""

    def __init__(self, chain_id: int, multicall: MulticallProvider) -> None:
        self.chain_id = chain_id
        self.multicall = multicall

    async def get_tokens(self, identifiers: Sequence[str]) -> TokenAccessor:
        addresses = list(
            dict.fromkeys(normalize_address(i) for i in identifiers if is_valid_address(i))
        )
        if not addresses:
            return TokenAccessor([])

        decimals_results = await self.multicall.call_same_function_on_contracts(
            addresses, "decimals()", ("uint8",)
        )
        symbol_results = await self.multicall.call_same_function_on_contracts(
            addresses, "symbol()", ("string",)
        )

        tokens = []
        for address, decimals, symbol in zip(
            addresses, decimals_results, symbol_results, strict=True
        ):
            if not decimals.success:
                logger.debug("token_decimals_unavailable", address=address)
                continue
            tokens.append(
                Token(
                    chain_id=self.chain_id,
                    address=address,
                    decimals=int(decimals.values[0]),
                    symbol=str(symbol.values[0]) if symbol.success else None,
                )
            )
        return TokenAccessor(tokens)


class CachingTokenProviderWithFallback:
    """Cache first, then the primary provider, then the fallback for misses."""

    def __init__(
        self,
        chain_id: int,
        cache: TTLCache[Token],
        primary: TokenProvider,
        fallback: TokenProvider | None = None,
    ) -> None:
        self.chain_id = chain_id
        self.cache = cache
        self.primary = primary
        self.fallback = fallback

    async def get_tokens(self, identifiers: Sequence[str]) -> TokenAccessor:
        resolved: list[Token] = []
        missing: list[str] = []
        for identifier in identifiers:
            cached = (
                self.cache.get(token_cache_key(self.chain_id, identifier))
                if is_valid_address(identifier)
                else None
            )
            if cached is not None:
                resolved.append(cached)
            else:
                missing.append(identifier)

        if missing:
            from_primary = await self.primary.get_tokens(missing)
            resolved.extend(from_primary.get_all_tokens())
            missing = [i for i in missing if from_primary.get_token(i) is None]

        if missing and self.fallback is not None:
            from_fallback = await self.fallback.get_tokens(missing)
            resolved.extend(from_fallback.get_all_tokens())

        for token in resolved:
            self.cache.set(token_cache_key(self.chain_id, token.address), token)

        logger.debug(
            "tokens_resolved",
            requested=len(identifiers),
            resolved=len(resolved),
        )
        return TokenAccessor(resolved)
