"""Service configuration.

All settings come from environment variables, read once at startup into an
immutable Settings instance. Missing simulator credentials are not an error:
simulation then degrades to local gas estimation.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from quoter.constants import ChainId

TRUTHY = ("true", "1", "yes")


def _flag(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in TRUTHY


@dataclass(frozen=True)
class Settings:
    """Centralized configuration for the quote service.

    Attributes:
        host: Interface the HTTP server binds to
        port: Listening port
        debug: Enable auto-reload
        log_level: structlog filtering level name
        log_json: Render logs as JSON instead of console output
        chain_id: Chain this process quotes on
        rpc_url: JSON-RPC endpoint of the chain
        token_list_path: Local token list file (takes precedence over the URL)
        token_list_url: Token list URL
        routing_engine_url: Base URL of the external pathfinder
        tenderly_base_url: Tenderly API base URL
        tenderly_user: Tenderly account
        tenderly_project: Tenderly project
        tenderly_access_key: Tenderly API access key
    """

    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = False

    chain_id: int = ChainId.MAINNET
    rpc_url: str = "http://localhost:8545"
    token_list_path: str | None = None
    token_list_url: str = "https://tokens.uniswap.org"
    routing_engine_url: str = "http://localhost:8080"

    tenderly_base_url: str = "https://api.tenderly.co"
    tenderly_user: str = ""
    tenderly_project: str = ""
    tenderly_access_key: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Read settings from the environment.

        The RPC endpoint is ``RPC_URL``, falling back to ``RPC_URL_<chainId>``.

        Raises:
            ValueError: If a numeric variable does not parse
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        chain_id = int(env.get("CHAIN_ID", str(defaults.chain_id)))

        return cls(
            host=env.get("QUOTER_HOST", defaults.host),
            port=int(env.get("PORT", str(defaults.port))),
            debug=_flag(env.get("QUOTER_DEBUG")),
            log_level=env.get("QUOTER_LOG_LEVEL", defaults.log_level).upper(),
            log_json=_flag(env.get("QUOTER_LOG_JSON")),
            chain_id=chain_id,
            rpc_url=env.get("RPC_URL") or env.get(f"RPC_URL_{chain_id}") or defaults.rpc_url,
            token_list_path=env.get("TOKEN_LIST_PATH") or None,
            token_list_url=env.get("TOKEN_LIST_URL", defaults.token_list_url),
            routing_engine_url=env.get("ROUTING_ENGINE_URL", defaults.routing_engine_url),
            tenderly_base_url=env.get("TENDERLY_BASE_URL", defaults.tenderly_base_url),
            tenderly_user=env.get("TENDERLY_USER", ""),
            tenderly_project=env.get("TENDERLY_PROJECT", ""),
            tenderly_access_key=env.get("TENDERLY_ACCESS_KEY", ""),
        )
