from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized config.

    Key idea:
    - read from env first (so tests/CI can override),
    - otherwise default to the public endpoints the probes were written against.
    """

    model_config = SettingsConfigDict(env_prefix="YIELDPROBE_", extra="ignore")

    # Upstream endpoints
    llama_pools_url: str = "https://yields.llama.fi/pools"
    morpho_graphql_url: str = "https://blue-api.morpho.org/graphql"
    pendle_markets_base_url: str = "https://api-v2.pendle.finance/core/v1"

    # Fetch behaviour (constant delay, not exponential)
    http_timeout_s: float = 20.0
    retry_max_attempts: int = 2
    retry_delay_s: float = 0.5

    # Manually curated dataset size reported by the static source
    manual_count: int = 14

    # Below this many yields overall the report flags overall health
    healthy_total_floor: int = 150

    # API surface
    cors_origins: str = "*"
    include_stack: bool = False

    log_level: str = "INFO"


settings = Settings()
