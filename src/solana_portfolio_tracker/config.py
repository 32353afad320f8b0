"""Canonical runtime configuration, loaded once and injected into every component."""

from decimal import Decimal
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from solana_portfolio_tracker.data.loader import load_defaults, load_user_config, merge_config
from solana_portfolio_tracker.rpc.retry import RetryConfig


class ProviderSettings(BaseModel):
    """Endpoints of the external data providers."""

    rpc_url: str
    price_url: str
    token_list_url: str
    dexscreener_url: str
    coingecko_url: str
    http_timeout: float = 10.0


class RateLimitSettings(BaseModel):
    """Minimum interval in seconds between calls, per provider class."""

    rpc: float = 0.1
    price: float = 0.2
    metadata: float = 0.5
    analytics: float = 2.0


class TTLSettings(BaseModel):
    """Cache time-to-live in seconds, per kind of cached data."""

    metadata: int = 1800
    price: int = 300
    directory: int = 3600
    transactions: int = 30
    analytics: int = 300


class RetrySettings(BaseModel):
    """Retry and deadline policy applied by every resilient client."""

    max_retries: int = Field(default=3, ge=0)
    base_delay: float = 2.0
    max_delay: float = 10.0
    exponential_base: float = 2.0
    deadline: float | None = 15.0


class BatchSettings(BaseModel):
    """Bounded fan-out sizes and the pause inserted between batches."""

    transaction_batch_size: int = Field(default=3, ge=1)
    price_batch_size: int = Field(default=5, ge=1)
    metadata_batch_size: int = Field(default=3, ge=1)
    price_ids_per_request: int = Field(default=50, ge=1)
    batch_pause: float = Field(default=0.2, ge=0)


class TrackerConfig(BaseModel):
    """
    Complete tracker configuration.

    Attributes
    ----------
    providers : ProviderSettings
        Provider endpoints and HTTP timeout
    rate_limits : RateLimitSettings
        Minimum call interval per provider class
    ttl : TTLSettings
        Cache TTL per data kind
    retry : RetrySettings
        Retry/backoff/deadline policy
    batching : BatchSettings
        Fan-out bounds
    cache_max_entries : int
        Upper bound on the shared cache size
    native_price_fallback_usd : Decimal
        Price used for SOL when no price can be obtained
    poll_interval : float
        Seconds between balance poll cycles
    token_program_ids : list[str]
        Token programs whose accounts count as holdings

    """

    providers: ProviderSettings
    rate_limits: RateLimitSettings = Field(default_factory=RateLimitSettings)
    ttl: TTLSettings = Field(default_factory=TTLSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    batching: BatchSettings = Field(default_factory=BatchSettings)
    cache_max_entries: int = Field(default=5000, ge=1)
    native_price_fallback_usd: Decimal = Field(default=Decimal("150"), gt=0)
    poll_interval: float = Field(default=30.0, gt=0)
    token_program_ids: list[str] = Field(default_factory=list)

    def retry_config(self) -> RetryConfig:
        """
        Build the retry policy object used by resilient clients.

        Returns
        -------
        RetryConfig
            Retry configuration

        """
        return RetryConfig(
            max_retries=self.retry.max_retries,
            base_delay=self.retry.base_delay,
            max_delay=self.retry.max_delay,
            exponential_base=self.retry.exponential_base,
        )


def load_config(path: str | Path | None = None, **overrides: Any) -> TrackerConfig:
    """
    Load configuration from bundled defaults, an optional file and overrides.

    Parameters
    ----------
    path : str | Path | None
        Optional user YAML file merged over the defaults
    **overrides : Any
        Top-level keys (or nested mappings) merged last

    Returns
    -------
    TrackerConfig
        Validated configuration

    Examples
    --------
    >>> config = load_config(providers={"rpc_url": "https://rpc.example"})
    >>> config.providers.rpc_url
    'https://rpc.example'

    """
    raw = load_defaults()
    if path is not None:
        raw = merge_config(raw, load_user_config(path))
    if overrides:
        raw = merge_config(raw, overrides)
    return TrackerConfig.model_validate(raw)
