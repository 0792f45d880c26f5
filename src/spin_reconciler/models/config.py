"""Configuration models for the reconciler."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass
class LedgerConfig:
    """Where the wheel contract lives."""

    network: str = "testnet"
    rpc_url: str = "https://soroban-testnet.stellar.org"
    horizon_url: str = "https://horizon-testnet.stellar.org"
    network_passphrase: str = "Test SDF Network ; September 2015"
    contract_id: str = ""
    request_timeout: float = 15.0  # seconds, Horizon reads


@dataclass
class RetryConfig:
    max_retries: int = 3  # attempts after the first
    base_delay: float = 0.5  # seconds, doubled per retry


@dataclass
class ScanConfig:
    lookback_blocks: int = 200
    max_block_range: int = 100  # RPC per-query ceiling
    window_delay: float = 0.15  # seconds between empty windows


@dataclass
class PollConfig:
    max_attempts: int = 20
    interval: float = 3.0  # seconds
    max_session_age: float = 120.0  # seconds since dispatch
    freshness_window: float = 300.0  # max event age, seconds
    dispatch_skew: float | None = 30.0  # None disables the dispatch-time gate


@dataclass
class FallbackConfig:
    enabled: bool = True
    epsilon: Decimal = Decimal("0.0001")


@dataclass
class StakeConfig:
    min_stake: Decimal = Decimal("0.001")
    max_stake: Decimal = Decimal("100")


@dataclass
class ReconcilerConfig:
    """Complete reconciler configuration."""

    log_level: str = "info"
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    scanner: ScanConfig = field(default_factory=ScanConfig)
    poll: PollConfig = field(default_factory=PollConfig)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    stake: StakeConfig = field(default_factory=StakeConfig)
