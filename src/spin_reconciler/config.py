"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from spin_reconciler.models.config import ReconcilerConfig

NETWORK_PASSPHRASES = {
    "testnet": "Test SDF Network ; September 2015",
    "mainnet": "Public Global Stellar Network ; September 2015",
}

_TRUE = {"1", "true", "yes", "on"}


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "SPIN_RECONCILER_",
) -> ReconcilerConfig:
    """Load reconciler configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (SPIN_RECONCILER_RPC_URL, etc.)
        2. TOML config file
        3. Defaults from ReconcilerConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = ReconcilerConfig()

    # ── App section ────────────────────────────────────────
    app = raw.get("app", {})
    if v := app.get("log_level"):
        cfg.log_level = str(v)

    # ── Ledger section ─────────────────────────────────────
    ledger = raw.get("ledger", {})
    if v := ledger.get("network"):
        cfg.ledger.network = str(v)
    if v := ledger.get("rpc_url"):
        cfg.ledger.rpc_url = str(v)
    if v := ledger.get("horizon_url"):
        cfg.ledger.horizon_url = str(v)
    if v := ledger.get("contract_id"):
        cfg.ledger.contract_id = str(v)
    if v := ledger.get("request_timeout"):
        cfg.ledger.request_timeout = float(v)

    # ── Retry section ──────────────────────────────────────
    retry = raw.get("retry", {})
    if (v := retry.get("max_retries")) is not None:
        cfg.retry.max_retries = int(v)
    if v := retry.get("base_delay"):
        cfg.retry.base_delay = float(v)

    # ── Scanner section ────────────────────────────────────
    scanner = raw.get("scanner", {})
    if v := scanner.get("lookback_blocks"):
        cfg.scanner.lookback_blocks = int(v)
    if v := scanner.get("max_block_range"):
        cfg.scanner.max_block_range = int(v)
    if (v := scanner.get("window_delay")) is not None:
        cfg.scanner.window_delay = float(v)

    # ── Poll section ───────────────────────────────────────
    poll = raw.get("poll", {})
    if v := poll.get("max_attempts"):
        cfg.poll.max_attempts = int(v)
    if v := poll.get("interval"):
        cfg.poll.interval = float(v)
    if v := poll.get("max_session_age"):
        cfg.poll.max_session_age = float(v)
    if v := poll.get("freshness_window"):
        cfg.poll.freshness_window = float(v)
    if "dispatch_skew" in poll:
        skew = float(poll["dispatch_skew"])
        # negative switches the dispatch-time gate off
        cfg.poll.dispatch_skew = None if skew < 0 else skew

    # ── Fallback section ───────────────────────────────────
    fallback = raw.get("fallback", {})
    if "enabled" in fallback:
        cfg.fallback.enabled = bool(fallback["enabled"])
    if v := fallback.get("epsilon"):
        cfg.fallback.epsilon = Decimal(str(v))

    # ── Stake section ──────────────────────────────────────
    stake = raw.get("stake", {})
    if v := stake.get("min_stake"):
        cfg.stake.min_stake = Decimal(str(v))
    if v := stake.get("max_stake"):
        cfg.stake.max_stake = Decimal(str(v))

    # ── Environment variable overrides (highest priority) ──
    if net := os.environ.get(f"{env_prefix}NETWORK"):
        cfg.ledger.network = net
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.ledger.rpc_url = rpc
    if horizon := os.environ.get(f"{env_prefix}HORIZON_URL"):
        cfg.ledger.horizon_url = horizon
    if cid := os.environ.get(f"{env_prefix}CONTRACT_ID"):
        cfg.ledger.contract_id = cid
    if level := os.environ.get(f"{env_prefix}LOG_LEVEL"):
        cfg.log_level = level
    if (enabled := os.environ.get(f"{env_prefix}FALLBACK_ENABLED")) is not None:
        cfg.fallback.enabled = enabled.strip().lower() in _TRUE

    # Passphrase follows the network unless set explicitly
    if v := ledger.get("network_passphrase"):
        cfg.ledger.network_passphrase = str(v)
    else:
        cfg.ledger.network_passphrase = NETWORK_PASSPHRASES.get(
            cfg.ledger.network, cfg.ledger.network_passphrase,
        )

    return cfg
