"""
Configuration loader for ctfledger.

What it does:
- Reads static settings from `config/config.yaml` (path overridable with `CTF_CONFIG`).
- Applies environment overrides: `PROMETHEUS_PORT`, `REDIS_URL`, `EVENTS_STREAM`.
- Validates the result using Pydantic models.

Where it is used:
- Called by `ctfledger.main` to build the ledger, its collaterals and the demo market.

Key outputs:
- `Settings` model with the ledger custody address, oracle address, collateral
  assets (with demo faucet balances), metrics port and event stream settings.
"""

import os
import yaml
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


class CollateralConfig(BaseModel):
    """One fungible collateral asset the ledger accepts."""
    symbol: str
    address: str
    decimals: int = 6
    faucet: Dict[str, int] = Field(default_factory=dict)

    @field_validator("faucet")
    @classmethod
    def non_negative(cls, v):
        for owner, amount in v.items():
            if amount < 0:
                raise ValueError(f"faucet amount for {owner} must be non-negative")
        return v


class EventsConfig(BaseModel):
    redis_url: str = "redis://localhost:6379/0"
    stream: str = "ctfledger.events"
    dlq: str = "ctfledger.dlq"


class Settings(BaseModel):
    """Runtime settings assembled from YAML + environment variables."""
    ledger_address: str = "ctf"
    oracle: str
    collaterals: List[CollateralConfig]
    metrics_port: int = 8000
    events: EventsConfig = Field(default_factory=EventsConfig)
    export_dir: Optional[str] = "data"

    @field_validator("ledger_address", "oracle")
    @classmethod
    def not_empty(cls, v, info):
        if not v or not str(v).strip():
            raise ValueError(f"Missing required address: {info.field_name}")
        return v

    @field_validator("collaterals")
    @classmethod
    def at_least_one(cls, v):
        if not v:
            raise ValueError("at least one collateral must be configured")
        return v

    def collateral(self, symbol: str) -> CollateralConfig:
        for c in self.collaterals:
            if c.symbol.upper() == symbol.upper():
                return c
        raise KeyError(f"collateral {symbol} not configured")


def load_settings(path: str = "config/config.yaml") -> Settings:
    """Load YAML config, apply env-var overrides, and return Settings."""
    with open(path, "r") as f:
        config = yaml.safe_load(f) or {}
    ledger = config.get("ledger", {})
    events = dict(config.get("events", {}))
    metrics = config.get("metrics", {})

    if os.getenv("REDIS_URL"):
        events["redis_url"] = os.environ["REDIS_URL"]
    if os.getenv("EVENTS_STREAM"):
        events["stream"] = os.environ["EVENTS_STREAM"]
    metrics_port = int(os.getenv("PROMETHEUS_PORT", metrics.get("port", 8000)))

    return Settings(
        ledger_address=ledger.get("address", "ctf"),
        oracle=ledger.get("oracle", ""),
        collaterals=[CollateralConfig(**c) for c in config.get("collaterals", [])],
        metrics_port=metrics_port,
        events=EventsConfig(**events),
        export_dir=config.get("export_dir", "data"),
    )
