"""
Main entrypoint for ctfledger.

What it does:
- Loads runtime settings from `config/config.yaml` (or `CTF_CONFIG`) and
  environment overrides.
- Starts the Prometheus exporter and points the event mirror at Redis.
- Runs an offline demo: a market maker creates a binary market, sells the YES
  side to a trader, the trader mints and merges a complete set, the oracle
  reports YES and both parties redeem.
- Writes balances and the event log to parquet and exits.

Where it is used:
- Invoked by `python -m ctfledger.main` or the `ctfledger-demo` script.

Key related modules:
- `ctfledger.config.loader.Settings` and `load_settings`
- `ctfledger.engine.ConditionalTokens`
- `ctfledger.market.creator.MarketCreator`, `ctfledger.market.resolver.OracleResolver`
"""
import hashlib
import logging
import os
from typing import Dict

from ctfledger.collateral.token import InMemoryCollateral
from ctfledger.config.loader import Settings, load_settings
from ctfledger.engine import ConditionalTokens
from ctfledger.events import bus
from ctfledger.ids.derive import ZERO_COLLECTION, hex32
from ctfledger.ledger.export import custody_snapshot, write_parquet
from ctfledger.market.creator import BINARY_PARTITION, MarketCreator
from ctfledger.market.registry import TokenRegistry
from ctfledger.market.resolver import OracleResolver
from ctfledger.metrics.core import start_server_safe


def build_collaterals(settings: Settings) -> Dict[str, InMemoryCollateral]:
    assets: Dict[str, InMemoryCollateral] = {}
    for c in settings.collaterals:
        asset = InMemoryCollateral(c.address, symbol=c.symbol, decimals=c.decimals)
        for owner, amount in c.faucet.items():
            asset.mint(owner, amount)
        assets[c.symbol] = asset
    return assets


def run_demo(settings: Settings) -> ConditionalTokens:
    ctf = ConditionalTokens(settings.ledger_address)
    usdc = build_collaterals(settings)[settings.collaterals[0].symbol]
    unit = 10 ** usdc.decimals
    registry = TokenRegistry(ctf.events)
    creator = MarketCreator(ctf, registry, settings.oracle)
    oracle = OracleResolver(ctf, settings.oracle)

    question_id = hashlib.sha3_256(b"Will the demo market resolve YES?").digest()
    funding = 1_000 * unit
    usdc.approve("market_maker", ctf.address, funding)
    market = creator.create_market("market_maker", question_id, usdc, funding)
    logging.info(f"market created: {{'condition_id': '{hex32(market.condition_id)}', 'funding': {funding}}}")

    # Off-exchange fill: the maker hands 400 YES to the trader
    ctf.transfer("market_maker", "market_maker", "trader", market.yes_position_id, 400 * unit)

    # The trader mints a complete set and merges half of it back
    usdc.approve("trader", ctf.address, 200 * unit)
    ctf.split_position("trader", usdc, ZERO_COLLECTION, market.condition_id, BINARY_PARTITION, 200 * unit)
    ctf.merge_positions("trader", usdc, ZERO_COLLECTION, market.condition_id, BINARY_PARTITION, 100 * unit)
    logging.info(f"custody after trading: {custody_snapshot(ctf)}")

    oracle.resolve_binary(question_id, "yes")
    for holder in ("market_maker", "trader"):
        paid = ctf.redeem_positions(holder, usdc, ZERO_COLLECTION, market.condition_id, BINARY_PARTITION)
        logging.info(f"redeemed: {{'holder': '{holder}', 'payout': {paid}, 'collateral_balance': {usdc.balance_of(holder)}}}")
    logging.info(f"custody after redemption: {custody_snapshot(ctf)}")
    return ctf


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    settings = load_settings(os.getenv("CTF_CONFIG", "config/config.yaml"))
    logging.info(f"Ledger: {settings.ledger_address}, Oracle: {settings.oracle}")
    bus.configure(redis_url=settings.events.redis_url, stream=settings.events.stream, dlq=settings.events.dlq)
    start_server_safe(settings.metrics_port)

    ctf = run_demo(settings)
    if settings.export_dir:
        write_parquet(ctf, settings.export_dir)
        logging.info(f"wrote balances and {len(ctf.events)} events to {settings.export_dir}/")
    logging.info("ledger demo complete")


if __name__ == "__main__":
    main()
