import pytest

from ctfledger.collateral.token import InMemoryCollateral
from ctfledger.engine import ConditionalTokens
from ctfledger.errors import CollateralTransferFailed, InvalidComplement, TokenAlreadyRegistered
from ctfledger.events.schema import TokenRegistered
from ctfledger.ids.derive import ZERO_COLLECTION, collection_id, condition_id, position_id
from ctfledger.market.creator import MarketCreator
from ctfledger.market.registry import TokenRegistry
from ctfledger.market.resolver import OracleResolver


Q = "0x" + "77" * 32


def _setup():
    ctf = ConditionalTokens("ctf")
    usdc = InMemoryCollateral("usdc")
    usdc.mint("maker", 5_000)
    registry = TokenRegistry(ctf.events)
    return ctf, usdc, registry, MarketCreator(ctf, registry, "oracle")


def test_create_market_prepares_splits_and_registers_pair():
    ctf, usdc, registry, creator = _setup()
    usdc.approve("maker", "ctf", 1_000)
    market = creator.create_market("maker", Q, usdc, 1_000)

    assert market.condition_id == condition_id("oracle", Q, 2)
    assert market.yes_position_id == position_id("usdc", collection_id(ZERO_COLLECTION, market.condition_id, 1))
    assert market.no_position_id == position_id("usdc", collection_id(ZERO_COLLECTION, market.condition_id, 2))
    assert ctf.balance_of("maker", market.yes_position_id) == 1_000
    assert ctf.balance_of("maker", market.no_position_id) == 1_000
    assert registry.get_complement(market.yes_position_id) == market.no_position_id
    assert registry.get_complement(market.no_position_id) == market.yes_position_id
    assert registry.get_condition_id(market.yes_position_id) == market.condition_id
    assert len(ctf.events.of_type(TokenRegistered)) == 2


def test_market_cannot_be_created_twice():
    ctf, usdc, registry, creator = _setup()
    usdc.approve("maker", "ctf", 2_000)
    creator.create_market("maker", Q, usdc, 1_000)
    with pytest.raises(TokenAlreadyRegistered):
        creator.create_market("maker", Q, usdc, 1_000)
    assert ctf.collateral_in_custody(usdc) == 1_000


def test_unfunded_attempt_can_be_retried():
    ctf, usdc, registry, creator = _setup()
    with pytest.raises(CollateralTransferFailed):
        creator.create_market("maker", Q, usdc, 1_000)
    assert condition_id("oracle", Q, 2) in ctf.conditions
    usdc.approve("maker", "ctf", 1_000)
    market = creator.create_market("maker", Q, usdc, 1_000)
    assert registry.is_registered(market.yes_position_id)


def test_registry_rejects_self_complement():
    ctf, _usdc, registry, _creator = _setup()
    with pytest.raises(InvalidComplement):
        registry.register_token(5, 5, "0x01")
    with pytest.raises(InvalidComplement):
        registry.register_token(0, 5, "0x01")
    assert not registry.is_registered(5)


@pytest.mark.parametrize("outcome, maker_paid", [("yes", 1_000), ("no", 0), ("invalid", 500)])
def test_oracle_resolver_binary_outcomes(outcome, maker_paid):
    ctf, usdc, _registry, creator = _setup()
    usdc.approve("maker", "ctf", 1_000)
    market = creator.create_market("maker", Q, usdc, 1_000)
    # Maker sells the NO side and keeps YES
    ctf.transfer("maker", "maker", "taker", market.no_position_id, 1_000)
    OracleResolver(ctf, "oracle").resolve_binary(Q, outcome)

    assert ctf.redeem_positions("maker", usdc, ZERO_COLLECTION, market.condition_id, [1]) == maker_paid
    assert ctf.redeem_positions("taker", usdc, ZERO_COLLECTION, market.condition_id, [2]) == 1_000 - maker_paid


def test_oracle_resolver_unknown_outcome():
    ctf, _usdc, _registry, _creator = _setup()
    with pytest.raises(ValueError):
        OracleResolver(ctf, "oracle").resolve_binary(Q, "maybe")
