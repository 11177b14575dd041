"""
helpers.py - Test helpers for driving campaigns

Builds a fully wired engine and advances campaigns through their lifecycle
without repeating the setup in every test.
"""

from __future__ import annotations
from typing import Dict, Optional

from crowdlend import (
    CampaignEngine, CampaignTerms, ClaimLedger, EngineConfig, FungibleAsset,
    RoleRegistry, PRECISION,
)


DAY = 86_400
T0 = 19_700 * DAY  # day-aligned start time

ADMIN = "root"
SPONSOR = "acme"
BORROWER = "alice"
INVESTORS = ("bob", "carol", "dave", "erin")

SPONSOR_RATIO = 5
TEN_PERCENT = PRECISION // 10


def make_terms(**overrides) -> CampaignTerms:
    """Default terms: 20 units at 50, 10% yield, 4 installments every 30 days."""
    params = dict(
        borrower=BORROWER,
        asset="USDC",
        unit_price=50,
        max_units=20,
        yield_rate=TEN_PERCENT,
        max_funding_days=30,
        days_to_first_installment=30,
        installment_frequency_days=30,
        number_of_installments=4,
    )
    params.update(overrides)
    return CampaignTerms(**params)


def give(asset: FungibleAsset, engine: CampaignEngine, who: str, amount: int) -> None:
    """Issue ``amount`` to ``who`` and raise its escrow allowance by the same."""
    asset.issue(who, amount)
    asset.approve(who, engine.escrow, asset.allowance(who, engine.escrow) + amount)


def build_engine(config: Optional[EngineConfig] = None, **config_overrides):
    """Engine, asset, ledger and roles with SPONSOR registered and funded."""
    if config is None:
        config = EngineConfig(**config_overrides)
    roles = RoleRegistry(admin=ADMIN)
    claims = ClaimLedger("https://claims.example/{id}.json")
    usdc = FungibleAsset("USDC")
    engine = CampaignEngine(roles, claims, assets={"USDC": usdc}, config=config, initial_time=T0)
    engine.register_sponsor(ADMIN, SPONSOR, SPONSOR_RATIO)
    give(usdc, engine, SPONSOR, 1_000_000)
    return engine, usdc, claims, roles


def open_campaign(engine: CampaignEngine, **overrides) -> int:
    """Propose and open a campaign; return its id."""
    campaign_id = engine.propose(SPONSOR, make_terms(**overrides))
    engine.open_funding(SPONSOR, campaign_id)
    return campaign_id


def fund_fully(engine: CampaignEngine, usdc: FungibleAsset, campaign_id: int,
               allocation: Optional[Dict[str, int]] = None) -> Dict[str, int]:
    """Buy units per ``allocation``; by default sell every unit to two investors."""
    record = engine.get_campaign(campaign_id)
    if allocation is None:
        half = record.max_units // 2
        allocation = {INVESTORS[0]: half, INVESTORS[1]: record.max_units - half}
    for investor, units in allocation.items():
        give(usdc, engine, investor, units * record.unit_price)
        engine.fund(investor, campaign_id, units)
    return allocation


def pay_next(engine: CampaignEngine, usdc: FungibleAsset, campaign_id: int) -> int:
    """Pay the next installment at the current time; return the amount paid."""
    quote = engine.next_installment(campaign_id)
    if quote.total > 0:
        give(usdc, engine, BORROWER, quote.total)
    engine.pay_installment(BORROWER, campaign_id)
    return quote.total


def repay_all(engine: CampaignEngine, usdc: FungibleAsset, campaign_id: int) -> int:
    """Pay every installment on its due date; return total paid."""
    total = 0
    for _, due, _ in engine.installment_schedule(campaign_id):
        if engine.current_time < due:
            engine.advance_time(due)
        total += pay_next(engine, usdc, campaign_id)
    return total
