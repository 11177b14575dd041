#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: A Crowdfunded Loan Step by Step

Walks one sponsored campaign through its whole life and a second one that
misses its funding threshold. Each step builds on the previous one.

WHAT YOU'LL LEARN:
  1-3:  Setup        - Roles, the settlement asset, registering a sponsor
  4-6:  Funding      - Proposal with collateral, the funding window, rejections
  7-9:  The Loan     - Drawing, the amortization schedule, a late installment
  10-11: Settlement  - Holders redeem, the sponsor reclaims collateral
  12:   Recovery     - A lapsed window, the expiry keeper, refunds

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from crowdlend import (
    CampaignEngine, CampaignTerms, ClaimLedger, EngineConfig, ExpiryKeeper,
    FungibleAsset, RoleRegistry, Role, LendingError, PRECISION,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: int = 19_700 * 86_400
    day: int = 86_400

    # Campaign terms: 20 units at 50, 10% yield, 4 installments
    unit_price: int = 50
    max_units: int = 20
    yield_rate: int = PRECISION // 10          # 10%
    late_fee_proportion: int = PRECISION // 2  # half the yield per late day
    installments: int = 4
    frequency_days: int = 30
    funding_days: int = 30

    sponsor_ratio: int = 5                     # 20% collateral
    days_late: int = 1                         # lateness of installment 2


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv

ADMIN, SPONSOR, BORROWER = "root", "acme", "alice"
INVESTORS = ("bob", "carol")


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def fund_account(usdc: FungibleAsset, engine: CampaignEngine, who: str, amount: int):
    """Issue tokens and approve escrow to pull them."""
    usdc.issue(who, amount)
    usdc.approve(who, engine.escrow, usdc.allowance(who, engine.escrow) + amount)


def make_terms(**overrides) -> CampaignTerms:
    params = dict(
        borrower=BORROWER,
        asset="USDC",
        unit_price=CONFIG.unit_price,
        max_units=CONFIG.max_units,
        yield_rate=CONFIG.yield_rate,
        max_funding_days=CONFIG.funding_days,
        days_to_first_installment=CONFIG.frequency_days,
        installment_frequency_days=CONFIG.frequency_days,
        number_of_installments=CONFIG.installments,
        late_fee_proportion=CONFIG.late_fee_proportion,
    )
    params.update(overrides)
    return CampaignTerms(**params)


# ============================================================================
# PHASE 1: SETUP (Steps 1-3)
# ============================================================================

def step_01_engine():
    """Create the engine and its collaborators."""
    step_header(1, "The Engine and its Collaborators",
        "See that the engine owns campaigns but not money, units or roles.")

    print("""
    The CampaignEngine is wired to three collaborators:

    1. RoleRegistry - who may do what (ADMIN, SPONSOR, CHAMPION)
    2. ClaimLedger  - claim units per campaign, minted only by the engine
    3. FungibleAsset - the settlement token (think USDC)

    Escrow is just an account on the asset that the engine controls.
    """)
    wait_for_enter()

    roles = RoleRegistry(admin=ADMIN)
    claims = ClaimLedger("https://claims.example/{id}.json")
    usdc = FungibleAsset("USDC")
    engine = CampaignEngine(
        roles, claims, assets={"USDC": usdc},
        config=EngineConfig(verbose=True), initial_time=CONFIG.start_time,
    )

    section_header("Initial State")
    print(f"Escrow account:   {engine.escrow}")
    print(f"Current day:      {engine.today()}")
    print(f"Campaigns:        {len(engine.store)}")
    print(f"Admins:           {sorted(roles.members(Role.ADMIN))}")
    return engine, usdc, claims, roles


def step_02_sponsor(engine: CampaignEngine, usdc: FungibleAsset):
    """Register a sponsor."""
    step_header(2, "Registering a Sponsor",
        "Only ADMIN can vouch for sponsors; each carries a collateral ratio.")

    print(f">>> engine.register_sponsor('{ADMIN}', '{SPONSOR}', collateral_ratio={CONFIG.sponsor_ratio})")
    engine.register_sponsor(ADMIN, SPONSOR, CONFIG.sponsor_ratio)
    fund_account(usdc, engine, SPONSOR, 10_000)

    section_header("Rejection")
    try:
        engine.register_sponsor(SPONSOR, "shady", 1)
    except LendingError as exc:
        print(f"Caught {type(exc).__name__}: {exc}")


def step_03_propose(engine: CampaignEngine, usdc: FungibleAsset, roles: RoleRegistry) -> int:
    """Propose a campaign."""
    step_header(3, "Proposing a Campaign",
        "Proposing escrows collateral and makes the borrower a CHAMPION.")

    campaign_id = engine.propose(SPONSOR, make_terms())
    record = engine.get_campaign(campaign_id)

    section_header("Record")
    print(f"Status:             {record.status.value}")
    print(f"Principal:          {record.principal}")
    print(f"Collateral escrowed:{record.collateral_deposit:>6}")
    print(f"Borrower champion:  {roles.has_role(Role.CHAMPION, BORROWER)}")
    return campaign_id


# ============================================================================
# PHASE 2: FUNDING (Steps 4-6)
# ============================================================================

def step_04_open(engine: CampaignEngine, campaign_id: int):
    step_header(4, "Opening the Funding Window",
        "The window closes a fixed number of days after opening.")
    engine.open_funding(SPONSOR, campaign_id)
    record = engine.get_campaign(campaign_id)
    print(f"Deadline:           {record.funding_deadline(CONFIG.day)}")
    print(f"Expiry bucket day:  {engine.expiry_index.peek_next_day()}")


def step_05_fund(engine: CampaignEngine, usdc: FungibleAsset, campaign_id: int):
    step_header(5, "Funding",
        "Investors buy claim units; the cap flips the campaign to THRESHOLD_MET.")
    half = CONFIG.max_units // 2
    for investor in INVESTORS:
        fund_account(usdc, engine, investor, half * CONFIG.unit_price)
        engine.fund(investor, campaign_id, half)
    print(f"Funded units:       {engine.funded_units(campaign_id)}/{CONFIG.max_units}")
    print(f"Status:             {engine.get_campaign(campaign_id).status.value}")


def step_06_rejections(engine: CampaignEngine, usdc: FungibleAsset, campaign_id: int):
    step_header(6, "Rejected Operations",
        "A rejected call changes nothing: not the record, units or balances.")
    before = engine.get_campaign(campaign_id)
    fund_account(usdc, engine, "dave", CONFIG.unit_price)
    try:
        engine.fund("dave", campaign_id, 1)
    except LendingError as exc:
        print(f"Caught {type(exc).__name__}: {exc}")
    print(f"Record unchanged:   {engine.get_campaign(campaign_id) == before}")


# ============================================================================
# PHASE 3: THE LOAN (Steps 7-9)
# ============================================================================

def step_07_draw(engine: CampaignEngine, usdc: FungibleAsset, campaign_id: int):
    step_header(7, "Drawing the Loan", "The pooled funds go to the borrower.")
    amount = engine.draw_loan(BORROWER, campaign_id)
    print(f"Disbursed:          {amount}")
    print(f"Borrower balance:   {usdc.balance_of(BORROWER)}")


def step_08_schedule(engine: CampaignEngine, campaign_id: int):
    step_header(8, "The Amortization Schedule",
        "Principal is split evenly; the last installment takes the remainder.")
    for index, due, base in engine.installment_schedule(campaign_id):
        print(f"  #{index}  due day {due // CONFIG.day}  base {base}")


def step_09_repay(engine: CampaignEngine, usdc: FungibleAsset, campaign_id: int):
    step_header(9, "Repaying, One Installment Late",
        "Late days compound the daily surcharge; holders receive it later.")
    for index, due, _ in engine.installment_schedule(campaign_id):
        when = due + (CONFIG.days_late * CONFIG.day if index == 2 else 0)
        engine.advance_time(max(engine.current_time, when))
        quote = engine.next_installment(campaign_id)
        fund_account(usdc, engine, BORROWER, quote.total)
        engine.pay_installment(BORROWER, campaign_id)
        print(f"  #{quote.index}: owed {quote.owed} + penalty {quote.penalty} "
              f"({quote.days_late} days late)")
    print(f"Status:             {engine.get_campaign(campaign_id).status.value}")


# ============================================================================
# PHASE 4: SETTLEMENT (Steps 10-11)
# ============================================================================

def step_10_settle(engine: CampaignEngine, usdc: FungibleAsset, campaign_id: int):
    step_header(10, "Holders Redeem",
        "Each holder burns all units for principal, yield and a share of surcharge.")
    for investor in INVESTORS:
        payout = engine.burn_for_settlement(investor, campaign_id)
        print(f"  {investor}: {payout}")
    record = engine.get_campaign(campaign_id)
    residual = record.unclaimed_principal() + record.yield_accrued
    if residual > 0:
        print(f"  residual to borrower: {engine.claim_residual(BORROWER, campaign_id)}")


def step_11_collateral(engine: CampaignEngine, campaign_id: int):
    step_header(11, "Sponsor Reclaims Collateral", "Collateral can be claimed exactly once.")
    print(f"Returned:           {engine.claim_collateral(SPONSOR, campaign_id)}")
    report = engine.verify_conservation()
    print(f"Conservation valid: {report['valid']}  escrow={report['escrow']}")


# ============================================================================
# PHASE 5: RECOVERY (Step 12)
# ============================================================================

def step_12_recovery(engine: CampaignEngine, usdc: FungibleAsset):
    step_header(12, "A Campaign that Misses its Threshold",
        "The keeper expires it; investors get exactly their principal back.")
    campaign_id = engine.propose(SPONSOR, make_terms())
    engine.open_funding(SPONSOR, campaign_id)
    fund_account(usdc, engine, "erin", 3 * CONFIG.unit_price)
    engine.fund("erin", campaign_id, 3)

    keeper = ExpiryKeeper(engine)
    deadline = engine.get_campaign(campaign_id).funding_deadline(CONFIG.day)
    keeper.run_daily(deadline)
    print(f"Status:             {engine.get_campaign(campaign_id).status.value}")
    print(f"Refund to erin:     {engine.burn_for_recovery('erin', campaign_id)}")
    print(f"Collateral back:    {engine.claim_collateral(SPONSOR, campaign_id)}")
    print(f"Operations logged:  {len(engine.operation_log)}")


def main():
    print("=" * 70)
    print("       CROWDLEND TUTORIAL")
    print("=" * 70)

    engine, usdc, claims, roles = step_01_engine()
    wait_for_enter()
    step_02_sponsor(engine, usdc)
    wait_for_enter()
    campaign_id = step_03_propose(engine, usdc, roles)
    wait_for_enter()

    step_04_open(engine, campaign_id)
    wait_for_enter()
    step_05_fund(engine, usdc, campaign_id)
    wait_for_enter()
    step_06_rejections(engine, usdc, campaign_id)
    wait_for_enter()

    step_07_draw(engine, usdc, campaign_id)
    wait_for_enter()
    step_08_schedule(engine, campaign_id)
    wait_for_enter()
    step_09_repay(engine, usdc, campaign_id)
    wait_for_enter()

    step_10_settle(engine, usdc, campaign_id)
    wait_for_enter()
    step_11_collateral(engine, campaign_id)
    wait_for_enter()

    step_12_recovery(engine, usdc)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See crowdlend/money.py for the fixed-point formulas
      - See crowdlend/settlement.py for all-or-nothing execution
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
