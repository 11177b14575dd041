"""
End-to-end campaign lifecycle scenarios.

Each test drives a campaign from proposal to a terminal state through the
public engine surface only, checking balances and conservation at the end.
"""

import pytest

from crowdlend import (
    CampaignStatus, ExpiryKeeper, PRECISION,
    CapacityExceeded, StateMismatch,
)
from tests.helpers import (
    DAY, T0, SPONSOR, BORROWER, INVESTORS,
    build_engine, give, open_campaign, fund_fully, pay_next, repay_all,
)


BOB, CAROL, DAVE, ERIN = INVESTORS


class TestHappyPath:
    """Fund, borrow, repay on schedule, settle."""

    def test_full_lifecycle(self):
        engine, usdc, claims, _ = build_engine()
        sponsor_start = usdc.balance_of(SPONSOR)

        cid = open_campaign(engine)
        fund_fully(engine, usdc, cid)
        assert engine.get_campaign(cid).status == CampaignStatus.THRESHOLD_MET

        engine.draw_loan(BORROWER, cid)
        paid = repay_all(engine, usdc, cid)
        assert paid == 4 * 275
        assert engine.get_campaign(cid).status == CampaignStatus.BURN_OPEN

        assert engine.burn_for_settlement(BOB, cid) == 550
        assert engine.burn_for_settlement(CAROL, cid) == 550
        assert engine.claim_collateral(SPONSOR, cid) == 200

        record = engine.get_campaign(cid)
        assert record.status == CampaignStatus.FINISHED
        assert claims.total_supply(cid) == 0
        assert usdc.balance_of(engine.escrow) == 0
        assert usdc.balance_of(SPONSOR) == sponsor_start
        assert usdc.balance_of(BORROWER) == 1000
        assert engine.verify_conservation()['valid']

    def test_each_installment_recorded(self):
        engine, usdc, _, _ = build_engine()
        cid = open_campaign(engine)
        fund_fully(engine, usdc, cid)
        engine.draw_loan(BORROWER, cid)
        repay_all(engine, usdc, cid)

        payments = [e for e in engine.operation_log if e.operation == "pay_installment"]
        assert [e.transfers[0].purpose for e in payments] == [
            "installment_1", "installment_2", "installment_3", "installment_4",
        ]
        assert [e.amount_in() for e in payments] == [275] * 4
        assert [e.timestamp for e in payments] == [T0 + k * 30 * DAY for k in (1, 2, 3, 4)]

    def test_many_investors_uneven_split(self):
        engine, usdc, _, _ = build_engine()
        cid = open_campaign(engine, unit_price=13, max_units=7, number_of_installments=3)
        fund_fully(engine, usdc, cid, {BOB: 1, CAROL: 2, DAVE: 4})
        engine.draw_loan(BORROWER, cid)
        repay_all(engine, usdc, cid)

        # 91 principal over 3 installments: 30, 30, 31 plus 10% yield each
        assert engine.get_campaign(cid).principal_returned == 33 + 33 + 34

        payouts = [engine.burn_for_settlement(h, cid) for h in (BOB, CAROL, DAVE)]
        # 13 * 10% floors to 1 per unit
        assert payouts == [14, 28, 56]
        residual = engine.claim_residual(BORROWER, cid)
        assert residual == 100 - 98
        engine.claim_collateral(SPONSOR, cid)
        assert usdc.balance_of(engine.escrow) == 0


class TestCapacity:

    def test_over_subscription_rejected(self):
        engine, usdc, claims, _ = build_engine()
        cid = open_campaign(engine)
        give(usdc, engine, BOB, 50 * 15)
        engine.fund(BOB, cid, 15)

        give(usdc, engine, CAROL, 50 * 6)
        with pytest.raises(CapacityExceeded):
            engine.fund(CAROL, cid, 6)

        assert claims.total_supply(cid) == 15
        assert usdc.balance_of(CAROL) == 300
        engine.fund(CAROL, cid, 5)
        assert engine.get_campaign(cid).status == CampaignStatus.THRESHOLD_MET


class TestThresholdUnmet:

    def test_expired_campaign_refunds_investors(self):
        engine, usdc, claims, _ = build_engine()
        cid = open_campaign(engine)
        fund_fully(engine, usdc, cid, {BOB: 4, CAROL: 6})

        keeper = ExpiryKeeper(engine)
        assert keeper.step(T0 + 29 * DAY) == []
        assert keeper.step(T0 + 30 * DAY) == [cid]
        assert engine.get_campaign(cid).status == CampaignStatus.THRESHOLD_UNMET

        assert engine.burn_for_recovery(BOB, cid) == 200
        assert engine.burn_for_recovery(CAROL, cid) == 300
        assert engine.get_campaign(cid).status == CampaignStatus.FINISHED
        assert engine.claim_collateral(SPONSOR, cid) == 200

        assert claims.total_supply(cid) == 0
        assert usdc.balance_of(engine.escrow) == 0
        assert engine.verify_conservation()['valid']

    def test_loan_never_drawn_after_expiry(self):
        engine, usdc, _, _ = build_engine()
        cid = open_campaign(engine)
        fund_fully(engine, usdc, cid, {BOB: 1})
        ExpiryKeeper(engine).step(T0 + 31 * DAY)
        with pytest.raises(StateMismatch):
            engine.draw_loan(BORROWER, cid)


class TestLatePayment:

    def test_four_days_late(self):
        engine, usdc, _, _ = build_engine()
        cid = open_campaign(engine, yield_rate=PRECISION, late_fee_proportion=PRECISION // 2)
        fund_fully(engine, usdc, cid)
        engine.draw_loan(BORROWER, cid)

        engine.advance_time(T0 + 34 * DAY)
        quote = engine.next_installment(cid)
        paid = pay_next(engine, usdc, cid)

        assert quote.days_late == 4
        assert quote.penalty > 0
        assert paid == quote.owed + quote.penalty
        assert engine.get_campaign(cid).yield_accrued == quote.penalty

    def test_penalty_ends_up_with_holders(self):
        engine, usdc, _, _ = build_engine()
        cid = open_campaign(engine, yield_rate=PRECISION, late_fee_proportion=PRECISION // 2)
        fund_fully(engine, usdc, cid)
        engine.draw_loan(BORROWER, cid)
        engine.advance_time(T0 + 31 * DAY)
        total = repay_all(engine, usdc, cid)

        payouts = engine.burn_for_settlement(BOB, cid) + engine.burn_for_settlement(CAROL, cid)
        assert payouts == total
        assert engine.get_campaign(cid).status == CampaignStatus.FINISHED


class TestCancellation:

    def test_cancel_before_any_funding(self):
        engine, usdc, _, _ = build_engine()
        sponsor_start = usdc.balance_of(SPONSOR)
        cid = open_campaign(engine)
        engine.cancel(SPONSOR, cid)
        assert engine.get_campaign(cid).status == CampaignStatus.CANCELED
        assert usdc.balance_of(SPONSOR) == sponsor_start

        # the stale expiry bucket is skipped
        ExpiryKeeper(engine).step(T0 + 30 * DAY)
        assert engine.get_campaign(cid).status == CampaignStatus.CANCELED


class TestSeveralCampaigns:

    def test_independent_campaigns_share_escrow(self):
        engine, usdc, _, _ = build_engine()
        first = open_campaign(engine)
        second = open_campaign(engine, unit_price=10, max_units=30)
        fund_fully(engine, usdc, first)
        fund_fully(engine, usdc, second, {DAVE: 12})

        ExpiryKeeper(engine).step(T0 + 30 * DAY)
        assert engine.get_campaign(first).status == CampaignStatus.THRESHOLD_MET
        assert engine.get_campaign(second).status == CampaignStatus.THRESHOLD_UNMET

        engine.draw_loan(BORROWER, first)
        engine.burn_for_recovery(DAVE, second)
        assert engine.verify_conservation()['valid']

        repay_all(engine, usdc, first)
        engine.burn_for_settlement(BOB, first)
        assert engine.verify_conservation()['valid']
