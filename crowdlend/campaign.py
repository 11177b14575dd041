"""
campaign.py - Campaign records and the record store

ARCHITECTURE:
=============

1. CampaignTerms: immutable term sheet supplied at proposal time. Validates
   value ranges (the original packed day counts into 16 bits and rates into
   64 bits; only the ranges survive here, not the layout).

2. CampaignRecord: immutable snapshot of a campaign's full lifecycle state.
   Every change produces a NEW record via dataclasses.replace, so a failed
   operation never leaves a half-updated record behind.

3. CampaignStore: keyed storage. No validation of its own; the engine is
   its only writer and enforces correctness before calling put().
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterator, List, Optional

from .core import (
    CampaignStatus, CampaignNotFound,
    MAX_AMOUNT, MAX_DAYS, MAX_RATE,
)


@dataclass(frozen=True, slots=True)
class CampaignTerms:
    """
    Immutable term sheet for a campaign - set at proposal, never changes.

    Attributes:
        borrower: Participant drawing the loan (the champion)
        asset: Identifier of the settlement asset
        unit_price: Price per claim unit in asset base units
        max_units: Funding cap in claim units
        yield_rate: Yield over the life of the loan, fixed point
        max_funding_days: Length of the funding window
        days_to_first_installment: Days from loan draw to the first due date
        installment_frequency_days: Days between subsequent due dates
        number_of_installments: Number of scheduled repayments
        late_fee_proportion: Fraction of yield charged per late day, fixed
                             point (None = engine default)
    """
    borrower: str
    asset: str
    unit_price: int
    max_units: int
    yield_rate: int
    max_funding_days: int
    days_to_first_installment: int
    installment_frequency_days: int
    number_of_installments: int
    late_fee_proportion: Optional[int] = None

    def __post_init__(self):
        if not self.borrower or not str(self.borrower).strip():
            raise ValueError("borrower cannot be empty")
        if not self.asset or not str(self.asset).strip():
            raise ValueError("asset cannot be empty")
        if not 0 < self.unit_price <= MAX_AMOUNT:
            raise ValueError(f"unit_price out of range: {self.unit_price}")
        if not 0 < self.max_units <= MAX_AMOUNT:
            raise ValueError(f"max_units out of range: {self.max_units}")
        if self.unit_price * self.max_units > MAX_AMOUNT:
            raise ValueError("unit_price * max_units exceeds the amount range")
        if not 0 <= self.yield_rate <= MAX_RATE:
            raise ValueError(f"yield_rate out of range: {self.yield_rate}")
        if not 0 < self.max_funding_days <= MAX_DAYS:
            raise ValueError(f"max_funding_days out of range: {self.max_funding_days}")
        if not 0 <= self.days_to_first_installment <= MAX_DAYS:
            raise ValueError(
                f"days_to_first_installment out of range: {self.days_to_first_installment}"
            )
        if not 0 <= self.installment_frequency_days <= MAX_DAYS:
            raise ValueError(
                f"installment_frequency_days out of range: {self.installment_frequency_days}"
            )
        if not 0 < self.number_of_installments <= MAX_DAYS:
            raise ValueError(
                f"number_of_installments out of range: {self.number_of_installments}"
            )
        # A zero nominal installment could never advance the schedule
        if self.unit_price * self.max_units < self.number_of_installments:
            raise ValueError("principal must be at least one base unit per installment")
        if self.late_fee_proportion is not None and not 0 <= self.late_fee_proportion <= MAX_RATE:
            raise ValueError(f"late_fee_proportion out of range: {self.late_fee_proportion}")

    @property
    def principal(self) -> int:
        """Total loan size when fully subscribed."""
        return self.unit_price * self.max_units


@dataclass(frozen=True, slots=True)
class CampaignRecord:
    """
    Immutable snapshot of a campaign at a point in time.

    Running totals:
        principal_returned: yield-inclusive installment repayments received
        yield_accrued: late-payment surcharge not yet paid out to holders
        amount_claimed_by_holders: principal_returned already paid out
    """
    campaign_id: int
    borrower: str
    sponsor: str
    asset: str
    unit_price: int
    max_units: int
    yield_rate: int
    collateral_ratio: int
    collateral_deposit: int
    late_fee_proportion: int
    max_funding_days: int
    days_to_first_installment: int
    installment_frequency_days: int
    number_of_installments: int
    status: CampaignStatus = CampaignStatus.PROPOSED
    created_at: int = 0
    funding_start: int = 0
    installments_paid: int = 0
    loan_drawn_at: int = 0
    yield_accrued: int = 0
    principal_returned: int = 0
    amount_claimed_by_holders: int = 0
    collateral_claimed: bool = False

    @classmethod
    def from_terms(
        cls,
        campaign_id: int,
        sponsor: str,
        terms: CampaignTerms,
        collateral_ratio: int,
        collateral_deposit: int,
        late_fee_proportion: int,
        created_at: int,
    ) -> CampaignRecord:
        return cls(
            campaign_id=campaign_id,
            borrower=terms.borrower,
            sponsor=sponsor,
            asset=terms.asset,
            unit_price=terms.unit_price,
            max_units=terms.max_units,
            yield_rate=terms.yield_rate,
            collateral_ratio=collateral_ratio,
            collateral_deposit=collateral_deposit,
            late_fee_proportion=late_fee_proportion,
            max_funding_days=terms.max_funding_days,
            days_to_first_installment=terms.days_to_first_installment,
            installment_frequency_days=terms.installment_frequency_days,
            number_of_installments=terms.number_of_installments,
            created_at=created_at,
        )

    @property
    def principal(self) -> int:
        return self.unit_price * self.max_units

    def funding_deadline(self, day_length: int) -> int:
        """Timestamp at which the funding window closes."""
        return self.funding_start + self.max_funding_days * day_length

    def unclaimed_principal(self) -> int:
        return self.principal_returned - self.amount_claimed_by_holders

    def check_invariants(self) -> None:
        """
        Raise ValueError if the record breaks a bookkeeping invariant.

        installments_paid <= number_of_installments
        amount_claimed_by_holders <= principal_returned
        money fields are never negative
        """
        if self.installments_paid > self.number_of_installments:
            raise ValueError(
                f"campaign {self.campaign_id}: installments_paid "
                f"{self.installments_paid} > {self.number_of_installments}"
            )
        if self.amount_claimed_by_holders > self.principal_returned:
            raise ValueError(
                f"campaign {self.campaign_id}: claimed {self.amount_claimed_by_holders} "
                f"exceeds returned {self.principal_returned}"
            )
        for name in ("yield_accrued", "principal_returned", "amount_claimed_by_holders",
                     "collateral_deposit", "installments_paid"):
            value = getattr(self, name)
            if value < 0 or value > MAX_AMOUNT:
                raise ValueError(f"campaign {self.campaign_id}: {name} out of range: {value}")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['status'] = self.status.value
        return data


class CampaignStore:
    """
    In-memory keyed storage of campaign records.

    Ids are assigned monotonically from 1. Records are replaced, never
    deleted; terminal campaigns stay readable for historical claims.
    """

    def __init__(self):
        self._records: Dict[int, CampaignRecord] = {}
        self._last_id: int = 0

    def next_id(self) -> int:
        """Id the next created record must carry (not reserved until create)."""
        return self._last_id + 1

    def create(self, record: CampaignRecord) -> CampaignRecord:
        if record.campaign_id != self.next_id():
            raise ValueError(
                f"Expected campaign id {self.next_id()}, got {record.campaign_id}"
            )
        self._records[record.campaign_id] = record
        self._last_id = record.campaign_id
        return record

    def get(self, campaign_id: int) -> CampaignRecord:
        try:
            return self._records[campaign_id]
        except KeyError:
            raise CampaignNotFound(f"Campaign {campaign_id} not found") from None

    def put(self, record: CampaignRecord) -> CampaignRecord:
        """Replace the stored record with the same id."""
        if record.campaign_id not in self._records:
            raise CampaignNotFound(f"Campaign {record.campaign_id} not found")
        self._records[record.campaign_id] = record
        return record

    def list_ids(self) -> List[int]:
        return sorted(self._records)

    def snapshot(self) -> Dict[int, CampaignRecord]:
        """Shallow copy of the id -> record mapping (records are immutable)."""
        return dict(self._records)

    def __contains__(self, campaign_id: object) -> bool:
        return campaign_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CampaignRecord]:
        for campaign_id in sorted(self._records):
            yield self._records[campaign_id]
