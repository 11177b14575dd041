"""
engine.py - Campaign Lifecycle State Machine

The CampaignEngine is the central state manager of the lending protocol.
It is the only module that mutates campaign records, ensuring controlled and
auditable changes.

Key responsibilities:
    - Validates and applies lifecycle transitions, gated by capabilities and time
    - Prices installments and penalties through the pure money engine
    - Moves funds atomically through settle() (all-or-nothing)
    - Maintains the day-bucketed expiry index and its two-phase sweep
    - Records every committed operation in the audit trail

Lifecycle:

    PROPOSED -> MINT_OPEN -> THRESHOLD_MET -> LOANED -> BURN_OPEN -> FINISHED
                         \\-> THRESHOLD_UNMET -----------------------/
                         \\-> CANCELED

Every public operation takes the acting participant as its first argument.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from functools import wraps
from typing import Dict, List, Mapping, Optional, Tuple

from . import money
from .campaign import CampaignRecord, CampaignStore, CampaignTerms
from .config import EngineConfig
from .core import (
    # Types
    CampaignStatus, Role, Transfer, TransferDirection,
    RecordChange, OperationRecord,
    ClaimLedgerPort, SettlementAssetPort, AuthorizationPort,
    can_transition,
    # Exceptions
    LendingError, AuthorizationError, StateMismatch, WindowExpired,
    CapacityExceeded, AlreadyClaimed, NothingToClaim, InsufficientFunds,
    AssetNotRegistered,
)
from .scheduler import ExpiryIndex
from .settlement import PendingOperation, settle


# Participant recorded as the caller of expiry sweeps.
KEEPER = "keeper"

# Statuses in which pooled funds still sit in escrow as unit purchases.
_PRE_LOAN_STATUSES = frozenset({
    CampaignStatus.PROPOSED,
    CampaignStatus.MINT_OPEN,
    CampaignStatus.THRESHOLD_MET,
    CampaignStatus.THRESHOLD_UNMET,
    CampaignStatus.CANCELED,
})

# Statuses in which the sponsor may take back its collateral.
_COLLATERAL_RELEASE_STATUSES = frozenset({
    CampaignStatus.BURN_OPEN,
    CampaignStatus.THRESHOLD_UNMET,
    CampaignStatus.FINISHED,
})


@dataclass(frozen=True, slots=True)
class InstallmentQuote:
    """
    What the next installment costs right now.

    Attributes:
        index: 1-based installment number (installments_paid + 1)
        base: Principal portion before yield
        owed: Base plus yield
        penalty: Late surcharge (0 when on time or penalties disabled)
        due_date: Timestamp the installment falls due (None past the schedule)
        days_late: Whole days past due
    """
    index: int
    base: int
    owed: int
    penalty: int
    due_date: Optional[int]
    days_late: int

    @property
    def total(self) -> int:
        return self.owed + self.penalty


def _operation(func):
    """Report rejected operations in verbose mode; the error still propagates."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except (LendingError, ValueError) as exc:
            if self.verbose:
                print(f"✗ REJECTED {func.__name__}: {exc}")
            raise
    return wrapper


class CampaignEngine:
    """
    Campaign lifecycle state machine with atomic settlement and audit trail.

    Collaborators are injected: the claim-unit ledger, the capability
    substrate and one settlement asset per asset id. The engine owns every
    campaign record; collaborators are consulted but never hold campaign state.

    Thread Safety:
        Not thread-safe. Calls must be serialized; a concurrent host needs a
        per-campaign lock around each operation.

    Example:
        roles = RoleRegistry(admin="root")
        engine = CampaignEngine(roles, ClaimLedger(), assets={"USDC": usdc})
        engine.register_sponsor("root", "acme", collateral_ratio=5)
        cid = engine.propose("acme", CampaignTerms(borrower="alice", asset="USDC", ...))
        engine.open_funding("acme", cid)
    """

    def __init__(
        self,
        roles: AuthorizationPort,
        claims: ClaimLedgerPort,
        assets: Optional[Mapping[str, SettlementAssetPort]] = None,
        config: Optional[EngineConfig] = None,
        initial_time: int = 0,
    ):
        """
        Create an engine.

        Args:
            roles: Capability substrate (ADMIN, SPONSOR, CHAMPION)
            claims: Claim-unit ledger; only this engine mints and burns
            assets: Settlement assets by id
            config: Engine settings (defaults to EngineConfig())
            initial_time: Starting logical time in epoch seconds
        """
        self.config = config or EngineConfig()
        self.roles = roles
        self.claims = claims
        self.assets: Dict[str, SettlementAssetPort] = dict(assets or {})
        self.store = CampaignStore()
        self.expiry_index = ExpiryIndex()
        self.operation_log: List[OperationRecord] = []
        self.default_late_fee_proportion = self.config.default_late_fee_proportion
        self.verbose = self.config.verbose
        self._sponsor_ratios: Dict[str, int] = {}
        self._current_time: int = initial_time
        self._next_sequence: int = 0

    # ========================================================================
    # TIME
    # ========================================================================

    @property
    def current_time(self) -> int:
        """Current logical time (epoch seconds)."""
        return self._current_time

    @property
    def escrow(self) -> str:
        return self.config.escrow_account

    def today(self) -> int:
        return ExpiryIndex.day_of(self._current_time, self.config.day_length)

    def advance_time(self, new_time: int) -> None:
        """
        Move the logical clock forward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(f"Cannot move time backwards: {new_time} < {self._current_time}")
        self._current_time = new_time

    # ========================================================================
    # ADMINISTRATION
    # ========================================================================

    def _require_admin(self, caller: str) -> None:
        if not self.roles.has_role(Role.ADMIN, caller):
            raise AuthorizationError(f"{caller} lacks {Role.ADMIN.value}")

    @_operation
    def register_asset(self, caller: str, asset_id: str, asset: SettlementAssetPort) -> None:
        """Make a settlement asset available to new campaigns."""
        self._require_admin(caller)
        if not asset_id or not asset_id.strip():
            raise ValueError("asset_id cannot be empty")
        if asset_id in self.assets:
            raise ValueError(f"Asset {asset_id} already registered")
        self.assets[asset_id] = asset
        self._execute(PendingOperation(operation="register_asset", caller=caller))

    @_operation
    def register_sponsor(self, caller: str, sponsor: str, collateral_ratio: int) -> None:
        """
        Grant SPONSOR to ``sponsor`` and record its collateral ratio.

        The ratio divides the loan size: a sponsor with ratio 5 escrows 20% of
        each campaign it proposes. Re-registering updates the ratio for future
        proposals; existing campaigns keep their snapshot.
        """
        self._require_admin(caller)
        if collateral_ratio <= 0:
            raise ValueError(f"collateral_ratio must be positive, got {collateral_ratio}")
        self._execute(PendingOperation(
            operation="register_sponsor",
            caller=caller,
            grants=((caller, Role.SPONSOR, sponsor),),
        ))
        self._sponsor_ratios[sponsor] = collateral_ratio

    @_operation
    def set_default_late_fee(self, caller: str, late_fee_proportion: int) -> None:
        """Set the late fee applied to proposals that do not name one."""
        self._require_admin(caller)
        if late_fee_proportion < 0:
            raise ValueError(f"late_fee_proportion cannot be negative, got {late_fee_proportion}")
        self.default_late_fee_proportion = late_fee_proportion
        self._execute(PendingOperation(operation="set_default_late_fee", caller=caller))

    @_operation
    def set_metadata_uri(self, caller: str, uri: str) -> None:
        self._require_admin(caller)
        self.claims.set_metadata_uri(uri)
        self._execute(PendingOperation(operation="set_metadata_uri", caller=caller))

    def collateral_ratio_of(self, sponsor: str) -> Optional[int]:
        return self._sponsor_ratios.get(sponsor)

    # ========================================================================
    # LIFECYCLE OPERATIONS
    # ========================================================================

    @_operation
    def propose(self, caller: str, terms: CampaignTerms) -> int:
        """
        Create a campaign vouched for by ``caller``.

        Escrows ``unit_price * max_units // collateral_ratio`` from the sponsor
        and grants CHAMPION to the borrower.

        Returns:
            The new campaign id

        Raises:
            AuthorizationError: Caller is not a registered sponsor
            AssetNotRegistered: Unknown settlement asset
            InsufficientAllowance, InsufficientFunds: Collateral pull failed
            ValueError: Yield times late fee exceeds 100% per day
        """
        if not self.roles.has_role(Role.SPONSOR, caller):
            raise AuthorizationError(f"{caller} lacks {Role.SPONSOR.value}")
        ratio = self._sponsor_ratios.get(caller)
        if ratio is None:
            raise AuthorizationError(f"{caller} has no registered collateral ratio")
        if terms.asset not in self.assets:
            raise AssetNotRegistered(f"Settlement asset {terms.asset} not registered")

        late_fee = terms.late_fee_proportion
        if late_fee is None:
            late_fee = self.default_late_fee_proportion
        # Above 100% per day the compounded penalty overflows and LOANED never ends
        rate = money.daily_penalty_rate(terms.yield_rate, late_fee, self.config.precision)
        if rate > self.config.precision:
            raise ValueError(
                f"daily penalty rate {rate} exceeds 100%: lower yield_rate or late_fee_proportion"
            )
        deposit = money.collateral_deposit(terms.unit_price, terms.max_units, ratio)

        campaign_id = self.store.next_id()
        record = CampaignRecord.from_terms(
            campaign_id=campaign_id,
            sponsor=caller,
            terms=terms,
            collateral_ratio=ratio,
            collateral_deposit=deposit,
            late_fee_proportion=late_fee,
            created_at=self._current_time,
        )

        transfers = ()
        if deposit > 0:
            transfers = (Transfer(TransferDirection.IN, terms.asset, caller, deposit, "collateral"),)

        self._execute(PendingOperation(
            operation="propose",
            caller=caller,
            campaign_id=campaign_id,
            new_record=record,
            transfers=transfers,
            grants=((caller, Role.CHAMPION, terms.borrower),),
        ))
        return campaign_id

    @_operation
    def open_funding(self, caller: str, campaign_id: int) -> None:
        """Start the funding window and register the campaign for expiry."""
        record = self.store.get(campaign_id)
        self._require_sponsor(caller, record)
        self._require_status(record, CampaignStatus.PROPOSED)

        expiry_day = self.today() + record.max_funding_days
        self._execute(PendingOperation(
            operation="open_funding",
            caller=caller,
            campaign_id=campaign_id,
            old_record=record,
            new_record=replace(
                record,
                status=CampaignStatus.MINT_OPEN,
                funding_start=self._current_time,
            ),
            expiry_registrations=((campaign_id, expiry_day),),
        ))

    @_operation
    def cancel(self, caller: str, campaign_id: int) -> None:
        """
        Withdraw a campaign that is open but has sold no units.

        The escrowed collateral goes back to the sponsor in the same call.
        """
        record = self.store.get(campaign_id)
        self._require_sponsor(caller, record)
        self._require_status(record, CampaignStatus.MINT_OPEN)
        if self.claims.total_supply(campaign_id) != 0:
            raise StateMismatch(f"Campaign {campaign_id} already has funded units")

        transfers = ()
        if record.collateral_deposit > 0 and not record.collateral_claimed:
            transfers = (Transfer(
                TransferDirection.OUT, record.asset, record.sponsor,
                record.collateral_deposit, "collateral_return",
            ),)
        self._execute(PendingOperation(
            operation="cancel",
            caller=caller,
            campaign_id=campaign_id,
            old_record=record,
            new_record=replace(record, status=CampaignStatus.CANCELED, collateral_claimed=True),
            transfers=transfers,
        ))

    @_operation
    def fund(self, caller: str, campaign_id: int, units: int) -> None:
        """
        Buy ``units`` claim units at ``unit_price`` each.

        Reaching the cap moves the campaign to THRESHOLD_MET.

        Raises:
            StateMismatch: Funding is not open
            WindowExpired: The funding window has closed
            CapacityExceeded: Purchase would exceed max_units
        """
        if units <= 0:
            raise ValueError(f"units must be positive, got {units}")
        record = self.store.get(campaign_id)
        self._require_status(record, CampaignStatus.MINT_OPEN)
        deadline = record.funding_deadline(self.config.day_length)
        if self._current_time >= deadline:
            raise WindowExpired(f"Campaign {campaign_id} funding window closed at {deadline}")
        supply = self.claims.total_supply(campaign_id)
        if supply + units > record.max_units:
            raise CapacityExceeded(
                f"Campaign {campaign_id}: {supply} + {units} units exceeds cap {record.max_units}"
            )

        new_record = record
        if supply + units == record.max_units:
            new_record = replace(record, status=CampaignStatus.THRESHOLD_MET)

        self._execute(PendingOperation(
            operation="fund",
            caller=caller,
            campaign_id=campaign_id,
            old_record=record,
            new_record=new_record,
            transfers=(Transfer(
                TransferDirection.IN, record.asset, caller, record.unit_price * units, "funding",
            ),),
            mints=((caller, units),),
        ))

    @_operation
    def draw_loan(self, caller: str, campaign_id: int) -> int:
        """
        Disburse the pooled funds to the borrower.

        Returns:
            Amount disbursed
        """
        record = self.store.get(campaign_id)
        self._require_borrower(caller, record)
        self._require_status(record, CampaignStatus.THRESHOLD_MET)

        amount = record.principal
        self._execute(PendingOperation(
            operation="draw_loan",
            caller=caller,
            campaign_id=campaign_id,
            old_record=record,
            new_record=replace(
                record, status=CampaignStatus.LOANED, loan_drawn_at=self._current_time,
            ),
            transfers=(Transfer(TransferDirection.OUT, record.asset, caller, amount, "loan"),),
        ))
        return amount

    @_operation
    def pay_installment(self, caller: str, campaign_id: int) -> InstallmentQuote:
        """
        Pay installment ``installments_paid + 1``, with yield and any penalty.

        Once the cumulative repayment covers the outstanding principal the
        campaign moves to BURN_OPEN. A call whose owed amount is zero moves no
        money, but still performs that status flip when the principal is
        already covered.

        Returns:
            The quote that was paid (total 0 for a zero-owed call)
        """
        record = self.store.get(campaign_id)
        self._require_borrower(caller, record)
        self._require_status(record, CampaignStatus.LOANED)

        quote = self._quote(record)
        if quote.owed == 0:
            if self._principal_outstanding(record, record.installments_paid) == 0:
                self._execute(PendingOperation(
                    operation="pay_installment",
                    caller=caller,
                    campaign_id=campaign_id,
                    old_record=record,
                    new_record=replace(record, status=CampaignStatus.BURN_OPEN),
                ))
            return quote

        paid = record.installments_paid + 1
        new_record = replace(
            record,
            installments_paid=paid,
            principal_returned=record.principal_returned + quote.owed,
            yield_accrued=record.yield_accrued + quote.penalty,
        )
        if self._principal_outstanding(record, paid) == 0:
            new_record = replace(new_record, status=CampaignStatus.BURN_OPEN)

        self._execute(PendingOperation(
            operation="pay_installment",
            caller=caller,
            campaign_id=campaign_id,
            old_record=record,
            new_record=new_record,
            transfers=(Transfer(
                TransferDirection.IN, record.asset, caller, quote.total, f"installment_{quote.index}",
            ),),
        ))
        return quote

    @_operation
    def claim_collateral(self, caller: str, campaign_id: int) -> int:
        """
        Return the escrowed collateral to the sponsor, once.

        Returns:
            Amount returned
        """
        record = self.store.get(campaign_id)
        self._require_sponsor(caller, record)
        if record.collateral_claimed:
            raise AlreadyClaimed(f"Campaign {campaign_id} collateral already claimed")
        if record.status not in _COLLATERAL_RELEASE_STATUSES:
            raise StateMismatch(
                f"Campaign {campaign_id} is {record.status.value}, collateral is still locked"
            )
        if record.collateral_deposit == 0:
            raise NothingToClaim(f"Campaign {campaign_id} holds no collateral")

        self._execute(PendingOperation(
            operation="claim_collateral",
            caller=caller,
            campaign_id=campaign_id,
            old_record=record,
            new_record=replace(record, collateral_claimed=True),
            transfers=(Transfer(
                TransferDirection.OUT, record.asset, caller,
                record.collateral_deposit, "collateral_return",
            ),),
        ))
        return record.collateral_deposit

    @_operation
    def burn_for_settlement(self, caller: str, campaign_id: int) -> int:
        """
        Redeem the caller's whole claim balance for principal, yield and surcharge.

        Returns:
            Amount paid out

        Raises:
            NothingToClaim: Caller holds no units
            InsufficientFunds: Repaid principal does not yet cover this claim
        """
        record = self.store.get(campaign_id)
        self._require_status(record, CampaignStatus.BURN_OPEN)
        balance = self._require_balance(caller, campaign_id)
        supply = self.claims.total_supply(campaign_id)

        base_claim = money.settlement_claim(
            record.unit_price, record.yield_rate, balance, self.config.precision,
        )
        yield_claim = money.pro_rata_yield(record.yield_accrued, balance, supply)
        if balance == supply:
            # Per-unit yield floors can exceed the per-installment floors by a
            # few base units; the last holder takes what is left.
            base_claim = min(base_claim, record.unclaimed_principal())
        if record.principal_returned < record.amount_claimed_by_holders + base_claim:
            raise InsufficientFunds(
                f"Campaign {campaign_id}: repaid {record.principal_returned}, "
                f"claimed {record.amount_claimed_by_holders}, claim needs {base_claim}"
            )

        new_record = replace(
            record,
            amount_claimed_by_holders=record.amount_claimed_by_holders + base_claim,
            yield_accrued=record.yield_accrued - yield_claim,
        )
        if balance == supply:
            new_record = replace(new_record, status=CampaignStatus.FINISHED)

        payout = base_claim + yield_claim
        self._execute(PendingOperation(
            operation="burn_for_settlement",
            caller=caller,
            campaign_id=campaign_id,
            old_record=record,
            new_record=new_record,
            transfers=self._payout(record.asset, caller, payout, "settlement"),
            burns=((caller, balance),),
        ))
        return payout

    @_operation
    def burn_for_recovery(self, caller: str, campaign_id: int) -> int:
        """
        Refund the caller's principal after the funding window lapsed.

        Returns:
            Amount refunded (``unit_price * balance``, no yield)
        """
        record = self.store.get(campaign_id)
        self._require_status(record, CampaignStatus.THRESHOLD_UNMET)
        balance = self._require_balance(caller, campaign_id)
        supply = self.claims.total_supply(campaign_id)

        new_record = record
        if balance == supply:
            new_record = replace(record, status=CampaignStatus.FINISHED)

        refund = record.unit_price * balance
        self._execute(PendingOperation(
            operation="burn_for_recovery",
            caller=caller,
            campaign_id=campaign_id,
            old_record=record,
            new_record=new_record,
            transfers=(Transfer(TransferDirection.OUT, record.asset, caller, refund, "recovery"),),
            burns=((caller, balance),),
        ))
        return refund

    @_operation
    def claim_residual(self, caller: str, campaign_id: int) -> int:
        """
        Sweep rounding dust and unclaimed surcharge to the borrower.

        Returns:
            Amount swept
        """
        record = self.store.get(campaign_id)
        self._require_borrower(caller, record)
        self._require_status(record, CampaignStatus.FINISHED)
        residual = record.unclaimed_principal() + record.yield_accrued
        if residual <= 0:
            raise NothingToClaim(f"Campaign {campaign_id} has no residual")

        self._execute(PendingOperation(
            operation="claim_residual",
            caller=caller,
            campaign_id=campaign_id,
            old_record=record,
            new_record=replace(
                record,
                amount_claimed_by_holders=record.principal_returned,
                yield_accrued=0,
            ),
            transfers=(Transfer(TransferDirection.OUT, record.asset, caller, residual, "residual"),),
        ))
        return residual

    # ========================================================================
    # EXPIRY SWEEP (two-phase trigger interface)
    # ========================================================================

    def check_expiry(self) -> Tuple[bool, bytes]:
        """
        Read-only predicate for the external trigger.

        Returns:
            (True if a bucket is due today or earlier, payload naming today)
        """
        today = self.today()
        return self.expiry_index.has_due(today), str(today).encode()

    @_operation
    def perform_expiry(self, payload: bytes = b"", caller: str = KEEPER) -> List[int]:
        """
        Drain due buckets and move still-open campaigns to THRESHOLD_UNMET.

        The payload from check_expiry is advisory; the sweep always uses the
        engine's current day. A second call for the same day finds the
        buckets gone and does nothing.

        Returns:
            Ids of the campaigns that expired
        """
        if payload:
            try:
                int(payload.decode())
            except (UnicodeDecodeError, ValueError):
                raise ValueError(f"Malformed expiry payload: {payload!r}") from None

        expired: List[int] = []
        for campaign_id in self.expiry_index.drain(self.today()):
            record = self.store.get(campaign_id)
            if record.status != CampaignStatus.MINT_OPEN:
                continue
            self._execute(PendingOperation(
                operation="perform_expiry",
                caller=caller,
                campaign_id=campaign_id,
                old_record=record,
                new_record=replace(record, status=CampaignStatus.THRESHOLD_UNMET),
            ))
            expired.append(campaign_id)
        return expired

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_campaign(self, campaign_id: int) -> CampaignRecord:
        return self.store.get(campaign_id)

    def list_campaigns(self, status: Optional[CampaignStatus] = None) -> List[CampaignRecord]:
        return [r for r in self.store if status is None or r.status == status]

    def funded_units(self, campaign_id: int) -> int:
        self.store.get(campaign_id)
        return self.claims.total_supply(campaign_id)

    def claim_balance(self, campaign_id: int, holder: str) -> int:
        return self.claims.balance_of(holder, campaign_id)

    def next_installment(self, campaign_id: int) -> InstallmentQuote:
        """Quote the next installment at the current time."""
        return self._quote(self.store.get(campaign_id))

    def installment_schedule(self, campaign_id: int) -> List[Tuple[int, int, int]]:
        """
        (index, due_date, base_amount) for every installment.

        Due dates are only meaningful once the loan has been drawn.
        """
        r = self.store.get(campaign_id)
        return money.installment_schedule(
            r.unit_price, r.max_units, r.number_of_installments, r.loan_drawn_at,
            r.days_to_first_installment, r.installment_frequency_days, self.config.day_length,
        )

    def verify_conservation(self) -> Dict[str, object]:
        """
        Check that escrow holds exactly what the campaigns owe out of it.

        Per asset, escrow must equal the sum over campaigns of unreturned
        collateral plus pooled funds (unit purchases before the loan, unpaid
        repayments and surcharge after it).

        Returns:
            Dict with 'valid', 'escrow', 'liabilities' and 'discrepancies'
        """
        liabilities: Dict[str, int] = {asset_id: 0 for asset_id in self.assets}
        for record in self.store:
            owed = 0 if record.collateral_claimed else record.collateral_deposit
            if record.status in _PRE_LOAN_STATUSES:
                owed += record.unit_price * self.claims.total_supply(record.campaign_id)
            else:
                owed += record.unclaimed_principal() + record.yield_accrued
            liabilities[record.asset] = liabilities.get(record.asset, 0) + owed

        escrow = {}
        discrepancies = []
        for asset_id, asset in sorted(self.assets.items()):
            escrow[asset_id] = asset.balance_of(self.escrow)
            if escrow[asset_id] != liabilities.get(asset_id, 0):
                discrepancies.append({
                    'asset': asset_id,
                    'escrow': escrow[asset_id],
                    'liabilities': liabilities.get(asset_id, 0),
                    'difference': escrow[asset_id] - liabilities.get(asset_id, 0),
                })
        return {
            'valid': not discrepancies,
            'escrow': escrow,
            'liabilities': liabilities,
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _require_sponsor(self, caller: str, record: CampaignRecord) -> None:
        if caller != record.sponsor:
            raise AuthorizationError(f"{caller} is not the sponsor of campaign {record.campaign_id}")

    def _require_borrower(self, caller: str, record: CampaignRecord) -> None:
        if caller != record.borrower:
            raise AuthorizationError(f"{caller} is not the borrower of campaign {record.campaign_id}")
        if not self.roles.has_role(Role.CHAMPION, caller):
            raise AuthorizationError(f"{caller} lacks {Role.CHAMPION.value}")

    @staticmethod
    def _require_status(record: CampaignRecord, status: CampaignStatus) -> None:
        if record.status != status:
            raise StateMismatch(
                f"Campaign {record.campaign_id} is {record.status.value}, expected {status.value}"
            )

    def _require_balance(self, holder: str, campaign_id: int) -> int:
        balance = self.claims.balance_of(holder, campaign_id)
        if balance <= 0:
            raise NothingToClaim(f"{holder} holds no units of campaign {campaign_id}")
        return balance

    def _principal_outstanding(self, record: CampaignRecord, installments_paid: int) -> int:
        return money.outstanding_principal(
            record.unit_price, record.max_units, installments_paid,
            record.number_of_installments, self.claims.total_supply(record.campaign_id),
        )

    @staticmethod
    def _payout(asset: str, party: str, amount: int, purpose: str) -> Tuple[Transfer, ...]:
        if amount <= 0:
            return ()
        return (Transfer(TransferDirection.OUT, asset, party, amount, purpose),)

    def _quote(self, record: CampaignRecord) -> InstallmentQuote:
        index = record.installments_paid + 1
        base = money.base_installment_owed(
            record.unit_price, record.max_units, record.installments_paid,
            record.number_of_installments, self.claims.total_supply(record.campaign_id),
        )
        owed = money.yield_adjusted_owed(base, record.yield_rate, self.config.precision)
        if index > record.number_of_installments or record.status != CampaignStatus.LOANED:
            return InstallmentQuote(index, base, owed, 0, None, 0)

        due = money.installment_due_date(
            record.loan_drawn_at, index, record.days_to_first_installment,
            record.installment_frequency_days, self.config.day_length,
        )
        late = money.days_late(self._current_time, due, self.config.day_length)
        penalty = 0
        if self.config.late_penalties_enabled and owed > 0:
            rate = money.daily_penalty_rate(
                record.yield_rate, record.late_fee_proportion, self.config.precision,
            )
            penalty = money.late_penalty(
                owed, self._current_time, record.loan_drawn_at, rate, index,
                record.days_to_first_installment, record.installment_frequency_days,
                self.config.precision, self.config.day_length,
            )
        return InstallmentQuote(index, base, owed, penalty, due, late)

    def _execute(self, pending: PendingOperation) -> OperationRecord:
        """
        Apply a PendingOperation atomically and log it.

        External effects go through settle(); the record and the expiry
        index are only touched after settle() has succeeded.
        """
        old, new = pending.old_record, pending.new_record
        if new is not None:
            if old is not None and new.status != old.status and not can_transition(old.status, new.status):
                raise StateMismatch(
                    f"Campaign {new.campaign_id}: {old.status.value} -> {new.status.value} not allowed"
                )
            new.check_invariants()

        settle(pending, self.assets, self.escrow, self.claims, self.roles)

        if new is not None:
            if old is None:
                self.store.create(new)
            else:
                self.store.put(new)
        for campaign_id, day in pending.expiry_registrations:
            self.expiry_index.register(campaign_id, day)

        entry = OperationRecord(
            sequence_number=self._next_sequence,
            operation=pending.operation,
            campaign_id=pending.campaign_id,
            caller=pending.caller,
            timestamp=self._current_time,
            transfers=pending.transfers,
            change=RecordChange(pending.campaign_id, old, new) if new is not None else None,
        )
        self._next_sequence += 1
        self.operation_log.append(entry)

        if self.verbose:
            self._print_result(entry)
        return entry

    def _print_result(self, entry: OperationRecord) -> None:
        target = f"#{entry.campaign_id}" if entry.campaign_id is not None else ""
        print(f"✓ {entry.operation} {target} by {entry.caller} @ {entry.timestamp}")
        for t in entry.transfers:
            print(f"    {t!r}")
        if entry.change is not None:
            for name, (before, after) in entry.change.changed_fields().items():
                print(f"    {name}: {before!r} → {after!r}")
