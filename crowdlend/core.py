"""
Core types for the crowdlend campaign engine.

This module provides the foundational data structures and protocols:
1. Constants: fixed-point precision, value ranges, day length
2. Enums: campaign status, capability roles, transfer direction
3. Exceptions: LendingError and the domain-specific error taxonomy
4. Protocols: the collaborator ports the engine talks to (claim ledger,
   settlement asset, authorization substrate)
5. Immutable records: Transfer, RecordChange, OperationRecord

Nothing in this module mutates engine state.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import (
    Dict, FrozenSet, Optional, Any, Protocol, Tuple, runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Fixed-point precision for rates: 10**8 == 100%.
PRECISION = 10 ** 8

# Length of a scheduling day in seconds.
DAY_LENGTH = 86_400

# Money fields are unsigned 256-bit values in the original storage layout.
MAX_AMOUNT = 2 ** 256 - 1

# Day counts were packed into 16 bits, rates and ratios into 64 bits.
MAX_DAYS = 2 ** 16 - 1
MAX_RATE = 2 ** 64 - 1

# Account holding escrowed collateral and pooled funding.
ESCROW_ACCOUNT = "crowdlend-escrow"


# ============================================================================
# ENUMS
# ============================================================================

class CampaignStatus(str, Enum):
    """Lifecycle state of a campaign."""
    PROPOSED = "proposed"               # Sponsor vouched, collateral escrowed
    MINT_OPEN = "mint_open"             # Public may buy claim units
    THRESHOLD_MET = "threshold_met"     # Fully subscribed, loan not yet drawn
    THRESHOLD_UNMET = "threshold_unmet" # Funding window lapsed
    CANCELED = "canceled"               # Sponsor withdrew before any funding
    LOANED = "loaned"                   # Borrower holds the pooled funds
    BURN_OPEN = "burn_open"             # Repaid, holders may redeem
    FINISHED = "finished"               # Every claim unit burned


class Role(str, Enum):
    """Named capabilities held by participants."""
    ADMIN = "admin"
    SPONSOR = "sponsor"
    CHAMPION = "champion"


class TransferDirection(str, Enum):
    """Whether a transfer pulls into escrow or pushes out of it."""
    IN = "in"
    OUT = "out"


# Every status change must follow one of these edges.
ALLOWED_TRANSITIONS: Dict[CampaignStatus, FrozenSet[CampaignStatus]] = {
    CampaignStatus.PROPOSED: frozenset({CampaignStatus.MINT_OPEN}),
    CampaignStatus.MINT_OPEN: frozenset({
        CampaignStatus.THRESHOLD_MET,
        CampaignStatus.THRESHOLD_UNMET,
        CampaignStatus.CANCELED,
    }),
    CampaignStatus.THRESHOLD_MET: frozenset({CampaignStatus.LOANED}),
    CampaignStatus.THRESHOLD_UNMET: frozenset({CampaignStatus.FINISHED}),
    CampaignStatus.LOANED: frozenset({CampaignStatus.BURN_OPEN}),
    CampaignStatus.BURN_OPEN: frozenset({CampaignStatus.FINISHED}),
    CampaignStatus.FINISHED: frozenset(),
    CampaignStatus.CANCELED: frozenset(),
}

TERMINAL_STATUSES = frozenset({CampaignStatus.FINISHED, CampaignStatus.CANCELED})


def can_transition(current: CampaignStatus, target: CampaignStatus) -> bool:
    """Return True if ``current -> target`` is an edge of the lifecycle graph."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LendingError(Exception):
    """Base exception for all campaign engine errors."""
    pass


class AuthorizationError(LendingError):
    """Raised when the caller lacks a capability or is not the record's owner."""
    pass


class StateMismatch(LendingError):
    """Raised when an operation is invalid for the campaign's current status."""
    pass


class WindowExpired(LendingError):
    """Raised when a time-bound precondition no longer holds."""
    pass


class CapacityExceeded(LendingError):
    """Raised when funding would exceed the cap or break installment ordering."""
    pass


class InsufficientFunds(LendingError):
    """Raised when a payer's asset balance cannot cover a pull."""
    pass


class InsufficientAllowance(LendingError):
    """Raised when a payer has not approved the escrow for enough of the asset."""
    pass


class AlreadyClaimed(LendingError):
    """Raised when a one-shot claim is attempted a second time."""
    pass


class NothingToClaim(LendingError):
    """Raised when a claim or burn would pay out nothing."""
    pass


class CampaignNotFound(LendingError):
    """Raised when a campaign id has no record."""
    pass


class AssetNotRegistered(LendingError):
    """Raised when a campaign names a settlement asset the engine does not know."""
    pass


class ArithmeticOverflow(LendingError):
    """Raised when a money computation leaves the unsigned 256-bit range."""
    pass


class TransferFailed(LendingError):
    """Raised when the settlement asset refuses a transfer."""
    pass


# ============================================================================
# COLLABORATOR PROTOCOLS
# ============================================================================

@runtime_checkable
class ClaimLedgerPort(Protocol):
    """
    Multi-id token ledger holding fractional claim units per campaign.

    Only the campaign engine mints and burns. Holders never transfer units
    through this interface.
    """

    def mint(self, holder: str, campaign_id: int, amount: int) -> None:
        ...

    def burn_from_holder(self, holder: str, campaign_id: int, amount: int) -> None:
        ...

    def balance_of(self, holder: str, campaign_id: int) -> int:
        ...

    def total_supply(self, campaign_id: int) -> int:
        ...

    def set_metadata_uri(self, uri: str) -> None:
        ...


@runtime_checkable
class SettlementAssetPort(Protocol):
    """
    Fungible balance/allowance service used to move money.

    The acting party is explicit: ``spender`` for pulls, ``sender`` for pushes.
    Both transfer methods return False when the asset refuses the transfer.
    """

    def allowance(self, owner: str, spender: str) -> int:
        ...

    def balance_of(self, owner: str) -> int:
        ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        ...

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        ...


@runtime_checkable
class AuthorizationPort(Protocol):
    """Grant/revoke/check of named roles with a delegation rule."""

    def admin_role_of(self, role: Role) -> Role:
        """Role whose holders may grant and revoke ``role``."""
        ...

    def grant(self, granter: str, role: Role, participant: str) -> None:
        ...

    def revoke(self, granter: str, role: Role, participant: str) -> None:
        ...

    def has_role(self, role: Role, participant: str) -> bool:
        ...


# ============================================================================
# IMMUTABLE RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Transfer:
    """
    A single movement of settlement asset into or out of escrow.

    Attributes:
        direction: IN pulls ``amount`` from ``party`` into escrow,
                   OUT pushes ``amount`` from escrow to ``party``.
        asset: Identifier of the settlement asset.
        party: Participant paying (IN) or receiving (OUT).
        amount: Positive amount in asset base units.
        purpose: Short label, e.g. "collateral", "funding", "installment".
    """
    direction: TransferDirection
    asset: str
    party: str
    amount: int
    purpose: str

    def __post_init__(self):
        if not self.party or not self.party.strip():
            raise ValueError("Transfer party cannot be empty")
        if not isinstance(self.amount, int) or isinstance(self.amount, bool):
            raise ValueError(f"Transfer amount must be int, got {type(self.amount)}")
        if self.amount <= 0:
            raise ValueError(f"Transfer amount must be positive, got {self.amount}")

    def __repr__(self) -> str:
        arrow = "→ escrow" if self.direction == TransferDirection.IN else "escrow →"
        if self.direction == TransferDirection.IN:
            return f"Transfer({self.amount} {self.asset}: {self.party} {arrow}, {self.purpose})"
        return f"Transfer({self.amount} {self.asset}: {arrow} {self.party}, {self.purpose})"


@dataclass(frozen=True, slots=True)
class RecordChange:
    """
    Before/after snapshot of a campaign record.

    ``old`` is None when the operation created the record.
    """
    campaign_id: int
    old: Any
    new: Any

    def changed_fields(self) -> Dict[str, Tuple[Any, Any]]:
        """Fields that differ between the two snapshots, as (old, new) pairs."""
        old = self.old.to_dict() if self.old is not None else {}
        new = self.new.to_dict() if self.new is not None else {}
        changes = {}
        for key in sorted(set(old) | set(new)):
            if old.get(key) != new.get(key):
                changes[key] = (old.get(key), new.get(key))
        return changes


@dataclass(frozen=True, slots=True)
class OperationRecord:
    """
    An executed, immutable entry in the engine's audit trail.

    Attributes:
        sequence_number: Monotonic within the engine
        operation: Operation name, e.g. "fund" or "pay_installment"
        campaign_id: Campaign the operation touched (None for admin calls)
        caller: Participant who invoked the operation
        timestamp: Engine time at execution (epoch seconds)
        transfers: Asset movements performed
        change: Record snapshot before and after (None for admin calls)
    """
    sequence_number: int
    operation: str
    campaign_id: Optional[int]
    caller: str
    timestamp: int
    transfers: Tuple[Transfer, ...] = ()
    change: Optional[RecordChange] = None

    def amount_in(self) -> int:
        return sum(t.amount for t in self.transfers if t.direction == TransferDirection.IN)

    def amount_out(self) -> int:
        return sum(t.amount for t in self.transfers if t.direction == TransferDirection.OUT)

    def __repr__(self) -> str:
        target = f"#{self.campaign_id}" if self.campaign_id is not None else "-"
        return (
            f"OperationRecord({self.sequence_number}: {self.operation} {target} "
            f"by {self.caller} @ {self.timestamp}, {len(self.transfers)} transfers)"
        )
