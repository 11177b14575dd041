"""
settlement.py - Atomic funds movement

Every engine operation describes its side effects as a PendingOperation
(INTENT) and hands it to settle(), which applies them all-or-nothing:

1. Preflight: inbound pulls need enough allowance and balance from the payer
   (allowance is checked, never raised on the payer's behalf); burns need
   enough claim units; role grants need a delegating granter.
2. Claim mints/burns and role grants are applied, each recording its undo.
3. Inbound transfers run before the outbound one. A transfer that returns
   False or raises triggers every recorded undo in reverse order.

At most one outbound transfer is allowed per operation: a push that has
already left escrow cannot be pulled back, so it must be the last step.
The engine commits the new campaign record only after settle() returns.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Tuple

from .campaign import CampaignRecord
from .core import (
    Transfer, TransferDirection, Role,
    ClaimLedgerPort, SettlementAssetPort, AuthorizationPort,
    AssetNotRegistered, AuthorizationError, InsufficientAllowance,
    InsufficientFunds, NothingToClaim, TransferFailed,
)


@dataclass(frozen=True, slots=True)
class PendingOperation:
    """
    Side effects of one engine operation, before execution.

    Attributes:
        operation: Operation name for the audit trail
        caller: Participant invoking the operation
        campaign_id: Campaign touched (None for administrative calls)
        old_record: Record before the operation (None when creating)
        new_record: Record to commit (None when the record is untouched)
        transfers: Asset movements, inbound and outbound
        mints: (holder, units) claim-unit mints for campaign_id
        burns: (holder, units) claim-unit burns for campaign_id
        grants: (granter, role, participant) capability grants
        expiry_registrations: (campaign_id, day) entries for the expiry index
    """
    operation: str
    caller: str
    campaign_id: Optional[int] = None
    old_record: Optional[CampaignRecord] = None
    new_record: Optional[CampaignRecord] = None
    transfers: Tuple[Transfer, ...] = ()
    mints: Tuple[Tuple[str, int], ...] = ()
    burns: Tuple[Tuple[str, int], ...] = ()
    grants: Tuple[Tuple[str, Role, str], ...] = ()
    expiry_registrations: Tuple[Tuple[int, int], ...] = ()

    def __post_init__(self):
        outbound = [t for t in self.transfers if t.direction == TransferDirection.OUT]
        if len(outbound) > 1:
            raise ValueError(f"{self.operation}: at most one outbound transfer, got {len(outbound)}")
        if (self.mints or self.burns) and self.campaign_id is None:
            raise ValueError(f"{self.operation}: claim movements need a campaign_id")

    def is_empty(self) -> bool:
        """True if the operation moves nothing and changes no record."""
        return (
            not self.transfers and not self.mints and not self.burns
            and not self.grants and not self.expiry_registrations
            and (self.new_record is None or self.new_record == self.old_record)
        )

    def ordered_transfers(self) -> List[Transfer]:
        """Inbound pulls first, the outbound push last."""
        inbound = [t for t in self.transfers if t.direction == TransferDirection.IN]
        outbound = [t for t in self.transfers if t.direction == TransferDirection.OUT]
        return inbound + outbound


def _asset(assets: Mapping[str, SettlementAssetPort], asset_id: str) -> SettlementAssetPort:
    if asset_id not in assets:
        raise AssetNotRegistered(f"Settlement asset {asset_id} not registered")
    return assets[asset_id]


def preflight(
    pending: PendingOperation,
    assets: Mapping[str, SettlementAssetPort],
    escrow: str,
    claims: ClaimLedgerPort,
    roles: AuthorizationPort,
) -> None:
    """
    Check every precondition of a PendingOperation without applying anything.

    Raises:
        InsufficientAllowance: Payer has not approved escrow for the pull
        InsufficientFunds: Payer balance below the pull amount
        NothingToClaim: Burn exceeds the holder's claim units
        AuthorizationError: Granter lacks the delegating role
    """
    pulls = {}
    for t in pending.transfers:
        asset = _asset(assets, t.asset)
        if t.direction != TransferDirection.IN:
            continue
        key = (t.asset, t.party)
        pulls[key] = pulls.get(key, 0) + t.amount
        allowance = asset.allowance(t.party, escrow)
        if allowance < pulls[key]:
            raise InsufficientAllowance(
                f"{t.party} approved {allowance} {t.asset} for escrow, {t.purpose} needs {pulls[key]}"
            )
        balance = asset.balance_of(t.party)
        if balance < pulls[key]:
            raise InsufficientFunds(
                f"{t.party} holds {balance} {t.asset}, {t.purpose} needs {pulls[key]}"
            )

    for holder, units in pending.burns:
        held = claims.balance_of(holder, pending.campaign_id)
        if held < units:
            raise NothingToClaim(
                f"{holder} holds {held} units of campaign {pending.campaign_id}, burn needs {units}"
            )

    for granter, role, participant in pending.grants:
        if not roles.has_role(roles.admin_role_of(role), granter):
            raise AuthorizationError(f"{granter} cannot grant {role.value} to {participant}")


def settle(
    pending: PendingOperation,
    assets: Mapping[str, SettlementAssetPort],
    escrow: str,
    claims: ClaimLedgerPort,
    roles: AuthorizationPort,
) -> None:
    """
    Apply the external side effects of a PendingOperation atomically.

    Either every mint, burn, grant and transfer is applied, or none is and
    the exception that stopped execution propagates.
    """
    preflight(pending, assets, escrow, claims, roles)

    undo: List[Callable[[], None]] = []
    campaign_id = pending.campaign_id
    try:
        for holder, units in pending.burns:
            claims.burn_from_holder(holder, campaign_id, units)
            undo.append(lambda h=holder, u=units: claims.mint(h, campaign_id, u))

        for holder, units in pending.mints:
            claims.mint(holder, campaign_id, units)
            undo.append(lambda h=holder, u=units: claims.burn_from_holder(h, campaign_id, u))

        for granter, role, participant in pending.grants:
            if roles.has_role(role, participant):
                continue
            roles.grant(granter, role, participant)
            undo.append(lambda g=granter, r=role, p=participant: roles.revoke(g, r, p))

        for t in pending.ordered_transfers():
            asset = _asset(assets, t.asset)
            if t.direction == TransferDirection.IN:
                ok = asset.transfer_from(escrow, t.party, escrow, t.amount)
                if ok:
                    undo.append(lambda a=asset, p=t.party, q=t.amount: a.transfer(escrow, p, q))
            else:
                ok = asset.transfer(escrow, t.party, t.amount)
            if not ok:
                raise TransferFailed(f"{t!r} refused by asset {t.asset}")
    except Exception:
        for step in reversed(undo):
            step()
        raise
