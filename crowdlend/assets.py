"""
assets.py - In-memory collaborators

FungibleAsset implements SettlementAssetPort: balances plus allowances with
standard pull (transfer_from) and push (transfer) semantics. Transfers return
False rather than raising when they cannot be honoured, as token contracts do.

ClaimLedger implements ClaimLedgerPort: one fungible balance per
(holder, campaign id) with per-campaign supply.

Both are plain integer books; neither knows anything about campaigns.
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, Set, Tuple


class FungibleAsset:
    """
    Settlement asset with balances, allowances and an optional blocklist.

    Blocked accounts can neither send nor receive, which lets a deployment
    model a stablecoin freezing an address.

    Example:
        usdc = FungibleAsset("USDC")
        usdc.issue("alice", 1_000)
        usdc.approve("alice", "escrow", 500)
        usdc.transfer_from("escrow", "alice", "escrow", 500)   # True
    """

    def __init__(self, symbol: str, decimals: int = 6):
        if not symbol or not symbol.strip():
            raise ValueError("symbol cannot be empty")
        self.symbol = symbol
        self.decimals = decimals
        self._balances: Dict[str, int] = defaultdict(int)
        self._allowances: Dict[Tuple[str, str], int] = defaultdict(int)
        self._blocked: Set[str] = set()

    # ------------------------------------------------------------------ reads

    def balance_of(self, owner: str) -> int:
        return self._balances.get(owner, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def total_supply(self) -> int:
        return sum(self._balances.values())

    # ---------------------------------------------------------------- writes

    def issue(self, to: str, amount: int) -> None:
        """Create ``amount`` new units in ``to`` (seeding and tests)."""
        if amount <= 0:
            raise ValueError(f"amount must be positive, got {amount}")
        self._balances[to] += amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        """Set (not add to) the allowance ``owner`` grants ``spender``."""
        if amount < 0:
            raise ValueError(f"allowance cannot be negative, got {amount}")
        self._allowances[(owner, spender)] = amount

    def block(self, account: str) -> None:
        self._blocked.add(account)

    def unblock(self, account: str) -> None:
        self._blocked.discard(account)

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        if not self._can_move(sender, to, amount):
            return False
        self._balances[sender] -= amount
        self._balances[to] += amount
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        if self.allowance(owner, spender) < amount:
            return False
        if not self._can_move(owner, to, amount):
            return False
        self._allowances[(owner, spender)] -= amount
        self._balances[owner] -= amount
        self._balances[to] += amount
        return True

    def _can_move(self, source: str, dest: str, amount: int) -> bool:
        if amount <= 0:
            return False
        if source in self._blocked or dest in self._blocked:
            return False
        return self._balances.get(source, 0) >= amount

    def __repr__(self) -> str:
        return f"FungibleAsset({self.symbol}, supply={self.total_supply()})"


class ClaimLedger:
    """
    Multi-id ledger of campaign claim units.

    Metadata URIs follow the multi-token convention: a single template whose
    ``{id}`` placeholder is replaced by the campaign id.
    """

    def __init__(self, metadata_uri: str = ""):
        self._balances: Dict[int, Dict[str, int]] = defaultdict(dict)
        self._supply: Dict[int, int] = defaultdict(int)
        self.metadata_uri = metadata_uri

    def mint(self, holder: str, campaign_id: int, amount: int) -> None:
        if not holder or not holder.strip():
            raise ValueError("holder cannot be empty")
        if amount <= 0:
            raise ValueError(f"mint amount must be positive, got {amount}")
        book = self._balances[campaign_id]
        book[holder] = book.get(holder, 0) + amount
        self._supply[campaign_id] += amount

    def burn_from_holder(self, holder: str, campaign_id: int, amount: int) -> None:
        if amount <= 0:
            raise ValueError(f"burn amount must be positive, got {amount}")
        held = self.balance_of(holder, campaign_id)
        if held < amount:
            raise ValueError(
                f"{holder} holds {held} units of campaign {campaign_id}, cannot burn {amount}"
            )
        book = self._balances[campaign_id]
        if held == amount:
            del book[holder]
        else:
            book[holder] = held - amount
        self._supply[campaign_id] -= amount

    def balance_of(self, holder: str, campaign_id: int) -> int:
        return self._balances.get(campaign_id, {}).get(holder, 0)

    def total_supply(self, campaign_id: int) -> int:
        return self._supply.get(campaign_id, 0)

    def holders(self, campaign_id: int) -> Dict[str, int]:
        """Non-zero balances for a campaign."""
        return dict(self._balances.get(campaign_id, {}))

    def set_metadata_uri(self, uri: str) -> None:
        self.metadata_uri = uri

    def uri(self, campaign_id: int) -> str:
        return self.metadata_uri.replace("{id}", f"{campaign_id:064x}")
