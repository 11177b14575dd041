"""
Unit tests for the in-memory FungibleAsset and ClaimLedger.
"""

import pytest

from crowdlend import FungibleAsset, ClaimLedger, SettlementAssetPort, ClaimLedgerPort


@pytest.fixture
def usdc():
    asset = FungibleAsset("USDC")
    asset.issue("alice", 1_000)
    return asset


class TestFungibleAsset:

    def test_issue_and_supply(self, usdc):
        assert usdc.balance_of("alice") == 1_000
        assert usdc.total_supply() == 1_000

    def test_issue_must_be_positive(self, usdc):
        with pytest.raises(ValueError):
            usdc.issue("alice", 0)

    def test_transfer(self, usdc):
        assert usdc.transfer("alice", "bob", 400)
        assert usdc.balance_of("alice") == 600
        assert usdc.balance_of("bob") == 400

    def test_transfer_insufficient_returns_false(self, usdc):
        assert not usdc.transfer("alice", "bob", 1_001)
        assert usdc.balance_of("alice") == 1_000

    def test_transfer_non_positive_returns_false(self, usdc):
        assert not usdc.transfer("alice", "bob", 0)

    def test_approve_sets_not_adds(self, usdc):
        usdc.approve("alice", "escrow", 300)
        usdc.approve("alice", "escrow", 200)
        assert usdc.allowance("alice", "escrow") == 200

    def test_negative_allowance_rejected(self, usdc):
        with pytest.raises(ValueError):
            usdc.approve("alice", "escrow", -1)

    def test_transfer_from_spends_allowance(self, usdc):
        usdc.approve("alice", "escrow", 500)
        assert usdc.transfer_from("escrow", "alice", "escrow", 300)
        assert usdc.allowance("alice", "escrow") == 200
        assert usdc.balance_of("escrow") == 300

    def test_transfer_from_without_allowance(self, usdc):
        assert not usdc.transfer_from("escrow", "alice", "escrow", 1)
        assert usdc.balance_of("alice") == 1_000

    def test_blocked_account_cannot_receive(self, usdc):
        usdc.block("bob")
        assert not usdc.transfer("alice", "bob", 10)
        usdc.unblock("bob")
        assert usdc.transfer("alice", "bob", 10)

    def test_blocked_account_cannot_send(self, usdc):
        usdc.approve("alice", "escrow", 10)
        usdc.block("alice")
        assert not usdc.transfer_from("escrow", "alice", "escrow", 10)
        assert usdc.allowance("alice", "escrow") == 10

    def test_satisfies_port(self, usdc):
        assert isinstance(usdc, SettlementAssetPort)


class TestClaimLedger:

    def test_mint_and_supply(self):
        ledger = ClaimLedger()
        ledger.mint("bob", 1, 10)
        ledger.mint("carol", 1, 5)
        ledger.mint("bob", 2, 3)
        assert ledger.balance_of("bob", 1) == 10
        assert ledger.total_supply(1) == 15
        assert ledger.total_supply(2) == 3
        assert ledger.holders(1) == {"bob": 10, "carol": 5}

    def test_burn(self):
        ledger = ClaimLedger()
        ledger.mint("bob", 1, 10)
        ledger.burn_from_holder("bob", 1, 4)
        assert ledger.balance_of("bob", 1) == 6
        ledger.burn_from_holder("bob", 1, 6)
        assert ledger.holders(1) == {}
        assert ledger.total_supply(1) == 0

    def test_burn_more_than_held(self):
        ledger = ClaimLedger()
        ledger.mint("bob", 1, 1)
        with pytest.raises(ValueError):
            ledger.burn_from_holder("bob", 1, 2)

    def test_mint_validation(self):
        ledger = ClaimLedger()
        with pytest.raises(ValueError):
            ledger.mint("", 1, 1)
        with pytest.raises(ValueError):
            ledger.mint("bob", 1, 0)

    def test_uri_template(self):
        ledger = ClaimLedger("ipfs://meta/{id}.json")
        assert ledger.uri(255) == "ipfs://meta/" + "0" * 62 + "ff.json"
        ledger.set_metadata_uri("https://x/{id}")
        assert ledger.uri(1).endswith("0" * 63 + "1")

    def test_satisfies_port(self):
        assert isinstance(ClaimLedger(), ClaimLedgerPort)
