"""
crowdlend - Sponsored Crowdfunded Lending Engine

Campaign lifecycle state machine with fixed-point amortization and atomic
settlement. A sponsor vouches for a borrower by escrowing collateral, the
public funds the campaign with claim units, the borrower repays in
installments plus yield, and holders redeem their pro-rata share.

Usage:
    from crowdlend import (
        CampaignEngine, CampaignTerms, ClaimLedger, FungibleAsset, RoleRegistry,
    )

    usdc = FungibleAsset("USDC")
    engine = CampaignEngine(RoleRegistry(admin="root"), ClaimLedger(), assets={"USDC": usdc})
    engine.register_sponsor("root", "acme", collateral_ratio=5)

    usdc.issue("acme", 10_000)
    usdc.approve("acme", engine.escrow, 10_000)
    cid = engine.propose("acme", CampaignTerms(
        borrower="alice", asset="USDC", unit_price=50, max_units=20,
        yield_rate=10_000_000, max_funding_days=30,
        days_to_first_installment=30, installment_frequency_days=30,
        number_of_installments=4,
    ))
    engine.open_funding("acme", cid)
"""

# Core types
from .core import (
    CampaignStatus,
    Role,
    TransferDirection,
    Transfer,
    RecordChange,
    OperationRecord,
    ClaimLedgerPort,
    SettlementAssetPort,
    AuthorizationPort,
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    can_transition,
    LendingError,
    AuthorizationError,
    StateMismatch,
    WindowExpired,
    CapacityExceeded,
    InsufficientFunds,
    InsufficientAllowance,
    AlreadyClaimed,
    NothingToClaim,
    CampaignNotFound,
    AssetNotRegistered,
    ArithmeticOverflow,
    TransferFailed,
    PRECISION,
    DAY_LENGTH,
    MAX_AMOUNT,
    ESCROW_ACCOUNT,
)

# Configuration
from .config import EngineConfig

# Fixed-point money engine
from .money import (
    nominal_installment,
    outstanding_principal,
    base_installment_owed,
    yield_adjusted_owed,
    installment_schedule,
    daily_penalty_rate,
    installment_due_date,
    days_late,
    late_penalty,
    collateral_deposit,
    settlement_claim,
    pro_rata_yield,
)

# Records
from .campaign import CampaignTerms, CampaignRecord, CampaignStore

# Collaborators
from .roles import RoleRegistry, DEFAULT_DELEGATION
from .assets import FungibleAsset, ClaimLedger

# Scheduling and settlement
from .scheduler import ExpiryIndex
from .settlement import PendingOperation, preflight, settle

# Engine
from .engine import CampaignEngine, InstallmentQuote, KEEPER
from .keeper import ExpiryKeeper

__all__ = [
    # Core
    'CampaignStatus', 'Role', 'TransferDirection', 'Transfer', 'RecordChange',
    'OperationRecord', 'ClaimLedgerPort', 'SettlementAssetPort', 'AuthorizationPort',
    'ALLOWED_TRANSITIONS', 'TERMINAL_STATUSES', 'can_transition',
    'LendingError', 'AuthorizationError', 'StateMismatch', 'WindowExpired',
    'CapacityExceeded', 'InsufficientFunds', 'InsufficientAllowance', 'AlreadyClaimed',
    'NothingToClaim', 'CampaignNotFound', 'AssetNotRegistered', 'ArithmeticOverflow',
    'TransferFailed',
    'PRECISION', 'DAY_LENGTH', 'MAX_AMOUNT', 'ESCROW_ACCOUNT',
    # Config
    'EngineConfig',
    # Money
    'nominal_installment', 'outstanding_principal', 'base_installment_owed',
    'yield_adjusted_owed', 'installment_schedule', 'daily_penalty_rate',
    'installment_due_date', 'days_late', 'late_penalty', 'collateral_deposit',
    'settlement_claim', 'pro_rata_yield',
    # Records
    'CampaignTerms', 'CampaignRecord', 'CampaignStore',
    # Collaborators
    'RoleRegistry', 'DEFAULT_DELEGATION', 'FungibleAsset', 'ClaimLedger',
    # Scheduling and settlement
    'ExpiryIndex', 'PendingOperation', 'preflight', 'settle',
    # Engine
    'CampaignEngine', 'InstallmentQuote', 'KEEPER', 'ExpiryKeeper',
]

__version__ = '1.0.0'
