"""
money.py - Fixed-point Money Engine

Pure functions computing installment amounts, yield, late-payment surcharge
and settlement claims. No state, no engine access: every input is explicit.

All amounts are integers in asset base units. Rates are fixed point with
precision P (10**8 == 100%). Division always floors. Every result is checked
against the unsigned 256-bit range of the original storage layout.

Key Formulas:
    nominal_installment = unit_price * max_units // number_of_installments
    outstanding_debt    = outstanding_units * unit_price - nominal * installments_paid
    owed                = min(nominal, outstanding_debt)   (final installment: outstanding_debt)
    yield_adjusted      = base + base * yield_rate // P
    due_date            = loan_drawn_at + days_to_first * day
                          + (index - 1) * frequency_days * day
    penalty             = pay_amount * rate**days_late // P**days_late   (0 when on time)
"""

from __future__ import annotations
from typing import List, Tuple

from .core import PRECISION, DAY_LENGTH, MAX_AMOUNT, ArithmeticOverflow


# ============================================================================
# RANGE CHECKS
# ============================================================================

def _checked(value: int, label: str) -> int:
    """Return value if it fits the unsigned 256-bit range, else raise."""
    if value < 0:
        raise ArithmeticOverflow(f"{label} underflows: {value}")
    if value > MAX_AMOUNT:
        raise ArithmeticOverflow(f"{label} overflows 256 bits")
    return value


def _require_non_negative(**values: int) -> None:
    for name, value in values.items():
        if value < 0:
            raise ValueError(f"{name} cannot be negative, got {value}")


# ============================================================================
# INSTALLMENTS
# ============================================================================

def nominal_installment(unit_price: int, max_units: int, number_of_installments: int) -> int:
    """
    Nominal (non-final) installment: total principal split evenly, floored.

    The division remainder is carried by the final installment.
    """
    _require_non_negative(unit_price=unit_price, max_units=max_units)
    if number_of_installments <= 0:
        raise ValueError(f"number_of_installments must be positive, got {number_of_installments}")
    total = _checked(unit_price * max_units, "principal")
    return total // number_of_installments


def outstanding_principal(
    unit_price: int,
    max_units: int,
    installments_paid: int,
    number_of_installments: int,
    outstanding_units: int,
) -> int:
    """
    Principal still owed after ``installments_paid`` installments.

    Returns 0 once every installment has been paid, or when prior payments or
    unit burns have already retired the debt.
    """
    if installments_paid >= number_of_installments:
        return 0
    nominal = nominal_installment(unit_price, max_units, number_of_installments)
    debt = _checked(outstanding_units * unit_price, "outstanding debt") - nominal * installments_paid
    return max(0, debt)


def base_installment_owed(
    unit_price: int,
    max_units: int,
    installments_paid: int,
    number_of_installments: int,
    outstanding_units: int,
) -> int:
    """
    Base (pre-yield) amount owed for installment ``installments_paid + 1``.

    PURE FUNCTION - All inputs explicit.

    Returns 0 when the next installment index falls outside
    ``(installments_paid, number_of_installments]``; the caller enforces
    sequential ordering. The last installment absorbs the integer-division
    remainder, every other installment is capped by the outstanding debt so
    that repayment never overshoots.

    Example:
        unit_price=50, max_units=20, 4 installments
        base_installment_owed(50, 20, 0, 4, 20) -> 250
        base_installment_owed(50, 20, 4, 4, 20) -> 0
    """
    _require_non_negative(installments_paid=installments_paid, outstanding_units=outstanding_units)
    if installments_paid >= number_of_installments:
        return 0

    nominal = nominal_installment(unit_price, max_units, number_of_installments)
    debt = outstanding_principal(
        unit_price, max_units, installments_paid, number_of_installments, outstanding_units
    )
    if debt <= 0:
        return 0
    if installments_paid + 1 == number_of_installments:
        return debt
    return min(nominal, debt)


def yield_adjusted_owed(base_amount: int, yield_rate: int, precision: int = PRECISION) -> int:
    """Base amount plus its yield: ``base + base * yield_rate // precision``."""
    _require_non_negative(base_amount=base_amount, yield_rate=yield_rate)
    return _checked(base_amount + base_amount * yield_rate // precision, "yield adjusted amount")


def installment_schedule(
    unit_price: int,
    max_units: int,
    number_of_installments: int,
    loan_drawn_at: int,
    days_to_first: int,
    frequency_days: int,
    day_length: int = DAY_LENGTH,
) -> List[Tuple[int, int, int]]:
    """
    Full amortization schedule for a fully subscribed campaign.

    Returns:
        List of (installment_index, due_date, base_amount), index starting at 1.
        Base amounts sum to ``unit_price * max_units``.
    """
    schedule = []
    for paid in range(number_of_installments):
        index = paid + 1
        base = base_installment_owed(unit_price, max_units, paid, number_of_installments, max_units)
        due = installment_due_date(loan_drawn_at, index, days_to_first, frequency_days, day_length)
        schedule.append((index, due, base))
    return schedule


# ============================================================================
# LATE PENALTY
# ============================================================================

def daily_penalty_rate(yield_rate: int, late_fee_proportion: int, precision: int = PRECISION) -> int:
    """Daily late-payment rate: a ``late_fee_proportion`` fraction of the yield."""
    _require_non_negative(yield_rate=yield_rate, late_fee_proportion=late_fee_proportion)
    return yield_rate * late_fee_proportion // precision


def installment_due_date(
    loan_drawn_at: int,
    installment_index: int,
    days_to_first: int,
    frequency_days: int,
    day_length: int = DAY_LENGTH,
) -> int:
    """Due timestamp of installment ``installment_index`` (1-based)."""
    if installment_index < 1:
        raise ValueError(f"installment_index must be >= 1, got {installment_index}")
    return (
        loan_drawn_at
        + days_to_first * day_length
        + (installment_index - 1) * frequency_days * day_length
    )


def days_late(now: int, due_date: int, day_length: int = DAY_LENGTH) -> int:
    """Whole days elapsed past ``due_date``; 0 when paid on or before it."""
    if now <= due_date:
        return 0
    return (now - due_date) // day_length


def late_penalty(
    pay_amount: int,
    now: int,
    loan_drawn_at: int,
    daily_penalty_rate: int,
    installment_index: int,
    days_to_first: int,
    frequency_days: int,
    precision: int = PRECISION,
    day_length: int = DAY_LENGTH,
) -> int:
    """
    Late-payment surcharge for an installment.

    PURE FUNCTION - All inputs explicit.

    The rate compounds geometrically over whole days late:
        penalty = pay_amount * rate**days_late // precision**days_late
    An installment paid on or before its due date carries no penalty.

    The rate is capped at ``precision`` (100% per day), which bounds the
    penalty by ``pay_amount``. Below the cap the surcharge shrinks with each
    extra day late; at the cap it equals ``pay_amount`` on every late day.

    Example:
        pay_amount=1_000_000, rate=P/2, 4 days late
        penalty = 1_000_000 * (P/2)**4 // P**4 = 62_500

    Raises:
        ValueError: daily_penalty_rate above precision
    """
    _require_non_negative(pay_amount=pay_amount, daily_penalty_rate=daily_penalty_rate)
    if daily_penalty_rate > precision:
        raise ValueError(
            f"daily penalty rate {daily_penalty_rate} exceeds 100% ({precision})"
        )
    due = installment_due_date(loan_drawn_at, installment_index, days_to_first, frequency_days, day_length)
    late = days_late(now, due, day_length)
    if late == 0 or pay_amount == 0:
        return 0
    return _checked(pay_amount * daily_penalty_rate ** late // precision ** late, "late penalty")


# ============================================================================
# COLLATERAL AND SETTLEMENT
# ============================================================================

def collateral_deposit(unit_price: int, max_units: int, collateral_ratio: int) -> int:
    """Collateral a sponsor escrows: loan size divided by its ratio."""
    if collateral_ratio <= 0:
        raise ValueError(f"collateral_ratio must be positive, got {collateral_ratio}")
    _require_non_negative(unit_price=unit_price, max_units=max_units)
    return _checked(unit_price * max_units, "loan size") // collateral_ratio


def settlement_claim(unit_price: int, yield_rate: int, balance: int, precision: int = PRECISION) -> int:
    """Principal plus yield owed to a holder of ``balance`` claim units."""
    _require_non_negative(unit_price=unit_price, yield_rate=yield_rate, balance=balance)
    per_unit = unit_price + unit_price * yield_rate // precision
    return _checked(per_unit * balance, "settlement claim")


def pro_rata_yield(yield_accrued: int, balance: int, remaining_supply: int) -> int:
    """
    Holder's share of the accrued surcharge pool.

    The holder of the entire remaining supply takes the exact remainder, so
    no rounding dust is stranded by the last claimant.
    """
    _require_non_negative(yield_accrued=yield_accrued, balance=balance)
    if remaining_supply <= 0 or balance <= 0:
        return 0
    if balance >= remaining_supply:
        return yield_accrued
    return yield_accrued * balance // remaining_supply
