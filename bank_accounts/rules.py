"""
Profit and management fee rules for the bank accounts system.

All functions here are pure: they take plain values and return a Decimal,
so callers can evaluate hypothetical situations without touching live objects.
"""

from decimal import Decimal
from typing import Iterable

RATE_DIFFERENCE = Decimal('0.10')

VIP_REVENUE_THRESHOLD = Decimal('10000000')
VIP_CLIENT_RANK = 10
FIXED_COMMISSION = Decimal('3000')
BUSINESS_MANAGEMENT_FEE = Decimal('1000')

MORTGAGE_PROFIT_FACTOR = Decimal('0.8')
MORTGAGE_FEE_RATE = Decimal('0.10')

MIN_RANK = 0
MAX_RANK = 10


def regular_checking_profit(credit_limit: Decimal) -> Decimal:
    """Annual profit of a regular checking account."""
    return credit_limit * RATE_DIFFERENCE


def is_vip(business_revenue: Decimal, client_ranks: Iterable[int]) -> bool:
    """
    Check whether a business account qualifies as VIP.

    Revenue must reach the threshold and every client must hold the top rank.
    At least one client is required.
    """
    ranks = list(client_ranks)
    if not ranks:
        return False
    if business_revenue < VIP_REVENUE_THRESHOLD:
        return False
    return all(rank == VIP_CLIENT_RANK for rank in ranks)


def business_checking_profit(credit_limit: Decimal, business_revenue: Decimal,
                             client_ranks: Iterable[int]) -> Decimal:
    """Annual profit of a business checking account; VIP accounts yield none."""
    if is_vip(business_revenue, client_ranks):
        return Decimal('0')
    return credit_limit * RATE_DIFFERENCE + FIXED_COMMISSION


def mortgage_profit(original_amount: Decimal, years: int) -> Decimal:
    """Annual profit of a mortgage account."""
    return (MORTGAGE_PROFIT_FACTOR * original_amount / Decimal(years)) * RATE_DIFFERENCE


def mortgage_management_fee(original_amount: Decimal) -> Decimal:
    """Management fee of a mortgage account: a share of the original amount."""
    return original_amount * MORTGAGE_FEE_RATE


def validate_rank(rank: int) -> int:
    """Return the rank unchanged, or raise ValueError when out of range."""
    if rank < MIN_RANK or rank > MAX_RANK:
        raise ValueError(f"Client rank must be between {MIN_RANK} and {MAX_RANK}")
    return rank


def validate_years(years: int) -> int:
    """Return the term unchanged, or raise ValueError when shorter than a year."""
    if years < 1:
        raise ValueError("Years must be at least 1")
    return years
