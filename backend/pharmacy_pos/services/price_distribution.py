"""
Price distribution: spread one manually set total over order lines.

Each line is weighted by its standard amount (standard_price * quantity).
Line totals are rounded to the smallest currency unit and the rounding
error is absorbed so that the line totals add up to the manual total
exactly.

Two remainder policies:

    last_line           every line but the last is rounded half-up, the
                        last line takes manual_total - sum(earlier lines).
                        Matches the historical till behaviour. Which line
                        absorbs the remainder is a policy choice, not a
                        mathematical requirement.
    largest_remainder   shares are floored, leftover units go to the lines
                        with the largest fractional remainders (ties by
                        input order). Keeps any single line from absorbing
                        the whole multi-unit rounding error.

If every standard price is zero the total is split evenly across lines.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import List, Optional, Sequence

from pharmacy_pos.core.config import settings

LAST_LINE = "last_line"
LARGEST_REMAINDER = "largest_remainder"
POLICIES = (LAST_LINE, LARGEST_REMAINDER)

logger = logging.getLogger(__name__)

# Unit prices keep this many places beyond the currency unit so that
# round(unit_price * quantity) gives back the line total for any sane quantity.
UNIT_PRICE_EXTRA_PLACES = 6


@dataclass(frozen=True)
class PricedLine:
    quantity: int
    standard_price: Decimal


@dataclass(frozen=True)
class Allocation:
    line_total: Decimal
    unit_price: Decimal


def currency_unit(decimals: Optional[int] = None) -> Decimal:
    if decimals is None:
        decimals = settings.CURRENCY_DECIMALS
    return Decimal(1).scaleb(-decimals)


def round_money(amount: Decimal, decimals: Optional[int] = None) -> Decimal:
    """Round half-up to the smallest currency unit."""
    return Decimal(amount).quantize(currency_unit(decimals), rounding=ROUND_HALF_UP)


def _unit_price(line_total: Decimal, quantity: int, decimals: int) -> Decimal:
    places = currency_unit(decimals + UNIT_PRICE_EXTRA_PLACES)
    return (line_total / Decimal(quantity)).quantize(places, rounding=ROUND_HALF_UP)


def _ratios(lines: Sequence[PricedLine]) -> List[Decimal]:
    weights = [line.standard_price * line.quantity for line in lines]
    standard_sum = sum(weights, Decimal("0"))
    if standard_sum == 0:
        # Every constituent is free: even split
        return [Decimal(1) / Decimal(len(lines))] * len(lines)
    return [weight / standard_sum for weight in weights]


def _last_line_totals(ratios: List[Decimal], manual_total: Decimal, decimals: int) -> List[Decimal]:
    totals = []
    running = Decimal("0")
    last = len(ratios) - 1
    for i, ratio in enumerate(ratios):
        if i == last:
            remainder_line = manual_total - running
            if remainder_line < 0:
                logger.warning(
                    f"[PRICING] Rounding pushed the last line below zero: {remainder_line} "
                    f"(total={manual_total}, lines={len(ratios)})"
                )
            totals.append(remainder_line)
        else:
            share = round_money(ratio * manual_total, decimals)
            running += share
            totals.append(share)
    return totals


def _largest_remainder_totals(ratios: List[Decimal], manual_total: Decimal, decimals: int) -> List[Decimal]:
    unit = currency_unit(decimals)
    raw = [ratio * manual_total for ratio in ratios]
    totals = [share.quantize(unit, rounding=ROUND_DOWN) for share in raw]
    leftover = manual_total - sum(totals, Decimal("0"))

    # Largest fractional part first; sorted() is stable so ties keep input order
    ranked = sorted(range(len(raw)), key=lambda i: raw[i] - totals[i], reverse=True)
    whole_units = int(leftover // unit)
    for n in range(whole_units):
        totals[ranked[n % len(ranked)]] += unit

    # Sub-unit residue only exists when manual_total itself is off the currency grid
    residue = manual_total - sum(totals, Decimal("0"))
    if residue:
        totals[ranked[0]] += residue
    return totals


def distribute_total(
    lines: Sequence[PricedLine],
    manual_total,
    policy: Optional[str] = None,
    decimals: Optional[int] = None,
) -> List[Allocation]:
    """
    Allocate manual_total across lines proportionally to their standard amounts.

    Returns one Allocation per line, in input order. The line totals sum to
    manual_total exactly and each unit_price is line_total / quantity.

    Raises:
        ValueError: negative total or price, quantity < 1, unknown policy,
            or a non-zero total with nothing to distribute it over.
    """
    policy = policy or settings.PRICE_REMAINDER_POLICY
    if decimals is None:
        decimals = settings.CURRENCY_DECIMALS
    if policy not in POLICIES:
        raise ValueError(f"Unknown remainder policy: {policy}")

    manual_total = Decimal(str(manual_total))
    if not manual_total.is_finite() or manual_total < 0:
        raise ValueError("Total must be a finite amount >= 0")

    for line in lines:
        if line.quantity < 1:
            raise ValueError("Quantity must be at least 1")
        if line.standard_price < 0:
            raise ValueError("Standard price cannot be negative")

    if not lines:
        if manual_total == 0:
            return []
        raise ValueError("Cannot distribute a total over zero lines")

    ratios = _ratios(lines)
    if policy == LAST_LINE:
        totals = _last_line_totals(ratios, manual_total, decimals)
    else:
        totals = _largest_remainder_totals(ratios, manual_total, decimals)

    return [
        Allocation(line_total=total, unit_price=_unit_price(total, line.quantity, decimals))
        for line, total in zip(lines, totals)
    ]
