"""Prize pool accounting.

Amounts are Decimals rounded to the cent, half up.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Tuple

from tombola.errors import UnknownCategoryError

CENT = Decimal('0.01')

SHARES = {
    'ambo': Decimal('0.10'),
    'terno': Decimal('0.15'),
    'quaterna': Decimal('0.20'),
    'cinquina': Decimal('0.25'),
    'tombola': Decimal('0.30'),
}


def to_money(value) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate(total_cards: int, cost_per_card) -> Tuple[Decimal, Dict[str, Decimal]]:
    pot = to_money(Decimal(total_cards) * to_money(cost_per_card))
    return pot, {category: to_money(pot * share) for category, share in SHARES.items()}


def adjust(prizes: Dict[str, Decimal], category: str, delta) -> Decimal:
    if category not in prizes:
        raise UnknownCategoryError(category)
    if not isinstance(delta, Decimal):
        delta = Decimal(str(delta))
    prizes[category] = to_money(prizes[category] + delta)
    return prizes[category]
