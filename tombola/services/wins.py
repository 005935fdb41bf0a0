from typing import Iterable, Sequence

from tombola.errors import UnknownCategoryError
from tombola.models import CATEGORIES, Card, Player

# marked numbers needed in a single row
ROW_TARGETS = {
    'ambo': 2,
    'terno': 3,
    'quaterna': 4,
    'cinquina': 5,
}


def validate(cards: Sequence[Card], drawn: Iterable[int], category: str) -> bool:
    """True when one row (or for tombola, one whole card) satisfies the category.

    Marks are never added up across rows or cards.
    """
    if category not in CATEGORIES:
        raise UnknownCategoryError(category)
    drawn = set(drawn)
    for card in cards:
        if category == 'tombola':
            numbers = [n for row in card for n in row if n is not None]
            if numbers and all(n in drawn for n in numbers):
                return True
            continue
        for row in card:
            marked = sum(1 for n in row if n is not None and n in drawn)
            if marked >= ROW_TARGETS[category]:
                return True
    return False


def validate_player(player: Player, drawn: Iterable[int], category: str) -> bool:
    return validate(player.cards, drawn, category)
