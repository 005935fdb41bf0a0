from typing import Iterable, List, Sequence, Union

from tombola.deck import series_card_ids
from tombola.errors import AssignmentCollisionError
from tombola.models import (
    CARDS_PER_SERIES,
    SELECTION_SERIE,
    SERIES_COUNT,
    GameState,
)


def resolve_card_ids(selection_type: str, selection: Union[int, Sequence[int]]) -> List[int]:
    """Expand a selection into card ids.

    A manual card list is returned as-is: duplicates are left for try_assign
    to reject.
    """
    if selection_type == SELECTION_SERIE:
        return series_card_ids(int(selection))
    return list(selection)


def try_assign(state: GameState, card_ids: Sequence[int]) -> List[int]:
    """Reserve all of card_ids or none of them."""
    taken = [card_id for card_id in card_ids if card_id in state.assigned_cards]
    repeated = [card_id for i, card_id in enumerate(card_ids) if card_id in card_ids[:i]]
    if taken or repeated:
        raise AssignmentCollisionError(taken + repeated)
    state.assigned_cards.update(card_ids)
    return list(card_ids)


def release(state: GameState, card_ids: Iterable[int]) -> None:
    state.assigned_cards.difference_update(card_ids)


def is_series_available(state: GameState, series_no: int) -> bool:
    return not any(card_id in state.assigned_cards for card_id in series_card_ids(series_no))


def available_series(state: GameState) -> List[int]:
    return [s for s in range(1, SERIES_COUNT + 1) if is_series_available(state, s)]


def available_cards(state: GameState) -> List[int]:
    total = SERIES_COUNT * CARDS_PER_SERIES
    return [c for c in range(1, total + 1) if c not in state.assigned_cards]


def availability_payload(state: GameState) -> dict:
    return {
        'availableSeries': available_series(state),
        'availableCards': available_cards(state),
    }
