import random
from typing import Tuple

from tombola.errors import DrawExhaustedError, GameNotStartedError
from tombola.models import NUMBERS, GameState


def remaining_numbers(state: GameState) -> list:
    drawn = set(state.drawn_numbers)
    return [n for n in range(1, NUMBERS + 1) if n not in drawn]


def draw_next(state: GameState, rng: random.Random = None) -> Tuple[int, int]:
    """Draw a number not drawn before; returns (number, total drawn so far)."""
    if not state.started:
        raise GameNotStartedError('Numbers can only be drawn once the game has started')
    remaining = remaining_numbers(state)
    if not remaining:
        raise DrawExhaustedError(f'All {NUMBERS} numbers have been drawn')
    number = (rng or random).choice(remaining)
    state.drawn_numbers.append(number)
    return number, len(state.drawn_numbers)
