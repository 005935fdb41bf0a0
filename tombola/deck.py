"""Card deck: the fixed universe of 90 cards in 15 series of 6.

The deck is loaded (or generated) once when the app is created and never
changes afterwards. Card ids are positional and 1-based: card ``i`` belongs to
series ``ceil(i / 6)``.
"""
import codecs
import logging
import math
import random
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from tombola.errors import DeckIntegrityError
from tombola.models import (
    CARDS_PER_SERIES,
    COLUMNS,
    NUMBERS,
    ROWS,
    SERIES_COUNT,
    Card,
    Row,
)

logger = logging.getLogger(__name__)

HEADER_MARKER = 'Cartella'
NUMBERS_PER_ROW = 5
NUMBERS_PER_CARD = NUMBERS_PER_ROW * ROWS
MAX_PER_COLUMN = 3
# populated cells per column across the 6 cards of one series
SERIES_COLUMN_TOTALS = (9, 10, 10, 10, 10, 10, 10, 10, 11)
GENERATION_ATTEMPTS = 200


def column_range(col: int) -> Tuple[int, int]:
    low = 1 if col == 0 else col * 10
    high = NUMBERS if col == COLUMNS - 1 else col * 10 + 9
    return low, high


def series_card_ids(series_no: int) -> List[int]:
    start = (series_no - 1) * CARDS_PER_SERIES + 1
    return list(range(start, start + CARDS_PER_SERIES))


def series_of(card_id: int) -> int:
    return math.ceil(card_id / CARDS_PER_SERIES)


@dataclass(frozen=True)
class Deck:
    cards: Tuple[Card, ...]

    def __len__(self) -> int:
        return len(self.cards)

    @property
    def series(self) -> Tuple[Tuple[Card, ...], ...]:
        return tuple(
            self.cards[i:i + CARDS_PER_SERIES]
            for i in range(0, len(self.cards), CARDS_PER_SERIES)
        )

    def card(self, card_id: int) -> Card:
        if not 1 <= card_id <= len(self.cards):
            raise KeyError(card_id)
        return self.cards[card_id - 1]

    def cards_for(self, card_ids: Iterable[int]) -> List[Card]:
        return [self.card(card_id) for card_id in card_ids]


# ---- Validation ----

def validate_card(card: Sequence[Sequence[Optional[int]]], card_id: int = None) -> None:
    """Check the shape and number placement of a single card."""
    if len(card) != ROWS:
        raise DeckIntegrityError(f'expected {ROWS} rows, found {len(card)}', card_id=card_id)
    for r, row in enumerate(card):
        if len(row) != COLUMNS:
            raise DeckIntegrityError(
                f'row {r + 1} has {len(row)} columns instead of {COLUMNS}', card_id=card_id
            )
        filled = sum(1 for n in row if n is not None)
        if filled != NUMBERS_PER_ROW:
            raise DeckIntegrityError(
                f'row {r + 1} has {filled} numbers instead of {NUMBERS_PER_ROW}', card_id=card_id
            )
    for col in range(COLUMNS):
        low, high = column_range(col)
        values = [card[r][col] for r in range(ROWS) if card[r][col] is not None]
        for n in values:
            if not isinstance(n, int) or not low <= n <= high:
                raise DeckIntegrityError(
                    f'number {n} does not belong in column {col + 1} ({low}-{high})', card_id=card_id
                )
        if any(b <= a for a, b in zip(values, values[1:])):
            raise DeckIntegrityError(f'column {col + 1} is not sorted: {values}', card_id=card_id)


def validate_series(cards: Sequence[Card], series_no: int = None) -> None:
    """Check one series: 6 valid cards covering 1..90 exactly once."""
    if len(cards) != CARDS_PER_SERIES:
        raise DeckIntegrityError(
            f'expected {CARDS_PER_SERIES} cards, found {len(cards)}', series_no=series_no
        )
    first_id = (series_no - 1) * CARDS_PER_SERIES + 1 if series_no else 1
    seen = set()
    column_counts = [0] * COLUMNS
    for offset, card in enumerate(cards):
        validate_card(card, card_id=first_id + offset)
        for row in card:
            for col, n in enumerate(row):
                if n is None:
                    continue
                if n in seen:
                    raise DeckIntegrityError(
                        f'number {n} appears twice', card_id=first_id + offset, series_no=series_no
                    )
                seen.add(n)
                column_counts[col] += 1
    if len(seen) != NUMBERS:
        raise DeckIntegrityError(
            f'series holds {len(seen)} numbers instead of {NUMBERS}', series_no=series_no
        )
    for col, (found, expected) in enumerate(zip(column_counts, SERIES_COLUMN_TOTALS)):
        if found != expected:
            raise DeckIntegrityError(
                f'column {col + 1} has {found} numbers, expected {expected}', series_no=series_no
            )


def validate_deck(cards: Sequence[Card]) -> Deck:
    expected = SERIES_COUNT * CARDS_PER_SERIES
    if len(cards) != expected:
        raise DeckIntegrityError(f'deck has {len(cards)} cards instead of {expected}')
    normalized = tuple(tuple(tuple(row) for row in card) for card in cards)
    for series_no in range(1, SERIES_COUNT + 1):
        start = (series_no - 1) * CARDS_PER_SERIES
        validate_series(normalized[start:start + CARDS_PER_SERIES], series_no=series_no)
    return Deck(cards=normalized)


# ---- Source format ----

def _parse_cell(cell: str) -> Optional[int]:
    cell = cell.strip()
    if not cell:
        return None
    try:
        return int(cell)
    except ValueError:
        return None


def _parse_row(line: str, card_id: int) -> Row:
    cells = line.rstrip('\r\n').split('\t')
    if len(cells) > COLUMNS:
        overflow = [c for c in cells[COLUMNS:] if c.strip()]
        if overflow:
            raise DeckIntegrityError(
                f'row has {len(cells)} cells, at most {COLUMNS} allowed', card_id=card_id
            )
        cells = cells[:COLUMNS]
    values = [_parse_cell(c) for c in cells]
    values.extend([None] * (COLUMNS - len(values)))
    return tuple(values)


def parse_deck(text: str) -> List[Card]:
    """Split a deck source into cards without checking the numbers."""
    cards: List[Card] = []
    current: Optional[List[Row]] = None

    def close() -> None:
        if len(current) != ROWS:
            raise DeckIntegrityError(
                f'record has {len(current)} rows instead of {ROWS}', card_id=len(cards) + 1
            )
        cards.append(tuple(current))

    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        if HEADER_MARKER in line:
            if current is not None:
                close()
            current = []
            continue
        if current is None:
            raise DeckIntegrityError(f'line {lineno}: data before the first card header')
        if len(current) == ROWS:
            raise DeckIntegrityError(
                f'line {lineno}: more than {ROWS} rows in record', card_id=len(cards) + 1
            )
        current.append(_parse_row(line, card_id=len(cards) + 1))
    if current is not None:
        close()
    return cards


def load_deck(source: str) -> Deck:
    return validate_deck(parse_deck(source))


def read_deck_file(path) -> str:
    with open(path, 'rb') as fh:
        raw = fh.read()
    if raw.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        text = raw.decode('utf-16')
    elif raw.startswith(codecs.BOM_UTF8):
        text = raw.decode('utf-8-sig')
    elif b'\x00' in raw[:64]:
        # spreadsheet exports without BOM are little endian
        text = raw.decode('utf-16-le')
    else:
        text = raw.decode('utf-8')
    return text.replace('\x00', '')


def format_deck(deck: Deck) -> str:
    lines = []
    for card_id, card in enumerate(deck.cards, start=1):
        lines.append(f'{HEADER_MARKER} {card_id}')
        for row in card:
            lines.append('\t'.join('' if n is None else str(n) for n in row))
    return '\n'.join(lines) + '\n'


# ---- Generation ----

def _column_counts(rng: random.Random) -> Optional[List[List[int]]]:
    """How many numbers each card of a series takes from each column.

    Every card gets 1..3 numbers per column and 15 in total.
    """
    counts = [[1] * COLUMNS for _ in range(CARDS_PER_SERIES)]
    need = [NUMBERS_PER_CARD - COLUMNS] * CARDS_PER_SERIES
    extra = [total - CARDS_PER_SERIES for total in SERIES_COLUMN_TOTALS]
    for col in sorted(range(COLUMNS), key=lambda c: (-extra[c], rng.random())):
        for _ in range(extra[col]):
            candidates = [
                i for i in range(CARDS_PER_SERIES)
                if need[i] > 0 and counts[i][col] < MAX_PER_COLUMN
            ]
            if not candidates:
                return None
            most = max(need[i] for i in candidates)
            pick = rng.choice([i for i in candidates if need[i] == most])
            counts[pick][col] += 1
            need[pick] -= 1
    if any(need):
        return None
    return counts


def _row_layout(counts: Sequence[int], rng: random.Random) -> Optional[List[List[bool]]]:
    capacity = [NUMBERS_PER_ROW] * ROWS
    layout = [[False] * COLUMNS for _ in range(ROWS)]
    for col in sorted(range(COLUMNS), key=lambda c: (-counts[c], rng.random())):
        rows = sorted(range(ROWS), key=lambda r: (-capacity[r], rng.random()))[:counts[col]]
        if any(capacity[r] == 0 for r in rows):
            return None
        for r in rows:
            layout[r][col] = True
            capacity[r] -= 1
    return layout


def generate_series(rng: random.Random) -> List[Card]:
    for _ in range(GENERATION_ATTEMPTS):
        counts = _column_counts(rng)
        if counts is None:
            continue
        layouts = [_row_layout(card_counts, rng) for card_counts in counts]
        if any(layout is None for layout in layouts):
            continue
        pools = []
        for col in range(COLUMNS):
            low, high = column_range(col)
            pool = list(range(low, high + 1))
            rng.shuffle(pool)
            pools.append(pool)
        cards = []
        for card_counts, layout in zip(counts, layouts):
            grid = [[None] * COLUMNS for _ in range(ROWS)]
            for col in range(COLUMNS):
                taken = sorted(pools[col][:card_counts[col]])
                del pools[col][:card_counts[col]]
                rows = [r for r in range(ROWS) if layout[r][col]]
                for r, n in zip(rows, taken):
                    grid[r][col] = n
            cards.append(tuple(tuple(row) for row in grid))
        return cards
    raise RuntimeError(f'could not lay out a series in {GENERATION_ATTEMPTS} attempts')


def generate_deck(seed: int = None) -> Deck:
    rng = random.Random(seed)
    cards: List[Card] = []
    for _ in range(SERIES_COUNT):
        cards.extend(generate_series(rng))
    deck = validate_deck(cards)
    logger.debug(f"[deck] generated {len(deck)} cards (seed={seed})")
    return deck
