from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Set, Tuple, Union

ROWS = 3
COLUMNS = 9
NUMBERS = 90
CARDS_PER_SERIES = 6
SERIES_COUNT = 15

CATEGORIES = ('ambo', 'terno', 'quaterna', 'cinquina', 'tombola')

SELECTION_SERIE = 'serie'

# Outbound target meaning "every connected client"
EVERYONE = '*'

Row = Tuple[Optional[int], ...]
Card = Tuple[Row, ...]


def card_to_list(card: Card) -> List[List[Optional[int]]]:
    return [list(row) for row in card]


def empty_prizes() -> Dict[str, Decimal]:
    return {category: Decimal('0.00') for category in CATEGORIES}


def empty_winners() -> Dict[str, Optional[str]]:
    return {category: None for category in CATEGORIES}


def money(value: Decimal) -> float:
    return float(value)


@dataclass
class Player:
    session_key: str
    nickname: str
    selection_type: str
    selection: Union[int, List[int]]
    card_ids: List[int]
    connection: Optional[str] = None
    cards: List[Card] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'nickname': self.nickname,
            'selectionType': self.selection_type,
            'selection': self.selection,
            'cardCount': len(self.card_ids),
            'cardIds': list(self.card_ids),
        }


@dataclass
class GameState:
    """All mutable state of the one running game.

    A reset replaces the whole value; nothing is cleared field by field.
    """
    admin: Optional[str] = None
    players: Dict[str, Player] = field(default_factory=dict)
    sessions: Dict[str, Player] = field(default_factory=dict)
    assigned_cards: Set[int] = field(default_factory=set)
    started: bool = False
    drawn_numbers: List[int] = field(default_factory=list)
    cost_per_card: Decimal = Decimal('0.00')
    prizes: Dict[str, Decimal] = field(default_factory=empty_prizes)
    winners: Dict[str, Optional[str]] = field(default_factory=empty_winners)
    confirmed: Set[str] = field(default_factory=set)

    @property
    def phase(self) -> str:
        return 'running' if self.started else 'lobby'

    def player_list(self) -> List[Dict[str, Any]]:
        return [p.to_dict() for p in self.players.values()]

    def prizes_dict(self) -> Dict[str, float]:
        return {category: money(amount) for category, amount in self.prizes.items()}

    def total_cards_sold(self) -> int:
        return sum(len(p.card_ids) for p in self.players.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'phase': self.phase,
            'gameStarted': self.started,
            'drawnNumbers': list(self.drawn_numbers),
            'players': self.player_list(),
            'prizes': self.prizes_dict(),
            'winners': dict(self.winners),
            'costPerCard': money(self.cost_per_card),
        }


@dataclass(frozen=True)
class Outbound:
    """One message for the broadcaster.

    `to` is a connection id (its own room) or EVERYONE.
    """
    event: str
    payload: Optional[Dict[str, Any]] = None
    to: str = EVERYONE
