"""The authoritative game coordinator.

Every handler takes the sender's connection id (and a parsed payload), mutates
the one GameState while holding the coordinator lock, and returns the
Outbound messages the transport should deliver. When a delivery callback is
set it receives those messages while the lock is still held. Handlers never
talk to the network themselves.
"""
import functools
import logging
import random
import threading
import uuid
from typing import Callable, List, Optional

from tombola.deck import Deck
from tombola.errors import (
    AlreadyClaimedError,
    AssignmentCollisionError,
    DrawExhaustedError,
    GameInProgressError,
    GameNotStartedError,
    InvalidClaimError,
    UnauthorizedActionError,
)
from tombola.messages import AdjustPrize, DeclareWin, PlayerJoin, Reconnect, SetCost, ValidateWin
from tombola.models import EVERYONE, GameState, Outbound, Player, card_to_list, money
from tombola.services import availability, draws, prizes, sessions, wins

logger = logging.getLogger(__name__)

COLLISION_MESSAGE = 'Some of the selected cards are no longer available!'


def _serialized(handler):
    """Run a handler under the coordinator lock; unauthorized calls yield nothing.

    Messages are handed to the delivery callback before the lock is released,
    so broadcasts leave in the same order the state changed.
    """
    @functools.wraps(handler)
    def wrapper(self, connection, *args, **kwargs):
        with self._lock:
            try:
                messages = handler(self, connection, *args, **kwargs)
            except UnauthorizedActionError as exc:
                logger.debug(f'[{handler.__name__}] dropped from {connection}: {exc}')
                return []
            if messages and self.deliver is not None:
                self.deliver(messages)
            return messages
    return wrapper


class GameCoordinator:
    def __init__(
        self,
        deck: Deck,
        server_url: Optional[str] = None,
        rng: Optional[random.Random] = None,
        deliver: Optional[Callable[[List[Outbound]], None]] = None,
    ):
        self.deck = deck
        self.server_url = server_url
        self.deliver = deliver
        self._rng = rng
        self._lock = threading.RLock()
        self.state = GameState()

    # ---- helpers ----

    def _require_admin(self, connection: str) -> None:
        if self.state.admin is None or connection != self.state.admin:
            raise UnauthorizedActionError('admin only')

    def _to_admin(self, event: str, payload: dict = None) -> List[Outbound]:
        if self.state.admin is None:
            return []
        return [Outbound(event, payload, to=self.state.admin)]

    def _lobby_update(self) -> List[Outbound]:
        return self._to_admin('lobby:update', {'players': self.state.player_list()})

    def _availability(self, to: str = EVERYONE) -> Outbound:
        return Outbound('cards:availability', availability.availability_payload(self.state), to=to)

    def _pending_claims(self) -> List[dict]:
        return [
            {'nickname': nickname, 'type': category}
            for category, nickname in self.state.winners.items()
            if nickname is not None and category not in self.state.confirmed
        ]

    def _restore_payload(self, player: Player) -> dict:
        state = self.state
        return {
            'cards': [card_to_list(card) for card in player.cards],
            'cardIds': list(player.card_ids),
            'drawnNumbers': list(state.drawn_numbers),
            'gameStarted': state.started,
            'winners': dict(state.winners),
            'prizes': state.prizes_dict(),
            'costPerCard': money(state.cost_per_card),
        }

    def snapshot(self) -> dict:
        with self._lock:
            return self.state.to_dict()

    def availability(self) -> dict:
        with self._lock:
            return availability.availability_payload(self.state)

    # ---- admin seat ----

    @_serialized
    def admin_join(self, connection: str) -> List[Outbound]:
        state = self.state
        if state.admin is not None and state.admin != connection:
            raise UnauthorizedActionError('another admin is connected')
        state.admin = connection
        logger.info(f'[admin] joined from {connection}')
        return [Outbound('admin:joined', {
            'players': state.player_list(),
            'serverUrl': self.server_url,
        }, to=connection)]

    @_serialized
    def admin_reconnect(self, connection: str, payload: Reconnect) -> List[Outbound]:
        # Any session may take the admin seat back.
        self.state.admin = connection
        logger.info(f'[admin] reconnected from {connection} session={payload.session_key}')
        body = self.state.to_dict()
        body['serverUrl'] = self.server_url
        body['pendingClaims'] = self._pending_claims()
        return [Outbound('admin:game-restore', body, to=connection)]

    # ---- players ----

    @_serialized
    def request_availability(self, connection: str) -> List[Outbound]:
        return [self._availability(to=connection)]

    @_serialized
    def player_reconnect(self, connection: str, payload: Reconnect) -> List[Outbound]:
        state = self.state
        try:
            player = sessions.reconnect(state, payload.session_key, connection)
        except AssignmentCollisionError:
            return [
                Outbound('join:error', {'message': COLLISION_MESSAGE}, to=connection),
                self._availability(to=connection),
            ]
        if player is None:
            return []
        logger.info(f'[reconnect] {player.nickname} now on {connection}')
        out = [Outbound('game:restore', self._restore_payload(player), to=connection)]
        if not state.started:
            out.append(Outbound('join:success', {
                'cardIds': list(player.card_ids),
                'cardCount': len(player.card_ids),
                'sessionId': player.session_key,
            }, to=connection))
            out.extend(self._lobby_update())
            out.append(self._availability())
        return out

    @_serialized
    def player_join(self, connection: str, payload: PlayerJoin) -> List[Outbound]:
        state = self.state
        session_key = payload.session_key or f'session_{uuid.uuid4().hex}'
        try:
            player = sessions.join(
                state, connection, session_key, payload.nickname,
                payload.selection_type, payload.selection,
            )
        except AssignmentCollisionError as exc:
            logger.info(f'[join] {payload.nickname} refused, taken: {exc.card_ids}')
            return [Outbound('join:error', {'message': COLLISION_MESSAGE}, to=connection)]
        except GameInProgressError as exc:
            return [Outbound('join:error', {'message': str(exc)}, to=connection)]

        logger.info(f'[join] {player.nickname} holds cards {player.card_ids}')
        out = [Outbound('join:success', {
            'cardIds': list(player.card_ids),
            'cardCount': len(player.card_ids),
            'sessionId': player.session_key,
        }, to=connection)]
        out.extend(self._lobby_update())
        out.append(self._availability())
        return out

    @_serialized
    def declare_win(self, connection: str, payload: DeclareWin) -> List[Outbound]:
        state = self.state
        player = state.players.get(connection)
        if player is None:
            return []
        category = payload.category
        try:
            self._claim(player, category)
        except AlreadyClaimedError:
            return [Outbound('win:already-claimed', {'type': category}, to=connection)]
        except InvalidClaimError:
            return [Outbound('win:invalid', {'type': category}, to=connection)]

        logger.info(f'[win] {player.nickname} claims {category}, waiting for admin')
        out = [Outbound('win:declared', {'type': category}, to=connection)]
        out.extend(self._to_admin('admin:win-declared', {
            'nickname': player.nickname,
            'type': category,
            'cards': [card_to_list(card) for card in player.cards],
            'cardIds': list(player.card_ids),
            'drawnNumbers': list(state.drawn_numbers),
        }))
        return out

    def _claim(self, player: Player, category: str) -> None:
        state = self.state
        if state.winners[category] is not None:
            raise AlreadyClaimedError(category)
        if not state.started or not wins.validate_player(player, state.drawn_numbers, category):
            raise InvalidClaimError(category)
        state.winners[category] = player.nickname

    @_serialized
    def disconnect(self, connection: str) -> List[Outbound]:
        state = self.state
        if connection == state.admin:
            state.admin = None
            logger.info('[admin] disconnected')
            return []
        player = sessions.release_connection(state, connection)
        if player is None:
            return []
        logger.info(f'[disconnect] {player.nickname}')
        out = self._lobby_update()
        if not state.started:
            out.append(self._availability())
        return out

    # ---- admin actions ----

    @_serialized
    def set_cost(self, connection: str, payload: SetCost) -> List[Outbound]:
        self._require_admin(connection)
        self.state.cost_per_card = prizes.to_money(payload.cost)
        logger.info(f'[cost] set to {self.state.cost_per_card}')
        return [Outbound('cost:updated', {'cost': money(self.state.cost_per_card)})]

    @_serialized
    def calculate_prizes(self, connection: str) -> List[Outbound]:
        self._require_admin(connection)
        state = self.state
        total_cards = state.total_cards_sold()
        pot, state.prizes = prizes.calculate(total_cards, state.cost_per_card)
        logger.info(f'[prizes] {total_cards} cards, pot {pot}')
        return [Outbound('prizes:calculated', {
            'totalCards': total_cards,
            'totalPot': money(pot),
            'prizes': state.prizes_dict(),
        }, to=connection)]

    @_serialized
    def adjust_prize(self, connection: str, payload: AdjustPrize) -> List[Outbound]:
        self._require_admin(connection)
        prizes.adjust(self.state.prizes, payload.category, payload.amount)
        return [Outbound('prizes:updated', {'prizes': self.state.prizes_dict()}, to=connection)]

    @_serialized
    def start_game(self, connection: str) -> List[Outbound]:
        self._require_admin(connection)
        state = self.state
        if state.started:
            logger.warning('[start] game already running, ignored')
            return []
        state.started = True
        state.drawn_numbers = []
        dropped = sessions.drop_orphaned_sessions(state)
        if dropped:
            logger.info(f'[start] dropped {len(dropped)} disconnected sessions')

        out = []
        for player in state.players.values():
            player.cards = self.deck.cards_for(player.card_ids)
            out.append(Outbound('game:started', {
                'cards': [card_to_list(card) for card in player.cards],
                'cardIds': list(player.card_ids),
                'prizes': state.prizes_dict(),
            }, to=player.connection))
        out.append(Outbound('game:started-admin', {'totalPlayers': len(state.players)}, to=connection))
        logger.info(f'[start] game started with {len(state.players)} players')
        return out

    @_serialized
    def draw_number(self, connection: str) -> List[Outbound]:
        self._require_admin(connection)
        try:
            number, total = draws.draw_next(self.state, self._rng)
        except GameNotStartedError:
            return []
        except DrawExhaustedError:
            return [Outbound('game:no-numbers-left', None, to=connection)]
        logger.info(f'[draw] {number} ({total}/90)')
        return [Outbound('game:number-drawn', {'number': number, 'total': total})]

    @_serialized
    def validate_win(self, connection: str, payload: ValidateWin) -> List[Outbound]:
        self._require_admin(connection)
        state = self.state
        category = payload.category
        if state.winners[category] != payload.nickname or category in state.confirmed:
            logger.warning(f'[win] no pending {category} claim by {payload.nickname}')
            return []
        if payload.valid:
            state.confirmed.add(category)
            logger.info(f'[win] {category} confirmed for {payload.nickname}')
            return [Outbound('win:confirmed', {
                'nickname': payload.nickname,
                'type': category,
                'prize': money(state.prizes[category]),
            })]
        state.winners[category] = None
        logger.info(f'[win] {category} claim by {payload.nickname} rejected')
        return [Outbound('win:rejected', {'nickname': payload.nickname, 'type': category})]

    @_serialized
    def reset_game(self, connection: str) -> List[Outbound]:
        self._require_admin(connection)
        self.state = GameState(admin=connection)
        logger.info('[reset] game reset')
        return [Outbound('game:reset')]
