"""Players keyed by a durable session key, indexed by their live connection.

The session record outlives the connection: a player who drops before the
game starts frees their cards but can reconnect with the same key and get
them back, as long as nobody else took them in the meantime.
"""
import logging
from typing import List, Optional, Sequence, Union

from tombola.errors import AssignmentCollisionError, GameInProgressError
from tombola.models import GameState, Player
from tombola.services.availability import release, resolve_card_ids, try_assign

logger = logging.getLogger(__name__)


def _held_by(player: Optional[Player]) -> List[int]:
    if player is None or player.connection is None:
        return []
    return list(player.card_ids)


def join(
    state: GameState,
    connection: str,
    session_key: str,
    nickname: str,
    selection_type: str,
    selection: Union[int, Sequence[int]],
) -> Player:
    if state.started:
        raise GameInProgressError('The game has already started')
    card_ids = resolve_card_ids(selection_type, selection)

    # A session (or connection) joining again gives up its previous cards,
    # but only if the new request goes through.
    replaced = []
    for candidate in (state.sessions.get(session_key), state.players.get(connection)):
        if candidate is not None and all(candidate is not r for r in replaced):
            replaced.append(candidate)
    held = [card_id for p in replaced for card_id in _held_by(p)]
    release(state, held)
    try:
        try_assign(state, card_ids)
    except AssignmentCollisionError:
        state.assigned_cards.update(held)
        raise

    for old in replaced:
        if old.connection is not None:
            state.players.pop(old.connection, None)
            old.connection = None
    player = Player(
        session_key=session_key,
        nickname=nickname,
        selection_type=selection_type,
        selection=selection,
        card_ids=card_ids,
        connection=connection,
    )
    state.players[connection] = player
    state.sessions[session_key] = player
    return player


def reconnect(state: GameState, session_key: str, connection: str) -> Optional[Player]:
    """Bind an existing session to a new connection.

    Returns None when the session is unknown. Raises AssignmentCollisionError
    (and forgets the session) when its cards were released and then taken.
    A different player already bound to the connection is unbound first and,
    before the start, gives its cards back.
    """
    player = state.sessions.get(session_key)
    if player is None:
        return None
    if player.connection == connection:
        return player

    displaced = state.players.get(connection)
    if displaced is player:
        displaced = None
    held = [] if state.started else _held_by(displaced)
    release(state, held)
    if player.connection is None:
        if not state.started:
            try:
                try_assign(state, player.card_ids)
            except AssignmentCollisionError:
                state.assigned_cards.update(held)
                del state.sessions[session_key]
                logger.info(f'[reconnect] session {session_key} lost its cards while disconnected')
                raise
    else:
        state.players.pop(player.connection, None)
    if displaced is not None:
        displaced.connection = None
        logger.info(f'[reconnect] {displaced.nickname} unbound from {connection}')
    player.connection = connection
    state.players[connection] = player
    return player


def release_connection(state: GameState, connection: str) -> Optional[Player]:
    """Forget a dropped connection; before the start its cards go back to the pool."""
    player = state.players.pop(connection, None)
    if player is None:
        return None
    if player.connection == connection:
        player.connection = None
        if not state.started:
            release(state, player.card_ids)
    return player


def drop_orphaned_sessions(state: GameState) -> List[str]:
    """Remove sessions with no live connection (their cards are already free)."""
    orphaned = [key for key, p in state.sessions.items() if p.connection is None]
    for key in orphaned:
        del state.sessions[key]
    return orphaned
