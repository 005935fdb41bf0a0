from flask_socketio import emit
from flask import current_app, request
from typing import Iterable, Optional

from tombola import socketio
from tombola.coordinator import GameCoordinator
from tombola.errors import PayloadError
from tombola.messages import (
    AdjustPrize,
    DeclareWin,
    PlayerJoin,
    Reconnect,
    SetCost,
    ValidateWin,
    parse_payload,
)
from tombola.models import EVERYONE, Outbound

NAMESPACE = '/'


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _coordinator() -> GameCoordinator:
    return current_app.extensions['tombola']


def deliver(messages: Iterable[Outbound]) -> None:
    """Send coordinator output: to one connection or to everybody."""
    for msg in messages:
        args = () if msg.payload is None else (msg.payload,)
        if msg.to == EVERYONE:
            socketio.emit(msg.event, *args, namespace=NAMESPACE)
        else:
            socketio.emit(msg.event, *args, to=msg.to, namespace=NAMESPACE)


def _parse(model, data) -> Optional[object]:
    try:
        return parse_payload(model, data)
    except PayloadError as exc:
        current_app.logger.info(f"[payload] rejected from {_get_sid()}: {exc}")
        emit('error', {'message': str(exc)})
        return None


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to tombola'})


def handle_disconnect(reason=None):
    _coordinator().disconnect(_get_sid())


def handle_admin_join(data=None):
    _coordinator().admin_join(_get_sid())


def handle_admin_reconnect(data=None):
    payload = _parse(Reconnect, data)
    if payload:
        _coordinator().admin_reconnect(_get_sid(), payload)


def handle_request_availability(data=None):
    _coordinator().request_availability(_get_sid())


def handle_player_reconnect(data=None):
    payload = _parse(Reconnect, data)
    if payload:
        _coordinator().player_reconnect(_get_sid(), payload)


def handle_player_join(data=None):
    payload = _parse(PlayerJoin, data)
    if payload:
        _coordinator().player_join(_get_sid(), payload)


def handle_set_cost(data=None):
    payload = _parse(SetCost, data)
    if payload:
        _coordinator().set_cost(_get_sid(), payload)


def handle_calculate_prizes(data=None):
    _coordinator().calculate_prizes(_get_sid())


def handle_adjust_prize(data=None):
    payload = _parse(AdjustPrize, data)
    if payload:
        _coordinator().adjust_prize(_get_sid(), payload)


def handle_start_game(data=None):
    _coordinator().start_game(_get_sid())


def handle_draw_number(data=None):
    _coordinator().draw_number(_get_sid())


def handle_declare_win(data=None):
    payload = _parse(DeclareWin, data)
    if payload:
        _coordinator().declare_win(_get_sid(), payload)


def handle_validate_win(data=None):
    payload = _parse(ValidateWin, data)
    if payload:
        _coordinator().validate_win(_get_sid(), payload)


def handle_reset_game(data=None):
    _coordinator().reset_game(_get_sid())


HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'admin:join': handle_admin_join,
    'admin:reconnect': handle_admin_reconnect,
    'player:request-availability': handle_request_availability,
    'player:reconnect': handle_player_reconnect,
    'player:join': handle_player_join,
    'admin:set-cost': handle_set_cost,
    'admin:calculate-prizes': handle_calculate_prizes,
    'admin:adjust-prize': handle_adjust_prize,
    'admin:start-game': handle_start_game,
    'admin:draw-number': handle_draw_number,
    'player:declare-win': handle_declare_win,
    'admin:validate-win': handle_validate_win,
    'admin:reset-game': handle_reset_game,
}


def register_socketio_handlers(namespace: str = NAMESPACE) -> None:
    """Register Socket.IO event handlers on the given namespace."""
    for event, handler in HANDLERS.items():
        socketio.on_event(event, handler, namespace=namespace)
