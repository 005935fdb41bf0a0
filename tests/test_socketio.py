def names(received):
    return [pkt['name'] for pkt in received]


def payload_of(received, name):
    matches = [pkt['args'][0] for pkt in received if pkt['name'] == name and pkt['args']]
    assert matches, names(received)
    return matches[-1]


def test_socket_connect(sio_client):
    assert sio_client.is_connected()


def test_admin_join_and_player_join(make_sio_client):
    admin = make_sio_client()
    player = make_sio_client()

    admin.emit('admin:join')
    joined = payload_of(admin.get_received(), 'admin:joined')
    assert joined == {'players': [], 'serverUrl': 'http://tombola.test:3000'}

    player.emit('player:join', {
        'nickname': 'Anna', 'selectionType': 'serie', 'selection': 3, 'sessionId': 'k1',
    })
    received = player.get_received()
    assert payload_of(received, 'join:success')['cardIds'] == [13, 14, 15, 16, 17, 18]
    assert 3 not in payload_of(received, 'cards:availability')['availableSeries']

    lobby = payload_of(admin.get_received(), 'lobby:update')
    assert lobby['players'][0]['nickname'] == 'Anna'


def test_second_join_for_same_series_collides(make_sio_client):
    first = make_sio_client()
    second = make_sio_client()
    first.emit('player:join', {'nickname': 'Anna', 'selectionType': 'serie', 'selection': 3})
    second.get_received()
    second.emit('player:join', {'nickname': 'Bruno', 'selectionType': 'serie', 'selection': 3})
    received = second.get_received()
    assert 'join:success' not in names(received)
    assert 'no longer available' in payload_of(received, 'join:error')['message']


def test_malformed_payload_is_rejected(sio_client):
    sio_client.emit('player:join', {'nickname': 'Anna', 'selectionType': 'serie', 'selection': 99})
    received = sio_client.get_received()
    assert names(received) == ['error']
    assert 'series must be between 1 and 15' in payload_of(received, 'error')['message']

    sio_client.emit('player:declare-win', {'type': 'bingo'})
    assert names(sio_client.get_received()) == ['error']

    sio_client.emit('admin:set-cost', 'two euros')
    assert names(sio_client.get_received()) == ['error']


def test_non_admin_draw_gets_no_reply(make_sio_client):
    admin = make_sio_client()
    player = make_sio_client()
    admin.emit('admin:join')
    admin.emit('admin:start-game')
    admin.get_received()
    player.get_received()

    player.emit('admin:draw-number')
    assert player.get_received() == []
    assert admin.get_received() == []


def test_full_round(make_sio_client, flask_app):
    admin = make_sio_client()
    anna = make_sio_client()
    bruno = make_sio_client()

    admin.emit('admin:join')
    anna.emit('player:join', {'nickname': 'Anna', 'selectionType': 'serie', 'selection': 1, 'sessionId': 'k1'})
    bruno.emit('player:join', {'nickname': 'Bruno', 'selectionType': 'cards', 'selection': [50, 51], 'sessionId': 'k2'})
    admin.emit('admin:set-cost', {'cost': 2})
    assert payload_of(anna.get_received(), 'cost:updated') == {'cost': 2.0}

    admin.emit('admin:calculate-prizes')
    calculated = payload_of(admin.get_received(), 'prizes:calculated')
    assert calculated['totalCards'] == 8
    assert calculated['totalPot'] == 16.0

    admin.emit('admin:start-game')
    started = payload_of(anna.get_received(), 'game:started')
    assert started['cardIds'] == [1, 2, 3, 4, 5, 6]
    assert len(started['cards']) == 6
    assert payload_of(admin.get_received(), 'game:started-admin') == {'totalPlayers': 2}
    bruno.get_received()

    admin.emit('admin:draw-number')
    drawn = payload_of(bruno.get_received(), 'game:number-drawn')
    assert drawn['total'] == 1
    assert 1 <= drawn['number'] <= 90
    admin.get_received()

    # make Anna's first row a cinquina without waiting on the random draw
    coordinator = flask_app.extensions['tombola']
    first_row = [n for n in started['cards'][0][0] if n is not None]
    coordinator.state.drawn_numbers.extend(n for n in first_row if n not in coordinator.state.drawn_numbers)

    anna.emit('player:declare-win', {'type': 'cinquina'})
    assert 'win:declared' in names(anna.get_received())
    pending = payload_of(admin.get_received(), 'admin:win-declared')
    assert pending['nickname'] == 'Anna'

    bruno.emit('player:declare-win', {'type': 'cinquina'})
    assert payload_of(bruno.get_received(), 'win:already-claimed') == {'type': 'cinquina'}

    admin.emit('admin:validate-win', {'nickname': 'Anna', 'type': 'cinquina', 'valid': True})
    confirmed = payload_of(bruno.get_received(), 'win:confirmed')
    assert confirmed == {'nickname': 'Anna', 'type': 'cinquina', 'prize': 4.0}

    admin.emit('admin:reset-game')
    assert 'game:reset' in names(anna.get_received())
    assert coordinator.state.players == {}


def test_player_reconnect_restores_cards(make_sio_client):
    first = make_sio_client()
    first.emit('player:join', {'nickname': 'Anna', 'selectionType': 'serie', 'selection': 2, 'sessionId': 'k1'})
    first.disconnect()

    again = make_sio_client()
    again.emit('player:reconnect', {'sessionId': 'k1', 'nickname': 'Anna'})
    received = again.get_received()
    assert payload_of(received, 'game:restore')['cardIds'] == [7, 8, 9, 10, 11, 12]
    assert payload_of(received, 'join:success')['cardIds'] == [7, 8, 9, 10, 11, 12]


def test_admin_reconnect(make_sio_client):
    admin = make_sio_client()
    admin.emit('admin:reconnect', {'sessionId': 'admin-session', 'nickname': 'Boss'})
    restore = payload_of(admin.get_received(), 'admin:game-restore')
    assert restore['gameStarted'] is False
    assert restore['serverUrl'] == 'http://tombola.test:3000'


def test_broadcasts_reach_clients_that_have_not_joined(make_sio_client):
    admin = make_sio_client()
    player = make_sio_client()
    onlooker = make_sio_client()

    admin.emit('admin:join')
    player.emit('player:join', {'nickname': 'Anna', 'selectionType': 'serie', 'selection': 4})
    assert 4 not in payload_of(onlooker.get_received(), 'cards:availability')['availableSeries']

    admin.emit('admin:set-cost', {'cost': 1.5})
    received = onlooker.get_received()
    assert payload_of(received, 'cost:updated') == {'cost': 1.5}
    assert 'lobby:update' not in names(received)


def test_reconnect_onto_another_players_socket_frees_its_cards(make_sio_client, flask_app):
    first = make_sio_client()
    first.emit('player:join', {'nickname': 'Anna', 'selectionType': 'serie', 'selection': 1, 'sessionId': 'k1'})
    first.disconnect()

    second = make_sio_client()
    second.emit('player:join', {'nickname': 'Bruno', 'selectionType': 'serie', 'selection': 2, 'sessionId': 'k2'})
    second.emit('player:reconnect', {'sessionId': 'k1'})
    second.disconnect()

    assert flask_app.extensions['tombola'].state.assigned_cards == set()
