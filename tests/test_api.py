import pytest

from tombola import create_app
from tombola.deck import format_deck, generate_deck
from tombola.errors import DeckIntegrityError


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'message' in res.get_json()


def test_health(client):
    assert client.get('/health').get_json() == {'status': 'ok', 'cards': 90}


def test_availability_starts_full(client):
    data = client.get('/api/availability').get_json()
    assert data['availableSeries'] == list(range(1, 16))
    assert data['availableCards'] == list(range(1, 91))


def test_state_snapshot(client):
    data = client.get('/api/state').get_json()
    assert data['phase'] == 'lobby'
    assert data['gameStarted'] is False
    assert data['drawnNumbers'] == []
    assert data['players'] == []
    assert set(data['winners']) == {'ambo', 'terno', 'quaterna', 'cinquina', 'tombola'}


def _config(base, deck_path):
    class DeckFileConfig(base):
        DECK_PATH = str(deck_path)

    return DeckFileConfig


def test_app_loads_deck_file(tmp_path, config_class):
    deck = generate_deck(seed=9)
    path = tmp_path / 'cartelle.csv'
    path.write_text(format_deck(deck), encoding='utf-8')
    app = create_app(_config(config_class, path))
    assert app.extensions['tombola'].deck.cards == deck.cards


def test_corrupt_deck_stops_startup(tmp_path, config_class):
    text = format_deck(generate_deck(seed=9))
    # drop the last card
    text = text[:text.index('Cartella 90')]
    path = tmp_path / 'cartelle.csv'
    path.write_text(text, encoding='utf-8')
    with pytest.raises(DeckIntegrityError):
        create_app(_config(config_class, path))


def test_generate_and_check_deck_commands(flask_app, tmp_path):
    runner = flask_app.test_cli_runner()
    out = tmp_path / 'deck.csv'
    result = runner.invoke(args=['generate-deck', '--seed', '3', '--output', str(out)])
    assert result.exit_code == 0
    result = runner.invoke(args=['check-deck', str(out)])
    assert result.exit_code == 0
    assert '90 cards in 15 series' in result.output


def test_check_deck_reports_errors(flask_app, tmp_path):
    bad = tmp_path / 'bad.csv'
    bad.write_text('Cartella 1\n1\t2\n', encoding='utf-8')
    result = flask_app.test_cli_runner().invoke(args=['check-deck', str(bad)])
    assert result.exit_code != 0
    assert 'card 1' in result.output
