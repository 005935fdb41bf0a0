import logging
from pathlib import Path

import click
from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from config import Config

socketio = SocketIO(async_mode=None)


def _origins(value):
    if not value or value == '*':
        return '*'
    return [origin.strip() for origin in value.split(',') if origin.strip()]


def _load_deck(flask_app):
    """Load and validate the deck; any integrity problem aborts app creation."""
    from tombola.deck import generate_deck, load_deck, read_deck_file
    from tombola.errors import DeckIntegrityError

    path = flask_app.config.get('DECK_PATH')
    try:
        if path:
            deck = load_deck(read_deck_file(path))
            flask_app.logger.info(f"[deck] loaded {len(deck)} cards from {path}")
        else:
            seed = flask_app.config.get('DECK_SEED')
            deck = generate_deck(seed=seed)
            flask_app.logger.info(f"[deck] generated {len(deck)} cards (seed={seed})")
    except DeckIntegrityError as exc:
        flask_app.logger.error(f"[deck] refusing to start: {exc}")
        raise
    return deck


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(getattr(logging, str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    origins = _origins(flask_app.config.get('CORS_ORIGINS'))
    CORS(flask_app, origins=origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    from tombola.coordinator import GameCoordinator
    from tombola.network import server_url
    from tombola.socketio_events import deliver, register_socketio_handlers

    deck = _load_deck(flask_app)
    flask_app.extensions['tombola'] = GameCoordinator(
        deck, server_url=server_url(flask_app.config), deliver=deliver,
    )

    from tombola.main import main
    flask_app.register_blueprint(main)

    register_socketio_handlers()

    @click.command('generate-deck')
    @click.option('--seed', type=int, default=None, help='Seed for a reproducible deck.')
    @click.option('--output', type=click.Path(dir_okay=False), default=None, help='Write here instead of stdout.')
    def generate_deck_command(seed, output):
        """Generates a valid 90-card deck in the Cartella format."""
        from tombola.deck import format_deck, generate_deck

        text = format_deck(generate_deck(seed=seed))
        if output:
            Path(output).write_text(text, encoding='utf-8')
            click.echo(f'Deck written to {output}')
        else:
            click.echo(text, nl=False)

    @click.command('check-deck')
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    def check_deck_command(path):
        """Validates a deck file without starting the server."""
        from tombola.deck import load_deck, read_deck_file
        from tombola.errors import DeckIntegrityError

        try:
            deck = load_deck(read_deck_file(path))
        except DeckIntegrityError as exc:
            raise click.ClickException(str(exc))
        click.echo(f'{path}: {len(deck)} cards in {len(deck.series)} series, all valid')

    flask_app.cli.add_command(generate_deck_command)
    flask_app.cli.add_command(check_deck_command)

    return flask_app
