from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


def _coordinator():
    return current_app.extensions['tombola']


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Tombola game server!'})


@main.route('/health')
def health():
    return jsonify({'status': 'ok', 'cards': len(_coordinator().deck)})


@main.route('/api/availability')
def availability():
    return jsonify(_coordinator().availability())


@main.route('/api/state')
def state():
    return jsonify(_coordinator().snapshot())
