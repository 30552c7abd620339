from flask import Blueprint, current_app, jsonify

from pokedraw import get_coordinator

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the PokéDraw Live server!'})


@main.route('/health')
def health():
    coordinator = get_coordinator(current_app)
    return jsonify({
        'status': 'ok',
        'lobbies': len(coordinator.registry),
        'words': len(coordinator.words),
    })
