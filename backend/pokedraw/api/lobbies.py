from flask import Blueprint, current_app, jsonify

from pokedraw import get_coordinator
from pokedraw.errors import LobbyNotFound, MalformedInput

lobbies = Blueprint('lobbies', __name__)


@lobbies.route('/lobbies/<string:lobby_code>', methods=['GET'])
def get_lobby_state(lobby_code):
    # Public view only: the word never leaves the server over HTTP
    try:
        snapshot = get_coordinator(current_app).public_snapshot(lobby_code)
    except LobbyNotFound as exc:
        return jsonify({'error': exc.message}), 404
    except MalformedInput as exc:
        return jsonify({'error': exc.message}), 400
    try:
        snapshot['roundSeconds'] = int(current_app.config.get('ROUND_SECONDS', 80))
    except (TypeError, ValueError):
        snapshot['roundSeconds'] = 80
    return jsonify(snapshot)


@lobbies.route('/words', methods=['GET'])
def get_words_info():
    words = get_coordinator(current_app).words
    return jsonify({'count': len(words), 'origin': words.origin})
