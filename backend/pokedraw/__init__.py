from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

socketio = SocketIO(async_mode=None)

COORDINATOR_KEY = 'pokedraw_coordinator'


def _allowed_origins(config):
    raw = config.get('CORS_ORIGINS') or '*'
    if raw.strip() == '*':
        return '*'
    return [origin.strip() for origin in raw.split(',') if origin.strip()]


def get_coordinator(flask_app):
    return flask_app.extensions[COORDINATOR_KEY]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = _allowed_origins(flask_app.config)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One coordinator per app; it owns every lobby for the process lifetime
    from pokedraw.services.games.coordinator import GameCoordinator
    from pokedraw.services.games.scheduler import RoundTimer
    from pokedraw.services.games.transport import SocketIOTransport
    from pokedraw.services.games.words import load_word_source

    cfg = flask_app.config
    timer_enabled = not cfg.get('TESTING') or cfg.get('ENABLE_ROUND_TIMER_IN_TESTS')
    coordinator = GameCoordinator.from_config(
        cfg,
        transport=SocketIOTransport(socketio),
        words=load_word_source(cfg, flask_app.logger),
        timer=RoundTimer(
            socketio,
            grace_sec=int(cfg.get('ROUND_GRACE_MS', 250)) / 1000.0,
            enabled=bool(timer_enabled),
            logger=flask_app.logger,
        ),
        logger=flask_app.logger,
    )
    flask_app.extensions[COORDINATOR_KEY] = coordinator

    # Import and register blueprints here
    from pokedraw.main import main
    flask_app.register_blueprint(main)

    from pokedraw.api.lobbies import lobbies
    flask_app.register_blueprint(lobbies, url_prefix='/api')

    # Register Socket.IO event handlers
    from pokedraw.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('words-reload')
    def words_reload_command():
        """Refetches the word list and swaps it into the running coordinator."""
        source = load_word_source(flask_app.config, flask_app.logger)
        get_coordinator(flask_app).replace_words(source)
        click.echo(f'Loaded {len(source)} words ({source.origin}).')

    @click.command('lobbies')
    def lobbies_command():
        """Lists lobbies with player count and host presence."""
        summaries = get_coordinator(flask_app).lobby_summaries()
        if not summaries:
            click.echo('No lobbies.')
            return
        for s in summaries:
            host = 'host' if s['hasAdmin'] else 'no host'
            state = 'round active' if s['roundActive'] else 'idle'
            click.echo(f"{s['lobbyId']}: {s['players']} player(s), {host}, {state}")

    flask_app.cli.add_command(words_reload_command)
    flask_app.cli.add_command(lobbies_command)

    return flask_app
