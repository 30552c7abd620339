import os


def _flag(name, default):
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated; '*' allows any origin
    CORS_ORIGINS = os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5174,http://127.0.0.1:5174',
    )
    # Round timing (seconds / milliseconds)
    ROUND_SECONDS = int(os.environ.get('ROUND_SECONDS', '80'))
    ROUND_GRACE_MS = int(os.environ.get('ROUND_GRACE_MS', '250'))
    # Host token length policy
    HOST_TOKEN_MIN_LEN = int(os.environ.get('HOST_TOKEN_MIN_LEN', '12'))
    HOST_TOKEN_MAX_LEN = int(os.environ.get('HOST_TOKEN_MAX_LEN', '200'))
    # Input bounds
    PLAYER_NAME_MAX_LEN = int(os.environ.get('PLAYER_NAME_MAX_LEN', '20'))
    PLAYER_ID_MAX_LEN = int(os.environ.get('PLAYER_ID_MAX_LEN', '64'))
    GUESS_MAX_LEN = int(os.environ.get('GUESS_MAX_LEN', '60'))
    LOBBY_CODE_LENGTH = int(os.environ.get('LOBBY_CODE_LENGTH', '4'))
    LOBBY_CODE_MAX_LEN = int(os.environ.get('LOBBY_CODE_MAX_LEN', '12'))
    # Word list
    WORDS_REMOTE_ENABLED = _flag('WORDS_REMOTE_ENABLED', 'true')
    WORDS_SOURCE_URL = os.environ.get(
        'WORDS_SOURCE_URL', 'https://pokeapi.co/api/v2/pokemon-species?limit=2000'
    )
    WORDS_FETCH_TIMEOUT_SEC = float(os.environ.get('WORDS_FETCH_TIMEOUT_SEC', '10'))
    WORDS_MIN_COUNT = int(os.environ.get('WORDS_MIN_COUNT', '50'))
    # Optional: run real deadline timers under TESTING
    ENABLE_ROUND_TIMER_IN_TESTS = _flag('ENABLE_ROUND_TIMER_IN_TESTS', 'false')
