# config.py
# Конфигурация приложения Flask

import os


def _get_int(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


class Config:
    # Абсолютный путь к базе данных
    BASE_DIR = os.path.abspath(os.path.dirname(__file__))
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        f'sqlite:///{os.path.join(BASE_DIR, "instance", "leaderboard.db")}'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # SQLite: ждем снятия блокировки вместо немедленного "database is locked"
    SQLALCHEMY_ENGINE_OPTIONS = {'connect_args': {'timeout': 30}}
    SECRET_KEY = os.getenv('SECRET_KEY', 'your-secret-key-change-me')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE')

    # None = локальное время сервера (граница окна "today")
    LEADERBOARD_TIMEZONE = os.getenv('LEADERBOARD_TIMEZONE')
    LEADERBOARD_MAX_LIMIT = _get_int('LEADERBOARD_MAX_LIMIT', 100)
    HISTORY_DEFAULT_LIMIT = 50
    NEIGHBORHOOD_SIZE = 2
    QUERY_TIMEOUT_SECONDS = _get_float('QUERY_TIMEOUT_SECONDS', 5.0)

    RANDOM_SEED = os.getenv('RANDOM_SEED')


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LOG_LEVEL = 'WARNING'
    LOG_FILE = None
    LEADERBOARD_TIMEZONE = 'UTC'
    RANDOM_SEED = 1234
