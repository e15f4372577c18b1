# extensions.py
# Файл для хранения экземпляров расширений Flask

import random
from contextlib import contextmanager

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from exceptions import TransientStoreFailure
from logger import get_logger

db = SQLAlchemy()
migrate = Migrate()

log = get_logger('store')


@contextmanager
def store_errors(operation):
    """Translate "store is unavailable" errors into a retryable TransientStoreFailure."""
    try:
        yield
    except (OperationalError, DisconnectionError, PoolTimeoutError) as exc:
        db.session.rollback()
        log.warning("%s failed, store unavailable: %s", operation, exc)
        raise TransientStoreFailure(f"{operation}: store unavailable, retry later") from exc


class CoreState:
    """Components of the points ledger bound to one application."""

    def __init__(self, app, rng=None, clock=None):
        # Импорт здесь, чтобы избежать циклических импортов с моделями
        from clock import utcnow
        from claims import ClaimProcessor
        from directory import ParticipantDirectory
        from ledger import LedgerStore
        from logic import AggregateStore
        from position import PositionResolver
        from ranking import RankingEngine
        from stats import StatsReader

        if rng is None:
            seed = app.config.get('RANDOM_SEED')
            rng = random.Random(seed) if seed is not None else random.SystemRandom()
        clock = clock or utcnow
        tz_name = app.config.get('LEADERBOARD_TIMEZONE')

        self.directory = ParticipantDirectory()
        self.ledger = LedgerStore(self.directory)
        self.aggregates = AggregateStore()
        self.processor = ClaimProcessor(
            self.ledger, self.aggregates, self.directory, rng=rng, clock=clock
        )
        self.ranking = RankingEngine(self.ledger, clock=clock, tz_name=tz_name)
        self.positions = PositionResolver(
            neighborhood_size=app.config.get('NEIGHBORHOOD_SIZE', 2)
        )
        self.stats = StatsReader(clock=clock, tz_name=tz_name)


class PointsCore:
    """Flask extension that wires the ledger components per application."""

    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app, rng=None, clock=None):
        app.extensions['points_core'] = CoreState(app, rng=rng, clock=clock)

    @property
    def state(self):
        return current_app.extensions['points_core']


core = PointsCore()
