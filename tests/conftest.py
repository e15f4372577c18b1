"""Pytest configuration and fixtures."""

import itertools
import random
from datetime import datetime, timedelta

import pytest

from app import create_app
from config import TestConfig
from extensions import core, db
from models import Participant


class FakeClock:
    """Controllable replacement for clock.utcnow (naive UTC)."""

    def __init__(self, start=datetime(2026, 3, 15, 12, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


class ScriptedRandom:
    """Randomness source replaying a fixed sequence of draws."""

    def __init__(self, values):
        self._values = itertools.cycle(values)
        self.calls = []

    def randint(self, low, high):
        self.calls.append((low, high))
        return next(self._values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return ScriptedRandom([7, 3, 10, 1])


@pytest.fixture
def app(clock, rng):
    app = create_app(TestConfig, rng=rng, clock=clock)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def file_app(tmp_path):
    """Application on file-backed SQLite, so every thread gets its own connection.

    No app context is pushed; each test and worker thread pushes its own.
    """
    config = type('FileTestConfig', (TestConfig,), {
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{tmp_path / "ledger.db"}',
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 30}},
    })
    app = create_app(config, rng=random.Random(3))
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def state(app):
    return core.state


@pytest.fixture
def make_participant(app, clock):
    """Create a participant; totals are written as-is, bypassing the ledger."""
    counter = itertools.count(1)

    def factory(name=None, total_points=0, claims_count=0, is_active=True, created_at=None):
        n = next(counter)
        participant = Participant(
            name=name or f'Player {n}',
            email=f'player{n}@example.com',
            total_points=total_points,
            claims_count=claims_count,
            is_active=is_active,
            created_at=created_at or clock() - timedelta(days=30) + timedelta(seconds=n),
        )
        db.session.add(participant)
        db.session.commit()
        return participant

    return factory


@pytest.fixture
def totals(app):
    """(total_points, claims_count) as currently stored."""

    def read(participant_id):
        participant = db.session.get(Participant, participant_id, populate_existing=True)
        return participant.total_points, participant.claims_count

    return read
