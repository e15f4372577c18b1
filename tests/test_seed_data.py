"""Tests for the demo seed."""

import random

from extensions import db
from models import Claim
from seed_data import seed_history


def test_seed_history_goes_through_processor(state, make_participant, clock, totals):
    users = [make_participant() for _ in range(3)]

    count = seed_history(users, random.Random(42), clock())

    claims = db.session.query(Claim).all()
    assert len(claims) == count
    assert all(c.created_at <= clock() for c in claims)
    assert {c.source for c in claims} == {'seed'}
    for user in users:
        assert totals(user.id) == state.ledger.ledger_totals(user.id)
        db.session.refresh(user)
        latest = max(c.created_at for c in claims if c.participant_id == user.id)
        assert user.last_activity == latest
