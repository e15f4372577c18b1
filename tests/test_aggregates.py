"""Tests for the Aggregate Store and reconciliation."""

from datetime import timedelta

import pytest
from sqlalchemy import update

from exceptions import AggregateInconsistency, NotFound
from extensions import db
from models import Participant


def corrupt(participant_id, total_points, claims_count):
    db.session.execute(
        update(Participant)
        .where(Participant.id == participant_id)
        .values(total_points=total_points, claims_count=claims_count)
    )
    db.session.commit()


def test_apply_increments_and_decrements(state, make_participant, totals, clock):
    participant = make_participant()

    state.aggregates.apply(participant.id, 7, 1, touched_at=clock())
    state.aggregates.apply(participant.id, 2, 1)
    state.aggregates.apply(participant.id, -7, -1)

    assert totals(participant.id) == (2, 1)


def test_apply_updates_last_activity(state, make_participant, clock):
    participant = make_participant()
    later = clock.advance(hours=3)

    state.aggregates.apply(participant.id, 3, 1, touched_at=later)

    db.session.refresh(participant)
    assert participant.last_activity == later


def test_apply_for_missing_participant(state):
    with pytest.raises(NotFound):
        state.aggregates.apply(777, 1, 1)


@pytest.mark.parametrize('garbage', [(999, 42), (0, 0), (3, 17)])
def test_reconcile_restores_corrupted_aggregate(state, make_participant, totals, garbage):
    participant = make_participant()
    for points in (4, 6, 9):
        state.ledger.append(participant.id, points)
    revoked = state.ledger.append(participant.id, 2)
    state.ledger.invalidate(revoked.id)
    corrupt(participant.id, *garbage)

    result = state.aggregates.reconcile(participant.id)

    assert totals(participant.id) == (19, 3)
    assert (result.total_points, result.claims_count) == (19, 3)
    assert result.repaired
    assert isinstance(result.drift, AggregateInconsistency)
    assert result.drift.stored == garbage
    assert result.drift.actual == (19, 3)


def test_reconcile_is_idempotent(state, make_participant, totals):
    participant = make_participant()
    state.ledger.append(participant.id, 5)
    corrupt(participant.id, 50, 5)

    first = state.aggregates.reconcile(participant.id)
    second = state.aggregates.reconcile(participant.id)

    assert first.repaired
    assert not second.repaired
    assert totals(participant.id) == (5, 1)


def test_reconcile_participant_without_claims(state, make_participant, totals):
    participant = make_participant(total_points=12, claims_count=2)

    state.aggregates.reconcile(participant.id)

    assert totals(participant.id) == (0, 0)


def test_reconcile_unknown_participant(state):
    with pytest.raises(NotFound):
        state.aggregates.reconcile(31337)


def test_reconcile_all_reports_only_drifted(state, make_participant, totals):
    clean = make_participant()
    drifted = make_participant()
    inactive = make_participant()
    state.ledger.append(clean.id, 3)
    state.aggregates.apply(clean.id, 3, 1)
    state.ledger.append(drifted.id, 8)
    state.ledger.append(inactive.id, 1)
    inactive.is_active = False
    db.session.commit()

    repaired = state.aggregates.reconcile_all()

    assert sorted(r.participant_id for r in repaired) == [drifted.id, inactive.id]
    assert totals(clean.id) == (3, 1)
    assert totals(drifted.id) == (8, 1)
    assert totals(inactive.id) == (1, 1)


def test_decrement_below_zero_falls_back_to_reconcile(state, make_participant, totals, clock):
    # Агрегат отстал от леджера: инкремент потерян, а декремент пришел
    participant = make_participant()
    kept = state.ledger.append(participant.id, 4, created_at=clock() - timedelta(hours=1))
    lost = state.ledger.append(participant.id, 5, created_at=clock())
    state.ledger.invalidate(lost.id)

    state.aggregates.apply(participant.id, -lost.points, -1)

    assert totals(participant.id) == (kept.points, 1)


def test_uncommitted_apply_rolls_back(state, make_participant, totals):
    participant = make_participant()

    state.aggregates.apply(participant.id, 5, 1, commit=False)
    db.session.rollback()

    assert totals(participant.id) == (0, 0)


def test_reconcile_reports_consistent_aggregate(state, make_participant, totals):
    participant = make_participant()
    state.processor.submit(participant.id, 'manual', 6)

    result = state.aggregates.reconcile(participant.id)

    assert not result.repaired
    assert result.to_dict()['driftDetected'] is False
    assert totals(participant.id) == (6, 1)
