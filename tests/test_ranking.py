"""Tests for the Ranking Engine."""

from datetime import datetime, timedelta

import pytest

from deadline import Deadline
from exceptions import InvalidQuery, QueryTimeout
from extensions import db
from ranking import badge_for_rank, window_bounds


@pytest.mark.parametrize('rank,badge', [
    (1, 'gold'),
    (2, 'silver'),
    (3, 'bronze'),
    (4, 'top10'),
    (10, 'top10'),
    (11, 'top50'),
    (50, 'top50'),
    (51, 'ranked'),
    (1000, 'ranked'),
])
def test_badge_tiers(rank, badge):
    assert badge_for_rank(rank) == badge


@pytest.mark.parametrize('period,now,start', [
    ('today', datetime(2026, 3, 15, 12, 30), datetime(2026, 3, 15)),
    ('week', datetime(2026, 3, 15, 12, 30), datetime(2026, 3, 8, 12, 30)),
    ('month', datetime(2026, 3, 15, 12, 30), datetime(2026, 2, 15, 12, 30)),
    ('month', datetime(2026, 3, 31, 8, 0), datetime(2026, 2, 28, 8, 0)),
    ('month', datetime(2026, 1, 10), datetime(2025, 12, 10)),
    ('year', datetime(2026, 3, 15, 12, 30), datetime(2025, 3, 15, 12, 30)),
    ('year', datetime(2024, 2, 29, 6, 0), datetime(2023, 2, 28, 6, 0)),
])
def test_window_bounds(period, now, start):
    assert window_bounds(period, now, 'UTC') == (start, now)


def test_today_window_follows_configured_timezone():
    # 02:00 UTC 15 марта = 22:00 14 марта в Нью-Йорке (EDT)
    start, _ = window_bounds('today', datetime(2026, 3, 15, 2, 0), 'America/New_York')

    assert start == datetime(2026, 3, 14, 4, 0)


def test_unknown_period_is_rejected():
    with pytest.raises(InvalidQuery):
        window_bounds('decade', datetime(2026, 3, 15), 'UTC')


def test_global_leaderboard_orders_by_points_then_registration(state, make_participant, clock):
    t0 = clock() - timedelta(days=5)
    late = make_participant('Late', total_points=0, created_at=t0 + timedelta(hours=1))
    early = make_participant('Early', total_points=0, created_at=t0)
    leader = make_participant('Leader', total_points=40, created_at=t0 + timedelta(days=1))

    standings = state.ranking.global_leaderboard(limit=10)

    assert [s.participant.id for s in standings] == [leader.id, early.id, late.id]
    assert [s.rank for s in standings] == [1, 2, 3]
    assert [s.badge for s in standings] == ['gold', 'silver', 'bronze']


def test_global_leaderboard_never_duplicates_ranks_on_ties(state, make_participant):
    for _ in range(12):
        make_participant(total_points=25)

    standings = state.ranking.global_leaderboard(limit=12)

    assert [s.rank for s in standings] == list(range(1, 13))
    created = [s.participant.created_at for s in standings]
    assert created == sorted(created)


def test_global_leaderboard_skips_inactive_and_respects_limit(state, make_participant):
    make_participant(total_points=100, is_active=False)
    visible = [make_participant(total_points=points) for points in (30, 20, 10)]

    standings = state.ranking.global_leaderboard(limit=2)

    assert [s.participant.id for s in standings] == [visible[0].id, visible[1].id]


def test_global_leaderboard_rejects_bad_limit(state):
    with pytest.raises(InvalidQuery):
        state.ranking.global_leaderboard(limit=0)


def test_today_excludes_old_claim_but_global_keeps_totals(state, make_participant, clock):
    veteran = make_participant('Veteran')
    fresh = make_participant('Fresh')
    old = state.ledger.append(veteran.id, 9, created_at=clock() - timedelta(days=8))
    state.aggregates.apply(veteran.id, old.points, 1)
    recent = state.ledger.append(fresh.id, 2, created_at=clock() - timedelta(hours=1))
    state.aggregates.apply(fresh.id, recent.points, 1)

    today = state.ranking.windowed_leaderboard('today', limit=10)
    overall = state.ranking.global_leaderboard(limit=10)

    assert [e.participant.id for e in today.entries] == [fresh.id]
    assert today.entries[0].period_points == 2
    assert [s.participant.id for s in overall] == [veteran.id, fresh.id]
    assert overall[0].participant.total_points == 9
    assert overall[0].participant.claims_count == 1


def test_week_top_ten_out_of_sixty(state, make_participant, clock):
    within = clock() - timedelta(days=2)
    outside = clock() - timedelta(days=9)
    expected = {}
    for i in range(60):
        participant = make_participant()
        awards = [(i * 7) % 10 + 1] * ((i % 4) + 1)
        for points in awards:
            state.ledger.append(participant.id, points, created_at=within)
        # Старые заявки в окно не попадают
        state.ledger.append(participant.id, 10, created_at=outside)
        expected[participant.id] = (sum(awards), len(awards))

    board = state.ranking.windowed_leaderboard('week', limit=10)
    entries = board.entries

    assert len(entries) == 10
    assert [e.rank for e in entries] == list(range(1, 11))
    keys = [(e.period_points, e.period_claims) for e in entries]
    assert keys == sorted(keys, reverse=True)
    for entry in entries:
        assert (entry.period_points, entry.period_claims) == expected[entry.participant.id]
    best = sorted(expected.values(), reverse=True)[:10]
    assert keys == best


def test_windowed_tie_on_points_goes_to_more_claims(state, make_participant, clock):
    single = make_participant('Single')
    double = make_participant('Double')
    at = clock() - timedelta(hours=3)
    state.ledger.append(single.id, 10, created_at=at)
    state.ledger.append(double.id, 5, created_at=at)
    state.ledger.append(double.id, 5, created_at=at)

    board = state.ranking.windowed_leaderboard('week', limit=5)

    assert [(e.participant.id, e.period_points, e.period_claims) for e in board.entries] == [
        (double.id, 10, 2),
        (single.id, 10, 1),
    ]


def test_windowed_ignores_revoked_claims_and_inactive_participants(state, make_participant, clock):
    active = make_participant()
    gone = make_participant()
    at = clock() - timedelta(minutes=5)
    revoked = state.ledger.append(active.id, 10, created_at=at)
    state.ledger.append(active.id, 1, created_at=at)
    state.ledger.invalidate(revoked.id)
    state.ledger.append(gone.id, 10, created_at=at)
    gone.is_active = False
    db.session.commit()

    board = state.ranking.windowed_leaderboard('month', limit=10)

    assert [(e.participant.id, e.period_points) for e in board.entries] == [(active.id, 1)]


def test_windowed_reports_period_bounds(state, clock):
    board = state.ranking.windowed_leaderboard('week', limit=3)

    assert board.entries == []
    assert board.end == clock()
    assert board.start == clock() - timedelta(days=7)


def test_expired_deadline_fails_instead_of_returning_partial_result(state, make_participant):
    make_participant(total_points=5)

    with pytest.raises(QueryTimeout):
        state.ranking.global_leaderboard(limit=10, deadline=Deadline(0))
