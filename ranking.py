# ranking.py
# Лидерборды: глобальный по агрегатам и за период по леджеру.
# Оба используют позиционный ранг: 1..N без повторов, ничьи по дате регистрации.

from dataclasses import dataclass
from datetime import datetime
from typing import List

from sqlalchemy import select

from clock import local_midnight, subtract_days, subtract_months, utcnow, isoformat
from deadline import ensure
from exceptions import InvalidQuery
from extensions import db, store_errors
from logger import get_logger
from models import Participant

log = get_logger('ranking')

PERIODS = ('today', 'week', 'month', 'year')

BADGE_STYLES = {
    'gold': {'emoji': '🥇', 'name': 'Gold', 'color': '#FFD700'},
    'silver': {'emoji': '🥈', 'name': 'Silver', 'color': '#C0C0C0'},
    'bronze': {'emoji': '🥉', 'name': 'Bronze', 'color': '#CD7F32'},
    'top10': {'emoji': '🏆', 'name': 'Top 10', 'color': '#4CAF50'},
    'top50': {'emoji': '⭐', 'name': 'Top 50', 'color': '#2196F3'},
    'ranked': {'emoji': '🎖️', 'name': 'Ranked', 'color': '#9E9E9E'},
}


def badge_for_rank(rank):
    """Badge tier for a 1-based rank."""
    if rank == 1:
        return 'gold'
    if rank == 2:
        return 'silver'
    if rank == 3:
        return 'bronze'
    if rank <= 10:
        return 'top10'
    if rank <= 50:
        return 'top50'
    return 'ranked'


def window_bounds(period, now, tz_name=None):
    """[start, end] of a leaderboard period ending at `now` (naive UTC).

    `today` starts at local midnight; the other periods reach back 7 days,
    one calendar month or one calendar year.
    """
    if period == 'today':
        start = local_midnight(now, tz_name)
    elif period == 'week':
        start = subtract_days(now, 7)
    elif period == 'month':
        start = subtract_months(now, 1)
    elif period == 'year':
        start = subtract_months(now, 12)
    else:
        raise InvalidQuery(f"Invalid period {period!r}. Use: {', '.join(PERIODS)}")
    return start, now


@dataclass
class Standing:
    participant: Participant
    rank: int
    badge: str

    def to_dict(self):
        data = self.participant.to_dict()
        data.update(rank=self.rank, badge=self.badge, badgeStyle=BADGE_STYLES[self.badge])
        return data


@dataclass
class WindowedStanding(Standing):
    period_points: int = 0
    period_claims: int = 0

    def to_dict(self):
        data = super().to_dict()
        data.update(periodPoints=self.period_points, periodClaims=self.period_claims)
        return data


@dataclass
class WindowedLeaderboard:
    period: str
    start: datetime
    end: datetime
    entries: List[WindowedStanding]

    def period_dict(self):
        return {'name': self.period, 'start': isoformat(self.start), 'end': isoformat(self.end)}


def global_ordering():
    """Order of the full leaderboard: points desc, earlier registration first."""
    return (
        Participant.total_points.desc(),
        Participant.created_at.asc(),
        Participant.id.asc(),
    )


class RankingEngine:
    """Read-only; never mutates either store."""

    def __init__(self, ledger, clock=None, tz_name=None):
        self.ledger = ledger
        self.clock = clock or utcnow
        self.tz_name = tz_name

    def global_leaderboard(self, limit=10, deadline=None):
        _check_limit(limit)
        deadline = ensure(deadline, 'global leaderboard')
        stmt = (
            select(Participant)
            .where(Participant.is_active.is_(True))
            .order_by(*global_ordering())
            .limit(limit)
        )
        with store_errors('global leaderboard'):
            participants = list(db.session.scalars(stmt))
        deadline.check()

        standings = []
        for index, participant in enumerate(participants):
            rank = index + 1
            standings.append(Standing(participant, rank, badge_for_rank(rank)))
        deadline.check()
        return standings

    def windowed_leaderboard(self, period, limit=10, now=None, deadline=None):
        _check_limit(limit)
        deadline = ensure(deadline, f'{period} leaderboard')
        start, end = window_bounds(period, now or self.clock(), self.tz_name)

        totals = self.ledger.window_totals(start, end, limit=limit)
        deadline.check()

        entries = []
        for index, total in enumerate(totals):
            rank = index + 1
            entries.append(WindowedStanding(
                participant=total.participant,
                rank=rank,
                badge=badge_for_rank(rank),
                period_points=total.period_points,
                period_claims=total.period_claims,
            ))
        deadline.check()
        log.debug("%s leaderboard: %d entries in [%s, %s]", period, len(entries), start, end)
        return WindowedLeaderboard(period, start, end, entries)


def _check_limit(limit):
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidQuery("limit must be a positive integer")
