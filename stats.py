# stats.py
# Сводная статистика для дашборда (только чтение)

from sqlalchemy import func, select

from clock import local_midnight, utcnow
from extensions import db, store_errors
from models import Claim, Participant


def _avg(value):
    return round(float(value), 2) if value is not None else 0


class StatsReader:

    def __init__(self, clock=None, tz_name=None):
        self.clock = clock or utcnow
        self.tz_name = tz_name

    def today(self):
        now = self.clock()
        start = local_midnight(now, self.tz_name)
        stmt = select(
            func.coalesce(func.sum(Claim.points), 0),
            func.count(Claim.id),
            func.avg(Claim.points),
        ).where(Claim.is_valid.is_(True), Claim.created_at >= start, Claim.created_at <= now)
        with store_errors('today stats'):
            total_points, total_claims, average = db.session.execute(stmt).one()
        return {
            'totalPoints': int(total_points),
            'totalClaims': int(total_claims),
            'averagePoints': _avg(average),
        }

    def claims_summary(self):
        valid = Claim.is_valid.is_(True)
        summary_stmt = select(
            func.count(Claim.id),
            func.coalesce(func.sum(Claim.points), 0),
            func.avg(Claim.points),
            func.min(Claim.points),
            func.max(Claim.points),
        ).where(valid)
        distribution_stmt = (
            select(Claim.points, func.count(Claim.id))
            .where(valid)
            .group_by(Claim.points)
            .order_by(Claim.points)
        )
        with store_errors('claim summary'):
            count, total, average, minimum, maximum = db.session.execute(summary_stmt).one()
            distribution = db.session.execute(distribution_stmt).all()
        return {
            'summary': {
                'totalClaims': int(count),
                'totalPoints': int(total),
                'averagePoints': _avg(average),
                'minPoints': minimum or 0,
                'maxPoints': maximum or 0,
            },
            'pointsDistribution': [
                {'points': points, 'count': int(n)} for points, n in distribution
            ],
        }

    def participants_summary(self):
        stmt = select(
            func.count(Participant.id),
            func.coalesce(func.sum(Participant.total_points), 0),
            func.coalesce(func.sum(Participant.claims_count), 0),
            func.avg(Participant.total_points),
            func.max(Participant.total_points),
        ).where(Participant.is_active.is_(True))
        with store_errors('participant summary'):
            users, points, claims, average, maximum = db.session.execute(stmt).one()
        return {
            'totalUsers': int(users),
            'totalPoints': int(points),
            'totalClaims': int(claims),
            'averagePoints': _avg(average),
            'maxPoints': maximum or 0,
        }

    def leaderboard_stats(self):
        users = self.participants_summary()
        claims = self.claims_summary()['summary']
        return {
            'users': {
                'totalUsers': users['totalUsers'],
                'totalPoints': users['totalPoints'],
                'averagePoints': users['averagePoints'],
                'maxPoints': users['maxPoints'],
            },
            'claims': {
                'totalClaims': claims['totalClaims'],
                'totalPointsClaimed': claims['totalPoints'],
                'averageClaimPoints': claims['averagePoints'],
            },
        }
