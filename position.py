# position.py
# "Где я в рейтинге": ранг, перцентиль и соседи без построения всего лидерборда

import math
from dataclasses import dataclass, field
from typing import List

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.orm import aliased

from deadline import ensure
from exceptions import NotFound, TransientStoreFailure
from extensions import db, store_errors
from logger import get_logger
from models import Participant
from ranking import BADGE_STYLES, badge_for_rank, global_ordering

log = get_logger('position')


def percentile(rank, total):
    """round((1 - (rank - 1) / total) * 100), halves rounded up."""
    if total <= 0:
        return 0
    return math.floor((1 - (rank - 1) / total) * 100 + 0.5)


@dataclass
class Neighbor:
    participant: Participant
    rank: int
    badge: str
    is_current: bool

    def to_dict(self):
        data = self.participant.to_dict()
        data.update(
            rank=self.rank,
            badge=self.badge,
            badgeStyle=BADGE_STYLES[self.badge],
            isCurrentUser=self.is_current,
        )
        return data


@dataclass
class Position:
    participant: Participant
    # Competition rank: равные очки -> равный ранг
    rank: int
    percentile: int
    total_active: int
    neighborhood: List[Neighbor] = field(default_factory=list)

    @property
    def badge(self):
        return badge_for_rank(self.rank)

    def to_dict(self):
        user = self.participant.to_dict()
        user.update(rank=self.rank, badge=self.badge, badgeStyle=BADGE_STYLES[self.badge])
        return {
            'user': user,
            'rank': self.rank,
            'percentile': self.percentile,
            'neighborhood': [n.to_dict() for n in self.neighborhood],
            'meta': {'totalUsers': self.total_active, 'percentile': self.percentile},
        }


class PositionResolver:

    attempts = 3

    def __init__(self, neighborhood_size=2):
        self.neighborhood_size = neighborhood_size

    def resolve(self, participant_id, deadline=None):
        deadline = ensure(deadline, 'position')
        for _ in range(self.attempts):
            participant = self._active(participant_id)
            above, preceding, total = self._snapshot(participant_id)
            deadline.check()
            neighborhood = self._neighborhood(participant_id, preceding, total)
            deadline.check()

            # Между снимком и выборкой соседей участник мог сместиться
            if any(n.is_current for n in neighborhood):
                # Участник сам активен, поэтому total >= 1
                rank = above + 1
                return Position(
                    participant=participant,
                    rank=rank,
                    percentile=percentile(rank, total),
                    total_active=total,
                    neighborhood=neighborhood,
                )
            log.info("Participant %s moved during position lookup, re-reading", participant_id)

        raise TransientStoreFailure(
            f"Position of participant {participant_id} kept changing, retry later"
        )

    def _active(self, participant_id):
        with store_errors('position lookup'):
            participant = db.session.get(Participant, participant_id, populate_existing=True)
        if participant is None or not participant.is_active:
            raise NotFound('Active participant', participant_id)
        return participant

    def _snapshot(self, participant_id):
        """(strictly above, preceding in the full ordering, active total) from one SELECT.

        Rank and percentile must come from the same population count, so both
        counts are taken in a single statement.
        """
        target = aliased(Participant)
        points = select(target.total_points).where(target.id == participant_id).scalar_subquery()
        created = select(target.created_at).where(target.id == participant_id).scalar_subquery()

        strictly_above = Participant.total_points > points
        precedes = or_(
            strictly_above,
            and_(
                Participant.total_points == points,
                or_(
                    Participant.created_at < created,
                    and_(Participant.created_at == created, Participant.id < participant_id),
                ),
            ),
        )
        stmt = select(
            func.coalesce(func.sum(case((strictly_above, 1), else_=0)), 0),
            func.coalesce(func.sum(case((precedes, 1), else_=0)), 0),
            func.count(Participant.id),
        ).where(Participant.is_active.is_(True))

        with store_errors('position snapshot'):
            above, preceding, total = db.session.execute(stmt).one()
        return int(above), int(preceding), int(total)

    def _neighborhood(self, participant_id, index, total):
        size = self.neighborhood_size
        window = size * 2 + 1
        # У краев окно сдвигается, а не обрезается
        start = max(0, min(index - size, total - window))
        stmt = (
            select(Participant)
            .where(Participant.is_active.is_(True))
            .order_by(*global_ordering())
            .offset(start)
            .limit(window)
            .execution_options(populate_existing=True)
        )
        with store_errors('position neighborhood'):
            rows = list(db.session.scalars(stmt))

        neighbors = []
        for offset, participant in enumerate(rows):
            rank = start + offset + 1
            neighbors.append(Neighbor(
                participant=participant,
                rank=rank,
                badge=badge_for_rank(rank),
                is_current=participant.id == participant_id,
            ))
        return neighbors
