# logic.py
# Агрегаты участников (total_points / claims_count) и их сверка с леджером

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, select, update

from clock import utcnow
from exceptions import AggregateInconsistency, NotFound
from extensions import db, store_errors
from logger import get_logger
from models import Claim, Participant

log = get_logger('aggregates')


@dataclass
class ReconcileResult:
    participant_id: int
    total_points: int
    claims_count: int
    drift: Optional[AggregateInconsistency] = None

    @property
    def repaired(self):
        return self.drift is not None

    def to_dict(self):
        return {
            'userId': self.participant_id,
            'totalPoints': self.total_points,
            'claimsCount': self.claims_count,
            'driftDetected': self.repaired,
            'detail': str(self.drift) if self.drift else None,
        }


def rebuild_statement(participant_id, touched_at=None):
    """UPDATE, выставляющий итоги участника из леджера одним выражением."""
    valid = (Claim.participant_id == participant_id, Claim.is_valid.is_(True))
    values = {
        'total_points': (
            select(func.coalesce(func.sum(Claim.points), 0)).where(*valid).scalar_subquery()
        ),
        'claims_count': select(func.count(Claim.id)).where(*valid).scalar_subquery(),
    }
    if touched_at is not None:
        values['last_activity'] = touched_at
    return (
        update(Participant)
        .where(Participant.id == participant_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )


class AggregateStore:
    """Материализованные итоги участника поверх леджера.

    Инкремент и декремент выполняются одним `UPDATE ... SET x = x + :delta`,
    поэтому параллельные изменения одного участника не теряются. Сверка
    пересчитывает итоги из леджера и безопасна в любой момент, в том числе
    параллельно с живыми заявками.
    """

    def apply(self, participant_id, points_delta, count_delta, touched_at=None, commit=True):
        """Атомарно сдвигает итоги участника.

        Декремент, который увел бы отставший агрегат ниже нуля, заменяется
        пересчетом из леджера в той же транзакции. С commit=False изменение
        остается в текущей транзакции вызывающего кода.
        """
        touched_at = touched_at or utcnow()
        stmt = (
            update(Participant)
            .where(
                Participant.id == participant_id,
                Participant.total_points + points_delta >= 0,
                Participant.claims_count + count_delta >= 0,
            )
            .values(
                total_points=Participant.total_points + points_delta,
                claims_count=Participant.claims_count + count_delta,
                last_activity=touched_at,
            )
            .execution_options(synchronize_session=False)
        )
        with store_errors('aggregate update'):
            if db.session.execute(stmt).rowcount != 1:
                rebuilt = db.session.execute(rebuild_statement(participant_id, touched_at))
                if rebuilt.rowcount != 1:
                    raise NotFound('Participant', participant_id)
                log.warning(
                    "Aggregate adjustment (%+d points, %+d claims) for participant %s "
                    "would go negative, rebuilt from the ledger",
                    points_delta, count_delta, participant_id,
                )
            if commit:
                db.session.commit()

    def reconcile(self, participant_id, touched_at=None):
        """Сбрасывает итоги в сумму и количество валидных заявок участника.

        Строка участника блокируется до пересчета, а сам пересчет выполняется
        одним UPDATE с подзапросами к леджеру, так что он не записывает
        значение, посчитанное по устаревшему чтению.
        """
        current = (
            select(Participant.total_points, Participant.claims_count)
            .where(Participant.id == participant_id)
        )
        with store_errors('reconcile'):
            stored = db.session.execute(current.with_for_update()).one_or_none()
            if stored is None:
                db.session.rollback()
                raise NotFound('Participant', participant_id)
            db.session.execute(rebuild_statement(participant_id, touched_at))
            db.session.commit()
            actual = db.session.execute(current).one()

        stored, actual = tuple(stored), tuple(actual)
        drift = None
        try:
            _verify(participant_id, stored, actual)
        except AggregateInconsistency as exc:
            log.warning("Repaired aggregate drift: %s", exc)
            drift = exc
        return ReconcileResult(participant_id, actual[0], actual[1], drift)

    def reconcile_all(self):
        """Сверяет всех участников, активных и нет. Возвращает только исправленных."""
        with store_errors('reconcile all'):
            participant_ids = list(db.session.scalars(select(Participant.id).order_by(Participant.id)))
        repaired = []
        for participant_id in participant_ids:
            result = self.reconcile(participant_id)
            if result.repaired:
                repaired.append(result)
        log.info("Reconciled %d participants, %d repaired", len(participant_ids), len(repaired))
        return repaired


def _verify(participant_id, stored, actual):
    if stored != actual:
        raise AggregateInconsistency(participant_id, stored, actual)
