# claims.py
# Начисление и отзыв очков: единственная точка изменения леджера и агрегатов

import random
from contextlib import contextmanager

from clock import utcnow
from exceptions import InvalidAward, UnknownParticipant
from extensions import db, store_errors
from ledger import validate_award, validate_description
from logger import get_logger
from models import CLAIM_TYPES, MAX_POINTS, MIN_POINTS

log = get_logger('claims')


@contextmanager
def claim_transaction(operation):
    """Запись в леджер и сдвиг агрегата фиксируются одним коммитом."""
    try:
        with store_errors(operation):
            yield
            db.session.commit()
    except Exception:
        db.session.rollback()
        raise


class ClaimProcessor:
    """Записывает заявку в леджер и сдвигает итоги участника.

    Обе записи идут в одной транзакции: сверка, запущенная параллельно,
    видит либо обе, либо ни одной.
    """

    def __init__(self, ledger, aggregates, directory, rng=None, clock=None):
        self.ledger = ledger
        self.aggregates = aggregates
        self.directory = directory
        self.rng = rng or random.SystemRandom()
        self.clock = clock or utcnow

    def draw_points(self):
        return self.rng.randint(MIN_POINTS, MAX_POINTS)

    def submit(self, participant_id, claim_type='random', points=None,
               description=None, metadata=None):
        """Начисляет очки активному участнику.

        Для random без явных очков они тянутся из {1..10}, остальные типы
        обязаны передавать очки.

        Raises:
            InvalidAward: неверные очки, тип или описание, ничего не записано
            UnknownParticipant: участник не найден или неактивен, ничего не записано
            TransientStoreFailure: база недоступна, ничего не записано
        """
        if claim_type not in CLAIM_TYPES:
            raise InvalidAward(
                f"Invalid claim type {claim_type!r}. Use: {', '.join(CLAIM_TYPES)}"
            )
        if points is None:
            if claim_type != 'random':
                raise InvalidAward(f"Points are required for {claim_type} claims")
            points = self.draw_points()
        validate_award(points, claim_type)
        validate_description(description)

        if not self.directory.is_active(participant_id):
            raise UnknownParticipant(participant_id)

        now = self.clock()
        with claim_transaction('submit claim'):
            claim = self.ledger.append(
                participant_id,
                points,
                claim_type=claim_type,
                description=description,
                created_at=now,
                metadata=metadata,
                commit=False,
            )
            self.aggregates.apply(participant_id, points, 1, touched_at=now, commit=False)
        log.info(
            "Claim %s: +%d points (%s) for participant %s",
            claim.id, points, claim_type, participant_id,
        )
        return claim

    def revoke(self, claim_id):
        """Инвалидирует заявку и ровно один раз вычитает ее из итогов.

        Отзыв уже невалидной заявки возвращает ее без изменений.

        Raises:
            NotFound: заявки нет
        """
        now = self.clock()
        with claim_transaction('revoke claim'):
            result = self.ledger.invalidate(claim_id, at=now, commit=False)
            claim = result.claim
            if result.changed:
                self.aggregates.apply(
                    claim.participant_id, -claim.points, -1, touched_at=now, commit=False
                )

        if not result.changed:
            log.info("Claim %s already invalid, nothing to revoke", claim_id)
            return claim
        log.info(
            "Claim %s revoked: -%d points for participant %s",
            claim.id, claim.points, claim.participant_id,
        )
        return claim
