# ledger.py
# Леджер заявок: единственный источник правды о заработанных очках

from typing import NamedTuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from clock import utcnow
from deadline import ensure
from exceptions import InvalidAward, InvalidQuery, NotFound, UnknownParticipant
from extensions import db, store_errors
from logger import get_logger
from models import CLAIM_TYPES, MAX_POINTS, MIN_POINTS, Claim, Participant

log = get_logger('ledger')

SORT_FIELDS = {
    'createdAt': Claim.created_at,
    'points': Claim.points,
}

MAX_DESCRIPTION = 200


class InvalidationResult(NamedTuple):
    claim: Claim
    # True только для вызова, который действительно перевел claim в invalid
    changed: bool


class WindowTotal(NamedTuple):
    participant: Participant
    period_points: int
    period_claims: int


def validate_award(points, claim_type):
    """Отклоняет некорректную награду до любой записи в базу."""
    if claim_type not in CLAIM_TYPES:
        raise InvalidAward(
            f"Invalid claim type {claim_type!r}. Use: {', '.join(CLAIM_TYPES)}"
        )
    if isinstance(points, bool) or not isinstance(points, int):
        raise InvalidAward(f"Points must be an integer, got {points!r}")
    if not MIN_POINTS <= points <= MAX_POINTS:
        raise InvalidAward(f"Points must be between {MIN_POINTS} and {MAX_POINTS}")


def validate_description(description):
    if description is None:
        return
    if not isinstance(description, str):
        raise InvalidAward("Description must be a string")
    if len(description) > MAX_DESCRIPTION:
        raise InvalidAward(f"Description cannot exceed {MAX_DESCRIPTION} characters")


def default_description(claim_type, points):
    return f"{claim_type.capitalize()} {points} points claim"


class ClaimHistory:
    """Ленивая, конечная и перезапускаемая выборка валидных заявок участника.

    Каждая итерация заново выполняет запрос, новые заявки идут первыми.
    """

    def __init__(self, participant_id, limit, deadline=None):
        self.participant_id = participant_id
        self.limit = limit
        self.deadline = ensure(deadline, 'claim history')

    def _statement(self):
        return (
            select(Claim)
            .where(Claim.participant_id == self.participant_id, Claim.is_valid.is_(True))
            .order_by(Claim.created_at.desc(), Claim.id.desc())
            .limit(self.limit)
        )

    def __iter__(self):
        with store_errors('claim history'):
            for claim in db.session.scalars(self._statement()):
                self.deadline.check()
                yield claim


class LedgerStore:

    def __init__(self, directory):
        self.directory = directory

    # --- Запись ---

    def append(self, participant_id, points, claim_type='random', description=None,
               created_at=None, metadata=None, commit=True):
        """Добавляет новую неизменяемую заявку.

        С commit=False заявка только сбрасывается в текущую транзакцию,
        фиксирует ее вызывающий код вместе с агрегатом.

        Raises:
            InvalidAward: очки вне [1, 10], неизвестный тип или описание
            UnknownParticipant: участник не найден или неактивен
            TransientStoreFailure: база недоступна, ничего не записано
        """
        validate_award(points, claim_type)
        validate_description(description)

        if not self.directory.is_active(participant_id):
            raise UnknownParticipant(participant_id)

        metadata = metadata or {}
        claim = Claim(
            participant_id=participant_id,
            points=points,
            claim_type=claim_type,
            description=description or default_description(claim_type, points),
            is_valid=True,
            created_at=created_at or utcnow(),
            ip_address=metadata.get('ipAddress'),
            user_agent=(metadata.get('userAgent') or '')[:255] or None,
            source=metadata.get('source') or 'web',
        )
        with store_errors('append claim'):
            db.session.add(claim)
            try:
                if commit:
                    db.session.commit()
                else:
                    db.session.flush()
            except IntegrityError as exc:
                db.session.rollback()
                raise InvalidAward(f"Claim rejected by the store: {exc.orig}") from exc
        return claim

    def invalidate(self, claim_id, at=None, commit=True):
        """Переводит заявку в invalid. Повторный вызов вернет changed=False.

        Переход сделан условным UPDATE: из нескольких параллельных вызовов
        changed=True увидит ровно один.
        """
        claim = self.get(claim_id)
        with store_errors('invalidate claim'):
            result = db.session.execute(
                update(Claim)
                .where(Claim.id == claim_id, Claim.is_valid.is_(True))
                .values(is_valid=False, invalidated_at=at or utcnow())
                .execution_options(synchronize_session=False)
            )
            changed = result.rowcount == 1
            if commit:
                db.session.commit()
                db.session.refresh(claim)
        return InvalidationResult(claim, changed)

    # --- Чтение ---

    def get(self, claim_id):
        with store_errors('claim lookup'):
            claim = db.session.get(Claim, claim_id)
        if claim is None:
            raise NotFound('Claim', claim_id)
        return claim

    def history(self, participant_id, limit=50, deadline=None):
        if limit < 1:
            raise InvalidQuery("limit must be positive")
        self.directory.require(participant_id)
        return ClaimHistory(participant_id, limit, deadline)

    def in_window(self, start, end):
        """Все валидные заявки с created_at в [start, end], старые первыми."""
        stmt = (
            select(Claim)
            .where(*self._window_clause(start, end))
            .order_by(Claim.created_at.asc(), Claim.id.asc())
        )
        with store_errors('window scan'):
            yield from db.session.scalars(stmt)

    def window_totals(self, start, end, limit=None):
        """Суммы по in_window для активных участников.

        Порядок: очки за период, затем число заявок за период (по убыванию),
        оставшиеся ничьи по дате регистрации.
        """
        period_points = func.sum(Claim.points).label('period_points')
        period_claims = func.count(Claim.id).label('period_claims')
        stmt = (
            select(Participant, period_points, period_claims)
            .join(Claim, Claim.participant_id == Participant.id)
            .where(Participant.is_active.is_(True), *self._window_clause(start, end))
            .group_by(Participant.id)
            .order_by(
                period_points.desc(),
                period_claims.desc(),
                Participant.created_at.asc(),
                Participant.id.asc(),
            )
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        with store_errors('window aggregation'):
            rows = db.session.execute(stmt).all()
        return [WindowTotal(row[0], int(row[1]), int(row[2])) for row in rows]

    def ledger_totals(self, participant_id):
        """(сумма очков, количество) по валидным заявкам участника."""
        stmt = select(
            func.coalesce(func.sum(Claim.points), 0),
            func.count(Claim.id),
        ).where(Claim.participant_id == participant_id, Claim.is_valid.is_(True))
        with store_errors('ledger totals'):
            total, count = db.session.execute(stmt).one()
        return int(total), int(count)

    def recent(self, limit=20):
        stmt = (
            select(Claim)
            .where(Claim.is_valid.is_(True))
            .order_by(Claim.created_at.desc(), Claim.id.desc())
            .limit(limit)
        )
        with store_errors('recent claims'):
            return list(db.session.scalars(stmt))

    def search(self, participant_id=None, claim_type=None, start=None, end=None,
               sort_by='createdAt', sort_order='desc', page=1, limit=20):
        """Фильтр и пагинация по валидным заявкам. Возвращает (claims, total)."""
        if sort_by not in SORT_FIELDS:
            raise InvalidQuery(f"sortBy must be one of: {', '.join(SORT_FIELDS)}")
        if sort_order not in ('asc', 'desc'):
            raise InvalidQuery("sortOrder must be 'asc' or 'desc'")
        if claim_type is not None and claim_type not in CLAIM_TYPES:
            raise InvalidQuery(f"claimType must be one of: {', '.join(CLAIM_TYPES)}")
        if page < 1 or limit < 1:
            raise InvalidQuery("page and limit must be positive")

        conditions = [Claim.is_valid.is_(True)]
        if participant_id is not None:
            conditions.append(Claim.participant_id == participant_id)
        if claim_type is not None:
            conditions.append(Claim.claim_type == claim_type)
        if start is not None:
            conditions.append(Claim.created_at >= start)
        if end is not None:
            conditions.append(Claim.created_at <= end)

        column = SORT_FIELDS[sort_by]
        ordering = column.desc() if sort_order == 'desc' else column.asc()
        stmt = (
            select(Claim)
            .where(*conditions)
            .order_by(ordering, Claim.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        count_stmt = select(func.count(Claim.id)).where(*conditions)
        with store_errors('claim search'):
            claims = list(db.session.scalars(stmt))
            total = db.session.scalar(count_stmt)
        return claims, int(total or 0)

    @staticmethod
    def _window_clause(start, end):
        return (
            Claim.is_valid.is_(True),
            Claim.created_at >= start,
            Claim.created_at <= end,
        )
