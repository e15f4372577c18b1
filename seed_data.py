import random
from datetime import timedelta

from app import create_app
from claims import ClaimProcessor
from clock import utcnow
from extensions import db, core
from models import Participant, Claim

DEMO_USERS = [
    ('Alice Johnson', 'alice@example.com'),
    ('Bob Smith', 'bob@example.com'),
    ('Carol White', 'carol@example.com'),
    ('David Brown', 'david@example.com'),
    ('Eve Davis', 'eve@example.com'),
    ('Frank Miller', 'frank@example.com'),
    ('Grace Wilson', 'grace@example.com'),
    ('Henry Moore', 'henry@example.com'),
]


class SeedClock:
    """Часы, которые сид переставляет на момент каждой исторической заявки."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def seed_history(users, rng, now):
    """Историю за последний год проводим через обычный процессор, по порядку времени."""
    history = []
    for user in users:
        for _ in range(rng.randint(3, 15)):
            moment = now - timedelta(days=rng.randint(0, 365), minutes=rng.randint(0, 1440))
            history.append((moment, user.id, rng.choice(['random', 'random', 'bonus'])))
    history.sort()

    seed_clock = SeedClock(now)
    state = core.state
    processor = ClaimProcessor(
        state.ledger, state.aggregates, state.directory, rng=rng, clock=seed_clock
    )
    for moment, user_id, claim_type in history:
        seed_clock.now = moment
        points = rng.randint(1, 10) if claim_type == 'bonus' else None
        processor.submit(user_id, claim_type, points, metadata={'source': 'seed'})
    return len(history)


if __name__ == '__main__':
    # Создаем экземпляр приложения, чтобы получить контекст
    app = create_app()

    with app.app_context():
        db.create_all()

        # --- 1. ОЧИСТКА ДАННЫХ ---
        print("Очистка старых данных...")
        # Идем в обратном порядке зависимостей
        db.session.query(Claim).delete()
        db.session.query(Participant).delete()
        db.session.commit()
        print("Очистка завершена.")

        # --- 2. СОЗДАНИЕ ДАННЫХ ---
        print("Добавление тестовых данных...")
        rng = random.Random(42)
        now = utcnow()

        try:
            users = []
            for index, (name, email) in enumerate(DEMO_USERS):
                user = Participant(name=name, email=email, created_at=now - timedelta(days=400 - index))
                users.append(user)
            db.session.add_all(users)
            db.session.commit()

            claims = seed_history(users, rng, now)

            print(f"Тестовые данные успешно добавлены! Участников: {len(users)}, заявок: {claims}")
        except Exception as e:
            db.session.rollback()
            print(f"Произошла ошибка при добавлении данных: {e}")
