# models/participant.py
# Участник и его производные итоги

from urllib.parse import quote

from extensions import db
from sqlalchemy import CheckConstraint
from clock import isoformat, utcnow


def default_avatar(context):
    name = context.get_current_parameters().get('name') or ''
    return f'https://ui-avatars.com/api/?name={quote(name)}&background=random&size=100'


class Participant(db.Model):
    __tablename__ = 'participants'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    # Email хранится в нижнем регистре, уникален и для неактивных
    email = db.Column(db.String(100), unique=True, nullable=False)
    avatar = db.Column(db.String(255), nullable=True, default=default_avatar)

    # Производные поля: меняются только через AggregateStore
    total_points = db.Column(db.Integer, nullable=False, default=0)
    claims_count = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    last_activity = db.Column(db.DateTime, nullable=False, default=utcnow)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    claims = db.relationship('Claim', backref='participant', lazy='dynamic')

    __table_args__ = (
        CheckConstraint("total_points >= 0", name="check_total_points"),
        CheckConstraint("claims_count >= 0", name="check_claims_count"),
        db.Index('ix_participants_ranking', 'is_active', 'total_points', 'created_at'),
    )

    @property
    def average_points(self):
        if not self.claims_count:
            return 0
        return round(self.total_points / self.claims_count, 2)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'avatar': self.avatar,
            'totalPoints': self.total_points,
            'claimsCount': self.claims_count,
            'averagePoints': self.average_points,
            'isActive': self.is_active,
            'lastActivity': isoformat(self.last_activity),
            'createdAt': isoformat(self.created_at),
        }
