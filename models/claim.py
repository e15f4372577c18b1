# models/claim.py
# Заявка на очки: запись леджера, меняется только флаг валидности

from extensions import db
from sqlalchemy import CheckConstraint
from clock import isoformat, utcnow

CLAIM_TYPES = ('random', 'bonus', 'manual')
MIN_POINTS = 1
MAX_POINTS = 10


class Claim(db.Model):
    __tablename__ = 'claims'
    id = db.Column(db.Integer, primary_key=True)
    participant_id = db.Column(db.Integer, db.ForeignKey('participants.id'), nullable=False)
    points = db.Column(db.Integer, nullable=False)
    claim_type = db.Column(db.String(20), nullable=False, default='random')
    description = db.Column(db.String(200), nullable=True)

    # Единственный допустимый переход: True -> False
    is_valid = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    invalidated_at = db.Column(db.DateTime, nullable=True)

    # Метаданные запроса
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    source = db.Column(db.String(20), nullable=False, default='web')

    __table_args__ = (
        CheckConstraint(f"points BETWEEN {MIN_POINTS} AND {MAX_POINTS}", name="check_claim_points"),
        CheckConstraint("claim_type IN ('random', 'bonus', 'manual')", name="check_claim_type"),
        db.Index('ix_claims_participant_created', 'participant_id', 'created_at'),
    )

    def to_dict(self, include_participant=False):
        data = {
            'id': self.id,
            'userId': self.participant_id,
            'points': self.points,
            'claimType': self.claim_type,
            'description': self.description,
            'isValid': self.is_valid,
            'createdAt': isoformat(self.created_at),
            'invalidatedAt': isoformat(self.invalidated_at),
            'metadata': {
                'ipAddress': self.ip_address,
                'userAgent': self.user_agent,
                'source': self.source,
            },
        }
        if include_participant and self.participant is not None:
            data['user'] = {
                'id': self.participant.id,
                'name': self.participant.name,
                'email': self.participant.email,
                'avatar': self.participant.avatar,
            }
        return data
