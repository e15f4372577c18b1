# routes/participants.py
# Справочник участников: регистрация и деактивация (профиль вне ядра)

from flask import Blueprint, jsonify, request
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from exceptions import DuplicateParticipant, InvalidQuery
from extensions import core, db, store_errors
from models import Participant
from routes.common import pagination, query_int, query_limit

participants_bp = Blueprint('participants', __name__, url_prefix='/api/users')

SORT_OPTIONS = {
    'name': Participant.name.asc(),
    'totalPoints': Participant.total_points.desc(),
    'createdAt': Participant.created_at.asc(),
}


@participants_bp.route('', methods=['GET'])
def list_participants():
    page = query_int('page', 1)
    limit = query_limit(50)
    search = request.args.get('search', '').strip()
    sort_by = request.args.get('sortBy', 'name')
    if sort_by not in SORT_OPTIONS:
        raise InvalidQuery(f"sortBy must be one of: {', '.join(SORT_OPTIONS)}")

    query = Participant.query.filter(Participant.is_active.is_(True))
    if search:
        pattern = f'%{search}%'
        query = query.filter(or_(Participant.name.ilike(pattern), Participant.email.ilike(pattern)))

    with store_errors('list participants'):
        total = query.count()
        users = (
            query.order_by(SORT_OPTIONS[sort_by], Participant.id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
    return jsonify({
        'users': [u.to_dict() for u in users],
        'pagination': pagination(page, limit, total),
    })


@participants_bp.route('/<int:participant_id>', methods=['GET'])
def get_participant(participant_id):
    return jsonify(core.state.directory.require(participant_id).to_dict())


@participants_bp.route('', methods=['POST'])
def create_participant():
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    email = (data.get('email') or '').strip().lower()
    if not name or not email:
        raise InvalidQuery('Name and email are required')

    if Participant.query.filter_by(email=email).first():
        raise DuplicateParticipant('User with this email already exists')

    user = Participant(name=name, email=email)
    with store_errors('create participant'):
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise DuplicateParticipant('User with this email already exists')

    return jsonify({'message': 'User created successfully', 'user': user.to_dict()}), 201


@participants_bp.route('/<int:participant_id>', methods=['DELETE'])
def deactivate_participant(participant_id):
    user = core.state.directory.require(participant_id)
    with store_errors('deactivate participant'):
        user.is_active = False
        db.session.commit()
    return jsonify({'message': 'User deactivated successfully', 'user': user.to_dict()})


@participants_bp.route('/stats/summary', methods=['GET'])
def participants_summary():
    return jsonify(core.state.stats.participants_summary())
