# routes/claims.py
# Маршруты для начисления и отзыва очков

from flask import Blueprint, current_app, jsonify, request

from exceptions import InvalidAward
from extensions import core
from routes.common import (
    pagination, query_datetime, query_int, query_limit, request_deadline, request_metadata,
)

claims_bp = Blueprint('claims', __name__, url_prefix='/api/claims')


def _participant_id(value):
    if value is None:
        raise InvalidAward('User ID is required')
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise InvalidAward('Invalid user ID')
    if isinstance(value, str):
        # Только ASCII-цифры: int() не принимает, например, '²'
        digits = value.strip()
        if not (digits.isascii() and digits.isdecimal()):
            raise InvalidAward('Invalid user ID')
        return int(digits)
    return value


@claims_bp.route('', methods=['POST'])
def submit_claim():
    data = request.get_json(silent=True) or {}
    claim = core.state.processor.submit(
        _participant_id(data.get('userId')),
        claim_type=data.get('claimType') or 'random',
        points=data.get('points'),
        description=data.get('description'),
        metadata=request_metadata(),
    )
    return jsonify({
        'message': 'Points claimed successfully',
        'claim': claim.to_dict(),
        'user': claim.participant.to_dict(),
    }), 201


@claims_bp.route('/<int:claim_id>', methods=['DELETE'])
def revoke_claim(claim_id):
    claim = core.state.processor.revoke(claim_id)
    return jsonify({
        'message': 'Claim invalidated successfully',
        'claim': claim.to_dict(include_participant=True),
    })


@claims_bp.route('', methods=['GET'])
def list_claims():
    page = query_int('page', 1)
    limit = query_limit(20)
    claims, total = core.state.ledger.search(
        participant_id=request.args.get('userId', type=int),
        claim_type=request.args.get('claimType') or None,
        start=query_datetime('startDate'),
        end=query_datetime('endDate'),
        sort_by=request.args.get('sortBy', 'createdAt'),
        sort_order=request.args.get('sortOrder', 'desc'),
        page=page,
        limit=limit,
    )
    return jsonify({
        'claims': [c.to_dict(include_participant=True) for c in claims],
        'pagination': pagination(page, limit, total),
    })


@claims_bp.route('/user/<int:participant_id>', methods=['GET'])
def participant_history(participant_id):
    state = core.state
    limit = query_limit(current_app.config['HISTORY_DEFAULT_LIMIT'])
    participant = state.directory.require(participant_id)
    history = state.ledger.history(participant_id, limit, deadline=request_deadline('claim history'))
    # Материализуем целиком: частичный результат не возвращаем
    claims = [c.to_dict() for c in history]
    return jsonify({'user': participant.to_dict(), 'claims': claims})


@claims_bp.route('/recent', methods=['GET'])
def recent_claims():
    claims = core.state.ledger.recent(query_limit(20))
    return jsonify({
        'claims': [c.to_dict(include_participant=True) for c in claims],
        'count': len(claims),
    })


@claims_bp.route('/stats/today', methods=['GET'])
def today_stats():
    return jsonify(core.state.stats.today())


@claims_bp.route('/stats/summary', methods=['GET'])
def claims_summary():
    return jsonify(core.state.stats.claims_summary())
