# routes/admin.py
# Административная сверка агрегатов с леджером

from flask import Blueprint, jsonify

from extensions import core

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


@admin_bp.route('/reconcile/<int:participant_id>', methods=['POST'])
def reconcile_participant(participant_id):
    result = core.state.aggregates.reconcile(participant_id)
    return jsonify({'result': result.to_dict()})


@admin_bp.route('/reconcile', methods=['POST'])
def reconcile_all():
    repaired = core.state.aggregates.reconcile_all()
    return jsonify({
        'repaired': [r.to_dict() for r in repaired],
        'repairedCount': len(repaired),
    })
