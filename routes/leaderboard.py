# routes/leaderboard.py
# Маршруты лидерборда: глобальный, за период и позиция участника

from flask import Blueprint, jsonify

from clock import isoformat
from extensions import core
from routes.common import query_bool, query_limit, request_deadline

leaderboard_bp = Blueprint('leaderboard', __name__, url_prefix='/api/leaderboard')


def _meta(shown, limit):
    return {
        'totalShown': shown,
        'requestedLimit': limit,
        'lastUpdated': isoformat(core.state.ranking.clock()),
    }


@leaderboard_bp.route('', methods=['GET'])
def global_leaderboard():
    state = core.state
    limit = query_limit(10)
    standings = state.ranking.global_leaderboard(
        limit, deadline=request_deadline('global leaderboard')
    )
    stats = state.stats.leaderboard_stats() if query_bool('includeStats') else None
    return jsonify({
        'leaderboard': [s.to_dict() for s in standings],
        'stats': stats,
        'meta': _meta(len(standings), limit),
    })


@leaderboard_bp.route('/user/<int:participant_id>/position', methods=['GET'])
def participant_position(participant_id):
    position = core.state.positions.resolve(
        participant_id, deadline=request_deadline('position')
    )
    return jsonify(position.to_dict())


@leaderboard_bp.route('/top/<period>', methods=['GET'])
def windowed_leaderboard(period):
    limit = query_limit(10)
    board = core.state.ranking.windowed_leaderboard(
        period, limit, deadline=request_deadline(f'{period} leaderboard')
    )
    return jsonify({
        'leaderboard': [e.to_dict() for e in board.entries],
        'period': board.period_dict(),
        'meta': _meta(len(board.entries), limit),
    })
