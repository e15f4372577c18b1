# routes/common.py
# Общие помощники для JSON-маршрутов

from datetime import datetime

from flask import current_app, request

from clock import to_utc_naive
from deadline import Deadline
from exceptions import InvalidQuery


def query_int(name, default, minimum=1, maximum=None):
    raw = request.args.get(name)
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidQuery(f'{name} must be an integer')
    if value < minimum:
        raise InvalidQuery(f'{name} must be at least {minimum}')
    if maximum is not None and value > maximum:
        raise InvalidQuery(f'{name} cannot exceed {maximum}')
    return value


def query_limit(default):
    return query_int('limit', default, maximum=current_app.config['LEADERBOARD_MAX_LIMIT'])


def query_bool(name):
    return request.args.get(name, '').lower() in {'1', 'true', 'yes', 'on'}


def query_datetime(name):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return to_utc_naive(datetime.fromisoformat(raw))
    except ValueError:
        raise InvalidQuery(f'{name} must be an ISO 8601 date or datetime')


def request_deadline(operation):
    """Deadline from ?timeout=, never longer than QUERY_TIMEOUT_SECONDS."""
    cap = current_app.config['QUERY_TIMEOUT_SECONDS']
    timeout = request.args.get('timeout', type=float)
    seconds = min(timeout, cap) if timeout and timeout > 0 else cap
    return Deadline(seconds, operation)


def request_metadata():
    return {
        'ipAddress': request.remote_addr,
        'userAgent': request.headers.get('User-Agent'),
        'source': 'web',
    }


def pagination(page, limit, total):
    return {
        'currentPage': page,
        'totalPages': (total + limit - 1) // limit,
        'totalItems': total,
        'hasNextPage': page * limit < total,
        'hasPrevPage': page > 1,
    }
