# app.py
# Основной файл Flask-приложения с использованием паттерна Application Factory

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import Config
from exceptions import LedgerError, TransientStoreFailure
from extensions import db, migrate, core
from logger import setup_logger

# Важно импортировать модели здесь, чтобы Alembic (Migrate) мог их видеть
from models import Participant, Claim


def create_app(config_class=Config, rng=None, clock=None):
    # Создаем экземпляр приложения
    app = Flask(__name__)
    app.config.from_object(config_class)

    setup_logger(level=app.config['LOG_LEVEL'], log_file=app.config.get('LOG_FILE'))

    # --- Инициализируем расширения С ПРИЛОЖЕНИЕМ ---
    db.init_app(app)
    migrate.init_app(app, db)
    core.init_app(app, rng=rng, clock=clock)

    # --- Регистрируем наши Blueprints (маршруты) ---
    from routes.participants import participants_bp
    from routes.claims import claims_bp
    from routes.leaderboard import leaderboard_bp
    from routes.admin import admin_bp

    app.register_blueprint(participants_bp)
    app.register_blueprint(claims_bp)
    app.register_blueprint(leaderboard_bp)
    app.register_blueprint(admin_bp)

    register_error_handlers(app)
    register_commands(app)

    return app


def register_error_handlers(app):

    @app.errorhandler(LedgerError)
    def handle_ledger_error(error):
        response = jsonify(error.to_dict())
        response.status_code = error.status_code
        if isinstance(error, TransientStoreFailure):
            response.headers['Retry-After'] = str(error.retry_after)
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        response = jsonify({
            'message': error.description,
            'error': error.name.lower().replace(' ', '_'),
        })
        response.status_code = error.code
        return response


def register_commands(app):

    @app.cli.command('init-db')
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo('Database initialized.')

    @app.cli.command('reconcile')
    @click.argument('participant_id', type=int, required=False)
    def reconcile(participant_id):
        """Rebuild participant totals from the claim ledger."""
        aggregates = core.state.aggregates
        if participant_id is not None:
            result = aggregates.reconcile(participant_id)
            status = 'repaired' if result.repaired else 'consistent'
            click.echo(
                f'Participant {participant_id}: {status}, '
                f'totalPoints={result.total_points} claimsCount={result.claims_count}'
            )
            return
        repaired = aggregates.reconcile_all()
        for result in repaired:
            click.echo(f'Repaired: {result.drift}')
        click.echo(f'{len(repaired)} participant(s) repaired.')
