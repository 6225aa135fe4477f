import time
from datetime import datetime, timezone
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from healthproof.extensions import db

health_bp = Blueprint('health', __name__)


def _db_ok():
    try:
        db.session.execute(text('SELECT 1'))
        return True
    except Exception:
        db.session.rollback()
        return False


def check_readiness(config):
    """Configuration problems: errors block readiness, warnings do not."""
    errors, warnings = [], []
    if not config.get('SQLALCHEMY_DATABASE_URI'):
        errors.append('DATABASE_URL not set')
    if config.get('SECRET_KEY') in (None, '', 'dev-secret-change-me'):
        warnings.append('SECRET_KEY is the development default')
    if config.get('RATELIMIT_STORAGE_URI', 'memory://').startswith('memory://'):
        warnings.append('RATELIMIT_STORAGE_URI is in-memory; limits are per process')
    if not config.get('SCHEDULER_ENABLED'):
        warnings.append('Scheduler disabled; dossier jobs and vote reveals will not run')
    return {'ready': not errors, 'errors': errors, 'warnings': warnings}


@health_bp.route('/health')
def health():
    return jsonify({'status': 'ok'})


@health_bp.route('/ready')
def ready():
    db_ok = _db_ok()
    status = 'ready' if db_ok else 'not_ready'
    code = 200 if db_ok else 503
    return jsonify({'status': status, 'db': db_ok}), code


@health_bp.route('/api/health')
def api_health():
    start = time.monotonic()
    readiness = check_readiness(current_app.config)
    db_ok = _db_ok()
    healthy = readiness['ready'] and db_ok

    return jsonify({
        'status': 'healthy' if healthy else 'degraded',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'latencyMs': int((time.monotonic() - start) * 1000),
        'services': {'database': 'connected' if db_ok else 'unreachable'},
        'env': readiness,
    }), 200 if healthy else 503
