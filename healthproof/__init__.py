import atexit
import logging
from flask import Flask
from config import Config


def create_app(config_class=None, dossier_queue=None):
    app = Flask(__name__)
    app.config.from_object(config_class or Config)

    # Fix Railway's DATABASE_URL (postgres:// -> postgresql://)
    db_uri = app.config.get('SQLALCHEMY_DATABASE_URI', '')
    if db_uri.startswith('postgres://'):
        app.config['SQLALCHEMY_DATABASE_URI'] = db_uri.replace('postgres://', 'postgresql://', 1)

    # Logging
    logging.basicConfig(
        level=getattr(logging, app.config.get('LOG_LEVEL', 'INFO')),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )

    # Extensions
    from healthproof.extensions import db, migrate, scheduler, limiter
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # Request-scoped auth context, error handlers, security headers
    from healthproof.auth import init_auth
    from healthproof.errors import register_error_handlers
    from healthproof.security import register_security_headers
    init_auth(app)
    register_error_handlers(app)
    register_security_headers(app)

    # Register blueprints
    from healthproof.routes import register_blueprints
    register_blueprints(app)

    # Dossier queue is injected; default runs jobs on the app scheduler
    if dossier_queue is None:
        from healthproof.jobs.dossier import SchedulerDossierQueue
        dossier_queue = SchedulerDossierQueue(scheduler, app)
    app.extensions['dossier_queue'] = dossier_queue

    # Scheduler
    if app.config.get('SCHEDULER_ENABLED') and not app.config.get('TESTING'):
        scheduler.init_app(app)
        with app.app_context():
            from healthproof.jobs.scheduled import register_jobs
            register_jobs(scheduler, app)
        scheduler.start()
        atexit.register(dossier_queue.shutdown)

    return app
