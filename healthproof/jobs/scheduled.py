import logging

logger = logging.getLogger(__name__)


def _reveal_votes_job(app):
    with app.app_context():
        from healthproof.services.vote_service import VoteService
        count = VoteService().reveal_due_votes()
        logger.info(f"[Job] Vote reveal: {count} votes revealed")


def _reconcile_markets_job(app):
    with app.app_context():
        logger.info("[Job] Market counter reconciliation")
        from healthproof.services.vote_service import VoteService
        drifted = VoteService().reconcile_all()
        if drifted:
            logger.warning(f"[Job] Repaired vote counters on markets: {drifted}")


def _purge_sessions_job(app):
    with app.app_context():
        from healthproof.services.auth_service import AuthService
        count = AuthService().purge_expired_sessions()
        logger.info(f"[Job] Purged {count} expired sessions")


def _upsert_job(scheduler, **kwargs):
    scheduler.add_job(replace_existing=True, **kwargs)


def register_jobs(scheduler, app):
    """Register all scheduled jobs."""
    _upsert_job(
        scheduler,
        id='reveal_votes',
        func=_reveal_votes_job,
        trigger='interval',
        args=[app],
        minutes=app.config.get('REVEAL_INTERVAL_MIN', 5),
        misfire_grace_time=300,
        coalesce=True,
        max_instances=1,
    )
    _upsert_job(
        scheduler,
        id='reconcile_markets',
        func=_reconcile_markets_job,
        trigger='cron',
        args=[app],
        hour=app.config.get('RECONCILE_HOUR_UTC', 3),
        timezone='UTC',
        misfire_grace_time=3600,
        coalesce=True,
        max_instances=1,
    )
    _upsert_job(
        scheduler,
        id='purge_sessions',
        func=_purge_sessions_job,
        trigger='cron',
        args=[app],
        hour=4,
        timezone='UTC',
        misfire_grace_time=3600,
        coalesce=True,
        max_instances=1,
    )

    logger.info("All scheduled jobs registered")
