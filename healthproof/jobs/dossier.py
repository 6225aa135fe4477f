import logging
from datetime import datetime, timezone
from apscheduler.jobstores.base import ConflictingIdError
from healthproof.extensions import db
from healthproof.models.claim import Claim
from healthproof.models.dossier import DossierJob
from healthproof.models.evidence import ClaimPaper

logger = logging.getLogger(__name__)


def dossier_job_id(claim_id):
    return f'dossier-{claim_id}'


class SchedulerDossierQueue:
    """
    Fire-and-forget dossier queue on the app's APScheduler instance.

    The scheduler job id is derived from the claim id, so a claim can have at
    most one dossier job waiting or running at a time.
    """

    def __init__(self, scheduler, app):
        self.scheduler = scheduler
        self.app = app

    def enqueue(self, claim_id, triggered_by):
        job_id = dossier_job_id(claim_id)
        if self.scheduler.get_job(job_id):
            logger.info(f"Dossier job {job_id} already in flight")
            return False
        if not self.scheduler.running:
            logger.warning(f"Scheduler not running; {job_id} will wait until it starts")
        try:
            self.scheduler.add_job(
                id=job_id,
                func=_dossier_job,
                trigger='date',
                run_date=datetime.now(timezone.utc),
                args=[self.app, claim_id, triggered_by],
                misfire_grace_time=3600,
            )
        except ConflictingIdError:
            logger.info(f"Dossier job {job_id} already in flight")
            return False
        return True

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)


def _set_progress(job, progress, **fields):
    job.progress = progress
    for name, value in fields.items():
        setattr(job, name, value)
    db.session.commit()


def process_dossier_job(claim_id):
    """
    Drive the latest queued DossierJob for a claim through RUNNING to
    SUCCEEDED or FAILED. Paper search and synthesis plug in between the
    progress checkpoints; what runs here is the bookkeeping around them.
    """
    job = DossierJob.query.filter_by(claim_id=claim_id, status='QUEUED').order_by(
        DossierJob.created_at.desc(), DossierJob.id.desc()
    ).first()
    if not job:
        logger.warning(f"[Dossier] No queued job for claim {claim_id}")
        return None

    _set_progress(job, 10, status='RUNNING', started_at=datetime.now(timezone.utc))
    try:
        claim = db.session.get(Claim, claim_id)
        if not claim:
            raise LookupError(f"Claim not found: {claim_id}")
        _set_progress(job, 15)

        processed = ClaimPaper.query.filter(
            ClaimPaper.claim_id == claim_id,
            ClaimPaper.ai_summary.isnot(None),
        ).count()
        logger.info(f"[Dossier] Claim {claim_id}: {processed} evidence links with summaries")
        _set_progress(job, 95)

        if claim.market:
            claim.market.last_dossier_at = datetime.now(timezone.utc)
        _set_progress(job, 100, status='SUCCEEDED', finished_at=datetime.now(timezone.utc))
    except Exception as e:
        db.session.rollback()
        logger.error(f"[Dossier] Job {job.id} failed for claim {claim_id}: {e}")
        _set_progress(
            job, job.progress, status='FAILED',
            finished_at=datetime.now(timezone.utc), error=str(e)[:1024],
        )
        raise

    logger.info(f"[Dossier] Job {job.id} completed for claim {claim_id}")
    return job


def _dossier_job(app, claim_id, triggered_by):
    with app.app_context():
        logger.info(f"[Job] Dossier for claim {claim_id} (triggered by {triggered_by})")
        process_dossier_job(claim_id)
