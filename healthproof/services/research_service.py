import logging
from flask import current_app
from healthproof.errors import ErrorCode, ServiceError
from healthproof.extensions import db
from healthproof.models.claim import Claim
from healthproof.models.dossier import DossierJob, IN_FLIGHT_STATUSES

logger = logging.getLogger(__name__)

# (upper bound of progress, label)
STEP_LABELS = (
    (10, 'Queued'),
    (15, 'Loading claim'),
    (25, 'Searching papers'),
    (30, 'Deduplicating results'),
    (40, 'Storing papers'),
    (55, 'Generating embeddings'),
    (60, 'Finding relevant passages'),
    (85, 'Extracting evidence'),
    (95, 'Synthesizing verdict'),
    (100, 'Saving results'),
)


def step_label(progress):
    for bound, label in STEP_LABELS:
        if progress < bound:
            return label
    return 'Complete'


class ResearchService:
    def __init__(self, queue=None):
        self.queue = queue or current_app.extensions['dossier_queue']

    def trigger(self, claim_id, triggered_by):
        """Returns (job, created) or NOT_FOUND. An in-flight job is reused."""
        if not db.session.get(Claim, claim_id):
            return ServiceError(ErrorCode.NOT_FOUND, 'Claim not found')

        existing = DossierJob.query.filter(
            DossierJob.claim_id == claim_id,
            DossierJob.status.in_(IN_FLIGHT_STATUSES),
        ).order_by(DossierJob.created_at.desc()).first()
        if existing:
            return existing, False

        job = DossierJob(claim_id=claim_id, status='QUEUED', progress=0, triggered_by=triggered_by)
        db.session.add(job)
        db.session.commit()

        self.queue.enqueue(claim_id, triggered_by)
        logger.info(f"Dossier job {job.id} queued for claim {claim_id}")
        return job, True

    def status(self, claim_id):
        job = DossierJob.query.filter_by(claim_id=claim_id).order_by(
            DossierJob.created_at.desc(), DossierJob.id.desc()
        ).first()
        if not job:
            return {'status': 'NONE', 'progress': 0, 'message': 'No research has been started'}
        return {**job.to_dict(), 'stepLabel': step_label(job.progress)}
