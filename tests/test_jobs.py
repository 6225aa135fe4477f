import pytest
from datetime import datetime, timedelta, timezone
from apscheduler.jobstores.base import ConflictingIdError
from healthproof.extensions import db
from healthproof.jobs.dossier import SchedulerDossierQueue, dossier_job_id, process_dossier_job
from healthproof.jobs.scheduled import register_jobs, _purge_sessions_job, _reveal_votes_job
from healthproof.models.claim import ClaimVote, Market
from healthproof.models.dossier import DossierJob
from healthproof.models.user import UserSession
from healthproof.services.research_service import ResearchService, step_label


class FakeScheduler:
    def __init__(self, running=True):
        self.running = running
        self.jobs = {}

    def get_job(self, job_id):
        return self.jobs.get(job_id)

    def add_job(self, id, replace_existing=False, **kwargs):
        if id in self.jobs and not replace_existing:
            raise ConflictingIdError(id)
        self.jobs[id] = kwargs

    def shutdown(self, wait=True):
        self.running = False


class TestDossierQueue:
    def test_one_job_per_claim(self, app):
        scheduler = FakeScheduler()
        queue = SchedulerDossierQueue(scheduler, app)

        assert queue.enqueue(7, triggered_by=1) is True
        assert queue.enqueue(7, triggered_by=2) is False
        assert queue.enqueue(8, triggered_by=1) is True
        assert set(scheduler.jobs) == {dossier_job_id(7), dossier_job_id(8)}
        assert scheduler.jobs['dossier-7']['args'] == [app, 7, 1]

    def test_shutdown(self, app):
        scheduler = FakeScheduler()
        SchedulerDossierQueue(scheduler, app).shutdown()
        assert scheduler.running is False


class TestProcessDossierJob:
    def test_success(self, app, db_session, claim, admin):
        job, created = ResearchService().trigger(claim.id, admin.id)
        assert created

        process_dossier_job(claim.id)

        db.session.expire_all()
        job = db.session.get(DossierJob, job.id)
        assert job.status == 'SUCCEEDED'
        assert job.progress == 100
        assert job.started_at is not None and job.finished_at is not None
        assert Market.query.filter_by(claim_id=claim.id).one().last_dossier_at is not None

    def test_failure_marks_job(self, app, db_session):
        job = DossierJob(claim_id=4242, status='QUEUED', progress=0)
        db.session.add(job)
        db.session.commit()

        with pytest.raises(LookupError):
            process_dossier_job(4242)

        db.session.expire_all()
        job = db.session.get(DossierJob, job.id)
        assert job.status == 'FAILED'
        assert 'Claim not found' in job.error

    def test_nothing_queued(self, app, db_session, claim):
        assert process_dossier_job(claim.id) is None

    def test_step_labels(self):
        assert step_label(0) == 'Queued'
        assert step_label(50) == 'Generating embeddings'
        assert step_label(100) == 'Complete'


class TestScheduledJobs:
    def test_register_jobs(self, app):
        scheduler = FakeScheduler()
        register_jobs(scheduler, app)
        assert set(scheduler.jobs) == {'reveal_votes', 'reconcile_markets', 'purge_sessions'}
        assert scheduler.jobs['reveal_votes']['minutes'] == app.config['REVEAL_INTERVAL_MIN']

    def test_reveal_job(self, app, db_session, user, claim):
        past = datetime.now(timezone.utc) - timedelta(hours=7)
        db.session.add(ClaimVote(
            claim_id=claim.id, user_id=user.id, side='YES',
            voted_at=past, reveal_at=past + timedelta(hours=6),
        ))
        db.session.commit()

        _reveal_votes_job(app)

        db.session.expire_all()
        assert ClaimVote.query.one().revealed is True

    def test_purge_sessions_job(self, app, db_session, user, user_headers):
        db.session.add(UserSession(
            user_id=user.id, token_hash='0' * 64,
            expires_at=datetime.now(timezone.utc) - timedelta(days=1),
        ))
        db.session.commit()

        _purge_sessions_job(app)

        assert UserSession.query.count() == 1
