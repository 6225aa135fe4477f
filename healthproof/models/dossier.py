from healthproof.extensions import db
from healthproof.utils.serialization import iso
from sqlalchemy import func

JOB_STATUSES = ('QUEUED', 'RUNNING', 'SUCCEEDED', 'FAILED')
IN_FLIGHT_STATUSES = ('QUEUED', 'RUNNING')


class DossierJob(db.Model):
    __tablename__ = 'dossier_jobs'

    id = db.Column(db.Integer, primary_key=True)
    claim_id = db.Column(db.Integer, db.ForeignKey('claims.id', ondelete='CASCADE'), nullable=False)
    status = db.Column(db.String(16), nullable=False, default='QUEUED')
    progress = db.Column(db.Integer, nullable=False, default=0)
    error = db.Column(db.String(1024))
    triggered_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    started_at = db.Column(db.DateTime(timezone=True))
    finished_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    claim = db.relationship('Claim', back_populates='dossier_jobs')

    __table_args__ = (
        db.Index('ix_dossier_jobs_claim_status', 'claim_id', 'status'),
    )

    def to_dict(self):
        return {
            'jobId': self.id,
            'status': self.status,
            'progress': self.progress,
            'error': self.error,
            'startedAt': iso(self.started_at),
            'finishedAt': iso(self.finished_at),
            'createdAt': iso(self.created_at),
        }
