from healthproof.extensions import db
from healthproof.utils.serialization import iso
from sqlalchemy import false, func

DIFFICULTIES = ('EASY', 'MEDIUM', 'HARD')
MARKET_STATUSES = ('RESEARCHING', 'ACTIVE', 'RESOLVED')
VOTE_SIDES = ('YES', 'NO')


class Claim(db.Model):
    __tablename__ = 'claims'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(500), nullable=False)
    normalized_title = db.Column(db.String(500), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    difficulty = db.Column(db.String(16), nullable=False, default='MEDIUM')
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), onupdate=func.now())

    market = db.relationship(
        'Market', back_populates='claim', uselist=False,
        cascade='all, delete-orphan',
    )
    votes = db.relationship(
        'ClaimVote', back_populates='claim', lazy='dynamic', passive_deletes=True,
    )
    claim_papers = db.relationship(
        'ClaimPaper', back_populates='claim', lazy='dynamic', passive_deletes=True,
    )
    dossier_jobs = db.relationship(
        'DossierJob', back_populates='claim', lazy='dynamic', passive_deletes=True,
    )

    __table_args__ = (
        db.Index('ix_claims_created', 'created_at'),
        db.Index('ix_claims_difficulty', 'difficulty'),
    )

    def to_dict(self, include_market=True):
        data = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'difficulty': self.difficulty,
            'createdAt': iso(self.created_at),
        }
        if include_market:
            data['market'] = self.market.to_dict() if self.market else None
        return data


class Market(db.Model):
    __tablename__ = 'markets'

    id = db.Column(db.Integer, primary_key=True)
    claim_id = db.Column(db.Integer, db.ForeignKey('claims.id', ondelete='CASCADE'), nullable=False, unique=True)
    status = db.Column(db.String(16), nullable=False, default='ACTIVE')
    # Denormalized from claim_votes; VoteService keeps them in step
    yes_votes = db.Column(db.Integer, nullable=False, default=0, server_default='0')
    no_votes = db.Column(db.Integer, nullable=False, default=0, server_default='0')
    total_votes = db.Column(db.Integer, nullable=False, default=0, server_default='0')
    ai_verdict = db.Column(db.String(8), nullable=True)
    ai_confidence = db.Column(db.Float, nullable=True)
    consensus_summary = db.Column(db.Text, nullable=True)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_dossier_at = db.Column(db.DateTime(timezone=True), nullable=True)

    claim = db.relationship('Claim', back_populates='market')

    __table_args__ = (
        db.Index('ix_markets_status', 'status'),
        db.CheckConstraint('total_votes = yes_votes + no_votes', name='ck_markets_vote_totals'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'status': self.status,
            'yesVotes': self.yes_votes,
            'noVotes': self.no_votes,
            'totalVotes': self.total_votes,
            'aiVerdict': self.ai_verdict,
            'aiConfidence': self.ai_confidence,
            'consensusSummary': self.consensus_summary,
            'resolvedAt': iso(self.resolved_at),
            'lastDossierAt': iso(self.last_dossier_at),
        }


class ClaimVote(db.Model):
    __tablename__ = 'claim_votes'

    id = db.Column(db.Integer, primary_key=True)
    claim_id = db.Column(db.Integer, db.ForeignKey('claims.id', ondelete='CASCADE'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    side = db.Column(db.String(8), nullable=False)
    voted_at = db.Column(db.DateTime(timezone=True), nullable=False)
    reveal_at = db.Column(db.DateTime(timezone=True), nullable=False)
    revealed = db.Column(db.Boolean, nullable=False, default=False, server_default=false())

    claim = db.relationship('Claim', back_populates='votes')

    __table_args__ = (
        db.UniqueConstraint('claim_id', 'user_id', name='uq_claim_votes_claim_user'),
        db.Index('ix_claim_votes_reveal', 'revealed', 'reveal_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'side': self.side,
            'votedAt': iso(self.voted_at),
            'revealAt': iso(self.reveal_at),
            'revealed': self.revealed,
        }
