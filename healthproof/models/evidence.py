from healthproof.extensions import db
from healthproof.utils.serialization import iso
from sqlalchemy import func

STANCES = ('SUPPORTS', 'REFUTES', 'NEUTRAL')


class Paper(db.Model):
    __tablename__ = 'papers'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.Text, nullable=False)
    doi = db.Column(db.String(256), unique=True)
    pmid = db.Column(db.String(32), unique=True)
    arxiv_id = db.Column(db.String(64), unique=True)
    journal = db.Column(db.String(512))
    published_year = db.Column(db.Integer)
    authors = db.Column(db.JSON)
    full_text_url = db.Column(db.String(2048))
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    def to_summary(self):
        return {
            'title': self.title,
            'journal': self.journal,
            'publishedYear': self.published_year,
            'authors': self.authors or [],
        }


class ClaimPaper(db.Model):
    __tablename__ = 'claim_papers'

    id = db.Column(db.Integer, primary_key=True)
    claim_id = db.Column(db.Integer, db.ForeignKey('claims.id', ondelete='CASCADE'), nullable=False)
    paper_id = db.Column(db.Integer, db.ForeignKey('papers.id', ondelete='CASCADE'), nullable=False)
    stance = db.Column(db.String(16), nullable=True)
    study_type = db.Column(db.String(64))
    ai_summary = db.Column(db.Text)
    abstract_snippet = db.Column(db.Text)
    sample_size = db.Column(db.Integer)
    confidence_score = db.Column(db.Float)
    extraction_version = db.Column(db.String(32))
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    claim = db.relationship('Claim', back_populates='claim_papers')
    paper = db.relationship('Paper')

    __table_args__ = (
        db.UniqueConstraint('claim_id', 'paper_id', name='uq_claim_papers_claim_paper'),
        db.Index('ix_claim_papers_claim_stance', 'claim_id', 'stance'),
        db.Index('ix_claim_papers_claim_confidence', 'claim_id', 'confidence_score'),
    )

    def to_card(self):
        """Evidence card as shown on the claim page."""
        return {
            'id': self.id,
            'stance': self.stance,
            'aiSummary': self.ai_summary,
            'studyType': self.study_type,
            'sampleSize': self.sample_size,
            'paper': self.paper.to_summary() if self.paper else None,
        }

    def to_evidence(self):
        paper = self.paper
        return {
            'id': self.id,
            'paperId': paper.id,
            'paperTitle': paper.title,
            'doi': paper.doi,
            'pmid': paper.pmid,
            'arxivId': paper.arxiv_id,
            'journal': paper.journal,
            'publishedYear': paper.published_year,
            'authors': paper.authors or [],
            'fullTextUrl': paper.full_text_url,
            'studyType': self.study_type,
            'stance': self.stance,
            'summary': self.ai_summary,
            'abstractSnippet': self.abstract_snippet,
            'sampleSize': self.sample_size,
            'confidenceScore': self.confidence_score,
            'extractionVersion': self.extraction_version,
            'createdAt': iso(self.created_at),
        }
