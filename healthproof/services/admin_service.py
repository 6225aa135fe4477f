import math
from sqlalchemy import func, select
from healthproof.extensions import db
from healthproof.models.claim import Claim, ClaimVote, Market, MARKET_STATUSES
from healthproof.models.dossier import DossierJob
from healthproof.models.evidence import ClaimPaper
from healthproof.utils.validation import parse_choice, parse_int

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 50


def _count_of(model):
    return (
        select(func.count(model.id))
        .where(model.claim_id == Claim.id)
        .correlate(Claim)
        .scalar_subquery()
    )


class AdminService:
    def list_claims(self, status=None, page=None, limit=None):
        """Page of claims (newest first) with market and related-row counts."""
        status = parse_choice(status, MARKET_STATUSES, 'status')
        page = parse_int(page, 'page', 1, minimum=1)
        limit = parse_int(limit, 'limit', DEFAULT_PAGE_SIZE, minimum=1, maximum=MAX_PAGE_SIZE)

        base = Claim.query
        if status:
            base = base.join(Market).filter(Market.status == status)
        total = base.count()

        votes = _count_of(ClaimVote).label('vote_count')
        papers = _count_of(ClaimPaper).label('paper_count')
        jobs = _count_of(DossierJob).label('job_count')

        query = db.session.query(Claim, votes, papers, jobs)
        if status:
            query = query.join(Market, Market.claim_id == Claim.id).filter(Market.status == status)
        rows = query.order_by(
            Claim.created_at.desc(), Claim.id.desc()
        ).offset((page - 1) * limit).limit(limit).all()

        claims = []
        for claim, vote_count, paper_count, job_count in rows:
            claims.append({
                **claim.to_dict(),
                'counts': {
                    'claimVotes': vote_count,
                    'claimPapers': paper_count,
                    'dossierJobs': job_count,
                },
            })

        return {
            'claims': claims,
            'total': total,
            'page': page,
            'totalPages': math.ceil(total / limit),
        }
