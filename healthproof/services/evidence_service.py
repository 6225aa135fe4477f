from healthproof.errors import ErrorCode, ServiceError
from healthproof.extensions import db
from healthproof.models.claim import Claim
from healthproof.models.evidence import ClaimPaper, STANCES
from healthproof.utils.validation import parse_choice, parse_int

SORTS = ('relevance', 'recency', 'studyType')
DEFAULT_LIMIT = 50
MAX_LIMIT = 100


class EvidenceService:
    def list_evidence(self, claim_id, stance=None, sort=None, limit=None):
        """
        Evidence cards for a claim. Only links that have an AI summary are
        returned. `relevance` (default) orders by confidence score, `recency`
        by creation time, `studyType` alphabetically.
        """
        stance = parse_choice(stance, STANCES, 'stance')
        sort = parse_choice(sort, SORTS, 'sort', default='relevance')
        limit = parse_int(limit, 'limit', DEFAULT_LIMIT, minimum=1, maximum=MAX_LIMIT)

        if not db.session.get(Claim, claim_id):
            return ServiceError(ErrorCode.NOT_FOUND, 'Claim not found')

        query = ClaimPaper.query.filter(
            ClaimPaper.claim_id == claim_id,
            ClaimPaper.ai_summary.isnot(None),
        )
        if stance:
            query = query.filter(ClaimPaper.stance == stance)

        if sort == 'recency':
            order = (ClaimPaper.created_at.desc(), ClaimPaper.id.desc())
        elif sort == 'studyType':
            order = (ClaimPaper.study_type.asc().nulls_last(), ClaimPaper.id.asc())
        else:
            order = (ClaimPaper.confidence_score.desc().nulls_last(), ClaimPaper.id.asc())

        rows = query.order_by(*order).limit(limit).all()
        evidence = [cp.to_evidence() for cp in rows]
        return {
            'claimId': claim_id,
            'count': len(evidence),
            'evidence': evidence,
        }
