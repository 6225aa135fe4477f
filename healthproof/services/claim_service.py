import logging
import re
from datetime import datetime, timezone
from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from healthproof.errors import ErrorCode, ServiceError, ValidationError
from healthproof.extensions import db
from healthproof.models.claim import Claim, ClaimVote, Market, DIFFICULTIES, MARKET_STATUSES, VOTE_SIDES
from healthproof.models.coin import UNLOCK_SPEND
from healthproof.models.dossier import DossierJob
from healthproof.models.evidence import ClaimPaper
from healthproof.services.coin_service import CoinLedger
from healthproof.utils.validation import parse_choice, require_string

logger = logging.getLogger(__name__)

LIST_DEFAULT_LIMIT = 20
LIST_MAX_LIMIT = 50
DETAIL_EVIDENCE_LIMIT = 10
MIXED_CONFIDENCE_THRESHOLD = 0.4

_FIRST_SENTENCE = re.compile(r'^(.+?[.!?])(?:\s|$)', re.DOTALL)


def verdict_label(ai_verdict, confidence):
    if ai_verdict == 'YES':
        return 'Supported'
    if ai_verdict == 'NO':
        return 'Contradicted'
    if confidence is not None and confidence >= MIXED_CONFIDENCE_THRESHOLD:
        return 'Mixed'
    return 'Insufficient'


def first_sentence(text):
    if not text:
        return 'No summary available.'
    match = _FIRST_SENTENCE.match(text)
    return match.group(1) if match else text[:200]


def like_pattern(text):
    """Substring pattern with LIKE wildcards in `text` matched literally."""
    escaped = text.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f'%{escaped}%'


class ClaimService:
    def list_claims(self, difficulty=None, status=None, search=None, cursor=None, limit=LIST_DEFAULT_LIMIT):
        """Newest first, keyset-paginated on (created_at, id)."""
        query = Claim.query
        if difficulty:
            query = query.filter(Claim.difficulty == difficulty)
        if status:
            query = query.join(Market).filter(Market.status == status)
        if search:
            query = query.filter(Claim.title.ilike(like_pattern(search), escape='\\'))

        if cursor is not None:
            anchor = db.session.get(Claim, cursor)
            if not anchor:
                raise ValidationError('Invalid cursor')
            query = query.filter(or_(
                Claim.created_at < anchor.created_at,
                and_(Claim.created_at == anchor.created_at, Claim.id < anchor.id),
            ))

        claims = query.order_by(Claim.created_at.desc(), Claim.id.desc()).limit(limit + 1).all()

        next_cursor = None
        if len(claims) > limit:
            claims = claims[:limit]
            next_cursor = claims[-1].id
        return claims, next_cursor

    def get_claim(self, claim_id):
        return db.session.get(Claim, claim_id)

    def claim_detail(self, claim, user_id=None):
        papers = claim.claim_papers.order_by(
            ClaimPaper.created_at.desc(), ClaimPaper.id.desc()
        ).limit(DETAIL_EVIDENCE_LIMIT).all()

        user_vote = None
        if user_id is not None:
            vote = ClaimVote.query.filter_by(claim_id=claim.id, user_id=user_id).first()
            if vote:
                v = vote.to_dict()
                user_vote = {k: v[k] for k in ('side', 'votedAt', 'revealAt', 'revealed')}

        return {
            **claim.to_dict(),
            'claimPapers': [cp.to_card() for cp in papers],
            'userVote': user_vote,
        }

    def create_claim(self, title, description=None, difficulty='MEDIUM'):
        """Create a claim together with its ACTIVE market."""
        title = require_string({'title': title}, 'title', min_len=10, max_len=500)
        description = require_string({'description': description}, 'description', max_len=2000, optional=True)
        difficulty = parse_choice(difficulty, DIFFICULTIES, 'difficulty', default='MEDIUM')
        normalized = title.lower()

        if Claim.query.filter_by(normalized_title=normalized).first():
            return ServiceError(ErrorCode.CONFLICT, 'A claim with this title already exists')

        claim = Claim(
            title=title,
            normalized_title=normalized,
            description=description,
            difficulty=difficulty,
        )
        claim.market = Market(status='ACTIVE')
        db.session.add(claim)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return ServiceError(ErrorCode.CONFLICT, 'A claim with this title already exists')

        logger.info(f"Claim {claim.id} created: {title!r}")
        return claim

    def update_claim(self, claim_id, data):
        claim = db.session.get(Claim, claim_id)
        if not claim:
            return ServiceError(ErrorCode.NOT_FOUND, 'Claim not found')

        if 'title' in data:
            title = require_string(data, 'title', min_len=10, max_len=500)
            claim.title = title
            claim.normalized_title = title.lower()
        if 'description' in data:
            claim.description = require_string(data, 'description', max_len=2000, optional=True)
        if 'difficulty' in data:
            claim.difficulty = parse_choice(data['difficulty'], DIFFICULTIES, 'difficulty', default=claim.difficulty)
        if 'status' in data and claim.market:
            status = parse_choice(data['status'], MARKET_STATUSES, 'status', default=claim.market.status)
            claim.market.status = status
            if status == 'RESOLVED':
                claim.market.resolved_at = datetime.now(timezone.utc)

        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return ServiceError(ErrorCode.CONFLICT, 'A claim with this title already exists')
        return claim

    def delete_claim(self, claim_id):
        claim = db.session.get(Claim, claim_id)
        if not claim:
            return ServiceError(ErrorCode.NOT_FOUND, 'Claim not found')

        for model in (ClaimVote, ClaimPaper, DossierJob):
            model.query.filter_by(claim_id=claim_id).delete(synchronize_session=False)
        db.session.delete(claim)
        db.session.commit()
        logger.info(f"Claim {claim_id} deleted")
        return claim_id

    def resolve_claim(self, claim_id, ai_verdict, ai_confidence, consensus_summary):
        ai_verdict = parse_choice(ai_verdict, VOTE_SIDES, 'aiVerdict')
        if ai_verdict is None:
            raise ValidationError('aiVerdict is required')
        if isinstance(ai_confidence, bool) or not isinstance(ai_confidence, (int, float)):
            raise ValidationError('aiConfidence must be a number')
        if not 0 < ai_confidence <= 1:
            raise ValidationError('aiConfidence must be greater than 0 and at most 1')
        consensus_summary = require_string(
            {'consensusSummary': consensus_summary}, 'consensusSummary', min_len=10, max_len=5000,
        )

        claim = db.session.get(Claim, claim_id)
        if not claim:
            return ServiceError(ErrorCode.NOT_FOUND, 'Claim not found')
        market = claim.market
        if not market:
            return ServiceError(ErrorCode.INVALID_STATE, 'Claim has no market')
        if market.status == 'RESOLVED':
            return ServiceError(ErrorCode.CONFLICT, 'Claim is already resolved')

        market.status = 'RESOLVED'
        market.ai_verdict = ai_verdict
        market.ai_confidence = float(ai_confidence)
        market.consensus_summary = consensus_summary
        market.resolved_at = datetime.now(timezone.utc)
        db.session.commit()

        logger.info(f"Claim {claim_id} resolved: {ai_verdict} ({ai_confidence:.2f})")
        return claim

    def verdict(self, claim_id, user_id=None, ledger=None):
        market = Market.query.filter_by(claim_id=claim_id).first()
        if not market:
            return ServiceError(ErrorCode.NOT_FOUND, 'Claim not found')

        if market.ai_confidence is None:
            return {
                'available': False,
                'status': market.status,
                'message': 'AI verdict not yet available. Research may still be in progress.',
            }

        unlocked = False
        if user_id is not None:
            ledger = ledger or CoinLedger()
            unlocked = ledger.has_transaction(user_id, UNLOCK_SPEND, claim_id)

        payload = {
            'available': True,
            'verdict': verdict_label(market.ai_verdict, market.ai_confidence),
            'aiVerdict': market.ai_verdict,
            'confidence': market.ai_confidence,
            'lastUpdated': market.to_dict()['lastDossierAt'],
            'unlocked': unlocked,
        }
        if unlocked:
            payload['detailedSummary'] = market.consensus_summary
        else:
            payload['shortSummary'] = first_sentence(market.consensus_summary)
        return payload

    def unlock_analysis(self, claim_id, user_id, ledger=None):
        """Spend coins once to see the full verdict. Repeat calls never charge again."""
        claim = db.session.get(Claim, claim_id)
        if not claim:
            return ServiceError(ErrorCode.NOT_FOUND, 'Claim not found')
        if not claim.market or claim.market.status == 'RESEARCHING':
            return ServiceError(ErrorCode.INVALID_STATE, 'Research not yet complete for this claim')

        ledger = ledger or CoinLedger()
        result = ledger.unlock_deep_analysis(user_id, claim_id)
        if result.success:
            return {
                'success': True,
                'alreadyUnlocked': False,
                'message': 'Full research breakdown unlocked!',
                'newBalance': result.new_balance,
            }
        if result.error.code is ErrorCode.ALREADY_CLAIMED:
            return {
                'success': True,
                'alreadyUnlocked': True,
                'message': 'Analysis already unlocked',
                'newBalance': result.new_balance,
            }
        return result.error
