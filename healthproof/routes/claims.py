from flask import Blueprint, jsonify, request
from healthproof.auth import current_auth, requires_admin, requires_auth
from healthproof.errors import ErrorCode, ServiceError, error_response
from healthproof.models.claim import DIFFICULTIES, MARKET_STATUSES
from healthproof.rate_limit import action_limit, read_limit
from healthproof.services.claim_service import ClaimService, LIST_DEFAULT_LIMIT, LIST_MAX_LIMIT
from healthproof.services.evidence_service import EvidenceService
from healthproof.services.research_service import ResearchService
from healthproof.services.vote_service import VoteService
from healthproof.utils.validation import json_body, parse_choice, parse_int, require_string

claims_bp = Blueprint('claims', __name__)
claim_service = ClaimService()
evidence_service = EvidenceService()


@claims_bp.route('')
@read_limit
def list_claims():
    """Public claim feed with optional filters and cursor pagination."""
    args = request.args
    difficulty = parse_choice(args.get('difficulty'), DIFFICULTIES, 'difficulty')
    status = parse_choice(args.get('status'), MARKET_STATUSES, 'status')
    search = require_string(args, 'search', max_len=200, optional=True)
    cursor = parse_int(args.get('cursor'), 'cursor', None, minimum=1)
    limit = parse_int(args.get('limit'), 'limit', LIST_DEFAULT_LIMIT, minimum=1, maximum=LIST_MAX_LIMIT)

    claims, next_cursor = claim_service.list_claims(
        difficulty=difficulty, status=status, search=search, cursor=cursor, limit=limit,
    )
    return jsonify({
        'claims': [c.to_dict() for c in claims],
        'nextCursor': next_cursor,
    })


@claims_bp.route('', methods=['POST'])
@action_limit
@requires_admin
def create_claim(auth):
    data = json_body(request)
    result = claim_service.create_claim(
        title=data.get('title'),
        description=data.get('description'),
        difficulty=data.get('difficulty'),
    )
    if isinstance(result, ServiceError):
        return result.to_response()
    return jsonify(result.to_dict()), 201


@claims_bp.route('/<int:claim_id>')
@read_limit
def get_claim(claim_id):
    claim = claim_service.get_claim(claim_id)
    if not claim:
        return error_response(ErrorCode.NOT_FOUND, 'Claim not found')
    return jsonify(claim_service.claim_detail(claim, user_id=current_auth().user_id))


@claims_bp.route('/<int:claim_id>/vote', methods=['POST'])
@action_limit
@requires_auth
def vote(claim_id, auth):
    """Place a YES/NO vote for 1 coin; the side is revealed 6 hours later."""
    data = json_body(request)
    result = VoteService().place_vote(auth.user_id, claim_id, data.get('side'))
    if isinstance(result, ServiceError):
        return result.to_response()
    return jsonify(result.to_dict()), 201


@claims_bp.route('/<int:claim_id>/evidence')
@read_limit
def evidence(claim_id):
    result = evidence_service.list_evidence(
        claim_id,
        stance=request.args.get('stance'),
        sort=request.args.get('sort'),
        limit=request.args.get('limit'),
    )
    if isinstance(result, ServiceError):
        return result.to_response()
    return jsonify(result)


@claims_bp.route('/<int:claim_id>/verdict')
@read_limit
def verdict(claim_id):
    result = claim_service.verdict(claim_id, user_id=current_auth().user_id)
    if isinstance(result, ServiceError):
        return result.to_response()
    return jsonify(result)


@claims_bp.route('/<int:claim_id>/unlock-analysis', methods=['POST'])
@action_limit
@requires_auth
def unlock_analysis(claim_id, auth):
    result = claim_service.unlock_analysis(claim_id, auth.user_id)
    if isinstance(result, ServiceError):
        return result.to_response()
    return jsonify(result)


@claims_bp.route('/<int:claim_id>/research', methods=['POST'])
@action_limit
@requires_admin
def trigger_research(claim_id, auth):
    result = ResearchService().trigger(claim_id, auth.user_id)
    if isinstance(result, ServiceError):
        return result.to_response()

    job, created = result
    if not created:
        return jsonify({
            'jobId': job.id,
            'status': job.status,
            'message': 'Research is already in progress for this claim',
        })
    return jsonify({'jobId': job.id, 'status': 'QUEUED', 'message': 'Research started'}), 201


@claims_bp.route('/<int:claim_id>/research/status')
@read_limit
def research_status(claim_id):
    return jsonify(ResearchService().status(claim_id))
