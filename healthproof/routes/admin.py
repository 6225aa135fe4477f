from flask import Blueprint, jsonify, request
from healthproof.auth import requires_admin
from healthproof.errors import ServiceError
from healthproof.rate_limit import admin_limit
from healthproof.services.admin_service import AdminService
from healthproof.services.claim_service import ClaimService
from healthproof.services.coin_service import CoinLedger
from healthproof.utils.validation import json_body, require_string

admin_bp = Blueprint('admin', __name__)
admin_service = AdminService()
claim_service = ClaimService()


@admin_bp.route('/claims')
@admin_limit
@requires_admin
def list_claims(auth):
    """All claims with market details and related-row counts, paginated."""
    return jsonify(admin_service.list_claims(
        status=request.args.get('status'),
        page=request.args.get('page'),
        limit=request.args.get('limit'),
    ))


@admin_bp.route('/claims/<int:claim_id>', methods=['PATCH'])
@admin_limit
@requires_admin
def update_claim(claim_id, auth):
    result = claim_service.update_claim(claim_id, json_body(request))
    if isinstance(result, ServiceError):
        return result.to_response()
    return jsonify(result.to_dict())


@admin_bp.route('/claims/<int:claim_id>', methods=['DELETE'])
@admin_limit
@requires_admin
def delete_claim(claim_id, auth):
    result = claim_service.delete_claim(claim_id)
    if isinstance(result, ServiceError):
        return result.to_response()
    return jsonify({'deleted': True, 'id': claim_id})


@admin_bp.route('/claims/<int:claim_id>/resolve', methods=['POST'])
@admin_limit
@requires_admin
def resolve_claim(claim_id, auth):
    data = json_body(request)
    result = claim_service.resolve_claim(
        claim_id,
        ai_verdict=data.get('aiVerdict'),
        ai_confidence=data.get('aiConfidence'),
        consensus_summary=data.get('consensusSummary'),
    )
    if isinstance(result, ServiceError):
        return result.to_response()
    return jsonify(result.to_dict())


@admin_bp.route('/users/<int:user_id>/coins', methods=['POST'])
@admin_limit
@requires_admin
def adjust_coins(user_id, auth):
    """Grant or claw back coins; recorded as ADMIN_GRANT in the ledger."""
    data = json_body(request)
    reason = require_string(data, 'reason', min_len=3, max_len=200)
    result = CoinLedger().admin_adjust(user_id, data.get('amount'), reason, auth.user_id)
    if not result.success:
        return result.error.to_response()
    return jsonify({'success': True, 'newBalance': result.new_balance})
