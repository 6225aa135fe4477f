from flask import Blueprint, jsonify, request
from healthproof.auth import requires_auth
from healthproof.rate_limit import action_limit, read_limit
from healthproof.services.coin_service import CoinLedger, HISTORY_DEFAULT_LIMIT, HISTORY_MAX_LIMIT
from healthproof.utils.validation import parse_int

coins_bp = Blueprint('coins', __name__)


@coins_bp.route('/daily-login', methods=['POST'])
@action_limit
@requires_auth
def daily_login(auth):
    """Claim the daily bonus. Safe to call repeatedly; pays once per UTC day."""
    ledger = CoinLedger()
    result = ledger.grant_daily_login(auth.user_id)

    if not result.success:
        return jsonify({
            'success': False,
            'message': 'Daily bonus already claimed',
            'newBalance': result.new_balance,
        })

    return jsonify({
        'success': True,
        'message': f'Daily bonus claimed! +{ledger.daily_login_bonus} coins',
        'coinsEarned': ledger.daily_login_bonus,
        'newBalance': result.new_balance,
    })


@coins_bp.route('/history')
@read_limit
@requires_auth
def history(auth):
    limit = parse_int(request.args.get('limit'), 'limit', HISTORY_DEFAULT_LIMIT,
                      minimum=1, maximum=HISTORY_MAX_LIMIT)
    offset = parse_int(request.args.get('offset'), 'offset', 0, minimum=0)
    tx_type = request.args.get('type') or None

    transactions = CoinLedger().history(auth.user_id, limit=limit, offset=offset, tx_type=tx_type)
    return jsonify({
        'success': True,
        'transactions': [t.to_dict() for t in transactions],
        'count': len(transactions),
    })


@coins_bp.route('/balance')
@read_limit
@requires_auth
def balance(auth):
    return jsonify({'balance': CoinLedger().balance(auth.user_id)})
