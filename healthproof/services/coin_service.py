import logging
from datetime import datetime, timezone
from flask import current_app
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from healthproof.errors import ErrorCode, ServiceError, ValidationError
from healthproof.extensions import db
from healthproof.models.coin import (
    CoinTransaction, TRANSACTION_TYPES, VOTE_SPEND, DAILY_LOGIN, SIGNUP_BONUS,
    NEWSLETTER_BONUS, UNLOCK_SPEND, ADMIN_GRANT,
)
from healthproof.models.user import User

logger = logging.getLogger(__name__)

HISTORY_DEFAULT_LIMIT = 50
HISTORY_MAX_LIMIT = 100


class LedgerResult:
    def __init__(self, success, new_balance, transaction=None, error=None):
        self.success = success
        self.new_balance = new_balance
        self.transaction = transaction
        self.error = error

    def __repr__(self):
        return f'LedgerResult(success={self.success}, new_balance={self.new_balance}, error={self.error})'


class CoinLedger:
    """
    Every coin movement goes through here.

    The ledger (coin_transactions) is the source of truth; users.coin_balance
    is a cache that changes in the same database transaction as the row that
    explains it. Passing commit=False leaves the unit open so a caller can
    add its own writes and commit (or roll back) everything together.
    """

    def __init__(self, app_config=None):
        config = app_config or current_app.config
        self.signup_bonus = config.get('COINS_SIGNUP_BONUS', 5)
        self.newsletter_bonus = config.get('COINS_NEWSLETTER_BONUS', 5)
        self.daily_login_bonus = config.get('COINS_DAILY_LOGIN', 2)
        self.vote_cost = config.get('COINS_VOTE_COST', 1)
        self.unlock_cost = config.get('COINS_UNLOCK_COST', 5)

    # ── Core operations ────────────────────────────────────────────────

    def credit(self, user_id, amount, tx_type, idempotency_key=None,
               note=None, ref_type=None, ref_id=None, commit=True):
        """Add coins. A reused idempotency_key yields success=False and no writes."""
        self._validate(amount, tx_type)

        if idempotency_key and self._key_exists(idempotency_key):
            return self._already_claimed(user_id, idempotency_key)

        try:
            tx = self._apply(user_id, amount, tx_type, idempotency_key, note, ref_type, ref_id)
        except IntegrityError:
            # Lost a race on the idempotency key
            db.session.rollback()
            if idempotency_key:
                return self._already_claimed(user_id, idempotency_key)
            raise

        if tx is None:
            return LedgerResult(False, 0, error=ServiceError(ErrorCode.NOT_FOUND, 'User not found'))

        return self._finish(LedgerResult(True, tx.balance_after, transaction=tx), idempotency_key, commit)

    def debit(self, user_id, amount, tx_type, idempotency_key=None,
              note=None, ref_type=None, ref_id=None, commit=True):
        """Remove coins; fails with INSUFFICIENT_FUNDS rather than going negative."""
        self._validate(amount, tx_type)

        if idempotency_key and self._key_exists(idempotency_key):
            return self._already_claimed(user_id, idempotency_key)

        balance = self.balance(user_id)
        if balance is None:
            return LedgerResult(False, 0, error=ServiceError(ErrorCode.NOT_FOUND, 'User not found'))

        try:
            tx = self._apply(user_id, -amount, tx_type, idempotency_key, note, ref_type, ref_id)
        except IntegrityError:
            db.session.rollback()
            if idempotency_key:
                return self._already_claimed(user_id, idempotency_key)
            raise

        if tx is None:
            current = self.balance(user_id) or 0
            logger.info(f"Debit refused for user {user_id}: {current} available, {amount} required")
            return LedgerResult(False, current, error=ServiceError(
                ErrorCode.INSUFFICIENT_FUNDS,
                f'Insufficient coins: {current} available, {amount} required',
            ))

        return self._finish(LedgerResult(True, tx.balance_after, transaction=tx), idempotency_key, commit)

    def balance(self, user_id):
        """Cached balance, or None for an unknown user."""
        return db.session.execute(
            select(User.coin_balance).where(User.id == user_id)
        ).scalar_one_or_none()

    def ledger_balance(self, user_id):
        """Running sum of the user's transactions."""
        return db.session.execute(
            select(db.func.coalesce(db.func.sum(CoinTransaction.amount), 0))
            .where(CoinTransaction.user_id == user_id)
        ).scalar_one()

    def history(self, user_id, limit=HISTORY_DEFAULT_LIMIT, offset=0, tx_type=None):
        if tx_type is not None and tx_type not in TRANSACTION_TYPES:
            raise ValidationError(f"Invalid transaction type: {tx_type}")
        if limit < 1 or limit > HISTORY_MAX_LIMIT:
            raise ValidationError(f"limit must be between 1 and {HISTORY_MAX_LIMIT}")
        if offset < 0:
            raise ValidationError("offset must be >= 0")

        query = CoinTransaction.query.filter_by(user_id=user_id)
        if tx_type:
            query = query.filter_by(type=tx_type)
        return query.order_by(
            CoinTransaction.created_at.desc(), CoinTransaction.id.desc()
        ).offset(offset).limit(limit).all()

    def has_transaction(self, user_id, tx_type, ref_id):
        return db.session.query(
            CoinTransaction.query.filter_by(
                user_id=user_id, type=tx_type, ref_id=str(ref_id),
            ).exists()
        ).scalar()

    # ── Named grants and spends ────────────────────────────────────────

    def grant_signup_bonus(self, user_id, commit=True):
        return self.credit(
            user_id, self.signup_bonus, SIGNUP_BONUS,
            idempotency_key=f'signup-bonus-{user_id}',
            note='Thanks for signing up!', commit=commit,
        )

    def grant_newsletter_bonus(self, user_id, commit=True):
        return self.credit(
            user_id, self.newsletter_bonus, NEWSLETTER_BONUS,
            idempotency_key=f'newsletter-bonus-{user_id}',
            note='Thanks for subscribing!', commit=commit,
        )

    def grant_daily_login(self, user_id, on_date=None):
        """Once per user per UTC day; also stamps last_login_date."""
        day = on_date or datetime.now(timezone.utc).date()
        key = f'daily-login-{user_id}-{day.isoformat()}'

        result = self.credit(
            user_id, self.daily_login_bonus, DAILY_LOGIN,
            idempotency_key=key, note='Daily login bonus', commit=False,
        )
        if not result.success:
            return result

        user = db.session.get(User, user_id)
        user.last_login_date = day
        return self._finish(result, key, commit=True)

    def spend_vote(self, user_id, claim_id, commit=True):
        return self.debit(
            user_id, self.vote_cost, VOTE_SPEND,
            note='Voted on claim', ref_type='claim', ref_id=str(claim_id), commit=commit,
        )

    def unlock_deep_analysis(self, user_id, claim_id):
        return self.debit(
            user_id, self.unlock_cost, UNLOCK_SPEND,
            idempotency_key=f'deep-analysis-{user_id}-{claim_id}',
            note='Unlocked full research breakdown',
            ref_type='claim', ref_id=str(claim_id),
        )

    def admin_adjust(self, user_id, amount, reason, admin_id):
        if not isinstance(amount, int) or isinstance(amount, bool) or amount == 0:
            raise ValidationError("amount must be a non-zero integer")
        note = f'Admin adjustment by {admin_id}: {reason}'
        if amount > 0:
            return self.credit(user_id, amount, ADMIN_GRANT, note=note)
        return self.debit(user_id, -amount, ADMIN_GRANT, note=note)

    # ── Internals ──────────────────────────────────────────────────────

    def _validate(self, amount, tx_type):
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise ValidationError("amount must be a positive integer")
        if tx_type not in TRANSACTION_TYPES:
            raise ValidationError(f"Invalid transaction type: {tx_type}")

    def _key_exists(self, key):
        return db.session.query(
            CoinTransaction.query.filter_by(idempotency_key=key).exists()
        ).scalar()

    def _already_claimed(self, user_id, key):
        logger.info(f"Idempotency key already used: {key}")
        return LedgerResult(
            False, self.balance(user_id) or 0,
            error=ServiceError(ErrorCode.ALREADY_CLAIMED, 'Already claimed'),
        )

    def _apply(self, user_id, delta, tx_type, idempotency_key, note, ref_type, ref_id):
        """Move the balance and append the ledger row. None if the guard refused."""
        stmt = update(User).where(User.id == user_id)
        if delta < 0:
            stmt = stmt.where(User.coin_balance >= -delta)
        result = db.session.execute(stmt.values(coin_balance=User.coin_balance + delta))
        if result.rowcount == 0:
            return None

        tx = CoinTransaction(
            user_id=user_id,
            amount=delta,
            type=tx_type,
            balance_after=self.balance(user_id),
            note=note,
            ref_type=ref_type,
            ref_id=ref_id,
            idempotency_key=idempotency_key,
        )
        db.session.add(tx)
        db.session.flush()
        return tx

    def _finish(self, result, idempotency_key, commit):
        if not commit:
            return result
        user_id = result.transaction.user_id
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            if idempotency_key:
                return self._already_claimed(user_id, idempotency_key)
            raise
        tx = result.transaction
        logger.info(f"Ledger {tx.type} user={tx.user_id} amount={tx.amount} balance={tx.balance_after}")
        return result
