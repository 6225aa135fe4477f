from healthproof.extensions import db
from healthproof.utils.serialization import iso
from sqlalchemy import func

VOTE_SPEND = 'VOTE_SPEND'
DAILY_LOGIN = 'DAILY_LOGIN'
SIGNUP_BONUS = 'SIGNUP_BONUS'
NEWSLETTER_BONUS = 'NEWSLETTER_BONUS'
UNLOCK_SPEND = 'UNLOCK_SPEND'
ADMIN_GRANT = 'ADMIN_GRANT'

TRANSACTION_TYPES = (
    VOTE_SPEND, DAILY_LOGIN, SIGNUP_BONUS, NEWSLETTER_BONUS, UNLOCK_SPEND, ADMIN_GRANT,
)


class CoinTransaction(db.Model):
    """Append-only ledger row. Never updated or deleted once written."""
    __tablename__ = 'coin_transactions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    type = db.Column(db.String(32), nullable=False)
    balance_after = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(256))
    ref_type = db.Column(db.String(32))
    ref_id = db.Column(db.String(64))
    idempotency_key = db.Column(db.String(128), nullable=True, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        db.Index('ix_coin_tx_user_created', 'user_id', 'created_at'),
        db.Index('ix_coin_tx_user_type_ref', 'user_id', 'type', 'ref_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'amount': self.amount,
            'balanceAfter': self.balance_after,
            'note': self.note,
            'refType': self.ref_type,
            'refId': self.ref_id,
            'createdAt': iso(self.created_at),
        }
