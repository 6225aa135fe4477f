from healthproof.extensions import db
from healthproof.utils.serialization import iso
from sqlalchemy import false, func


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100))
    email = db.Column(db.String(320), nullable=False, unique=True)
    password_hash = db.Column(db.String(256))
    # Cache of the ledger sum; only CoinLedger writes it
    coin_balance = db.Column(db.Integer, nullable=False, default=0, server_default='0')
    last_login_date = db.Column(db.Date, nullable=True)
    is_admin = db.Column(db.Boolean, nullable=False, default=False, server_default=false())
    newsletter_opt_in = db.Column(db.Boolean, nullable=False, default=False, server_default=false())
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        db.CheckConstraint('coin_balance >= 0', name='ck_users_coin_balance_non_negative'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'coinBalance': self.coin_balance,
            'isAdmin': self.is_admin,
            'newsletterOptIn': self.newsletter_opt_in,
            'lastLoginDate': iso(self.last_login_date),
        }


class UserSession(db.Model):
    __tablename__ = 'user_sessions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    token_hash = db.Column(db.String(64), nullable=False, unique=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    user = db.relationship('User')

    __table_args__ = (
        db.Index('ix_user_sessions_user', 'user_id'),
    )
