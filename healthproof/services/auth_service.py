import logging
from datetime import datetime, timedelta, timezone
from flask import current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash
from healthproof.errors import ErrorCode, ServiceError, ValidationError
from healthproof.extensions import db
from healthproof.models.user import User, UserSession
from healthproof.services.coin_service import CoinLedger
from healthproof.utils.hashing import hash_token, new_session_token
from healthproof.utils.validation import EMAIL_RE, require_string

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class AuthService:
    def __init__(self, ledger=None, app_config=None):
        config = app_config or current_app.config
        self.ledger = ledger or CoinLedger(config)
        self.session_ttl = timedelta(days=config.get('SESSION_TTL_DAYS', 30))

    def signup(self, name, email, password, newsletter=False):
        """Create an account and pay out the signup (and newsletter) bonus in one unit."""
        name = require_string({'name': name}, 'name', max_len=100)
        email = require_string({'email': email}, 'email', max_len=320).lower()
        if not EMAIL_RE.match(email):
            raise ValidationError('Invalid email address')
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
        if not isinstance(newsletter, bool):
            raise ValidationError('newsletter must be a boolean')

        if User.query.filter_by(email=email).first():
            return ServiceError(ErrorCode.CONFLICT, 'An account with this email already exists.')

        user = User(
            name=name,
            email=email,
            password_hash=generate_password_hash(password),
            newsletter_opt_in=newsletter,
            coin_balance=0,
        )
        db.session.add(user)
        try:
            db.session.flush()
            user_id = user.id
            bonus = self.ledger.grant_signup_bonus(user_id, commit=False)
            if bonus.success and newsletter:
                bonus = self.ledger.grant_newsletter_bonus(user_id, commit=False)
            if not bonus.success:
                # The user row must not outlive a failed bonus grant
                db.session.rollback()
                logger.warning(f"Signup aborted for user {user_id}: {bonus.error}")
                return ServiceError(ErrorCode.CONFLICT, 'Could not create the account. Please try again.')
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return ServiceError(ErrorCode.CONFLICT, 'An account with this email already exists.')

        logger.info(f"User {user.id} signed up (newsletter={newsletter})")
        return user

    def signin(self, email, password):
        """Returns (token, user) or an UNAUTHENTICATED error."""
        if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
            raise ValidationError('email and password are required')

        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user or not user.password_hash or not check_password_hash(user.password_hash, password):
            return ServiceError(ErrorCode.UNAUTHENTICATED, 'Invalid email or password')

        return self.create_session(user), user

    def create_session(self, user):
        token = new_session_token()
        db.session.add(UserSession(
            user_id=user.id,
            token_hash=hash_token(token),
            expires_at=datetime.now(timezone.utc) + self.session_ttl,
        ))
        db.session.commit()
        return token

    def signout(self, token):
        deleted = UserSession.query.filter_by(token_hash=hash_token(token)).delete()
        db.session.commit()
        return deleted > 0

    def purge_expired_sessions(self, now=None):
        now = now or datetime.now(timezone.utc)
        deleted = UserSession.query.filter(UserSession.expires_at <= now).delete(synchronize_session=False)
        db.session.commit()
        return deleted
