import logging
from datetime import datetime, timezone
from functools import wraps
from flask import g, request
from healthproof.errors import ErrorCode, error_response
from healthproof.extensions import db
from healthproof.models.user import UserSession
from healthproof.utils.hashing import hash_token
from healthproof.utils.serialization import as_utc

logger = logging.getLogger(__name__)


class AuthContext:
    """What the current request is allowed to do, resolved once per request."""

    __slots__ = ('user_id', 'is_admin')

    def __init__(self, user_id=None, is_admin=False):
        self.user_id = user_id
        self.is_admin = bool(is_admin) and user_id is not None

    @property
    def authenticated(self):
        return self.user_id is not None

    def __repr__(self):
        return f'AuthContext(user_id={self.user_id}, is_admin={self.is_admin})'


ANONYMOUS = AuthContext()


def bearer_token():
    auth_header = request.headers.get('Authorization', '')
    if auth_header.lower().startswith('bearer '):
        return auth_header.split(' ', 1)[1].strip()
    return ''


def resolve_auth_context(token):
    if not token:
        return ANONYMOUS

    session = UserSession.query.filter_by(token_hash=hash_token(token)).first()
    if not session:
        return ANONYMOUS
    if as_utc(session.expires_at) <= datetime.now(timezone.utc):
        return ANONYMOUS

    user = session.user
    return AuthContext(user_id=user.id, is_admin=user.is_admin)


def current_auth():
    """Auth context for the current request (anonymous outside a request hook)."""
    ctx = g.get('auth')
    if ctx is None:
        ctx = resolve_auth_context(bearer_token())
        g.auth = ctx
    return ctx


def requires_auth(func):
    """Reject anonymous callers with 401 and pass `auth` to the view."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        ctx = current_auth()
        if not ctx.authenticated:
            return error_response(ErrorCode.UNAUTHENTICATED, 'Unauthorized')
        return func(*args, auth=ctx, **kwargs)

    return wrapper


def requires_admin(func):
    """401 for anonymous callers, then 403 for non-admins."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        ctx = current_auth()
        if not ctx.authenticated:
            return error_response(ErrorCode.UNAUTHENTICATED, 'Unauthorized')
        if not ctx.is_admin:
            return error_response(ErrorCode.FORBIDDEN, 'Forbidden')
        return func(*args, auth=ctx, **kwargs)

    return wrapper


def init_auth(app):
    @app.teardown_request
    def _drop_auth(exc):
        g.pop('auth', None)
