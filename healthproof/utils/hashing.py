import hashlib
import secrets


def new_session_token():
    """Opaque bearer token handed to the client. Only its digest is stored."""
    return secrets.token_urlsafe(32)


def hash_token(token):
    return hashlib.sha256(token.encode('utf-8')).hexdigest()
