import logging
from enum import Enum
from flask import jsonify, request
from werkzeug.exceptions import HTTPException
from healthproof.extensions import db

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    VALIDATION = 'VALIDATION'
    UNAUTHENTICATED = 'UNAUTHENTICATED'
    FORBIDDEN = 'FORBIDDEN'
    NOT_FOUND = 'NOT_FOUND'
    CONFLICT = 'CONFLICT'
    INVALID_STATE = 'INVALID_STATE'
    INSUFFICIENT_FUNDS = 'INSUFFICIENT_FUNDS'
    ALREADY_CLAIMED = 'ALREADY_CLAIMED'
    RATE_LIMITED = 'RATE_LIMITED'
    INTERNAL = 'INTERNAL'

    @property
    def http_status(self):
        return HTTP_STATUS[self]


HTTP_STATUS = {
    ErrorCode.VALIDATION: 400,
    ErrorCode.UNAUTHENTICATED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.INVALID_STATE: 400,
    ErrorCode.INSUFFICIENT_FUNDS: 400,
    ErrorCode.ALREADY_CLAIMED: 200,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.INTERNAL: 500,
}


class ValidationError(ValueError):
    """Malformed input, raised before any persistence access."""


class ServiceError:
    """Business-rule failure returned (not raised) by services."""

    def __init__(self, code, message):
        self.code = code
        self.message = message

    def to_response(self):
        return jsonify({'error': self.message}), self.code.http_status

    def __repr__(self):
        return f'ServiceError({self.code.name}, {self.message!r})'


def error_response(code, message):
    return jsonify({'error': message}), code.http_status


def register_error_handlers(app):
    @app.errorhandler(ValidationError)
    def handle_validation(e):
        return error_response(ErrorCode.VALIDATION, str(e))

    @app.errorhandler(429)
    def handle_rate_limited(e):
        return error_response(ErrorCode.RATE_LIMITED, e.description or 'Too many requests')

    @app.errorhandler(HTTPException)
    def handle_http(e):
        return jsonify({'error': e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        db.session.rollback()
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return error_response(ErrorCode.INTERNAL, 'Internal server error')
