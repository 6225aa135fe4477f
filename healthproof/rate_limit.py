from flask import current_app
from healthproof.extensions import limiter


def _tier(config_key):
    return lambda: current_app.config[config_key]


# One counter per tier per client, shared by every route in the tier
read_limit = limiter.shared_limit(
    _tier('RATE_LIMIT_READ'), scope='read',
    error_message='Too many requests. Please try again shortly.',
)
action_limit = limiter.shared_limit(
    _tier('RATE_LIMIT_ACTION'), scope='action',
    error_message='Too many requests. Please slow down.',
)
admin_limit = limiter.shared_limit(
    _tier('RATE_LIMIT_ADMIN'), scope='admin',
    error_message='Too many admin requests.',
)
auth_limit = limiter.shared_limit(
    _tier('RATE_LIMIT_AUTH'), scope='auth',
    error_message='Too many authentication attempts. Please try again in a minute.',
)
