import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'postgresql://localhost/healthproof')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True, 'pool_size': 5}

    # Sessions
    SESSION_TTL_DAYS = int(os.getenv('SESSION_TTL_DAYS', '30'))

    # Coin economy
    COINS_SIGNUP_BONUS = int(os.getenv('COINS_SIGNUP_BONUS', '5'))
    COINS_NEWSLETTER_BONUS = int(os.getenv('COINS_NEWSLETTER_BONUS', '5'))
    COINS_DAILY_LOGIN = int(os.getenv('COINS_DAILY_LOGIN', '2'))
    COINS_VOTE_COST = int(os.getenv('COINS_VOTE_COST', '1'))
    COINS_UNLOCK_COST = int(os.getenv('COINS_UNLOCK_COST', '5'))
    VOTE_REVEAL_HOURS = int(os.getenv('VOTE_REVEAL_HOURS', '6'))

    # Rate limits (Flask-Limiter notation, evaluated per request)
    RATELIMIT_ENABLED = os.getenv('RATELIMIT_ENABLED', 'true').lower() == 'true'
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_HEADERS_ENABLED = True
    RATE_LIMIT_READ = os.getenv('RATE_LIMIT_READ', '60 per minute')
    RATE_LIMIT_ACTION = os.getenv('RATE_LIMIT_ACTION', '30 per minute')
    RATE_LIMIT_ADMIN = os.getenv('RATE_LIMIT_ADMIN', '30 per minute')
    RATE_LIMIT_AUTH = os.getenv('RATE_LIMIT_AUTH', '10 per minute')

    # Scheduler
    SCHEDULER_ENABLED = os.getenv('SCHEDULER_ENABLED', 'true').lower() == 'true'
    SCHEDULER_API_ENABLED = False
    REVEAL_INTERVAL_MIN = int(os.getenv('REVEAL_INTERVAL_MIN', '5'))
    RECONCILE_HOUR_UTC = int(os.getenv('RECONCILE_HOUR_UTC', '3'))

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}  # SQLite doesn't support pool_size
    SCHEDULER_ENABLED = False
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = 'memory://'
    RATE_LIMIT_READ = '1000 per minute'
    RATE_LIMIT_ACTION = '1000 per minute'
    RATE_LIMIT_ADMIN = '1000 per minute'
    RATE_LIMIT_AUTH = '1000 per minute'
