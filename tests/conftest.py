import pytest
from datetime import datetime, timedelta, timezone
from werkzeug.security import generate_password_hash

from healthproof import create_app
from healthproof.extensions import db as _db, limiter
from healthproof.models.claim import Claim, Market
from healthproof.models.evidence import Paper, ClaimPaper
from healthproof.models.user import User, UserSession
from healthproof.utils.hashing import hash_token
from config import TestConfig


class RecordingQueue:
    """Stands in for the scheduler-backed dossier queue."""

    def __init__(self):
        self.enqueued = []
        self.shut_down = False

    def enqueue(self, claim_id, triggered_by):
        self.enqueued.append((claim_id, triggered_by))
        return True

    def shutdown(self):
        self.shut_down = True


@pytest.fixture(scope='session')
def dossier_queue():
    return RecordingQueue()


@pytest.fixture(scope='session')
def app(dossier_queue):
    """Create app with test config."""
    app = create_app(TestConfig, dossier_queue=dossier_queue)
    return app


@pytest.fixture(autouse=True)
def setup_db(app, dossier_queue):
    """Create tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        limiter.reset()
        dossier_queue.enqueued.clear()
        yield
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db_session(app):
    with app.app_context():
        yield _db.session


def make_user(email, coins=0, is_admin=False, name='Test User'):
    user = User(
        name=name,
        email=email,
        password_hash=generate_password_hash('correct-horse'),
        coin_balance=0,
        is_admin=is_admin,
    )
    _db.session.add(user)
    _db.session.commit()
    if coins:
        from healthproof.models.coin import ADMIN_GRANT
        from healthproof.services.coin_service import CoinLedger
        CoinLedger().credit(user.id, coins, ADMIN_GRANT, note='test funding')
    return user


def login(user, token):
    _db.session.add(UserSession(
        user_id=user.id,
        token_hash=hash_token(token),
        expires_at=datetime.now(timezone.utc) + timedelta(days=1),
    ))
    _db.session.commit()
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def user(db_session):
    return make_user('voter@example.com', coins=10)


@pytest.fixture
def broke_user(db_session):
    return make_user('broke@example.com', coins=0)


@pytest.fixture
def admin(db_session):
    return make_user('admin@example.com', coins=10, is_admin=True, name='Admin')


@pytest.fixture
def user_headers(user):
    return login(user, 'user-token')


@pytest.fixture
def broke_headers(broke_user):
    return login(broke_user, 'broke-token')


@pytest.fixture
def admin_headers(admin):
    return login(admin, 'admin-token')


def make_claim(title, status='ACTIVE', difficulty='MEDIUM', **market_fields):
    claim = Claim(title=title, normalized_title=title.lower(), difficulty=difficulty)
    claim.market = Market(status=status, **market_fields)
    _db.session.add(claim)
    _db.session.commit()
    return claim


@pytest.fixture
def claim(db_session):
    return make_claim('Green tea extract reduces LDL cholesterol')


@pytest.fixture
def researching_claim(db_session):
    return make_claim('Magnesium before bed improves sleep', status='RESEARCHING')


@pytest.fixture
def resolved_claim(db_session):
    return make_claim(
        'Daily walking lowers resting blood pressure',
        status='RESOLVED',
        ai_verdict='YES',
        ai_confidence=0.82,
        consensus_summary='Walking programs reduce systolic pressure by about 4 mmHg. '
                          'Effects are larger in hypertensive adults.',
    )


@pytest.fixture
def evidence(db_session, claim):
    """Five evidence links with mixed stances and scores; one lacks a summary."""
    rows = [
        ('SUPPORTS', 0.9, 'RCT', 'Trial A'),
        ('REFUTES', 0.7, 'Cohort', 'Cohort B'),
        ('SUPPORTS', 0.5, 'Meta-analysis', 'Meta C'),
        ('NEUTRAL', None, 'Case series', 'Series D'),
        ('SUPPORTS', 0.95, 'RCT', 'Unsummarized E'),
    ]
    links = []
    for i, (stance, score, study_type, title) in enumerate(rows):
        paper = Paper(title=title, doi=f'10.1000/test.{i}', journal='Journal of Tests',
                      published_year=2020 + i, authors=['Doe J'])
        _db.session.add(paper)
        _db.session.flush()
        link = ClaimPaper(
            claim_id=claim.id,
            paper_id=paper.id,
            stance=stance,
            study_type=study_type,
            confidence_score=score,
            ai_summary=None if title.startswith('Unsummarized') else f'Summary of {title}',
            created_at=datetime(2025, 1, 1 + i, tzinfo=timezone.utc),
        )
        _db.session.add(link)
        links.append(link)
    _db.session.commit()
    return links
