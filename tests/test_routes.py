import pytest
from healthproof.extensions import db
from healthproof.models.claim import ClaimVote, Market
from healthproof.models.coin import CoinTransaction, SIGNUP_BONUS
from healthproof.models.user import User
from tests.conftest import make_claim


class TestHealthRoutes:
    def test_health(self, client):
        resp = client.get('/health')
        assert resp.status_code == 200
        assert resp.json['status'] == 'ok'

    def test_ready(self, client):
        resp = client.get('/ready')
        assert resp.status_code == 200
        assert resp.json['db'] is True

    def test_api_health(self, client):
        resp = client.get('/api/health')
        assert resp.status_code == 200
        assert resp.json['status'] == 'healthy'
        assert resp.json['services']['database'] == 'connected'
        assert resp.json['env']['errors'] == []

    def test_security_headers(self, client):
        resp = client.get('/health')
        assert resp.headers['X-Frame-Options'] == 'DENY'
        assert resp.headers['X-Content-Type-Options'] == 'nosniff'
        assert 'Content-Security-Policy' in resp.headers

    def test_unknown_route_is_json(self, client):
        resp = client.get('/api/does-not-exist')
        assert resp.status_code == 404
        assert 'error' in resp.json


class TestAuthRoutes:
    def test_signup_grants_bonuses(self, client):
        resp = client.post('/api/auth/signup', json={
            'name': 'Ada', 'email': 'Ada@Example.com', 'password': 'longenough', 'newsletter': True,
        })
        assert resp.status_code == 201

        user = db.session.get(User, resp.json['userId'])
        assert user.email == 'ada@example.com'
        assert user.coin_balance == 10

    def test_signup_duplicate_email(self, client, user):
        resp = client.post('/api/auth/signup', json={
            'name': 'Dup', 'email': 'voter@example.com', 'password': 'longenough',
        })
        assert resp.status_code == 409

    def test_signup_rolls_back_when_bonus_fails(self, client, db_session):
        # A stray ledger row already holds the bonus key the new user will get
        db_session.add(CoinTransaction(
            user_id=1, amount=5, type=SIGNUP_BONUS, balance_after=5,
            idempotency_key='signup-bonus-1',
        ))
        db_session.commit()

        resp = client.post('/api/auth/signup', json={
            'name': 'Ada', 'email': 'ada@example.com', 'password': 'longenough',
        })

        assert resp.status_code == 409
        assert User.query.filter_by(email='ada@example.com').count() == 0

    def test_signup_short_password(self, client):
        resp = client.post('/api/auth/signup', json={
            'name': 'Ada', 'email': 'ada@example.com', 'password': 'short',
        })
        assert resp.status_code == 400

    def test_signin_me_signout(self, client, user):
        resp = client.post('/api/auth/signin', json={'email': 'voter@example.com', 'password': 'correct-horse'})
        assert resp.status_code == 200
        headers = {'Authorization': f"Bearer {resp.json['token']}"}

        me = client.get('/api/auth/me', headers=headers)
        assert me.status_code == 200
        assert me.json['coinBalance'] == 10

        assert client.post('/api/auth/signout', headers=headers).status_code == 200
        assert client.get('/api/auth/me', headers=headers).status_code == 401

    def test_signin_wrong_password(self, client, user):
        resp = client.post('/api/auth/signin', json={'email': 'voter@example.com', 'password': 'nope-nope'})
        assert resp.status_code == 401

    def test_garbage_token(self, client):
        resp = client.get('/api/auth/me', headers={'Authorization': 'Bearer not-a-session'})
        assert resp.status_code == 401


class TestClaimRoutes:
    def test_list_cursor_pagination(self, client, db_session):
        for i in range(25):
            make_claim(f'Seed claim number {i:02d} about health')

        first = client.get('/api/claims?limit=10')
        assert first.status_code == 200
        assert len(first.json['claims']) == 10
        cursor = first.json['nextCursor']
        assert cursor == first.json['claims'][-1]['id']

        second = client.get(f'/api/claims?limit=10&cursor={cursor}')
        first_ids = {c['id'] for c in first.json['claims']}
        second_ids = [c['id'] for c in second.json['claims']]
        assert len(second_ids) == 10
        assert first_ids.isdisjoint(second_ids)

        third = client.get(f"/api/claims?limit=10&cursor={second.json['nextCursor']}")
        assert len(third.json['claims']) == 5
        assert third.json['nextCursor'] is None

    def test_list_filters(self, client, claim, researching_claim):
        resp = client.get('/api/claims?status=RESEARCHING')
        assert [c['id'] for c in resp.json['claims']] == [researching_claim.id]

        resp = client.get('/api/claims', query_string={'search': 'green tea'})
        assert [c['id'] for c in resp.json['claims']] == [claim.id]

    def test_search_treats_wildcards_literally(self, client, db_session):
        discounted = make_claim('Fasting cuts 50% of visceral fat')
        make_claim('Sauna use improves heart health')
        make_claim('Sleep_tracking apps improve sleep')

        resp = client.get('/api/claims', query_string={'search': '%'})
        assert [c['id'] for c in resp.json['claims']] == [discounted.id]

        resp = client.get('/api/claims', query_string={'search': 'S_una'})
        assert resp.json['claims'] == []

    def test_list_rejects_bad_params(self, client):
        assert client.get('/api/claims?difficulty=IMPOSSIBLE').status_code == 400
        assert client.get('/api/claims?limit=51').status_code == 400
        assert client.get('/api/claims?cursor=999').status_code == 400

    def test_detail(self, client, claim, evidence):
        resp = client.get(f'/api/claims/{claim.id}')
        assert resp.status_code == 200
        assert resp.json['market']['status'] == 'ACTIVE'
        assert len(resp.json['claimPapers']) == 5
        assert resp.json['claimPapers'][0]['paper']['journal'] == 'Journal of Tests'
        assert resp.json['userVote'] is None

    def test_detail_includes_caller_vote(self, client, claim, user_headers):
        client.post(f'/api/claims/{claim.id}/vote', json={'side': 'NO'}, headers=user_headers)
        resp = client.get(f'/api/claims/{claim.id}', headers=user_headers)
        assert resp.json['userVote']['side'] == 'NO'
        assert resp.json['userVote']['revealed'] is False

    def test_detail_not_found(self, client):
        assert client.get('/api/claims/9999').status_code == 404

    def test_create_claim(self, client, admin_headers):
        resp = client.post('/api/claims', json={
            'title': 'Omega-3 supplements reduce depression symptoms',
            'difficulty': 'HARD',
        }, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json['market']['status'] == 'ACTIVE'
        assert resp.json['difficulty'] == 'HARD'

        dup = client.post('/api/claims', json={
            'title': 'OMEGA-3 supplements reduce depression symptoms',
        }, headers=admin_headers)
        assert dup.status_code == 409

    def test_create_claim_requires_admin(self, client, user_headers):
        resp = client.post('/api/claims', json={'title': 'Some claim that is long enough'}, headers=user_headers)
        assert resp.status_code == 403

    def test_create_claim_short_title(self, client, admin_headers):
        resp = client.post('/api/claims', json={'title': 'Too short'}, headers=admin_headers)
        assert resp.status_code == 400


class TestVoteRoutes:
    def test_vote(self, client, claim, user_headers):
        resp = client.post(f'/api/claims/{claim.id}/vote', json={'side': 'YES'}, headers=user_headers)
        assert resp.status_code == 201
        assert resp.json['vote']['side'] == 'YES'
        assert resp.json['newBalance'] == 9

    def test_vote_requires_auth(self, client, claim):
        resp = client.post(f'/api/claims/{claim.id}/vote', json={'side': 'YES'})
        assert resp.status_code == 401

    def test_vote_twice(self, client, claim, user_headers):
        client.post(f'/api/claims/{claim.id}/vote', json={'side': 'YES'}, headers=user_headers)
        resp = client.post(f'/api/claims/{claim.id}/vote', json={'side': 'YES'}, headers=user_headers)
        assert resp.status_code == 409

        db.session.expire_all()
        market = Market.query.filter_by(claim_id=claim.id).one()
        assert (market.yes_votes, market.total_votes) == (1, 1)

    def test_vote_without_coins(self, client, claim, broke_headers):
        resp = client.post(f'/api/claims/{claim.id}/vote', json={'side': 'YES'}, headers=broke_headers)
        assert resp.status_code == 400
        assert 'Insufficient' in resp.json['error']

    def test_vote_bad_side(self, client, claim, user_headers):
        resp = client.post(f'/api/claims/{claim.id}/vote', json={'side': 'MAYBE'}, headers=user_headers)
        assert resp.status_code == 400
        assert ClaimVote.query.count() == 0

    def test_vote_on_resolved(self, client, resolved_claim, user_headers):
        resp = client.post(f'/api/claims/{resolved_claim.id}/vote', json={'side': 'YES'}, headers=user_headers)
        assert resp.status_code == 400

    def test_vote_unknown_claim(self, client, user_headers):
        resp = client.post('/api/claims/9999/vote', json={'side': 'YES'}, headers=user_headers)
        assert resp.status_code == 404


class TestEvidenceRoutes:
    def test_default_sort_is_relevance(self, client, claim, evidence):
        resp = client.get(f'/api/claims/{claim.id}/evidence')
        assert resp.status_code == 200
        assert resp.json['claimId'] == claim.id
        assert resp.json['count'] == 4
        assert [e['paperTitle'] for e in resp.json['evidence']] == ['Trial A', 'Cohort B', 'Meta C', 'Series D']

    def test_recency(self, client, claim, evidence):
        resp = client.get(f'/api/claims/{claim.id}/evidence?sort=recency')
        assert [e['paperTitle'] for e in resp.json['evidence']] == ['Series D', 'Meta C', 'Cohort B', 'Trial A']

    def test_study_type(self, client, claim, evidence):
        resp = client.get(f'/api/claims/{claim.id}/evidence?sort=studyType')
        assert [e['studyType'] for e in resp.json['evidence']] == ['Case series', 'Cohort', 'Meta-analysis', 'RCT']

    def test_stance_filter(self, client, claim, evidence):
        resp = client.get(f'/api/claims/{claim.id}/evidence?stance=SUPPORTS')
        assert resp.json['count'] == 2
        assert all(e['stance'] == 'SUPPORTS' for e in resp.json['evidence'])

    def test_invalid_stance(self, client, claim):
        assert client.get(f'/api/claims/{claim.id}/evidence?stance=INVALID').status_code == 400

    def test_invalid_sort_and_limit(self, client, claim):
        assert client.get(f'/api/claims/{claim.id}/evidence?sort=random').status_code == 400
        assert client.get(f'/api/claims/{claim.id}/evidence?limit=101').status_code == 400

    def test_limit(self, client, claim, evidence):
        resp = client.get(f'/api/claims/{claim.id}/evidence?limit=2')
        assert resp.json['count'] == 2

    def test_unknown_claim(self, client):
        assert client.get('/api/claims/9999/evidence').status_code == 404


class TestVerdictRoutes:
    def test_not_yet_available(self, client, claim):
        resp = client.get(f'/api/claims/{claim.id}/verdict')
        assert resp.status_code == 200
        assert resp.json['available'] is False

    def test_locked_shows_first_sentence(self, client, resolved_claim):
        resp = client.get(f'/api/claims/{resolved_claim.id}/verdict')
        assert resp.json['verdict'] == 'Supported'
        assert resp.json['unlocked'] is False
        assert resp.json['shortSummary'] == 'Walking programs reduce systolic pressure by about 4 mmHg.'
        assert 'detailedSummary' not in resp.json

    def test_unlock_then_detailed(self, client, resolved_claim, user_headers):
        url = f'/api/claims/{resolved_claim.id}/unlock-analysis'
        first = client.post(url, headers=user_headers)
        assert first.status_code == 200
        assert first.json['alreadyUnlocked'] is False
        assert first.json['newBalance'] == 5

        second = client.post(url, headers=user_headers)
        assert second.json['alreadyUnlocked'] is True
        assert second.json['newBalance'] == 5

        resp = client.get(f'/api/claims/{resolved_claim.id}/verdict', headers=user_headers)
        assert resp.json['unlocked'] is True
        assert resp.json['detailedSummary'].startswith('Walking programs')

    def test_unlock_while_researching(self, client, researching_claim, user_headers):
        resp = client.post(f'/api/claims/{researching_claim.id}/unlock-analysis', headers=user_headers)
        assert resp.status_code == 400

    def test_unlock_without_coins(self, client, resolved_claim, broke_headers):
        resp = client.post(f'/api/claims/{resolved_claim.id}/unlock-analysis', headers=broke_headers)
        assert resp.status_code == 400


class TestCoinRoutes:
    def test_daily_login_idempotent(self, client, user_headers):
        first = client.post('/api/coins/daily-login', headers=user_headers)
        assert first.status_code == 200
        assert first.json['success'] is True
        assert first.json['newBalance'] == 12

        second = client.post('/api/coins/daily-login', headers=user_headers)
        assert second.status_code == 200
        assert second.json['success'] is False
        assert second.json['newBalance'] == 12

    def test_daily_login_requires_auth(self, client):
        assert client.post('/api/coins/daily-login').status_code == 401

    def test_history(self, client, claim, user_headers):
        client.post(f'/api/claims/{claim.id}/vote', json={'side': 'YES'}, headers=user_headers)

        resp = client.get('/api/coins/history', headers=user_headers)
        assert resp.status_code == 200
        assert resp.json['count'] == 2
        assert resp.json['transactions'][0]['type'] == 'VOTE_SPEND'
        assert resp.json['transactions'][0]['balanceAfter'] == 9

        filtered = client.get('/api/coins/history?type=ADMIN_GRANT', headers=user_headers)
        assert filtered.json['count'] == 1

    def test_history_bad_params(self, client, user_headers):
        assert client.get('/api/coins/history?type=BOGUS', headers=user_headers).status_code == 400
        assert client.get('/api/coins/history?limit=500', headers=user_headers).status_code == 400
        assert client.get('/api/coins/history?offset=-1', headers=user_headers).status_code == 400

    def test_balance(self, client, user_headers):
        resp = client.get('/api/coins/balance', headers=user_headers)
        assert resp.json['balance'] == 10
