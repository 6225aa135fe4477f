import pytest


@pytest.fixture
def tight_read_limit(app):
    original = app.config['RATE_LIMIT_READ']
    app.config['RATE_LIMIT_READ'] = '2 per minute'
    yield
    app.config['RATE_LIMIT_READ'] = original


class TestRateLimit:
    def test_read_tier_throttles(self, client, tight_read_limit):
        assert client.get('/api/claims').status_code == 200
        assert client.get('/api/claims').status_code == 200

        resp = client.get('/api/claims')
        assert resp.status_code == 429
        assert resp.json['error'] == 'Too many requests. Please try again shortly.'

    def test_tier_is_shared_across_routes(self, client, claim, tight_read_limit):
        client.get('/api/claims')
        client.get(f'/api/claims/{claim.id}/evidence')
        assert client.get(f'/api/claims/{claim.id}').status_code == 429

    def test_other_tiers_unaffected(self, client, user_headers, tight_read_limit):
        for _ in range(3):
            client.get('/api/claims')
        assert client.post('/api/coins/daily-login', headers=user_headers).status_code == 200

    def test_throttled_before_business_logic(self, client, user_headers, tight_read_limit):
        client.get('/api/coins/balance', headers=user_headers)
        client.get('/api/coins/balance', headers=user_headers)
        assert client.get('/api/coins/history?type=BOGUS', headers=user_headers).status_code == 429
