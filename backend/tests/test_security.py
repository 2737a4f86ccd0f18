from app.core.config import get_settings
from tests.conftest import client


def test_health_live_and_ready_endpoints():
    live = client.get('/health/live')
    ready = client.get('/health/ready')
    assert live.status_code == 200
    assert ready.status_code in (200, 503)
    assert 'status' in live.json()


def test_debug_schema_disabled_by_default():
    resp = client.get('/debug/schema')
    assert resp.status_code == 404


def test_http_error_envelope_shape():
    resp = client.get('/api/accounts')
    assert resp.status_code == 401
    body = resp.json()
    assert body['code'] == 'unauthorized'
    assert 'message' in body
    assert 'request_id' in body
    assert resp.headers['X-Request-ID'] == body['request_id']


def test_validation_error_envelope(auth_headers):
    resp = client.get('/api/accounts?page=0', headers=auth_headers)
    assert resp.status_code == 422
    body = resp.json()
    assert body['code'] == 'validation_error'
    assert body['details']['errors']


def test_register_restricted_when_public_disabled_after_first_user(monkeypatch):
    monkeypatch.setenv('ALLOW_PUBLIC_REGISTER', 'false')
    get_settings.cache_clear()
    try:
        first = client.post('/api/auth/register', json={
            'username': 'owner_init',
            'password': 'secret123',
            'full_name': 'Owner Init',
        })
        assert first.status_code == 201

        second = client.post('/api/auth/register', json={
            'username': 'someone_else',
            'password': 'secret123',
            'full_name': 'Someone Else',
        })
        assert second.status_code == 403
    finally:
        monkeypatch.undo()
        get_settings.cache_clear()
