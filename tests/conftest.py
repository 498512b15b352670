import hashlib
import hmac
import json
import time

import pytest
from fastapi.testclient import TestClient

from svip_subscription_svc.app import create_app
from svip_subscription_svc.config import Settings

WEBHOOK_SECRET = 'whsec_test_secret'


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header the way Stripe signs webhook deliveries."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload}".encode('utf-8')
    signature = hmac.new(secret.encode('utf-8'), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def make_event(event_type: str, obj: dict, event_id: str = 'evt_test') -> str:
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": 1234567890,
        "data": {"object": obj},
    })


@pytest.fixture
def settings(monkeypatch):
    monkeypatch.setenv('ENVIRONMENT', 'development')
    monkeypatch.setenv('DATABASE_URL', 'sqlite://')
    monkeypatch.setenv('STRIPE_API_KEY', 'sk_test_dummy')
    monkeypatch.setenv('STRIPE_WEBHOOK_SECRET', WEBHOOK_SECRET)
    return Settings()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session(app, client):
    db = app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
