"""
Pytest Configuration and Fixtures
"""
import json
from types import SimpleNamespace
from unittest.mock import Mock, patch

import pytest

from oxic_payments import create_app
from oxic_payments.services.transaction_manager import TransactionManager
from oxic_payments.utils.security import RateLimiter


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def mock_http_response(json_data, status_code=200):
    """Return a mock requests.Response whose .json() returns json_data."""
    resp = Mock()
    resp.ok = 200 <= status_code < 400
    resp.status_code = status_code
    resp.json.return_value = json_data
    resp.text = json.dumps(json_data)
    resp.headers = {'Content-Type': 'application/json'}
    return resp


def stk_success_response(checkout_id='ws_CO_191220191020363925', merchant_id='29115-34620561-1'):
    return mock_http_response({
        'MerchantRequestID': merchant_id,
        'CheckoutRequestID': checkout_id,
        'ResponseCode': '0',
        'ResponseDescription': 'Success. Request accepted for processing',
        'CustomerMessage': 'Success. Request accepted for processing',
    })


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    return RateLimiter(max_requests=5, window_seconds=60, clock=clock)


@pytest.fixture
def tracker():
    return TransactionManager(prefix='OXIC')


@pytest.fixture
def app(rate_limiter, tracker):
    """Create application for testing with isolated in-memory stores"""
    app = create_app('testing', rate_limiter=rate_limiter, transaction_manager=tracker)

    ctx = app.app_context()
    ctx.push()

    yield app

    ctx.pop()


@pytest.fixture
def client(app):
    """Create a test client"""
    return app.test_client()


@pytest.fixture
def mpesa_env(monkeypatch):
    """Complete sandbox M-Pesa configuration in the environment"""
    values = {
        'MPESA_CONSUMER_KEY': 'test_consumer_key',
        'MPESA_CONSUMER_SECRET': 'test_consumer_secret',
        'MPESA_PASSKEY': 'test_passkey',
        'MPESA_SHORTCODE': '174379',
        'MPESA_ENV': 'sandbox',
        'MPESA_CALLBACK_URL': 'https://oxicinternational.co.ke/api/mpesa/callback',
    }
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv('MPESA_ALLOW_DEGRADED_AUTH', raising=False)
    return values


@pytest.fixture
def daraja():
    """
    Patch the two outbound Daraja calls.

    OAuth goes through requests.get; the STK push through requests.Session.post.
    """
    token_resp = mock_http_response({'access_token': 'daraja_tok_abc', 'expires_in': '3599'})

    with patch('oxic_payments.providers.mpesa_provider.requests.get',
               return_value=token_resp) as mock_get, \
            patch('oxic_payments.providers.mpesa_provider.requests.Session.post',
                  return_value=stk_success_response()) as mock_post:
        yield SimpleNamespace(get=mock_get, post=mock_post, response=mock_http_response)
