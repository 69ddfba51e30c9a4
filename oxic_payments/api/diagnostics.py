"""
M-Pesa Credential Diagnostics
Development-only endpoint; create_app registers it only when DEBUG is on.
"""

from datetime import datetime, timezone

from flask import Blueprint, jsonify

from oxic_payments.errors import AppError
from oxic_payments.providers import get_provider
from oxic_payments.providers.mpesa_provider import get_mpesa_config
from oxic_payments.utils.logger import get_logger

diagnostics_bp = Blueprint('diagnostics', __name__)
logger = get_logger(__name__)


def _mask(value: str) -> dict:
    return {
        'present': bool(value),
        'length': len(value),
        'prefix': value[:5],
        'suffix': value[-5:] if len(value) > 5 else '',
    }


@diagnostics_bp.route('/test-credentials', methods=['GET'])
def test_credentials():
    """
    Check that the M-Pesa consumer key/secret can obtain an OAuth token

    Returns:
        200 with token details when Daraja issues a token
        400 when credentials are missing or rejected
    """
    config = get_mpesa_config()

    diagnostics = {
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'environment': config.environment,
        'credentials': {
            'consumer_key': _mask(config.consumer_key),
            'consumer_secret': _mask(config.consumer_secret),
            'passkey_present': bool(config.passkey),
            'shortcode': config.shortcode,
            'callback_url': config.callback_url,
            'allow_degraded_auth': config.allow_degraded_auth,
        }
    }

    if not config.consumer_key or not config.consumer_secret:
        return jsonify({
            'success': False,
            'error': 'Missing credentials',
            'diagnostics': diagnostics
        }), 400

    provider = get_provider('mpesa')
    diagnostics['oauth_url'] = f'{provider.base_url}{provider._EP_AUTH}?grant_type=client_credentials'

    try:
        token = provider.get_access_token()
    except AppError as e:
        logger.error(f'M-Pesa credentials test failed: {e.message}')
        diagnostics['result'] = {
            'success': False,
            'error': 'Failed to obtain access token',
            'message': e.message
        }
        return jsonify({'success': False, 'diagnostics': diagnostics}), 400

    diagnostics['result'] = {
        'success': True,
        'message': 'Credentials are valid! Access token obtained.',
        'token_length': len(token),
        'token_prefix': token[:10]
    }
    return jsonify({'success': True, 'diagnostics': diagnostics}), 200
