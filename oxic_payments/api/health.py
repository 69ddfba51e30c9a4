"""
Health Check and System Monitoring Endpoints
"""

from flask import Blueprint, jsonify
from datetime import datetime, timezone
import os
import psutil

from oxic_payments.extensions import get_rate_limiter, get_transaction_manager
from oxic_payments.providers.mpesa_provider import validate_mpesa_config

health_bp = Blueprint('health', __name__)

SERVICE_NAME = 'oxic-payments'
VERSION = '1.0.0'


def _now():
    return datetime.now(timezone.utc).isoformat()


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Basic health check endpoint

    Returns:
        200 if M-Pesa is configured
        503 if payments cannot be taken
    """
    mpesa = validate_mpesa_config()

    checks = {
        'mpesa_config': {
            'status': 'healthy' if mpesa['is_valid'] else 'unhealthy',
            'missing': mpesa['missing']
        },
        # Per-instance state, not shared across workers
        'memory_state': {
            'status': 'healthy',
            'tracked_transactions': len(get_transaction_manager()),
            'rate_limited_clients': len(get_rate_limiter())
        }
    }

    healthy = mpesa['is_valid']

    return jsonify({
        'status': 'healthy' if healthy else 'unhealthy',
        'timestamp': _now(),
        'service': SERVICE_NAME,
        'version': VERSION,
        'checks': checks
    }), 200 if healthy else 503


@health_bp.route('/health/live', methods=['GET'])
def liveness_probe():
    """
    Liveness probe
    Returns 200 if the application is running
    """
    return jsonify({
        'status': 'alive',
        'timestamp': _now()
    }), 200


@health_bp.route('/metrics', methods=['GET'])
def metrics():
    """
    Basic process metrics and transaction counts by status
    """
    process = psutil.Process()
    memory = psutil.virtual_memory()

    return jsonify({
        'timestamp': _now(),
        'system': {
            'cpu_percent': psutil.cpu_percent(interval=None),
            'memory': {
                'total': memory.total,
                'available': memory.available,
                'percent': memory.percent
            },
            'process': {
                'pid': os.getpid(),
                'threads': process.num_threads(),
                'rss': process.memory_info().rss
            }
        },
        'application': {
            'transactions': get_transaction_manager().count_by_status(),
            'rate_limited_clients': len(get_rate_limiter())
        }
    }), 200


@health_bp.route('/version', methods=['GET'])
def version():
    """
    Get application version information
    """
    return jsonify({
        'service': SERVICE_NAME,
        'version': VERSION,
        'environment': os.getenv('FLASK_ENV', 'production')
    }), 200
