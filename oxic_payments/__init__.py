from flask import Flask, jsonify
from flask_cors import CORS

from oxic_payments import extensions
from oxic_payments.config import config
from oxic_payments.errors import AppError
from oxic_payments.utils.logger import RequestLogger
from oxic_payments.utils.security import add_security_headers


def create_app(config_name='development', rate_limiter=None, transaction_manager=None):
    """
    Application factory pattern

    Args:
        config_name: Key into config (development, production, testing)
        rate_limiter: Optional RateLimiter to use instead of a fresh one
        transaction_manager: Optional TransactionManager to use instead of a fresh one
    """
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config[config_name])

    # Initialize in-memory stores
    extensions.init_app(app, rate_limiter=rate_limiter, transaction_manager=transaction_manager)

    CORS(
        app,
        resources={r'/api/*': {'origins': app.config['CORS_ORIGINS']}},
        methods=['GET', 'POST', 'OPTIONS'],
        allow_headers=['Content-Type', 'Authorization'],
        max_age=86400,
    )
    RequestLogger(app)
    app.after_request(add_security_headers)

    # Register blueprints
    from oxic_payments.api import register_blueprints
    register_blueprints(app)

    # Error handlers
    register_error_handlers(app)

    return app


def register_error_handlers(app):
    """Register error handlers"""

    @app.errorhandler(AppError)
    def app_error(error):
        response = jsonify({'success': False, 'error': error.message})
        if error.status_code == 429:
            response.headers['Retry-After'] = str(app.config['RATE_LIMIT_WINDOW_SECONDS'])
        return response, error.status_code

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({'success': False, 'error': 'Bad request'}), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'success': False, 'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'success': False, 'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'success': False, 'error': 'Internal server error'}), 500
