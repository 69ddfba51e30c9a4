"""
API Blueprints Package
Registers all API blueprints
"""

from oxic_payments.api.mpesa import mpesa_bp
from oxic_payments.api.health import health_bp
from oxic_payments.api.diagnostics import diagnostics_bp

# Export blueprints
__all__ = [
    'mpesa_bp',
    'health_bp',
    'diagnostics_bp',
    'register_blueprints'
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app

    The credential diagnostics blueprint is only mounted in debug mode.

    Args:
        app: Flask application instance
    """

    url_base : str = '/api'

    app.register_blueprint(mpesa_bp, url_prefix=f'{url_base}/mpesa')
    app.register_blueprint(health_bp, url_prefix=url_base)

    if app.config.get('DEBUG'):
        app.register_blueprint(diagnostics_bp, url_prefix=f'{url_base}/mpesa')
