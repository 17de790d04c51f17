"""
Puzzle Craft
Flask application factory
"""
import os
import re
import logging
from flask import Flask
from flask_cors import CORS

from .extensions import db, migrate, database
from .config import get_config, validate_config
from .utils.cache import init_cache
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

# Any storefront origin containing one of these may post game results
STOREFRONT_ORIGIN_PATTERNS = [
    re.compile(r'.*\.myshopify\.com'),
    re.compile(r'.*shopify\.com'),
    re.compile(r'.*trycloudflare\.com'),
]


def create_app(config_name: str = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    validate_config(config_name)

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    # Setup logging before anything else touches the app
    setup_logging(app.config.get('LOG_LEVEL'))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Initialize caching (Redis with graceful fallback)
    init_cache(app)

    configure_cors(app)

    # Register blueprints
    register_blueprints(app)

    # Register CLI commands
    from .commands import init_app as init_commands
    init_commands(app)

    # Register error handlers
    register_error_handlers(app)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        status = database.status()
        healthy = status['state'] == 'connected'
        body = {
            'status': 'healthy' if healthy else 'degraded',
            'service': 'puzzlecraft',
            'database': status,
        }
        return body, 200 if healthy else 503

    @app.route('/')
    def index():
        return {'service': 'Puzzle Craft', 'status': 'running'}

    return app


def configure_cors(app: Flask) -> None:
    """
    Per-route CORS.

    The config endpoint is readable from anywhere. Game submissions are
    accepted from the configured storefront origins and Shopify-hosted
    origins. The admin API only answers the embedded admin frontend.
    """
    storefront_origins = list(app.config.get('STOREFRONT_ALLOWED_ORIGINS', [])) + STOREFRONT_ORIGIN_PATTERNS

    CORS(app, resources={
        r'/api/puzzle/config': {
            'origins': '*',
            'send_wildcard': True,
            'methods': ['GET', 'OPTIONS'],
        },
        r'/api/puzzle/submit': {
            'origins': storefront_origins,
            'methods': ['GET', 'POST', 'OPTIONS'],
            'allow_headers': ['Content-Type', 'Accept', 'Origin', 'X-Requested-With'],
            'max_age': 86400,
        },
        r'/api/*': {
            'origins': app.config.get('ADMIN_ALLOWED_ORIGINS', []),
            'supports_credentials': True,
            'allow_headers': ['Content-Type', 'Authorization', 'X-Shop-Domain'],
        },
    })


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    from .api.campaigns import campaigns_bp
    from .api.discount_codes import discount_codes_bp
    from .api.analytics import analytics_bp
    from .api.dashboard import dashboard_bp
    from .api.storefront import storefront_bp
    from .webhooks import app_lifecycle_bp

    # Admin routes
    app.register_blueprint(campaigns_bp, url_prefix='/api/campaigns')
    app.register_blueprint(discount_codes_bp, url_prefix='/api/discount-codes')
    app.register_blueprint(analytics_bp, url_prefix='/api/analytics')
    app.register_blueprint(dashboard_bp, url_prefix='/api/dashboard')

    # Public storefront widget routes
    app.register_blueprint(storefront_bp, url_prefix='/api/puzzle')

    # Webhook routes
    app.register_blueprint(app_lifecycle_bp, url_prefix='/webhooks')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from .utils.errors import exception_response, error_response, ErrorCode
    from .utils.exceptions import PuzzleCraftError

    @app.errorhandler(PuzzleCraftError)
    def handle_puzzlecraft_error(error):
        return exception_response(error)

    @app.errorhandler(400)
    def bad_request(error):
        return error_response('Bad request', ErrorCode.INVALID_REQUEST, 400, log_error=False)

    @app.errorhandler(404)
    def not_found(error):
        return error_response('Not found', ErrorCode.NOT_FOUND, 404, log_error=False)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response('Method not allowed', ErrorCode.INVALID_REQUEST, 405, log_error=False)

    @app.errorhandler(500)
    def internal_error(error):
        database.rollback()
        return error_response('Internal server error', ErrorCode.INTERNAL_ERROR, 500,
                              details={'cause': str(error)})
