"""
Pitchside - Flask Application

JSON API for football coaches: clubs and teams, players with development
plans, session planning, analytics and AI assistance.
"""

import os
import sys
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, request, jsonify, session
from flask_login import LoginManager
from flask_talisman import Talisman
from flask_wtf.csrf import CSRFError, generate_csrf
from werkzeug.middleware.proxy_fix import ProxyFix

from .access import AccessError, error_response
from .ai_routes import ai_bp
from .analytics_routes import analytics_bp
from .auth import UserSession
from .auth_routes import auth_bp
from .config import DATA_DIR, is_production
from .extensions import csrf, limiter
from .methodology_routes import methodology_bp
from .routes import bp
from .session_routes import session_bp
from .storage import StorageManager

# Load environment variables from .env file
load_dotenv()

CSRF_ERROR_MESSAGE = 'CSRF token missing or invalid. Please refresh the page and try again.'


def _secret_key() -> str:
    # SECRET_KEY must be set via environment variable - no default fallback
    secret_key = os.environ.get('SECRET_KEY', '').strip()
    if not secret_key:
        raise RuntimeError(
            "SECRET_KEY environment variable must be set. "
            "Generate a secure key with: python -c 'import secrets; print(secrets.token_hex(32))'"
        )
    if len(secret_key) < 32:
        raise RuntimeError(
            f"SECRET_KEY must be at least 32 characters. Current length: {len(secret_key)}. "
            "Generate a secure key with: python -c 'import secrets; print(secrets.token_hex(32))'"
        )
    return secret_key


def create_app(test_config=None):
    """Create and configure the Flask application.

    test_config overrides configuration after the environment is read; tests
    use it to point DATA_DIR at a temporary directory and to switch off CSRF
    and rate limiting.
    """
    app = Flask(__name__)
    production = is_production()

    app.config['SECRET_KEY'] = _secret_key()
    app.config['JSON_AS_ASCII'] = False
    app.config['MAX_CONTENT_LENGTH'] = 16 * 1024 * 1024
    app.config['DATA_DIR'] = DATA_DIR

    # Secure session cookie configuration
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SECURE'] = production
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['REMEMBER_COOKIE_HTTPONLY'] = True
    app.config['REMEMBER_COOKIE_SECURE'] = production
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=7)
    app.config['WTF_CSRF_TIME_LIMIT'] = None

    if test_config:
        app.config.update(test_config)

    storage = StorageManager(app.config['DATA_DIR'])
    app.extensions['storage'] = storage

    login_manager = LoginManager()
    login_manager.init_app(app)
    login_manager.session_protection = 'basic'

    @login_manager.user_loader
    def load_user(user_id):
        coach = storage.get_coach(user_id)
        if coach and coach.is_active:
            return UserSession(coach)
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return error_response('Authentication required', 401)

    csrf.init_app(app)
    limiter.init_app(app)

    Talisman(
        app,
        force_https=production,
        strict_transport_security=production,
        strict_transport_security_max_age=31536000,
        strict_transport_security_include_subdomains=True,
        session_cookie_secure=production,
        content_security_policy={
            'default-src': "'none'",
            'frame-ancestors': "'none'",
        },
        frame_options='DENY',
        referrer_policy='strict-origin-when-cross-origin',
    )

    # Handle reverse proxy headers (X-Forwarded-*)
    num_proxies = int(os.environ.get('PROXY_FIX_NUM_PROXIES', '1'))
    if num_proxies > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=num_proxies, x_proto=num_proxies, x_host=num_proxies)
        app.logger.info(f"ProxyFix enabled with {num_proxies} proxy(ies)")

    app.register_blueprint(auth_bp)
    app.register_blueprint(bp)
    app.register_blueprint(session_bp)
    app.register_blueprint(methodology_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(ai_bp)

    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint for load balancers and monitoring"""
        return jsonify({'status': 'healthy', 'service': 'Pitchside'}), 200

    @app.route('/api/csrf-token', methods=['GET'])
    def get_csrf_token():
        """CSRF token for JSON API clients; send it back in the X-CSRFToken header"""
        session.permanent = True
        return jsonify({'csrf_token': generate_csrf()})

    @app.errorhandler(AccessError)
    def handle_access_error(e):
        return error_response(e.message, e.status_code)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF error on {request.path}: {e.description}")
        return error_response(CSRF_ERROR_MESSAGE, 400)

    @app.errorhandler(400)
    def handle_400_error(e):
        description = getattr(e, 'description', None) or 'Bad request'
        return error_response(str(description), 400)

    @app.errorhandler(404)
    def handle_404_error(e):
        if request.path.startswith('/api/') or request.path.startswith('/auth/'):
            return error_response('Endpoint not found', 404)
        return e

    @app.errorhandler(429)
    def handle_429_error(e):
        return error_response('Too many requests. Please slow down and try again.', 429)

    @app.errorhandler(500)
    def handle_500_error(e):
        """Generic message to the client; details stay in the server log"""
        app.logger.error(f"500 error on {request.path}: {e}", exc_info=True)
        return error_response('An internal error occurred. Please try again later.', 500)

    return app


def main():
    """Main entry point - Development only"""
    # Prevent running the Flask dev server in production
    if is_production():
        print("ERROR: Flask development server cannot run in production mode.")
        print("Use gunicorn instead:")
        print("  gunicorn -c gunicorn.conf.py wsgi:app")
        sys.exit(1)

    app = create_app()

    print("Pitchside API starting in DEVELOPMENT mode at http://127.0.0.1:8080")
    print("Press Ctrl+C to stop the application")
    print()
    print("WARNING: This is the development server. For production, use:")
    print("  gunicorn -c gunicorn.conf.py wsgi:app")

    try:
        app.run(host='127.0.0.1', port=int(os.environ.get('PORT', 8080)), debug=False)
    except KeyboardInterrupt:
        print("\nShutting down Pitchside...")


if __name__ == '__main__':
    main()
