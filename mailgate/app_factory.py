"""Flask Application Factory for the mail gateway."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env.local first (priority), then .env (fallback)
project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env.local", override=True)
load_dotenv(project_root / ".env", override=False)

from flask import Flask, request
from flask_login import LoginManager, UserMixin
from sqlalchemy import text
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix
from datetime import datetime, UTC
import importlib
import logging

from mailgate.helpers import api_error, configure_database, get_db_session, get_user
from mailgate.helpers.rate_limit import limiter

logger = logging.getLogger(__name__)

env_validator = importlib.import_module(".00_env_validator", "mailgate")
encryption = importlib.import_module(".08_encryption", "mailgate")

DEFAULT_DATABASE_URL = "sqlite:///mailgate.db"
DEV_SECRET_KEY = "dev-secret-key-change-in-production"


def _env_flag(name, default="false"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _load_config(app, config_name):
    testing = config_name == "testing"

    app.config["TESTING"] = testing
    app.config["SECRET_KEY"] = os.getenv("FLASK_SECRET_KEY", DEV_SECRET_KEY)
    app.config["DATABASE_URL"] = "sqlite://" if testing else os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    app.config["MAIL_ENCRYPTION_KEY"] = encryption.resolve_secret()
    app.config["MAIL_CONNECT_TIMEOUT"] = float(os.getenv("MAIL_CONNECT_TIMEOUT", "15"))
    app.config["MAIL_AUTH_TIMEOUT"] = float(os.getenv("MAIL_AUTH_TIMEOUT", "15"))
    app.config["MAIL_TLS_VERIFY"] = _env_flag("MAIL_TLS_VERIFY")
    app.config["MAIL_FOLDER_DELIMITER"] = os.getenv("MAIL_FOLDER_DELIMITER", "/")

    app.config["RATELIMIT_ENABLED"] = not testing
    app.config["RATELIMIT_STORAGE_URI"] = os.getenv("RATE_LIMIT_STORAGE", "memory://")
    app.config["RATELIMIT_DEFAULT"] = os.getenv("RATE_LIMIT_DEFAULT", "100 per minute")

    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_SECURE"] = not testing and _env_flag("SESSION_COOKIE_SECURE", "true")


class UserWrapper(UserMixin):
    """Wrapper für SQLAlchemy User-Model"""

    def __init__(self, user_model):
        self.id = user_model.id
        self.username = user_model.username

    def get_id(self):
        return str(self.id)


def create_app(config_name="production"):
    """Create and configure the Flask application.

    Args:
        config_name: "production" or "testing" (in-memory SQLite, no rate limits,
            environment problems only warn)
    """
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if config_name != "testing":
        env_validator.validate_environment()

    app = Flask(__name__)
    _load_config(app, config_name)

    if _env_flag("BEHIND_REVERSE_PROXY"):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)
        logger.info("🔄 ProxyFix aktiviert - App läuft hinter Reverse Proxy")

    configure_database(app.config["DATABASE_URL"])

    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        """Load user by ID"""
        with get_db_session() as db:
            user = get_user(db, int(user_id))
            if user:
                return UserWrapper(user)
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return api_error("Unauthorized", status_code=401)

    limiter.init_app(app)
    if app.config["RATELIMIT_ENABLED"]:
        logger.info(f"🛡️  Rate Limiting aktiviert ({app.config['RATELIMIT_DEFAULT']})")

    @app.after_request
    def set_security_headers(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    @app.route("/health")
    def health():
        database = "ok"
        try:
            with get_db_session() as db:
                db.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Health check: Datenbank nicht erreichbar: {e}")
            database = "error"
        return {
            "status": "ok" if database == "ok" else "degraded",
            "timestamp": datetime.now(UTC).isoformat(),
            "services": {"api": "ok", "database": database},
        }, 200 if database == "ok" else 503

    @app.errorhandler(404)
    def not_found(e):
        return api_error("Not found", code="NOT_FOUND", status_code=404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error("Method not allowed", status_code=405)

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error("Too many requests", code="RATE_LIMITED", status_code=429)

    @app.errorhandler(Exception)
    def server_error(e):
        if isinstance(e, HTTPException):
            return api_error(e.description or e.name, status_code=e.code)
        logger.exception(f"Server error on {request.method} {request.path}: {e}")
        return api_error("Internal server error", status_code=500)

    from .blueprints import mail_bp

    app.register_blueprint(mail_bp)

    logger.info("✅ Flask App initialisiert")
    return app


def start_server(host="0.0.0.0", port=5000, debug=False):
    """Start Flask development server (Produktion: gunicorn, siehe config/gunicorn.conf.py)."""
    app = create_app()
    logger.info(f"🚀 Mailgate auf http://{host}:{port}")
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    start_server()
