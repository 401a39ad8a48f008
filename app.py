import logging
import os

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from config import Config
from extensions import db, mail, migrate, limiter
from utils.cache import init_cache

from routes.auth_routes import auth_bp
from routes.fee_routes import fee_bp
from routes.student_routes import student_bp
from routes.attendance_routes import attendance_bp
from routes.birthday_routes import birthday_bp
from routes.media_routes import media_bp


def _configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    app.logger.setLevel(level)


def _register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def _http_error(exc):
        return jsonify({"error": exc.description or exc.name}), exc.code

    @app.errorhandler(429)
    def _rate_limited(exc):
        return jsonify({"error": "Too many requests, try again later"}), 429

    @app.errorhandler(500)
    def _server_error(exc):
        db.session.rollback()
        app.logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error"}), 500


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    _configure_logging(app)

    if app.config.get("TRUST_PROXY", True):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    db.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)
    limiter.init_app(app)
    init_cache(app)

    # Set security headers on every JSON response
    @app.after_request
    def _set_security_headers(resp):
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
        resp.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        resp.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        if app.config.get("SESSION_COOKIE_SECURE", False):
            resp.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return resp

    _register_error_handlers(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(fee_bp)
    app.register_blueprint(student_bp)
    app.register_blueprint(attendance_bp)
    app.register_blueprint(birthday_bp)
    app.register_blueprint(media_bp)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    if app.config.get("AUTO_CREATE_TABLES"):
        with app.app_context():
            import models  # noqa: F401
            db.create_all()

    if app.config.get("SCHEDULER_ENABLED") and not app.config.get("TESTING"):
        from scheduler import start_scheduler

        app.extensions["scheduler"] = start_scheduler(app)

    return app


if __name__ == "__main__":
    create_app().run(debug=os.environ.get("FLASK_DEBUG") == "1")
