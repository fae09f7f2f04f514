# backend/thriftshop/__init__.py
import os

from flask import Flask, request, jsonify

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    if not app.config.get("UPLOAD_FOLDER"):
        app.config["UPLOAD_FOLDER"] = os.path.join(app.instance_path, "uploads")

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Outbound collaborators; tests replace these on app.extensions
    from .services.storage_service import build_storage
    from .services.shipping_service import RajaOngkirClient
    from .services.mail_service import ResendMailer
    from .services.identity_service import GoogleIdentityVerifier

    timeout = float(app.config["HTTP_TIMEOUT_SECONDS"])
    app.extensions["storage"] = build_storage(app.config)
    app.extensions["shipping"] = RajaOngkirClient(
        api_key=app.config["RAJAONGKIR_API_KEY"],
        base_url=app.config["RAJAONGKIR_BASE_URL"],
        courier=app.config["RAJAONGKIR_COURIER"],
        timeout=timeout,
    )
    app.extensions["mailer"] = ResendMailer(
        api_key=app.config["RESEND_API_KEY"],
        sender=app.config["MAIL_SENDER"],
    )
    app.extensions["identity"] = GoogleIdentityVerifier(
        client_id=app.config["GOOGLE_CLIENT_ID"],
        timeout=timeout,
    )

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.auth import auth_bp
    from .routes.account import account_bp
    from .routes.users import users_bp
    from .routes.shipping import shipping_bp
    from .routes.uploads import uploads_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(account_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(shipping_bp)
    app.register_blueprint(uploads_bp)

    @app.errorhandler(404)
    def not_found(_e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(_e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def request_too_large(_e):
        return jsonify({"error": "Upload too large"}), 413

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
