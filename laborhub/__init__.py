import logging
import os

from dotenv import load_dotenv
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from laborhub.config import config_by_env
from laborhub.errors import register_error_handlers
from laborhub.extensions import db, limiter, login_manager, migrate
from laborhub.routes.api.v1 import api_v1_bp


def create_app(env=None):
    load_dotenv()
    env = env or os.getenv("FLASK_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_by_env.get(env, config_by_env["development"]))
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)
    app.logger.setLevel(getattr(logging, app.config["LOG_LEVEL"], logging.INFO))

    project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if db_uri.startswith("sqlite:///") and not db_uri.startswith("sqlite:////") and db_uri != "sqlite:///:memory:":
        relative_path = db_uri.replace("sqlite:///", "", 1)
        absolute_path = os.path.join(project_root, relative_path)
        os.makedirs(os.path.dirname(absolute_path), exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{absolute_path}"

    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    login_manager.init_app(app)
    _init_sentry(app)

    register_error_handlers(app)
    app.register_blueprint(api_v1_bp, url_prefix="/api/v1")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    if env == "development":
        with app.app_context():
            db.create_all()

    app.logger.info("laborhub started in %s mode", env)
    return app


def _init_sentry(app):
    dsn = app.config.get("SENTRY_DSN")
    if not dsn:
        return
    try:
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.05")),
            environment=os.getenv("FLASK_ENV", "production"),
        )
        app.logger.info("Sentry initialized.")
    except Exception as exc:
        app.logger.warning("Sentry initialization failed: %s", exc)
