import logging

import click
from flask import Flask, request, g
from flask_migrate import Migrate

from config import Config
from models import db
from routes import ALL_BLUEPRINTS
from security.csrf import require_csrf
from utils.aggregates import recount_all
from utils.auth_context import load_current_user
from utils.errors import register_error_handlers

log = logging.getLogger(__name__)

CSRF_EXEMPT_PATHS = {
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/forgot-password",
    "/api/auth/reset-password",
    "/health",
}


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=getattr(logging, app.config.get("LOG_LEVEL", "INFO"), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    for bp in ALL_BLUEPRINTS:
        app.register_blueprint(bp)

    db.init_app(app)
    Migrate(app, db)

    register_error_handlers(app)

    @app.before_request
    def _load_user():
        load_current_user()

    @app.before_request
    def _csrf_protect():
        # only state-changing requests from a cookie session
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if request.path in CSRF_EXEMPT_PATHS:
                return None
            if getattr(g, "user", None) is not None:
                require_csrf()

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    log.info("tutorslot app created (%d blueprints)", len(ALL_BLUEPRINTS))
    return app


def register_cli(app):
    @app.cli.command("recount-aggregates")
    def recount_aggregates():
        """Rebuild teacher-student and teacher lesson counters from the lessons table."""
        pairs = recount_all()
        click.echo(f"Recounted {pairs} teacher-student pairs")


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
