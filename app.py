import logging

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from sqlalchemy import inspect

from config import Config
from routes import health_bp, auth_bp, admin_bp, audit_bp, season_bp, tee_time_bp, reservation_bp

from models import db
from models.user import User, Role
from security.csrf import csrf_protect
from security.rbac import ADMIN
from services import schedule, seasons
from services.errors import EmptyScheduleError, LeagueError
from utils.audit import log_event
from utils.seed import seed_roles
from utils.auth_context import load_current_user

logger = logging.getLogger(__name__)

# auth bootstrap endpoints run before any CSRF cookie exists
CSRF_EXEMPT_PATHS = frozenset({
    "/auth/login",
    "/auth/register",
    "/health",
})


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Register routes
    for bp in (health_bp, auth_bp, admin_bp, audit_bp, season_bp, tee_time_bp, reservation_bp):
        app.register_blueprint(bp)

    # Database + migrations
    db.init_app(app)
    Migrate(app, db)

    with app.app_context():
        if app.config.get("AUTO_CREATE_SCHEMA"):
            db.create_all()
        if inspect(db.engine).has_table("roles"):
            seed_roles()
        else:
            logger.warning("Schema missing; run `flask db upgrade` before serving requests")

    @app.before_request
    def _load_user():
        load_current_user()

    @app.before_request
    def _csrf_protect():
        csrf_protect(CSRF_EXEMPT_PATHS)

    @app.errorhandler(LeagueError)
    def _league_error(exc):
        body = {"error": exc.message}
        if exc.details:
            body.update(exc.details)
        return jsonify(body), exc.status_code

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app


def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Grant ADMIN to an existing member (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if user is None:
            click.echo("User not found")
            return

        admin_role = Role.query.filter_by(name=ADMIN).first()
        if admin_role is None:
            seed_roles()
            admin_role = Role.query.filter_by(name=ADMIN).one()

        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()
            log_event("ADMIN_GRANTED_CLI", entity="user", entity_id=user.id)

        click.echo(f"{user.email} promoted to ADMIN")

    @app.cli.command("set-active-season")
    @click.argument("year", type=int)
    def set_active_season(year):
        """Make the YEAR season the only active one."""
        try:
            season = seasons.set_active(seasons.get_season_by_year(year).id)
        except LeagueError as exc:
            raise click.ClickException(exc.message)
        log_event("SEASON_ACTIVATE", entity="season", entity_id=season.id, metadata={"source": "cli"})
        click.echo(f"Season {season.year} is now active")

    @app.cli.command("generate-schedule")
    @click.argument("year", type=int)
    def generate_schedule(year):
        """Create or refresh the YEAR season's tee times from its weekly template."""
        try:
            season = seasons.get_season_by_year(year)
            result = schedule.generate_schedule_from_template(season.id)
        except EmptyScheduleError as exc:
            click.echo(exc.message)
            return
        except LeagueError as exc:
            raise click.ClickException(exc.message)
        log_event("SCHEDULE_GENERATE", entity="season", entity_id=season.id,
                  metadata={"created": result.created, "updated": result.updated, "source": "cli"})
        click.echo(result.message)


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
