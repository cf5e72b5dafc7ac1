# backend/pointhub/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Service code logs state transitions at INFO through app.logger
    app.logger.setLevel(app.config["LOG_LEVEL"])

    db.init_app(app)
    migrate.init_app(app, db)

    # Models must be imported before create_all / Alembic autogenerate
    from . import models  # noqa: F401

    from .cli import register_commands
    register_commands(app)

    return app
