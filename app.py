import logging

from flask import Flask
from config.config import Config
from extensions import db, migrate

# Model imports register the tables with SQLAlchemy
from models import (  # noqa: F401
    Subject, Student, Institution, Board, FormFillup,
    ExamMark, Result, ResultHistory, ResultRevalidationRequest,
)
from services.container import init_results
from utils.cli import results_cli


def create_app(config_object=Config, store=None, clock=None):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    # Initialize Extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Fingerprint store backend is chosen here and nowhere else
    init_results(app, store=store, clock=clock)

    app.cli.add_command(results_cli)

    return app

