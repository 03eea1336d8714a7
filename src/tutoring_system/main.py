from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from .common.logging_setup import setup_logging
from .config import get_settings_module
from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables
from .database.connection import DBConfig, DatabaseConnection
from .deductions.controller import register as register_deductions
from .lessons.controller import register as register_lessons
from .packages.controller import register as register_packages
from .payments.controller import register as register_payments
from .purchases.controller import register as register_purchases
from .reports.controller import register as register_reports
from .students.controller import register as register_students

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["BUSINESS_NAME"] = getattr(settings, "BUSINESS_NAME", "Tutoring")
    app.config["DEFAULT_CURRENCY"] = getattr(settings, "DEFAULT_CURRENCY", "USD")

    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"), getattr(settings, "LOG_FILE", None))
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
            apply_schema(conn)
            logger.info("schema ready (tables=%d)", len(list_tables(conn)))
        container = build_container(db_config=db_config)

    @app.route("/api/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"success": True, "status": "ok"})

    register_students(app, container)
    register_lessons(app, container)
    register_payments(app, container)
    register_packages(app, container)
    register_purchases(app, container)
    register_deductions(app, container)
    register_reports(app, container)

    return app
