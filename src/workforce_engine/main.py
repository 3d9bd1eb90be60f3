from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .container import Container, build_container
from .core.exceptions import DomainError
from .database.bootstrap import apply_schema, list_tables
from .leave.controller import register as register_leave
from .logging_config import configure_logging
from .payroll.controller import register as register_payroll
from .settings import EngineSettings

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "VALIDATION_ERROR": 400,
    "INVALID_RANGE": 400,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "INVALID_STATE": 409,
    "INSUFFICIENT_BALANCE": 409,
    "DUPLICATE_CHECK_IN": 409,
    "NO_OPEN_CHECK_IN": 409,
    "IMMUTABLE_RECORD": 409,
    "CORRUPT_RECORD": 500,
    "SERVER_ERROR": 503,
}


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        status = STATUS_BY_KIND.get(exc.kind, 400)
        if status >= 500:
            logger.error("Request failed: %s", exc.message)
        return jsonify({"error": exc.to_dict()}), status

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": {"kind": exc.name.upper().replace(" ", "_"), "message": exc.description}}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        logger.exception("Unhandled error")
        return jsonify({"error": {"kind": "SERVER_ERROR", "message": "Internal server error"}}), 500


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        engine_settings = EngineSettings.from_mapping(getattr(settings, "ENGINE", {}))
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

        container = build_container(db_config=db_config, settings=engine_settings)

    app.extensions["workforce_engine"] = container

    @app.route("/api/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "ok"})

    register_attendance(app, container)
    register_leave(app, container)
    register_payroll(app, container)
    _register_error_handlers(app)

    return app
