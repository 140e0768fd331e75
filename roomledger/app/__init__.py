"""
app/__init__.py — Flask application factory.

create_app(config_name) creates and returns a configured Flask app.
Nothing is initialised at import time, so tests can build isolated app
instances and Alembic can import the metadata without starting a server.

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging from LOG_LEVEL
  3. Initialise extensions (SQLAlchemy, Marshmallow) via init_app()
  4. Build the ServiceRegistry (services + notification dispatcher)
  5. Register all route blueprints under /api/v1
  6. Register global error handlers (AppError → JSON, Exception → 500)
  7. Serialise Decimal as string in JSON responses
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

from flask import Flask, jsonify
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from roomledger.config import (
    active_config_name,
    config_by_name,
    validate_production_config,
)


class DecimalJSONProvider(DefaultJSONProvider):
    """
    Serialises Decimal as str so jsonify() never turns 10.50 into 10.5.

    Example: Decimal("10.50") → "10.50"
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str | None = None) -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to FLASK_ENV, then "development".
    """
    config_name = config_name or active_config_name()
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # Import here (not at module top) to avoid circular imports.
    from roomledger.app.extensions import db, ma
    db.init_app(app)
    ma.init_app(app)

    # Import all models so that SQLAlchemy's MetaData is populated.
    with app.app_context():
        from roomledger.app.models import (  # noqa: F401
            expense,
            group,
            notification,
            split,
            tenant,
            user,
        )

    _register_services(app)
    _register_blueprints(app)
    _register_error_handlers(app)

    return app


def _configure_logging(app: Flask) -> None:
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.getLogger("roomledger").setLevel(level)
    app.logger.setLevel(level)


def _register_services(app: Flask) -> None:
    """
    Builds the service objects once for this app.

    db.session is a scoped session proxy, so one ServiceRegistry serves
    every request and each request still gets its own session.
    """
    from roomledger.app.extensions import db
    from roomledger.app.registry import EXTENSION_KEY, build_services
    from roomledger.app.services.notification_service import build_dispatch

    dispatch = build_dispatch(app.config["NOTIFICATION_BACKEND"], db.session)
    app.extensions[EXTENSION_KEY] = build_services(db.session, dispatch)


def _register_blueprints(app: Flask) -> None:
    from roomledger.app.routes.expenses import expenses_bp
    from roomledger.app.routes.splits import splits_bp

    app.register_blueprint(expenses_bp, url_prefix="/api/v1/expenses")
    app.register_blueprint(splits_bp,   url_prefix="/api/v1/splits")


def _register_error_handlers(app: Flask) -> None:
    """
    Handlers:
      AppError        → structured JSON error envelope with its HTTP status
      ValidationError → marshmallow errors as MISSING_FIELD / INVALID_FIELD (400)
      SQLAlchemyError → PERSISTENCE_ERROR (500) after rolling the session back
      Exception       → INTERNAL_ERROR (500); traceback logged, never returned
    """
    from roomledger.app.errors import AppError, ErrorCode
    from roomledger.app.extensions import db

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        # Routes never catch AppError; they let it propagate here.
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """Reports the FIRST field error only."""
        messages = error.messages

        field = None
        raw_message = "Invalid input."
        code = ErrorCode.INVALID_FIELD

        if isinstance(messages, dict):
            for field_name, field_errors in messages.items():
                field = field_name if field_name != "_schema" else None

                if isinstance(field_errors, list):
                    raw_message = field_errors[0] if field_errors else "Invalid value."
                else:
                    raw_message = str(field_errors)

                if raw_message in vars(ErrorCode).values():
                    code = raw_message
                elif str(raw_message).startswith("Missing data for required field"):
                    code = ErrorCode.MISSING_FIELD
                break
        elif isinstance(messages, list):
            raw_message = messages[0] if messages else "Invalid input."
            if raw_message in vars(ErrorCode).values():
                code = raw_message

        response_body = {
            "error": {
                "code": code,
                "message": _code_to_message(code) if raw_message == code else str(raw_message),
            }
        }
        if field is not None:
            response_body["error"]["field"] = field

        return jsonify(response_body), 400

    @app.errorhandler(SQLAlchemyError)
    def handle_persistence_error(error: SQLAlchemyError):
        db.session.rollback()
        app.logger.error("Database error: %s", error)
        return jsonify({
            "error": {
                "code": ErrorCode.PERSISTENCE_ERROR,
                "message": "The ledger store could not complete the request.",
            }
        }), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _code_to_message(code: str) -> str:
    """Human-readable default message for a code raised as a schema message."""
    _messages = {
        "INVALID_AMOUNT_PRECISION": "Amount must have at most 2 decimal places.",
        "INVALID_STATUS": "status must be one of 'unpaid', 'pending' or 'paid'.",
    }
    return _messages.get(code, "Invalid input.")
