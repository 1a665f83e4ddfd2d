"""Flask application factory for the PartSwap backend."""

import logging
from typing import TYPE_CHECKING

from flask_cors import CORS

if TYPE_CHECKING:
    from partswap.config import Settings

from partswap.app import App
from partswap.config import get_settings
from partswap.extensions import db
from partswap.services.container import ServiceContainer

logger = logging.getLogger(__name__)


def create_app(settings: "Settings | None" = None) -> App:
    """Create and configure Flask application."""
    app = App(__name__)

    # Load configuration
    if settings is None:
        settings = get_settings()

    app.config.from_object(settings)

    # Initialize extensions
    db.init_app(app)

    # Import models to register them with SQLAlchemy
    from partswap import models  # noqa: F401

    # Initialize SessionLocal for per-request sessions
    # This needs to be done in app context since db.engine requires it
    with app.app_context():
        from sqlalchemy.orm import Session, sessionmaker

        SessionLocal: sessionmaker[Session] = sessionmaker(
            class_=Session,
            bind=db.engine,
            autoflush=True,
            expire_on_commit=False,
        )

    # Initialize SpecTree for OpenAPI docs
    from partswap.utils.spectree_config import configure_spectree

    configure_spectree(app)

    # Initialize service container after SpecTree
    container = ServiceContainer()
    container.config.override(settings)
    container.session_maker.override(SessionLocal)

    wire_modules = [
        "partswap.api.components",
        "partswap.api.datasheet_cache",
        "partswap.api.health",
        "partswap.api.ingestion",
        "partswap.api.metrics",
        "partswap.api.prompts",
        "partswap.api.replacements",
        "partswap.api.tasks",
    ]

    container.wire(modules=wire_modules)

    app.container = container

    # Configure CORS
    CORS(app, origins=settings.CORS_ORIGINS)

    # Initialize Flask-Log-Request-ID for correlation tracking
    from flask_log_request_id import RequestID
    RequestID(app)

    # Register error handlers
    from partswap.utils.flask_error_handlers import register_error_handlers

    register_error_handlers(app)

    # Register main API blueprint
    from partswap.api import api_bp

    app.register_blueprint(api_bp)

    @app.teardown_request
    def close_session(exc: Exception | None) -> None:
        """Commit or roll back the request session, then close it."""
        try:
            db_session = container.db_session()
            needs_rollback = db_session.info.get("needs_rollback", False)

            if exc or needs_rollback:
                db_session.rollback()
            else:
                db_session.commit()

            # Clear rollback flag after processing
            db_session.info.pop("needs_rollback", None)
            db_session.close()

        finally:
            # Ensure the scoped session is removed after each request
            container.db_session.reset()

    if not settings.real_ai_allowed:
        logger.info("Real AI extraction is disabled; imports will skip datasheet pinouts")

    return app
