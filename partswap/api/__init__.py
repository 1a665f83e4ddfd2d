"""API blueprints for PartSwap."""

from flask import Blueprint

# Create main API blueprint
api_bp = Blueprint("api", __name__, url_prefix="/api")


# Import and register all resource blueprints
# Note: Imports are done after api_bp creation to avoid circular imports
from partswap.api.components import components_bp  # noqa: E402
from partswap.api.datasheet_cache import datasheet_cache_bp  # noqa: E402
from partswap.api.health import health_bp  # noqa: E402
from partswap.api.ingestion import ingestion_bp  # noqa: E402
from partswap.api.metrics import metrics_bp  # noqa: E402
from partswap.api.prompts import prompts_bp  # noqa: E402
from partswap.api.replacements import replacements_bp  # noqa: E402
from partswap.api.tasks import tasks_bp  # noqa: E402

api_bp.register_blueprint(components_bp)  # type: ignore[attr-defined]
api_bp.register_blueprint(datasheet_cache_bp)  # type: ignore[attr-defined]
api_bp.register_blueprint(health_bp)  # type: ignore[attr-defined]
api_bp.register_blueprint(ingestion_bp)  # type: ignore[attr-defined]
api_bp.register_blueprint(metrics_bp)  # type: ignore[attr-defined]
api_bp.register_blueprint(prompts_bp)  # type: ignore[attr-defined]
api_bp.register_blueprint(replacements_bp)  # type: ignore[attr-defined]
api_bp.register_blueprint(tasks_bp)  # type: ignore[attr-defined]
