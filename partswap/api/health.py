"""Health check endpoints for Kubernetes probes."""

import logging

from dependency_injector.wiring import Provide, inject
from flask import Blueprint, jsonify
from spectree import Response as SpectreeResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from partswap.schemas.health import HealthResponse
from partswap.services.container import ServiceContainer
from partswap.utils.spectree_config import api

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/health")


@health_bp.route("/readyz", methods=["GET"])
@api.validate(resp=SpectreeResponse(HTTP_200=HealthResponse, HTTP_503=HealthResponse))
@inject
def readyz(db_session: Session = Provide[ServiceContainer.db_session]):
    """Readiness probe endpoint for Kubernetes.

    Returns 503 when the database cannot be reached.
    """
    try:
        db_session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Readiness check failed: {e}")
        db_session.info["needs_rollback"] = True
        return jsonify({"status": "not ready", "ready": False, "database": "unreachable"}), 503

    return jsonify({"status": "ready", "ready": True, "database": "ok"}), 200


@health_bp.route("/healthz", methods=["GET"])
@api.validate(resp=SpectreeResponse(HTTP_200=HealthResponse))
def healthz():
    """Liveness probe endpoint for Kubernetes.

    Always returns 200 to indicate the application is alive.
    """
    return jsonify({"status": "alive", "ready": True}), 200
