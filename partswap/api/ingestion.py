"""Part import endpoints; imports run as background tasks."""

import logging

from dependency_injector.wiring import Provide, inject
from flask import Blueprint, request
from spectree import Response as SpectreeResponse

from partswap.config import Settings
from partswap.exceptions import InvalidOperationException
from partswap.schemas.common import ErrorResponseSchema
from partswap.schemas.ingestion import FamilyImportRequestSchema, ImportRequestSchema
from partswap.schemas.task_schema import TaskStartResponse
from partswap.services.container import ServiceContainer
from partswap.services.ingestion_tasks import ImportFamilyTask, ImportPartsTask
from partswap.services.task_service import TaskService
from partswap.utils.error_handling import handle_api_errors
from partswap.utils.spectree_config import api

logger = logging.getLogger(__name__)

ingestion_bp = Blueprint("ingestion", __name__, url_prefix="/ingestion")


@ingestion_bp.route("/import", methods=["POST"])
@api.validate(json=ImportRequestSchema, resp=SpectreeResponse(HTTP_202=TaskStartResponse, HTTP_400=ErrorResponseSchema, HTTP_409=ErrorResponseSchema))
@handle_api_errors
@inject
def import_parts(
    task_service: TaskService = Provide[ServiceContainer.task_service],
    container: ServiceContainer = Provide[ServiceContainer],
    settings: Settings = Provide[ServiceContainer.config],
):
    """
    Start importing a list of MPNs.

    Returns the task id; poll /api/tasks/<task_id>/status for the
    ImportSummary.
    """
    data = ImportRequestSchema.model_validate(request.get_json())
    if len(data.mpns) > settings.INGESTION_MAX_BATCH_SIZE:
        raise InvalidOperationException(
            "import parts", f"at most {settings.INGESTION_MAX_BATCH_SIZE} MPNs are accepted per request"
        )

    logger.info(f"Queueing import of {len(data.mpns)} MPNs")
    task_start_response = task_service.start_task(
        ImportPartsTask(container=container),
        mpns=data.mpns,
        extract_pinouts=data.extract_pinouts,
        skip_existing=data.skip_existing,
    )
    return task_start_response.model_dump(mode="json"), 202


@ingestion_bp.route("/import-family", methods=["POST"])
@api.validate(json=FamilyImportRequestSchema, resp=SpectreeResponse(HTTP_202=TaskStartResponse, HTTP_400=ErrorResponseSchema, HTTP_409=ErrorResponseSchema))
@handle_api_errors
@inject
def import_family(
    task_service: TaskService = Provide[ServiceContainer.task_service],
    container: ServiceContainer = Provide[ServiceContainer],
):
    """Start importing every catalog variant of a base part number."""
    data = FamilyImportRequestSchema.model_validate(request.get_json())

    logger.info(f"Queueing family import for {data.base_mpn}")
    task_start_response = task_service.start_task(
        ImportFamilyTask(container=container),
        base_mpn=data.base_mpn.strip(),
        extract_pinouts=data.extract_pinouts,
        skip_existing=data.skip_existing,
        limit=data.limit,
    )
    return task_start_response.model_dump(mode="json"), 202
