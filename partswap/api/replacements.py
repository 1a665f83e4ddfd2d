"""Drop-in replacement search endpoint."""

from dependency_injector.wiring import Provide, inject
from flask import Blueprint
from spectree import Response as SpectreeResponse

from partswap.schemas.common import ErrorResponseSchema
from partswap.schemas.replacement import ReplacementListSchema
from partswap.services.container import ServiceContainer
from partswap.utils.error_handling import handle_api_errors
from partswap.utils.spectree_config import api

replacements_bp = Blueprint("replacements", __name__, url_prefix="/replacements")


@replacements_bp.route("/<path:mpn>", methods=["GET"])
@api.validate(resp=SpectreeResponse(HTTP_200=ReplacementListSchema, HTTP_400=ErrorResponseSchema, HTTP_404=ErrorResponseSchema))
@handle_api_errors
@inject
def find_replacements(mpn: str, replacement_service=Provide[ServiceContainer.replacement_service]):
    """Rank same-package components as replacements for ``mpn``."""
    return replacement_service.find_replacements_by_mpn(mpn).model_dump(mode="json")
