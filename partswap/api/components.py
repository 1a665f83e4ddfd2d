"""Component read, manual import and bulk delete endpoints."""

from dependency_injector.wiring import Provide, inject
from flask import Blueprint, request
from spectree import Response as SpectreeResponse

from partswap.schemas.common import ErrorResponseSchema
from partswap.schemas.component import (
    BulkDeleteRequestSchema,
    BulkDeleteResponseSchema,
    ComponentListQuerySchema,
    ComponentListSchema,
    ComponentResponseSchema,
    ManualComponentCreateSchema,
    PinoutResponseSchema,
)
from partswap.services.container import ServiceContainer
from partswap.utils.error_handling import handle_api_errors
from partswap.utils.spectree_config import api

components_bp = Blueprint("components", __name__, url_prefix="/components")


@components_bp.route("", methods=["GET"])
@api.validate(query=ComponentListQuerySchema, resp=SpectreeResponse(HTTP_200=list[ComponentListSchema], HTTP_400=ErrorResponseSchema))
@handle_api_errors
@inject
def list_components(component_service=Provide[ServiceContainer.component_service]):
    """List components, optionally filtered by package and manufacturer."""
    query = ComponentListQuerySchema.model_validate(request.args.to_dict())
    components = component_service.list_components(
        package=query.package,
        manufacturer=query.manufacturer,
        limit=query.limit,
        offset=query.offset,
    )
    return [ComponentListSchema.model_validate(component).model_dump(mode="json") for component in components]


@components_bp.route("/<int:component_id>", methods=["GET"])
@api.validate(resp=SpectreeResponse(HTTP_200=ComponentResponseSchema, HTTP_404=ErrorResponseSchema))
@handle_api_errors
@inject
def get_component(component_id: int, component_service=Provide[ServiceContainer.component_service]):
    """Get component details including pinouts."""
    component = component_service.get_component(component_id)
    return ComponentResponseSchema.model_validate(component).model_dump(mode="json")


@components_bp.route("/by-mpn/<path:mpn>", methods=["GET"])
@api.validate(resp=SpectreeResponse(HTTP_200=ComponentResponseSchema, HTTP_404=ErrorResponseSchema))
@handle_api_errors
@inject
def get_component_by_mpn(mpn: str, component_service=Provide[ServiceContainer.component_service]):
    """Get a component by MPN, case-insensitive."""
    component = component_service.require_component_by_mpn(mpn)
    return ComponentResponseSchema.model_validate(component).model_dump(mode="json")


@components_bp.route("/<int:component_id>/pinouts", methods=["GET"])
@api.validate(resp=SpectreeResponse(HTTP_200=list[PinoutResponseSchema], HTTP_404=ErrorResponseSchema))
@handle_api_errors
@inject
def get_component_pinouts(component_id: int, component_service=Provide[ServiceContainer.component_service]):
    """Pins of a component ordered by pin number."""
    component = component_service.get_component(component_id)
    return [PinoutResponseSchema.model_validate(pinout).model_dump(mode="json") for pinout in component.pinouts]


@components_bp.route("/manual", methods=["POST"])
@api.validate(json=ManualComponentCreateSchema, resp=SpectreeResponse(HTTP_201=ComponentResponseSchema, HTTP_400=ErrorResponseSchema))
@handle_api_errors
@inject
def create_manual_component(component_service=Provide[ServiceContainer.component_service]):
    """Create or update a component with an operator-supplied pinout."""
    data = ManualComponentCreateSchema.model_validate(request.get_json())
    component = component_service.import_manual_component(data)
    component = component_service.get_component(component.id)
    return ComponentResponseSchema.model_validate(component).model_dump(mode="json"), 201


@components_bp.route("/bulk-delete", methods=["POST"])
@api.validate(json=BulkDeleteRequestSchema, resp=SpectreeResponse(HTTP_200=BulkDeleteResponseSchema, HTTP_400=ErrorResponseSchema))
@handle_api_errors
@inject
def bulk_delete_components(component_service=Provide[ServiceContainer.component_service]):
    """Delete components by id together with their pinouts."""
    data = BulkDeleteRequestSchema.model_validate(request.get_json())
    deleted_components, deleted_pinouts = component_service.bulk_delete(data.ids)
    return BulkDeleteResponseSchema(
        deleted_components=deleted_components,
        deleted_pinouts=deleted_pinouts,
    ).model_dump()
