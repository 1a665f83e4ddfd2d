"""Datasheet cache administration endpoints."""

from dependency_injector.wiring import Provide, inject
from flask import Blueprint, request
from spectree import Response as SpectreeResponse

from partswap.schemas.common import ErrorResponseSchema, MessageResponseSchema
from partswap.schemas.datasheet_cache import (
    CacheComponentSchema,
    CacheEntryDetailSchema,
    CacheEntryListSchema,
    CacheEntryQuerySchema,
    CacheEntrySummarySchema,
    CacheListQuerySchema,
    CacheStatsSchema,
    ClearCacheResponseSchema,
    ReextractRequestSchema,
    ReextractResponseSchema,
)
from partswap.services.container import ServiceContainer
from partswap.utils.error_handling import handle_api_errors
from partswap.utils.spectree_config import api

datasheet_cache_bp = Blueprint("datasheet_cache", __name__, url_prefix="/datasheet-cache")


@datasheet_cache_bp.route("/stats", methods=["GET"])
@api.validate(resp=SpectreeResponse(HTTP_200=CacheStatsSchema))
@handle_api_errors
@inject
def get_cache_stats(datasheet_cache_service=Provide[ServiceContainer.datasheet_cache_service]):
    """Entry counts per status plus extraction spend."""
    return datasheet_cache_service.get_stats().model_dump()


@datasheet_cache_bp.route("", methods=["GET"])
@api.validate(query=CacheListQuerySchema, resp=SpectreeResponse(HTTP_200=CacheEntryListSchema, HTTP_400=ErrorResponseSchema))
@handle_api_errors
@inject
def list_cache_entries(datasheet_cache_service=Provide[ServiceContainer.datasheet_cache_service]):
    """Paginated cache entries, newest first."""
    query = CacheListQuerySchema.model_validate(request.args.to_dict())
    entries, total = datasheet_cache_service.list_entries(
        status=query.status, page=query.page, page_size=query.page_size
    )
    return CacheEntryListSchema(
        entries=[CacheEntrySummarySchema.model_validate(entry) for entry in entries],
        total=total,
        page=query.page,
        page_size=query.page_size,
    ).model_dump(mode="json")


@datasheet_cache_bp.route("/<int:entry_id>", methods=["GET"])
@api.validate(query=CacheEntryQuerySchema, resp=SpectreeResponse(HTTP_200=CacheEntryDetailSchema, HTTP_404=ErrorResponseSchema))
@handle_api_errors
@inject
def get_cache_entry(entry_id: int, datasheet_cache_service=Provide[ServiceContainer.datasheet_cache_service]):
    """One cache entry with its extracted pinouts and specs."""
    query = CacheEntryQuerySchema.model_validate(request.args.to_dict())
    entry = datasheet_cache_service.get_entry(entry_id)
    detail = CacheEntryDetailSchema.model_validate(entry)
    if not query.include_raw_text:
        detail.raw_text = None
    return detail.model_dump(mode="json")


@datasheet_cache_bp.route("/<int:entry_id>/components", methods=["GET"])
@api.validate(resp=SpectreeResponse(HTTP_200=list[CacheComponentSchema], HTTP_404=ErrorResponseSchema))
@handle_api_errors
@inject
def get_cache_entry_components(entry_id: int, datasheet_cache_service=Provide[ServiceContainer.datasheet_cache_service]):
    """Components whose pinout came from this datasheet."""
    components = datasheet_cache_service.get_components(entry_id)
    return [
        CacheComponentSchema(
            id=component.id,
            mpn=component.mpn,
            manufacturer=component.manufacturer.name,
            package_normalized=component.package_normalized,
            pinout_source=component.pinout_source,
        ).model_dump(mode="json")
        for component in components
    ]


@datasheet_cache_bp.route("/<int:entry_id>/reextract", methods=["POST"])
@api.validate(json=ReextractRequestSchema, resp=SpectreeResponse(HTTP_200=ReextractResponseSchema, HTTP_404=ErrorResponseSchema, HTTP_409=ErrorResponseSchema))
@handle_api_errors
@inject
def reextract_cache_entry(entry_id: int, datasheet_cache_service=Provide[ServiceContainer.datasheet_cache_service]):
    """Discard the stored result and extract the datasheet again."""
    data = ReextractRequestSchema.model_validate(request.get_json(silent=True) or {})
    entry = datasheet_cache_service.reextract(entry_id, mpn_hint=data.mpn_hint)
    return ReextractResponseSchema(
        cache_id=entry.id,
        status=entry.status,
        package_variants=len(entry.pinouts_by_package or {}),
        page_count=entry.page_count or 0,
        text_length=entry.text_length or 0,
    ).model_dump(mode="json")


@datasheet_cache_bp.route("/<int:entry_id>", methods=["DELETE"])
@api.validate(resp=SpectreeResponse(HTTP_200=MessageResponseSchema, HTTP_404=ErrorResponseSchema))
@handle_api_errors
@inject
def delete_cache_entry(entry_id: int, datasheet_cache_service=Provide[ServiceContainer.datasheet_cache_service]):
    """Delete an entry; components keep their pinouts but lose the link."""
    datasheet_cache_service.delete_entry(entry_id)
    return MessageResponseSchema(message="Cache entry deleted").model_dump()


@datasheet_cache_bp.route("/clear-expired", methods=["POST"])
@api.validate(resp=SpectreeResponse(HTTP_200=ClearCacheResponseSchema))
@handle_api_errors
@inject
def clear_expired_entries(datasheet_cache_service=Provide[ServiceContainer.datasheet_cache_service]):
    """Delete entries past their expiry date."""
    return ClearCacheResponseSchema(deleted_count=datasheet_cache_service.clear_expired()).model_dump()


@datasheet_cache_bp.route("/clear-failed", methods=["POST"])
@api.validate(resp=SpectreeResponse(HTTP_200=ClearCacheResponseSchema))
@handle_api_errors
@inject
def clear_failed_entries(datasheet_cache_service=Provide[ServiceContainer.datasheet_cache_service]):
    """Delete failed entries so their datasheets can be extracted again."""
    return ClearCacheResponseSchema(deleted_count=datasheet_cache_service.clear_failed()).model_dump()
