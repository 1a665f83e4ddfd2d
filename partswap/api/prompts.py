"""LLM prompt management endpoints."""

from dependency_injector.wiring import Provide, inject
from flask import Blueprint, request
from spectree import Response as SpectreeResponse

from partswap.schemas.common import ErrorResponseSchema
from partswap.schemas.prompt import PromptListSchema, PromptSchema, PromptUpdateSchema
from partswap.services.container import ServiceContainer
from partswap.utils.error_handling import handle_api_errors
from partswap.utils.spectree_config import api

prompts_bp = Blueprint("prompts", __name__, url_prefix="/prompts")


@prompts_bp.route("", methods=["GET"])
@api.validate(resp=SpectreeResponse(HTTP_200=PromptListSchema))
@handle_api_errors
@inject
def list_prompts(prompt_service=Provide[ServiceContainer.prompt_service]):
    """List stored prompts and the bundled defaults not overridden yet."""
    return PromptListSchema(prompts=prompt_service.list_prompts()).model_dump()


@prompts_bp.route("/<name>", methods=["PUT"])
@api.validate(json=PromptUpdateSchema, resp=SpectreeResponse(HTTP_200=PromptSchema, HTTP_400=ErrorResponseSchema, HTTP_404=ErrorResponseSchema))
@handle_api_errors
@inject
def update_prompt(name: str, prompt_service=Provide[ServiceContainer.prompt_service]):
    """Update a prompt; the new version is used once the prompt cache entry is dropped."""
    data = PromptUpdateSchema.model_validate(request.get_json())
    return prompt_service.update_prompt(name, data).model_dump()
