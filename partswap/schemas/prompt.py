"""LLM prompt management schemas."""

from pydantic import BaseModel, ConfigDict, Field


class PromptSchema(BaseModel):
    """A prompt as used for extraction, from the database or the bundled defaults."""

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(json_schema_extra={"example": "multi_pinout_extraction"})
    display_name: str = Field(json_schema_extra={"example": "Multi-package Pinout Extraction"})
    description: str | None = None
    category: str = Field(default="extraction")
    system_prompt: str
    user_prompt_template: str = Field(description="Jinja2 template, variables as {{ name }}")
    model: str | None = Field(default=None, description="Model override; the configured model when null")
    is_active: bool = True
    version: int = 0
    source: str = Field(description="'database' or 'bundled'", json_schema_extra={"example": "database"})


class PromptListSchema(BaseModel):
    prompts: list[PromptSchema]


class PromptUpdateSchema(BaseModel):
    display_name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    system_prompt: str | None = Field(default=None, min_length=1)
    user_prompt_template: str | None = Field(default=None, min_length=1)
    model: str | None = Field(default=None, max_length=100)
    is_active: bool | None = None
