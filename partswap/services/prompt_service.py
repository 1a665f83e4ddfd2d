"""Extraction prompts: database overrides over bundled Jinja2 templates."""

import logging
from pathlib import Path
from typing import Any, NamedTuple

from jinja2 import Environment, FileSystemLoader
from sqlalchemy import select
from sqlalchemy.orm import Session

from partswap.exceptions import RecordNotFoundException
from partswap.models.llm_prompt import LLMPrompt
from partswap.schemas.prompt import PromptSchema, PromptUpdateSchema
from partswap.services.base import BaseService
from partswap.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

PROMPT_DIR = Path(__file__).parent / "prompts"

MULTI_PINOUT_EXTRACTION = "multi_pinout_extraction"
PINOUT_EXTRACTION = "pinout_extraction"
SPECS_EXTRACTION = "specs_extraction"


class BundledPrompt(NamedTuple):
    display_name: str
    description: str


BUNDLED_PROMPTS: dict[str, BundledPrompt] = {
    MULTI_PINOUT_EXTRACTION: BundledPrompt(
        "Multi-package Pinout Extraction",
        "Extracts the pinout of every package variant in a datasheet, with aliases and MPN suffix hints.",
    ),
    PINOUT_EXTRACTION: BundledPrompt(
        "Pinout Extraction",
        "Extracts pin assignments for a single package of a component.",
    ),
    SPECS_EXTRACTION: BundledPrompt(
        "Specifications Extraction",
        "Extracts electrical specifications from component datasheets.",
    ),
}


class RenderedPrompt(NamedTuple):
    name: str
    system_prompt: str
    user_prompt: str
    model: str | None


class PromptService(BaseService):
    """Resolves prompts by name.

    An active ``llm_prompts`` row wins over the bundled template of the same
    name. Resolved prompts are kept in a shared TTL cache, which every
    update invalidates.
    """

    def __init__(self, db: Session, cache: TTLCache[str, PromptSchema]):
        super().__init__(db)
        self.cache = cache
        self.loader = FileSystemLoader(str(PROMPT_DIR))
        self.jinja_env = Environment(loader=self.loader, keep_trailing_newline=True)

    def get_prompt(self, name: str) -> PromptSchema:
        cached = self.cache.get(name)
        if cached is not None:
            return cached

        row = self._get_row(name)
        if row is not None and row.is_active:
            prompt = self._to_schema(row)
        elif name in BUNDLED_PROMPTS:
            if row is not None:
                logger.info(f"Prompt {name} is inactive in the database, using bundled template")
            prompt = self._bundled(name)
        else:
            raise RecordNotFoundException("Prompt", name)

        self.cache.set(name, prompt)
        return prompt

    def render(self, name: str, **variables: Any) -> RenderedPrompt:
        prompt = self.get_prompt(name)
        template = self.jinja_env.from_string(prompt.user_prompt_template)
        return RenderedPrompt(
            name=name,
            system_prompt=prompt.system_prompt.strip(),
            user_prompt=template.render(**variables),
            model=prompt.model,
        )

    def list_prompts(self) -> list[PromptSchema]:
        """Database prompts plus bundled prompts that have no database row."""
        rows = self.db.execute(
            select(LLMPrompt).order_by(LLMPrompt.category, LLMPrompt.display_name)
        ).scalars().all()

        prompts = [self._to_schema(row) for row in rows]
        stored = {row.name for row in rows}
        prompts.extend(self._bundled(name) for name in BUNDLED_PROMPTS if name not in stored)
        return prompts

    def update_prompt(self, name: str, data: PromptUpdateSchema) -> PromptSchema:
        """Create or update the database override of a prompt and bump its version."""
        row = self._get_row(name)

        if row is None:
            if name not in BUNDLED_PROMPTS:
                raise RecordNotFoundException("Prompt", name)
            bundled = self._bundled(name)
            row = LLMPrompt(
                name=name,
                display_name=bundled.display_name,
                description=bundled.description,
                category=bundled.category,
                system_prompt=bundled.system_prompt,
                user_prompt_template=bundled.user_prompt_template,
                is_active=True,
                version=0,
            )
            self.db.add(row)

        for key, value in data.model_dump(exclude_unset=True).items():
            if value is not None or key in ("description", "model"):
                setattr(row, key, value)

        row.version = (row.version or 0) + 1
        self.db.flush()
        self.cache.invalidate(name)

        logger.info(f"Updated prompt {name} to version {row.version}")
        return self._to_schema(row)

    def _get_row(self, name: str) -> LLMPrompt | None:
        return self.db.execute(
            select(LLMPrompt).where(LLMPrompt.name == name)
        ).scalar_one_or_none()

    def _bundled(self, name: str) -> PromptSchema:
        meta = BUNDLED_PROMPTS[name]
        system_prompt, _, _ = self.loader.get_source(self.jinja_env, f"{name}_system.md")
        user_template, _, _ = self.loader.get_source(self.jinja_env, f"{name}_user.md")
        return PromptSchema(
            name=name,
            display_name=meta.display_name,
            description=meta.description,
            system_prompt=system_prompt,
            user_prompt_template=user_template,
            source="bundled",
        )

    @staticmethod
    def _to_schema(row: LLMPrompt) -> PromptSchema:
        return PromptSchema(
            name=row.name,
            display_name=row.display_name,
            description=row.description,
            category=row.category,
            system_prompt=row.system_prompt,
            user_prompt_template=row.user_prompt_template,
            model=row.model,
            is_active=row.is_active,
            version=row.version,
            source="database",
        )
