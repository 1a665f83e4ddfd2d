"""Tests for extraction prompt resolution."""

import pytest
from sqlalchemy.orm import Session

from partswap.exceptions import RecordNotFoundException
from partswap.models.llm_prompt import LLMPrompt
from partswap.schemas.prompt import PromptUpdateSchema
from partswap.services.prompt_service import (
    BUNDLED_PROMPTS,
    PINOUT_EXTRACTION,
    SPECS_EXTRACTION,
    PromptService,
)
from partswap.utils.ttl_cache import TTLCache


@pytest.fixture
def prompt_service(session: Session) -> PromptService:
    return PromptService(session, TTLCache(ttl_seconds=300))


class TestPromptService:
    """Test cases for PromptService."""

    def test_bundled_prompt_without_database_row(self, prompt_service: PromptService):
        prompt = prompt_service.get_prompt(PINOUT_EXTRACTION)

        assert prompt.source == "bundled"
        assert prompt.display_name == "Pinout Extraction"
        assert "{{ datasheet_text }}" in prompt.user_prompt_template

    def test_unknown_prompt(self, prompt_service: PromptService):
        with pytest.raises(RecordNotFoundException):
            prompt_service.get_prompt("haiku_generation")

    def test_render(self, prompt_service: PromptService):
        rendered = prompt_service.render(
            PINOUT_EXTRACTION, datasheet_text="PIN 1 GND", mpn="TPS54331DR", package_type="SOIC-8"
        )

        assert rendered.name == PINOUT_EXTRACTION
        assert "for a SOIC-8 package" in rendered.user_prompt
        assert "The component is: TPS54331DR" in rendered.user_prompt
        assert "PIN 1 GND" in rendered.user_prompt
        assert rendered.model is None

    def test_active_database_row_wins(self, session: Session, prompt_service: PromptService):
        session.add(LLMPrompt(
            name=SPECS_EXTRACTION,
            display_name="Specs (tuned)",
            system_prompt="You read datasheets.",
            user_prompt_template="Specs of {{ mpn }}",
            model="gpt-5",
        ))
        session.flush()

        rendered = prompt_service.render(SPECS_EXTRACTION, mpn="LM317T")

        assert rendered.system_prompt == "You read datasheets."
        assert rendered.user_prompt == "Specs of LM317T"
        assert rendered.model == "gpt-5"

    def test_inactive_database_row_falls_back(self, session: Session, prompt_service: PromptService):
        session.add(LLMPrompt(
            name=SPECS_EXTRACTION,
            display_name="Specs (disabled)",
            system_prompt="Disabled",
            user_prompt_template="Disabled",
            is_active=False,
        ))
        session.flush()

        assert prompt_service.get_prompt(SPECS_EXTRACTION).source == "bundled"

    def test_update_creates_override_and_invalidates_cache(self, prompt_service: PromptService):
        before = prompt_service.get_prompt(PINOUT_EXTRACTION)

        updated = prompt_service.update_prompt(
            PINOUT_EXTRACTION, PromptUpdateSchema(user_prompt_template="Pins of {{ mpn }}")
        )

        assert updated.source == "database"
        assert updated.version == 1
        assert updated.system_prompt == before.system_prompt
        assert prompt_service.get_prompt(PINOUT_EXTRACTION).user_prompt_template == "Pins of {{ mpn }}"

        again = prompt_service.update_prompt(PINOUT_EXTRACTION, PromptUpdateSchema(model="gpt-5"))
        assert again.version == 2
        assert again.model == "gpt-5"

    def test_update_unknown_prompt(self, prompt_service: PromptService):
        with pytest.raises(RecordNotFoundException):
            prompt_service.update_prompt("haiku_generation", PromptUpdateSchema(model="gpt-5"))

    def test_list_merges_database_and_bundled(self, prompt_service: PromptService):
        prompt_service.update_prompt(SPECS_EXTRACTION, PromptUpdateSchema(model="gpt-5"))

        prompts = {prompt.name: prompt for prompt in prompt_service.list_prompts()}

        assert set(prompts) == set(BUNDLED_PROMPTS)
        assert prompts[SPECS_EXTRACTION].source == "database"
        assert prompts[PINOUT_EXTRACTION].source == "bundled"
