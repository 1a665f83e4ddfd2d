"""Structured pinout and spec extraction from datasheet text."""

import logging
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from partswap.config import Settings
from partswap.exceptions import AIResponseException, InvalidOperationException
from partswap.schemas.extraction import (
    ExtractedPin,
    LLMMultiPackageResponse,
    LLMPin,
    LLMPinoutResponse,
    LLMSpecsResponse,
    PackageExtractionResult,
    PackagePinout,
)
from partswap.services.prompt_service import (
    MULTI_PINOUT_EXTRACTION,
    PINOUT_EXTRACTION,
    SPECS_EXTRACTION,
    PromptService,
)
from partswap.utils.ai.ai_runner import AIRequest, AIResponse, AIRunner
from partswap.utils.pinout_matching import extract_mpn_base

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n...[truncated]"

ResponseT = TypeVar("ResponseT", bound=BaseModel)


def truncate_text(text: str, limit: int, marker: str = "") -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + marker


def _to_extracted_pins(pins: list[LLMPin]) -> list[ExtractedPin]:
    extracted = []
    for pin in pins:
        if pin.pin_number <= 0:
            logger.debug(f"Dropping pin with invalid number {pin.pin_number}")
            continue
        extracted.append(ExtractedPin(
            pin_number=pin.pin_number,
            pin_name=pin.pin_name,
            pin_function=pin.pin_function.value,
            confidence=min(max(pin.confidence, 0.0), 1.0) if pin.confidence is not None else None,
        ))
    return extracted


class LLMExtractionService:
    """Runs the extraction prompts through the AI runner.

    Output the model gets wrong (empty or failing validation) degrades to an
    empty result. Transport and API errors propagate so callers can record
    the failure.
    """

    def __init__(self, config: Settings, ai_runner: AIRunner | None, prompt_service: PromptService):
        self.config = config
        self.ai_runner = ai_runner
        self.prompt_service = prompt_service

    @property
    def is_available(self) -> bool:
        return self.ai_runner is not None and self.config.real_ai_allowed

    def extract_packages(self, text: str, mpn_hint: str | None = None) -> PackageExtractionResult:
        """Pinouts of every package variant described in ``text``, plus family specs."""
        prompt = self.prompt_service.render(
            MULTI_PINOUT_EXTRACTION,
            mpn_base=extract_mpn_base(mpn_hint),
            datasheet_text=truncate_text(text, self.config.DATASHEET_PROMPT_TEXT_LIMIT),
        )

        model = prompt.model or self.config.OPENAI_MODEL
        outcome = self._run(prompt.system_prompt, prompt.user_prompt, model, LLMMultiPackageResponse)
        if outcome is None:
            return PackageExtractionResult(model=model)

        response, ai_response = outcome

        pinouts_by_package: dict[str, PackagePinout] = {}
        for package in response.packages:
            name = package.package_name.strip()
            if not name:
                continue
            if name in pinouts_by_package:
                logger.debug(f"Duplicate package {name} in extraction for {mpn_hint}, keeping the first")
                continue
            pinouts_by_package[name] = PackagePinout(
                pins=_to_extracted_pins(package.pins),
                aliases=[alias.strip() for alias in package.aliases if alias.strip()],
                suffix_hints=[hint.strip() for hint in package.suffix_hints if hint.strip()],
            )

        logger.info(f"Extracted {len(pinouts_by_package)} package variants for {mpn_hint or 'unknown part'}")

        return PackageExtractionResult(
            pinouts_by_package=pinouts_by_package,
            specs=response.specs.to_spec_map(),
            model=model,
            tokens=ai_response.total_tokens,
            cost=ai_response.cost,
        )

    def extract_pinouts(self, text: str, mpn: str, package_type: str | None) -> list[ExtractedPin]:
        """Single-package pinout extraction used when no cached pinout fits."""
        prompt = self.prompt_service.render(
            PINOUT_EXTRACTION,
            mpn=mpn,
            package_type=package_type or "unknown",
            datasheet_text=truncate_text(text, self.config.DIRECT_EXTRACTION_TEXT_LIMIT, TRUNCATION_MARKER),
        )

        outcome = self._run(
            prompt.system_prompt, prompt.user_prompt, prompt.model or self.config.OPENAI_MODEL, LLMPinoutResponse
        )
        if outcome is None:
            return []

        response, _ = outcome
        return _to_extracted_pins(response.pinouts)

    def extract_specs(self, text: str, mpn: str) -> dict:
        prompt = self.prompt_service.render(
            SPECS_EXTRACTION,
            mpn=mpn,
            datasheet_text=truncate_text(text, self.config.DIRECT_EXTRACTION_TEXT_LIMIT, TRUNCATION_MARKER),
        )

        outcome = self._run(
            prompt.system_prompt, prompt.user_prompt, prompt.model or self.config.OPENAI_MODEL, LLMSpecsResponse
        )
        if outcome is None:
            return {}

        response, _ = outcome
        return response.specs.to_spec_map()

    def _run(
        self, system_prompt: str, user_prompt: str, model: str, response_model: type[ResponseT]
    ) -> tuple[ResponseT, AIResponse] | None:
        """Run one structured request; None when the model gave nothing usable."""
        if not self.is_available or self.ai_runner is None:
            raise InvalidOperationException("run datasheet extraction", "AI extraction is disabled")

        request = AIRequest(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            model=model,
            verbosity=self.config.OPENAI_VERBOSITY,
            reasoning_effort=self.config.OPENAI_REASONING_EFFORT,
            response_model=response_model,
        )

        try:
            ai_response = self.ai_runner.run(request)
        except (AIResponseException, ValidationError) as e:
            logger.warning(f"Unusable {response_model.__name__} from model {model}: {e}")
            return None

        response = ai_response.response
        if not isinstance(response, response_model):
            logger.warning(f"Unexpected response type {type(ai_response.response).__name__}, expected {response_model.__name__}")
            return None

        return response, ai_response
