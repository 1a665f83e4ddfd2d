import logging
import time
from typing import Any

import httpx
from openai import APIError, OpenAI
from openai.types.responses.parsed_response import ParsedResponse
from prometheus_client import Counter, Histogram

from partswap.exceptions import AIResponseException
from partswap.services.base_task import ProgressHandle
from partswap.utils.ai.ai_runner import (
    AIRequest,
    AIResponse,
    AIRunner,
    NoProgressHandle,
)
from partswap.utils.ai.cost_calculation import calculate_cost

logger = logging.getLogger(__name__)

LLM_REQUESTS_TOTAL = Counter(
    "llm_requests_total",
    "Total LLM extraction requests",
    ["status", "model"],
)
LLM_REQUEST_DURATION_SECONDS = Histogram(
    "llm_request_duration_seconds",
    "LLM request duration",
    ["model"],
)
LLM_TOKENS_TOTAL = Counter(
    "llm_tokens_total",
    "Total tokens used",
    ["type", "model"],
)
LLM_COST_DOLLARS_TOTAL = Counter(
    "llm_cost_dollars_total",
    "Total cost of LLM calls in dollars",
    ["model"],
)

MAX_ATTEMPTS = 3


class OpenAIRunner(AIRunner):
    def __init__(self, api_key: str, timeout: float = 120.0):
        self.http_client = httpx.Client(timeout=timeout)
        self.client = OpenAI(api_key=api_key, http_client=self.http_client)

    def run(self, request: AIRequest, progress_handle: ProgressHandle | None = None) -> AIResponse:
        if not progress_handle:
            progress_handle = NoProgressHandle()

        input_content = self._build_responses_api_input(request)

        start = time.perf_counter()

        response = self._call_openai_api(request, input_content)
        progress_handle.send_progress_value(0.9)

        input_tokens = 0
        cached_input_tokens = 0
        output_tokens = 0
        reasoning_tokens = 0

        if response.usage:
            input_tokens = response.usage.input_tokens
            cached_input_tokens = response.usage.input_tokens_details.cached_tokens
            output_tokens = response.usage.output_tokens
            reasoning_tokens = response.usage.output_tokens_details.reasoning_tokens
            logger.info(f"Input tokens {input_tokens}, cached {cached_input_tokens}, output {output_tokens}, reasoning {reasoning_tokens}")

        elapsed_time = time.perf_counter() - start

        cost = calculate_cost(request.model, input_tokens, cached_input_tokens, output_tokens, reasoning_tokens)

        cost_str = f"{cost:.4f}" if cost is not None else "unknown"
        logger.info(f"OpenAI response status: {response.status}, duration {elapsed_time:.1f}s, incomplete details: {response.incomplete_details}, cost {cost_str}")
        logger.debug(f"Output text: {response.output_text}")

        parsed_response = response.output_parsed
        if parsed_response is None or not response.output_text:
            raise AIResponseException(
                f"empty response from OpenAI status {response.status}, incomplete details: {response.incomplete_details}"
            )

        return AIResponse(
            response=parsed_response,
            elapsed_time=elapsed_time,
            output_text=response.output_text,
            input_tokens=input_tokens,
            cached_input_tokens=cached_input_tokens,
            output_tokens=output_tokens,
            reasoning_tokens=reasoning_tokens,
            cost=cost
        )

    def _call_openai_api(self, request: AIRequest, input_content: list[Any]) -> ParsedResponse[Any]:
        attempt = 1

        while True:
            start = time.perf_counter()
            try:
                response = self._call_openai_api_non_streamed(request, input_content)

                duration = time.perf_counter() - start
                LLM_REQUESTS_TOTAL.labels(status="success", model=request.model).inc()
                LLM_REQUEST_DURATION_SECONDS.labels(model=request.model).observe(duration)
                if response.usage:
                    usage = response.usage
                    LLM_TOKENS_TOTAL.labels(type="input", model=request.model).inc(usage.input_tokens)
                    LLM_TOKENS_TOTAL.labels(type="output", model=request.model).inc(usage.output_tokens)
                    LLM_TOKENS_TOTAL.labels(type="reasoning", model=request.model).inc(
                        usage.output_tokens_details.reasoning_tokens
                    )
                    cost = calculate_cost(
                        request.model,
                        usage.input_tokens,
                        usage.input_tokens_details.cached_tokens,
                        usage.output_tokens,
                        usage.output_tokens_details.reasoning_tokens,
                    )
                    LLM_COST_DOLLARS_TOTAL.labels(model=request.model).inc(cost or 0.0)

                return response

            except APIError as e:
                duration = time.perf_counter() - start
                LLM_REQUESTS_TOTAL.labels(status="error", model=request.model).inc()
                LLM_REQUEST_DURATION_SECONDS.labels(model=request.model).observe(duration)

                if attempt >= MAX_ATTEMPTS:
                    raise
                attempt += 1

                logger.warning(f"OpenAI API error on attempt {attempt}, retrying: {e}")
                time.sleep(2 ** attempt)

    def _call_openai_api_non_streamed(self, request: AIRequest, input_content: list[Any]) -> ParsedResponse[Any]:
        parse_kwargs: dict[str, Any] = {
            "model": request.model,
            "input": input_content,
            "text_format": request.response_model,
            "text": {"verbosity": request.verbosity},
        }

        if request.reasoning_effort is not None:
            parse_kwargs["reasoning"] = {"effort": request.reasoning_effort}

        return self.client.responses.parse(**parse_kwargs)

    def _build_responses_api_input(self, request: AIRequest) -> list[Any]:
        """Build instructions and input for OpenAI Responses API."""

        return [
            {
                "role": "developer",
                "content": [
                    {"type": "input_text", "text": request.system_prompt}
                ]
            },
            {
                "role": "user",
                "content": [
                    {"type": "input_text", "text": request.user_prompt},
                ]
            }
        ]
