"""Provider-neutral request/response types for structured LLM calls."""

from abc import ABC, abstractmethod

from pydantic import BaseModel

from partswap.services.base_task import ProgressHandle


class AIRequest(BaseModel):
    # Input parameters
    system_prompt: str
    user_prompt: str

    # Model parameters
    model: str
    verbosity: str
    reasoning_effort: str | None = None

    # Structured output model
    response_model: type[BaseModel]


class AIResponse(BaseModel):
    response: BaseModel
    output_text: str
    elapsed_time: float
    input_tokens: int
    cached_input_tokens: int
    output_tokens: int
    reasoning_tokens: int
    cost: float | None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class NoProgressHandle:
    def send_progress_text(self, text: str) -> None:
        pass
    def send_progress_value(self, value: float) -> None:
        pass
    def send_progress(self, text: str, value: float) -> None:
        pass


class AIRunner(ABC):
    @abstractmethod
    def run(self, request: AIRequest, progress_handle: ProgressHandle | None = None) -> AIResponse:
        pass
