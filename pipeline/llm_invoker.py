"""Schema-validated prompt invocation against the OpenAI Chat Completions API.

A ``PromptInvoker`` validates its input against a declared model, renders the
prompt, makes the model call with a JSON-schema response format and validates
the reply against the declared output model. Every pipeline stage is one
instance differing only in template and schemas.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from openai import (
    APIConnectionError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    RateLimitError,
)
from pydantic import BaseModel, ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)

# User message content: plain text or a list of content parts
MessageContent = Union[str, list[dict[str, Any]]]

# Errors that are safe to retry (transient)
RETRYABLE_ERRORS = (
    RateLimitError,
    APIConnectionError,
    APITimeoutError,
    InternalServerError,
)


class PromptError(Exception):
    """Base class for prompt invocation errors."""

    pass


class PromptInputError(PromptError):
    """Input failed validation; no model call was made."""

    def __init__(self, message: str, validation_errors: Any = None):
        super().__init__(message)
        self.validation_errors = validation_errors


class LLMInvokeError(PromptError):
    """Model call failed or returned an unusable response."""

    pass


class OutputValidationError(LLMInvokeError):
    """Model response is not valid JSON or does not match the output schema."""

    def __init__(
        self,
        message: str,
        raw_response: Optional[str] = None,
        validation_errors: Any = None,
    ):
        super().__init__(message)
        self.raw_response = raw_response
        self.validation_errors = validation_errors


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how long to try one model call.

    ``max_attempts=1`` disables retries. Only transient API errors are
    retried; validation failures never are.
    """

    max_attempts: int = 1
    backoff_multiplier: float = 1.0
    backoff_min_s: float = 1.0
    backoff_max_s: float = 60.0
    timeout_s: float = 60.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.LLM_MAX_ATTEMPTS,
            backoff_min_s=settings.LLM_BACKOFF_MIN_S,
            backoff_max_s=settings.LLM_BACKOFF_MAX_S,
            timeout_s=settings.LLM_TIMEOUT_S,
        )


# Lazy client initialization
_client: Optional[AsyncOpenAI] = None


def get_client() -> AsyncOpenAI:
    """Get or create the shared OpenAI client (lazy initialization)."""
    global _client
    if _client is None:
        _client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY or None,
            timeout=settings.LLM_TIMEOUT_S,
        )
    return _client


def truncate_text(text: str, max_chars: int) -> str:
    """Truncate text to max_chars, preserving complete sentences where possible."""
    if len(text) <= max_chars:
        return text

    truncated = text[:max_chars]
    # Try to end at a sentence boundary
    last_period = truncated.rfind(".")
    if last_period > max_chars * 0.8:  # Only if we keep at least 80%
        truncated = truncated[: last_period + 1]

    return truncated


class PromptInvoker(Generic[InputT, OutputT]):
    """One prompt template bound to its input and output schemas."""

    def __init__(
        self,
        name: str,
        *,
        system_prompt: str,
        render: Callable[[InputT], MessageContent],
        input_model: type[InputT],
        output_model: type[OutputT],
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.name = name
        self.system_prompt = system_prompt
        self.render = render
        self.input_model = input_model
        self.output_model = output_model
        self._client = client
        self.model = model or settings.MODEL_NAME
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        self.retry_policy = retry_policy or RetryPolicy.from_settings()

    @property
    def client(self) -> AsyncOpenAI:
        return self._client if self._client is not None else get_client()

    def validate_input(self, payload: Union[InputT, dict[str, Any]]) -> InputT:
        """Check the payload against the input schema before any call."""
        data = payload.model_dump() if isinstance(payload, BaseModel) else payload
        try:
            return self.input_model.model_validate(data)
        except ValidationError as e:
            raise PromptInputError(
                f"{self.name}: invalid input: {e.error_count()} validation error(s)",
                validation_errors=e.errors(),
            ) from e

    def parse_output(self, content: Optional[str]) -> OutputT:
        """Validate raw model output against the output schema."""
        if not content:
            raise LLMInvokeError(f"{self.name}: Empty response from LLM")

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise OutputValidationError(
                f"{self.name}: Invalid JSON response: {e}", raw_response=content
            ) from e

        try:
            return self.output_model.model_validate(data)
        except ValidationError as e:
            raise OutputValidationError(
                f"{self.name}: response does not match {self.output_model.__name__}: "
                f"{e.error_count()} validation error(s)",
                raw_response=content,
                validation_errors=e.errors(),
            ) from e

    def _response_format(self) -> dict[str, Any]:
        # Optional fields are not expressible in strict mode
        return {
            "type": "json_schema",
            "json_schema": {
                "name": self.output_model.__name__,
                "strict": False,
                "schema": self.output_model.model_json_schema(),
            },
        }

    async def _call_openai(self, payload: InputT) -> OutputT:
        response = await self.client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            timeout=self.retry_policy.timeout_s,
            messages=[
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": self.render(payload)},
            ],
            response_format=self._response_format(),
        )
        return self.parse_output(response.choices[0].message.content)

    async def __call__(self, payload: Union[InputT, dict[str, Any]]) -> OutputT:
        """Validate, invoke and validate.

        Raises:
            PromptInputError: Payload does not match the input schema.
            OutputValidationError: Response does not match the output schema.
            LLMInvokeError: Any other call failure, including exhausted retries.
        """
        validated = self.validate_input(payload)
        policy = self.retry_policy

        logger.info("Invoking %s (model=%s)", self.name, self.model)
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait_exponential(
                multiplier=policy.backoff_multiplier,
                min=policy.backoff_min_s,
                max=policy.backoff_max_s,
            ),
            reraise=True,
        )

        try:
            return await retrying(self._call_openai, validated)
        except PromptError:
            raise
        except RETRYABLE_ERRORS as e:
            # Attempts exhausted (reraise=True means original exception is re-raised)
            raise LLMInvokeError(
                f"{self.name}: API error after {policy.max_attempts} attempt(s): {e}"
            ) from e
        except (AuthenticationError, BadRequestError) as e:
            raise LLMInvokeError(f"{self.name}: Non-retryable API error: {e}") from e
        except Exception as e:
            raise LLMInvokeError(f"{self.name}: Unexpected error: {e}") from e


__all__ = [
    "LLMInvokeError",
    "OutputValidationError",
    "PromptError",
    "PromptInputError",
    "PromptInvoker",
    "RETRYABLE_ERRORS",
    "RetryPolicy",
    "get_client",
    "truncate_text",
]
