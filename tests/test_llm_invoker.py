"""Tests for the schema-validated prompt invoker."""

import json
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest
from openai import (
    APIConnectionError,
    APITimeoutError,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    RateLimitError,
)
from pydantic import BaseModel, ConfigDict

from app.schemas.domain import QualityAssessment
from pipeline.llm_invoker import (
    LLMInvokeError,
    OutputValidationError,
    PromptInputError,
    PromptInvoker,
    RetryPolicy,
    get_client,
    truncate_text,
)

NO_WAIT = dict(backoff_multiplier=0, backoff_min_s=0, backoff_max_s=0)


class EchoInput(BaseModel):
    model_config = ConfigDict(strict=True)

    contract_text: str
    extracted_data: str


def make_quality_data():
    return {
        "quality_score": 0.85,
        "confidence_level": "high",
        "is_complete": True,
        "justification": "Dates and parties match the source text.",
    }


def create_mock_response(content):
    """Create a mock OpenAI chat completion response."""
    mock_message = Mock()
    mock_message.content = content

    mock_choice = Mock()
    mock_choice.message = mock_message

    mock_response = Mock()
    mock_response.choices = [mock_choice]
    return mock_response


def create_mock_client(response_data=None, side_effect=None, raw_content=None):
    """Create a mock AsyncOpenAI client."""
    mock_client = MagicMock()
    mock_client.chat.completions.create = AsyncMock()

    if side_effect is not None:
        mock_client.chat.completions.create.side_effect = side_effect
    elif raw_content is not None:
        mock_client.chat.completions.create.return_value = create_mock_response(raw_content)
    else:
        data = response_data if response_data is not None else make_quality_data()
        mock_client.chat.completions.create.return_value = create_mock_response(json.dumps(data))

    return mock_client


def make_invoker(client, retry_policy=None):
    return PromptInvoker(
        "determine_extraction_quality",
        system_prompt="You are an expert in contract analysis.",
        render=lambda p: f"Contract Text: {p.contract_text}\n\nExtracted Data: {p.extracted_data}",
        input_model=EchoInput,
        output_model=QualityAssessment,
        client=client,
        model="gpt-4o-mini",
        temperature=0.1,
        retry_policy=retry_policy or RetryPolicy(max_attempts=1, timeout_s=30, **NO_WAIT),
    )


VALID_INPUT = {"contract_text": "Contract text", "extracted_data": "{}"}


def rate_limit_error():
    return RateLimitError(message="Rate limited", response=Mock(status_code=429), body=None)


class TestTruncateText:
    """Tests for text truncation."""

    def test_short_text_unchanged(self):
        assert truncate_text("Short text", 100) == "Short text"

    def test_long_text_truncated(self):
        assert len(truncate_text("x" * 200, 100)) <= 100

    def test_truncate_preserves_sentence_boundary(self):
        result = truncate_text("First sentence. Second sentence. Third sentence.", 35)
        assert result.endswith(".")

    def test_truncate_no_period_in_range(self):
        result = truncate_text("x" * 100 + ".", 50)
        assert len(result) == 50


class TestInputValidation:
    """Input is checked before any call is made."""

    @pytest.mark.asyncio
    async def test_missing_field_rejected(self):
        client = create_mock_client()
        invoker = make_invoker(client)

        with pytest.raises(PromptInputError, match="invalid input"):
            await invoker({"contract_text": "only one field"})

        client.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_wrong_primitive_type_rejected(self):
        client = create_mock_client()
        invoker = make_invoker(client)

        with pytest.raises(PromptInputError) as exc_info:
            await invoker({"contract_text": 123, "extracted_data": "{}"})

        assert exc_info.value.validation_errors
        client.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_model_instance_accepted(self):
        client = create_mock_client()
        invoker = make_invoker(client)

        result = await invoker(EchoInput(**VALID_INPUT))

        assert isinstance(result, QualityAssessment)


class TestOutputValidation:
    """Non-conforming responses are hard failures."""

    @pytest.mark.asyncio
    async def test_returns_validated_output(self):
        invoker = make_invoker(create_mock_client())
        result = await invoker(VALID_INPUT)

        assert result.quality_score == 0.85
        assert result.confidence_level == "high"
        assert result.is_complete is True

    @pytest.mark.asyncio
    async def test_score_above_one_rejected_not_clamped(self):
        data = make_quality_data()
        data["quality_score"] = 1.5
        invoker = make_invoker(create_mock_client(response_data=data))

        with pytest.raises(OutputValidationError) as exc_info:
            await invoker(VALID_INPUT)

        assert exc_info.value.raw_response is not None
        assert exc_info.value.validation_errors

    @pytest.mark.asyncio
    async def test_negative_score_rejected(self):
        data = make_quality_data()
        data["quality_score"] = -0.1
        invoker = make_invoker(create_mock_client(response_data=data))

        with pytest.raises(OutputValidationError):
            await invoker(VALID_INPUT)

    @pytest.mark.asyncio
    async def test_unknown_enum_value_rejected(self):
        data = make_quality_data()
        data["confidence_level"] = "very high"
        invoker = make_invoker(create_mock_client(response_data=data))

        with pytest.raises(OutputValidationError):
            await invoker(VALID_INPUT)

    @pytest.mark.asyncio
    async def test_string_boolean_not_coerced(self):
        data = make_quality_data()
        data["is_complete"] = "true"
        invoker = make_invoker(create_mock_client(response_data=data))

        with pytest.raises(OutputValidationError):
            await invoker(VALID_INPUT)

    @pytest.mark.asyncio
    async def test_missing_field_rejected(self):
        invoker = make_invoker(create_mock_client(response_data={"quality_score": 0.5}))

        with pytest.raises(OutputValidationError):
            await invoker(VALID_INPUT)

    @pytest.mark.asyncio
    async def test_empty_response_raises_error(self):
        invoker = make_invoker(create_mock_client(raw_content=""))

        with pytest.raises(LLMInvokeError, match="Empty response"):
            await invoker(VALID_INPUT)

    @pytest.mark.asyncio
    async def test_invalid_json_raises_error(self):
        invoker = make_invoker(create_mock_client(raw_content="not valid json {{"))

        with pytest.raises(OutputValidationError, match="Invalid JSON"):
            await invoker(VALID_INPUT)

    def test_output_error_is_invoke_error(self):
        assert issubclass(OutputValidationError, LLMInvokeError)


class TestAPIErrors:
    """Tests for API error handling and the retry policy."""

    @pytest.mark.asyncio
    async def test_authentication_error_not_retried(self):
        client = create_mock_client(
            side_effect=AuthenticationError(
                message="Invalid API key", response=Mock(status_code=401), body=None
            )
        )
        invoker = make_invoker(client, RetryPolicy(max_attempts=3, **NO_WAIT))

        with pytest.raises(LLMInvokeError, match="Non-retryable API error"):
            await invoker(VALID_INPUT)

        assert client.chat.completions.create.call_count == 1

    @pytest.mark.asyncio
    async def test_bad_request_error_not_retried(self):
        client = create_mock_client(
            side_effect=BadRequestError(
                message="Bad request", response=Mock(status_code=400), body=None
            )
        )
        invoker = make_invoker(client, RetryPolicy(max_attempts=3, **NO_WAIT))

        with pytest.raises(LLMInvokeError, match="Non-retryable API error"):
            await invoker(VALID_INPUT)

        assert client.chat.completions.create.call_count == 1

    @pytest.mark.asyncio
    async def test_default_policy_makes_single_attempt(self):
        client = create_mock_client(side_effect=rate_limit_error())
        invoker = make_invoker(client)

        with pytest.raises(LLMInvokeError, match="after 1 attempt"):
            await invoker(VALID_INPUT)

        assert client.chat.completions.create.call_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            rate_limit_error(),
            APIConnectionError(message="Connection failed", request=Mock()),
            APITimeoutError(request=Mock()),
            InternalServerError(message="Server error", response=Mock(status_code=500), body=None),
        ],
    )
    async def test_transient_errors_retried_up_to_max_attempts(self, error):
        client = create_mock_client(side_effect=error)
        invoker = make_invoker(client, RetryPolicy(max_attempts=3, **NO_WAIT))

        with pytest.raises(LLMInvokeError, match="after 3 attempt"):
            await invoker(VALID_INPUT)

        assert client.chat.completions.create.call_count == 3

    @pytest.mark.asyncio
    async def test_retry_succeeds_on_second_attempt(self):
        client = create_mock_client()
        client.chat.completions.create.side_effect = [
            rate_limit_error(),
            create_mock_response(json.dumps(make_quality_data())),
        ]
        invoker = make_invoker(client, RetryPolicy(max_attempts=3, **NO_WAIT))

        result = await invoker(VALID_INPUT)

        assert isinstance(result, QualityAssessment)
        assert client.chat.completions.create.call_count == 2

    @pytest.mark.asyncio
    async def test_validation_failure_not_retried(self):
        client = create_mock_client(raw_content="not json")
        invoker = make_invoker(client, RetryPolicy(max_attempts=3, **NO_WAIT))

        with pytest.raises(OutputValidationError):
            await invoker(VALID_INPUT)

        assert client.chat.completions.create.call_count == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self):
        client = create_mock_client(side_effect=KeyError("choices"))
        invoker = make_invoker(client)

        with pytest.raises(LLMInvokeError, match="Unexpected error"):
            await invoker(VALID_INPUT)


class TestAPICallParameters:
    """Tests for the outbound request."""

    @pytest.mark.asyncio
    async def test_exactly_one_call_per_invocation(self):
        client = create_mock_client()
        await make_invoker(client)(VALID_INPUT)
        client.chat.completions.create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_model_temperature_and_timeout(self):
        client = create_mock_client()
        await make_invoker(client)(VALID_INPUT)

        call_kwargs = client.chat.completions.create.call_args.kwargs
        assert call_kwargs["model"] == "gpt-4o-mini"
        assert call_kwargs["temperature"] == 0.1
        assert call_kwargs["timeout"] == 30

    @pytest.mark.asyncio
    async def test_messages_use_system_prompt_and_rendered_input(self):
        client = create_mock_client()
        await make_invoker(client)(VALID_INPUT)

        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0]["role"] == "system"
        assert "contract analysis" in messages[0]["content"]
        assert messages[1]["role"] == "user"
        assert "Contract Text: Contract text" in messages[1]["content"]

    @pytest.mark.asyncio
    async def test_uses_json_schema_response_format(self):
        client = create_mock_client()
        await make_invoker(client)(VALID_INPUT)

        response_format = client.chat.completions.create.call_args.kwargs["response_format"]
        assert response_format["type"] == "json_schema"
        schema = response_format["json_schema"]["schema"]
        assert "quality_score" in schema["properties"]


class TestGetClient:
    """Tests for lazy client initialization."""

    @patch("pipeline.llm_invoker._client", None)
    @patch("pipeline.llm_invoker.AsyncOpenAI")
    def test_creates_client_on_first_call(self, mock_openai_class):
        mock_client = Mock()
        mock_openai_class.return_value = mock_client

        assert get_client() is mock_client
        mock_openai_class.assert_called_once()

    @pytest.mark.asyncio
    @patch("pipeline.llm_invoker.get_client")
    async def test_uses_default_client_when_none_provided(self, mock_get_client):
        mock_get_client.return_value = create_mock_client()
        invoker = make_invoker(None)

        await invoker(VALID_INPUT)

        mock_get_client.assert_called_once()
