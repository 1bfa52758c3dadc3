"""Model-backed analysis pipeline."""

from pipeline.llm_invoker import (
    LLMInvokeError,
    OutputValidationError,
    PromptError,
    PromptInputError,
    PromptInvoker,
    RetryPolicy,
)
from pipeline.orchestrator import ContractPipeline, MissingExtractionError, PipelineStateError
from pipeline.prompts import StageInvokers, build_invokers

__all__ = [
    "ContractPipeline",
    "LLMInvokeError",
    "MissingExtractionError",
    "OutputValidationError",
    "PipelineStateError",
    "PromptError",
    "PromptInputError",
    "PromptInvoker",
    "RetryPolicy",
    "StageInvokers",
    "build_invokers",
]
