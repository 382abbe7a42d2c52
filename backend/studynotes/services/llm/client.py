"""
Unified LLM Client supporting multiple providers via LiteLLM.

LiteLLM provides a unified interface to 100+ LLM providers using
the format "provider/model-name". Key features:
- Operation-based model selection via AiOperation
- Usage tracking via LLMUsage
- Automatic retries with exponential backoff
- Native async support

See: https://docs.litellm.ai/

Usage:
    from studynotes.services.llm import get_llm_client, AiOperation

    client = get_llm_client()

    questions, usage = await client.complete(
        operation=AiOperation.QUESTION_GENERATION,
        messages=[{"role": "user", "content": "Create questions..."}],
        json_mode=True,
    )
    print(f"Cost: ${usage.cost_usd or 0:.4f}")
"""

import json
import logging
import os
import time
from enum import Enum
from functools import lru_cache
from typing import Any, Optional, Union

import litellm
from litellm import acompletion
from tenacity import retry, stop_after_attempt, wait_exponential

from studynotes.config.settings import settings
from studynotes.models.llm_usage import LLMUsage, extract_usage_from_response

logger = logging.getLogger(__name__)

litellm.drop_params = True  # Drop unsupported params instead of erroring
if settings.DEBUG:
    os.environ["LITELLM_LOG"] = "DEBUG"


class AiOperation(str, Enum):
    """LLM operations, used for model selection and usage attribution."""

    QUESTION_GENERATION = "question_generation"
    ANSWER_EVALUATION = "answer_evaluation"


def build_messages(
    prompt: str,
    system_prompt: Optional[str] = None,
) -> list[dict[str, str]]:
    """
    Build messages list from prompt and optional system prompt.

    Args:
        prompt: User prompt text
        system_prompt: Optional system prompt

    Returns:
        List of message dicts for LLM API
    """
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})
    return messages


class LLMClient:
    """
    LLM client with operation-based model selection and usage tracking.

    AI review generation and evaluation can be pointed at different models
    (AI_REVIEW_GENERATION_MODEL, AI_REVIEW_EVALUATION_MODEL); both fall
    back to TEXT_MODEL.
    """

    def __init__(self):
        """Initialize the LLM client and validate API keys."""
        self._validate_api_keys()

    def _validate_api_keys(self):
        """Log which providers have API keys configured."""
        available_keys = []

        if os.getenv("OPENAI_API_KEY") or settings.OPENAI_API_KEY:
            available_keys.append("OpenAI")
        if os.getenv("ANTHROPIC_API_KEY") or settings.ANTHROPIC_API_KEY:
            available_keys.append("Anthropic")
        if os.getenv("GEMINI_API_KEY") or settings.GEMINI_API_KEY:
            available_keys.append("Google/Gemini")

        if not available_keys:
            logger.warning(
                "No LLM API keys configured. Set at least one of: "
                "OPENAI_API_KEY, ANTHROPIC_API_KEY, GEMINI_API_KEY"
            )
        else:
            logger.info(f"LLM client initialized with providers: {available_keys}")

    def get_model_for_operation(self, operation: Union[AiOperation, str]) -> str:
        """
        Get the configured model for a specific operation.

        Returns:
            Model identifier in LiteLLM format (provider/model-name)
        """
        models = {
            AiOperation.QUESTION_GENERATION: settings.AI_REVIEW_GENERATION_MODEL,
            AiOperation.ANSWER_EVALUATION: settings.AI_REVIEW_EVALUATION_MODEL,
        }
        try:
            operation = AiOperation(operation)
        except ValueError:
            logger.warning(f"Unknown operation type: {operation}, using default model")
            return settings.TEXT_MODEL
        return models.get(operation) or settings.TEXT_MODEL

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        reraise=True,
    )
    async def complete(
        self,
        operation: Union[AiOperation, str],
        messages: list[dict],
        temperature: float = 0.3,
        max_tokens: int = 4096,
        json_mode: bool = False,
        model: Optional[str] = None,
    ) -> tuple[Union[str, Any], LLMUsage]:
        """
        Generate a completion using the appropriate model for the operation.

        Args:
            operation: Operation type, used for model selection and attribution
            messages: Chat messages in OpenAI format
            temperature: Sampling temperature (0-1, lower = more deterministic)
            max_tokens: Maximum tokens in response
            json_mode: Request structured JSON output and parse response as JSON.
                Returns parsed dict/list. JSONDecodeError triggers retry.
            model: Optional model override (bypasses operation-based selection)

        Returns:
            Tuple of (response_text or parsed JSON if json_mode, LLMUsage)

        Raises:
            json.JSONDecodeError: If json_mode=True and response is not valid JSON
                after all retries
            Exception: If completion fails after retries
        """
        model = model or self.get_model_for_operation(operation)
        operation_name = getattr(operation, "value", operation)

        kwargs = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        start_time = time.perf_counter()

        try:
            response = await acompletion(**kwargs)
            latency_ms = int((time.perf_counter() - start_time) * 1000)

            usage = extract_usage_from_response(
                response=response,
                model=model,
                latency_ms=latency_ms,
                operation=operation_name,
            )
            if usage.cost_usd:
                logger.debug(
                    f"LLM completion [{model}] - Cost: ${usage.cost_usd:.4f}, "
                    f"Tokens: {usage.total_tokens}, Latency: {latency_ms}ms"
                )

            content = response.choices[0].message.content

            if json_mode:
                # JSONDecodeError will trigger @retry
                content = json.loads(content)

            return content, usage

        except json.JSONDecodeError:
            logger.warning(f"JSON decode error, will retry (model={model})")
            raise
        except Exception as e:
            latency_ms = int((time.perf_counter() - start_time) * 1000)
            logger.error(
                f"LLM completion failed: {e} (model={model}, operation={operation_name}, "
                f"latency={latency_ms}ms)"
            )
            raise


@lru_cache()
def get_llm_client() -> LLMClient:
    """Get the shared LLM client instance."""
    return LLMClient()
