"""
LLM Service

Single synchronous entry point for the tutor's model calls. The provider
(openai, google, anthropic) and model come from Settings; `call()` always
returns {output_text, reasoning} and Anthropic calls also carry `parsed`.
"""

import json
import time
from typing import Any, Callable, Dict, Optional
from openai import OpenAI, OpenAIError, RateLimitError, APITimeoutError
from google import genai
from google.genai import types
import logging

logger = logging.getLogger(__name__)

# Served by the OpenAI Responses API; every other OpenAI model goes through Chat Completions
RESPONSES_API_MODELS = frozenset({"gpt-5.2", "gpt-5.1", "gpt-5", "gpt-5-mini"})

ANTHROPIC_PROVIDERS = ("anthropic", "anthropic-haiku")

_RETRYABLE = (RateLimitError, APITimeoutError)


class LLMServiceError(Exception):
    """Raised when a provider call fails or is misconfigured."""
    pass


def _log_step(status: str, model: str, **fields: Any) -> None:
    logger.info(json.dumps({"step": "LLM_CALL", "status": status, "model": model, **fields}))


class LLMService:
    """
    Provider-routing LLM client with retry on rate limits and timeouts.

    Build one with `from_settings()`; the constructor is keyword-driven so
    tests can point it at a single provider.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        provider: str,
        model_id: str,
        gemini_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        max_retries: int = 3,
        initial_retry_delay: float = 1.0,
        timeout: int = 60,
    ):
        self.provider = provider
        self.model_id = model_id
        self.max_retries = max_retries
        self.initial_retry_delay = initial_retry_delay
        self.timeout = timeout

        self.client = OpenAI(api_key=api_key) if api_key else None

        self.has_gemini = bool(gemini_api_key)
        if self.has_gemini:
            self.gemini_client = genai.Client(api_key=gemini_api_key)

        self.anthropic_adapter = None
        if anthropic_api_key:
            from shared.services.anthropic_adapter import AnthropicAdapter
            self.anthropic_adapter = AnthropicAdapter(
                api_key=anthropic_api_key, timeout=timeout, model=model_id
            )

    @classmethod
    def from_settings(cls, settings) -> "LLMService":
        return cls(
            settings.openai_api_key or None,
            provider=settings.llm_provider,
            model_id=settings.llm_model,
            gemini_api_key=settings.gemini_api_key or None,
            anthropic_api_key=settings.anthropic_api_key or None,
            max_retries=settings.llm_max_retries,
            timeout=settings.llm_timeout_seconds,
        )

    def call(
        self,
        prompt: str,
        reasoning_effort: str = "none",
        json_mode: bool = True,
        json_schema: Optional[Dict[str, Any]] = None,
        schema_name: str = "response",
        temperature: float = 0.7,
    ) -> Dict[str, Any]:
        """
        Run one prompt against the configured provider.

        Args:
            prompt: Full prompt text
            reasoning_effort: none, low, medium or high (ignored by Chat Completions and Gemini)
            json_mode: Ask for a JSON object response
            json_schema: Strict schema for structured output; implies JSON
            schema_name: Name attached to the schema
            temperature: Sampling temperature where the API accepts one

        Raises:
            LLMServiceError: On misconfiguration or a non-retryable provider error
        """
        if self.provider in ANTHROPIC_PROVIDERS:
            return self._call_anthropic(prompt, reasoning_effort, json_mode, json_schema, schema_name)

        if self.provider == "google":
            text = self._call_gemini(prompt, temperature, json_mode or bool(json_schema))
            return {"output_text": text, "reasoning": None}

        if self.client is None:
            raise LLMServiceError("OpenAI API key not configured")
        if self.model_id in RESPONSES_API_MODELS:
            return self._call_responses_api(prompt, reasoning_effort, json_mode, json_schema, schema_name)
        text = self._call_chat_completions(prompt, temperature, json_mode, json_schema, schema_name)
        return {"output_text": text, "reasoning": None}

    # ─── OpenAI ───────────────────────────────────────────────────────

    def _call_responses_api(
        self,
        prompt: str,
        reasoning_effort: str,
        json_mode: bool,
        json_schema: Optional[Dict[str, Any]],
        schema_name: str,
    ) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"model": self.model_id, "input": prompt, "timeout": self.timeout}
        if reasoning_effort != "none":
            kwargs["reasoning"] = {"effort": reasoning_effort}
        if json_schema:
            kwargs["text"] = {"format": {
                "type": "json_schema", "name": schema_name, "schema": json_schema, "strict": True,
            }}
        elif json_mode:
            kwargs["text"] = {"format": {"type": "json_object"}}

        _log_step("starting", self.model_id, api="responses", reasoning_effort=reasoning_effort,
                  schema_name=schema_name if json_schema else None)

        def _request() -> Dict[str, Any]:
            result = self.client.responses.create(**kwargs)
            return {"output_text": result.output_text, "reasoning": self._reasoning_summary(result)}

        return self._with_retry(_request, self.model_id)

    @staticmethod
    def _reasoning_summary(result: Any) -> Optional[str]:
        reasoning = getattr(result, "reasoning", None)
        if reasoning is None:
            return None
        summary = getattr(reasoning, "summary", None)
        return str(summary) if summary else str(reasoning)

    def _call_chat_completions(
        self,
        prompt: str,
        temperature: float,
        json_mode: bool,
        json_schema: Optional[Dict[str, Any]],
        schema_name: str,
        max_tokens: int = 2048,
    ) -> str:
        kwargs: Dict[str, Any] = {
            "model": self.model_id,
            "messages": [{"role": "user", "content": prompt}],
            "max_completion_tokens": max_tokens,
            "temperature": temperature,
            "timeout": self.timeout,
        }
        if json_schema:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": json_schema, "strict": True},
            }
        elif json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        _log_step("starting", self.model_id, api="chat_completions", json_mode=json_mode)

        def _request() -> str:
            response = self.client.chat.completions.create(**kwargs)
            return response.choices[0].message.content

        return self._with_retry(_request, self.model_id)

    # ─── Anthropic / Gemini ───────────────────────────────────────────

    def _call_anthropic(
        self,
        prompt: str,
        reasoning_effort: str,
        json_mode: bool,
        json_schema: Optional[Dict[str, Any]],
        schema_name: str,
    ) -> Dict[str, Any]:
        if not self.anthropic_adapter:
            raise LLMServiceError("Anthropic adapter not configured (missing API key)")
        try:
            return self.anthropic_adapter.call_sync(
                prompt=prompt,
                reasoning_effort=reasoning_effort,
                json_mode=json_mode,
                json_schema=json_schema,
                schema_name=schema_name,
            )
        except Exception as e:
            logger.error(f"Anthropic call failed: {e}")
            raise LLMServiceError(f"Anthropic API error: {e}") from e

    def _call_gemini(self, prompt: str, temperature: float, want_json: bool) -> str:
        if not self.has_gemini:
            raise LLMServiceError("Gemini API key not configured")

        # Gemini rejects OpenAI strict-mode schemas; JSON mime type only
        config = types.GenerateContentConfig(
            temperature=temperature,
            response_mime_type="application/json" if want_json else None,
        )
        _log_step("starting", self.model_id, api="gemini", json_mode=want_json)

        def _request() -> str:
            response = self.gemini_client.models.generate_content(
                model=self.model_id, contents=prompt, config=config
            )
            return response.text

        return self._with_retry(_request, f"Gemini-{self.model_id}")

    # ─── Retry ────────────────────────────────────────────────────────

    def _with_retry(self, request: Callable[[], Any], label: str) -> Any:
        """
        Run `request`, retrying rate-limit and timeout errors with exponential
        backoff. Any other error is wrapped in LLMServiceError immediately.
        """
        start = time.time()
        delay = self.initial_retry_delay
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                result = request()
            except _RETRYABLE as e:
                last_error = e
                if attempt == self.max_retries:
                    break
                logger.warning(
                    f"{label} {type(e).__name__} on attempt {attempt}/{self.max_retries}, "
                    f"retrying in {delay}s"
                )
                time.sleep(delay)
                delay *= 2
                continue
            except OpenAIError as e:
                logger.error(f"{label} API error: {e}")
                raise LLMServiceError(f"{label} API error: {e}") from e
            except Exception as e:
                logger.error(f"{label} unexpected error: {e}")
                raise LLMServiceError(f"{label} unexpected error: {e}") from e

            _log_step("complete", label, attempts=attempt,
                      response_length=len(str(result)) if result else 0,
                      duration_ms=int((time.time() - start) * 1000))
            return result

        _log_step("failed", label, attempts=self.max_retries, error=str(last_error),
                  duration_ms=int((time.time() - start) * 1000))
        raise LLMServiceError(
            f"{label} failed after {self.max_retries} attempts. Last error: {last_error}"
        ) from last_error

