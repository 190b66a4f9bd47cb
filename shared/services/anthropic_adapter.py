"""
Anthropic (Claude) Adapter

Maps the LLMService call interface onto the Anthropic Messages API.

Handles:
- Reasoning effort -> thinking budget mapping
- JSON schema -> forced tool_use structured output
- JSON mode -> system instruction, with code-fence stripping on parse
"""

import json
import logging
import re
from typing import Dict, Any, Optional

import anthropic

logger = logging.getLogger(__name__)

DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-5"

THINKING_BUDGET_MAP = {
    "none": 0,
    "low": 4_000,
    "medium": 8_000,
    "high": 16_000,
}

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class AnthropicAdapter:
    """Adapter that translates LLMService calls to Anthropic's Messages API."""

    def __init__(
        self,
        api_key: str,
        timeout: int = 60,
        model: str = DEFAULT_CLAUDE_MODEL,
        max_tokens: int = 4096,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout)

    def _build_kwargs(
        self,
        prompt: str,
        reasoning_effort: str = "none",
        json_mode: bool = True,
        json_schema: Optional[Dict[str, Any]] = None,
        schema_name: str = "response",
    ) -> Dict[str, Any]:
        """Build kwargs for anthropic messages.create()."""
        budget = THINKING_BUDGET_MAP.get(reasoning_effort, 0)
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens + budget,
            "messages": [{"role": "user", "content": prompt}],
        }

        if budget > 0:
            kwargs["thinking"] = {"type": "enabled", "budget_tokens": budget}

        if json_schema:
            kwargs["tools"] = [
                {
                    "name": schema_name,
                    "description": f"Return the {schema_name} output.",
                    "input_schema": json_schema,
                }
            ]
            # Forced tool choice is not allowed together with extended thinking
            if budget > 0:
                kwargs["tool_choice"] = {"type": "auto"}
            else:
                kwargs["tool_choice"] = {"type": "tool", "name": schema_name}
        elif json_mode:
            kwargs["system"] = (
                "Respond with a single valid JSON object only. No markdown, no prose outside the JSON."
            )

        return kwargs

    @staticmethod
    def _load_json(text: str) -> Optional[Dict[str, Any]]:
        match = _FENCE_RE.match(text.strip())
        candidate = match.group(1) if match else text
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            return None
        return value if isinstance(value, dict) else None

    def _parse_response(
        self,
        response: Any,
        json_mode: bool = True,
        json_schema: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Parse Anthropic response into the standard {output_text, reasoning, parsed} dict."""
        text_parts = []
        reasoning_str = None
        parsed = None

        for block in response.content:
            if block.type == "thinking":
                reasoning_str = block.thinking
            elif block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                parsed = block.input

        if parsed is not None:
            output_text = json.dumps(parsed)
        else:
            output_text = "".join(text_parts)
            if (json_mode or json_schema) and output_text:
                parsed = self._load_json(output_text)
                if parsed is not None:
                    output_text = json.dumps(parsed)

        return {
            "output_text": output_text,
            "reasoning": reasoning_str,
            "parsed": parsed if (json_mode or json_schema) else None,
        }

    def call_sync(
        self,
        prompt: str,
        reasoning_effort: str = "none",
        json_mode: bool = True,
        json_schema: Optional[Dict[str, Any]] = None,
        schema_name: str = "response",
    ) -> Dict[str, Any]:
        """Call Claude and return the standard output dict."""
        kwargs = self._build_kwargs(prompt, reasoning_effort, json_mode, json_schema, schema_name)
        response = self.client.messages.create(**kwargs)
        logger.info(json.dumps({
            "step": "LLM_CALL",
            "status": "complete",
            "model": self.model,
            "stop_reason": getattr(response, "stop_reason", None),
        }))
        return self._parse_response(response, json_mode, json_schema)
