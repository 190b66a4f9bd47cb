"""
Tutor Capabilities

Provider-agnostic generation and scoring operations used by the session
orchestrator, plus the LLMService-backed implementation.
"""

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional, Type

from pydantic import BaseModel, Field

from shared.services.llm_service import LLMService, LLMServiceError
from tutor.exceptions import EvaluationError, GenerationError, TutorError, ValidationError
from tutor.models.learning import ModuleDetail, Question
from tutor.models.messages import Message
from tutor.prompts.session_prompts import (
    ANSWER_EVALUATION_PROMPT,
    CONVERSATIONAL_REPLY_PROMPT,
    KIND_INSTRUCTIONS,
    LEVEL_ADJUSTMENT_PROMPT,
    LEVEL_INSTRUCTIONS,
    QUESTION_GENERATION_PROMPT,
)
from tutor.prompts.templates import format_list_for_prompt, format_transcript_for_prompt
from tutor.utils.schema_utils import get_strict_schema, parse_json_safely, validate_output


logger = logging.getLogger("tutor.capabilities")

MAX_MODULE_CONTENT_CHARS = 4000


# Structured output models

class GeneratedQuestion(BaseModel):
    question: str = Field(description="Question text")
    expected_answer: str = Field(description="Reference answer")
    hint: Optional[str] = Field(default=None, description="Hint that does not reveal the answer")
    explanation: Optional[str] = Field(default=None, description="Why the answer is correct")
    difficulty: Optional[str] = Field(default=None, description="beginner, intermediate or advanced")
    category: Optional[str] = Field(default=None, description="Short topic label")


class GeneratedQuestionBatch(BaseModel):
    questions: list[GeneratedQuestion]


class ScoredAnswer(BaseModel):
    is_correct: bool
    score: float
    feedback: str
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    further_study_tips: Optional[str] = None


class TutorCapabilities(ABC):
    """Generation and scoring operations consumed by the orchestrator."""

    @abstractmethod
    async def generate_questions(
        self, module: ModuleDetail, session_kind: str, count: int, difficulty: str
    ) -> list[dict[str, Any]]:
        """Raises GenerationError or ValidationError."""

    @abstractmethod
    async def evaluate_answer(self, question: Question, raw_answer: str) -> dict[str, Any]:
        """Raises EvaluationError."""

    @abstractmethod
    async def generate_conversational_reply(
        self, transcript_tail: list[Message], module: ModuleDetail, profile_hint: str
    ) -> str:
        """Raises GenerationError or ValidationError."""

    @abstractmethod
    async def adjust_text_for_level(self, text: str, tier: str) -> str:
        """Best effort. Returns the input unchanged on failure."""


def _module_content(module: ModuleDetail) -> str:
    parts = [f"## {s.title}\n{s.content.strip()}" for s in module.sections if s.content.strip()]
    content = "\n\n".join(parts) or "(no content provided)"
    return content[:MAX_MODULE_CONTENT_CHARS]


class LLMTutorCapabilities(TutorCapabilities):
    """
    TutorCapabilities over the synchronous LLMService.

    Calls run in the default executor so the event loop stays free while the
    provider SDK blocks.
    """

    def __init__(self, llm_service: LLMService, reasoning_effort: str = "none"):
        self.llm = llm_service
        self.reasoning_effort = reasoning_effort

    async def _call(
        self,
        purpose: str,
        prompt: str,
        output_model: Optional[Type[BaseModel]] = None,
        json_mode: bool = True,
    ) -> dict[str, Any]:
        start_time = time.time()
        schema = get_strict_schema(output_model) if output_model else None

        loop = asyncio.get_event_loop()
        result = await loop.run_in_executor(
            None,
            lambda: self.llm.call(
                prompt=prompt,
                reasoning_effort=self.reasoning_effort,
                json_mode=json_mode,
                json_schema=schema,
                schema_name=output_model.__name__ if output_model else "response",
            ),
        )

        logger.info(json.dumps({
            "step": "CAPABILITY",
            "purpose": purpose,
            "duration_ms": int((time.time() - start_time) * 1000),
        }))
        return result

    def _structured(self, result: dict[str, Any], model: Type[BaseModel], source: str) -> BaseModel:
        payload = result.get("parsed")
        if payload is None:
            payload = parse_json_safely(result.get("output_text", ""), source=source)
        return validate_output(payload, model, source=source)

    async def generate_questions(
        self, module: ModuleDetail, session_kind: str, count: int, difficulty: str
    ) -> list[dict[str, Any]]:
        prompt = QUESTION_GENERATION_PROMPT.render(
            module_title=module.title,
            module_description=module.description or module.title,
            learning_objectives=format_list_for_prompt(module.learning_objectives),
            module_content=_module_content(module),
            session_kind=session_kind,
            kind_instructions=KIND_INSTRUCTIONS.get(session_kind, KIND_INSTRUCTIONS["practice"]),
            difficulty=difficulty,
            count=count,
        )
        try:
            result = await self._call("question_generation", prompt, GeneratedQuestionBatch)
        except LLMServiceError as e:
            raise GenerationError(str(e), operation="generate_questions") from e

        batch = self._structured(result, GeneratedQuestionBatch, "question_generation")
        return [q.model_dump() for q in batch.questions]

    async def evaluate_answer(self, question: Question, raw_answer: str) -> dict[str, Any]:
        prompt = ANSWER_EVALUATION_PROMPT.render(
            question=question.prompt,
            expected_answer=question.expected_answer,
            explanation=question.explanation or "(none)",
            user_answer=raw_answer,
        )
        try:
            result = await self._call("answer_evaluation", prompt, ScoredAnswer)
            scored = self._structured(result, ScoredAnswer, "answer_evaluation")
        except (LLMServiceError, TutorError) as e:
            raise EvaluationError(str(e), question_id=question.id) from e
        return scored.model_dump()

    async def generate_conversational_reply(
        self, transcript_tail: list[Message], module: ModuleDetail, profile_hint: str
    ) -> str:
        prompt = CONVERSATIONAL_REPLY_PROMPT.render(
            module_title=module.title,
            module_description=module.description or module.title,
            learning_objectives=format_list_for_prompt(module.learning_objectives),
            profile_hint=profile_hint,
            transcript=format_transcript_for_prompt(transcript_tail),
        )
        try:
            result = await self._call("conversational_reply", prompt, json_mode=False)
        except LLMServiceError as e:
            raise GenerationError(str(e), operation="conversational_reply") from e

        text = (result.get("output_text") or "").strip()
        if not text:
            raise ValidationError("Conversational reply was empty")
        return text

    async def adjust_text_for_level(self, text: str, tier: str) -> str:
        prompt = LEVEL_ADJUSTMENT_PROMPT.render(
            tier=tier,
            level_instructions=LEVEL_INSTRUCTIONS.get(tier, LEVEL_INSTRUCTIONS["beginner"]),
            text=text,
        )
        try:
            result = await self._call("level_adjustment", prompt, json_mode=False)
        except (LLMServiceError, TutorError) as e:
            logger.warning(f"Level adjustment failed, keeping original text: {e}")
            return text

        adjusted = (result.get("output_text") or "").strip()
        return adjusted or text
