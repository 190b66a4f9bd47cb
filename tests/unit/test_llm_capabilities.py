"""
Unit tests for tutor/services/llm_capabilities.py

LLMTutorCapabilities is exercised over a mocked LLMService; run_in_executor
calls the mock synchronously on a worker thread.
"""

import json
import pytest
from unittest.mock import Mock

from shared.services.llm_service import LLMServiceError
from tutor.exceptions import EvaluationError, GenerationError, ValidationError
from tutor.models.learning import ModuleDetail, ModuleSection, Question
from tutor.models.messages import create_learner_message, create_tutor_message
from tutor.services.llm_capabilities import (
    GeneratedQuestionBatch,
    LLMTutorCapabilities,
    MAX_MODULE_CONTENT_CHARS,
    _module_content,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

MODULE = ModuleDetail(
    id="m1",
    title="Fractions",
    description="Simple fractions",
    learning_objectives=["Compare fractions"],
    sections=[ModuleSection(id="s1", title="Intro", content="A fraction has two parts.")],
)

QUESTION = Question(id="q1", prompt="Name the top part.", expected_answer="numerator")


def _llm(output_text="", parsed=None, error=None):
    llm = Mock()
    if error is not None:
        llm.call.side_effect = error
    else:
        result = {"output_text": output_text, "reasoning": None}
        if parsed is not None:
            result["parsed"] = parsed
        llm.call.return_value = result
    return llm


def _prompt(llm):
    return llm.call.call_args.kwargs["prompt"]


# ===========================================================================
# Question generation
# ===========================================================================

class TestGenerateQuestions:
    @pytest.mark.asyncio
    async def test_returns_question_dicts(self):
        payload = {"questions": [{"question": "Q?", "expected_answer": "A", "hint": "h"}]}
        llm = _llm(json.dumps(payload))
        capabilities = LLMTutorCapabilities(llm)

        questions = await capabilities.generate_questions(MODULE, "quiz", 3, "beginner")

        assert questions[0]["question"] == "Q?"
        assert questions[0]["expected_answer"] == "A"
        kwargs = llm.call.call_args.kwargs
        assert kwargs["schema_name"] == "GeneratedQuestionBatch"
        assert kwargs["json_schema"]["additionalProperties"] is False
        assert "Write exactly 3 questions" in kwargs["prompt"]
        assert "Fractions" in kwargs["prompt"]

    @pytest.mark.asyncio
    async def test_prefers_parsed_payload(self):
        llm = _llm("ignored", parsed={"questions": []})
        assert await LLMTutorCapabilities(llm).generate_questions(MODULE, "quiz", 3, "beginner") == []

    @pytest.mark.asyncio
    async def test_service_error_becomes_generation_error(self):
        llm = _llm(error=LLMServiceError("down"))
        with pytest.raises(GenerationError) as exc_info:
            await LLMTutorCapabilities(llm).generate_questions(MODULE, "quiz", 3, "beginner")
        assert exc_info.value.operation == "generate_questions"

    @pytest.mark.asyncio
    async def test_malformed_output_raises_validation_error(self):
        llm = _llm('{"questions": "nope"}')
        with pytest.raises(ValidationError):
            await LLMTutorCapabilities(llm).generate_questions(MODULE, "quiz", 3, "beginner")


# ===========================================================================
# Answer evaluation
# ===========================================================================

class TestEvaluateAnswer:
    @pytest.mark.asyncio
    async def test_returns_scored_dict(self):
        llm = _llm(json.dumps({"is_correct": True, "score": 95, "feedback": "Yes"}))
        result = await LLMTutorCapabilities(llm).evaluate_answer(QUESTION, "numerator")

        assert result["is_correct"] is True
        assert result["score"] == 95
        prompt = _prompt(llm)
        assert "Name the top part." in prompt
        assert "numerator" in prompt

    @pytest.mark.asyncio
    async def test_service_error_becomes_evaluation_error(self):
        llm = _llm(error=LLMServiceError("timeout"))
        with pytest.raises(EvaluationError) as exc_info:
            await LLMTutorCapabilities(llm).evaluate_answer(QUESTION, "x")
        assert exc_info.value.question_id == "q1"

    @pytest.mark.asyncio
    async def test_invalid_json_becomes_evaluation_error(self):
        llm = _llm("no json here")
        with pytest.raises(EvaluationError):
            await LLMTutorCapabilities(llm).evaluate_answer(QUESTION, "x")


# ===========================================================================
# Conversation and level adjustment
# ===========================================================================

class TestConversationalReply:
    @pytest.mark.asyncio
    async def test_reply_text(self):
        llm = _llm("  A numerator is the top number.  ")
        tail = [create_tutor_message("Hi!"), create_learner_message("What is a numerator?")]

        reply = await LLMTutorCapabilities(llm).generate_conversational_reply(tail, MODULE, "beginner learner")

        assert reply == "A numerator is the top number."
        assert llm.call.call_args.kwargs["json_mode"] is False
        assert "Learner: What is a numerator?" in _prompt(llm)

    @pytest.mark.asyncio
    async def test_empty_reply_raises(self):
        with pytest.raises(ValidationError):
            await LLMTutorCapabilities(_llm("   ")).generate_conversational_reply([], MODULE, "")

    @pytest.mark.asyncio
    async def test_service_error_raises_generation_error(self):
        with pytest.raises(GenerationError):
            await LLMTutorCapabilities(_llm(error=LLMServiceError("x"))).generate_conversational_reply([], MODULE, "")


class TestAdjustTextForLevel:
    @pytest.mark.asyncio
    async def test_adjusted_text(self):
        llm = _llm("Simpler words.")
        assert await LLMTutorCapabilities(llm).adjust_text_for_level("Complex words.", "beginner") == "Simpler words."
        assert "Complex words." in _prompt(llm)

    @pytest.mark.asyncio
    async def test_failure_returns_original(self):
        llm = _llm(error=LLMServiceError("down"))
        assert await LLMTutorCapabilities(llm).adjust_text_for_level("Original", "advanced") == "Original"

    @pytest.mark.asyncio
    async def test_blank_output_returns_original(self):
        assert await LLMTutorCapabilities(_llm("")).adjust_text_for_level("Original", "advanced") == "Original"


# ===========================================================================
# Helpers
# ===========================================================================

class TestModuleContent:
    def test_truncated(self):
        module = MODULE.model_copy(update={
            "sections": [ModuleSection(id="s", title="Long", content="x" * (MAX_MODULE_CONTENT_CHARS * 2))],
        })
        assert len(_module_content(module)) == MAX_MODULE_CONTENT_CHARS

    def test_empty_sections(self):
        module = MODULE.model_copy(update={"sections": []})
        assert _module_content(module) == "(no content provided)"

    def test_batch_model_requires_questions(self):
        assert GeneratedQuestionBatch(questions=[]).questions == []
