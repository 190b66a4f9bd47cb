"""
Answer Evaluator

Scores a learner answer through the scoring capability and normalizes the
result. Falls back to a neutral evaluation on any failure; never raises.
"""

import json
import logging
import time

from tutor.models.learning import AnswerEvaluation, Question
from tutor.services.fallback import neutral_evaluation
from tutor.services.llm_capabilities import TutorCapabilities
from tutor.exceptions import EvaluationError


logger = logging.getLogger("tutor.answer_evaluator")


def normalize_evaluation(raw: dict, question: Question) -> AnswerEvaluation:
    """
    Build an AnswerEvaluation from a scorer payload.

    Raises:
        EvaluationError: If required fields are missing or malformed
    """
    if not isinstance(raw, dict):
        raise EvaluationError("Scorer returned a non-object payload", question_id=question.id)

    feedback = raw.get("feedback")
    if not isinstance(feedback, str) or not feedback.strip():
        raise EvaluationError("Scorer returned no feedback", question_id=question.id)

    is_correct = raw.get("is_correct")
    if not isinstance(is_correct, bool):
        raise EvaluationError("Scorer returned no correctness flag", question_id=question.id)

    try:
        score = int(round(float(raw.get("score"))))
    except (TypeError, ValueError) as e:
        raise EvaluationError("Scorer returned a non-numeric score", question_id=question.id) from e
    score = max(0, min(100, score))

    return AnswerEvaluation(
        is_correct=is_correct,
        score=score,
        feedback=feedback.strip(),
        correct_answer=raw.get("correct_answer") or question.expected_answer,
        explanation=raw.get("explanation") or question.explanation,
        further_study_tips=raw.get("further_study_tips") or None,
    )


class AnswerEvaluator:
    """Scores answers with a guaranteed neutral fallback."""

    def __init__(self, capabilities: TutorCapabilities):
        self.capabilities = capabilities

    async def evaluate(self, question: Question, raw_answer: str) -> AnswerEvaluation:
        start_time = time.time()
        try:
            raw = await self.capabilities.evaluate_answer(question, raw_answer)
            evaluation = normalize_evaluation(raw, question)
        except Exception as e:
            logger.warning(json.dumps({
                "step": "ANSWER_EVALUATION",
                "status": "fallback",
                "question_id": question.id,
                "error": str(e),
            }))
            return neutral_evaluation()

        logger.info(json.dumps({
            "step": "ANSWER_EVALUATION",
            "status": "complete",
            "question_id": question.id,
            "is_correct": evaluation.is_correct,
            "score": evaluation.score,
            "duration_ms": int((time.time() - start_time) * 1000),
        }))
        return evaluation
