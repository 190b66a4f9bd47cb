"""
Question Supplier

Produces the question pool for a session: authored module questions when
available, otherwise generated ones, otherwise the static fallback set.
`supply` never raises.
"""

import json
import logging
import time
from typing import Any, Optional

from tutor.models.learning import ModuleDetail, Question
from tutor.services.fallback import HINT_REDIRECT, fallback_questions
from tutor.services.llm_capabilities import TutorCapabilities


logger = logging.getLogger("tutor.question_supplier")


def sanitize_hint(question: Question) -> Question:
    """Replace a hint that contains the expected answer (case-insensitive)."""
    if question.hint and question.expected_answer.strip():
        if question.expected_answer.strip().lower() in question.hint.lower():
            return question.model_copy(update={"hint": HINT_REDIRECT})
    return question


class QuestionSupplier:
    """Obtains, validates and sanitizes questions for a module and session kind."""

    def __init__(self, capabilities: TutorCapabilities):
        self.capabilities = capabilities

    async def supply(
        self,
        module: ModuleDetail,
        session_kind: str,
        count: int,
        difficulty_hint: str = "beginner",
        section_id: Optional[str] = None,
    ) -> list[Question]:
        start_time = time.time()
        source = "authored"
        try:
            questions = self._authored_questions(module, section_id)
            if len({q.id for q in questions}) != len(questions):
                logger.warning(json.dumps({
                    "step": "QUESTION_SUPPLY",
                    "status": "duplicate_authored_ids",
                    "module_id": module.id,
                }))
                questions = []
            if not questions:
                source = "generated"
                raw = await self.capabilities.generate_questions(module, session_kind, count, difficulty_hint)
                questions = self._build_generated(module, raw, count, difficulty_hint)
        except Exception as e:
            logger.warning(json.dumps({
                "step": "QUESTION_SUPPLY",
                "status": "generation_failed",
                "module_id": module.id,
                "error": str(e),
            }))
            questions = []

        questions = [sanitize_hint(q) for q in questions if q.is_valid()]
        if not questions:
            source = "fallback"
            questions = fallback_questions(module)

        logger.info(json.dumps({
            "step": "QUESTION_SUPPLY",
            "status": "complete",
            "module_id": module.id,
            "session_kind": session_kind,
            "source": source,
            "count": len(questions),
            "duration_ms": int((time.time() - start_time) * 1000),
        }))
        return questions

    @staticmethod
    def _authored_questions(module: ModuleDetail, section_id: Optional[str]) -> list[Question]:
        if section_id:
            section = module.get_section(section_id)
            sections = [section] if section else []
        else:
            sections = module.sections

        questions = []
        for section in sections:
            for i, authored in enumerate(section.questions, start=1):
                questions.append(Question(
                    id=f"{section.id}-q{i}",
                    prompt=authored.question,
                    expected_answer=authored.expected_answer,
                    hint=authored.hint,
                    difficulty=module.difficulty or "beginner",
                    category=section.title,
                ))
        return questions

    @staticmethod
    def _build_generated(
        module: ModuleDetail, raw: list[dict[str, Any]], count: int, difficulty_hint: str
    ) -> list[Question]:
        questions = []
        seen_prompts = set()
        for item in raw or []:
            if not isinstance(item, dict):
                continue
            prompt = (item.get("question") or item.get("prompt") or "").strip()
            expected = (item.get("expected_answer") or "").strip()
            if not prompt or not expected or prompt.lower() in seen_prompts:
                continue
            seen_prompts.add(prompt.lower())
            questions.append(Question(
                id=f"{module.id}-q{len(questions) + 1}",
                prompt=prompt,
                expected_answer=expected,
                hint=item.get("hint") or None,
                explanation=item.get("explanation") or None,
                difficulty=item.get("difficulty") or difficulty_hint,
                category=item.get("category") or None,
            ))
            if len(questions) >= count:
                break
        return questions
