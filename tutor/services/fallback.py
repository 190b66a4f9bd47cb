"""
Static fallback content used when the generation or scoring service is unavailable.
"""

from tutor.models.learning import AnswerEvaluation, ModuleDetail, Question


FALLBACK_QUESTION_COUNT = 3

FALLBACK_EXPLANATION = (
    "This is a fallback question. Question generation is temporarily unavailable, "
    "so only basic questions are shown."
)

HINT_REDIRECT = "Take another look at the module material."

NEUTRAL_EVALUATION_FEEDBACK = (
    "We had trouble evaluating your answer this time. "
    "Your answer has been recorded, so let's keep going."
)

_KIND_FOLLOW_UPS = {
    "practice": "This is a practice session, so starting with a basic question is a good idea.",
    "quiz": "In a quiz session you can take on questions about the module content.",
    "review": "In a review session you can go back over what you have learned.",
    "feedback": "In a feedback session you can reflect on how your learning is going.",
}


def fallback_questions(module: ModuleDetail) -> list[Question]:
    """Three open questions seeded from the module title and first objective."""
    objectives = module.learning_objectives
    if objectives:
        second_prompt = f'Explain your understanding of "{objectives[0]}".'
    else:
        second_prompt = "Describe what you already know about this topic."

    return [
        Question(
            id="fallback-q1",
            prompt=f"What is the main purpose of {module.title}?",
            expected_answer="There is no single answer. Respond based on the module description.",
            explanation=FALLBACK_EXPLANATION,
            hint="Try re-reading the module description.",
            difficulty="beginner",
            category="general",
        ),
        Question(
            id="fallback-q2",
            prompt=second_prompt,
            expected_answer="Open answer. Respond based on your own understanding.",
            explanation=FALLBACK_EXPLANATION,
            difficulty="beginner",
            category="comprehension",
        ),
        Question(
            id="fallback-q3",
            prompt="After finishing this module, how do you think you could apply this knowledge?",
            expected_answer="Open answer. Share your own thoughts.",
            explanation=FALLBACK_EXPLANATION,
            difficulty="beginner",
            category="application",
        ),
    ]


def neutral_evaluation() -> AnswerEvaluation:
    return AnswerEvaluation(is_correct=False, score=0, feedback=NEUTRAL_EVALUATION_FEEDBACK)


def fallback_reply(session_kind: str) -> str:
    """Apologetic tutor message used when a conversational reply cannot be generated."""
    message = (
        "Sorry, something went wrong while generating a response.\n\n"
        "You could try:\n"
        "1. Sending your question again\n"
        "2. Waiting a moment and trying again\n"
        "3. Asking a different question"
    )
    follow_up = _KIND_FOLLOW_UPS.get(session_kind)
    if follow_up:
        message += f"\n\n{follow_up}"
    return message
