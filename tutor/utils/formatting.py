"""
Tutor message formatting: session titles, welcome lines, question
presentation, answer feedback and end-of-session summaries.
"""

from tutor.models.learning import AnswerEvaluation, Question
from tutor.models.session_state import SessionProgress


SESSION_TITLES = {
    "practice": "Practice Session",
    "quiz": "Comprehension Quiz",
    "review": "Learning Review",
    "feedback": "Progress Feedback",
}

WELCOME_MESSAGES = {
    "practice": (
        "Hello! Today we'll work through some practice questions. Applying what you've "
        "learned is the best way to deepen your understanding."
    ),
    "quiz": (
        "Hello! Let's run a short quiz to check your understanding. "
        "Take your time with each question."
    ),
    "review": (
        "Hello! Let's review what you've learned so far. "
        "Good review is key to making knowledge stick."
    ),
    "feedback": (
        "Hello! Let's look back at your progress and talk about "
        "what you've achieved and where to go next."
    ),
}

DEFAULT_TITLE = "Learning Session"
DEFAULT_WELCOME = "Hello! Welcome to your learning session. Ask me anything at any time."


def session_title(kind: str) -> str:
    return SESSION_TITLES.get(kind, DEFAULT_TITLE)


def welcome_message(kind: str) -> str:
    return WELCOME_MESSAGES.get(kind, DEFAULT_WELCOME)


def format_question_message(question: Question, index: int, total: int) -> str:
    """Format as 'Question i/total: <prompt>' with the hint appended when present."""
    content = f"Question {index}/{total}: {question.prompt}"
    if question.hint:
        content += f"\n\nHint: {question.hint}"
    return content


def format_feedback_message(evaluation: AnswerEvaluation) -> str:
    if evaluation.is_correct:
        parts = ["Correct! Well done!"]
    else:
        parts = ["Not quite, but that's okay. You'll get the next one!"]

    if evaluation.feedback:
        parts.append(evaluation.feedback)
    if not evaluation.is_correct and evaluation.correct_answer:
        parts.append(f"Correct answer: {evaluation.correct_answer}")
    if evaluation.explanation:
        parts.append(f"Explanation: {evaluation.explanation}")
    if evaluation.further_study_tips:
        parts.append(f"Study tip: {evaluation.further_study_tips}")
    return "\n\n".join(parts)


def format_summary_message(progress: SessionProgress) -> str:
    score = progress.percentage
    if score >= 80:
        remark = "Excellent result!"
    elif score >= 60:
        remark = "Good work. A little more review will deepen your understanding."
    else:
        remark = "It may help to review the basic concepts."

    return (
        "Session complete!\n\n"
        "Results:\n"
        f"- {progress.correct} of {progress.total} questions correct\n"
        f"- Score: {score}%\n\n"
        f"{remark}\n\n"
        "You can try practice questions or a quiz again any time. Keep it up!"
    )


def closing_message(kind: str) -> str:
    """Message appended when the learner ends a session early."""
    if kind == "quiz":
        return "Quiz ended. Come back and try again any time!"
    return "Learning session ended. Nice work today!"


def resume_message(progress: SessionProgress) -> str:
    """Tutor line shown when a session picks up a saved attempt."""
    return (
        f"Welcome back! You've already answered {progress.answered} of {progress.total} "
        "questions. Let's continue where you left off."
    )
