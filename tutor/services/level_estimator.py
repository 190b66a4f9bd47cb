"""
Level Estimator

Pure functions of answer history: proficiency tier, mastery level and
follow-up suggestions.
"""

from collections import Counter
from typing import Sequence

from tutor.models.learning import AnswerHistoryItem, ProficiencyTier


DEFAULT_WINDOW = 10
MAX_SUGGESTIONS = 3


class LevelEstimator:
    """Coarse proficiency tier from the most recent answers."""

    def __init__(self, window: int = DEFAULT_WINDOW):
        self.window = window

    def _tail(self, history: Sequence[AnswerHistoryItem]) -> Sequence[AnswerHistoryItem]:
        return history[-self.window:] if self.window > 0 else []

    def estimate(self, history: Sequence[AnswerHistoryItem]) -> ProficiencyTier:
        """
        advanced: accuracy >= 0.8 with at least 5 answers.
        intermediate: accuracy >= 0.6 with at least 3 answers.
        beginner otherwise, including empty history.
        """
        recent = self._tail(history)
        answered = len(recent)
        if answered == 0:
            return "beginner"

        accuracy = sum(1 for item in recent if item.is_correct) / answered
        if accuracy >= 0.8 and answered >= 5:
            return "advanced"
        if accuracy >= 0.6 and answered >= 3:
            return "intermediate"
        return "beginner"

    def mastery_level(self, history: Sequence[AnswerHistoryItem]) -> int:
        """0-100: accuracy scaled by how much of the window has been answered."""
        recent = self._tail(history)
        if not recent:
            return 0
        accuracy = sum(1 for item in recent if item.is_correct) / len(recent)
        coverage = min(1.0, len(recent) / self.window)
        return round(accuracy * 100 * coverage)

    def suggest_follow_ups(
        self,
        tier: ProficiencyTier,
        module_title: str,
        history: Sequence[AnswerHistoryItem],
    ) -> list[str]:
        """Up to three learner prompts tailored to tier, accuracy and weakest category."""
        suggestions = []
        if tier == "beginner":
            suggestions.append(f"Can you explain the basic concepts of {module_title}?")
            suggestions.append("Could you explain this for a beginner?")
        elif tier == "intermediate":
            suggestions.append(f"What are some practical applications of {module_title}?")
            suggestions.append("How can I understand this concept more deeply?")
        else:
            suggestions.append(f"What are the advanced uses and latest trends in {module_title}?")
            suggestions.append("What skills do I need to become an expert in this field?")

        accuracy = (
            sum(1 for item in history if item.is_correct) / len(history) * 100
            if history else 100
        )
        if accuracy < 50:
            suggestions.append("I'd like to review the fundamentals.")
            suggestions.append("Could you explain with a simpler example?")
        elif accuracy < 80:
            suggestions.append("Could you explain the parts I haven't understood in more detail?")

        weak = Counter(item.category for item in history if not item.is_correct and item.category)
        if weak:
            category = weak.most_common(1)[0][0]
            suggestions.insert(0, f"Can you go over {category} again? I may not understand it well.")

        unique = list(dict.fromkeys(suggestions))
        return unique[:MAX_SUGGESTIONS]
