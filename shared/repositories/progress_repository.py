"""Learning progress data access layer."""
import logging
from typing import Optional
from sqlalchemy.orm import Session as DBSession
from datetime import datetime

from shared.models.entities import LearningProgress

logger = logging.getLogger(__name__)


class ProgressRepository:
    """Repository for learning_progress reads and upserts."""

    def __init__(self, db: DBSession):
        self.db = db

    def get(self, learner_id: str, module_id: str, session_kind: str) -> Optional[LearningProgress]:
        """Return the progress row for a composite key, or None."""
        return self.db.query(LearningProgress).filter(
            LearningProgress.learner_id == learner_id,
            LearningProgress.module_id == module_id,
            LearningProgress.session_kind == session_kind,
        ).order_by(LearningProgress.id).first()

    def upsert(
        self,
        learner_id: str,
        module_id: str,
        session_kind: str,
        *,
        answered: int,
        correct: int,
        total: int,
        completed: bool,
        history_json: str = "[]",
        mastery_level: int = 0,
        current_level: str = "beginner",
        time_spent: float = 0.0,
    ) -> LearningProgress:
        """
        Insert or update the row for a composite key.

        The existing row is found by lookup and updated in place. `total`
        never decreases for a key, and counters are clamped to it. An attempt
        counts as completed once every question of its own pool is answered,
        even when an earlier attempt recorded a larger total.
        """
        row = self.get(learner_id, module_id, session_kind)
        now = datetime.utcnow()

        attempt_total = total
        if row:
            total = max(row.total or 0, total)
        answered = min(answered, total)
        correct = min(correct, answered)
        completed = completed and answered >= attempt_total

        if row:
            row.answered = answered
            row.correct = correct
            row.total = total
            row.completed = completed
            row.history_json = history_json
            row.mastery_level = mastery_level
            row.current_level = current_level
            row.time_spent = time_spent
            row.last_updated = now
        else:
            row = LearningProgress(
                learner_id=learner_id,
                module_id=module_id,
                session_kind=session_kind,
                answered=answered,
                correct=correct,
                total=total,
                completed=completed,
                history_json=history_json,
                mastery_level=mastery_level,
                current_level=current_level,
                time_spent=time_spent,
                created_at=now,
                last_updated=now,
            )
            self.db.add(row)
        self.db.flush()
        return row

    def list_by_learner(self, learner_id: str) -> list[LearningProgress]:
        """Return all progress rows for a learner, most recently updated first."""
        return (
            self.db.query(LearningProgress)
            .filter(LearningProgress.learner_id == learner_id)
            .order_by(LearningProgress.last_updated.desc())
            .all()
        )


def summarize_progress(rows: list[LearningProgress]) -> dict:
    """Aggregate progress rows into dashboard totals."""
    total_answered = sum(r.answered for r in rows)
    total_correct = sum(r.correct for r in rows)
    return {
        "total_modules": len({r.module_id for r in rows}),
        "completed_modules": len({r.module_id for r in rows if r.completed}),
        "total_answered": total_answered,
        "total_correct": total_correct,
        "overall_accuracy": round(total_correct / total_answered * 100) if total_answered else 0,
    }
