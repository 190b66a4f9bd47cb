"""SQLAlchemy ORM database models."""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Float, Text, DateTime, Boolean, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class LearningProgress(Base):
    """Progress table - one live row per (learner, module, session kind)."""
    __tablename__ = "learning_progress"

    id = Column(Integer, primary_key=True, autoincrement=True)
    learner_id = Column(String, nullable=False)
    module_id = Column(String, nullable=False)
    session_kind = Column(String, nullable=False)  # 'practice', 'quiz', 'review', 'feedback'
    answered = Column(Integer, default=0, nullable=False)
    correct = Column(Integer, default=0, nullable=False)
    total = Column(Integer, default=0, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    mastery_level = Column(Integer, default=0, nullable=False)
    current_level = Column(String, default="beginner", nullable=False)
    time_spent = Column(Float, default=0.0, nullable=False)
    history_json = Column(Text, nullable=False, default="[]")  # JSON list of AnswerHistoryItem
    created_at = Column(DateTime, default=datetime.utcnow)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Lookup index only: uniqueness is enforced by the repository's read-then-write upsert.
    __table_args__ = (
        Index("idx_progress_key", "learner_id", "module_id", "session_kind"),
        Index("idx_progress_learner", "learner_id"),
    )
