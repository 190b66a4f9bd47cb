"""
Session State Models

Immutable state of a learning session and of the session store that holds it.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from tutor.models.learning import AnswerHistoryItem, ModuleDetail, Question, SessionKind
from tutor.models.messages import Message


SessionStatus = Literal[
    "EMPTY",
    "LOADING_QUESTIONS",
    "AWAITING_ANSWER",
    "EVALUATING",
    "COMPLETED",
    "ERROR",
]


class SessionProgress(BaseModel):
    """Answer counters for the active session."""

    model_config = ConfigDict(frozen=True)

    answered: int = Field(default=0, ge=0)
    correct: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    completed: bool = False

    @property
    def accuracy(self) -> float:
        if self.answered == 0:
            return 0.0
        return self.correct / self.answered

    @property
    def percentage(self) -> int:
        """Score as a rounded percentage of the total."""
        if self.total == 0:
            return 0
        return round(self.correct / self.total * 100)


class Session(BaseModel):
    """One tutoring interaction. Changed only through store actions."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque unique session identifier")
    kind: SessionKind
    title: str
    module: ModuleDetail
    section_id: Optional[str] = None
    started_at: datetime = Field(default_factory=datetime.utcnow)

    transcript: list[Message] = Field(default_factory=list)
    question_pool: list[Question] = Field(default_factory=list)
    pool_set: bool = Field(default=False, description="Pool is fixed once set")
    current_question_id: Optional[str] = None
    question_presented_at: Optional[datetime] = None
    presented_question_ids: list[str] = Field(default_factory=list)

    progress: SessionProgress = Field(default_factory=SessionProgress)
    history: list[AnswerHistoryItem] = Field(default_factory=list)

    @property
    def current_question(self) -> Optional[Question]:
        if self.current_question_id is None:
            return None
        return self.get_question(self.current_question_id)

    def get_question(self, question_id: str) -> Optional[Question]:
        for question in self.question_pool:
            if question.id == question_id:
                return question
        return None

    def get_message(self, message_id: str) -> Optional[Message]:
        for message in self.transcript:
            if message.id == message_id:
                return message
        return None

    def history_item_for(self, question_id: str) -> Optional[AnswerHistoryItem]:
        for item in self.history:
            if item.question_id == question_id:
                return item
        return None

    @property
    def answered_question_ids(self) -> set[str]:
        return {item.question_id for item in self.history}

    def next_unanswered_question(self) -> Optional[Question]:
        """First pool question without a history item and not yet shown."""
        answered = self.answered_question_ids
        for question in self.question_pool:
            if question.id in answered or question.id in self.presented_question_ids:
                continue
            return question
        return None

    def question_index(self, question_id: str) -> int:
        """1-based position of a question in the pool."""
        for i, question in enumerate(self.question_pool, start=1):
            if question.id == question_id:
                return i
        return 0


class StoreState(BaseModel):
    """Snapshot held by the session store."""

    model_config = ConfigDict(frozen=True)

    status: SessionStatus = "EMPTY"
    session: Optional[Session] = None
    is_loading: bool = False
    error: Optional[str] = None
    status_before_error: Optional[SessionStatus] = None
