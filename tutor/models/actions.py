"""
Session Store Actions

Tagged action variants consumed by the session reducer. Ids and timestamps
are generated by the caller and carried in the payload so the reducer stays pure.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from tutor.models.learning import AnswerEvaluation, AnswerHistoryItem, ModuleDetail, Question, SessionKind
from tutor.models.messages import Message


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class StartSession(_Action):
    type: Literal["START_SESSION"] = "START_SESSION"
    session_id: str
    kind: SessionKind
    title: str
    module: ModuleDetail
    section_id: Optional[str] = None
    welcome_message: Message
    started_at: datetime = Field(default_factory=datetime.utcnow)


class AppendLearnerMessage(_Action):
    type: Literal["APPEND_LEARNER_MESSAGE"] = "APPEND_LEARNER_MESSAGE"
    message: Message


class AppendTutorMessage(_Action):
    type: Literal["APPEND_TUTOR_MESSAGE"] = "APPEND_TUTOR_MESSAGE"
    message: Message


class SetQuestionPool(_Action):
    type: Literal["SET_QUESTION_POOL"] = "SET_QUESTION_POOL"
    questions: list[Question]


class SetCurrentQuestion(_Action):
    type: Literal["SET_CURRENT_QUESTION"] = "SET_CURRENT_QUESTION"
    question_id: str
    presented_at: datetime = Field(default_factory=datetime.utcnow)


class AttachEvaluation(_Action):
    """Attach a score to a learner answer and record it in history."""

    type: Literal["ATTACH_EVALUATION"] = "ATTACH_EVALUATION"
    message_id: str
    evaluation: AnswerEvaluation
    history_item: AnswerHistoryItem


class UpdateProgress(_Action):
    type: Literal["UPDATE_PROGRESS"] = "UPDATE_PROGRESS"
    answered: int = Field(ge=0)
    correct: int = Field(ge=0)
    completed: bool = False


class RestoreProgress(_Action):
    """Seed history and counters from a persisted record."""

    type: Literal["RESTORE_PROGRESS"] = "RESTORE_PROGRESS"
    history: list[AnswerHistoryItem]


class CompleteSession(_Action):
    type: Literal["COMPLETE_SESSION"] = "COMPLETE_SESSION"


class SetLoading(_Action):
    type: Literal["SET_LOADING"] = "SET_LOADING"
    is_loading: bool


class SetError(_Action):
    type: Literal["SET_ERROR"] = "SET_ERROR"
    error: Optional[str] = None


SessionAction = Annotated[
    Union[
        StartSession,
        AppendLearnerMessage,
        AppendTutorMessage,
        SetQuestionPool,
        SetCurrentQuestion,
        AttachEvaluation,
        UpdateProgress,
        RestoreProgress,
        CompleteSession,
        SetLoading,
        SetError,
    ],
    Field(discriminator="type"),
]

ACTION_TYPES: tuple[type[_Action], ...] = (
    StartSession,
    AppendLearnerMessage,
    AppendTutorMessage,
    SetQuestionPool,
    SetCurrentQuestion,
    AttachEvaluation,
    UpdateProgress,
    RestoreProgress,
    CompleteSession,
    SetLoading,
    SetError,
)

_action_adapter = TypeAdapter(SessionAction)


def parse_action(data: dict) -> _Action:
    """Build a typed action from a plain dict tagged with 'type'."""
    return _action_adapter.validate_python(data)
