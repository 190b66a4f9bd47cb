"""Learning session models."""
from tutor.models.learning import (
    AnswerEvaluation,
    AnswerHistoryItem,
    AuthoredQuestion,
    ModuleDetail,
    ModuleSection,
    ProficiencyTier,
    ProgressRecord,
    Question,
    SessionKind,
)
from tutor.models.messages import Message, create_learner_message, create_tutor_message
from tutor.models.session_state import Session, SessionProgress, SessionStatus, StoreState
