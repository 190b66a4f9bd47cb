"""
Learning Domain Models

Immutable models for module content, questions, evaluations,
answer history, and the durable progress record.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, AliasChoices


SessionKind = Literal["practice", "quiz", "review", "feedback"]
ProficiencyTier = Literal["beginner", "intermediate", "advanced"]

SESSION_KINDS: tuple[str, ...] = ("practice", "quiz", "review", "feedback")


class AuthoredQuestion(BaseModel):
    """A question written into module content by an author."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    question: str = Field(description="Question text")
    expected_answer: str = Field(
        validation_alias=AliasChoices("expected_answer", "answer"),
        description="Reference answer",
    )
    hint: Optional[str] = Field(default=None, description="Optional hint")


class ModuleSection(BaseModel):
    """A section of module content."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    content: str = ""
    questions: list[AuthoredQuestion] = Field(default_factory=list)


class ModuleDetail(BaseModel):
    """Content module a session is about."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Module identifier")
    title: str = Field(description="Module title")
    description: str = Field(default="", description="Module description")
    sections: list[ModuleSection] = Field(default_factory=list)
    difficulty: Optional[str] = Field(default=None, description="Authored difficulty level")
    learning_objectives: list[str] = Field(default_factory=list)
    category: Optional[str] = None

    def get_section(self, section_id: str) -> Optional[ModuleSection]:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None


class Question(BaseModel):
    """A single question in a session's pool."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Question identifier, unique within a pool")
    prompt: str = Field(description="Question text shown to the learner")
    expected_answer: str = Field(description="Reference answer")
    hint: Optional[str] = Field(default=None, description="Hint shown with the question")
    explanation: Optional[str] = Field(default=None, description="Explanation of the answer")
    difficulty: str = Field(default="beginner", description="Difficulty label")
    category: Optional[str] = Field(default=None, description="Question category")

    def is_valid(self) -> bool:
        return bool(self.id and self.prompt.strip() and self.expected_answer.strip())


class AnswerEvaluation(BaseModel):
    """Scored judgement of a learner answer."""

    model_config = ConfigDict(frozen=True)

    is_correct: bool = Field(description="Whether the answer is considered correct")
    score: int = Field(ge=0, le=100, description="Score from 0 to 100")
    feedback: str = Field(description="Feedback for the learner")
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    further_study_tips: Optional[str] = None


class AnswerHistoryItem(BaseModel):
    """Record of one evaluated answer."""

    model_config = ConfigDict(frozen=True)

    id: str
    question_id: str
    question: str = Field(description="Question text at the time of answering")
    user_answer: str
    correct_answer: str
    is_correct: bool
    score: int = Field(ge=0, le=100)
    feedback: str = ""
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    time_spent: float = Field(default=0.0, ge=0, description="Seconds between presentation and answer")
    category: Optional[str] = None


class ProgressRecord(BaseModel):
    """Durable per (learner, module, session kind) progress."""

    model_config = ConfigDict(frozen=True)

    learner_id: str
    module_id: str
    session_kind: SessionKind
    answered: int = Field(default=0, ge=0)
    correct: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    completed: bool = False
    last_updated: datetime = Field(default_factory=datetime.utcnow)
    history: list[AnswerHistoryItem] = Field(default_factory=list)
    mastery_level: int = Field(default=0, ge=0, le=100)
    current_level: ProficiencyTier = "beginner"
    time_spent: float = Field(default=0.0, ge=0, description="Total seconds spent answering")

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.learner_id, self.module_id, self.session_kind)
