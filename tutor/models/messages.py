"""
Message Models

Transcript messages exchanged between the learner and the tutor.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from tutor.models.learning import AnswerEvaluation


class Message(BaseModel):
    """Individual message in a session transcript."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="Unique message identifier")
    sender: Literal["learner", "tutor"] = Field(description="Who sent the message")
    content: str = Field(description="Message content text")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="When the message was created")
    is_question: bool = Field(default=False, description="Tutor message presenting a question")
    question_id: Optional[str] = Field(default=None, description="Question this message presents or answers")
    is_answer: bool = Field(default=False, description="Learner message answering a question")
    evaluation: Optional[AnswerEvaluation] = Field(default=None, description="Attached after scoring")


# Factory Functions

def create_tutor_message(
    content: str,
    question_id: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> Message:
    return Message(
        sender="tutor",
        content=content,
        is_question=question_id is not None,
        question_id=question_id,
        timestamp=timestamp or datetime.utcnow(),
    )


def create_learner_message(
    content: str,
    question_id: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> Message:
    return Message(
        sender="learner",
        content=content,
        is_answer=question_id is not None,
        question_id=question_id,
        timestamp=timestamp or datetime.utcnow(),
    )
