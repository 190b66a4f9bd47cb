"""
Unit tests for tutor/models/messages.py and tutor/models/actions.py
"""
from datetime import datetime

import pytest
from pydantic import ValidationError as PydanticValidationError

from tutor.models.actions import (
    ACTION_TYPES,
    AppendLearnerMessage,
    SetCurrentQuestion,
    SetError,
    UpdateProgress,
    parse_action,
)
from tutor.models.messages import Message, create_learner_message, create_tutor_message


# ===========================================================================
# Messages
# ===========================================================================

class TestMessageFactories:
    def test_tutor_message(self):
        msg = create_tutor_message("Hello")
        assert msg.sender == "tutor"
        assert msg.is_question is False
        assert msg.question_id is None
        assert len(msg.id) == 32

    def test_tutor_question_message(self):
        msg = create_tutor_message("Question 1/3: ...", question_id="q1")
        assert msg.is_question is True
        assert msg.question_id == "q1"

    def test_learner_answer(self):
        msg = create_learner_message("4", question_id="q1")
        assert msg.sender == "learner"
        assert msg.is_answer is True

    def test_learner_free_text(self):
        assert create_learner_message("hi").is_answer is False

    def test_explicit_timestamp(self):
        ts = datetime(2024, 1, 1, 12, 0)
        assert create_learner_message("x", timestamp=ts).timestamp == ts

    def test_ids_unique(self):
        assert create_tutor_message("a").id != create_tutor_message("a").id

    def test_frozen(self):
        msg = create_tutor_message("Hello")
        with pytest.raises(PydanticValidationError):
            msg.content = "changed"

    def test_invalid_sender(self):
        with pytest.raises(PydanticValidationError):
            Message(sender="system", content="x")


# ===========================================================================
# Actions
# ===========================================================================

class TestActions:
    def test_type_tags_unique(self):
        tags = [cls.model_fields["type"].default for cls in ACTION_TYPES]
        assert len(tags) == len(set(tags)) == 11

    def test_parse_action_by_tag(self):
        action = parse_action({"type": "UPDATE_PROGRESS", "answered": 2, "correct": 1})
        assert isinstance(action, UpdateProgress)
        assert action.completed is False

    def test_parse_action_with_message(self):
        action = parse_action({
            "type": "APPEND_LEARNER_MESSAGE",
            "message": {"sender": "learner", "content": "hi"},
        })
        assert isinstance(action, AppendLearnerMessage)
        assert action.message.content == "hi"

    def test_parse_set_error_none(self):
        action = parse_action({"type": "SET_ERROR", "error": None})
        assert isinstance(action, SetError)
        assert action.error is None

    def test_parse_unknown_type(self):
        with pytest.raises(PydanticValidationError):
            parse_action({"type": "TELEPORT"})

    def test_set_current_question_defaults_timestamp(self):
        action = SetCurrentQuestion(question_id="q1")
        assert isinstance(action.presented_at, datetime)
