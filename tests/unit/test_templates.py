"""Unit tests for tutor/prompts/templates.py: PromptTemplate and helper functions."""
import pytest

from tutor.exceptions import PromptTemplateError
from tutor.models.messages import create_learner_message, create_tutor_message
from tutor.prompts.session_prompts import (
    ANSWER_EVALUATION_PROMPT,
    CONVERSATIONAL_REPLY_PROMPT,
    LEVEL_ADJUSTMENT_PROMPT,
    QUESTION_GENERATION_PROMPT,
)
from tutor.prompts.templates import PromptTemplate, format_list_for_prompt, format_transcript_for_prompt


# ---------------------------------------------------------------------------
# PromptTemplate: construction & variable extraction
# ---------------------------------------------------------------------------

class TestPromptTemplateConstruction:
    def test_basic_creation(self):
        pt = PromptTemplate("  Hello {name}  ", name="greet", defaults={"name": "World"})
        assert pt.template == "Hello {name}"
        assert pt.name == "greet"
        assert pt.defaults == {"name": "World"}

    def test_default_name_is_unnamed(self):
        assert PromptTemplate("Hello").name == "unnamed"

    def test_extract_multiple_variables(self):
        pt = PromptTemplate("{greeting} {name}, welcome to {place}. {name}!")
        assert pt.required_vars == {"greeting", "name", "place"}

    def test_extract_ignores_escaped_braces(self):
        pt = PromptTemplate('JSON: {{"key": "{value}"}}')
        assert pt.required_vars == {"value"}

    def test_extract_with_dotted_and_bracket_access(self):
        pt = PromptTemplate("{learner.name} answered {items[0]}")
        assert pt.required_vars == {"learner", "items"}


# ---------------------------------------------------------------------------
# PromptTemplate: render & partial
# ---------------------------------------------------------------------------

class TestPromptTemplateRender:
    def test_render_with_all_vars(self):
        assert PromptTemplate("{a} + {b} = {c}").render(a="1", b="2", c="3") == "1 + 2 = 3"

    def test_render_kwargs_override_defaults(self):
        pt = PromptTemplate("Hello {name}", defaults={"name": "World"})
        assert pt.render() == "Hello World"
        assert pt.render(name="Alice") == "Hello Alice"

    def test_missing_vars_reported_sorted(self):
        pt = PromptTemplate("{c} {a} {b}", name="triple")
        with pytest.raises(PromptTemplateError) as exc_info:
            pt.render(b="x")
        assert exc_info.value.template_name == "triple"
        assert exc_info.value.missing_vars == ["a", "c"]
        assert "Missing variables: a, c" in str(exc_info.value)

    def test_extra_kwargs_ignored(self):
        assert PromptTemplate("Hello {name}").render(name="Alice", unused="x") == "Hello Alice"

    def test_escaped_braces_render_literally(self):
        assert PromptTemplate('{{"k": "{v}"}}').render(v="1") == '{"k": "1"}'

    def test_partial(self):
        pt = PromptTemplate("{greeting}, {name}", name="greet")
        partial = pt.partial(greeting="Hi")
        assert partial.name == "greet_partial"
        assert partial.render(name="Sam") == "Hi, Sam"
        # original unchanged
        assert pt.defaults == {}

    def test_repr(self):
        assert repr(PromptTemplate("{b}{a}", name="t")) == "PromptTemplate(name='t', vars=['a', 'b'])"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestFormatListForPrompt:
    def test_items(self):
        assert format_list_for_prompt(["one", "two"]) == "- one\n- two"

    def test_custom_bullet(self):
        assert format_list_for_prompt(["a"], bullet="*") == "* a"

    def test_empty(self):
        assert format_list_for_prompt([]) == "None"


class TestFormatTranscriptForPrompt:
    def test_labels(self):
        messages = [create_tutor_message("Hello"), create_learner_message("Hi there")]
        assert format_transcript_for_prompt(messages) == "Tutor: Hello\nLearner: Hi there"

    def test_limit_keeps_tail(self):
        messages = [create_learner_message(str(i)) for i in range(5)]
        assert format_transcript_for_prompt(messages, limit=2) == "Learner: 3\nLearner: 4"

    def test_empty(self):
        assert format_transcript_for_prompt([]) == "(no messages yet)"
        assert format_transcript_for_prompt([create_learner_message("x")], limit=0) == "(no messages yet)"


# ---------------------------------------------------------------------------
# Session prompts
# ---------------------------------------------------------------------------

class TestSessionPrompts:
    @pytest.mark.parametrize("template,expected", [
        (QUESTION_GENERATION_PROMPT, {
            "module_title", "module_description", "learning_objectives", "module_content",
            "session_kind", "kind_instructions", "difficulty", "count",
        }),
        (ANSWER_EVALUATION_PROMPT, {"question", "expected_answer", "explanation", "user_answer"}),
        (CONVERSATIONAL_REPLY_PROMPT, {
            "module_title", "module_description", "learning_objectives", "profile_hint", "transcript",
        }),
        (LEVEL_ADJUSTMENT_PROMPT, {"tier", "level_instructions", "text"}),
    ])
    def test_required_vars(self, template, expected):
        assert template.required_vars == expected

    def test_generation_prompt_keeps_json_braces(self):
        rendered = QUESTION_GENERATION_PROMPT.render(
            module_title="T", module_description="D", learning_objectives="- o",
            module_content="C", session_kind="quiz", kind_instructions="I",
            difficulty="beginner", count=4,
        )
        assert '{"questions": [...]}' in rendered
        assert "Write exactly 4 questions" in rendered
