"""
Prompt Template System

Reusable prompt templates with variable interpolation and validation.
"""

from typing import Any, Optional
from string import Formatter

from tutor.exceptions import PromptTemplateError


class PromptTemplate:
    """Reusable template for generating prompts with {variable} placeholders."""

    def __init__(
        self,
        template: str,
        name: Optional[str] = None,
        defaults: Optional[dict[str, Any]] = None,
    ):
        self.template = template.strip()
        self.name = name or "unnamed"
        self.defaults = defaults or {}
        self.required_vars = self._extract_variables()

    def _extract_variables(self) -> set[str]:
        variables = set()
        for _, field_name, _, _ in Formatter().parse(self.template):
            if field_name:
                base_name = field_name.split(".")[0].split("[")[0]
                if base_name:
                    variables.add(base_name)
        return variables

    def render(self, **kwargs: Any) -> str:
        values = {**self.defaults, **kwargs}
        missing = self.required_vars - set(values.keys())
        if missing:
            raise PromptTemplateError(template_name=self.name, missing_vars=sorted(missing))
        try:
            return self.template.format(**values)
        except (KeyError, IndexError) as e:
            raise PromptTemplateError(template_name=self.name, missing_vars=[str(e)]) from e

    def partial(self, **kwargs: Any) -> "PromptTemplate":
        return PromptTemplate(
            template=self.template,
            name=f"{self.name}_partial",
            defaults={**self.defaults, **kwargs},
        )

    def __repr__(self) -> str:
        return f"PromptTemplate(name='{self.name}', vars={sorted(self.required_vars)})"


# Helper Functions

def format_list_for_prompt(items: list[str], bullet: str = "-") -> str:
    if not items:
        return "None"
    return "\n".join(f"{bullet} {item}" for item in items)


def format_transcript_for_prompt(messages: list, limit: Optional[int] = None) -> str:
    """Render transcript messages as 'Learner: ...' / 'Tutor: ...' lines."""
    if limit is not None:
        messages = messages[-limit:] if limit > 0 else []
    if not messages:
        return "(no messages yet)"
    labels = {"learner": "Learner", "tutor": "Tutor"}
    return "\n".join(f"{labels.get(m.sender, m.sender)}: {m.content}" for m in messages)
