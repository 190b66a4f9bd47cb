"""
Custom Exception Hierarchy for the Learning Session Orchestrator

Exception Hierarchy:
    TutorError (base)
    ├── GenerationError
    ├── EvaluationError
    ├── PersistenceError
    ├── ValidationError
    ├── SessionError
    │   ├── NoActiveSessionError
    │   └── SessionBusyError
    ├── PromptError
    │   └── PromptTemplateError
    └── ConfigurationError
"""

from typing import Optional


class TutorError(Exception):
    """Base exception for all learning session errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Collaborator Errors

class GenerationError(TutorError):
    """Raised when the generation service fails or returns unusable content."""

    def __init__(self, message: str, operation: Optional[str] = None):
        details = {"operation": operation} if operation else {}
        super().__init__(message, details)
        self.operation = operation


class EvaluationError(TutorError):
    """Raised when answer scoring fails or returns malformed output."""

    def __init__(self, message: str, question_id: Optional[str] = None):
        details = {"question_id": question_id} if question_id else {}
        super().__init__(message, details)
        self.question_id = question_id


class PersistenceError(TutorError):
    """Raised when reading or writing a progress record fails."""

    def __init__(self, operation: str, reason: str, key: Optional[tuple] = None):
        message = f"Progress {operation} failed: {reason}"
        super().__init__(message, {"operation": operation, "key": key})
        self.operation = operation
        self.reason = reason
        self.key = key


class ValidationError(TutorError):
    """Raised when a collaborator response fails validation."""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message, {"errors": errors or []})
        self.errors = errors or []


# Session Errors

class SessionError(TutorError):
    """Base exception for session lifecycle errors."""
    pass


class NoActiveSessionError(SessionError):
    """Raised when an operation needs a session but none is active."""

    def __init__(self, operation: str):
        super().__init__(f"No active session for '{operation}'")
        self.operation = operation


class SessionBusyError(SessionError):
    """Raised when a learner message arrives while the previous one is still in flight."""

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} is still processing the previous message")
        self.session_id = session_id


# Prompt Errors

class PromptError(TutorError):
    """Base exception for prompt-related errors."""
    pass


class PromptTemplateError(PromptError):
    """Raised when prompt template rendering fails."""

    def __init__(self, template_name: str, missing_vars: Optional[list[str]] = None):
        message = f"Template '{template_name}' rendering failed"
        if missing_vars:
            message += f". Missing variables: {', '.join(missing_vars)}"
        super().__init__(message)
        self.template_name = template_name
        self.missing_vars = missing_vars or []


# Configuration Errors

class ConfigurationError(TutorError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, config_key: str, reason: str):
        super().__init__(f"Configuration error for '{config_key}': {reason}")
        self.config_key = config_key
        self.reason = reason
