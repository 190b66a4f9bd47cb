"""Learning session orchestration."""
from tutor.orchestration.session_store import SessionStore, reduce
from tutor.orchestration.pacing import DelayedTask
from tutor.orchestration.session_facade import LearningSessionFacade
