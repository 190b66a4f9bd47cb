"""
Session Store

The only place session state changes. `reduce` is a pure transition
function over tagged actions; `SessionStore` holds the current snapshot,
applies dispatched actions one at a time and notifies subscribers.
"""

import logging
from typing import Callable, Optional

from tutor.models.actions import (
    AppendLearnerMessage,
    AppendTutorMessage,
    AttachEvaluation,
    CompleteSession,
    RestoreProgress,
    SetCurrentQuestion,
    SetError,
    SetLoading,
    SetQuestionPool,
    StartSession,
    UpdateProgress,
)
from tutor.models.session_state import Session, SessionProgress, StoreState


logger = logging.getLogger("tutor.session_store")

Listener = Callable[[StoreState], None]


# Helpers

def _with_session(state: StoreState, session: Session, **changes) -> StoreState:
    return state.model_copy(update={"session": session, **changes})


def _clamped_progress(progress: SessionProgress, answered: int, correct: int, completed: bool) -> SessionProgress:
    """Keep 0 <= correct <= answered <= total; completed only when answered == total, never reverted."""
    answered = max(0, min(answered, progress.total))
    correct = max(0, min(correct, answered))
    done = progress.completed or (completed and answered == progress.total)
    return SessionProgress(answered=answered, correct=correct, total=progress.total, completed=done)


# Handlers

def _start_session(state: StoreState, action: StartSession) -> StoreState:
    session = Session(
        id=action.session_id,
        kind=action.kind,
        title=action.title,
        module=action.module,
        section_id=action.section_id,
        started_at=action.started_at,
        transcript=[action.welcome_message],
    )
    return StoreState(status="LOADING_QUESTIONS", session=session)


def _append_learner_message(state: StoreState, action: AppendLearnerMessage) -> StoreState:
    session = state.session
    message = action.message
    updated = session.model_copy(update={"transcript": [*session.transcript, message]})

    status = state.status
    if (
        message.is_answer
        and state.status == "AWAITING_ANSWER"
        and message.question_id is not None
        and message.question_id == session.current_question_id
    ):
        status = "EVALUATING"
    return _with_session(state, updated, status=status)


def _append_tutor_message(state: StoreState, action: AppendTutorMessage) -> StoreState:
    session = state.session
    updated = session.model_copy(update={"transcript": [*session.transcript, action.message]})
    return _with_session(state, updated)


def _set_question_pool(state: StoreState, action: SetQuestionPool) -> StoreState:
    session = state.session
    if session.pool_set:
        return state

    ids = [q.id for q in action.questions]
    if len(ids) != len(set(ids)):
        logger.warning(f"Ignoring question pool with duplicate ids for session {session.id}")
        return state

    progress = SessionProgress(total=len(action.questions))
    updated = session.model_copy(update={
        "question_pool": list(action.questions),
        "pool_set": True,
        "progress": progress,
    })
    return _with_session(state, updated)


def _set_current_question(state: StoreState, action: SetCurrentQuestion) -> StoreState:
    session = state.session
    if state.status == "COMPLETED" or session.get_question(action.question_id) is None:
        return state

    presented = session.presented_question_ids
    if action.question_id not in presented:
        presented = [*presented, action.question_id]

    updated = session.model_copy(update={
        "current_question_id": action.question_id,
        "question_presented_at": action.presented_at,
        "presented_question_ids": presented,
    })
    return _with_session(state, updated, status="AWAITING_ANSWER", error=None, status_before_error=None)


def _attach_evaluation(state: StoreState, action: AttachEvaluation) -> StoreState:
    session = state.session
    target = session.get_message(action.message_id)
    if (
        target is None
        or target.sender != "learner"
        or target.question_id is None
        or target.question_id != session.current_question_id
        or action.history_item.question_id != target.question_id
    ):
        return state

    transcript = [
        m.model_copy(update={"evaluation": action.evaluation}) if m.id == target.id else m
        for m in session.transcript
    ]

    history = list(session.history)
    for i, item in enumerate(history):
        if item.question_id == action.history_item.question_id:
            history[i] = action.history_item
            break
    else:
        history.append(action.history_item)

    updated = session.model_copy(update={"transcript": transcript, "history": history})
    return _with_session(state, updated)


def _update_progress(state: StoreState, action: UpdateProgress) -> StoreState:
    session = state.session
    progress = _clamped_progress(session.progress, action.answered, action.correct, action.completed)
    return _with_session(state, session.model_copy(update={"progress": progress}))


def _restore_progress(state: StoreState, action: RestoreProgress) -> StoreState:
    session = state.session
    if not session.pool_set:
        return state

    # generated ids are positional, so the prompt must match as well
    prompts = {q.id: q.prompt for q in session.question_pool}
    by_question = {}
    for item in action.history:
        if prompts.get(item.question_id) == item.question:
            by_question[item.question_id] = item

    # keep pool order
    history = [by_question[q.id] for q in session.question_pool if q.id in by_question]
    correct = sum(1 for item in history if item.is_correct)
    progress = _clamped_progress(session.progress, len(history), correct, completed=False)
    updated = session.model_copy(update={"history": history, "progress": progress})
    return _with_session(state, updated)


def _complete_session(state: StoreState, action: CompleteSession) -> StoreState:
    session = state.session
    progress = session.progress
    completed = progress.completed or progress.answered == progress.total
    updated = session.model_copy(update={
        "current_question_id": None,
        "question_presented_at": None,
        "progress": progress.model_copy(update={"completed": completed}),
    })
    return _with_session(state, updated, status="COMPLETED", is_loading=False)


def _set_loading(state: StoreState, action: SetLoading) -> StoreState:
    return state.model_copy(update={"is_loading": action.is_loading})


def _set_error(state: StoreState, action: SetError) -> StoreState:
    if action.error is not None:
        if state.status == "COMPLETED":
            return state
        previous = state.status_before_error if state.status == "ERROR" else state.status
        return state.model_copy(update={
            "status": "ERROR",
            "error": action.error,
            "status_before_error": previous,
            "is_loading": False,
        })

    if state.status != "ERROR":
        return state.model_copy(update={"error": None})

    session = state.session
    if session.current_question_id is not None:
        status = "AWAITING_ANSWER"
    else:
        status = state.status_before_error or "LOADING_QUESTIONS"
    return state.model_copy(update={"status": status, "error": None, "status_before_error": None})


_HANDLERS: dict[str, Callable] = {
    "START_SESSION": _start_session,
    "APPEND_LEARNER_MESSAGE": _append_learner_message,
    "APPEND_TUTOR_MESSAGE": _append_tutor_message,
    "SET_QUESTION_POOL": _set_question_pool,
    "SET_CURRENT_QUESTION": _set_current_question,
    "ATTACH_EVALUATION": _attach_evaluation,
    "UPDATE_PROGRESS": _update_progress,
    "RESTORE_PROGRESS": _restore_progress,
    "COMPLETE_SESSION": _complete_session,
    "SET_LOADING": _set_loading,
    "SET_ERROR": _set_error,
}


def reduce(state: StoreState, action) -> StoreState:
    """
    Apply one action to a store state and return the next state.

    Every action other than START_SESSION leaves the state unchanged when
    no session is active.

    Raises:
        TypeError: If the action type has no handler
    """
    handler = _HANDLERS.get(getattr(action, "type", None))
    if handler is None:
        raise TypeError(f"Unhandled session action: {action!r}")

    if action.type != "START_SESSION" and state.session is None:
        return state
    return handler(state, action)


class SessionStore:
    """Holds the current session state and serializes action application."""

    def __init__(self, initial: Optional[StoreState] = None):
        self._state = initial or StoreState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def session(self) -> Optional[Session]:
        return self._state.session

    @property
    def active_session_id(self) -> Optional[str]:
        return self._state.session.id if self._state.session else None

    def dispatch(self, action) -> StoreState:
        previous = self._state
        self._state = reduce(previous, action)
        if self._state is not previous:
            logger.debug(f"{action.type}: {previous.status} -> {self._state.status}")
            for listener in list(self._listeners):
                listener(self._state)
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called after every state change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
