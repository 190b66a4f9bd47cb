"""
Learning Session Facade

Public operations for driving a learning session: start, send, advance,
complete and retry. Calls the collaborators, turns their results into
store actions, and guards against overlapping and stale results.
"""

import asyncio
import json
import logging
import uuid
from datetime import datetime
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, Field

from tutor.exceptions import (
    ConfigurationError,
    GenerationError,
    NoActiveSessionError,
    SessionBusyError,
    ValidationError,
)
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
from tutor.models.learning import AnswerHistoryItem, ModuleDetail, ProgressRecord, Question
from tutor.models.messages import create_learner_message, create_tutor_message
from tutor.models.session_state import StoreState
from tutor.orchestration.pacing import DelayedTask
from tutor.orchestration.session_store import SessionStore
from tutor.services.answer_evaluator import AnswerEvaluator
from tutor.services.fallback import fallback_reply
from tutor.services.level_estimator import LevelEstimator
from tutor.services.llm_capabilities import TutorCapabilities
from tutor.services.progress_sync import ProgressSynchronizer
from tutor.services.question_supplier import QuestionSupplier
from tutor.utils.formatting import (
    closing_message,
    format_feedback_message,
    format_question_message,
    format_summary_message,
    resume_message,
    session_title,
    welcome_message,
)


logger = logging.getLogger("tutor.session_facade")


class SessionSettings(BaseModel):
    """Session tuning passed to the facade."""

    question_delay_seconds: float = Field(default=1.5, ge=0, description="0 presents the next question inline")
    practice_question_count: int = Field(default=5, ge=1)
    quiz_question_count: int = Field(default=10, ge=1)
    conversation_context_messages: int = Field(default=10, ge=1)

    @classmethod
    def from_settings(cls, settings) -> "SessionSettings":
        return cls(
            question_delay_seconds=settings.question_delay_seconds,
            practice_question_count=settings.practice_question_count,
            quiz_question_count=settings.quiz_question_count,
            conversation_context_messages=settings.conversation_context_messages,
        )

    def question_count(self, session_kind: str) -> int:
        return self.quiz_question_count if session_kind == "quiz" else self.practice_question_count


class LearningSessionFacade:
    """
    Orchestrates one learner's sessions.

    All state changes go through the SessionStore. After every await the
    facade checks that the session it started with is still the active one
    before dispatching, so late results from an abandoned session are dropped.
    """

    def __init__(
        self,
        supplier: QuestionSupplier,
        evaluator: AnswerEvaluator,
        level_estimator: LevelEstimator,
        synchronizer: ProgressSynchronizer,
        capabilities: TutorCapabilities,
        settings: Optional[SessionSettings] = None,
        learner_id: Optional[str] = None,
        profile_hint: str = "",
        store: Optional[SessionStore] = None,
    ):
        self.supplier = supplier
        self.evaluator = evaluator
        self.level_estimator = level_estimator
        self.synchronizer = synchronizer
        self.capabilities = capabilities
        self.settings = settings or SessionSettings()
        self.learner_id = learner_id
        self.profile_hint = profile_hint
        self.store = store or SessionStore()

        self._pacing: Optional[DelayedTask] = None
        self._in_flight: set[str] = set()
        self._pending_writes: set[asyncio.Task] = set()
        self._last_write: Optional[asyncio.Task] = None
        self._last_operation: Optional[Callable[[], Awaitable[StoreState]]] = None

    # ─── Read-only views ──────────────────────────────────────────────

    @property
    def state(self) -> StoreState:
        return self.store.state

    def _is_active(self, session_id: str) -> bool:
        return self.store.active_session_id == session_id

    def _require_session(self, operation: str):
        session = self.store.session
        if session is None:
            raise NoActiveSessionError(operation)
        return session

    # ─── Public operations ────────────────────────────────────────────

    async def start_session(
        self,
        kind: str,
        module: ModuleDetail,
        section_id: Optional[str] = None,
    ) -> StoreState:
        """Replace any active session with a new one and present its first question."""
        self._cancel_pacing()
        session_id = f"sess_{uuid.uuid4().hex[:12]}"
        self._last_operation = lambda: self.start_session(kind, module, section_id)

        self.store.dispatch(StartSession(
            session_id=session_id,
            kind=kind,
            title=session_title(kind),
            module=module,
            section_id=section_id,
            welcome_message=create_tutor_message(welcome_message(kind)),
        ))
        self.store.dispatch(SetLoading(is_loading=True))
        logger.info(json.dumps({
            "step": "SESSION_START",
            "session_id": session_id,
            "kind": kind,
            "module_id": module.id,
        }))

        try:
            record = await self._fetch_record(module.id, kind)
            if not self._is_active(session_id):
                return self.state

            difficulty = self.level_estimator.estimate(record.history) if record else "beginner"
            questions = await self.supplier.supply(
                module, kind, self.settings.question_count(kind), difficulty, section_id
            )
            if not self._is_active(session_id):
                logger.info(f"Discarding questions for stale session {session_id}")
                return self.state
            if not questions:
                raise GenerationError("No questions available for this module", operation="supply")

            self.store.dispatch(SetQuestionPool(questions=questions))
            if self._resumable(record, questions):
                self.store.dispatch(RestoreProgress(history=record.history))
                if self.store.session.history:
                    self._append_tutor(resume_message(self.store.session.progress))

            next_question = self.store.session.next_unanswered_question()
            if next_question:
                self._present_question(next_question)
            else:
                self._finish(session_id, early=False)

            if record is None:
                self._schedule_persist()
        except Exception as e:
            self._fail(session_id, "start_session", e)
        finally:
            if self._is_active(session_id):
                self.store.dispatch(SetLoading(is_loading=False))

        return self.state

    async def send_message(self, text: str, is_answer: bool = False) -> StoreState:
        """
        Append a learner message and respond to it.

        Answers to the current question are evaluated; anything else gets a
        conversational reply.

        Raises:
            NoActiveSessionError: If no session is active
            SessionBusyError: If a previous message is still being processed
        """
        session = self._require_session("send_message")
        state = self.state
        if session.id in self._in_flight or (is_answer and state.status == "EVALUATING"):
            raise SessionBusyError(session.id)

        current = session.current_question if state.status == "AWAITING_ANSWER" else None
        if is_answer and current is not None:
            message = create_learner_message(text, question_id=current.id)
            self.store.dispatch(AppendLearnerMessage(message=message))
            operation = lambda: self._evaluate_and_advance(session.id, message.id)
        else:
            message = create_learner_message(text)
            self.store.dispatch(AppendLearnerMessage(message=message))
            operation = lambda: self._reply(session.id)

        self._last_operation = lambda: self._guarded(session.id, operation)
        return await self._guarded(session.id, operation)

    async def advance_question(self) -> StoreState:
        """Skip ahead to the next question not yet presented, completing the session when none remain."""
        session = self._require_session("advance_question")
        self._cancel_pacing()
        if session.id in self._in_flight:
            raise SessionBusyError(session.id)
        if self.state.status == "COMPLETED":
            return self.state
        self._advance(session.id)
        return self.state

    async def complete_session(self) -> StoreState:
        """End the active session early."""
        session = self._require_session("complete_session")
        self._cancel_pacing()
        if self.state.status != "COMPLETED":
            self._finish(session.id, early=True)
        return self.state

    async def retry(self) -> StoreState:
        """Clear an error and re-issue the operation that failed."""
        if self.state.status != "ERROR" or self._last_operation is None:
            return self.state
        self.store.dispatch(SetError(error=None))
        return await self._last_operation()

    def suggestions(self) -> list[str]:
        session = self.store.session
        if session is None:
            return []
        tier = self.level_estimator.estimate(session.history)
        return self.level_estimator.suggest_follow_ups(tier, session.module.title, session.history)

    async def flush_pending_writes(self) -> None:
        """Wait for pacing and background progress writes to finish."""
        if self._pacing is not None:
            await self._pacing.wait()
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes))

    # ─── Evaluation and conversation ──────────────────────────────────

    async def _guarded(self, session_id: str, operation: Callable[[], Awaitable[None]]) -> StoreState:
        if session_id in self._in_flight:
            raise SessionBusyError(session_id)
        self._in_flight.add(session_id)
        try:
            await operation()
        finally:
            self._in_flight.discard(session_id)
        return self.state

    async def _evaluate_and_advance(self, session_id: str, message_id: str) -> None:
        try:
            session = self.store.session
            message = session.get_message(message_id)
            question = session.get_question(message.question_id)

            evaluation = await self.evaluator.evaluate(question, message.content)
            if not self._is_active(session_id):
                logger.info(f"Discarding evaluation for stale session {session_id}")
                return

            session = self.store.session
            if session.current_question_id != question.id:
                logger.info(f"Discarding evaluation for question {question.id}: no longer current")
                return

            previous = session.history_item_for(question.id)
            item = AnswerHistoryItem(
                id=uuid.uuid4().hex,
                question_id=question.id,
                question=question.prompt,
                user_answer=message.content,
                correct_answer=evaluation.correct_answer or question.expected_answer,
                is_correct=evaluation.is_correct,
                score=evaluation.score,
                feedback=evaluation.feedback,
                timestamp=message.timestamp,
                time_spent=self._time_spent(session.question_presented_at, message.timestamp),
                category=question.category,
            )
            self.store.dispatch(AttachEvaluation(message_id=message_id, evaluation=evaluation, history_item=item))

            progress = self.store.session.progress
            answered = progress.answered + (0 if previous else 1)
            correct = progress.correct + int(evaluation.is_correct) - int(bool(previous and previous.is_correct))
            self.store.dispatch(UpdateProgress(answered=answered, correct=correct))

            tier = self.level_estimator.estimate(self.store.session.history)
            feedback = await self._adjust_for_level(format_feedback_message(evaluation), tier)
            if not self._is_active(session_id):
                return

            self._append_tutor(feedback)
            self._schedule_persist()
            self._schedule_advance(session_id)
        except Exception as e:
            self._fail(session_id, "evaluate", e)

    async def _adjust_for_level(self, text: str, tier: str) -> str:
        try:
            return await self.capabilities.adjust_text_for_level(text, tier)
        except Exception as e:
            logger.warning(f"Level adjustment failed, using original feedback: {e}")
            return text

    async def _reply(self, session_id: str) -> None:
        try:
            session = self.store.session
            tail = session.transcript[-self.settings.conversation_context_messages:]
            tier = self.level_estimator.estimate(session.history)
            profile = self.profile_hint or f"{tier} learner"
            try:
                text = await self.capabilities.generate_conversational_reply(tail, session.module, profile)
            except (GenerationError, ValidationError) as e:
                logger.warning(f"Conversational reply failed, using fallback: {e}")
                text = fallback_reply(session.kind)

            if not self._is_active(session_id):
                return
            self._append_tutor(text)
        except Exception as e:
            self._fail(session_id, "reply", e)

    # ─── Question sequencing ──────────────────────────────────────────

    def _present_question(self, question: Question) -> None:
        session = self.store.session
        self.store.dispatch(SetCurrentQuestion(question_id=question.id, presented_at=datetime.utcnow()))
        content = format_question_message(
            question, session.question_index(question.id), len(session.question_pool)
        )
        self.store.dispatch(AppendTutorMessage(message=create_tutor_message(content, question_id=question.id)))

    def _schedule_advance(self, session_id: str) -> None:
        delay = self.settings.question_delay_seconds
        if delay <= 0:
            self._advance(session_id)
            return

        async def _run() -> None:
            self._advance(session_id)

        self._pacing = DelayedTask(delay, _run, name=f"advance-{session_id}").start()

    def _advance(self, session_id: str) -> None:
        if not self._is_active(session_id) or self.state.status in ("COMPLETED", "ERROR"):
            return
        next_question = self.store.session.next_unanswered_question()
        if next_question:
            self._present_question(next_question)
        else:
            self._finish(session_id, early=False)

    def _finish(self, session_id: str, early: bool) -> None:
        if not self._is_active(session_id):
            return
        self.store.dispatch(CompleteSession())
        session = self.store.session
        content = closing_message(session.kind) if early else format_summary_message(session.progress)
        self._append_tutor(content)
        self._schedule_persist()
        logger.info(json.dumps({
            "step": "SESSION_COMPLETE",
            "session_id": session_id,
            "early": early,
            "answered": session.progress.answered,
            "correct": session.progress.correct,
            "total": session.progress.total,
        }))

    def _cancel_pacing(self) -> None:
        if self._pacing is not None:
            self._pacing.cancel()
            self._pacing = None

    # ─── Persistence ──────────────────────────────────────────────────

    @staticmethod
    def _resumable(record: Optional[ProgressRecord], questions: list[Question]) -> bool:
        """
        True when the record is an unfinished attempt over this same pool.

        History items only count when both id and prompt match a pool
        question. A record covering none or all of the pool starts a fresh
        attempt instead.
        """
        if record is None or record.completed or not record.history:
            return False
        prompts = {q.id: q.prompt for q in questions}
        matched = {item.question_id for item in record.history if prompts.get(item.question_id) == item.question}
        return 0 < len(matched) < len(questions)

    async def _fetch_record(self, module_id: str, kind: str) -> Optional[ProgressRecord]:
        if self.learner_id is None:
            return None
        return await self.synchronizer.fetch(self.learner_id, module_id, kind)

    def _build_record(self) -> Optional[ProgressRecord]:
        session = self.store.session
        if self.learner_id is None or session is None:
            return None
        history = session.history
        return ProgressRecord(
            learner_id=self.learner_id,
            module_id=session.module.id,
            session_kind=session.kind,
            answered=session.progress.answered,
            correct=session.progress.correct,
            total=session.progress.total,
            completed=session.progress.completed,
            last_updated=datetime.utcnow(),
            history=history,
            mastery_level=self.level_estimator.mastery_level(history),
            current_level=self.level_estimator.estimate(history),
            time_spent=sum(item.time_spent for item in history),
        )

    def _schedule_persist(self) -> None:
        """Write the current record in the background, after any earlier write."""
        record = self._build_record()
        if record is None:
            return

        previous = self._last_write

        async def _write() -> None:
            if previous is not None and not previous.done():
                await asyncio.wait({previous})
            await self.synchronizer.persist(record)

        task = asyncio.get_running_loop().create_task(_write())
        self._last_write = task
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    # ─── Helpers ──────────────────────────────────────────────────────

    def _append_tutor(self, content: str) -> None:
        self.store.dispatch(AppendTutorMessage(message=create_tutor_message(content)))

    @staticmethod
    def _time_spent(presented_at: Optional[datetime], answered_at: datetime) -> float:
        if presented_at is None:
            return 0.0
        return max(0.0, (answered_at - presented_at).total_seconds())

    def _fail(self, session_id: str, operation: str, error: Exception) -> None:
        logger.error(json.dumps({
            "step": "SESSION_ERROR",
            "session_id": session_id,
            "operation": operation,
            "error": str(error),
        }))
        if self._is_active(session_id):
            self.store.dispatch(SetError(error=str(error)))


def create_facade(learner_id: Optional[str] = None, settings=None) -> LearningSessionFacade:
    """
    Wire a facade from application settings: LLM-backed capabilities and
    SQL progress storage.

    Raises:
        ConfigurationError: If required settings are missing
    """
    from config import get_settings, validate_required_settings
    from database import get_db_manager
    from shared.services.llm_service import LLMService
    from tutor.services.llm_capabilities import LLMTutorCapabilities
    from tutor.services.progress_sync import SqlProgressStore

    settings = settings or get_settings()
    try:
        validate_required_settings(settings)
    except ValueError as e:
        raise ConfigurationError("llm", str(e)) from e

    capabilities = LLMTutorCapabilities(LLMService.from_settings(settings))
    db_manager = get_db_manager()
    db_manager.create_tables()

    return LearningSessionFacade(
        supplier=QuestionSupplier(capabilities),
        evaluator=AnswerEvaluator(capabilities),
        level_estimator=LevelEstimator(window=settings.level_history_window),
        synchronizer=ProgressSynchronizer(SqlProgressStore(db_manager)),
        capabilities=capabilities,
        settings=SessionSettings.from_settings(settings),
        learner_id=learner_id,
    )
