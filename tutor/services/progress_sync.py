"""
Progress Synchronizer

Reads and upserts durable progress records. One attempt per call; failures
are logged and swallowed so the interactive session never stops on storage.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import TypeAdapter

from database import DatabaseManager
from shared.models.entities import LearningProgress
from shared.repositories.progress_repository import ProgressRepository, summarize_progress
from tutor.exceptions import PersistenceError
from tutor.models.learning import AnswerHistoryItem, ProgressRecord


logger = logging.getLogger("tutor.progress_sync")

_history_adapter = TypeAdapter(list[AnswerHistoryItem])


class ProgressStore(ABC):
    """Durable storage for progress records keyed by (learner, module, session kind)."""

    @abstractmethod
    async def read_progress(self, learner_id: str, module_id: str, session_kind: str) -> Optional[ProgressRecord]:
        ...

    @abstractmethod
    async def upsert_progress(self, record: ProgressRecord) -> ProgressRecord:
        ...


def row_to_record(row: LearningProgress) -> ProgressRecord:
    return ProgressRecord(
        learner_id=row.learner_id,
        module_id=row.module_id,
        session_kind=row.session_kind,
        answered=row.answered,
        correct=row.correct,
        total=row.total,
        completed=row.completed,
        last_updated=row.last_updated,
        history=_history_adapter.validate_json(row.history_json or "[]"),
        mastery_level=row.mastery_level or 0,
        current_level=row.current_level or "beginner",
        time_spent=row.time_spent or 0.0,
    )


class SqlProgressStore(ProgressStore):
    """ProgressStore over SQLAlchemy. Blocking work runs in the default executor."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def _read(self, learner_id: str, module_id: str, session_kind: str) -> Optional[ProgressRecord]:
        with self.db_manager.session_scope() as db:
            row = ProgressRepository(db).get(learner_id, module_id, session_kind)
            return row_to_record(row) if row else None

    def _upsert(self, record: ProgressRecord) -> ProgressRecord:
        history_json = json.dumps([item.model_dump(mode="json") for item in record.history])
        with self.db_manager.session_scope() as db:
            row = ProgressRepository(db).upsert(
                record.learner_id,
                record.module_id,
                record.session_kind,
                answered=record.answered,
                correct=record.correct,
                total=record.total,
                completed=record.completed,
                history_json=history_json,
                mastery_level=record.mastery_level,
                current_level=record.current_level,
                time_spent=record.time_spent,
            )
            return row_to_record(row)

    def _summary(self, learner_id: str) -> dict:
        with self.db_manager.session_scope() as db:
            return summarize_progress(ProgressRepository(db).list_by_learner(learner_id))

    async def read_progress(self, learner_id: str, module_id: str, session_kind: str) -> Optional[ProgressRecord]:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, lambda: self._read(learner_id, module_id, session_kind))

    async def upsert_progress(self, record: ProgressRecord) -> ProgressRecord:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, lambda: self._upsert(record))

    async def progress_summary(self, learner_id: str) -> dict:
        """Dashboard totals across every module the learner has touched."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, lambda: self._summary(learner_id))


class ProgressSynchronizer:
    """Single-attempt persistence with logged, swallowed failures."""

    def __init__(self, store: ProgressStore):
        self.store = store

    async def persist(self, record: ProgressRecord) -> bool:
        try:
            await self.store.upsert_progress(record)
        except Exception as e:
            error = PersistenceError("upsert", str(e), key=record.key)
            logger.error(json.dumps({
                "step": "PROGRESS_PERSIST",
                "status": "failed",
                "key": list(record.key),
                "error": error.message,
            }))
            return False

        logger.info(json.dumps({
            "step": "PROGRESS_PERSIST",
            "status": "complete",
            "key": list(record.key),
            "answered": record.answered,
            "total": record.total,
            "completed": record.completed,
        }))
        return True

    async def fetch(self, learner_id: str, module_id: str, session_kind: str) -> Optional[ProgressRecord]:
        try:
            return await self.store.read_progress(learner_id, module_id, session_kind)
        except Exception as e:
            error = PersistenceError("read", str(e), key=(learner_id, module_id, session_kind))
            logger.error(json.dumps({
                "step": "PROGRESS_FETCH",
                "status": "failed",
                "key": [learner_id, module_id, session_kind],
                "error": error.message,
            }))
            return None
