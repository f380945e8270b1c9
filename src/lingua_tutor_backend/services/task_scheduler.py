'''
Durable scheduled tasks for time-driven lesson transitions.

Every task carries an idempotency key built from the lesson, the task type
and the lesson's reschedule cycle, so scheduling the same transition twice
inserts one row. Workers claim due tasks with a conditional update and only
the worker whose update matched the row runs it. A claim is a lease: a task
left running past SCHEDULER_LEASE_SECONDS is claimed again.
'''
from datetime import datetime, timedelta
from typing import Annotated, Optional, TYPE_CHECKING
from uuid import UUID
from fastapi import Depends
from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import TaskType, TaskStatus
from ..common.clock import utc_now
from ..common.config import settings
from ..common.logger import log

if TYPE_CHECKING:
    from .lesson_service import LessonService


def idempotency_key(lesson_id: UUID, task_type: TaskType, cycle: int) -> str:
    return f"{lesson_id}:{task_type.value}:{cycle}"


class TaskSchedulerService:
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def schedule(
        self,
        lesson_id: UUID,
        task_type: TaskType,
        due_at: datetime,
        cycle: int = 0
    ) -> db_models.ScheduledTasks:
        """Inserts the task unless one with the same key already exists."""
        key = idempotency_key(lesson_id, task_type, cycle)
        existing = await self.db.execute(
            select(db_models.ScheduledTasks).filter(db_models.ScheduledTasks.idempotency_key == key)
        )
        task = existing.scalars().first()
        if task is not None:
            log.info(f"Task '{key}' already scheduled (status: {task.status}). Skipping.")
            return task

        task = db_models.ScheduledTasks(
            lesson_id=lesson_id,
            task_type=task_type.value,
            due_at=due_at,
            idempotency_key=key,
            status=TaskStatus.PENDING.value,
        )
        self.db.add(task)
        await self.db.flush()
        log.info(f"Scheduled task '{key}' due at {due_at}")
        return task

    async def cancel_pending(self, lesson_id: UUID) -> int:
        result = await self.db.execute(
            update(db_models.ScheduledTasks)
            .where(
                db_models.ScheduledTasks.lesson_id == lesson_id,
                db_models.ScheduledTasks.status == TaskStatus.PENDING.value
            )
            .values(status=TaskStatus.CANCELLED.value, finished_at=utc_now())
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount:
            log.info(f"Cancelled {result.rowcount} pending task(s) for lesson {lesson_id}")
        return result.rowcount

    async def list_for_lesson(self, lesson_id: UUID) -> list[db_models.ScheduledTasks]:
        result = await self.db.execute(
            select(db_models.ScheduledTasks)
            .filter(db_models.ScheduledTasks.lesson_id == lesson_id)
            .order_by(db_models.ScheduledTasks.due_at)
        )
        return list(result.scalars().all())

    def _claimable(self, now: datetime):
        """Due pending tasks, plus running tasks whose lease has expired."""
        stale_before = now - timedelta(seconds=settings.SCHEDULER_LEASE_SECONDS)
        return or_(
            and_(
                db_models.ScheduledTasks.status == TaskStatus.PENDING.value,
                db_models.ScheduledTasks.due_at <= now
            ),
            and_(
                db_models.ScheduledTasks.status == TaskStatus.RUNNING.value,
                db_models.ScheduledTasks.claimed_at < stale_before
            )
        )

    async def claim_due(
        self,
        now: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> list[db_models.ScheduledTasks]:
        """
        Moves due pending tasks to running and stamps the claim time. A
        running task is claimed again once its lease has expired, which
        recovers tasks from a worker that died mid-batch. A task whose
        conditional update matched no row was claimed by another worker and
        is skipped.
        """
        now = now or utc_now()
        limit = limit or settings.SCHEDULER_BATCH_SIZE

        result = await self.db.execute(
            select(db_models.ScheduledTasks.id)
            .filter(self._claimable(now))
            .order_by(db_models.ScheduledTasks.due_at)
            .limit(limit)
        )
        candidate_ids = list(result.scalars().all())

        claimed_ids = []
        for task_id in candidate_ids:
            claim = await self.db.execute(
                update(db_models.ScheduledTasks)
                .where(
                    db_models.ScheduledTasks.id == task_id,
                    self._claimable(now)
                )
                .values(
                    status=TaskStatus.RUNNING.value,
                    claimed_at=now,
                    attempts=db_models.ScheduledTasks.attempts + 1
                )
                .execution_options(synchronize_session=False)
            )
            if claim.rowcount == 1:
                claimed_ids.append(task_id)

        if not claimed_ids:
            return []

        tasks = await self.db.execute(
            select(db_models.ScheduledTasks)
            .filter(db_models.ScheduledTasks.id.in_(claimed_ids))
            .order_by(db_models.ScheduledTasks.due_at)
            .execution_options(populate_existing=True)
        )
        claimed = list(tasks.scalars().all())
        reclaimed = [t.idempotency_key for t in claimed if t.attempts > 1]
        if reclaimed:
            log.warning(f"Reclaimed {len(reclaimed)} task(s) with an expired lease: {reclaimed}")
        log.info(f"Claimed {len(claimed)} due task(s)")
        return claimed

    async def run_task(self, task: db_models.ScheduledTasks, lesson_service: "LessonService") -> None:
        log.info(f"Running task '{task.idempotency_key}'")
        task_type = TaskType(task.task_type)
        if task_type == TaskType.REMINDER:
            await lesson_service.send_reminder(task.lesson_id)
        elif task_type == TaskType.RESCHEDULE_RESPONSE_CHECK:
            await lesson_service.check_reschedule_response(task.lesson_id)
        elif task_type == TaskType.AUTO_COMPLETE:
            await lesson_service.auto_complete_lesson(task.lesson_id)
        else:
            raise ValueError(f"Unknown task type: {task.task_type}")

    async def mark_done(self, task_id: UUID) -> None:
        await self._finish(task_id, TaskStatus.DONE)

    async def mark_failed(self, task_id: UUID, error: str) -> None:
        await self._finish(task_id, TaskStatus.FAILED, error)

    async def _finish(self, task_id: UUID, final_status: TaskStatus, error: Optional[str] = None) -> None:
        await self.db.execute(
            update(db_models.ScheduledTasks)
            .where(db_models.ScheduledTasks.id == task_id)
            .values(status=final_status.value, last_error=error, finished_at=utc_now())
            .execution_options(synchronize_session="fetch")
        )
