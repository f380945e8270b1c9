'''
Background worker for scheduled lesson tasks.

Each tick claims the due tasks in one short transaction, then runs every task
in its own session. A task that raises is rolled back on its own and marked
failed, and the rest of the batch still runs. Tasks left running by a worker
that died are claimed again after SCHEDULER_LEASE_SECONDS.

Run standalone with:
    python -m lingua_tutor_backend.workers.task_runner
'''
import asyncio
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database import engine as db_engine
from ..database import models as db_models
from ..services.lesson_service import LessonService
from ..services.ledger_service import PaymentLedgerService
from ..services.notification_service import NotificationService
from ..services.task_scheduler import TaskSchedulerService
from ..common.config import settings
from ..common.logger import log


def build_lesson_service(session: AsyncSession) -> LessonService:
    """Wires the lesson service by hand, as FastAPI would for a request."""
    return LessonService(
        session,
        NotificationService(session),
        PaymentLedgerService(session),
        TaskSchedulerService(session),
    )


async def _run_claimed_task(
    session_factory: async_sessionmaker[AsyncSession],
    task: db_models.ScheduledTasks
) -> bool:
    """Runs one claimed task in its own session. Returns True on success."""
    error: Optional[Exception] = None
    async with session_factory() as session:
        lesson_service = build_lesson_service(session)
        try:
            await lesson_service.scheduler.run_task(task, lesson_service)
            await lesson_service.scheduler.mark_done(task.id)
            await session.commit()
            return True
        except Exception as e:
            await session.rollback()
            log.error(f"Task '{task.idempotency_key}' failed: {e}", exc_info=True)
            error = e

    async with session_factory() as session:
        await TaskSchedulerService(session).mark_failed(task.id, str(error))
        await session.commit()
    return False


async def run_due_tasks(
    session_factory: async_sessionmaker[AsyncSession],
    now: Optional[datetime] = None
) -> int:
    """Runs every task due at `now`. Returns how many completed successfully."""
    async with session_factory() as session:
        claimed = await TaskSchedulerService(session).claim_due(now)
        await session.commit()

    succeeded = 0
    for task in claimed:
        try:
            if await _run_claimed_task(session_factory, task):
                succeeded += 1
        except Exception as e:
            # The task stays running and is reclaimed once its lease expires
            log.error(f"Could not record the outcome of task '{task.idempotency_key}': {e}", exc_info=True)

    if claimed:
        log.info(f"Task runner tick: {succeeded}/{len(claimed)} task(s) succeeded")
    return succeeded


async def task_runner_loop(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    poll_interval_sec: Optional[float] = None
) -> None:
    sleep_s = max(0.2, float(poll_interval_sec or settings.SCHEDULER_POLL_SECONDS))
    log.info(f"Task runner started (poll every {sleep_s}s)")
    while True:
        try:
            factory = session_factory or db_engine.AsyncSessionLocal
            if factory is None:
                raise RuntimeError("Database session factory is not available.")
            await run_due_tasks(factory)
        except Exception as e:
            log.error(f"Task runner tick failed: {e}", exc_info=True)
        await asyncio.sleep(sleep_s)


async def main() -> None:
    db_engine.create_db_engine_and_session_factory()
    if settings.AUTO_CREATE_TABLES:
        await db_engine.create_tables()
    try:
        await task_runner_loop()
    finally:
        await db_engine.dispose_db_engine()


if __name__ == "__main__":
    asyncio.run(main())
