# app/service_layer/jobruns.py
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import JobRun, JobRunStatus

log = logging.getLogger(__name__)


async def start_job(session: AsyncSession, job_name: str, meta: dict[str, Any] | None = None) -> JobRun:
    jr = JobRun(
        job_name=job_name,
        started_at=datetime.utcnow(),
        status=JobRunStatus.running,
        meta_json=json.dumps(meta or {}, default=str),
    )
    session.add(jr)
    await session.flush()
    return jr


async def finish_job_success(session: AsyncSession, jr: JobRun, summary: dict[str, Any]) -> None:
    jr.status = JobRunStatus.success
    jr.finished_at = datetime.utcnow()
    jr.summary_json = json.dumps(summary, default=str)
    jr.error = None
    await session.flush()


async def finish_job_fail(session: AsyncSession, jr: JobRun, err: Exception) -> None:
    jr.status = JobRunStatus.failed
    jr.finished_at = datetime.utcnow()
    jr.error = str(err)
    await session.flush()


async def run_recorded(
    session: AsyncSession,
    job_name: str,
    body: Callable[[], Awaitable[dict[str, Any]]],
    *,
    meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Run `body` bracketed by a JobRun row and commit either way.
    A failing body is recorded and re-raised.
    """
    jr = await start_job(session, job_name, meta)
    try:
        result = await body()
    except Exception as e:
        log.exception("job %s failed", job_name)
        await session.rollback()
        # the rollback discarded the running row; record the failure fresh
        jr = await start_job(session, job_name, meta)
        await finish_job_fail(session, jr, e)
        await session.commit()
        raise
    await finish_job_success(session, jr, result)
    await session.commit()
    return result
