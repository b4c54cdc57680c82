"""ARQ job definitions and worker settings."""

import uuid
from datetime import timezone
from typing import Any
from urllib.parse import urlparse

from arq.connections import RedisSettings
from arq.cron import cron

from docscan.core.config import get_settings
from docscan.core.logging import configure_logging, get_logger

log = get_logger(__name__)


async def _run_with_dlq(job_name: str, job_id: str | None, args: list[Any], coro) -> Any:
    """Run coroutine; on exception persist to FailedJob then re-raise."""
    try:
        return await coro
    except Exception as e:
        from docscan.models.failed_job import FailedJob
        fid = job_id or str(uuid.uuid4())
        await FailedJob(
            job_name=job_name,
            job_id=fid,
            args=args,
            reason=str(e)[:2000],
        ).insert()
        log.exception("job_failed", job=job_name, job_id=fid, reason=str(e))
        raise


async def reset_credits_daily(ctx: dict[str, Any]) -> int:
    """Cron job: reset non-admin balances at 00:00 UTC."""
    job_id = ctx.get("job_id") if isinstance(ctx.get("job_id"), str) else None
    from docscan.worker.cron import run_reset_credits_daily
    return await _run_with_dlq("reset_credits_daily", job_id, [], run_reset_credits_daily())


async def startup(ctx: dict) -> None:
    from docscan.db.init import init_db
    configure_logging(debug=get_settings().debug)
    await init_db()
    log.info("worker_startup")


async def shutdown(ctx: dict) -> None:
    log.info("worker_shutdown")


def get_redis_settings() -> RedisSettings:
    u = urlparse(get_settings().redis_url)
    return RedisSettings(
        host=u.hostname or "localhost",
        port=u.port or 6379,
        password=u.password,
        database=int(u.path.lstrip("/") or 0),
    )


class WorkerSettings:
    functions = [reset_credits_daily]
    cron_jobs = [
        cron(reset_credits_daily, hour=0, minute=0, second=0, unique=True),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = get_redis_settings()
    timezone = timezone.utc
