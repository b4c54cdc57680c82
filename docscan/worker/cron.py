"""Cron: daily credit reset for every non-admin user."""

from docscan.core.audit import log_event
from docscan.core.config import get_settings
from docscan.core.logging import get_logger
from docscan.models.user import ROLE_USER
from docscan.services import credits as credits_service

log = get_logger(__name__)


async def run_reset_credits_daily() -> int:
    """Set every ``user``-role balance to DAILY_CREDIT_RESET_VALUE; admins are untouched."""
    value = get_settings().daily_credit_reset_value
    log.info("reset_credits_daily_start", value=value)
    count = await credits_service.reset_all(value, role=ROLE_USER)
    await log_event(None, "credits_reset", "user", None, {"value": value, "users": count, "trigger": "cron"})
    log.info("reset_credits_daily_done", users_reset=count)
    return count
