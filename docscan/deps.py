"""Shared FastAPI dependencies."""

from fastapi import Request

from docscan.core.exceptions import ForbiddenError, UnauthorizedError
from docscan.core.logging import bind_user_id
from docscan.core.security import load_session_cookie
from docscan.models.user import User
from docscan.services.corpus import CorpusStore, get_corpus_store
from docscan.services.scans import ScanOrchestrator

SESSION_COOKIE_NAME = "docscan_session"


async def get_current_user(request: Request) -> User:
    """Dependency: load session from cookie and return User."""
    cookie = request.cookies.get(SESSION_COOKIE_NAME)
    if not cookie:
        raise UnauthorizedError("Not authenticated")
    payload = load_session_cookie(cookie)
    if not payload:
        raise UnauthorizedError("Invalid or expired session")
    user_id = payload.get("user_id")
    if not user_id:
        raise UnauthorizedError("Invalid session")
    user = await User.get(user_id)
    if not user:
        raise UnauthorizedError("User not found")
    if payload.get("session_version") != user.session_version:
        raise UnauthorizedError("Session invalidated")
    bind_user_id(str(user.id))
    return user


async def require_admin(request: Request) -> User:
    """Dependency: require current user to have role admin."""
    user = await get_current_user(request)
    if not user.is_admin:
        raise ForbiddenError("Admin only")
    return user


def corpus_store() -> CorpusStore:
    return get_corpus_store()


def scan_orchestrator() -> ScanOrchestrator:
    return ScanOrchestrator(corpus=get_corpus_store())
