from datetime import datetime

from beanie.operators import Inc, Or

from docscan.core.audit import log_event
from docscan.core.config import get_settings
from docscan.core.exceptions import BadRequestError, ConflictError, UnauthorizedError
from docscan.core.logging import get_logger
from docscan.core.security import hash_password, verify_password
from docscan.models.user import ROLE_ADMIN, ROLE_USER, User

log = get_logger(__name__)


async def register_user(username: str, email: str, password: str) -> User:
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email or not password:
        raise BadRequestError("All fields are required")
    existing = await User.find_one(Or(User.email == email, User.username == username))
    if existing:
        raise ConflictError("Email or username already exists")
    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=ROLE_USER,
        credits=get_settings().default_user_credits,
    )
    await user.insert()
    log.info("user_created", user_id=str(user.id), username=username)
    await log_event(str(user.id), "user_registered", "user", str(user.id), {"email": email})
    return user


async def authenticate(email: str, password: str) -> User:
    if not email or not password:
        raise BadRequestError("Email and password are required")
    user = await User.find_one(User.email == email.strip().lower())
    if not user or not verify_password(password, user.password_hash):
        raise UnauthorizedError("Invalid credentials")
    user.last_login_at = datetime.utcnow()
    user.updated_at = user.last_login_at
    await user.save()
    log.info("user_login", user_id=str(user.id))
    return user


async def invalidate_sessions(user: User) -> None:
    """Bump session_version so previously issued cookies stop validating."""
    await User.find_one(User.id == user.id).update(Inc({User.session_version: 1}))


async def ensure_admin_user() -> User | None:
    """Create the admin account once from ADMIN_* settings."""
    settings = get_settings()
    admin = await User.find_one(User.role == ROLE_ADMIN)
    if admin:
        log.info("admin_exists", user_id=str(admin.id))
        return admin
    if not settings.admin_password:
        log.warning("admin_not_created", reason="ADMIN_PASSWORD is not set")
        return None
    admin = User(
        username=settings.admin_username,
        email=settings.admin_email.lower(),
        password_hash=hash_password(settings.admin_password),
        role=ROLE_ADMIN,
        credits=settings.admin_credits,
    )
    await admin.insert()
    log.info("admin_created", user_id=str(admin.id), username=admin.username)
    return admin


def session_payload_for_user(user: User) -> dict:
    return {"user_id": str(user.id), "session_version": user.session_version}


def profile(user: User) -> dict:
    return {
        "id": str(user.id),
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "credits": user.credits,
    }
