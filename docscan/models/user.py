from datetime import datetime

from beanie import Document, Indexed
from pydantic import Field

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class User(Document):
    username: Indexed(str, unique=True)
    email: Indexed(str, unique=True)
    password_hash: str
    role: str = ROLE_USER  # "user" | "admin"
    credits: int = 0  # never negative; only changed through services.credits
    session_version: int = 0
    last_login_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    class Settings:
        name = "users"
        indexes = [[("role", 1)]]
