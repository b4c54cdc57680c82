from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from docscan.core.security import SESSION_MAX_AGE, create_session_cookie
from docscan.deps import SESSION_COOKIE_NAME, get_current_user
from docscan.models.user import User
from docscan.services import users as user_service

router = APIRouter()


class RegisterRequest(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


@router.post("/register", status_code=201)
async def auth_register(body: RegisterRequest):
    """Create a user account with the default daily credit allowance."""
    user = await user_service.register_user(body.username, body.email, body.password)
    return {"user": user_service.profile(user)}


@router.post("/login")
async def auth_login(body: LoginRequest, response: Response):
    """Check email/password; set httpOnly session cookie."""
    user = await user_service.authenticate(body.email, body.password)
    session_value = create_session_cookie(user_service.session_payload_for_user(user))
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_value,
        max_age=SESSION_MAX_AGE,
        httponly=True,
        secure=False,  # set True in prod with HTTPS
        samesite="lax",
        path="/",
    )
    return {"user": user_service.profile(user)}


@router.post("/logout")
async def auth_logout(response: Response, user: User = Depends(get_current_user)):
    await user_service.invalidate_sessions(user)
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    return {"message": "Logged out"}


@router.get("/me")
async def auth_me(user: User = Depends(get_current_user)):
    """Return current user, including remaining credits."""
    return user_service.profile(user)
