"""Registration and login endpoints for the Nyx API."""

from __future__ import annotations

from fastapi import APIRouter, Header, status

from nyx_server.schemas.common import StatusResponse
from nyx_server.schemas.user import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from nyx_server.services.users import login_user, logout_session, register_user

from ..dependencies import SessionDep, bearer_token

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, db: SessionDep) -> AuthResponse:
    """Register a new identity and open its first session."""
    user, token = register_user(db, request)
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, db: SessionDep) -> AuthResponse:
    """Open a session for an existing identity whose public key matches."""
    user, token = login_user(db, request)
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/logout", response_model=StatusResponse)
async def logout(
    db: SessionDep,
    authorization: str | None = Header(default=None),
) -> StatusResponse:
    """Close the session named by the bearer token, if any."""
    logout_session(db, bearer_token(authorization))
    return StatusResponse(status="logged_out")
