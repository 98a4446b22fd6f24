"""
Admin sign-in routes.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from portfolio.api.dependencies import bearer_token, get_state
from portfolio.api.models import AccessCodeRequest, SessionOut, SessionStatus, SignInRequest

router = APIRouter(prefix="/v1/auth", tags=["auth"])


@router.post(
    "/sign-in",
    response_model=SessionOut,
    responses={
        401: {"description": "Authentication failed"},
        403: {"description": "Email not on the admin allow-list"},
    },
)
def sign_in(payload: SignInRequest, request: Request, response: Response) -> dict:
    response.headers["Cache-Control"] = "no-store"
    session = get_state(request).auth.sign_in(payload.email, payload.password)
    return session.to_dict()


@router.post(
    "/sign-in-with-code",
    response_model=SessionOut,
    responses={
        403: {"description": "Invalid access code"},
        500: {"description": "Access code not configured"},
    },
)
def sign_in_with_code(payload: AccessCodeRequest, request: Request, response: Response) -> dict:
    response.headers["Cache-Control"] = "no-store"
    session = get_state(request).auth.sign_in_with_code(payload.code)
    return session.to_dict()


@router.get("/session", response_model=SessionStatus)
def current_session(request: Request, response: Response) -> dict:
    """Identity behind the bearer token and whether it holds the admin role."""
    response.headers["Cache-Control"] = "no-store"
    state = get_state(request)
    account = state.accounts.user_for_token(bearer_token(request))
    if account is None:
        return {"user": None, "is_admin": False}
    return {"user": account.to_dict(), "is_admin": state.auth.is_admin(account)}


@router.post("/sign-out")
def sign_out(request: Request, response: Response) -> dict:
    response.headers["Cache-Control"] = "no-store"
    token = bearer_token(request)
    if token:
        get_state(request).auth.sign_out(token)
    return {"success": True}
