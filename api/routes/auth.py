"""
api/routes/auth.py -- Password login endpoint.

Routes:
  POST /api/login   -- verify username/password; return a signed bearer token

Security:
  [C1] authenticate() provides timing equalization -- use it, never inline
       find_by_username() + verify_password().
  [C2] Unknown user, wrong password, and malformed stored hash all return the
       same 401 invalid_credentials body.
  [M5] Cache-Control: no-store on every login response.

The handler is a plain `def`: bcrypt verification is CPU-bound, so FastAPI
runs it in the worker threadpool instead of on the event loop. StoreFailure
propagates to the handler in api/main.py (generic 500).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, LoginRequest, LoginResponse, LoginUser
from auth.passwords import authenticate
from auth.store import UserStore
from auth.tokens import TokenService

logger = logging.getLogger("vss.api")

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a 24h bearer token."""
    user_store: UserStore = request.app.state.user_store
    tokens: TokenService = request.app.state.tokens

    user = authenticate(user_store, body.username, body.password)
    if user is None:
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(
                error=ErrorDetail(code="invalid_credentials", message="Invalid credentials.")
            ).model_dump(exclude_none=True),
        )
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    token = tokens.issue({"id": user.id, "username": user.username})
    logger.info("Login succeeded for user id=%s", user.id)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=token,
            user=LoginUser(id=user.id, username=user.username),
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp
