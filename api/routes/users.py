"""
api/routes/users.py -- User registration (authenticated).

Routes:
  POST /api/users   -- hash the password and store a new user; 201

Any authenticated caller may create accounts -- there is no role model.
The first account is bootstrapped with `python main.py create-user`.

The handler is a plain `def` so bcrypt hashing runs in the worker threadpool.
UsernameTaken -> 409; any other StoreFailure propagates to the handler in
api/main.py, which logs the detail and answers a generic 500.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import UserCreate, UserCreatedResponse
from auth.dependencies import get_current_claims
from auth.errors import UsernameTaken
from auth.models import Claims
from auth.passwords import hash_password
from auth.store import UserStore

logger = logging.getLogger("vss.api")

router = APIRouter()


@router.post("/users", response_model=UserCreatedResponse, status_code=201)
def create_user(
    request: Request,
    body: UserCreate,
    claims: Claims = Depends(get_current_claims),
) -> UserCreatedResponse:
    """Create a new user account with a bcrypt-hashed password."""
    user_store: UserStore = request.app.state.user_store

    password_hash = hash_password(body.password)
    try:
        user_id = user_store.insert_user(body.username, body.email, password_hash)
    except UsernameTaken as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "A user with that username already exists."},
        ) from exc

    logger.info("User id=%s created by user id=%s", user_id, claims.id)
    return UserCreatedResponse(id=user_id, username=body.username, email=body.email)
