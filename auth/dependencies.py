"""
auth/dependencies.py -- FastAPI Depends() helper for bearer authentication.

Per-request state machine (no retries -- the client re-authenticates):

  Unauthenticated --no bearer token-------------> Rejected 401 missing_token
  Unauthenticated --TokenService.verify fails---> Rejected 403 invalid_token
  Unauthenticated --TokenService.verify ok------> Authenticated (claims on request.state)

Signature failure and expiry produce byte-identical 403 responses so a client
cannot use the endpoint as an oracle for why a token was refused. The reason
kind is logged server-side; the token itself never is.

Layer rule: may import from fastapi because this module is part of the
FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request

from auth.errors import TokenRejected
from auth.models import Claims
from auth.tokens import TokenService

logger = logging.getLogger("vss.auth")


def extract_bearer_token(request: Request) -> str | None:
    """Return the token from an `Authorization: Bearer <token>` header, or None."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def get_current_claims(request: Request) -> Claims:
    """Require a valid bearer token. Raises HTTP 401 if absent, 403 if invalid or expired.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(claims: Claims = Depends(get_current_claims)): ...
    """
    token = extract_bearer_token(request)
    if token is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "missing_token", "message": "Access token required."},
            headers={"WWW-Authenticate": "Bearer"},
        )

    tokens: TokenService = request.app.state.tokens
    try:
        claims = tokens.verify(token)
    except TokenRejected as exc:
        logger.info(
            "Token rejected (%s) for %s %s",
            type(exc).__name__,
            request.method,
            request.url.path,
        )
        raise HTTPException(
            status_code=403,
            detail={"code": "invalid_token", "message": "Invalid or expired token."},
        ) from exc

    request.state.claims = claims
    return claims
