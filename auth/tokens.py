"""
auth/tokens.py -- Token Issuer/Verifier: signed, time-bounded JWTs.

Security design decisions:
  python-jose with HS256. The payload carries the caller's identity claims
      (id, username) plus iat and exp. exp = iat + lifetime (24h default).

  The signing secret is handed to TokenService at construction time -- the
      app builds one in its lifespan from Settings, tests build their own.
      Nothing reads the secret from a module global, and it is never logged.

  Verification order: jose.jwt.decode() checks the signature before anything
      in the payload is trusted. Expiry is checked afterwards against the
      injected clock (jose's own exp check is switched off) so the boundary
      is exact and testable without patching time.

  InvalidSignature and TokenExpired are distinct internally (for logs and
      tests) but the dependency layer turns both into the same 403 so a
      client cannot learn why a token failed.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from jose import JWTError, jwt

from auth.errors import InvalidSignature, TokenExpired
from auth.models import Claims

logger = logging.getLogger("vss.auth")

ALGORITHM = "HS256"
DEFAULT_LIFETIME_SECONDS = 24 * 60 * 60

_RESERVED_CLAIMS = ("iat", "exp")


class TokenService:
    """Mints and verifies bearer tokens with a single symmetric secret.

    Usage:
        tokens = TokenService(settings.secret_key)
        token = tokens.issue({"id": 1, "username": "alice"})
        claims = tokens.verify(token)   # raises TokenRejected on failure
    """

    def __init__(
        self,
        secret_key: str,
        lifetime_seconds: int = DEFAULT_LIFETIME_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a non-empty secret key.")
        if lifetime_seconds <= 0:
            raise ValueError("lifetime_seconds must be positive.")
        self._secret_key = secret_key
        self.lifetime_seconds = lifetime_seconds
        self._clock = clock

    def __repr__(self) -> str:
        return f"TokenService(algorithm={ALGORITHM!r}, lifetime_seconds={self.lifetime_seconds})"

    def issue(self, claims: dict) -> str:
        """Encode claims plus iat/exp and sign them.

        Deterministic for identical claims and clock reading. Caller-supplied
        iat/exp are overwritten -- lifetime is always the service's.
        """
        issued_at = int(self._clock())
        payload = {k: v for k, v in claims.items() if k not in _RESERVED_CLAIMS}
        payload["iat"] = issued_at
        payload["exp"] = issued_at + self.lifetime_seconds
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    def verify(self, token: str) -> Claims:
        """Return the token's claims, or raise TokenRejected.

        Raises:
            InvalidSignature: undecodable token, bad signature, wrong algorithm,
                              or required claims missing/mistyped.
            TokenExpired:     signature is valid but exp <= now.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise InvalidSignature("Token signature could not be verified.") from exc

        try:
            claims = Claims(
                id=payload["id"],
                username=str(payload["username"]),
                issued_at=int(payload.get("iat", 0)),
                expires_at=int(payload["exp"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidSignature("Token is missing required claims.") from exc

        if claims.expires_at <= int(self._clock()):
            raise TokenExpired("Token has expired.")
        return claims
