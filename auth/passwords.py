"""
auth/passwords.py -- Credential Verifier: bcrypt password hashing and login check.

Security design decisions:
  bcrypt used directly, no passlib wrapper. The work factor comes from
      Settings.bcrypt_rounds (default 12, roughly 200-300ms per hash on
      commodity hardware). gensalt() draws a fresh random salt per call, so
      hashing the same password twice yields different digests. The salt and
      cost are embedded in the digest, so verification needs no extra state.

  72-byte limit: bcrypt only looks at the first 72 bytes of input and current
      bcrypt releases reject longer input outright. hash_password() refuses
      such passwords (the API layer validates first and answers 422);
      verify_password() returns False for them, since no stored hash can have
      been produced from one.

  Malformed hashes: bcrypt.checkpw raises ValueError for a digest it cannot
      parse. That surfaces here as CredentialFormatError so callers can tell
      it apart from a mismatch internally -- authenticate() then treats it
      exactly like a wrong password so the response leaks nothing [C2].

  Timing equalization [C1]: authenticate() always runs bcrypt, against
      _DUMMY_HASH when the username does not exist, so response time does not
      reveal which usernames are registered.

These calls are CPU-bound and deliberately slow. Routes that call them are
plain `def` handlers, which FastAPI runs in its worker threadpool so the
event loop is never blocked.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import bcrypt

from auth.errors import CredentialFormatError
from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import UserRecord
    from auth.store import UserStore

logger = logging.getLogger("vss.auth")

_settings = get_settings()

MAX_PASSWORD_BYTES = 72


def hash_password(plain: str, rounds: int | None = None) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Args:
        plain:  Plaintext password. Must encode to at most 72 UTF-8 bytes.
        rounds: log2 work factor. Defaults to Settings.bcrypt_rounds.

    Raises:
        ValueError: the password is longer than bcrypt can hash.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password exceeds {MAX_PASSWORD_BYTES} bytes.")
    salt = bcrypt.gensalt(rounds=rounds or _settings.bcrypt_rounds)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Never raises on mismatch. Raises CredentialFormatError if `hashed` is not
    a usable bcrypt digest.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except ValueError as exc:
        # The hash itself stays out of the message.
        raise CredentialFormatError("Stored password hash is malformed.") from exc


# Computed once at module load so the first login attempt is not measurably
# slower than later ones [C1].
_DUMMY_HASH: str = hash_password("vss_timing_dummy")


def authenticate(store: UserStore, username: str, password: str) -> UserRecord | None:
    """Check a username/password pair against the store with timing equalization.

    Returns the UserRecord on success, None on any credential failure:
      - Unknown username: bcrypt runs against _DUMMY_HASH (same cost as a real check)
      - Wrong password: bcrypt runs against the real hash
      - Malformed stored hash: logged, then treated as a wrong password

    StoreFailure from the lookup propagates -- that is a 500, not a 401.
    """
    user = store.find_by_username(username)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    try:
        ok = verify_password(password, user.password_hash)
    except CredentialFormatError:
        logger.warning("Malformed password hash for user id=%s; rejecting login", user.id)
        return None
    return user if ok else None
