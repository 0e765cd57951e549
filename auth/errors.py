"""
auth/errors.py -- Internal exception types for the auth layer.

None of these carry secrets, plaintext passwords, or hashes in their message.
The route layer maps them to the generic HTTP envelopes in api/main.py:

  CredentialFormatError -> 401 invalid_credentials (same as a wrong password)
  TokenRejected         -> 403 invalid_token (signature and expiry look identical)
  UsernameTaken         -> 409 conflict
  StoreFailure          -> 500 internal_error (detail logged server-side only)
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for auth-layer failures."""


class CredentialFormatError(AuthError):
    """A stored password hash is not a well-formed bcrypt digest."""


class TokenRejected(AuthError):
    """A bearer token failed verification."""


class InvalidSignature(TokenRejected):
    """Token could not be decoded, its signature did not verify, or required claims are missing."""


class TokenExpired(TokenRejected):
    """Token signature verified but its exp claim is not in the future."""


class StoreFailure(Exception):
    """The user store could not complete a query."""


class UsernameTaken(StoreFailure):
    """Insert rejected because the username already exists."""
