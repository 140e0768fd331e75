"""
middleware/auth_middleware.py — Bearer token authentication for the ledger API.

Tokens are issued by the account service that owns user sign-in; this API
only verifies them. @require_auth:
  1. Reads "Authorization: Bearer <token>"
  2. Verifies the HS256 signature with JWT_SECRET_KEY and the exp claim
  3. Puts the integer 'sub' claim on flask.g.user_id

The user id is not a tenant id. Routes that need the caller's tenant resolve
it through AggregationService.resolve_tenant(), which answers
TENANT_NOT_FOUND (404) for users without a tenant record.

Error codes:
  TOKEN_MISSING  (401) — no Authorization header
  TOKEN_INVALID  (401) — malformed header, bad signature or bad 'sub' claim
  TOKEN_EXPIRED  (401) — signature fine, exp in the past
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from roomledger.app.errors import AppError, ErrorCode


def require_auth(f: Callable) -> Callable:
    """
    Route decorator: authenticates the request, then calls the view.

    Failures raise AppError; the global error handler renders them.
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        g.user_id = authenticate_request()
        return f(*args, **kwargs)

    return decorated


def authenticate_request() -> int:
    """Returns the user id carried by the request's bearer token."""
    auth_header = request.headers.get("Authorization", "")

    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )

    return user_id_from_token(parts[1])


def user_id_from_token(raw_token: str) -> int:
    """Decodes `raw_token` and returns its 'sub' claim as an int."""
    try:
        payload = jwt.decode(
            raw_token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
            leeway=current_app.config.get("JWT_LEEWAY_SECONDS", 0),
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Sign in again to obtain a new one.",
            401,
        )
    except jwt.InvalidTokenError:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has been tampered with.",
            401,
        )

    sub = payload.get("sub")
    if sub is None:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is missing the required 'sub' claim.",
            401,
        )

    try:
        return int(sub)
    except (TypeError, ValueError):
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The 'sub' claim in the access token is not a valid user ID.",
            401,
        )
