"""Request authentication.

Every Agora route acts on behalf of a username taken from a Bearer token.
Community-scoped checks (moderator, member) build on ``CurrentUser`` in
``src.communities.dependencies``.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from src.auth.security import verify_access_token
from src.core.middleware import set_user_context


BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity carried by a verified access token."""

    username: str


def get_token_from_header(request: Request) -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header, if any."""
    scheme, _, token = (request.headers.get("Authorization") or "").partition(" ")
    if scheme.lower() != "bearer" or not token or " " in token:
        return None
    return token


def authenticate_token(token: str | None) -> AuthenticatedUser:
    """Verify a raw access token and bind its username to the log context.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers=BEARER_CHALLENGE,
        )

    try:
        username = verify_access_token(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers=BEARER_CHALLENGE,
        ) from e

    set_user_context(username)
    return AuthenticatedUser(username=username)


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthenticatedUser:
    return authenticate_token(token)


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthenticatedUser | None:
    """Anonymous callers get ``None``; a bad token is treated the same way.

    Used by the public community reads, which only need the caller to mark
    their own membership.
    """
    if not token:
        return None

    try:
        return authenticate_token(token)
    except HTTPException:
        return None


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]

OptionalUser = Annotated[AuthenticatedUser | None, Depends(get_current_user_optional)]
