"""Access token verification.

Agora never logs anyone in. Tokens come from the identity service and carry
the acting username in ``sub``; this module checks them and hands back that
username. ``issue_access_token`` exists for local development and tests.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from src.config.settings import get_settings


ACCESS_TOKEN_TYPE = "access"


def issue_access_token(username: str, expires_delta: timedelta | None = None) -> str:
    """Sign an access token for ``username``.

    The lifetime defaults to ``auth_access_token_expire_minutes``. When an
    issuer is configured it is stamped into ``iss`` so the token passes
    ``verify_access_token``.
    """
    settings = get_settings()
    now = datetime.now(UTC)
    lifetime = expires_delta or timedelta(
        minutes=settings.auth_access_token_expire_minutes
    )

    claims = {
        "sub": username,
        "iat": now,
        "exp": now + lifetime,
        "type": ACCESS_TOKEN_TYPE,
    }
    if settings.auth_issuer:
        claims["iss"] = settings.auth_issuer

    return jwt.encode(
        claims, settings.auth_secret_key, algorithm=settings.auth_algorithm
    )


def verify_access_token(token: str) -> str:
    """Return the username carried by a valid access token.

    Raises:
        JWTError: Bad signature, expired, wrong issuer, not an access token,
            or no username in ``sub``
    """
    settings = get_settings()

    claims = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
        issuer=settings.auth_issuer,
    )

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        msg = f"Invalid token type: expected '{ACCESS_TOKEN_TYPE}'"
        raise JWTError(msg)

    username = claims.get("sub")
    if not isinstance(username, str) or not username.strip():
        msg = "Access token missing sub claim"
        raise JWTError(msg)

    return username
