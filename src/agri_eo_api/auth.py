"""Caller credential handling."""

from dataclasses import dataclass

BEARER_PREFIX = "bearer "


@dataclass(frozen=True)
class AuthContext:
    """Credential a request runs with; ``caller_supplied`` selects the cache slot."""

    token: str | None = None
    caller_supplied: bool = False


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    value = authorization.strip()
    if value.lower().startswith(BEARER_PREFIX):
        token = value[len(BEARER_PREFIX) :].strip()
        return token or None
    return None


def auth_context(authorization: str | None, default_token: str | None) -> AuthContext:
    """Use the caller's bearer token when present, else the service default."""

    token = bearer_token(authorization)
    if token:
        return AuthContext(token=token, caller_supplied=True)
    return AuthContext(token=default_token or None, caller_supplied=False)
