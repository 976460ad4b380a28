"""Authorization header handling for the vcluster API."""

from __future__ import annotations

from enum import StrEnum

BEARER_PREFIX = "Bearer "


class AuthScheme(StrEnum):
    """How the login token is presented to an endpoint."""

    BEARER = "bearer"
    RAW = "raw"


def normalize_auth_header(token: str) -> str:
    """Return the Authorization header value for ``token``.

    An empty token yields an empty value (no header is sent), an already
    prefixed token is kept verbatim, and a bare token gets ``Bearer ``.
    """
    if not token:
        return ""
    if token.startswith(BEARER_PREFIX):
        return token
    return BEARER_PREFIX + token


def auth_header(token: str, scheme: AuthScheme = AuthScheme.BEARER) -> str:
    """Return the header value for ``token`` under ``scheme``.

    Cluster create/delete and the credential bundle endpoint expect the
    raw token exactly as returned by ``/login``.
    """
    if scheme is AuthScheme.RAW:
        return token
    return normalize_auth_header(token)
