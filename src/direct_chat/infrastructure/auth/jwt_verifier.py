"""Bearer-token verification: shared-secret HS256 or a remote JWKS."""
from __future__ import annotations

import asyncio
import logging
from typing import Any
from uuid import UUID

import jwt
from jwt import PyJWKClient

from direct_chat.application.dto.principal import Principal

logger = logging.getLogger(__name__)


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """The ``sub`` claim carries the profile id."""
    try:
        return Principal(user_id=UUID(str(payload["sub"])))
    except (KeyError, ValueError) as exc:
        raise jwt.InvalidTokenError("Token subject is not a user id") from exc


class HS256Verifier:
    """Verify JWTs signed with a shared secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        return principal_from_claims(payload)


class JWKSVerifier:
    """Verify JWTs using a remote JWKS endpoint."""

    def __init__(self, jwks_url: str) -> None:
        self._jwk_client = PyJWKClient(jwks_url)

    async def verify(self, token: str) -> Principal:
        # PyJWKClient fetches keys with blocking I/O
        signing_key = await asyncio.to_thread(self._jwk_client.get_signing_key_from_jwt, token)
        payload = jwt.decode(token, signing_key.key, algorithms=["RS256", "ES256"])
        return principal_from_claims(payload)
