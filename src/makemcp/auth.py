"""Bearer JWT validation for the HTTP transport."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
import jwt

from .errors import AuthError
from .models import BearerAuthConfig


logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

MISSING_TOKEN = "missing_token"
INVALID_FORMAT = "invalid_format"
EMPTY_TOKEN = "empty_token"
INSUFFICIENT_SCOPE = "insufficient_scope"
TOKEN_EXPIRED = "token_expired"
INVALID_SIGNATURE = "invalid_signature"
INVALID_TOKEN = "invalid_token"


@dataclass
class UserContext:
    user_id: str
    username: Optional[str] = None
    email: Optional[str] = None
    scopes: List[str] = field(default_factory=list)
    claims: Dict[str, Any] = field(default_factory=dict)

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes

    def display_name(self) -> str:
        return self.username or self.email or self.user_id


class BearerTokenVerifier:
    def __init__(self, config: BearerAuthConfig) -> None:
        config.ensure_valid()
        self.config = config
        self._jwks: Optional[Dict[str, Any]] = None
        self._jwks_fetched_at: float = 0.0

    async def authenticate(self, authorization: Optional[str]) -> Optional[UserContext]:
        """Validate an ``Authorization`` header value.

        Returns ``None`` for anonymous requests when authentication is optional.
        """
        if not authorization:
            if self.config.required:
                raise AuthError(MISSING_TOKEN, "Authorization header required")
            return None
        if not authorization.startswith(BEARER_PREFIX):
            raise AuthError(INVALID_FORMAT, "Authorization header must use Bearer format")
        token = authorization[len(BEARER_PREFIX):].strip()
        if not token:
            raise AuthError(EMPTY_TOKEN, "Bearer token cannot be empty")
        return await self.verify(token)

    async def verify(self, token: str) -> UserContext:
        try:
            key = await self._signing_key(token)
            options = {"verify_aud": self.config.audience is not None}
            claims = jwt.decode(
                token,
                key=key,
                algorithms=[self.config.algorithm],
                audience=self.config.audience,
                issuer=self.config.issuer,
                options=options,
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthError(TOKEN_EXPIRED, "token has expired", exc) from exc
        except jwt.InvalidSignatureError as exc:
            raise AuthError(INVALID_SIGNATURE, "token signature is invalid", exc) from exc
        except (jwt.PyJWTError, httpx.HTTPError) as exc:
            raise AuthError(INVALID_TOKEN, f"token validation failed: {exc}", exc) from exc

        user = UserContext(
            user_id=str(claims.get("sub") or ""),
            username=claims.get("preferred_username"),
            email=claims.get("email"),
            scopes=_scopes(claims),
            claims=claims,
        )
        missing = [scope for scope in self.config.required_scopes if not user.has_scope(scope)]
        if missing:
            raise AuthError(
                INSUFFICIENT_SCOPE,
                f"insufficient scopes: requires {self.config.required_scopes}, has {user.scopes}",
            )
        return user

    async def _signing_key(self, token: str) -> Any:
        if self.config.public_key:
            return self.config.public_key

        jwks = await self._get_jwks()
        kid = jwt.get_unverified_header(token).get("kid")
        for key in jwks.get("keys", []):
            if not kid or key.get("kid") == kid:
                return jwt.PyJWK(key).key
        raise jwt.InvalidKeyError("No matching JWK")

    async def _get_jwks(self) -> Dict[str, Any]:
        if self._jwks and time.time() - self._jwks_fetched_at < self.config.cache_ttl:
            return self._jwks

        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.get(str(self.config.jwks_uri))
            response.raise_for_status()
            jwks = response.json()

        self._jwks = jwks
        self._jwks_fetched_at = time.time()
        return jwks


def _scopes(claims: Dict[str, Any]) -> List[str]:
    raw = claims.get("scope", claims.get("scp"))
    if isinstance(raw, str):
        return raw.split()
    if isinstance(raw, list):
        return [str(item) for item in raw]
    return []
