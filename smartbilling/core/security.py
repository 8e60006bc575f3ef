"""Bearer-token identity strategies.

Two decoders share one interface. ``VerifiedTokenDecoder`` checks the token
signature with PyJWT. ``UnverifiedTokenDecoder`` only reads the claims and
marks every identity it produces as unverified. Which one runs is a
configuration choice (``AUTH_TOKEN_MODE``); a failed verification is an
error and never falls back to reading the claims unverified.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

import jwt

from smartbilling.config import Settings, get_settings

logger = logging.getLogger(__name__)

TOKEN_MODE_DISABLED = "disabled"
TOKEN_MODE_VERIFIED = "verified"
TOKEN_MODE_UNVERIFIED = "unverified"


class TokenError(Exception):
    pass


@dataclass(frozen=True)
class TokenIdentity:
    uid: Optional[str]
    email: Optional[str]
    name: Optional[str]
    verified: bool
    claims: dict = field(default_factory=dict, repr=False)


def _claim_text(claims: dict, *keys: str) -> Optional[str]:
    for key in keys:
        value = claims.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


class TokenDecoder(ABC):
    verified: bool = False

    @abstractmethod
    def decode(self, token: str) -> dict:
        ...

    def identify(self, token: str) -> TokenIdentity:
        claims = self.decode(token)
        return TokenIdentity(
            uid=_claim_text(claims, "uid", "user_id", "sub"),
            email=_claim_text(claims, "email"),
            name=_claim_text(claims, "name", "displayName"),
            verified=self.verified,
            claims=claims,
        )


class VerifiedTokenDecoder(TokenDecoder):
    verified = True

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
    ):
        if not secret:
            raise ValueError("JWT_SECRET is required for verified token mode.")
        self._secret = secret
        self._algorithm = algorithm
        self._audience = audience
        self._issuer = issuer

    def decode(self, token: str) -> dict:
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                options={"verify_aud": bool(self._audience)},
            )
        except jwt.PyJWTError as exc:
            raise TokenError("Invalid token: {}".format(exc)) from exc


class UnverifiedTokenDecoder(TokenDecoder):
    verified = False

    def decode(self, token: str) -> dict:
        try:
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError as exc:
            raise TokenError("Malformed token: {}".format(exc)) from exc
        logger.warning(
            "Token claims read without signature verification (AUTH_TOKEN_MODE=unverified)."
        )
        return claims


def get_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def build_token_decoder(settings: Settings) -> Optional[TokenDecoder]:
    mode = (settings.AUTH_TOKEN_MODE or TOKEN_MODE_DISABLED).strip().lower()
    if mode == TOKEN_MODE_DISABLED:
        return None
    if mode == TOKEN_MODE_VERIFIED:
        return VerifiedTokenDecoder(
            settings.JWT_SECRET or "",
            algorithm=settings.JWT_ALGORITHM,
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
    if mode == TOKEN_MODE_UNVERIFIED:
        return UnverifiedTokenDecoder()
    raise ValueError("Unknown AUTH_TOKEN_MODE: {}".format(settings.AUTH_TOKEN_MODE))


@lru_cache
def get_token_decoder() -> Optional[TokenDecoder]:
    return build_token_decoder(get_settings())


__all__ = [
    "TOKEN_MODE_DISABLED",
    "TOKEN_MODE_UNVERIFIED",
    "TOKEN_MODE_VERIFIED",
    "TokenDecoder",
    "TokenError",
    "TokenIdentity",
    "UnverifiedTokenDecoder",
    "VerifiedTokenDecoder",
    "build_token_decoder",
    "get_bearer_token",
    "get_token_decoder",
]
