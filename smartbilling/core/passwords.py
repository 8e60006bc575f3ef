from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Optional

from smartbilling.config import get_settings

_SCHEME = "pbkdf2_sha256"


def _derive(password: str, salt: str, rounds: int) -> str:
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        rounds,
    )
    return digest.hex()


def hash_password(password: str, *, rounds: Optional[int] = None, salt: Optional[str] = None) -> str:
    """Encode as ``scheme$rounds$salt$hexdigest``."""
    if rounds is None:
        rounds = get_settings().PASSWORD_PBKDF2_ROUNDS
    if salt is None:
        salt = secrets.token_hex(16)
    return "{}${}${}${}".format(_SCHEME, rounds, salt, _derive(password, salt, rounds))


def verify_password(password: str, encoded: Optional[str]) -> bool:
    if not encoded:
        return False
    parts = encoded.split("$")
    if len(parts) != 4 or parts[0] != _SCHEME:
        return False
    try:
        rounds = int(parts[1])
    except ValueError:
        return False
    computed = _derive(password, parts[2], rounds)
    return hmac.compare_digest(computed, parts[3])


__all__ = ["hash_password", "verify_password"]
