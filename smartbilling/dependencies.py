import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from smartbilling.config import Settings, get_settings
from smartbilling.core.security import TokenDecoder, TokenError, get_bearer_token, get_token_decoder
from smartbilling.database.session import get_db
from smartbilling.services.account_service import resolve_token_user

logger = logging.getLogger(__name__)


def _parse_owner(value: Optional[str], source: str) -> Optional[int]:
    if value is None or not value.strip():
        return None
    try:
        owner_id = int(value.strip())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{source} must be an integer.") from None
    if owner_id <= 0:
        raise HTTPException(status_code=400, detail=f"{source} must be positive.")
    return owner_id


def _token_owner(
    db: Session,
    decoder: Optional[TokenDecoder],
    authorization: Optional[str],
    settings: Settings,
) -> Optional[int]:
    token = get_bearer_token(authorization)
    if decoder is None or token is None:
        return None
    try:
        identity = decoder.identify(token)
    except TokenError as exc:
        if settings.AUTH_REQUIRED:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=str(exc),
                headers={"WWW-Authenticate": "Bearer"},
            ) from exc
        logger.warning("Ignoring bearer token: %s", exc)
        return None
    return resolve_token_user(db, identity)


def get_owner_id(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    decoder: Optional[TokenDecoder] = Depends(get_token_decoder),
) -> int:
    """Owner for this request: token user, owner header, ``user_id`` query, default."""
    owner_id = _token_owner(db, decoder, authorization, settings)
    if owner_id is not None:
        return owner_id
    if settings.AUTH_REQUIRED:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    owner_id = _parse_owner(request.headers.get(settings.OWNER_HEADER), settings.OWNER_HEADER)
    if owner_id is not None:
        return owner_id
    owner_id = _parse_owner(request.query_params.get("user_id"), "user_id")
    if owner_id is not None:
        return owner_id
    return settings.DEFAULT_OWNER_ID


__all__ = ["get_db", "get_owner_id"]
