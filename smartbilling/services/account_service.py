import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from smartbilling.config import Settings, get_settings
from smartbilling.core.dates import add_months, normalize_date, utc_today
from smartbilling.core.errors import ConflictError
from smartbilling.core.passwords import hash_password, verify_password
from smartbilling.core.security import TokenIdentity
from smartbilling.models.subscription import Subscription
from smartbilling.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_REGISTER_PASSWORD = "demo123"
DEFAULT_SHOP_NAME = "My Shop"
TOKEN_USER_SHOP_NAME = "Shop"


def _normalize_email(email: Optional[str]) -> Optional[str]:
    if email is None:
        return None
    value = email.strip().lower()
    return value or None


def subscription_active(user: User, today: Optional[date] = None) -> bool:
    if today is None:
        today = utc_today()
    expiry = normalize_date(user.subscription_expiry)
    return expiry is None or expiry >= today


def serialize_user(user: User, today: Optional[date] = None) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "shop_name": user.shop_name,
        "subscription_expiry": user.subscription_expiry,
        "created_at": user.created_at,
        "subscriptionActive": subscription_active(user, today),
    }


def get_user_by_email(db: Session, email: Optional[str]) -> Optional[User]:
    email = _normalize_email(email)
    if email is None:
        return None
    return db.execute(select(User).where(User.email == email)).scalars().first()


def register_user(
    db: Session,
    email: str,
    password: Optional[str] = None,
    shop_name: Optional[str] = None,
) -> User:
    email = _normalize_email(email)
    if email is None:
        raise ValueError("Email is required")
    user = User(
        email=email,
        password_hash=hash_password(password or DEFAULT_REGISTER_PASSWORD),
        shop_name=(shop_name or "").strip() or DEFAULT_SHOP_NAME,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Email already registered") from exc
    db.refresh(user)
    logger.info("Registered user %s.", user.id, extra={"owner_id": user.id})
    return user


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password or "", user.password_hash):
        return None
    return user


def resolve_token_user(db: Session, identity: TokenIdentity) -> Optional[int]:
    """Map a decoded token to a local user id, linking or creating as needed.

    Lookup order is ``external_uid`` then email (which links the uid to the
    existing account); otherwise a new account is created. Store failures
    are logged and yield ``None`` so the request continues unauthenticated.
    """
    if not identity.uid:
        return None
    try:
        user = db.execute(
            select(User).where(User.external_uid == identity.uid)
        ).scalars().first()
        if user is not None:
            return user.id

        user = get_user_by_email(db, identity.email)
        if user is not None:
            user.external_uid = identity.uid
            db.commit()
            return user.id

        user = User(
            email=_normalize_email(identity.email),
            password_hash="",
            shop_name=identity.name or TOKEN_USER_SHOP_NAME,
            external_uid=identity.uid,
        )
        db.add(user)
        db.commit()
        logger.info("Created user %s for token subject.", user.id, extra={"owner_id": user.id})
        return user.id
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not map token subject to a user.", exc_info=True)
        return None


def recharge_subscription(
    db: Session,
    owner_id: int,
    plan_months: int,
    amount: float = 0,
    today: Optional[date] = None,
) -> Optional[date]:
    if plan_months is None or int(plan_months) <= 0:
        raise ValueError("plan_months must be a positive integer")
    if amount is not None and amount < 0:
        raise ValueError("amount cannot be negative")
    user = db.get(User, owner_id)
    if user is None:
        return None
    if today is None:
        today = utc_today()

    base = today
    current = normalize_date(user.subscription_expiry)
    if current is not None and current > base:
        base = current
    expiry = add_months(base, int(plan_months))

    user.subscription_expiry = expiry
    db.add(Subscription(user_id=owner_id, plan_months=int(plan_months), amount=float(amount or 0)))
    db.commit()
    logger.info("Subscription extended to %s.", expiry.isoformat(), extra={"owner_id": owner_id})
    return expiry


def ensure_demo_user(db: Session, settings: Optional[Settings] = None) -> User:
    if settings is None:
        settings = get_settings()
    user = db.get(User, settings.DEFAULT_OWNER_ID)
    if user is not None:
        return user
    user = User(
        id=settings.DEFAULT_OWNER_ID,
        email=_normalize_email(settings.DEMO_EMAIL),
        password_hash=hash_password(settings.DEMO_PASSWORD),
        shop_name=settings.DEMO_SHOP_NAME,
        subscription_expiry=utc_today() + timedelta(days=settings.DEMO_TRIAL_DAYS),
    )
    db.add(user)
    db.commit()
    logger.info("Seeded demo user %s.", user.email, extra={"owner_id": user.id})
    return user


__all__ = [
    "authenticate",
    "ensure_demo_user",
    "get_user_by_email",
    "recharge_subscription",
    "register_user",
    "resolve_token_user",
    "serialize_user",
    "subscription_active",
]
