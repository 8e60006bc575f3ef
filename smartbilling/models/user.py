from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Integer, String

from smartbilling.database.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True)
    password_hash = Column(String(255), nullable=False, default="")
    shop_name = Column(String(255))
    subscription_expiry = Column(Date)

    # Subject claim of an identity-provider token linked to this account.
    external_uid = Column(String(255), unique=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )


__all__ = ["User"]
