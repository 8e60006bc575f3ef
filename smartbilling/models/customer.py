from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from smartbilling.database.base import Base


class CustomerDetails(Base):
    __tablename__ = "customer_details"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True)

    name = Column(String(255), nullable=False, default="")
    organization_name = Column(String(255), nullable=False, default="")
    email = Column(String(255), nullable=False, default="")
    address = Column(Text, nullable=False, default="")
    gstin = Column(String(50), nullable=False, default="")

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


__all__ = ["CustomerDetails"]
