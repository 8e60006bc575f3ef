from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from smartbilling.database.base import Base


class Bill(Base):
    __tablename__ = "bills"

    id = Column(Integer, primary_key=True)
    bill_number = Column(String(50), unique=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"))

    customer_name = Column(String(255))
    customer_mobile = Column(String(20))

    total_amount = Column(Float, nullable=False, default=0)
    pending_amount = Column(Float, nullable=False, default=0)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    lines = relationship(
        "BillItem",
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="BillItem.id",
    )

    __table_args__ = (
        Index("idx_bills_owner_created", "user_id", "created_at"),
    )


class BillItem(Base):
    __tablename__ = "bill_items"

    id = Column(Integer, primary_key=True)
    bill_id = Column(Integer, ForeignKey("bills.id", ondelete="CASCADE"), nullable=False)
    # Nullable: the line outlives the inventory item it was sold from.
    item_id = Column(Integer, ForeignKey("items.id", ondelete="SET NULL"))

    item_name = Column(String(255))
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Float, nullable=False, default=0)
    gst = Column(Float, nullable=False, default=0)
    total = Column(Float, nullable=False, default=0)
    uom = Column(String(10))

    bill = relationship("Bill", back_populates="lines")

    __table_args__ = (
        Index("idx_bill_items_bill", "bill_id"),
    )


__all__ = ["Bill", "BillItem"]
