from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint

from smartbilling.database.base import Base


class Item(Base):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"))

    item_code = Column(String(50), nullable=False)
    item_name = Column(String(255), nullable=False)
    uom = Column(String(10), nullable=False, default="PCS")

    quantity = Column(Integer, nullable=False, default=0)
    item_price = Column(Float, nullable=False, default=0)
    cost_price = Column(Float, nullable=False, default=0)
    mrp = Column(Float, nullable=False, default=0)
    gst = Column(Float, nullable=False, default=0)

    expiry_date = Column(Date)
    # Set once the expiry write-off check has run for this item, loss or not.
    expiry_checked_at = Column(DateTime(timezone=True))

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "item_code", name="uq_items_owner_code"),
        Index("idx_items_owner_expiry", "user_id", "expiry_date"),
        # Ids are never reused: expiry_loss_history keeps item ids of deleted items.
        {"sqlite_autoincrement": True},
    )


__all__ = ["Item"]
