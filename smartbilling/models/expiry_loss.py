from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint

from smartbilling.database.base import Base


class ExpiryLoss(Base):
    """Write-once ledger row: the realised loss of one expired item.

    ``item_id`` carries no foreign key; the row outlives the item.
    """

    __tablename__ = "expiry_loss_history"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    item_id = Column(Integer, nullable=False)
    item_name = Column(String(255))
    loss_amount = Column(Float, nullable=False)

    recorded_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "item_id", name="uq_expiry_loss_owner_item"),
        Index("idx_expiry_loss_user", "user_id"),
    )


__all__ = ["ExpiryLoss"]
