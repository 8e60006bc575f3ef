from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String

from smartbilling.database.base import Base

ACTION_ADDED = "Added"
ACTION_REDUCED = "Reduced"
ACTION_IMPORTED = "Imported"


class ItemUpdateHistory(Base):
    __tablename__ = "item_updates_history"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="SET NULL"))

    item_code = Column(String(50), nullable=False)
    item_name = Column(String(255), nullable=False)
    sale_price = Column(Float, nullable=False, default=0)

    available_qty = Column(Integer, nullable=False, default=0)
    updated_qty = Column(Integer, nullable=False, default=0)
    difference = Column(Integer, nullable=False, default=0)
    action_type = Column(String(50))

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_history_user_id", "user_id"),
        Index("idx_history_created_at", "created_at"),
        Index("idx_history_item_code", "item_code"),
    )


__all__ = ["ACTION_ADDED", "ACTION_IMPORTED", "ACTION_REDUCED", "ItemUpdateHistory"]
