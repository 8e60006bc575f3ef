"""Profit ledger: billed margins net of permanent expiry write-offs.

Expired stock is written off at most once per (owner, item). The
``expiry_loss_history`` row, once present, is never recomputed, and an
item whose write-off check has run (``items.expiry_checked_at``) is never
checked again, so a sold-out expired item stays at zero loss even if it is
restocked later. The unique constraint on ``(user_id, item_id)`` makes
concurrent checks of the same item converge on a single row.

Store failures while writing off or aggregating are logged and degrade the
result instead of failing the dashboard.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from smartbilling.core.dates import utc_today
from smartbilling.core.money import ZERO, round_currency, to_decimal
from smartbilling.models.bill import Bill, BillItem
from smartbilling.models.expiry_loss import ExpiryLoss
from smartbilling.models.item import Item

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfitBreakdown:
    billing_profit: Decimal
    recorded_loss: Decimal
    profit: Decimal
    new_losses: list[ExpiryLoss] = field(default_factory=list)


def compute_expiry_loss(quantity, cost_price) -> Decimal:
    qty = int(quantity or 0)
    # Sold-out stock has nothing left to write off.
    if qty <= 0:
        return ZERO
    return round_currency(to_decimal(cost_price) * qty)


def loss_already_recorded(db: Session, owner_id: int, item_id: int) -> bool:
    stmt = (
        select(ExpiryLoss.id)
        .where(ExpiryLoss.user_id == owner_id, ExpiryLoss.item_id == item_id)
        .limit(1)
    )
    return db.execute(stmt).first() is not None


def _expired_unchecked_items(db: Session, owner_id: int, today: date):
    stmt = (
        select(Item.id, Item.item_name, Item.quantity, Item.cost_price)
        .where(
            Item.user_id == owner_id,
            Item.expiry_date.is_not(None),
            Item.expiry_date <= today,
            Item.expiry_checked_at.is_(None),
        )
        .order_by(Item.id)
    )
    return db.execute(stmt).all()


def _stamp_checked(db: Session, owner_id: int, item_id: int) -> None:
    db.execute(
        update(Item)
        .where(Item.user_id == owner_id, Item.id == item_id)
        .values(
            expiry_checked_at=datetime.now(timezone.utc),
            updated_at=Item.updated_at,
        )
        .execution_options(synchronize_session=False)
    )


def _stamp_after_conflict(db: Session, owner_id: int, item_id: int) -> None:
    try:
        _stamp_checked(db, owner_id, item_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not mark item %s as checked; retried on the next summary.", item_id, exc_info=True)


def record_expiry_losses(db: Session, owner_id: int, today: Optional[date] = None) -> list[ExpiryLoss]:
    """Write off every expired, not yet checked item of ``owner_id``.

    Each item is examined in its own transaction: the ledger row (if any) and
    the ``expiry_checked_at`` stamp commit together or not at all, so an item
    is either fully checked or still pending.

    Returns the ledger rows created by this call.
    """
    if today is None:
        today = utc_today()

    try:
        candidates = _expired_unchecked_items(db, owner_id, today)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Expiry detection skipped for owner %s.", owner_id, exc_info=True)
        return []

    recorded: list[ExpiryLoss] = []
    for row in candidates:
        entry = None
        loss = ZERO
        try:
            if not loss_already_recorded(db, owner_id, row.id):
                loss = compute_expiry_loss(row.quantity, row.cost_price)
                if loss > ZERO:
                    entry = ExpiryLoss(
                        user_id=owner_id,
                        item_id=row.id,
                        item_name=row.item_name,
                        loss_amount=float(loss),
                    )
                    db.add(entry)
            _stamp_checked(db, owner_id, row.id)
            db.commit()
        except IntegrityError:
            # Another request recorded the same (owner, item) first.
            db.rollback()
            logger.info("Expiry loss for item %s already recorded.", row.id)
            _stamp_after_conflict(db, owner_id, row.id)
            continue
        except SQLAlchemyError:
            db.rollback()
            logger.warning(
                "Expiry loss check failed for item %s; retried on the next summary.",
                row.id,
                exc_info=True,
            )
            continue

        if entry is not None:
            recorded.append(entry)
            logger.info(
                "Expiry loss recorded for %s: %s",
                row.item_name,
                loss,
                extra={"owner_id": owner_id, "item_id": row.id, "loss_amount": str(loss)},
            )
    return recorded


def total_recorded_loss(db: Session, owner_id: int) -> Decimal:
    try:
        value = db.execute(
            select(func.coalesce(func.sum(ExpiryLoss.loss_amount), 0)).where(
                ExpiryLoss.user_id == owner_id
            )
        ).scalar_one()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Recorded expiry loss unavailable for owner %s; using 0.", owner_id, exc_info=True)
        return ZERO
    return round_currency(value)


def billing_profit(db: Session, owner_id: int) -> Decimal:
    """Sum of ``(unit_price - cost_price) * quantity`` over every billed line.

    A line whose item has been deleted counts with cost 0. Only the total is
    rounded to cents.
    """
    stmt = (
        select(BillItem.quantity, BillItem.unit_price, Item.cost_price)
        .join(Bill, BillItem.bill_id == Bill.id)
        .outerjoin(Item, BillItem.item_id == Item.id)
        .where(Bill.user_id == owner_id)
    )
    try:
        rows = db.execute(stmt).all()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Billing profit calculation failed for owner %s; using 0.", owner_id, exc_info=True)
        return ZERO

    total = ZERO
    for quantity, unit_price, cost_price in rows:
        total += (to_decimal(unit_price) - to_decimal(cost_price)) * int(quantity or 0)
    return round_currency(total)


def compute_profit(db: Session, owner_id: int, today: Optional[date] = None) -> ProfitBreakdown:
    new_losses = record_expiry_losses(db, owner_id, today=today)
    recorded_loss = total_recorded_loss(db, owner_id)
    billed = billing_profit(db, owner_id)
    return ProfitBreakdown(
        billing_profit=billed,
        recorded_loss=recorded_loss,
        profit=round_currency(billed - recorded_loss),
        new_losses=new_losses,
    )


__all__ = [
    "ProfitBreakdown",
    "billing_profit",
    "compute_expiry_loss",
    "compute_profit",
    "loss_already_recorded",
    "record_expiry_losses",
    "total_recorded_loss",
]
