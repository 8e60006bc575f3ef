import argparse
import sys
from datetime import timedelta
from pathlib import Path

# Ensure repo root is on sys.path when running this script directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from sqlalchemy import delete, select

from smartbilling.config import get_settings
from smartbilling.core.dates import utc_today
from smartbilling.core.logging import setup_logging
from smartbilling.database import SessionLocal, apply_migrations, engine
from smartbilling.models.bill import Bill, BillItem
from smartbilling.models.item import Item
from smartbilling.schemas.bill import BillCreate, BillLineIn
from smartbilling.services.account_service import ensure_demo_user
from smartbilling.services.billing_service import create_bill
from smartbilling.services.dashboard_service import dashboard_summary


def parse_args():
    parser = argparse.ArgumentParser(description="Seed demo items and a bill.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear the demo user's items and bills before seeding.",
    )
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    settings = get_settings()
    apply_migrations(engine)

    db = SessionLocal()
    try:
        owner = ensure_demo_user(db, settings)
        if args.reset:
            bill_ids = select(Bill.id).where(Bill.user_id == owner.id)
            db.execute(delete(BillItem).where(BillItem.bill_id.in_(bill_ids)))
            db.execute(delete(Bill).where(Bill.user_id == owner.id))
            db.execute(delete(Item).where(Item.user_id == owner.id))
            db.commit()

        has_item = db.execute(select(Item.id).where(Item.user_id == owner.id).limit(1)).first()
        if has_item:
            print("Seed skipped: demo user already has items.")
            return

        today = utc_today()
        fresh = Item(
            user_id=owner.id,
            item_code="PCM-500",
            item_name="Paracetamol 500mg",
            quantity=100,
            item_price=30.0,
            cost_price=20.0,
            mrp=35.0,
            gst=12.0,
            expiry_date=today + timedelta(days=365),
        )
        expired = Item(
            user_id=owner.id,
            item_code="CSY-100",
            item_name="Cough Syrup 100ml",
            quantity=10,
            item_price=150.0,
            cost_price=100.0,
            mrp=160.0,
            gst=12.0,
            expiry_date=today - timedelta(days=1),
        )
        sold_out = Item(
            user_id=owner.id,
            item_code="VTC-60",
            item_name="Vitamin C 60 tabs",
            quantity=0,
            item_price=90.0,
            cost_price=60.0,
            mrp=99.0,
            gst=5.0,
            expiry_date=today - timedelta(days=10),
        )
        db.add_all([fresh, expired, sold_out])
        db.commit()

        create_bill(
            db,
            owner.id,
            BillCreate(
                customer_name="Walk-in Customer",
                customer_mobile="9000000000",
                items=[
                    BillLineIn(
                        item_id=fresh.id,
                        item_name=fresh.item_name,
                        quantity=20,
                        unit_price=30.0,
                        gst=0,
                        uom="PCS",
                    )
                ],
            ),
        )

        summary = dashboard_summary(db, owner.id)
    finally:
        db.close()

    print("Seeded 3 items and 1 bill for the demo user.")
    for key, value in summary.items():
        print(f"  {key}: {value}")


if __name__ == "__main__":
    main()
