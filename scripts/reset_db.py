import argparse
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running this script directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from sqlalchemy import delete

from smartbilling.config import get_settings
from smartbilling.core.logging import setup_logging
from smartbilling.database import SessionLocal, apply_migrations, engine
from smartbilling.models.bill import Bill, BillItem
from smartbilling.models.customer import CustomerDetails
from smartbilling.models.expiry_loss import ExpiryLoss
from smartbilling.models.item import Item
from smartbilling.models.item_history import ItemUpdateHistory
from smartbilling.services.account_service import ensure_demo_user


def parse_args():
    parser = argparse.ArgumentParser(
        description="Clear bills, items and customer details; keep the demo user."
    )
    parser.add_argument(
        "--ledger",
        action="store_true",
        help="Also clear the expiry loss ledger (normally permanent).",
    )
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    apply_migrations(engine)

    db = SessionLocal()
    try:
        counts = {}
        for label, model in (
            ("bill lines", BillItem),
            ("bills", Bill),
            ("stock history", ItemUpdateHistory),
            ("items", Item),
            ("customer details", CustomerDetails),
        ):
            counts[label] = db.execute(delete(model)).rowcount
        if args.ledger:
            counts["expiry losses"] = db.execute(delete(ExpiryLoss)).rowcount
        db.commit()

        demo = ensure_demo_user(db, get_settings())
    finally:
        db.close()

    for label, count in counts.items():
        print(f"{label}: {count} deleted")
    if not args.ledger:
        print("Expiry loss ledger kept (use --ledger to clear it).")
    print(f"Demo user ready: {demo.email} (id {demo.id})")


if __name__ == "__main__":
    main()
