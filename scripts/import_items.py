import argparse
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running this script directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from sqlalchemy.exc import SQLAlchemyError

from smartbilling.config import get_settings
from smartbilling.core.logging import setup_logging
from smartbilling.database import SessionLocal, apply_migrations, engine
from smartbilling.services.item_service import import_items


def parse_args():
    parser = argparse.ArgumentParser(description="Import inventory items from a CSV or Excel file.")
    parser.add_argument("--path", required=True, help="Path to a .csv or .xlsx file.")
    parser.add_argument(
        "--owner",
        type=int,
        default=None,
        help="Owner user id. Default: DEFAULT_OWNER_ID.",
    )
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    owner_id = args.owner or get_settings().DEFAULT_OWNER_ID
    path = Path(args.path)
    apply_migrations(engine)

    db = SessionLocal()
    try:
        result = import_items(db, owner_id, path.name, path.read_bytes())
    except (OSError, ValueError, SQLAlchemyError) as exc:
        raise SystemExit(f"Import failed: {exc}") from exc
    finally:
        db.close()

    print(f"{result['imported']} of {result['total']} rows imported for owner {owner_id}")
    for error in result.get("errors") or []:
        print(f"  {error}")
    if result.get("errorCount", 0) > len(result.get("errors") or []):
        print(f"  ... {result['errorCount']} errors in total")


if __name__ == "__main__":
    main()
