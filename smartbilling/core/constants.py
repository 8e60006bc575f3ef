from pathlib import Path


PACKAGE_DIR = Path(__file__).resolve().parents[1]
PROJECT_ROOT = PACKAGE_DIR.parent

TEMPLATES_DIR = PACKAGE_DIR / "templates"

DEFAULT_UOM = "PCS"
BILL_NUMBER_PREFIX = "BL"

ITEMS_PAGE_SIZE = 10
ITEM_SEARCH_LIMIT = 20
HISTORY_PAGE_SIZE_MAX = 100

REVENUE_GRAPH_DAYS = 30
TOP_ITEMS_MONTHS = 1
TOP_ITEMS_LIMIT = 10
