from smartbilling.services.account_service import ensure_demo_user, resolve_token_user
from smartbilling.services.billing_service import create_bill
from smartbilling.services.dashboard_service import dashboard_summary, revenue_graph, top_items
from smartbilling.services.item_service import import_items
from smartbilling.services.ledger_service import compute_profit, record_expiry_losses

__all__ = [
    "compute_profit",
    "create_bill",
    "dashboard_summary",
    "ensure_demo_user",
    "import_items",
    "record_expiry_losses",
    "resolve_token_user",
    "revenue_graph",
    "top_items",
]
