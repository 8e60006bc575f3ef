from smartbilling.routers.auth import router as auth_router
from smartbilling.routers.bills import router as bills_router
from smartbilling.routers.customers import router as customers_router
from smartbilling.routers.dashboard import router as dashboard_router
from smartbilling.routers.health import router as health_router
from smartbilling.routers.items import router as items_router
from smartbilling.routers.reports import router as reports_router
from smartbilling.routers.subscription import router as subscription_router

__all__ = [
    "auth_router",
    "bills_router",
    "customers_router",
    "dashboard_router",
    "health_router",
    "items_router",
    "reports_router",
    "subscription_router",
]
