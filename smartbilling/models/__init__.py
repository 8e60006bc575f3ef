import importlib

from smartbilling.models.bill import Bill, BillItem
from smartbilling.models.customer import CustomerDetails
from smartbilling.models.expiry_loss import ExpiryLoss
from smartbilling.models.item import Item
from smartbilling.models.item_history import ItemUpdateHistory
from smartbilling.models.subscription import Subscription
from smartbilling.models.user import User


def import_all_models() -> None:
    for module_name in (
        "smartbilling.models.bill",
        "smartbilling.models.customer",
        "smartbilling.models.expiry_loss",
        "smartbilling.models.item",
        "smartbilling.models.item_history",
        "smartbilling.models.subscription",
        "smartbilling.models.user",
    ):
        importlib.import_module(module_name)


__all__ = [
    "Bill",
    "BillItem",
    "CustomerDetails",
    "ExpiryLoss",
    "Item",
    "ItemUpdateHistory",
    "Subscription",
    "User",
    "import_all_models",
]
