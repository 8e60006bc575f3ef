import unittest
from datetime import date, timedelta

from sqlalchemy import select

from smartbilling.config import Settings
from smartbilling.core.errors import ConflictError
from smartbilling.core.security import TokenIdentity
from smartbilling.models.subscription import Subscription
from smartbilling.models.user import User
from smartbilling.services import account_service
from tests.support import make_session_factory


def identity(uid="uid-1", email=None, name=None):
    return TokenIdentity(uid=uid, email=email, name=name, verified=True)


class AccountServiceTest(unittest.TestCase):
    def setUp(self):
        self.engine, Session = make_session_factory()
        self.db = Session()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_register_hashes_password_and_rejects_duplicates(self):
        user = account_service.register_user(self.db, "Owner@Shop.com", "s3cret")

        self.assertEqual(user.email, "owner@shop.com")
        self.assertEqual(user.shop_name, "My Shop")
        self.assertNotIn("s3cret", user.password_hash)
        self.assertIsNotNone(account_service.authenticate(self.db, "owner@shop.com", "s3cret"))
        self.assertIsNone(account_service.authenticate(self.db, "owner@shop.com", "wrong"))
        with self.assertRaises(ConflictError):
            account_service.register_user(self.db, "owner@shop.com")

    def test_register_requires_email(self):
        with self.assertRaises(ValueError):
            account_service.register_user(self.db, "  ")

    def test_subscription_flag(self):
        today = date(2026, 5, 1)
        user = User(subscription_expiry=date(2026, 4, 30))
        self.assertFalse(account_service.subscription_active(user, today))
        user.subscription_expiry = today
        self.assertTrue(account_service.subscription_active(user, today))
        user.subscription_expiry = None
        self.assertTrue(account_service.subscription_active(user, today))
        self.assertNotIn("password_hash", account_service.serialize_user(user, today))

    def test_token_mapping_by_uid_then_email_then_create(self):
        existing = account_service.register_user(self.db, "known@shop.com")

        linked = account_service.resolve_token_user(self.db, identity(uid="u-1", email="KNOWN@shop.com"))
        self.assertEqual(linked, existing.id)
        self.assertEqual(self.db.get(User, existing.id).external_uid, "u-1")

        self.assertEqual(account_service.resolve_token_user(self.db, identity(uid="u-1")), existing.id)

        created = account_service.resolve_token_user(self.db, identity(uid="u-2", name="Corner Chemist"))
        user = self.db.get(User, created)
        self.assertIsNone(user.email)
        self.assertEqual(user.shop_name, "Corner Chemist")
        self.assertIsNone(account_service.resolve_token_user(self.db, identity(uid=None)))

    def test_recharge_extends_from_later_date(self):
        user = account_service.register_user(self.db, "a@shop.com")
        today = date(2026, 1, 31)

        expiry = account_service.recharge_subscription(self.db, user.id, 1, 299, today=today)
        self.assertEqual(expiry, date(2026, 2, 28))

        expiry = account_service.recharge_subscription(self.db, user.id, 12, 2999, today=today)
        self.assertEqual(expiry, date(2027, 2, 28))

        payments = self.db.execute(select(Subscription).where(Subscription.user_id == user.id)).scalars().all()
        self.assertEqual([payment.plan_months for payment in payments], [1, 12])
        with self.assertRaises(ValueError):
            account_service.recharge_subscription(self.db, user.id, 0)
        self.assertIsNone(account_service.recharge_subscription(self.db, 999, 1))

    def test_demo_user_seeded_once(self):
        settings = Settings(DEFAULT_OWNER_ID=1, DEMO_TRIAL_DAYS=30, PASSWORD_PBKDF2_ROUNDS=1000)

        first = account_service.ensure_demo_user(self.db, settings)
        second = account_service.ensure_demo_user(self.db, settings)

        self.assertEqual(first.id, 1)
        self.assertEqual(second.id, 1)
        self.assertEqual(first.email, "demo@shop.com")
        self.assertGreaterEqual(first.subscription_expiry, date.today() + timedelta(days=29))


if __name__ == "__main__":
    unittest.main()
