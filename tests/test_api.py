import unittest
from datetime import timedelta
from unittest.mock import patch

import jwt
from fastapi.testclient import TestClient

from smartbilling.config import Settings, get_settings
from smartbilling.core.dates import utc_today
from smartbilling.core.security import VerifiedTokenDecoder, get_token_decoder
from smartbilling.database import get_db
from smartbilling.main import app
from tests.support import add_item, add_user, make_session_factory

SECRET = "api-test-secret-with-enough-length-for-hs256"


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.engine, self.Session = make_session_factory()
        with self.Session() as db:
            add_user(db, 1, email="demo@shop.com")
            add_user(db, 2)

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_token_decoder] = lambda: None
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        self.engine.dispose()


class HealthApiTest(ApiTestCase):
    def test_health_and_landing_page(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["ok"])

        page = self.client.get("/")
        self.assertEqual(page.status_code, 200)
        self.assertIn("text/html", page.headers["content-type"])


class DashboardApiTest(ApiTestCase):
    def test_summary_reports_loss_once(self):
        with self.Session() as db:
            sold = add_item(db, code="S", quantity=50, item_price=100, cost_price=80)
            add_item(db, code="X", quantity=10, cost_price=100, expiry_date=utc_today() - timedelta(days=1))
            sold_id = sold.id

        created = self.client.post(
            "/api/bills",
            json={
                "customer_name": "Walk-in",
                "items": [{"item_id": sold_id, "item_name": "S", "quantity": 10, "unit_price": 100}],
            },
        )
        self.assertEqual(created.status_code, 200, created.text)

        first = self.client.get("/api/dashboard/summary").json()
        second = self.client.get("/api/dashboard/summary").json()

        self.assertEqual(first["profitAmount"], -800.0)
        self.assertEqual(first, second)
        self.assertEqual(first["totalBills"], 1)
        self.assertEqual(first["todayRevenue"], 1000.0)

    def test_owner_header_and_query_parameter(self):
        with self.Session() as db:
            add_item(db, owner_id=2, code="B", quantity=20, cost_price=50, expiry_date=utc_today())

        self.assertEqual(self.client.get("/api/dashboard/summary").json()["profitAmount"], 0.0)
        by_query = self.client.get("/api/dashboard/summary", params={"user_id": 2}).json()
        self.assertEqual(by_query["profitAmount"], -1000.0)
        by_header = self.client.get("/api/dashboard/summary", headers={"X-User-Id": "2"}).json()
        self.assertEqual(by_header["profitAmount"], -1000.0)

        bad = self.client.get("/api/dashboard/summary", headers={"X-User-Id": "abc"})
        self.assertEqual(bad.status_code, 400)


class ItemsApiTest(ApiTestCase):
    def test_crud_flow(self):
        created = self.client.post(
            "/api/items",
            json={"item_code": "P1", "item_name": "Paracetamol", "quantity": "10", "item_price": 5, "expiry_date": ""},
        )
        self.assertEqual(created.status_code, 200, created.text)
        item_id = created.json()["id"]

        duplicate = self.client.post("/api/items", json={"item_code": "P1", "item_name": "Again"})
        self.assertEqual(duplicate.status_code, 409)
        invalid = self.client.post("/api/items", json={"item_code": "P2", "item_name": "X", "gst": 101})
        self.assertEqual(invalid.status_code, 400)

        listing = self.client.get("/api/items").json()
        self.assertEqual(listing["total"], 1)
        self.assertEqual(listing["totalPrice"], 50.0)

        updated = self.client.put(
            f"/api/items/{item_id}",
            json={"item_code": "P1", "item_name": "Paracetamol", "quantity": 4, "item_price": 5},
        )
        self.assertEqual(updated.json(), {"ok": True})
        missing = self.client.put(
            f"/api/items/{item_id}",
            headers={"X-User-Id": "2"},
            json={"item_code": "P1", "item_name": "Paracetamol"},
        )
        self.assertEqual(missing.status_code, 404)

        history = self.client.get("/api/reports/items-history", params={"limit": 500}).json()
        self.assertEqual(history["pagination"]["limit"], 100)
        self.assertEqual([row["action_type"] for row in history["data"]], ["Reduced", "Added"])

        found = self.client.get("/api/items/search", params={"q": "para"}).json()
        self.assertEqual([row["item_code"] for row in found], ["P1"])

        self.assertEqual(self.client.post("/api/items/bulk-delete", json={"ids": []}).status_code, 400)
        self.assertEqual(self.client.delete(f"/api/items/{item_id}").json(), {"ok": True})
        self.assertEqual(self.client.delete(f"/api/items/{item_id}").status_code, 404)

    def test_import_and_export(self):
        upload = self.client.post(
            "/api/items/import",
            files={"file": ("items.csv", b"item_code,item_name,quantity\nA,Aspirin,3\n,Blank,1\n", "text/csv")},
        )
        self.assertEqual(upload.status_code, 200, upload.text)
        self.assertEqual(upload.json(), {"imported": 1, "total": 2, "errors": ["Row 2: Item code is required"], "errorCount": 1})

        rejected = self.client.post(
            "/api/items/import",
            files={"file": ("items.txt", b"whatever", "text/plain")},
        )
        self.assertEqual(rejected.status_code, 400)

        export = self.client.get("/api/items/export")
        self.assertEqual(export.status_code, 200)
        self.assertIn("attachment;", export.headers["content-disposition"])
        self.assertIn("A,Aspirin,PCS,3", export.text)


class BillsApiTest(ApiTestCase):
    def test_bill_lifecycle(self):
        invalid = self.client.post("/api/bills", json={"customer_name": "A", "items": []})
        self.assertEqual(invalid.status_code, 400)
        self.assertEqual(invalid.json()["detail"], "At least one item is required")

        created = self.client.post(
            "/api/bills",
            json={
                "customer_name": "Asha",
                "customer_mobile": "98450",
                "items": [{"item_name": "Gauze", "quantity": 2, "unit_price": 50, "gst": 10}],
                "pending_amount": 10,
            },
        ).json()
        self.assertEqual(created["total"], 110.0)

        detail = self.client.get(f"/api/bills/{created['id']}").json()
        self.assertEqual(detail["bill_number"], created["bill_number"])
        self.assertEqual(detail["items"][0]["item_name"], "Gauze")
        self.assertEqual(self.client.get(f"/api/bills/{created['id']}", params={"user_id": 2}).status_code, 404)

        listed = self.client.get("/api/bills", params={"search": "Asha"}).json()
        self.assertEqual([bill["id"] for bill in listed], [created["id"]])

        export = self.client.get("/api/bills/export")
        self.assertEqual(export.status_code, 200)
        self.assertIn(created["bill_number"], export.text)


class AccountApiTest(ApiTestCase):
    def test_register_login_and_recharge(self):
        with patch("smartbilling.core.passwords.get_settings", return_value=Settings(PASSWORD_PBKDF2_ROUNDS=1000)):
            registered = self.client.post(
                "/api/auth/register", json={"email": "new@shop.com", "password": "pw", "shop_name": "New"}
            )
        self.assertEqual(registered.status_code, 200)
        self.assertEqual(self.client.post("/api/auth/register", json={"email": "new@shop.com"}).status_code, 409)

        login = self.client.post("/api/auth/login", json={"email": "new@shop.com", "password": "pw"})
        self.assertEqual(login.status_code, 200)
        user = login.json()["user"]
        self.assertTrue(user["subscriptionActive"])
        self.assertNotIn("password_hash", user)
        self.assertEqual(
            self.client.post("/api/auth/login", json={"email": "new@shop.com", "password": "no"}).status_code,
            401,
        )

        recharge = self.client.post(
            "/api/subscription/recharge",
            params={"user_id": user["id"]},
            json={"plan_months": 1, "amount": 299},
        )
        self.assertEqual(recharge.status_code, 200)
        self.assertTrue(recharge.json()["ok"])
        bad = self.client.post("/api/subscription/recharge", json={"plan_months": 0})
        self.assertEqual(bad.status_code, 400)

    def test_customer_details_upsert(self):
        self.assertEqual(self.client.get("/api/customer-details").json()["name"], "")
        saved = self.client.post("/api/customer-details", json={"name": "Asha", "gstin": "29ABCDE1234F1Z5"})
        self.assertTrue(saved.json()["success"])
        self.client.post("/api/customer-details", json={"name": "Asha K", "address": None})
        details = self.client.get("/api/customer-details").json()
        self.assertEqual(details["name"], "Asha K")
        self.assertEqual(details["gstin"], "")


class TokenOwnerApiTest(ApiTestCase):
    def setUp(self):
        super().setUp()
        app.dependency_overrides[get_token_decoder] = lambda: VerifiedTokenDecoder(SECRET)

    def test_verified_token_maps_to_user(self):
        token = jwt.encode({"sub": "firebase-1", "email": "demo@shop.com"}, SECRET, algorithm="HS256")
        with self.Session() as db:
            add_item(db, code="B", quantity=20, cost_price=50, expiry_date=utc_today())

        response = self.client.get(
            "/api/dashboard/summary",
            headers={"Authorization": f"Bearer {token}", "X-User-Id": "2"},
        )

        self.assertEqual(response.json()["profitAmount"], -1000.0)

    def test_bad_token_is_ignored_unless_required(self):
        forged = jwt.encode({"sub": "x"}, "some-other-secret-of-sufficient-length", algorithm="HS256")
        headers = {"Authorization": f"Bearer {forged}"}

        self.assertEqual(self.client.get("/api/dashboard/summary", headers=headers).status_code, 200)

        app.dependency_overrides[get_settings] = lambda: Settings(AUTH_REQUIRED=True)
        self.assertEqual(self.client.get("/api/dashboard/summary", headers=headers).status_code, 401)
        self.assertEqual(self.client.get("/api/dashboard/summary").status_code, 401)


if __name__ == "__main__":
    unittest.main()
