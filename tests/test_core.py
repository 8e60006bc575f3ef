import unittest
from datetime import date, datetime, timezone
from decimal import Decimal

import jwt

from smartbilling.config import Settings, split_csv_setting
from smartbilling.core.dates import add_months, date_window, day_bounds, normalize_date
from smartbilling.core.money import currency_float, round_currency, to_decimal
from smartbilling.core.passwords import hash_password, verify_password
from smartbilling.core.security import (
    TokenError,
    UnverifiedTokenDecoder,
    VerifiedTokenDecoder,
    build_token_decoder,
    get_bearer_token,
)

SECRET = "test-secret-with-enough-length-for-hs256"


class MoneyTest(unittest.TestCase):
    def test_round_half_up(self):
        self.assertEqual(round_currency("19.995"), Decimal("20.00"))
        self.assertEqual(round_currency(Decimal("59.985")), Decimal("59.99"))
        self.assertEqual(round_currency(-800), Decimal("-800.00"))

    def test_float_goes_through_str(self):
        self.assertEqual(to_decimal(19.995), Decimal("19.995"))
        self.assertEqual(to_decimal(None), Decimal("0"))
        self.assertEqual(currency_float("2.675"), 2.68)


class DatesTest(unittest.TestCase):
    def test_normalize_date(self):
        self.assertEqual(normalize_date("2026-02-03T10:00:00Z"), date(2026, 2, 3))
        self.assertEqual(normalize_date(datetime(2026, 2, 3, 23, 59)), date(2026, 2, 3))
        self.assertIsNone(normalize_date("not a date"))
        self.assertIsNone(normalize_date(""))

    def test_add_months_clamps_day(self):
        self.assertEqual(add_months(date(2026, 1, 31), 1), date(2026, 2, 28))
        self.assertEqual(add_months(date(2024, 1, 31), 1), date(2024, 2, 29))
        self.assertEqual(add_months(date(2026, 11, 15), 3), date(2027, 2, 15))
        self.assertEqual(add_months(date(2026, 3, 31), -1), date(2026, 2, 28))

    def test_day_bounds_and_window(self):
        start, end = day_bounds(date(2026, 2, 3))
        self.assertEqual(start, datetime(2026, 2, 3, tzinfo=timezone.utc))
        self.assertEqual(end, datetime(2026, 2, 4, tzinfo=timezone.utc))
        self.assertEqual(date_window(None, "2026-02-03"), (None, end))


class PasswordTest(unittest.TestCase):
    def test_hash_and_verify(self):
        encoded = hash_password("demo123", rounds=1000)
        self.assertTrue(encoded.startswith("pbkdf2_sha256$1000$"))
        self.assertTrue(verify_password("demo123", encoded))
        self.assertFalse(verify_password("demo124", encoded))
        self.assertFalse(verify_password("demo123", "plaintext"))
        self.assertFalse(verify_password("demo123", None))


class TokenDecoderTest(unittest.TestCase):
    def test_verified_decoder_checks_signature(self):
        decoder = VerifiedTokenDecoder(SECRET)
        token = jwt.encode({"sub": "u-1", "email": "a@shop.com", "name": "A"}, SECRET, algorithm="HS256")

        identity = decoder.identify(token)

        self.assertEqual(identity.uid, "u-1")
        self.assertEqual(identity.email, "a@shop.com")
        self.assertTrue(identity.verified)

        forged = jwt.encode({"sub": "u-1"}, "another-secret-of-sufficient-length", algorithm="HS256")
        with self.assertRaises(TokenError):
            decoder.identify(forged)

    def test_unverified_decoder_flags_identity(self):
        token = jwt.encode({"user_id": "u-9", "displayName": "Shop"}, "any-key-will-do-for-this-unverified-token", algorithm="HS256")

        with self.assertLogs("smartbilling.core.security", level="WARNING"):
            identity = UnverifiedTokenDecoder().identify(token)

        self.assertEqual(identity.uid, "u-9")
        self.assertEqual(identity.name, "Shop")
        self.assertFalse(identity.verified)
        with self.assertRaises(TokenError):
            UnverifiedTokenDecoder().identify("not-a-jwt")

    def test_build_from_settings(self):
        self.assertIsNone(build_token_decoder(Settings(AUTH_TOKEN_MODE="disabled")))
        self.assertIsInstance(
            build_token_decoder(Settings(AUTH_TOKEN_MODE="verified", JWT_SECRET=SECRET)),
            VerifiedTokenDecoder,
        )
        self.assertIsInstance(build_token_decoder(Settings(AUTH_TOKEN_MODE="unverified")), UnverifiedTokenDecoder)
        with self.assertRaises(ValueError):
            build_token_decoder(Settings(AUTH_TOKEN_MODE="verified", JWT_SECRET=None))
        with self.assertRaises(ValueError):
            build_token_decoder(Settings(AUTH_TOKEN_MODE="firebase"))

    def test_bearer_token(self):
        self.assertEqual(get_bearer_token("Bearer abc"), "abc")
        self.assertIsNone(get_bearer_token("Basic abc"))
        self.assertIsNone(get_bearer_token(None))

    def test_split_csv_setting(self):
        self.assertEqual(split_csv_setting("http://a, http://b,"), ["http://a", "http://b"])
        self.assertEqual(split_csv_setting(None), [])


if __name__ == "__main__":
    unittest.main()
