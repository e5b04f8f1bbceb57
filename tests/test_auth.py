import unittest
from unittest import mock

from models.User import User
from services import auth_service
from tests.helpers import ApiTestCase, auth_headers
from utils.errors import AuthError
from utils.security import create_access_token, decode_access_token, verify_password


class RegisterLoginTests(ApiTestCase):
    def test_password_is_hashed_and_login_succeeds(self):
        account = self.register(email="Ana@Example.com", password="secret123")
        self.assertEqual(account["user"]["email"], "ana@example.com")
        self.assertNotIn("password_hash", account["user"])

        stored = self.db().query(User).filter(User.email == "ana@example.com").one()
        self.assertNotEqual(stored.password_hash, "secret123")
        self.assertTrue(verify_password("secret123", stored.password_hash))

        resp = self.client.post("/auth/login", json={"email": "ana@example.com", "password": "secret123"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["id"], account["user"]["id"])
        self.assertTrue(resp.json()["token"])

    def test_new_user_gets_default_settings(self):
        account = self.register()
        settings = account["user"]["settings"]
        self.assertTrue(settings["notifications"]["chat_messages"])
        self.assertTrue(settings["privacy"]["public_profile"])
        self.assertEqual(account["user"]["role"], "user")

    def test_duplicate_email_is_rejected(self):
        self.register(email="ana@example.com")
        resp = self.client.post(
            "/auth/register",
            json={"email": "ANA@example.com", "password": "another1", "name": "Other"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "UserError")
        self.assertEqual(resp.json()["fields"], ["email"])
        self.assertEqual(self.db().query(User).count(), 1)

    def test_register_validation_lists_fields(self):
        resp = self.client.post("/auth/register", json={"email": "not-an-email", "password": "123", "name": "Ana"})
        self.assertEqual(resp.status_code, 400)
        body = resp.json()
        self.assertEqual(body["error"], "ValidationError")
        self.assertIn("email", body["fields"])
        self.assertIn("password", body["fields"])

    def test_login_does_not_reveal_which_part_was_wrong(self):
        self.register(email="ana@example.com", password="secret123")
        wrong_password = self.client.post("/auth/login", json={"email": "ana@example.com", "password": "nope1234"})
        unknown_email = self.client.post("/auth/login", json={"email": "bob@example.com", "password": "secret123"})
        self.assertEqual(wrong_password.status_code, 401)
        self.assertEqual(unknown_email.status_code, 401)
        self.assertEqual(wrong_password.json()["detail"], unknown_email.json()["detail"])


class TokenTests(ApiTestCase):
    def test_me_requires_a_valid_token(self):
        account = self.register()
        resp = self.client.get("/auth/me", headers=account["headers"])
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["email"], "ana@example.com")

        self.assertEqual(self.client.get("/auth/me").status_code, 401)
        self.assertEqual(self.client.get("/auth/me", headers=auth_headers("garbage")).status_code, 401)

    def test_profile_alias(self):
        account = self.register()
        resp = self.client.get("/auth/profile", headers=account["headers"])
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["id"], account["user"]["id"])

    def test_expired_token_is_rejected(self):
        account = self.register()
        expired = create_access_token(account["user"]["id"], expires_minutes=-1)
        resp = self.client.get("/auth/me", headers=auth_headers(expired))
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["detail"], "Token expired")

    def test_token_for_deleted_user_is_rejected(self):
        token = create_access_token(9999)
        resp = self.client.get("/auth/me", headers=auth_headers(token))
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["detail"], "User not found")

    def test_token_round_trip(self):
        self.assertEqual(decode_access_token(create_access_token(42)), 42)
        with self.assertRaises(AuthError):
            decode_access_token("not.a.token")


class OAuthTests(ApiTestCase):
    def _google(self, profile):
        return mock.patch.dict(auth_service.PROFILE_FETCHERS, {"google": lambda token: profile})

    def test_google_login_creates_passwordless_user_once(self):
        profile = {"id": "g-1", "email": "gina@example.com", "name": "Gina", "avatar": None}
        with self._google(profile):
            first = self.client.post("/auth/google", json={"accessToken": "abc"})
            second = self.client.post("/auth/google", json={"access_token": "abc"})
        self.assertEqual(first.status_code, 200, first.text)
        self.assertEqual(first.json()["user"]["id"], second.json()["user"]["id"])

        stored = self.db().query(User).one()
        self.assertIsNone(stored.password_hash)
        self.assertEqual(stored.google_id, "g-1")

        me = self.client.get("/auth/me", headers=auth_headers(first.json()["token"]))
        self.assertEqual(me.status_code, 200)

    def test_google_login_links_existing_email(self):
        account = self.register(email="ana@example.com")
        profile = {"id": "g-2", "email": "ana@example.com", "name": "Ana G", "avatar": "https://img.example.com/a.png"}
        with self._google(profile):
            resp = self.client.post("/auth/google", json={"accessToken": "abc"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["id"], account["user"]["id"])
        self.assertEqual(resp.json()["user"]["avatar"], "https://img.example.com/a.png")

    def test_facebook_login_without_email_fails(self):
        profile = {"id": "fb-1", "email": None, "name": "Fay"}
        with mock.patch.dict(auth_service.PROFILE_FETCHERS, {"facebook": lambda token: profile}):
            resp = self.client.post("/auth/facebook", json={"accessToken": "abc"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.db().query(User).count(), 0)

    def test_user_needs_password_or_oauth_identity(self):
        db = self.db()
        db.add(User(email="nobody@example.com", name="Nobody"))
        with self.assertRaises(ValueError):
            db.commit()


class AdminTests(ApiTestCase):
    def test_admin_route_requires_admin_role(self):
        account = self.register()
        self.assertEqual(self.client.get("/admin/users", headers=account["headers"]).status_code, 403)

        db = self.db()
        db.get(User, account["user"]["id"]).role = "admin"
        db.commit()
        resp = self.client.get("/admin/users", headers=account["headers"])
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.json()["users"]), 1)


if __name__ == "__main__":
    unittest.main()
