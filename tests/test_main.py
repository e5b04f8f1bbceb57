import unittest
from unittest import mock

from fastapi.testclient import TestClient

from main import app
from services import plan_service
from tests.helpers import ApiTestCase


class AppTests(ApiTestCase):
    def test_root_and_health(self):
        self.assertEqual(self.client.get("/").json(), {"message": "GoPlan API is running"})
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_unexpected_error_is_generic_500(self):
        client = TestClient(app, raise_server_exceptions=False)
        with mock.patch.object(plan_service, "get_plans", side_effect=RuntimeError("db exploded")):
            resp = client.get("/plans")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["error"], "ServerError")
        self.assertEqual(resp.json()["detail"], "Internal Server Error")
        self.assertNotIn("debug", resp.json())


if __name__ == "__main__":
    unittest.main()
