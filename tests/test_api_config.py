import unittest
from unittest.mock import MagicMock
import sys
import os

# Add root directory to path so we can import modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient

from api.main import app
from api.routers.auth import get_current_user, get_store_for_user
from errors import StoreError


class ApiConfigTestCase(unittest.TestCase):

    def setUp(self):
        self.store = MagicMock()
        app.dependency_overrides[get_current_user] = lambda: {
            "id": "admin-1", "email": None, "role": "authenticated", "token": "jwt",
        }
        app.dependency_overrides[get_store_for_user] = lambda: self.store
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()


class TestGetApiConfiguration(ApiConfigTestCase):

    def test_riot_config_hides_key(self):
        self.store.get_api_configuration.return_value = {
            "api_type": "RIOT", "config_data": {"apiKey": "RGAPI-secret", "platformId": "euw1"},
        }
        resp = self.client.get("/api/api-config", params={"api_type": "RIOT"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"api_type": "RIOT", "platformId": "euw1", "isApiKeySet": True})
        self.assertNotIn("RGAPI-secret", resp.text)

    def test_grid_config_via_post_body(self):
        self.store.get_api_configuration.return_value = {"api_type": "GRID", "config_data": {"apiKey": ""}}
        resp = self.client.post("/api/api-config", json={"api_type": "GRID"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"api_type": "GRID", "isApiKeySet": False})
        self.store.get_api_configuration.assert_called_once_with("GRID")

    def test_no_configuration_row(self):
        self.store.get_api_configuration.return_value = None
        resp = self.client.get("/api/api-config", params={"api_type": "RIOT"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {
            "message": "No configuration found for RIOT.", "isApiKeySet": False, "platformId": None,
        })

    def test_missing_api_type(self):
        resp = self.client.get("/api/api-config")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {
            "error": "Missing required parameter: api_type (in query for GET, in body for POST).",
        })

    def test_bad_json_on_post(self):
        resp = self.client.post("/api/api-config", content=b"api_type=RIOT")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "Invalid JSON payload for POST request."})

    def test_other_methods(self):
        resp = self.client.delete("/api/api-config")
        self.assertEqual(resp.status_code, 405)
        self.assertEqual(resp.json(), {"error": "Method not allowed. Only GET and POST are accepted."})

    def test_policy_rejection_is_403(self):
        self.store.get_api_configuration.side_effect = StoreError("permission denied for table api_configurations")
        resp = self.client.get("/api/api-config", params={"api_type": "RIOT"})
        self.assertEqual(resp.status_code, 403)
        self.assertIn("admin/coach", resp.json()["error"])
        self.assertEqual(resp.json()["details"], "permission denied for table api_configurations")

    def test_other_store_error_is_500(self):
        self.store.get_api_configuration.side_effect = StoreError("connection refused")
        resp = self.client.get("/api/api-config", params={"api_type": "RIOT"})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "Failed to fetch API configuration.", "details": "connection refused"})


class TestSetApiConfiguration(ApiConfigTestCase):

    def test_save_riot(self):
        row = {"api_type": "RIOT", "config_data": {"apiKey": "k", "platformId": "na1"}}
        self.store.upsert_api_configuration.return_value = row
        resp = self.client.post("/api/api-config/save", json={"api_type": "RIOT", "apiKey": "k", "platformId": "na1"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {
            "success": True, "message": "API configuration for RIOT saved successfully.", "data": row,
        })
        self.store.upsert_api_configuration.assert_called_once_with("RIOT", {"apiKey": "k", "platformId": "na1"})

    def test_save_grid_stores_only_key(self):
        self.store.upsert_api_configuration.return_value = {}
        resp = self.client.post("/api/api-config/save", json={"api_type": "GRID", "apiKey": "g", "platformId": "x"})
        self.assertEqual(resp.status_code, 200)
        self.store.upsert_api_configuration.assert_called_once_with("GRID", {"apiKey": "g"})

    def test_riot_requires_key_and_platform(self):
        resp = self.client.post("/api/api-config/save", json={"api_type": "RIOT", "apiKey": "k"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "Missing required parameters: api_type, and apiKey/platformId for RIOT."})
        self.store.upsert_api_configuration.assert_not_called()

    def test_unknown_api_type(self):
        resp = self.client.post("/api/api-config/save", json={"api_type": "STEAM", "apiKey": "k"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "Invalid api_type."})

    def test_invalid_json(self):
        resp = self.client.post("/api/api-config/save", content=b"{")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "Invalid request body. Ensure you are sending valid JSON."})

    def test_rls_violation_is_403(self):
        self.store.upsert_api_configuration.side_effect = StoreError(
            'new row violates row-level security policy for table "api_configurations"'
        )
        resp = self.client.post("/api/api-config/save", json={"api_type": "GRID", "apiKey": "g"})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(
            resp.json()["error"],
            "Permission denied. You might not have the required role (admin/coach) to perform this action.",
        )

    def test_requires_authentication(self):
        app.dependency_overrides.clear()
        resp = self.client.post("/api/api-config/save", json={"api_type": "GRID", "apiKey": "g"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": "Not authenticated"})


if __name__ == '__main__':
    unittest.main()
