"""HTTP-level tests for /register, /login, /refresh, /me, /users and /health."""

import unittest

from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.tokens import issue_access_token
from app.main import create_app
from app.services.kv_store import InMemoryKeyValueStore

TEST_SETTINGS = Settings(
    DATABASE_URL="sqlite://",
    JWT_SECRET="access-secret-for-api-tests",
    JWT_REFRESH_SECRET="refresh-secret-for-api-tests",
    BOOTSTRAP_ADMIN_PASSWORD="bootstrap-pass",
)


def _client(store=None, *, use_store: bool = True, **kwargs) -> TestClient:
    store = store if store is not None else InMemoryKeyValueStore()
    app = create_app(TEST_SETTINGS, store_factory=lambda: store if use_store else None)
    return TestClient(app, **kwargs)


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryKeyValueStore()
        self.client = _client(self.store)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def register(self, username: str = "alice", password: str = "secret1", **extra):
        return self.client.post("/api/register", json={"username": username, "password": password, **extra})

    def login(self, username: str = "alice", password: str = "secret1"):
        return self.client.post("/api/login", json={"username": username, "password": password})


class TestRegisterEndpoint(ApiTestCase):
    def test_created(self) -> None:
        response = self.register()
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["user"], {"username": "alice", "role": "editor"})
        self.assertIn("message", body)
        self.assertNotIn("hashedPassword", response.text)

    def test_conflict_any_case(self) -> None:
        self.register()
        response = self.register(username="Alice")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"], "Conflict")

    def test_admin_downgraded(self) -> None:
        response = self.register(username="mallory", role="admin")
        self.assertEqual(response.json()["user"]["role"], "editor")

    def test_unknown_role_becomes_editor(self) -> None:
        response = self.client.post(
            "/api/register", json={"username": "alice", "password": "secret1", "role": "superuser"}
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["user"]["role"], "editor")

    def test_validation_errors_are_400(self) -> None:
        for body in (
            {"username": "ab", "password": "secret1"},
            {"username": "alice", "password": "12345"},
            {"username": "alice"},
        ):
            with self.subTest(body=body):
                response = self.client.post("/api/register", json=body)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()["error"], "ValidationError")

    def test_store_not_configured(self) -> None:
        with _client(use_store=False) as client:
            response = client.post("/api/register", json={"username": "alice", "password": "secret1"})
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["error"], "ServiceUnavailable")


class TestLoginEndpoint(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.register()

    def test_success(self) -> None:
        response = self.login()
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["access_token"])
        self.assertTrue(body["refresh_token"])
        self.assertEqual(body["user"], {"username": "alice", "role": "editor"})
        self.assertEqual(body["expires_in"], 3600)
        self.assertEqual(body["token_type"], "Bearer")

    def test_wrong_password(self) -> None:
        response = self.login(password="wrongpass")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "AuthenticationFailed")

    def test_unknown_user_same_response(self) -> None:
        wrong = self.login(password="wrongpass")
        unknown = self.login(username="nobody", password="wrongpass")
        self.assertEqual(unknown.status_code, 401)
        self.assertEqual(wrong.json(), unknown.json())

    def test_missing_password(self) -> None:
        response = self.client.post("/api/login", json={"username": "alice"})
        self.assertEqual(response.status_code, 400)

    def test_bootstrap_admin_seeded_at_startup(self) -> None:
        response = self.login(username="admin", password="bootstrap-pass")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["role"], "admin")

    def test_security_headers(self) -> None:
        response = self.login()
        self.assertEqual(response.headers["Cache-Control"], "no-cache, no-store, must-revalidate")
        self.assertEqual(response.headers["X-Content-Type-Options"], "nosniff")


class TestRefreshEndpoint(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.register()
        self.tokens = self.login().json()

    def test_rotation(self) -> None:
        response = self.client.post("/api/refresh", json={"refresh_token": self.tokens["refresh_token"]})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertNotEqual(body["access_token"], self.tokens["access_token"])
        self.assertEqual(body["expires_in"], 3600)
        self.assertEqual(body["token_type"], "Bearer")
        self.assertNotIn("user", body)
        me = self.client.get("/api/me", headers=_bearer(body["access_token"]))
        self.assertEqual(me.status_code, 200)

    def test_access_token_rejected(self) -> None:
        response = self.client.post("/api/refresh", json={"refresh_token": self.tokens["access_token"]})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "InvalidRefreshToken")

    def test_missing_token(self) -> None:
        response = self.client.post("/api/refresh", json={})
        self.assertEqual(response.status_code, 400)


class TestMeEndpoint(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.register()
        self.tokens = self.login().json()

    def test_returns_claims(self) -> None:
        response = self.client.get("/api/me", headers=_bearer(self.tokens["access_token"]))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["username"], "alice")
        self.assertEqual(body["role"], "editor")
        self.assertEqual(body["exp"] - body["iat"], 3600)
        self.assertEqual(response.headers["X-User-Role"], "editor")

    def test_refresh_token_rejected(self) -> None:
        response = self.client.get("/api/me", headers=_bearer(self.tokens["refresh_token"]))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "InvalidToken")
        self.assertEqual(response.headers["WWW-Authenticate"], "Bearer")

    def test_missing_header(self) -> None:
        self.assertEqual(self.client.get("/api/me").status_code, 401)

    def test_token_missing_claims(self) -> None:
        token = issue_access_token({"role": "editor"}, TEST_SETTINGS.JWT_SECRET.get_secret_value())
        self.assertEqual(self.client.get("/api/me", headers=_bearer(token)).status_code, 401)


class TestUsersEndpoint(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.register()
        self.admin_token = self.login(username="admin", password="bootstrap-pass").json()["access_token"]
        self.editor_token = self.login().json()["access_token"]

    def test_admin_can_read_user(self) -> None:
        response = self.client.get("/api/users/Alice", headers=_bearer(self.admin_token))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["username"], "alice")
        self.assertEqual(body["role"], "editor")
        self.assertIsNotNone(body["lastLogin"])
        self.assertNotIn("hashedPassword", body)

    def test_editor_forbidden(self) -> None:
        response = self.client.get("/api/users/alice", headers=_bearer(self.editor_token))
        self.assertEqual(response.status_code, 403)

    def test_unknown_user(self) -> None:
        response = self.client.get("/api/users/nobody", headers=_bearer(self.admin_token))
        self.assertEqual(response.status_code, 404)

    def test_unauthenticated(self) -> None:
        self.assertEqual(self.client.get("/api/users/alice").status_code, 401)


class TestHealthAndErrors(unittest.TestCase):
    def test_health(self) -> None:
        with _client() as client:
            response = client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["store"], "connected")

    def test_health_without_store(self) -> None:
        with _client(use_store=False) as client:
            self.assertEqual(client.get("/api/health").json()["store"], "not_configured")

    def test_unexpected_error_is_redacted(self) -> None:
        store = InMemoryKeyValueStore()

        def boom(key: str, value: str) -> bool:
            raise RuntimeError("secret internals")

        with _client(store, raise_server_exceptions=False) as client:
            store.put_if_absent = boom
            response = client.post("/api/register", json={"username": "alice", "password": "secret1"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "InternalError")
        self.assertNotIn("secret internals", response.text)


if __name__ == "__main__":
    unittest.main()
