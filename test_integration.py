import pytest
from fastapi.testclient import TestClient
from queryhub.config import Settings
from queryhub.main import create_app
from queryhub.services.gateway import QueryGateway
from queryhub.services.upstream import NO_DATA_MESSAGE, UpstreamResult
from tests.fakes import FakeUpstream


class TestIntegration:
    """Comprehensive integration test for the lookup API"""

    @pytest.fixture(autouse=True)
    def setup_client(self, tmp_path):
        """Setup test environment"""
        self.settings = Settings(
            data_dir=str(tmp_path / "database"),
            admin_password="test-password",
            mask_rejection_latency=False,
        )
        self.upstream = FakeUpstream()
        self.gateway = QueryGateway(self.settings, upstream=self.upstream)
        self.app = create_app(self.settings, self.gateway)

        with TestClient(self.app) as client:
            self.client = client
            yield

    def login(self):
        response = self.client.post("/v1/admin/login", json={"password": "test-password"})
        assert response.status_code == 200
        return response

    def test_root_and_health(self):
        assert self.client.get("/").json()["endpoints"]["query"] == "/v1/lookup/query"

        response = self.client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_query_success_then_duplicate(self):
        first = self.client.get("/v1/lookup/query", params={"type": "identity", "q": "11122233344"})
        assert first.status_code == 200
        body = first.json()
        assert body["success"] is True
        assert body["saved"] is True
        assert body["data"]["basicData"]["cpf"] == "11122233344"

        second = self.client.get("/v1/lookup/query", params={"type": "identity", "q": "111.222.333-44"})
        assert second.json()["success"] is True
        assert second.json()["saved"] is False

        self.login()
        listing = self.client.get("/v1/admin/database", params={"type": "identity"}).json()
        assert listing["total"] == 1
        assert listing["data"][0]["parameter"] == "111***44"
        assert "originalParameter" not in listing["data"][0]
        assert "queryId" in listing["data"][0]

    def test_legacy_query_parameters(self):
        response = self.client.get("/v1/lookup/query", params={"tipo": "cpf", "cpf": "11122233344"})

        assert response.status_code == 200
        assert response.json()["type"] == "identity"

    def test_missing_type_and_parameter(self):
        assert self.client.get("/v1/lookup/query", params={"q": "x"}).status_code == 400
        assert self.client.get("/v1/lookup/query", params={"type": "email", "q": "x"}).status_code == 400
        assert self.client.get("/v1/lookup/query", params={"type": "identity"}).status_code == 400

    def test_blocked_looks_like_no_data(self):
        self.upstream.result = UpstreamResult(success=False, error=NO_DATA_MESSAGE)
        no_data = self.client.get("/v1/lookup/query", params={"type": "identity", "q": "55566677788"})

        self.login()
        added = self.client.post(
            "/v1/admin/protected", json={"type": "identity", "value": "12345678901", "reason": "test"}
        )
        assert added.status_code == 200
        assert added.json()["user"]["value"] == "12345678901"

        blocked = self.client.get("/v1/lookup/query", params={"type": "identity", "q": "123.456.789-01"})

        assert blocked.status_code == no_data.status_code == 200
        assert blocked.json() == no_data.json()
        assert len(self.upstream.calls) == 1

        search = self.client.get("/v1/admin/database/search", params={"type": "identity", "term": "123"})
        assert search.json()["totalResults"] == 0

    def test_maintenance_toggle(self):
        self.login()
        toggled = self.client.post("/v1/admin/endpoints/phoneNumber/maintenance")
        assert toggled.json()["status"]["maintenance"] is True

        response = self.client.get("/v1/lookup/query", params={"type": "phoneNumber", "q": "11999998888"})
        assert response.status_code == 503
        assert response.json()["detail"]["error"]["code"] == "MAINTENANCE"

        self.client.post("/v1/admin/endpoints/phoneNumber/maintenance", json={"maintenance": False})
        response = self.client.get("/v1/lookup/query", params={"type": "phoneNumber", "q": "11999998888"})
        assert response.status_code == 200

    def test_admin_requires_session(self):
        assert self.client.get("/v1/admin/live").status_code == 401
        assert self.client.post("/v1/admin/login", json={"password": "wrong"}).status_code == 401

        self.client.cookies.set("admin_session", "authenticated")
        assert self.client.get("/v1/admin/live").status_code == 401

        self.login()
        assert self.client.get("/v1/admin/live").status_code == 200

        self.client.post("/v1/admin/logout")
        self.client.cookies.clear()
        assert self.client.get("/v1/admin/live").status_code == 401

    def test_live_snapshot_and_history(self):
        self.client.get("/v1/lookup/query", params={"type": "fullName", "q": "Maria da Silva"})
        self.login()

        live = self.client.get("/v1/admin/live").json()
        assert live["stats"]["totalQueries"] == 1
        assert live["stats"]["lastQueries"][0]["type"] == "fullName"
        assert live["endpointStatus"]["identity"] == {"active": True, "maintenance": False}

        history = self.client.get("/v1/admin/history", params={"limit": 5}).json()
        assert len(history) == 1

        public = self.client.get("/v1/lookup/stats").json()
        assert public["fullNameQueries"] == 1

    def test_get_and_delete_query_by_id(self):
        self.client.get("/v1/lookup/query", params={"type": "fullName", "q": "Maria"})
        self.login()
        query_id = self.client.get("/v1/admin/database", params={"type": "fullName"}).json()["data"][0]["queryId"]

        detail = self.client.get(f"/v1/admin/database/{query_id}")
        assert detail.status_code == 200
        assert detail.json()["data"]["parameter"] == "Maria"

        assert self.client.delete(f"/v1/admin/database/{query_id}").status_code == 200
        assert self.client.get(f"/v1/admin/database/{query_id}").status_code == 404
        assert self.client.delete(f"/v1/admin/database/{query_id}").status_code == 404

    def test_clear_all_keeps_protection_list(self):
        self.login()
        self.client.post("/v1/admin/protected", json={"type": "fullName", "value": "Joao Souza"})
        for query_type, value in [("identity", "11122233344"), ("fullName", "Maria"), ("phoneNumber", "11999998888")]:
            self.client.get("/v1/lookup/query", params={"type": query_type, "q": value})

        response = self.client.delete("/v1/admin/database", params={"type": "all"})
        assert response.status_code == 200

        stats = self.client.get("/v1/admin/database/stats").json()["stats"]
        assert stats["total"] == 0
        assert all(stats[t]["indexedQueries"] == 0 for t in ("identity", "fullName", "phoneNumber"))

        protected = self.client.get("/v1/admin/protected").json()
        assert protected["total"] == 1
        assert self.client.get("/v1/admin/protected/stats").json()["stats"]["fullName"] == 1

    def test_protection_crud(self):
        self.login()
        created = self.client.post(
            "/v1/admin/protected", json={"type": "phoneNumber", "value": "(11) 99999-8888", "reason": "vip"}
        ).json()["user"]

        duplicate = self.client.post("/v1/admin/protected", json={"type": "phoneNumber", "value": "11999998888"})
        assert duplicate.status_code == 409

        updated = self.client.put(f"/v1/admin/protected/{created['id']}", json={"reason": "court order"})
        assert updated.json()["user"]["reason"] == "court order"
        assert updated.json()["user"]["updatedAt"] is not None

        found = self.client.get("/v1/admin/protected", params={"search": "court"}).json()
        assert [user["id"] for user in found["users"]] == [created["id"]]

        assert self.client.delete(f"/v1/admin/protected/{created['id']}").status_code == 200
        assert self.client.delete(f"/v1/admin/protected/{created['id']}").status_code == 404
        assert self.client.put("/v1/admin/protected/missing", json={"reason": "x"}).status_code == 404

    def test_invalid_protection_payload(self):
        self.login()

        response = self.client.post("/v1/admin/protected", json={"type": "identity"})

        assert response.status_code == 422

    def test_admin_views_never_expose_raw_parameter(self):
        self.upstream.result = UpstreamResult(success=True, data={"basicData": {"name": "MARIA DA SILVA"}})
        self.client.get("/v1/lookup/query", params={"type": "identity", "q": "11122233344"})
        self.client.get("/v1/lookup/query", params={"tipo": "cpf", "cpf": "55566677788"})
        self.login()

        listing = self.client.get("/v1/admin/database", params={"type": "identity"})
        live = self.client.get("/v1/admin/live")
        history = self.client.get("/v1/admin/history")

        for response in (listing, live, history):
            assert response.status_code == 200
            assert "11122233344" not in response.text
            assert "55566677788" not in response.text

        record = listing.json()["data"][0]
        assert record["requestInfo"]["path"] == "/v1/lookup/query"
        assert live.json()["stats"]["lastQueries"][0]["endpoint"] == "/v1/lookup/query?type=identity"
