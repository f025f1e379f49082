"""Test key validation API endpoints.

Covers:
- POST {base}/validate
- GET  {base}/validate
- GET  {base}/health

Status codes tested:
- 200 OK (valid, not_found, already_used)
- 400 Bad Request (missing or malformed token)
- 503 Service Unavailable (store connection failure)
"""
import pytest
from httpx import AsyncClient

from keygate.common.responses import to_epoch_millis
from keygate.models.token import TokenState
from keygate.repository.exceptions import DatabaseConnectionException
from keygate.repository.token_repository import TokenRepository

from .conftest import BASE


@pytest.mark.integration
class TestValidatePost:
    """Test POST {base}/validate endpoint."""

    async def test_valid_then_already_used(self, client: AsyncClient, issue_token, fetch_token):
        value = await issue_token()

        response = await client.post(f"{BASE}/validate", json={"token": value, "machine_id": "deviceA"})
        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["valid"] is True
        assert isinstance(data["consumed_at"], int)
        assert "reason" not in data

        response = await client.post(f"{BASE}/validate", json={"token": value, "machine_id": "deviceB"})
        assert response.status_code == 200
        assert response.json() == {"ok": True, "valid": False, "reason": "already_used"}

        token = await fetch_token(value)
        assert token.consumed_by == "deviceA"
        assert to_epoch_millis(token.consumed_at) == data["consumed_at"]

    async def test_garbage_token_not_found(self, client: AsyncClient, count_tokens):
        response = await client.post(f"{BASE}/validate", json={"token": "garbage-token"})
        assert response.status_code == 200
        assert response.json() == {"ok": True, "valid": False, "reason": "not_found"}
        assert await count_tokens() == 0

    async def test_machine_id_is_optional(self, client: AsyncClient, issue_token, fetch_token):
        value = await issue_token()

        response = await client.post(f"{BASE}/validate", json={"token": value})
        assert response.status_code == 200
        assert response.json()["valid"] is True

        token = await fetch_token(value)
        assert token.state == TokenState.USED.value
        assert token.consumed_by is None

    async def test_missing_token_400(self, client: AsyncClient):
        response = await client.post(f"{BASE}/validate", json={"machine_id": "deviceA"})
        assert response.status_code == 400
        assert response.json() == {"ok": False, "error": "invalid_input", "message": "no token"}

    async def test_empty_body_400(self, client: AsyncClient):
        response = await client.post(f"{BASE}/validate")
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"

    async def test_malformed_json_400(self, client: AsyncClient):
        response = await client.post(
            f"{BASE}/validate",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["ok"] is False
        assert response.json()["error"] == "invalid_input"

    async def test_non_string_token_400(self, client: AsyncClient):
        response = await client.post(f"{BASE}/validate", json={"token": 12345})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"


@pytest.mark.integration
class TestValidateQuery:
    """Test GET {base}/validate endpoint."""

    async def test_valid_then_already_used(self, client: AsyncClient, issue_token):
        value = await issue_token()

        response = await client.get(f"{BASE}/validate", params={"key": value, "mid": "deviceA"})
        assert response.status_code == 200
        assert response.json()["valid"] is True

        response = await client.get(f"{BASE}/validate", params={"key": value, "mid": "deviceB"})
        assert response.json() == {"ok": True, "valid": False, "reason": "already_used"}

    async def test_alias_parameters(self, client: AsyncClient, issue_token, fetch_token):
        value = await issue_token()

        response = await client.get(
            f"{BASE}/validate", params={"token": value, "machine_id": "deviceC"}
        )
        assert response.status_code == 200
        assert response.json()["valid"] is True
        assert (await fetch_token(value)).consumed_by == "deviceC"

    async def test_garbage_token_not_found(self, client: AsyncClient):
        response = await client.get(f"{BASE}/validate", params={"key": "garbage-token"})
        assert response.status_code == 200
        assert response.json() == {"ok": True, "valid": False, "reason": "not_found"}

    async def test_missing_key_400(self, client: AsyncClient):
        response = await client.get(f"{BASE}/validate", params={"mid": "deviceA"})
        assert response.status_code == 400
        assert response.json() == {"ok": False, "error": "invalid_input", "message": "no token"}

    async def test_store_unavailable_503(self, client: AsyncClient, issue_token, monkeypatch):
        value = await issue_token()

        async def broken_redeem(self, value, claimant):
            raise DatabaseConnectionException(detail="unable to open database file")

        monkeypatch.setattr(TokenRepository, "atomic_redeem", broken_redeem)

        response = await client.get(f"{BASE}/validate", params={"key": value})
        assert response.status_code == 503
        assert response.json()["ok"] is False
        assert response.json()["error"] == "service_unavailable"


@pytest.mark.integration
class TestEntryPointEquivalence:
    """GET and POST must answer identical inputs with identical bytes."""

    async def test_valid_payload_identical(self, client: AsyncClient, issue_token, reset_token, frozen_now):
        value = await issue_token()

        post = await client.post(f"{BASE}/validate", json={"token": value, "machine_id": "deviceA"})
        await reset_token(value)
        get = await client.get(f"{BASE}/validate", params={"key": value, "mid": "deviceA"})

        assert post.status_code == get.status_code == 200
        assert post.content == get.content
        assert post.json()["consumed_at"] == to_epoch_millis(frozen_now)

    async def test_already_used_payload_identical(self, client: AsyncClient, issue_token):
        value = await issue_token()
        await client.post(f"{BASE}/validate", json={"token": value, "machine_id": "deviceA"})

        post = await client.post(f"{BASE}/validate", json={"token": value, "machine_id": "deviceB"})
        get = await client.get(f"{BASE}/validate", params={"key": value, "mid": "deviceB"})

        assert post.content == get.content

    async def test_not_found_payload_identical(self, client: AsyncClient):
        post = await client.post(f"{BASE}/validate", json={"token": "garbage-token"})
        get = await client.get(f"{BASE}/validate", params={"key": "garbage-token"})

        assert post.content == get.content

    async def test_missing_token_payload_identical(self, client: AsyncClient):
        post = await client.post(f"{BASE}/validate", json={})
        get = await client.get(f"{BASE}/validate")

        assert post.status_code == get.status_code == 400
        assert post.content == get.content

    async def test_overlong_machine_id_rejected_by_both(self, client: AsyncClient, issue_token, fetch_token):
        post_value = await issue_token()
        get_value = await issue_token()
        machine_id = "m" * 300

        post = await client.post(f"{BASE}/validate", json={"token": post_value, "machine_id": machine_id})
        get = await client.get(f"{BASE}/validate", params={"key": get_value, "mid": machine_id})

        assert post.status_code == get.status_code == 400
        assert post.content == get.content
        assert post.json()["error"] == "invalid_input"
        assert (await fetch_token(post_value)).state == TokenState.UNUSED.value
        assert (await fetch_token(get_value)).state == TokenState.UNUSED.value


@pytest.mark.integration
class TestHealth:
    """Test GET {base}/health endpoint."""

    async def test_health(self, client: AsyncClient):
        response = await client.get(f"{BASE}/health")
        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert isinstance(data["ts"], int)

    async def test_root(self, client: AsyncClient):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"
