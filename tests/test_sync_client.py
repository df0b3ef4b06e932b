import json

import httpx
import pytest

from services.sync_client import UserSyncClient, build_sync_payload, on_post_user_registration
from services.user_sync_service import SyncFailed, SyncOk

AUTH0_USER = {
    "user_id": "auth0|xyz",
    "email": "maria@example.com",
    "nickname": "maria",
    "email_verified": False,
    "identities": [{"provider": "auth0", "connection": "Username-Password-Authentication"}],
    "app_metadata": {"user_type": "driver", "roles": ["driver"]},
    "user_metadata": {"phone_number": "09181234567", "birthday": "March 15, 1995", "gender": "female"},
    "created_at": "2025-01-02T03:04:05.000Z",
}


def _client(handler):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return UserSyncClient("https://api.example.test/", "secret-token", client=http)


def test_build_sync_payload():
    payload = build_sync_payload(AUTH0_USER)
    assert payload["auth0_id"] == "auth0|xyz"
    assert payload["name"] == "maria"
    assert payload["connection"] == "Username-Password-Authentication"
    assert payload["user_type"] == "driver"
    assert payload["roles"] == ["driver"]
    assert payload["birthday"] == "March 15, 1995"


def test_build_sync_payload_defaults():
    payload = build_sync_payload({"user_id": "auth0|1", "email": "x@y.co"})
    assert payload["name"] == "x@y.co"
    assert payload["provider"] == "auth0"
    assert payload["user_type"] == "passenger"
    assert payload["roles"] == ["passenger"]


@pytest.mark.asyncio
async def test_sync_success_sends_token_and_action_header():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["action"] = request.headers.get("x-auth0-action")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "status": "success", "message": "User created", "action": "created",
            "user_id": 7, "auth0_id": "auth0|xyz",
        })

    result = await _client(handler).sync(AUTH0_USER)
    assert result == SyncOk(action="created", user_id=7, auth0_id="auth0|xyz")
    assert seen["url"] == "https://api.example.test/api/auth0/sync-user"
    assert seen["auth"] == "Bearer secret-token"
    assert seen["action"] == "post-user-registration"
    assert seen["body"]["email"] == "maria@example.com"


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(500, json={"status": "error", "message": "User sync failed"}),
    httpx.Response(200, text="<html>oops</html>"),
    httpx.Response(200, json=["unexpected"]),
    httpx.Response(200, json={"status": "error", "message": "nope"}),
])
async def test_sync_failures_become_results(response):
    result = await _client(lambda request: response).sync(AUTH0_USER)
    assert isinstance(result, SyncFailed)


@pytest.mark.asyncio
async def test_transport_error_is_not_raised():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = await _client(handler).sync(AUTH0_USER)
    assert isinstance(result, SyncFailed)
    assert "transport error" in result.reason


@pytest.mark.asyncio
async def test_post_registration_hook_logs_failure(caplog):
    client = _client(lambda request: httpx.Response(401, json={"status": "error", "message": "Unauthorized"}))
    with caplog.at_level("ERROR"):
        result = await on_post_user_registration(AUTH0_USER, client)
    assert isinstance(result, SyncFailed)
    assert "Failed to sync user auth0|xyz" in caplog.text


@pytest.mark.asyncio
async def test_client_against_the_real_endpoint(app, settings):
    """The outbound client and the inbound route agree on the wire format."""
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
    client = UserSyncClient.from_settings(settings, client=http)
    client.base_url = "http://testserver"
    result = await on_post_user_registration(AUTH0_USER, client)
    await http.aclose()
    assert isinstance(result, SyncOk)
    assert result.action == "created"
    assert result.auth0_id == "auth0|xyz"
