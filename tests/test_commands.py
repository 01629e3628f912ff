"""Tests for the command bus and its HTTP route."""

import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.routes.commands import get_bus
from app.services.store import LAST_SYNC, VA_CLAIMS, VA_LOGGED_IN
from tests.factories import appeals_body, claim_detail, claim_summary, rated_disabilities

CLAIMS = "/v0/benefits_claims"


def script_upstream(api):
    api.add("GET", CLAIMS, (200, {"data": [claim_summary("111"), claim_summary("222")]}))
    api.add("GET", f"{CLAIMS}/111", (200, claim_detail("111", latestPhaseType="Claim Received")))
    api.add("GET", f"{CLAIMS}/222", (200, claim_detail("222", latestPhaseType="Complete")))
    api.add("GET", "/v0/rated_disabilities", (200, rated_disabilities(50)))
    api.add("GET", "/v0/appeals", (200, appeals_body()))


def upstream_calls(api):
    return [r for r in api.requests if r.url.path.startswith("/v0/")]


@pytest.mark.asyncio
async def test_unknown_command_returns_none(harness):
    assert await harness.bus.dispatch({"type": "NOT_A_COMMAND"}) is None
    assert await harness.bus.dispatch({}) is None


@pytest.mark.asyncio
async def test_auth_tokens_then_status(harness):
    """Test tokens relayed by the web app show up in the auth status."""
    result = await harness.bus.dispatch(
        {
            "type": "AUTH_TOKENS_RECEIVED",
            "accessToken": "access-1",
            "refreshToken": "refresh-1",
            "userData": {"email": "vet@example.com"},
        }
    )
    assert result.to_wire() == {"success": True}

    status = await harness.bus.dispatch({"type": "REQUEST_AUTH_STATUS"})

    assert status.to_wire() == {
        "authenticated": True,
        "accessToken": "access-1",
        "refreshToken": "refresh-1",
        "userData": {"email": "vet@example.com"},
    }


@pytest.mark.asyncio
async def test_auth_status_unauthenticated(harness):
    status = await harness.bus.dispatch({"type": "REQUEST_AUTH_STATUS"})
    assert status.authenticated is False
    assert status.access_token is None


@pytest.mark.asyncio
async def test_request_va_data_reads_cache(harness):
    """Test the cached snapshot is returned without any request."""
    await harness.store.set(
        {
            VA_CLAIMS: [{"structured": {"claimId": "111"}, "raw": {}, "lastUpdated": 5}],
            VA_LOGGED_IN: True,
            LAST_SYNC: 9,
        }
    )

    result = (await harness.bus.dispatch({"type": "REQUEST_VA_DATA"})).to_wire()

    assert result["claims"] == [{"claimId": "111"}]
    assert result["rating"] is None
    assert result["appeals"] == []
    assert result["loggedIn"] is True
    assert result["lastSync"] == 9
    assert harness.api.requests == []


@pytest.mark.asyncio
async def test_trigger_fetch_bypasses_cooldown(harness):
    """Test a manual trigger always runs a cycle."""
    script_upstream(harness.api)

    first = await harness.bus.dispatch({"type": "TRIGGER_VA_FETCH"})
    count = len(upstream_calls(harness.api))
    second = await harness.bus.dispatch({"type": "TRIGGER_VA_FETCH"})

    assert first.to_wire() == {
        "success": True,
        "fromCache": False,
        "claimsCount": 2,
        "ratingAvailable": True,
        "appealsCount": 1,
        "synced": False,
    }
    assert second.from_cache is False
    assert len(upstream_calls(harness.api)) == 2 * count


@pytest.mark.asyncio
async def test_page_loaded_respects_cooldown(harness):
    script_upstream(harness.api)

    await harness.bus.dispatch({"type": "VA_PAGE_LOADED"})
    count = len(upstream_calls(harness.api))
    harness.clock.advance(20)
    result = await harness.bus.dispatch({"type": "VA_PAGE_LOADED"})

    assert result.success is True
    assert result.from_cache is True
    assert result.claims_count == 2
    assert len(upstream_calls(harness.api)) == count


@pytest.mark.asyncio
async def test_trigger_fetch_syncs_when_authenticated(harness):
    script_upstream(harness.api)
    harness.api.add("POST", "/v1/va-sync/batch", (200, {"success": True}))
    await harness.auth.store_tokens("access-1", "refresh-1", None)

    result = await harness.bus.dispatch({"type": "TRIGGER_VA_FETCH"})

    assert result.synced is True
    assert len(harness.api.calls("POST", "/v1/va-sync/batch")) == 1


@pytest.mark.asyncio
async def test_intercepted_claim_unauthenticated(harness):
    """Test a captured claim is cached and answered with basic insights."""
    raw = claim_detail("333", latestPhaseType="Gathering of Evidence", attentionNeeded="Yes")

    result = await harness.bus.dispatch(
        {"type": "CLAIM_DATA_INTERCEPTED", "data": {"dataType": "claim_detail", "raw": raw}}
    )

    wire = result.to_wire()
    assert wire["success"] is True
    assert wire["synced"] is False
    assert wire["aiInsights"]["claimId"] == "333"
    assert wire["aiInsights"]["timeline"]["daysToDecision"] == 60
    assert wire["aiInsights"]["risks"][0]["title"] == "Documents Required"
    assert harness.api.requests == []

    stored = await harness.store.get([VA_CLAIMS])
    assert stored[VA_CLAIMS][0]["structured"]["claimId"] == "333"


@pytest.mark.asyncio
async def test_intercepted_claim_sync_failure(harness):
    await harness.auth.store_tokens("access-1", None, None)
    harness.api.add("POST", "/v1/va-sync", (500, {}))

    result = await harness.bus.dispatch(
        {
            "type": "CLAIM_DATA_INTERCEPTED",
            "data": {"dataType": "claim_detail", "raw": claim_detail("333")},
        }
    )

    assert result.success is False
    assert result.error
    assert result.ai_insights["isBasic"] is True


@pytest.mark.asyncio
async def test_malformed_message_returns_error(harness):
    result = await harness.bus.dispatch({"type": "CLAIM_DATA_INTERCEPTED", "data": "nope"})

    assert result.to_wire()["success"] is False
    assert "CLAIM_DATA_INTERCEPTED" in result.error


@pytest.mark.asyncio
async def test_commands_route(harness):
    """Test the HTTP route dispatches to the bus."""
    app.dependency_overrides[get_bus] = lambda: harness.bus
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/commands",
                json={"type": "AUTH_TOKENS_RECEIVED", "accessToken": "a", "refreshToken": "r"},
            )
            assert response.status_code == 200
            assert response.json() == {"success": True}

            response = await client.post("/commands", json={"type": "REQUEST_AUTH_STATUS"})
            assert response.json()["authenticated"] is True

            response = await client.post("/commands", json={"type": "UNKNOWN"})
            assert response.status_code == 200
            assert response.json() is None
    finally:
        app.dependency_overrides.clear()
