from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from voicekit.core.theme import BRAND_THEMES, DEFAULT_THEME
from voicekit.main import app


@pytest.mark.asyncio
async def test_health_endpoint() -> None:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert {"status", "version", "time", "db_ok", "history_items"} <= data.keys()
    assert data["db_ok"] is True


@pytest.mark.asyncio
async def test_visibility_resolve() -> None:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        r = await client.post(
            "/visibility/resolve",
            json={
                "globalMode": "end-user",
                "componentMode": "developer",
                "componentOverride": {"showDebugInfo": False, "showStats": "nope"},
                "errorMessage": "socket closed",
            },
        )
        assert r.status_code == 200
        data = r.json()
        assert data["mode"] == "developer"
        assert data["showDebugInfo"] is False
        assert data["showStats"] is True
        assert data["errorMessage"] == "socket closed"
        assert data["customLabels"]["voiceButton"]["startText"] == "Start Listening"

        r2 = await client.post("/visibility/resolve", json={"globalMode": "bogus", "errorMessage": "boom"})
        assert r2.json()["mode"] == "project"
        assert r2.json()["errorMessage"] == "An error occurred"


@pytest.mark.asyncio
async def test_theme_resolve_layers() -> None:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        r = await client.post(
            "/theme/resolve",
            json={
                "brand": "slack",
                "contextOverride": {"colors": {"secondary": "#101010"}},
                "componentOverride": {"colors": {"secondary": "#202020", "primary": 7}},
                "dark": True,
            },
        )
        assert r.status_code == 200
        colors = r.json()["colors"]
        assert colors["primary"] == BRAND_THEMES["slack"]["colors"]["primary"]
        assert colors["secondary"] == "#202020"
        assert colors["border"] == "#4B5563"

        missing = await client.post("/theme/resolve", json={"brand": "acme"})
        assert missing.status_code == 404

        brands = (await client.get("/theme/brands")).json()["brands"]
        assert set(brands) == set(BRAND_THEMES)


@pytest.mark.asyncio
async def test_theme_preferences_roundtrip() -> None:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        assert (await client.get("/theme/preferences")).json() == {"override": {}, "darkMode": None}

        bad = await client.put("/theme/preferences", json={"override": {"colors": {"primary": "nope"}}})
        assert bad.status_code == 400
        assert bad.json()["detail"]["error"]["details"] == ["Invalid color value for primary"]

        saved = await client.put(
            "/theme/preferences",
            json={"override": {"colors": {"primary": "#FF0000"}}, "darkMode": True},
        )
        assert saved.json()["saved"] is True

        resolved = (await client.post("/theme/resolve", json={"usePreferences": True})).json()
        assert resolved["colors"]["primary"] == "#FF0000"
        assert resolved["colors"]["background"] == "#1F2937"

        reset = (await client.delete("/theme/preferences")).json()
        assert reset == {"override": {}, "darkMode": None}
        resolved = (await client.post("/theme/resolve", json={"usePreferences": True})).json()
        assert resolved["colors"]["primary"] == DEFAULT_THEME.colors.primary
