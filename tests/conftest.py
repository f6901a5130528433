from __future__ import annotations

import asyncio
from datetime import date, timedelta
import json
from typing import Any

from fastapi.testclient import TestClient
import httpx
import pytest

from hweather.api.main import create_app
from hweather.client import ApiClient, Document, DomAccess, LocationListController, ModalDialog
from hweather.data import create_user, session_scope
from hweather.settings import get_settings

TODAY = date(2024, 5, 1)
EMAIL = "ada@example.com"
PASSWORD = "secret"
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d49484452000000010000000108060000001f15c489"
    "0000000a49444154789c63000100000500010d0a2db40000000049454e44ae426082"
)


def forecast_payload(start: date = TODAY, days: int = 7, **entry_overrides: Any) -> dict[str, Any]:
    series = []
    for offset in range(days):
        entry = {
            "date": int((start + timedelta(days=offset)).strftime("%Y%m%d")),
            "weather": "clear",
            "temp2m": {"max": 25, "min": 14},
            "wind10m_max": 2,
        }
        entry.update(entry_overrides)
        series.append(entry)
    return {"product": "civillight", "init": f"{start:%Y%m%d}00", "dataseries": series}


class FakeWeatherService:
    """Stands in for 7timer: JSON on api.pl, a PNG on astro.php.

    `gates` holds data responses for a given longitude until the event is set.
    """

    def __init__(self) -> None:
        self.payload: Any = forecast_payload()
        self.payloads: dict[str, Any] = {}
        self.data_status = 200
        self.image_status = 200
        self.raw_body: bytes | None = None
        self.fail_transport = False
        self.gates: dict[str, asyncio.Event] = {}
        self.image_gate: asyncio.Event | None = None
        self.requests: list[httpx.Request] = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("api.pl"):
            lon = request.url.params.get("lon", "")
            gate = self.gates.get(lon)
            if gate is not None:
                await gate.wait()
            if self.fail_transport:
                raise httpx.ConnectError("connection refused", request=request)
            if self.raw_body is not None:
                return httpx.Response(self.data_status, content=self.raw_body)
            return httpx.Response(self.data_status, json=self.payloads.get(lon, self.payload))
        if self.image_gate is not None:
            await self.image_gate.wait()
        return httpx.Response(self.image_status, content=PNG_BYTES, headers={"content-type": "image/png"})

    def data_requests(self) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path.endswith("api.pl")]


class FakeLocationApi:
    """In-memory version of the /api/* endpoints."""

    def __init__(self) -> None:
        self.stored: dict[str, dict[str, str]] = {}
        self.rows_deleted: int | None = None
        self.status = 200
        self.change_to_url: str | None = None
        self.non_json = False
        self.calls: list[tuple[str, str, Any]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, request.url.path, body))

        if self.non_json:
            return httpx.Response(200, content=b"<html>oops</html>")
        if self.change_to_url is not None:
            return httpx.Response(200, json={"changeToURL": self.change_to_url})
        if self.status != 200:
            return httpx.Response(self.status, json={"message": "The database is on fire."})

        path = request.url.path
        if path == "/api/add-location":
            created = body["name"] not in self.stored
            self.stored[body["name"]] = body
            return httpx.Response(200, json={"message": "Location added." if created else "Location updated."})
        if path == "/api/remove-locations":
            names = body["locationNames"]
            deleted = sum(1 for name in names if self.stored.pop(name, None) is not None)
            if self.rows_deleted is not None:
                deleted = self.rows_deleted
            return httpx.Response(200, json={"message": "Locations deleted.", "rowsDeleted": deleted})
        if path == "/api/get-locations":
            return httpx.Response(200, json={"locations": list(self.stored.values())})
        return httpx.Response(404, json={"message": "Not found"})


# -- server ------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path):
    return get_settings(
        data_root=tmp_path,
        database_url=f"sqlite:///{(tmp_path / 'test.sqlite3').as_posix()}",
        session_max_age=3600,
        register_window_seconds=60,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user_id(app) -> int:
    with session_scope(app.state.session_factory) as session:
        user = create_user(session, email=EMAIL, first_name="Ada", last_name="Lovelace", password=PASSWORD)
        return user.id


@pytest.fixture
def signed_in(client, user_id):
    response = client.post("/authenticate", data={"email": EMAIL, "password": PASSWORD}, follow_redirects=False)
    assert response.status_code == 303
    return client


@pytest.fixture
async def asgi_http(app, user_id):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        response = await http.post("/authenticate", data={"email": EMAIL, "password": PASSWORD})
        assert response.status_code == 303
        yield http


# -- page client -------------------------------------------------------------


@pytest.fixture
def index_html(signed_in) -> str:
    response = signed_in.get("/")
    assert response.status_code == 200
    return response.text


@pytest.fixture
def document(index_html) -> Document:
    return Document.from_html(index_html)


@pytest.fixture
def dom(document) -> DomAccess:
    return DomAccess(document)


@pytest.fixture
def modal(dom) -> ModalDialog:
    return ModalDialog(dom)


@pytest.fixture
def fake_api() -> FakeLocationApi:
    return FakeLocationApi()


@pytest.fixture
async def api_http(fake_api):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_api.handler), base_url="http://testserver") as http:
        yield http


@pytest.fixture
def api(api_http, document) -> ApiClient:
    return ApiClient(api_http, navigate=document.navigate)


@pytest.fixture
def location_list(dom, api, modal) -> LocationListController:
    return LocationListController(dom, api, modal)


@pytest.fixture
def weather() -> FakeWeatherService:
    return FakeWeatherService()


@pytest.fixture
async def weather_http(weather):
    async with httpx.AsyncClient(transport=httpx.MockTransport(weather.handler)) as http:
        yield http
