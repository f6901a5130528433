from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
import inspect
import logging
from typing import Any, Union

import httpx

from .errors import (
    AccessDenied,
    FatalInvariantError,
    MalformedResponseError,
    NetworkError,
    RequestError,
)

logger = logging.getLogger("hweather.client.api")

Hook = Callable[[], Union[Awaitable[None], None]]
SuccessHandler = Callable[[dict[str, Any]], Union[Awaitable[None], None]]
ErrorHandler = Callable[[Exception], Union[Awaitable[None], None]]

ADD_LOCATION_URL = "/api/add-location"
REMOVE_LOCATIONS_URL = "/api/remove-locations"
GET_LOCATIONS_URL = "/api/get-locations"


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class ApiClient:
    """JSON client for the location API.

    Every call runs: before hook, transport, JSON decode, status check,
    redirect check, success handler, after hook. Any failure along the way goes
    to the call's error handler instead, and the after hook is skipped.
    """

    def __init__(self, http: httpx.AsyncClient, navigate: Callable[[str], None]) -> None:
        self._http = http
        self._navigate = navigate
        self._before: Hook | None = None
        self._after: Hook | None = None

    def init(self, before: Hook | None = None, after: Hook | None = None) -> None:
        self._before = before
        self._after = after

    async def _send(self, url: str, payload: Any, method: str) -> dict[str, Any]:
        try:
            if method.upper() == "GET":
                response = await self._http.request(method, url, headers={"Accept": "application/json"})
            else:
                response = await self._http.request(method, url, json=payload)
        except httpx.TransportError as exc:
            raise NetworkError(f"{method} {url} failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedResponseError(f"{method} {url} returned a non-JSON body", response.status_code) from exc

        if not isinstance(body, dict):
            raise MalformedResponseError(f"{method} {url} returned {type(body).__name__}, expected an object")

        if not response.is_success:
            message = body.get("message") or body.get("detail") or f"Request failed with status {response.status_code}"
            raise RequestError(str(message), response.status_code)

        if "changeToURL" in body:
            target = str(body["changeToURL"])
            self._navigate(target)
            raise AccessDenied(target)

        return body

    async def call(
        self,
        url: str,
        on_success: SuccessHandler,
        on_error: ErrorHandler,
        payload: Any = None,
        method: str = "POST",
    ) -> None:
        try:
            if self._before is not None:
                await _maybe_await(self._before())
            body = await self._send(url, payload, method)
            await _maybe_await(on_success(body))
            if self._after is not None:
                await _maybe_await(self._after())
        except FatalInvariantError as exc:
            logger.critical("%s %s: %s", method, url, exc)
            await _maybe_await(on_error(exc))
            raise
        except Exception as exc:
            logger.warning("%s %s failed: %r", method, url, exc)
            await _maybe_await(on_error(exc))

    async def add_location(self, location: dict[str, str], on_success: SuccessHandler, on_error: ErrorHandler) -> None:
        await self.call(ADD_LOCATION_URL, on_success, on_error, location)

    async def remove_locations_by_names(
        self,
        on_success: SuccessHandler,
        on_error: ErrorHandler,
        names: Sequence[str],
    ) -> None:
        await self.call(REMOVE_LOCATIONS_URL, on_success, on_error, {"locationNames": list(names)})

    async def get_locations(self, on_success: SuccessHandler, on_error: ErrorHandler) -> None:
        await self.call(GET_LOCATIONS_URL, on_success, on_error, {}, method="GET")
