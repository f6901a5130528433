"""
Seven day forecast for the selected location.

Two independent asynchronous operations feed one readiness state: the
structured forecast fetch (cancellable, tagged with a request id) and the
forecast image load (not cancellable, reported through `load`/`error`
events on the `<img>`). The panel is revealed only when both are ready.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from enum import Enum
import logging
from typing import Any
from urllib.parse import urlencode

import httpx
from lxml.html import HtmlElement

from . import messages, utils
from .ajax import CancellationSignal, RequestCoordinator, run_cancellable
from .dom import DomAccess, Event
from .errors import (
    HttpStatusError,
    InvalidForecastData,
    MalformedResponseError,
    NetworkError,
    RequestCancelled,
)
from .locations import Location, LocationListController
from .modal import ModalDialog
from .validation import validate_date

logger = logging.getLogger("hweather.client.forecast")

WEATHER_TYPE_TO_DESC: dict[str, str] = {
    "clear": "Total cloud cover less than 20%",
    "pcloudy": "Total cloud cover between 20%-60%",
    "mcloudy": "Total cloud cover between 60%-80%",
    "cloudy": "Total cloud cover over 80%",
    "humid": "Relative humidity over 90% with total cloud cover less than 60%",
    "lightrain": "Precipitation rate less than 4mm/hr with total cloud cover more than 80%",
    "oshower": "Precipitation rate less than 4mm/hr with total cloud cover between 60%-80%",
    "ishower": "Precipitation rate less than 4mm/hr with total cloud cover less than 60%",
    "lightsnow": "Precipitation rate less than 4mm/hr",
    "rain": "Precipitation rate over 4mm/hr",
    "snow": "Precipitation rate over 4mm/hr",
    "rainsnow": "Precipitation type to be ice pellets or freezing rain",
}

# calm (1) maps to "" so the wind line is hidden for it
WIND_VALUE_TO_DESC: dict[str, str] = {
    "1": "",
    "2": "0.3-3.4m/s (light)",
    "3": "3.4-8.0m/s (moderate)",
    "4": "8.0-10.8m/s (fresh)",
    "5": "10.8-17.2m/s (strong)",
    "6": "17.2-24.5m/s (gale)",
    "7": "24.5-32.6m/s (storm)",
    "8": "Over 32.6m/s (hurricane)",
}

DATA_PRODUCT = "civillight"
DATA_OUTPUT = "json"
IMAGE_LATITUDE = "31.771959"
PLACEHOLDER_IMAGE = "images/no-img.png"
NO_SELECTION_TITLE = "Cannot do that!"
FORECAST_DAYS = 7


class ForecastState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    DATA_READY = "data_ready"
    IMAGE_READY = "image_ready"
    DISPLAYED = "displayed"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ForecastDay:
    date: str
    weather: str
    temp_range: str
    wind_speed: str


def decode_packed_date(value: Any) -> date:
    """Decode a YYYYMMDD integer such as 19700101."""
    try:
        packed = int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidForecastData(f"Invalid date information: {value!r}") from exc

    day = packed % 100
    month = packed // 100 % 100
    year = packed // 10000
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise InvalidForecastData(f"Invalid date information. date: {day}, month: {month}, year: {year}") from exc


def format_forecast_date(value: Any, today: date | None = None) -> str:
    decoded = decode_packed_date(value)
    if not validate_date(decoded, today):
        raise InvalidForecastData(f"Date {decoded.isoformat()} is outside the forecast window")
    return decoded.strftime("%a %b %d %Y")


def extract_day(entry: dict[str, Any], today: date | None = None) -> ForecastDay:
    try:
        date_string = format_forecast_date(entry["date"], today)
        temps = entry["temp2m"]
        temp_range = f"{temps['min']}℃ to {temps['max']}℃"
        weather_code = entry["weather"]
        wind_code = entry["wind10m_max"]
    except (KeyError, TypeError) as exc:
        raise MalformedResponseError(f"Forecast entry is missing fields: {entry!r}") from exc

    weather = WEATHER_TYPE_TO_DESC.get(str(weather_code))
    wind_speed = WIND_VALUE_TO_DESC.get(str(wind_code))
    if weather is None or wind_speed is None:
        raise InvalidForecastData(f"Invalid weather type or wind speed. weather type: {weather_code}, wind speed: {wind_code}")

    return ForecastDay(date=date_string, weather=weather, temp_range=temp_range, wind_speed=wind_speed)


def parse_forecast(payload: Any, today: date | None = None) -> list[ForecastDay]:
    if not isinstance(payload, dict) or not isinstance(payload.get("dataseries"), list):
        raise MalformedResponseError("Forecast response has no dataseries list")
    series = payload["dataseries"]
    if len(series) != FORECAST_DAYS:
        raise MalformedResponseError(f"Expected {FORECAST_DAYS} forecast days, got {len(series)}")
    return [extract_day(entry, today) for entry in series]


def build_data_params(location: Location) -> dict[str, str]:
    return {"lon": location.lon, "lat": location.lat, "product": DATA_PRODUCT, "output": DATA_OUTPUT}


def build_image_url(base_url: str, location: Location) -> str:
    # latitude is fixed by the image service contract
    params = {
        "lon": location.lon,
        "lat": IMAGE_LATITUDE,
        "ac": "0",
        "lang": "en",
        "unit": "metric",
        "output": "internal",
        "tzshift": "0",
    }
    return f"{base_url}?{urlencode(params)}"


class ImageLoader:
    """Loads an image URL and reports `load` or `error` on the image element."""

    def __init__(self, http: httpx.AsyncClient, dom: DomAccess) -> None:
        self.http = http
        self.dom = dom
        self._tasks: set[asyncio.Task[None]] = set()

    def load(self, image: HtmlElement, url: str) -> asyncio.Task[None]:
        task = asyncio.create_task(self._load(image, url))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _load(self, image: HtmlElement, url: str) -> None:
        try:
            response = await self.http.get(url)
            ok = response.is_success
        except httpx.HTTPError as exc:
            logger.warning("Image load failed for %s: %r", url, exc)
            ok = False
        await self.dom.document.dispatch_event(image, Event("load" if ok else "error", detail={"src": url}))


class ForecastController:
    def __init__(
        self,
        dom: DomAccess,
        http: httpx.AsyncClient,
        coordinator: RequestCoordinator,
        modal: ModalDialog,
        location_list: LocationListController,
        api_url: str,
        image_url: str,
        image_loader: ImageLoader | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.dom = dom
        self.http = http
        self.coordinator = coordinator
        self.modal = modal
        self.location_list = location_list
        self.api_url = api_url
        self.image_url = image_url
        self.image_loader = image_loader or ImageLoader(http, dom)
        self._today = today

        self.data_ready = False
        self.image_ready = False
        self.state = ForecastState.IDLE
        self.location_name: str | None = None
        self.data_task: asyncio.Task[None] | None = None

    # -- elements -------------------------------------------------------------

    @property
    def forecast_image(self) -> HtmlElement:
        return self.dom.query_selector("#forecast img")

    @property
    def loading_image(self) -> HtmlElement:
        return self.dom.query_selector("#forecast img.loading")

    @property
    def carousel(self) -> HtmlElement:
        return self.dom.query_selector("#forecast div.carousel-container")

    @property
    def panel_displayed(self) -> bool:
        return not utils.is_hidden(self.carousel)

    def switch_carousel(self, on: bool = True) -> None:
        utils.switch(self.carousel, on)

    def switch_images(self, what_to_show: str = "forecast", show_placeholder: bool = False) -> None:
        if show_placeholder:
            self.forecast_image.set("src", PLACEHOLDER_IMAGE)
        utils.switch(self.loading_image, what_to_show == "loading")
        utils.switch(self.forecast_image, what_to_show == "forecast")

    def show_loading_image(self) -> None:
        self.switch_images("loading")

    def show_forecast_image(self, show_placeholder: bool = False) -> None:
        self.switch_images("forecast", show_placeholder)

    def reset_panel(self) -> None:
        self.show_forecast_image(show_placeholder=True)
        self.switch_carousel(False)

    def show_forecast_and_image(self, location_name: str) -> None:
        self.show_forecast_image()
        self.switch_carousel(True)
        utils.set_text(self.dom.query_selector("#forecast h3"), f"Forecast: {location_name}")
        self.state = ForecastState.DISPLAYED

    # -- request --------------------------------------------------------------

    async def handle_display_forecast_click(self, _event: Event | None = None) -> None:
        name = self.location_list.selected_name()
        if name is None:
            self.modal.display_message(messages.NO_SELECTION, NO_SELECTION_TITLE)
            return
        self.display_forecast(self.location_list.locations[name])

    def display_forecast(self, location: Location) -> asyncio.Task[None]:
        self.data_ready = False
        self.image_ready = False
        self.state = ForecastState.PENDING
        self.location_name = location.name

        self.show_loading_image()
        image_url = build_image_url(self.image_url, location)
        self.forecast_image.set("src", image_url)
        self.switch_carousel(False)

        signal = self.coordinator.issue_cancellation()
        request_id = self.coordinator.next_request_id()
        logger.info("Forecast request %s for %r", request_id, location.name)

        self.data_task = asyncio.create_task(self.update_weather_forecast(location, request_id, signal))
        self.image_loader.load(self.forecast_image, image_url)
        return self.data_task

    async def _fetch_forecast_json(self, location: Location) -> Any:
        try:
            response = await self.http.get(self.api_url, params=build_data_params(location))
        except httpx.TransportError as exc:
            raise NetworkError(str(exc)) from exc

        if not response.is_success:
            raise HttpStatusError(response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError("Forecast response is not JSON", response.status_code) from exc

    async def update_weather_forecast(self, location: Location, request_id: int, signal: CancellationSignal) -> None:
        try:
            payload = await run_cancellable(self._fetch_forecast_json(location), signal)
            days = parse_forecast(payload, today=self._today())
            self.display_weather_forecast(days, location.name, request_id)
        except Exception as exc:
            self.on_error(exc, request_id)

    def display_weather_forecast(self, days: list[ForecastDay], location_name: str, request_id: int) -> bool:
        if not self.coordinator.is_current(request_id):
            logger.debug("Discarding stale forecast response %s", request_id)
            return False

        cards = self.dom.get_elements_by_class_name("card")
        for card, day in zip(cards, days):
            self.populate_card(card, day)

        self.data_ready = True
        if self.image_ready:
            self.show_forecast_and_image(location_name)
        else:
            self.state = ForecastState.DATA_READY
        return True

    @staticmethod
    def populate_card(card: HtmlElement, day: ForecastDay) -> None:
        utils.set_text(card.cssselect("h5")[0], day.date)
        utils.set_text(card.find_class("weather")[0], day.weather)
        utils.set_text(card.find_class("temp")[0], day.temp_range)

        wind = card.find_class("wind")[0]
        utils.set_text(wind, day.wind_speed)
        utils.switch(wind, day.wind_speed != "")
        label = wind.getprevious()
        if label is not None:
            utils.switch(label, day.wind_speed != "")

    # -- image ----------------------------------------------------------------

    def _is_stale_image_event(self, event: Event) -> bool:
        src = event.detail.get("src")
        return src is not None and src != self.forecast_image.get("src")

    def handle_image_loaded(self, event: Event | None = None) -> None:
        if event is not None and self._is_stale_image_event(event):
            logger.debug("Ignoring image event for superseded source %s", event.detail.get("src"))
            return

        self.image_ready = True
        if self.state is ForecastState.ERROR:
            return
        if self.data_ready:
            self.show_forecast_and_image(self.location_name or "")
        else:
            self.state = ForecastState.IMAGE_READY

    def handle_image_error(self, event: Event) -> None:
        if self._is_stale_image_event(event):
            return
        self.forecast_image.set("src", PLACEHOLDER_IMAGE)
        self.handle_image_loaded()

    # -- errors ---------------------------------------------------------------

    @staticmethod
    def get_error_message(error: Exception) -> str:
        if isinstance(error, NetworkError):
            return messages.get_ajax_error_message(did_reach_server=False)
        if isinstance(error, MalformedResponseError):
            return messages.get_ajax_error_message(did_reach_server=True, is_syntax_error=True)
        return messages.get_ajax_error_message(did_reach_server=True, status=getattr(error, "status", 0))

    def on_error(self, error: Exception, request_id: int | None = None) -> None:
        if isinstance(error, RequestCancelled):
            logger.debug("Forecast request %s cancelled", request_id)
            return
        if request_id is not None and not self.coordinator.is_current(request_id):
            logger.debug("Dropping error of superseded request %s: %r", request_id, error)
            return

        logger.error("Forecast request %s failed: %r", request_id, error)
        self.state = ForecastState.ERROR
        self.reset_panel()
        self.modal.display_message(self.get_error_message(error))
