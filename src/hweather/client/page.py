"""
Wiring of the main page: the eager "list my locations" call, the DOM-ready
handler and the form/button/image event handlers.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import date
import logging
from typing import Any

import httpx
from lxml.html import HtmlElement

from hweather.settings import DEFAULT_WEATHER_API_URL, DEFAULT_WEATHER_IMAGE_URL

from . import messages, utils, validation
from .ajax import RequestCoordinator
from .api_client import ApiClient
from .dom import Document, DomAccess, Event
from .errors import AccessDenied, RequestError
from .forecast import ForecastController, ImageLoader
from .locations import Location, LocationListController
from .modal import ModalDialog

logger = logging.getLogger("hweather.client.page")

Validator = Callable[[str, str], bool]
MessageProvider = Callable[[str, str], str]


def _name_validator(value: str, _input_id: str) -> bool:
    return validation.is_name_valid(value)


def _name_error_message(_value: str, _input_id: str) -> str:
    return messages.get_name_error_message()


def _lat_lon_validator(value: str, input_id: str) -> bool:
    return validation.is_lat_lon_valid(value, input_id)  # type: ignore[arg-type]


def _lat_lon_error_message(value: str, input_id: str) -> str:
    summary = validation.lat_lon_error_summary(value, input_id)  # type: ignore[arg-type]
    if input_id == "lat":
        return messages.get_lat_error_message(summary)
    return messages.get_lon_error_message(summary)


class HWeatherPage:
    def __init__(
        self,
        document: Document,
        http: httpx.AsyncClient,
        weather_http: httpx.AsyncClient,
        weather_api_url: str = DEFAULT_WEATHER_API_URL,
        weather_image_url: str = DEFAULT_WEATHER_IMAGE_URL,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.document = document
        self.dom = DomAccess(document)
        self.api = ApiClient(http, navigate=document.navigate)
        self.modal = ModalDialog(self.dom)
        self.coordinator = RequestCoordinator()
        self.location_list = LocationListController(self.dom, self.api, self.modal)
        self.forecast = ForecastController(
            self.dom,
            weather_http,
            self.coordinator,
            self.modal,
            self.location_list,
            api_url=weather_api_url,
            image_url=weather_image_url,
            image_loader=ImageLoader(weather_http, self.dom),
            today=today,
        )
        self.location_list.on_problem = self.forecast.reset_panel

        self.init_ran = False
        self.saved_locations: list[Location] | None = None
        self.dom.add_event_listener_to_document("DOMContentLoaded", self.init)

    @property
    def locations(self) -> dict[str, Location]:
        return self.location_list.locations

    async def open(self) -> None:
        """Start the eager location listing, then fire DOM-ready."""
        listing = asyncio.create_task(
            self.api.get_locations(self.parse_saved_locations, self.location_list.on_error_use_message)
        )
        await self.document.dispatch_event(self.document, "DOMContentLoaded")
        await listing

    # -- saved locations ------------------------------------------------------

    async def parse_saved_locations(self, body: dict[str, Any]) -> None:
        self.saved_locations = [Location.from_payload(item) for item in body.get("locations", [])]
        logger.info("Loaded %d saved locations", len(self.saved_locations))
        if self.init_ran:
            await self.display_saved_locations()

    async def display_saved_locations(self) -> None:
        utils.show(self.location_list.placeholder)
        for location in self.saved_locations or []:
            await self.location_list.add_location_to_list(location, update_backend=False)

    # -- api hooks ------------------------------------------------------------

    def before_api_call(self) -> None:
        utils.show(self.dom.query_selector("#locations-container img"))

    def after_api_call(self) -> None:
        utils.hide(self.dom.query_selector("#locations-container img"))

    # -- form -----------------------------------------------------------------

    def collect_location_info(self) -> Location:
        return Location(
            name=utils.get_trimmed_value(self.dom.get_input_by_name("name")),
            lat=utils.get_trimmed_value(self.dom.get_input_by_name("lat")),
            lon=utils.get_trimmed_value(self.dom.get_input_by_name("lon")),
        )

    def validate_string_value(
        self,
        value: str,
        input_id: str,
        validator: Validator,
        message_provider: MessageProvider,
        show_error_on_empty: bool = True,
    ) -> bool:
        error_element = self.dom.get_error_element(input_id)

        if validator(value, input_id):
            utils.hide(error_element)
            return True

        if show_error_on_empty or value != "":
            utils.set_text(error_element, message_provider(value, input_id))
            utils.show(error_element)
        else:
            utils.hide(error_element)
        return False

    def validate_input(
        self,
        element: HtmlElement,
        validator: Validator,
        message_provider: MessageProvider,
        show_error_on_empty: bool = True,
    ) -> bool:
        value = utils.get_trimmed_value(element)
        return self.validate_string_value(value, element.get("id"), validator, message_provider, show_error_on_empty)

    def handle_lat_lon_keyup(self, event: Event) -> None:
        self.validate_input(event.target, _lat_lon_validator, _lat_lon_error_message, show_error_on_empty=False)

    def handle_name_keyup(self, event: Event) -> None:
        self.validate_input(event.target, _name_validator, _name_error_message, show_error_on_empty=False)

    async def handle_form_submission(self, event: Event) -> None:
        event.prevent_default()
        new_location = self.collect_location_info()

        passed = self.validate_string_value(new_location.name, "name", _name_validator, _name_error_message)
        for axis in ("lat", "lon"):
            valid = self.validate_string_value(
                getattr(new_location, axis), axis, _lat_lon_validator, _lat_lon_error_message
            )
            passed = passed and valid

        if passed:
            await self.location_list.add_location_to_list(new_location)
            await self.clear_form()

    async def clear_form(self) -> None:
        for element in self.dom.query_selector_all("#form input:not(.submit-button)"):
            utils.clear_value(element)
            # re-run validation; empty values are not reported on keyup
            await self.document.dispatch_event(element, "keyup")

    async def handle_clear_button_click(self, _event: Event) -> None:
        await self.location_list.clear_list()

    # -- dom ready ------------------------------------------------------------

    async def init(self, _event: Event | None = None) -> None:
        self.api.init(self.before_api_call, self.after_api_call)
        document = self.document

        for name in ("lat", "lon"):
            document.add_event_listener(self.dom.get_input_by_name(name), "keyup", self.handle_lat_lon_keyup)
        document.add_event_listener(self.dom.get_input_by_name("name"), "keyup", self.handle_name_keyup)

        document.add_event_listener(
            self.dom.query_selector("#form .submit-button"), "click", self.handle_form_submission
        )
        document.add_event_listener(
            self.dom.query_selector("#locations-container button.show-forecast"),
            "click",
            self.forecast.handle_display_forecast_click,
        )
        document.add_event_listener(
            self.dom.query_selector("#locations-container button.clear"), "click", self.handle_clear_button_click
        )

        forecast_image = self.forecast.forecast_image
        document.add_event_listener(forecast_image, "load", self.forecast.handle_image_loaded)
        document.add_event_listener(forecast_image, "error", self.forecast.handle_image_error)

        if self.saved_locations is not None:
            await self.display_saved_locations()
        self.init_ran = True

    # -- user actions ---------------------------------------------------------

    async def fill_and_submit(self, name: str, lat: str, lon: str) -> Event:
        for input_name, value in (("name", name), ("lat", lat), ("lon", lon)):
            element = self.dom.get_input_by_name(input_name)
            utils.set_value(element, value)
            await self.document.dispatch_event(element, "keyup")
        return await self.document.dispatch_event(self.dom.query_selector("#form .submit-button"), "click")

    async def click(self, element: HtmlElement) -> Event:
        return await self.document.dispatch_event(element, "click")


async def load_page(
    http: httpx.AsyncClient,
    weather_http: httpx.AsyncClient,
    path: str = "/",
    touch_screen: bool = False,
    **page_options: Any,
) -> HWeatherPage:
    """Fetch the main page with `http`'s session cookies and run it."""
    response = await http.get(path)
    if response.is_redirect:
        raise AccessDenied(response.headers.get("location", "/login"))
    if not response.is_success:
        raise RequestError(f"GET {path} answered {response.status_code}", response.status_code)

    page = HWeatherPage(
        Document.from_html(response.text, touch_screen=touch_screen),
        http,
        weather_http,
        **page_options,
    )
    await page.open()
    return page
