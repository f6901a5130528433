from __future__ import annotations

import asyncio
from datetime import date

import pytest

from conftest import TODAY, forecast_payload
from hweather.client import messages, utils
from hweather.client.ajax import RequestCoordinator
from hweather.client.dom import Event
from hweather.client.errors import InvalidForecastData, MalformedResponseError
from hweather.client.forecast import (
    NO_SELECTION_TITLE,
    PLACEHOLDER_IMAGE,
    ForecastController,
    ForecastState,
    build_image_url,
    decode_packed_date,
    extract_day,
    parse_forecast,
)
from hweather.client.locations import Location
from hweather.client.modal import DEFAULT_TITLE, REPORT_THANKS

API_URL = "http://weather.test/bin/api.pl"
IMAGE_URL = "http://weather.test/bin/astro.php"

PARIS = Location("Paris", "48.85", "2.35")
ROME = Location("Rome", "41.9", "12.5")


@pytest.fixture
def forecast(dom, document, weather_http, modal, location_list) -> ForecastController:
    controller = ForecastController(
        dom,
        weather_http,
        RequestCoordinator(),
        modal,
        location_list,
        api_url=API_URL,
        image_url=IMAGE_URL,
        today=lambda: TODAY,
    )
    document.add_event_listener(controller.forecast_image, "load", controller.handle_image_loaded)
    document.add_event_listener(controller.forecast_image, "error", controller.handle_image_error)
    return controller


async def _settle(controller: ForecastController) -> None:
    await controller.data_task
    await controller.image_loader.drain()


def _card_texts(dom, selector: str) -> list[str]:
    return [utils.get_text(card.cssselect(selector)[0]) for card in dom.get_elements_by_class_name("card")]


# -- parsing -----------------------------------------------------------------


def test_decode_packed_date():
    assert decode_packed_date(19700101) == date(1970, 1, 1)
    assert decode_packed_date("20240501") == date(2024, 5, 1)


@pytest.mark.parametrize("value", [20240230, 20241301, 20240500, "soon", None])
def test_decode_packed_date_rejects_impossible_dates(value):
    with pytest.raises(InvalidForecastData):
        decode_packed_date(value)


def test_parse_forecast_builds_day_entries():
    days = parse_forecast(forecast_payload(), TODAY)

    assert len(days) == 7
    assert days[0].date == "Wed May 01 2024"
    assert days[6].date == "Tue May 07 2024"
    assert days[0].weather == "Total cloud cover less than 20%"
    assert days[0].temp_range == "14℃ to 25℃"
    assert days[0].wind_speed == "0.3-3.4m/s (light)"


def test_calm_wind_has_no_description():
    day = extract_day({"date": 20240501, "weather": "rain", "temp2m": {"min": 3, "max": 9}, "wind10m_max": 1}, TODAY)
    assert day.wind_speed == ""


@pytest.mark.parametrize("overrides", [{"weather": "sunny"}, {"wind10m_max": 9}])
def test_unknown_codes_are_invalid_data(overrides):
    with pytest.raises(InvalidForecastData):
        parse_forecast(forecast_payload(**overrides), TODAY)


def test_dates_outside_the_window_are_invalid_data():
    with pytest.raises(InvalidForecastData):
        parse_forecast(forecast_payload(start=date(2024, 4, 30)), TODAY)


@pytest.mark.parametrize("days", [2, 8])
def test_wrong_number_of_days_is_malformed(days):
    with pytest.raises(MalformedResponseError):
        parse_forecast(forecast_payload(days=days), TODAY)


@pytest.mark.parametrize("payload", [{}, {"dataseries": "none"}, [], {"dataseries": [{"date": 20240501}]}])
def test_missing_structure_is_malformed(payload):
    with pytest.raises(MalformedResponseError):
        parse_forecast(payload, TODAY)


def test_image_url_uses_the_fixed_latitude():
    url = build_image_url(IMAGE_URL, PARIS)
    assert url.startswith(IMAGE_URL + "?")
    assert "lon=2.35" in url
    assert "lat=31.771959" in url
    assert "unit=metric" in url


# -- controller --------------------------------------------------------------


async def test_display_forecast_shows_panel_once_both_are_ready(forecast, dom, weather):
    task = forecast.display_forecast(PARIS)

    assert forecast.state is ForecastState.PENDING
    assert not utils.is_hidden(forecast.loading_image)
    assert utils.is_hidden(forecast.forecast_image)
    assert utils.is_hidden(forecast.carousel)
    assert forecast.forecast_image.get("src") == build_image_url(IMAGE_URL, PARIS)

    await task
    await forecast.image_loader.drain()

    assert forecast.state is ForecastState.DISPLAYED
    assert forecast.panel_displayed
    assert utils.is_hidden(forecast.loading_image)
    assert not utils.is_hidden(forecast.forecast_image)
    assert utils.get_text(dom.query_selector("#forecast h3")) == "Forecast: Paris"

    assert _card_texts(dom, "h5")[0] == "Wed May 01 2024"
    assert set(_card_texts(dom, ".temp")) == {"14℃ to 25℃"}
    assert set(_card_texts(dom, ".wind")) == {"0.3-3.4m/s (light)"}

    (request,) = weather.data_requests()
    assert dict(request.url.params) == {"lon": "2.35", "lat": "48.85", "product": "civillight", "output": "json"}


async def test_data_first_then_image(forecast, weather):
    weather.image_gate = asyncio.Event()

    await forecast.display_forecast(PARIS)

    assert forecast.data_ready and not forecast.image_ready
    assert forecast.state is ForecastState.DATA_READY
    assert not forecast.panel_displayed

    weather.image_gate.set()
    await forecast.image_loader.drain()

    assert forecast.state is ForecastState.DISPLAYED
    assert forecast.panel_displayed


async def test_image_first_then_data(forecast, weather):
    gate = weather.gates[PARIS.lon] = asyncio.Event()

    task = forecast.display_forecast(PARIS)
    await forecast.image_loader.drain()

    assert forecast.image_ready and not forecast.data_ready
    assert forecast.state is ForecastState.IMAGE_READY
    assert not forecast.panel_displayed

    gate.set()
    await task

    assert forecast.state is ForecastState.DISPLAYED
    assert forecast.panel_displayed


async def test_new_request_resets_flags_and_hides_panel(forecast, weather):
    forecast.display_forecast(PARIS)
    await _settle(forecast)
    assert forecast.panel_displayed

    weather.image_gate = asyncio.Event()
    weather.gates[ROME.lon] = asyncio.Event()
    forecast.display_forecast(ROME)

    assert not forecast.data_ready
    assert not forecast.image_ready
    assert not forecast.panel_displayed
    assert forecast.state is ForecastState.PENDING

    weather.image_gate.set()
    weather.gates[ROME.lon].set()
    await _settle(forecast)


async def test_stale_forecast_response_is_discarded(forecast, dom, weather, modal):
    weather.payloads[PARIS.lon] = forecast_payload(weather="cloudy")
    weather.payloads[ROME.lon] = forecast_payload(weather="clear")
    weather.gates[PARIS.lon] = asyncio.Event()

    first = forecast.display_forecast(PARIS)
    await asyncio.sleep(0)
    second = forecast.display_forecast(ROME)

    await second
    weather.gates[PARIS.lon].set()
    await first
    await forecast.image_loader.drain()

    assert set(_card_texts(dom, ".weather")) == {"Total cloud cover less than 20%"}
    assert utils.get_text(dom.query_selector("#forecast h3")) == "Forecast: Rome"
    assert not modal.is_shown


async def test_render_with_a_superseded_id_changes_nothing(forecast, dom):
    stale = forecast.coordinator.next_request_id()
    forecast.coordinator.next_request_id()
    days = parse_forecast(forecast_payload(weather="cloudy"), TODAY)

    assert forecast.display_weather_forecast(days, "Paris", stale) is False
    assert not forecast.data_ready
    assert set(_card_texts(dom, "h5")) == {""}


async def test_load_event_for_an_old_source_is_ignored(forecast, weather):
    weather.image_gate = asyncio.Event()

    forecast.display_forecast(PARIS)
    paris_src = forecast.forecast_image.get("src")
    forecast.display_forecast(ROME)

    forecast.handle_image_loaded(Event("load", detail={"src": paris_src}))
    assert not forecast.image_ready

    weather.image_gate.set()
    await _settle(forecast)
    assert forecast.state is ForecastState.DISPLAYED


async def test_image_error_swaps_in_placeholder_and_counts_as_ready(forecast, weather):
    weather.image_status = 404

    forecast.display_forecast(PARIS)
    await _settle(forecast)

    assert forecast.forecast_image.get("src") == PLACEHOLDER_IMAGE
    assert forecast.image_ready
    assert forecast.state is ForecastState.DISPLAYED


@pytest.mark.parametrize(
    "attribute, value, expected",
    [
        ("data_status", 503, messages.ERROR_CODE_5XX),
        ("data_status", 404, messages.ERROR_CODE_4XX),
        ("fail_transport", True, messages.BAD_CONNECTION),
        ("raw_body", b"<html>not json</html>", messages.SYNTAX_ERROR),
        ("payload", forecast_payload(start=date(2024, 6, 1)), messages.SYNTAX_ERROR),
        ("payload", forecast_payload(weather="sunny"), messages.SYNTAX_ERROR),
    ],
)
async def test_data_failures_show_a_categorized_dialog(forecast, weather, modal, attribute, value, expected):
    setattr(weather, attribute, value)

    forecast.display_forecast(PARIS)
    await _settle(forecast)

    assert forecast.state is ForecastState.ERROR
    assert modal.is_shown
    assert modal.title == DEFAULT_TITLE
    assert modal.body_text == expected
    assert forecast.forecast_image.get("src") == PLACEHOLDER_IMAGE
    assert not utils.is_hidden(forecast.forecast_image)
    assert utils.is_hidden(forecast.loading_image)
    assert not forecast.panel_displayed


async def test_report_dialog_buttons(forecast, weather, modal, document):
    weather.data_status = 404

    forecast.display_forecast(PARIS)
    await _settle(forecast)

    assert modal.button_labels() == ["Send Report", "Don't Send Report"]
    send = modal.footer_buttons()[0]
    await document.dispatch_event(send, "click")

    assert modal.body_text == REPORT_THANKS
    assert modal.button_labels() == []


async def test_no_selection_shows_dialog(forecast, modal):
    await forecast.handle_display_forecast_click()

    assert modal.title == NO_SELECTION_TITLE
    assert modal.body_text == messages.NO_SELECTION
    assert modal.button_labels() == ["Close"]
    assert forecast.data_task is None


async def test_forecast_for_the_selected_row(forecast, location_list, dom):
    await location_list.add_location_to_list(PARIS, update_backend=False)
    location_list.select("Paris")

    await forecast.handle_display_forecast_click()
    await _settle(forecast)

    assert forecast.state is ForecastState.DISPLAYED
    assert utils.get_text(dom.query_selector("#forecast h3")) == "Forecast: Paris"


async def test_short_forecast_does_not_reuse_previous_cards(forecast, dom, weather, modal):
    weather.payloads[PARIS.lon] = forecast_payload(weather="cloudy")
    weather.payloads[ROME.lon] = forecast_payload(days=2)

    forecast.display_forecast(PARIS)
    await _settle(forecast)
    assert forecast.state is ForecastState.DISPLAYED

    forecast.display_forecast(ROME)
    await _settle(forecast)

    assert forecast.state is ForecastState.ERROR
    assert not forecast.panel_displayed
    assert utils.is_hidden(forecast.carousel)
    assert modal.body_text == messages.SYNTAX_ERROR
