from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import asdict, dataclass
import logging
from typing import Any

from lxml.html import HtmlElement

from . import utils
from .api_client import ApiClient
from .dom import DomAccess, Event
from .errors import AccessDenied, FatalInvariantError, MalformedResponseError, RequestCancelled
from .modal import ModalDialog

logger = logging.getLogger("hweather.client.locations")

PROBLEM_TITLE = "We have a problem"

NAME_BUTTON_CLASSES = ("col-11", "p-2", "pl-3", "text-muted", "border", "name-btn")
DELETE_BUTTON_CLASSES = ("col-1", "p-2", "text-center", "border", "border-left-0", "delete-btn")
SELECTED_CLASSES = ("selected", "bg-primary", "text-light")


@dataclass(slots=True)
class Location:
    name: str
    lat: str
    lon: str

    def to_payload(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Location":
        return cls(name=str(payload["name"]), lat=str(payload["lat"]), lon=str(payload["lon"]))


def _set_class(element: HtmlElement, class_name: str, on: bool) -> None:
    if on:
        element.classes.add(class_name)
    else:
        element.classes.discard(class_name)


class LocationListController:
    """Keeps the in-memory location map and the rendered list in step.

    The row for a name is created once; re-adding the same name only replaces
    the stored coordinates.
    """

    def __init__(self, dom: DomAccess, api: ApiClient, modal: ModalDialog) -> None:
        self.dom = dom
        self.api = api
        self.modal = modal
        self.locations: dict[str, Location] = {}
        # set by the page so list failures also reset the forecast panel
        self.on_problem: Callable[[], None] | None = None

    # -- elements -------------------------------------------------------------

    @property
    def rows_container(self) -> HtmlElement:
        return self.dom.query_selector("#locations-container div.locations")

    @property
    def placeholder(self) -> HtmlElement:
        return self.dom.query_selector("#locations-container p")

    @property
    def clear_button(self) -> HtmlElement:
        return self.dom.query_selector("#locations-container button.clear")

    @property
    def details(self) -> HtmlElement:
        return self.dom.query_selector("#locations-container div.location-details")

    def rows(self) -> list[HtmlElement]:
        return list(self.rows_container)

    def row_names(self) -> list[str]:
        return [utils.get_text(row[0]) for row in self.rows()]

    def find_row(self, name: str) -> HtmlElement | None:
        for row in self.rows():
            if utils.get_text(row[0]) == name:
                return row
        return None

    def selected_name(self) -> str | None:
        selected = self.dom.query_selector("#locations-container div.selected", refresh=True)
        return utils.get_text(selected) if selected is not None else None

    # -- errors ---------------------------------------------------------------

    def on_error_use_message(self, error: Exception) -> None:
        if isinstance(error, (AccessDenied, RequestCancelled)):
            # navigation already requested, or nothing to report
            return
        if self.on_problem is not None:
            self.on_problem()
        message = getattr(error, "message", None) or str(error)
        self.modal.display_message(message, PROBLEM_TITLE)

    # -- add ------------------------------------------------------------------

    async def add_location_to_list(self, location: Location, update_backend: bool = True) -> None:
        def apply(response: dict[str, Any] | None = None) -> None:
            self.locations[location.name] = location
            self._add_location_to_dom(location)
            utils.show(self.clear_button)

            if response and "updated" in str(response.get("message", "")):
                self.modal.display_message("Location updated successfully.", "Success")

        if update_backend:
            await self.api.add_location(location.to_payload(), apply, self.on_error_use_message)
        else:
            apply()

    def _add_location_to_dom(self, location: Location) -> None:
        if self.find_row(location.name) is not None:
            return

        utils.hide(self.placeholder)

        row = self.dom.create_element("div")
        row.classes.update(("row", "no-gutters"))
        name_button = self._create_name_button(location)
        delete_button = self._create_delete_button(row)
        self._set_mouse_events_or_static_colors(delete_button, name_button)

        row.append(name_button)
        row.append(delete_button)
        self.rows_container.append(row)
        self._restyle_rows()

        utils.show(self.rows_container)

    def _create_name_button(self, location: Location) -> HtmlElement:
        name_button = self.dom.create_element("div")
        name_button.classes.update(NAME_BUTTON_CLASSES)
        name_button.text = location.name
        self.dom.document.add_event_listener(name_button, "click", self._handle_name_click)
        return name_button

    def _create_delete_button(self, row: HtmlElement) -> HtmlElement:
        delete_button = self.dom.create_element("div")
        delete_button.classes.update(DELETE_BUTTON_CLASSES)
        delete_button.text = "X"

        async def handle_click(_event: Event) -> None:
            await self.remove_locations_by_names([utils.get_text(row[0])])

        self.dom.document.add_event_listener(delete_button, "click", handle_click)
        return delete_button

    def _set_mouse_events_or_static_colors(self, delete_button: HtmlElement, name_button: HtmlElement) -> None:
        document = self.dom.document
        if document.touch_screen:
            delete_button.classes.add("bg-danger")
            return

        document.add_event_listener(delete_button, "mouseover", lambda _e: delete_button.classes.add("bg-danger"))
        document.add_event_listener(delete_button, "mouseout", lambda _e: delete_button.classes.discard("bg-danger"))

        def name_over(_event: Event) -> None:
            if "bg-primary" not in name_button.classes:
                name_button.classes.add("bg-light")

        document.add_event_listener(name_button, "mouseover", name_over)
        document.add_event_listener(name_button, "mouseout", lambda _e: name_button.classes.discard("bg-light"))

    def _restyle_rows(self) -> None:
        # only the outer corners of the list are rounded; only the first row has a top border
        rows = self.rows()
        last_index = len(rows) - 1
        for index, row in enumerate(rows):
            name_button, delete_button = row[0], row[1]
            first = index == 0
            last = index == last_index
            for button in (name_button, delete_button):
                _set_class(button, "border-top-0", not first)
            _set_class(name_button, "rounded-top-left", first)
            _set_class(delete_button, "rounded-top-right", first)
            _set_class(name_button, "rounded-bottom-left", last)
            _set_class(delete_button, "rounded-bottom-right", last)

    # -- remove ---------------------------------------------------------------

    @staticmethod
    def _check_rows_deleted(names: Sequence[str], response: dict[str, Any]) -> None:
        rows_deleted = response.get("rowsDeleted")
        if not isinstance(rows_deleted, int) or isinstance(rows_deleted, bool):
            raise MalformedResponseError(f"Missing rowsDeleted in response: {response!r}")
        if rows_deleted != len(names):
            raise FatalInvariantError(
                f"Error on deleting location: rowsDeleted={rows_deleted}, number of names={len(names)}"
            )

    async def remove_locations_by_names(self, names: Sequence[str]) -> None:
        names = list(names)

        def apply(response: dict[str, Any]) -> None:
            self._remove_from_list(names)
            self._check_rows_deleted(names, response)

        await self.api.remove_locations_by_names(apply, self.on_error_use_message, names)

    def _remove_from_list(self, names: Iterable[str]) -> None:
        selected = self.selected_name()
        for name in names:
            self.locations.pop(name, None)
            row = self.find_row(name)
            if row is not None:
                self.rows_container.remove(row)
            if name == selected:
                utils.hide(self.details)

        self._restyle_rows()
        if not self.rows():
            utils.show(self.placeholder)
            utils.hide(self.clear_button)

    async def clear_list(self) -> None:
        names = self.row_names()

        def apply(response: dict[str, Any]) -> None:
            utils.clear_children(self.rows_container)
            self.locations.clear()
            utils.show(self.placeholder)
            utils.hide(self.clear_button)
            utils.hide(self.details)
            self._check_rows_deleted(names, response)

        await self.api.remove_locations_by_names(apply, self.on_error_use_message, names)

    # -- selection ------------------------------------------------------------

    def _handle_name_click(self, event: Event) -> None:
        self.select_row(event.target)

    def select(self, name: str) -> None:
        row = self.find_row(name)
        if row is None:
            raise KeyError(name)
        self.select_row(row[0])

    def select_row(self, name_button: HtmlElement) -> None:
        # deselect every row, not just the previous selection
        for button in self.rows_container.find_class("name-btn"):
            for class_name in SELECTED_CLASSES:
                button.classes.discard(class_name)
            button.classes.add("text-muted")

        name_button.classes.update(SELECTED_CLASSES)
        name_button.classes.discard("text-muted")
        self.display_location_details(utils.get_text(name_button))

    def display_location_details(self, name: str) -> None:
        location = self.locations[name]
        children = list(self.details)
        utils.set_text(children[0], name)
        utils.set_text(children[1], f"{location.lat}, {location.lon}")
        utils.show(self.details)
