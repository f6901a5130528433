from __future__ import annotations

import logging

from lxml.html import HtmlElement

from . import utils
from .dom import DomAccess, Event
from .messages import asks_for_report

logger = logging.getLogger("hweather.client.modal")

DEFAULT_TITLE = "Couldn't Get Forecast"
REPORT_THANKS = "Thank you for the report."


class ModalDialog:
    """The page's single `#error-modal` dialog."""

    def __init__(self, dom: DomAccess, selector: str = "#error-modal") -> None:
        self.dom = dom
        self.selector = selector

    @property
    def element(self) -> HtmlElement:
        element = self.dom.query_selector(self.selector)
        if element is None:
            raise LookupError(f"No modal matches {self.selector!r}")
        return element

    def _part(self, css: str) -> HtmlElement:
        return self.dom.query_selector(f"{self.selector} {css}")

    @property
    def is_shown(self) -> bool:
        return not utils.is_hidden(self.element)

    @property
    def title(self) -> str:
        return utils.get_text(self._part(".modal-title"))

    @property
    def body_text(self) -> str:
        return utils.get_text(self._part("div.modal-body"))

    def button_labels(self) -> list[str]:
        return [utils.get_text(button) for button in self._part("div.modal-footer").iter("button")]

    def show(self) -> None:
        utils.show(self.element)
        self.element.classes.add("show")

    def hide(self) -> None:
        self.element.classes.discard("show")
        utils.hide(self.element)

    def display_message(self, message: str, title: str = DEFAULT_TITLE) -> None:
        utils.set_text(self._part(".modal-title"), title)
        utils.set_text(self._part("div.modal-body"), message)
        self._set_buttons(message)
        self.show()
        logger.info("Dialog %r: %s", title, message)

    def _create_button(self, style: str = "neutral") -> HtmlElement:
        button = self.dom.create_element("button")
        button.set("type", "button")
        button.classes.add("btn")
        if style == "neutral":
            button.classes.add("btn-secondary")
        elif style == "confirm":
            button.classes.add("btn-success")
        else:
            button.classes.add("btn-danger")

        if style in ("neutral", "deny"):
            button.set("data-dismiss", "modal")
            self.dom.document.add_event_listener(button, "click", self._dismiss)
        return button

    def _dismiss(self, _event: Event) -> None:
        self.hide()

    def _send_report(self, _event: Event) -> None:
        # cosmetic: nothing is transmitted
        utils.clear_children(self._part("div.modal-footer"))
        utils.set_text(self._part("div.modal-body"), REPORT_THANKS)

    def _set_buttons(self, message: str) -> None:
        footer = self._part("div.modal-footer")
        utils.clear_children(footer)

        if asks_for_report(message):
            confirm = self._create_button("confirm")
            confirm.text = "Send Report"
            self.dom.document.add_event_listener(confirm, "click", self._send_report)
            footer.append(confirm)

            deny = self._create_button("deny")
            deny.text = "Don't Send Report"
            footer.append(deny)

            self.element.set("data-backdrop", "static")
        else:
            close = self._create_button()
            close.text = "Close"
            footer.append(close)
            self.element.set("data-backdrop", "true")

    def footer_buttons(self) -> list[HtmlElement]:
        return list(self._part("div.modal-footer").iter("button"))
