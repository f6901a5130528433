"""Wiring of the login, register and choose-password pages."""

from __future__ import annotations

import logging

import httpx
from lxml.html import HtmlElement

from . import utils
from .dom import Document, DomAccess, Event
from .errors import ValidationError
from .messages import asks_for_report
from .modal import REPORT_THANKS, ModalDialog

logger = logging.getLogger("hweather.client.auth_page")

PASSWORD_INDEX = 0
CONFIRM_INDEX = 1
PASSWORDS_DIFFER = "Passwords don't match."


class AuthPage:
    def __init__(self, document: Document, path: str = "/login") -> None:
        self.document = document
        self.path = path
        self.dom = DomAccess(document)
        self.modal = ModalDialog(self.dom)
        self.dom.add_event_listener_to_document("DOMContentLoaded", self.init)

    async def open(self) -> None:
        await self.document.dispatch_event(self.document, "DOMContentLoaded")

    @property
    def showing_register_form(self) -> bool:
        return not utils.is_hidden(self.dom.get_element_by_id("registerform"))

    # -- login / register toggle ---------------------------------------------

    def switch_to_register_form(self, event: Event) -> None:
        for form_id in ("loginform", "registerform"):
            form = self.dom.get_element_by_id(form_id)
            utils.switch(form, utils.is_hidden(form))
        event.prevent_default()

    # -- password form --------------------------------------------------------

    def validate_password_form(self) -> None:
        inputs = self.dom.query_selector_all("#passwordform input:not(.submit)")
        password = utils.get_trimmed_value(inputs[PASSWORD_INDEX])
        confirm = inputs[CONFIRM_INDEX]

        error_element = self.dom.get_error_element(confirm.get("id"))
        if utils.get_trimmed_value(confirm) == password:
            utils.hide(error_element)
            return

        utils.show(error_element)
        raise ValidationError(confirm.get("id"), utils.get_text(error_element) or PASSWORDS_DIFFER)

    def handle_password_submit(self, event: Event) -> None:
        try:
            self.validate_password_form()
        except ValidationError as exc:
            logger.debug("Password form rejected: %s", exc.message)
            event.prevent_default()

    # -- modal ----------------------------------------------------------------

    def _footers(self) -> list[HtmlElement]:
        return self.dom.query_selector_all("#error-modal .modal-footer")

    def handle_confirm_click(self, _event: Event) -> None:
        # cosmetic: nothing is transmitted
        for footer in self._footers():
            utils.clear_children(footer)
        utils.set_text(self.dom.query_selector("#error-modal div.modal-body"), REPORT_THANKS)

    def init_modal(self) -> None:
        if self.dom.get_element_by_id("error-modal") is None:
            return

        confirm = self.dom.query_selector("#error-modal .confirm")
        if confirm is not None:
            self.document.add_event_listener(confirm, "click", self.handle_confirm_click)

        report_footer, close_footer = self._footers()[:2]
        wants_report = asks_for_report(self.modal.body_text)
        utils.switch(report_footer, wants_report)
        utils.switch(close_footer, not wants_report)

    def init_login(self) -> None:
        register_link = self.dom.query_selector("#loginform a")
        if register_link is not None:
            self.document.add_event_listener(register_link, "click", self.switch_to_register_form)

    def init_register(self) -> None:
        title = self.document.title
        if "Choose Password" in title:
            submit = self.dom.query_selector("#passwordform input.submit")
            self.document.add_event_listener(submit, "click", self.handle_password_submit)
        elif "Register" in title:
            self.modal.show()

    async def init(self, _event: Event | None = None) -> None:
        self.init_modal()
        self.init_login()
        self.init_register()
        if self.path == "/authenticate" and self.modal.body_text:
            self.modal.show()


def page_from_response(response: httpx.Response) -> AuthPage:
    return AuthPage(Document.from_html(response.text), path=response.request.url.path)
