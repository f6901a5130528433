"""Small element helpers shared by every page controller (bootstrap classes assumed)."""

from __future__ import annotations

from lxml.html import HtmlElement

HIDDEN_CLASS = "d-none"


def get_trimmed_value(element: HtmlElement) -> str:
    return (element.get("value") or "").strip()


def set_value(element: HtmlElement, value: str) -> None:
    element.set("value", value)


def clear_value(element: HtmlElement) -> None:
    element.set("value", "")


def hide(element: HtmlElement) -> None:
    element.classes.add(HIDDEN_CLASS)


def show(element: HtmlElement) -> None:
    element.classes.discard(HIDDEN_CLASS)


def switch(element: HtmlElement, on: bool) -> None:
    if on:
        show(element)
    else:
        hide(element)


def is_hidden(element: HtmlElement) -> bool:
    return HIDDEN_CLASS in element.classes


def get_text(element: HtmlElement) -> str:
    return element.text_content().strip()


def set_text(element: HtmlElement, text: str) -> None:
    clear_children(element)
    element.text = text


def clear_children(element: HtmlElement) -> None:
    for child in list(element):
        element.remove(child)
    element.text = None
