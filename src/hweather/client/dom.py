"""
Page document and memoizing DOM access.

`Document` wraps an lxml.html tree and adds the event plumbing a browser
would provide (listeners per element and event type, awaited in order of
registration). `DomAccess` sits on top of it and caches lookups by key:
repeated lookups are answered from the cache until the caller asks for a
refresh. Lookups by id are never cached.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass, field
import inspect
import itertools
from typing import Any, Generic, TypeVar, Union

import lxml.html
from lxml.html import HtmlElement

LISTENER_KEY_ATTR = "data-listener-key"
DOCUMENT_KEY = "#document"

T = TypeVar("T")


@dataclass(slots=True)
class Event:
    type: str
    target: Any = None
    detail: dict[str, Any] = field(default_factory=dict)
    default_prevented: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True


Listener = Callable[[Event], Union[Awaitable[None], None]]
EventTarget = Union[HtmlElement, "Document"]


class Document:
    def __init__(self, root: HtmlElement, touch_screen: bool = False) -> None:
        self.root = root
        self.touch_screen = touch_screen
        self.location: str | None = None
        self._listeners: dict[tuple[str, str], list[Listener]] = {}
        self._key_counter = itertools.count(1)

    @classmethod
    def from_html(cls, markup: str, touch_screen: bool = False) -> "Document":
        return cls(lxml.html.document_fromstring(markup), touch_screen=touch_screen)

    @property
    def title(self) -> str:
        return (self.root.findtext(".//title") or "").strip()

    def get_element_by_id(self, element_id: str) -> HtmlElement | None:
        return self.root.get_element_by_id(element_id, None)

    def query_selector_all(self, selector: str, scope: HtmlElement | None = None) -> list[HtmlElement]:
        return list((scope if scope is not None else self.root).cssselect(selector))

    def get_elements_by_class_name(self, class_name: str, scope: HtmlElement | None = None) -> list[HtmlElement]:
        return list((scope if scope is not None else self.root).find_class(class_name))

    def create_element(self, tag: str) -> HtmlElement:
        return lxml.html.Element(tag)

    def navigate(self, url: str) -> None:
        self.location = url

    def _target_key(self, target: EventTarget, create: bool) -> str | None:
        if target is self:
            return DOCUMENT_KEY
        key = target.get(LISTENER_KEY_ATTR)
        if key is None and create:
            key = str(next(self._key_counter))
            target.set(LISTENER_KEY_ATTR, key)
        return key

    def add_event_listener(self, target: EventTarget, event_type: str, listener: Listener) -> None:
        key = self._target_key(target, create=True)
        self._listeners.setdefault((key, event_type), []).append(listener)

    def has_listeners(self, target: EventTarget, event_type: str) -> bool:
        key = self._target_key(target, create=False)
        return key is not None and bool(self._listeners.get((key, event_type)))

    async def dispatch_event(self, target: EventTarget, event: Event | str) -> Event:
        if isinstance(event, str):
            event = Event(type=event)
        event.target = target

        key = self._target_key(target, create=False)
        if key is None:
            return event

        for listener in list(self._listeners.get((key, event.type), [])):
            result = listener(event)
            if inspect.isawaitable(result):
                await result
        return event

    def to_html(self) -> str:
        return lxml.html.tostring(self.root, encoding="unicode", doctype="<!DOCTYPE html>")


class KeyedCache(Generic[T]):
    """Mapping from lookup key to a resolved handle, filled on demand."""

    def __init__(self) -> None:
        self._items: dict[Hashable, T] = {}

    def get(self, key: Hashable, loader: Callable[[Hashable], T], refresh: bool = False) -> T:
        if refresh or key not in self._items:
            self._items[key] = loader(key)
        return self._items[key]

    def invalidate(self, key: Hashable | None = None) -> None:
        if key is None:
            self._items.clear()
        else:
            self._items.pop(key, None)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)


class DomAccess:
    """Memoizing accessor over a `Document`.

    Assumes a single form with id ``form`` holding every input of the page, and
    that each input's error element is the only ``.error-message`` inside the
    input's parent.
    """

    FORM_ID = "form"
    ERROR_CLASS = "error-message"
    _INPUTS_KEY = "inputs"

    def __init__(self, document: Document) -> None:
        self.document = document
        self._error_elements: KeyedCache[HtmlElement | None] = KeyedCache()
        self._inputs: KeyedCache[list[HtmlElement]] = KeyedCache()
        self._by_class: KeyedCache[list[HtmlElement]] = KeyedCache()
        self._by_selector: KeyedCache[list[HtmlElement]] = KeyedCache()

    def get_element_by_id(self, element_id: str) -> HtmlElement | None:
        return self.document.get_element_by_id(element_id)

    def get_error_element(self, input_id: str, refresh: bool = False) -> HtmlElement | None:
        def load(key: Hashable) -> HtmlElement | None:
            input_element = self.get_element_by_id(str(key))
            if input_element is None:
                return None
            parent = input_element.getparent()
            matches = self.document.get_elements_by_class_name(self.ERROR_CLASS, scope=parent)
            return matches[0] if matches else None

        return self._error_elements.get(input_id, load, refresh)

    def _load_inputs(self, _key: Hashable) -> list[HtmlElement]:
        form = self.get_element_by_id(self.FORM_ID)
        if form is None:
            return []
        return list(form.iter("input"))

    def get_input_by_name(self, name: str, refresh: bool = False) -> HtmlElement | None:
        inputs = self._inputs.get(self._INPUTS_KEY, self._load_inputs, refresh)
        for element in inputs:
            if element.get("name") == name:
                return element
        return None

    def get_elements_by_class_name(self, class_name: str, refresh: bool = False) -> list[HtmlElement]:
        return self._by_class.get(class_name, lambda key: self.document.get_elements_by_class_name(str(key)), refresh)

    def query_selector_all(self, selector: str, refresh: bool = False) -> list[HtmlElement]:
        return self._by_selector.get(selector, lambda key: self.document.query_selector_all(str(key)), refresh)

    def query_selector(self, selector: str, refresh: bool = False) -> HtmlElement | None:
        matches = self.query_selector_all(selector, refresh)
        return matches[0] if matches else None

    def create_element(self, tag: str) -> HtmlElement:
        return self.document.create_element(tag)

    def add_event_listener_to_document(self, event_type: str, listener: Listener) -> None:
        self.document.add_event_listener(self.document, event_type, listener)
