from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from sqlalchemy.orm import Session, sessionmaker

from hweather.client.messages import ERROR_REPORT_PERMISSION_REQUEST
from hweather.settings import AppSettings

logger = logging.getLogger("hweather.api")

LOGIN_URL = "/login"
HOME_URL = "/"

SERVER_ERROR_MESSAGE = f"The server had an error. {ERROR_REPORT_PERMISSION_REQUEST}"
PAGE_ERROR_MESSAGE = f"The page had an error. {ERROR_REPORT_PERMISSION_REQUEST}"


class RedirectRequired(Exception):
    """Raised by a guard; turned into a redirect (pages) or a changeToURL answer (API)."""

    def __init__(self, url: str) -> None:
        super().__init__(url)
        self.url = url


def redirect(request: Request, url: str) -> Response:
    if "/api/" not in request.url.path:
        return RedirectResponse(url, status_code=303)
    return JSONResponse({"changeToURL": url})


def is_logged_in(request: Request) -> bool:
    return bool(request.session.get("is_logged_in"))


def require_login(request: Request) -> None:
    if not is_logged_in(request):
        raise RedirectRequired(LOGIN_URL)


def require_unsigned(request: Request) -> None:
    if is_logged_in(request):
        raise RedirectRequired(HOME_URL)


def sign_in(request: Request, user_id: int, full_name: str) -> None:
    request.session["is_logged_in"] = True
    request.session["full_name"] = full_name
    request.session["user_id"] = user_id


def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_session_factory(request: Request) -> sessionmaker[Session]:
    return request.app.state.session_factory


def render(request: Request, name: str, status_code: int = 200, **context: Any) -> Response:
    templates = request.app.state.templates
    return templates.TemplateResponse(request, name, context, status_code=status_code)
