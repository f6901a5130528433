from __future__ import annotations

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse, Response
from itsdangerous import BadSignature, TimestampSigner
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from hweather.data import create_user, find_user_by_credentials, find_user_by_email, session_scope
from hweather.settings import AppSettings

from .deps import (
    HOME_URL,
    LOGIN_URL,
    PAGE_ERROR_MESSAGE,
    SERVER_ERROR_MESSAGE,
    get_session_factory,
    get_settings,
    render,
    require_login,
    require_unsigned,
    sign_in,
)

logger = logging.getLogger("hweather.api.auth")

REGISTER_COOKIE = "RegisterStart"

router = APIRouter()


def _register_signer(settings: AppSettings) -> TimestampSigner:
    return TimestampSigner(settings.register_secret, salt="hweather.register")


def _login_page(request: Request, status_code: int = 200, opmode: str = "login", **context: object) -> Response:
    return render(request, "login.html", status_code=status_code, opmode=opmode, **context)


@router.get("/login", dependencies=[Depends(require_unsigned)], include_in_schema=False)
def login_page(request: Request) -> Response:
    return _login_page(request)


@router.get("/authenticate", dependencies=[Depends(require_unsigned)], include_in_schema=False)
def authenticate_get() -> RedirectResponse:
    return RedirectResponse(LOGIN_URL, status_code=303)


@router.post("/authenticate", dependencies=[Depends(require_unsigned)], include_in_schema=False)
def authenticate(
    request: Request,
    email: str = Form(default=""),
    password: str = Form(default=""),
    factory: sessionmaker[Session] = Depends(get_session_factory),
) -> Response:
    try:
        with session_scope(factory) as session:
            user = find_user_by_credentials(session, email, password)
            found = (user.id, user.full_name) if user is not None else None
    except SQLAlchemyError:
        logger.exception("Login lookup failed for %s", email)
        return _login_page(request, 500, modal_title="Login Failed", message=SERVER_ERROR_MESSAGE)

    if found is None:
        logger.info("Rejected login for %s", email)
        return _login_page(request, 400, modal_title="Login Failed", message="Email or password is incorrect.")

    sign_in(request, *found)
    logger.info("User %s signed in", found[0])
    return RedirectResponse(HOME_URL, status_code=303)


@router.get("/register", dependencies=[Depends(require_unsigned)], include_in_schema=False)
def register_get() -> RedirectResponse:
    return RedirectResponse(LOGIN_URL, status_code=303)


@router.post("/register", dependencies=[Depends(require_unsigned)], include_in_schema=False)
def register(
    request: Request,
    email: str = Form(default=""),
    first_name: str = Form(default=""),
    last_name: str = Form(default=""),
    password: str = Form(default=""),
    confirm_password: str = Form(default=""),
    settings: AppSettings = Depends(get_settings),
    factory: sessionmaker[Session] = Depends(get_session_factory),
) -> Response:
    if email:
        return _register_step1(request, settings, factory, email, first_name, last_name)
    if password:
        return _register_step2(request, settings, factory, password, confirm_password)

    logger.error("Register request carried neither email nor password")
    return _login_page(request, 400, opmode="register", modal_title="Login Failed", message=PAGE_ERROR_MESSAGE)


def _register_step1(
    request: Request,
    settings: AppSettings,
    factory: sessionmaker[Session],
    email: str,
    first_name: str,
    last_name: str,
) -> Response:
    try:
        with session_scope(factory) as session:
            taken = find_user_by_email(session, email) is not None
    except SQLAlchemyError:
        logger.exception("Register step 1 failed for %s", email)
        return _login_page(request, 500, opmode="register", modal_title="Login Failed", message=SERVER_ERROR_MESSAGE)

    if taken:
        return _login_page(
            request,
            opmode="register",
            modal_title="Registration Failed",
            message=f"{email} is already in use. Please choose another email address.",
        )

    request.session["credentials"] = {"email": email, "first_name": first_name, "last_name": last_name}
    response = render(request, "password.html")
    started = datetime.now(tz=timezone.utc).isoformat()
    response.set_cookie(
        REGISTER_COOKIE,
        _register_signer(settings).sign(started).decode("utf-8"),
        max_age=settings.register_window_seconds,
        httponly=True,
    )
    return response


def _registration_expired(request: Request, settings: AppSettings) -> bool:
    token = request.cookies.get(REGISTER_COOKIE)
    if not token or not request.session.get("credentials"):
        return True
    try:
        _register_signer(settings).unsign(token, max_age=settings.register_window_seconds)
    except BadSignature:
        # also covers SignatureExpired
        return True
    return False


def _register_step2(
    request: Request,
    settings: AppSettings,
    factory: sessionmaker[Session],
    password: str,
    confirm_password: str,
) -> Response:
    if _registration_expired(request, settings):
        return _login_page(request, opmode="register", modal_title="Registration expired.", message="Please start over.")

    if password != confirm_password:
        return _login_page(request, 400, opmode="register", modal_title="Login Failed", message="Passwords don't match.")

    credentials = request.session["credentials"]
    try:
        with session_scope(factory) as session:
            user = create_user(
                session,
                email=credentials["email"],
                first_name=credentials["first_name"],
                last_name=credentials["last_name"],
                password=password,
            )
            full_name = user.full_name
    except SQLAlchemyError:
        logger.exception("Register step 2 failed for %s", credentials.get("email"))
        return _login_page(request, 500, opmode="register", modal_title="Login Failed", message=SERVER_ERROR_MESSAGE)

    request.session.pop("credentials", None)
    logger.info("Registered %s", credentials["email"])
    response = render(request, "welcome.html", full_name=full_name)
    response.delete_cookie(REGISTER_COOKIE)
    return response


@router.get("/logout", dependencies=[Depends(require_login)], include_in_schema=False)
def logout(request: Request) -> Response:
    request.session.clear()
    return render(request, "logout.html")
