from __future__ import annotations

import logging
import time

from fastapi import Depends, FastAPI, Request
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from hweather.data import build_engine, build_session_factory, init_db
from hweather.logging_config import setup_logging
from hweather.settings import AppSettings, get_settings

from . import auth, locations
from .deps import RedirectRequired, redirect, render, require_login

logger = logging.getLogger("hweather.api")


def create_app(settings: AppSettings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_dir)

    engine = build_engine(settings.database_url)
    init_db(engine)

    app = FastAPI(
        title="HWeather",
        version="0.1.0",
        description="Personal location list with a seven day forecast.",
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.templates = Jinja2Templates(directory=str(settings.template_dir))

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie="hweather_session",
        max_age=settings.session_max_age,
        same_site="lax",
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("%s %s -> %d (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    @app.exception_handler(RedirectRequired)
    async def redirect_required(request: Request, exc: RedirectRequired) -> Response:
        return redirect(request, exc.url)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> Response:
        if exc.status_code == 404:
            logger.info("couldn't find %s", request.url.path)
        return render(request, "error.html", status_code=exc.status_code, message=exc.detail, status=exc.status_code)

    app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")
    # the placeholder image is referenced relative to the page root
    app.mount("/images", StaticFiles(directory=settings.static_dir / "images"), name="images")

    app.include_router(auth.router)
    app.include_router(locations.router)
    app.include_router(locations.guarded)

    @app.get("/", dependencies=[Depends(require_login)], include_in_schema=False)
    def index(request: Request) -> Response:
        return render(request, "index.html", full_name=request.session.get("full_name", ""))

    logger.info("App ready (database=%s)", engine.url.render_as_string(hide_password=True))
    return app
