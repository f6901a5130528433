from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from hweather.data import list_locations, remove_locations, session_scope, upsert_location

from .deps import HOME_URL, LOGIN_URL, get_session_factory, is_logged_in, redirect, require_login

logger = logging.getLogger("hweather.api.locations")

router = APIRouter(prefix="/api")
guarded = APIRouter(prefix="/api", dependencies=[Depends(require_login)])


class LocationIn(BaseModel):
    name: str
    lat: str
    lon: str


class RemoveIn(BaseModel):
    locationNames: list[str] = Field(default_factory=list)


def _store_location(factory: sessionmaker[Session], user_id: int, body: LocationIn) -> bool:
    try:
        with session_scope(factory) as session:
            return upsert_location(session, user_id, body.name, body.lat, body.lon)[1]
    except IntegrityError:
        # a concurrent request stored the same name first
        logger.warning("Retrying add-location of %r for user %s as an update", body.name, user_id)

    with session_scope(factory) as session:
        return upsert_location(session, user_id, body.name, body.lat, body.lon)[1]


def _api_logout(request: Request) -> JSONResponse:
    request.session.clear()
    return JSONResponse({"changeToURL": LOGIN_URL})


@router.get("/", include_in_schema=False)
def api_root(request: Request) -> Response:
    return redirect(request, HOME_URL if is_logged_in(request) else LOGIN_URL)


@guarded.get("/add-location", include_in_schema=False)
@guarded.get("/remove-locations", include_in_schema=False)
def post_only() -> RedirectResponse:
    return RedirectResponse(HOME_URL, status_code=303)


@guarded.post("/add-location")
def add_location(
    request: Request,
    body: LocationIn,
    factory: sessionmaker[Session] = Depends(get_session_factory),
) -> Response:
    user_id = request.session["user_id"]
    try:
        created = _store_location(factory, user_id, body)
    except SQLAlchemyError:
        logger.exception("add-location failed for user %s", user_id)
        return _api_logout(request)

    return JSONResponse({"message": "Location added." if created else "Location updated."})


@guarded.post("/remove-locations")
def remove_locations_route(
    request: Request,
    body: RemoveIn,
    factory: sessionmaker[Session] = Depends(get_session_factory),
) -> Response:
    user_id = request.session["user_id"]
    names = body.locationNames
    try:
        with session_scope(factory) as session:
            rows_deleted = remove_locations(session, user_id, names)
    except SQLAlchemyError:
        logger.exception("remove-locations failed for user %s", user_id)
        return _api_logout(request)

    if rows_deleted != len(names):
        # duplicate names in the list, or names that were never stored
        logger.error("Error on deleting location: rowsDeleted=%d, number of names=%d", rows_deleted, len(names))

    message = "Locations deleted." if rows_deleted > 0 else "Locations don't exist in list."
    return JSONResponse({"message": message, "rowsDeleted": rows_deleted})


@guarded.get("/get-locations")
def get_locations(
    request: Request,
    factory: sessionmaker[Session] = Depends(get_session_factory),
) -> Response:
    user_id = request.session["user_id"]
    try:
        with session_scope(factory) as session:
            locations = [location.to_dict() for location in list_locations(session, user_id)]
    except SQLAlchemyError:
        logger.exception("get-locations failed for user %s", user_id)
        return _api_logout(request)

    return JSONResponse({"locations": locations})
