from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from .models import Location


def list_locations(session: Session, user_id: int) -> list[Location]:
    stmt = select(Location).where(Location.user_id == user_id).order_by(Location.id)
    return list(session.scalars(stmt))


def find_location(session: Session, user_id: int, name: str) -> Location | None:
    stmt = select(Location).where(Location.user_id == user_id, Location.name == name)
    return session.scalars(stmt).first()


def upsert_location(session: Session, user_id: int, name: str, lat: str, lon: str) -> tuple[Location, bool]:
    """Replace lat/lon of the user's location with this name, or create it.

    Returns the row and whether it was created.
    """
    location = find_location(session, user_id, name)
    if location is not None:
        location.lat = lat
        location.lon = lon
        session.flush()
        return location, False

    location = Location(name=name, lat=lat, lon=lon, user_id=user_id)
    session.add(location)
    session.flush()
    return location, True


def remove_locations(session: Session, user_id: int, names: Sequence[str]) -> int:
    if not names:
        return 0
    stmt = delete(Location).where(Location.user_id == user_id, Location.name.in_(list(names)))
    result = session.execute(stmt)
    return int(result.rowcount or 0)
