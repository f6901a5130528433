from .db import (
    Base,
    build_engine,
    build_session_factory,
    init_db,
    session_scope,
)
from .locations import (
    find_location,
    list_locations,
    remove_locations,
    upsert_location,
)
from .models import Location, User
from .users import (
    create_user,
    find_user_by_credentials,
    find_user_by_email,
)

__all__ = [
    "Base",
    "build_engine",
    "build_session_factory",
    "init_db",
    "session_scope",
    "find_location",
    "list_locations",
    "remove_locations",
    "upsert_location",
    "Location",
    "User",
    "create_user",
    "find_user_by_credentials",
    "find_user_by_email",
]
