from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from hweather.data import (
    build_engine,
    build_session_factory,
    create_user,
    find_user_by_credentials,
    find_user_by_email,
    init_db,
    list_locations,
    remove_locations,
    session_scope,
    upsert_location,
)
from hweather.data.models import Location
from hweather.settings import get_settings


@pytest.fixture
def factory(tmp_path):
    engine = build_engine(f"sqlite:///{(tmp_path / 'data.sqlite3').as_posix()}")
    init_db(engine)
    return build_session_factory(engine)


@pytest.fixture
def owner(factory) -> int:
    with session_scope(factory) as session:
        return create_user(session, "ada@example.com", "Ada", "Lovelace", "secret").id


def test_credentials_match_by_equality(factory, owner):
    with session_scope(factory) as session:
        assert find_user_by_credentials(session, "ada@example.com", "secret").id == owner
        assert find_user_by_credentials(session, "ada@example.com", "Secret") is None
        assert find_user_by_email(session, "ada@example.com").full_name == "Ada Lovelace"


def test_emails_are_unique(factory, owner):
    with pytest.raises(IntegrityError):
        with session_scope(factory) as session:
            create_user(session, "ada@example.com", "Other", "Ada", "pw")


def test_upsert_reports_creation(factory, owner):
    with session_scope(factory) as session:
        _, created = upsert_location(session, owner, "Paris", "48.85", "2.35")
        assert created
        location, created = upsert_location(session, owner, "Paris", "48.86", "2.34")
        assert not created
        assert (location.lat, location.lon) == ("48.86", "2.34")

    with session_scope(factory) as session:
        assert [item.to_dict() for item in list_locations(session, owner)] == [
            {"name": "Paris", "lat": "48.86", "lon": "2.34"}
        ]


def test_remove_counts_only_the_owners_rows(factory, owner):
    with session_scope(factory) as session:
        other = create_user(session, "bob@example.com", "Bob", "Stone", "pw").id
        upsert_location(session, owner, "Paris", "48.85", "2.35")
        upsert_location(session, owner, "Rome", "41.9", "12.5")
        upsert_location(session, other, "Paris", "1", "1")

    with session_scope(factory) as session:
        assert remove_locations(session, owner, ["Paris", "Atlantis"]) == 1
        assert remove_locations(session, owner, []) == 0

    with session_scope(factory) as session:
        assert [item.name for item in list_locations(session, owner)] == ["Rome"]
        assert [item.name for item in list_locations(session, other)] == ["Paris"]


def test_location_names_are_unique_per_user(factory, owner):
    with session_scope(factory) as session:
        upsert_location(session, owner, "Paris", "48.85", "2.35")

    with pytest.raises(IntegrityError):
        with session_scope(factory) as session:
            session.add(Location(name="Paris", lat="1", lon="1", user_id=owner))

    with session_scope(factory) as session:
        assert remove_locations(session, owner, ["Paris"]) == 1


def test_settings_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_ROOT", str(tmp_path / "state"))
    monkeypatch.setenv("SESSION_MAX_AGE", "120")
    monkeypatch.setenv("WEATHER_API_URL", "http://weather.test/api.pl")
    monkeypatch.delenv("DATABASE_URL", raising=False)

    settings = get_settings(api_port=9000)

    assert settings.session_max_age == 120
    assert settings.api_port == 9000
    assert settings.weather_api_url == "http://weather.test/api.pl"
    assert settings.database_url.endswith("state/hweather.sqlite3")
    assert settings.log_dir.is_dir()
    assert (settings.template_dir / "index.html").is_file()


def test_settings_reject_empty_secrets(tmp_path):
    with pytest.raises(RuntimeError):
        get_settings(data_root=tmp_path, session_secret="")
