from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_WEATHER_API_URL = "http://www.7timer.info/bin/api.pl"
DEFAULT_WEATHER_IMAGE_URL = "http://www.7timer.info/bin/astro.php"


@dataclass(slots=True)
class AppSettings:
    project_root: Path
    data_root: Path
    database_url: str
    session_secret: str
    register_secret: str
    session_max_age: int
    register_window_seconds: int
    api_host: str
    api_port: int
    log_level: str
    weather_api_url: str
    weather_image_url: str

    @property
    def log_dir(self) -> Path:
        return self.data_root / "logs"

    @property
    def template_dir(self) -> Path:
        return Path(__file__).resolve().parent / "templates"

    @property
    def static_dir(self) -> Path:
        return Path(__file__).resolve().parent / "static"

    def ensure_directories(self) -> None:
        for folder in (self.data_root, self.log_dir):
            folder.mkdir(parents=True, exist_ok=True)

    def validate_secrets(self) -> None:
        if not self.session_secret or not self.register_secret:
            raise RuntimeError("SESSION_SECRET and REGISTER_SECRET must not be empty.")


def get_settings(**overrides: object) -> AppSettings:
    default_root = Path(__file__).resolve().parents[2]
    project_root_env = os.getenv("PROJECT_ROOT")
    project_root = Path(project_root_env) if project_root_env else default_root

    data_root = Path(os.getenv("DATA_ROOT", project_root / "data"))
    database_url = os.getenv("DATABASE_URL", f"sqlite:///{(data_root / 'hweather.sqlite3').as_posix()}")

    values: dict[str, object] = {
        "project_root": project_root,
        "data_root": data_root,
        "database_url": database_url,
        "session_secret": os.getenv("SESSION_SECRET", "change-me-session-secret"),
        "register_secret": os.getenv("REGISTER_SECRET", "change-me-register-secret"),
        "session_max_age": int(os.getenv("SESSION_MAX_AGE", "60")),
        "register_window_seconds": int(os.getenv("REGISTER_WINDOW_SECONDS", "60")),
        "api_host": os.getenv("API_HOST", "0.0.0.0"),
        "api_port": int(os.getenv("API_PORT", "8000")),
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "weather_api_url": os.getenv("WEATHER_API_URL", DEFAULT_WEATHER_API_URL),
        "weather_image_url": os.getenv("WEATHER_IMAGE_URL", DEFAULT_WEATHER_IMAGE_URL),
    }
    values.update(overrides)

    settings = AppSettings(**values)  # type: ignore[arg-type]
    settings.ensure_directories()
    settings.validate_secrets()
    return settings
