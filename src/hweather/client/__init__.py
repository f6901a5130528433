from .ajax import CancellationSignal, CancellationSource, RequestCoordinator, run_cancellable
from .api_client import ApiClient
from .auth_page import AuthPage
from .dom import Document, DomAccess, Event, KeyedCache
from .errors import (
    AccessDenied,
    ClientError,
    FatalInvariantError,
    HttpStatusError,
    InvalidForecastData,
    MalformedResponseError,
    NetworkError,
    RequestCancelled,
    RequestError,
    ValidationError,
)
from .forecast import ForecastController, ForecastDay, ForecastState, ImageLoader, parse_forecast
from .locations import Location, LocationListController
from .modal import ModalDialog
from .page import HWeatherPage, load_page

__all__ = [
    "CancellationSignal",
    "CancellationSource",
    "RequestCoordinator",
    "run_cancellable",
    "ApiClient",
    "AuthPage",
    "Document",
    "DomAccess",
    "Event",
    "KeyedCache",
    "AccessDenied",
    "ClientError",
    "FatalInvariantError",
    "HttpStatusError",
    "InvalidForecastData",
    "MalformedResponseError",
    "NetworkError",
    "RequestCancelled",
    "RequestError",
    "ValidationError",
    "ForecastController",
    "ForecastDay",
    "ForecastState",
    "ImageLoader",
    "parse_forecast",
    "Location",
    "LocationListController",
    "ModalDialog",
    "HWeatherPage",
    "load_page",
]
