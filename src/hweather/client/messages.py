from __future__ import annotations

from .validation import ErrorSummary

ERROR_REPORT_PERMISSION_REQUEST = "With your permission, we would like to send our developers an error report."

NAME_MISSING = "Name is required"
LAT_MISSING = "Latitude is required"
LON_MISSING = "Longitude is required"
NOT_DECIMAL = "Value must be a decimal number: only digits, a single minus and a single dot are allowed."
LAT_NOT_IN_RANGE = "Value must be a decimal between -90.0 and 90.0"
LON_NOT_IN_RANGE = "Value must be a decimal between -180.0 and 180.0"

BAD_CONNECTION = (
    "We couldn't connect to the weather service. This may happen if your device is not connected to the internet,"
    " or if the service is down, or for other network problems."
)
ERROR_CODE_4XX = f"There is a problem in the request. This is actually our fault. {ERROR_REPORT_PERMISSION_REQUEST}"
ERROR_CODE_5XX = "The weather service is having some problems at the moment. Please try again later."
SYNTAX_ERROR = (
    "The service sent us data, but it is not formed properly and we can't make sense of it. "
    f"{ERROR_REPORT_PERMISSION_REQUEST}"
)
GENERAL_AJAX_ERROR = (
    "Something didn't work when we tried to understand the service's response. "
    f"We don't know what it is. {ERROR_REPORT_PERMISSION_REQUEST}"
)

NO_SELECTION = 'First select a location, then click the "Display Forecast" button.'


def get_name_error_message() -> str:
    return NAME_MISSING


def _select_error_message(summary: ErrorSummary, missing_message: str, not_in_range_message: str) -> str:
    # missing > not decimal > not in range
    if summary.is_empty:
        return missing_message
    if not summary.is_decimal:
        return NOT_DECIMAL
    if not summary.is_in_range:
        return not_in_range_message
    return ""


def get_lat_error_message(summary: ErrorSummary) -> str:
    return _select_error_message(summary, LAT_MISSING, LAT_NOT_IN_RANGE)


def get_lon_error_message(summary: ErrorSummary) -> str:
    return _select_error_message(summary, LON_MISSING, LON_NOT_IN_RANGE)


def get_ajax_error_message(did_reach_server: bool, status: int = 0, is_syntax_error: bool = False) -> str:
    if not did_reach_server:
        return BAD_CONNECTION
    if is_syntax_error:
        return SYNTAX_ERROR
    if 400 <= status < 500:
        return ERROR_CODE_4XX
    if 500 <= status < 600:
        return ERROR_CODE_5XX
    return GENERAL_AJAX_ERROR


def asks_for_report(message: str) -> bool:
    return message.endswith(ERROR_REPORT_PERMISSION_REQUEST)
