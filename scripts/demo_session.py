from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
import sys

import httpx

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from hweather.client import AccessDenied, Location, load_page
from hweather.client import utils
from hweather.logging_config import setup_logging
from hweather.settings import get_settings


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Headless HWeather session: log in, edit the list, fetch a forecast")
    parser.add_argument("--base-url", default="http://127.0.0.1:8000")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument(
        "--add",
        action="append",
        default=[],
        metavar="NAME,LAT,LON",
        help="Location to add through the page form (repeatable)",
    )
    parser.add_argument("--remove", action="append", default=[], metavar="NAME")
    parser.add_argument("--forecast", default=None, metavar="NAME")
    parser.add_argument("--timeout", type=float, default=15.0)
    return parser.parse_args()


def _parse_location(raw: str) -> Location:
    parts = [part.strip() for part in raw.split(",")]
    if len(parts) != 3:
        raise ValueError(f"--add expects NAME,LAT,LON, got {raw!r}")
    return Location(*parts)


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    setup_logging(settings.log_level)

    async with httpx.AsyncClient(base_url=args.base_url, timeout=args.timeout) as http, httpx.AsyncClient(
        timeout=args.timeout
    ) as weather_http:
        response = await http.post("/authenticate", data={"email": args.email, "password": args.password})
        if response.status_code != 303:
            print(f"Login failed (status {response.status_code})")
            return 1

        try:
            page = await load_page(
                http,
                weather_http,
                weather_api_url=settings.weather_api_url,
                weather_image_url=settings.weather_image_url,
            )
        except AccessDenied as exc:
            print(f"Session rejected, server asked for {exc.url}")
            return 1

        for raw in args.add:
            location = _parse_location(raw)
            await page.fill_and_submit(location.name, location.lat, location.lon)
        if args.remove:
            await page.location_list.remove_locations_by_names(args.remove)

        print("Locations:")
        for location in page.locations.values():
            print(f"  {location.name}: {location.lat}, {location.lon}")

        if page.modal.is_shown:
            print(f"[{page.modal.title}] {page.modal.body_text}")

        if args.forecast:
            if args.forecast not in page.locations:
                print(f"Unknown location {args.forecast!r}")
                return 1
            page.location_list.select(args.forecast)
            task = page.forecast.display_forecast(page.locations[args.forecast])
            await task
            await page.forecast.image_loader.drain()

            print(f"Forecast state: {page.forecast.state.value}")
            if page.forecast.panel_displayed:
                for card in page.dom.get_elements_by_class_name("card"):
                    print("  " + " | ".join(utils.get_text(part) for part in card.cssselect("h5, .weather, .temp, .wind")))
            elif page.modal.is_shown:
                print(f"[{page.modal.title}] {page.modal.body_text}")

    return 0


def main() -> None:
    raise SystemExit(asyncio.run(run(parse_args())))


if __name__ == "__main__":
    main()
