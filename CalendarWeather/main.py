"""Command-line host for the calendar renderers."""
import argparse
import logging
import os
import sys
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from calendar_grid import weeks
from openmeteo_provider import OpenMeteoProvider
from position_resolver import PositionResolver
from refresh_scheduler import plan_refreshes
from renderers import AppRenderer, CalendarRenderer, HomeWidgetRenderer, LockScreenRenderer, RenderSnapshot
from session_throttle import SessionThrottle
from shared_cache import SharedCache, SharedStore
from weather_data import Position, WeatherRecord
from weather_provider import WeatherProviderError
from weather_service import AcquisitionMode, RetryPolicy, WeatherAcquisitionPipeline

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_LOG_FILE = os.path.join(BASE_DIR, "calendar-weather.log")
DEFAULT_GROUP_DIR = os.path.join("~", ".cache", "calendar-weather")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("Month calendar with weather")
    parser.add_argument("--target", choices=["app", "widget", "lockscreen"], default="app")
    parser.add_argument("--mode", choices=["forecast", "current"], default="forecast")
    parser.add_argument("--at", help="ISO timestamp to render instead of now")
    parser.add_argument("--timeline", action="store_true", help="Print the refresh plan as well")
    parser.add_argument("--try-next-location", action="store_true")
    parser.add_argument("--background", action="store_true",
                        help="Scheduled refresh: background call budget and retry policy")
    parser.add_argument("--day", help="YYYY-MM-DD date to print weather details for")
    parser.add_argument("--week-start", type=int, choices=range(7), default=0, help="0=Monday .. 6=Sunday")
    parser.add_argument("--timeout", type=float, default=10, help="HTTP timeout in seconds")
    parser.add_argument("--budget", type=float, default=25, help="Seconds a render may wait for weather")
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE)
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def setup_logging(log_file: str, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(log_file)
        ]
    )


def load_config() -> dict:
    load_dotenv()
    group_dir = os.getenv("KALENDAR_GROUP_DIR", DEFAULT_GROUP_DIR)
    timezone_id = os.getenv("KALENDAR_TIMEZONE", "")
    forecast_url = os.getenv("KALENDAR_FORECAST_URL", OpenMeteoProvider.BASE_URL)
    country = os.getenv("KALENDAR_COUNTRY")

    tz = None
    if timezone_id:
        try:
            tz = ZoneInfo(timezone_id)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise SystemExit(f"Invalid KALENDAR_TIMEZONE: {exc}") from exc

    position = None
    lat, lon = os.getenv("KALENDAR_LAT"), os.getenv("KALENDAR_LON")
    if lat or lon:
        try:
            position = Position(float(lat), float(lon), "Configured location", "env")
        except (TypeError, ValueError) as exc:
            raise SystemExit(f"Invalid coordinates: {exc}") from exc

    logging.info("Configuration loaded: group_dir=%s timezone=%s position=%s", group_dir, timezone_id, position)
    return {
        "group_dir": group_dir,
        "tz": tz,
        "timezone_id": timezone_id,
        "country": country,
        "forecast_url": forecast_url,
        "position": position,
    }


def build_renderer(args: argparse.Namespace, config: dict) -> CalendarRenderer:
    cache = SharedCache(SharedStore(config["group_dir"]))
    mode = AcquisitionMode.CURRENT if args.mode == "current" else AcquisitionMode.FORECAST

    if args.target == "lockscreen":
        return LockScreenRenderer(config["tz"], args.week_start)
    if args.target == "widget":
        return HomeWidgetRenderer(cache, config["tz"], args.week_start, mode)

    pipeline = WeatherAcquisitionPipeline(
        provider=OpenMeteoProvider(config["forecast_url"], timeout=args.timeout),
        cache=cache,
        throttle=SessionThrottle.background() if args.background else SessionThrottle.interactive(),
        resolver=PositionResolver(config["timezone_id"], config["country"]),
        retry_policy=RetryPolicy.background() if args.background else RetryPolicy.interactive(),
        fixed_position=config["position"],
    )
    logging.info("Weather pipeline ready (mode=%s ttl=%ss)", mode.name, mode.ttl_seconds)
    return AppRenderer(pipeline, config["tz"], args.week_start, mode, render_budget=args.budget)


def format_snapshot(snapshot: RenderSnapshot) -> str:
    labels = snapshot.labels
    header = f"{labels.month_name} {snapshot.as_of.year}  -  {labels.day_name} {labels.time_of_day}"
    if snapshot.location:
        header += f"  -  {snapshot.location}"
    lines = [header]
    lines.append(" ".join(f"{symbol:>6}" for symbol in snapshot.weekday_symbols))
    for row in weeks(snapshot.grid):
        cells = []
        for day in row:
            mark = "*" if snapshot.is_today(day) else (" " if day.is_current_month else ".")
            record = snapshot.weather_for(day)
            temp = f"{round(record.max_temp):+d}" if record else "  "
            cells.append(f"{mark}{day.day_number:>2}{temp:>3}")
        lines.append(" ".join(cells))
    if snapshot.status:
        lines.append(snapshot.status)
    return "\n".join(lines)


def format_day(day: date, record: Optional[WeatherRecord]) -> str:
    if record is None:
        return f"{day.isoformat()}: no weather available"
    return (
        f"{day.isoformat()}: {record.condition}, {record.min_temp:.0f}..{record.max_temp:.0f}°C, "
        f"humidity {record.humidity:.0f}%, wind {record.wind_speed:.0f} km/h"
    )


def main(argv=None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    config = load_config()

    try:
        now = datetime.fromisoformat(args.at) if args.at else datetime.now(config["tz"])
        day = date.fromisoformat(args.day) if args.day else None
    except ValueError as exc:
        raise SystemExit(f"Invalid date or timestamp: {exc}") from exc

    renderer = build_renderer(args, config)
    try:
        plan = None
        if isinstance(renderer, AppRenderer) and args.try_next_location:
            snapshot = renderer.try_next_location(now)
            if args.timeline:
                plan = plan_refreshes(snapshot.as_of, renderer.tz)
        elif args.timeline:
            entries, plan = renderer.timeline(now)
            snapshot = entries[0]
        else:
            snapshot = renderer.snapshot(now)
        print(format_snapshot(snapshot))

        if plan is not None:
            print("\nNext refreshes:")
            for instant in plan:
                print(f"  {instant.isoformat()}")

        if day is not None:
            if isinstance(renderer, (AppRenderer, HomeWidgetRenderer)):
                print(format_day(day, renderer.weather_on(day)))
            else:
                logging.warning("--day is ignored for the lock screen")
    except WeatherProviderError as err:
        logging.error("Weather failed: %s", err)
    finally:
        if isinstance(renderer, AppRenderer):
            renderer.close()


if __name__ == "__main__":
    main()
