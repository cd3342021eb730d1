"""Open-Meteo forecast API provider implementation."""
import logging
from datetime import date
from typing import Dict, List

import requests

from date_math import date_key, parse_date_key
from weather_data import Position, WeatherRecord
from weather_provider import (
    DecodeFailure,
    EmptyOrMalformedPayload,
    InvalidEndpoint,
    TransportFailure,
    WeatherProviderBase,
)

DAILY_FIELDS = [
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "relative_humidity_2m_mean",
    "wind_speed_10m_max",
]
CURRENT_FIELDS = [
    "temperature_2m",
    "relative_humidity_2m",
    "wind_speed_10m",
    "weather_code",
]


class OpenMeteoProvider(WeatherProviderBase):
    """
    Weather provider using the Open-Meteo forecast API.

    Free and keyless: https://open-meteo.com/en/docs
    Daily values come back as parallel arrays under "daily", one entry per
    date in "daily.time"; the response is treated as untrusted input.
    """

    BASE_URL = "https://api.open-meteo.com/v1/forecast"

    def __init__(self, base_url: str = BASE_URL, timeout: float = 10):
        """
        Initialize Open-Meteo provider.

        Args:
            base_url: Forecast endpoint
            timeout: HTTP request timeout in seconds
        """
        self.base_url = base_url
        self.timeout = timeout

    def fetch_range(self, position: Position, start: date, end: date) -> Dict[str, WeatherRecord]:
        if end < start:
            raise InvalidEndpoint(f"End date {end} is before start date {start}")
        params = {
            "latitude": position.lat,
            "longitude": position.lon,
            "daily": ",".join(DAILY_FIELDS),
            "timezone": "auto",
            "start_date": date_key(start),
            "end_date": date_key(end),
        }
        data = self._get(params)
        return parse_daily(data.get("daily"))

    def fetch_current(self, position: Position) -> WeatherRecord:
        params = {
            "latitude": position.lat,
            "longitude": position.lon,
            "current": ",".join(CURRENT_FIELDS),
            "daily": ",".join(DAILY_FIELDS),
            "timezone": "auto",
            "forecast_days": 1,
        }
        data = self._get(params)
        daily = parse_daily(data.get("daily"))
        current = data.get("current")
        if not isinstance(current, dict) or not daily:
            raise EmptyOrMalformedPayload("Response missing 'current' block")

        today = min(daily.values(), key=lambda record: record.date)
        try:
            record = WeatherRecord(
                date=today.date,
                condition_code=int(current.get("weather_code", today.condition_code)),
                temperature=float(current["temperature_2m"]),
                min_temp=today.min_temp,
                max_temp=today.max_temp,
                humidity=float(current.get("relative_humidity_2m", today.humidity)),
                wind_speed=float(current.get("wind_speed_10m", today.wind_speed)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeFailure(f"Failed to parse current conditions: {e}")
        logging.info(f"Current conditions: {record.temperature}°C, {record.condition}")
        return record

    def _get(self, params: dict) -> dict:
        try:
            logging.info(f"Making Open-Meteo API request: {self.base_url}")
            logging.debug(f"Request parameters: {params}")

            response = requests.get(self.base_url, params=params, timeout=self.timeout)

            logging.info(f"API response status: {response.status_code}")
            if not response.ok:
                logging.error(f"API request failed with status {response.status_code}")
                self._handle_error_response(response)

            data = response.json()
        except ValueError as e:
            # requests' JSONDecodeError is also a RequestException
            logging.error(f"Failed to parse API response: {e}")
            raise DecodeFailure(f"Failed to parse response: {e}")
        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during API request: {e}")
            raise TransportFailure(f"Network error: {e}")

        if not isinstance(data, dict) or not data:
            raise EmptyOrMalformedPayload("Empty response body")
        logging.debug(f"API response (truncated): {str(data)[:500]}...")
        return data

    def _handle_error_response(self, response: requests.Response) -> None:
        """Parse and raise error from an Open-Meteo error response."""
        try:
            reason = response.json().get("reason", "Unknown error")
        except ValueError:
            reason = response.text[:200]
        message = f"Open-Meteo API error {response.status_code}: {reason}"
        if 400 <= response.status_code < 500 and response.status_code != 429:
            raise InvalidEndpoint(message)
        raise TransportFailure(message)


def parse_daily(daily) -> Dict[str, WeatherRecord]:
    """
    Decode the parallel "daily" arrays into records keyed by date.

    Every array must be present, a list, and of the same non-zero length
    as "time". Indexes with an unparseable date or value are skipped.

    Raises:
        EmptyOrMalformedPayload: If the arrays are missing or inconsistent
    """
    if not isinstance(daily, dict):
        raise EmptyOrMalformedPayload("Response missing 'daily' block")

    columns: Dict[str, List] = {}
    for field in ["time"] + DAILY_FIELDS:
        values = daily.get(field)
        if not isinstance(values, list) or not values:
            raise EmptyOrMalformedPayload(f"Response missing '{field}' array")
        columns[field] = values

    lengths = {field: len(values) for field, values in columns.items()}
    if len(set(lengths.values())) != 1:
        raise EmptyOrMalformedPayload(f"Daily arrays have inconsistent lengths: {lengths}")

    records: Dict[str, WeatherRecord] = {}
    for i, raw_date in enumerate(columns["time"]):
        day = parse_date_key(raw_date)
        if day is None:
            logging.warning(f"Skipping daily entry {i}: bad date {raw_date!r}")
            continue
        try:
            t_max = float(columns["temperature_2m_max"][i])
            t_min = float(columns["temperature_2m_min"][i])
            record = WeatherRecord(
                date=day,
                condition_code=int(columns["weather_code"][i]),
                temperature=round((t_max + t_min) / 2, 1),
                min_temp=t_min,
                max_temp=t_max,
                humidity=float(columns["relative_humidity_2m_mean"][i]),
                wind_speed=float(columns["wind_speed_10m_max"][i]),
            )
        except (TypeError, ValueError) as e:
            logging.warning(f"Skipping daily entry {raw_date}: {e}")
            continue
        records[record.key] = record

    if not records:
        raise EmptyOrMalformedPayload("No usable daily entries in response")
    return records
