"""Weather domain model - pure data structures independent of any API."""
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, Optional

from date_math import date_key, parse_date_key

# WMO weather interpretation codes -> (icon, color, condition text)
WMO_CODES = {
    0: ("sun.max.fill", "orange", "Clear"),
    1: ("sun.max.fill", "orange", "Mainly Clear"),
    2: ("cloud.sun.fill", "yellow", "Partly Cloudy"),
    3: ("cloud.fill", "gray", "Overcast"),
    45: ("cloud.fog.fill", "gray", "Foggy"),
    48: ("cloud.fog.fill", "gray", "Rime Fog"),
    51: ("cloud.drizzle.fill", "blue", "Light Drizzle"),
    53: ("cloud.drizzle.fill", "blue", "Drizzle"),
    55: ("cloud.drizzle.fill", "blue", "Heavy Drizzle"),
    56: ("cloud.sleet.fill", "cyan", "Freezing Drizzle"),
    57: ("cloud.sleet.fill", "cyan", "Heavy Freezing Drizzle"),
    61: ("cloud.rain.fill", "blue", "Light Rain"),
    63: ("cloud.rain.fill", "blue", "Rain"),
    65: ("cloud.heavyrain.fill", "blue", "Heavy Rain"),
    66: ("cloud.sleet.fill", "cyan", "Freezing Rain"),
    67: ("cloud.sleet.fill", "cyan", "Heavy Freezing Rain"),
    71: ("cloud.snow.fill", "cyan", "Light Snow"),
    73: ("cloud.snow.fill", "cyan", "Snow"),
    75: ("cloud.snow.fill", "cyan", "Heavy Snow"),
    77: ("cloud.snow.fill", "cyan", "Snow Grains"),
    80: ("cloud.sun.rain.fill", "blue", "Light Rain Showers"),
    81: ("cloud.rain.fill", "blue", "Rain Showers"),
    82: ("cloud.heavyrain.fill", "blue", "Heavy Rain Showers"),
    85: ("cloud.snow.fill", "cyan", "Light Snow Showers"),
    86: ("cloud.snow.fill", "cyan", "Heavy Snow Showers"),
    95: ("cloud.bolt.rain.fill", "purple", "Thunderstorm"),
    96: ("cloud.bolt.rain.fill", "purple", "Thunderstorm with Hail"),
    99: ("cloud.bolt.rain.fill", "purple", "Heavy Thunderstorm"),
}
UNKNOWN_CONDITION = ("questionmark.circle.fill", "secondary", "Unknown")


@dataclass(frozen=True)
class Position:
    """A geographic position plus where it came from."""
    lat: float
    lon: float
    name: str = ""
    source: str = "default"  # "ip", "timezone", "country", "default", "env"


@dataclass(frozen=True)
class WeatherRecord:
    """Domain model for one day of weather, independent of any specific API."""
    date: date
    condition_code: int  # WMO code
    temperature: float
    min_temp: float
    max_temp: float
    humidity: float
    wind_speed: float

    @property
    def key(self) -> str:
        return date_key(self.date)

    @property
    def icon(self) -> str:
        return WMO_CODES.get(self.condition_code, UNKNOWN_CONDITION)[0]

    @property
    def color(self) -> str:
        return WMO_CODES.get(self.condition_code, UNKNOWN_CONDITION)[1]

    @property
    def condition(self) -> str:
        return WMO_CODES.get(self.condition_code, UNKNOWN_CONDITION)[2]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = self.key
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["WeatherRecord"]:
        """Rebuild a record from its stored form; None if the payload is unusable."""
        day = parse_date_key(data.get("date"))
        if day is None:
            return None
        try:
            return cls(
                date=day,
                condition_code=int(data["condition_code"]),
                temperature=float(data["temperature"]),
                min_temp=float(data["min_temp"]),
                max_temp=float(data["max_temp"]),
                humidity=float(data["humidity"]),
                wind_speed=float(data["wind_speed"]),
            )
        except (KeyError, TypeError, ValueError):
            return None
