"""Deterministic seasonal filler weather for widgets with no cached data."""
import random
from datetime import date

from date_math import day_of_year
from weather_data import WeatherRecord

# Northern-hemisphere (temperature, humidity) ranges by month
SEASONS = {
    (12, 1, 2): ((-5.0, 15.0), (60.0, 85.0)),   # winter
    (3, 4, 5): ((8.0, 25.0), (55.0, 75.0)),     # spring
    (6, 7, 8): ((20.0, 35.0), (45.0, 70.0)),    # summer
    (9, 10, 11): ((10.0, 28.0), (50.0, 80.0)),  # fall
}

# (threshold, code) ladders indexed by a 0-99 seed
COLD_CODES = [(30, 71), (50, 73), (65, 45), (80, 0), (100, 2)]
HOT_CODES = [(40, 0), (60, 1), (75, 2), (85, 80), (100, 95)]
MILD_CODES = [(25, 0), (40, 1), (55, 2), (65, 3), (75, 61), (85, 51), (100, 45)]


def _season(month: int):
    for months, ranges in SEASONS.items():
        if month in months:
            return ranges
    return (20.0, 20.0), (65.0, 65.0)


def _pick(ladder, seed: int) -> int:
    for threshold, code in ladder:
        if seed < threshold:
            return code
    return ladder[-1][1]


def synthetic_weather(d: date) -> WeatherRecord:
    """
    Plausible-looking weather for a date, identical on every call.

    Cosmetic filler only; it is not a forecast and is never cached.
    """
    month = d.month
    yday = day_of_year(d)
    rng = random.Random(month * 1000 + yday)

    (t_low, t_high), (h_low, h_high) = _season(month)
    temperature = round(rng.uniform(t_low, t_high), 1)
    humidity = round(rng.uniform(h_low, h_high))
    wind_speed = round(rng.uniform(5.0, 25.0), 1)
    spread = round(rng.uniform(3.0, 8.0), 1)

    seed = (yday * 31 + month * 17) % 100
    if temperature < 5:
        code = _pick(COLD_CODES, seed)
    elif temperature > 25:
        code = _pick(HOT_CODES, seed)
    else:
        code = _pick(MILD_CODES, seed)

    return WeatherRecord(
        date=d,
        condition_code=code,
        temperature=temperature,
        min_temp=round(temperature - spread, 1),
        max_temp=round(temperature + spread, 1),
        humidity=float(humidity),
        wind_speed=wind_speed,
    )
