"""Tests for weather_data module."""
from datetime import date

import pytest

from weather_data import UNKNOWN_CONDITION, Position, WeatherRecord


@pytest.fixture
def record():
    return WeatherRecord(
        date=date(2025, 3, 10),
        condition_code=61,
        temperature=7.1,
        min_temp=3.0,
        max_temp=11.2,
        humidity=78.0,
        wind_speed=14.8,
    )


def test_record_creation(record):
    """Test creating WeatherRecord with required fields."""
    assert record.key == "2025-03-10"
    assert record.temperature == 7.1
    assert record.min_temp <= record.temperature <= record.max_temp


def test_condition_lookup(record):
    """Test WMO code maps to icon, color and text."""
    assert record.condition == "Light Rain"
    assert record.icon == "cloud.rain.fill"
    assert record.color == "blue"


def test_unknown_condition_code():
    """Test unmapped codes fall back to the unknown condition."""
    record = WeatherRecord(date(2025, 3, 10), 42, 0.0, 0.0, 0.0, 0.0, 0.0)
    assert (record.icon, record.color, record.condition) == UNKNOWN_CONDITION


def test_record_is_immutable(record):
    """Test records are frozen."""
    with pytest.raises(AttributeError):
        record.temperature = 30.0


def test_stored_form(record):
    """Test the stored form uses the date key and plain numbers."""
    data = record.to_dict()
    assert data["date"] == "2025-03-10"
    assert data["condition_code"] == 61
    assert WeatherRecord.from_dict(data) == record


@pytest.mark.parametrize("data", [
    {},
    {"date": "not-a-date"},
    {"date": "2025-03-10", "condition_code": 1},
    {"date": "2025-03-10", "condition_code": "x", "temperature": 1, "min_temp": 1,
     "max_temp": 1, "humidity": 1, "wind_speed": 1},
])
def test_from_dict_rejects_unusable_payloads(data):
    """Test from_dict returns None rather than raising."""
    assert WeatherRecord.from_dict(data) is None


def test_position_defaults():
    """Test positions default to the static source."""
    position = Position(40.7128, -74.0060)
    assert position.source == "default"
    assert position.name == ""
    assert position == Position(40.7128, -74.0060)
