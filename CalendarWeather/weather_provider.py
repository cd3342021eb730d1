"""Weather provider abstraction - allows swapping different weather APIs."""
from abc import ABC, abstractmethod
from datetime import date
from typing import Dict

from weather_data import Position, WeatherRecord


class WeatherProviderBase(ABC):
    """Abstract base class for weather data providers."""

    # Providers that cannot answer a start/end span get one call per date
    supports_range = True

    @abstractmethod
    def fetch_range(self, position: Position, start: date, end: date) -> Dict[str, WeatherRecord]:
        """
        Fetch daily weather for every date from start to end inclusive.

        Returns:
            Mapping of "YYYY-MM-DD" keys to WeatherRecord

        Raises:
            WeatherProviderError: If the provider fails to fetch data
        """
        pass

    @abstractmethod
    def fetch_current(self, position: Position) -> WeatherRecord:
        """
        Fetch current conditions (today's record with live temperature).

        Raises:
            WeatherProviderError: If the provider fails to fetch data
        """
        pass


class WeatherProviderError(Exception):
    """Exception raised when a weather provider fails."""
    retryable = True


class PositionUnavailable(WeatherProviderError):
    """No position could be resolved from the attempted source."""


class InvalidEndpoint(WeatherProviderError):
    """The request could not be built or was rejected as malformed (4xx)."""
    retryable = False


class EmptyOrMalformedPayload(WeatherProviderError):
    """Response arrived but is empty or its parallel arrays disagree."""


class TransportFailure(WeatherProviderError):
    """Timeout, connection error or 5xx."""


class DecodeFailure(WeatherProviderError):
    """Response body is not the JSON we expect."""


class SessionBudgetExhausted(WeatherProviderError):
    """The per-session provider call budget is spent."""
    retryable = False
