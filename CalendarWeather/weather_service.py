"""Weather acquisition pipeline with session budget, retries and shared caching."""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from functools import partial
from typing import Callable, Dict, List, Optional

from date_math import date_key
from position_resolver import DEFAULT_POSITIONS, PositionResolver, default_position, reverse_geocode
from session_throttle import SessionThrottle
from shared_cache import CURRENT_TTL_SECONDS, FORECAST_TTL_SECONDS, CacheEntry, SharedCache
from weather_data import Position, WeatherRecord
from weather_provider import (
    EmptyOrMalformedPayload,
    InvalidEndpoint,
    PositionUnavailable,
    SessionBudgetExhausted,
    TransportFailure,
    WeatherProviderBase,
    WeatherProviderError,
)

MAX_PARALLEL_DATES = 40


class AcquisitionMode(Enum):
    """The two ways renderers ask for weather, each with its own cache TTL."""
    CURRENT = CURRENT_TTL_SECONDS
    FORECAST = FORECAST_TTL_SECONDS

    @property
    def ttl_seconds(self) -> int:
        return self.value


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with linearly growing delay between attempts."""
    max_attempts: int
    base_delay: float

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must not be negative, got {self.base_delay}")

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given 1-based failed attempt."""
        return self.base_delay * attempt

    @classmethod
    def interactive(cls) -> "RetryPolicy":
        return cls(max_attempts=2, base_delay=1.0)

    @classmethod
    def background(cls) -> "RetryPolicy":
        return cls(max_attempts=3, base_delay=2.0)


@dataclass
class AcquisitionResult:
    """Records that arrived plus the dates that did not."""
    records: Dict[str, WeatherRecord] = field(default_factory=dict)
    failed_dates: List[date] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.failed_dates)


def describe_error(error: Exception) -> str:
    """Human-readable message shown next to the retry affordance."""
    if isinstance(error, SessionBudgetExhausted):
        return "Weather was already refreshed this session. Showing saved data."
    if isinstance(error, PositionUnavailable):
        return "Could not determine your location. Trying next location..."
    if isinstance(error, InvalidEndpoint):
        return "Weather service rejected the request. Trying next location..."
    if isinstance(error, TransportFailure):
        return "Network error. Please check your connection and try again."
    if isinstance(error, EmptyOrMalformedPayload):
        return "Weather service returned no usable data. Please try again."
    return "Failed to get weather data. Please try again."


def date_span(start: date, end: date) -> List[date]:
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


class WeatherAcquisitionPipeline:
    """
    Resolves where we are, fetches weather for a date span and shares it.

    Wraps a provider with a session call budget, bounded retries and the
    cross-process cache. A successful fetch replaces the shared cache
    entry in one write; failed or partial-failure dates are never written.
    """

    def __init__(
        self,
        provider: WeatherProviderBase,
        cache: SharedCache,
        throttle: Optional[SessionThrottle] = None,
        resolver: Optional[PositionResolver] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        fixed_position: Optional[Position] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            provider: Forecast provider to query
            cache: Shared cache written after each successful fetch
            throttle: Session budget guard (interactive budget by default)
            resolver: IP / time zone position resolver
            retry_policy: Attempts and delays (interactive by default)
            sleep: Wait function between attempts
            fixed_position: Skip resolution and always use this position
        """
        self.provider = provider
        self.cache = cache
        self.throttle = throttle or SessionThrottle.interactive()
        self.resolver = resolver or PositionResolver()
        self.retry_policy = retry_policy or RetryPolicy.interactive()
        self.sleep = sleep
        self.fixed_position = fixed_position
        self._locality: Dict[Position, Optional[str]] = {}

    # Position resolution

    def resolve_position(self) -> Position:
        """IP lookup, then device time zone, then the current default city."""
        if self.fixed_position is not None:
            return self.fixed_position

        position = self.throttle.try_resolve_location_once(self.resolver.resolve)
        if position is not None:
            return position

        fallback = default_position(self.throttle.state.default_position_index)
        logging.info(f"Using default location: {fallback.name}")
        return fallback

    def try_next_default_position(self) -> Position:
        """Advance the default-city rotation (the user's "try next" action)."""
        index = self.throttle.advance_default_position(len(DEFAULT_POSITIONS))
        position = default_position(index)
        self.throttle.state.location_resolved_this_session = True
        self.throttle.state.cached_position = position
        logging.info(f"Trying next default location: {position.name}")
        return position

    def locality_name(self, position: Position) -> str:
        """Display name for a position; looked up at most once per position."""
        if position not in self._locality:
            self._locality[position] = reverse_geocode(position) if position.source == "ip" else None
        return self._locality[position] or position.name

    # Fetching

    def fetch_range(self, position: Position, start: date, end: date) -> Dict[str, WeatherRecord]:
        """
        Fetch every date from start to end in one provider request.

        Raises:
            SessionBudgetExhausted: If the caller did not check the budget
            WeatherProviderError: Last error after all attempts failed
        """
        self._consume_call()
        records = self._with_retries(
            partial(self.provider.fetch_range, position, start, end),
            f"range {start}..{end}",
        )
        self.cache.write(CacheEntry(records=records))
        return records

    def fetch_single(self, position: Position, day: date) -> WeatherRecord:
        self._consume_call()
        record = self._fetch_date(position, day)
        self.cache.write(CacheEntry(records={record.key: record}))
        return record

    def fetch_current(self, position: Position) -> WeatherRecord:
        """Current conditions for today (the one-hour TTL mode)."""
        self._consume_call()
        record = self._with_retries(partial(self.provider.fetch_current, position), "current")
        self.cache.write(CacheEntry(records={record.key: record}))
        return record

    def acquire(self, position: Position, start: date, end: date) -> AcquisitionResult:
        """
        Fetch a span with one range request, or per date if the provider has no range query.

        Per-date requests run in parallel; each date gets its own retries
        and a date that still fails is reported instead of aborting the
        batch. Whatever succeeded is written to the cache in a single write.
        A failed range request is not broken up into per-date requests.

        Raises:
            SessionBudgetExhausted: If the caller did not check the budget
            WeatherProviderError: Last range error, or if not a single date could be fetched
        """
        self._consume_call()

        if self.provider.supports_range:
            records = self._with_retries(
                partial(self.provider.fetch_range, position, start, end),
                f"range {start}..{end}",
            )
            self.cache.write(CacheEntry(records=records))
            return AcquisitionResult(records=records)

        result = self._fetch_per_date(position, date_span(start, end))
        if not result.records:
            raise EmptyOrMalformedPayload(f"No weather fetched for {start}..{end}")
        self.cache.write(CacheEntry(records=result.records))
        if result.is_partial:
            logging.warning(f"Partial weather fetch, failed dates: {[date_key(d) for d in result.failed_dates]}")
        return result

    def _fetch_per_date(self, position: Position, days: List[date]) -> AcquisitionResult:
        result = AcquisitionResult()
        workers = max(1, min(len(days), MAX_PARALLEL_DATES))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self._fetch_date, position, day): day for day in days}
            for future in as_completed(futures):
                day = futures[future]
                try:
                    record = future.result()
                except WeatherProviderError as e:
                    logging.warning(f"Weather for {date_key(day)} failed: {e}")
                    result.failed_dates.append(day)
                    continue
                result.records[record.key] = record
        result.failed_dates.sort()
        return result

    def _fetch_date(self, position: Position, day: date) -> WeatherRecord:
        key = date_key(day)
        records = self._with_retries(partial(self.provider.fetch_range, position, day, day), key)
        if key not in records:
            raise EmptyOrMalformedPayload(f"Response has no entry for {key}")
        return records[key]

    def _consume_call(self) -> None:
        if not self.throttle.try_consume_provider_call():
            raise SessionBudgetExhausted(
                f"Provider call budget of {self.throttle.call_budget} spent this session"
            )

    def _with_retries(self, fetch: Callable, label: str):
        attempts = self.retry_policy.max_attempts
        last_error: Optional[WeatherProviderError] = None
        for attempt in range(1, attempts + 1):
            try:
                logging.debug(f"Weather fetch {label} attempt {attempt}/{attempts}")
                return fetch()
            except WeatherProviderError as e:
                last_error = e
                logging.warning(f"Weather fetch {label} attempt {attempt} failed: {e}")
                if not e.retryable:
                    logging.error("Non-retryable error, stopping retries")
                    break
                if attempt < attempts:
                    retry_delay = self.retry_policy.delay(attempt)
                    logging.info(f"Retrying in {retry_delay}s...")
                    self.sleep(retry_delay)

        logging.error(f"Failed to fetch weather {label} after {attempts} attempts")
        raise last_error
