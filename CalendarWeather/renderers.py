"""Snapshot renderers for the host app and the two widget processes."""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Callable, Dict, List, Optional, Tuple

from calendar_grid import CalendarDay, CalendarGrid, generate_grid, weekday_symbols
from date_math import MONDAY, date_key
from refresh_scheduler import RefreshPlan, plan_refreshes
from shared_cache import SharedCache
from synthetic_weather import synthetic_weather
from weather_data import WeatherRecord
from weather_provider import SessionBudgetExhausted, WeatherProviderError
from weather_service import AcquisitionMode, WeatherAcquisitionPipeline, date_span, describe_error

RENDER_BUDGET_SECONDS = 25.0
FORECAST_HORIZON_DAYS = 16
PLACEHOLDER_MOMENT = datetime(2024, 8, 19, 14, 30)


@dataclass(frozen=True)
class SnapshotLabels:
    month_name: str
    day_name: str
    time_of_day: str

    @classmethod
    def for_moment(cls, moment: datetime) -> "SnapshotLabels":
        return cls(
            month_name=moment.strftime("%B"),
            day_name=moment.strftime("%A"),
            time_of_day=moment.strftime("%H:%M"),
        )


@dataclass(frozen=True)
class RenderSnapshot:
    """One fully computed render state for a single instant."""
    as_of: datetime
    grid: CalendarGrid
    labels: SnapshotLabels
    weekday_symbols: List[str]
    weather: Dict[str, WeatherRecord] = field(default_factory=dict)
    status: str = ""
    location: str = ""

    def weather_for(self, day: CalendarDay) -> Optional[WeatherRecord]:
        return self.weather.get(date_key(day.actual_date))

    def is_today(self, day: CalendarDay) -> bool:
        return day.is_same_day(self.as_of.date())


class CalendarRenderer:
    """
    Grid and labels for an instant, plus the plan for when to render again.

    Subclasses decide where per-day weather comes from.
    """

    def __init__(self, tz: Optional[tzinfo] = None, week_start: int = MONDAY):
        self.tz = tz
        self.week_start = week_start

    def _localize(self, moment: datetime) -> datetime:
        if self.tz is None:
            return moment
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self.tz)
        return moment.astimezone(self.tz)

    def _build(self, moment: datetime, weather: Dict[str, WeatherRecord], grid: CalendarGrid) -> RenderSnapshot:
        return RenderSnapshot(
            as_of=moment,
            grid=grid,
            labels=SnapshotLabels.for_moment(moment),
            weekday_symbols=weekday_symbols(self.week_start),
            weather=weather,
            status=self.status_message,
            location=self.location_label,
        )

    @property
    def status_message(self) -> str:
        return ""

    @property
    def location_label(self) -> str:
        return ""

    def weather_for_grid(self, grid: CalendarGrid) -> Dict[str, WeatherRecord]:
        return {}

    def placeholder(self) -> RenderSnapshot:
        """Sample snapshot for previews; never touches the cache or network."""
        grid = generate_grid(PLACEHOLDER_MOMENT.date(), self.week_start)
        return RenderSnapshot(
            as_of=PLACEHOLDER_MOMENT,
            grid=grid,
            labels=SnapshotLabels.for_moment(PLACEHOLDER_MOMENT),
            weekday_symbols=weekday_symbols(self.week_start),
        )

    def snapshot(self, now: datetime) -> RenderSnapshot:
        moment = self._localize(now)
        grid = generate_grid(moment.date(), self.week_start)
        return self._build(moment, self.weather_for_grid(grid), grid)

    def planned_snapshot(self, instant: datetime) -> RenderSnapshot:
        """Snapshot for a future timeline entry."""
        return self.snapshot(instant)

    def timeline(self, now: datetime) -> Tuple[List[RenderSnapshot], RefreshPlan]:
        """Snapshot for now plus one per planned refresh instant."""
        moment = self._localize(now)
        plan = plan_refreshes(moment, self.tz)
        entries = [self.snapshot(moment)]
        entries.extend(self.planned_snapshot(instant) for instant in plan)
        return entries, plan


class LockScreenRenderer(CalendarRenderer):
    """Compact lock-screen calendar: grid and labels only."""


class HomeWidgetRenderer(CalendarRenderer):
    """
    Home-screen widget; a read-only consumer of the shared cache.

    Dates missing from the cache get deterministic synthetic weather,
    which is never written back.
    """

    def __init__(
        self,
        cache: SharedCache,
        tz: Optional[tzinfo] = None,
        week_start: int = MONDAY,
        mode: AcquisitionMode = AcquisitionMode.FORECAST,
    ):
        super().__init__(tz, week_start)
        self.cache = cache
        self.mode = mode

    def weather_on(self, day: date) -> WeatherRecord:
        record = self.cache.read(date_key(day), self.mode.ttl_seconds)
        return record if record is not None else synthetic_weather(day)

    def weather_for_grid(self, grid: CalendarGrid) -> Dict[str, WeatherRecord]:
        entry = self.cache.read_all(self.mode.ttl_seconds)
        cached = entry.records if entry is not None else {}
        weather = {}
        for day in grid:
            key = date_key(day.actual_date)
            weather[key] = cached.get(key) or synthetic_weather(day.actual_date)
        return weather

    def placeholder(self) -> RenderSnapshot:
        snapshot = super().placeholder()
        weather = {date_key(d.actual_date): synthetic_weather(d.actual_date) for d in snapshot.grid}
        return RenderSnapshot(
            as_of=snapshot.as_of,
            grid=snapshot.grid,
            labels=snapshot.labels,
            weekday_symbols=snapshot.weekday_symbols,
            weather=weather,
        )


class AppRenderer(CalendarRenderer):
    """
    Host app screen; the only renderer that acquires weather live.

    A fresh cache entry that covers every in-horizon day of the grid is
    served directly. Otherwise acquisition runs on a worker thread and the
    render waits at most `render_budget` seconds; if the result is not in
    by then, the snapshot goes out with whatever fresh cached days exist
    and `on_update` fires once the records land. Timeline entries after
    the first never start an acquisition or wait.
    """

    def __init__(
        self,
        pipeline: WeatherAcquisitionPipeline,
        tz: Optional[tzinfo] = None,
        week_start: int = MONDAY,
        mode: AcquisitionMode = AcquisitionMode.FORECAST,
        render_budget: float = RENDER_BUDGET_SECONDS,
        on_update: Optional[Callable[[Dict[str, WeatherRecord]], None]] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        super().__init__(tz, week_start)
        self.pipeline = pipeline
        self.mode = mode
        self.render_budget = render_budget
        self.on_update = on_update
        self.today = today or (lambda: datetime.now(self.tz).date())
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="weather")
        self._pending: Optional[Future] = None
        self._force_refresh = False
        self._status = ""
        self._location = ""
        self._latest: Dict[str, WeatherRecord] = {}
        self._lock = threading.Lock()

    @property
    def status_message(self) -> str:
        with self._lock:
            return self._status

    @property
    def location_label(self) -> str:
        with self._lock:
            return self._location

    def _set_status(self, message: str) -> None:
        with self._lock:
            self._status = message

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    def try_next_location(self, now: datetime) -> RenderSnapshot:
        """Inline retry affordance: move to the next default city and re-render."""
        self.pipeline.try_next_default_position()
        self._force_refresh = True
        return self.snapshot(now)

    def horizon_end(self) -> date:
        return self.today() + timedelta(days=FORECAST_HORIZON_DAYS - 1)

    def _acquisition_span(self, grid: CalendarGrid) -> Optional[Tuple[date, date]]:
        """The in-horizon part of the grid, or None if it lies entirely beyond."""
        start = grid[0].actual_date
        end = min(grid[-1].actual_date, self.horizon_end())
        if end < start:
            return None
        return start, end

    def _wanted_keys(self, grid: CalendarGrid) -> List[str]:
        if self.mode is AcquisitionMode.CURRENT:
            return [date_key(self.today())]
        span = self._acquisition_span(grid)
        return [date_key(d) for d in date_span(*span)] if span else []

    def _fresh_records(self, grid: CalendarGrid) -> Tuple[Dict[str, WeatherRecord], bool]:
        """Fresh cached records for the grid, and whether they cover every wanted day."""
        entry = self.pipeline.cache.read_all(self.mode.ttl_seconds)
        cached = entry.records if entry is not None else {}
        found = {}
        for day in grid:
            key = date_key(day.actual_date)
            if key in cached:
                found[key] = cached[key]
        covered = all(key in cached for key in self._wanted_keys(grid))
        return found, covered

    def weather_for_grid(self, grid: CalendarGrid) -> Dict[str, WeatherRecord]:
        found, covered = self._fresh_records(grid)
        if self._force_refresh:
            found, covered = {}, False
        if covered:
            return found

        pending = self._start_acquisition(grid)
        if pending is None:
            return found

        done, _ = wait([pending], timeout=self.render_budget)
        if not done:
            logging.warning(f"Weather not ready within {self.render_budget}s, rendering without it")
            self._set_status("Loading weather...")
            return found

        weather = dict(found)
        records = pending.result()
        for day in grid:
            key = date_key(day.actual_date)
            if key in records:
                weather[key] = records[key]
        return weather

    def planned_snapshot(self, instant: datetime) -> RenderSnapshot:
        """Future entries use the cache and the last acquisition only."""
        moment = self._localize(instant)
        grid = generate_grid(moment.date(), self.week_start)
        found, _ = self._fresh_records(grid)
        with self._lock:
            latest = self._latest
        weather = {}
        for day in grid:
            key = date_key(day.actual_date)
            if key in found:
                weather[key] = found[key]
            elif key in latest:
                weather[key] = latest[key]
        return self._build(moment, weather, grid)

    def weather_on(self, day: date) -> Optional[WeatherRecord]:
        """Weather for one date: fresh cache, else a single-date fetch while budget remains."""
        record = self.pipeline.cache.read(date_key(day), self.mode.ttl_seconds)
        if record is not None:
            return record
        if day > self.horizon_end():
            logging.info(f"{date_key(day)} lies beyond the forecast horizon")
            return None
        if not self.pipeline.throttle.has_budget():
            self._set_status(describe_error(SessionBudgetExhausted()))
            return None
        try:
            return self.pipeline.fetch_single(self.pipeline.resolve_position(), day)
        except WeatherProviderError as e:
            logging.error(f"Weather for {date_key(day)} failed: {e}")
            self._set_status(describe_error(e))
            return None

    def _start_acquisition(self, grid: CalendarGrid) -> Optional[Future]:
        with self._lock:
            if self._pending is not None and not self._pending.done():
                return self._pending
            if not self.pipeline.throttle.has_budget():
                self._status = describe_error(SessionBudgetExhausted())
                return None
            self._force_refresh = False
            self._pending = self._executor.submit(self._acquire, self._acquisition_span(grid))
            return self._pending

    def _acquire(self, span: Optional[Tuple[date, date]]) -> Dict[str, WeatherRecord]:
        """Worker-thread body; always returns a (possibly empty) record map."""
        if self.mode is AcquisitionMode.FORECAST and span is None:
            logging.info("Grid lies beyond the forecast horizon, nothing to fetch")
            return {}
        try:
            position = self.pipeline.resolve_position()
            location = self.pipeline.locality_name(position)
            if self.mode is AcquisitionMode.CURRENT:
                record = self.pipeline.fetch_current(position)
                records = {record.key: record}
                status = ""
            else:
                result = self.pipeline.acquire(position, *span)
                records = result.records
                status = "Some days could not be loaded." if result.is_partial else ""
        except WeatherProviderError as e:
            logging.error(f"Weather acquisition failed: {e}")
            self._set_status(describe_error(e))
            return {}

        with self._lock:
            self._latest = dict(records)
            self._location = location
            self._status = status
        if self.on_update is not None:
            self.on_update(records)
        return records
