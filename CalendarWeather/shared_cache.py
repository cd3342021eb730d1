"""Cross-process weather cache backed by a shared key/value directory."""
import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from weather_data import WeatherRecord

WEATHER_DATA_KEY = "SharedWeatherData"

CURRENT_TTL_SECONDS = 3600  # current-conditions mode
FORECAST_TTL_SECONDS = 6 * 3600  # monthly forecast mode


@dataclass
class CacheEntry:
    """Latest per-date records plus when they were written (UNIX seconds)."""
    records: Dict[str, WeatherRecord] = field(default_factory=dict)
    written_at: float = 0.0

    def age(self, now: float) -> float:
        return now - self.written_at

    def is_usable(self, now: float, ttl_seconds: float) -> bool:
        """Usable until it is ttl_seconds old."""
        return self.age(now) < ttl_seconds

    def to_json(self) -> str:
        return json.dumps({
            "written_at": self.written_at,
            "records": {key: record.to_dict() for key, record in self.records.items()},
        })

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry":
        """
        Raises:
            ValueError: If the payload is not a cache entry
        """
        data = json.loads(raw)
        if not isinstance(data, dict) or not isinstance(data.get("records"), dict):
            raise ValueError("Cache payload is not an entry")
        records = {}
        for key, value in data["records"].items():
            record = WeatherRecord.from_dict(value) if isinstance(value, dict) else None
            if record is None or record.key != key:
                logging.warning(f"Dropping unreadable cache record {key!r}")
                continue
            records[key] = record
        return cls(records=records, written_at=float(data.get("written_at", 0.0)))


class SharedStore:
    """
    Namespaced key/value store shared by every process using the same directory.

    Each key is one JSON file. Writes land in a temp file in the same
    directory and are renamed over the target, so readers see either the
    old value or the new one. There is no lock: the last writer wins.
    """

    def __init__(self, directory):
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def stamp(self, key: str) -> Optional[Tuple[int, int, int]]:
        """Change marker for a key; None if it does not exist."""
        try:
            st = self._path(key).stat()
        except FileNotFoundError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def get(self, key: str) -> Optional[str]:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self.directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class SharedCache:
    """
    Weather cache readable by the app and widget processes.

    `write` replaces the whole record map and stamps a fresh written_at.
    Readers treat a missing key, an unreadable payload and an expired
    entry the same way: no usable cached value. A process-local mirror
    skips re-reading the file until another process replaces it.
    """

    def __init__(self, store: SharedStore, clock: Callable[[], float] = time.time, key: str = WEATHER_DATA_KEY):
        self.store = store
        self.clock = clock
        self.key = key
        self._mirror: Optional[CacheEntry] = None
        self._mirror_stamp = None

    def load(self) -> Optional[CacheEntry]:
        """Current entry regardless of age, or None if absent or unreadable."""
        stamp = self.store.stamp(self.key)
        if stamp is None:
            self._mirror, self._mirror_stamp = None, None
            return None
        if self._mirror is not None and stamp == self._mirror_stamp:
            return self._mirror

        raw = self.store.get(self.key)
        if raw is None:
            return None
        try:
            entry = CacheEntry.from_json(raw)
        except (ValueError, TypeError) as e:
            logging.warning(f"Failed to decode shared weather data: {e}")
            return None

        self._mirror, self._mirror_stamp = entry, stamp
        logging.debug(f"Weather data loaded from shared store: {len(entry.records)} entries")
        return entry

    def read_all(self, ttl_seconds: float = FORECAST_TTL_SECONDS) -> Optional[CacheEntry]:
        entry = self.load()
        if entry is None:
            return None
        now = self.clock()
        if not entry.is_usable(now, ttl_seconds):
            logging.info(f"Cache expired (age: {entry.age(now):.1f}s > TTL: {ttl_seconds}s)")
            return None
        return entry

    def read(self, date_key: str, ttl_seconds: float = FORECAST_TTL_SECONDS) -> Optional[WeatherRecord]:
        entry = self.read_all(ttl_seconds)
        if entry is None:
            return None
        return entry.records.get(date_key)

    def write(self, entry: CacheEntry) -> CacheEntry:
        """Replace the shared entry; written_at is always refreshed."""
        fresh = CacheEntry(records=dict(entry.records), written_at=self.clock())
        self.store.set(self.key, fresh.to_json())
        self._mirror, self._mirror_stamp = fresh, self.store.stamp(self.key)
        logging.info(f"Weather data saved to shared store: {len(fresh.records)} entries")
        return fresh

    def clear(self) -> None:
        self.store.remove(self.key)
        self._mirror, self._mirror_stamp = None, None
        logging.info("Weather data cleared from shared store")
