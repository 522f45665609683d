"""
Per-state duration tracking.

Every persisted change of the primary or micro state closes the metrics
entry of the state that was left and opens the entry of the state that was
entered. Keys are primary tokens and composite ``"primary:micro"`` tokens.
Durations accumulate over all visits of a key.

The metrics record is stored on the entity as a JSON document::

    {"processing": {"entered_at": "2025-01-01T10:00:00.000000+00:00",
                    "exited_at": null, "duration": 42.5}}
"""

import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, Optional

from ..defaults.exceptions import MetricsParseError
from .state_types import micro_key, normalize_state


logger = logging.getLogger(__name__)


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format a timestamp as sortable ISO-8601 string in UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class StateMetric:
    """
    Metrics of one state key.

    :ivar entered_at: Time of the latest entry.
    :ivar exited_at: Time of the latest exit, None while the state is open.
    :ivar duration: Total seconds spent in this state over all closed visits.
    """
    entered_at: Optional[datetime] = None
    exited_at: Optional[datetime] = None
    duration: float = 0.0

    @property
    def is_open(self) -> bool:
        return self.entered_at is not None and self.exited_at is None

    def enter(self, now: datetime) -> None:
        self.entered_at = now
        self.exited_at = None

    def exit(self, now: datetime) -> None:
        # closing twice must not count the same visit again
        if self.exited_at is not None:
            return
        self.exited_at = now
        if self.entered_at is not None:
            self.duration += max(0.0, (now - self.entered_at).total_seconds())

    def elapsed(self, now: datetime) -> float:
        """Stored duration plus the running time of an open visit."""
        if not self.is_open:
            return self.duration
        return self.duration + max(0.0, (now - self.entered_at).total_seconds())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entered_at": format_timestamp(self.entered_at),
            "exited_at": format_timestamp(self.exited_at),
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StateMetric":
        if not isinstance(data, dict):
            raise MetricsParseError(f"Metric entry must be an object, got {type(data).__name__}")
        try:
            duration = data.get("duration") or 0
            if isinstance(duration, bool) or not isinstance(duration, (int, float)):
                raise MetricsParseError(f"Invalid duration: {duration!r}")
            if not math.isfinite(duration):
                raise MetricsParseError(f"Duration must be finite: {duration!r}")
            return cls(
                entered_at=parse_timestamp(data.get("entered_at")),
                exited_at=parse_timestamp(data.get("exited_at")),
                duration=float(duration),
            )
        except (TypeError, ValueError, OverflowError) as e:
            raise MetricsParseError(f"Invalid metric entry {data!r}: {e}") from e


class MetricsRecord:
    """
    Mapping of state key -> ``StateMetric``, created lazily per key.

    One entry is kept for every distinct state and micro state ever visited.
    """

    def __init__(self, entries: Optional[Dict[str, StateMetric]] = None):
        self._entries: Dict[str, StateMetric] = dict(entries or {})

    def get(self, key: Any) -> Optional[StateMetric]:
        return self._entries.get(normalize_state(key))

    def entry(self, key: Any) -> StateMetric:
        """Return the entry for ``key``, creating it if absent."""
        key = normalize_state(key)
        if key not in self._entries:
            self._entries[key] = StateMetric()
        return self._entries[key]

    def time_in_state(self, key: Any) -> float:
        """Stored duration of a key, without the running time of an open visit."""
        metric = self.get(key)
        return metric.duration if metric else 0.0

    def keys(self):
        return self._entries.keys()

    def items(self):
        return self._entries.items()

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {key: metric.to_dict() for key, metric in self._entries.items()}

    @classmethod
    def from_dict(cls, data: Any) -> "MetricsRecord":
        if not isinstance(data, dict):
            raise MetricsParseError(f"Metrics must be an object, got {type(data).__name__}")
        return cls({str(key): StateMetric.from_dict(value) for key, value in data.items()})

    def copy(self) -> "MetricsRecord":
        return MetricsRecord.from_dict(self.to_dict())

    def __contains__(self, key: Any) -> bool:
        return normalize_state(key) in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MetricsRecord):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"MetricsRecord({self._entries!r})"


def dump_metrics(record: MetricsRecord) -> str:
    """Serialize a metrics record to its JSON text form."""
    return json.dumps(record.to_dict(), sort_keys=True, allow_nan=False)


def parse_metrics(text: Optional[str]) -> MetricsRecord:
    """
    Parse the JSON text form of a metrics record.

    :raises MetricsParseError: If the text is not a valid metrics document.
    """
    if text is None or not str(text).strip():
        return MetricsRecord()
    try:
        data = json.loads(text)
    except (TypeError, ValueError, RecursionError) as e:
        raise MetricsParseError(f"Metrics blob is not valid JSON: {e}") from e
    return MetricsRecord.from_dict(data)


def load_metrics(text: Optional[str]) -> MetricsRecord:
    """Parse a metrics blob, degrading to an empty record on any parse error."""
    try:
        return parse_metrics(text)
    except MetricsParseError as e:
        logger.warning(f"Discarding unreadable state metrics: {e}")
        return MetricsRecord()


class MetricsTracker:
    """
    Applies state changes to a metrics record.

    Args:
        clock: Callable returning the current time, defaults to UTC now.

    Example:
        >>> tracker = MetricsTracker()
        >>> record = MetricsRecord()
        >>> tracker.record(record, None, None, "pending", None)
        True
        >>> "pending" in record
        True
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock: Clock = clock or utc_now

    def now(self) -> datetime:
        return self.clock()

    def record(
            self,
            metrics: MetricsRecord,
            old_primary: Any,
            old_micro: Any,
            new_primary: Any,
            new_micro: Any,
            now: Optional[datetime] = None) -> bool:
        """
        Close the entries that were left and open the entries that were entered.

        Returns:
            True if any entry was touched.
        """
        old_primary, old_micro = normalize_state(old_primary), normalize_state(old_micro)
        new_primary, new_micro = normalize_state(new_primary), normalize_state(new_micro)
        now = now or self.now()
        changed = False

        if old_primary != new_primary:
            if old_primary is not None:
                metrics.entry(old_primary).exit(now)
            if new_primary is not None:
                metrics.entry(new_primary).enter(now)
            changed = True

        old_key = micro_key(old_primary, old_micro) if old_micro is not None and old_primary is not None else None
        new_key = micro_key(new_primary, new_micro) if new_micro is not None and new_primary is not None else None

        if old_key != new_key:
            if old_key is not None:
                metrics.entry(old_key).exit(now)
            if new_key is not None:
                metrics.entry(new_key).enter(now)
            changed = True

        if changed:
            logger.debug(
                f"Metrics recorded: ({old_primary}, {old_micro}) -> ({new_primary}, {new_micro})")
        return changed

    def time_in_state(self, metrics: MetricsRecord, key: Any) -> float:
        return metrics.time_in_state(key)

    def time_in_primary_state(self, metrics: MetricsRecord, primary: Any) -> float:
        return metrics.time_in_state(primary)

    def time_in_micro_state(self, metrics: MetricsRecord, primary: Any, micro: Any) -> float:
        return metrics.time_in_state(micro_key(primary, micro))

    def current_state_duration(
            self, metrics: MetricsRecord, primary: Any, now: Optional[datetime] = None) -> float:
        """Stored duration of ``primary`` plus the time since it was entered."""
        if primary is None:
            return 0.0
        metric = metrics.get(primary)
        if metric is None or metric.entered_at is None:
            return 0.0
        return metric.elapsed(now or self.now())
