import datetime
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, NamedTuple, Optional

from data.session_manager import ConfigError, SessionManager, parse_clock_time


class LevelSource(Enum):
    MANUAL = "Manual"
    PRIOR_DAY_HIGH = "PDH"
    PRIOR_DAY_LOW = "PDL"
    OVERNIGHT_HIGH = "ONH"
    OVERNIGHT_LOW = "ONL"

    @classmethod
    def parse(cls, value):
        """Accepts a LevelSource, its value ('PDL') or its member name ('PRIOR_DAY_LOW')."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for source in cls:
            if text.upper() in (source.value.upper(), source.name):
                return source
        raise ConfigError(f"Unknown level source: {value!r}")


class Bar(NamedTuple):
    timestamp: datetime.datetime
    high: float
    low: float
    close: float
    is_first_in_sequence: bool = False


@dataclass
class TrackerConfig:
    rth_start: datetime.time = datetime.time(9, 30)
    rth_end: datetime.time = datetime.time(16, 0)
    eth_start: datetime.time = datetime.time(18, 0)
    acceptance_threshold: int = 10
    level_source: LevelSource = LevelSource.PRIOR_DAY_LOW
    manual_level: Optional[float] = None
    auto_side: bool = True
    side_override: bool = True
    timezone: str = 'America/New_York'

    def __post_init__(self):
        self.rth_start = parse_clock_time(self.rth_start)
        self.rth_end = parse_clock_time(self.rth_end)
        self.eth_start = parse_clock_time(self.eth_start)
        self.level_source = LevelSource.parse(self.level_source)

        threshold = self.acceptance_threshold
        if (isinstance(threshold, bool) or not isinstance(threshold, (int, float))
                or not math.isfinite(threshold) or int(threshold) != threshold):
            raise ConfigError(f"Acceptance threshold must be an integer, got {threshold!r}.")
        if threshold < 1:
            raise ConfigError(f"Acceptance threshold must be at least 1, got {threshold}.")
        self.acceptance_threshold = int(threshold)

        if self.rth_start == self.rth_end:
            raise ConfigError(f"Degenerate RTH window: start and end are both {self.rth_start}.")

    @classmethod
    def from_config(cls, market_config, strategy_config):
        """Builds a config from the market_config and strategy_config modules."""
        sessions = SessionManager.from_config(market_config)
        return cls(
            rth_start=sessions.rth_start_time,
            rth_end=sessions.rth_end_time,
            eth_start=sessions.eth_start_time,
            acceptance_threshold=strategy_config.ACCEPTANCE_BARS,
            level_source=strategy_config.LEVEL_SOURCE,
            manual_level=strategy_config.MANUAL_LEVEL,
            auto_side=strategy_config.ACCEPT_SIDE_AUTO,
            side_override=strategy_config.ACCEPT_ABOVE_OVERRIDE,
            timezone=sessions.timezone.zone,
        )


@dataclass
class TrackerState:
    current_day_key: Optional[datetime.date] = None
    current_rth_high: Optional[float] = None
    current_rth_low: Optional[float] = None
    prior_day_high: Optional[float] = None
    prior_day_low: Optional[float] = None
    current_overnight_key: Optional[datetime.date] = None
    overnight_high: Optional[float] = None
    overnight_low: Optional[float] = None
    consecutive_accept_bars: int = 0
    is_accepted: bool = False
    last_selected_level: Optional[float] = None
    previous_close: Optional[float] = None
    last_timestamp: Optional[datetime.datetime] = field(default=None, repr=False)


@dataclass(frozen=True)
class Snapshot:
    selected_level: Optional[float]
    accepted: bool
    accept_bars: int
    acceptance_threshold: int
    timestamp: Optional[datetime.datetime] = None
    accept_above: bool = True
    prior_day_high: Optional[float] = None
    prior_day_low: Optional[float] = None
    overnight_high: Optional[float] = None
    overnight_low: Optional[float] = None

    def status_text(self):
        """Label text for the level, or None while no level is available."""
        if self.selected_level is None:
            return None
        counts = f"{self.accept_bars}/{self.acceptance_threshold} bars @ {self.selected_level:.2f}"
        if self.accepted:
            return f"ACCEPTED • {counts}"
        return f"Acceptance: {counts}"


def resolve_accept_above(config: TrackerConfig) -> bool:
    """
    Returns True when closes at/above the level count as accepted.

    With auto_side, highs are failed-breakout levels (accept below) and lows are
    failed-breakdown levels (accept above). Manual levels accept above.
    """
    if not config.auto_side:
        return bool(config.side_override)
    return config.level_source not in (LevelSource.PRIOR_DAY_HIGH, LevelSource.OVERNIGHT_HIGH)


def _extend_high(current, value):
    return value if current is None else max(current, value)


def _extend_low(current, value):
    return value if current is None else min(current, value)


class SessionLevelTracker:
    """
    Tracks RTH, prior-day and overnight extremes and times acceptance of the selected
    level, one bar at a time.

    Bars must be fed in non-decreasing timestamp order. A bar older than the last one
    processed is ignored and the previous snapshot is returned. An instance is owned
    by a single caller and is not thread-safe.
    """
    def __init__(self, config: TrackerConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.session_manager = SessionManager(
            config.rth_start, config.rth_end, config.eth_start, config.timezone
        )
        self.accept_above = resolve_accept_above(config)
        self._state = TrackerState()
        self._last_snapshot = None

    @property
    def state(self) -> TrackerState:
        return self._state

    def reset(self):
        """Discards all session extremes and the acceptance streak."""
        self.logger.info("Resetting SessionLevelTracker state.")
        self._state = TrackerState()
        self._last_snapshot = None

    def run(self, bars: Iterable[Bar]) -> Iterator[Snapshot]:
        """Yields one snapshot per bar."""
        for bar in bars:
            yield self.update(bar)

    def update(self, bar: Bar) -> Snapshot:
        state = self._state
        # Naive and aware timestamps are ordered on the same clock.
        instant = self.session_manager.localize(bar.timestamp)
        if state.last_timestamp is not None and instant < state.last_timestamp:
            self.logger.warning(
                f"Ignoring out-of-order bar at {bar.timestamp} (last processed {state.last_timestamp})."
            )
            return self._last_snapshot
        state.last_timestamp = instant

        day_key = self.session_manager.get_day_key(bar.timestamp)
        if day_key != state.current_day_key:
            self._roll_day(day_key)

        session = self.session_manager.get_current_session(bar.timestamp)
        if session == 'rth':
            state.current_rth_high = _extend_high(state.current_rth_high, bar.high)
            state.current_rth_low = _extend_low(state.current_rth_low, bar.low)

        overnight_key = self.session_manager.get_overnight_key(bar.timestamp)
        if overnight_key != state.current_overnight_key:
            self._roll_overnight(overnight_key)

        if session == 'overnight':
            state.overnight_high = _extend_high(state.overnight_high, bar.high)
            state.overnight_low = _extend_low(state.overnight_low, bar.low)

        level = self.select_level()
        previous_close = bar.close if bar.is_first_in_sequence or state.previous_close is None else state.previous_close
        self._count_acceptance(self._is_on_side(bar.close, level), self._is_on_side(previous_close, level))
        state.previous_close = bar.close
        state.last_selected_level = level

        self._last_snapshot = Snapshot(
            selected_level=level,
            accepted=state.is_accepted,
            accept_bars=state.consecutive_accept_bars,
            acceptance_threshold=self.config.acceptance_threshold,
            timestamp=bar.timestamp,
            accept_above=self.accept_above,
            prior_day_high=state.prior_day_high,
            prior_day_low=state.prior_day_low,
            overnight_high=state.overnight_high,
            overnight_low=state.overnight_low,
        )
        return self._last_snapshot

    def select_level(self) -> Optional[float]:
        """The monitored level; derived levels fall back to the manual level until observed."""
        state = self._state
        source = self.config.level_source
        derived = {
            LevelSource.MANUAL: None,
            LevelSource.PRIOR_DAY_HIGH: state.prior_day_high,
            LevelSource.PRIOR_DAY_LOW: state.prior_day_low,
            LevelSource.OVERNIGHT_HIGH: state.overnight_high,
            LevelSource.OVERNIGHT_LOW: state.overnight_low,
        }[source]
        return derived if derived is not None else self.config.manual_level

    def _roll_day(self, day_key):
        state = self._state
        # Only a day with both RTH extremes replaces PDH/PDL; session-less days carry the last ones forward.
        if state.current_day_key is not None and state.current_rth_high is not None and state.current_rth_low is not None:
            state.prior_day_high = state.current_rth_high
            state.prior_day_low = state.current_rth_low
            self.logger.info(
                f"Prior day levels from {state.current_day_key}: PDH={state.prior_day_high:.2f}, PDL={state.prior_day_low:.2f}"
            )
        state.current_day_key = day_key
        state.current_rth_high = None
        state.current_rth_low = None

    def _roll_overnight(self, overnight_key):
        state = self._state
        self.logger.debug(f"Starting overnight window for {overnight_key}.")
        state.current_overnight_key = overnight_key
        state.overnight_high = None
        state.overnight_low = None

    def _is_on_side(self, close, level):
        if level is None:
            return False
        return close >= level if self.accept_above else close <= level

    def _count_acceptance(self, on_side, previous_on_side):
        state = self._state
        threshold = self.config.acceptance_threshold
        if on_side and not previous_on_side:
            state.consecutive_accept_bars = 1
            state.is_accepted = False
        elif on_side:
            state.consecutive_accept_bars = min(threshold, state.consecutive_accept_bars + 1)
        else:
            state.consecutive_accept_bars = 0
            state.is_accepted = False

        if state.consecutive_accept_bars >= threshold:
            state.is_accepted = True
