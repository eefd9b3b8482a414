import datetime
import pytz


class ConfigError(ValueError):
    """Raised when session windows or tracker settings are invalid."""


def parse_clock_time(value):
    """Accepts a datetime.time or an 'HH:MM' string and returns a datetime.time."""
    if isinstance(value, datetime.time):
        return value
    try:
        return datetime.datetime.strptime(str(value), '%H:%M').time()
    except ValueError as e:
        raise ConfigError(f"Invalid clock time {value!r}, expected 'HH:MM'.") from e


class SessionManager:
    """
    Classifies bars into the regular (RTH) and overnight sessions and derives the
    calendar keys used to segment session extremes.

    RTH is the half-open window [rth_start, rth_end). The overnight window runs from
    eth_start to the next rth_start and wraps past midnight, so a bar is overnight
    when its time of day is >= eth_start OR < rth_start.
    """
    def __init__(self, rth_start, rth_end, eth_start, timezone='America/New_York'):
        self.rth_start_time = parse_clock_time(rth_start)
        self.rth_end_time = parse_clock_time(rth_end)
        self.eth_start_time = parse_clock_time(eth_start)
        try:
            self.timezone = pytz.timezone(timezone)
        except pytz.UnknownTimeZoneError as e:
            raise ConfigError(f"Unknown timezone: {timezone}") from e

        if self.rth_start_time == self.rth_end_time:
            raise ConfigError(f"Degenerate RTH window: start and end are both {self.rth_start_time}.")
        if self.rth_start_time > self.rth_end_time:
            raise ConfigError(f"RTH window {self.rth_start_time}-{self.rth_end_time} must not wrap midnight.")
        if self.eth_start_time < self.rth_end_time:
            raise ConfigError(f"ETH start {self.eth_start_time} falls inside the RTH window.")

    @classmethod
    def from_config(cls, market_config):
        sessions = market_config.TRADING_SESSIONS
        return cls(
            rth_start=sessions['regular']['start'],
            rth_end=sessions['regular']['end'],
            eth_start=sessions['overnight']['start'],
            timezone=getattr(market_config, 'TIMEZONE', 'America/New_York'),
        )

    def to_exchange_time(self, timestamp):
        """Converts an aware timestamp to exchange time. Naive timestamps are already exchange time."""
        if timestamp.tzinfo is None:
            return timestamp
        return timestamp.astimezone(self.timezone)

    def localize(self, timestamp):
        """Returns an aware timestamp; naive timestamps are taken as exchange time."""
        if timestamp.tzinfo is None:
            return self.timezone.localize(timestamp)
        return timestamp

    def get_day_key(self, timestamp):
        """Calendar date of the bar in exchange time."""
        return self.to_exchange_time(timestamp).date()

    def get_overnight_key(self, timestamp):
        """
        Calendar date of the RTH session the overnight window precedes.
        Evening bars (at/after ETH start) belong to tomorrow's overnight key.
        """
        local = self.to_exchange_time(timestamp)
        if local.time() >= self.eth_start_time:
            return local.date() + datetime.timedelta(days=1)
        return local.date()

    def is_in_rth(self, timestamp):
        current_time = self.to_exchange_time(timestamp).time()
        return self.rth_start_time <= current_time < self.rth_end_time

    def is_in_overnight(self, timestamp):
        current_time = self.to_exchange_time(timestamp).time()
        return current_time >= self.eth_start_time or current_time < self.rth_start_time

    def get_current_session(self, timestamp):
        """
        Determines the session a bar belongs to.

        Args:
            timestamp (datetime): Naive exchange time or a timezone-aware datetime.

        Returns:
            str: 'rth', 'overnight', or None between RTH end and ETH start.
        """
        if self.is_in_rth(timestamp):
            return 'rth'
        if self.is_in_overnight(timestamp):
            return 'overnight'
        return None
