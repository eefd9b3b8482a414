from loguru import logger


class AcceptanceMonitor:
    """
    Watches a single symbol's SessionLevelTracker and reports acceptance transitions.

    The tracker answers "where are we now"; the monitor compares consecutive snapshots
    and turns the changes into events:
        acceptance_started -> accepted -> acceptance_lost
    plus level_changed whenever the monitored level moves (new PDL, new overnight low...).

    It is used by the replay script and keeps no state beyond the previous snapshot.
    """
    def __init__(self, symbol: str, tracker):
        """
        Args:
            symbol (str): The trading symbol (e.g., 'MES').
            tracker: An instance of SessionLevelTracker owned by this monitor.
        """
        self.symbol = symbol
        self.tracker = tracker
        self.logger = logger.bind(symbol=symbol)
        self.previous_snapshot = None
        self.bars_processed = 0

    def reset_state(self):
        """Resets the tracker and forgets the previous snapshot."""
        self.logger.info(f"Resetting acceptance monitor for {self.symbol}.")
        self.tracker.reset()
        self.previous_snapshot = None
        self.bars_processed = 0

    def process_bar(self, bar):
        """
        Feeds one bar to the tracker and returns the transition events it caused.

        Args:
            bar (Bar): The latest bar.

        Returns:
            list[dict]: Zero or more events, in the order they happened.
        """
        snapshot = self.tracker.update(bar)
        previous = self.previous_snapshot
        events = []

        if snapshot is previous:
            # Out-of-order bar, the tracker ignored it.
            return events
        self.bars_processed += 1

        if previous is not None and snapshot.selected_level != previous.selected_level and snapshot.selected_level is not None:
            self.logger.info(f"Level for {self.symbol} moved from {previous.selected_level} to {snapshot.selected_level:.2f}")
            events.append(self._make_event('level_changed', snapshot))

        previous_bars = previous.accept_bars if previous is not None else 0
        previous_accepted = previous.accepted if previous is not None else False

        if snapshot.accept_bars == 1 and previous_bars != 1:
            self.logger.debug(f"Acceptance streak started for {self.symbol}: {snapshot.status_text()}")
            events.append(self._make_event('acceptance_started', snapshot))

        if snapshot.accepted and not previous_accepted:
            self.logger.info(f"ACCEPTED for {self.symbol}: {snapshot.status_text()}")
            events.append(self._make_event('accepted', snapshot))
        elif previous_accepted and not snapshot.accepted:
            self.logger.info(f"Acceptance lost for {self.symbol} at {snapshot.timestamp}")
            events.append(self._make_event('acceptance_lost', snapshot))

        self.previous_snapshot = snapshot
        return events

    def _make_event(self, event_type, snapshot):
        return {
            'symbol': self.symbol,
            'event': event_type,
            'timestamp': snapshot.timestamp,
            'level': snapshot.selected_level,
            'accept_bars': snapshot.accept_bars,
            'threshold': snapshot.acceptance_threshold,
            'side': 'above' if snapshot.accept_above else 'below',
        }
