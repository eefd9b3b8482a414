import logging

import pandas as pd

from data.bar_loader import iter_bars
from strategy.acceptance_tracker import SessionLevelTracker

LEVEL_COLUMNS = ['pdh', 'pdl', 'onh', 'onl', 'level', 'accept_above', 'accept_bars', 'accepted']


class LevelCalculator:
    def __init__(self, tracker_config, logger=None):
        self.tracker_config = tracker_config
        self.logger = logger or logging.getLogger(__name__)

    def calculate_all_levels(self, intraday_data: pd.DataFrame) -> pd.DataFrame:
        """
        Runs a fresh SessionLevelTracker over a bar DataFrame and returns, for every bar,
        the levels known at that bar and the acceptance state of the selected level.
        - PDH/PDL are the previous day's completed RTH extremes.
        - ONH/ONL are the extremes of the overnight window in progress.
        Nothing is looked up ahead of the bar it is reported on.
        """
        if intraday_data is None or intraday_data.empty:
            self.logger.error("Intraday data is empty. Cannot calculate levels.")
            return pd.DataFrame(columns=LEVEL_COLUMNS)

        if not isinstance(intraday_data.index, pd.DatetimeIndex):
            # Naive stamps stay naive so the tracker reads them as exchange time.
            try:
                index = pd.to_datetime(intraday_data.index)
            except (TypeError, ValueError) as e:
                self.logger.error(f"Error converting index to datetime: {e}")
                return pd.DataFrame(columns=LEVEL_COLUMNS)
            if not isinstance(index, pd.DatetimeIndex):
                self.logger.error("Index mixes UTC offsets. Cannot calculate levels.")
                return pd.DataFrame(columns=LEVEL_COLUMNS)
            intraday_data = intraday_data.copy()
            intraday_data.index = index

        tracker = SessionLevelTracker(self.tracker_config, self.logger)
        rows = []
        for snapshot in tracker.run(iter_bars(intraday_data)):
            rows.append({
                'pdh': snapshot.prior_day_high,
                'pdl': snapshot.prior_day_low,
                'onh': snapshot.overnight_high,
                'onl': snapshot.overnight_low,
                'level': snapshot.selected_level,
                'accept_above': snapshot.accept_above,
                'accept_bars': snapshot.accept_bars,
                'accepted': snapshot.accepted,
            })

        levels = pd.DataFrame(rows, index=intraday_data.index, columns=LEVEL_COLUMNS)
        accepted_bars = int(levels['accepted'].sum())
        self.logger.info(f"Calculated levels for {len(levels)} bars ({accepted_bars} bars accepted).")
        return levels

    def latest_levels(self, levels: pd.DataFrame) -> dict:
        """Returns the PDH/PDL/ONH/ONL known at the final bar of a calculate_all_levels() result."""
        latest = {'pdh': None, 'pdl': None, 'onh': None, 'onl': None}
        if levels is None or levels.empty:
            self.logger.warning("No levels calculated yet.")
            return latest

        last_row = levels.iloc[-1]
        for name in latest:
            value = last_row[name]
            latest[name] = None if pd.isna(value) else float(value)
        return latest
