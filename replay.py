# replay.py - Replays historical bars through the acceptance timer and records every transition.

import logging
from datetime import datetime

import pandas as pd

# Import configurations
import config.market_config as market_config
import config.strategy_config as strategy_config
from config import main_config

# Import system components
from data.bar_loader import BarLoader, iter_bars
from strategy.acceptance_monitor import AcceptanceMonitor
from strategy.acceptance_tracker import SessionLevelTracker, TrackerConfig

EVENT_COLUMNS = ['symbol', 'event', 'timestamp', 'level', 'accept_bars', 'threshold', 'side']


class AcceptanceReplay:
    def __init__(self, symbols, start_date=None, end_date=None, tracker_config=None, loader=None, timeframe=None):
        self.symbols = symbols
        self.start_date = start_date
        self.end_date = end_date
        self.timeframe = timeframe or main_config.TIMEFRAME
        self.logger = logging.getLogger(__name__)

        self.tracker_config = tracker_config or TrackerConfig.from_config(market_config, strategy_config)
        self.loader = loader or BarLoader(main_config.BAR_FILE_PATHS, timezone=self.tracker_config.timezone)

        # Per-symbol components, one tracker each
        self.symbol_states = {}
        for symbol in self.symbols:
            self.symbol_states[symbol] = {
                'monitor': AcceptanceMonitor(symbol, SessionLevelTracker(self.tracker_config, self.logger)),
                'bars': 0,
                'skipped': False,
            }
        self.events = []

    def run(self):
        """Loads each symbol's bars and streams them through its monitor."""
        for symbol in self.symbols:
            state = self.symbol_states[symbol]
            try:
                bars = self.loader.load_data(symbol, self.start_date, self.end_date, self.timeframe)
            except (FileNotFoundError, ValueError) as e:
                self.logger.error(f"Could not load bars for {symbol}: {e}. Skipping symbol.")
                state['skipped'] = True
                continue

            if bars.empty:
                self.logger.warning(f"No bars for {symbol} in the requested period. Skipping symbol.")
                state['skipped'] = True
                continue

            self.logger.info(f"Replaying {len(bars)} bars for {symbol} ({bars.index[0]} to {bars.index[-1]})")
            monitor = state['monitor']
            for bar in iter_bars(bars):
                self.events.extend(monitor.process_bar(bar))
            state['bars'] = monitor.bars_processed

            last = monitor.previous_snapshot
            if last is not None and last.status_text():
                self.logger.info(f"{symbol} final state: {last.status_text()}")
        return self.events

    def save_results(self, path=None):
        """Writes the collected events to CSV and returns the file name (None if there were no events)."""
        if not self.events:
            self.logger.info("No acceptance events to save.")
            return None

        if path is None:
            start_str = pd.Timestamp(self.start_date).strftime('%Y%m%d') if self.start_date is not None else 'start'
            end_str = pd.Timestamp(self.end_date).strftime('%Y%m%d') if self.end_date is not None else 'end'
            path = f"acceptance_events_{start_str}_to_{end_str}.csv"

        events_df = pd.DataFrame(self.events, columns=EVENT_COLUMNS)
        events_df.to_csv(path, index=False)
        self.logger.info(f"Acceptance events saved to {path}")
        return path

    def summary(self):
        """Per-symbol counts of bars and transitions."""
        summary = {}
        for symbol, state in self.symbol_states.items():
            symbol_events = [e for e in self.events if e['symbol'] == symbol]
            summary[symbol] = {
                'bars': state['bars'],
                'skipped': state['skipped'],
                'acceptances': sum(1 for e in symbol_events if e['event'] == 'accepted'),
                'losses': sum(1 for e in symbol_events if e['event'] == 'acceptance_lost'),
                'level_changes': sum(1 for e in symbol_events if e['event'] == 'level_changed'),
            }
        return summary

    def shutdown(self):
        self.logger.info("\n--- Acceptance Replay Summary ---")
        for symbol, counts in self.summary().items():
            if counts['skipped']:
                self.logger.info(f"{symbol}: skipped")
                continue
            self.logger.info(
                f"{symbol}: bars={counts['bars']}, accepted={counts['acceptances']}, "
                f"lost={counts['losses']}, level changes={counts['level_changes']}"
            )


if __name__ == '__main__':
    from shared_components import setup_logger

    # ==================================================================
    # --- Logging Config ---
    # ==================================================================
    log_filename = f"replay_log_{datetime.now().strftime('%Y%m%d_%H%M%S')}.txt"
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(message)s',
        handlers=[
            logging.FileHandler(log_filename),
            logging.StreamHandler()
        ]
    )
    setup_logger(main_config.LOG_FILE)
    # ==================================================================
    # --- User Config ---
    # ==================================================================
    symbols_to_replay = main_config.SYMBOLS

    # Define the date range to replay. None replays the whole file.
    replay_start_date = datetime(2024, 1, 2)
    replay_end_date = datetime(2024, 3, 29)
    # ==================================================================

    config = TrackerConfig.from_config(market_config, strategy_config)
    logging.info("--- Replay Configuration ---")
    logging.info(f"Symbols: {symbols_to_replay}")
    logging.info(f"Period: {replay_start_date.strftime('%Y-%m-%d')} to {replay_end_date.strftime('%Y-%m-%d')}")
    logging.info(f"Level: {config.level_source.value} (manual={config.manual_level}), acceptance bars: {config.acceptance_threshold}")
    logging.info("---------------------------------")

    replay = AcceptanceReplay(
        symbols=symbols_to_replay,
        start_date=replay_start_date,
        end_date=replay_end_date,
        tracker_config=config
    )
    replay.run()
    replay.save_results()
    replay.shutdown()
