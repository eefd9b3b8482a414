import datetime
import unittest

from strategy.acceptance_monitor import AcceptanceMonitor
from strategy.acceptance_tracker import Bar, SessionLevelTracker, TrackerConfig


def make_bar(day, hhmm, high, low, close, first=False):
    hour, minute = (int(part) for part in hhmm.split(':'))
    return Bar(datetime.datetime(2024, 1, day, hour, minute), high, low, close, first)


class TestAcceptanceMonitor(unittest.TestCase):

    def make_monitor(self, **settings):
        return AcceptanceMonitor('MES', SessionLevelTracker(TrackerConfig(**settings)))

    def event_types(self, events):
        return [e['event'] for e in events]

    def test_acceptance_lifecycle_events(self):
        monitor = self.make_monitor(level_source='Manual', manual_level=100.0, acceptance_threshold=2)
        self.assertEqual(monitor.process_bar(make_bar(2, '10:00', 101, 98, 99.0, first=True)), [])
        self.assertEqual(self.event_types(monitor.process_bar(make_bar(2, '10:01', 101, 98, 100.5))), ['acceptance_started'])

        events = monitor.process_bar(make_bar(2, '10:02', 101, 98, 100.25))
        self.assertEqual(self.event_types(events), ['accepted'])
        self.assertEqual(events[0]['symbol'], 'MES')
        self.assertEqual(events[0]['level'], 100.0)
        self.assertEqual(events[0]['accept_bars'], 2)
        self.assertEqual(events[0]['threshold'], 2)
        self.assertEqual(events[0]['side'], 'above')

        self.assertEqual(monitor.process_bar(make_bar(2, '10:03', 101, 98, 100.5)), [])
        self.assertEqual(self.event_types(monitor.process_bar(make_bar(2, '10:04', 101, 98, 99.0))), ['acceptance_lost'])
        self.assertEqual(monitor.bars_processed, 5)

    def test_level_change_reported_when_prior_day_low_appears(self):
        monitor = self.make_monitor(level_source='PDL', acceptance_threshold=3)
        monitor.process_bar(make_bar(2, '10:00', 101.0, 100.0, 100.5, first=True))
        events = monitor.process_bar(make_bar(3, '09:30', 101.0, 100.2, 100.5))
        self.assertEqual(self.event_types(events), ['level_changed', 'acceptance_started'])
        self.assertEqual(events[0]['level'], 100.0)

    def test_failed_breakout_side_is_below(self):
        monitor = self.make_monitor(level_source='ONH', acceptance_threshold=1)
        monitor.process_bar(make_bar(2, '03:00', 105.0, 100.0, 104.0, first=True))
        # RTH close above the overnight high breaks acceptance below it.
        lost = monitor.process_bar(make_bar(2, '10:00', 107.0, 104.0, 106.0))
        self.assertEqual(self.event_types(lost), ['acceptance_lost'])

        events = monitor.process_bar(make_bar(2, '10:01', 106.0, 103.0, 104.0))
        self.assertEqual(self.event_types(events), ['acceptance_started', 'accepted'])
        self.assertEqual(events[-1]['level'], 105.0)
        self.assertEqual(events[-1]['side'], 'below')

    def test_out_of_order_bar_produces_no_events(self):
        monitor = self.make_monitor(level_source='Manual', manual_level=100.0, acceptance_threshold=2)
        monitor.process_bar(make_bar(2, '10:05', 101, 98, 100.5, first=True))
        self.assertEqual(monitor.process_bar(make_bar(2, '10:00', 101, 98, 99.0)), [])
        self.assertEqual(monitor.bars_processed, 1)

    def test_reset_state(self):
        monitor = self.make_monitor(level_source='Manual', manual_level=100.0, acceptance_threshold=2)
        monitor.process_bar(make_bar(2, '10:00', 101, 98, 100.5, first=True))
        monitor.reset_state()
        self.assertIsNone(monitor.previous_snapshot)
        self.assertEqual(monitor.bars_processed, 0)
        self.assertEqual(monitor.tracker.state.consecutive_accept_bars, 0)


if __name__ == '__main__':
    unittest.main()
