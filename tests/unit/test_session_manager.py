import datetime
import unittest
from types import SimpleNamespace

import pytz

from data.session_manager import ConfigError, SessionManager, parse_clock_time


class TestSessionManager(unittest.TestCase):

    def setUp(self):
        self.sessions = SessionManager('09:30', '16:00', '18:00')

    def test_parse_clock_time(self):
        self.assertEqual(parse_clock_time('09:30'), datetime.time(9, 30))
        self.assertEqual(parse_clock_time(datetime.time(18, 0)), datetime.time(18, 0))
        with self.assertRaises(ConfigError):
            parse_clock_time('9h30')

    def test_rth_window_is_half_open(self):
        self.assertTrue(self.sessions.is_in_rth(datetime.datetime(2024, 1, 2, 9, 30)))
        self.assertTrue(self.sessions.is_in_rth(datetime.datetime(2024, 1, 2, 15, 59)))
        self.assertFalse(self.sessions.is_in_rth(datetime.datetime(2024, 1, 2, 16, 0)))
        self.assertFalse(self.sessions.is_in_rth(datetime.datetime(2024, 1, 2, 9, 29)))

    def test_overnight_wraps_midnight(self):
        self.assertTrue(self.sessions.is_in_overnight(datetime.datetime(2024, 1, 2, 18, 0)))
        self.assertTrue(self.sessions.is_in_overnight(datetime.datetime(2024, 1, 2, 23, 59)))
        self.assertTrue(self.sessions.is_in_overnight(datetime.datetime(2024, 1, 3, 3, 0)))
        self.assertTrue(self.sessions.is_in_overnight(datetime.datetime(2024, 1, 3, 9, 29)))
        self.assertFalse(self.sessions.is_in_overnight(datetime.datetime(2024, 1, 3, 9, 30)))
        self.assertFalse(self.sessions.is_in_overnight(datetime.datetime(2024, 1, 3, 17, 0)))

    def test_each_bar_has_exactly_one_session(self):
        self.assertEqual(self.sessions.get_current_session(datetime.datetime(2024, 1, 2, 10, 0)), 'rth')
        self.assertEqual(self.sessions.get_current_session(datetime.datetime(2024, 1, 2, 20, 0)), 'overnight')
        self.assertIsNone(self.sessions.get_current_session(datetime.datetime(2024, 1, 2, 16, 30)))

    def test_overnight_key_belongs_to_next_rth_day(self):
        evening = datetime.datetime(2024, 1, 2, 18, 15)
        morning = datetime.datetime(2024, 1, 3, 4, 0)
        self.assertEqual(self.sessions.get_day_key(evening), datetime.date(2024, 1, 2))
        self.assertEqual(self.sessions.get_overnight_key(evening), datetime.date(2024, 1, 3))
        self.assertEqual(self.sessions.get_overnight_key(morning), datetime.date(2024, 1, 3))

    def test_overnight_key_across_month_end(self):
        self.assertEqual(
            self.sessions.get_overnight_key(datetime.datetime(2024, 1, 31, 19, 0)),
            datetime.date(2024, 2, 1),
        )

    def test_aware_timestamps_are_converted_to_exchange_time(self):
        # 14:30 UTC is 09:30 in New York during EST.
        ts = pytz.utc.localize(datetime.datetime(2024, 1, 2, 14, 30))
        self.assertTrue(self.sessions.is_in_rth(ts))
        # 23:30 UTC on Jan 2 is 18:30 ET, the evening of Jan 2.
        evening = pytz.utc.localize(datetime.datetime(2024, 1, 2, 23, 30))
        self.assertEqual(self.sessions.get_day_key(evening), datetime.date(2024, 1, 2))
        self.assertEqual(self.sessions.get_overnight_key(evening), datetime.date(2024, 1, 3))

    def test_localize_reads_naive_as_exchange_time(self):
        naive = self.sessions.localize(datetime.datetime(2024, 1, 2, 10, 0))
        self.assertEqual(naive, pytz.utc.localize(datetime.datetime(2024, 1, 2, 15, 0)))
        aware = pytz.utc.localize(datetime.datetime(2024, 1, 2, 15, 0))
        self.assertIs(self.sessions.localize(aware), aware)

    def test_invalid_windows_are_rejected(self):
        with self.assertRaises(ConfigError):
            SessionManager('09:30', '09:30', '18:00')
        with self.assertRaises(ConfigError):
            SessionManager('16:00', '09:30', '18:00')
        with self.assertRaises(ConfigError):
            SessionManager('09:30', '16:00', '12:00')
        with self.assertRaises(ConfigError):
            SessionManager('09:30', '16:00', '18:00', timezone='Mars/Olympus_Mons')

    def test_from_config(self):
        market_config = SimpleNamespace(
            TIMEZONE='America/Chicago',
            TRADING_SESSIONS={'regular': {'start': '08:30', 'end': '15:00'}, 'overnight': {'start': '17:00'}},
        )
        sessions = SessionManager.from_config(market_config)
        self.assertEqual(sessions.rth_start_time, datetime.time(8, 30))
        self.assertEqual(sessions.eth_start_time, datetime.time(17, 0))
        self.assertEqual(sessions.timezone.zone, 'America/Chicago')


if __name__ == '__main__':
    unittest.main()
