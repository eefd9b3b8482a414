# Exchange timezone. Bar timestamps that carry a timezone are converted to it
# before any session logic runs; naive timestamps are taken as exchange time.
TIMEZONE = 'America/New_York'

# Session boundaries in exchange time.
# 'regular' is the half-open RTH window [start, end).
# 'overnight' starts at ETH start and runs to the next RTH start, wrapping midnight.
TRADING_SESSIONS = {
    'regular': {'start': '09:30', 'end': '16:00'},
    'overnight': {'start': '18:00'}
}
