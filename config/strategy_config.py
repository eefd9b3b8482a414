# strategy_config.py

# --- Acceptance Timer Parameters ---

# Which level to monitor: 'Manual', 'PDH', 'PDL', 'ONH' or 'ONL'.
LEVEL_SOURCE = 'PDL'

# Price used when LEVEL_SOURCE is 'Manual', and as a fallback while a derived
# level (PDH/PDL/ONH/ONL) has not been observed yet. None means no fallback.
MANUAL_LEVEL = None

# The number of consecutive closes on the accepted side required to call a
# level accepted. Must be at least 1.
ACCEPTANCE_BARS = 10

# When True the accept side follows the level source:
#   PDH/ONH -> accept BELOW (failed breakout)
#   PDL/ONL -> accept ABOVE (failed breakdown)
#   Manual  -> accept ABOVE
ACCEPT_SIDE_AUTO = True

# Forces the accept side when ACCEPT_SIDE_AUTO is False. True means accept ABOVE.
ACCEPT_ABOVE_OVERRIDE = True
