# --- Main System Configuration ---

# List of symbols to replay through the acceptance timer.
# Each symbol gets its own tracker; nothing is shared between them.
SYMBOLS = ["MNQ", "MES"]

# The bar timeframe fed to the tracker.
# Acceptance is counted in bars, so pick ACCEPTANCE_BARS with this in mind
# (e.g. 5/10/15 bars on 1m, 2/3 bars on 5m for a 10-15 minute window).
# Examples: "1m", "2m", "5m"
TIMEFRAME = "1m"

# Bar file locations
# ------------------
# Map each symbol to the path of its historical bars. Both plain CSV exports
# (timestamp, open, high, low, close, volume) and Databento *.dbn* files are
# supported.
# Example:
#   {
#       "MES": "/path/to/mes_ohlcv_1m.dbn",
#       "MNQ": "/path/to/mnq_ohlcv_1m.csv",
#   }
BAR_FILE_PATHS = {
    "MES": "data/bars/mes_ohlcv_1m.csv",
    "MNQ": "data/bars/mnq_ohlcv_1m.csv",
}

# Rotating log file written by shared_components.setup_logger().
LOG_FILE = "acceptance_timer.log"
