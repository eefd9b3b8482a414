"""bar_loader.py
Loads historical OHLCV bars so they can be streamed through the acceptance tracker.

The rest of the codebase expects a pandas DataFrame that:
1. Has a timezone-aware DatetimeIndex (UTC).
2. Is sorted in ascending order.
3. Contains at least the columns: ``open``, ``high``, ``low``, ``close``, ``volume``.

Two sources are supported: plain CSV exports with a ``timestamp`` column, and
pre-downloaded Databento *.dbn* files.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterator, Optional, Union

import pandas as pd

from strategy.acceptance_tracker import Bar

try:
    from databento import DBNStore
except ImportError as exc:  # pragma: no cover – improves DX if sdk is missing
    raise ImportError(
        "The `databento` package is required for BarLoader. Run\n"
        "   pip install databento\n"
        "and ensure your virtualenv is activated."
    ) from exc


REQUIRED_COLUMNS = ["open", "high", "low", "close", "volume"]


class BarLoader:
    """Loads OHLCV bars from CSV or Databento *.dbn* files.

    Parameters
    ----------
    file_paths
        Mapping of *symbol* -> *path* to that symbol's bar file.
        Example::
            {
                "MES": "/data/databento/mes_ohlcv_1m.dbn",
                "MNQ": "/data/exports/mnq_ohlcv_1m.csv",
            }
    timezone
        Exchange timezone. Timestamps without a timezone (in the file or in
        the requested date range) are read as exchange time.
    """

    def __init__(self, file_paths: Dict[str, Union[str, Path]], timezone: str = "America/New_York"):
        self.timezone = timezone
        # Normalise to Path objects
        self._file_paths: Dict[str, Path] = {
            sym.upper(): Path(p) for sym, p in file_paths.items()
        }

    # ---------------------------------------------------------------------
    # Public helpers
    # ---------------------------------------------------------------------
    def load_data(
        self,
        symbol: str,
        start_date: Optional[pd.Timestamp] = None,
        end_date: Optional[pd.Timestamp] = None,
        timeframe: str = "1m",
    ) -> pd.DataFrame:
        """Return historical bars for *symbol* between *start_date* and *end_date*.

        The ``timeframe`` argument supports minute granularities. If the requested
        timeframe is coarser than the source data (e.g. 5m whilst the file holds
        1m bars), the loader will *down-sample* using pandas' *ohlc* aggregation.
        """
        file_path = self._file_paths.get(symbol.upper())
        if file_path is None:
            raise FileNotFoundError(
                f"No bar file path configured for symbol '{symbol}'."
            )
        if not file_path.exists():
            raise FileNotFoundError(file_path)

        # ------------------------------------------------------------------
        # 1. Read file → DataFrame
        # ------------------------------------------------------------------
        if file_path.suffix.lower() == ".dbn":
            df = self._read_dbn(file_path, symbol)
        else:
            df = self._read_csv(file_path)

        # ------------------------------------------------------------------
        # 2. Basic cleaning / normalisation
        # ------------------------------------------------------------------
        df.columns = [str(c).lower() for c in df.columns]
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if "volume" in missing:
            df["volume"] = 0
            missing.remove("volume")
        if missing:
            raise ValueError(f"Bar file {file_path} is missing columns: {missing}")

        df.sort_index(inplace=True)
        if df.index.tz is None:
            df.index = df.index.tz_localize(self.timezone, ambiguous="infer", nonexistent="shift_forward")
        df.index = df.index.tz_convert("UTC")

        # Keep a consistent column order
        df = df[REQUIRED_COLUMNS]

        # ------------------------------------------------------------------
        # 3. Optional resampling (e.g. 5-minute bars)
        # ------------------------------------------------------------------
        if timeframe and timeframe.lower() != "1m":
            if timeframe.endswith("m"):
                minutes = int(timeframe.rstrip("m"))
                df = df.resample(f"{minutes}min").agg(
                    {
                        "open": "first",
                        "high": "max",
                        "low": "min",
                        "close": "last",
                        "volume": "sum",
                    }
                ).dropna()
            else:
                raise ValueError(
                    "BarLoader currently supports only minute timeframes."
                )

        # ------------------------------------------------------------------
        # 4. Date slicing – keep only requested window
        # ------------------------------------------------------------------
        if start_date is not None:
            df = df[df.index >= self._to_utc(start_date)]
        if end_date is not None:
            df = df[df.index <= self._to_utc(end_date)]
        return df.copy()

    def _to_utc(self, value) -> pd.Timestamp:
        ts = pd.Timestamp(value)
        if ts.tzinfo is None:
            ts = ts.tz_localize(self.timezone)
        return ts.tz_convert("UTC")

    @staticmethod
    def _read_csv(file_path: Path) -> pd.DataFrame:
        df = pd.read_csv(file_path)
        time_column = next(
            (c for c in df.columns if str(c).lower() in ("timestamp", "ts_event", "datetime", "time")),
            None,
        )
        if time_column is None:
            raise ValueError(f"Bar file {file_path} has no timestamp column.")
        stamps = df.pop(time_column)
        try:
            parsed = pd.to_datetime(stamps)
        except ValueError:
            parsed = None
        if parsed is None or not pd.api.types.is_datetime64_any_dtype(parsed):
            # Mixed UTC offsets (e.g. across a DST change) only parse onto UTC.
            parsed = pd.to_datetime(stamps, utc=True)
        df.index = pd.DatetimeIndex(parsed)
        return df

    @staticmethod
    def _read_dbn(file_path: Path, symbol: str) -> pd.DataFrame:
        store = DBNStore.from_file(file_path)
        df = store.to_df()

        # If Databento included a human-readable symbol column we can filter
        if "symbol" in df.columns:
            # Match all contracts that start with the base symbol (e.g., "MNQ" matches "MNQU0", "MNQZ0", etc.)
            df = df[df["symbol"].str.upper().str.startswith(symbol.upper())]
        return df


def iter_bars(df: pd.DataFrame) -> Iterator[Bar]:
    """Streams a bar DataFrame as Bar records; the first row starts the sequence."""
    first = True
    for row in df.itertuples():
        yield Bar(
            timestamp=row.Index.to_pydatetime(),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            is_first_in_sequence=first,
        )
        first = False
