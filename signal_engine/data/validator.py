"""
Bar Series Validator
Normalizes raw bars into an OHLCV DataFrame and enforces the OHLC invariant.
"""
import logging
from dataclasses import asdict, is_dataclass
from typing import Dict, Iterable, Union

import numpy as np
import pandas as pd

from signal_engine.config import EngineConfig
from signal_engine.errors import InsufficientData, InvalidBar

logger = logging.getLogger("SignalEngine.Validator")

PRICE_COLUMNS = ['open', 'high', 'low', 'close']
COLUMNS = PRICE_COLUMNS + ['volume']


def _to_frame(bars) -> pd.DataFrame:
    if isinstance(bars, pd.DataFrame):
        df = bars.copy()
        df.columns = [c[0].lower() if isinstance(c, tuple) else str(c).lower() for c in df.columns]
        if 'timestamp' in df.columns:
            df = df.set_index('timestamp')
        elif 'time' in df.columns:
            df = df.set_index('time')
        return df

    rows = []
    for bar in bars:
        if is_dataclass(bar):
            bar = asdict(bar)
        rows.append(dict(bar))

    df = pd.DataFrame(rows)
    if df.empty:
        return pd.DataFrame(columns=COLUMNS)
    if 'timestamp' in df.columns and df['timestamp'].notna().all():
        df = df.set_index('timestamp')
    else:
        df = df.drop(columns=['timestamp'], errors='ignore')
    return df


def validate_bars(bars: Union[pd.DataFrame, Iterable], min_length: int = 1) -> pd.DataFrame:
    """
    Validate and normalize a price-bar series.

    Parameters:
    - bars: DataFrame with [open, high, low, close, volume] columns, or a list of
      PriceBar objects / dicts carrying the same fields and an optional timestamp
    - min_length: Minimum number of bars required

    Returns:
    - A new DataFrame (the input is never mutated) with float OHLCV columns

    Raises:
    - InvalidBar when a bar breaks low <= min(open, close) <= max(open, close) <= high,
      has non-positive prices, negative volume, or timestamps are not strictly increasing
    - InsufficientData when fewer than min_length bars are supplied
    """
    df = _to_frame(bars)

    missing = [c for c in COLUMNS if c not in df.columns]
    if missing:
        raise InvalidBar(0, f"missing columns: {', '.join(missing)}")

    df = df[COLUMNS].astype(float)

    if len(df) < min_length:
        raise InsufficientData("bars", min_length, len(df))

    values = df.to_numpy()
    nan_rows = np.where(np.isnan(values).any(axis=1))[0]
    if len(nan_rows):
        raise InvalidBar(int(nan_rows[0]), "NaN value")

    bad_price = np.where((df[PRICE_COLUMNS] <= 0).any(axis=1).to_numpy())[0]
    if len(bad_price):
        raise InvalidBar(int(bad_price[0]), "prices must be positive")

    bad_volume = np.where((df['volume'] < 0).to_numpy())[0]
    if len(bad_volume):
        raise InvalidBar(int(bad_volume[0]), "volume must be non-negative")

    body_low = df[['open', 'close']].min(axis=1)
    body_high = df[['open', 'close']].max(axis=1)
    broken = (df['low'] > body_low) | (body_high > df['high'])
    broken_rows = np.where(broken.to_numpy())[0]
    if len(broken_rows):
        i = int(broken_rows[0])
        raise InvalidBar(i, f"OHLC invariant violated (o={df['open'].iloc[i]}, h={df['high'].iloc[i]}, "
                            f"l={df['low'].iloc[i]}, c={df['close'].iloc[i]})")

    if not isinstance(df.index, pd.RangeIndex) and len(df) > 1:
        if not df.index.is_monotonic_increasing or not df.index.is_unique:
            raise InvalidBar(_first_unordered(df.index), "timestamps must be strictly increasing")

    return df


def _first_unordered(index: pd.Index) -> int:
    for i in range(1, len(index)):
        if not index[i] > index[i - 1]:
            return i
    return 0


def required_lookback(config: EngineConfig) -> Dict[str, int]:
    """
    Minimum bar count for every enabled bar-based component.
    """
    lookbacks = {}
    if config.order_flow.enabled:
        lookbacks['order_flow'] = 1
    if config.gaps.enabled:
        lookbacks['gaps'] = config.gaps.min_bars
    if config.patterns.enabled:
        lookbacks['patterns'] = config.patterns.min_bars
    if config.squeeze.enabled:
        lookbacks['squeeze'] = config.squeeze.min_bars
    if config.fear.enabled:
        lookbacks['fear'] = config.fear.min_bars
    if config.trend.enabled:
        lookbacks['trend'] = config.trend.min_bars
    if config.cci.enabled:
        lookbacks['cci'] = config.cci.min_bars
    return lookbacks


def require_length(df: pd.DataFrame, component: str, min_bars: int):
    if len(df) < min_bars:
        raise InsufficientData(component, min_bars, len(df))
