"""
Shared indicator math on pandas Series/DataFrames.
All helpers are pure: they return new Series and never touch their inputs.
"""
import numpy as np
import pandas as pd


def sma(series: pd.Series, period: int) -> pd.Series:
    return series.rolling(window=period).mean()


def ema(series: pd.Series, period: int) -> pd.Series:
    """EMA seeded with the first value (no warm-up NaNs)."""
    return series.ewm(span=period, adjust=False).mean()


def rolling_std(series: pd.Series, period: int) -> pd.Series:
    """Population standard deviation, the way band indicators define it."""
    return series.rolling(window=period).std(ddof=0)


def hlc3(df: pd.DataFrame) -> pd.Series:
    return (df['high'] + df['low'] + df['close']) / 3


def true_range(df: pd.DataFrame) -> pd.Series:
    high = df['high']
    low = df['low']
    prev_close = df['close'].shift(1)

    tr = pd.concat([
        high - low,
        (high - prev_close).abs(),
        (low - prev_close).abs()
    ], axis=1).max(axis=1)

    # First bar has no previous close: its range is the true range
    return tr


def atr(df: pd.DataFrame, period: int = 14) -> pd.Series:
    """Calculate Average True Range (simple average of true range)."""
    return true_range(df).rolling(window=period).mean()


def rsi(close: pd.Series, period: int = 14) -> pd.Series:
    """RSI using simple averages of gains and losses over the period."""
    delta = close.diff()
    gain = delta.where(delta > 0, 0.0).rolling(window=period).mean()
    loss = (-delta.where(delta < 0, 0.0)).rolling(window=period).mean()

    rs = gain / loss
    result = 100 - (100 / (1 + rs))
    # No losses in the window: fully overbought
    result = result.where(loss != 0, 100.0)
    return result.fillna(50.0)


def macd(close: pd.Series, fast: int = 12, slow: int = 26, signal: int = 9):
    """Returns (macd_line, signal_line, histogram)."""
    macd_line = ema(close, fast) - ema(close, slow)
    signal_line = ema(macd_line, signal)
    return macd_line, signal_line, macd_line - signal_line


def adx(df: pd.DataFrame, period: int = 14) -> pd.Series:
    """
    Average Directional Index.

    DI+/DI- come from rolling sums of directional movement over the period,
    ADX is the simple average of DX over the same period.
    """
    up_move = df['high'].diff()
    down_move = -df['low'].diff()

    plus_dm = up_move.where((up_move > down_move) & (up_move > 0), 0.0)
    minus_dm = down_move.where((down_move > up_move) & (down_move > 0), 0.0)
    tr = true_range(df)
    # First bar has no directional movement
    plus_dm.iloc[0] = 0.0
    minus_dm.iloc[0] = 0.0
    tr.iloc[0] = 0.0

    sum_tr = tr.rolling(window=period).sum()
    sum_plus = plus_dm.rolling(window=period).sum()
    sum_minus = minus_dm.rolling(window=period).sum()

    di_plus = (100 * sum_plus / sum_tr).where(sum_tr > 0, 0.0)
    di_minus = (100 * sum_minus / sum_tr).where(sum_tr > 0, 0.0)
    di_sum = di_plus + di_minus
    dx = (100 * (di_plus - di_minus).abs() / di_sum).where(di_sum > 0, 0.0)

    return dx.rolling(window=period).mean()


def cci(df: pd.DataFrame, length: int = 20, smoothing: int = 5, final_smoothing: int = 2) -> pd.Series:
    """
    Commodity Channel Index on hlc3, scaled by the population standard
    deviation, then smoothed twice with EMAs.
    """
    typical = hlc3(df)
    basis = sma(typical, length)
    deviation = rolling_std(typical, length)

    raw = ((typical - basis) / (0.015 * deviation)).where(deviation > 0, 0.0)
    raw = raw.fillna(0.0)
    return ema(ema(raw, smoothing), final_smoothing)


def safe_ratio(numerator: float, denominator: float, default: float = 1.0) -> float:
    if denominator is None or denominator == 0 or np.isnan(denominator):
        return default
    return float(numerator) / float(denominator)


def round_half_up(value: float) -> int:
    """Rounds .5 away from zero (Python's round() uses banker's rounding)."""
    magnitude = int(np.floor(abs(value) + 0.5))
    return magnitude if value >= 0 else -magnitude


def clamp(value: float, limit: float) -> float:
    return max(-limit, min(limit, value))
