"""
Detectors - Volatility Regimes
Squeeze (Bollinger inside Keltner) and the Williams VIX Fix fear gauge.
"""
import logging

import pandas as pd

from signal_engine.config import FearConfig, SqueezeConfig
from signal_engine.data.validator import require_length
from signal_engine.utils.indicators import atr, rolling_std, sma
from .models import FearState, SqueezeState

logger = logging.getLogger("SignalEngine.Volatility")


def squeeze_series(df: pd.DataFrame, config: SqueezeConfig) -> pd.DataFrame:
    """
    Bands and squeeze flags for every bar.

    Returns:
    - DataFrame with [upper_bb, lower_bb, upper_kc, lower_kc, squeeze_on, squeeze_off]
    """
    close = df['close']
    basis = sma(close, config.length)
    deviation = rolling_std(close, config.length)
    atr_values = atr(df, config.length)

    bands = pd.DataFrame(index=df.index)
    bands['upper_bb'] = basis + config.bb_mult * deviation
    bands['lower_bb'] = basis - config.bb_mult * deviation
    bands['upper_kc'] = basis + atr_values * config.kc_mult
    bands['lower_kc'] = basis - atr_values * config.kc_mult

    bands['squeeze_on'] = (bands['lower_bb'] > bands['lower_kc']) & (bands['upper_bb'] < bands['upper_kc'])
    bands['squeeze_off'] = (bands['lower_bb'] < bands['lower_kc']) & (bands['upper_bb'] > bands['upper_kc'])
    return bands


def analyze_squeeze(df: pd.DataFrame, config: SqueezeConfig) -> SqueezeState:
    """
    Squeeze state at the last bar.

    Raises:
    - InsufficientData when fewer than config.length bars are available
    """
    require_length(df, 'squeeze', config.min_bars)
    bands = squeeze_series(df, config)
    last = bands.iloc[-1]

    squeeze_on = bool(last['squeeze_on'])
    squeeze_off = bool(last['squeeze_off'])

    count = 0
    for value in reversed(bands['squeeze_on'].tolist()):
        if not value:
            break
        count += 1

    released = len(bands) > 1 and bool(bands['squeeze_on'].iloc[-2]) and not squeeze_on

    state = SqueezeState(
        squeeze_on=squeeze_on,
        squeeze_off=squeeze_off,
        no_squeeze=not squeeze_on and not squeeze_off,
        squeeze_count=count,
        released=released,
        upper_bb=float(last['upper_bb']),
        lower_bb=float(last['lower_bb']),
        upper_kc=float(last['upper_kc']),
        lower_kc=float(last['lower_kc']),
    )
    logger.debug(f"Squeeze: on={state.squeeze_on} fired={state.fired} count={state.squeeze_count}")
    return state


def wvf_series(df: pd.DataFrame, period: int = 22) -> pd.Series:
    """Williams VIX Fix: drawdown of close from the highest close over the period, in percent."""
    close = df['close']
    highest = close.rolling(window=period, min_periods=1).max()
    return (highest - close) / highest * 100


def analyze_fear(df: pd.DataFrame, config: FearConfig) -> FearState:
    """
    Fear gauge at the last bar.

    Extreme when the current WVF reaches either the upper band
    (mean + band_mult * stdev of the last band_length values) or the
    scaled range high of the last range_lookback values. A WVF of 0 (close
    at the period high) is never extreme.

    Raises:
    - InsufficientData when fewer than config.period bars are available
    """
    require_length(df, 'fear', config.min_bars)
    wvf = wvf_series(df, config.period)
    current = float(wvf.iloc[-1])

    history = wvf.tail(config.band_length)
    upper_band = float(history.mean() + config.band_mult * history.std(ddof=0))
    range_high = float(wvf.tail(config.range_lookback).max() * config.range_percentile)

    extreme = current > 0 and (current >= upper_band or current >= range_high)

    state = FearState(wvf=current, upper_band=upper_band, range_high=range_high, fear_extreme=extreme)
    logger.debug(f"Fear: wvf={current:.2f} upper={upper_band:.2f} range_high={range_high:.2f} "
                 f"extreme={extreme}")
    return state
