"""
Detectors - Trend / Momentum Composite
Blends the moving-average stack, RSI, MACD, a short VWAP approximation and a
trend flag into a directional score, scales it by a momentum multiplier and
gates it off in low-conviction regimes. Also hosts the smoothed CCI reading.
"""
import logging
from typing import Tuple

import numpy as np
import pandas as pd

from signal_engine.config import CciConfig, TrendConfig
from signal_engine.data.validator import require_length
from signal_engine.utils.indicators import adx, atr, cci, hlc3, macd, rsi, safe_ratio, sma
from .models import CciState, TrendState

logger = logging.getLogger("SignalEngine.Trend")


def _last(series: pd.Series, default: float = 0.0) -> float:
    value = series.iloc[-1]
    return default if pd.isna(value) else float(value)


def ma_stack_score(closes: pd.Series, periods) -> float:
    fast, mid, slow, long_ = (_last(sma(closes, p)) for p in periods)
    score = 0.0
    score += 33.33 if fast > mid else -33.33
    score += 33.33 if mid > slow else -33.33
    score += 33.34 if slow > long_ else -33.34
    return score


def rsi_score(value: float, config: TrendConfig) -> float:
    if value > config.rsi_overbought:
        return 50.0
    if value > config.rsi_midline:
        return 100.0
    if value > config.rsi_oversold:
        return -100.0
    return -50.0


def macd_score(line: float, signal: float, histogram: float) -> float:
    score = 50.0 if histogram > 0 else -50.0
    score += 50.0 if line > signal else -50.0
    return score


def vwap_score(distance_percent: float, band_percent: float) -> float:
    if distance_percent > band_percent:
        return 100.0
    if distance_percent > 0:
        return 50.0
    if distance_percent > -band_percent:
        return -50.0
    return -100.0


def momentum_multiplier(adx_value: float, atr_ratio: float, volume_ratio: float, config: TrendConfig) -> float:
    """0.5 + 1.5 * mean of the three capped strengths, so always in [0.5, 2.0]."""
    adx_strength = min(adx_value / config.adx_norm, 1.0)
    atr_strength = min(atr_ratio / config.atr_norm, 1.0)
    volume_strength = min(volume_ratio / config.volume_norm, 1.0)
    average = (max(adx_strength, 0.0) + max(atr_strength, 0.0) + max(volume_strength, 0.0)) / 3.0
    return 0.5 + 1.5 * average


def apply_prohibition_gate(directional_score: float, multiplier: float, adx_value: float, atr_ratio: float,
                           ma_distance_percent: float, volume_ratio: float,
                           config: TrendConfig) -> Tuple[float, bool, Tuple[str, ...]]:
    """
    Returns (core_value, prohibition_active, reasons).

    Any failing condition forces the core value to 0; otherwise it is the
    scaled directional score clamped to [-100, 100].
    """
    reasons = []
    if adx_value < config.min_adx:
        reasons.append(f"adx {adx_value:.1f} < {config.min_adx}")
    if atr_ratio < config.min_atr_ratio:
        reasons.append(f"atr ratio {atr_ratio:.2f} < {config.min_atr_ratio}")
    if ma_distance_percent < config.min_ma_distance_percent:
        reasons.append(f"within {config.min_ma_distance_percent}% of MA{config.gate_ma_period}")
    if volume_ratio < config.min_volume_ratio:
        reasons.append(f"volume ratio {volume_ratio:.2f} < {config.min_volume_ratio}")

    if reasons:
        return 0.0, True, tuple(reasons)

    core = max(-100.0, min(100.0, directional_score * multiplier))
    return core, False, ()


def analyze_trend(df: pd.DataFrame, config: TrendConfig) -> TrendState:
    """
    Trend/momentum composite at the last bar.

    Raises:
    - InsufficientData when fewer than config.min_bars bars are available
    """
    require_length(df, 'trend', config.min_bars)
    closes = df['close']
    volumes = df['volume']
    close = float(closes.iloc[-1])

    volume_avg = _last(sma(volumes, config.volume_average))
    volume_ratio = safe_ratio(volumes.iloc[-1], volume_avg)

    ma_part = ma_stack_score(closes, config.ma_periods)
    rsi_part = rsi_score(_last(rsi(closes, config.rsi_period), 50.0), config)

    line, signal, histogram = macd(closes, config.macd_fast, config.macd_slow, config.macd_signal)
    macd_part = macd_score(_last(line), _last(signal), _last(histogram))

    vwap = float(hlc3(df).tail(config.vwap_length).mean())
    vwap_part = vwap_score((close - vwap) / vwap * 100, config.vwap_band_percent)

    flag_ma = _last(sma(closes, config.trend_flag_period))
    flag_part = 100.0 if close > flag_ma else -100.0

    directional = (ma_part * config.ma_weight +
                   rsi_part * config.rsi_weight +
                   macd_part * config.macd_weight +
                   vwap_part * config.vwap_weight +
                   flag_part * config.trend_flag_weight)

    atr_values = atr(df, config.atr_period)
    atr_ratio = safe_ratio(_last(atr_values), _last(sma(atr_values, config.atr_average)))
    adx_value = _last(adx(df, config.adx_period))

    gate_ma = _last(sma(closes, config.gate_ma_period))
    ma_distance = abs(close - gate_ma) / gate_ma * 100 if gate_ma > 0 else 0.0

    multiplier = momentum_multiplier(adx_value, atr_ratio, volume_ratio, config)
    core, prohibited, reasons = apply_prohibition_gate(
        directional, multiplier, adx_value, atr_ratio, ma_distance, volume_ratio, config)

    if prohibited:
        logger.debug(f"Trend prohibition active: {'; '.join(reasons)}")

    return TrendState(
        core_value=core,
        directional_score=directional,
        momentum_multiplier=multiplier,
        prohibition_active=prohibited,
        adx=adx_value,
        atr_ratio=atr_ratio,
        volume_ratio=volume_ratio,
        ma_distance_percent=ma_distance,
        volume_surge=volume_ratio >= config.volume_surge_ratio,
        prohibition_reasons=reasons,
        sub_scores=(('ma', ma_part), ('rsi', rsi_part), ('macd', macd_part),
                    ('vwap', vwap_part), ('trend_flag', flag_part)),
    )


def analyze_cci(df: pd.DataFrame, config: CciConfig) -> CciState:
    """
    Smoothed CCI, its one-bar momentum, and divergence between the last
    two divergence_window windows.

    Bullish divergence: price makes a lower low while CCI makes a higher low.
    Bearish divergence: price makes a higher high while CCI makes a lower high.
    """
    require_length(df, 'cci', config.min_bars)
    values = cci(df, config.length, config.smoothing, config.final_smoothing)
    current = float(values.iloc[-1])
    momentum = current - float(values.iloc[-2]) if len(values) > 1 else 0.0

    window = config.divergence_window
    cci_arr = values.to_numpy()
    lows = df['low'].to_numpy()
    highs = df['high'].to_numpy()
    recent = slice(len(df) - window, len(df))
    prior = slice(len(df) - 2 * window, len(df) - window)

    bull_div = bool(np.min(lows[recent]) < np.min(lows[prior]) and
                    np.min(cci_arr[recent]) > np.min(cci_arr[prior]))
    bear_div = bool(np.max(highs[recent]) > np.max(highs[prior]) and
                    np.max(cci_arr[recent]) < np.max(cci_arr[prior]))

    return CciState(cci=current, momentum=momentum, bull_divergence=bull_div, bear_divergence=bear_div)
