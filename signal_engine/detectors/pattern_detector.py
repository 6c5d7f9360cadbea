"""
Detectors - Pivot / Dip-Recovery Patterns
Finds pivot highs and lows, classifies dip + recovery sequences and derives
support/resistance levels and the current market phase.
"""
import logging
from typing import List, Tuple

import numpy as np
import pandas as pd

from signal_engine.config import PatternConfig
from .models import DipRecoveryPattern, PatternAnalysis, Pivot

logger = logging.getLogger("SignalEngine.Patterns")


def find_pivots(df: pd.DataFrame, lookback: int = 3) -> Tuple[List[Pivot], List[Pivot]]:
    """
    Local highs and lows.

    Bar i is a pivot high (low) when its high (low) is strictly above (below)
    every other bar in [i - lookback, i + lookback]. Ties are not pivots.
    """
    highs_arr = df['high'].to_numpy()
    lows_arr = df['low'].to_numpy()
    highs: List[Pivot] = []
    lows: List[Pivot] = []

    for i in range(lookback, len(df) - lookback):
        window_highs = np.delete(highs_arr[i - lookback:i + lookback + 1], lookback)
        window_lows = np.delete(lows_arr[i - lookback:i + lookback + 1], lookback)

        if highs_arr[i] > window_highs.max():
            highs.append(Pivot(i, float(highs_arr[i])))
        if lows_arr[i] < window_lows.min():
            lows.append(Pivot(i, float(lows_arr[i])))

    return highs, lows


def volume_trend(volumes, start: int, end: int) -> str:
    """Second half vs first half volume over [start, end]."""
    if end - start < 3:
        return 'neutral'

    midpoint = (start + end) // 2
    first_half = float(np.sum(volumes[start:midpoint]))
    second_half = float(np.sum(volumes[midpoint:end + 1]))

    ratio = second_half / (first_half or 1)
    if ratio > 1.2:
        return 'increasing'
    if ratio < 0.8:
        return 'decreasing'
    return 'neutral'


def _levels(pre_dip_high: float, dip_low: float, max_recovery: float):
    mid = (pre_dip_high + dip_low) / 2

    resistance = [pre_dip_high, mid * 1.02]
    if max_recovery < pre_dip_high:
        resistance.append(max_recovery)
    support = [dip_low, dip_low * 1.01, mid * 0.98]

    return tuple(sorted(set(resistance))), tuple(sorted(set(support)))


def detect_dip_recovery_patterns(df: pd.DataFrame, config: PatternConfig) -> List[DipRecoveryPattern]:
    """
    Detect dip + recovery patterns.

    For every pivot high, the first following pivot low (within
    lookback_period bars) whose dip reaches dip_threshold is taken; later
    lows after the same high are ignored. The recovery is the highest high
    in the lookback_period bars starting at the low.

    Returns:
    - At most max_patterns patterns, most recent first
    """
    highs, lows = find_pivots(df, config.pivot_lookback)
    bar_highs = df['high'].to_numpy()
    closes = df['close'].to_numpy()
    volumes = df['volume'].to_numpy()
    patterns = []

    for pre_dip in highs:
        following = [low for low in lows
                     if pre_dip.index < low.index < pre_dip.index + config.lookback_period]

        for dip in following:
            dip_percent = (pre_dip.price - dip.price) / pre_dip.price * 100
            if dip_percent < config.dip_threshold:
                continue

            recovery_end = min(dip.index + config.lookback_period, len(df))
            max_recovery = float(bar_highs[dip.index:recovery_end].max())
            recovery_percent = (max_recovery - dip.price) / dip.price * 100
            end_index = recovery_end - 1
            profile = volume_trend(volumes, pre_dip.index, end_index)

            if recovery_percent >= config.recovery_threshold:
                if max_recovery >= pre_dip.price * config.reversal_ratio:
                    pattern_type = 'reversal'
                    signal = 'bullish_reversal' if profile == 'increasing' else 'breakout_pending'
                else:
                    pattern_type = 'accumulation'
                    signal = 'bullish_reversal'
            else:
                pattern_type = 'consolidation'
                signal = 'breakout_pending' if recovery_percent > dip_percent * 0.3 else 'bearish_continuation'

            strength = 50
            if config.volume_confirmation and profile == 'increasing':
                strength += 15
            if recovery_percent >= dip_percent * 0.5:
                strength += 15

            # V-shape: closes during the dip sit nearer the high than the low
            avg_dip_close = float(closes[pre_dip.index:dip.index + 1].mean())
            v_shape = (avg_dip_close - dip.price) / ((pre_dip.price - dip.price) or 1)
            if v_shape > config.v_shape_ratio:
                strength += 10

            if dip_percent >= config.deep_dip_percent:
                strength += 10

            resistance, support = _levels(pre_dip.price, dip.price, max_recovery)
            patterns.append(DipRecoveryPattern(
                pattern_type=pattern_type,
                start_index=pre_dip.index,
                end_index=end_index,
                dip_depth_percent=float(dip_percent),
                recovery_percent=float(recovery_percent),
                volume_profile=profile,
                signal=signal,
                strength=max(0, min(100, strength)),
                pre_dip_high=pre_dip.price,
                dip_low=dip.price,
                max_recovery=max_recovery,
                resistance_levels=resistance,
                support_levels=support,
            ))
            break

    patterns.sort(key=lambda p: p.start_index, reverse=True)
    return patterns[:config.max_patterns]


def determine_phase(df: pd.DataFrame, patterns: List[DipRecoveryPattern], config: PatternConfig) -> str:
    """
    Current phase: 'dip' | 'recovery' | 'consolidation' | 'breakout' | 'none'.

    A close at least phase_dip_percent below the recent high is a dip even
    without a detected pattern.
    """
    close = float(df['close'].iloc[-1])
    recent_high = float(df['high'].tail(config.phase_window).max())
    dip_from_recent = (recent_high - close) / recent_high * 100

    if dip_from_recent >= config.phase_dip_percent:
        return 'dip'
    if not patterns:
        return 'none'

    latest = patterns[0]
    if close > latest.pre_dip_high * (1 + config.phase_band):
        return 'breakout'
    if latest.dip_low * (1 + config.phase_band) < close < latest.pre_dip_high * (1 - config.phase_band):
        return 'recovery'
    return 'consolidation'


def analyze_patterns(df: pd.DataFrame, config: PatternConfig) -> PatternAnalysis:
    patterns = detect_dip_recovery_patterns(df, config)
    phase = determine_phase(df, patterns, config)

    analysis = PatternAnalysis(
        patterns=tuple(patterns),
        phase=phase,
        overall_signal=patterns[0].signal if patterns else 'no_pattern',
        strength=patterns[0].strength if patterns else 0,
    )
    logger.debug(f"Patterns: {len(patterns)} found, phase={phase}, signal={analysis.overall_signal}")
    return analysis
