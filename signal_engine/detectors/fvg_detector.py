"""
Detectors - Fair Value Gap Detection
Detects bullish and bearish FVG zones (3-candle gaps), tracks their fill
state and flags the ones created on heavy order flow as liquidity zones.
"""
import logging
from typing import List, Optional

import pandas as pd

from signal_engine.config import GapConfig
from .models import GapAnalysis, GapZone

logger = logging.getLogger("SignalEngine.Gaps")


def detect_gap_zones(df: pd.DataFrame, flow: pd.DataFrame, config: GapConfig) -> List[GapZone]:
    """
    Detect Fair Value Gaps in OHLC data.

    A Bullish FVG: Gap between C1.high and C3.low (C3.low > C1.high)
    A Bearish FVG: Gap between C1.low and C3.high (C3.high < C1.low)

    The middle candle is only checked when require_middle_bar_gap is set:
    C2 must then leave the gap untouched (C2.low > C1.high for bullish,
    C2.high < C1.low for bearish). It is off by default.

    Parameters:
    - df: Validated OHLCV DataFrame
    - flow: Per-bar order flow for the same bars (see order_flow_frame)
    - config: GapConfig

    Returns:
    - Every zone in creation order, with filled_at_index set to the first
      later bar that traded through the gap (fill_mode "full", the default)
      or just entered it (fill_mode "touch")
    """
    zones = []
    highs = df['high'].to_numpy()
    lows = df['low'].to_numpy()
    deltas = flow['delta'].to_numpy()
    liquidity_delta = config.delta_threshold * config.liquidity_multiplier

    for i in range(2, len(df)):
        c1_high, c1_low = highs[i - 2], lows[i - 2]
        c2_high, c2_low = highs[i - 1], lows[i - 1]
        c3_high, c3_low = highs[i], lows[i]
        delta = float(deltas[i])

        # Bullish: C3 opens a gap above C1
        gap_size = c3_low - c1_high
        if gap_size > 0:
            gap_percent = gap_size / c1_high * 100
            middle_ok = c2_low > c1_high or not config.require_middle_bar_gap
            if gap_percent >= config.threshold_percent and middle_ok:
                zones.append(GapZone(
                    gap_type='bullish',
                    top=float(c3_low),
                    bottom=float(c1_high),
                    created_at_index=i,
                    delta_at_creation=delta,
                    is_liquidity_zone=abs(delta) >= liquidity_delta,
                    gap_percent=float(gap_percent),
                    timestamp=df.index[i],
                ))

        # Bearish: C3 opens a gap below C1
        gap_size = c1_low - c3_high
        if gap_size > 0:
            gap_percent = gap_size / c1_low * 100
            middle_ok = c2_high < c1_low or not config.require_middle_bar_gap
            if gap_percent >= config.threshold_percent and middle_ok:
                zones.append(GapZone(
                    gap_type='bearish',
                    top=float(c1_low),
                    bottom=float(c3_high),
                    created_at_index=i,
                    delta_at_creation=delta,
                    is_liquidity_zone=abs(delta) >= liquidity_delta,
                    gap_percent=float(gap_percent),
                    timestamp=df.index[i],
                ))

    return [_with_fill(zone, highs, lows, config.fill_mode) for zone in zones]


def _with_fill(zone: GapZone, highs, lows, fill_mode: str) -> GapZone:
    """Returns a new record carrying the first later bar that filled the gap."""
    filled_at = _first_fill_index(zone, highs, lows, fill_mode)
    if filled_at is None:
        return zone
    return GapZone(
        gap_type=zone.gap_type,
        top=zone.top,
        bottom=zone.bottom,
        created_at_index=zone.created_at_index,
        delta_at_creation=zone.delta_at_creation,
        is_liquidity_zone=zone.is_liquidity_zone,
        gap_percent=zone.gap_percent,
        timestamp=zone.timestamp,
        filled_at_index=filled_at,
    )


def _first_fill_index(zone: GapZone, highs, lows, fill_mode: str) -> Optional[int]:
    for j in range(zone.created_at_index + 1, len(highs)):
        if zone.gap_type == 'bullish':
            # Bullish FVG filled when price drops into the gap
            level = zone.top if fill_mode == 'touch' else zone.bottom
            if lows[j] <= level:
                return j
        else:
            # Bearish FVG filled when price rises into the gap
            level = zone.bottom if fill_mode == 'touch' else zone.top
            if highs[j] >= level:
                return j
    return None


def active_view(zones: List[GapZone], as_of_index: int, config: GapConfig) -> List[GapZone]:
    """
    Zones visible at `as_of_index`, most recent first.

    Zones older than max_age drop out regardless of fill state; filled zones
    drop out too when unfilled_only is set. The underlying records are
    never modified.
    """
    view = [z for z in zones
            if z.created_at_index <= as_of_index and z.age(as_of_index) <= config.max_age]
    if config.unfilled_only:
        view = [z for z in view if not z.filled_as_of(as_of_index)]
    return sorted(view, key=lambda z: z.created_at_index, reverse=True)


def _liquidity_score(active: List[GapZone], current_delta: float, avg_abs_delta: float,
                     config: GapConfig) -> int:
    score = 50
    unfilled_liquidity = [z for z in active if z.is_liquidity_zone and not z.is_filled]
    score += len(unfilled_liquidity) * 10

    if abs(current_delta) >= config.delta_threshold:
        score += 15

    if avg_abs_delta > 0:
        delta_ratio = abs(current_delta) / avg_abs_delta
        if delta_ratio > 2:
            score += 10
        elif delta_ratio > 1.5:
            score += 5

    # Stacked zones agreeing with the current flow
    bullish_with_flow = [z for z in active if z.gap_type == 'bullish' and z.delta_at_creation > 0]
    bearish_with_flow = [z for z in active if z.gap_type == 'bearish' and z.delta_at_creation < 0]
    if (len(bullish_with_flow) >= 2 and current_delta > 0) or \
            (len(bearish_with_flow) >= 2 and current_delta < 0):
        score += 10

    return max(0, min(100, score))


def _liquidity_signals(active: List[GapZone], high: float, low: float, close: float,
                       current_delta: float, config: GapConfig) -> List[str]:
    signals = []
    for zone in active:
        if not zone.is_liquidity_zone or zone.is_filled:
            continue
        if not (zone.bottom <= close <= zone.top or zone.contains_bar(high, low)):
            continue
        if zone.gap_type == 'bullish' and current_delta >= config.delta_threshold:
            signals.append(f"BULLISH LIQUIDITY at ${zone.bottom:.2f} - ${zone.top:.2f}")
        elif zone.gap_type == 'bearish' and current_delta <= -config.delta_threshold:
            signals.append(f"BEARISH LIQUIDITY at ${zone.bottom:.2f} - ${zone.top:.2f}")
    return signals


def analyze_gaps(df: pd.DataFrame, flow: pd.DataFrame, config: GapConfig) -> GapAnalysis:
    """
    Full gap analysis as of the last bar.

    Parameters:
    - df: Validated OHLCV DataFrame (at least 3 bars)
    - flow: order_flow_frame(df) for the same bars
    - config: GapConfig

    Returns:
    - GapAnalysis with zones most recent first
    """
    zones = detect_gap_zones(df, flow, config)
    last_index = len(df) - 1
    active = active_view(zones, last_index, config)

    current_delta = float(flow['delta'].iloc[-1])
    avg_abs_delta = float(flow['delta'].abs().mean())
    last = df.iloc[-1]

    analysis = GapAnalysis(
        zones=tuple(active),
        active_count=len(active),
        bullish_count=sum(1 for z in active if z.gap_type == 'bullish'),
        bearish_count=sum(1 for z in active if z.gap_type == 'bearish'),
        liquidity_zone_count=sum(1 for z in active if z.is_liquidity_zone),
        liquidity_score=_liquidity_score(active, current_delta, avg_abs_delta, config),
        signals=tuple(_liquidity_signals(active, last['high'], last['low'], last['close'],
                                         current_delta, config)),
    )
    logger.debug(f"Gaps: {analysis.active_count} active ({analysis.bullish_count} bull / "
                 f"{analysis.bearish_count} bear), liquidity score {analysis.liquidity_score}")
    return analysis
