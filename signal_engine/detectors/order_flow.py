"""
Detectors - Order Flow Estimation
Synthetic buy/sell volume split per bar, the rolling flow summary, and
volume "injection" tracking built on top of it.
"""
import logging
from typing import List, Tuple

import pandas as pd

from signal_engine.config import OrderFlowConfig
from signal_engine.utils.indicators import round_half_up
from .models import Injection, InjectionMetrics, OrderFlowSample, OrderFlowSummary

logger = logging.getLogger("SignalEngine.OrderFlow")


def _bar_values(bar) -> Tuple[float, float, float, float, float]:
    if isinstance(bar, dict):
        return bar['open'], bar['high'], bar['low'], bar['close'], bar.get('volume', 0.0)
    if isinstance(bar, pd.Series):
        return bar['open'], bar['high'], bar['low'], bar['close'], bar['volume']
    return bar.open, bar.high, bar.low, bar.close, bar.volume


def buy_ratio(open_: float, high: float, low: float, close: float, method: str = "directional") -> float:
    """
    Share of a bar's volume attributed to buyers.

    - simple: 0.6 for an up candle, 0.4 otherwise
    - directional: close position inside the range, scaled into [0.2, 0.8]
    - hybrid: mean of the two
    """
    price_range = high - low
    if price_range <= 0:
        return 0.5

    close_position = (close - low) / price_range
    simple_ratio = 0.6 if close > open_ else 0.4

    buy_pressure = close - low
    sell_pressure = high - close
    if buy_pressure > sell_pressure:
        directional_ratio = 0.4 + close_position * 0.4
    else:
        directional_ratio = 0.2 + close_position * 0.3

    if method == "simple":
        return simple_ratio
    if method == "directional":
        return directional_ratio
    if method == "hybrid":
        return (simple_ratio + directional_ratio) / 2
    raise ValueError(f"Unknown volume method: {method}")


def split_volume(volume: float, ratio: float) -> OrderFlowSample:
    # The larger side is multiplied out and the smaller one taken as the
    # remainder, so buy + sell reproduces volume exactly.
    if volume <= 0:
        return OrderFlowSample(0.0, 0.0)
    if ratio >= 0.5:
        buy_volume = volume * ratio
        return OrderFlowSample(buy_volume, volume - buy_volume)
    sell_volume = volume * (1.0 - ratio)
    return OrderFlowSample(volume - sell_volume, sell_volume)


def estimate(bar, method: str = "directional") -> OrderFlowSample:
    """
    Estimate buy and sell volume of a single bar.

    Parameters:
    - bar: PriceBar, dict or DataFrame row with open/high/low/close/volume
    - method: 'simple' | 'directional' | 'hybrid'

    Returns:
    - OrderFlowSample; zero volume gives (0, 0), a bar with no range splits 50/50
    """
    open_, high, low, close, volume = _bar_values(bar)
    volume = float(volume or 0.0)
    if volume <= 0:
        return OrderFlowSample(0.0, 0.0)
    if high == low:
        return OrderFlowSample(volume * 0.5, volume * 0.5)
    return split_volume(volume, buy_ratio(open_, high, low, close, method))


def order_flow_frame(df: pd.DataFrame, method: str = "directional") -> pd.DataFrame:
    """
    Per-bar order flow for a whole series, computed once per evaluation and
    shared by every volume-based consumer.

    Returns:
    - DataFrame indexed like df with [buy_volume, sell_volume, delta, volume]
    """
    buys: List[float] = []
    sells: List[float] = []
    for row in df.itertuples(index=False):
        sample = estimate(row, method)
        buys.append(sample.buy_volume)
        sells.append(sample.sell_volume)

    frame = pd.DataFrame({'buy_volume': buys, 'sell_volume': sells}, index=df.index)
    frame['delta'] = frame['buy_volume'] - frame['sell_volume']
    frame['volume'] = df['volume']
    return frame


def summarize_order_flow(flow: pd.DataFrame, config: OrderFlowConfig) -> OrderFlowSummary:
    """Order-flow metrics over the last `config.lookback` bars."""
    recent = flow.tail(config.lookback)
    last = flow.iloc[-1]
    sample = OrderFlowSample(last['buy_volume'], last['sell_volume'])
    volume = last['volume']

    delta = sample.delta
    strength = abs(delta) / volume * 100 if volume > 0 else 0.0

    summary = OrderFlowSummary(
        buy_volume=sample.buy_volume,
        sell_volume=sample.sell_volume,
        delta=delta,
        cumulative_delta=float(recent['delta'].sum()),
        avg_abs_delta=float(recent['delta'].abs().mean()) if len(recent) else 0.0,
        buy_pressure=float(recent['buy_volume'].sum()),
        sell_pressure=float(recent['sell_volume'].sum()),
        buy_percent=sample.buy_percent,
        strength_percent=strength,
        imbalance=sample.is_imbalanced(config.imbalance_ratio),
        significant_buying=delta >= config.delta_threshold,
        significant_selling=delta <= -config.delta_threshold,
    )
    logger.debug(f"Order flow: delta={summary.delta:.0f} cum={summary.cumulative_delta:.0f} "
                 f"buy%={summary.buy_percent:.1f}")
    return summary


def detect_injections(df: pd.DataFrame, config: OrderFlowConfig) -> List[Injection]:
    """
    Flags volume spikes relative to the series' average volume.

    Pressure sign decides buy/sell; a very large spike with a small body is
    treated as dark-pool style absorption.
    """
    if len(df) < 2:
        return []

    avg_volume = df['volume'].mean()
    if avg_volume <= 0:
        return []

    injections = []
    for i in range(1, len(df)):
        bar = df.iloc[i]
        volume_ratio = bar['volume'] / avg_volume
        if volume_ratio < config.spike_ratio:
            continue

        total_range = bar['high'] - bar['low']
        body_size = abs(bar['close'] - bar['open'])
        buy_pressure = bar['close'] - bar['low']
        sell_pressure = bar['high'] - bar['close']
        delta_impact = (buy_pressure - sell_pressure) / total_range * 100 if total_range > 0 else 0.0

        injection_type = 'buy' if delta_impact > 0 else 'sell'
        is_dark_pool = (volume_ratio > config.dark_pool_ratio and
                        body_size / (total_range or 1) < config.dark_pool_body_ratio)
        if is_dark_pool:
            injection_type = 'dark_pool'

        if volume_ratio >= 5:
            strength = 'extreme'
        elif volume_ratio >= 3:
            strength = 'strong'
        elif volume_ratio >= 2:
            strength = 'moderate'
        else:
            strength = 'weak'

        injections.append(Injection(
            index=i,
            timestamp=df.index[i],
            injection_type=injection_type,
            volume=float(bar['volume']),
            price=float(bar['close']),
            delta_impact=float(delta_impact),
            strength=strength,
            source='dark' if is_dark_pool else 'lit',
        ))

    return injections[-config.history_depth:]


def analyze_injections(df: pd.DataFrame, config: OrderFlowConfig) -> InjectionMetrics:
    """
    Aggregate injection metrics.

    Returns:
    - InjectionMetrics with current_strength in [-100, 100]
    """
    injections = detect_injections(df, config)

    buy_volume = 0.0
    sell_volume = 0.0
    dark_pool_volume = 0.0
    for inj in injections:
        if inj.injection_type == 'buy':
            buy_volume += inj.volume
        elif inj.injection_type == 'sell':
            sell_volume += inj.volume
        else:
            # Dark pool prints count half toward the side their pressure favours
            dark_pool_volume += inj.volume
            if inj.delta_impact > 0:
                buy_volume += inj.volume * 0.5
            else:
                sell_volume += inj.volume * 0.5

    total_volume = buy_volume + sell_volume
    current_strength = (buy_volume - sell_volume) / total_volume * 100 if total_volume > 0 else 0.0

    recent_delta = sum(inj.delta_impact for inj in injections[-5:])
    older_delta = sum(inj.delta_impact for inj in injections[-10:-5])
    if recent_delta > older_delta + config.trend_delta:
        strength_trend = 'rising'
    elif recent_delta < older_delta - config.trend_delta:
        strength_trend = 'falling'
    else:
        strength_trend = 'flat'

    recent_bars = df.tail(config.wall_window)
    resistance = recent_bars['high'].max()
    support = recent_bars['low'].min()
    buy_wall = sum(inj.volume for inj in injections
                   if inj.injection_type == 'buy' and abs(inj.price - support) < support * config.wall_distance)
    sell_wall = sum(inj.volume for inj in injections
                    if inj.injection_type == 'sell' and abs(inj.price - resistance) < resistance * config.wall_distance)

    if current_strength > config.dominance_threshold:
        dominant_flow = 'buyers'
    elif current_strength < -config.dominance_threshold:
        dominant_flow = 'sellers'
    else:
        dominant_flow = 'neutral'

    dark_pool_percent = 0.0
    if total_volume > 0:
        dark_pool_percent = dark_pool_volume / (total_volume + dark_pool_volume) * 100

    return InjectionMetrics(
        current_strength=round_half_up(current_strength),
        strength_trend=strength_trend,
        net_injection_volume=buy_volume - sell_volume,
        dark_pool_percent=dark_pool_percent,
        buy_wall_strength=buy_wall,
        sell_wall_strength=sell_wall,
        dominant_flow=dominant_flow,
        injections=tuple(injections),
    )
