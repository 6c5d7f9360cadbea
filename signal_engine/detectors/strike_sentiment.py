"""
Detectors - Strike Sentiment
Per-strike options volume analysis: net call/put flow, volume/OI loading
zones and the expected range they imply.
"""
import logging
from typing import Optional

from signal_engine.config import StrikeSentimentConfig
from signal_engine.errors import MissingAuxiliarySeries
from .models import OptionsChain, StrikeActivity, StrikeQuote, StrikeSentiment

logger = logging.getLogger("SignalEngine.StrikeSentiment")


def analyze_strike(quote: StrikeQuote, spot: float, config: StrikeSentimentConfig) -> StrikeActivity:
    total_volume = quote.call_volume + quote.put_volume
    total_oi = quote.total_oi

    volume_oi_ratio = total_volume / total_oi if total_oi > 0 else 0.0
    loading = volume_oi_ratio >= config.loading_ratio and total_volume > config.min_loading_volume

    gamma = quote.gamma_delta
    distance_percent = abs(quote.strike - spot) / spot * 100

    return StrikeActivity(
        strike=quote.strike,
        call_volume=quote.call_volume,
        put_volume=quote.put_volume,
        call_oi=quote.call_oi,
        put_oi=quote.put_oi,
        total_premium=quote.call_premium + quote.put_premium,
        net_flow=quote.call_volume - quote.put_volume,
        gamma_at_strike=gamma,
        loading_zone=loading,
        loading_strength=min(100.0, volume_oi_ratio * 200) if loading else 0.0,
        implied_move=distance_percent * (1 + abs(gamma) * 0.1),
    )


def analyze_strike_sentiment(chain: Optional[OptionsChain], config: StrikeSentimentConfig) -> StrikeSentiment:
    """
    Aggregate strike sentiment.

    Dominant sentiment compares total call volume to total put volume:
    above bullish_ratio is bullish, below bearish_ratio is bearish.

    Raises:
    - MissingAuxiliarySeries when no chain (or an empty one) is supplied
    """
    if chain is None or not chain.strikes:
        raise MissingAuxiliarySeries('strike_sentiment', ['options_chain'])

    spot = chain.spot
    activity = [analyze_strike(q, spot, config) for q in chain.strikes]

    by_flow = sorted(activity, key=lambda a: a.net_flow, reverse=True)
    strongest_bull = by_flow[0].strike
    strongest_bear = by_flow[-1].strike

    loading = sorted((a for a in activity if a.loading_zone), key=lambda a: a.loading_strength, reverse=True)
    loading_zones = tuple(a.strike for a in loading)
    anchors = loading_zones or (spot,)

    total_calls = sum(a.call_volume for a in activity)
    total_puts = sum(a.put_volume for a in activity)
    flow_ratio = total_calls / (total_puts or 1)
    if flow_ratio > config.bullish_ratio:
        dominant = 'bullish'
    elif flow_ratio < config.bearish_ratio:
        dominant = 'bearish'
    else:
        dominant = 'neutral'

    busiest = sorted(activity, key=lambda a: a.call_volume + a.put_volume, reverse=True)
    key_levels = tuple(sorted(a.strike for a in busiest[:config.key_levels]))

    sentiment = StrikeSentiment(
        strikes=tuple(sorted(activity, key=lambda a: a.strike)),
        strongest_bull_strike=strongest_bull,
        strongest_bear_strike=strongest_bear,
        loading_zones=loading_zones,
        expected_low=min(anchors) * 0.98,
        expected_high=max(anchors) * 1.02,
        dominant_sentiment=dominant,
        key_levels=key_levels,
    )
    logger.debug(f"Strike sentiment: {dominant} (call/put {flow_ratio:.2f}), "
                 f"{len(loading_zones)} loading zones")
    return sentiment
