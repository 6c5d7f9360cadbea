"""
Detectors - Magnet / Liquidity-Pull Zones
Options-chain driven price attraction: OI and gamma weighted magnet price,
max pain, and the strikes with the heaviest open interest.
"""
import logging
from typing import List, Optional

from signal_engine.config import MagnetConfig
from signal_engine.errors import MissingAuxiliarySeries
from .models import MagnetAnalysis, MagnetZone, OptionsChain

logger = logging.getLogger("SignalEngine.Magnet")


def magnet_price(chain: OptionsChain, config: MagnetConfig) -> float:
    """
    OI and gamma weighted average strike.

    Only strikes within max_distance of spot and carrying at least
    min_open_interest count. Falls back to spot when none qualify.
    """
    spot = chain.spot
    weighted_sum = 0.0
    total_weight = 0.0

    for quote in chain.strikes:
        if abs(quote.strike - spot) / spot > config.max_distance:
            continue
        if quote.total_oi < config.min_open_interest:
            continue
        weight = quote.total_oi + abs(quote.gamma_delta) * config.gamma_weight * config.gamma_scale
        weighted_sum += quote.strike * weight
        total_weight += weight

    return weighted_sum / total_weight if total_weight > 0 else spot


def max_pain(chain: OptionsChain) -> float:
    """
    Strike at which option holders lose the most.

    Pain at a target is the intrinsic value of every call struck below it
    plus every put struck above it, weighted by open interest. The first
    strike (in chain order) with the lowest pain wins ties.
    """
    if not chain.strikes:
        return chain.spot

    best_price = chain.spot
    min_pain: Optional[float] = None
    for target in chain.strikes:
        pain = 0.0
        for quote in chain.strikes:
            if quote.strike < target.strike:
                pain += quote.call_oi * (target.strike - quote.strike)
            elif quote.strike > target.strike:
                pain += quote.put_oi * (quote.strike - target.strike)
        if min_pain is None or pain < min_pain:
            min_pain = pain
            best_price = target.strike
    return best_price


def liquidity_pull_zones(chain: OptionsChain, config: MagnetConfig) -> List[MagnetZone]:
    """
    Top strikes by total open interest, nearest to spot first.

    Strength is relative to the heaviest strike; strikes within
    magnet_distance_percent of spot are 'magnet' zones.
    """
    spot = chain.spot
    ranked = sorted((q for q in chain.strikes if q.total_oi >= config.min_open_interest),
                    key=lambda q: q.total_oi, reverse=True)
    if not ranked:
        return []

    max_oi = ranked[0].total_oi or 1.0
    zones = []
    for quote in ranked[:config.top_zones]:
        gamma_delta = quote.gamma_delta
        if gamma_delta > 0:
            pull = 'above'
        elif gamma_delta < 0:
            pull = 'below'
        else:
            pull = 'neutral'

        distance = (quote.strike - spot) / spot * 100
        zones.append(MagnetZone(
            price=quote.strike,
            zone_type='magnet' if abs(distance) < config.magnet_distance_percent else 'liquidity_pull',
            strength=min(100.0, quote.total_oi / max_oi * 100),
            open_interest=quote.total_oi,
            call_open_interest=quote.call_oi,
            put_open_interest=quote.put_oi,
            gamma_delta=gamma_delta,
            pull_direction=pull,
            distance_percent=distance,
        ))

    return sorted(zones, key=lambda z: abs(z.distance_percent))


def expected_gravity(magnet: float, spot: float, config: MagnetConfig) -> str:
    pct = (magnet - spot) / spot * 100
    if pct > config.strong_gravity_percent:
        return 'strong_up'
    if pct > config.weak_gravity_percent:
        return 'weak_up'
    if pct > -config.weak_gravity_percent:
        return 'neutral'
    if pct > -config.strong_gravity_percent:
        return 'weak_down'
    return 'strong_down'


def analyze_magnet(chain: Optional[OptionsChain], config: MagnetConfig) -> MagnetAnalysis:
    """
    Full magnet / liquidity-pull analysis.

    Raises:
    - MissingAuxiliarySeries when no chain (or an empty one) is supplied
    """
    if chain is None or not chain.strikes:
        raise MissingAuxiliarySeries('magnet', ['options_chain'])
    if chain.spot <= 0:
        raise MissingAuxiliarySeries('magnet', ['spot'])

    magnet = magnet_price(chain, config)
    zones = liquidity_pull_zones(chain, config)
    gravity = expected_gravity(magnet, chain.spot, config)

    total_oi = sum(z.open_interest for z in zones)
    top_oi = zones[0].open_interest if zones else 0.0
    confidence = min(100.0, top_oi / total_oi * 200) if total_oi > 0 else 0.0

    if chain.gex > 0:
        # Positive gamma: price tends to pin near the magnet
        target = magnet * 1.01
    else:
        target = magnet * (1.02 if magnet > chain.spot else 0.98)

    analysis = MagnetAnalysis(
        magnet_price=magnet,
        magnet_strength=zones[0].strength if zones else 0.0,
        zones=tuple(zones),
        max_pain=max_pain(chain),
        gamma_flip=chain.gamma_flip,
        expected_gravity=gravity,
        price_target=target,
        confidence=confidence,
    )
    logger.debug(f"Magnet: price={magnet:.2f} max_pain={analysis.max_pain:.2f} gravity={gravity}")
    return analysis
