"""
Scoring - Composite Score & Action Classification
Combines per-component readings into one bounded score and maps it to a
discrete (action, confidence, size) decision.

Two scales are supported:
- weighted: sub-scores in [-1, 1] times per-component weights, -100..100
- alignment: 0..12 points accumulated from threshold bands
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from signal_engine.config import ActionBand, EngineConfig
from signal_engine.detectors.models import (CciState, CrossAssetState, FearState, GapAnalysis,
                                            InjectionMetrics, MagnetAnalysis, OrderFlowSummary,
                                            PatternAnalysis, SqueezeState, StrikeSentiment, TrendState)
from signal_engine.models import Action, CompositeResult, Confidence, Direction, ScoreScale
from signal_engine.utils.indicators import round_half_up

logger = logging.getLogger("SignalEngine.Scoring")

PATTERN_SIGNAL_SCORES = {
    'bullish_reversal': 1.0,
    'breakout_pending': 0.6,
    'consolidation': 0.0,
    'bearish_continuation': -0.8,
    'no_pattern': 0.0,
}

GRAVITY_SCORES = {
    'strong_up': 1.0,
    'weak_up': 0.48,
    'neutral': 0.0,
    'weak_down': -0.48,
    'strong_down': -1.0,
}

SENTIMENT_SCORES = {'bullish': 1.0, 'bearish': -1.0, 'neutral': 0.0}


@dataclass(frozen=True)
class ComponentReadings:
    """Outputs of every component that ran; None means skipped or disabled."""
    order_flow: Optional[OrderFlowSummary] = None
    injections: Optional[InjectionMetrics] = None
    gaps: Optional[GapAnalysis] = None
    patterns: Optional[PatternAnalysis] = None
    squeeze: Optional[SqueezeState] = None
    fear: Optional[FearState] = None
    trend: Optional[TrendState] = None
    cci: Optional[CciState] = None
    cross_asset: Optional[CrossAssetState] = None
    magnet: Optional[MagnetAnalysis] = None
    strike_sentiment: Optional[StrikeSentiment] = None

    @property
    def prohibition_active(self) -> bool:
        return self.trend is not None and self.trend.prohibition_active


@dataclass(frozen=True)
class ActionDecision:
    action: Action
    direction: Direction
    confidence: Confidence
    size_percent: int
    label: str


def _sign(value: float) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


def weighted_sub_scores(readings: ComponentReadings, config: EngineConfig) -> Dict[str, float]:
    """
    Sub-score in [-1, 1] for every component that produced a reading.
    """
    scores = {}

    if readings.trend is not None:
        scores['trend'] = readings.trend.core_value / 100.0

    if readings.cross_asset is not None:
        scores['cross_asset'] = readings.cross_asset.raw / config.cross_asset.clamp

    if readings.injections is not None:
        scores['order_flow'] = readings.injections.current_strength / 100.0

    if readings.patterns is not None:
        scores['pattern'] = PATTERN_SIGNAL_SCORES.get(readings.patterns.overall_signal, 0.0)

    if readings.gaps is not None:
        gaps = readings.gaps
        scores['gaps'] = ((gaps.bullish_count - gaps.bearish_count) / gaps.active_count
                          if gaps.active_count else 0.0)

    if readings.magnet is not None:
        scores['magnet'] = GRAVITY_SCORES[readings.magnet.expected_gravity]

    if readings.strike_sentiment is not None:
        scores['strike_sentiment'] = SENTIMENT_SCORES[readings.strike_sentiment.dominant_sentiment]

    if readings.squeeze is not None:
        # A fired squeeze points the way the trend already leans
        trend_sign = _sign(readings.trend.directional_score) if readings.trend is not None else 0
        scores['squeeze'] = float(trend_sign) if readings.squeeze.fired else 0.0

    if readings.fear is not None:
        scores['fear'] = 1.0 if readings.fear.fear_extreme else 0.0

    return {name: max(-1.0, min(1.0, value)) for name, value in scores.items()}


def weighted_score(readings: ComponentReadings, config: EngineConfig) -> Tuple[int, Dict[str, float]]:
    """
    Returns (score in [-100, 100], contribution per component).

    Missing components contribute 0. With scoring.renormalize_missing the
    contributions of the present components are scaled up so their weights
    cover the full weight total.
    """
    weights = config.scoring.weights
    sub_scores = weighted_sub_scores(readings, config)
    contributions = {name: weights.get(name, 0.0) * value for name, value in sub_scores.items()}

    total = sum(contributions.values())
    if config.scoring.renormalize_missing:
        present_weight = sum(weights.get(name, 0.0) for name in sub_scores)
        full_weight = sum(weights.values())
        if present_weight > 0:
            total *= full_weight / present_weight
            # Keep the breakdown consistent with the rescaled total
            contributions = {name: value * full_weight / present_weight
                             for name, value in contributions.items()}

    score = max(-100, min(100, round_half_up(total)))
    return score, contributions


def alignment_direction(readings: ComponentReadings) -> int:
    """
    Direction used on the alignment scale: the cross-asset state when it has
    one, else the trend core value, else the trend's raw directional score.
    """
    if readings.cross_asset is not None and readings.cross_asset.state != 0:
        return readings.cross_asset.state
    if readings.trend is not None:
        if readings.trend.core_value != 0:
            return _sign(readings.trend.core_value)
        return _sign(readings.trend.directional_score)
    return 0


def alignment_points(readings: ComponentReadings, config: EngineConfig) -> Tuple[int, Dict[str, float], int]:
    """
    Returns (points 0..12, points per component, direction sign).

    - cross_asset 0-3: strong in the direction 3, in the direction 2, neutral 1
    - trend 0-3: core value in the direction >= 80 / 60 / 40
    - order_flow 0-2: imbalanced with significant delta 2, strong split 1
    - cci 0-2: beyond the extreme 1, any divergence 1
    - fear 0-1, squeeze 0-1 (fired)
    """
    direction = alignment_direction(readings)
    lean = direction or 1
    points: Dict[str, float] = {}

    if readings.cross_asset is not None:
        cross = readings.cross_asset
        if cross.state == lean and cross.strong:
            points['cross_asset'] = 3
        elif cross.state == lean:
            points['cross_asset'] = 2
        elif cross.state == 0:
            points['cross_asset'] = 1
        else:
            points['cross_asset'] = 0

    if readings.trend is not None:
        value = readings.trend.core_value * lean
        high, mid, low = config.scoring.core_point_bands
        if value >= high:
            points['trend'] = 3
        elif value >= mid:
            points['trend'] = 2
        elif value >= low:
            points['trend'] = 1
        else:
            points['trend'] = 0

    if readings.order_flow is not None:
        flow = readings.order_flow
        if flow.imbalance and abs(flow.delta) >= config.order_flow.delta_threshold:
            points['order_flow'] = 2
        elif flow.strength_percent >= config.scoring.flow_strength_points:
            points['order_flow'] = 1
        else:
            points['order_flow'] = 0

    if readings.cci is not None:
        cci_points = 0
        if abs(readings.cci.cci) > config.cci.extreme:
            cci_points += 1
        if readings.cci.bull_divergence or readings.cci.bear_divergence:
            cci_points += 1
        points['cci'] = cci_points

    if readings.fear is not None:
        points['fear'] = 1 if readings.fear.fear_extreme else 0

    if readings.squeeze is not None:
        points['squeeze'] = 1 if readings.squeeze.fired else 0

    return int(sum(points.values())), points, direction


def classify_action(magnitude: float, sign: int, bands: Sequence[ActionBand],
                    prohibition_active: bool = False) -> ActionDecision:
    """
    Maps a score magnitude and direction sign onto the first band it reaches.

    Bands are symmetric: the same thresholds apply to long and short scores.
    Below every band the result is hold, or prohibited when the trend gate
    is active. A band reached without a direction also holds.
    """
    for band in bands:
        if magnitude >= band.threshold and sign != 0:
            long_side = sign > 0
            if band.strength == 'strong':
                action = Action.STRONG_BUY if long_side else Action.STRONG_SELL
            else:
                action = Action.BUY if long_side else Action.SELL
            return ActionDecision(
                action=action,
                direction=Direction.LONG if long_side else Direction.SHORT,
                confidence=Confidence(band.confidence),
                size_percent=band.size_percent,
                label=band.long_label if long_side else band.short_label,
            )

    if prohibition_active:
        return ActionDecision(Action.PROHIBITED, Direction.NEUTRAL, Confidence.LOW, 0, "PROHIBITED")
    return ActionDecision(Action.HOLD, Direction.NEUTRAL, Confidence.LOW, 0, "NEUTRAL")


def build_composite(symbol: str, timeframe: str, readings: ComponentReadings, config: EngineConfig,
                    skipped: Optional[Dict[str, str]] = None) -> CompositeResult:
    """
    Scores the readings on the configured scale and classifies the action.
    """
    if config.scoring.scale == 'alignment':
        score, breakdown, direction = alignment_points(readings, config)
        decision = classify_action(score, direction, config.scoring.alignment_bands,
                                   readings.prohibition_active)
        scale = ScoreScale.ALIGNMENT
    else:
        score, breakdown = weighted_score(readings, config)
        decision = classify_action(abs(score), _sign(score), config.scoring.bands,
                                   readings.prohibition_active)
        scale = ScoreScale.WEIGHTED

    result = CompositeResult(
        symbol=symbol,
        timeframe=timeframe,
        scale=scale,
        composite_score=score,
        action=decision.action,
        direction=decision.direction,
        confidence=decision.confidence,
        size_percent=decision.size_percent,
        label=decision.label,
        prohibition_active=readings.prohibition_active,
        components=dict(breakdown),
        skipped=dict(skipped or {}),
    )
    logger.info(f"{symbol} [{timeframe}] score={score} ({scale.value}) -> {decision.label}")
    return result
