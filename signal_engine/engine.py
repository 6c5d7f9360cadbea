"""
Signal Engine - Orchestration
Runs every enabled component over one (symbol, timeframe) bar series and
combines their readings into a CompositeResult.

Component failures caused by short series or absent auxiliary inputs only
disable that component; an invalid bar series rejects the whole evaluation.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import pandas as pd

from signal_engine.config import EngineConfig
from signal_engine.data.validator import require_length, required_lookback, validate_bars
from signal_engine.detectors.cross_asset import AuxiliarySeries, analyze_cross_asset
from signal_engine.detectors.fvg_detector import analyze_gaps
from signal_engine.detectors.magnet import analyze_magnet
from signal_engine.detectors.models import OptionsChain
from signal_engine.detectors.order_flow import analyze_injections, order_flow_frame, summarize_order_flow
from signal_engine.detectors.pattern_detector import analyze_patterns
from signal_engine.detectors.strike_sentiment import analyze_strike_sentiment
from signal_engine.detectors.trend import analyze_cci, analyze_trend
from signal_engine.detectors.volatility import analyze_fear, analyze_squeeze
from signal_engine.errors import InsufficientData, MissingAuxiliarySeries
from signal_engine.models import CompositeResult
from signal_engine.scoring.alignment import AlignmentResult, check_alignment
from signal_engine.scoring.composite import ComponentReadings, build_composite

logger = logging.getLogger("SignalEngine.Engine")


@dataclass(frozen=True)
class EngineResult:
    """Composite result plus every raw component reading behind it."""
    composite: CompositeResult
    readings: ComponentReadings
    bars: int

    @property
    def skipped(self) -> Dict[str, str]:
        return self.composite.skipped

    def to_dict(self) -> dict:
        data = self.composite.to_dict()
        data['bars'] = self.bars
        return data


@dataclass(frozen=True)
class TimeframeAlignment:
    short: EngineResult
    long: EngineResult
    alignment: AlignmentResult


class SignalEngine:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def evaluate(self, symbol: str, bars, timeframe: str = "1d",
                 auxiliary: Optional[AuxiliarySeries] = None,
                 options_chain: Optional[OptionsChain] = None,
                 overrides: Optional[Dict[str, Any]] = None) -> EngineResult:
        """
        Evaluate one bar series.

        Parameters:
        - symbol: Ticker the bars belong to (used for labelling and logs)
        - bars: DataFrame or list of PriceBar/dicts
        - timeframe: Free-form granularity label, e.g. '1h' or '1d'
        - auxiliary: Macro series for the cross-asset component
        - options_chain: Strike table for the magnet and strike-sentiment components
        - overrides: Per-request dotted threshold overrides ({"gaps.threshold_percent": 1.0})

        Raises:
        - InvalidBar when the series breaks a structural invariant
        - InsufficientData when no component could run
        """
        config = self.config.with_overrides(overrides) if overrides else self.config

        lookbacks = required_lookback(config)
        df = validate_bars(bars, min_length=min(lookbacks.values()) if lookbacks else 1)

        readings, skipped = self._run_components(symbol, df, config, auxiliary, options_chain)

        if all(value is None for value in readings.values()):
            required = max(lookbacks.values()) if lookbacks else 1
            raise InsufficientData('engine', required, len(df))

        component_readings = ComponentReadings(**readings)
        composite = build_composite(symbol, timeframe, component_readings, config, skipped)
        return EngineResult(composite=composite, readings=component_readings, bars=len(df))

    def evaluate_timeframes(self, symbol: str, short_bars, long_bars,
                            short_timeframe: str = "short", long_timeframe: str = "long",
                            auxiliary: Optional[AuxiliarySeries] = None,
                            options_chain: Optional[OptionsChain] = None,
                            overrides: Optional[Dict[str, Any]] = None) -> TimeframeAlignment:
        """Evaluates two granularities independently and checks their alignment."""
        short = self.evaluate(symbol, short_bars, short_timeframe, auxiliary, options_chain, overrides)
        long = self.evaluate(symbol, long_bars, long_timeframe, auxiliary, options_chain, overrides)

        config = self.config.with_overrides(overrides) if overrides else self.config
        alignment = check_alignment(short.composite, long.composite, config.alignment)
        logger.info(f"{symbol} {short_timeframe}/{long_timeframe} aligned={alignment.aligned} "
                    f"strength={alignment.alignment_strength}")
        return TimeframeAlignment(short=short, long=long, alignment=alignment)

    def _run_components(self, symbol: str, df: pd.DataFrame, config: EngineConfig,
                        auxiliary: Optional[AuxiliarySeries], options_chain: Optional[OptionsChain]):
        readings: Dict[str, Any] = {name: None for name in ComponentReadings.__dataclass_fields__}
        skipped: Dict[str, str] = {}

        def run(name: str, func: Callable[[], Any]):
            try:
                return func()
            except (InsufficientData, MissingAuxiliarySeries) as e:
                logger.warning(f"{symbol}: {name} skipped - {e}")
                skipped[name] = str(e)
                return None

        # Order flow is computed once and shared by every volume consumer
        flow = None
        if config.order_flow.enabled or config.gaps.enabled:
            flow = order_flow_frame(df, config.order_flow.method)

        if config.order_flow.enabled:
            readings['order_flow'] = run('order_flow', lambda: summarize_order_flow(flow, config.order_flow))
            readings['injections'] = run('order_flow', lambda: analyze_injections(df, config.order_flow))

        if config.gaps.enabled:
            readings['gaps'] = run('gaps', lambda: self._gaps(df, flow, config))

        if config.patterns.enabled:
            readings['patterns'] = run('patterns', lambda: self._patterns(df, config))

        if config.squeeze.enabled:
            readings['squeeze'] = run('squeeze', lambda: analyze_squeeze(df, config.squeeze))

        if config.fear.enabled:
            readings['fear'] = run('fear', lambda: analyze_fear(df, config.fear))

        if config.trend.enabled:
            readings['trend'] = run('trend', lambda: analyze_trend(df, config.trend))

        if config.cci.enabled:
            readings['cci'] = run('cci', lambda: analyze_cci(df, config.cci))

        if config.cross_asset.enabled:
            readings['cross_asset'] = run('cross_asset', lambda: analyze_cross_asset(auxiliary, config.cross_asset))

        if config.magnet.enabled:
            readings['magnet'] = run('magnet', lambda: analyze_magnet(options_chain, config.magnet))

        if config.strike_sentiment.enabled:
            readings['strike_sentiment'] = run(
                'strike_sentiment', lambda: analyze_strike_sentiment(options_chain, config.strike_sentiment))

        return readings, skipped

    @staticmethod
    def _gaps(df: pd.DataFrame, flow: pd.DataFrame, config: EngineConfig):
        require_length(df, 'gaps', config.gaps.min_bars)
        return analyze_gaps(df, flow, config.gaps)

    @staticmethod
    def _patterns(df: pd.DataFrame, config: EngineConfig):
        require_length(df, 'patterns', config.patterns.min_bars)
        return analyze_patterns(df, config.patterns)
