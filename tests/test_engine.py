import pandas as pd
import pytest

from signal_engine import (Action, EngineConfig, InsufficientData, InvalidBar, PriceBar, ScoreScale,
                           SignalEngine)
from signal_engine.config import DEFAULT_WEIGHTS
from mock_data import make_bars

BAR_COMPONENTS = ('order_flow', 'gaps', 'patterns', 'squeeze', 'fear', 'trend', 'cci')


def test_full_evaluation(bars, auxiliary, chain):
    engine = SignalEngine()
    result = engine.evaluate("SPY", bars, "1d", auxiliary=auxiliary, options_chain=chain)
    composite = result.composite

    assert result.skipped == {}
    assert result.bars == len(bars)
    assert composite.symbol == "SPY"
    assert composite.scale == ScoreScale.WEIGHTED
    assert -100 <= composite.composite_score <= 100
    assert composite.size_percent in (0, 50, 75, 100)
    for name in ('trend', 'cross_asset', 'order_flow', 'pattern', 'magnet', 'strike_sentiment', 'gaps'):
        assert name in composite.components


def test_evaluation_is_idempotent(bars, auxiliary, chain):
    engine = SignalEngine()
    snapshot = bars.copy()
    first = engine.evaluate("SPY", bars, auxiliary=auxiliary, options_chain=chain)
    second = engine.evaluate("SPY", bars, auxiliary=auxiliary, options_chain=chain)

    assert first.to_dict() == second.to_dict()
    assert first.readings == second.readings
    pd.testing.assert_frame_equal(bars, snapshot)


def test_missing_inputs_only_skip_their_components(bars):
    result = SignalEngine().evaluate("SPY", bars)
    assert set(result.skipped) == {'cross_asset', 'magnet', 'strike_sentiment'}
    assert result.readings.cross_asset is None
    assert result.readings.trend is not None
    assert 'cross_asset' not in result.composite.components


def test_short_series_skips_long_lookbacks():
    result = SignalEngine().evaluate("SPY", make_bars(n=100))
    assert 'trend' in result.skipped
    assert result.readings.trend is None
    assert result.readings.squeeze is not None
    assert result.readings.order_flow is not None
    assert not result.composite.prohibition_active


def test_invalid_bar_rejects_evaluation(bars):
    broken = bars.copy()
    broken.iloc[50, broken.columns.get_loc('high')] = broken['low'].iloc[50] * 0.9
    with pytest.raises(InvalidBar) as exc:
        SignalEngine().evaluate("SPY", broken)
    assert exc.value.index == 50


def test_unordered_timestamps_rejected(bars):
    with pytest.raises(InvalidBar):
        SignalEngine().evaluate("SPY", bars.iloc[::-1])


def test_nothing_runnable_raises():
    config = EngineConfig().with_overrides({f"{name}.enabled": False for name in BAR_COMPONENTS})
    with pytest.raises(InsufficientData):
        SignalEngine(config).evaluate("SPY", make_bars(n=50))


def test_series_shorter_than_every_lookback():
    overrides = {f"{name}.enabled": False for name in BAR_COMPONENTS if name != 'trend'}
    with pytest.raises(InsufficientData):
        SignalEngine().evaluate("SPY", make_bars(n=50), overrides=overrides)


def test_overrides_apply_per_request(bars):
    engine = SignalEngine()
    result = engine.evaluate("SPY", bars, overrides={"trend.enabled": False, "scoring.scale": "alignment"})
    assert result.readings.trend is None
    assert 'trend' not in result.skipped
    assert result.composite.scale == ScoreScale.ALIGNMENT
    assert 0 <= result.composite.composite_score <= 12
    # The engine's own config is untouched
    assert engine.config.trend.enabled
    assert engine.config.scoring.scale == "weighted"


def test_bar_objects_match_dataframe(bars):
    engine = SignalEngine()
    objects = [PriceBar(r.open, r.high, r.low, r.close, r.volume) for r in bars.itertuples()]
    from_frame = engine.evaluate("SPY", bars)
    from_objects = engine.evaluate("SPY", objects)
    assert from_frame.composite.to_dict() == from_objects.composite.to_dict()


def test_prohibited_trend_never_trades_on_trend_alone(bars):
    trend_only = dict.fromkeys(DEFAULT_WEIGHTS, 0.0)
    trend_only["trend"] = 100.0
    overrides = {"trend.min_adx": 100.0, "scoring.weights": trend_only}
    result = SignalEngine().evaluate("SPY", bars, overrides=overrides)
    assert result.readings.trend.prohibition_active
    assert result.readings.trend.core_value == 0
    assert result.composite.action == Action.PROHIBITED
    assert result.composite.size_percent == 0


def test_timeframe_alignment(auxiliary, chain):
    engine = SignalEngine()
    outcome = engine.evaluate_timeframes("SPY", make_bars(n=260, seed=3, freq="h"),
                                         make_bars(n=260, seed=4), "1h", "1d",
                                         auxiliary=auxiliary, options_chain=chain)
    assert outcome.short.composite.timeframe == "1h"
    assert outcome.long.composite.timeframe == "1d"
    if outcome.alignment.aligned:
        assert outcome.short.composite.direction == outcome.long.composite.direction
        assert outcome.alignment.direction == outcome.short.composite.direction
    else:
        assert outcome.alignment.alignment_strength == 0
