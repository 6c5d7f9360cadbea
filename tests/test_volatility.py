import pandas as pd
import pytest

from signal_engine.config import FearConfig, SqueezeConfig
from signal_engine.detectors.volatility import analyze_fear, analyze_squeeze, wvf_series
from signal_engine.errors import InsufficientData
from mock_data import bars_from_rows, make_flat_bars


def create_trend_rows(n=30, start=100.0):
    rows = []
    for i in range(n):
        close = start + i
        open_ = close - 1
        rows.append((open_, close + 0.1, open_ - 0.1, close, 10000))
    return rows


def test_flat_market_is_compressed():
    state = analyze_squeeze(make_flat_bars(30), SqueezeConfig())
    assert state.squeeze_on
    assert not state.fired
    assert not state.no_squeeze
    assert state.squeeze_count == 11
    assert state.lower_bb > state.lower_kc
    assert state.upper_bb < state.upper_kc


def test_strong_trend_fires_squeeze():
    state = analyze_squeeze(bars_from_rows(create_trend_rows()), SqueezeConfig())
    assert state.fired
    assert not state.squeeze_on
    assert state.squeeze_count == 0


def test_release_after_compression():
    flat = make_flat_bars(40)
    jump = bars_from_rows([(100.0, 112.1, 99.9, 112.0, 50000)])
    jump.index = [flat.index[-1] + pd.Timedelta(days=1)]
    state = analyze_squeeze(pd.concat([flat, jump]), SqueezeConfig())
    assert not state.squeeze_on
    assert state.released


def test_squeeze_needs_length_bars():
    with pytest.raises(InsufficientData):
        analyze_squeeze(make_flat_bars(10), SqueezeConfig())


def test_wvf_is_drawdown_from_highest_close():
    df = bars_from_rows([(100, 101, 99, 100, 1), (100, 101, 79, 80, 1)])
    wvf = wvf_series(df, period=22)
    assert wvf.iloc[0] == 0
    assert wvf.iloc[1] == pytest.approx(20.0)


def test_close_at_high_is_never_extreme():
    state = analyze_fear(bars_from_rows(create_trend_rows(60)), FearConfig())
    assert state.wvf == 0
    assert not state.fear_extreme


def test_sharp_drop_is_extreme():
    flat = make_flat_bars(60)
    crash = bars_from_rows([(100.0, 100.0, 89.0, 90.0, 30000)])
    crash.index = [flat.index[-1] + pd.Timedelta(days=1)]
    state = analyze_fear(pd.concat([flat, crash]), FearConfig())
    assert state.wvf == pytest.approx(10.0)
    assert state.fear_extreme
    assert state.range_high == pytest.approx(8.5)


def test_fear_needs_period_bars():
    with pytest.raises(InsufficientData):
        analyze_fear(make_flat_bars(10), FearConfig())
