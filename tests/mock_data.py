"""
Seeded mock data for tests. Never imported by production code.
"""
import numpy as np
import pandas as pd

from signal_engine.detectors.cross_asset import AuxiliarySeries
from signal_engine.detectors.models import OptionsChain, StrikeQuote


def make_bars(n: int = 260, seed: int = 7, drift: float = 0.001, volatility: float = 0.01,
              start: float = 100.0, base_volume: float = 50000, freq: str = "D") -> pd.DataFrame:
    """Random-walk OHLCV bars that always satisfy the OHLC invariant."""
    rng = np.random.default_rng(seed)
    returns = rng.normal(drift, volatility, n)

    closes = start * np.exp(np.cumsum(returns))
    opens = np.concatenate([[start], closes[:-1]])
    wick_up = rng.uniform(0.0005, 0.01, n)
    wick_down = rng.uniform(0.0005, 0.01, n)
    highs = np.maximum(opens, closes) * (1 + wick_up)
    lows = np.minimum(opens, closes) * (1 - wick_down)
    volumes = rng.integers(int(base_volume * 0.5), int(base_volume * 1.5), n).astype(float)

    index = pd.date_range("2024-01-01", periods=n, freq=freq)
    return pd.DataFrame({
        'open': opens,
        'high': highs,
        'low': lows,
        'close': closes,
        'volume': volumes,
    }, index=index)


def make_flat_bars(n: int = 60, price: float = 100.0, volume: float = 10000) -> pd.DataFrame:
    index = pd.date_range("2024-01-01", periods=n, freq="D")
    return pd.DataFrame({
        'open': [price] * n,
        'high': [price * 1.001] * n,
        'low': [price * 0.999] * n,
        'close': [price] * n,
        'volume': [volume] * n,
    }, index=index)


def bars_from_rows(rows) -> pd.DataFrame:
    """Builds a frame from (open, high, low, close, volume) tuples."""
    df = pd.DataFrame(rows, columns=['open', 'high', 'low', 'close', 'volume'])
    df.index = pd.date_range("2024-01-01", periods=len(df), freq="D")
    return df.astype(float)


def make_auxiliary(n: int = 400, seed: int = 11, index_drift: float = 0.0005) -> AuxiliarySeries:
    rng = np.random.default_rng(seed)
    index = pd.date_range("2022-01-01", periods=n, freq="D")

    def walk(start, drift, vol):
        return pd.Series(start * np.exp(np.cumsum(rng.normal(drift, vol, n))), index=index)

    return AuxiliarySeries(
        index=walk(400.0, index_drift, 0.01),
        credit_high_yield=walk(75.0, 0.0, 0.004),
        credit_investment_grade=walk(105.0, 0.0, 0.003),
        volatility=walk(18.0, 0.0, 0.03),
        currency=walk(102.0, 0.0, 0.003),
    )


def make_options_chain(spot: float = 100.0, seed: int = 3, width: int = 10, step: float = 2.5,
                       gex: float = 1.0) -> OptionsChain:
    rng = np.random.default_rng(seed)
    strikes = []
    for k in range(-width, width + 1):
        strike = round(spot + k * step, 2)
        proximity = 1.0 / (1 + abs(k))
        strikes.append(StrikeQuote(
            strike=strike,
            call_oi=float(rng.integers(500, 5000) * (1 + proximity * 4)),
            put_oi=float(rng.integers(500, 5000) * (1 + proximity * 4)),
            call_gamma=float(rng.uniform(0, 0.08) * proximity),
            put_gamma=float(rng.uniform(0, 0.08) * proximity),
            call_volume=float(rng.integers(0, 3000)),
            put_volume=float(rng.integers(0, 3000)),
            call_premium=float(rng.uniform(1000, 50000)),
            put_premium=float(rng.uniform(1000, 50000)),
        ))
    return OptionsChain(spot=spot, strikes=tuple(strikes), gex=gex)
