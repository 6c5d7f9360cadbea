"""
Detectors - Cross-Asset Regime
Blends a broad index, a credit spread proxy, a volatility index and a
currency index into one bounded macro regime reading.
"""
import logging
from dataclasses import dataclass, fields
from typing import Optional, Union

import numpy as np
import pandas as pd

from signal_engine.config import CrossAssetConfig
from signal_engine.errors import InsufficientData, MissingAuxiliarySeries
from signal_engine.utils.indicators import clamp
from .models import CrossAssetState

logger = logging.getLogger("SignalEngine.CrossAsset")

SeriesLike = Union[pd.DataFrame, pd.Series]


@dataclass(frozen=True)
class AuxiliarySeries:
    """
    Auxiliary macro series, each a close Series or an OHLC DataFrame.

    - index: broad equity index (e.g. SPY)
    - credit_high_yield: high-yield credit proxy (e.g. HYG)
    - credit_investment_grade: investment-grade credit proxy (e.g. LQD)
    - volatility: volatility index (e.g. VIX)
    - currency: currency index (e.g. DXY)
    """
    index: Optional[SeriesLike] = None
    credit_high_yield: Optional[SeriesLike] = None
    credit_investment_grade: Optional[SeriesLike] = None
    volatility: Optional[SeriesLike] = None
    currency: Optional[SeriesLike] = None

    def missing(self):
        return [f.name for f in fields(self) if _is_empty(getattr(self, f.name))]


def _is_empty(series) -> bool:
    return series is None or len(series) == 0


def _closes(series: SeriesLike) -> np.ndarray:
    if isinstance(series, pd.DataFrame):
        columns = {str(c).lower(): c for c in series.columns}
        series = series[columns['close']] if 'close' in columns else series.iloc[:, 0]
    return series.astype(float).to_numpy()


def zscore_last(values: np.ndarray, length: int) -> float:
    """Z-score of the last value against the trailing `length` values (population std)."""
    window = values[-length:]
    std = window.std()
    if std == 0 or np.isnan(std):
        return 0.0
    return float((window[-1] - window.mean()) / std)


def analyze_cross_asset(auxiliary: Optional[AuxiliarySeries], config: CrossAssetConfig) -> CrossAssetState:
    """
    Macro regime reading.

    Components (each clamped to +/- config.clamp):
    - z-score of the latest return_length-bar log return of the index
    - negated z-score of the investment-grade / high-yield ratio
    - negated z-score of the volatility level
    - negated z-score of the currency level

    Raises:
    - MissingAuxiliarySeries when any series is absent
    - InsufficientData when a series is shorter than the lookback needs
    """
    if auxiliary is None:
        raise MissingAuxiliarySeries('cross_asset', [f.name for f in fields(AuxiliarySeries)])
    missing = auxiliary.missing()
    if missing:
        raise MissingAuxiliarySeries('cross_asset', missing)

    index = _closes(auxiliary.index)
    high_yield = _closes(auxiliary.credit_high_yield)
    investment_grade = _closes(auxiliary.credit_investment_grade)
    volatility = _closes(auxiliary.volatility)
    currency = _closes(auxiliary.currency)

    required_index = config.lookback + config.return_length
    if len(index) < required_index:
        raise InsufficientData('cross_asset', required_index, len(index))
    shortest = min(len(high_yield), len(investment_grade), len(volatility), len(currency))
    if shortest < config.lookback:
        raise InsufficientData('cross_asset', config.lookback, shortest)

    returns = np.log(index[config.return_length:] / index[:-config.return_length])
    equity_z = clamp(zscore_last(returns, config.lookback), config.clamp)

    n = min(len(high_yield), len(investment_grade))
    hy = high_yield[-n:]
    spread = investment_grade[-n:] / np.where(hy == 0, 1.0, hy)
    credit_z = clamp(-zscore_last(spread, config.lookback), config.clamp)

    volatility_z = clamp(-zscore_last(volatility, config.lookback), config.clamp)
    currency_z = clamp(-zscore_last(currency, config.lookback), config.clamp)

    raw = (equity_z + credit_z + volatility_z + currency_z) / 4.0
    if raw >= config.state_threshold:
        state = 1
    elif raw <= -config.state_threshold:
        state = -1
    else:
        state = 0

    result = CrossAssetState(
        raw=raw,
        state=state,
        strong=abs(raw) >= config.strong_threshold,
        components=(('equity', equity_z), ('credit', credit_z),
                    ('volatility', volatility_z), ('currency', currency_z)),
    )
    logger.debug(f"Cross-asset: raw={raw:.2f} state={result.label} strong={result.strong}")
    return result
