import logging
from typing import Dict, Optional

import pandas as pd
import yfinance as yf

from signal_engine.detectors.cross_asset import AuxiliarySeries
from signal_engine.detectors.models import OptionsChain, StrikeQuote

logger = logging.getLogger("SignalEngine.Data")

DEFAULT_AUXILIARY_TICKERS = {
    "index": "SPY",
    "credit_high_yield": "HYG",
    "credit_investment_grade": "LQD",
    "volatility": "^VIX",
    "currency": "DX-Y.NYB",
}


class YFinanceLoader:
    """
    Fetches bars, auxiliary macro series and option chains from Yahoo Finance.
    All network access stays here; the engine only sees the returned frames.
    """

    def __init__(self, config: Optional[dict] = None):
        config = config or {}
        data_config = config.get('data', {}) or {}
        self.period = data_config.get('period', '2y')
        self.interval = data_config.get('interval', '1d')
        self.auxiliary_period = data_config.get('auxiliary_period', '5y')
        self.auxiliary_tickers = dict(DEFAULT_AUXILIARY_TICKERS)
        self.auxiliary_tickers.update(data_config.get('auxiliary_tickers', {}) or {})

    def fetch_data(self, symbol: str, interval: Optional[str] = None,
                   period: Optional[str] = None) -> Optional[pd.DataFrame]:
        """
        Fetches OHLCV bars for a symbol.

        Returns:
        - DataFrame with lowercase [open, high, low, close, volume] and a naive
          datetime index, or None when nothing could be fetched
        """
        interval = interval or self.interval
        period = period or self.period
        try:
            df = yf.download(symbol, period=period, interval=interval, progress=False, auto_adjust=False)
        except Exception as e:
            logger.error(f"Failed to download {symbol} ({interval}, {period}): {e}")
            return None

        if df is None or df.empty:
            logger.error(f"No data returned for {symbol} ({interval}, {period})")
            return None

        df.columns = [c[0].lower() if isinstance(c, tuple) else c.lower() for c in df.columns]
        df = df[['open', 'high', 'low', 'close', 'volume']].dropna()
        if getattr(df.index, 'tz', None) is not None:
            df.index = df.index.tz_localize(None)
        df.index = pd.to_datetime(df.index)
        return df

    def fetch_auxiliary(self) -> AuxiliarySeries:
        """
        Fetches the macro series used by the cross-asset component. Series
        that fail to download are left empty so the component is skipped.
        """
        series: Dict[str, Optional[pd.Series]] = {}
        for name, ticker in self.auxiliary_tickers.items():
            df = self.fetch_data(ticker, interval="1d", period=self.auxiliary_period)
            series[name] = df['close'] if df is not None else None
        return AuxiliarySeries(**series)

    def fetch_options_chain(self, symbol: str, expiry: Optional[str] = None) -> Optional[OptionsChain]:
        """
        Fetches one expiry (the nearest by default) as an OptionsChain.

        Yahoo does not publish Greeks, so gammas are left at 0 and the magnet
        price falls back to pure open-interest weighting.
        """
        try:
            ticker = yf.Ticker(symbol)
            expiries = ticker.options
            if not expiries:
                logger.warning(f"No option expiries listed for {symbol}")
                return None
            chain = ticker.option_chain(expiry or expiries[0])
            history = ticker.history(period="1d")
        except Exception as e:
            logger.error(f"Failed to fetch option chain for {symbol}: {e}")
            return None

        if history is None or history.empty:
            logger.error(f"No spot price for {symbol}")
            return None
        spot = float(history['Close'].iloc[-1])

        return OptionsChain(spot=spot, strikes=tuple(_merge_chain(chain.calls, chain.puts)))


def _merge_chain(calls: pd.DataFrame, puts: pd.DataFrame):
    columns = ['strike', 'openInterest', 'volume', 'lastPrice']
    merged = pd.merge(calls[columns], puts[columns], on='strike', how='outer',
                      suffixes=('_call', '_put')).fillna(0.0).sort_values('strike')

    for row in merged.itertuples(index=False):
        yield StrikeQuote(
            strike=float(row.strike),
            call_oi=float(row.openInterest_call),
            put_oi=float(row.openInterest_put),
            call_volume=float(row.volume_call),
            put_volume=float(row.volume_put),
            call_premium=float(row.lastPrice_call * row.volume_call * 100),
            put_premium=float(row.lastPrice_put * row.volume_put * 100),
        )
