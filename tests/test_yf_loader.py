from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pandas as pd

from signal_engine.data.yf_loader import DEFAULT_AUXILIARY_TICKERS, YFinanceLoader


def create_download(rows=5, ticker="SPY"):
    index = pd.date_range("2024-01-01", periods=rows, freq="D", tz="America/New_York")
    columns = pd.MultiIndex.from_tuples([(field, ticker) for field in
                                         ("Adj Close", "Close", "High", "Low", "Open", "Volume")])
    data = [[100.0 + i, 100.0 + i, 101.0 + i, 99.0 + i, 100.0 + i, 1000.0] for i in range(rows)]
    return pd.DataFrame(data, index=index, columns=columns)


@patch("signal_engine.data.yf_loader.yf.download")
def test_fetch_data_normalizes_frame(mock_download):
    mock_download.return_value = create_download()
    loader = YFinanceLoader({"data": {"period": "1y"}})

    df = loader.fetch_data("SPY", interval="1h")

    assert list(df.columns) == ['open', 'high', 'low', 'close', 'volume']
    assert df.index.tz is None
    assert len(df) == 5
    mock_download.assert_called_once()
    assert mock_download.call_args.kwargs["period"] == "1y"
    assert mock_download.call_args.kwargs["interval"] == "1h"


@patch("signal_engine.data.yf_loader.yf.download")
def test_fetch_data_failures_return_none(mock_download):
    loader = YFinanceLoader()
    mock_download.return_value = pd.DataFrame()
    assert loader.fetch_data("SPY") is None

    mock_download.side_effect = RuntimeError("rate limited")
    assert loader.fetch_data("SPY") is None


@patch("signal_engine.data.yf_loader.yf.download")
def test_fetch_auxiliary_leaves_failed_series_empty(mock_download):
    def download(ticker, **kwargs):
        return pd.DataFrame() if ticker == "^VIX" else create_download(ticker=ticker)

    mock_download.side_effect = download
    auxiliary = YFinanceLoader().fetch_auxiliary()

    assert auxiliary.missing() == ['volatility']
    assert auxiliary.index.iloc[-1] == 104.0
    assert mock_download.call_count == len(DEFAULT_AUXILIARY_TICKERS)


@patch("signal_engine.data.yf_loader.yf.Ticker")
def test_fetch_options_chain(mock_ticker_cls):
    calls = pd.DataFrame({'strike': [95.0, 100.0], 'openInterest': [1200, 3000],
                          'volume': [10, 50], 'lastPrice': [6.0, 2.5]})
    puts = pd.DataFrame({'strike': [100.0, 105.0], 'openInterest': [2500, 800],
                         'volume': [40, 5], 'lastPrice': [2.0, 5.5]})
    ticker = MagicMock()
    ticker.options = ("2026-11-20",)
    ticker.option_chain.return_value = SimpleNamespace(calls=calls, puts=puts)
    ticker.history.return_value = pd.DataFrame({'Close': [99.5, 100.2]})
    mock_ticker_cls.return_value = ticker

    chain = YFinanceLoader().fetch_options_chain("SPY")

    ticker.option_chain.assert_called_once_with("2026-11-20")
    assert chain.spot == 100.2
    assert [q.strike for q in chain.strikes] == [95.0, 100.0, 105.0]
    middle = chain.strikes[1]
    assert middle.call_oi == 3000
    assert middle.put_oi == 2500
    assert middle.call_premium == 2.5 * 50 * 100
    assert chain.strikes[0].put_oi == 0
    assert all(q.gamma_delta == 0 for q in chain.strikes)


@patch("signal_engine.data.yf_loader.yf.Ticker")
def test_no_expiries(mock_ticker_cls):
    mock_ticker_cls.return_value = MagicMock(options=())
    assert YFinanceLoader().fetch_options_chain("XYZ") is None
