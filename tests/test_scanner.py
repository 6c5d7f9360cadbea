import threading
import time
from unittest.mock import MagicMock

from signal_engine import SignalEngine
from signal_engine.errors import InsufficientData
from signal_engine.scanner import ScanRequest, scan_symbols
from mock_data import make_bars


def test_scan_collects_results_and_errors():
    broken = make_bars(n=260, seed=2)
    broken.iloc[10, broken.columns.get_loc('low')] = broken['high'].iloc[10] * 1.1

    requests = [
        ScanRequest("AAA", make_bars(n=260, seed=1)),
        ScanRequest("BBB", broken),
        ScanRequest("CCC", make_bars(n=260, seed=3, freq="h"), timeframe="1h"),
    ]
    report = scan_symbols(SignalEngine(), requests, max_workers=2)

    assert set(report.results) == {"AAA:1d", "CCC:1h"}
    assert set(report.errors) == {"BBB:1d"}
    assert "Invalid bar at position 10" in report.errors["BBB:1d"]


def test_scan_matches_sequential_evaluation():
    engine = SignalEngine()
    requests = [ScanRequest(f"S{seed}", make_bars(n=260, seed=seed)) for seed in range(4)]
    report = scan_symbols(engine, requests, max_workers=4)

    for request in requests:
        expected = engine.evaluate(request.symbol, request.bars, request.timeframe)
        assert report.results[request.key].to_dict() == expected.to_dict()


def test_ranked_strongest_first():
    requests = [ScanRequest(f"S{seed}", make_bars(n=260, seed=seed)) for seed in range(5)]
    ranked = scan_symbols(SignalEngine(), requests).ranked()
    scores = [abs(r.composite.composite_score) for r in ranked]
    assert scores == sorted(scores, reverse=True)


def test_engine_failures_are_recorded():
    engine = MagicMock()
    engine.config.scanner.max_workers = 2
    engine.config.scanner.timeout_seconds = None
    engine.evaluate.side_effect = InsufficientData('engine', 200, 10)

    report = scan_symbols(engine, [ScanRequest("XYZ", None)])
    assert report.results == {}
    assert report.errors == {"XYZ:1d": "engine: needs 200 bars, got 10"}


def test_empty_scan():
    report = scan_symbols(SignalEngine(), [])
    assert report.results == {}
    assert report.errors == {}


def test_unexpected_errors_are_recorded_per_request():
    engine = MagicMock()
    engine.config.scanner.max_workers = 2
    engine.config.scanner.timeout_seconds = None

    def evaluate(symbol, bars, timeframe, **kwargs):
        if symbol == "BAD":
            raise ValueError("could not convert string to float: 'n/a'")
        return f"result for {symbol}"

    engine.evaluate.side_effect = evaluate
    report = scan_symbols(engine, [ScanRequest("GOOD", None), ScanRequest("BAD", None)])

    assert report.results == {"GOOD:1d": "result for GOOD"}
    assert report.errors == {"BAD:1d": "ValueError: could not convert string to float: 'n/a'"}


def test_slow_evaluation_times_out_without_blocking_the_scan():
    release = threading.Event()
    engine = MagicMock()
    engine.config.scanner.max_workers = 2
    engine.config.scanner.timeout_seconds = 0.2

    def evaluate(symbol, bars, timeframe, **kwargs):
        if symbol == "SLOW":
            release.wait(5)
        return f"result for {symbol}"

    engine.evaluate.side_effect = evaluate
    started = time.monotonic()
    try:
        report = scan_symbols(engine, [ScanRequest("FAST", None), ScanRequest("SLOW", None)])
    finally:
        release.set()

    assert time.monotonic() - started < 2
    assert report.results == {"FAST:1d": "result for FAST"}
    assert report.errors == {"SLOW:1d": "timed out after 0.2s"}
