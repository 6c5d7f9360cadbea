"""
Signal Engine - Batch Scanner
Evaluates many independent (symbol, timeframe) requests on a bounded
thread pool.
"""
import concurrent.futures
import logging
import traceback
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from signal_engine.detectors.cross_asset import AuxiliarySeries
from signal_engine.detectors.models import OptionsChain
from signal_engine.engine import EngineResult, SignalEngine
from signal_engine.errors import SignalEngineError

logger = logging.getLogger("SignalEngine.Scanner")


@dataclass(frozen=True)
class ScanRequest:
    symbol: str
    bars: Any
    timeframe: str = "1d"
    auxiliary: Optional[AuxiliarySeries] = None
    options_chain: Optional[OptionsChain] = None
    overrides: Optional[Dict[str, Any]] = None

    @property
    def key(self) -> str:
        return f"{self.symbol}:{self.timeframe}"


@dataclass
class ScanReport:
    results: Dict[str, EngineResult] = field(default_factory=dict)  # key -> result
    errors: Dict[str, str] = field(default_factory=dict)            # key -> reason

    def ranked(self) -> List[EngineResult]:
        """Results ordered by absolute composite score, strongest first."""
        return sorted(self.results.values(),
                      key=lambda r: (-abs(r.composite.composite_score), r.composite.symbol,
                                     r.composite.timeframe))


def scan_symbols(engine: SignalEngine, requests: Iterable[ScanRequest],
                 max_workers: Optional[int] = None, timeout: Optional[float] = None) -> ScanReport:
    """
    Runs every request concurrently.

    Parameters:
    - engine: Shared SignalEngine (stateless, safe to use from many threads)
    - requests: ScanRequest per (symbol, timeframe)
    - max_workers: Thread cap, defaults to engine.config.scanner.max_workers
    - timeout: Seconds to wait for the whole scan, defaults to engine.config.scanner.timeout_seconds;
      requests still running then are recorded as timed out

    Returns:
    - ScanReport; per-request failures of any kind are recorded, not raised
    """
    requests = list(requests)
    workers = max_workers or engine.config.scanner.max_workers
    timeout = timeout if timeout is not None else engine.config.scanner.timeout_seconds
    report = ScanReport()

    if not requests:
        return report

    logger.info(f"Scanning {len(requests)} requests with {workers} workers")

    def _process(request: ScanRequest) -> EngineResult:
        return engine.evaluate(request.symbol, request.bars, request.timeframe,
                               auxiliary=request.auxiliary, options_chain=request.options_chain,
                               overrides=request.overrides)

    executor = concurrent.futures.ThreadPoolExecutor(max_workers=workers)
    future_map = {executor.submit(_process, r): r for r in requests}
    try:
        for future in concurrent.futures.as_completed(future_map, timeout=timeout):
            _collect(report, future_map[future], future)
    except concurrent.futures.TimeoutError:
        for future, request in future_map.items():
            if request.key in report.results or request.key in report.errors:
                continue
            if future.done():
                _collect(report, request, future)
            else:
                logger.warning(f"{request.key}: evaluation timed out after {timeout}s")
                report.errors[request.key] = f"timed out after {timeout}s"
    finally:
        # Unfinished evaluations are abandoned, not awaited
        executor.shutdown(wait=False, cancel_futures=True)

    logger.info(f"Scan complete: {len(report.results)} results, {len(report.errors)} errors")
    return report


def _collect(report: ScanReport, request: ScanRequest, future: concurrent.futures.Future):
    try:
        report.results[request.key] = future.result()
    except SignalEngineError as e:
        logger.error(f"{request.key}: {e}")
        report.errors[request.key] = str(e)
    except Exception as e:
        logger.error(f"Error processing {request.key}: {e}")
        logger.error(traceback.format_exc())
        report.errors[request.key] = f"{type(e).__name__}: {e}"
