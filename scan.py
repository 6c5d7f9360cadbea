import argparse
import json

from signal_engine.data.yf_loader import YFinanceLoader
from signal_engine.engine import SignalEngine
from signal_engine.scanner import ScanRequest, scan_symbols
from signal_engine.scoring.alignment import check_alignment
from signal_engine.utils.config_loader import load_config, load_engine_config, load_environment
from signal_engine.utils.logger import setup_logger


def main():
    # Handle Command-line Arguments
    parser = argparse.ArgumentParser(description="Composite Signal Scanner")
    parser.add_argument("--config", type=str, default=None, help="Path to config file")
    parser.add_argument("--env", type=str, default=".env", help="Path to .env file")
    parser.add_argument("--symbols", type=str, nargs="*", help="Override the configured symbol list")
    parser.add_argument("--set", type=str, nargs="*", default=[], metavar="SECTION.FIELD=VALUE",
                        help="Threshold overrides, e.g. gaps.threshold_percent=1.0")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    args = parser.parse_args()

    env = load_environment(args.env)
    config_path = args.config or env['config_path']
    config = load_config(config_path)

    log_level = config.get('system', {}).get('log_level', env['log_level'])
    logger = setup_logger(log_level=log_level)
    logger.info(f"Starting scanner with config: {config_path} and env: {args.env}")

    overrides = _parse_overrides(args.set)
    engine = SignalEngine(load_engine_config(config_path, overrides))

    loader = YFinanceLoader(config)
    data_config = config.get('data', {})
    symbols = args.symbols or config['system'].get('symbol_list', [])
    active_pairs = config['system'].get('active_pairs', [{"low": "1h", "high": "1d", "label": "SWING"}])

    auxiliary = loader.fetch_auxiliary() if data_config.get('load_auxiliary', True) else None

    requests = []
    for symbol in symbols:
        chain = loader.fetch_options_chain(symbol) if data_config.get('load_options', True) else None
        for pair in active_pairs:
            for interval in (pair['low'], pair['high']):
                period = data_config.get('intraday_period', '60d') if interval.endswith(('m', 'h')) else None
                df = loader.fetch_data(symbol, interval=interval, period=period)
                if df is None:
                    logger.warning(f"[SKIP] {symbol} {interval}: no data")
                    continue
                requests.append(ScanRequest(symbol, df, interval, auxiliary=auxiliary, options_chain=chain))

    report = scan_symbols(engine, requests, max_workers=env['max_workers'])

    rows = []
    for result in report.ranked():
        rows.append(result.to_dict())

    for symbol in symbols:
        for pair in active_pairs:
            short = report.results.get(f"{symbol}:{pair['low']}")
            long = report.results.get(f"{symbol}:{pair['high']}")
            if short is None or long is None:
                continue
            alignment = check_alignment(short.composite, long.composite, engine.config.alignment)
            logger.info(f"{symbol} [{pair['label']}] aligned={alignment.aligned} "
                        f"direction={alignment.direction.value} strength={alignment.alignment_strength}")

    if args.json:
        print(json.dumps({"results": rows, "errors": report.errors}, indent=2, default=str))
    else:
        logger.info(f"{'SYMBOL':<8} {'TF':<4} {'SCORE':>6} {'ACTION':<12} {'CONF':<5} {'SIZE':>4}")
        for row in rows:
            logger.info(f"{row['symbol']:<8} {row['timeframe']:<4} {row['composite_score']:>6} "
                        f"{row['action']:<12} {row['confidence']:<5} {row['size_percent']:>4}")
        for key, reason in report.errors.items():
            logger.error(f"{key}: {reason}")


def _parse_overrides(items):
    overrides = {}
    for item in items:
        path, _, raw = item.partition("=")
        try:
            overrides[path] = json.loads(raw)
        except ValueError:
            overrides[path] = raw
    return overrides


if __name__ == "__main__":
    main()
