# =============================================================================
# POLYEDGE ANALYTICS
# Module: main.py
# Purpose: CLI entry point for the scoring pipeline
# =============================================================================
#
# USAGE:
# python main.py picks --input markets.json [--training samples.json]
#                      [--config config/analytics.yaml] [--as-of ISO8601]
# python main.py crossval --training samples.json [--folds 5]
# python main.py top-picks --input markets.json
#
# INPUT FILE FORMAT (JSON):
# markets.json: [ {"market": {...}, "outcomes": [...], "price_history": [...]}, ... ]
# samples.json: same shape, plus "actual_outcome": 0 | 1 per entry
#
# OUTPUT:
# - picks / top-picks: one JSON object per line on stdout
# - crossval: one JSON object with fold means and std-devs
# - Logs to logs/analytics/ (disable with --no-log-file)
#
# =============================================================================

import argparse
import json
import logging
import os
import sys
from typing import Any, List, Optional

from core.analytics_config import AnalyticsConfig, DEFAULT_CONFIG, DEFAULT_CONFIG_PATH, load_config
from core.features import build_market_features
from core.model import cross_validate
from core.pick_generator import PickGenerator
from core.top_picks import rank_top_picks
from models.data_models import HistoricalSample, MarketBundle, parse_timestamp
from shared.exceptions import AnalyticsError
from shared.logging_config import AuditLogger, get_pipeline_logger, setup_logging

logger = get_pipeline_logger("cli")


def _load_json(path: str) -> Any:
    """Read a JSON file, exiting with status 1 if it cannot be read."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        print(f"ERROR: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    except json.JSONDecodeError as e:
        print(f"ERROR: Invalid JSON in {path}: {e}", file=sys.stderr)
        sys.exit(1)
    except PermissionError:
        print(f"ERROR: Permission denied reading {path}", file=sys.stderr)
        sys.exit(1)


def _as_list(data: Any, key: str, path: str) -> List[Any]:
    if isinstance(data, dict):
        data = data.get(key)
    if not isinstance(data, list):
        print(f"ERROR: {path} must contain a list (or an object with '{key}')", file=sys.stderr)
        sys.exit(1)
    return data


def load_bundles(path: str) -> List[MarketBundle]:
    """Load market bundles from a JSON file."""
    records = _as_list(_load_json(path), "markets", path)
    try:
        return [MarketBundle.from_dict(r) for r in records]
    except (KeyError, TypeError, ValueError) as e:
        print(f"ERROR: Invalid market record in {path}: {e}", file=sys.stderr)
        sys.exit(1)


def load_samples(path: str) -> List[HistoricalSample]:
    """Load resolved training samples from a JSON file."""
    records = _as_list(_load_json(path), "samples", path)
    try:
        return [HistoricalSample.from_dict(r) for r in records]
    except (KeyError, TypeError, ValueError) as e:
        print(f"ERROR: Invalid training sample in {path}: {e}", file=sys.stderr)
        sys.exit(1)


def resolve_config(config_path: Optional[str]) -> AnalyticsConfig:
    """Explicit path, else the bundled config/analytics.yaml, else defaults."""
    if config_path is None and not os.path.exists(DEFAULT_CONFIG_PATH):
        return DEFAULT_CONFIG
    try:
        return load_config(config_path)
    except OSError as e:
        print(f"ERROR: Cannot read config {config_path}: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)


def _parse_as_of(value: Optional[str]):
    if value is None:
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        print(f"ERROR: Invalid --as-of timestamp: {value}", file=sys.stderr)
        sys.exit(1)


# =============================================================================
# COMMANDS
# =============================================================================


def run_picks(args: argparse.Namespace) -> None:
    config = resolve_config(args.config)
    as_of = _parse_as_of(args.as_of)
    bundles = load_bundles(args.input)

    audit_logger = AuditLogger() if args.audit else None
    generator = PickGenerator(config=config, audit_logger=audit_logger)

    if args.training:
        samples = load_samples(args.training)
        trained = generator.train_models(samples, as_of)
        if not trained:
            logger.warning("No market type had enough training samples, using seed model")
            generator.train_model()
    else:
        generator.train_model()

    try:
        for pick in generator.generate_picks(bundles, as_of):
            print(json.dumps(pick.to_dict(), ensure_ascii=False))
    finally:
        if audit_logger is not None:
            audit_logger.close()


def run_crossval(args: argparse.Namespace) -> None:
    config = resolve_config(args.config)
    as_of = _parse_as_of(args.as_of)
    samples = load_samples(args.training)

    features = [
        build_market_features(s.market, s.outcomes, s.price_history, as_of, config)
        for s in samples
    ]
    labels = [s.actual_outcome for s in samples]

    try:
        result = cross_validate(features, labels, n_folds=args.folds, config=config)
    except AnalyticsError as e:
        print(f"ERROR: Cross-validation failed: {e}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(result.to_dict(), indent=2))


def run_top_picks(args: argparse.Namespace) -> None:
    as_of = _parse_as_of(args.as_of)
    bundles = load_bundles(args.input)
    for pick in rank_top_picks(bundles, as_of=as_of):
        print(json.dumps(pick.to_dict(), ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="PolyEdge Analytics - calibrated picks for prediction markets"
    )
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable debug logging")
    parser.add_argument("--no-log-file", action="store_true",
                        help="Log to console only")

    subparsers = parser.add_subparsers(dest="command")

    picks = subparsers.add_parser("picks", help="Generate model picks")
    picks.add_argument("--input", required=True, help="Market bundles JSON file")
    picks.add_argument("--training", help="Resolved samples JSON file")
    picks.add_argument("--config", help="Path to analytics.yaml")
    picks.add_argument("--as-of", help="Evaluation time (ISO8601, default: now)")
    picks.add_argument("--audit", action="store_true",
                       help="Write audit records to logs/audit/")
    picks.set_defaults(handler=run_picks)

    crossval = subparsers.add_parser("crossval", help="k-fold cross-validation")
    crossval.add_argument("--training", required=True, help="Resolved samples JSON file")
    crossval.add_argument("--folds", type=int, default=5, help="Number of folds (default: 5)")
    crossval.add_argument("--config", help="Path to analytics.yaml")
    crossval.add_argument("--as-of", help="Feature time (ISO8601, default: now)")
    crossval.set_defaults(handler=run_crossval)

    top = subparsers.add_parser("top-picks", help="Heuristic ranking by market metrics")
    top.add_argument("--input", required=True, help="Market bundles JSON file")
    top.add_argument("--as-of", help="Evaluation time (ISO8601, default: now)")
    top.set_defaults(handler=run_top_picks)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "handler", None):
        parser.print_help()
        sys.exit(1)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        file_output=not args.no_log_file,
    )
    args.handler(args)


if __name__ == "__main__":
    main()
