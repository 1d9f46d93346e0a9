"""CLI tool for trying nomenclature queries and comparing matching strategies."""

import argparse
from dataclasses import replace

import pandas as pd
import structlog

from nommatch.config import Algorithm, EngineConfig, load_config, sanitize
from nommatch.engine import compare_strategies, predict
from nommatch.io import read_candidates, suggestions_frame, write_suggestions
from nommatch.keywords import load_synonyms
from nommatch.logging import configure_logging
from nommatch.metrics import load_metrics
from nommatch.types import Prediction


def _build_config(args: argparse.Namespace) -> EngineConfig:
    """Build an EngineConfig from the config file and CLI overrides."""
    log = structlog.get_logger()
    config = load_config(args.config) if args.config else EngineConfig()

    overrides = {}
    if args.algorithm:
        overrides["algorithm"] = Algorithm(args.algorithm)
    if args.threshold is not None:
        overrides["confidence_threshold"] = args.threshold
    if args.max is not None:
        overrides["max_suggestions"] = args.max
    if overrides:
        config = replace(config, **overrides)
        log.info("config_overrides", **{k: str(v) for k, v in overrides.items()})

    return sanitize(config)


def _show(title: str, df: pd.DataFrame) -> None:
    print(f"\n=== {title} ({len(df)}) ===")
    if df.empty:
        print("  No suggestions.")
        return
    print(df[["rank", "name", "confidence", "match_type", "strategy"]].to_string(index=False))


def cmd_predict(args: argparse.Namespace) -> None:
    log = structlog.get_logger()
    config = _build_config(args)
    candidates = read_candidates(args.candidates)
    synonyms = load_synonyms(args.synonyms)
    log.info("candidates_loaded", path=args.candidates, count=len(candidates))

    prediction = predict(args.query, candidates, config, synonyms=synonyms)
    _show(f"Suggestions for '{args.query}'", suggestions_frame(prediction.suggestions))
    _print_summary(prediction)

    if args.metrics:
        metrics = load_metrics(args.metrics)
        metrics.record_prediction(prediction)
        metrics.save(args.metrics)

    if args.output:
        write_suggestions(prediction, args.output)
        print(f"\nSaved to: {args.output}")


def _print_summary(prediction: Prediction) -> None:
    print("\n--- Summary ---")
    print(f"Model used: {prediction.model_used.value}")
    print(f"Processing time: {prediction.processing_time_ms:.1f} ms")
    if prediction.fallback_reason:
        print(f"Fallback reason: {prediction.fallback_reason}")


def cmd_compare(args: argparse.Namespace) -> None:
    config = _build_config(args)
    candidates = read_candidates(args.candidates)
    synonyms = load_synonyms(args.synonyms)

    comparison = compare_strategies(args.query, candidates, config, synonyms=synonyms)
    _show("Similarity", suggestions_frame(comparison.similarity))
    _show("Keyword", suggestions_frame(comparison.keyword))
    _show("Edit mode", suggestions_frame(comparison.editing))
    _show("Adaptive", suggestions_frame(comparison.adaptive))

    print("\n--- Overlap with adaptive ---")
    for name, count in comparison.overlap_with_adaptive().items():
        print(f"{name}: {count}")


def main(argv: list[str] | None = None) -> None:
    # Parent parser with global options (inherited by all subcommands)
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set logging level (default: INFO)",
    )

    # Options shared by the matching subcommands
    match_options = argparse.ArgumentParser(add_help=False)
    match_options.add_argument("query", help="Free-text material name")
    match_options.add_argument("--candidates", required=True, help="Candidate table (CSV, JSONL or XLSX)")
    match_options.add_argument("--config", help="JSON config file (camelCase or snake_case keys)")
    match_options.add_argument("--synonyms", help="Synonyms JSON file (default: $NOMMATCH_CONFIG_DATA/synonyms.json)")
    match_options.add_argument("--algorithm", choices=[a.value for a in Algorithm], help="Override the algorithm")
    match_options.add_argument("--threshold", type=float, help="Override the confidence threshold")
    match_options.add_argument("--max", type=int, help="Override the maximum number of suggestions")

    parser = argparse.ArgumentParser(
        description="Nomenclature matching CLI",
        parents=[parent_parser],
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # predict subcommand
    predict_parser = subparsers.add_parser(
        "predict", parents=[parent_parser, match_options], help="Suggest nomenclature for a query"
    )
    predict_parser.add_argument("--output", help="Write suggestions to CSV, JSONL or XLSX")
    predict_parser.add_argument("--metrics", help="JSON file accumulating prediction metrics")
    predict_parser.set_defaults(func=cmd_predict)

    # compare subcommand
    compare_parser = subparsers.add_parser(
        "compare", parents=[parent_parser, match_options], help="Compare strategies side by side"
    )
    compare_parser.set_defaults(func=cmd_compare)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    args.func(args)


if __name__ == "__main__":
    main()
