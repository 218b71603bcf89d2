"""
ReviewDesk Triage CLI
=====================

Command-line access to the triage engine, for checking how a review
would be scored and flagged without going through the API.

Commands:
    score   - Triage a single review
    batch   - Triage a JSON file holding a list of reviews

Usage:
    python -m src.triage.cli score --rating 2 --text "Rude staff, awful wait"
    python -m src.triage.cli score --rating 5 --text "Great" --json
    python -m src.triage.cli batch reviews.json
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from ..core.logging_config import setup_logging
from .triage_engine import ReviewTriageEngine


def cmd_score(args, engine: ReviewTriageEngine) -> int:
    """Triage one review from the command line."""
    result = engine.triage({"rating": args.rating, "text": args.text})

    if args.json:
        print(json.dumps(result.to_dict()))
        return 0

    decision = result.decision
    print("=" * 60)
    print("REVIEW TRIAGE")
    print("=" * 60)
    print(f"Rating: {args.rating}")
    print(f"Priority score: {result.priority_score}/10")
    print(f"Flagged: {'yes' if decision.should_flag else 'no'}")
    if decision.should_flag:
        print(f"Reason: {decision.reason.value}")
        print(f"Keywords: {', '.join(decision.keywords) or '-'}")
    return 0


def cmd_batch(args, engine: ReviewTriageEngine) -> int:
    """Triage every review in a JSON array; one JSON line per review."""
    try:
        with open(args.file, "r", encoding="utf-8") as f:
            reviews = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"ERROR: Could not read {args.file}: {e}", file=sys.stderr)
        return 1

    if not isinstance(reviews, list):
        print(f"ERROR: {args.file} must contain a JSON list of reviews", file=sys.stderr)
        return 1

    skipped = 0
    for index, review in enumerate(reviews):
        try:
            rating = int(review["rating"])
        except (TypeError, KeyError, ValueError):
            logging.warning(f"Skipping entry {index}: missing or non-integer rating")
            skipped += 1
            continue
        result = engine.triage({"rating": rating, "text": review.get("text") or ""})
        line = {"index": index, **result.to_dict()}
        if "id" in review:
            line["id"] = review["id"]
        print(json.dumps(line))

    if skipped:
        logging.warning(f"Skipped {skipped} of {len(reviews)} entries")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="reviewdesk-triage",
        description="ReviewDesk review triage CLI",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    score_parser = subparsers.add_parser("score", help="Triage a single review")
    score_parser.add_argument(
        "--rating",
        type=int,
        required=True,
        help="Star rating (1-5)",
    )
    score_parser.add_argument(
        "--text",
        default="",
        help="Review text",
    )
    score_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )

    batch_parser = subparsers.add_parser("batch", help="Triage a JSON list of reviews")
    batch_parser.add_argument(
        "file",
        help="Path to a JSON file containing a list of {rating, text} objects",
    )

    args = parser.parse_args(argv)
    setup_logging(level="DEBUG" if args.verbose else "WARNING")

    if args.command is None:
        parser.print_help()
        return 1

    commands = {
        "score": cmd_score,
        "batch": cmd_batch,
    }
    return commands[args.command](args, ReviewTriageEngine())


if __name__ == "__main__":
    sys.exit(main())
