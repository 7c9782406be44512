"""CLI entrypoint for the path puzzle generator."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pathpuzzle.core.constants import SymbolKind
from pathpuzzle.core.exceptions import PuzzleError
from pathpuzzle.engine.generator import GeneratorConfig, PuzzleGenerator
from pathpuzzle.utils.logger import configure_logging
from pathpuzzle.utils.pretty import print_puzzle_stats


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate seeded single-stroke path puzzles",
    )
    parser.add_argument(
        "--kinds",
        nargs="+",
        required=True,
        choices=[kind.value for kind in SymbolKind],
        metavar="KIND",
        help="Symbol kinds to place (%(choices)s)",
    )
    parser.add_argument("--seed", type=int, default=0, help="Random seed for reproducibility")
    parser.add_argument(
        "--colors",
        nargs="+",
        default=[],
        metavar="HEX",
        help="Preferred symbol colours (at most three, e.g. '#e44b4b')",
    )
    color_group = parser.add_mutually_exclusive_group()
    color_group.add_argument("--color-rule", dest="color_rule", action="store_true", default=None,
                             help="Force multi-coloured symbols")
    color_group.add_argument("--no-color-rule", dest="color_rule", action="store_false",
                             help="Force single-coloured symbols")
    parser.add_argument("--no-gaps", action="store_true", help="Keep every grid edge open")
    parser.add_argument("--retries", type=int, default=40, help="Seeded board attempts before giving up")
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Re-solve the finished board with CP-SAT",
    )
    parser.add_argument("--solver-timeout", type=float, default=20.0, help="CP-SAT time limit in seconds")
    parser.add_argument("--pretty", action="store_true", help="Print an ASCII board instead of JSON")
    parser.add_argument("--output", type=Path, help="Optional path to JSON output")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = getattr(logging, args.log_level.upper(), logging.INFO)
    configure_logging(level)

    try:
        config = GeneratorConfig(
            kinds=args.kinds,
            seed=args.seed,
            color_rule=args.color_rule,
            preferred_colors=args.colors,
            broken_edges=not args.no_gaps,
            retry_limit=args.retries,
            verify_with_solver=args.verify,
            solver_timeout=args.solver_timeout,
        )
    except PuzzleError as exc:
        parser.error(str(exc))

    try:
        result = PuzzleGenerator(config).generate()
    except PuzzleError as exc:
        logging.getLogger(__name__).error("%s", exc)
        return 1

    if args.pretty:
        print_puzzle_stats(result)
        return 0

    output_text = json.dumps(result.to_jsonable(), ensure_ascii=False, indent=2)
    if args.output:
        args.output.write_text(output_text, encoding="utf-8")
    else:
        print(output_text)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
