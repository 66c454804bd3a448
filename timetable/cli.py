"""
timetable/cli.py
────────────────
Command-line entry point: load → schedule → analyse → print → write.

    python -m timetable --input data.json --output out.json --seed 7
    python -m timetable --test-number 10          # test_inputs/input_test10.json

Exit status: 0 on success, 1 if the input cannot be loaded or is rejected
by admission control, 2 for bad command-line arguments (argparse).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import ValidationError

from exam_aco import ColonyConfig
from exam_aco.ant import ALPHA, BETA
from exam_aco.pheromone import DEPOSIT_CONSTANT, EVAPORATION_RATE
from timetable.control_plane.admission import ProblemRejectedError
from timetable.control_plane.scheduler import schedule_exams
from timetable.data_plane.loader import DataLoadError, load_from_json
from timetable.data_plane.printer import print_schedule_table
from timetable.data_plane.writer import write_output_json
from timetable.telemetry.collector import LOG_EVERY, RunCollector

logger = logging.getLogger("timetable")

DEFAULT_ANTS = 500
DEFAULT_ITERATIONS = 200
TEST_INPUT_DIR = "test_inputs"
TEST_OUTPUT_DIR = "test_outputs"


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="timetable",
        description="Exam timetabling with ant colony optimisation",
    )

    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--input", type=Path, help="Input JSON document")
    src.add_argument(
        "--test-number", type=int,
        help=f"Use {TEST_INPUT_DIR}/input_testN.json and {TEST_OUTPUT_DIR}/output_testN.json",
    )
    p.add_argument("--output", type=Path, help="Output JSON path (default: next to the input)")

    # Colony
    p.add_argument("--ants", type=int, default=DEFAULT_ANTS)
    p.add_argument("--iterations", type=int, default=DEFAULT_ITERATIONS)
    p.add_argument("--seed", type=int, default=None, help="Seed for reproducible runs")
    p.add_argument("--alpha", type=float, default=ALPHA)
    p.add_argument("--beta", type=float, default=BETA)
    p.add_argument("--evaporation-rate", type=float, default=EVAPORATION_RATE)
    p.add_argument("--deposit-constant", type=float, default=DEPOSIT_CONSTANT)
    p.add_argument("--time-limit", type=float, default=None, help="Wall-clock cap in seconds")

    # Output
    p.add_argument("--no-table", action="store_true", help="Skip the console table")
    p.add_argument("--log-level", default="INFO",
                   choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    p.add_argument("--log-every", type=int, default=LOG_EVERY,
                   help="Log progress every N iterations")
    return p


def resolve_paths(args: argparse.Namespace) -> Tuple[Path, Path]:
    if args.test_number is not None:
        input_path = Path(TEST_INPUT_DIR) / f"input_test{args.test_number}.json"
        default_output = Path(TEST_OUTPUT_DIR) / f"output_test{args.test_number}.json"
    else:
        input_path = args.input
        default_output = input_path.with_name(f"{input_path.stem}_schedule.json")
    return input_path, (args.output or default_output)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    try:
        config = ColonyConfig(
            n_ants=args.ants,
            n_iterations=args.iterations,
            alpha=args.alpha,
            beta=args.beta,
            evaporation_rate=args.evaporation_rate,
            deposit_constant=args.deposit_constant,
            time_limit_s=args.time_limit,
        )
    except ValidationError as exc:
        parser.error(f"invalid colony settings: {exc}")
    if args.log_every < 1:
        parser.error(f"--log-every must be >= 1, got {args.log_every}")

    input_path, output_path = resolve_paths(args)

    try:
        model = load_from_json(input_path)
        run = schedule_exams(
            model, config, seed=args.seed,
            collector=RunCollector(run_name=input_path.stem, log_every=args.log_every),
        )
    except DataLoadError as exc:
        logger.error("Failed to load data: %s", exc)
        return 1
    except ProblemRejectedError as exc:
        logger.error("Problem rejected: %s", exc.reason)
        return 1

    for line in run.analysis.summary_lines():
        logger.info(line)
    for short in run.analysis.short_exams:
        logger.warning(
            "Exam %r seated %d of %d students", short.exam_id, short.seated, short.required,
        )

    if not args.no_table:
        print_schedule_table(run.output.schedule, model)

    try:
        write_output_json(run.output, output_path)
    except OSError as exc:
        logger.error("Failed to write %s: %s", output_path, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
