"""
Command line entry point: run Scatter Search on a built-in benchmark.

Example:
    scatter-search configs/bowl.json --objective quadratic_bowl --seed 7
"""

import argparse
import logging
import os
import sys

from rich.traceback import install

from .evaluation import ObjectiveEvaluationError
from .objectives import OBJECTIVES
from .optimizer import ScatterSearch
from .parameters import ConfigurationError, load_config
from .report import log_message, print_reference_set

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scatter-search",
        description="Scatter Search global optimization of a benchmark objective",
    )
    parser.add_argument("config", type=str, help="path to a JSON configuration file")
    parser.add_argument(
        "-o", "--objective", type=str, default="sphere", choices=sorted(OBJECTIVES),
        help="benchmark objective to minimize (default: %(default)s)",
    )
    parser.add_argument("-s", "--seed", type=int, default=None, help="random seed")
    parser.add_argument("--max-iter", type=int, default=None, dest="max_iter",
                        help="override max_iter")
    parser.add_argument("-w", "--workers", type=int, default=None, dest="n_workers",
                        help="number of evaluation processes")
    parser.add_argument("--warm-start", action="store_true", dest="warm_start",
                        help="resume from the warm-start files named in the config")
    parser.add_argument("--log-file", type=str, default="logs/scatter_search.log", dest="log_file",
                        help="log file (default: %(default)s)")
    parser.add_argument("-q", "--quiet", action="store_true", help="no console panels")
    return parser


def setup_logging(log_file: str):
    directory = os.path.dirname(os.path.abspath(log_file))
    os.makedirs(directory, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format='[%(asctime)s] %(levelname)s %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[logging.FileHandler(log_file, mode='a')],
    )


def main(argv=None) -> int:
    install(show_locals=False)
    args = build_parser().parse_args(argv)
    setup_logging(args.log_file)

    try:
        config = load_config(args.config)
        if args.seed is not None:
            config.seed = args.seed
        if args.max_iter is not None:
            config.max_iter = args.max_iter
        if args.n_workers is not None:
            config.n_workers = args.n_workers
        if args.warm_start:
            config.perform_warm_start = True
        if args.quiet:
            config.verbose = False
        optimizer = ScatterSearch(OBJECTIVES[args.objective], config)
        result = optimizer.run()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        log_message(f"[red]Configuration error: {e}[/red]", emoji="❌")
        return 2
    except ObjectiveEvaluationError as e:
        logger.error(f"Objective evaluation failed: {e}")
        log_message(f"[red]Objective evaluation failed: {e}[/red]", emoji="❌")
        return 1

    if not args.quiet:
        print_reference_set(result.ref_set)
    log_message(f"Best cost: {result.best.cost:.6e}", emoji="🏆")
    return 0


if __name__ == "__main__":
    sys.exit(main())
