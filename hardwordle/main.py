#!/usr/bin/env python
"""
Command-line entry point for the hard-mode Wordle assistant.

Play interactively with:

.. code-block:: bash

    hardwordle solve

Compare algorithms with:

.. code-block:: bash

    hardwordle test_performance --algorithm Entropy
    hardwordle test_performance --algorithm MinimaxPartition
    hardwordle test_performance --algorithm ExpectedRemaining
    hardwordle test_performance --algorithm LetterRelevance

Run self-tests with:

.. code-block:: bash

    pip install -e .[test]
    pytest

"""

import argparse
import logging
import os
import sys
import tempfile
from typing import List
import unittest

from cardinal_pythonlib.logs import main_only_quicksetup_rootlogger

from hardwordle.errors import WordleError
from hardwordle.interactive import solve_interactive
from hardwordle.ranker import ALGORITHMS, DEFAULT_ALGORITHM
from hardwordle.solver import (
    autosolve,
    DEFAULT_ADVICE_TOP_N,
    DEFAULT_NPROC,
    DEFAULT_SHOW_THRESHOLD,
    measure_algorithm_performance,
)
from hardwordle.words import (
    DEFAULT_ANSWERS,
    DEFAULT_GUESSES,
    DEFAULT_OS_DICT,
    make_wordlist,
    normalize_word,
    WORDLEN,
    WordCorpus,
)

rootlog = logging.getLogger(__name__)


# =============================================================================
# Command-line entry point
# =============================================================================

def main(argv: List[str] = None) -> int:
    # -------------------------------------------------------------------------
    # Arguments
    # -------------------------------------------------------------------------
    parser = argparse.ArgumentParser(
        "hardwordle",
        description="Hard-mode Wordle assistant.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "--answers_filename", default=DEFAULT_ANSWERS,
        help=f"File containing all possible {WORDLEN}-letter answers, one "
             f"per line"
    )
    parser.add_argument(
        "--guesses_filename", default=DEFAULT_GUESSES,
        help=f"File containing all allowed {WORDLEN}-letter guesses, one per "
             f"line (answers are added automatically)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Be verbose"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    cmd_make = "make_wordlist"
    parser_make = subparsers.add_parser(
        cmd_make,
        help="Make a word list from a system dictionary",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser_make.add_argument(
        "--source_dict", default=DEFAULT_OS_DICT,
        help="File of all dictionary words."
    )
    parser_make.add_argument(
        "--output", required=True,
        help="File to write the word list to."
    )

    def add_algorithm_args(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--algorithm", type=str, choices=ALGORITHMS.keys(),
            default=DEFAULT_ALGORITHM,
            help="Algorithm to use"
        )
        p.add_argument(
            "--quick_start", action="store_true",
            help="Use the algorithm's precomputed first guess (good for the "
                 "standard Wordle word lists)"
        )

    cmd_solve = "solve"
    parser_solve = subparsers.add_parser(
        cmd_solve,
        help="Get help with a game, interactively",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser_solve.add_argument(
        "--show_threshold", type=int, default=DEFAULT_SHOW_THRESHOLD,
        help="Show all possibilities when there are this many or fewer left"
    )
    parser_solve.add_argument(
        "--advice_top_n", type=int, default=DEFAULT_ADVICE_TOP_N,
        help="When showing advice, show this many top candidates"
    )
    parser_solve.add_argument(
        "--nproc", type=int, default=1,
        help="Number of parallel processes for scoring guesses"
    )
    parser_solve.add_argument(
        "--debug_nwords", type=int,
        help="Number of answers to load (debugging only)"
    )
    add_algorithm_args(parser_solve)

    cmd_simulate = "simulate"
    parser_simulate = subparsers.add_parser(
        cmd_simulate,
        help="Play automatically against a known answer",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser_simulate.add_argument(
        "answer", type=str,
        help="The answer to find"
    )
    add_algorithm_args(parser_simulate)

    cmd_test_performance = "test_performance"
    parser_test_performance = subparsers.add_parser(
        cmd_test_performance,
        help="Play automatically against every answer and report",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser_test_performance.add_argument(
        "--output", type=str, default=None,
        help="File for CSV-format output (if unspecified, a sensible default "
             "will be created based on the algorithm chosen)"
    )
    parser_test_performance.add_argument(
        "--nwords", type=int,
        help="Number of words to test (if unspecified, will test all)"
    )
    parser_test_performance.add_argument(
        "--nproc", type=int, default=DEFAULT_NPROC,
        help="Number of parallel processes"
    )
    parser_test_performance.add_argument(
        "--no_ray", action="store_true",
        help="Use a process pool rather than Ray"
    )
    parser_test_performance.add_argument(
        "--algorithm", type=str, choices=ALGORITHMS.keys(),
        default=DEFAULT_ALGORITHM,
        help="Algorithm to use"
    )

    args = parser.parse_args(argv)

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    loglevel = logging.DEBUG if args.verbose else logging.INFO
    main_only_quicksetup_rootlogger(level=loglevel)

    # -------------------------------------------------------------------------
    # Act
    # -------------------------------------------------------------------------
    try:
        if args.command == cmd_make:
            make_wordlist(args.source_dict, args.output)
            return 0

        corpus = WordCorpus.from_files(
            answers_filename=args.answers_filename,
            guesses_filename=args.guesses_filename,
            max_n=getattr(args, "debug_nwords", None),
        )
        if args.command == cmd_solve:
            solve_interactive(
                corpus,
                show_threshold=args.show_threshold,
                advice_top_n=args.advice_top_n,
                algorithm_name=args.algorithm,
                nproc=args.nproc,
                quick_start=args.quick_start,
            )
        elif args.command == cmd_simulate:
            autosolve(
                normalize_word(args.answer),
                corpus,
                algorithm_name=args.algorithm,
                quick_start=args.quick_start,
            )
        elif args.command == cmd_test_performance:
            output_filename = (
                args.output or f"out_{args.algorithm}.csv"
            )
            measure_algorithm_performance(
                corpus,
                output_filename=output_filename,
                nwords=args.nwords,
                nproc=args.nproc,
                algorithm_name=args.algorithm,
                loglevel=loglevel,
                use_ray=not args.no_ray,
            )
        else:
            raise AssertionError("argument-parsing bug")
    except WordleError as e:
        rootlog.critical(str(e))
        return 1
    return 0


# =============================================================================
# Self-testing
# =============================================================================

class TestMain(unittest.TestCase):
    def test_simulate(self) -> None:
        assert main(["simulate", "trace", "--quick_start"]) == 0

    def test_malformed_answer(self) -> None:
        assert main(["simulate", "TR4CE"]) == 1

    def test_unknown_answer(self) -> None:
        # Well-formed, but not in the answer list.
        assert main(["simulate", "ZEBRA"]) == 1

    def test_empty_answer_list(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            answers = os.path.join(tmpdir, "answers.txt")
            with open(answers, "wt") as f:
                f.write("# nothing here\n")
            assert main(["--answers_filename", answers,
                         "simulate", "TRACE"]) == 1

    def test_make_wordlist(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            source = os.path.join(tmpdir, "dict.txt")
            dest = os.path.join(tmpdir, "words.txt")
            with open(source, "wt") as f:
                f.write("apple\nbanana\ncrane\n")
            assert main(["make_wordlist", "--source_dict", source,
                         "--output", dest]) == 0
            with open(dest) as f:
                assert f.read().split() == ["APPLE", "CRANE"]


if __name__ == '__main__':
    sys.exit(main())
