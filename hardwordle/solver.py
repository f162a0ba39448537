"""
Putting it together: advice for a session, automatic solving, and a framework
for comparing ranking algorithms.
"""

from concurrent.futures import ProcessPoolExecutor
import csv
import logging
from multiprocessing import cpu_count
import os
from statistics import median, mean
import tempfile
from typing import Iterator, List, Optional, Tuple
import unittest

from cardinal_pythonlib.lists import chunks
from cardinal_pythonlib.logs import configure_logger_for_colour
import ray

from hardwordle.constraints import Session
from hardwordle.errors import (
    EmptyGuessSet,
    EmptyWordList,
    HardModeViolation,
    InconsistentFeedback,
    UnknownWord,
)
from hardwordle.feedback import Round
from hardwordle.ranker import (
    ALGORITHMS,
    best_words,
    DEFAULT_ALGORITHM,
    score_guesses,
    WordScore,
)
from hardwordle.util import prettylist, time_section, WORDSCORE_TYPE
from hardwordle.words import N_GUESSES, WordCorpus

rootlog = logging.getLogger(__name__)

DEFAULT_SHOW_THRESHOLD = 100
DEFAULT_ADVICE_TOP_N = 10
DEFAULT_NPROC = cpu_count()

CSV_HEADER = ["algorithm", "word", "n_guesses"]


# =============================================================================
# Advice
# =============================================================================

class Advice:
    """
    What we can tell the user at the start of a guess.
    """
    def __init__(self,
                 session: Session,
                 possible_answers: List[str],
                 options: List[WordScore],
                 algorithm_name: str,
                 initial_guess: str = None) -> None:
        """
        Args:
            session:
                the rounds so far
            possible_answers:
                corpus answers still possible, in corpus order
            options:
                scored guesses, best first (empty if there was no need to
                score anything)
            algorithm_name:
                name of the scoring algorithm
            initial_guess:
                precomputed opening suggestion, if one was used
        """
        self.session = session
        self.possible_answers = possible_answers
        self.options = options
        self.algorithm_name = algorithm_name
        self.initial_guess = initial_guess

    @property
    def n_possible(self) -> int:
        return len(self.possible_answers)

    @property
    def certain(self) -> bool:
        """
        Do we know the answer?
        """
        return self.n_possible == 1

    @property
    def top_words(self) -> List[str]:
        """
        The equally good best guess(es).
        """
        if self.certain:
            return list(self.possible_answers)
        if self.initial_guess:
            return [self.initial_guess]
        return best_words(self.options)

    @property
    def best(self) -> str:
        """
        The best guess (or, the first of the equally good guesses).
        """
        return self.top_words[0]

    @property
    def ranking(self) -> List[Tuple[str, WORDSCORE_TYPE]]:
        """
        (word, score) pairs, best first.
        """
        return [(o.word, o.score) for o in self.options]

    def pretty_possibilities(self, show_threshold: int) -> str:
        if self.n_possible <= show_threshold:
            return (f"Possibilities ({self.n_possible}): "
                    f"{prettylist(self.possible_answers)}")
        return (f"Number of possible words: {self.n_possible}. "
                f"Not yet showing possibilities (>{show_threshold}).")

    def pretty_suggestions(self, top_n: int) -> str:
        if self.certain:
            return f"Word is: {self.best}"
        if self.initial_guess:
            return (f"Suggestion algorithm: {self.algorithm_name}\n"
                    f"- Initial suggestion: {self.initial_guess}")
        return (
            f"Suggestion algorithm: {self.algorithm_name}\n"
            f"- Top {top_n} suggestions (first is optimal): "
            f"{prettylist(self.options[:top_n])}\n"
            f"- Best suggestion(s): {prettylist(self.top_words)}"
        )


def advise(session: Session,
           corpus: WordCorpus,
           algorithm_name: str = DEFAULT_ALGORITHM,
           nproc: int = 1,
           quick_start: bool = False) -> Advice:
    """
    Filter the corpus by what we know, and rank the hard-mode guesses we might
    make next.

    Raises:
        :exc:`InconsistentFeedback`, :exc:`EmptyGuessSet` (with the index of
        the last round played).
    """
    last_round_index = session.n_rounds - 1 if session.rounds else None
    possible = session.possible_answers(corpus)
    if not possible:
        raise InconsistentFeedback(round_index=last_round_index)
    if len(possible) == 1:
        # Nothing to rank against, but still report the answer with a score.
        options = score_guesses(possible, possible,
                                algorithm_name=algorithm_name,
                                guesses_remaining=session.guesses_remaining)
        return Advice(session, possible, options, algorithm_name)

    algorithm_class = ALGORITHMS[algorithm_name]
    if (quick_start and not session.rounds
            and algorithm_class.INITIAL_GUESS
            and corpus.is_allowed_guess(algorithm_class.INITIAL_GUESS)):
        # Speedup
        return Advice(session, possible, [], algorithm_name,
                      initial_guess=algorithm_class.INITIAL_GUESS)

    # Any legal word may be a candidate for a guess, not just the
    # possibilities -- for example, if we know 4/5 letters in the correct
    # positions early on, we might be better off with a guess that has lots of
    # options for that final letter, rather than guessing them sequentially in
    # a single position.
    guesses = session.suggestible_guesses(corpus)
    if not guesses:
        raise EmptyGuessSet(round_index=last_round_index)
    try:
        with time_section(f"Scoring {len(guesses)} guesses"):
            options = score_guesses(
                possible, guesses,
                algorithm_name=algorithm_name,
                guesses_remaining=session.guesses_remaining,
                nproc=nproc,
            )
    except EmptyGuessSet:
        raise EmptyGuessSet(round_index=last_round_index)
    return Advice(session, possible, options, algorithm_name)


def suggest(session: Session,
            corpus: WordCorpus,
            algorithm_name: str = DEFAULT_ALGORITHM,
            top_n: int = DEFAULT_ADVICE_TOP_N,
            show_threshold: int = DEFAULT_SHOW_THRESHOLD,
            silent: bool = False,
            log: logging.Logger = None,
            nproc: int = 1,
            quick_start: bool = False) -> Tuple[str, bool]:
    """
    Show advice to the user: what word should be guessed next?

    Returns the best guess (or, the first of the equally good guesses) for
    automatic checking.

    Returns: guess, certain
    """
    log = log or rootlog
    advice = advise(session, corpus, algorithm_name=algorithm_name,
                    nproc=nproc, quick_start=quick_start)
    if not silent:
        log.info(
            f"State:\n"
            f"- This is guess {session.this_guess}. "
            f"Guesses remaining: {session.guesses_remaining}.\n"
            f"- {session}\n"
            f"- {advice.pretty_possibilities(show_threshold)}"
        )
        log.info(advice.pretty_suggestions(top_n))
    return advice.best, advice.certain


# =============================================================================
# Autosolver and performance testing framework to compare algorithms
# =============================================================================

def autosolve(target: str,
              corpus: WordCorpus,
              algorithm_name: str = DEFAULT_ALGORITHM,
              allow_beyond_guess_limit: int = 100,
              quick_start: bool = True,
              log: logging.Logger = None) -> List[Round]:
    """
    Automatically solves, playing in hard mode, and returns the rounds
    (including the final successful one). (This can go over the Wordle guess
    limit; avoid sharp edges for comparing algorithms.)

    Raises:
        :exc:`UnknownWord` if the target is not one of the corpus answers.
    """
    log = log or rootlog
    if not corpus.is_answer(target):
        raise UnknownWord(target)
    session = Session()
    while True:
        log.debug(f"... for word {target}, "
                  f"guesses_remaining={session.guesses_remaining}...")
        guess, certain = suggest(
            session,
            corpus,
            algorithm_name=algorithm_name,
            silent=True,
            nproc=1,  # parallelize over words instead
            quick_start=quick_start,
        )
        round_ = Round.from_answer(guess=guess, answer=target)
        session = session.with_round(round_)
        if round_.correct():
            log.info(f"Word is: {guess}. Guesses: "
                     f"{prettylist(r.colourful_str for r in session.rounds)}")
            return list(session.rounds)
        if session.guesses_remaining < -allow_beyond_guess_limit:
            log.warning(f"Abandoning word {target}")
            return list(session.rounds)


def autosolve_single_arg(
        args: Tuple[str, WordCorpus, str]) -> Tuple[str, int]:
    """
    :func:`autosolve` for ``executor.map``, which passes a single argument:
    a tuple of target, corpus, algorithm_name.

    Returns (target, number of guesses taken).
    """
    target, corpus, algorithm_name = args
    return target, len(autosolve(target, corpus, algorithm_name))


@ray.remote
def autosolve_ray(targets: List[str],
                  corpus: WordCorpus,
                  algorithm_name: str,
                  loglevel: int = logging.INFO) -> List[Tuple[str, int]]:
    """
    Ray task: solve a batch of targets, returning (target, number of guesses)
    for each.
    """
    # Ray workers start with unconfigured logging.
    worker_log = logging.getLogger(__name__)
    configure_logger_for_colour(worker_log, level=loglevel)
    return [
        (target, len(autosolve(target, corpus, algorithm_name,
                               log=worker_log)))
        for target in targets
    ]


def _solve_with_ray(test_words: List[str],
                    corpus: WordCorpus,
                    algorithm_name: str,
                    nproc: int,
                    words_per_job: int,
                    loglevel: int) -> Iterator[Tuple[str, int]]:
    """
    Yields (target, number of guesses) as Ray jobs finish, so not in target
    order.
    """
    if not ray.is_initialized():
        ray.init(num_cpus=nproc)
    corpus_ref = ray.put(corpus)
    pending = [
        autosolve_ray.remote(batch, corpus_ref, algorithm_name,
                             loglevel=loglevel)
        for batch in chunks(test_words, words_per_job)
    ]
    rootlog.info(f"Submitted {len(pending)} Ray jobs of up to "
                 f"{words_per_job} words each")
    while pending:
        done, pending = ray.wait(pending)
        for job in done:
            yield from ray.get(job)


def _solve_with_pool(test_words: List[str],
                     corpus: WordCorpus,
                     algorithm_name: str,
                     nproc: int,
                     words_per_job: int) -> Iterator[Tuple[str, int]]:
    """
    Yields (target, number of guesses), in target order, from a process pool.
    """
    arglist = [(target, corpus, algorithm_name) for target in test_words]
    with ProcessPoolExecutor(nproc) as executor:
        yield from executor.map(autosolve_single_arg, arglist,
                                chunksize=words_per_job)


def summarize_performance(algorithm_name: str,
                          guess_counts: List[int],
                          nwords: Optional[int] = None) -> str:
    """
    One-line summary of the number of guesses taken.
    """
    n_tests = len(guess_counts)
    if n_tests == 0:
        raise EmptyWordList("results")
    tested = (
        f"all {n_tests} known" if nwords is None
        else f"the first {n_tests}"
    )
    prop_success = sum(1 for n in guess_counts if n <= N_GUESSES) / n_tests
    return (
        f"Across {tested} words, method {algorithm_name} took: "
        f"min {min(guess_counts)}, "
        f"median {median(guess_counts)}, "
        f"mean {mean(guess_counts)}, "
        f"max {max(guess_counts)} guesses; "
        f"success rate {prop_success}"
    )


def measure_algorithm_performance(
        corpus: WordCorpus,
        output_filename: str,
        nwords: int = None,
        nproc: int = DEFAULT_NPROC,
        algorithm_name: str = DEFAULT_ALGORITHM,
        chunks_per_worker: int = 5,
        loglevel: int = logging.INFO,
        use_ray: bool = True) -> List[int]:
    """
    Test a guess algorithm against every answer (or the first ``nwords``),
    write a CSV of the results, and report its performance statistics.

    Parallel runs use Ray (``use_ray``) or else, with ``nproc > 1``, a process
    pool; each worker gets about ``chunks_per_worker`` batches of words. With
    Ray, CSV rows appear in the order the batches finish.

    Returns the guess counts, in CSV row order.
    """
    test_words = [str(w) for w in corpus.answers]
    if nwords is not None:
        test_words = test_words[:nwords]
    words_per_job = max(1, len(test_words) // (nproc * chunks_per_worker))
    if use_ray:
        results = _solve_with_ray(test_words, corpus, algorithm_name,
                                  nproc, words_per_job, loglevel)
    elif nproc > 1:
        results = _solve_with_pool(test_words, corpus, algorithm_name,
                                   nproc, words_per_job)
    else:
        results = map(autosolve_single_arg,
                      ((target, corpus, algorithm_name)
                       for target in test_words))

    guess_counts = []  # type: List[int]
    with open(output_filename, "wt") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)
        for word, n_guesses in results:
            writer.writerow([algorithm_name, word, n_guesses])
            f.flush()  # so the output can be followed live
            guess_counts.append(n_guesses)

    rootlog.info(summarize_performance(algorithm_name, guess_counts, nwords))
    return guess_counts


# =============================================================================
# Self-testing
# =============================================================================

class TestSolver(unittest.TestCase):
    CORPUS = WordCorpus(
        ["CRANE", "SLATE", "TRACE", "CRATE", "GRAPE", "HUMOR", "HONOR",
         "PAUSE", "TACIT", "SCION", "PAPER", "BRACE", "GRACE", "PLATE"],
        ["CRANE", "SLATE", "TRACE", "CRATE", "GRAPE", "HUMOR", "HONOR",
         "PAUSE", "TACIT", "SCION", "PAPER", "BRACE", "GRACE", "PLATE",
         "SOARE", "RAISE", "ROATE", "GIPSY", "CHAMP", "BUMPY"],
    )

    def test_scenario_crane_trace(self) -> None:
        corpus = WordCorpus(["CRANE", "SLATE", "TRACE", "CRATE", "GRAPE"])
        session = Session([Round.from_answer("CRANE", "TRACE")])
        advice = advise(session, corpus)
        assert advice.possible_answers == ["TRACE"]
        assert advice.certain
        assert advice.best == "TRACE"
        assert advice.ranking == [("TRACE", 0.0)]
        assert advice.pretty_suggestions(5) == "Word is: TRACE"
        for algorithm_name in ALGORITHMS:
            ranking = advise(session, corpus, algorithm_name).ranking
            assert [w for w, _ in ranking] == ["TRACE"]

    def test_advice(self) -> None:
        session = Session()
        advice = advise(session, self.CORPUS)
        assert advice.n_possible == self.CORPUS.n_answers
        assert not advice.certain
        assert advice.best == advice.ranking[0][0]
        assert advice.best in advice.top_words
        # Determinism
        again = advise(session, self.CORPUS)
        assert again.ranking == advice.ranking
        assert "first is optimal" in advice.pretty_suggestions(5)
        assert "Not yet showing" in advice.pretty_possibilities(3)

    def test_quick_start(self) -> None:
        advice = advise(Session(), self.CORPUS, quick_start=True)
        assert advice.best == "SOARE"
        assert advice.options == []
        # Only on the first guess.
        session = Session([Round.from_answer("SOARE", "TACIT")])
        advice = advise(session, self.CORPUS, quick_start=True)
        assert advice.initial_guess is None

    def test_absent_letters_never_suggested(self) -> None:
        # C, R and N are fully absent after this.
        session = Session([Round.from_answer("CRANE", "SLATE")])
        assert session.constraints.dead_letters == {"C", "R", "N"}
        advice = advise(session, self.CORPUS)
        assert advice.possible_answers == ["PLATE", "SLATE"]
        ranked = [word for word, _ in advice.ranking]
        assert ranked == ["PLATE", "SLATE"]
        for word in ranked:
            assert not session.constraints.dead_letters.intersection(word)
        # Hard mode would allow these, but they waste letters.
        for word in ["CRANE", "GRAPE", "TRACE"]:
            assert session.constraints.is_legal_hard_mode_guess(word)
            assert word not in ranked

    def test_inconsistent(self) -> None:
        session = Session([
            Round.from_strings("CRANE", "====_"),
            Round.from_strings("CRANK", "=====")
        ], enforce_hard_mode=False)
        with self.assertRaises(InconsistentFeedback) as cm:
            advise(session, self.CORPUS)
        assert cm.exception.round_index == 1
        assert "round 2" in str(cm.exception)

    def test_autosolve(self) -> None:
        for target in self.CORPUS.answers:
            for algorithm_name in ALGORITHMS:
                rounds = autosolve(str(target), self.CORPUS, algorithm_name)
                assert rounds[-1].correct()
                assert rounds[-1].guess == target
                # Every guess was legal: replaying enforces hard mode.
                Session(rounds)
        with self.assertRaises(UnknownWord):
            autosolve("ZEBRA", self.CORPUS)

    def test_hard_mode_enforced(self) -> None:
        session = Session([Round.from_answer("CRANE", "TRACE")])
        with self.assertRaises(HardModeViolation):
            session.with_round(Round.from_answer("SLATE", "TRACE"))

    def _measure(self, **kwargs) -> Tuple[List[int], List[List[str]]]:
        """
        Runs a performance test on the first few answers; returns the guess
        counts and the CSV rows.
        """
        f = tempfile.NamedTemporaryFile(suffix=".csv", delete=False)
        f.close()
        try:
            counts = measure_algorithm_performance(
                self.CORPUS, f.name, nwords=4, **kwargs)
            with open(f.name) as csvfile:
                rows = list(csv.reader(csvfile))
        finally:
            os.remove(f.name)
        return counts, rows

    def test_measure_performance(self) -> None:
        counts, rows = self._measure(nproc=1, use_ray=False)
        assert len(counts) == 4
        assert rows[0] == CSV_HEADER
        assert [r[1] for r in rows[1:]] == [
            str(w) for w in self.CORPUS.answers[:4]]
        assert [int(r[2]) for r in rows[1:]] == counts
        assert all(r[0] == DEFAULT_ALGORITHM for r in rows[1:])
        assert "success rate 1.0" in summarize_performance("X", [3, 4])
        with self.assertRaises(EmptyWordList):
            summarize_performance("X", [])

    def test_measure_performance_parallel(self) -> None:
        _, expected = self._measure(nproc=1, use_ray=False)
        # Process pool: same rows, same order.
        _, rows = self._measure(nproc=2, use_ray=False)
        assert rows == expected
        # Ray: same rows, in whatever order the jobs finished.
        try:
            counts, rows = self._measure(nproc=2, use_ray=True)
        finally:
            ray.shutdown()
        assert rows[0] == CSV_HEADER
        assert sorted(rows[1:]) == sorted(expected[1:])
        assert counts == [int(r[2]) for r in rows[1:]]
