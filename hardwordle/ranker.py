"""
Ranking candidate guesses by how well they split the remaining answers.

For a guess, each still-possible answer would produce some feedback pattern;
grouping the answers by that pattern partitions them. A good guess makes many
small groups. The reference measure is the Shannon entropy of the partition
(expected information, in bits, assuming all answers are equally likely).
Others are available for comparison.

Every score is "higher is better". Ties go to guesses that might themselves be
the answer, then to whichever came first in the list of guesses.
"""

from collections import Counter
from functools import total_ordering
import logging
import math
from typing import (
    Any, Dict, Iterable, List, Optional, Tuple, Type
)
import unittest

from cardinal_pythonlib.lists import chunks
import numpy as np
import ray

from hardwordle.errors import EmptyGuessSet, InconsistentFeedback
from hardwordle.feedback import Feedback, compute_feedback, feedback_str
from hardwordle.util import (
    convert_sf,
    DEFAULT_SIG_FIGURES,
    flatten,
    WORDSCORE_TYPE,
)
from hardwordle.words import N_GUESSES

rootlog = logging.getLogger(__name__)


# =============================================================================
# What the scorers know
# =============================================================================

class RankingContext:
    """
    The remaining possible answers, plus cached summaries of them.
    """
    def __init__(self,
                 possible_answers: Iterable[str],
                 guesses_remaining: int = N_GUESSES) -> None:
        """
        Args:
            possible_answers:
                the words that might still be the answer
            guesses_remaining:
                number of guesses left, including the one being chosen
        """
        self.possible_answers = tuple(
            str(w) for w in possible_answers
        )  # type: Tuple[str, ...]
        self._possible_set = frozenset(self.possible_answers)
        self.guesses_remaining = guesses_remaining
        self._letter_counter = None  # type: Optional[Counter]

    @property
    def n_possible(self) -> int:
        """
        Number of possibilities left.
        """
        return len(self.possible_answers)

    def is_possible(self, guess: str) -> bool:
        """
        Is this guess one of the remaining possibilities?
        """
        return guess in self._possible_set

    # -------------------------------------------------------------------------
    # Partitions
    # -------------------------------------------------------------------------

    def feedback_counts(self, guess: str) -> Counter:
        """
        Maps each feedback pattern this guess could produce to the number of
        possible answers that would produce it.
        """
        return Counter(
            compute_feedback(guess, answer)
            for answer in self.possible_answers
        )

    def partition_sizes(self, guess: str) -> np.ndarray:
        """
        Sizes of the groups that this guess splits the possible answers into,
        in ascending order (so that float arithmetic over them is
        reproducible).
        """
        counts = self.feedback_counts(guess)
        return np.sort(np.fromiter(counts.values(), dtype=np.int64,
                                   count=len(counts)))

    def probability_of_feedback(self, guess: str, debug: bool = False) \
            -> Dict[Feedback, float]:
        """
        Returns a dictionary whose keys are the feedback options possible for
        this guess (given the possibilities that remain), and whose values are
        the corresponding feedback probabilities (assuming that all possible
        words are equiprobable).
        """
        counter = self.feedback_counts(guess)
        total = sum(counter.values())
        d = {
            feedback: count / total
            for feedback, count in counter.items()
        }  # type: Dict[Feedback, float]
        if debug:
            pretty_d = {
                feedback_str(feedback): convert_sf(p)
                for feedback, p in d.items()
            }
            rootlog.debug(f"probability_of_feedback({guess!r}): {pretty_d}")
        return d

    # -------------------------------------------------------------------------
    # Letter frequency
    # -------------------------------------------------------------------------

    def letter_count(self, letter: str) -> int:
        """
        Returns the number of remaining possible words in which this letter
        appears (each word counting once, however many copies it has).
        """
        if self._letter_counter is None:
            counter = Counter()
            for word in self.possible_answers:
                counter.update(set(word))
            self._letter_counter = counter
        return self._letter_counter[letter]


# =============================================================================
# Scoring potential guesses
# =============================================================================

@total_ordering
class WordScore:
    """
    Class to represent the score for a potential word guess.
    """
    # Override this to provide the first suggestion quickly (for the standard
    # Wordle word lists):
    INITIAL_GUESS = None  # type: Optional[str]

    def __init__(self, word: str, context: RankingContext,
                 order: int = 0,
                 sig_fig: Optional[int] = DEFAULT_SIG_FIGURES) -> None:
        """
        Args:
            word: the guess
            context: what we know about the remaining answers
            order: position in the list of guesses; lower wins ties
            sig_fig: significant figures for display
        """
        self.word = word
        self.context = context
        self.order = order
        self.sig_fig = sig_fig
        self.possible = context.is_possible(word)
        self._score = None  # type: Optional[WORDSCORE_TYPE]
        self._scored = False

    def __str__(self) -> str:
        if self.sig_fig is not None:
            score_sf = convert_sf(self.score, self.sig_fig)
        else:
            score_sf = self.score
        return f"{self.word} ({score_sf})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(word={self.word!r}, "
            f"score={self.score!r}, possible={self.possible})"
        )

    @property
    def sort_key(self) -> Tuple[Any, bool, int]:
        """
        Higher is better.
        """
        return self.score, self.possible, -self.order

    def __eq__(self, other: "WordScore") -> bool:
        return self.sort_key == other.sort_key

    def __lt__(self, other: "WordScore") -> bool:
        return self.sort_key < other.sort_key

    @property
    def score(self) -> WORDSCORE_TYPE:
        """
        Caches the calculated score. Caching is important as these calculations
        can be very slow, and sorting by score involves re-retrieving scores
        several times.

        On the last guess, only a word that might be the answer is any use, so
        others get None.
        """
        if not self._scored:
            if self.context.guesses_remaining <= 1 and not self.possible:
                self._score = None
            else:
                self._score = self.get_score()
            self._scored = True
        return self._score

    def evaluated(self) -> "WordScore":
        """
        Calculates the score now (e.g. in a worker process), and returns self.
        """
        _ = self.score
        return self

    def get_score(self) -> WORDSCORE_TYPE:
        """
        Overridden to implement a specific scoring method.

        The key "thinking" algorithm. Returns a score for this word: how good
        would it be to use this as the next guess?

        Return None for suggestions so dreadful they should not be considered.
        """
        raise NotImplementedError


class Entropy(WordScore):
    """
    Expected information gain, in bits: the entropy of the distribution of
    feedback patterns, with all remaining answers equiprobable. Maximizing this
    is the standard greedy strategy.
    """
    INITIAL_GUESS = "SOARE"

    def get_score(self) -> float:
        sizes = self.context.partition_sizes(self.word)
        p = sizes / sizes.sum()
        # Subtract from 0.0, so one group scores 0.0 rather than -0.0.
        return 0.0 - float(np.sum(p * np.log2(p)))


class MinimaxPartition(WordScore):
    """
    Minus the size of the biggest group the guess might leave us with. Guards
    against the worst case rather than the average.
    """
    INITIAL_GUESS = "RAISE"

    def get_score(self) -> int:
        return -int(self.context.partition_sizes(self.word).max())


class ExpectedRemaining(WordScore):
    """
    Minus the expected number of possibilities left after this guess:
    a group of size n is reached with probability n/N, and leaves n.
    """
    INITIAL_GUESS = "ROATE"

    def get_score(self) -> float:
        sizes = self.context.partition_sizes(self.word)
        return -float(np.sum(sizes * sizes)) / float(sizes.sum())


class LetterRelevance(WordScore):
    """
    Cheap heuristic, no feedback simulation: a letter is most informative if
    about half the remaining answers contain it. Each distinct letter of the
    guess scores ``total - |count - total // 2|``, where ``count`` is the
    number of remaining answers containing it.

    Only considers words that might be the answer, so every guess makes
    progress.
    """

    def get_score(self) -> Optional[int]:
        if not self.possible:
            return None
        total = self.context.n_possible
        return sum(
            total - abs(self.context.letter_count(letter) - total // 2)
            for letter in set(self.word)
        )


ALGORITHMS = {
    "Entropy": Entropy,
    "MinimaxPartition": MinimaxPartition,
    "ExpectedRemaining": ExpectedRemaining,
    "LetterRelevance": LetterRelevance,
}  # type: Dict[str, Type[WordScore]]

DEFAULT_ALGORITHM = "Entropy"

DEFAULT_ALGORITHM_CLASS = ALGORITHMS[DEFAULT_ALGORITHM]


# =============================================================================
# Ranking
# =============================================================================

@ray.remote
def score_ray(algorithm_class: Type[WordScore],
              indexed_words: List[Tuple[int, str]],
              context: RankingContext) -> List[WordScore]:
    """
    Helper function for a parallel version. This worker task scores a bunch of
    words (a subset of the full set).
    """
    return [
        algorithm_class(word=w, context=context, order=i).evaluated()
        for i, w in indexed_words
    ]


def filter_consider_suggestion(suggestion: WordScore) -> bool:
    """
    Filter to reject awful suggestions.
    """
    return suggestion.score is not None


def _ordered_unique(words: Iterable[str]) -> List[str]:
    """
    Words as a list, first occurrence kept. Sets (which have no meaningful
    order) are sorted, so that the results are reproducible.
    """
    if isinstance(words, (set, frozenset)):
        words = sorted(words)
    return list(dict.fromkeys(str(w) for w in words))


def score_guesses(candidates_for_answer: Iterable[str],
                  candidates_for_guess: Iterable[str],
                  algorithm_name: str = DEFAULT_ALGORITHM,
                  guesses_remaining: int = N_GUESSES,
                  nproc: int = 1) -> List[WordScore]:
    """
    Scores every candidate guess against the candidate answers, and returns
    the scores from best to worst.

    Raises:
        :exc:`InconsistentFeedback` if there are no candidate answers;
        :exc:`EmptyGuessSet` if there are no (usable) candidate guesses.
    """
    answers = _ordered_unique(candidates_for_answer)
    if not answers:
        raise InconsistentFeedback()
    guesses = _ordered_unique(candidates_for_guess)
    if not guesses:
        raise EmptyGuessSet()
    algorithm_class = ALGORITHMS[algorithm_name]
    context = RankingContext(answers, guesses_remaining=guesses_remaining)
    indexed = list(enumerate(guesses))
    rootlog.debug(f"Scoring {len(guesses)} guesses against {len(answers)} "
                  f"possible answers with {algorithm_name}")
    if nproc > 1 and len(indexed) > nproc:
        # Each task returns its own scored chunk; we merge them by sorting.
        if not ray.is_initialized():
            ray.init(num_cpus=nproc)
        words_per_chunk = math.ceil(len(indexed) / nproc)
        context_ref = ray.put(context)
        wordgen = flatten(ray.get([
            score_ray.remote(algorithm_class, chunk, context_ref)
            for chunk in chunks(indexed, words_per_chunk)
        ]))
    else:
        wordgen = (
            algorithm_class(word=w, context=context, order=i)
            for i, w in indexed
        )
    options = sorted(
        filter(filter_consider_suggestion, wordgen),
        reverse=True  # from high to low scores
    )
    if not options:
        raise EmptyGuessSet()
    return options


def rank(candidates_for_answer: Iterable[str],
         candidates_for_guess: Iterable[str],
         algorithm_name: str = DEFAULT_ALGORITHM,
         guesses_remaining: int = N_GUESSES,
         nproc: int = 1) -> List[Tuple[str, WORDSCORE_TYPE]]:
    """
    As for :func:`score_guesses`, but returning (word, score) pairs. The first
    is the best guess.
    """
    return [
        (o.word, o.score)
        for o in score_guesses(candidates_for_answer, candidates_for_guess,
                               algorithm_name=algorithm_name,
                               guesses_remaining=guesses_remaining,
                               nproc=nproc)
    ]


def best_words(options: List[WordScore]) -> List[str]:
    """
    The equal-best suggestion(s), from options sorted best first.
    """
    if not options:
        return []
    best_score = options[0].score
    top_words = []  # type: List[str]
    for o in options:
        if o.score != best_score:
            break
        top_words.append(o.word)
    return top_words


# =============================================================================
# Self-testing
# =============================================================================

class TestRanker(unittest.TestCase):
    ANSWERS = ["CRANE", "TRACE", "GRACE"]

    def test_entropy_matches_definition(self) -> None:
        answers = ["CRANE", "SLATE", "TRACE", "CRATE", "GRAPE", "HUMOR",
                   "PAUSE", "TACIT"]
        context = RankingContext(answers)
        for guess in answers + ["SOARE", "EERIE"]:
            counts = Counter(compute_feedback(guess, a) for a in answers)
            n = len(answers)
            expected = -sum(
                c / n * math.log2(c / n) for c in counts.values()
            )
            self.assertAlmostEqual(Entropy(guess, context).score, expected)

    def test_metric_values(self) -> None:
        context = RankingContext(self.ANSWERS)
        # CRANE leaves TRACE and GRACE together; TRACE separates all three.
        self.assertAlmostEqual(Entropy("CRANE", context).score,
                               -(1 / 3 * math.log2(1 / 3) +
                                 2 / 3 * math.log2(2 / 3)))
        self.assertAlmostEqual(Entropy("TRACE", context).score, math.log2(3))
        assert MinimaxPartition("CRANE", context).score == -2
        assert MinimaxPartition("TRACE", context).score == -1
        self.assertAlmostEqual(ExpectedRemaining("CRANE", context).score,
                               -5 / 3)
        self.assertAlmostEqual(ExpectedRemaining("TRACE", context).score, -1)
        assert LetterRelevance("CRANE", context).score == 7

    def test_probability_of_feedback(self) -> None:
        context = RankingContext(self.ANSWERS)
        d = context.probability_of_feedback("CRANE", debug=True)
        assert sorted(d.values()) == [1 / 3, 2 / 3]

    def test_rank_order(self) -> None:
        for algorithm_name in ALGORITHMS:
            ranking = rank(self.ANSWERS, ["CRANE", "TRACE", "GRACE"],
                           algorithm_name=algorithm_name)
            assert len(ranking) == 3
            scores = [s for _, s in ranking]
            assert scores == sorted(scores, reverse=True)
        ranking = rank(self.ANSWERS, ["CRANE", "TRACE", "GRACE"])
        assert ranking[0][0] == "TRACE"
        ranking = rank(self.ANSWERS, ["CRANE", "SLATE"],
                       algorithm_name="LetterRelevance")
        assert [w for w, _ in ranking] == ["CRANE"]

    def test_tie_breaks(self) -> None:
        # All three split {CRANE, TRACE} perfectly (1 bit each). Possible
        # answers come first, then list order.
        answers = ["CRANE", "TRACE"]
        ranking = rank(answers, ["SLATE", "TRACE", "CRANE"])
        assert [w for w, _ in ranking] == ["TRACE", "CRANE", "SLATE"]
        for _, score in ranking:
            self.assertAlmostEqual(score, 1.0)
        ranking = rank(answers, ["SLATE", "CRANE", "TRACE"])
        assert [w for w, _ in ranking] == ["CRANE", "TRACE", "SLATE"]

    def test_deterministic(self) -> None:
        answers = {"CRANE", "SLATE", "TRACE", "CRATE", "GRAPE"}
        guesses = {"CRANE", "SLATE", "TRACE", "CRATE", "GRAPE", "SOARE"}
        first = rank(answers, guesses)
        second = rank(set(answers), set(guesses))
        assert repr(first) == repr(second)

    def test_errors(self) -> None:
        with self.assertRaises(InconsistentFeedback):
            rank([], ["CRANE"])
        with self.assertRaises(EmptyGuessSet):
            rank(["CRANE"], [])

    def test_last_guess(self) -> None:
        ranking = rank(["CRANE", "TRACE"], ["SLATE", "TRACE"],
                       guesses_remaining=1)
        assert [w for w, _ in ranking] == ["TRACE"]
        with self.assertRaises(EmptyGuessSet):
            rank(["CRANE", "TRACE"], ["SLATE"], guesses_remaining=1)

    def test_best_words(self) -> None:
        options = score_guesses(["CRANE", "TRACE"],
                                ["SLATE", "TRACE", "CRANE", "CRATE"])
        assert best_words(options)[:2] == ["TRACE", "CRANE"]
        assert best_words([]) == []
        assert "TRACE (1.0)" == str(options[0])

    def test_single_group_scores_zero(self) -> None:
        ranking = rank(["CRANE"], ["CRANE", "SLATE"])
        for _, score in ranking:
            assert score == 0.0
            assert math.copysign(1.0, score) == 1.0
        options = score_guesses(["CRANE"], ["CRANE"])
        assert str(options[0]).startswith("CRANE (0")
        assert "-" not in str(options[0])

    def test_parallel_matches_sequential(self) -> None:
        # Plenty of tied scores, spread across the worker chunks.
        answers = ["CRANE", "TRACE", "GRACE", "BRACE", "CRATE", "GRAPE"]
        guesses = answers + ["SLATE", "PLATE", "SOARE", "RAISE", "HUMOR",
                             "HONOR", "PAPER", "TACIT"]
        try:
            for algorithm_name in ALGORITHMS:
                sequential = rank(answers, guesses,
                                  algorithm_name=algorithm_name)
                parallel = rank(answers, guesses,
                                algorithm_name=algorithm_name, nproc=2)
                assert parallel == sequential
        finally:
            ray.shutdown()
