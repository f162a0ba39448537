"""
What we know so far: the constraints accumulated from each round, and the
session (ordered rounds) that owns them.

A :class:`ConstraintSet` is an immutable value. Applying a round gives a new
one. Because every part of it is combined by set intersection/union or by
max/min, the order in which rounds are applied makes no difference.
"""

from collections import Counter
from itertools import permutations
import logging
import random
from typing import (
    Dict, FrozenSet, Generator, Iterable, List, Optional, Sequence, Set, Tuple
)
import unittest

from hardwordle.errors import HardModeViolation
from hardwordle.feedback import CharFeedback, Round
from hardwordle.words import ALL_LETTERS, N_GUESSES, WORDLEN, WordCorpus

rootlog = logging.getLogger(__name__)

FULL_LETTERSET = frozenset(ALL_LETTERS)  # type: FrozenSet[str]
EMPTY_LETTERSET = frozenset()  # type: FrozenSet[str]


# =============================================================================
# ConstraintSet
# =============================================================================

class ConstraintSet:
    """
    The accumulated knowledge from some rounds:

    - for each position, the letters that may still be there, and the letters
      seen "correct" there;
    - for each letter, the minimum number of times it occurs in the answer
      (from correct + present marks);
    - for some letters, the maximum number of times it occurs (when a round
      marked a copy absent, the answer has exactly as many as that round marked
      correct/present).
    """
    def __init__(self,
                 allowed: Sequence[FrozenSet[str]] = None,
                 correct: Sequence[FrozenSet[str]] = None,
                 min_counts: Dict[str, int] = None,
                 max_counts: Dict[str, int] = None) -> None:
        self._allowed = tuple(
            allowed if allowed is not None else [FULL_LETTERSET] * WORDLEN
        )  # type: Tuple[FrozenSet[str], ...]
        self._correct = tuple(
            correct if correct is not None else [EMPTY_LETTERSET] * WORDLEN
        )  # type: Tuple[FrozenSet[str], ...]
        self._min_counts = {
            k: v for k, v in (min_counts or {}).items() if v > 0
        }  # type: Dict[str, int]
        self._max_counts = dict(max_counts or {})  # type: Dict[str, int]
        self._dead_letters = frozenset(
            letter for letter, n in self._max_counts.items() if n == 0
        )  # type: FrozenSet[str]

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def allowed(self) -> Tuple[FrozenSet[str], ...]:
        return self._allowed

    @property
    def correct(self) -> Tuple[FrozenSet[str], ...]:
        return self._correct

    @property
    def min_counts(self) -> Dict[str, int]:
        return dict(self._min_counts)

    @property
    def max_counts(self) -> Dict[str, int]:
        return dict(self._max_counts)

    @property
    def dead_letters(self) -> FrozenSet[str]:
        """
        Letters known not to be in the answer at all.
        """
        return self._dead_letters

    # -------------------------------------------------------------------------
    # Adding a round
    # -------------------------------------------------------------------------

    def apply(self, round_: Round) -> "ConstraintSet":
        """
        Returns a new constraint set that also incorporates this round.
        """
        allowed = list(self._allowed)
        correct = list(self._correct)
        marked = Counter()
        absent = set()  # type: Set[str]
        for pos, (c, f) in enumerate(round_.char_feedback_pairs):
            if f == CharFeedback.CORRECT:
                allowed[pos] = allowed[pos] & {c}
                correct[pos] = correct[pos] | {c}
                marked[c] += 1
            elif f == CharFeedback.PRESENT:
                allowed[pos] = allowed[pos] - {c}
                marked[c] += 1
            elif f == CharFeedback.ABSENT:
                # Not here, whether absent altogether or just redundant.
                allowed[pos] = allowed[pos] - {c}
                absent.add(c)
            else:
                raise AssertionError("bug")
        min_counts = dict(self._min_counts)
        for c, n in marked.items():
            min_counts[c] = max(min_counts.get(c, 0), n)
        max_counts = dict(self._max_counts)
        for c in absent:
            max_counts[c] = min(max_counts.get(c, WORDLEN), marked[c])
        return ConstraintSet(allowed, correct, min_counts, max_counts)

    @classmethod
    def from_rounds(cls, rounds: Iterable[Round]) -> "ConstraintSet":
        """
        Applies several rounds to an empty constraint set.
        """
        constraints = cls()
        for round_ in rounds:
            constraints = constraints.apply(round_)
        return constraints

    # -------------------------------------------------------------------------
    # Checking words
    # -------------------------------------------------------------------------

    def is_possible_answer(self, word: str) -> bool:
        """
        Key thinking function: is this word consistent with everything we
        know?
        """
        for pos, letter in enumerate(word):
            if letter not in self._allowed[pos]:
                return False
        counts = Counter(word)
        for letter, n in self._min_counts.items():
            if counts[letter] < n:
                return False
        for letter, n in self._max_counts.items():
            if counts[letter] > n:
                return False
        return True

    def hard_mode_violations(self, word: str) -> Generator[str, None, None]:
        """
        Generates reasons why ``word`` is not a legal hard-mode guess. Hard
        mode demands that letters seen correct stay put, and that letters seen
        present are reused. It doesn't forbid letters known to be absent.
        """
        for pos in range(WORDLEN):
            for letter in sorted(self._correct[pos]):
                if word[pos] != letter:
                    yield f"letter {pos + 1} must be {letter}"
        counts = Counter(word)
        for letter, n in sorted(self._min_counts.items()):
            if counts[letter] < n:
                times = "once" if n == 1 else f"{n} times"
                yield f"guess must contain {letter} at least {times}"

    def is_legal_hard_mode_guess(self, word: str) -> bool:
        """
        Is this word a legal guess in hard mode?
        """
        return next(self.hard_mode_violations(word), None) is None

    def is_suggestible_guess(self, word: str) -> bool:
        """
        A hard-mode-legal guess that doesn't waste a slot on a letter known to
        be absent. These are the words we rank.
        """
        if self._dead_letters.intersection(word):
            return False
        return self.is_legal_hard_mode_guess(word)

    def is_contradictory(self) -> bool:
        """
        Is it obvious that no word at all can satisfy these constraints?
        """
        if any(not letters for letters in self._allowed):
            return True
        if any(len(letters) > 1 for letters in self._correct):
            return True
        if sum(self._min_counts.values()) > WORDLEN:
            return True
        return any(
            self._max_counts.get(letter, WORDLEN) < n
            for letter, n in self._min_counts.items()
        )

    # -------------------------------------------------------------------------
    # Comparison and display
    # -------------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConstraintSet):
            return NotImplemented
        return (
            self._allowed == other._allowed
            and self._correct == other._correct
            and self._min_counts == other._min_counts
            and self._max_counts == other._max_counts
        )

    def __hash__(self) -> int:
        return hash((
            self._allowed,
            self._correct,
            frozenset(self._min_counts.items()),
            frozenset(self._max_counts.items()),
        ))

    @property
    def pattern(self) -> str:
        """
        Known letters in place, e.g. ``.RA.E``.
        """
        return "".join(
            next(iter(letters)) if len(letters) == 1 else "."
            for letters in self._correct
        )

    def __str__(self) -> str:
        """
        Summary of our calculated details.
        """
        p = "".join(
            letter * n for letter, n in sorted(self._min_counts.items())
        ) or "?"
        a = "".join(sorted(self.dead_letters)) or "?"
        return (
            f"Pattern {self.pattern}. "
            f"Target must contain {p}; must not contain {a}."
        )


# =============================================================================
# Session
# =============================================================================

class Session:
    """
    The rounds played so far, in order, and the constraints they imply.
    Treated as a value: adding or removing a round gives a new session.
    """
    def __init__(self,
                 rounds: Sequence[Round] = (),
                 enforce_hard_mode: bool = True) -> None:
        """
        Args:
            rounds:
                rounds played so far, in order
            enforce_hard_mode:
                check that each guess obeys hard-mode rules given the rounds
                before it

        Raises:
            :exc:`HardModeViolation`
        """
        self.enforce_hard_mode = enforce_hard_mode
        constraints = ConstraintSet()
        for round_index, round_ in enumerate(rounds):
            if enforce_hard_mode:
                reasons = list(constraints.hard_mode_violations(round_.guess))
                if reasons:
                    raise HardModeViolation(round_.guess, round_index,
                                            reasons)
            constraints = constraints.apply(round_)
        self.rounds = tuple(rounds)  # type: Tuple[Round, ...]
        self.constraints = constraints

    def __str__(self) -> str:
        rounds = ", ".join(str(r) for r in self.rounds) or "none"
        return f"Guesses so far: {rounds}. {self.constraints}"

    # -------------------------------------------------------------------------
    # New sessions
    # -------------------------------------------------------------------------

    def with_round(self, round_: Round) -> "Session":
        """
        Returns a new session with one more round.
        """
        session = Session(self.rounds + (round_, ),
                          enforce_hard_mode=self.enforce_hard_mode)
        rootlog.debug(f"After {round_}: {session.constraints}")
        return session

    def without_last_round(self) -> "Session":
        """
        Returns a new session with the last round removed (e.g. to correct a
        mis-entered clue).
        """
        if not self.rounds:
            return self
        return Session(self.rounds[:-1],
                       enforce_hard_mode=self.enforce_hard_mode)

    # -------------------------------------------------------------------------
    # Info
    # -------------------------------------------------------------------------

    @property
    def n_rounds(self) -> int:
        return len(self.rounds)

    @property
    def this_guess(self) -> int:
        """
        One-based number of the next guess.
        """
        return self.n_rounds + 1

    @property
    def guesses_remaining(self) -> int:
        return N_GUESSES - self.n_rounds

    @property
    def last_round(self) -> Optional[Round]:
        return self.rounds[-1] if self.rounds else None

    @property
    def solved(self) -> bool:
        return bool(self.rounds) and self.rounds[-1].correct()

    # -------------------------------------------------------------------------
    # Filtering the corpus
    # -------------------------------------------------------------------------

    def possible_answers(self, corpus: WordCorpus) -> List[str]:
        """
        Corpus answers still consistent with every round, in corpus order.
        """
        c = self.constraints
        return [str(w) for w in corpus.answers if c.is_possible_answer(w)]

    def legal_guesses(self, corpus: WordCorpus) -> List[str]:
        """
        Allowed guesses that obey hard-mode rules, in corpus order.
        """
        c = self.constraints
        return [
            str(w) for w in corpus.allowed_guesses
            if c.is_legal_hard_mode_guess(w)
        ]

    def suggestible_guesses(self, corpus: WordCorpus) -> List[str]:
        """
        Legal guesses without known-absent letters, in corpus order.
        """
        c = self.constraints
        return [
            str(w) for w in corpus.allowed_guesses
            if c.is_suggestible_guess(w)
        ]


# =============================================================================
# Self-testing
# =============================================================================

TEST_WORDS = [
    "CRANE", "SLATE", "TRACE", "CRATE", "GRAPE", "HONOR", "HUMOR", "PAUSE",
    "LEPER", "EERIE", "SPEED", "ERASE", "LLAMA", "ALPHA", "ABBEY", "KEBAB",
    "TACIT", "RATES", "TYING", "SCION", "COINS", "PAPER", "GEESE", "EGRET",
]


class TestConstraints(unittest.TestCase):
    def test_scenario_crane_trace(self) -> None:
        corpus = WordCorpus(["CRANE", "SLATE", "TRACE", "CRATE", "GRAPE"])
        session = Session().with_round(Round.from_answer("CRANE", "TRACE"))
        assert session.last_round.feedback_str == "-==_="
        remaining = session.possible_answers(corpus)
        # CRATE has C in the place where C was marked "elsewhere".
        assert remaining == ["TRACE"]
        assert "SLATE" not in remaining
        assert "GRAPE" not in remaining

    def test_agrees_with_direct_check(self) -> None:
        # is_possible_answer() must be exactly "every round's feedback would
        # have been the same".
        for answer in TEST_WORDS:
            for guess in TEST_WORDS:
                r = Round.from_answer(guess, answer)
                c = ConstraintSet().apply(r)
                for word in TEST_WORDS:
                    assert c.is_possible_answer(word) == r.compatible(word), (
                        f"{r} vs {word}"
                    )

    def test_order_independent(self) -> None:
        rounds = [
            Round.from_answer(g, "TACIT")
            for g in ["RATES", "TYING", "CRANE", "ABBEY"]
        ]
        expected = ConstraintSet.from_rounds(rounds)
        expected_possible = [
            w for w in TEST_WORDS if expected.is_possible_answer(w)
        ]
        # Applying a round again changes nothing.
        assert expected.apply(rounds[0]) == expected
        for perm in permutations(rounds):
            c = ConstraintSet.from_rounds(perm)
            assert c == expected
            assert hash(c) == hash(expected)
            assert [
                w for w in TEST_WORDS if c.is_possible_answer(w)
            ] == expected_possible

    def test_order_independent_inconsistent(self) -> None:
        # Even nonsense feedback combines the same way in any order.
        rounds = [
            Round.from_strings("CRANE", "=____"),
            Round.from_strings("SLATE", "__=__"),
            Round.from_strings("COINS", "_-___"),
        ]
        expected = ConstraintSet.from_rounds(rounds)
        for perm in permutations(rounds):
            assert ConstraintSet.from_rounds(perm) == expected

    def test_monotonic_and_truthful(self) -> None:
        rng = random.Random(1234)
        for answer in TEST_WORDS:
            c = ConstraintSet()
            previous = set(TEST_WORDS)
            for guess in rng.sample(TEST_WORDS, 6):
                c = c.apply(Round.from_answer(guess, answer))
                now = set(w for w in TEST_WORDS if c.is_possible_answer(w))
                assert now <= previous
                # The true answer is never eliminated.
                assert answer in now
                previous = now

    def test_min_max_counts(self) -> None:
        # Answer SPEED, guess GEESE: G_ E- E= S- E_ -> exactly two Es.
        c = ConstraintSet().apply(Round.from_answer("GEESE", "SPEED"))
        assert c.min_counts == {"E": 2, "S": 1}
        assert c.max_counts == {"E": 2, "G": 0}
        assert c.dead_letters == {"G"}
        assert c.is_possible_answer("SPEED")
        assert not c.is_possible_answer("EERIE")  # three Es

    def test_hard_mode(self) -> None:
        c = ConstraintSet().apply(Round.from_strings("CRANE", "-==_="))
        assert c.is_legal_hard_mode_guess("TRACE")
        # Absent letters are allowed in hard mode...
        assert c.is_legal_hard_mode_guess("CRANE")
        # ... but we don't suggest them.
        assert not c.is_suggestible_guess("CRANE")
        assert c.is_suggestible_guess("TRACE")
        # The known-present C can't be left out.
        assert not c.is_legal_hard_mode_guess("GRAPE")
        assert list(c.hard_mode_violations("SLATE")) == [
            "letter 2 must be R",
            "guess must contain C at least once",
            "guess must contain R at least once",
        ]
        # A legal guess need not be a possible answer.
        assert c.is_legal_hard_mode_guess("CRACE") and not \
            c.is_possible_answer("CRACE")

    def test_possible_answers_are_legal(self) -> None:
        for answer in TEST_WORDS:
            c = ConstraintSet.from_rounds(
                Round.from_answer(g, answer) for g in ["CRANE", "SPEED"]
            )
            for word in TEST_WORDS:
                if c.is_possible_answer(word):
                    assert c.is_suggestible_guess(word)

    def test_contradictory(self) -> None:
        c = ConstraintSet.from_rounds([
            Round.from_strings("CRANE", "=____"),
            Round.from_strings("SLATE", "=____"),
        ])
        assert c.is_contradictory()
        assert not any(c.is_possible_answer(w) for w in TEST_WORDS)
        assert not ConstraintSet().is_contradictory()

    def test_str(self) -> None:
        c = ConstraintSet().apply(Round.from_strings("CRANE", "-==_="))
        assert c.pattern == ".RA.E"
        assert str(c) == (
            "Pattern .RA.E. Target must contain ACER; must not contain N."
        )

    def test_session(self) -> None:
        s = Session()
        assert s.guesses_remaining == N_GUESSES
        assert not s.solved
        s = s.with_round(Round.from_strings("CRANE", "-==_="))
        with self.assertRaises(HardModeViolation) as cm:
            s.with_round(Round.from_strings("SLATE", "_____"))
        assert cm.exception.round_index == 1
        s2 = s.with_round(Round.from_strings("TRACE", "====="))
        assert s2.solved
        assert s2.this_guess == 3
        assert s2.without_last_round().rounds == s.rounds
        assert Session().without_last_round().rounds == ()
        # Without enforcement, anything goes.
        Session([Round.from_strings("CRANE", "-==_="),
                 Round.from_strings("SLATE", "_____")],
                enforce_hard_mode=False)

    def test_session_filters(self) -> None:
        corpus = WordCorpus(["CRANE", "TRACE", "GRACE"],
                            ["CRANE", "TRACE", "GRACE", "BRACE", "SLATE",
                             "CRACK"])
        s = Session([Round.from_strings("CRANE", "-==_=")])
        assert s.possible_answers(corpus) == ["GRACE", "TRACE"]
        assert s.legal_guesses(corpus) == ["BRACE", "CRANE", "GRACE",
                                           "TRACE"]
        assert s.suggestible_guesses(corpus) == ["BRACE", "GRACE", "TRACE"]
