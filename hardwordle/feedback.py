"""
Per-letter feedback, and rounds (a guess plus the feedback it received).

Wordle's rule for repeated letters is that letters in the correct place are
"used up" first; then, from left to right, a guessed letter is marked "present
elsewhere" only while the answer still has unclaimed copies of it. Any further
copies are marked absent. For example, if the answer is HUMOR and you guess
HONOR, the first O is marked absent, not present elsewhere.
"""

from collections import Counter
from enum import Enum
import re
from typing import List, Sequence, Tuple
import unittest

from colors import color  # pip install ansicolors

from hardwordle.errors import MalformedFeedback
from hardwordle.words import WORDLEN, normalize_word


# =============================================================================
# Constants
# =============================================================================

CHAR_ABSENT = "_"
CHAR_PRESENT = "-"
CHAR_CORRECT = "="
_FEEDBACK_REGEX_STR = (
    rf"^[\{CHAR_ABSENT}"
    rf"\{CHAR_PRESENT}"
    rf"\{CHAR_CORRECT}]{{{WORDLEN}}}$"
)
FEEDBACK_REGEX = re.compile(_FEEDBACK_REGEX_STR)

# Colours and styles for displaying guesses, via the ansicolors package
COLOUR_ABSENT = dict(fg="white", bg="black", style="bold")
COLOUR_PRESENT = dict(fg="white", bg="yellow", style="bold")
COLOUR_CORRECT = dict(fg="white", bg="green", style="bold")


# =============================================================================
# Enums
# =============================================================================

class CharFeedback(Enum):
    """
    Possible types of feedback about each character.
    """
    ABSENT = 1  # absent, or redundant (more copies than the answer has)
    PRESENT = 2  # present, but somewhere else
    CORRECT = 3  # present at this location

    @property
    def plain_str(self) -> str:
        """
        Plain string representation.
        """
        if self == CharFeedback.ABSENT:
            return CHAR_ABSENT
        elif self == CharFeedback.PRESENT:
            return CHAR_PRESENT
        elif self == CharFeedback.CORRECT:
            return CHAR_CORRECT
        else:
            raise AssertionError("bug")

    @property
    def colour_params(self) -> dict:
        """
        Arguments to :func:`colors.color` for this sort of feedback.
        """
        if self == CharFeedback.ABSENT:
            return COLOUR_ABSENT
        elif self == CharFeedback.PRESENT:
            return COLOUR_PRESENT
        elif self == CharFeedback.CORRECT:
            return COLOUR_CORRECT
        else:
            raise AssertionError("bug")


Feedback = Tuple[CharFeedback, ...]

ALL_CORRECT = (CharFeedback.CORRECT, ) * WORDLEN  # type: Feedback


# =============================================================================
# Feedback
# =============================================================================

def compute_feedback(guess: str, answer: str) -> Feedback:
    """
    The feedback Wordle would give for ``guess`` if the answer were
    ``answer``.
    """
    feedback = [CharFeedback.ABSENT] * len(guess)  # type: List[CharFeedback]
    unclaimed = Counter()
    # Prioritize correct locations.
    for pos, (g_char, a_char) in enumerate(zip(guess, answer)):
        if g_char == a_char:
            feedback[pos] = CharFeedback.CORRECT
        else:
            unclaimed[a_char] += 1
    # Then work in sequence.
    for pos, g_char in enumerate(guess):
        if feedback[pos] != CharFeedback.CORRECT and unclaimed[g_char] > 0:
            feedback[pos] = CharFeedback.PRESENT
            unclaimed[g_char] -= 1
    return tuple(feedback)


def feedback_from_str(text: str) -> Feedback:
    """
    Create coded feedback from a string like ``"=-__="``.
    """
    text = text.strip()
    if not FEEDBACK_REGEX.match(text):
        raise MalformedFeedback(text)
    feedback = []  # type: List[CharFeedback]
    for f_char in text:
        if f_char == CHAR_ABSENT:
            f = CharFeedback.ABSENT
        elif f_char == CHAR_PRESENT:
            f = CharFeedback.PRESENT
        elif f_char == CHAR_CORRECT:
            f = CharFeedback.CORRECT
        else:
            raise AssertionError("bug in feedback_from_str")
        feedback.append(f)
    return tuple(feedback)


def feedback_str(feedback: Sequence[CharFeedback]) -> str:
    """
    Plain string version of feedback.
    """
    return "".join(f.plain_str for f in feedback)


def colourful_char(x: str, feedback: CharFeedback) -> str:
    """
    Returns a string with ANSI codes to colour the character according to the
    feedback (and then reset afterwards).
    """
    return color(x, **feedback.colour_params)


# =============================================================================
# Round
# =============================================================================

class Round:
    """
    Represents a guessed word and the feedback it received. Immutable.
    """
    def __init__(self, word: str, feedback: Sequence[CharFeedback]) -> None:
        """
        Args:

            word: the word being guessed
            feedback: character-by-character feedback
        """
        if len(feedback) != WORDLEN or not all(
                isinstance(f, CharFeedback) for f in feedback):
            raise MalformedFeedback(repr(feedback))
        self._guess = normalize_word(word)
        self._feedback = tuple(feedback)  # type: Feedback

    @property
    def guess(self) -> str:
        return self._guess

    @property
    def feedback(self) -> Feedback:
        return self._feedback

    @property
    def char_feedback_pairs(self) -> Tuple[Tuple[str, CharFeedback], ...]:
        """
        The per-position clues: (letter, feedback) pairs.
        """
        return tuple(zip(self._guess, self._feedback))

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    @classmethod
    def from_strings(cls, guess: str, feedback_text: str) -> "Round":
        """
        Use our internal string format to create a round.
        """
        return cls(guess, feedback_from_str(feedback_text))

    @classmethod
    def from_answer(cls, guess: str, answer: str) -> "Round":
        """
        For automatic play: the round we would see if ``answer`` were the
        answer.
        """
        guess = normalize_word(guess)
        return cls(guess, compute_feedback(guess, normalize_word(answer)))

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def correct(self) -> bool:
        """
        Was the guess correct?
        """
        return self._feedback == ALL_CORRECT

    def compatible(self, word: str) -> bool:
        """
        Could ``word`` be the answer, judging only by this round? The
        direct (slow) definition.
        """
        return compute_feedback(self._guess, word) == self._feedback

    # -------------------------------------------------------------------------
    # Comparison
    # -------------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Round):
            return NotImplemented
        return (
            self._guess == other._guess
            and self._feedback == other._feedback
        )

    def __hash__(self) -> int:
        return hash((self._guess, self._feedback))

    # -------------------------------------------------------------------------
    # Displays and string representations
    # -------------------------------------------------------------------------

    @property
    def colourful_str(self) -> str:
        """
        Colourful string representation.
        """
        return "".join(
            colourful_char(c, f)
            for c, f in self.char_feedback_pairs
        )

    @property
    def feedback_str(self) -> str:
        """
        Feedback in our plain string format.
        """
        return feedback_str(self._feedback)

    @property
    def plain_str(self) -> str:
        """
        Plain string representation.
        """
        return f"{self._guess}/{self.feedback_str}"

    def __str__(self) -> str:
        """
        String representation. The colourful one leaves a colour residue for
        logs.
        """
        return self.plain_str

    def __repr__(self) -> str:
        return f"Round.from_strings({self._guess!r}, {self.feedback_str!r})"


# =============================================================================
# Self-testing
# =============================================================================

class TestFeedback(unittest.TestCase):
    @staticmethod
    def _testround(answer: str, guess: str, wordle_feedback: str) -> None:
        # Setup
        wordle_round = Round.from_strings(guess, wordle_feedback)

        # Test 1: do we generate the right feedback?
        our_round = Round.from_answer(guess, answer)
        assert our_round == wordle_round, (
            f"For answer {answer} and guess {guess}, our code produces "
            f"{our_round.feedback_str}, but the correct feedback from Wordle "
            f"is {wordle_round.feedback_str}."
        )

        # Test 2: is the answer compatible with its own feedback?
        assert wordle_round.compatible(answer)

    def test_duplicate_letters(self) -> None:
        self._testround(
            answer="HUMOR",  # Wordle 2022-02-09
            guess="HONOR",
            wordle_feedback="=__=="
            # note in particular that the first O is given a "no" code, not a
            # "somewhere else" code.
        )
        self._testround(
            # What about three?
            answer="PAUSE",  # Wordle 2022-02-10
            guess="EERIE",
            wordle_feedback="____="
        )
        self._testround(
            # Two, both in the wrong place
            answer="PAUSE",
            guess="LEPER",
            wordle_feedback="_--__"
            # only the first E gets the "wrong place" marker
        )
        self._testround(
            # Answer has two, guess has one in the wrong place
            answer="SPEED",
            guess="ERASE",
            wordle_feedback="-__--"
        )

    def test_scenario_crane_trace(self) -> None:
        assert feedback_str(compute_feedback("CRANE", "TRACE")) == "-==_="

    def test_feedback_properties(self) -> None:
        words = ["CRANE", "SLATE", "TRACE", "CRATE", "GRAPE", "EERIE",
                 "HONOR", "HUMOR", "PAUSE", "LEPER", "SPEED", "ERASE",
                 "LLAMA", "ALPHA", "ABBEY", "KEBAB"]
        for guess in words:
            for answer in words:
                fb = compute_feedback(guess, answer)
                # Every true positional match is correct, and nothing else is.
                for pos in range(WORDLEN):
                    assert (fb[pos] == CharFeedback.CORRECT) == (
                        guess[pos] == answer[pos])
                # Never more marks for a letter than the answer holds.
                marked = Counter(
                    g for g, f in zip(guess, fb)
                    if f != CharFeedback.ABSENT
                )
                answer_counts = Counter(answer)
                for letter, n in marked.items():
                    assert n <= answer_counts[letter]
                # Marks are as many as possible.
                for letter in set(guess):
                    assert marked[letter] == min(
                        guess.count(letter), answer_counts[letter])

    def test_strings(self) -> None:
        fb = feedback_from_str("=-_-=")
        assert fb == (CharFeedback.CORRECT, CharFeedback.PRESENT,
                      CharFeedback.ABSENT, CharFeedback.PRESENT,
                      CharFeedback.CORRECT)
        assert feedback_str(fb) == "=-_-="
        for bad in ["", "=-_-", "=-_-==", "abcde", "=-x-="]:
            with self.assertRaises(MalformedFeedback):
                feedback_from_str(bad)

    def test_round(self) -> None:
        r = Round.from_strings("crane", "-==_=")
        assert r.guess == "CRANE"
        assert str(r) == "CRANE/-==_="
        assert not r.correct()
        assert Round.from_answer("TRACE", "trace").correct()
        assert r == Round.from_answer("CRANE", "TRACE")
        assert hash(r) == hash(Round.from_answer("CRANE", "TRACE"))
        assert "CRANE" not in r.colourful_str  # letters are wrapped in ANSI
        with self.assertRaises(MalformedFeedback):
            Round("CRANE", (CharFeedback.CORRECT, ))
