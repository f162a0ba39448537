"""
The word corpus: reading, validating and holding the five-letter words.

Wordle uses a short list of possible answers (~2.3k words) and a long list of
allowed guesses (~13k words); every answer is also an allowed guess. We keep
both, as sorted numpy arrays of 5-character Unicode strings. If you only have
one list, it serves as both.
"""

import logging
import os
import re
import tempfile
from typing import FrozenSet, Iterable, List, Set
import unittest

import numpy as np

from hardwordle.errors import EmptyWordList, MalformedWord

rootlog = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Paths
THIS_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(THIS_DIR, "data")
DEFAULT_OS_DICT = "/usr/share/dict/words"
DEFAULT_ANSWERS = os.path.join(DATA_DIR, "five_letter_answers.txt")
DEFAULT_GUESSES = os.path.join(DATA_DIR, "five_letter_guesses.txt")

# Defining the game
WORDLEN = 5
N_GUESSES = 6
ALL_LETTERS = tuple(
    chr(_letter_ascii_code)
    for _letter_ascii_code in range(ord('A'), ord('Z') + 1)
)

# Regular expressions to read from files or the user
WORD_REGEX = re.compile(rf"^[A-Z]{{{WORDLEN}}}$", re.IGNORECASE)
COMMENT_PREFIX = "#"


# =============================================================================
# Single words
# =============================================================================

def normalize_word(word: str) -> str:
    """
    Returns the upper-case version of a word, or raises
    :exc:`MalformedWord` if it isn't WORDLEN letters.
    """
    stripped = word.strip()
    # re.IGNORECASE with [A-Z] also accepts a couple of non-ASCII letters
    # (e.g. the Kelvin sign), so check ASCII explicitly.
    if not (stripped.isascii() and WORD_REGEX.match(stripped)):
        raise MalformedWord(word)
    return stripped.upper()


# =============================================================================
# Reading word lists
# =============================================================================

def make_wordlist(from_filename: str,
                  to_filename: str) -> None:
    """
    Reads a dictionary file and creates a list of 5-letter words.
    """
    rootlog.info(f"Reading from {from_filename}")
    rootlog.info(f"Writing to {to_filename}")
    n_read = 0
    n_written = 0
    seen = set()  # type: Set[str]
    with open(from_filename, "rt") as f, open(to_filename, "wt") as t:
        for line in f:
            n_read += 1
            word = line.strip()
            if word.isascii() and WORD_REGEX.match(word):
                uppercase_word = word.upper()
                if uppercase_word not in seen:
                    t.write(uppercase_word + "\n")
                    seen.add(uppercase_word)
                    n_written += 1
    rootlog.info(f"Read {n_read} words from {from_filename}")
    rootlog.info(f"Wrote {n_written} ({WORDLEN}-letter) words to "
                 f"{to_filename}")


def make_np_array_words(words: Iterable[str]) -> np.ndarray:
    """
    Converts to an appropriate Numpy array type.
    """
    return np.array(list(words), dtype=f"U{WORDLEN}")


def read_words(wordlist_filename: str,
               max_n: int = None) -> np.ndarray:
    """
    Read all words from a pre-filtered wordlist: one word per line, with blank
    lines and comment lines ignored. Returns them sorted and deduplicated.

    Raises :exc:`MalformedWord` for anything that isn't a valid word, rather
    than letting it leak into the solver.
    """
    words = set()  # type: Set[str]
    with open(wordlist_filename) as f:
        for line_num, line in enumerate(f, start=1):
            text = line.strip()
            if not text or text.startswith(COMMENT_PREFIX):
                continue
            try:
                words.add(normalize_word(text))
            except MalformedWord:
                raise MalformedWord(text, filename=wordlist_filename,
                                    line_num=line_num)
            if max_n is not None and len(words) >= max_n:
                rootlog.warning(f"Reading only {len(words)} words from "
                                f"{wordlist_filename}")
                break
    rootlog.debug(f"Read {len(words)} words from {wordlist_filename}")
    return make_np_array_words(sorted(words))


# =============================================================================
# Corpus
# =============================================================================

class WordCorpus:
    """
    The fixed dictionary for a game: possible answers, and allowed guesses
    (which include all the possible answers). Read-only once built.
    """
    def __init__(self,
                 answers: Iterable[str],
                 allowed_guesses: Iterable[str] = None) -> None:
        """
        Args:
            answers:
                words that might be the answer
            allowed_guesses:
                words that Wordle will accept as a guess; if None, the same
                as the answers
        """
        answer_set = set(normalize_word(w) for w in answers)
        if not answer_set:
            raise EmptyWordList("answers")
        if allowed_guesses is None:
            guess_set = set(answer_set)
        else:
            guess_set = set(normalize_word(w) for w in allowed_guesses)
            missing = answer_set - guess_set
            if missing:
                rootlog.warning(
                    f"{len(missing)} answer(s) were not in the list of "
                    f"allowed guesses; adding them"
                )
                guess_set |= missing
        self.answers = make_np_array_words(sorted(answer_set))
        self.allowed_guesses = make_np_array_words(sorted(guess_set))
        self._answer_set = frozenset(answer_set)  # type: FrozenSet[str]
        self._guess_set = frozenset(guess_set)  # type: FrozenSet[str]

    @classmethod
    def from_files(cls,
                   answers_filename: str = DEFAULT_ANSWERS,
                   guesses_filename: str = None,
                   max_n: int = None) -> "WordCorpus":
        """
        Load from word-list files. With no guesses file, the answers are also
        the allowed guesses.
        """
        answers = read_words(answers_filename, max_n=max_n)
        guesses = None
        if guesses_filename:
            guesses = read_words(guesses_filename)
        corpus = cls(answers, guesses)
        rootlog.info(f"Loaded {corpus}")
        return corpus

    def __str__(self) -> str:
        return (
            f"corpus of {self.n_answers} possible answers and "
            f"{self.n_guesses} allowed guesses"
        )

    @property
    def n_answers(self) -> int:
        return len(self.answers)

    @property
    def n_guesses(self) -> int:
        return len(self.allowed_guesses)

    def is_answer(self, word: str) -> bool:
        """
        Could this word ever be the answer?
        """
        return word in self._answer_set

    def is_allowed_guess(self, word: str) -> bool:
        """
        Will Wordle accept this word as a guess?
        """
        return word in self._guess_set


# =============================================================================
# Self-testing
# =============================================================================

class TestWords(unittest.TestCase):
    @staticmethod
    def _write_lines(lines: List[str]) -> str:
        f = tempfile.NamedTemporaryFile("wt", suffix=".txt", delete=False)
        with f:
            f.write("\n".join(lines) + "\n")
        return f.name

    def test_normalize(self) -> None:
        assert normalize_word(" crane\n") == "CRANE"
        assert normalize_word("Slate") == "SLATE"
        for bad in ["", "CRAN", "CRANES", "CR4NE", "CRA E", "CRÂNE"]:
            with self.assertRaises(MalformedWord):
                normalize_word(bad)

    def test_read_words(self) -> None:
        filename = self._write_lines([
            "# comment", "slate", "", "CRANE", "crane", "trace",
        ])
        try:
            words = read_words(filename)
        finally:
            os.remove(filename)
        assert list(words) == ["CRANE", "SLATE", "TRACE"]

    def test_read_words_rejects_malformed(self) -> None:
        filename = self._write_lines(["CRANE", "SLATES"])
        try:
            with self.assertRaises(MalformedWord) as cm:
                read_words(filename)
        finally:
            os.remove(filename)
        assert cm.exception.line_num == 2
        assert cm.exception.word == "SLATES"

    def test_make_wordlist(self) -> None:
        source = self._write_lines(["apple", "Apple", "banana", "it's",
                                    "crane"])
        dest = source + ".out"
        try:
            make_wordlist(source, dest)
            with open(dest) as f:
                lines = [line.strip() for line in f]
        finally:
            os.remove(source)
            os.remove(dest)
        assert lines == ["APPLE", "CRANE"]

    def test_corpus_answers_subset_of_guesses(self) -> None:
        corpus = WordCorpus(["trace", "crate"], ["CRANE", "TRACE"])
        assert list(corpus.answers) == ["CRATE", "TRACE"]
        assert list(corpus.allowed_guesses) == ["CRANE", "CRATE", "TRACE"]
        assert corpus.is_answer("TRACE")
        assert not corpus.is_answer("CRANE")
        assert corpus.is_allowed_guess("CRANE")
        assert corpus.n_answers == 2
        assert corpus.n_guesses == 3

    def test_corpus_single_list(self) -> None:
        corpus = WordCorpus(["SLATE", "CRANE"])
        assert list(corpus.answers) == list(corpus.allowed_guesses)

    def test_empty_corpus(self) -> None:
        with self.assertRaises(EmptyWordList):
            WordCorpus([])

    def test_bundled_corpus(self) -> None:
        corpus = WordCorpus.from_files(DEFAULT_ANSWERS, DEFAULT_GUESSES)
        assert corpus.n_answers > 100
        assert corpus.n_guesses >= corpus.n_answers
        assert all(corpus.is_allowed_guess(w) for w in corpus.answers)
