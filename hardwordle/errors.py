"""
Exceptions raised by the hard-mode Wordle assistant.

Everything derives from :class:`WordleError`, so the command-line entry point
can catch the lot.
"""

from typing import Iterable, Optional


class WordleError(Exception):
    """
    Base class for our errors.
    """
    pass


class MalformedWord(WordleError):
    """
    Input is not exactly WORDLEN letters from A-Z.
    """
    def __init__(self, word: str,
                 filename: str = None,
                 line_num: int = None) -> None:
        self.word = word
        self.filename = filename
        self.line_num = line_num
        where = ""
        if filename:
            where = f" (file {filename!r}, line {line_num})"
        super().__init__(f"Not a valid word: {word!r}{where}")


class MalformedFeedback(WordleError):
    """
    Feedback is not a valid sequence of per-letter clues.
    """
    def __init__(self, feedback: str) -> None:
        self.feedback = feedback
        super().__init__(f"Not valid feedback: {feedback!r}")


class InconsistentFeedback(WordleError):
    """
    No word in the corpus is consistent with the clues so far. Usually means
    the user mis-entered some feedback.

    ``round_index`` is the (zero-based) index of the last round applied, if
    known.
    """
    def __init__(self, round_index: Optional[int] = None) -> None:
        self.round_index = round_index
        msg = "No remaining possible answers"
        if round_index is not None:
            msg += f" after round {round_index + 1}"
        super().__init__(msg + "; was some feedback entered wrongly?")


class EmptyGuessSet(WordleError):
    """
    Hard-mode rules eliminate every allowed guess. With a sensible corpus and
    real feedback this should not happen.
    """
    def __init__(self, round_index: Optional[int] = None) -> None:
        self.round_index = round_index
        msg = "No hard-mode-legal guesses remain"
        if round_index is not None:
            msg += f" after round {round_index + 1}"
        super().__init__(msg)


class HardModeViolation(WordleError):
    """
    A guess does not reuse all the clues revealed by earlier rounds.
    """
    def __init__(self, guess: str, round_index: int,
                 reasons: Iterable[str]) -> None:
        self.guess = guess
        self.round_index = round_index
        self.reasons = list(reasons)
        super().__init__(
            f"Guess {round_index + 1} ({guess}) breaks hard-mode rules: "
            f"{'; '.join(self.reasons)}"
        )


class UnknownWord(WordleError):
    """
    A well-formed word that is not in the relevant word list.
    """
    def __init__(self, word: str, wordlist: str = "answers") -> None:
        self.word = word
        self.wordlist = wordlist
        super().__init__(f"Word {word!r} is not in our list of {wordlist}")


class EmptyWordList(WordleError):
    """
    A word list has no words in it.
    """
    def __init__(self, what: str = "words") -> None:
        self.what = what
        super().__init__(f"No {what}!")
