"""
The interactive session: the user plays Wordle (hard mode) elsewhere, tells us
each guess and the feedback it got, and we tell them what's left and what to
guess next.
"""

import logging
from typing import Callable, Iterator, List, Union
import unittest

from hardwordle.constraints import Session
from hardwordle.errors import (
    EmptyGuessSet,
    HardModeViolation,
    InconsistentFeedback,
    MalformedFeedback,
    MalformedWord,
)
from hardwordle.feedback import CHAR_ABSENT, CHAR_CORRECT, CHAR_PRESENT, Round
from hardwordle.ranker import DEFAULT_ALGORITHM
from hardwordle.solver import (
    DEFAULT_ADVICE_TOP_N,
    DEFAULT_SHOW_THRESHOLD,
    suggest,
)
from hardwordle.words import normalize_word, WordCorpus

rootlog = logging.getLogger(__name__)

UNDO_COMMAND = "UNDO"
QUIT_COMMAND = "QUIT"


# =============================================================================
# Talking to the user
# =============================================================================

class ConsoleIO:
    """
    Reads rounds from, and writes messages to, the user. Replace the input and
    output functions to script it.
    """
    def __init__(self,
                 input_func: Callable[[str], str] = input,
                 output_func: Callable[[str], None] = print) -> None:
        self.input_func = input_func
        self.output_func = output_func

    def say(self, text: str) -> None:
        self.output_func(text)

    def read_round(self) -> Union[Round, str]:
        """
        Read a word from the user, and positional feedback from the user
        likewise (from the online game), and return our structure. Returns
        UNDO_COMMAND or QUIT_COMMAND if the user asks for that instead.
        """
        prefix1 = "-" * 57  # for presentational alignment
        prefix2 = "." * 58
        # We allow mis-entry of the feedback string to take you back to word
        # entry.
        while True:
            word = self.input_func(
                f"{prefix1}> Enter the five-letter word "
                f"(or {UNDO_COMMAND.lower()!r}, {QUIT_COMMAND.lower()!r}): "
            ).strip().upper()
            if word in (UNDO_COMMAND, QUIT_COMMAND):
                return word
            try:
                word = normalize_word(word)
            except MalformedWord:
                continue
            feedback_text = self.input_func(
                f"Enter the feedback ({CHAR_ABSENT!r} absent, "
                f"{CHAR_PRESENT!r} present but wrong location, "
                f"{CHAR_CORRECT!r} correct location): "
            )
            try:
                round_ = Round.from_strings(word, feedback_text)
            except MalformedFeedback as e:
                self.say(str(e))
                continue
            self.say(f"{prefix2} You have entered this clue: "
                     f"{round_.colourful_str}")
            return round_


# =============================================================================
# Interactive solver
# =============================================================================

def solve_interactive(
        corpus: WordCorpus,
        io: ConsoleIO = None,
        show_threshold: int = DEFAULT_SHOW_THRESHOLD,
        advice_top_n: int = DEFAULT_ADVICE_TOP_N,
        algorithm_name: str = DEFAULT_ALGORITHM,
        nproc: int = 1,
        quick_start: bool = False,
        enforce_hard_mode: bool = True) -> Session:
    """
    Solve in a basic way using user guesses. Returns the final session.
    """
    io = io or ConsoleIO()
    rootlog.info("Hard-mode Wordle assistant.")
    session = Session(enforce_hard_mode=enforce_hard_mode)
    while session.guesses_remaining > 0:
        # Provide advice
        try:
            suggest(session, corpus,
                    algorithm_name=algorithm_name,
                    top_n=advice_top_n,
                    show_threshold=show_threshold,
                    nproc=nproc,
                    quick_start=quick_start)
        except (InconsistentFeedback, EmptyGuessSet) as e:
            if not session.rounds:
                raise
            rootlog.error(str(e))
            if session.constraints.is_contradictory():
                io.say("Those clues contradict each other.")
            elif isinstance(e, InconsistentFeedback):
                io.say("No word in our list fits those clues.")
            io.say(f"Removing {session.last_round}; please re-enter it.")
            session = session.without_last_round()
            continue

        # Read the results of a guess
        entry = io.read_round()
        if entry == QUIT_COMMAND:
            rootlog.info("Quitting.")
            return session
        if entry == UNDO_COMMAND:
            if session.rounds:
                io.say(f"Removing {session.last_round}.")
            session = session.without_last_round()
            continue
        if not corpus.is_allowed_guess(entry.guess):
            rootlog.warning(f"{entry.guess} is not in our list of allowed "
                            f"guesses; using it anyway")
        try:
            session = session.with_round(entry)
        except HardModeViolation as e:
            rootlog.error(str(e))
            continue
        if entry.correct():
            rootlog.info(f"Success in {session.n_rounds} guesses.")
            return session

    if session.rounds and not session.possible_answers(corpus):
        # The last round never went through the advice step above.
        error = InconsistentFeedback(round_index=session.n_rounds - 1)
        rootlog.error(str(error))
        io.say(str(error))
    rootlog.info("Out of guesses!")
    guess_words = [r.guess for r in session.rounds]
    if len(guess_words) != len(set(guess_words)):
        rootlog.info("You guessed the same word more than once.")
    return session


# =============================================================================
# Self-testing
# =============================================================================

class ScriptedIO(ConsoleIO):
    """
    Console I/O for tests: input comes from a list, output is collected.
    """
    def __init__(self, inputs: List[str]) -> None:
        self._inputs = iter(inputs)  # type: Iterator[str]
        self.output = []  # type: List[str]
        super().__init__(input_func=self._next_input,
                         output_func=self.output.append)

    def _next_input(self, prompt: str) -> str:
        return next(self._inputs)


class TestInteractive(unittest.TestCase):
    CORPUS = WordCorpus(["CRANE", "SLATE", "TRACE", "CRATE", "GRAPE",
                         "GRACE"])

    def test_read_round(self) -> None:
        io = ScriptedIO(["cran", "crane", "=-=-", "crane", "-==_="])
        r = io.read_round()
        assert r == Round.from_strings("CRANE", "-==_=")
        assert any("Not valid feedback" in line for line in io.output)
        assert ScriptedIO(["undo"]).read_round() == UNDO_COMMAND
        assert ScriptedIO([" Quit "]).read_round() == QUIT_COMMAND

    def test_solved(self) -> None:
        io = ScriptedIO(["crane", "-==_=", "trace", "====="])
        session = solve_interactive(self.CORPUS, io=io)
        assert session.solved
        assert [r.guess for r in session.rounds] == ["CRANE", "TRACE"]

    def test_hard_mode_violation_rejected(self) -> None:
        io = ScriptedIO(["crane", "-==_=", "slate", "_____", "quit"])
        session = solve_interactive(self.CORPUS, io=io)
        assert [r.guess for r in session.rounds] == ["CRANE"]

    def test_inconsistent_feedback_undone(self) -> None:
        # Every word in the corpus has an A or an E.
        io = ScriptedIO(["crane", "_____", "quit"])
        session = solve_interactive(self.CORPUS, io=io)
        assert session.rounds == ()
        assert any("Removing CRANE/_____" in line for line in io.output)
        assert "No word in our list fits those clues." in io.output

    def test_contradictory_feedback_undone(self) -> None:
        # R was correct in the first round, absent in the second.
        io = ScriptedIO(["crane", "-==_=", "trace", "_____", "quit"])
        session = solve_interactive(self.CORPUS, io=io,
                                    enforce_hard_mode=False)
        assert [r.guess for r in session.rounds] == ["CRANE"]
        assert "Those clues contradict each other." in io.output

    def test_undo(self) -> None:
        io = ScriptedIO(["crane", "-==_=", "undo", "slate", "__=_=",
                         "quit"])
        session = solve_interactive(self.CORPUS, io=io)
        assert [r.guess for r in session.rounds] == ["SLATE"]

    def test_out_of_guesses(self) -> None:
        # Without hard-mode enforcement, the same (unhelpful) round can be
        # entered repeatedly.
        io = ScriptedIO(["slate", "__=_="] * 6)
        session = solve_interactive(self.CORPUS, io=io,
                                    enforce_hard_mode=False)
        assert session.guesses_remaining == 0
        assert not session.solved

    def test_inconsistent_last_round_reported(self) -> None:
        # A was correct in the first five rounds, absent in the sixth.
        io = ScriptedIO(["slate", "__=_="] * 5 + ["crane", "_____"])
        session = solve_interactive(self.CORPUS, io=io,
                                    enforce_hard_mode=False)
        assert session.guesses_remaining == 0
        assert any("No remaining possible answers after round 6" in line
                   for line in io.output)
