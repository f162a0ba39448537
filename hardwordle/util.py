"""
Small formatting and timing helpers.
"""

from contextlib import contextmanager
import logging
from timeit import default_timer as timer
from typing import Any, Generator, Iterable, Union
import unittest

from cardinal_pythonlib.maths_py import round_sf

rootlog = logging.getLogger(__name__)

# Types
WORDSCORE_TYPE = Union[None, float, int, Iterable[Union[int, float]]]

# Defaults
DEFAULT_SIG_FIGURES = 3


# =============================================================================
# Formatting
# =============================================================================

def prettylist(items: Iterable[Any]) -> str:
    """
    Comma-separated, for log messages.
    """
    return ", ".join(map(str, items))


def _round_if_float(x: Any, sig_fig: int) -> Any:
    return round_sf(x, sig_fig) if isinstance(x, float) else x


def convert_sf(x: WORDSCORE_TYPE,
               sig_fig: int = DEFAULT_SIG_FIGURES) -> WORDSCORE_TYPE:
    """
    Rounds a score for display. Floats, and floats within a tuple score, go to
    ``sig_fig`` significant figures; anything else is left alone.
    """
    if x is None or isinstance(x, (int, float)):
        return _round_if_float(x, sig_fig)
    return [_round_if_float(y, sig_fig) for y in x]


# =============================================================================
# Iteration
# =============================================================================

def flatten(x: Iterable[Any]) -> Iterable[Any]:
    """
    One level of flattening: items of inner lists, and anything else as is.
    Used to merge per-worker result lists.
    """
    for y in x:
        if isinstance(y, list):
            yield from y
        else:
            yield y


# =============================================================================
# Timing
# =============================================================================

@contextmanager
def time_section(name: str,
                 loglevel: int = logging.DEBUG) -> Generator[None, None, None]:
    """
    Logs how long the ``with`` block took, even if it raised.
    """
    start = timer()
    try:
        yield
    finally:
        rootlog.log(loglevel, f"{name}: {timer() - start:.3f} s")


# =============================================================================
# Self-testing
# =============================================================================

class TestUtil(unittest.TestCase):
    def test_prettylist(self) -> None:
        assert prettylist(["CRANE", "SLATE"]) == "CRANE, SLATE"
        assert prettylist([]) == ""

    def test_convert_sf(self) -> None:
        assert convert_sf(None) is None
        assert convert_sf(7) == 7
        assert convert_sf(3.14159) == 3.14
        assert convert_sf(0.0) == 0.0
        assert convert_sf((2.71828, 1)) == [2.72, 1]

    def test_flatten(self) -> None:
        assert list(flatten([[1, 2], 3, [4]])) == [1, 2, 3, 4]

    def test_time_section(self) -> None:
        with self.assertLogs(rootlog, level=logging.INFO) as cm:
            with self.assertRaises(KeyError):
                with time_section("Lookup", loglevel=logging.INFO):
                    raise KeyError("X")
        assert len(cm.output) == 1
        assert "Lookup: " in cm.output[0]
