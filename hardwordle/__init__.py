"""
Hard-mode Wordle assistant: tracks the clues from each round, works out which
words are still possible, and ranks the hard-mode-legal guesses by how much
they are expected to tell us.
"""

__version__ = "1.0.0"
