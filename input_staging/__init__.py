"""Bounded-input staging for size-limited text consumers."""

__version__ = "0.1.0"
