"""Pytest configuration and shared fixtures."""

import os

import pytest

# Keep settings deterministic regardless of the developer's environment
for _name in list(os.environ):
    if _name.startswith("STAGING_"):
        del os.environ[_name]

from input_staging.services.chunking.models import LimitConfig


@pytest.fixture
def small_limits() -> LimitConfig:
    """Limits small enough to exercise every boundary level in short strings.

    Truncation budget: 315 chars. Stage budget: 80 units / 280 chars.
    """
    return LimitConfig(max_units=100, max_chars=720000, warning_threshold=50)


@pytest.fixture
def hundred_char_paragraphs() -> list:
    """Five distinct paragraphs of exactly 100 characters."""
    return [(f"P{i} " + "x" * 97)[:100] for i in range(5)]


@pytest.fixture
def sentence_paragraph() -> str:
    """A single paragraph of 40 short sentences (1109 chars)."""
    return " ".join(f"Sentence number {i} is here." for i in range(40))
