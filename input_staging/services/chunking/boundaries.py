"""Semantic boundary detection shared by the truncator and the stage chunker."""

import re
from typing import List, Pattern, Tuple

# Blank line(s) between paragraphs
PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n\s*")

# Terminal punctuation run followed by whitespace
SENTENCE_BREAK = re.compile(r"[.!?]+\s+")

WORD_BREAK = re.compile(r"\s+")

# Coarsest first
CASCADE: Tuple[Pattern[str], ...] = (PARAGRAPH_BREAK, SENTENCE_BREAK, WORD_BREAK)


def split_spans(text: str, pattern: Pattern[str], start: int = 0, end: int = None) -> List[Tuple[int, int]]:
    """Split ``text[start:end]`` into consecutive spans at ``pattern``.

    Each span keeps the separator that follows it, so the spans cover the
    range exactly and in order.

    Returns:
        List of (start, end) offsets into ``text``
    """
    if end is None:
        end = len(text)

    spans = []
    pos = start
    for match in pattern.finditer(text, start, end):
        if match.end() > pos:
            spans.append((pos, match.end()))
            pos = match.end()
    if pos < end:
        spans.append((pos, end))
    return spans


def trim_span(text: str, start: int, end: int) -> Tuple[int, int]:
    """Narrow (start, end) so the span neither starts nor ends with whitespace.

    A whitespace-only span collapses to an empty span at ``end``.
    """
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    return start, end
