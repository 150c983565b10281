"""
Text normalization and boundary splitting.

All offsets returned here point into the *normalized* text, which is the
text the chunker works on.
"""

import re
from dataclasses import dataclass
from typing import List, Optional


PARAGRAPH_SEPARATOR = "\n\n"
SENTENCE_SEPARATOR = " "

# Sentence ends at . ! ? (optionally followed by closing quotes/brackets)
# when the next sentence starts with an upper-case letter, digit or opening quote.
_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])([\"')\]]*)\s+(?=[\"'(\[]?[A-Z0-9])")
_INLINE_WS_RE = re.compile(r"[^\S\n]+")
_SPACE_AROUND_NEWLINE_RE = re.compile(r" *\n *")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")
_PAGE_MARKER_RE = re.compile(r"\b(?:page|p\.)\s*(\d+)", re.IGNORECASE)


@dataclass(frozen=True)
class TextUnit:
    """A paragraph or sentence with its span and the separator that joins it to the previous unit."""
    text: str
    start: int
    end: int
    separator: str = PARAGRAPH_SEPARATOR


def normalize_text(text: str) -> str:
    """Normalize line endings and whitespace; paragraphs end up separated by exactly one blank line."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _INLINE_WS_RE.sub(" ", text)
    text = _SPACE_AROUND_NEWLINE_RE.sub("\n", text)
    text = _EXCESS_NEWLINES_RE.sub("\n\n", text)
    return text.strip()


def split_paragraphs(text: str) -> List[TextUnit]:
    """Split normalized text on blank lines."""
    units = []
    pos = 0
    for part in text.split(PARAGRAPH_SEPARATOR):
        start = pos
        pos += len(part) + len(PARAGRAPH_SEPARATOR)
        stripped = part.strip()
        if not stripped:
            continue
        lead = len(part) - len(part.lstrip())
        units.append(TextUnit(stripped, start + lead, start + lead + len(stripped), PARAGRAPH_SEPARATOR))
    return units


def split_sentences(unit: TextUnit, first_separator: Optional[str] = None) -> List[TextUnit]:
    """
    Split a unit into sentences.

    The first sentence keeps ``first_separator`` (the unit's own separator by
    default) so it still attaches to whatever preceded the unit; the rest
    are joined with a single space.
    """
    first_separator = unit.separator if first_separator is None else first_separator
    sentences = []
    cursor = 0
    # (end of sentence incl. closing quotes, start of next sentence)
    boundaries = [(m.end(1), m.end()) for m in _SENTENCE_BOUNDARY_RE.finditer(unit.text)]
    boundaries.append((len(unit.text), len(unit.text)))

    for end, next_start in boundaries:
        piece = unit.text[cursor:end]
        stripped = piece.strip()
        if stripped:
            lead = len(piece) - len(piece.lstrip())
            start = unit.start + cursor + lead
            separator = first_separator if not sentences else SENTENCE_SEPARATOR
            sentences.append(TextUnit(stripped, start, start + len(stripped), separator))
        cursor = next_start

    return sentences


def extract_page_number(text: str, start_char: int) -> Optional[int]:
    """Page number from the last "Page N" / "p. N" marker before ``start_char``, or None."""
    last = None
    for match in _PAGE_MARKER_RE.finditer(text, 0, start_char):
        last = match
    if last is None:
        return None
    return int(last.group(1))
