"""
Document chunking for the knowledge base.

Splits documents into bounded, overlapping segments before embedding:
    - Paragraphs (blank-line separated) are grouped greedily up to chunk_size
    - Oversized groups are re-split on sentence boundaries
    - The tail of each chunk is carried into the next for context continuity
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional

PARAGRAPH_BREAK = re.compile(r"\n\n+")
SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")

# Chunks longer than chunk_size * OVERSIZE_FACTOR are re-split by sentence
OVERSIZE_FACTOR = 1.5


@dataclass
class Chunk:
    """A document chunk with metadata."""

    content: str
    """The text content of the chunk."""

    metadata: dict[str, Any] = field(default_factory=dict)
    """Metadata containing source, category, chunk_index and ingested_at."""


def chunk_text(
    text: str,
    chunk_size: int = 800,
    overlap: int = 120,
) -> list[str]:
    """
    Split text into overlapping chunks.

    Paragraphs are accumulated until the next one would push the buffer past
    chunk_size; the closed chunk's last `overlap` characters then seed the
    next buffer. Any chunk longer than chunk_size * 1.5 is split again on
    sentence boundaries with the same strategy. A single sentence longer than
    that bound is emitted whole.

    Args:
        text: Document text to chunk
        chunk_size: Target chunk size in characters
        overlap: Number of characters carried between adjacent chunks

    Returns:
        Chunks in source order. Never empty: input that yields no chunks
        (e.g. empty text) is returned as a single element.

    Raises:
        ValueError: If chunk_size <= 0 or overlap < 0
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0:
        raise ValueError(f"overlap must be non-negative, got {overlap}")

    stripped = text.strip()
    if not stripped:
        return [text]
    if len(stripped) <= chunk_size:
        return [stripped]

    max_length = int(chunk_size * OVERSIZE_FACTOR)

    paragraph_chunks = _accumulate(
        PARAGRAPH_BREAK.split(text), chunk_size, overlap, separator="\n\n"
    )

    result: list[str] = []
    for chunk in paragraph_chunks:
        if len(chunk) <= max_length:
            result.append(chunk)
            continue
        result.extend(
            _accumulate(
                SENTENCE_BREAK.split(chunk),
                chunk_size,
                overlap,
                separator=" ",
                max_length=max_length,
            )
        )

    return result or [text]


def _accumulate(
    pieces: list[str],
    chunk_size: int,
    overlap: int,
    separator: str,
    max_length: Optional[int] = None,
) -> list[str]:
    """
    Greedily join pieces into chunks of at most chunk_size characters.

    When max_length is given, the carried overlap is dropped whenever it would
    push a freshly seeded chunk past max_length.
    """
    chunks: list[str] = []
    current = ""

    for piece in pieces:
        if current and len(current) + len(separator) + len(piece) > chunk_size:
            if current.strip():
                chunks.append(current.strip())
            carry = _tail(current, overlap)
            if max_length is not None and len(carry) + len(separator) + len(piece) > max_length:
                carry = ""
            current = carry + separator + piece if carry else piece
        else:
            current = current + separator + piece if current else piece

    if current.strip():
        chunks.append(current.strip())

    return chunks


def _tail(text: str, overlap: int) -> str:
    """Return the last `overlap` characters of text (nothing for overlap 0)."""
    if overlap <= 0:
        return ""
    return text[-overlap:]
