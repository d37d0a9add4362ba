"""
Line-based document splitter.

Config files are structured (YAML sections, JSON objects, .lang blocks),
so cuts are made at lines where a logical group is likely to begin:
blank lines, comments, section headers, bracket/brace lines. When no such
line exists near the cut point, the split falls back to exactly max_lines.
"""
import re
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .config import (
    TRANSLATION_CHUNK_MAX_LINES,
    TRANSLATION_CHUNK_THRESHOLD_LINES,
    TRANSLATION_CHUNK_BOUNDARY_LOOKBACK,
)

logger = logging.getLogger(__name__)

LINE_SEPARATOR = "\n"

# Boundary detection patterns (any match is a safe place to start a new chunk)
BLANK_LINE = re.compile(r'^\s*$')
COMMENT_LINE = re.compile(r'^\s*(#|//|;|!|--)')
SECTION_HEADER = re.compile(r'^\[[^\]]+\]\s*$')
TOP_LEVEL_KEY = re.compile(r'^[A-Za-z0-9_.\-"\']+:\s*$')
BRACKET_LINE = re.compile(r'^\s*[\[\]{}],?\s*$')

BOUNDARY_PATTERNS = (BLANK_LINE, COMMENT_LINE, SECTION_HEADER, TOP_LEVEL_KEY, BRACKET_LINE)


@dataclass
class Chunk:
    """A bounded slice of a document, translated independently."""
    index: int
    total: int
    lines: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return LINE_SEPARATOR.join(self.lines)

    @property
    def line_count(self) -> int:
        return len(self.lines)


def count_lines(content: str) -> int:
    return len(content.split(LINE_SEPARATOR))


def needs_chunking(content: str, threshold: int = TRANSLATION_CHUNK_THRESHOLD_LINES) -> bool:
    """True when the document has more lines than the chunk threshold."""
    return count_lines(content) > threshold


def is_safe_boundary(line: str) -> bool:
    """True when a new chunk may start at this line."""
    return any(pattern.match(line) for pattern in BOUNDARY_PATTERNS)


def find_split_point(buffer: List[str], lookback: int = TRANSLATION_CHUNK_BOUNDARY_LOOKBACK) -> Optional[int]:
    """
    Scan backward over the last `lookback` lines for a safe boundary.

    Index 0 is never returned so every cut emits at least one line.

    Returns:
        Index of the boundary line (it starts the next chunk), or None
    """
    lowest = max(1, len(buffer) - lookback)
    for i in range(len(buffer) - 1, lowest - 1, -1):
        if is_safe_boundary(buffer[i]):
            return i
    return None


def split_into_chunks(
    content: str,
    max_lines: int = TRANSLATION_CHUNK_MAX_LINES,
    lookback: int = TRANSLATION_CHUNK_BOUNDARY_LOOKBACK
) -> List[Chunk]:
    """
    Split content into chunks of at most max_lines lines.

    Joining every chunk's lines in order with "\\n" reproduces the input,
    except for whitespace-only chunks, which are dropped.

    Args:
        content: Full document text
        max_lines: Maximum lines per chunk
        lookback: Lines scanned backward for a safe boundary

    Returns:
        Non-empty chunks, indexed 0..n-1 with total=n
    """
    if max_lines < 1:
        raise ValueError("max_lines must be at least 1")

    pieces: List[List[str]] = []
    buffer: List[str] = []
    forced_cuts = 0

    for line in content.split(LINE_SEPARATOR):
        buffer.append(line)
        if len(buffer) < max_lines:
            continue

        cut = find_split_point(buffer, lookback)
        if cut is None:
            cut = len(buffer)
            forced_cuts += 1
        pieces.append(buffer[:cut])
        buffer = buffer[cut:]

    if buffer:
        pieces.append(buffer)

    non_empty = [piece for piece in pieces if LINE_SEPARATOR.join(piece).strip()]
    chunks = [
        Chunk(index=i, total=len(non_empty), lines=piece)
        for i, piece in enumerate(non_empty)
    ]

    logger.info(
        f"[SPLITTER] Split | lines={count_lines(content)} | chunks={len(chunks)} | "
        f"max_lines={max_lines} | forced_cuts={forced_cuts} | dropped_empty={len(pieces) - len(non_empty)}"
    )
    return chunks
