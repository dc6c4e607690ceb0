"""
Diagram block scanner.

Splits a plain-text or Markdown document into candidate diagram blocks:
runs of non-blank lines outside fenced code blocks and outside regions
marked with ``<!-- boxmend-ignore-start -->`` / ``<!-- boxmend-ignore-end -->``.

Inline code spans (`like this`) are masked with spaces before a line joins
a block, so glyphs quoted in prose are never read as part of a diagram.
The spans are kept on the block and written back after repair.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

IGNORE_START = "<!-- boxmend-ignore-start -->"
IGNORE_END = "<!-- boxmend-ignore-end -->"


@dataclass
class InlineCodeSpan:
    """A backtick-quoted span on one line, backticks included."""

    start_col: int
    end_col: int  # closing backtick (inclusive)
    content: str


def detect_inline_code_spans(line: str) -> List[InlineCodeSpan]:
    """
    Find inline code spans on a line.

    A backtick preceded by a backslash is escaped and neither opens nor
    closes a span. An opening backtick with no closing one is ignored.
    """
    spans: List[InlineCodeSpan] = []
    i = 0
    while i < len(line):
        if line[i] != "`" or (i > 0 and line[i - 1] == "\\"):
            i += 1
            continue

        start = i
        i += 1
        while i < len(line) and (line[i] != "`" or line[i - 1] == "\\"):
            i += 1
        if i < len(line):
            spans.append(InlineCodeSpan(start, i, line[start : i + 1]))
        i += 1

    return spans


def mask_inline_code(line: str) -> Tuple[str, List[InlineCodeSpan]]:
    """Replace every inline code span with spaces, keeping column positions."""
    spans = detect_inline_code_spans(line)
    if not spans:
        return line, spans

    chars = list(line)
    for span in spans:
        for col in range(span.start_col, span.end_col + 1):
            chars[col] = " "
    return "".join(chars), spans


def restore_inline_code(line: str, spans: List[InlineCodeSpan]) -> str:
    """Write masked spans back into a line, padding it if it was trimmed."""
    if not spans:
        return line

    width = max(span.end_col for span in spans) + 1
    chars = list(line.ljust(width))
    for span in spans:
        for offset, ch in enumerate(span.content):
            chars[span.start_col + offset] = ch
    return "".join(chars)


@dataclass
class DiagramBlock:
    """A contiguous run of lines that may hold a diagram."""

    start_line: int  # 0-based index into text.split("\n")
    lines: List[str] = field(default_factory=list)  # inline code masked
    inline_code_spans: List[List[InlineCodeSpan]] = field(default_factory=list)

    @property
    def end_line(self) -> int:
        """Index of the last line in the block (inclusive)."""
        return self.start_line + len(self.lines) - 1


class BlockScanner:
    """Finds diagram blocks in a document, skipping fenced code and ignore regions."""

    # Up to three spaces of indentation, then ``` or ~~~ (or longer)
    FENCE_PATTERN = re.compile(r"^ {0,3}(`{3,}|~{3,})(.*)$")

    def __init__(self):
        self.blocks: List[DiagramBlock] = []
        self._current: Optional[DiagramBlock] = None

    def scan(self, text: str) -> List[DiagramBlock]:
        """
        Scan a document for diagram blocks.

        Args:
            text: The whole document

        Returns:
            Blocks in document order.
        """
        self.blocks = []
        self._current = None

        fence: Optional[str] = None
        ignoring = False

        for line_num, line in enumerate(text.split("\n")):
            stripped = line.strip()

            if fence is not None:
                if self._closes_fence(line, fence):
                    fence = None
                continue

            if ignoring:
                if stripped == IGNORE_END:
                    ignoring = False
                continue

            if stripped == IGNORE_START:
                self._finish_block()
                ignoring = True
                continue

            match = self.FENCE_PATTERN.match(line)
            if match:
                self._finish_block()
                fence = match.group(1)
                continue

            if not stripped:
                self._finish_block()
                continue

            if self._current is None:
                self._current = DiagramBlock(start_line=line_num)
            masked, spans = mask_inline_code(line)
            self._current.lines.append(masked)
            self._current.inline_code_spans.append(spans)

        self._finish_block()
        return self.blocks

    def _closes_fence(self, line: str, fence: str) -> bool:
        match = self.FENCE_PATTERN.match(line)
        if not match or match.group(2).strip():
            return False
        marker = match.group(1)
        return marker[0] == fence[0] and len(marker) >= len(fence)

    def _finish_block(self) -> None:
        if self._current is not None and self._current.lines:
            self.blocks.append(self._current)
        self._current = None


def extract_diagram_blocks(text: str) -> List[DiagramBlock]:
    """Convenience function to scan a document for diagram blocks."""
    return BlockScanner().scan(text)
