"""
Debug utilities for boxmend.

Key Components:
- TracedGrid: Grid wrapper that records every write to a RenderTrace
- visual_diff: Compare two diagrams character by character
- GridInspector: Find glyphs and pull rows, columns and regions out of a grid

Usage:
    # TracedGrid is used by the renderer when a trace is passed in:
    >>> trace = RenderTrace()
    >>> grid = render_onto_grid(inventory, original, trace=trace)

    # For comparing expected vs actual output:
    >>> from boxmend.debug import visual_diff
    >>> print(visual_diff(expected_output, actual_output))
"""

from typing import Dict, List, Optional, Tuple

from .grid import Grid
from .primitives import ARROW_TIP_CHARS, CORNER_CHARS, JUNCTION_CHARS
from .tracer import RenderTrace


class TracedGrid:
    """
    Grid wrapper that logs all character writes to a RenderTrace.

    Reads and writes go to the wrapped Grid; every set() that lands inside
    the grid is also recorded. A "current source" identifies the code doing
    the writes; update it with set_source() before drawing.

    Example:
        >>> grid = Grid.blank(3, 5)
        >>> trace = RenderTrace()
        >>> traced = TracedGrid(grid, trace)
        >>> traced.set_source("renderer.draw_box")
        >>> traced.set(0, 0, "┌", reason="box_border")
        >>> print(trace.character_placements[-1])
    """

    def __init__(self, grid: Grid, trace: RenderTrace):
        self._grid = grid
        self._trace = trace
        self._current_source = "unknown"

    @property
    def grid(self) -> Grid:
        """The wrapped grid."""
        return self._grid

    @property
    def rows(self) -> List[List[str]]:
        return self._grid.rows

    @property
    def width(self) -> int:
        return self._grid.width

    @property
    def height(self) -> int:
        return self._grid.height

    def set_source(self, source: str) -> None:
        """Set the source recorded for the following writes."""
        self._current_source = source

    def set(self, row: int, col: int, char: str, reason: str = "") -> bool:
        """
        Set a character and record the placement.

        Args:
            row: Row index
            col: Column index
            char: Character to place
            reason: Why this character is being placed. If empty, a reason
                is inferred from the character.

        Returns:
            False if the write fell outside the grid (nothing is recorded).
        """
        prev = self._grid.get(row, col)
        if not self._grid.set(row, col, char):
            return False

        if not reason:
            reason = self._infer_reason(char, prev)

        self._trace.add_placement(
            row=row,
            col=col,
            char=char,
            previous_char=prev if prev is not None else " ",
            reason=reason,
            source=self._current_source,
        )
        return True

    def get(self, row: int, col: int) -> Optional[str]:
        return self._grid.get(row, col)

    def resize(self, height: int, width: int) -> None:
        self._grid.resize(height, width)

    def lines(self) -> List[str]:
        return self._grid.lines()

    def render(self) -> str:
        return self._grid.render()

    def _infer_reason(self, char: str, prev: Optional[str]) -> str:
        if char == " ":
            return "erase"
        if char in "│┃║":
            return "vertical_line"
        if char in "─═":
            return "horizontal_line"
        if char in CORNER_CHARS:
            return "corner"
        if char in JUNCTION_CHARS:
            return "junction"
        if char in ARROW_TIP_CHARS:
            return "arrow_tip"
        return "char_placement"


def visual_diff(expected: str, actual: str, context_lines: int = 2) -> str:
    """
    Generate a character-level diff between two diagrams.

    Args:
        expected: The expected output
        actual: The actual output
        context_lines: Number of matching lines to show around differences

    Returns:
        A formatted string showing the differing lines, with a marker row
        pointing at each differing column.

    Example:
        >>> expected = "┌───┐\\n│ A │\\n└───┘"
        >>> actual = "┌───┐\\n│ B │\\n└───┘"
        >>> print(visual_diff(expected, actual))
    """
    exp_lines = expected.split("\n")
    act_lines = actual.split("\n")

    output: List[str] = ["=" * 60, "VISUAL DIFF", "=" * 60]

    max_lines = max(len(exp_lines), len(act_lines))
    diff_line_indices: List[int] = []
    for i in range(max_lines):
        exp_line = exp_lines[i] if i < len(exp_lines) else ""
        act_line = act_lines[i] if i < len(act_lines) else ""
        if exp_line != act_line:
            diff_line_indices.append(i)

    if not diff_line_indices:
        output.append("No differences found.")
        return "\n".join(output)

    output.append(f"Found {len(diff_line_indices)} differing line(s)")
    output.append("")

    shown_lines: set = set()
    for diff_idx in diff_line_indices:
        start = max(0, diff_idx - context_lines)
        stop = min(max_lines, diff_idx + context_lines + 1)
        shown_lines.update(range(start, stop))

    prev_shown = -2
    for i in sorted(shown_lines):
        if i > prev_shown + 1:
            output.append("...")

        exp_line = exp_lines[i] if i < len(exp_lines) else ""
        act_line = act_lines[i] if i < len(act_lines) else ""

        if exp_line == act_line:
            output.append(f"{i:3d}:   {act_line}")
        else:
            output.append(f"{i:3d}: E |{exp_line}|")
            output.append(f"     A |{act_line}|")

            max_len = max(len(exp_line), len(act_line))
            diff_positions = [
                j
                for j in range(max_len)
                if (exp_line[j] if j < len(exp_line) else "")
                != (act_line[j] if j < len(act_line) else "")
            ]
            marker = [" "] * (max_len + 8)  # "     A |" prefix
            for pos in diff_positions:
                marker[pos + 8] = "^"
            output.append("".join(marker).rstrip())
            output.append(
                f"     Diff at col(s): {diff_positions[:5]}"
                f"{'...' if len(diff_positions) > 5 else ''}"
            )

        prev_shown = i

    return "\n".join(output)


class GridInspector:
    """
    Utilities for inspecting grid state.

    Absent cells (past the end of a short row) read as spaces here, so rows
    and regions always come back rectangular.
    """

    def __init__(self, grid: Grid):
        self._grid = grid

    def _cell(self, row: int, col: int) -> str:
        ch = self._grid.get(row, col)
        return ch if ch is not None else " "

    def find_char(self, char: str) -> List[Tuple[int, int]]:
        """Find all (row, col) positions of a character."""
        positions = []
        for row in range(self._grid.height):
            for col in range(self._grid.width):
                if self._grid.get(row, col) == char:
                    positions.append((row, col))
        return positions

    def find_chars(self, chars: str) -> List[Tuple[int, int, str]]:
        """
        Find all positions of any character in the given set.

        Args:
            chars: String of characters to find (e.g., "┌┐└┘")

        Returns:
            List of (row, col, char) tuples
        """
        positions = []
        char_set = set(chars)
        for row in range(self._grid.height):
            for col in range(self._grid.width):
                ch = self._grid.get(row, col)
                if ch in char_set:
                    positions.append((row, col, ch))
        return positions

    def get_row(self, row: int) -> str:
        if 0 <= row < self._grid.height:
            return "".join(self._cell(row, col) for col in range(self._grid.width))
        return ""

    def get_column(self, col: int) -> str:
        if 0 <= col < self._grid.width:
            return "".join(self._cell(row, col) for row in range(self._grid.height))
        return ""

    def get_region(self, row: int, col: int, height: int, width: int) -> str:
        """Get a rectangular region as a multi-line string."""
        lines = []
        for r in range(row, row + height):
            lines.append("".join(self._cell(r, c) for c in range(col, col + width)))
        return "\n".join(lines)

    def count_char(self, char: str) -> int:
        return len(self.find_char(char))

    def get_line_chars_count(self) -> Dict[str, int]:
        """Count every line-drawing and arrow glyph on the grid."""
        counts: Dict[str, int] = {}
        for _, _, ch in self.find_chars("│─┌┐└┘├┤┬┴┼║═╔╗╚╝╭╮╰╯→←↓↑"):
            counts[ch] = counts.get(ch, 0) + 1
        return counts
