"""
Character grid for ASCII diagrams.

A Grid holds one list of characters per input line. Rows keep their own
length (no padding), so rendering a grid built from lines gives back exactly
those lines, trailing whitespace included.
"""

from typing import Iterable, List, Optional


class Grid:
    """
    A 2D character grid addressed by (row, col).

    Reads outside a stored row return None ("absent"); writes outside the
    grid are dropped. Neither ever raises.
    """

    def __init__(self, rows: Optional[List[List[str]]] = None):
        self.rows: List[List[str]] = rows if rows is not None else []

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "Grid":
        """Create a grid with one row per line."""
        return cls([list(line) for line in lines])

    @classmethod
    def blank(cls, height: int, width: int, fill_char: str = " ") -> "Grid":
        """Create a grid of the given size filled with fill_char."""
        return cls([[fill_char] * width for _ in range(height)])

    @property
    def height(self) -> int:
        return len(self.rows)

    @property
    def width(self) -> int:
        """Length of the longest row."""
        return max((len(row) for row in self.rows), default=0)

    def get(self, row: int, col: int) -> Optional[str]:
        """Get the character at (row, col), or None when out of range."""
        if 0 <= row < len(self.rows) and 0 <= col < len(self.rows[row]):
            return self.rows[row][col]
        return None

    def set(self, row: int, col: int, char: str) -> bool:
        """Set the character at (row, col). Returns False if out of range."""
        if 0 <= row < len(self.rows) and 0 <= col < len(self.rows[row]):
            self.rows[row][col] = char
            return True
        return False

    def resize(self, height: int, width: int) -> None:
        """Grow the grid to at least height x width, padding with spaces."""
        while len(self.rows) < height:
            self.rows.append([])
        for row in self.rows:
            if len(row) < width:
                row.extend(" " * (width - len(row)))

    def copy(self) -> "Grid":
        return Grid([list(row) for row in self.rows])

    def lines(self) -> List[str]:
        return ["".join(row) for row in self.rows]

    def render(self) -> str:
        """Render the grid to a string, keeping trailing whitespace."""
        return "\n".join(self.lines())

    def render_trimmed(self) -> str:
        """Render the grid, trimming trailing whitespace from each line."""
        return "\n".join(line.rstrip() for line in self.lines())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return self.rows == other.rows

    def __repr__(self) -> str:
        return f"Grid(height={self.height}, width={self.width})"
