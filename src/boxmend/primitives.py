"""
Primitive types for ASCII diagrams.

This module contains the glyph tables and the dataclasses that make up a
PrimitiveInventory: boxes, arrows, text rows, labels and connection lines.
Relationships between primitives (parent/child boxes, label attachments) are
stored as indices into the lists of the same inventory, never as object
references, so an inventory can be copied and compared by value.

Classes:
    BoxStyle: Closed set of border styles with their glyph tables.
    ArrowType: Family of an arrow tip glyph.
    Box: A rectangular box defined by its border.
    HorizontalArrow / VerticalArrow: Arrow runs.
    TextRow: One interior row of text inside a box.
    Label: Free text attached to a box or a vertical arrow.
    ConnectionLine: L-shaped path made of segments.
    PrimitiveInventory: The aggregate of everything detected in one block.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

# Single-line box characters
BOX_CHARS = {
    "top_left": "┌",
    "top_right": "┐",
    "bottom_left": "└",
    "bottom_right": "┘",
    "horizontal": "─",
    "vertical": "│",
}

# Double-line box characters
BOX_CHARS_DOUBLE = {
    "top_left": "╔",
    "top_right": "╗",
    "bottom_left": "╚",
    "bottom_right": "╝",
    "horizontal": "═",
    "vertical": "║",
}

# Rounded box characters
BOX_CHARS_ROUNDED = {
    "top_left": "╭",
    "top_right": "╮",
    "bottom_left": "╰",
    "bottom_right": "╯",
    "horizontal": "─",
    "vertical": "│",
}

# Junctions that may appear on or inside a box outline
JUNCTION_CHARS = "├┤┬┴┼╠╣╦╩╬╟╢╤╧╪╫"

# Every glyph the box detector flood-fills over
BOX_DRAWING_CHARS = frozenset(
    "─│┌┐└┘├┤┬┴┼┃═║╔╗╚╝╭╮╰╯" + JUNCTION_CHARS
)

CORNER_CHARS = frozenset("┌┐└┘╔╗╚╝╭╮╰╯")

VERTICAL_BORDER_CHARS = frozenset("│║┃")

RIGHTWARD_TIPS = frozenset("→⇒⟶⟹")
LEFTWARD_TIPS = frozenset("←⇐⟵⟸")
DOWNWARD_TIPS = frozenset("↓⇓")
UPWARD_TIPS = frozenset("↑⇑")

HORIZONTAL_TIPS = RIGHTWARD_TIPS | LEFTWARD_TIPS
VERTICAL_TIPS = DOWNWARD_TIPS | UPWARD_TIPS
ARROW_TIP_CHARS = HORIZONTAL_TIPS | VERTICAL_TIPS

# Shaft characters an arrow run may contain
HORIZONTAL_SHAFT_CHARS = frozenset("─")
VERTICAL_SHAFT_CHARS = frozenset("│┃")

# Line drawing characters for connection lines
LINE_CHARS = {
    "horizontal": "─",
    "vertical": "│",
    "corner_top_left": "┌",
    "corner_top_right": "┐",
    "corner_bottom_left": "└",
    "corner_bottom_right": "┘",
}


class BoxStyle(Enum):
    """Border style of a box."""

    SINGLE = "single"
    DOUBLE = "double"
    ROUNDED = "rounded"

    @property
    def chars(self) -> Dict[str, str]:
        """Glyph table for this style."""
        return _STYLE_CHARS[self]

    @classmethod
    def from_corner(cls, ch: str) -> Optional["BoxStyle"]:
        """Infer the style from a corner glyph, or None if it is not a corner."""
        for style, chars in _STYLE_CHARS.items():
            if ch in (
                chars["top_left"],
                chars["top_right"],
                chars["bottom_left"],
                chars["bottom_right"],
            ):
                return style
        return None


_STYLE_CHARS = {
    BoxStyle.SINGLE: BOX_CHARS,
    BoxStyle.DOUBLE: BOX_CHARS_DOUBLE,
    BoxStyle.ROUNDED: BOX_CHARS_ROUNDED,
}


class ArrowType(Enum):
    """Family of the tip glyph an arrow was drawn with."""

    STANDARD = "standard"
    DOUBLE = "double"
    LONG = "long"

    @classmethod
    def from_char(cls, ch: str) -> Optional["ArrowType"]:
        if ch in "→←↓↑":
            return cls.STANDARD
        if ch in "⇒⇐⇓⇑":
            return cls.DOUBLE
        if ch in "⟶⟵⟹⟸":
            return cls.LONG
        return None


@dataclass
class Box:
    """
    A rectangular box defined by its border.

    Attributes:
        top_left: (row, col) of the top-left corner.
        bottom_right: (row, col) of the bottom-right corner.
        style: Border style.
        parent_idx: Index of the enclosing box in the same inventory, if any.
        child_indices: Indices of boxes directly nested inside this one.
    """

    top_left: Tuple[int, int]
    bottom_right: Tuple[int, int]
    style: BoxStyle = BoxStyle.SINGLE
    parent_idx: Optional[int] = None
    child_indices: List[int] = field(default_factory=list)

    @property
    def top(self) -> int:
        return self.top_left[0]

    @property
    def bottom(self) -> int:
        return self.bottom_right[0]

    @property
    def left(self) -> int:
        return self.top_left[1]

    @property
    def right(self) -> int:
        return self.bottom_right[1]

    @property
    def width(self) -> int:
        """Number of columns, borders included."""
        return self.right - self.left + 1

    @property
    def height(self) -> int:
        """Number of rows, borders included."""
        return self.bottom - self.top + 1

    @property
    def center_col(self) -> int:
        return (self.left + self.right) // 2

    @property
    def center_row(self) -> int:
        return (self.top + self.bottom) // 2

    def contains_interior(self, row: int, col: int) -> bool:
        """Check if a position is inside the box (not on the border)."""
        return self.top < row < self.bottom and self.left < col < self.right

    def contains_border(self, row: int, col: int) -> bool:
        """Check if a position lies on the box border."""
        on_horizontal = row in (self.top, self.bottom) and (
            self.left <= col <= self.right
        )
        on_vertical = col in (self.left, self.right) and (
            self.top <= row <= self.bottom
        )
        return on_horizontal or on_vertical

    def strictly_contains(self, other: "Box") -> bool:
        """True if other's whole border lies strictly inside this box's interior."""
        return (
            self.top < other.top
            and other.bottom < self.bottom
            and self.left < other.left
            and other.right < self.right
        )

    def rows_overlap(self, other: "Box") -> bool:
        return self.top <= other.bottom and other.top <= self.bottom

    def shifted(self, d_row: int, d_col: int) -> "Box":
        return Box(
            top_left=(self.top + d_row, self.left + d_col),
            bottom_right=(self.bottom + d_row, self.right + d_col),
            style=self.style,
            parent_idx=self.parent_idx,
            child_indices=list(self.child_indices),
        )

    def border_cells(self) -> List[Tuple[int, int]]:
        """All (row, col) cells of the outline, corners included."""
        cells = []
        for col in range(self.left, self.right + 1):
            cells.append((self.top, col))
            cells.append((self.bottom, col))
        for row in range(self.top + 1, self.bottom):
            cells.append((row, self.left))
            cells.append((row, self.right))
        return cells


@dataclass
class HorizontalArrow:
    """
    A horizontal arrow run such as ``──→`` or ``←──→``.

    Attributes:
        row: Row position.
        start_col: First column of the run.
        end_col: Last column of the run (inclusive).
        rightward: Direction flag, False when the first tip points left.
        arrow_type: Family of the first tip glyph.
        arrow_char: First tip glyph in the run (the override glyph).
        start_char: Tip glyph sitting on start_col, if any.
        end_char: Tip glyph sitting on end_col, if any.
        line_char: Shaft glyph.
    """

    row: int
    start_col: int
    end_col: int
    rightward: bool = True
    arrow_type: ArrowType = ArrowType.STANDARD
    arrow_char: Optional[str] = None
    start_char: Optional[str] = None
    end_char: Optional[str] = None
    line_char: str = "─"

    def cells(self) -> List[Tuple[int, int]]:
        return [(self.row, col) for col in range(self.start_col, self.end_col + 1)]


@dataclass
class VerticalArrow:
    """
    A vertical arrow run such as a column of ``│`` ending in ``↓``.

    ``arrow_char`` is None for tip-less connectors made of shaft glyphs only.
    ``downward`` is read from the glyph at start_row: False only when that
    glyph is an upward tip.
    """

    col: int
    start_row: int
    end_row: int
    downward: bool = True
    arrow_type: ArrowType = ArrowType.STANDARD
    arrow_char: Optional[str] = None
    start_char: Optional[str] = None
    end_char: Optional[str] = None
    line_char: str = "│"

    def cells(self) -> List[Tuple[int, int]]:
        return [(row, self.col) for row in range(self.start_row, self.end_row + 1)]


@dataclass
class TextRow:
    """A row of text inside a box."""

    row: int
    start_col: int
    end_col: int  # inclusive
    content: str


class AttachmentKind(Enum):
    """What kind of primitive a label is attached to."""

    BOX = "box"
    VERTICAL_ARROW = "vertical_arrow"


@dataclass(frozen=True)
class LabelAttachment:
    """Tagged reference from a label to a box or a vertical arrow."""

    kind: AttachmentKind
    index: int

    @classmethod
    def box(cls, index: int) -> "LabelAttachment":
        return cls(AttachmentKind.BOX, index)

    @classmethod
    def vertical_arrow(cls, index: int) -> "LabelAttachment":
        return cls(AttachmentKind.VERTICAL_ARROW, index)


@dataclass
class Label:
    """
    Free-standing text next to a primitive.

    Attributes:
        row: Row of the first character.
        col: Column of the first character.
        content: The label text.
        attached_to: The primitive the label belongs to.
        offset: Signed (d_row, d_col) from the attachment's anchor. Only boxes
            report a real offset (from their center); arrows report (0, 0).
    """

    row: int
    col: int
    content: str
    attached_to: LabelAttachment
    offset: Tuple[int, int] = (0, 0)

    @property
    def end_col(self) -> int:
        return self.col + len(self.content) - 1


@dataclass
class HorizontalSegment:
    row: int
    start_col: int
    end_col: int


@dataclass
class VerticalSegment:
    col: int
    start_row: int
    end_row: int


Segment = Union[HorizontalSegment, VerticalSegment]


@dataclass
class ConnectionLine:
    """An L-shaped path between primitives, as an ordered list of segments."""

    segments: List[Segment] = field(default_factory=list)


@dataclass
class PrimitiveInventory:
    """
    All primitives detected in one diagram block.

    Every index stored inside a primitive (parent_idx, child_indices, label
    attachments) refers to the lists of this same inventory.
    """

    boxes: List[Box] = field(default_factory=list)
    horizontal_arrows: List[HorizontalArrow] = field(default_factory=list)
    vertical_arrows: List[VerticalArrow] = field(default_factory=list)
    text_rows: List[TextRow] = field(default_factory=list)
    connection_lines: List[ConnectionLine] = field(default_factory=list)
    labels: List[Label] = field(default_factory=list)

    def copy(self) -> "PrimitiveInventory":
        """Deep copy, so transforms never mutate their input."""
        return copy.deepcopy(self)

    def is_empty(self) -> bool:
        """True when there is nothing the normalizer or renderer can act on."""
        return not (self.boxes or self.horizontal_arrows or self.vertical_arrows)

    def has_nesting(self) -> bool:
        return any(b.parent_idx is not None for b in self.boxes)

    def summary(self) -> Dict[str, int]:
        """Counts per primitive kind, used for trace stages."""
        return {
            "boxes": len(self.boxes),
            "horizontal_arrows": len(self.horizontal_arrows),
            "vertical_arrows": len(self.vertical_arrows),
            "text_rows": len(self.text_rows),
            "connection_lines": len(self.connection_lines),
            "labels": len(self.labels),
        }
