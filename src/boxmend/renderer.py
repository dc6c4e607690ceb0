"""
Rendering of a PrimitiveInventory back to a character grid.

Two entry points:

- render_diagram: draw the inventory on a fresh, space-filled grid
- render_onto_grid: redraw the inventory on top of the grid it came from,
  keeping every cell the detector did not model

Draw order (later writes win):
1. Box borders (junction glyphs already on a border are kept)
2. Text rows
3. Horizontal arrows, then vertical arrows
4. Connection lines and their elbows
5. Labels
"""

from typing import List, Optional, Tuple, Union

from .debug import TracedGrid
from .detector import detect_all_primitives
from .grid import Grid
from .primitives import (
    BOX_DRAWING_CHARS,
    HORIZONTAL_SHAFT_CHARS,
    HORIZONTAL_TIPS,
    JUNCTION_CHARS,
    LINE_CHARS,
    VERTICAL_BORDER_CHARS,
    VERTICAL_SHAFT_CHARS,
    VERTICAL_TIPS,
    AttachmentKind,
    Box,
    ConnectionLine,
    HorizontalArrow,
    HorizontalSegment,
    Label,
    PrimitiveInventory,
    Segment,
    TextRow,
    VerticalArrow,
)
from .tracer import RenderTrace

Target = Union[Grid, TracedGrid]

# Columns searched on each side of a label for the arrow it sits under
LABEL_RECENTER_WINDOW = 2

# Elbow glyph for each pair of directions a path leaves a corner cell in
ELBOW_CHARS = {
    frozenset(("right", "below")): LINE_CHARS["corner_top_left"],
    frozenset(("left", "below")): LINE_CHARS["corner_top_right"],
    frozenset(("right", "above")): LINE_CHARS["corner_bottom_left"],
    frozenset(("left", "above")): LINE_CHARS["corner_bottom_right"],
}


def _set_source(target: Target, source: str) -> None:
    if isinstance(target, TracedGrid):
        target.set_source(source)


def _inside_any_interior(boxes: List[Box], row: int, col: int) -> bool:
    return any(b.contains_interior(row, col) for b in boxes)


def _extent(inventory: PrimitiveInventory) -> Tuple[int, int]:
    """(height, width) needed to hold every primitive."""
    height = 0
    width = 0
    for b in inventory.boxes:
        height = max(height, b.bottom + 1)
        width = max(width, b.right + 1)
    for h_arrow in inventory.horizontal_arrows:
        height = max(height, h_arrow.row + 1)
        width = max(width, h_arrow.end_col + 1)
    for v_arrow in inventory.vertical_arrows:
        height = max(height, v_arrow.end_row + 1)
        width = max(width, v_arrow.col + 1)
    for text_row in inventory.text_rows:
        height = max(height, text_row.row + 1)
        width = max(width, text_row.end_col + 1)
    for label in inventory.labels:
        height = max(height, label.row + 1)
        width = max(width, label.end_col + 1)
    for line in inventory.connection_lines:
        for segment in line.segments:
            if isinstance(segment, HorizontalSegment):
                height = max(height, segment.row + 1)
                width = max(width, segment.end_col + 1)
            else:
                height = max(height, segment.end_row + 1)
                width = max(width, segment.col + 1)
    return height, width


def draw_box(target: Target, b: Box) -> None:
    """Draw a box outline in its style, keeping junctions already on the border."""
    _set_source(target, "renderer.draw_box")
    chars = b.style.chars

    def put(row: int, col: int, ch: str) -> None:
        if target.get(row, col) not in JUNCTION_CHARS:
            target.set(row, col, ch)

    for col in range(b.left + 1, b.right):
        put(b.top, col, chars["horizontal"])
        put(b.bottom, col, chars["horizontal"])
    for row in range(b.top + 1, b.bottom):
        put(row, b.left, chars["vertical"])
        put(row, b.right, chars["vertical"])

    put(b.top, b.left, chars["top_left"])
    put(b.top, b.right, chars["top_right"])
    put(b.bottom, b.left, chars["bottom_left"])
    put(b.bottom, b.right, chars["bottom_right"])


def draw_text_row(target: Target, text_row: TextRow) -> None:
    """Draw a text row clipped to its end column. Cells past the content are left as they are."""
    if not text_row.content.strip():
        return
    _set_source(target, "renderer.draw_text_row")
    span = text_row.end_col - text_row.start_col + 1
    for offset, ch in enumerate(text_row.content[:span]):
        target.set(text_row.row, text_row.start_col + offset, ch)


def draw_horizontal_arrow(target: Target, arrow: HorizontalArrow) -> None:
    _set_source(target, "renderer.draw_horizontal_arrow")
    for col in range(arrow.start_col, arrow.end_col + 1):
        current = target.get(arrow.row, col)
        if current == " " or current in HORIZONTAL_SHAFT_CHARS or current in HORIZONTAL_TIPS:
            target.set(arrow.row, col, arrow.line_char)

    if arrow.start_char:
        target.set(arrow.row, arrow.start_col, arrow.start_char)
    if arrow.end_char:
        target.set(arrow.row, arrow.end_col, arrow.end_char)
    if not arrow.start_char and not arrow.end_char and arrow.arrow_char:
        # Tip was mid-run; move it to the end it points at
        col = arrow.end_col if arrow.rightward else arrow.start_col
        target.set(arrow.row, col, arrow.arrow_char)


def draw_vertical_arrow(target: Target, arrow: VerticalArrow) -> None:
    _set_source(target, "renderer.draw_vertical_arrow")
    for row in range(arrow.start_row, arrow.end_row + 1):
        current = target.get(row, arrow.col)
        if current == " " or current in VERTICAL_SHAFT_CHARS or current in VERTICAL_TIPS:
            target.set(row, arrow.col, arrow.line_char)

    if arrow.start_char:
        target.set(arrow.start_row, arrow.col, arrow.start_char)
    if arrow.end_char:
        target.set(arrow.end_row, arrow.col, arrow.end_char)
    if not arrow.start_char and not arrow.end_char and arrow.arrow_char:
        row = arrow.end_row if arrow.downward else arrow.start_row
        target.set(row, arrow.col, arrow.arrow_char)


def _segment_ends(segment: Segment) -> Tuple[Tuple[int, int], Tuple[int, int]]:
    if isinstance(segment, HorizontalSegment):
        return (segment.row, segment.start_col), (segment.row, segment.end_col)
    return (segment.start_row, segment.col), (segment.end_row, segment.col)


def _direction(origin: Tuple[int, int], toward: Tuple[int, int]) -> Optional[str]:
    if toward[0] == origin[0] and toward[1] < origin[1]:
        return "left"
    if toward[0] == origin[0] and toward[1] > origin[1]:
        return "right"
    if toward[1] == origin[1] and toward[0] < origin[0]:
        return "above"
    if toward[1] == origin[1] and toward[0] > origin[0]:
        return "below"
    return None


def elbow_char(
    corner: Tuple[int, int], first: Tuple[int, int], second: Tuple[int, int]
) -> Optional[str]:
    """
    Pick the elbow glyph for a corner cell.

    Args:
        corner: The cell where two segments meet
        first: The far end of one segment
        second: The far end of the other segment

    Returns:
        The corner glyph, or None for a straight or degenerate pair.
    """
    directions = frozenset((_direction(corner, first), _direction(corner, second)))
    return ELBOW_CHARS.get(directions)


def draw_connection_line(target: Target, line: ConnectionLine) -> None:
    _set_source(target, "renderer.draw_connection_line")

    for segment in line.segments:
        if isinstance(segment, HorizontalSegment):
            cells = [(segment.row, c) for c in range(segment.start_col, segment.end_col + 1)]
            glyph = LINE_CHARS["horizontal"]
        else:
            cells = [(r, segment.col) for r in range(segment.start_row, segment.end_row + 1)]
            glyph = LINE_CHARS["vertical"]
        for row, col in cells:
            if target.get(row, col) not in JUNCTION_CHARS:
                target.set(row, col, glyph)

    for first, second in zip(line.segments, line.segments[1:]):
        first_ends = _segment_ends(first)
        second_ends = _segment_ends(second)
        shared = [cell for cell in first_ends if cell in second_ends]
        if not shared:
            continue
        corner = shared[0]
        far_first = first_ends[1] if first_ends[0] == corner else first_ends[0]
        far_second = second_ends[1] if second_ends[0] == corner else second_ends[0]
        glyph = elbow_char(corner, far_first, far_second)
        if glyph is not None:
            target.set(corner[0], corner[1], glyph)


def _recentered_col(target: Target, label: Label, inventory: PrimitiveInventory) -> int:
    """
    Column a label under a vertical arrow should start at.

    Only labels directly below the end of their arrow move. The arrow glyph
    is looked up in the row above the label, within a small window around
    the label, and the label is centered under it.
    """
    index = label.attached_to.index
    if not 0 <= index < len(inventory.vertical_arrows):
        return label.col
    arrow = inventory.vertical_arrows[index]
    if arrow.end_row != label.row - 1:
        return label.col

    arrow_glyphs = VERTICAL_SHAFT_CHARS | VERTICAL_TIPS
    center = label.col + len(label.content) // 2
    best: Optional[int] = None
    for col in range(
        label.col - LABEL_RECENTER_WINDOW, label.end_col + LABEL_RECENTER_WINDOW + 1
    ):
        if col < 0 or target.get(label.row - 1, col) not in arrow_glyphs:
            continue
        if best is None or abs(col - center) < abs(best - center):
            best = col

    if best is None:
        return label.col
    return max(0, best - len(label.content) // 2)


def draw_label(target: Target, label: Label, inventory: PrimitiveInventory) -> None:
    _set_source(target, "renderer.draw_label")
    col = label.col
    if label.attached_to.kind == AttachmentKind.VERTICAL_ARROW:
        col = _recentered_col(target, label, inventory)
    for offset, ch in enumerate(label.content):
        target.set(label.row, col + offset, ch)


def _draw_inventory(target: Target, inventory: PrimitiveInventory) -> None:
    boxes = inventory.boxes

    for b in boxes:
        draw_box(target, b)

    for text_row in inventory.text_rows:
        draw_text_row(target, text_row)

    for h_arrow in inventory.horizontal_arrows:
        if _inside_any_interior(boxes, h_arrow.row, h_arrow.start_col):
            continue
        if _inside_any_interior(boxes, h_arrow.row, h_arrow.end_col):
            continue
        draw_horizontal_arrow(target, h_arrow)

    for v_arrow in inventory.vertical_arrows:
        if _inside_any_interior(boxes, v_arrow.start_row, v_arrow.col):
            continue
        if _inside_any_interior(boxes, v_arrow.end_row, v_arrow.col):
            continue
        draw_vertical_arrow(target, v_arrow)

    for line in inventory.connection_lines:
        draw_connection_line(target, line)

    for label in inventory.labels:
        draw_label(target, label, inventory)


def _erase(target: Target, cells: List[Tuple[int, int]]) -> None:
    for row, col in cells:
        if target.get(row, col) not in (None, " "):
            target.set(row, col, " ")


def _strip_detected(
    target: Target, detected: PrimitiveInventory, inventory: PrimitiveInventory
) -> None:
    """Blank out the cells of everything the detector found in the original grid."""
    _set_source(target, "renderer.strip")
    new_boxes = inventory.boxes

    for h_arrow in detected.horizontal_arrows:
        if _inside_any_interior(new_boxes, h_arrow.row, h_arrow.start_col):
            continue
        if _inside_any_interior(new_boxes, h_arrow.row, h_arrow.end_col):
            continue
        _erase(target, h_arrow.cells())

    for v_arrow in detected.vertical_arrows:
        if _inside_any_interior(new_boxes, v_arrow.start_row, v_arrow.col):
            continue
        if _inside_any_interior(new_boxes, v_arrow.end_row, v_arrow.col):
            continue
        _erase(target, v_arrow.cells())

    for b in detected.boxes:
        _erase(
            target,
            [
                (row, col)
                for row, col in b.border_cells()
                if target.get(row, col) in BOX_DRAWING_CHARS
                and target.get(row, col) not in JUNCTION_CHARS
            ],
        )

    for text_row in detected.text_rows:
        _erase(
            target,
            [(text_row.row, col) for col in range(text_row.start_col, text_row.end_col + 1)],
        )
        closing = (text_row.row, text_row.end_col + 1)
        if target.get(*closing) in VERTICAL_BORDER_CHARS:
            _erase(target, [closing])

    for label in detected.labels:
        _erase(target, [(label.row, col) for col in range(label.col, label.end_col + 1)])


def _trim_padding(grid: Grid, original_lines: List[str]) -> None:
    """
    Undo padding that only served the drawing.

    Rows that differ from the original only by added trailing spaces get
    their original text back; every other changed row is right-trimmed.
    """
    for i, row in enumerate(grid.rows):
        line = "".join(row)
        if i < len(original_lines):
            original = original_lines[i]
            if line == original:
                continue
            if line.startswith(original) and not line[len(original):].strip():
                grid.rows[i] = list(original)
                continue
        grid.rows[i] = list(line.rstrip())


def render_diagram(
    inventory: PrimitiveInventory, trace: Optional[RenderTrace] = None
) -> Grid:
    """
    Render an inventory onto a fresh grid.

    The grid is sized to the bounding box of every primitive and filled with
    spaces, so anything the detector did not model is lost.
    """
    height, width = _extent(inventory)
    grid = Grid.blank(height, width)
    target: Target = TracedGrid(grid, trace) if trace is not None else grid
    _draw_inventory(target, inventory)
    return grid


def render_onto_grid(
    inventory: PrimitiveInventory,
    grid: Grid,
    trace: Optional[RenderTrace] = None,
) -> Grid:
    """
    Redraw an inventory on top of the grid it was detected from.

    The original grid is not modified. Primitives detected in it are erased
    first (junction glyphs on box borders survive), the grid grows if the
    inventory needs more room, and then everything is drawn. Cells that were
    never part of a primitive pass through unchanged.

    Args:
        inventory: Normalized primitives for this grid
        grid: The original grid
        trace: Optional RenderTrace recording every write

    Returns:
        A new Grid.
    """
    original_lines = grid.lines()
    result = grid.copy()
    target: Target = TracedGrid(result, trace) if trace is not None else result

    _strip_detected(target, detect_all_primitives(grid), inventory)

    height, width = _extent(inventory)
    result.resize(height, width)

    _draw_inventory(target, inventory)
    _trim_padding(result, original_lines)
    return result
