"""
Primitive detection for ASCII diagrams.

Turns a Grid into a PrimitiveInventory using only positional reasoning:

- Boxes: flood fill over box-drawing glyphs, accepted by bounding rectangle
- Arrows: per-row / per-column runs of shaft and tip glyphs
- Text rows: interior rows of each box
- Hierarchy: strict containment between boxes (networkx transitive reduction)
- Labels: short free text close to a box or a vertical arrow

Every rule is conservative. When a structure is ambiguous the primitive is
left out, and the renderer then leaves those cells exactly as they were.
"""

from collections import deque
from typing import Dict, List, Optional, Set, Tuple

import networkx as nx

from .grid import Grid
from .primitives import (
    ARROW_TIP_CHARS,
    BOX_DRAWING_CHARS,
    CORNER_CHARS,
    HORIZONTAL_SHAFT_CHARS,
    HORIZONTAL_TIPS,
    LEFTWARD_TIPS,
    UPWARD_TIPS,
    VERTICAL_BORDER_CHARS,
    VERTICAL_SHAFT_CHARS,
    VERTICAL_TIPS,
    ArrowType,
    AttachmentKind,
    Box,
    BoxStyle,
    ConnectionLine,
    HorizontalArrow,
    Label,
    LabelAttachment,
    PrimitiveInventory,
    TextRow,
    VerticalArrow,
)

Cell = Tuple[int, int]

# A label must be this close (in cells) to a box rectangle
LABEL_BOX_DISTANCE = 2
# ... or this close (in columns) to a vertical arrow
LABEL_ARROW_COLUMNS = 4
# A vertical arrow this close wins over any box
LABEL_ARROW_PREFERENCE = 3
# Rows above/below a vertical arrow's span where it can still own a label
LABEL_ARROW_ROW_REACH = 2


class BoxDetector:
    """
    Detects rectangular boxes in a grid.

    Algorithm:
    1. For each unvisited box-drawing glyph, start a flood fill
    2. Collect the connected component (4-connectivity)
    3. Keep the component's bounding rectangle if it is a valid box

    After detect() has run, ``components`` holds every flood-filled component
    (accepted or not) and ``component_of`` maps each box-drawing cell to its
    component index.
    """

    def __init__(self, grid: Grid):
        self.grid = grid
        self.visited: Set[Cell] = set()
        self.components: List[Set[Cell]] = []
        self.component_of: Dict[Cell, int] = {}

    def detect(self) -> List[Box]:
        """Detect all rectangular boxes in the grid, in row-major order."""
        boxes = []
        for row in range(self.grid.height):
            for col in range(self.grid.width):
                ch = self.grid.get(row, col)
                if ch in BOX_DRAWING_CHARS and (row, col) not in self.visited:
                    component = self._flood_fill(row, col)
                    box = self._box_from_component(component)
                    if box is not None:
                        boxes.append(box)
        return boxes

    def _flood_fill(self, start_row: int, start_col: int) -> Set[Cell]:
        component: Set[Cell] = set()
        queue = deque([(start_row, start_col)])

        while queue:
            row, col = queue.popleft()
            if (row, col) in self.visited:
                continue
            if self.grid.get(row, col) not in BOX_DRAWING_CHARS:
                continue

            self.visited.add((row, col))
            component.add((row, col))
            for nr, nc in ((row - 1, col), (row + 1, col), (row, col - 1), (row, col + 1)):
                if nr >= 0 and nc >= 0 and (nr, nc) not in self.visited:
                    queue.append((nr, nc))

        index = len(self.components)
        self.components.append(component)
        for cell in component:
            self.component_of[cell] = index
        return component

    def _box_from_component(self, component: Set[Cell]) -> Optional[Box]:
        min_row = min(r for r, _ in component)
        max_row = max(r for r, _ in component)
        min_col = min(c for _, c in component)
        max_col = max(c for _, c in component)

        if min_row >= max_row or min_col >= max_col:
            return None

        top_left_char = self.grid.get(min_row, min_col)
        bottom_right_char = self.grid.get(max_row, max_col)
        if top_left_char not in CORNER_CHARS or bottom_right_char not in CORNER_CHARS:
            return None

        style = BoxStyle.from_corner(top_left_char) or BoxStyle.SINGLE
        box = Box(top_left=(min_row, min_col), bottom_right=(max_row, max_col), style=style)

        # Touching boxes flood-fill into one component; a corner glyph in the
        # middle of an edge gives them away
        corners = {
            (min_row, min_col),
            (min_row, max_col),
            (max_row, min_col),
            (max_row, max_col),
        }
        for cell in box.border_cells():
            if cell not in corners and self.grid.get(*cell) in CORNER_CHARS:
                return None

        return box


def detect_boxes(grid: Grid) -> List[Box]:
    """Convenience function to detect boxes in a grid."""
    return BoxDetector(grid).detect()


def _tips_at_ends(glyphs: List[str], tips: frozenset) -> Tuple[Optional[str], Optional[str]]:
    start_char = glyphs[0] if glyphs[0] in tips else None
    end_char = glyphs[-1] if len(glyphs) > 1 and glyphs[-1] in tips else None
    return start_char, end_char


def _shaft_char(glyphs: List[str], shafts: frozenset, default: str) -> str:
    for ch in glyphs:
        if ch in shafts:
            return ch
    return default


def detect_horizontal_arrows(grid: Grid) -> List[HorizontalArrow]:
    """
    Detect horizontal arrows in a grid.

    A run of ``─`` and horizontal tip glyphs is an arrow only if it contains
    at least one tip. Plain ``────`` runs are not arrows.
    """
    run_chars = HORIZONTAL_SHAFT_CHARS | HORIZONTAL_TIPS
    arrows = []

    for row in range(grid.height):
        col = 0
        while col < grid.width:
            if grid.get(row, col) not in run_chars:
                col += 1
                continue

            start_col = col
            while grid.get(row, col) in run_chars:
                col += 1
            end_col = col - 1

            glyphs = [grid.get(row, c) for c in range(start_col, end_col + 1)]
            tips = [ch for ch in glyphs if ch in HORIZONTAL_TIPS]
            if not tips:
                continue

            start_char, end_char = _tips_at_ends(glyphs, HORIZONTAL_TIPS)
            arrows.append(
                HorizontalArrow(
                    row=row,
                    start_col=start_col,
                    end_col=end_col,
                    rightward=tips[0] not in LEFTWARD_TIPS,
                    arrow_type=ArrowType.from_char(tips[0]) or ArrowType.STANDARD,
                    arrow_char=tips[0],
                    start_char=start_char,
                    end_char=end_char,
                    line_char=_shaft_char(glyphs, HORIZONTAL_SHAFT_CHARS, "─"),
                )
            )

    return arrows


def detect_vertical_arrows(grid: Grid) -> List[VerticalArrow]:
    """
    Detect vertical arrows in a grid.

    Detects columns of ``│``/``┃`` and vertical tip glyphs. A run is kept if it
    is longer than one cell or if its single glyph is a tip.
    """
    run_chars = VERTICAL_SHAFT_CHARS | VERTICAL_TIPS
    arrows = []

    for col in range(grid.width):
        row = 0
        while row < grid.height:
            if grid.get(row, col) not in run_chars:
                row += 1
                continue

            start_row = row
            while grid.get(row, col) in run_chars:
                row += 1
            end_row = row - 1

            glyphs = [grid.get(r, col) for r in range(start_row, end_row + 1)]
            if start_row == end_row and glyphs[0] not in VERTICAL_TIPS:
                continue

            tips = [ch for ch in glyphs if ch in VERTICAL_TIPS]
            start_char, end_char = _tips_at_ends(glyphs, VERTICAL_TIPS)
            arrow_char = tips[0] if tips else None
            arrows.append(
                VerticalArrow(
                    col=col,
                    start_row=start_row,
                    end_row=end_row,
                    downward=glyphs[0] not in UPWARD_TIPS,
                    arrow_type=(
                        ArrowType.from_char(arrow_char) if arrow_char else None
                    )
                    or ArrowType.STANDARD,
                    arrow_char=arrow_char,
                    start_char=start_char,
                    end_char=end_char,
                    line_char=_shaft_char(glyphs, VERTICAL_SHAFT_CHARS, "│"),
                )
            )

    return arrows


def detect_hierarchy(boxes: List[Box]) -> List[Box]:
    """
    Compute parent/child relationships between boxes.

    Box j contains box i when i's whole border lies strictly inside j's
    interior. The containment relation is reduced to direct nesting, so a box
    is only listed in the children of the innermost box around it.

    Returns:
        New Box objects with parent_idx and child_indices filled in.
    """
    result = [
        Box(top_left=b.top_left, bottom_right=b.bottom_right, style=b.style)
        for b in boxes
    ]

    containment = nx.DiGraph()
    containment.add_nodes_from(range(len(result)))
    for i, inner in enumerate(result):
        for j, outer in enumerate(result):
            if i != j and outer.strictly_contains(inner):
                containment.add_edge(j, i)

    if containment.number_of_edges() == 0:
        return result

    direct = nx.transitive_reduction(containment)
    for i, inner in enumerate(result):
        parents = sorted(
            direct.predecessors(i),
            key=lambda j: (result[j].width * result[j].height, j),
        )
        if not parents:
            continue
        parent_idx = parents[0]
        inner.parent_idx = parent_idx
        if i not in result[parent_idx].child_indices:
            result[parent_idx].child_indices.append(i)

    return result


def extract_box_content(grid: Grid, b: Box) -> List[str]:
    """
    Extract the interior rows of a box.

    Returns one string per row strictly between the top and bottom borders,
    covering the columns strictly between the left and right borders.
    """
    content = []
    for row in range(b.top + 1, b.bottom):
        chars = [grid.get(row, col) for col in range(b.left + 1, b.right)]
        content.append("".join(ch for ch in chars if ch is not None))
    return content


def _find_overrun(
    grid: Grid, b: Box, row: int, detector: BoxDetector
) -> Optional[Tuple[str, int]]:
    """
    Find text that ran past a box's right border on one row.

    Applies when the cell under the right border is not a vertical border
    glyph and the row continues with plain text up to a stray vertical border
    glyph. The stray glyph must not belong to any larger structure (only a
    column of vertical glyphs).

    Returns:
        (content, closing_col) or None.
    """
    if grid.get(row, b.right) in BOX_DRAWING_CHARS:
        return None

    col = b.right
    while True:
        ch = grid.get(row, col)
        if ch is None:
            return None
        if ch in VERTICAL_BORDER_CHARS:
            break
        if ch in BOX_DRAWING_CHARS:
            return None
        col += 1

    component = detector.components[detector.component_of[(row, col)]]
    if any(grid.get(r, c) not in VERTICAL_BORDER_CHARS for r, c in component):
        return None

    content = "".join(grid.get(row, c) or " " for c in range(b.left + 1, col))
    return content, col


def _extract_text_rows(
    grid: Grid, boxes: List[Box], detector: BoxDetector
) -> Tuple[List[TextRow], Set[Cell]]:
    text_rows = []
    closing_cells: Set[Cell] = set()

    for b in boxes:
        for offset, line in enumerate(extract_box_content(grid, b)):
            row = b.top + 1 + offset
            end_col = b.right - 1
            overrun = _find_overrun(grid, b, row, detector)
            if overrun is not None:
                line, closing_col = overrun
                end_col = closing_col - 1
                closing_cells.add((row, closing_col))
            content = line.rstrip("".join(VERTICAL_BORDER_CHARS))
            if not content.strip():
                continue
            # Glyphs left inside the row belong to a structure of their own
            if any(ch in BOX_DRAWING_CHARS for ch in content):
                continue
            text_rows.append(
                TextRow(row=row, start_col=b.left + 1, end_col=end_col, content=content)
            )

    return text_rows, closing_cells


def _has_text_on_border(grid: Grid, b: Box, detector: BoxDetector) -> bool:
    """
    Check whether text sits where a box's border should be.

    Blank or absent border cells are fine: redrawing fills them in. A text
    cell on the right border is fine when it is overrun text that gets
    captured; anywhere else the box cannot be redrawn without losing it.
    """
    for row, col in b.border_cells():
        ch = grid.get(row, col)
        if ch is None or ch.isspace() or ch in BOX_DRAWING_CHARS:
            continue
        if (
            col == b.right
            and b.top < row < b.bottom
            and _find_overrun(grid, b, row, detector) is not None
        ):
            continue
        return True
    return False


def _belongs_to_larger_structure(cells: List[Cell], detector: BoxDetector) -> bool:
    own = set(cells)
    for cell in cells:
        index = detector.component_of.get(cell)
        if index is not None and not detector.components[index] <= own:
            return True
    return False


def _box_distance(row: int, col: int, end_col: int, b: Box) -> int:
    d_row = max(b.top - row, row - b.bottom, 0)
    d_col = max(b.left - end_col, col - b.right, 0)
    return max(d_row, d_col)


def _arrow_column_distance(col: int, end_col: int, arrow: VerticalArrow) -> int:
    return max(col - arrow.col, arrow.col - end_col, 0)


def _find_nearest_primitive(
    row: int, col: int, end_col: int, inventory: PrimitiveInventory
) -> Optional[LabelAttachment]:
    nearest: Optional[Tuple[LabelAttachment, int]] = None

    for idx, b in enumerate(inventory.boxes):
        distance = _box_distance(row, col, end_col, b)
        if distance <= LABEL_BOX_DISTANCE and (nearest is None or distance < nearest[1]):
            nearest = (LabelAttachment.box(idx), distance)

    for idx, arrow in enumerate(inventory.vertical_arrows):
        if not (
            arrow.start_row - LABEL_ARROW_ROW_REACH
            <= row
            <= arrow.end_row + LABEL_ARROW_ROW_REACH
        ):
            continue
        distance = _arrow_column_distance(col, end_col, arrow)
        if distance > LABEL_ARROW_COLUMNS:
            continue
        if nearest is None:
            nearest = (LabelAttachment.vertical_arrow(idx), distance)
        elif nearest[0].kind == AttachmentKind.BOX:
            # Labels just below an arrow that sits over a box go to the arrow
            if distance <= LABEL_ARROW_PREFERENCE:
                nearest = (LabelAttachment.vertical_arrow(idx), distance)
        elif distance < nearest[1]:
            nearest = (LabelAttachment.vertical_arrow(idx), distance)

    return nearest[0] if nearest else None


def _label_offset(
    row: int, col: int, attachment: LabelAttachment, inventory: PrimitiveInventory
) -> Tuple[int, int]:
    if attachment.kind == AttachmentKind.BOX:
        b = inventory.boxes[attachment.index]
        return (row - b.center_row, col - b.center_col)
    return (0, 0)


def detect_labels(grid: Grid, inventory: PrimitiveInventory) -> List[Label]:
    """
    Detect labels: short free text next to a box or a vertical arrow.

    Algorithm:
    1. Mark every cell claimed by a box rectangle, an arrow or a text row
    2. Scan each row for maximal runs of other non-space text
    3. Keep runs longer than one character that are close to a primitive
    """
    occupied: Set[Cell] = set()
    for b in inventory.boxes:
        for row in range(b.top, b.bottom + 1):
            for col in range(b.left, b.right + 1):
                occupied.add((row, col))
    for h_arrow in inventory.horizontal_arrows:
        occupied.update(h_arrow.cells())
    for v_arrow in inventory.vertical_arrows:
        occupied.update(v_arrow.cells())
    for text_row in inventory.text_rows:
        for col in range(text_row.start_col, text_row.end_col + 1):
            occupied.add((text_row.row, col))

    labels = []
    for row in range(grid.height):
        start_col: Optional[int] = None
        text = ""
        # One extra column so a run touching the end of the row is flushed
        for col in range(grid.width + 1):
            ch = grid.get(row, col)
            is_label_char = (
                ch is not None
                and not ch.isspace()
                and ch not in BOX_DRAWING_CHARS
                and ch not in ARROW_TIP_CHARS
                and (row, col) not in occupied
            )
            if is_label_char:
                if start_col is None:
                    start_col = col
                text += ch
                continue

            if start_col is not None and len(text) > 1:
                end_col = start_col + len(text) - 1
                attachment = _find_nearest_primitive(row, start_col, end_col, inventory)
                if attachment is not None:
                    labels.append(
                        Label(
                            row=row,
                            col=start_col,
                            content=text,
                            attached_to=attachment,
                            offset=_label_offset(row, start_col, attachment, inventory),
                        )
                    )
            start_col = None
            text = ""

    return labels


def detect_connection_lines(
    grid: Grid, inventory: PrimitiveInventory
) -> List[ConnectionLine]:
    """
    Detect L-shaped connection lines between primitives.

    Tracing connectors reliably needs path search with collision checks
    against every box. Until that exists, nothing is reported, so connectors
    pass through the renderer untouched.
    """
    return []


def detect_all_primitives(grid: Grid) -> PrimitiveInventory:
    """
    Detect every primitive in a diagram block.

    This is the main entry point for diagram analysis. Text extraction is
    skipped for the whole block when any box is nested inside another, so
    parent and child interiors are never mixed. Boxes with text written over
    their border are left out so the text survives untouched.
    """
    detector = BoxDetector(grid)
    candidates = detector.detect()
    inventory = PrimitiveInventory(
        boxes=detect_hierarchy(
            [b for b in candidates if not _has_text_on_border(grid, b, detector)]
        )
    )

    text_rows: List[TextRow] = []
    closing_cells: Set[Cell] = set()
    if not inventory.has_nesting():
        text_rows, closing_cells = _extract_text_rows(
            grid, inventory.boxes, detector
        )

    claimed = set(closing_cells)
    for text_row in text_rows:
        for col in range(text_row.start_col, text_row.end_col + 1):
            claimed.add((text_row.row, col))

    horizontal_arrows = [
        arrow
        for arrow in detect_horizontal_arrows(grid)
        if not _belongs_to_larger_structure(arrow.cells(), detector)
        and claimed.isdisjoint(arrow.cells())
    ]
    vertical_arrows = [
        arrow
        for arrow in detect_vertical_arrows(grid)
        if not _belongs_to_larger_structure(arrow.cells(), detector)
        and claimed.isdisjoint(arrow.cells())
    ]

    inventory.horizontal_arrows = horizontal_arrows
    inventory.vertical_arrows = vertical_arrows
    inventory.text_rows = text_rows
    inventory.labels = detect_labels(grid, inventory)
    inventory.connection_lines = detect_connection_lines(grid, inventory)
    return inventory
