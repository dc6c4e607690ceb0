"""
Normalization passes for detected primitives.

Each transform takes a PrimitiveInventory and returns a new one; inputs are
never mutated. normalize_inventory runs them in a fixed order:

1. normalize_box_widths
2. normalize_nested_boxes + balance_horizontal_boxes, repeated until the box
   geometry stops changing
3. normalize_padding
4. align_horizontal_arrows
5. align_vertical_arrows
"""

from typing import Dict, List, Optional, Tuple

import networkx as nx

from .primitives import AttachmentKind, Box, PrimitiveInventory, TextRow
from .tracer import RenderTrace

# Horizontal gap (in cells) boxes in a row are spread to
MIN_BOX_GAP = 1
# Blank cells kept between a nested box and its parent's border
NESTED_MARGIN = 1
# Boxes whose gap is at most this are considered side by side
MAX_GROUP_GAP = 1
# Upper bound on nested/balance rounds
MAX_SETTLE_ROUNDS = 10


def _text_row_owner(text_row: TextRow, boxes: List[Box]) -> Optional[int]:
    """
    Find the box a text row belongs to.

    The row must lie strictly between the box's borders and start inside the
    box's columns. When several boxes qualify, the one starting furthest right
    wins, so a box that grew over its neighbour never steals its rows.
    """
    owner = None
    for idx, b in enumerate(boxes):
        if not (b.top < text_row.row < b.bottom):
            continue
        if not (b.left <= text_row.start_col <= b.right):
            continue
        if owner is None or b.left > boxes[owner].left:
            owner = idx
    return owner


def _match_text_rows(inventory: PrimitiveInventory) -> Dict[int, int]:
    """Map text row index -> owning box index."""
    matches = {}
    for tr_idx, text_row in enumerate(inventory.text_rows):
        owner = _text_row_owner(text_row, inventory.boxes)
        if owner is not None:
            matches[tr_idx] = owner
    return matches


def normalize_box_widths(inventory: PrimitiveInventory) -> PrimitiveInventory:
    """
    Widen boxes so every text row fits inside.

    The required width of a box is the longest right-trimmed text row it owns
    plus 2 for the borders. Boxes only grow to the right; the left edge never
    moves and boxes never shrink. Afterwards every owned text row is clamped
    to end before the (possibly new) right border.
    """
    result = inventory.copy()
    matches = _match_text_rows(result)

    required: Dict[int, int] = {}
    for tr_idx, box_idx in matches.items():
        needed = len(result.text_rows[tr_idx].content.rstrip()) + 2
        required[box_idx] = max(required.get(box_idx, 0), needed)

    for box_idx, width in required.items():
        b = result.boxes[box_idx]
        if width > b.width:
            b.bottom_right = (b.bottom, b.left + width - 1)

    for tr_idx, box_idx in matches.items():
        text_row = result.text_rows[tr_idx]
        text_row.end_col = min(text_row.end_col, result.boxes[box_idx].right - 1)

    return result


def normalize_padding(inventory: PrimitiveInventory) -> PrimitiveInventory:
    """Make every owned text row span its box's full interior width."""
    result = inventory.copy()
    for tr_idx, box_idx in _match_text_rows(result).items():
        b = result.boxes[box_idx]
        text_row = result.text_rows[tr_idx]
        text_row.start_col = b.left + 1
        text_row.end_col = b.right - 1
    return result


def align_horizontal_arrows(inventory: PrimitiveInventory) -> PrimitiveInventory:
    """
    Order horizontal arrows by row, then by start column.

    Columns are left alone; this pass only gives arrows a stable order.
    """
    result = inventory.copy()
    result.horizontal_arrows.sort(key=lambda a: (a.row, a.start_col))
    return result


def align_vertical_arrows(inventory: PrimitiveInventory) -> PrimitiveInventory:
    """
    Snap vertical arrows to the nearest box edge or center column.

    Candidates are every box's left, center and right columns. The closest
    candidate over all boxes wins; on a tie the first one seen is kept.
    """
    result = inventory.copy()
    if not result.boxes:
        return result

    for arrow in result.vertical_arrows:
        best_col = arrow.col
        best_distance: Optional[int] = None
        for b in result.boxes:
            for candidate in (b.left, b.center_col, b.right):
                distance = abs(arrow.col - candidate)
                if best_distance is None or distance < best_distance:
                    best_col = candidate
                    best_distance = distance
        arrow.col = best_col

    return result


def _horizontal_gap(a: Box, b: Box) -> int:
    """Cells strictly between two boxes' facing edges (negative if overlapping)."""
    if a.right < b.left:
        return b.left - a.right - 1
    if b.right < a.left:
        return a.left - b.right - 1
    return -1


def _encloses(outer: Box, inner: Box) -> bool:
    return (
        outer.top <= inner.top
        and inner.bottom <= outer.bottom
        and outer.left <= inner.left
        and inner.right <= outer.right
    )


def find_horizontal_groups(boxes: List[Box]) -> List[List[int]]:
    """
    Group boxes that sit side by side.

    Two boxes are adjacent when their row ranges overlap and at most one cell
    separates their facing edges. Groups are the connected components of that
    relation; boxes stacked vertically or nested in one another never group.

    Returns:
        Groups of two or more box indices, each sorted, ordered by first index.
    """
    graph = nx.Graph()
    graph.add_nodes_from(range(len(boxes)))

    for i, a in enumerate(boxes):
        for j in range(i + 1, len(boxes)):
            b = boxes[j]
            if not a.rows_overlap(b):
                continue
            if _encloses(a, b) or _encloses(b, a):
                continue
            if _horizontal_gap(a, b) <= MAX_GROUP_GAP:
                graph.add_edge(i, j)

    groups = [sorted(c) for c in nx.connected_components(graph) if len(c) > 1]
    groups.sort(key=lambda g: g[0])
    return groups


def _descendants(boxes: List[Box], idx: int) -> List[int]:
    found = []
    pending = list(boxes[idx].child_indices)
    while pending:
        child = pending.pop()
        if child in found:
            continue
        found.append(child)
        pending.extend(boxes[child].child_indices)
    return found


def _shift_box(inventory: PrimitiveInventory, idx: int, d_col: int) -> None:
    """Move a box right by d_col, with its nested boxes, text rows and labels."""
    moving = [idx] + _descendants(inventory.boxes, idx)

    owned_rows = [
        tr_idx
        for tr_idx, box_idx in _match_text_rows(inventory).items()
        if box_idx in moving
    ]
    for tr_idx in owned_rows:
        text_row = inventory.text_rows[tr_idx]
        text_row.start_col += d_col
        text_row.end_col += d_col

    for box_idx in moving:
        inventory.boxes[box_idx] = inventory.boxes[box_idx].shifted(0, d_col)

    for label in inventory.labels:
        attachment = label.attached_to
        if attachment.kind == AttachmentKind.BOX and attachment.index in moving:
            label.col += d_col


def balance_horizontal_boxes(inventory: PrimitiveInventory) -> PrimitiveInventory:
    """
    Spread side-by-side boxes so they never overlap or touch.

    Within each horizontal group, boxes are visited left to right. A box
    whose gap to an earlier, row-overlapping box is below MIN_BOX_GAP is
    moved right until the gap is exactly MIN_BOX_GAP.
    """
    result = inventory.copy()

    for group in find_horizontal_groups(result.boxes):
        ordered = sorted(group, key=lambda i: (result.boxes[i].left, i))
        for pos, idx in enumerate(ordered):
            b = result.boxes[idx]
            shift = 0
            for prev_idx in ordered[:pos]:
                prev = result.boxes[prev_idx]
                if not prev.rows_overlap(b):
                    continue
                gap = b.left - prev.right - 1
                if gap < MIN_BOX_GAP:
                    shift = max(shift, MIN_BOX_GAP - gap)
            if shift:
                _shift_box(result, idx, shift)

    return result


def _depth(boxes: List[Box], idx: int) -> int:
    depth = 0
    parent = boxes[idx].parent_idx
    while parent is not None and depth < len(boxes):
        depth += 1
        parent = boxes[parent].parent_idx
    return depth


def normalize_nested_boxes(inventory: PrimitiveInventory) -> PrimitiveInventory:
    """
    Grow parent boxes so their children keep a margin on every side.

    Parents are processed innermost first, so growing a middle box is seen by
    its own parent in the same call. Growth toward the top or left stops at
    row/column 0.
    """
    result = inventory.copy()
    boxes = result.boxes
    reach = NESTED_MARGIN + 1

    order = sorted(range(len(boxes)), key=lambda i: (-_depth(boxes, i), i))
    for idx in order:
        parent = boxes[idx]
        for child_idx in parent.child_indices:
            child = boxes[child_idx]
            top = min(parent.top, max(0, child.top - reach))
            left = min(parent.left, max(0, child.left - reach))
            bottom = max(parent.bottom, child.bottom + reach)
            right = max(parent.right, child.right + reach)
            parent.top_left = (top, left)
            parent.bottom_right = (bottom, right)

    return result


def _geometry(inventory: PrimitiveInventory) -> List[Tuple[Tuple[int, int], Tuple[int, int]]]:
    return [(b.top_left, b.bottom_right) for b in inventory.boxes]


def _record(trace: Optional[RenderTrace], name: str, inventory: PrimitiveInventory, **extra) -> None:
    if trace is None:
        return
    data = dict(inventory.summary())
    data["box_geometry"] = _geometry(inventory)
    data.update(extra)
    trace.add_stage(name, data)


def normalize_inventory(
    inventory: PrimitiveInventory, trace: Optional[RenderTrace] = None
) -> PrimitiveInventory:
    """
    Run the full normalization pipeline in its fixed order.

    Args:
        inventory: Primitives detected in one block
        trace: Optional RenderTrace; one stage is recorded per pass

    Returns:
        The normalized inventory.
    """
    result = normalize_box_widths(inventory)
    _record(trace, "box_widths", result)

    rounds = 0
    while rounds < MAX_SETTLE_ROUNDS:
        rounds += 1
        before = _geometry(result)
        result = normalize_nested_boxes(result)
        result = balance_horizontal_boxes(result)
        if _geometry(result) == before:
            break
    _record(trace, "nesting_and_balance", result, rounds=rounds)

    result = normalize_padding(result)
    _record(trace, "padding", result)

    result = align_horizontal_arrows(result)
    _record(trace, "horizontal_arrows", result)

    result = align_vertical_arrows(result)
    _record(trace, "vertical_arrows", result)

    return result
