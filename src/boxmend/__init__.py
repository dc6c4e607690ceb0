"""
BoxMend - Repair ASCII Box Diagrams

A Python library that finds box-and-arrow diagrams drawn with box-drawing
characters in plain text or Markdown, and fixes their widths, spacing,
nesting and alignment without touching the surrounding prose.

Example:
    >>> from boxmend import DiagramRepairer
    >>> repairer = DiagramRepairer()
    >>> print(repairer.repair('''
    ... ┌─┐
    ... │Longer│
    ... └─┘
    ... '''))

Debug Mode Example:
    >>> fixed = repairer.repair(document, debug=True)
    >>> trace = repairer.get_trace()
    >>> print(trace.summary())
"""

from .debug import GridInspector, TracedGrid, visual_diff
from .detector import (
    BoxDetector,
    detect_all_primitives,
    detect_boxes,
    detect_connection_lines,
    detect_hierarchy,
    detect_horizontal_arrows,
    detect_labels,
    detect_vertical_arrows,
    extract_box_content,
)
from .grid import Grid
from .normalizer import (
    align_horizontal_arrows,
    align_vertical_arrows,
    balance_horizontal_boxes,
    find_horizontal_groups,
    normalize_box_widths,
    normalize_inventory,
    normalize_nested_boxes,
    normalize_padding,
)
from .primitives import (
    ArrowType,
    AttachmentKind,
    Box,
    BoxStyle,
    ConnectionLine,
    HorizontalArrow,
    HorizontalSegment,
    Label,
    LabelAttachment,
    PrimitiveInventory,
    TextRow,
    VerticalArrow,
    VerticalSegment,
)
from .renderer import render_diagram, render_onto_grid
from .repairer import DiagramRepairer, repair_text
from .scanner import (
    DiagramBlock,
    InlineCodeSpan,
    detect_inline_code_spans,
    extract_diagram_blocks,
    mask_inline_code,
    restore_inline_code,
)
from .tracer import CharacterPlacement, PipelineStage, RenderTrace

__version__ = "0.1.0"

__all__ = [
    # Main API
    "DiagramRepairer",
    "repair_text",
    # Scanner
    "DiagramBlock",
    "extract_diagram_blocks",
    "InlineCodeSpan",
    "detect_inline_code_spans",
    "mask_inline_code",
    "restore_inline_code",
    # Grid and primitives
    "Grid",
    "Box",
    "BoxStyle",
    "ArrowType",
    "HorizontalArrow",
    "VerticalArrow",
    "TextRow",
    "Label",
    "LabelAttachment",
    "AttachmentKind",
    "HorizontalSegment",
    "VerticalSegment",
    "ConnectionLine",
    "PrimitiveInventory",
    # Detector
    "BoxDetector",
    "detect_boxes",
    "detect_horizontal_arrows",
    "detect_vertical_arrows",
    "detect_hierarchy",
    "detect_labels",
    "detect_connection_lines",
    "extract_box_content",
    "detect_all_primitives",
    # Normalizer
    "normalize_box_widths",
    "normalize_padding",
    "align_horizontal_arrows",
    "align_vertical_arrows",
    "find_horizontal_groups",
    "balance_horizontal_boxes",
    "normalize_nested_boxes",
    "normalize_inventory",
    # Renderer
    "render_diagram",
    "render_onto_grid",
    # Debug/Tracing
    "RenderTrace",
    "CharacterPlacement",
    "PipelineStage",
    "TracedGrid",
    "GridInspector",
    "visual_diff",
]
