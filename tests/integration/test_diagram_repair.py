"""Integration tests for end-to-end diagram repair.

These tests feed whole diagrams and Markdown documents through
DiagramRepairer and check the repaired text, the trace it leaves behind
and the file outputs.
"""

import os
import tempfile

import pytest
from PIL import Image

from boxmend import DiagramRepairer, Grid, GridInspector, visual_diff


UNCHANGED_DOCUMENTS = [
    "┌──────┐\n│┌────┐│\n││ in ││\n│└────┘│\n└──────┘",
    "┌──┐ ──→ ┌───┐\n│Alpha│  │ B │\n└──┘     └───┘",
    "The `─→─` glyph run is literal.",
    "┌───┐   ┌───┐\n│ A │──→│ B │\n└───┘   └───┘",
]

REPAIRED_DOCUMENTS = [
    "┌─┐\n│Longer│\n└─┘",
    "╔═╗\n║Wide║\n╚═╝",
    "┌──┐    ┌───┐\n│Wider│ │ B │\n└──┘    └───┘",
    "┌─────┐\n│ Top │\n└─────┘\n    ↓\n   yes\n┌─────┐\n│ Bot │\n└─────┘",
]


def repair_lines(repairer, lines):
    return repairer.repair("\n".join(lines)).split("\n")


class TestCleanDiagrams:
    """Diagrams that are already well formed come back unchanged."""

    def test_simple_box(self, repairer, simple_box_lines):
        """Test the smallest box is left alone."""
        assert repair_lines(repairer, simple_box_lines) == simple_box_lines

    def test_arrow_between_boxes(self, repairer, arrow_between_boxes_lines):
        """Test boxes joined by an arrow are left alone."""
        assert repair_lines(repairer, arrow_between_boxes_lines) == arrow_between_boxes_lines

    def test_nested_boxes(self, repairer, nested_box_lines):
        """Test a nested diagram with correct margins is left alone."""
        assert repair_lines(repairer, nested_box_lines) == nested_box_lines

    def test_arrow_touching_box(self, repairer):
        """Test an arrow fused to a border is not rewritten."""
        lines = ["┌───┐   ┌───┐", "│ A │──→│ B │", "└───┘   └───┘"]
        assert repair_lines(repairer, lines) == lines


class TestBrokenDiagrams:
    """Diagrams with misaligned borders or arrows get fixed."""

    def test_overflowing_text(self, repairer, overflow_box_lines):
        """Test a box is widened around text that ran past its border."""
        assert repair_lines(repairer, overflow_box_lines) == [
            "┌──────┐",
            "│Longer│",
            "└──────┘",
        ]

    def test_double_box_overflow(self, repairer):
        """Test double-line boxes keep their style when widened."""
        lines = ["╔═╗", "║Wide║", "╚═╝"]
        assert repair_lines(repairer, lines) == ["╔════╗", "║Wide║", "╚════╝"]

    def test_stray_inner_border(self, repairer):
        """Test a misplaced right border inside the text is moved out."""
        lines = ["┌─────┐", "│ ab │", "└─────┘"]
        assert repair_lines(repairer, lines) == ["┌─────┐", "│ ab  │", "└─────┘"]

    def test_widening_next_to_neighbour(self, repairer):
        """Test a widened box stops one cell short of its neighbour."""
        lines = ["┌──┐    ┌───┐", "│Wider│ │ B │", "└──┘    └───┘"]
        assert repair_lines(repairer, lines) == [
            "┌─────┐ ┌───┐",
            "│Wider│ │ B │",
            "└─────┘ └───┘",
        ]

    def test_vertical_arrow_realigned(self, repairer, stacked_boxes_lines):
        """Test an off-center arrow between stacked boxes is centered."""
        expected = list(stacked_boxes_lines)
        expected[3] = "   ↓"
        assert repair_lines(repairer, stacked_boxes_lines) == expected

    def test_label_follows_arrow(self, repairer, stacked_boxes_lines):
        """Test a label under a moved arrow is centered under it again."""
        lines = stacked_boxes_lines[:4] + ["   yes"] + stacked_boxes_lines[4:]
        result = repair_lines(repairer, lines)
        assert result[3] == "   ↓"
        assert result[4] == "  yes"
        assert result[:3] == lines[:3]
        assert result[5:] == lines[5:]


class TestIdempotence:
    """Repairing a repaired document changes nothing."""

    def test_overflow(self, repairer, overflow_box_lines):
        """Test the widened box is stable."""
        once = repairer.repair("\n".join(overflow_box_lines))
        assert repairer.repair(once) == once

    def test_stacked_with_label(self, repairer, stacked_boxes_lines):
        """Test realigned arrows and labels are stable."""
        lines = stacked_boxes_lines[:4] + ["   yes"] + stacked_boxes_lines[4:]
        once = repairer.repair("\n".join(lines))
        assert repairer.repair(once) == once

    def test_markdown_document(self, repairer, markdown_document):
        """Test a repaired document is stable."""
        once = repairer.repair(markdown_document)
        assert repairer.repair(once) == once
        assert not repairer.needs_repair(once)

    @pytest.mark.parametrize("text", UNCHANGED_DOCUMENTS)
    def test_structures_that_cannot_be_redrawn(self, repairer, text):
        """Test fused or partly overwritten structures pass through as written."""
        once = repairer.repair(text)
        assert once == text
        assert repairer.repair(once) == once

    @pytest.mark.parametrize("text", REPAIRED_DOCUMENTS)
    def test_repairs_are_stable(self, repairer, text):
        """Test a second repair changes nothing and keeps every word."""
        once = repairer.repair(text)
        assert repairer.repair(once) == once
        for word in text.replace("\n", " ").split():
            if word.isalpha():
                assert word in once

    def test_nested_fixture(self, repairer, nested_box_lines):
        """Test a nested diagram is stable."""
        once = repairer.repair("\n".join(nested_box_lines))
        assert repairer.repair(once) == once


class TestMarkdownDocuments:
    """Documents mixing prose, diagrams and fenced code."""

    def test_only_unfenced_diagram_changes(self, repairer, markdown_document):
        """Test prose and fenced blocks are kept byte for byte."""
        original = markdown_document.split("\n")
        result = repairer.repair(markdown_document).split("\n")

        assert len(result) == len(original)
        assert result[:4] == original[:4]
        assert result[4:7] == ["┌──────┐", "│Longer│", "└──────┘"]
        assert result[7:] == original[7:]

    def test_ignore_region(self, repairer, overflow_box_lines):
        """Test diagrams between ignore markers are not touched."""
        text = "\n".join(
            ["<!-- boxmend-ignore-start -->"]
            + overflow_box_lines
            + ["<!-- boxmend-ignore-end -->"]
        )
        assert repairer.repair(text) == text

    def test_trailing_newline_kept(self, repairer, overflow_box_lines):
        """Test the document keeps its final newline."""
        text = "\n".join(overflow_box_lines) + "\n"
        assert repairer.repair(text).endswith("└──────┘\n")

    def test_diff_of_repair(self, repairer, overflow_box_lines):
        """Test visual_diff points at the repaired lines."""
        text = "\n".join(overflow_box_lines)
        result = visual_diff(text, repairer.repair(text))
        assert "Found 2 differing line(s)" in result


class TestDebugTrace:
    """Tracing a full repair."""

    def test_stage_names(self, repairer, markdown_document):
        """Test stages are recorded only for blocks with primitives."""
        repairer.repair(markdown_document, debug=True)
        trace = repairer.get_trace()

        assert trace.blocks_repaired == 1
        assert [s.name for s in trace.stages] == [
            "block2:detected",
            "block2:box_widths",
            "block2:nesting_and_balance",
            "block2:padding",
            "block2:horizontal_arrows",
            "block2:vertical_arrows",
            "block2:rendered",
        ]
        assert trace.get_grid_at_stage("block2:rendered") == [
            "┌──────┐",
            "│Longer│",
            "└──────┘",
        ]

    def test_detected_snapshot(self, repairer, overflow_box_lines):
        """Test the detected stage keeps the input grid and counts."""
        repairer.repair("\n".join(overflow_box_lines), debug=True)
        stage = repairer.get_trace().get_stage("block0:detected")
        assert stage.grid_snapshot == overflow_box_lines
        assert stage.data["boxes"] == 1
        assert stage.data["text_rows"] == 1

    def test_placements(self, repairer, overflow_box_lines):
        """Test the closing border that moved is recorded as erased."""
        repairer.repair("\n".join(overflow_box_lines), debug=True)
        trace = repairer.get_trace()
        erased = [p for p in trace.get_placements_at(1, 7) if p.reason == "erase"]
        assert erased and erased[0].previous_char == "│"
        assert "REPAIR TRACE SUMMARY" in trace.summary()

    def test_rendered_grid_inspection(self, repairer, overflow_box_lines):
        """Test the rendered grid has exactly one box outline."""
        repairer.repair("\n".join(overflow_box_lines), debug=True)
        rendered = repairer.get_trace().get_grid_at_stage("block0:rendered")
        inspector = GridInspector(Grid.from_lines(rendered))
        assert inspector.count_char("┌") == 1
        assert inspector.count_char("─") == 12
        assert inspector.get_column(7) == "┐│┘"


class TestFileOutput:
    """Saving repaired documents."""

    def test_save_txt(self, repairer, markdown_document):
        """Test the repaired document is written as UTF-8 text."""
        with tempfile.NamedTemporaryFile(suffix=".md", delete=False) as f:
            output_path = f.name

        try:
            repairer.save_txt(markdown_document, output_path)
            with open(output_path, encoding="utf-8") as f:
                content = f.read()
            assert content == repairer.repair(markdown_document)
        finally:
            if os.path.exists(output_path):
                os.unlink(output_path)

    def test_save_png(self, repairer, overflow_box_lines):
        """Test a PNG image is written."""
        with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as f:
            output_path = f.name

        try:
            repairer.save_png("\n".join(overflow_box_lines), output_path)
            assert os.path.exists(output_path)
            assert os.path.getsize(output_path) > 0
            with Image.open(output_path) as img:
                assert img.format == "PNG"
                assert img.size[0] >= 200
                assert img.size[1] >= 200
        finally:
            if os.path.exists(output_path):
                os.unlink(output_path)

    def test_save_png_custom_colors(self):
        """Test colors, scale and an unknown font fall back cleanly."""
        repairer = DiagramRepairer(font="NoSuchFontAnywhere")
        with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as f:
            output_path = f.name

        try:
            repairer.save_png(
                "┌─┐\n│ │\n└─┘",
                output_path,
                bg_color="#000000",
                fg_color="#00FF00",
                scale=1,
            )
            with Image.open(output_path) as img:
                assert img.getpixel((0, 0)) == (0, 0, 0)
        finally:
            if os.path.exists(output_path):
                os.unlink(output_path)
