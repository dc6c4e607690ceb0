"""
Tests for the tracer module.

These tests verify the debug tracing infrastructure used to capture
detailed information about each repaired diagram block.
"""

import os
import tempfile

from boxmend.grid import Grid
from boxmend.tracer import CharacterPlacement, PipelineStage, RenderTrace


class TestCharacterPlacement:
    """Tests for CharacterPlacement dataclass."""

    def test_creation(self):
        """Test basic creation of CharacterPlacement."""
        placement = CharacterPlacement(
            row=5, col=10, char="│", previous_char=" ", reason="vertical_line",
            source="renderer.draw_box"
        )
        assert placement.row == 5
        assert placement.col == 10
        assert placement.char == "│"
        assert placement.source == "renderer.draw_box"

    def test_str_new_placement(self):
        """Test string representation for a write into a blank cell."""
        placement = CharacterPlacement(
            row=5, col=10, char="│", previous_char=" ", reason="vertical_line",
            source="renderer.draw_box"
        )
        result = str(placement)
        assert "(5,10)" in result
        assert "'│'" in result
        assert "vertical_line" in result
        assert "->" not in result

    def test_str_overwrite(self):
        """Test string representation when a glyph is replaced."""
        placement = CharacterPlacement(
            row=1, col=7, char=" ", previous_char="│", reason="erase",
            source="renderer.strip"
        )
        assert "'│' -> ' '" in str(placement)


class TestPipelineStage:
    """Tests for PipelineStage dataclass."""

    def test_creation_basic(self):
        """Test creation without a grid snapshot."""
        stage = PipelineStage(name="block0:detected", data={"boxes": 1})
        assert stage.name == "block0:detected"
        assert stage.grid_snapshot is None

    def test_str_with_snapshot(self):
        """Test the grid preview is included in the string form."""
        stage = PipelineStage(
            name="block0:rendered",
            data={"height": 3},
            grid_snapshot=["┌─┐", "│ │", "└─┘"],
        )
        result = str(stage)
        assert "=== Stage: block0:rendered ===" in result
        assert "height: 3" in result
        assert "|┌─┐|" in result

    def test_long_values_are_truncated(self):
        """Test values over 100 characters are cut in the string form."""
        stage = PipelineStage(name="s", data={"geometry": "x" * 150})
        assert "x" * 100 + "..." in str(stage)


class TestRenderTrace:
    """Tests for RenderTrace."""

    def test_add_stage_snapshots_grid(self):
        """Test a passed grid is stored as lines."""
        trace = RenderTrace()
        trace.add_stage("block0:detected", {"boxes": 1}, Grid.from_lines(["ab"]))
        assert trace.get_grid_at_stage("block0:detected") == ["ab"]

    def test_add_stage_copies_data(self):
        """Test later changes to the data dict do not leak into the stage."""
        trace = RenderTrace()
        data = {"boxes": 1}
        trace.add_stage("s", data)
        data["boxes"] = 2
        assert trace.get_stage("s").data["boxes"] == 1

    def test_get_missing_stage(self):
        """Test unknown stages give None."""
        trace = RenderTrace()
        assert trace.get_stage("nope") is None
        assert trace.get_grid_at_stage("nope") is None

    def test_get_stages_ending_with(self):
        """Test suffix lookup across blocks."""
        trace = RenderTrace()
        trace.add_stage("block0:rendered", {})
        trace.add_stage("block0:padding", {})
        trace.add_stage("block1:rendered", {})
        names = [s.name for s in trace.get_stages_ending_with("rendered")]
        assert names == ["block0:rendered", "block1:rendered"]

    def test_placement_queries(self):
        """Test lookups by cell, source and reason."""
        trace = RenderTrace()
        trace.add_placement(0, 0, "┌", " ", "corner", "renderer.draw_box")
        trace.add_placement(1, 3, "a", " ", "char_placement", "renderer.draw_text_row")
        trace.add_placement(1, 3, " ", "a", "erase", "renderer.strip")
        assert len(trace.get_placements_at(1, 3)) == 2
        assert len(trace.get_placements_by_source("draw_box")) == 1
        assert len(trace.get_placements_by_reason("erase")) == 1

    def test_get_overwrites(self):
        """Test only replacements of a different non-blank glyph count."""
        trace = RenderTrace()
        trace.add_placement(0, 0, "┌", " ", "corner", "renderer.draw_box")
        trace.add_placement(0, 1, "─", "─", "horizontal_line", "renderer.draw_box")
        trace.add_placement(0, 2, " ", "┐", "erase", "renderer.strip")
        overwrites = trace.get_overwrites()
        assert len(overwrites) == 1
        assert overwrites[0].col == 2

    def test_summary(self):
        """Test the summary lists stages and placement counts."""
        trace = RenderTrace(input_text="┌─┐", blocks_repaired=1)
        trace.add_stage("block0:detected", {}, Grid.from_lines(["┌─┐"]))
        trace.add_placement(0, 0, "┌", " ", "corner", "renderer.draw_box")
        summary = trace.summary()
        assert "REPAIR TRACE SUMMARY" in summary
        assert "Blocks repaired: 1" in summary
        assert "[+] block0:detected" in summary
        assert "Total character placements: 1" in summary
        assert "corner: 1" in summary

    def test_dump_to_file(self):
        """Test the full dump is written to disk."""
        trace = RenderTrace()
        trace.add_stage("block0:detected", {"boxes": 1})
        trace.add_placement(0, 0, "┌", " ", "corner", "renderer.draw_box")

        with tempfile.NamedTemporaryFile(suffix=".txt", delete=False) as f:
            filename = f.name

        try:
            trace.dump_to_file(filename)
            with open(filename, encoding="utf-8") as f:
                content = f.read()
            assert "DETAILED TRACE" in content
            assert "CHARACTER PLACEMENTS:" in content
            assert "(0,0): '┌' [corner] from renderer.draw_box" in content
        finally:
            os.unlink(filename)
