"""
Main diagram repair module.

Combines block scanning, detection, normalization and rendering to repair
the box-and-arrow diagrams in a plain-text or Markdown document.
"""

from pathlib import Path
from typing import List, Optional

from PIL import Image, ImageDraw, ImageFont

from .detector import detect_all_primitives
from .grid import Grid
from .normalizer import normalize_inventory
from .renderer import render_diagram, render_onto_grid
from .scanner import extract_diagram_blocks, restore_inline_code
from .tracer import RenderTrace


class DiagramRepairer:
    """
    Repair ASCII box diagrams embedded in text.

    Example:
        >>> repairer = DiagramRepairer()
        >>> fixed = repairer.repair('''
        ... ┌─┐
        ... │Longer│
        ... └─┘
        ... ''')
        >>> print(fixed)
    """

    def __init__(
        self,
        normalize: bool = True,
        trim_trailing_whitespace: bool = False,
        fresh_render: bool = False,
        max_block_lines: int = 500,
        font: Optional[str] = None,
    ):
        """
        Initialize the repairer.

        Args:
            normalize: Whether to run the normalization passes. With False,
                primitives are only re-drawn as detected.
            trim_trailing_whitespace: Whether to strip trailing whitespace
                from every line of a repaired block
            fresh_render: Whether to draw repaired blocks on an empty grid
                instead of on top of the original text. Anything the
                detector does not recognise is dropped in this mode.
            max_block_lines: Blocks longer than this are left untouched
            font: Font name for PNG output (e.g., "Cascadia Code", "Monaco")
        """
        if isinstance(max_block_lines, bool) or not isinstance(max_block_lines, int):
            raise ValueError("max_block_lines must be an integer")
        if max_block_lines < 1:
            raise ValueError("max_block_lines must be at least 1")

        self.normalize = normalize
        self.trim_trailing_whitespace = trim_trailing_whitespace
        self.fresh_render = fresh_render
        self.max_block_lines = max_block_lines
        self.font = font
        self._trace: Optional[RenderTrace] = None

    def repair_block(
        self,
        lines: List[str],
        trace: Optional[RenderTrace] = None,
        block_index: int = 0,
    ) -> List[str]:
        """
        Repair a single diagram block.

        Args:
            lines: The block's lines
            trace: Optional RenderTrace to record the pipeline into
            block_index: Block number, used to name trace stages

        Returns:
            The repaired lines. Blocks with no boxes and no arrows, and blocks
            longer than max_block_lines, come back unchanged.
        """
        if not lines or len(lines) > self.max_block_lines:
            return list(lines)

        grid = Grid.from_lines(lines)
        inventory = detect_all_primitives(grid)
        if inventory.is_empty():
            return list(lines)

        prefix = f"block{block_index}:"
        if trace is not None:
            trace.blocks_repaired += 1
            trace.add_stage(prefix + "detected", inventory.summary(), grid)

        if self.normalize:
            first_stage = len(trace.stages) if trace is not None else 0
            inventory = normalize_inventory(inventory, trace=trace)
            if trace is not None:
                for stage in trace.stages[first_stage:]:
                    stage.name = prefix + stage.name

        if self.fresh_render:
            rendered = render_diagram(inventory, trace=trace)
        else:
            rendered = render_onto_grid(inventory, grid, trace=trace)

        if trace is not None:
            trace.add_stage(
                prefix + "rendered",
                {"height": rendered.height, "width": rendered.width},
                rendered,
            )

        if self.trim_trailing_whitespace:
            return [line.rstrip() for line in rendered.lines()]
        return rendered.lines()

    def _repair(self, text: str, trace: Optional[RenderTrace]) -> str:
        lines = text.split("\n")
        output: List[str] = []
        cursor = 0

        for index, block in enumerate(extract_diagram_blocks(text)):
            output.extend(lines[cursor : block.start_line])
            repaired = self.repair_block(block.lines, trace=trace, block_index=index)
            for offset, line in enumerate(repaired):
                spans = []
                if offset < len(block.inline_code_spans):
                    spans = block.inline_code_spans[offset]
                output.append(restore_inline_code(line, spans))
            cursor = block.start_line + len(block.lines)

        output.extend(lines[cursor:])
        return "\n".join(output)

    def repair(self, text: str, debug: bool = False) -> str:
        """
        Repair every diagram block in a document.

        Lines outside diagram blocks (prose, fenced code, ignored regions)
        are kept byte for byte.

        Args:
            text: The document
            debug: If True, capture a RenderTrace, available afterwards
                through get_trace()

        Returns:
            The repaired document.
        """
        trace = RenderTrace(input_text=text) if debug else None
        result = self._repair(text, trace)
        self._trace = trace
        return result

    def needs_repair(self, text: str) -> bool:
        """Check whether repair() would change the document."""
        return self._repair(text, None) != text

    def get_trace(self) -> Optional[RenderTrace]:
        """
        Get the trace from the last repair(debug=True) call.

        Returns None if the last call did not request debugging.
        """
        return self._trace

    def save_txt(self, text: str, filename: str) -> None:
        """
        Repair a document and save it to a text file.

        Args:
            text: The document
            filename: Output filename
        """
        output_path = Path(filename)
        output_path.write_text(self.repair(text), encoding="utf-8")

    def save_png(
        self,
        text: str,
        filename: str,
        font_size: int = 16,
        bg_color: str = "#FFFFFF",
        fg_color: str = "#000000",
        padding: int = 20,
        font: Optional[str] = None,
        scale: int = 2,
    ) -> None:
        """
        Repair a document and save it as a PNG image.

        A monospace font keeps the exact character layout, so box-drawing
        glyphs line up the way they do in a terminal.

        Args:
            text: The document
            filename: Output filename (should end in .png)
            font_size: Font size in points (higher = higher resolution)
            bg_color: Background color as hex string (e.g., "#FFFFFF")
            fg_color: Foreground/text color as hex string (e.g., "#000000")
            padding: Padding around the text in pixels
            font: Font name to use (overrides instance font if provided)
            scale: Resolution multiplier for crisp output (default 2 for retina)
        """
        lines = self.repair(text).split("\n")

        font_name = font or self.font
        loaded_font = self._load_monospace_font(font_size * scale, font_name)

        bbox = loaded_font.getbbox("M")
        char_width = bbox[2] - bbox[0]
        char_height = bbox[3] - bbox[1]
        line_height = int(char_height * 1.2)

        scaled_padding = padding * scale

        max_line_len = max(len(line) for line in lines) if lines else 0
        img_width = max(char_width * max_line_len + scaled_padding * 2, 100 * scale)
        img_height = max(line_height * len(lines) + scaled_padding * 2, 100 * scale)

        img = Image.new("RGB", (img_width, img_height), bg_color)
        draw = ImageDraw.Draw(img)

        y = scaled_padding
        for line in lines:
            draw.text((scaled_padding, y), line, font=loaded_font, fill=fg_color)
            y += line_height

        img.save(Path(filename), "PNG")

    def _load_monospace_font(
        self, font_size: int, font_name: Optional[str] = None
    ) -> ImageFont.FreeTypeFont:
        """
        Load a monospace font for PNG rendering.

        Tries the requested font, then common system monospace fonts, then
        Pillow's built-in default.
        """
        fonts_to_try = []
        if font_name:
            fonts_to_try.append(font_name)

        fonts_to_try.extend(
            [
                # Linux
                "DejaVuSansMono",
                "DejaVu Sans Mono",
                "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
                # macOS
                "Menlo",
                "/System/Library/Fonts/Menlo.ttc",
                # Windows
                "Consolas",
                "C:/Windows/Fonts/consola.ttf",
            ]
        )

        for candidate in fonts_to_try:
            try:
                return ImageFont.truetype(candidate, font_size)
            except OSError:
                continue

        try:
            return ImageFont.load_default(size=font_size)
        except TypeError:
            # Pillow before 10.1 takes no size
            return ImageFont.load_default()


def repair_text(text: str, **kwargs) -> str:
    """
    Repair a document in one call.

    Args:
        text: The document
        **kwargs: Passed to DiagramRepairer

    Returns:
        The repaired document.
    """
    return DiagramRepairer(**kwargs).repair(text)
