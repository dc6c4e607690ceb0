"""Unit tests for the scanner module."""

from boxmend.scanner import (
    IGNORE_END,
    IGNORE_START,
    BlockScanner,
    InlineCodeSpan,
    detect_inline_code_spans,
    extract_diagram_blocks,
    mask_inline_code,
    restore_inline_code,
)


class TestBlockScanner:
    """Tests for BlockScanner."""

    def test_blank_lines_split_blocks(self):
        """Test each run of non-blank lines is its own block."""
        blocks = extract_diagram_blocks("a\nb\n\nc")
        assert [(b.start_line, b.lines) for b in blocks] == [(0, ["a", "b"]), (3, ["c"])]

    def test_end_line(self):
        """Test end_line is the last line of the block."""
        block = extract_diagram_blocks("\n\nx\ny\nz")[0]
        assert block.start_line == 2
        assert block.end_line == 4

    def test_whitespace_only_line_is_blank(self):
        """Test lines holding only spaces end a block."""
        blocks = extract_diagram_blocks("a\n   \nb")
        assert len(blocks) == 2

    def test_fenced_code_is_skipped(self):
        """Test nothing inside a fence becomes a block."""
        text = "before\n```\n┌─┐\n│Fenced│\n└─┘\n```\nafter"
        blocks = extract_diagram_blocks(text)
        assert [b.lines for b in blocks] == [["before"], ["after"]]

    def test_tilde_fence(self):
        """Test ~~~ fences are honoured."""
        blocks = extract_diagram_blocks("~~~\ninside\n~~~\noutside")
        assert [b.lines for b in blocks] == [["outside"]]

    def test_fence_closes_only_with_same_marker(self):
        """Test a fence is not closed by the other marker or a shorter one."""
        text = "````\n```\n~~~\nstill inside\n````\nout"
        blocks = extract_diagram_blocks(text)
        assert [b.lines for b in blocks] == [["out"]]

    def test_fence_with_info_string(self):
        """Test an info string opens a fence but cannot close one."""
        text = "```text\ninside\n```python\nstill inside\n```\nout"
        blocks = extract_diagram_blocks(text)
        assert [b.lines for b in blocks] == [["out"]]

    def test_unclosed_fence_runs_to_end(self):
        """Test an unclosed fence swallows the rest of the document."""
        assert extract_diagram_blocks("a\n```\nb\nc") == extract_diagram_blocks("a")

    def test_fence_ends_current_block(self):
        """Test a fence line right after text ends that block."""
        blocks = extract_diagram_blocks("a\n```\nb\n```")
        assert [b.lines for b in blocks] == [["a"]]

    def test_ignore_region(self):
        """Test lines between ignore markers are skipped."""
        text = "\n".join(["a", IGNORE_START, "┌─┐", "│Skip│", "└─┘", IGNORE_END, "b"])
        blocks = extract_diagram_blocks(text)
        assert [(b.start_line, b.lines) for b in blocks] == [(0, ["a"]), (6, ["b"])]

    def test_indented_ignore_markers(self):
        """Test markers are matched after stripping whitespace."""
        text = "  " + IGNORE_START + "\nhidden\n  " + IGNORE_END
        assert extract_diagram_blocks(text) == []

    def test_scanner_is_reusable(self):
        """Test a scanner can scan several documents."""
        scanner = BlockScanner()
        scanner.scan("a\n\nb")
        blocks = scanner.scan("c")
        assert [b.lines for b in blocks] == [["c"]]
        assert scanner.blocks == blocks

    def test_empty_document(self):
        """Test an empty document has no blocks."""
        assert extract_diagram_blocks("") == []

    def test_inline_code_is_masked_in_blocks(self):
        """Test block lines hide inline code and keep its spans."""
        block = extract_diagram_blocks("see `┌─┐` here\nplain")[0]
        assert block.lines == ["see       here", "plain"]
        assert block.inline_code_spans == [[InlineCodeSpan(4, 8, "`┌─┐`")], []]


class TestInlineCode:
    """Tests for inline code detection, masking and restoring."""

    def test_single_span(self):
        """Test one span is found with its backticks."""
        assert detect_inline_code_spans("Some text `code` here") == [
            InlineCodeSpan(start_col=10, end_col=15, content="`code`")
        ]

    def test_multiple_spans(self):
        """Test spans on the same line are found in order."""
        spans = detect_inline_code_spans("`first` and `second` text")
        assert [s.content for s in spans] == ["`first`", "`second`"]

    def test_glyphs_inside_span(self):
        """Test arrows and box glyphs are part of the span."""
        spans = detect_inline_code_spans("Use these arrows: `⇒ ⇓ ⇑ ⇐`")
        assert [s.content for s in spans] == ["`⇒ ⇓ ⇑ ⇐`"]

    def test_escaped_backtick(self):
        """Test a backslash-escaped backtick opens nothing."""
        assert detect_inline_code_spans("Escaped: \\` not code") == []

    def test_unbalanced_backtick(self):
        """Test an unclosed span is ignored."""
        assert detect_inline_code_spans("Unbalanced `code without closing") == []

    def test_empty_span(self):
        """Test a pair of adjacent backticks is an empty span."""
        assert detect_inline_code_spans("Empty: `` code") == [InlineCodeSpan(7, 8, "``")]

    def test_mask_keeps_columns(self):
        """Test masking swaps the span for spaces of the same width."""
        masked, spans = mask_inline_code("A `bc` D")
        assert masked == "A      D"
        assert len(spans) == 1

    def test_mask_without_code(self):
        """Test a line without backticks is returned as is."""
        assert mask_inline_code("┌─┐") == ("┌─┐", [])

    def test_restore(self):
        """Test masked content is written back in place."""
        line = "x `─→─` y"
        masked, spans = mask_inline_code(line)
        assert restore_inline_code(masked, spans) == line

    def test_restore_into_trimmed_line(self):
        """Test a line trimmed before the span is padded back out."""
        spans = [InlineCodeSpan(4, 6, "`a`")]
        assert restore_inline_code("ab", spans) == "ab  `a`"
