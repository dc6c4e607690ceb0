"""
Debug tracing for boxmend.

When a repair runs with debug=True, the repairer records what happened to
every diagram block: a snapshot after detection, one stage per normalizer
pass, the rendered result, and every character the renderer wrote.

Usage:
    >>> repairer = DiagramRepairer()
    >>> fixed = repairer.repair(document, debug=True)
    >>> trace = repairer.get_trace()
    >>> print(trace.summary())
    >>> trace.dump_to_file("repair_trace.txt")

Stages recorded per block (names are prefixed with the block number):
- detected: primitive counts and box geometry from the detector
- box_widths, nesting_and_balance, padding, horizontal_arrows,
  vertical_arrows: one per normalizer pass
- rendered: grid snapshot after drawing
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class CharacterPlacement:
    """
    Record of a single character written by the renderer.

    Attributes:
        row: Row in the block's grid
        col: Column in the block's grid
        char: The character that was written
        previous_char: What was in the cell before (" " for absent cells)
        reason: Why it was written (e.g. "box_border", "text", "arrow_tip")
        source: The function that wrote it (e.g. "renderer.draw_box")
    """

    row: int
    col: int
    char: str
    previous_char: str
    reason: str
    source: str

    def __str__(self) -> str:
        if self.previous_char == " ":
            return (
                f"({self.row},{self.col}): '{self.char}' "
                f"[{self.reason}] from {self.source}"
            )
        return (
            f"({self.row},{self.col}): '{self.previous_char}' -> '{self.char}' "
            f"[{self.reason}] from {self.source}"
        )


@dataclass
class PipelineStage:
    """
    Snapshot of state at one pipeline stage.

    Attributes:
        name: Name of this stage
        data: Relevant data at this stage (primitive counts, geometry)
        grid_snapshot: Optional grid lines at this point
    """

    name: str
    data: Dict[str, Any]
    grid_snapshot: Optional[List[str]] = None

    def __str__(self) -> str:
        lines = [f"=== Stage: {self.name} ==="]
        for key, value in self.data.items():
            str_val = str(value)
            if len(str_val) > 100:
                str_val = str_val[:100] + "..."
            lines.append(f"  {key}: {str_val}")
        if self.grid_snapshot:
            lines.append("  Grid preview (first 15 rows):")
            for row in self.grid_snapshot[:15]:
                lines.append(f"    |{row}|")
        return "\n".join(lines)


@dataclass
class RenderTrace:
    """
    Complete trace of a repair run.

    Usage:
        >>> trace = repairer.get_trace()
        >>> upgrades = trace.get_overwrites()
        >>> grid_after = trace.get_grid_at_stage("block0:rendered")
        >>> at_cell = trace.get_placements_at(2, 10)

    Attributes:
        stages: Pipeline stages with their data
        character_placements: Every character the renderer wrote
        input_text: The document being repaired
        blocks_repaired: Number of blocks that went through the pipeline
    """

    stages: List[PipelineStage] = field(default_factory=list)
    character_placements: List[CharacterPlacement] = field(default_factory=list)
    input_text: str = ""
    blocks_repaired: int = 0

    def add_stage(
        self,
        name: str,
        data: Dict[str, Any],
        grid: Optional[Any] = None,
    ) -> None:
        """
        Add a pipeline stage snapshot.

        Args:
            name: Name of the stage (e.g., "block0:detected")
            data: Dictionary of relevant data at this stage
            grid: Optional Grid object to snapshot
        """
        snapshot = None
        if grid is not None:
            snapshot = grid.lines()

        self.stages.append(PipelineStage(name, data.copy(), snapshot))

    def add_placement(
        self,
        row: int,
        col: int,
        char: str,
        previous_char: str,
        reason: str,
        source: str,
    ) -> None:
        """Record a character placement."""
        self.character_placements.append(
            CharacterPlacement(row, col, char, previous_char, reason, source)
        )

    def get_stage(self, name: str) -> Optional[PipelineStage]:
        """Get a specific pipeline stage by name."""
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    def get_stages_ending_with(self, suffix: str) -> List[PipelineStage]:
        """Get the stages with a given name suffix, e.g. "rendered", across blocks."""
        return [s for s in self.stages if s.name.endswith(suffix)]

    def get_grid_at_stage(self, name: str) -> Optional[List[str]]:
        """Get the grid snapshot at a specific stage."""
        stage = self.get_stage(name)
        if stage and stage.grid_snapshot:
            return stage.grid_snapshot
        return None

    def get_placements_at(self, row: int, col: int) -> List[CharacterPlacement]:
        """Get all character placements at a specific cell."""
        return [
            p for p in self.character_placements if p.row == row and p.col == col
        ]

    def get_overwrites(self) -> List[CharacterPlacement]:
        """
        Get all placements that replaced a different, non-blank character.

        Useful when a repair changed something it should not have: these are
        exactly the cells where existing content was replaced.
        """
        return [
            p
            for p in self.character_placements
            if p.previous_char != " " and p.previous_char != p.char
        ]

    def get_placements_by_source(
        self, source_substring: str
    ) -> List[CharacterPlacement]:
        """Get all placements from a specific source (partial match)."""
        return [
            p for p in self.character_placements if source_substring in p.source
        ]

    def get_placements_by_reason(
        self, reason_substring: str
    ) -> List[CharacterPlacement]:
        """Get all placements with a specific reason (partial match)."""
        return [
            p for p in self.character_placements if reason_substring in p.reason
        ]

    def summary(self) -> str:
        """Generate a human-readable summary of the trace."""
        lines = [
            "=" * 60,
            "REPAIR TRACE SUMMARY",
            "=" * 60,
            "",
            f"Input: {repr(self.input_text[:100])}"
            f"{'...' if len(self.input_text) > 100 else ''}",
            f"Blocks repaired: {self.blocks_repaired}",
            "",
            f"Pipeline stages: {len(self.stages)}",
        ]

        for stage in self.stages:
            has_grid = "+" if stage.grid_snapshot else "-"
            lines.append(f"  [{has_grid}] {stage.name}")

        lines.extend(
            [
                "",
                f"Total character placements: {len(self.character_placements)}",
                f"Overwrites: {len(self.get_overwrites())}",
                "",
            ]
        )

        reason_counts: Dict[str, int] = {}
        for p in self.character_placements:
            reason_counts[p.reason] = reason_counts.get(p.reason, 0) + 1

        lines.append("Placements by reason:")
        for reason, count in sorted(reason_counts.items(), key=lambda x: -x[1]):
            lines.append(f"  {reason}: {count}")

        return "\n".join(lines)

    def dump(self) -> str:
        """Full dump: summary, every stage and every placement."""
        lines = [self.summary(), "", "=" * 60, "DETAILED TRACE", "=" * 60, ""]

        lines.append("PIPELINE STAGES:")
        lines.append("-" * 40)
        for stage in self.stages:
            lines.append(str(stage))
            lines.append("")

        lines.append("CHARACTER PLACEMENTS:")
        lines.append("-" * 40)
        for p in self.character_placements:
            lines.append(str(p))

        return "\n".join(lines)

    def dump_to_file(self, filename: str) -> None:
        """Write the complete trace dump to a file."""
        with open(filename, "w", encoding="utf-8") as f:
            f.write(self.dump())
