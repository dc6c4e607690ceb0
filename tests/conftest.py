"""Pytest configuration and shared fixtures for BoxMend tests."""

import pytest

from boxmend import DiagramRepairer, Grid


@pytest.fixture
def simple_box_lines():
    """A clean 3x3 single-line box."""
    return ["┌─┐", "│ │", "└─┘"]


@pytest.fixture
def overflow_box_lines():
    """A box narrower than its own text."""
    return ["┌─┐", "│Longer│", "└─┘"]


@pytest.fixture
def arrow_between_boxes_lines():
    """Two boxes joined by a horizontal arrow."""
    return [
        "┌───┐     ┌───┐",
        "│ A │ ──→ │ B │",
        "└───┘     └───┘",
    ]


@pytest.fixture
def stacked_boxes_lines():
    """Two stacked boxes with an off-center vertical arrow between them."""
    return [
        "┌─────┐",
        "│ Top │",
        "└─────┘",
        "    ↓",
        "┌─────┐",
        "│ Bot │",
        "└─────┘",
    ]


@pytest.fixture
def nested_box_lines():
    """A box nested inside another with a one-cell margin."""
    return [
        "┌──────────────┐",
        "│              │",
        "│ ┌──────────┐ │",
        "│ │  Inner   │ │",
        "│ └──────────┘ │",
        "│              │",
        "└──────────────┘",
    ]


@pytest.fixture
def simple_grid(simple_box_lines):
    """Grid built from the simple box."""
    return Grid.from_lines(simple_box_lines)


@pytest.fixture
def markdown_document():
    """Markdown with prose, a broken diagram and a fenced block."""
    return "\n".join(
        [
            "# Architecture",
            "",
            "Some prose before the diagram.",
            "",
            "┌─┐",
            "│Longer│",
            "└─┘",
            "",
            "```",
            "┌─┐",
            "│Fenced│",
            "└─┘",
            "```",
            "",
            "Closing words.",
        ]
    )


@pytest.fixture
def repairer():
    """Default DiagramRepairer instance."""
    return DiagramRepairer()
