"""Tests for the text summary of a search result."""

from casting.engine.planner import find_optimal
from casting.report import summarize_result


def test_clean_final_state_has_no_notes(scenario_a):
    text = summarize_result(find_optimal(scenario_a), scenario_a)
    assert text.startswith("Status: Found")
    assert "Total score: 3" in text
    assert "Notes:" not in text


def test_soft_findings_are_listed_as_notes(scenario_c):
    """Only one dancer gets the single seat; the other's must-have is noted, not fatal."""
    result = find_optimal(scenario_c)
    assert result.found
    text = summarize_result(result, scenario_c)
    assert "Notes:" in text
    notes = text.split("Notes:", 1)[1]
    assert notes.count("MustHaveUnreached") == 1
