"""
Tests for project similarity from inner circle overlap.
"""

import pytest

from circle_engine.scoring.similarity import (
    compute_all_competitors,
    compute_common_inner_circle,
    find_top_competitors,
)


INFLUENCE = {"p90": 90, "p70": 70, "p50": 50, "x": 10, "y": 20}


class TestCommonInnerCircle:

    def test_worked_example(self):
        result = compute_common_inner_circle({"p90", "p70"}, {"p70"}, INFLUENCE)
        assert result.common_count == 1
        assert result.common_power == 70
        assert result.similarity_score == 0.6667

    def test_symmetric(self):
        a, b = {"p90", "p70", "x"}, {"p70", "y"}
        assert compute_common_inner_circle(a, b, INFLUENCE) == compute_common_inner_circle(b, a, INFLUENCE)

    def test_identical_sets(self):
        result = compute_common_inner_circle({"x", "y"}, {"x", "y"}, INFLUENCE)
        assert result.similarity_score == 1.0
        assert result.common_power == 30

    def test_disjoint_sets(self):
        result = compute_common_inner_circle({"x"}, {"y"}, INFLUENCE)
        assert result.common_count == 0
        assert result.similarity_score == 0.0

    def test_both_empty(self):
        result = compute_common_inner_circle(set(), set(), INFLUENCE)
        assert result.similarity_score == 0.0

    def test_unknown_influence_counts_zero(self):
        result = compute_common_inner_circle({"ghost"}, {"ghost"}, INFLUENCE)
        assert result.common_power == 0


class TestTopCompetitors:

    def test_no_self_edges(self):
        circles = {"A": ["x", "y"], "B": ["x"]}
        edges = find_top_competitors("A", circles, INFLUENCE)
        assert [e.competitor_id for e in edges] == ["B"]

    def test_zero_overlap_excluded(self):
        circles = {"A": ["x"], "B": ["y"]}
        assert find_top_competitors("A", circles, INFLUENCE) == []

    def test_empty_circles_ignored(self):
        circles = {"A": ["x"], "B": []}
        assert find_top_competitors("A", circles, INFLUENCE) == []
        assert find_top_competitors("B", circles, INFLUENCE) == []

    def test_limit(self):
        circles = {"A": ["x"]}
        circles.update({f"P{i}": ["x"] for i in range(10)})
        assert len(find_top_competitors("A", circles, INFLUENCE, limit=5)) == 5

    def test_sorted_by_similarity(self):
        circles = {
            "A": ["x", "y"],
            "close": ["x", "y"],
            "far": ["x", "p90", "p70", "p50"],
        }
        edges = find_top_competitors("A", circles, INFLUENCE)
        assert [e.competitor_id for e in edges] == ["close", "far"]

    def test_tie_break_by_power_then_id(self):
        circles = {
            "A": ["x", "y"],
            "b_low": ["x"],
            "a_low": ["x"],
            "c_high": ["y"],
        }
        edges = find_top_competitors("A", circles, INFLUENCE)
        assert [e.competitor_id for e in edges] == ["c_high", "a_low", "b_low"]


class TestAllCompetitors:

    def test_every_project_gets_an_entry(self):
        circles = {"A": ["x"], "B": ["x"], "C": [], "D": ["y"]}
        edges = compute_all_competitors(circles, INFLUENCE)
        assert set(edges) == {"A", "B", "C", "D"}
        assert edges["C"] == []
        assert edges["D"] == []
        assert [e.competitor_id for e in edges["A"]] == ["B"]

    def test_idempotent(self):
        circles = {"A": ["x", "y"], "B": ["x"], "C": ["y", "p90"]}
        assert compute_all_competitors(circles, INFLUENCE) == compute_all_competitors(circles, INFLUENCE)

    def test_bounds(self):
        circles = {"A": ["x", "y", "p50"], "B": ["x"], "C": ["y", "p90"]}
        for edges in compute_all_competitors(circles, INFLUENCE).values():
            for e in edges:
                assert 0 <= e.similarity_score <= 1
