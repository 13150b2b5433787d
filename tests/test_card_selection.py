"""Tests for set-diversifying card selection."""

from test_helpers import make_candidate

from utils.card_selection import select_diverse


def test_one_card_per_set_before_duplicates():
    candidates = [
        make_candidate("a-1", "a"),
        make_candidate("a-2", "a"),
        make_candidate("b-1", "b"),
        make_candidate("b-2", "b"),
        make_candidate("c-1", "c"),
        make_candidate("c-2", "c"),
    ]

    chosen = select_diverse(candidates, 3)

    assert [c.card_id for c in chosen] == ["a-1", "b-1", "c-1"]


def test_fills_from_single_set_when_needed():
    candidates = [make_candidate(f"a-{i}", "a") for i in range(5)]

    chosen = select_diverse(candidates, 3)

    assert [c.card_id for c in chosen] == ["a-0", "a-1", "a-2"]


def test_second_pass_keeps_input_order():
    candidates = [
        make_candidate("a-1", "a"),
        make_candidate("a-2", "a"),
        make_candidate("b-1", "b"),
        make_candidate("a-3", "a"),
    ]

    chosen = select_diverse(candidates, 3)

    assert [c.card_id for c in chosen] == ["a-1", "b-1", "a-2"]


def test_limit_larger_than_input_returns_everything():
    candidates = [make_candidate("a-1", "a"), make_candidate("b-1", "b")]

    assert select_diverse(candidates, 10) == candidates


def test_empty_input_and_non_positive_limit():
    assert select_diverse([], 5) == []
    assert select_diverse([make_candidate("a-1")], 0) == []


def test_selection_is_deterministic():
    candidates = [make_candidate(f"{s}-{i}", s) for s in "xyz" for i in range(3)]

    assert select_diverse(candidates, 5) == select_diverse(list(candidates), 5)
