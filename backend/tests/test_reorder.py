from __future__ import annotations

import itertools

import pytest

from app.reorder import DropEdge, edge_from_hitbox, insertion_index, reorder


def test_move_first_item_after_third() -> None:
    assert reorder(["A", "B", "C", "D"], 0, 2, DropEdge.AFTER) == ["B", "C", "A", "D"]


def test_move_last_item_before_second() -> None:
    assert reorder(["A", "B", "C", "D"], 3, 1, DropEdge.BEFORE) == ["A", "D", "B", "C"]


def test_hitbox_edges_map_to_drop_edges() -> None:
    assert edge_from_hitbox("top") is DropEdge.BEFORE
    assert edge_from_hitbox("bottom") is DropEdge.AFTER
    assert edge_from_hitbox("after") is DropEdge.AFTER
    assert reorder(["A", "B", "C"], 2, 0, "top") == ["C", "A", "B"]
    with pytest.raises(ValueError):
        edge_from_hitbox("left")


def test_dropping_on_itself_is_a_no_op() -> None:
    items = ["A", "B", "C"]
    result = reorder(items, 1, 1, DropEdge.AFTER)
    assert result == items
    assert result is not items


def test_input_is_not_mutated() -> None:
    items = ["A", "B", "C", "D"]
    reorder(items, 0, 3, DropEdge.AFTER)
    assert items == ["A", "B", "C", "D"]


def test_out_of_range_indices_raise() -> None:
    with pytest.raises(IndexError):
        reorder(["A", "B"], 2, 0, DropEdge.BEFORE)
    with pytest.raises(IndexError):
        reorder(["A", "B"], 0, -1, DropEdge.BEFORE)


def test_insertion_index_accounts_for_removed_source() -> None:
    assert insertion_index(0, 2, DropEdge.BEFORE) == 1
    assert insertion_index(0, 2, DropEdge.AFTER) == 2
    assert insertion_index(3, 1, DropEdge.AFTER) == 2


def test_every_reorder_is_a_permutation() -> None:
    items = ["A", "B", "C", "D", "E"]
    for source, target in itertools.product(range(len(items)), repeat=2):
        for edge in DropEdge:
            result = reorder(items, source, target, edge)
            assert sorted(result) == sorted(items)
            assert len(result) == len(items)
            if source != target:
                landed = result.index(items[source])
                neighbour = items[target]
                if edge is DropEdge.BEFORE:
                    assert result[landed + 1] == neighbour
                else:
                    assert result[landed - 1] == neighbour
