import pytest

from payroll_admin.grid.navigator import ARROWS, next_position


@pytest.mark.parametrize("rows,cols", [(1, 1), (3, 2), (4, 5)])
def test_arrow_moves_never_leave_the_grid(rows, cols):
    for r in range(rows):
        for c in range(cols):
            for key in ARROWS:
                target = next_position(key, r, c, rows, cols)
                if target is None:
                    continue
                tr, tc = target
                assert 0 <= tr < rows and 0 <= tc < cols
                assert abs(tr - r) + abs(tc - c) == 1


def test_arrows_clamp_at_edges():
    assert next_position("ArrowLeft", 0, 0, 3, 2) is None
    assert next_position("ArrowUp", 0, 1, 3, 2) is None
    assert next_position("ArrowDown", 2, 1, 3, 2) is None
    assert next_position("ArrowRight", 1, 1, 3, 2) is None
    assert next_position("ArrowDown", 0, 1, 3, 2) == (1, 1)


def test_tab_from_last_column_wraps_to_next_row():
    assert next_position("Tab", 0, 1, 3, 2) == (1, 0)
    assert next_position("Tab", 1, 0, 3, 2) == (1, 1)


def test_tab_stops_at_last_cell():
    assert next_position("Tab", 2, 1, 3, 2) is None


def test_shift_tab_wraps_back_and_stops_at_origin():
    assert next_position("Tab", 1, 0, 3, 2, shift=True) == (0, 1)
    assert next_position("Tab", 0, 1, 3, 2, shift=True) == (0, 0)
    assert next_position("Tab", 0, 0, 3, 2, shift=True) is None


def test_three_tabs_from_origin():
    pos = (0, 0)
    visited = []
    for _ in range(3):
        pos = next_position("Tab", *pos, rows=3, cols=2) or pos
        visited.append(pos)
    assert visited == [(0, 1), (1, 0), (1, 1)]


@pytest.mark.parametrize("key", ["Enter", "a", "Escape", "PageDown"])
def test_other_keys_do_not_move(key):
    assert next_position(key, 1, 1, 3, 3) is None


def test_empty_grid_has_nowhere_to_go():
    assert next_position("ArrowDown", 0, 0, 0, 2) is None
    assert next_position("Tab", 0, 0, 2, 0) is None
