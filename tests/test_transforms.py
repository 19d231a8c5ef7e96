from tilecanvas.core.transforms import (
    apply_group_rotation_to_tile, display_to_pattern_cell, get_rotated_dimensions,
    normalize_rotation_cw, pattern_cell_to_display, rotate_cell, unrotate_cell,
)


def test_normalize_rotation():
    assert normalize_rotation_cw(450) == 90
    assert normalize_rotation_cw(-90) == 270
    assert normalize_rotation_cw(45) == 0


def test_rotated_dimensions_swap_for_quarter_turns():
    assert get_rotated_dimensions(0, 3, 2) == (3, 2)
    assert get_rotated_dimensions(90, 3, 2) == (2, 3)
    assert get_rotated_dimensions(270, 3, 2) == (2, 3)


def test_pattern_display_mapping_is_inverse():
    width, height = 3, 2
    for rotation in (0, 90, 180, 270):
        for mirror_x in (False, True):
            seen = set()
            for r in range(height):
                for c in range(width):
                    display = pattern_cell_to_display(r, c, width, height, rotation, mirror_x)
                    seen.add(display)
                    assert display_to_pattern_cell(*display, width, height,
                                                   rotation, mirror_x) == (r, c)
            assert len(seen) == width * height


def test_display_outside_block_maps_to_none():
    assert display_to_pattern_cell(5, 0, 3, 2, 0, False) is None
    assert display_to_pattern_cell(0, 0, 3, 2, 45, False) is None


def test_rotate_cell_clockwise():
    # 2 x 3 block: top-left goes to top-right of the 3 x 2 result
    assert rotate_cell(0, 0, 2, 3, 90) == (0, 1)
    assert rotate_cell(1, 2, 2, 3, 90) == (2, 0)
    for rotation in (0, 90, 180, 270):
        assert unrotate_cell(*rotate_cell(1, 2, 2, 3, rotation), 2, 3, rotation) == (1, 2)


def test_group_rotation_swaps_mirrors_on_quarter_turns():
    assert apply_group_rotation_to_tile(90, True, False, 90) == (180, False, True)
    assert apply_group_rotation_to_tile(270, True, False, 180) == (90, True, False)
