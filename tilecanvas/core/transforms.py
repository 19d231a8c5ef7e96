"""
Geometric transforms for groups of tiles: pattern stamps and region rotation.

A pattern is drawn in natural order (height rows x width columns), then
mirrored horizontally in pattern space, then rotated clockwise. The same
clockwise rotation convention is used when a selected region is rotated:
cell (r, c) of an h x w block moves to (c, h - 1 - r) for 90 degrees.
"""
from typing import Optional, Tuple


def normalize_rotation_cw(degrees: int) -> int:
    """Snap to 0/90/180/270; anything else is treated as 0"""
    normalized = degrees % 360
    return normalized if normalized in (0, 90, 180, 270) else 0


def get_rotated_dimensions(rotation_cw: int, width: int, height: int) -> Tuple[int, int]:
    """
    Size of the repeating block on the canvas.

    Returns:
        (rot_w, rot_h): width and height swap for 90/270
    """
    if (rotation_cw % 360) % 180 == 0:
        return width, height
    return height, width


def pattern_cell_to_display(pattern_row: int, pattern_col: int, width: int, height: int,
                            rotation_cw: int, mirror_x: bool) -> Tuple[int, int]:
    """Forward map: pattern cell -> (display_row, display_col)"""
    rotation = rotation_cw % 360
    ic = width - 1 - pattern_col if mirror_x else pattern_col
    ir = pattern_row
    if rotation == 0:
        return ir, ic
    if rotation == 90:
        return ic, height - 1 - ir
    if rotation == 180:
        return height - 1 - ir, width - 1 - ic
    return width - 1 - ic, ir


def display_to_pattern_cell(display_row: int, display_col: int, width: int, height: int,
                            rotation_cw: int, mirror_x: bool) -> Optional[Tuple[int, int]]:
    """
    Inverse of pattern_cell_to_display.

    Returns:
        (source_row, source_col), or None for an unsupported rotation or a
        display cell outside the rotated block
    """
    rotation = rotation_cw % 360
    if rotation == 0:
        ir, ic = display_row, display_col
    elif rotation == 90:
        ir, ic = height - 1 - display_col, display_row
    elif rotation == 180:
        ir, ic = height - 1 - display_row, width - 1 - display_col
    elif rotation == 270:
        ir, ic = display_col, width - 1 - display_row
    else:
        return None

    source_row = ir
    source_col = width - 1 - ic if mirror_x else ic
    if source_row < 0 or source_row >= height or source_col < 0 or source_col >= width:
        return None
    return source_row, source_col


def rotate_cell(r: int, c: int, height: int, width: int, rotation_cw: int) -> Tuple[int, int]:
    """Position of (r, c) after rotating an height x width block clockwise"""
    if rotation_cw == 90:
        return c, height - 1 - r
    if rotation_cw == 180:
        return height - 1 - r, width - 1 - c
    if rotation_cw == 270:
        return width - 1 - c, r
    return r, c


def unrotate_cell(new_r: int, new_c: int, height: int, width: int,
                  rotation_cw: int) -> Tuple[int, int]:
    """Inverse of rotate_cell; height/width are the original block's"""
    if rotation_cw == 90:
        return height - 1 - new_c, new_r
    if rotation_cw == 180:
        return height - 1 - new_r, width - 1 - new_c
    if rotation_cw == 270:
        return new_c, width - 1 - new_r
    return new_r, new_c


def apply_group_rotation_to_tile(rotation: int, mirror_x: bool, mirror_y: bool,
                                 rotation_cw: int) -> Tuple[int, bool, bool]:
    """
    Transform of a tile that turns with its group.

    90/270: rotation advances and the mirror flags swap.
    0/180: rotation advances, mirrors unchanged.

    Returns:
        (rotation, mirror_x, mirror_y)
    """
    new_rotation = (rotation + rotation_cw) % 360
    if rotation_cw in (90, 270):
        return new_rotation, mirror_y, mirror_x
    return new_rotation, mirror_x, mirror_y
