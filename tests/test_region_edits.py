from tilecanvas.core.brush import Brush
from tilecanvas.core.grid import EMPTY_TILE, ERROR_TILE, Tile
from tilecanvas.core.presets import CanvasSettings
from tilecanvas.core.regions import CellRect

from helpers import PATH_SOURCES

STRAIGHT, CORNER, END, BLANK = range(4)


def _grid(**cells):
    tiles = [EMPTY_TILE] * 16
    for key, tile in cells.items():
        tiles[int(key[1:])] = tile
    return tiles


def test_move_region_relocates_tiles(make_engine):
    engine = make_engine(initial_tiles=_grid(c0=Tile(END, 90), c1=Tile(BLANK)))
    assert engine.move_region([0, 1], [5, 6])
    tiles = engine.full_tiles
    assert tiles[0] == EMPTY_TILE and tiles[1] == EMPTY_TILE
    assert (tiles[5].image_index, tiles[5].rotation) == (END, 90)
    assert tiles[6].image_index == BLANK
    assert engine.undo()
    assert engine.full_tiles[0].image_index == END


def test_move_region_leaves_locked_source(make_engine):
    engine = make_engine(locked_cells={0}, initial_tiles=_grid(c0=Tile(END)))
    assert not engine.move_region([0], [5])
    assert engine.full_tiles[0].image_index == END
    assert engine.full_tiles[5] == EMPTY_TILE


def test_move_region_rejects_mismatched_lists(make_engine):
    engine = make_engine(initial_tiles=_grid(c0=Tile(END)))
    assert not engine.move_region([0, 1], [5])
    assert not engine.move_region([], [])


def test_rotate_region_turns_block_about_its_center(make_engine):
    engine = make_engine(initial_tiles=_grid(c0=Tile(STRAIGHT), c1=Tile(END)))
    assert engine.rotate_region(0, 0, 0, 1)
    tiles = engine.full_tiles
    assert tiles[0] == EMPTY_TILE
    assert (tiles[1].image_index, tiles[1].rotation) == (STRAIGHT, 90)
    assert (tiles[5].image_index, tiles[5].rotation) == (END, 90)


def test_rotate_region_clamps_into_grid(make_engine):
    engine = make_engine(initial_tiles=_grid(c12=Tile(BLANK), c13=Tile(END), c14=Tile(BLANK)))
    assert engine.rotate_region(3, 3, 0, 2)
    placed = [i for i, tile in enumerate(engine.full_tiles) if tile.image_index >= 0]
    # A 3-tall column centered on row 3 is pushed up to rows 1..3
    assert placed == [5, 9, 13]
    assert engine.full_tiles[9].rotation == 90


def test_rotate_region_outside_grid_is_a_no_op(make_engine):
    engine = make_engine()
    assert not engine.rotate_region(8, 9, 8, 9)


def test_mirror_zoom_region_to_rest_of_grid(make_engine):
    engine = make_engine(mirror_horizontal=True, initial_tiles=_grid(c0=Tile(END, 90)))
    assert not engine.mirror_zoom_region_to_rest_of_grid()
    engine.set_zoom_region(CellRect(0, 1, 0, 1))
    assert engine.mirror_zoom_region_to_rest_of_grid()
    target = engine.full_tiles[3]
    assert (target.image_index, target.rotation, target.mirror_x) == (END, 90, True)


def test_mirror_zoom_region_skips_locked_targets(make_engine):
    engine = make_engine(mirror_horizontal=True, locked_cells={3},
                         initial_tiles=_grid(c0=Tile(END, 90)))
    engine.set_zoom_region(CellRect(0, 1, 0, 1))
    assert not engine.mirror_zoom_region_to_rest_of_grid()
    assert engine.full_tiles[3] == EMPTY_TILE


def test_set_tile_sources_follows_names(make_engine):
    engine = make_engine()
    engine.load_tiles(_grid(c0=Tile(CORNER), c1=Tile(END)))
    engine.set_tile_sources(list(reversed(PATH_SOURCES)))
    assert engine.full_tiles[0].image_index == 2
    assert engine.full_tiles[1].image_index == 1


def test_set_tile_sources_rematches_unnamed_by_signature(make_engine):
    engine = make_engine(initial_tiles=_grid(c0=Tile(END, 90), c1=ERROR_TILE))
    engine.set_tile_sources(["east_00100000.svg", "blank_00000000.svg"])
    first = engine.full_tiles[0]
    assert (first.image_index, first.rotation, first.mirror_x, first.mirror_y) == (0, 0, False, False)
    assert first.name == "east_00100000.svg"
    assert engine.full_tiles[1] == EMPTY_TILE


def test_set_tile_sources_drops_unmatched_signatures(make_engine):
    engine = make_engine(initial_tiles=_grid(c0=Tile(CORNER)))
    engine.set_tile_sources(["blank_00000000.svg"])
    assert engine.full_tiles[0] == EMPTY_TILE


def test_empty_source_list_empties_grid(make_engine):
    engine = make_engine()
    engine.load_tiles([Tile(BLANK)] * 16)
    engine.set_tile_sources([])
    assert all(tile == EMPTY_TILE for tile in engine.full_tiles)


def test_load_tiles_accepts_dicts_and_clears_history(make_engine):
    engine = make_engine()
    engine.flood_fill()
    engine.end_frame()
    assert engine.can_undo
    engine.load_tiles([{'image_index': 0, 'name': PATH_SOURCES[END], 'placed_order': 7}] +
                      [{}] * 15)
    assert not engine.can_undo and not engine.can_redo
    assert engine.full_tiles[0].image_index == END
    assert engine.placed_order >= 7


def test_apply_settings_relayouts(make_engine):
    engine = make_engine()
    layouts = []
    engine.layout_changed.connect(layouts.append)
    engine.apply_settings(CanvasSettings(fixed_rows=2, fixed_columns=4, mirror_vertical=True))
    assert (engine.rows, engine.columns) == (2, 4)
    assert layouts and layouts[-1].rows == 2
    assert engine.current_settings().mirror_vertical


def test_region_edits_hold_presses_until_end_of_frame(make_engine):
    engine = make_engine(brush=Brush.fixed(BLANK), mirror_horizontal=True,
                         initial_tiles=_grid(c0=Tile(END, 90), c1=Tile(STRAIGHT)))
    edits = [
        lambda: engine.move_region([1], [5]),
        lambda: engine.rotate_region(0, 0, 0, 1),
        lambda: engine.mirror_zoom_region_to_rest_of_grid(),
    ]
    engine.set_zoom_region(CellRect(0, 1, 0, 1))
    for edit in edits:
        engine.end_frame()
        edit()
        assert engine.bulk_update
        before = engine.full_tiles
        engine.handle_press(0)
        assert engine.full_tiles == before
    engine.end_frame()
    assert not engine.bulk_update
