from tilecanvas.core.brush import Brush, Pattern
from tilecanvas.core.connections import DIRECTION_OFFSETS, opposite_direction, to_connection_key
from tilecanvas.core.grid import EMPTY_INDEX, EMPTY_TILE, Tile
from tilecanvas.core.regions import CellRect, LockedRegion

from helpers import all_signature_names, connections_at, connector_count, placed_indices

STRAIGHT, CORNER, END, BLANK = range(4)


def _grid(**cells):
    tiles = [EMPTY_TILE] * 16
    for key, tile in cells.items():
        tiles[int(key[1:])] = tile
    return tiles


def _assert_connectors_agree(engine):
    """Every connector meets a connector on an on-grid neighbor, and vice versa"""
    rows, columns = engine.rows, engine.columns
    for index in range(rows * columns):
        conn = connections_at(engine, index)
        if conn is None:
            continue
        row, col = divmod(index, columns)
        for direction, (dr, dc) in enumerate(DIRECTION_OFFSETS):
            r, c = row + dr, col + dc
            if not (0 <= r < rows and 0 <= c < columns):
                assert not conn[direction], f"cell {index} points off the grid"
                continue
            neighbor = connections_at(engine, r * columns + c)
            if neighbor is not None:
                assert conn[direction] == neighbor[opposite_direction(direction)], \
                    f"cells {index} and {r * columns + c} disagree"


def test_fixed_flood_fills_every_cell_and_undoes(make_engine):
    engine = make_engine(brush=Brush.fixed(BLANK))
    assert engine.flood_fill()
    assert placed_indices(engine) == list(range(16))
    engine.end_frame()
    assert engine.undo()
    assert placed_indices(engine) == []


def test_fixed_flood_with_mirror_flips_right_half(make_engine):
    engine = make_engine(brush=Brush.fixed(END, 90), mirror_horizontal=True)
    engine.flood_fill()
    tiles = engine.full_tiles
    assert all(not tiles[r * 4 + c].mirror_x for r in range(4) for c in (0, 1))
    assert all(tiles[r * 4 + c].mirror_x for r in range(4) for c in (2, 3))


def test_flood_respects_selection(make_engine):
    engine = make_engine(brush=Brush.fixed(BLANK), selection=LockedRegion(5, 10))
    engine.flood_fill()
    assert placed_indices(engine) == [5, 6, 9, 10]


def test_erase_flood_in_zoom_leaves_outside_alone(make_engine):
    engine = make_engine(brush=Brush.erase())
    engine.load_tiles([Tile(BLANK)] * 16)
    engine.set_zoom_region(CellRect(1, 2, 1, 2))
    assert engine.flood_fill()
    empty = [i for i, tile in enumerate(engine.full_tiles) if tile.image_index == EMPTY_INDEX]
    assert empty == [5, 6, 9, 10]


def test_clone_has_no_flood(make_engine):
    engine = make_engine(brush=Brush.clone())
    assert not engine.flood_fill()
    assert not engine.flood_complete()


def test_pattern_flood_tiles_from_grid_origin(make_engine):
    pattern = Pattern([Tile(END), Tile(BLANK), Tile(BLANK), Tile(END)], width=2, height=2)
    engine = make_engine(brush=Brush.pattern(), pattern=pattern)
    engine.flood_fill()
    indices = [tile.image_index for tile in engine.full_tiles]
    assert indices[0] == indices[2] == indices[5] == END
    assert indices[1] == indices[4] == BLANK


def test_draw_flood_lays_one_connected_spiral(make_engine):
    engine = make_engine(brush=Brush.draw())
    engine.flood_fill()
    counts = [connector_count(engine, i) for i in range(16)]
    assert sorted(counts) == [1, 1] + [2] * 14
    # The spiral starts top-left and ends inside
    assert counts[0] == 1
    _assert_connectors_agree(engine)


def test_random_flood_complete_is_idempotent(make_engine):
    engine = make_engine(initial_tiles=_grid(c5=Tile(STRAIGHT)))
    assert engine.flood_complete()
    engine.end_frame()
    assert all(tile.image_index != EMPTY_INDEX for tile in engine.full_tiles)
    assert engine.full_tiles[5].image_index == STRAIGHT

    before = engine.full_tiles
    assert not engine.flood_complete()
    assert engine.full_tiles == before


def test_legal_only_flood_complete_is_idempotent(make_engine):
    engine = make_engine(random_requires_legal=True, initial_tiles=_grid(c0=Tile(END, 90)))
    engine.flood_complete()
    engine.end_frame()
    before = engine.full_tiles
    assert not engine.flood_complete()
    assert engine.full_tiles == before


def test_flood_complete_keeps_existing_mirror_side_tiles(make_engine):
    engine = make_engine(brush=Brush.fixed(BLANK), mirror_horizontal=True,
                         initial_tiles=_grid(c3=Tile(END, 270)))
    engine.flood_complete()
    assert placed_indices(engine) == list(range(16))
    assert (engine.full_tiles[3].image_index, engine.full_tiles[3].rotation) == (END, 270)


def test_flood_complete_skips_locked_cells(make_engine):
    engine = make_engine(brush=Brush.fixed(BLANK), locked_cells={0, 15})
    engine.flood_complete()
    assert placed_indices(engine) == list(range(1, 15))


def test_reconcile_reaches_a_consistent_grid(make_engine):
    scrambled = [Tile((i * 37 + 11) % 256, (i * 90) % 360) for i in range(16)]
    engine = make_engine(source_names=all_signature_names(), initial_tiles=scrambled)
    engine.reconcile_tiles()
    _assert_connectors_agree(engine)
    engine.end_frame()
    assert not engine.reconcile_tiles()


def test_controlled_randomize_preserves_signatures(make_engine):
    engine = make_engine(initial_tiles=_grid(c0=Tile(STRAIGHT), c1=Tile(CORNER, 90),
                                             c2=Tile(END, 180), c3=Tile(BLANK)))
    keys = [to_connection_key(connections_at(engine, i)) for i in range(16)]
    for _ in range(5):
        engine.controlled_randomize()
        engine.end_frame()
        assert [to_connection_key(connections_at(engine, i)) for i in range(16)] == keys


def test_reconcile_under_mirroring_repairs_both_sides(make_engine):
    scrambled = [Tile((i * 53 + 7) % 256, (i * 90) % 360, i % 3 == 0) for i in range(16)]
    engine = make_engine(source_names=all_signature_names(), initial_tiles=scrambled,
                         mirror_horizontal=True)
    engine.reconcile_tiles()
    _assert_connectors_agree(engine)
    engine.end_frame()
    assert not engine.reconcile_tiles()


def test_controlled_randomize_under_mirroring_keeps_both_sides(make_engine):
    engine = make_engine(rows=2, columns=2, mirror_horizontal=True,
                         initial_tiles=[Tile(STRAIGHT, 90), Tile(BLANK),
                                        Tile(STRAIGHT), Tile(STRAIGHT)])
    keys = [to_connection_key(connections_at(engine, i)) for i in range(4)]
    for _ in range(5):
        engine.controlled_randomize()
        engine.end_frame()
        assert [to_connection_key(connections_at(engine, i)) for i in range(4)] == keys
    left, right = engine.full_tiles[2], engine.full_tiles[3]
    assert (left.image_index, left.rotation) == (right.image_index, right.rotation)
    assert left.mirror_x != right.mirror_x


def test_random_fill_covers_unlocked_cells(make_engine):
    engine = make_engine(locked_cells={0}, initial_tiles=_grid(c0=Tile(BLANK)))
    assert engine.random_fill()
    tiles = engine.full_tiles
    assert tiles[0].image_index == BLANK
    assert all(tile.image_index != EMPTY_INDEX for tile in tiles)


def test_reset_keeps_locked_cells_and_undoes(make_engine):
    engine = make_engine()
    engine.load_tiles([Tile(BLANK)] * 16)
    engine.set_locked_cells({0})
    assert engine.reset_tiles()
    assert placed_indices(engine) == [0]
    engine.end_frame()
    assert engine.undo()
    assert placed_indices(engine) == list(range(16))


def test_reset_with_selection_clears_selection_and_mirror(make_engine):
    engine = make_engine(mirror_horizontal=True)
    engine.load_tiles([Tile(BLANK)] * 16)
    engine.set_selection(LockedRegion(0, 0))
    engine.reset_tiles()
    assert [i for i in range(16) if i not in placed_indices(engine)] == [0, 3]


def test_fill_operation_signal_reports_changes(make_engine):
    engine = make_engine(brush=Brush.fixed(BLANK))
    seen = []
    engine._fill_engine.operation_finished.connect(lambda name, changed: seen.append((name, changed)))
    engine.flood_fill()
    assert seen == [('flood', 16)]
