import json

import pytest

from tilecanvas.core.grid import EMPTY_TILE, Tile
from tilecanvas.core.tile_format import (
    TILE_FORMAT_VERSION, TileFormatError, deserialize_design, serialize_design,
)

from helpers import PATH_SOURCES


def test_design_round_trip_names_tiles():
    tiles = [Tile(2, 90, True, False), EMPTY_TILE, Tile(0), EMPTY_TILE]
    text = serialize_design("loop", 2, 2, tiles, PATH_SOURCES, preferred_tile_size=32,
                            locked_cells=[3, 0, 3])
    design = deserialize_design(text)
    assert design.name == "loop"
    assert (design.rows, design.columns) == (2, 2)
    assert design.tiles[0].name == PATH_SOURCES[2]
    assert (design.tiles[0].rotation, design.tiles[0].mirror_x) == (90, True)
    assert design.tiles[1] == EMPTY_TILE
    assert design.preferred_tile_size == 32
    assert design.source_names == PATH_SOURCES
    assert design.locked_cells == [0, 3]


def test_payload_carries_version():
    data = json.loads(serialize_design("x", 1, 1, [EMPTY_TILE]))
    assert data['v'] == TILE_FORMAT_VERSION
    assert 'preferred_tile_size' not in data


@pytest.mark.parametrize("text", [
    "not json",
    "[]",
    json.dumps({'v': 99, 'grid': {'rows': 1, 'columns': 1}}),
    json.dumps({'v': TILE_FORMAT_VERSION}),
    json.dumps({'v': TILE_FORMAT_VERSION, 'grid': {'rows': -1, 'columns': 2}}),
    json.dumps({'v': TILE_FORMAT_VERSION, 'grid': {'rows': 1, 'columns': 1}, 'tiles': {}}),
    json.dumps({'v': TILE_FORMAT_VERSION, 'grid': {'rows': 1, 'columns': 1}, 'source_names': "ab"}),
    json.dumps({'v': TILE_FORMAT_VERSION, 'grid': {'rows': 1, 'columns': 1}, 'locked_cells': 0}),
])
def test_bad_envelopes_raise(text):
    with pytest.raises(TileFormatError):
        deserialize_design(text)


def test_bad_tiles_and_cells_are_tolerated():
    text = json.dumps({
        'v': TILE_FORMAT_VERSION,
        'grid': {'rows': 1, 'columns': 2},
        'tiles': ["junk", {'image_index': 'x', 'rotation': 450}],
        'locked_cells': [1, 5, True, "2"],
        'preferred_tile_size': "big",
    })
    design = deserialize_design(text)
    assert design.tiles == [EMPTY_TILE, Tile(rotation=90)]
    assert design.locked_cells == [1]
    assert design.preferred_tile_size is None
    assert design.name == ""


def test_null_list_fields_read_as_empty():
    text = json.dumps({
        'v': TILE_FORMAT_VERSION,
        'grid': {'rows': 1, 'columns': 1},
        'tiles': None,
        'source_names': None,
        'locked_cells': None,
    })
    design = deserialize_design(text)
    assert design.tiles == []
    assert design.source_names == []
    assert design.locked_cells == []


def test_saved_design_loads_into_engine(make_engine):
    engine = make_engine(rows=2, columns=2)
    engine.load_tiles([Tile(3)] * 4)
    text = serialize_design("blank", engine.rows, engine.columns, engine.full_tiles,
                            engine.source_names)
    other = make_engine(source_names=list(reversed(PATH_SOURCES)), rows=2, columns=2)
    other.load_tiles(deserialize_design(text).tiles)
    assert all(tile.image_index == 0 for tile in other.full_tiles)
