import itertools

from tilecanvas.core.connections import (
    E, N, NE, NW, S, SE, SW, W, ROTATIONS, active_directions, connections_from_directions,
    from_connection_key, get_connection_count_from_file_name,
    get_transformed_connections_for_name, opposite_direction, parse_tile_connections,
    to_connection_key, transform_connections,
)


def test_parse_tile_connections_reads_signature_suffix():
    conn = parse_tile_connections("road_10100000.svg")
    assert conn == (True, False, True, False, False, False, False, False)


def test_parse_tile_connections_accepts_raster_extensions_case_insensitively():
    assert parse_tile_connections("a_00000001.PNG") is not None
    assert parse_tile_connections("a_00000001.jpeg") is not None
    assert parse_tile_connections("a_00000001.webp") is not None


def test_unparseable_names_are_non_directional():
    assert parse_tile_connections("decoration.svg") is None
    assert parse_tile_connections("a_1010.svg") is None
    assert parse_tile_connections("_10000000.svg") is None
    assert get_connection_count_from_file_name("decoration.svg") == 0


def test_connection_count_from_file_name():
    assert get_connection_count_from_file_name("x_11100000.svg") == 3


def test_opposite_direction_pairs():
    assert opposite_direction(N) == S
    assert opposite_direction(NE) == SW
    assert opposite_direction(E) == W
    assert opposite_direction(NW) == SE


def test_rotation_by_90_turns_north_into_east():
    north = connections_from_directions([N])
    assert active_directions(transform_connections(north, 90, False, False)) == [E]
    assert active_directions(transform_connections(north, 180, False, False)) == [S]
    assert active_directions(transform_connections(north, 270, False, False)) == [W]


def test_mirror_x_swaps_east_and_west():
    conn = connections_from_directions([N, NE, E, SE])
    mirrored = transform_connections(conn, 0, True, False)
    assert active_directions(mirrored) == [N, SW, W, NW]


def test_mirror_y_swaps_north_and_south():
    conn = connections_from_directions([N, NE, E])
    mirrored = transform_connections(conn, 0, False, True)
    assert active_directions(mirrored) == [E, SE, S]


def test_transform_is_bijection_for_all_sixteen_combinations():
    all_signatures = [tuple(bits) for bits in itertools.product([False, True], repeat=8)]
    for rotation in ROTATIONS:
        for mirror_x, mirror_y in itertools.product([False, True], repeat=2):
            images = set()
            for conn in all_signatures:
                out = transform_connections(conn, rotation, mirror_x, mirror_y)
                assert sum(out) == sum(conn)
                images.add(out)
            assert len(images) == 256


def test_key_round_trip_and_named_transform():
    conn = get_transformed_connections_for_name("t_10000000.svg", 90, True, False)
    assert active_directions(conn) == [W]
    assert from_connection_key(to_connection_key(conn)) == conn
    assert to_connection_key(None) is None
