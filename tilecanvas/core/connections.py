"""
Connection codec - 8-direction connector signatures encoded in tile names.

A tile name such as ``road_10100000.svg`` carries its connectors as eight
binary digits in the order N, NE, E, SE, S, SW, W, NW. Names that do not
follow the convention have no signature (``None``) and are treated as
universally compatible by the placement rules.
"""
import re
from typing import List, Optional, Sequence, Tuple

# Direction indices
N, NE, E, SE, S, SW, W, NW = range(8)
DIRECTION_COUNT = 8

DIRECTION_NAMES = ('N', 'NE', 'E', 'SE', 'S', 'SW', 'W', 'NW')

# (row delta, column delta) for each direction index
DIRECTION_OFFSETS: Tuple[Tuple[int, int], ...] = (
    (-1, 0),
    (-1, 1),
    (0, 1),
    (1, 1),
    (1, 0),
    (1, -1),
    (0, -1),
    (-1, -1),
)

ROTATIONS = (0, 90, 180, 270)

TILE_NAME_PATTERN = re.compile(r'^.+_([01]{8})\.(png|jpe?g|webp|svg)$', re.IGNORECASE)

Connections = Tuple[bool, bool, bool, bool, bool, bool, bool, bool]


def opposite_direction(direction: int) -> int:
    """Return the direction facing ``direction`` (N <-> S, NE <-> SW, ...)"""
    return (direction + 4) % DIRECTION_COUNT


def parse_tile_connections(file_name: str) -> Optional[Connections]:
    """
    Parse the connector signature out of a tile name.

    Args:
        file_name: Tile source name, e.g. "pipe_10001000.png"

    Returns:
        8-tuple of booleans, or None when the name has no signature
    """
    match = TILE_NAME_PATTERN.match(file_name or '')
    if not match:
        return None
    return tuple(digit == '1' for digit in match.group(1))


def get_connection_count_from_file_name(file_name: str) -> int:
    """Number of connectors in a tile name (0 for non-directional names)"""
    match = TILE_NAME_PATTERN.match(file_name or '')
    if not match:
        return 0
    return match.group(1).count('1')


def rotate_connections(connections: Sequence[bool], rotation_steps: int) -> Connections:
    """Rotate clockwise by quarter turns; one step shifts the array by two"""
    steps = rotation_steps % 4
    if steps == 0:
        return tuple(connections)
    shift = steps * 2
    return tuple(connections[(index - shift) % 8] for index in range(8))


def mirror_connections(connections: Sequence[bool], mirror_x: bool, mirror_y: bool) -> Connections:
    """
    Reflect a signature.

    mirror_x reflects about the vertical axis (E <-> W, NE <-> NW, SE <-> SW).
    mirror_y reflects about the horizontal axis (N <-> S, NE <-> SE, NW <-> SW).
    """
    result = tuple(connections)
    if mirror_x:
        result = (result[0], result[7], result[6], result[5],
                  result[4], result[3], result[2], result[1])
    if mirror_y:
        result = (result[4], result[3], result[2], result[1],
                  result[0], result[7], result[6], result[5])
    return result


def transform_connections(connections: Sequence[bool], rotation: int,
                          mirror_x: bool, mirror_y: bool) -> Connections:
    """Apply a placement transform: rotate first, then mirror"""
    rotation_steps = (rotation // 90) % 4
    rotated = rotate_connections(connections, rotation_steps)
    return mirror_connections(rotated, mirror_x, mirror_y)


def get_transformed_connections_for_name(file_name: str, rotation: int,
                                         mirror_x: bool, mirror_y: bool) -> Optional[Connections]:
    parsed = parse_tile_connections(file_name)
    if parsed is None:
        return None
    return transform_connections(parsed, rotation, mirror_x, mirror_y)


def to_connection_key(connections: Optional[Sequence[bool]]) -> Optional[str]:
    """Signature as a "0"/"1" string, used as a lookup key"""
    if connections is None:
        return None
    return ''.join('1' if value else '0' for value in connections)


def from_connection_key(key: str) -> Connections:
    return tuple(digit == '1' for digit in key)


def connections_from_directions(directions) -> Connections:
    """Signature with connectors exactly at the given direction indices"""
    wanted = set(directions)
    return tuple(index in wanted for index in range(8))


def active_directions(connections: Sequence[bool]) -> List[int]:
    return [index for index, value in enumerate(connections) if value]
