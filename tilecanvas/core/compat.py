"""
Compatibility tables - every rotation x mirror variant of every tile source.

Tables are built once per ordered list of source names and owned by a
CompatibilityCache held by each engine, so several canvases can coexist
with different palettes.
"""
from typing import Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass

from .connections import (
    Connections, ROTATIONS, parse_tile_connections, transform_connections,
    to_connection_key,
)
from .logging import log_compat


# Enumeration order of mirror combinations per rotation
MIRROR_COMBINATIONS: Tuple[Tuple[bool, bool], ...] = (
    (False, False),
    (True, False),
    (False, True),
    (True, True),
)


@dataclass(frozen=True)
class TileVariant:
    """One (source, rotation, mirror) combination and its transformed signature"""
    index: int
    rotation: int
    mirror_x: bool
    mirror_y: bool
    connections: Connections
    key: str

    @property
    def connection_count(self) -> int:
        return sum(1 for value in self.connections if value)


def build_source_key(source_names: Sequence[str]) -> str:
    return '|'.join(source_names)


class CompatibilityTables:
    """
    Precomputed connector data for an ordered list of tile sources.

    Attributes:
        source_names: The ordered names the tables were built from
        connections_by_index: Base signature per source (None = non-directional)
        variants_by_index: All 16 variants per directional source, duplicates kept
        variants_by_key: Signature string -> variants sharing it, in enumeration order
    """

    def __init__(self, source_names: Sequence[str]):
        self.source_names: List[str] = list(source_names)
        self.connections_by_index: List[Optional[Connections]] = [
            parse_tile_connections(name) for name in self.source_names
        ]
        self.variants_by_index: List[List[TileVariant]] = [[] for _ in self.source_names]
        self.variants_by_key: Dict[str, List[TileVariant]] = {}
        self._lookup: List[Dict[Tuple[int, bool, bool], Connections]] = [
            {} for _ in self.source_names
        ]
        self._name_to_index: Dict[str, int] = {}

        for index, name in enumerate(self.source_names):
            # First occurrence wins for duplicate names
            self._name_to_index.setdefault(name, index)

        for index, connections in enumerate(self.connections_by_index):
            if connections is None:
                continue
            for rotation in ROTATIONS:
                for mirror_x, mirror_y in MIRROR_COMBINATIONS:
                    transformed = transform_connections(connections, rotation, mirror_x, mirror_y)
                    key = to_connection_key(transformed)
                    variant = TileVariant(index, rotation, mirror_x, mirror_y, transformed, key)
                    self.variants_by_index[index].append(variant)
                    self.variants_by_key.setdefault(key, []).append(variant)
                    self._lookup[index][(rotation, mirror_x, mirror_y)] = transformed

    @property
    def source_count(self) -> int:
        return len(self.source_names)

    def get_connections_for_placement(self, index: int, rotation: int,
                                      mirror_x: bool, mirror_y: bool) -> Optional[Connections]:
        """
        Transformed signature of a placement in O(1).

        Returns None for out-of-range indices and non-directional sources.
        Rotations outside 0/90/180/270 fall back to the base signature.
        """
        if index < 0 or index >= len(self.connections_by_index):
            return None
        base = self.connections_by_index[index]
        if base is None:
            return None
        return self._lookup[index].get((rotation % 360, bool(mirror_x), bool(mirror_y)), base)

    def index_of_name(self, name: Optional[str]) -> int:
        """Source index for a name, or -1"""
        if not name:
            return -1
        return self._name_to_index.get(name, -1)

    def name_at(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.source_names):
            return self.source_names[index]
        return None

    def variants_for_key(self, key: str,
                         allowed_indices: Optional[set] = None) -> List[TileVariant]:
        """Variants realising a signature, optionally limited to a source subset"""
        variants = self.variants_by_key.get(key, [])
        if allowed_indices is None:
            return list(variants)
        return [variant for variant in variants if variant.index in allowed_indices]


class CompatibilityCache:
    """Per-engine cache of CompatibilityTables keyed by the ordered source names"""

    def __init__(self, max_entries: int = 8):
        self.max_entries = max_entries
        self._tables: Dict[str, CompatibilityTables] = {}

    def get(self, source_names: Sequence[str]) -> CompatibilityTables:
        key = build_source_key(source_names)
        tables = self._tables.get(key)
        if tables is not None:
            return tables
        tables = CompatibilityTables(source_names)
        if len(self._tables) >= self.max_entries:
            # Drop the oldest entry
            self._tables.pop(next(iter(self._tables)))
        self._tables[key] = tables
        directional = sum(1 for c in tables.connections_by_index if c is not None)
        log_compat(f"Built tables for {tables.source_count} sources ({directional} directional)")
        return tables

    def clear(self):
        self._tables.clear()

    def __len__(self):
        return len(self._tables)
