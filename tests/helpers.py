from tilecanvas.core.connections import active_directions


class FakeClock:
    """Monotonic clock the test advances by hand"""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def signature_names(*signatures, prefix="tile"):
    return [f"{prefix}{i}_{sig}.svg" for i, sig in enumerate(signatures)]


def all_signature_names():
    """One source per possible signature, so any neighborhood is satisfiable"""
    return [f"t_{i:08b}.svg" for i in range(256)]


# Straight, corner, end cap, blank: enough to build any 4-connected path
PATH_SOURCES = signature_names("10001000", "10100000", "10000000", "00000000", prefix="path")


def connections_at(engine, index):
    """Transformed connectors of the full-grid tile at index (None when empty)"""
    return engine.validator().connections_of(engine.full_tiles[index])


def connector_count(engine, index):
    conn = connections_at(engine, index)
    return len(active_directions(conn)) if conn else 0


def placed_indices(engine):
    return [i for i, tile in enumerate(engine.full_tiles) if tile.image_index >= 0]
