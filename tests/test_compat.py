from tilecanvas.core.compat import CompatibilityCache, CompatibilityTables
from tilecanvas.core.connections import active_directions, E, N


def test_every_directional_source_has_sixteen_variants_with_duplicates():
    tables = CompatibilityTables(["cross_10101010.svg", "deco.png"])
    assert len(tables.variants_by_index[0]) == 16
    # A symmetric cross maps onto itself under every transform
    assert len(tables.variants_by_key["10101010"]) == 16
    assert tables.variants_by_index[1] == []
    assert tables.connections_by_index[1] is None


def test_get_connections_for_placement():
    tables = CompatibilityTables(["end_10000000.svg"])
    conn = tables.get_connections_for_placement(0, 90, False, False)
    assert active_directions(conn) == [E]
    assert tables.get_connections_for_placement(5, 0, False, False) is None
    assert tables.get_connections_for_placement(-1, 0, False, False) is None


def test_variants_for_key_respects_allowed_indices():
    tables = CompatibilityTables(["a_10000000.svg", "b_00100000.svg"])
    both = tables.variants_for_key("10000000")
    assert {v.index for v in both} == {0, 1}
    only_b = tables.variants_for_key("10000000", {1})
    assert {v.index for v in only_b} == {1}


def test_first_variant_for_key_follows_enumeration_order():
    tables = CompatibilityTables(["a_00100000.svg", "b_10000000.svg"])
    first = tables.variants_by_key["10000000"][0]
    # rot 90 turns E into S, then mirror_y turns S into N
    assert (first.index, first.rotation, first.mirror_x, first.mirror_y) == (0, 90, False, True)
    assert active_directions(first.connections) == [N]


def test_name_lookup_prefers_first_duplicate():
    tables = CompatibilityTables(["a_10000000.svg", "a_10000000.svg"])
    assert tables.index_of_name("a_10000000.svg") == 0
    assert tables.index_of_name("missing.svg") == -1
    assert tables.name_at(1) == "a_10000000.svg"
    assert tables.name_at(2) is None


def test_cache_reuses_tables_for_same_ordered_names():
    cache = CompatibilityCache(max_entries=2)
    first = cache.get(["a_10000000.svg", "b_00000000.svg"])
    assert cache.get(["a_10000000.svg", "b_00000000.svg"]) is first
    assert cache.get(["b_00000000.svg", "a_10000000.svg"]) is not first
    cache.get(["c_11111111.svg"])
    assert len(cache) == 2
