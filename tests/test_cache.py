from datetime import date

from agri_eo_api.cache import InMemoryCacheStore, build_cache_key, category_of


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_get_returns_payload_until_ttl_elapses() -> None:
    clock = FakeClock()
    store = InMemoryCacheStore(default_ttl_seconds=300, clock=clock)
    key = build_cache_key("soil_moisture", 10.0, 20.0, None, "9km", caller_supplied=False)

    store.put(key, {"surface_moisture": 0.2})

    clock.now = 1299.5
    assert store.get(key) == {"surface_moisture": 0.2}

    clock.now = 1300.0
    assert store.get(key) is None


def test_missing_key_is_a_miss() -> None:
    store = InMemoryCacheStore()

    assert store.get("soil_moisture|0.0000|0.0000|latest|9km|default") is None
    assert store.stats()["misses"] == 1


def test_stale_entry_is_overwritten_by_next_put() -> None:
    clock = FakeClock()
    store = InMemoryCacheStore(default_ttl_seconds=10, clock=clock)
    key = build_cache_key("imagery", 1.0, 2.0, None, "30m", caller_supplied=False)

    store.put(key, {"ndvi": 0.1})
    clock.now += 60
    assert store.get(key) is None
    assert store.size() == 1

    store.put(key, {"ndvi": 0.2})
    assert store.get(key) == {"ndvi": 0.2}
    assert store.size() == 1


def test_category_ttl_overrides_default() -> None:
    clock = FakeClock()
    store = InMemoryCacheStore(default_ttl_seconds=300, category_ttls={"vegetation_index": 3600}, clock=clock)
    ndvi_key = build_cache_key("vegetation_index", 1.0, 2.0, None, 250, caller_supplied=False)
    soil_key = build_cache_key("soil_moisture", 1.0, 2.0, None, "9km", caller_supplied=False)
    store.put(ndvi_key, {"ndvi": 0.5})
    store.put(soil_key, {"surface_moisture": 0.3})

    clock.now += 1800

    assert store.get(ndvi_key) == {"ndvi": 0.5}
    assert store.get(soil_key) is None


def test_returned_payload_is_a_copy() -> None:
    store = InMemoryCacheStore()
    store.put("k", {"ndvi": 0.5})

    payload = store.get("k")
    assert payload is not None
    payload["ndvi"] = 0.9

    assert store.get("k") == {"ndvi": 0.5}


def test_last_writer_wins() -> None:
    store = InMemoryCacheStore()
    store.put("k", {"value": 1})
    store.put("k", {"value": 2})

    assert store.get("k") == {"value": 2}


def test_max_entries_evicts_least_recently_used() -> None:
    store = InMemoryCacheStore(max_entries=2)
    store.put("a", {"v": 1})
    store.put("b", {"v": 2})
    assert store.get("a") == {"v": 1}

    store.put("c", {"v": 3})

    assert store.get("b") is None
    assert store.get("a") == {"v": 1}
    assert store.get("c") == {"v": 3}
    assert store.size() == 2


def test_clear_and_stats() -> None:
    store = InMemoryCacheStore(default_ttl_seconds=60, category_ttls={"field_grid": 120})
    store.put("field_grid|x", {"v": 1})
    store.get("field_grid|x")
    store.get("missing")

    stats = store.stats()
    assert stats["entries"] == 1
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["maxEntries"] is None
    assert stats["defaultTtlSeconds"] == 60
    assert stats["categoryTtlSeconds"] == {"field_grid": 120}

    store.clear()
    assert store.size() == 0
    assert store.stats()["hits"] == 0


def test_cache_key_is_deterministic_for_equal_inputs() -> None:
    first = build_cache_key("soil_moisture", 33.44841, -112.07401, date(2024, 5, 1), "9km", caller_supplied=True)
    second = build_cache_key("soil_moisture", 33.44839, -112.07399, "2024-05-01", "9km", caller_supplied=True)

    assert first == second == "soil_moisture|33.4484|-112.0740|2024-05-01|9km|caller"


def test_cache_key_separates_auth_slots_and_dates() -> None:
    caller = build_cache_key("soil_moisture", 1.0, 2.0, None, "9km", caller_supplied=True)
    default = build_cache_key("soil_moisture", 1.0, 2.0, None, "9km", caller_supplied=False)
    dated = build_cache_key("soil_moisture", 1.0, 2.0, date(2024, 1, 1), "9km", caller_supplied=False)

    assert caller != default
    assert default.endswith("|latest|9km|default")
    assert dated != default


def test_cache_key_normalises_negative_zero() -> None:
    key = build_cache_key("imagery", -0.00001, 0.0, None, "30m", caller_supplied=False)

    assert key == "imagery|0.0000|0.0000|latest|30m|default"


def test_category_of() -> None:
    assert category_of("vegetation_index|1.0000|2.0000|latest|250|default") == "vegetation_index"


def test_cache_key_variant_is_appended_only_when_set() -> None:
    plain = build_cache_key("soil_moisture", 1.0, 2.0, None, "9km", caller_supplied=False)
    rainy = build_cache_key("soil_moisture", 1.0, 2.0, None, "9km", caller_supplied=False, variant="rain=12.5")

    assert plain == "soil_moisture|1.0000|2.0000|latest|9km|default"
    assert rainy == plain + "|rain=12.5"
