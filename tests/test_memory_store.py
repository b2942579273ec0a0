# tests/test_memory_store.py

import threading

import pytest

from src.domain.errors import SearchCancelledError
from src.domain.geo import GeoPoint
from src.domain.models import SearchableProviderRecord
from src.infrastructure.memory_store import InMemoryProviderStore


ORIGIN = GeoPoint(-23.5505, -46.6333)


def _make_record(provider_id: str, lat: float, lon: float, **overrides) -> SearchableProviderRecord:
    return SearchableProviderRecord(
        provider_id=provider_id,
        display_name=f"Provider {provider_id}",
        location=GeoPoint(lat, lon),
        **overrides,
    )


# ── Tests ─────────────────────────────────────────────────────────────────────

def test_is_ready_false_when_empty():
    store = InMemoryProviderStore()
    assert store.is_ready() is False
    assert store.count() == 0


def test_upsert_get_and_replace():
    store = InMemoryProviderStore()
    store.upsert(_make_record("p1", -23.55, -46.63))
    store.upsert(_make_record("p1", -23.56, -46.64, subscription_tier="gold"))

    assert store.count() == 1
    assert store.get("p1").subscription_tier.value == "gold"
    assert store.get("missing") is None


def test_delete_reports_whether_record_existed():
    store = InMemoryProviderStore()
    store.upsert(_make_record("p1", 0, 0))
    assert store.delete("p1") is True
    assert store.delete("p1") is False


def test_radius_query_returns_only_active_records_inside():
    store = InMemoryProviderStore(scan_batch_size=2)
    store.upsert(_make_record("near", -23.5510, -46.6340))
    store.upsert(_make_record("far", -22.9068, -43.1729))
    store.upsert(_make_record("hidden", -23.5505, -46.6333, is_active=False))
    store.upsert(_make_record("edge", -23.6400, -46.6333))

    ids = {r.provider_id for r in store.radius_query(ORIGIN, 10)}
    assert ids == {"near", "edge"}


def test_radius_query_on_empty_store():
    assert InMemoryProviderStore().radius_query(ORIGIN, 10) == []


def test_radius_query_honours_cancellation():
    store = InMemoryProviderStore()
    store.upsert(_make_record("p1", -23.55, -46.63))
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(SearchCancelledError):
        store.radius_query(ORIGIN, 10, cancel_event=cancel)


def test_tier_stats_count_active_records_in_rank_order():
    store = InMemoryProviderStore()
    store.upsert(_make_record("a", 0, 0, subscription_tier="gold"))
    store.upsert(_make_record("b", 0, 0, subscription_tier="gold"))
    store.upsert(_make_record("c", 0, 0, subscription_tier="free"))
    store.upsert(_make_record("d", 0, 0, subscription_tier="platinum", is_active=False))

    stats = store.get_tier_stats()
    assert [s["tier"] for s in stats] == ["free", "standard", "silver", "gold", "platinum"]
    assert {s["tier"]: s["count"] for s in stats} == {
        "free": 1, "standard": 0, "silver": 0, "gold": 2, "platinum": 0,
    }


def test_invalid_batch_size_rejected():
    with pytest.raises(ValueError):
        InMemoryProviderStore(scan_batch_size=0)
