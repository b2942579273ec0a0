# tests/test_chroma_store.py

import threading
from unittest.mock import MagicMock

import pytest

from src.domain.errors import SearchCancelledError, StorageUnavailableError
from src.domain.geo import GeoPoint
from src.domain.models import SearchableProviderRecord, SubscriptionTier
from src.infrastructure.chroma_store import ChromaProviderStore, COLLECTION_NAME


ORIGIN = GeoPoint(-23.5505, -46.6333)


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def store(tmp_path) -> ChromaProviderStore:
    """Fresh ChromaProviderStore backed by a temp directory for each test."""
    return ChromaProviderStore(persist_directory=str(tmp_path / "chroma_test"))


def _make_record(provider_id: str, lat: float, lon: float, **overrides) -> SearchableProviderRecord:
    return SearchableProviderRecord(
        provider_id=provider_id,
        display_name=f"Provider {provider_id}",
        location=GeoPoint(lat, lon),
        **overrides,
    )


# ── Tests ─────────────────────────────────────────────────────────────────────

def test_is_ready_false_when_empty(store):
    assert store.is_ready() is False


def test_is_ready_true_after_upsert(store):
    store.upsert(_make_record("p1", -23.55, -46.63))
    assert store.is_ready() is True
    assert store.count() == 1


def test_round_trip_keeps_every_attribute(store):
    record = _make_record(
        "p1", -23.55, -46.63,
        subscription_tier=SubscriptionTier.SILVER,
        service_ids=["haircut", "beard"],
        average_rating=4.25,
        review_count=12,
        description="Barbearia",
        city="São Paulo",
        state="SP",
    )
    store.upsert(record)
    assert store.get("p1") == record


def test_round_trip_keeps_missing_rating_and_optional_text(store):
    record = _make_record("p1", -23.55, -46.63)
    store.upsert(record)

    loaded = store.get("p1")
    assert loaded.average_rating is None
    assert loaded.description is None
    assert loaded.service_ids == frozenset()


def test_upsert_replaces_record(store):
    store.upsert(_make_record("p1", -23.55, -46.63))
    store.upsert(_make_record("p1", -22.90, -43.17, subscription_tier="gold"))

    assert store.count() == 1
    assert store.get("p1").location == GeoPoint(-22.90, -43.17)
    assert store.radius_query(ORIGIN, 10) == []


def test_delete(store):
    store.upsert(_make_record("p1", -23.55, -46.63))
    assert store.delete("p1") is True
    assert store.delete("p1") is False
    assert store.get("p1") is None


def test_radius_query_filters_by_distance_and_activity(store):
    store.upsert(_make_record("near", -23.5510, -46.6340))
    store.upsert(_make_record("far", -22.9068, -43.1729))
    store.upsert(_make_record("hidden", -23.5505, -46.6333, is_active=False))

    ids = {r.provider_id for r in store.radius_query(ORIGIN, 10)}
    assert ids == {"near"}


def test_radius_query_drops_bounding_box_corners(store):
    # ~9.9 km north and east each: inside the box, ~14 km away
    store.upsert(_make_record("corner", -23.4615, -46.5360))
    assert store.radius_query(ORIGIN, 10) == []
    assert [r.provider_id for r in store.radius_query(ORIGIN, 20)] == ["corner"]


def test_radius_query_across_antimeridian(store):
    store.upsert(_make_record("east", 0.0, 179.95))
    store.upsert(_make_record("west", 0.0, -179.95))
    store.upsert(_make_record("away", 0.0, 170.0))

    ids = {r.provider_id for r in store.radius_query(GeoPoint(0.0, 180.0), 20)}
    assert ids == {"east", "west"}


def test_radius_query_honours_cancellation(store):
    store.upsert(_make_record("p1", -23.55, -46.63))
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(SearchCancelledError):
        store.radius_query(ORIGIN, 10, cancel_event=cancel)


def test_tier_stats(store):
    store.upsert(_make_record("a", 0, 0, subscription_tier="gold"))
    store.upsert(_make_record("b", 0, 0, subscription_tier="free"))
    store.upsert(_make_record("c", 0, 0, subscription_tier="gold", is_active=False))

    counts = {s["tier"]: s["count"] for s in store.get_tier_stats()}
    assert counts["gold"] == 1
    assert counts["free"] == 1
    assert counts["platinum"] == 0


def test_persists_across_instances(tmp_path):
    path = str(tmp_path / "chroma_persist")
    ChromaProviderStore(persist_directory=path).upsert(_make_record("p1", 1, 1))

    reopened = ChromaProviderStore(persist_directory=path)
    assert reopened.get("p1") is not None


def test_file_path_raises_storage_unavailable(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")

    with pytest.raises(StorageUnavailableError, match="Failed to initialize ChromaDB"):
        ChromaProviderStore(persist_directory=str(blocker))


def test_backend_failure_is_wrapped(store, monkeypatch):
    broken = MagicMock()
    broken.get.side_effect = RuntimeError("disk gone")
    monkeypatch.setattr(store, "_collection", broken)

    with pytest.raises(StorageUnavailableError) as info:
        store.get("p1")
    assert info.value.operation == "get"
    assert isinstance(info.value.__cause__, RuntimeError)


def test_collection_name(store):
    assert store._collection.name == COLLECTION_NAME
