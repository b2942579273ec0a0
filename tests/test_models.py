# tests/test_models.py

import pytest

from src.domain.errors import ValidationError
from src.domain.geo import GeoPoint
from src.domain.models import (
    TIER_RANKING,
    SearchableProviderRecord,
    SearchResult,
    SubscriptionTier,
    tier_rank,
)


def _make_record(**overrides) -> SearchableProviderRecord:
    fields = dict(
        provider_id="p1",
        display_name="Clínica Paulista",
        location=GeoPoint(-23.56, -46.65),
    )
    fields.update(overrides)
    return SearchableProviderRecord(**fields)


# ── Subscription tiers ────────────────────────────────────────────────────────

def test_tier_ranking_is_free_to_platinum():
    assert [tier_rank(t) for t in TIER_RANKING] == [0, 1, 2, 3, 4]
    assert tier_rank(SubscriptionTier.PLATINUM) > tier_rank(SubscriptionTier.GOLD)
    assert tier_rank(SubscriptionTier.STANDARD) > tier_rank(SubscriptionTier.FREE)


def test_tier_parse_is_case_insensitive():
    assert SubscriptionTier.parse(" Gold ") is SubscriptionTier.GOLD
    assert SubscriptionTier.parse(SubscriptionTier.SILVER) is SubscriptionTier.SILVER


def test_tier_parse_rejects_unknown():
    with pytest.raises(ValidationError, match="Unknown subscription tier"):
        SubscriptionTier.parse("diamond")


# ── Record invariants ─────────────────────────────────────────────────────────

def test_record_defaults():
    record = _make_record()
    assert record.subscription_tier is SubscriptionTier.FREE
    assert record.service_ids == frozenset()
    assert record.average_rating is None
    assert record.review_count == 0
    assert record.is_active is True


def test_record_normalizes_fields():
    record = _make_record(
        display_name="  Padaria  ",
        subscription_tier="platinum",
        service_ids=["s1", " s2 ", "s1"],
        city="   ",
    )
    assert record.display_name == "Padaria"
    assert record.subscription_tier is SubscriptionTier.PLATINUM
    assert record.service_ids == frozenset({"s1", "s2"})
    assert record.city is None


@pytest.mark.parametrize("overrides, field", [
    ({"provider_id": " "}, "provider_id"),
    ({"provider_id": "p1 "}, "provider_id"),
    ({"provider_id": " p1"}, "provider_id"),
    ({"display_name": ""}, "display_name"),
    ({"location": (1.0, 2.0)}, "location"),
    ({"review_count": -1}, "review_count"),
    ({"review_count": 1.5}, "review_count"),
    ({"average_rating": 5.1, "review_count": 3}, "average_rating"),
    ({"average_rating": -0.1, "review_count": 3}, "average_rating"),
    ({"average_rating": float("nan"), "review_count": 3}, "average_rating"),
    ({"average_rating": 4.0, "review_count": 0}, "average_rating"),
    ({"service_ids": "s1"}, "service_ids"),
    ({"service_ids": ["ok", ""]}, "service_ids"),
])
def test_record_rejects_invalid_fields(overrides, field):
    with pytest.raises(ValidationError) as info:
        _make_record(**overrides)
    assert info.value.field == field


def test_rating_bounds_are_inclusive():
    assert _make_record(average_rating=0.0, review_count=1).average_rating == 0.0
    assert _make_record(average_rating=5, review_count=1).average_rating == 5.0


def test_with_changes_returns_new_validated_record():
    record = _make_record()
    moved = record.with_changes(location=GeoPoint(0, 0))

    assert record.location == GeoPoint(-23.56, -46.65)
    assert moved.location == GeoPoint(0, 0)
    with pytest.raises(ValidationError):
        record.with_changes(average_rating=3.0)


def test_records_compare_by_value():
    assert _make_record(service_ids=["a", "b"]) == _make_record(service_ids=["b", "a"])


# ── SearchResult ──────────────────────────────────────────────────────────────

def test_search_result_total_pages():
    assert SearchResult(hits=[], total_matches=0, page=1, page_size=10).total_pages == 0
    assert SearchResult(hits=[], total_matches=10, page=1, page_size=10).total_pages == 1
    assert SearchResult(hits=[], total_matches=11, page=2, page_size=10).total_pages == 2
