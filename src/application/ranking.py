# src/application/ranking.py

import math
from typing import List, Tuple

from src.domain.criteria import SearchCriteria
from src.domain.geo import DISTANCE_EPSILON_KM
from src.domain.models import ProviderHit, SearchableProviderRecord, tier_rank


# ─── Filters ─────────────────────────────────────────────────────────────────
# Each filter passes everything when its criterion is absent (None).

def matches_term(record: SearchableProviderRecord, criteria: SearchCriteria) -> bool:
    if criteria.term is None:
        return True
    needle = criteria.term.casefold()
    return needle in record.display_name.casefold() or (
        record.description is not None and needle in record.description.casefold()
    )


def matches_services(record: SearchableProviderRecord, criteria: SearchCriteria) -> bool:
    """OR semantics: offering any one requested service qualifies."""
    if criteria.service_ids is None:
        return True
    return not record.service_ids.isdisjoint(criteria.service_ids)


def matches_rating(record: SearchableProviderRecord, criteria: SearchCriteria) -> bool:
    """Unrated providers never pass a minimum-rating filter."""
    if criteria.min_rating is None:
        return True
    return record.average_rating is not None and record.average_rating >= criteria.min_rating


def matches_tiers(record: SearchableProviderRecord, criteria: SearchCriteria) -> bool:
    if criteria.tiers is None:
        return True
    return record.subscription_tier in criteria.tiers


FILTERS = (matches_term, matches_services, matches_rating, matches_tiers)


def passes_filters(record: SearchableProviderRecord, criteria: SearchCriteria) -> bool:
    return all(check(record, criteria) for check in FILTERS)


# ─── Ranking ─────────────────────────────────────────────────────────────────

def distance_bucket(distance_km: float) -> int:
    """
    Distance on a fixed grid of DISTANCE_EPSILON_KM cells.

    A sort key must be transitive, so "equal within epsilon" is expressed as
    "same cell": distances in one cell tie and fall through to provider_id,
    distances in different cells order by distance even when closer than
    epsilon across a cell edge.
    """
    return math.floor(distance_km / DISTANCE_EPSILON_KM)


def ranking_key(hit: ProviderHit) -> Tuple[int, int, float, int, str]:
    """
    Ascending sort key producing:
        1. tier, Platinum first
        2. rating, highest first, unrated after every rated provider
        3. distance cell, nearest first (see distance_bucket)
        4. provider_id, ascending, so the order is total
    """
    record = hit.record
    unrated = 1 if record.average_rating is None else 0
    rating = -(record.average_rating or 0.0)
    return (
        -tier_rank(record.subscription_tier),
        unrated,
        rating,
        distance_bucket(hit.distance_km),
        record.provider_id,
    )


def rank_hits(hits: List[ProviderHit]) -> List[ProviderHit]:
    return sorted(hits, key=ranking_key)
