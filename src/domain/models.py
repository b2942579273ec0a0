# src/domain/models.py

import dataclasses
import math
import numbers
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional

from .errors import ValidationError
from .geo import GeoPoint


MIN_RATING = 0.0
MAX_RATING = 5.0


class SubscriptionTier(str, Enum):
    FREE = "free"
    STANDARD = "standard"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"

    @classmethod
    def parse(cls, value) -> "SubscriptionTier":
        """Accept a member, its value or its name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for tier in cls:
                if tier.value == normalized:
                    return tier
        raise ValidationError(
            "subscription_tier",
            f"Unknown subscription tier: {value!r}. "
            f"Expected one of {[t.value for t in TIER_RANKING]}.",
            value,
        )


# Ranking order lives here, not in the enum declaration order.
TIER_RANKING = (
    SubscriptionTier.FREE,
    SubscriptionTier.STANDARD,
    SubscriptionTier.SILVER,
    SubscriptionTier.GOLD,
    SubscriptionTier.PLATINUM,
)


def tier_rank(tier: SubscriptionTier) -> int:
    """0 for Free up to 4 for Platinum."""
    return TIER_RANKING.index(tier)


def validate_rating(average_rating, review_count) -> None:
    """
    Shared rating invariants:
    - review_count is a non-negative integer
    - average_rating, when set, lies in [0, 5]
    - no reviews means no rating
    """
    if (
        isinstance(review_count, bool)
        or not isinstance(review_count, numbers.Integral)
        or review_count < 0
    ):
        raise ValidationError(
            "review_count", "Review count must be a non-negative integer.", review_count
        )

    if average_rating is None:
        return

    if isinstance(average_rating, bool) or not isinstance(average_rating, numbers.Real):
        raise ValidationError("average_rating", "Rating must be a number.", average_rating)
    if math.isnan(average_rating) or not MIN_RATING <= average_rating <= MAX_RATING:
        raise ValidationError(
            "average_rating", "Rating must be between 0 and 5.", average_rating
        )
    if review_count == 0:
        raise ValidationError(
            "average_rating",
            "A rating cannot be set while the review count is zero.",
            average_rating,
        )


def validate_provider_id(provider_id) -> str:
    """Ids are stored and locked as given, so padded or blank ids are rejected."""
    if not isinstance(provider_id, str) or not provider_id.strip():
        raise ValidationError("provider_id", "Provider id cannot be empty.", provider_id)
    if provider_id != provider_id.strip():
        raise ValidationError(
            "provider_id", "Provider id cannot have surrounding whitespace.", provider_id
        )
    return provider_id


def normalize_service_ids(service_ids: Optional[Iterable[str]]) -> FrozenSet[str]:
    if service_ids is None:
        return frozenset()
    if isinstance(service_ids, str):
        raise ValidationError(
            "service_ids", "Service ids must be a collection, not a string.", service_ids
        )
    normalized = set()
    for service_id in service_ids:
        if not isinstance(service_id, str) or not service_id.strip():
            raise ValidationError(
                "service_ids", "Service ids must be non-empty strings.", service_id
            )
        normalized.add(service_id.strip())
    return frozenset(normalized)


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class SearchableProviderRecord:
    """
    Denormalized, search-optimized shadow of a provider owned elsewhere.

    Records are immutable snapshots: every change produces a new record
    through with_changes(), which re-runs the invariants below.
    """
    provider_id: str
    display_name: str
    location: GeoPoint
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    service_ids: FrozenSet[str] = field(default_factory=frozenset)
    average_rating: Optional[float] = None
    review_count: int = 0
    is_active: bool = True
    description: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None

    def __post_init__(self):
        validate_provider_id(self.provider_id)
        if not isinstance(self.display_name, str) or not self.display_name.strip():
            raise ValidationError(
                "display_name", "Provider name cannot be empty.", self.display_name
            )
        if not isinstance(self.location, GeoPoint):
            raise ValidationError(
                "location", "Location must be a GeoPoint.", self.location
            )
        validate_rating(self.average_rating, self.review_count)

        object.__setattr__(self, "display_name", self.display_name.strip())
        object.__setattr__(
            self, "subscription_tier", SubscriptionTier.parse(self.subscription_tier)
        )
        object.__setattr__(self, "service_ids", normalize_service_ids(self.service_ids))
        if self.average_rating is not None:
            object.__setattr__(self, "average_rating", float(self.average_rating))
        object.__setattr__(self, "review_count", int(self.review_count))
        object.__setattr__(self, "is_active", bool(self.is_active))
        object.__setattr__(self, "description", _optional_text(self.description))
        object.__setattr__(self, "city", _optional_text(self.city))
        object.__setattr__(self, "state", _optional_text(self.state))

    def distance_km_to(self, point: GeoPoint) -> float:
        return self.location.distance_km(point)

    def with_changes(self, **changes) -> "SearchableProviderRecord":
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class ProviderHit:
    """A matching record paired with its distance from the search origin."""
    record: SearchableProviderRecord
    distance_km: float

    @property
    def provider_id(self) -> str:
        return self.record.provider_id


@dataclass
class SearchResult:
    """
    One page of ranked matches. total_matches counts the filtered set
    before pagination, so it is the same on every page of a query.
    """
    hits: List[ProviderHit]
    total_matches: int
    page: int
    page_size: int

    @property
    def records(self) -> List[SearchableProviderRecord]:
        return [hit.record for hit in self.hits]

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_matches / self.page_size) if self.page_size else 0

    def __repr__(self) -> str:
        return (
            f"SearchResult(page={self.page}, page_size={self.page_size}, "
            f"returned={len(self.hits)}, total_matches={self.total_matches})"
        )
