# src/domain/criteria.py

import math
import numbers
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from .errors import ValidationError
from .geo import GeoPoint
from .models import MAX_RATING, MIN_RATING, SubscriptionTier, normalize_service_ids


DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
MAX_RADIUS_KM = 500.0


@dataclass(frozen=True)
class SearchCriteria:
    """
    Validated, immutable description of one search request.

    Optional filters use None for "no filter". An explicitly empty
    collection is rejected by build(), so "no filter" and "filter that
    matches nothing" can never be confused downstream.
    """
    origin: GeoPoint
    radius_km: float
    skip: int
    take: int
    service_ids: Optional[FrozenSet[str]] = None
    min_rating: Optional[float] = None
    tiers: Optional[FrozenSet[SubscriptionTier]] = None
    term: Optional[str] = None

    @property
    def page(self) -> int:
        return self.skip // self.take + 1

    @property
    def page_size(self) -> int:
        return self.take

    @classmethod
    def build(
        cls,
        origin: GeoPoint,
        radius_km: float,
        service_ids: Optional[Iterable[str]] = None,
        min_rating: Optional[float] = None,
        tiers: Optional[Iterable] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        term: Optional[str] = None,
    ) -> "SearchCriteria":
        """
        Validate and assemble criteria. Checks run in a fixed order and the
        first failure is raised: origin, radius, page/page size, minimum
        rating, then filter collections.
        """
        if not isinstance(origin, GeoPoint):
            raise ValidationError("origin", "Origin must be a GeoPoint.", origin)

        radius = _radius(radius_km)

        if not _is_int(page) or page < 1:
            raise ValidationError("page", "Page number must be greater than 0.", page)
        if not _is_int(page_size) or page_size < 1:
            raise ValidationError(
                "page_size", "Page size must be greater than 0.", page_size
            )
        if page_size > MAX_PAGE_SIZE:
            raise ValidationError(
                "page_size", f"Page size cannot exceed {MAX_PAGE_SIZE}.", page_size
            )

        rating = _min_rating(min_rating)

        services = None
        if service_ids is not None:
            services = normalize_service_ids(service_ids)
            if not services:
                raise ValidationError(
                    "service_ids",
                    "Service filter cannot be empty; omit it to search all services.",
                    service_ids,
                )

        tier_set = None
        if tiers is not None:
            if isinstance(tiers, (str, SubscriptionTier)):
                raise ValidationError(
                    "tiers", "Tiers must be a collection of tier names.", tiers
                )
            tier_set = frozenset(_tier(value) for value in tiers)
            if not tier_set:
                raise ValidationError(
                    "tiers",
                    "Tier filter cannot be empty; omit it to search all tiers.",
                    tiers,
                )

        return cls(
            origin=origin,
            radius_km=radius,
            skip=(page - 1) * page_size,
            take=int(page_size),
            service_ids=services,
            min_rating=rating,
            tiers=tier_set,
            term=_term(term),
        )


def _is_int(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _radius(radius_km) -> float:
    if isinstance(radius_km, bool) or not isinstance(radius_km, numbers.Real):
        raise ValidationError("radius_km", "Radius must be a number.", radius_km)
    radius = float(radius_km)
    if math.isnan(radius) or radius <= 0:
        raise ValidationError("radius_km", "Radius must be greater than 0.", radius_km)
    if radius > MAX_RADIUS_KM:
        raise ValidationError(
            "radius_km", f"Radius cannot exceed {MAX_RADIUS_KM:g} km.", radius_km
        )
    return radius


def _min_rating(min_rating) -> Optional[float]:
    if min_rating is None:
        return None
    if isinstance(min_rating, bool) or not isinstance(min_rating, numbers.Real):
        raise ValidationError("min_rating", "Minimum rating must be a number.", min_rating)
    rating = float(min_rating)
    if math.isnan(rating) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            "min_rating", "Minimum rating must be between 0 and 5.", min_rating
        )
    return rating


def _tier(value) -> SubscriptionTier:
    try:
        return SubscriptionTier.parse(value)
    except ValidationError as error:
        raise ValidationError("tiers", error.message, value) from error


def _term(term: Optional[str]) -> Optional[str]:
    if term is None:
        return None
    if not isinstance(term, str):
        raise ValidationError("term", "Search term must be text.", term)
    return term.strip() or None
