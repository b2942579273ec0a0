# src/application/search_service.py

import threading
import time
from typing import List, Optional

from src.application.ranking import passes_filters, rank_hits
from src.domain.criteria import SearchCriteria
from src.domain.errors import SearchEngineError, raise_if_cancelled
from src.domain.geo import GeoPoint, within_radius
from src.domain.interfaces import ProviderStorePort
from src.domain.models import ProviderHit, SearchResult


# Health probe location: Avenida Paulista, São Paulo
HEALTH_PROBE_ORIGIN = GeoPoint(-23.561414, -46.656559)


class ProviderSearchService:
    """
    Core use case: ranked, paginated provider discovery around a point.

    Pipeline:
        1. Radius:   store.radius_query(), re-checked with the scalar
                     haversine so every adapter gives identical inclusion
        2. Filters:  term, services (OR), minimum rating, tiers
        3. Ranking:  tier ▸ rating ▸ distance ▸ provider_id
        4. Paginate: total counted before slicing

    The service is read-only and keeps no per-query state, so any number of
    searches may run concurrently against one instance.
    """

    def __init__(self, store: ProviderStorePort):
        self._store = store

    def search(
        self,
        criteria: SearchCriteria,
        cancel_event: Optional[threading.Event] = None,
    ) -> SearchResult:
        """
        Args:
            criteria:     Validated SearchCriteria (see SearchCriteria.build).
            cancel_event: Optional event; when set, the search stops at the
                          next storage boundary with SearchCancelledError.

        Raises:
            StorageUnavailableError: the store cannot serve the radius query.
            SearchCancelledError:    cancel_event was set.
        """
        started = time.perf_counter()

        raise_if_cancelled(cancel_event, "radius filter")
        candidates = self._store.radius_query(
            criteria.origin, criteria.radius_km, cancel_event=cancel_event
        )
        raise_if_cancelled(cancel_event, "radius filter")

        hits: List[ProviderHit] = []
        for record in candidates:
            if not record.is_active:
                continue
            distance = record.distance_km_to(criteria.origin)
            if not within_radius(distance, criteria.radius_km):
                continue
            if not passes_filters(record, criteria):
                continue
            hits.append(ProviderHit(record=record, distance_km=distance))

        ranked = rank_hits(hits)
        total_matches = len(ranked)
        page_hits = ranked[criteria.skip : criteria.skip + criteria.take]

        elapsed_ms = (time.perf_counter() - started) * 1000
        print(
            f"[SearchService] {len(candidates)} in radius → {total_matches} matched, "
            f"page {criteria.page} returned {len(page_hits)} ({elapsed_ms:.1f} ms)"
        )

        return SearchResult(
            hits=page_hits,
            total_matches=total_matches,
            page=criteria.page,
            page_size=criteria.page_size,
        )

    def is_available(self) -> bool:
        """
        Health probe: a 1 km, single-result search. Zero results still
        counts as available; only engine errors report False.
        """
        probe = SearchCriteria.build(
            origin=HEALTH_PROBE_ORIGIN, radius_km=1.0, page=1, page_size=1
        )
        try:
            self.search(probe)
        except SearchEngineError as error:
            print(f"[SearchService] ⚠ Health probe failed: {error.kind}: {error.message}")
            return False
        return True
