# src/infrastructure/memory_store.py

import threading
from typing import Dict, List, Optional

import numpy as np

from src.domain.errors import raise_if_cancelled
from src.domain.geo import DISTANCE_EPSILON_KM, GeoPoint, haversine_km_array
from src.domain.interfaces import ProviderStorePort
from src.domain.models import TIER_RANKING, SearchableProviderRecord


class InMemoryProviderStore(ProviderStorePort):
    """
    In-memory provider store with a vectorised radius scan.

    - Records are immutable; upsert swaps the stored reference under a lock,
      so a reader sees either the old record or the new one, never a mix.
    - radius_query snapshots the active records under the lock, then scans
      them in numpy batches outside it. Cancellation is checked per batch.
    """

    def __init__(self, scan_batch_size: int = 4096):
        if scan_batch_size < 1:
            raise ValueError("scan_batch_size must be positive.")
        self._records: Dict[str, SearchableProviderRecord] = {}
        self._lock = threading.RLock()
        self._scan_batch_size = scan_batch_size

    def get(self, provider_id: str) -> Optional[SearchableProviderRecord]:
        with self._lock:
            return self._records.get(provider_id)

    def upsert(self, record: SearchableProviderRecord) -> None:
        with self._lock:
            self._records[record.provider_id] = record

    def delete(self, provider_id: str) -> bool:
        with self._lock:
            return self._records.pop(provider_id, None) is not None

    def is_ready(self) -> bool:
        """In-memory store is ready once it holds at least one record."""
        with self._lock:
            return bool(self._records)

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def get_tier_stats(self) -> List[dict]:
        with self._lock:
            active = [r for r in self._records.values() if r.is_active]
        counts = {tier: 0 for tier in TIER_RANKING}
        for record in active:
            counts[record.subscription_tier] += 1
        return [{"tier": tier.value, "count": counts[tier]} for tier in TIER_RANKING]

    def radius_query(
        self,
        origin: GeoPoint,
        radius_km: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[SearchableProviderRecord]:
        raise_if_cancelled(cancel_event, "radius filter")

        with self._lock:
            snapshot = [r for r in self._records.values() if r.is_active]

        if not snapshot:
            return []

        limit = radius_km + DISTANCE_EPSILON_KM
        matches: List[SearchableProviderRecord] = []

        for start in range(0, len(snapshot), self._scan_batch_size):
            raise_if_cancelled(cancel_event, "radius filter")

            batch = snapshot[start : start + self._scan_batch_size]
            lats = np.array([r.location.latitude for r in batch], dtype=np.float64)
            lons = np.array([r.location.longitude for r in batch], dtype=np.float64)

            distances = haversine_km_array(origin.latitude, origin.longitude, lats, lons)
            inside = distances <= limit

            matches.extend(record for record, keep in zip(batch, inside) if keep)

        return matches
