# src/domain/interfaces.py

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .geo import GeoPoint
from .models import SearchableProviderRecord


class ProviderStorePort(ABC):
    """
    Record store keyed by provider_id, owned by the projection.

    Only the ProjectionMaintainer writes through this port. The search
    engine reads through radius_query() alone.
    """

    @abstractmethod
    def get(self, provider_id: str) -> Optional[SearchableProviderRecord]: ...

    @abstractmethod
    def upsert(self, record: SearchableProviderRecord) -> None:
        """Full-record replace, including the geospatial index entry."""
        ...

    @abstractmethod
    def delete(self, provider_id: str) -> bool:
        """Remove record and index entry. Returns False if nothing was stored."""
        ...

    @abstractmethod
    def radius_query(
        self,
        origin: GeoPoint,
        radius_km: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[SearchableProviderRecord]:
        """
        Return every active record whose haversine distance from origin is
        at most radius_km (inclusive, shared epsilon). Order is unspecified.
        """
        ...

    @abstractmethod
    def is_ready(self) -> bool: ...

    @abstractmethod
    def count(self) -> int: ...

    @abstractmethod
    def get_tier_stats(self) -> List[Dict]:
        """
        Return active record counts per subscription tier.
        """
        ...
