# src/application/projection_maintainer.py

import threading
import weakref
from typing import Callable, Iterable, MutableMapping, Optional

from src.domain.errors import DuplicateRecordError, RecordNotFoundError, ValidationError
from src.domain.geo import GeoPoint
from src.domain.interfaces import ProviderStorePort
from src.domain.models import (
    SearchableProviderRecord,
    SubscriptionTier,
    normalize_service_ids,
    validate_provider_id,
    validate_rating,
)


class ProjectionMaintainer:
    """
    Applies provider state changes to the searchable projection.

    Every operation is idempotent (events may be redelivered) and writes a
    complete, already-validated record in a single store upsert, so a failed
    write leaves the previous record untouched.

    Writes to the same provider are serialised by a per-provider lock;
    writes to different providers never wait on each other.
    """

    def __init__(self, store: ProviderStorePort):
        self._store = store
        # Entries vanish once no operation holds the lock
        self._locks: MutableMapping[str, threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    # ─── Lifecycle ───────────────────────────────────────────────────────────

    def create(
        self,
        provider_id: str,
        display_name: str,
        location: GeoPoint,
        tier=SubscriptionTier.FREE,
        description: Optional[str] = None,
        city: Optional[str] = None,
        state: Optional[str] = None,
    ) -> SearchableProviderRecord:
        """
        Insert a record with no services and no rating.

        An inactive record for the same provider is reactivated instead:
        the given attributes overwrite it, services and rating are kept.
        """
        validate_provider_id(provider_id)
        with self._lock_for(provider_id):
            existing = self._store.get(provider_id)

            if existing is None:
                record = SearchableProviderRecord(
                    provider_id=provider_id,
                    display_name=display_name,
                    location=location,
                    subscription_tier=tier,
                    description=description,
                    city=city,
                    state=state,
                )
                self._store.upsert(record)
                print(f"[ProjectionMaintainer] Created record for provider {provider_id}")
                return record

            if existing.is_active:
                print(f"[ProjectionMaintainer] ⚠ Provider {provider_id} already active")
                raise DuplicateRecordError(provider_id)

            record = existing.with_changes(
                display_name=display_name,
                location=location,
                subscription_tier=tier,
                description=description,
                city=city,
                state=state,
                is_active=True,
            )
            self._store.upsert(record)
            print(f"[ProjectionMaintainer] Reactivated provider {provider_id}")
            return record

    def index_provider(self, record: SearchableProviderRecord) -> SearchableProviderRecord:
        """Upsert a complete provider snapshot, creating or replacing the record."""
        with self._lock_for(record.provider_id):
            existing = self._store.get(record.provider_id)
            if existing == record:
                return existing
            self._store.upsert(record)
            action = "Indexed" if existing is None else "Re-indexed"
            print(f"[ProjectionMaintainer] {action} provider {record.provider_id}")
            return record

    def deactivate(self, provider_id: str) -> None:
        """Soft removal. Unknown or already inactive providers succeed silently."""
        validate_provider_id(provider_id)
        with self._lock_for(provider_id):
            existing = self._store.get(provider_id)
            if existing is None:
                print(f"[ProjectionMaintainer] Provider {provider_id} not indexed, nothing to deactivate")
                return
            if not existing.is_active:
                return
            self._store.upsert(existing.with_changes(is_active=False))
            print(f"[ProjectionMaintainer] Deactivated provider {provider_id}")

    def delete(self, provider_id: str) -> None:
        """Hard removal from the store and its index. Idempotent."""
        validate_provider_id(provider_id)
        with self._lock_for(provider_id):
            if self._store.delete(provider_id):
                print(f"[ProjectionMaintainer] Deleted provider {provider_id}")
            else:
                print(f"[ProjectionMaintainer] Provider {provider_id} not indexed, nothing to delete")

    # ─── Attribute groups ────────────────────────────────────────────────────

    def update_location(self, provider_id: str, location: GeoPoint) -> SearchableProviderRecord:
        if not isinstance(location, GeoPoint):
            raise ValidationError("location", "Location must be a GeoPoint.", location)
        return self._mutate(
            provider_id, "update_location", lambda r: r.with_changes(location=location)
        )

    def update_services(
        self, provider_id: str, service_ids: Iterable[str]
    ) -> SearchableProviderRecord:
        """Replaces the complete offered-service set; callers send all of it."""
        services = normalize_service_ids(service_ids)
        return self._mutate(
            provider_id, "update_services", lambda r: r.with_changes(service_ids=services)
        )

    def update_rating(
        self,
        provider_id: str,
        average_rating: Optional[float],
        review_count: int,
    ) -> SearchableProviderRecord:
        validate_rating(average_rating, review_count)
        return self._mutate(
            provider_id,
            "update_rating",
            lambda r: r.with_changes(average_rating=average_rating, review_count=review_count),
        )

    def update_tier(self, provider_id: str, tier) -> SearchableProviderRecord:
        parsed = SubscriptionTier.parse(tier)
        return self._mutate(
            provider_id, "update_tier", lambda r: r.with_changes(subscription_tier=parsed)
        )

    def update_basic_info(
        self,
        provider_id: str,
        display_name: str,
        description: Optional[str] = None,
        city: Optional[str] = None,
        state: Optional[str] = None,
    ) -> SearchableProviderRecord:
        return self._mutate(
            provider_id,
            "update_basic_info",
            lambda r: r.with_changes(
                display_name=display_name, description=description, city=city, state=state
            ),
        )

    # ─── Private ─────────────────────────────────────────────────────────────

    def _lock_for(self, provider_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(provider_id)
            if lock is None:
                lock = self._locks[provider_id] = threading.Lock()
            return lock

    def _mutate(
        self,
        provider_id: str,
        operation: str,
        change: Callable[[SearchableProviderRecord], SearchableProviderRecord],
    ) -> SearchableProviderRecord:
        validate_provider_id(provider_id)
        with self._lock_for(provider_id):
            current = self._store.get(provider_id)
            if current is None:
                print(f"[ProjectionMaintainer] ⚠ {operation}: provider {provider_id} is not indexed")
                raise RecordNotFoundError(provider_id, operation)

            updated = change(current)
            if updated == current:
                return current

            self._store.upsert(updated)
            print(f"[ProjectionMaintainer] {operation} applied to provider {provider_id}")
            return updated
