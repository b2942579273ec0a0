# src/infrastructure/chroma_store.py

import json
import math
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Optional

import chromadb
import numpy as np
from chromadb.config import Settings

from src.domain.errors import StorageUnavailableError, raise_if_cancelled
from src.domain.geo import DISTANCE_EPSILON_KM, GeoPoint, bounding_box, haversine_km_array
from src.domain.interfaces import ProviderStorePort
from src.domain.models import TIER_RANKING, SearchableProviderRecord, SubscriptionTier


# ── Constants ─────────────────────────────────────────────────────────────────

COLLECTION_NAME = "searchable_providers"


def _unit_vector(point: GeoPoint) -> List[float]:
    """Position on the unit sphere; cosine distance then tracks central angle."""
    phi = math.radians(point.latitude)
    lam = math.radians(point.longitude)
    return [math.cos(phi) * math.cos(lam), math.cos(phi) * math.sin(lam), math.sin(phi)]


class ChromaProviderStore(ProviderStorePort):
    """
    Persistent provider store on ChromaDB.

    ┌──────────────────────────────────────────────────────────────┐
    │  ChromaDB metadata (disk) → bounding-box pre-filter (where)   │
    │  numpy haversine (memory) → exact inclusive radius check      │
    └──────────────────────────────────────────────────────────────┘

    Storage layout:
        - id        : provider_id
        - embedding : unit-sphere position of the provider
        - document  : display name
        - metadata  : every record attribute (service ids JSON-encoded,
                      nullable fields flattened to "" / has_rating flag)

    One upsert call replaces the whole record, so the location index and the
    attributes always change together.
    """

    def __init__(self, persist_directory: str):
        self._persist_directory = persist_directory

        path = Path(persist_directory)
        if path.exists() and not path.is_dir():
            raise StorageUnavailableError(
                "connect",
                f"Failed to initialize ChromaDB: path '{persist_directory}' is a file.",
            )
        path.mkdir(parents=True, exist_ok=True)

        try:
            self._client = chromadb.PersistentClient(
                path=persist_directory,
                settings=Settings(anonymized_telemetry=False),
            )
            self._collection = self._client.get_or_create_collection(
                name=COLLECTION_NAME,
                metadata={"hnsw:space": "cosine"},
            )
        except Exception as error:
            raise StorageUnavailableError(
                "connect",
                f"Failed to initialize ChromaDB at '{persist_directory}'. "
                f"The database may be locked by another process or corrupted. "
                f"Original error: {error}",
            ) from error

        print(
            f"[ChromaStore] Connected to '{persist_directory}'. "
            f"Collection has {self._collection.count()} providers."
        )

    # ─── ProviderStorePort: Core Interface ───────────────────────────────────

    def get(self, provider_id: str) -> Optional[SearchableProviderRecord]:
        with self._storage_call("get", provider_id):
            result = self._collection.get(ids=[provider_id], include=["metadatas"])
            if not result["ids"]:
                return None
            return self._from_metadata(result["ids"][0], result["metadatas"][0])

    def upsert(self, record: SearchableProviderRecord) -> None:
        with self._storage_call("upsert", record.provider_id):
            self._collection.upsert(
                ids        = [record.provider_id],
                embeddings = [_unit_vector(record.location)],
                documents  = [record.display_name],
                metadatas  = [self._to_metadata(record)],
            )

    def delete(self, provider_id: str) -> bool:
        with self._storage_call("delete", provider_id):
            existing = self._collection.get(ids=[provider_id], include=["metadatas"])
            if not existing["ids"]:
                return False
            self._collection.delete(ids=[provider_id])
            return True

    def is_ready(self) -> bool:
        """True once the collection holds at least one provider."""
        return self.count() > 0

    def count(self) -> int:
        with self._storage_call("count"):
            return self._collection.count()

    def get_tier_stats(self) -> List[dict]:
        with self._storage_call("tier stats"):
            results = self._collection.get(
                include = ["metadatas"],
                where   = {"is_active": {"$eq": True}},
            )

        counts = {tier: 0 for tier in TIER_RANKING}
        for meta in results["metadatas"]:
            counts[SubscriptionTier.parse(meta["subscription_tier"])] += 1
        return [{"tier": tier.value, "count": counts[tier]} for tier in TIER_RANKING]

    def radius_query(
        self,
        origin: GeoPoint,
        radius_km: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[SearchableProviderRecord]:
        """
        Radius pipeline:
            1. ChromaDB `where` keeps active records inside the bounding box
            2. numpy haversine drops box corners outside the circle
        """
        raise_if_cancelled(cancel_event, "radius filter")

        with self._storage_call("radius query"):
            results = self._collection.get(
                include = ["metadatas"],
                where   = self._bounding_box_filter(origin, radius_km),
            )

        raise_if_cancelled(cancel_event, "radius filter")

        ids = results["ids"]
        metadatas = results["metadatas"]
        if not ids:
            return []

        lats = np.array([m["latitude"] for m in metadatas], dtype=np.float64)
        lons = np.array([m["longitude"] for m in metadatas], dtype=np.float64)
        distances = haversine_km_array(origin.latitude, origin.longitude, lats, lons)
        inside = distances <= radius_km + DISTANCE_EPSILON_KM

        with self._storage_call("radius query"):
            return [
                self._from_metadata(pid, meta)
                for pid, meta, keep in zip(ids, metadatas, inside)
                if keep
            ]

    # ─── Private: Mapping ────────────────────────────────────────────────────

    @staticmethod
    def _to_metadata(record: SearchableProviderRecord) -> Dict:
        return {
            "display_name":      record.display_name,
            "latitude":          float(record.location.latitude),
            "longitude":         float(record.location.longitude),
            "subscription_tier": record.subscription_tier.value,
            "service_ids":       json.dumps(sorted(record.service_ids)),
            "has_rating":        record.average_rating is not None,
            "average_rating":    float(record.average_rating or 0.0),
            "review_count":      int(record.review_count),
            "is_active":         bool(record.is_active),
            "description":       record.description or "",
            "city":              record.city or "",
            "state":             record.state or "",
        }

    @staticmethod
    def _from_metadata(provider_id: str, meta: Dict) -> SearchableProviderRecord:
        return SearchableProviderRecord(
            provider_id       = provider_id,
            display_name      = meta["display_name"],
            location          = GeoPoint(meta["latitude"], meta["longitude"]),
            subscription_tier = meta["subscription_tier"],
            service_ids       = json.loads(meta.get("service_ids") or "[]"),
            average_rating    = meta["average_rating"] if meta.get("has_rating") else None,
            review_count      = int(meta.get("review_count", 0)),
            is_active         = bool(meta.get("is_active", True)),
            description       = meta.get("description") or None,
            city              = meta.get("city") or None,
            state             = meta.get("state") or None,
        )

    @staticmethod
    def _bounding_box_filter(origin: GeoPoint, radius_km: float) -> Dict:
        lat_min, lat_max, lon_ranges = bounding_box(origin, radius_km)

        clauses = [
            {"is_active": {"$eq": True}},
            {"latitude": {"$gte": float(lat_min)}},
            {"latitude": {"$lte": float(lat_max)}},
        ]

        if len(lon_ranges) == 2:
            # Box crosses the antimeridian: east tail OR west tail
            (east_min, _), (_, west_max) = lon_ranges
            clauses.append({"$or": [
                {"longitude": {"$gte": float(east_min)}},
                {"longitude": {"$lte": float(west_max)}},
            ]})
        else:
            lon_min, lon_max = lon_ranges[0]
            if lon_min > -180.0 or lon_max < 180.0:
                clauses.append({"longitude": {"$gte": float(lon_min)}})
                clauses.append({"longitude": {"$lte": float(lon_max)}})

        return {"$and": clauses}

    @contextmanager
    def _storage_call(self, operation: str, provider_id: Optional[str] = None):
        """Wrap any ChromaDB failure as StorageUnavailableError."""
        try:
            yield
        except StorageUnavailableError:
            raise
        except Exception as error:
            print(f"[ChromaStore] ⚠ {operation} failed: {error}")
            raise StorageUnavailableError(operation, str(error), provider_id) from error
